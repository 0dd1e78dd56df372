"""
Telemetry module - Samples PostgreSQL statistics.

Provides:
- PgStatQueries: the statistic categories polled every cycle
- CounterState: baseline tracking and delta/reset detection for counters
- bucket / now_floored: time bucketing shared by a whole cycle
- DiagnosticQueries: on-demand health reports
"""

from .queries import PgStatQueries, COUNTER_COLUMNS
from .counters import CounterState, parse_counter, parse_gauge
from .clock import bucket, now_floored, seconds_until_next_tick
from .diagnostics import DiagnosticQueries, REPORTS

__all__ = [
    "PgStatQueries",
    "COUNTER_COLUMNS",
    "CounterState",
    "parse_counter",
    "parse_gauge",
    "bucket",
    "now_floored",
    "seconds_until_next_tick",
    "DiagnosticQueries",
    "REPORTS",
]
