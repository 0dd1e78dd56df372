"""
Runner module - Executes poll cycles.

Provides:
- StatsPoller: one cycle for one source (bucket, deltas, gauges, flush)
- SourcePoller: polling context with its own connection and counter state
- PollScheduler: interval trigger with non-overlapping cycles per source
"""

from .poller import StatsPoller, CycleResult
from .scheduler import PollScheduler, SourcePoller, build_pollers, create_connection

__all__ = [
    "StatsPoller",
    "CycleResult",
    "PollScheduler",
    "SourcePoller",
    "build_pollers",
    "create_connection",
]
