"""
pgstats-aggregator - PostgreSQL statistics forwarder for Librato

Polls pg_stat_* views on a fixed interval, converts cumulative counters into
per-interval deltas, and submits every cycle as one batch whose samples share
a single bucketed timestamp.

Usage:
    # As a module
    python -m pgstats_aggregator --database-url postgresql://localhost/app run

    # Programmatically
    from pgstats_aggregator import StatsPoller, PollerConfig, LibratoSink, PgStatQueries

    poller = StatsPoller(PollerConfig(source="app"), LibratoSink(user, token))
    result = poller.poll(PgStatQueries(conn))
"""

__version__ = "1.0.0"

# Core exports
from .config import Config, PollerConfig, LibratoConfig, SourceConfig
from .telemetry.counters import CounterState
from .telemetry.clock import bucket
from .telemetry.queries import PgStatQueries

# Protocol exports
from .protocol.sample import MetricSample, SubmissionBatch, format_sample
from .protocol.errors import PgStatsError, ConfigError, SinkError

# Runner exports
from .runner.poller import StatsPoller, CycleResult
from .runner.scheduler import PollScheduler, SourcePoller, build_pollers

# Sink exports
from .sink.librato import LibratoSink
from .sink.console import ConsoleSink

__all__ = [
    # Version
    "__version__",
    # Config
    "Config",
    "PollerConfig",
    "LibratoConfig",
    "SourceConfig",
    # Core
    "CounterState",
    "bucket",
    "PgStatQueries",
    "MetricSample",
    "SubmissionBatch",
    "format_sample",
    # Errors
    "PgStatsError",
    "ConfigError",
    "SinkError",
    # Runner
    "StatsPoller",
    "CycleResult",
    "PollScheduler",
    "SourcePoller",
    "build_pollers",
    # Sinks
    "LibratoSink",
    "ConsoleSink",
]
