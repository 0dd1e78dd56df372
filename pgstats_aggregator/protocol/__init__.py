"""
Protocol module - Data exchanged between poller and sink.

Provides:
- MetricSample: one named, timestamped, source-tagged value
- SubmissionBatch: the samples of one poll cycle, flushed as a unit
- Error types
"""

from .sample import (
    MetricSample,
    SubmissionBatch,
    format_sample,
    DEFAULT_NAMESPACE,
)
from .errors import PgStatsError, ConfigError, SinkError

__all__ = [
    "MetricSample",
    "SubmissionBatch",
    "format_sample",
    "DEFAULT_NAMESPACE",
    "PgStatsError",
    "ConfigError",
    "SinkError",
]
