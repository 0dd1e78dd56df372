"""
Error types shared across the aggregator.

ConfigError: invalid or incomplete configuration (raised at construction time)
SinkError: the metrics sink rejected or failed to receive a batch
"""

from typing import Optional


class PgStatsError(Exception):
    """Base class for aggregator errors."""


class ConfigError(PgStatsError, ValueError):
    """Configuration value is missing or out of range."""


class SinkError(PgStatsError, RuntimeError):
    """Submission to the metrics sink failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
