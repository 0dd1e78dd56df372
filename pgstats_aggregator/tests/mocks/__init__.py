"""
Mock components for testing pgstats-aggregator.

These mocks use realistic pg_stat_* rows (golden_data.py) to drive the
poller and query classes without a database or network access.
"""

from .fake_db import FakeConnection, FakeCursor
from .fake_queries import FakeStatQueries, RecordingSink, ManualClock
from .golden_data import (
    COUNTERS_CYCLE_1,
    COUNTERS_CYCLE_2,
    INDEX_HIT_RATE,
    CACHE_HIT_RATE,
    TOTAL_INDEX_SIZE,
    INDEX_USAGE_ROWS,
    stat_connection,
)

__all__ = [
    # Database
    'FakeConnection',
    'FakeCursor',
    'stat_connection',
    # Poller collaborators
    'FakeStatQueries',
    'RecordingSink',
    'ManualClock',
    # Golden data
    'COUNTERS_CYCLE_1',
    'COUNTERS_CYCLE_2',
    'INDEX_HIT_RATE',
    'CACHE_HIT_RATE',
    'TOTAL_INDEX_SIZE',
    'INDEX_USAGE_ROWS',
]
