"""
Golden statistic rows - Realistic pg_stat_* results for tests.

Values follow what psycopg2 returns: sum() over bigint comes back as
Decimal, hit rates as Decimal fractions, percentages as text.
"""

from decimal import Decimal
from typing import Dict, List, Any, Optional

from ...telemetry.queries import (
    TABLE_COUNTERS_SQL,
    INDEX_HIT_RATE_SQL,
    CACHE_HIT_RATE_SQL,
    INDEX_SIZE_SQL,
    TABLES_INDEX_USAGE_SQL,
    COUNTER_COLUMNS,
)
from .fake_db import FakeConnection


COUNTERS_CYCLE_1 = {
    'sequence_scans': Decimal(1200),
    'index_scans': Decimal(98000),
    'inserts': Decimal(100),
    'updates': Decimal(40),
    'deletes': Decimal(5),
}

COUNTERS_CYCLE_2 = {
    'sequence_scans': Decimal(1260),
    'index_scans': Decimal(99500),
    'inserts': Decimal(150),
    'updates': Decimal(52),
    'deletes': Decimal(5),
}

INDEX_HIT_RATE = Decimal("0.9987")
CACHE_HIT_RATE = Decimal("0.9912")
TOTAL_INDEX_SIZE = 48 * 1024 * 1024

INDEX_USAGE_ROWS = [
    {'relname': 'orders', 'percent_of_times_index_used': '99', 'rows_in_table': 1250000},
    {'relname': 'customers', 'percent_of_times_index_used': '87', 'rows_in_table': 42000},
    {'relname': 'zip_state', 'percent_of_times_index_used': '0', 'rows_in_table': 0},
]


def stat_connection(
    counters: Optional[Dict[str, Any]] = None,
    index_hit_rate: Any = INDEX_HIT_RATE,
    cache_hit_rate: Any = CACHE_HIT_RATE,
    total_index_size: Any = TOTAL_INDEX_SIZE,
    index_usage: Optional[List[Dict[str, Any]]] = None,
) -> FakeConnection:
    """FakeConnection answering the five statistic queries."""
    counters = COUNTERS_CYCLE_1 if counters is None else counters
    usage = INDEX_USAGE_ROWS if index_usage is None else index_usage
    usage_columns = ['relname', 'percent_of_times_index_used', 'rows_in_table']

    return FakeConnection({
        TABLE_COUNTERS_SQL: (list(COUNTER_COLUMNS), [tuple(counters.get(c) for c in COUNTER_COLUMNS)]),
        INDEX_HIT_RATE_SQL: (['index_hit_rate'], [(index_hit_rate,)]),
        CACHE_HIT_RATE_SQL: (['cache_hit_rate'], [(cache_hit_rate,)]),
        INDEX_SIZE_SQL: (['total_index_size'], [(total_index_size,)]),
        TABLES_INDEX_USAGE_SQL: (usage_columns, [tuple(r[c] for c in usage_columns) for r in usage]),
    })
