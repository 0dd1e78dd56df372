"""
PgStatQueries - Statistic categories sampled every poll cycle.

Each method runs one fixed query against the pg_stat_* / pg_statio_* views
and returns named columns:

- table_counters:      sequence_scans, index_scans, inserts, updates, deletes
                       (cumulative, summed over user tables)
- index_hit_rate:      fraction 0..1, NULL when no index blocks were touched
- cache_hit_rate:      fraction 0..1, NULL when no heap blocks were touched
- index_size:          total_index_size in bytes
- tables_index_usage:  one row per public table with relname,
                       percent_of_times_index_used (0..100, text) and
                       rows_in_table

Query errors are not caught here; they abort the cycle.
"""

from typing import Dict, List, Any, TYPE_CHECKING

if TYPE_CHECKING:
    import psycopg2


COUNTER_COLUMNS = (
    'sequence_scans',
    'index_scans',
    'inserts',
    'updates',
    'deletes',
)

TABLE_COUNTERS_SQL = """
    SELECT sum(seq_scan)  AS sequence_scans,
           sum(idx_scan)  AS index_scans,
           sum(n_tup_ins) AS inserts,
           sum(n_tup_upd) AS updates,
           sum(n_tup_del) AS deletes
    FROM pg_stat_user_tables
"""

INDEX_HIT_RATE_SQL = """
    SELECT sum(idx_blks_hit)
           / nullif(sum(idx_blks_hit + idx_blks_read), 0) AS index_hit_rate
    FROM pg_statio_user_indexes
"""

CACHE_HIT_RATE_SQL = """
    SELECT sum(heap_blks_hit)
           / nullif(sum(heap_blks_hit) + sum(heap_blks_read), 0) AS cache_hit_rate
    FROM pg_statio_user_tables
"""

INDEX_SIZE_SQL = """
    SELECT sum(relpages::bigint * current_setting('block_size')::bigint)::bigint
           AS total_index_size
    FROM pg_class
    WHERE relkind = 'i'
"""

TABLES_INDEX_USAGE_SQL = """
    SELECT relname,
           CASE
             WHEN idx_scan > 0 THEN (100 * idx_scan / (seq_scan + idx_scan))::text
             ELSE '0'
           END AS percent_of_times_index_used,
           n_live_tup AS rows_in_table
    FROM pg_stat_user_tables
    WHERE schemaname = 'public'
    ORDER BY n_live_tup DESC
"""


class PgStatQueries:
    """
    Statistic queries bound to one database connection.

    Uses pg_stat_* system views; read-only.
    """

    def __init__(self, connection):
        self.conn = connection

    def table_counters(self) -> Dict[str, Any]:
        """Aggregate cumulative table counters."""
        return self._fetch_one(TABLE_COUNTERS_SQL)

    def index_hit_rate(self) -> Dict[str, Any]:
        """Share of index block reads served from shared buffers."""
        return self._fetch_one(INDEX_HIT_RATE_SQL)

    def cache_hit_rate(self) -> Dict[str, Any]:
        """Share of heap block reads served from shared buffers."""
        return self._fetch_one(CACHE_HIT_RATE_SQL)

    def index_size(self) -> Dict[str, Any]:
        """Total on-disk size of all indexes, in bytes."""
        return self._fetch_one(INDEX_SIZE_SQL)

    def tables_index_usage(self) -> List[Dict[str, Any]]:
        """Per-table index usage, largest tables first."""
        return self._fetch_all(TABLES_INDEX_USAGE_SQL)

    def _fetch_one(self, sql: str) -> Dict[str, Any]:
        rows = self._fetch_all(sql)
        return rows[0] if rows else {}

    def _fetch_all(self, sql: str) -> List[Dict[str, Any]]:
        with self.conn.cursor() as cur:
            cur.execute(sql)
            columns = [desc[0] for desc in cur.description]
            return [dict(zip(columns, row)) for row in cur.fetchall()]
