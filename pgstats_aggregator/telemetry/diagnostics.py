"""
DiagnosticQueries - On-demand health reports.

These reports are read-only snapshots for a human operator (the `inspect`
command). They never feed the metric pipeline.

Provides:
- unused_indexes: non-unique indexes with few scans on non-trivial tables
- long_running_queries: statements active for more than five minutes
- bloat: estimated table and index bloat
- vacuum_stats: dead rows against the autovacuum threshold
- blocking_queries: sessions waiting on another session's lock
- table_locks: exclusive locks held by other backends
"""

from typing import Callable, Dict, List, Any, TYPE_CHECKING

if TYPE_CHECKING:
    import psycopg2


UNUSED_INDEXES_SQL = """
    SELECT schemaname || '.' || relname AS table,
           indexrelname AS index,
           pg_size_pretty(pg_relation_size(i.indexrelid)) AS index_size,
           idx_scan AS index_scans
    FROM pg_stat_user_indexes ui
    JOIN pg_index i ON ui.indexrelid = i.indexrelid
    WHERE NOT indisunique
      AND idx_scan < 50
      AND pg_relation_size(relid) > 5 * 8192
    ORDER BY pg_relation_size(i.indexrelid) / nullif(idx_scan, 0) DESC NULLS FIRST,
             pg_relation_size(i.indexrelid) DESC
"""

LONG_RUNNING_QUERIES_SQL = """
    SELECT pid,
           now() - pg_stat_activity.query_start AS duration,
           query
    FROM pg_stat_activity
    WHERE pg_stat_activity.query <> ''::text
      AND state <> 'idle'
      AND now() - pg_stat_activity.query_start > interval '5 minutes'
    ORDER BY now() - pg_stat_activity.query_start DESC
"""

BLOAT_SQL = """
    WITH constants AS (
      SELECT current_setting('block_size')::numeric AS bs, 23 AS hdr, 4 AS ma
    ), bloat_info AS (
      SELECT ma, bs, schemaname, tablename,
             (datawidth + (hdr + ma - (CASE WHEN hdr % ma = 0 THEN ma ELSE hdr % ma END)))::numeric AS datahdr,
             (maxfracsum * (nullhdr + ma - (CASE WHEN nullhdr % ma = 0 THEN ma ELSE nullhdr % ma END))) AS nullhdr2
      FROM (
        SELECT schemaname, tablename, hdr, ma, bs,
               SUM((1 - null_frac) * avg_width) AS datawidth,
               MAX(null_frac) AS maxfracsum,
               hdr + (
                 SELECT 1 + count(*) / 8
                 FROM pg_stats s2
                 WHERE null_frac <> 0
                   AND s2.schemaname = s.schemaname
                   AND s2.tablename = s.tablename
               ) AS nullhdr
        FROM pg_stats s, constants
        GROUP BY 1, 2, 3, 4, 5
      ) AS foo
    ), table_bloat AS (
      SELECT schemaname, tablename, cc.relpages, bs,
             CEIL((cc.reltuples * ((datahdr + ma -
               (CASE WHEN datahdr % ma = 0 THEN ma ELSE datahdr % ma END)) + nullhdr2 + 4)) / (bs - 20::float)) AS otta
      FROM bloat_info
      JOIN pg_class cc ON cc.relname = bloat_info.tablename
      JOIN pg_namespace nn ON cc.relnamespace = nn.oid
        AND nn.nspname = bloat_info.schemaname
        AND nn.nspname <> 'information_schema'
    ), index_bloat AS (
      SELECT schemaname, tablename, bs,
             COALESCE(c2.relname, '?') AS iname,
             COALESCE(c2.reltuples, 0) AS ituples,
             COALESCE(c2.relpages, 0) AS ipages,
             COALESCE(CEIL((c2.reltuples * (datahdr - 12)) / (bs - 20::float)), 0) AS iotta
      FROM bloat_info
      JOIN pg_class cc ON cc.relname = bloat_info.tablename
      JOIN pg_namespace nn ON cc.relnamespace = nn.oid
        AND nn.nspname = bloat_info.schemaname
        AND nn.nspname <> 'information_schema'
      JOIN pg_index i ON indrelid = cc.oid
      JOIN pg_class c2 ON c2.oid = i.indexrelid
    )
    SELECT type, schemaname, object_name, bloat, pg_size_pretty(raw_waste) AS waste
    FROM (
      SELECT 'table' AS type,
             schemaname,
             tablename AS object_name,
             ROUND(CASE WHEN otta = 0 THEN 0.0 ELSE table_bloat.relpages / otta::numeric END, 1) AS bloat,
             CASE WHEN relpages < otta THEN '0' ELSE (bs * (table_bloat.relpages - otta)::bigint)::bigint END AS raw_waste
      FROM table_bloat
      UNION
      SELECT 'index' AS type,
             schemaname,
             tablename || '::' || iname AS object_name,
             ROUND(CASE WHEN iotta = 0 OR ipages = 0 THEN 0.0 ELSE ipages / iotta::numeric END, 1) AS bloat,
             CASE WHEN ipages < iotta THEN '0' ELSE (bs * (ipages - iotta))::bigint END AS raw_waste
      FROM index_bloat
    ) bloat_summary
    ORDER BY raw_waste DESC, bloat DESC
"""

VACUUM_STATS_SQL = r"""
    WITH table_opts AS (
      SELECT pg_class.oid, relname, nspname,
             array_to_string(reloptions, '') AS relopts
      FROM pg_class
      INNER JOIN pg_namespace ns ON relnamespace = ns.oid
    ), vacuum_settings AS (
      SELECT oid, relname, nspname,
             CASE
               WHEN relopts LIKE '%autovacuum_vacuum_threshold%'
                 THEN substring(relopts FROM 'autovacuum_vacuum_threshold=([0-9.]+)')::integer
               ELSE current_setting('autovacuum_vacuum_threshold')::integer
             END AS autovacuum_vacuum_threshold,
             CASE
               WHEN relopts LIKE '%autovacuum_vacuum_scale_factor%'
                 THEN substring(relopts FROM 'autovacuum_vacuum_scale_factor=([0-9.]+)')::real
               ELSE current_setting('autovacuum_vacuum_scale_factor')::real
             END AS autovacuum_vacuum_scale_factor
      FROM table_opts
    )
    SELECT vacuum_settings.nspname AS schema,
           vacuum_settings.relname AS table,
           to_char(psut.last_vacuum, 'YYYY-MM-DD HH24:MI') AS last_vacuum,
           to_char(psut.last_autovacuum, 'YYYY-MM-DD HH24:MI') AS last_autovacuum,
           to_char(pg_class.reltuples, '9G999G999G999') AS rowcount,
           to_char(psut.n_dead_tup, '9G999G999G999') AS dead_rowcount,
           to_char(autovacuum_vacuum_threshold
                   + (autovacuum_vacuum_scale_factor::numeric * pg_class.reltuples),
                   '9G999G999G999') AS autovacuum_threshold,
           CASE
             WHEN autovacuum_vacuum_threshold
                  + (autovacuum_vacuum_scale_factor::numeric * pg_class.reltuples) < psut.n_dead_tup
             THEN 'yes'
           END AS expect_autovacuum
    FROM pg_stat_user_tables psut
    INNER JOIN pg_class ON psut.relid = pg_class.oid
    INNER JOIN vacuum_settings ON pg_class.oid = vacuum_settings.oid
    ORDER BY 1
"""

BLOCKING_QUERIES_SQL = """
    SELECT bl.pid     AS blocked_pid,
           a.usename  AS blocked_user,
           kl.pid     AS blocking_pid,
           ka.usename AS blocking_user,
           a.query    AS blocked_statement
    FROM pg_catalog.pg_locks bl
    JOIN pg_catalog.pg_stat_activity a ON a.pid = bl.pid
    JOIN pg_catalog.pg_locks kl
      ON kl.transactionid = bl.transactionid AND kl.pid != bl.pid
    JOIN pg_catalog.pg_stat_activity ka ON ka.pid = kl.pid
    WHERE NOT bl.granted
"""

TABLE_LOCKS_SQL = """
    SELECT pg_stat_activity.pid,
           pg_class.relname,
           pg_locks.transactionid,
           pg_locks.granted,
           substr(pg_stat_activity.query, 1, 30) AS query_snippet,
           age(now(), pg_stat_activity.query_start) AS age
    FROM pg_stat_activity, pg_locks
    LEFT OUTER JOIN pg_class ON (pg_locks.relation = pg_class.oid)
    WHERE pg_stat_activity.query <> '<insufficient privilege>'
      AND pg_locks.pid = pg_stat_activity.pid
      AND pg_locks.mode = 'ExclusiveLock'
      AND pg_stat_activity.pid <> pg_backend_pid()
    ORDER BY query_start
"""


class DiagnosticQueries:
    """Read-only diagnostic reports for one database connection."""

    def __init__(self, connection):
        self.conn = connection

    def unused_indexes(self) -> List[Dict[str, Any]]:
        return self._fetch_all(UNUSED_INDEXES_SQL)

    def long_running_queries(self) -> List[Dict[str, Any]]:
        return self._fetch_all(LONG_RUNNING_QUERIES_SQL)

    def bloat(self) -> List[Dict[str, Any]]:
        return self._fetch_all(BLOAT_SQL)

    def vacuum_stats(self) -> List[Dict[str, Any]]:
        return self._fetch_all(VACUUM_STATS_SQL)

    def blocking_queries(self) -> List[Dict[str, Any]]:
        return self._fetch_all(BLOCKING_QUERIES_SQL)

    def table_locks(self) -> List[Dict[str, Any]]:
        return self._fetch_all(TABLE_LOCKS_SQL)

    def run(self, report: str) -> List[Dict[str, Any]]:
        """
        Run a report by its CLI name.

        Raises:
            KeyError: If the report name is unknown
        """
        return REPORTS[report](self)

    def _fetch_all(self, sql: str) -> List[Dict[str, Any]]:
        with self.conn.cursor() as cur:
            cur.execute(sql)
            columns = [desc[0] for desc in cur.description]
            return [dict(zip(columns, row)) for row in cur.fetchall()]


# CLI report name -> query method
REPORTS: Dict[str, Callable[[DiagnosticQueries], List[Dict[str, Any]]]] = {
    'unused-indexes': DiagnosticQueries.unused_indexes,
    'long-running-queries': DiagnosticQueries.long_running_queries,
    'bloat': DiagnosticQueries.bloat,
    'vacuum-stats': DiagnosticQueries.vacuum_stats,
    'blocking-queries': DiagnosticQueries.blocking_queries,
    'table-locks': DiagnosticQueries.table_locks,
}
