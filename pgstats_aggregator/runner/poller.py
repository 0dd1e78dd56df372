"""
StatsPoller - Runs one poll cycle for one source.

Cycle:
1. Bucket the wall clock once; every sample shares that timestamp
2. Table counters -> CounterState.observe -> deltas only
3. Index hit rate, cache hit rate, index size -> gauges (NULL skipped)
4. Per-table index usage -> one gauge per table
5. Flush the batch (no sink call when empty)

Query and sink errors propagate and abort the cycle. Baselines updated
before the failure are kept.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Any

from ..config import PollerConfig
from ..protocol.sample import MetricSample, SubmissionBatch, format_sample
from ..sink.base import MetricSink
from ..telemetry.clock import bucket
from ..telemetry.counters import CounterState, parse_counter, parse_gauge
from ..telemetry.queries import PgStatQueries, COUNTER_COLUMNS

logger = logging.getLogger(__name__)

GAUGE_COLUMNS = ('index_hit_rate', 'cache_hit_rate', 'total_index_size')


@dataclass
class CycleResult:
    """Outcome of one poll cycle."""
    source: str
    timestamp: int
    samples: List[MetricSample] = field(default_factory=list)
    skipped: Dict[str, str] = field(default_factory=dict)   # metric -> reason
    submitted: bool = False
    duration_ms: int = 0

    @property
    def sample_count(self) -> int:
        return len(self.samples)


class StatsPoller:
    """
    Converts one cycle of statistic rows into a submitted batch.

    Owns the CounterState of its source; never share a poller (or its
    counters) between sources.

    Usage:
        poller = StatsPoller(PollerConfig(source="app"), sink)
        result = poller.poll(PgStatQueries(conn))
    """

    def __init__(
        self,
        config: PollerConfig,
        sink: MetricSink,
        counters: Optional[CounterState] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.sink = sink
        self.counters = counters if counters is not None else CounterState(config.initial_counters)
        self._clock = clock
        self.last_bucket: Optional[int] = None

    @property
    def source(self) -> str:
        return self.config.source

    def poll(self, queries: PgStatQueries) -> CycleResult:
        """Run one full cycle and flush it."""
        started = time.monotonic()
        timestamp = bucket(self._clock(), self.config.interval)
        self.last_bucket = timestamp
        batch = SubmissionBatch()
        result = CycleResult(source=self.source, timestamp=timestamp)

        self._collect_counters(queries.table_counters(), timestamp, batch, result)

        for row in (queries.index_hit_rate(), queries.cache_hit_rate(), queries.index_size()):
            self._collect_gauges(row, timestamp, batch, result)

        self._collect_index_usage(queries.tables_index_usage(), timestamp, batch, result)

        result.samples = batch.samples
        submitted = batch.flush(self.sink)
        result.submitted = submitted > 0
        result.duration_ms = int((time.monotonic() - started) * 1000)

        if result.submitted:
            logger.info(
                "Submitted %d samples for %s @ %d (%dms)",
                submitted, self.source, timestamp, result.duration_ms,
            )
        else:
            logger.info("No samples to submit for %s @ %d", self.source, timestamp)

        return result

    def _collect_counters(
        self,
        row: Dict[str, Any],
        timestamp: int,
        batch: SubmissionBatch,
        result: CycleResult,
    ):
        for name in COUNTER_COLUMNS:
            raw = row.get(name)
            current = parse_counter(raw)
            if current is None:
                logger.warning("Skipping counter %s for %s: unusable value %r", name, self.source, raw)
                result.skipped[name] = "invalid"
                continue

            first_seen = name not in self.counters
            delta = self.counters.observe(name, current)
            if delta is None:
                result.skipped[name] = "baseline" if first_seen else "reset"
                continue

            batch.add(self._format(name, delta, timestamp))

    def _collect_gauges(
        self,
        row: Dict[str, Any],
        timestamp: int,
        batch: SubmissionBatch,
        result: CycleResult,
    ):
        for name, raw in row.items():
            if name not in GAUGE_COLUMNS:
                continue
            value = parse_gauge(raw)
            if value is None:
                if raw is not None:
                    logger.warning("Skipping gauge %s for %s: unusable value %r", name, self.source, raw)
                result.skipped[name] = "null" if raw is None else "invalid"
                continue
            batch.add(self._format(name, value, timestamp))

    def _collect_index_usage(
        self,
        rows: List[Dict[str, Any]],
        timestamp: int,
        batch: SubmissionBatch,
        result: CycleResult,
    ):
        for row in rows:
            name = f"{row.get('relname')}.percent_of_times_index_used"
            raw = row.get('percent_of_times_index_used')
            value = parse_gauge(raw)
            if value is None:
                logger.warning("Skipping %s for %s: unusable value %r", name, self.source, raw)
                result.skipped[name] = "invalid"
                continue
            batch.add(self._format(name, value, timestamp))

    def _format(self, name: str, value, timestamp: int) -> MetricSample:
        sample = format_sample(name, value, timestamp, self.source, namespace=self.config.namespace)
        logger.debug("%s = %s", sample.name, sample.value)
        return sample
