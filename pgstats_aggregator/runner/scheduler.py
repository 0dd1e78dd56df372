"""
PollScheduler - Periodic trigger for poll cycles.

One worker thread per source. Cycles of the same source never overlap: a
trigger that arrives while a cycle is still running is skipped, and ticks
missed during a slow cycle are dropped (the next tick is the next interval
boundary). Sources run independently of each other and each owns its own
CounterState.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from ..config import Config, SourceConfig
from ..sink.base import MetricSink
from ..telemetry.clock import bucket, seconds_until_next_tick
from ..telemetry.queries import PgStatQueries
from .poller import CycleResult, StatsPoller

logger = logging.getLogger(__name__)


def create_connection(url: str):
    """Open a read-only autocommit psycopg2 connection."""
    import psycopg2

    conn = psycopg2.connect(url)
    conn.set_session(readonly=True, autocommit=True)
    return conn


class SourcePoller:
    """
    Polling context for one source: a connection factory plus the poller
    that owns the source's counter state.
    """

    def __init__(
        self,
        source: SourceConfig,
        poller: StatsPoller,
        connect: Callable[[str], Any] = create_connection,
    ):
        self.source = source
        self.poller = poller
        self._connect = connect
        self._lock = threading.Lock()

        self.cycles_run = 0
        self.cycles_failed = 0
        self.cycles_skipped = 0
        self.last_result: Optional[CycleResult] = None

    @property
    def name(self) -> str:
        return self.source.name

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @property
    def last_bucket(self) -> Optional[int]:
        """Timestamp bucket of the most recent cycle that got far enough to take one."""
        return self.poller.last_bucket

    def run_cycle(self) -> Optional[CycleResult]:
        """
        Run one cycle on a fresh connection.

        Returns:
            CycleResult, or None if a cycle for this source is already running

        Raises:
            Any query or sink error; the cycle is aborted
        """
        if not self._lock.acquire(blocking=False):
            self.cycles_skipped += 1
            logger.warning("Skipping cycle for %s: previous cycle still running", self.name)
            return None

        try:
            conn = self._connect(self.source.url)
            try:
                result = self.poller.poll(PgStatQueries(conn))
            finally:
                conn.close()
        except Exception:
            self.cycles_failed += 1
            raise
        finally:
            self._lock.release()

        self.cycles_run += 1
        self.last_result = result
        return result


def build_pollers(
    config: Config,
    sink: MetricSink,
    connect: Callable[[str], Any] = create_connection,
    clock: Callable[[], float] = time.time,
) -> List[SourcePoller]:
    """One SourcePoller (with its own CounterState) per configured source."""
    return [
        SourcePoller(
            source=source,
            poller=StatsPoller(config.poller_config_for(source), sink, clock=clock),
            connect=connect,
        )
        for source in config.sources
    ]


class PollScheduler:
    """
    Runs every SourcePoller on the interval until stopped.

    Usage:
        scheduler = PollScheduler(build_pollers(config, sink), config.poller.interval)
        scheduler.run_forever()
    """

    def __init__(
        self,
        pollers: List[SourcePoller],
        interval: int,
        clock: Callable[[], float] = time.time,
        run_immediately: bool = True,
    ):
        if interval <= 0:
            raise ValueError(f"Interval must be positive, got {interval}")

        self.pollers = pollers
        self.interval = interval
        self.run_immediately = run_immediately
        self._clock = clock
        self._stop = threading.Event()
        self._threads: List[threading.Thread] = []

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def start(self):
        """Start one background thread per source."""
        if self.running:
            raise RuntimeError("Scheduler already running")

        self._stop.clear()
        self._threads = []
        for source_poller in self.pollers:
            thread = threading.Thread(
                target=self._loop,
                args=(source_poller,),
                name=f"poll-{source_poller.name}",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()

        logger.info("Polling %d source(s) every %ds", len(self.pollers), self.interval)

    def stop(self, timeout: Optional[float] = 5.0):
        """Stop polling and wait for in-flight cycles."""
        self._stop.set()
        for thread in self._threads:
            thread.join(timeout=timeout)

    def run_forever(self):
        """
        Block until stop() is called.

        Ctrl-C stops the workers and re-raises KeyboardInterrupt.
        """
        self.start()
        try:
            while not self._stop.wait(1.0):
                pass
        except KeyboardInterrupt:
            logger.info("Interrupted, stopping scheduler")
            raise
        finally:
            self.stop()

    def trigger_all(self) -> Dict[str, Optional[CycleResult]]:
        """Run one cycle for every source in the calling thread."""
        results = {}
        for source_poller in self.pollers:
            results[source_poller.name] = self._run_guarded(source_poller)
        return results

    def _loop(self, source_poller: SourcePoller):
        """
        Background polling loop for one source.

        Event.wait runs on the monotonic clock, so waking up is not proof
        that the wall clock crossed the boundary. A cycle only starts once
        bucket(clock()) is past the last bucket polled for this source.
        """
        last_bucket = None if self.run_immediately else bucket(self._clock(), self.interval)

        while not self._stop.is_set():
            now = self._clock()
            current = bucket(now, self.interval)
            if last_bucket is not None and current <= last_bucket:
                if self._stop.wait(seconds_until_next_tick(now, self.interval)):
                    break
                continue

            self._run_guarded(source_poller)
            # A cycle that failed before bucketing still consumes this tick
            polled = source_poller.last_bucket
            last_bucket = current if polled is None else max(current, polled)

    def _run_guarded(self, source_poller: SourcePoller) -> Optional[CycleResult]:
        # A failed cycle is reported; the schedule continues with the next tick.
        try:
            return source_poller.run_cycle()
        except Exception:
            logger.exception("Poll cycle failed for %s", source_poller.name)
            return None
