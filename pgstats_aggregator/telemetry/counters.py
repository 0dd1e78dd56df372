"""
CounterState - Baseline tracking for cumulative counters.

pg_stat_* counters only ever grow until statistics are reset (server restart,
pg_stat_reset()). Each observation is compared to the stored baseline:

    first observation  -> store baseline, no delta
    value >= baseline  -> delta = value - baseline, store value
    value <  baseline  -> reset detected, no delta, store value

One CounterState belongs to exactly one polling context (one source).
"""

import logging
import math
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional, Any, Union

logger = logging.getLogger(__name__)


class CounterState:
    """
    Last observed cumulative value per metric name.

    Usage:
        counters = CounterState()
        counters.observe("inserts", 100)   # None (baseline)
        counters.observe("inserts", 150)   # 50
        counters.observe("inserts", 140)   # None (reset)
    """

    def __init__(self, initial: Optional[Dict[str, int]] = None):
        self._baselines: Dict[str, int] = {}
        for name, value in (initial or {}).items():
            self._baselines[name] = _require_counter(name, value)

    def observe(self, name: str, current: int) -> Optional[int]:
        """
        Record a cumulative observation and return the delta, if any.

        The baseline is replaced on every call, whether or not a delta is
        returned.

        Raises:
            ValueError: If current is not a non-negative integer
        """
        current = _require_counter(name, current)
        previous = self._baselines.get(name)
        self._baselines[name] = current

        if previous is None:
            logger.debug("Baseline for %s set to %d", name, current)
            return None

        if current < previous:
            logger.info("Counter reset for %s: %d -> %d", name, previous, current)
            return None

        return current - previous

    def baseline(self, name: str) -> Optional[int]:
        """Get the stored baseline for a metric."""
        return self._baselines.get(name)

    def snapshot(self) -> Dict[str, int]:
        """Get a copy of all baselines."""
        return dict(self._baselines)

    def __contains__(self, name: str) -> bool:
        return name in self._baselines

    def __len__(self) -> int:
        return len(self._baselines)

    def __repr__(self) -> str:
        return f"CounterState({self._baselines!r})"


def _require_counter(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Counter {name} must be an integer, got {value!r}")
    if value < 0:
        raise ValueError(f"Counter {name} must be non-negative, got {value}")
    return value


def parse_counter(value: Any) -> Optional[int]:
    """
    Parse a cumulative counter column into a non-negative integer.

    sum() over bigint columns comes back from psycopg2 as Decimal, and some
    statistics are rendered as text. Returns None for null, non-numeric,
    fractional or negative input.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, int):
        parsed = value
    elif isinstance(value, (Decimal, float)):
        if not math.isfinite(value) or value != int(value):
            return None
        parsed = int(value)
    elif isinstance(value, str):
        try:
            parsed = int(value.strip())
        except ValueError:
            return None
    else:
        return None

    return parsed if parsed >= 0 else None


def parse_gauge(value: Any) -> Optional[Union[int, float]]:
    """
    Parse a gauge column (ratio, size, percentage) into a number.

    Returns None for null or non-numeric input. Integral values stay int.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, Decimal):
        if not value.is_finite():
            return None
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            return None
        return parse_gauge(parsed)

    return None
