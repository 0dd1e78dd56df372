"""
Time bucketing for poll cycles.

Every sample from one cycle is stamped with the wall clock floored to the
collection interval, so all metrics of a poll land in the same bucket no
matter how long individual queries take.
"""

import time
from typing import Callable, Union


def bucket(now: Union[int, float], interval: int) -> int:
    """
    Floor a timestamp to an interval boundary.

    >>> bucket(1000, 300)
    900
    """
    if isinstance(interval, bool) or not isinstance(interval, int) or interval <= 0:
        raise ValueError(f"Interval must be a positive integer, got {interval!r}")

    now = int(now)
    return now - (now % interval)


def now_floored(interval: int, clock: Callable[[], float] = time.time) -> int:
    """Current wall clock floored to the interval."""
    return bucket(clock(), interval)


def seconds_until_next_tick(now: float, interval: int) -> float:
    """Seconds from now to the next interval boundary (always > 0)."""
    return bucket(now, interval) + interval - now
