"""
MetricSink - Contract for batch destinations.
"""

from typing import Protocol, Sequence, runtime_checkable

from ..protocol.sample import MetricSample


@runtime_checkable
class MetricSink(Protocol):
    """Accepts one non-empty batch per call and transmits it."""

    def submit(self, samples: Sequence[MetricSample]) -> None:
        ...
