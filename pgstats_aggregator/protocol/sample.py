"""
MetricSample / SubmissionBatch - Poller → Sink protocol.

Every sample produced in one poll cycle carries the same bucketed timestamp
and source tag. A batch is flushed to the sink as a single unit.
"""

from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Dict, List, Any, Iterator, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from ..sink.base import MetricSink


DEFAULT_NAMESPACE = "postgres"

Number = Union[int, float]


@dataclass(frozen=True)
class MetricSample:
    """A single named, timestamped, source-tagged metric value."""
    name: str            # "postgres.inserts"
    value: Number
    timestamp: int       # Bucket-aligned epoch seconds
    source: str          # Database name

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


def format_sample(
    name: str,
    value: Number,
    timestamp: int,
    source: str,
    namespace: str = DEFAULT_NAMESPACE,
) -> MetricSample:
    """Build a sample named "<namespace>.<name>"."""
    if isinstance(value, Decimal):
        value = int(value) if value == value.to_integral_value() else float(value)

    return MetricSample(
        name=f"{namespace}.{name}",
        value=value,
        timestamp=int(timestamp),
        source=source,
    )


class SubmissionBatch:
    """
    Ordered, cycle-scoped collection of samples.

    Usage:
        batch = SubmissionBatch()
        batch.add(sample)
        submitted = batch.flush(sink)   # 0 when empty, sink untouched
    """

    def __init__(self):
        self._samples: List[MetricSample] = []
        self._flushed = False

    def add(self, sample: MetricSample):
        """Append a sample to the batch."""
        if self._flushed:
            raise RuntimeError("Cannot add to a batch that was already flushed")
        self._samples.append(sample)

    @property
    def samples(self) -> List[MetricSample]:
        """Get a copy of the queued samples."""
        return self._samples.copy()

    @property
    def flushed(self) -> bool:
        return self._flushed

    def is_empty(self) -> bool:
        return not self._samples

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[MetricSample]:
        return iter(self._samples.copy())

    def flush(self, sink: "MetricSink") -> int:
        """
        Hand the whole batch to the sink in one call.

        Returns:
            Number of samples submitted (0 if the batch was empty and the
            sink was not called)
        """
        if self._flushed:
            raise RuntimeError("Batch was already flushed")
        self._flushed = True

        if not self._samples:
            return 0

        sink.submit(self._samples.copy())
        return len(self._samples)
