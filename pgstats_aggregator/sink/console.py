"""
ConsoleSink - Dry-run sink that prints batches instead of sending them.
"""

from typing import List, Optional, Sequence

from rich.console import Console
from rich.table import Table

from ..protocol.sample import MetricSample


class ConsoleSink:
    """Renders each submitted batch as a table and keeps a copy."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self.batches: List[List[MetricSample]] = []

    def submit(self, samples: Sequence[MetricSample]) -> None:
        if not samples:
            raise ValueError("Refusing to submit an empty batch")

        batch = list(samples)
        self.batches.append(batch)

        first = batch[0]
        table = Table(
            title=f"Batch for {first.source} @ {first.timestamp} (dry run)",
            show_header=True,
        )
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right")
        table.add_column("Source", style="dim")

        for sample in batch:
            table.add_row(sample.name, _format_value(sample.value), sample.source)

        self.console.print(table)

    def close(self):
        pass


def _format_value(value) -> str:
    if isinstance(value, float):
        return f"{value:.4f}"
    return str(value)
