"""
ConsoleUI - Rich-based console interface.

Provides result formatting for the CLI and the logging handler setup.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..runner.poller import CycleResult


def setup_logging(level: str = "INFO", console: Optional[Console] = None):
    """Route all log records through a RichHandler on the root logger."""
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        log_time_format="[%X]",
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if isinstance(existing, RichHandler):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper())

    # Connection pool chatter from requests
    logging.getLogger("urllib3").setLevel(logging.WARNING)


class ConsoleUI:
    """
    Rich console interface for pgstats-aggregator.
    """

    def __init__(self, quiet: bool = False, console: Optional[Console] = None):
        self.quiet = quiet
        self.console = console or Console()

    def print(self, *args, **kwargs):
        """Print to console."""
        if self.quiet:
            return
        self.console.print(*args, **kwargs)

    def print_header(self, title: str):
        """Print a section header."""
        if self.quiet:
            return
        self.console.print()
        self.console.rule(f"[bold blue]{title}[/]")

    def print_banner(self, config_summary: str = ""):
        """Print application banner."""
        if self.quiet:
            return

        banner = "[bold cyan]PostgreSQL Stats Aggregator[/]\n[dim]pg_stat counters → Librato[/]"
        if config_summary:
            banner += f"\n\n[dim]{config_summary}[/]"
        self.console.print(Panel(banner, border_style="cyan"))

    def print_error(self, message: str):
        """Errors are printed even in quiet mode."""
        self.console.print(f"[bold red]Error:[/] {message}")

    def print_errors(self, errors: List[str]):
        for error in errors:
            self.print_error(error)

    def print_cycle(self, result: CycleResult):
        """Display the outcome of one poll cycle."""
        if self.quiet:
            return

        measured = datetime.fromtimestamp(result.timestamp, tz=timezone.utc)
        status = "[green]submitted[/]" if result.submitted else "[yellow]nothing submitted[/]"
        self.console.print(
            f"[bold]{result.source}[/] @ {measured:%Y-%m-%d %H:%M:%S}Z: "
            f"{result.sample_count} samples, {status} ({result.duration_ms}ms)"
        )

        if result.samples:
            table = Table(show_header=True, box=None)
            table.add_column("Metric", style="cyan")
            table.add_column("Value", justify="right")
            for sample in result.samples:
                value = f"{sample.value:.4f}" if isinstance(sample.value, float) else str(sample.value)
                table.add_row(sample.name, value)
            self.console.print(table)

        if result.skipped:
            skipped = ", ".join(f"{name} ({reason})" for name, reason in sorted(result.skipped.items()))
            self.console.print(f"[dim]Skipped: {skipped}[/]")

    def print_report(self, title: str, rows: List[Dict[str, Any]]):
        """Display a diagnostic report as a table."""
        if not rows:
            self.console.print(f"[green]{title}: no rows[/]")
            return

        table = Table(title=title, show_header=True)
        for column in rows[0].keys():
            table.add_column(str(column))

        for row in rows:
            table.add_row(*["" if v is None else str(v) for v in row.values()])

        self.console.print(table)
