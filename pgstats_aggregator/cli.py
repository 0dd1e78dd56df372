"""
CLI - Command-line interface for pgstats-aggregator.

Commands:
    run          Poll every source on the interval until interrupted (default)
    once         Run a single cycle per source and print the results
    inspect      Print a diagnostic report for one source
    init-config  Write an example config file
"""

import argparse
import logging
import sys
from typing import Optional, List

from .config import Config, create_example_config
from .runner.scheduler import PollScheduler, build_pollers, create_connection
from .sink.console import ConsoleSink
from .sink.librato import LibratoSink
from .telemetry.diagnostics import DiagnosticQueries, REPORTS
from .ui.console import ConsoleUI, setup_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="pgstats-aggregator",
        description="Forward PostgreSQL statistics to Librato",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    pgstats-aggregator --database-url postgresql://postgres@db/app run
    pgstats-aggregator --dry-run once
    pgstats-aggregator inspect unused-indexes --source app

Environment Variables:
    LIBRATO_USER      Librato account (required unless --dry-run)
    LIBRATO_TOKEN     Librato API token (required unless --dry-run)
    *DATABASE_URL*    Every matching variable adds a database to poll
    PGSTATS_INTERVAL  Poll interval in seconds (default 300)
        """,
    )

    parser.add_argument(
        '-c', '--config',
        help='Path to TOML config file',
    )
    parser.add_argument(
        '-d', '--database-url',
        action='append',
        metavar='URL',
        help='Database to poll (repeatable)',
    )
    parser.add_argument(
        '-i', '--interval',
        type=int,
        help='Poll interval in seconds',
    )
    parser.add_argument(
        '--namespace',
        help='Metric name prefix (default: postgres)',
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Print batches instead of sending them to Librato',
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        type=str.upper,
        help='Logging level',
    )
    parser.add_argument(
        '-q', '--quiet',
        action='store_true',
        help='Suppress console output (logs and errors still shown)',
    )

    subparsers = parser.add_subparsers(dest='command')

    subparsers.add_parser('run', help='Poll continuously (default)')
    subparsers.add_parser('once', help='Run one cycle per source')

    inspect = subparsers.add_parser('inspect', help='Print a diagnostic report')
    inspect.add_argument('report', choices=sorted(REPORTS))
    inspect.add_argument('--source', help='Source label (default: first source)')

    init = subparsers.add_parser('init-config', help='Write an example config file')
    init.add_argument('path', nargs='?', default='pgstats.toml')

    args = parser.parse_args(argv)
    if args.command is None:
        args.command = 'run'
    return args


def load_config(args: argparse.Namespace) -> Config:
    """File, then environment, then command line."""
    config = Config.load(args.config)
    config.apply_env()
    config.override_from_args(args)
    return config


def create_sink(config: Config, ui: ConsoleUI):
    if config.dry_run:
        return ConsoleSink(ui.console)
    return LibratoSink(
        user=config.librato.user,
        token=config.librato.token,
        api_url=config.librato.api_url,
        timeout=config.librato.timeout,
    )


def run_continuous(config: Config, ui: ConsoleUI) -> int:
    """Poll all sources until interrupted. Ctrl-C propagates to main()."""
    sink = create_sink(config, ui)
    try:
        pollers = build_pollers(config, sink, connect=create_connection)
        scheduler = PollScheduler(pollers, config.poller.interval)

        ui.print_banner(config.summary())
        scheduler.run_forever()
    finally:
        sink.close()
    return EXIT_OK


def run_once(config: Config, ui: ConsoleUI) -> int:
    """
    Run a single cycle per source.

    Counters only produce deltas from the second observation, so a single
    cycle submits gauges only.
    """
    sink = create_sink(config, ui)
    exit_code = EXIT_OK

    try:
        for source_poller in build_pollers(config, sink, connect=create_connection):
            ui.print_header(f"Source: {source_poller.name}")
            try:
                result = source_poller.run_cycle()
            except Exception as e:
                logger.exception("Cycle failed for %s", source_poller.name)
                ui.print_error(f"{source_poller.name}: {e}")
                exit_code = EXIT_FAILURE
                continue

            if result is not None:
                ui.print_cycle(result)
    finally:
        sink.close()

    return exit_code


def run_inspect(config: Config, ui: ConsoleUI, report: str, source_name: Optional[str]) -> int:
    """Print one diagnostic report."""
    sources = config.sources
    if source_name:
        sources = [s for s in sources if s.name == source_name]
        if not sources:
            ui.print_error(f"Unknown source: {source_name}")
            return EXIT_CONFIG

    source = sources[0]
    conn = create_connection(source.url)
    try:
        rows = DiagnosticQueries(conn).run(report)
    finally:
        conn.close()

    ui.print_report(f"{report} ({source.name})", rows)
    return EXIT_OK


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    args = parse_args(argv)
    ui = ConsoleUI(quiet=args.quiet)

    if args.command == 'init-config':
        try:
            path = create_example_config(args.path)
        except FileExistsError as e:
            ui.print_error(str(e))
            sys.exit(EXIT_CONFIG)
        ui.print(f"[green]Example config written to {path}[/]")
        sys.exit(EXIT_OK)

    try:
        config = load_config(args)
    except (ValueError, FileNotFoundError) as e:  # ConfigError, TOMLDecodeError
        ui.print_error(str(e))
        sys.exit(EXIT_CONFIG)

    # Diagnostics never submit, so credentials are only needed for polling
    if args.command == 'inspect':
        config.dry_run = True

    errors = config.validate()
    if errors:
        ui.print_errors(errors)
        sys.exit(EXIT_CONFIG)

    setup_logging(config.logging.level)

    try:
        if args.command == 'once':
            exit_code = run_once(config, ui)
        elif args.command == 'inspect':
            exit_code = run_inspect(config, ui, args.report, args.source)
        else:
            exit_code = run_continuous(config, ui)
    except KeyboardInterrupt:
        ui.print("\nInterrupted by user")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as e:
        logger.exception("Unexpected error")
        ui.print_error(str(e))
        sys.exit(EXIT_FAILURE)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
