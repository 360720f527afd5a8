"""Main entry point for the cleanup advisor."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import fields, replace
from datetime import UTC, datetime
from pathlib import Path

import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .collector import MetadataCollector
from .config import VALID_LOG_LEVELS, WEIGHT_MAX, WEIGHT_MIN, AdvisorConfig, WeightConfig
from .errors import EmptyResultWarning, FatalConfigError
from .grouper import build_stem_groups
from .report import ExportTargets, ReportSummary, export_all, rank, render_table, to_row
from .scoring import ScoringEngine

LOGGER_NAME = "cleanup_advisor"
COMMANDS = ("scan", "config")

EXIT_OK = 0
EXIT_EXPORT_FAILED = 1
EXIT_FATAL = 2


def _weight(value: str) -> int:
    try:
        weight = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid weight: {value!r}") from None
    if not WEIGHT_MIN <= weight <= WEIGHT_MAX:
        raise argparse.ArgumentTypeError(f"weight must be between {WEIGHT_MIN} and {WEIGHT_MAX}: {weight}")
    return weight


def _non_negative(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from None
    if number < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {number}")
    return number


def _positive(value: str) -> int:
    number = _non_negative(value)
    if number == 0:
        raise argparse.ArgumentTypeError("must be at least 1")
    return number


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="cleanup-advisor",
        description="Score files by how safe they look to delete. Nothing is ever deleted.",
    )

    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to configuration file",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Scan command (default)
    scan_parser = subparsers.add_parser("scan", help="Scan a directory and report safety scores")
    scan_parser.add_argument("root", nargs="?", type=Path, default=None, help="Directory to scan (default: .)")
    scan_parser.add_argument(
        "--recurse",
        "-r",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Include subdirectories (default: off, or the config file value)",
    )
    scan_parser.add_argument("--top", "-n", type=_positive, default=None, help="Rows to keep (default: 200)")
    scan_parser.add_argument(
        "--min-size",
        type=_non_negative,
        default=None,
        help="Exclude files smaller than this many bytes (default: 0)",
    )

    weights = scan_parser.add_argument_group("weights", "Scoring weights, each 0-100")
    for f in fields(WeightConfig):
        weights.add_argument(
            f"--w-{f.name.replace('_', '-')}",
            dest=f"w_{f.name}",
            type=_weight,
            default=None,
            metavar="N",
            help=f"default: {f.default}",
        )

    scan_parser.add_argument("--csv", type=Path, default=None, help="Write results to a CSV file")
    scan_parser.add_argument("--json", type=Path, default=None, help="Write results to a JSON file")
    scan_parser.add_argument("--markdown", "--md", type=Path, default=None, help="Write a Markdown report")
    scan_parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=VALID_LOG_LEVELS,
        default=None,
        help="Console log level",
    )

    # Config command
    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_parser.add_argument(
        "--init",
        action="store_true",
        help="Create default configuration file",
    )
    config_parser.add_argument(
        "--show",
        action="store_true",
        help="Show current configuration",
    )

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments, defaulting to the scan command.

    Args:
        argv: Arguments without the program name. Uses sys.argv if None.

    Returns:
        Parsed arguments.

    """
    argv = sys.argv[1:] if argv is None else list(argv)

    # Skip global options, then insert "scan" unless a command is given
    i = 0
    while i < len(argv):
        if argv[i] in ("-c", "--config"):
            i += 2
        elif argv[i].startswith("--config="):
            i += 1
        else:
            break
    if i >= len(argv) or argv[i] not in (*COMMANDS, "-h", "--help"):
        argv.insert(i, "scan")

    return build_parser().parse_args(argv)


def apply_overrides(config: AdvisorConfig, args: argparse.Namespace) -> AdvisorConfig:
    """Overlay command line values onto a loaded configuration."""
    if args.root is not None:
        config.root = args.root
    if args.recurse is not None:
        config.recurse = args.recurse
    if args.top is not None:
        config.top = args.top
    if args.min_size is not None:
        config.min_size = args.min_size
    if args.csv is not None:
        config.csv_path = args.csv
    if args.json is not None:
        config.json_path = args.json
    if args.markdown is not None:
        config.markdown_path = args.markdown
    if args.log_level is not None:
        config.log_level = args.log_level

    overrides = {
        f.name: getattr(args, f"w_{f.name}")
        for f in fields(WeightConfig)
        if getattr(args, f"w_{f.name}") is not None
    }
    if overrides:
        config.weights = replace(config.weights, **overrides)

    return config


def setup_logging(config: AdvisorConfig) -> logging.Logger:
    """Set up logging for a run.

    Returns:
        Configured package logger.

    Raises:
        ValueError: If the configured log level is unknown.

    """
    if config.log_level not in VALID_LOG_LEVELS:
        raise ValueError(f"Invalid log_level: {config.log_level!r}")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # Clear existing handlers to avoid duplicates on repeated runs
    if logger.handlers:
        logger.handlers.clear()

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
    )
    console_handler.setLevel(getattr(logging, config.log_level))
    logger.addHandler(console_handler)

    if config.log_file is not None:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


def cmd_scan(config: AdvisorConfig, console: Console | None = None) -> int:
    """Execute scan command.

    Args:
        config: Effective configuration.
        console: Console for the results table.

    Returns:
        Exit code.

    """
    console = console or Console()
    logger = logging.getLogger(LOGGER_NAME)
    now = datetime.now(UTC)

    collector = MetadataCollector(recurse=config.recurse, min_size=config.min_size)
    try:
        records = collector.collect(config.root)
    except FatalConfigError as e:
        logger.error("%s", e)
        console.print(f"[red]{e}[/red]")
        return EXIT_FATAL

    if not records:
        warning = EmptyResultWarning(f"No files matched under {config.root}")
        logger.warning("%s", warning)
        console.print(f"[yellow]{warning}[/yellow]")
        return EXIT_OK

    groups = build_stem_groups(records)
    engine = ScoringEngine(config.weights, config.rules, groups, now)
    top = rank(engine.score_all(records), config.top)
    rows = [to_row(item) for item in top]

    render_table(rows, len(records), console)

    summary = ReportSummary(
        root=config.root.resolve(),
        recurse=config.recurse,
        total=len(records),
        shown=len(rows),
        generated=now,
    )
    targets = ExportTargets(config.csv_path, config.json_path, config.markdown_path)
    written, errors = export_all(rows, targets, summary)

    for path in written:
        console.print(f"[green]Wrote {path}[/green]")
    for error in errors:
        console.print(f"[red]{error}[/red]")

    return EXIT_EXPORT_FAILED if errors else EXIT_OK


def cmd_config(config: AdvisorConfig, args: argparse.Namespace, console: Console | None = None) -> int:
    """Execute config command.

    Args:
        config: Cleanup configuration.
        args: Parsed arguments.
        console: Console for output.

    Returns:
        Exit code.

    """
    console = console or Console()
    config_path = args.config or AdvisorConfig.get_config_path()

    if args.init:
        if config_path.exists():
            console.print(f"[yellow]Config already exists: {config_path}[/yellow]")
            return 1
        config.save(config_path)
        console.print(f"[green]Created config: {config_path}[/green]")
        return 0

    if args.show:
        table = Table(title="Current Configuration")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Root", str(config.root))
        table.add_row("Recurse", str(config.recurse))
        table.add_row("Top", str(config.top))
        table.add_row("Minimum size", f"{config.min_size} B")
        for name, value in config.weights.to_dict().items():
            table.add_row(f"Weight {name}", str(value))
        table.add_row("Safe extensions", " ".join(sorted(config.rules.safe_extensions)))
        table.add_row("Risky extensions", " ".join(sorted(config.rules.risky_extensions)))
        table.add_row("Temp directory tokens", " ".join(sorted(config.rules.temp_dir_tokens)))
        table.add_row("Log file", str(config.log_file) if config.log_file else "-")
        table.add_row("Log level", config.log_level)

        console.print(table)
        return 0

    console.print("[yellow]Use --init or --show[/yellow]")
    return 1


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code.

    """
    args = parse_args(argv)
    console = Console()

    try:
        config = AdvisorConfig.load(args.config)
        if args.command == "scan":
            config = apply_overrides(config, args)
        setup_logging(config)
    except (ValueError, OSError, yaml.YAMLError) as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        return EXIT_FATAL

    if args.command == "scan":
        return cmd_scan(config, console)
    elif args.command == "config":
        return cmd_config(config, args, console)
    else:
        console.print(f"Unknown command: {args.command}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
