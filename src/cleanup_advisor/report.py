"""Rank scored files and render them as a table and export files."""

from __future__ import annotations

import csv
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

from .errors import ExportWriteError
from .models import ScoreBreakdown

logger = logging.getLogger(__name__)

FIELDS: tuple[str, ...] = (
    "SafetyScore",
    "Factors",
    "FilePath",
    "Name",
    "Extension",
    "Length",
    "SizeHuman",
    "Created",
    "LastWrite",
    "LastAccess",
    "Attributes",
)

TABLE_FIELDS: tuple[str, ...] = ("SafetyScore", "SizeHuman", "LastWrite", "Extension", "FilePath", "Factors")

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Undecodable file name bytes arrive as lone surrogates; write them as \udcXX escapes
EXPORT_ERRORS = "backslashreplace"

_MARKDOWN_SPECIAL = str.maketrans({
    "&": "&amp;",
    "\\": "\\\\",
    "|": "\\|",
    "`": "\\`",
    "*": "\\*",
    "_": "\\_",
    "<": "&lt;",
    ">": "&gt;",
    "\n": " ",
    "\r": " ",
})


def format_size(size_bytes: int) -> str:
    """Format file size with binary prefixes.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Formatted string like "512 B" or "1.50 MB".

    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    size = float(size_bytes)
    for unit in ["KB", "MB", "GB"]:
        size /= 1024.0
        if size < 1024.0:
            return f"{size:.2f} {unit}"
    return f"{size / 1024.0:.2f} TB"


def format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone().strftime(TIMESTAMP_FORMAT)


def to_row(item: ScoreBreakdown) -> dict[str, Any]:
    """Export record for one scored file; shared by every output format."""
    record = item.record
    return {
        "SafetyScore": round(item.score, 2),
        "Factors": item.rationale,
        "FilePath": str(record.path),
        "Name": record.name,
        "Extension": record.extension,
        "Length": record.size,
        "SizeHuman": format_size(record.size),
        "Created": format_timestamp(record.created),
        "LastWrite": format_timestamp(record.modified),
        "LastAccess": format_timestamp(record.accessed),
        "Attributes": record.attributes.describe(),
    }


def rank(scored: list[ScoreBreakdown], top: int) -> list[ScoreBreakdown]:
    """Sort by score descending and keep the first top entries.

    sorted() is stable, so equal scores keep enumeration order.
    """
    return sorted(scored, key=lambda item: item.score, reverse=True)[:top]


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


def render_table(rows: list[dict[str, Any]], total: int, console: Console | None = None) -> Table:
    """Print the top rows as a rich table and return it."""
    console = console or Console()
    table = Table(title=f"Top {len(rows)} of {total} files by deletion safety")
    for name in TABLE_FIELDS:
        style = {"SafetyScore": "bold green", "FilePath": "cyan", "Factors": "dim"}.get(name)
        table.add_column(name, style=style, overflow="fold")

    for row in rows:
        table.add_row(*(_cell(row[name]) for name in TABLE_FIELDS))

    console.print(table)
    return table


def write_csv(rows: list[dict[str, Any]], path: Path) -> None:
    with path.open("w", encoding="utf-8", errors=EXPORT_ERRORS, newline="") as f:
        writer = csv.DictWriter(f, fieldnames=FIELDS)
        writer.writeheader()
        for row in rows:
            writer.writerow({name: _cell(row[name]) for name in FIELDS})


def write_json(rows: list[dict[str, Any]], path: Path) -> None:
    with path.open("w", encoding="utf-8", errors=EXPORT_ERRORS) as f:
        json.dump(rows, f, indent=2, ensure_ascii=False)
        f.write("\n")


def escape_markdown(value: str) -> str:
    """Escape characters that would break a Markdown table cell."""
    return value.translate(_MARKDOWN_SPECIAL)


@dataclass
class ReportSummary:
    """Header information for the Markdown report."""

    root: Path
    recurse: bool
    total: int
    shown: int
    generated: datetime


def render_markdown(rows: list[dict[str, Any]], summary: ReportSummary) -> str:
    lines = [
        "# Cleanup Advisor Report",
        "",
        f"- **Scan path:** {escape_markdown(str(summary.root))}",
        f"- **Recursive:** {'yes' if summary.recurse else 'no'}",
        f"- **Files considered:** {summary.total}",
        f"- **Files shown:** {summary.shown}",
        f"- **Generated:** {format_timestamp(summary.generated)}",
        "",
        "Scores are advisory only. Nothing has been deleted or moved.",
        "",
        "| " + " | ".join(FIELDS) + " |",
        "|" + "|".join("---" for _ in FIELDS) + "|",
    ]
    for row in rows:
        lines.append("| " + " | ".join(escape_markdown(_cell(row[name])) for name in FIELDS) + " |")
    return "\n".join(lines) + "\n"


def write_markdown(rows: list[dict[str, Any]], path: Path, summary: ReportSummary) -> None:
    path.write_text(render_markdown(rows, summary), encoding="utf-8", errors=EXPORT_ERRORS)


@dataclass
class ExportTargets:
    """Requested export paths; None skips that format."""

    csv_path: Path | None = None
    json_path: Path | None = None
    markdown_path: Path | None = None


def export_all(
    rows: list[dict[str, Any]],
    targets: ExportTargets,
    summary: ReportSummary,
) -> tuple[list[Path], list[ExportWriteError]]:
    """Write every requested export independently.

    A failure in one format is recorded and does not prevent the others.

    Returns:
        Written paths and per-format errors.

    """
    writers: list[tuple[str, Path | None, Callable[[Path], None]]] = [
        ("CSV", targets.csv_path, lambda p: write_csv(rows, p)),
        ("JSON", targets.json_path, lambda p: write_json(rows, p)),
        ("Markdown", targets.markdown_path, lambda p: write_markdown(rows, p, summary)),
    ]

    written: list[Path] = []
    errors: list[ExportWriteError] = []

    for fmt, path, writer in writers:
        if path is None:
            continue
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            writer(path)
        except (OSError, UnicodeError) as e:
            error = ExportWriteError(fmt, path, str(e))
            logger.error("%s", error)
            errors.append(error)
            continue
        logger.info("Wrote %s export: %s", fmt, path)
        written.append(path)

    return written, errors
