"""Error types raised by the advisor."""

from __future__ import annotations

from pathlib import Path


class FatalConfigError(Exception):
    """Configuration problem that aborts the run before any scanning."""


class PathNotFoundError(FatalConfigError):
    """Scan root does not exist or is not a directory."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Path not found: {path}")
        self.path = path


class EmptyResultWarning(UserWarning):
    """No files matched the scan filters."""


class ExportWriteError(Exception):
    """An export target could not be written."""

    def __init__(self, fmt: str, path: Path, reason: str) -> None:
        super().__init__(f"{fmt} export to {path} failed: {reason}")
        self.fmt = fmt
        self.path = path
        self.reason = reason
