from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

__all__ = [
    "ReportError",
    "ConfigError",
    "FileReadError",
    "HeaderMismatchError",
    "ReportWriteError",
    "RunInProgressError",
    "RowParseWarning",
]


class ReportError(Exception):
    """Base error for report generation."""


class ConfigError(ReportError, ValueError):
    """Raised when the run configuration is invalid or incomplete."""


class FileReadError(ReportError):
    """Raised when an input table cannot be opened or parsed."""

    def __init__(self, path: Path | str, message: str) -> None:
        self.path = Path(path)
        self.reason = message
        super().__init__(f"{self.path.name}: {message}")


class HeaderMismatchError(FileReadError):
    """Raised when an input table's header differs from the first input's header."""


class ReportWriteError(ReportError, OSError):
    """Raised when the output document cannot be written."""


class RunInProgressError(ReportError):
    """Raised when a report run is requested while another run owns the run log."""


@dataclass(frozen=True)
class RowParseWarning:
    """A malformed row that was dropped while reading."""

    path: Path
    row_number: int
    missing_columns: Tuple[str, ...]

    @property
    def message(self) -> str:
        columns = ", ".join(self.missing_columns)
        return f"{self.path.name} row {self.row_number}: missing required column(s) {columns}; row skipped"
