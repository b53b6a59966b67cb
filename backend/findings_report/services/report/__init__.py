from .errors import (
    ConfigError,
    FileReadError,
    HeaderMismatchError,
    ReportError,
    ReportWriteError,
    RowParseWarning,
    RunInProgressError,
)
from .models import ReportConfig, ReportOutcome, Severity
from .service import PreviewResult, ReportService

__all__ = [
    "ConfigError",
    "FileReadError",
    "HeaderMismatchError",
    "PreviewResult",
    "ReportConfig",
    "ReportError",
    "ReportOutcome",
    "ReportService",
    "ReportWriteError",
    "RowParseWarning",
    "RunInProgressError",
    "Severity",
]
