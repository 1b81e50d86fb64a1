"""Core package initialization."""

from .config import settings, get_settings
from .logging import configure_logging, get_logger, logger
from .error_handling import (
    DiagnosticKind,
    DiagnosticsCollector,
    DocumentParseError,
    ErrorSeverity,
    ExtractionDiagnostics,
    ExtractionError,
)

__all__ = [
    "settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "logger",
    "DiagnosticKind",
    "DiagnosticsCollector",
    "DocumentParseError",
    "ErrorSeverity",
    "ExtractionDiagnostics",
    "ExtractionError",
]
