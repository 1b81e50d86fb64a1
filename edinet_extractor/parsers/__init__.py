"""Parsers package initialization."""

from .document_loader import load_document
from .document_scope import DocumentScope
from .extraction_orchestrator import ExtractionOrchestrator, extract
from .format_detector import DocumentFormat, FormatDetector

__all__ = [
    "load_document",
    "DocumentScope",
    "ExtractionOrchestrator",
    "extract",
    "DocumentFormat",
    "FormatDetector",
]
