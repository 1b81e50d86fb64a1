"""
EDINET 财务报表提取器
Extract financial statements from Japanese (inline) XBRL disclosure documents.
"""

from edinet_extractor.core.error_handling import DocumentParseError, ExtractionError
from edinet_extractor.models.financial_data import ExtractionMode, ExtractionResult, StatementType
from edinet_extractor.parsers import ExtractionOrchestrator, extract, load_document

__version__ = "0.1.0"

__all__ = [
    "DocumentParseError",
    "ExtractionError",
    "ExtractionMode",
    "ExtractionResult",
    "StatementType",
    "ExtractionOrchestrator",
    "extract",
    "load_document",
]
