"""Models package initialization."""

from .financial_data import (
    Cell,
    ConsolidationKind,
    Context,
    DimensionMember,
    ExtractionMode,
    ExtractionResult,
    Fact,
    FactBinding,
    FiscalRole,
    HierarchicalItem,
    NormalizedValue,
    PeriodColumns,
    PeriodColumnSource,
    PeriodKind,
    StatementHierarchy,
    StatementType,
    TableCandidate,
    TableStatistics,
    Unit,
    UnitKind,
)

__all__ = [
    "Cell",
    "ConsolidationKind",
    "Context",
    "DimensionMember",
    "ExtractionMode",
    "ExtractionResult",
    "Fact",
    "FactBinding",
    "FiscalRole",
    "HierarchicalItem",
    "NormalizedValue",
    "PeriodColumns",
    "PeriodColumnSource",
    "PeriodKind",
    "StatementHierarchy",
    "StatementType",
    "TableCandidate",
    "TableStatistics",
    "Unit",
    "UnitKind",
]
