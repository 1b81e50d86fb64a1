"""
财务报表数据模型
Financial Statement Data Models

提取管线各阶段产出的不可变数据结构。
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from lxml import etree

from edinet_extractor.core.error_handling import ExtractionDiagnostics


class PeriodKind(Enum):
    """期间类型"""
    INSTANT = "instant"
    DURATION = "duration"
    UNKNOWN = "unknown"


class FiscalRole(Enum):
    """会计期间角色"""
    CURRENT = "current"
    PREVIOUS = "previous"
    UNKNOWN = "unknown"


class ConsolidationKind(Enum):
    """合并/单体"""
    CONSOLIDATED = "consolidated"
    NON_CONSOLIDATED = "non_consolidated"
    UNKNOWN = "unknown"


class UnitKind(Enum):
    """单位类型"""
    SIMPLE = "simple"
    FRACTION = "fraction"


class FactBinding(Enum):
    """事实的匹配方式（按优先级排列）"""
    INLINE = "inline"          # ix:nonFraction / ix:nonNumeric / ix:fraction
    NAMED = "named"            # name 属性带已知命名空间前缀
    ATTRIBUTE = "attribute"    # 元素自身带 contextRef / unitRef
    INHERITED = "inherited"    # 从祖先或兄弟元素继承的上下文，置信度较低


class StatementType(Enum):
    """财务报表类型"""
    BALANCE_SHEET = "balance_sheet"
    INCOME_STATEMENT = "income_statement"
    CASH_FLOW = "cash_flow"
    SHAREHOLDER = "shareholder"
    UNKNOWN = "unknown"


class ExtractionMode(Enum):
    """提取路径"""
    MAPPED = "mapped"
    FLAT = "flat"
    VIRTUAL = "virtual"
    EMPTY = "empty"


class PeriodColumnSource(Enum):
    """期间列的判定依据"""
    MARKER = "marker"
    CONTEXT = "context"
    DATE = "date"
    POSITIONAL = "positional"
    NONE = "none"


@dataclass(frozen=True)
class DimensionMember:
    """维度成员（显式或类型化）"""
    dimension: str
    value: str
    typed: bool = False


@dataclass(frozen=True)
class Context:
    """XBRL上下文"""
    id: str
    period_kind: PeriodKind = PeriodKind.UNKNOWN
    instant: Optional[date] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    entity_identifier: Optional[str] = None
    entity_scheme: Optional[str] = None
    dimensions: Tuple[DimensionMember, ...] = ()
    fiscal_role: FiscalRole = FiscalRole.UNKNOWN
    consolidation_kind: ConsolidationKind = ConsolidationKind.UNKNOWN
    inferred: bool = False

    @property
    def period_end(self) -> Optional[date]:
        """期末日：时点型取 instant，期间型取 endDate"""
        return self.instant or self.end_date

    def dimension_value(self, dimension: str) -> Optional[str]:
        for member in self.dimensions:
            if member.dimension == dimension or member.dimension.split(":")[-1] == dimension:
                return member.value
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "period_kind": self.period_kind.value,
            "instant": self.instant.isoformat() if self.instant else None,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "entity_identifier": self.entity_identifier,
            "entity_scheme": self.entity_scheme,
            "dimensions": [
                {"dimension": m.dimension, "value": m.value, "typed": m.typed} for m in self.dimensions
            ],
            "fiscal_role": self.fiscal_role.value,
            "consolidation_kind": self.consolidation_kind.value,
            "inferred": self.inferred,
        }


@dataclass(frozen=True)
class Unit:
    """XBRL单位"""
    id: str
    measure: str
    kind: UnitKind = UnitKind.SIMPLE
    numerator: Optional[str] = None
    denominator: Optional[str] = None
    label: str = ""
    inferred: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "measure": self.measure,
            "kind": self.kind.value,
            "numerator": self.numerator,
            "denominator": self.denominator,
            "label": self.label,
            "inferred": self.inferred,
        }


@dataclass(frozen=True)
class Fact:
    """XBRL事实"""
    tag: Optional[str]
    context_ref: Optional[str] = None
    unit_ref: Optional[str] = None
    decimals: Optional[str] = None
    scale: Optional[int] = None
    format: Optional[str] = None
    sign: Optional[str] = None
    raw_text: str = ""
    fact_id: Optional[str] = None
    binding: FactBinding = FactBinding.ATTRIBUTE

    @property
    def prefix(self) -> Optional[str]:
        if self.tag and ":" in self.tag:
            return self.tag.split(":", 1)[0]
        return None

    @property
    def local_name(self) -> Optional[str]:
        if not self.tag:
            return None
        return self.tag.split(":")[-1]

    @property
    def is_low_confidence(self) -> bool:
        return self.binding == FactBinding.INHERITED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tag": self.tag,
            "context_ref": self.context_ref,
            "unit_ref": self.unit_ref,
            "decimals": self.decimals,
            "scale": self.scale,
            "format": self.format,
            "sign": self.sign,
            "raw_text": self.raw_text,
            "fact_id": self.fact_id,
            "binding": self.binding.value,
        }


@dataclass(frozen=True)
class NormalizedValue:
    """规范化后的数值"""
    raw: str
    number: Optional[Decimal]
    text: str
    display: str
    unit_label: str = ""

    @property
    def is_numeric(self) -> bool:
        return self.number is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "raw": self.raw,
            "number": str(self.number) if self.number is not None else None,
            "text": self.text,
            "display": self.display,
            "unit_label": self.unit_label,
        }


@dataclass(frozen=True)
class Cell:
    """表格单元格（colspan展开后）"""
    text: str = ""
    fact: Optional[Fact] = None
    value: Optional[NormalizedValue] = None
    is_header: bool = False
    is_placeholder: bool = False
    colspan: int = 1
    # 原文中的缩进层级（前导空格或 padding-left / text-indent）
    indent: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "fact": self.fact.to_dict() if self.fact else None,
            "value": self.value.to_dict() if self.value else None,
            "is_header": self.is_header,
            "is_placeholder": self.is_placeholder,
            "colspan": self.colspan,
            "indent": self.indent,
        }


@dataclass(frozen=True)
class PeriodColumns:
    """期间列的位置"""
    previous: Optional[int] = None
    current: Optional[int] = None
    change: Optional[int] = None
    change_rate: Optional[int] = None
    source: PeriodColumnSource = PeriodColumnSource.NONE

    @property
    def is_low_confidence(self) -> bool:
        return self.source == PeriodColumnSource.POSITIONAL

    @property
    def found(self) -> bool:
        return self.previous is not None or self.current is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "previous": self.previous,
            "current": self.current,
            "change": self.change,
            "change_rate": self.change_rate,
            "source": self.source.value,
        }


@dataclass(frozen=True)
class TableStatistics:
    """单个表格的统计信息"""
    row_count: int = 0
    column_count: int = 0
    empty_cells: int = 0
    total_cells: int = 0
    xbrl_tag_count: int = 0
    xbrl_tags: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row_count": self.row_count,
            "column_count": self.column_count,
            "empty_cells": self.empty_cells,
            "total_cells": self.total_cells,
            "xbrl_tag_count": self.xbrl_tag_count,
            "xbrl_tags": list(self.xbrl_tags),
        }


@dataclass(frozen=True)
class TableCandidate:
    """候选财务表格"""
    table_id: str
    index: int
    element: Optional[etree._Element] = field(default=None, compare=False, repr=False)
    title: Optional[str] = None
    score: int = 0
    table_type: StatementType = StatementType.UNKNOWN
    header_rows: Tuple[Tuple[Cell, ...], ...] = ()
    header: Tuple[Cell, ...] = ()
    rows: Tuple[Tuple[Cell, ...], ...] = ()
    period_columns: PeriodColumns = field(default_factory=PeriodColumns)
    statistics: TableStatistics = field(default_factory=TableStatistics)
    mode: ExtractionMode = ExtractionMode.MAPPED

    @property
    def width(self) -> int:
        return len(self.header)

    @property
    def bound_facts(self) -> List[Fact]:
        return [cell.fact for row in self.rows for cell in row if cell.fact is not None]

    @property
    def bound_fact_count(self) -> int:
        return len(self.bound_facts)

    @property
    def header_labels(self) -> List[str]:
        return [cell.text for cell in self.header]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table_id": self.table_id,
            "index": self.index,
            "title": self.title,
            "score": self.score,
            "table_type": self.table_type.value,
            "header": [cell.to_dict() for cell in self.header],
            "rows": [[cell.to_dict() for cell in row] for row in self.rows],
            "period_columns": self.period_columns.to_dict(),
            "statistics": self.statistics.to_dict(),
            "mode": self.mode.value,
        }


@dataclass(frozen=True)
class HierarchicalItem:
    """层级化的财务项目"""
    item_name: str
    level: int = 0
    xbrl_tag: Optional[str] = None
    previous_period: Optional[Decimal] = None
    current_period: Optional[Decimal] = None
    change: Optional[Decimal] = None
    change_rate: Optional[Decimal] = None
    is_total: bool = False
    previous_context_ref: Optional[str] = None
    current_context_ref: Optional[str] = None
    unit_ref: Optional[str] = None
    unit_label: str = ""
    children: Tuple["HierarchicalItem", ...] = ()

    def walk(self) -> Iterator["HierarchicalItem"]:
        """深度优先遍历自身及所有子项目"""
        stack = [self]
        while stack:
            item = stack.pop()
            yield item
            stack.extend(reversed(item.children))

    def to_dict(self) -> Dict[str, Any]:
        def _num(value: Optional[Decimal]) -> Optional[str]:
            return str(value) if value is not None else None

        return {
            "item_name": self.item_name,
            "level": self.level,
            "xbrl_tag": self.xbrl_tag,
            "previous_period": _num(self.previous_period),
            "current_period": _num(self.current_period),
            "change": _num(self.change),
            "change_rate": _num(self.change_rate),
            "is_total": self.is_total,
            "previous_context_ref": self.previous_context_ref,
            "current_context_ref": self.current_context_ref,
            "unit_ref": self.unit_ref,
            "unit_label": self.unit_label,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass(frozen=True)
class StatementHierarchy:
    """层级化的财务报表"""
    statement_type: StatementType
    title: Optional[str] = None
    unit_label: str = ""
    previous_label: Optional[str] = None
    current_label: Optional[str] = None
    items: Tuple[HierarchicalItem, ...] = ()

    def flatten(self) -> List[HierarchicalItem]:
        return [item for root in self.items for item in root.walk()]

    @property
    def item_count(self) -> int:
        return len(self.flatten())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "statement_type": self.statement_type.value,
            "title": self.title,
            "unit_label": self.unit_label,
            "previous_label": self.previous_label,
            "current_label": self.current_label,
            "items": [item.to_dict() for item in self.items],
        }


@dataclass(frozen=True)
class ExtractionResult:
    """提取结果"""
    tables: Tuple[TableCandidate, ...] = ()
    hierarchy: Optional[StatementHierarchy] = None
    selected_table_id: Optional[str] = None
    contexts: Mapping[str, Context] = field(default_factory=lambda: MappingProxyType({}))
    units: Mapping[str, Unit] = field(default_factory=lambda: MappingProxyType({}))
    facts: Tuple[Fact, ...] = ()
    mode: ExtractionMode = ExtractionMode.EMPTY
    diagnostics: ExtractionDiagnostics = field(default_factory=ExtractionDiagnostics)

    @property
    def selected_table(self) -> Optional[TableCandidate]:
        for table in self.tables:
            if table.table_id == self.selected_table_id:
                return table
        return None

    def context_for(self, fact: Fact) -> Optional[Context]:
        """返回事实所引用的上下文，未定义时返回None"""
        if not fact.context_ref:
            return None
        return self.contexts.get(fact.context_ref)

    def unit_for(self, fact: Fact) -> Optional[Unit]:
        if not fact.unit_ref:
            return None
        return self.units.get(fact.unit_ref)

    def to_dict(self) -> Dict[str, Any]:
        """转换为可JSON序列化的字典，供外部导出器使用"""
        return {
            "mode": self.mode.value,
            "selected_table_id": self.selected_table_id,
            "tables": [table.to_dict() for table in self.tables],
            "hierarchy": self.hierarchy.to_dict() if self.hierarchy else None,
            "contexts": {key: value.to_dict() for key, value in self.contexts.items()},
            "units": {key: value.to_dict() for key, value in self.units.items()},
            "facts": [fact.to_dict() for fact in self.facts],
            "diagnostics": self.diagnostics.to_dict(),
        }
