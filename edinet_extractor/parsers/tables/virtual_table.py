"""虚拟表格构建器

文档中没有可用的表格但存在事实时，直接由事实合成一张两期对照表。
"""

from dataclasses import replace
from typing import Dict, List, Optional

from edinet_extractor.core.logging import get_logger
from edinet_extractor.models.financial_data import (
    Cell,
    ExtractionMode,
    Fact,
    FiscalRole,
    PeriodColumns,
    PeriodColumnSource,
    StatementType,
    TableCandidate,
)
from edinet_extractor.parsers.document_scope import DocumentScope
from edinet_extractor.parsers.tables.cell_mapper import CellMapper
from edinet_extractor.parsers.tables.statement_taxonomy import CANONICAL_TITLES
from edinet_extractor.parsers.tables.table_classifier import type_from_tag_vocabulary, type_from_tags

logger = get_logger(__name__)

VIRTUAL_TABLE_ID = "virtual-table"
VIRTUAL_TABLE_TITLE = "XBRLデータから生成された財務情報"
VIRTUAL_HEADERS = ("項目", "前期", "当期")


class VirtualTableBuilder:
    """虚拟表格构建器"""

    def __init__(self, scope: DocumentScope):
        self.scope = scope

    def build(self, facts: Optional[List[Fact]] = None) -> Optional[TableCandidate]:
        """按标签分组事实，每个标签一行

        Args:
            facts: 参与合成的事实，缺省使用作用域中的全部事实

        Returns:
            合成的表格；没有带标签的事实时返回None
        """
        facts = self.scope.facts if facts is None else facts
        grouped: Dict[str, List[Fact]] = {}
        for fact in facts:
            if fact.tag:
                grouped.setdefault(fact.tag, []).append(fact)
        if not grouped:
            return None

        rows = []
        for tag, tag_facts in grouped.items():
            previous = self._first_with_role(tag_facts, FiscalRole.PREVIOUS)
            current = self._first_with_role(tag_facts, FiscalRole.CURRENT)
            rows.append((
                Cell(text=tag.split(":")[-1], fact=None),
                self._value_cell(previous),
                self._value_cell(current),
            ))

        table_type = type_from_tags(grouped)
        if table_type == StatementType.UNKNOWN:
            table_type = type_from_tag_vocabulary(grouped)
        header = tuple(Cell(text=label, is_header=True) for label in VIRTUAL_HEADERS)
        candidate = TableCandidate(
            table_id=VIRTUAL_TABLE_ID,
            index=-1,
            title=VIRTUAL_TABLE_TITLE,
            table_type=table_type,
            header_rows=(header,),
            header=header,
            rows=tuple(rows),
            period_columns=PeriodColumns(previous=1, current=2, source=PeriodColumnSource.CONTEXT),
            mode=ExtractionMode.VIRTUAL,
        )
        candidate = self._with_statistics(candidate)
        logger.info(
            "virtual_table.built",
            rows=len(rows),
            statement_type=table_type.value,
            canonical_title=CANONICAL_TITLES.get(table_type),
        )
        return candidate

    def _first_with_role(self, facts: List[Fact], role: FiscalRole) -> Optional[Fact]:
        """同一角色有多个事实时取第一个"""
        for fact in facts:
            if self.scope.role_of(fact) == role:
                return fact
        return None

    def _value_cell(self, fact: Optional[Fact]) -> Cell:
        if fact is None:
            return Cell()
        return Cell(text=fact.raw_text, fact=fact)

    def _with_statistics(self, candidate: TableCandidate) -> TableCandidate:
        return replace(candidate, statistics=CellMapper(self.scope).statistics(candidate))
