"""层级构建器

按报表类型的标准科目表为每一行确定缩进层级和合计行标记，
再把行组装成以报表大类为根的树。只做标注，不重排也不删除任何行。
"""

import re
import unicodedata
from collections import Counter
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from edinet_extractor.core.logging import get_logger
from edinet_extractor.models.financial_data import (
    Cell,
    HierarchicalItem,
    StatementHierarchy,
    TableCandidate,
)
from edinet_extractor.parsers.document_scope import DocumentScope
from edinet_extractor.parsers.rules import first_match
from edinet_extractor.parsers.tables.statement_taxonomy import STATEMENT_ITEMS, UNIT_HINT_RULES

logger = get_logger(__name__)

FOOTNOTE_PATTERN = re.compile(r"(※|\*)\s*\d*|[(（]注\s*\d*[)）]")
TOTAL_MARKERS = ("合計", "総計", "総額")
RATE_QUANTUM = Decimal("0.01")


def normalize_label(label: str) -> str:
    """比较用的科目名：NFKC、去空白、去脚注标记"""
    text = unicodedata.normalize("NFKC", label or "")
    text = FOOTNOTE_PATTERN.sub("", text)
    return "".join(text.split())


def is_total_label(label: str) -> bool:
    if not label:
        return False
    text = normalize_label(label)
    if any(marker in text for marker in TOTAL_MARKERS) or text.endswith("計"):
        return True
    return "total" in text.lower()


def assign_levels(
    labels: Sequence[str],
    detected: Sequence[int],
    items: Dict[str, List[str]],
) -> List[int]:
    """单次自上而下扫描确定层级

    标准科目行固定为0级，其下级科目至少为1级，其余行保留原文缩进。

    Args:
        labels: 每行的科目名
        detected: 原文中识别到的缩进层级
        items: 标准科目 -> 下级科目

    Returns:
        每行的层级，长度与输入相同
    """
    normalized_items = {
        normalize_label(parent): {normalize_label(child) for child in children}
        for parent, children in items.items()
    }
    all_children = set().union(*normalized_items.values()) if normalized_items else set()

    names = [normalize_label(label) for label in labels]
    levels = list(detected)
    i = 0
    while i < len(names):
        name = names[i]
        children = normalized_items.get(name)
        if children is None:
            if name in all_children:
                levels[i] = max(levels[i], 1)
            i += 1
            continue

        levels[i] = 0
        if not children:
            i += 1
            continue

        j = i + 1
        while j < len(names) and names[j] not in normalized_items:
            if names[j] in children:
                levels[j] = max(levels[j], 1)
            j += 1
        i = j
    return levels


@dataclass
class _Node:
    """构建期间使用的可变节点"""
    values: Dict
    level: int
    children: List["_Node"] = field(default_factory=list)


class HierarchyBuilder:
    """层级构建器"""

    def __init__(self, scope: Optional[DocumentScope] = None):
        self.scope = scope

    def build(self, candidate: TableCandidate, context_texts: Sequence[str] = ()) -> StatementHierarchy:
        """从选中的表格构建层级化报表

        Args:
            candidate: 已完成映射、期间列识别和数值规范化的表格
            context_texts: 表格前的短文本，用于识别金额单位

        Returns:
            层级化的报表
        """
        items_map = STATEMENT_ITEMS.get(candidate.table_type, {})
        labels = [row[0].text if row else "" for row in candidate.rows]
        detected = [row[0].indent if row else 0 for row in candidate.rows]
        levels = assign_levels(labels, detected, items_map)

        nodes = [
            _Node(values=self._row_values(candidate, row, label), level=level)
            for row, label, level in zip(candidate.rows, labels, levels)
        ]
        roots = self._nest(nodes)

        columns = candidate.period_columns
        hierarchy = StatementHierarchy(
            statement_type=candidate.table_type,
            title=candidate.title,
            unit_label=self._unit_label(candidate, context_texts),
            previous_label=self._header_label(candidate, columns.previous),
            current_label=self._header_label(candidate, columns.current),
            items=tuple(self._freeze(root) for root in roots),
        )
        logger.info(
            "hierarchy.built",
            table_id=candidate.table_id,
            statement_type=candidate.table_type.value,
            rows=len(nodes),
            roots=len(roots),
        )
        return hierarchy

    def _row_values(self, candidate: TableCandidate, row: Tuple[Cell, ...], label: str) -> Dict:
        columns = candidate.period_columns
        previous_cell = self._cell_at(row, columns.previous)
        current_cell = self._cell_at(row, columns.current)
        previous = self._number(previous_cell)
        current = self._number(current_cell)

        change = None
        change_rate = None
        if previous is not None and current is not None:
            change = current - previous
            if previous != 0:
                change_rate = (change / abs(previous) * 100).quantize(RATE_QUANTUM, rounding=ROUND_HALF_UP)
        if change is None:
            change = self._number(self._cell_at(row, columns.change))
        if change_rate is None:
            change_rate = self._number(self._cell_at(row, columns.change_rate))

        source_fact = next(
            (cell.fact for cell in (current_cell, previous_cell) if cell is not None and cell.fact is not None),
            None,
        )
        tag = None
        if self.scope is None or self.scope.options.include_xbrl_tags:
            tag = next((cell.fact.tag for cell in row if cell.fact is not None and cell.fact.tag), None)

        return {
            "item_name": label,
            "xbrl_tag": tag,
            "previous_period": previous,
            "current_period": current,
            "change": change,
            "change_rate": change_rate,
            "is_total": is_total_label(label),
            "previous_context_ref": previous_cell.fact.context_ref if previous_cell and previous_cell.fact else None,
            "current_context_ref": current_cell.fact.context_ref if current_cell and current_cell.fact else None,
            "unit_ref": source_fact.unit_ref if source_fact else None,
            "unit_label": self.scope.unit_label(source_fact) if self.scope and source_fact else "",
        }

    @staticmethod
    def _cell_at(row: Tuple[Cell, ...], index: Optional[int]) -> Optional[Cell]:
        if index is None or index >= len(row):
            return None
        return row[index]

    @staticmethod
    def _number(cell: Optional[Cell]) -> Optional[Decimal]:
        if cell is None or cell.value is None:
            return None
        return cell.value.number

    def _nest(self, nodes: List[_Node]) -> List[_Node]:
        """按层级用栈组装树"""
        roots: List[_Node] = []
        stack: List[_Node] = []
        for node in nodes:
            while stack and stack[-1].level >= node.level:
                stack.pop()
            if stack:
                stack[-1].children.append(node)
            else:
                roots.append(node)
            stack.append(node)
        return roots

    def _freeze(self, root: _Node) -> HierarchicalItem:
        """自底向上生成不可变节点（显式栈，不递归）"""
        order: List[_Node] = []
        stack = [root]
        while stack:
            node = stack.pop()
            order.append(node)
            stack.extend(node.children)

        frozen: Dict[int, HierarchicalItem] = {}
        for node in reversed(order):
            frozen[id(node)] = HierarchicalItem(
                level=node.level,
                children=tuple(frozen[id(child)] for child in node.children),
                **node.values,
            )
        return frozen[id(root)]

    def _unit_label(self, candidate: TableCandidate, context_texts: Sequence[str]) -> str:
        texts = list(context_texts)
        if candidate.title:
            texts.append(candidate.title)
        texts.extend(cell.text for cell in candidate.header)
        hint = first_match(UNIT_HINT_RULES, texts, "")
        if hint:
            return hint

        if self.scope is None:
            return ""
        labels = Counter(
            self.scope.unit_label(fact) for fact in candidate.bound_facts if self.scope.unit_label(fact)
        )
        return labels.most_common(1)[0][0] if labels else ""

    @staticmethod
    def _header_label(candidate: TableCandidate, index: Optional[int]) -> Optional[str]:
        if index is None or index >= len(candidate.header):
            return None
        return candidate.header[index].text or None
