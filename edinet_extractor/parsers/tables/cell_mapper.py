"""单元格映射器

展开colspan、识别表头行，并把扫描到的事实绑定到单元格上。
"""

import re
from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

from lxml import etree

from edinet_extractor.core.logging import get_logger
from edinet_extractor.models.financial_data import Cell, ExtractionMode, Fact, TableCandidate, TableStatistics
from edinet_extractor.parsers.document_scope import DocumentScope
from edinet_extractor.parsers.tables.html_table import colspan_of, is_heading_cell, row_cells, table_rows
from edinet_extractor.parsers.xbrl.element_utils import get_attr, walk

logger = get_logger(__name__)

HEADER_ITEM_MARKERS = ("項目", "科目")
HEADER_PREVIOUS_MARKERS = ("前期", "前連結会計年度", "前事業年度")
HEADER_CURRENT_MARKERS = ("当期", "当連結会計年度", "当事業年度")

INDENT_STYLE_PATTERN = re.compile(r"(?:padding-left|text-indent|margin-left)\s*:\s*([\d.]+)\s*(em|px)?", re.I)
PIXELS_PER_LEVEL = 12


def normalize_cell_text(raw: str) -> str:
    """合并连续空白（包括全角空格）"""
    return " ".join(raw.split())


def leading_indent(raw: str) -> int:
    """前导空格换算的缩进层级：全角空格每个1级，半角空格每2个1级"""
    full_width = 0
    half_width = 0
    for ch in raw:
        if ch == "　":
            full_width += 1
        elif ch in (" ", "\xa0", "\t"):
            half_width += 1
        elif ch in ("\n", "\r"):
            continue
        else:
            break
    return full_width + half_width // 2


def style_indent(cell: etree._Element) -> int:
    """padding-left / text-indent / margin-left 换算的缩进层级"""
    for element, _depth in walk(cell, max_depth=3):
        style = get_attr(element, "style")
        if not style:
            continue
        match = INDENT_STYLE_PATTERN.search(style)
        if not match:
            continue
        try:
            amount = float(match.group(1))
        except ValueError:
            continue
        if (match.group(2) or "").lower() == "px":
            return int(amount // PIXELS_PER_LEVEL)
        return int(amount)
    return 0


def detect_header_row(rows: Sequence[etree._Element], texts: Sequence[str], max_rows: int = 5) -> int:
    """识别表头行

    Args:
        rows: 行元素
        texts: 每行的文本
        max_rows: 只在前几行中查找

    Returns:
        表头行的下标，默认为0
    """
    limit = min(len(rows), max_rows)
    for i in range(limit):
        if any(is_heading_cell(cell) for cell in row_cells(rows[i])):
            return i

    for i in range(limit):
        text = texts[i]
        if any(marker in text for marker in HEADER_ITEM_MARKERS):
            return i
        if any(m in text for m in HEADER_PREVIOUS_MARKERS) and any(m in text for m in HEADER_CURRENT_MARKERS):
            return i

    return 0


class CellMapper:
    """单元格映射器

    colspan为N的单元格展开为N个位置：第一个保留文本、事实和元数据，
    其余N-1个为空占位，保持列对齐。
    """

    def __init__(self, scope: DocumentScope):
        self.scope = scope
        self.options = scope.options

    def map(self, candidate: TableCandidate, bind_facts: bool = True) -> TableCandidate:
        """展开表格并绑定事实

        Args:
            candidate: 分类后的表格候选
            bind_facts: False时只输出文本（平面回退）

        Returns:
            填充了表头和数据矩阵的新候选
        """
        table = candidate.element
        if table is None:
            return candidate

        row_elements = table_rows(table)
        expanded = [self._expand_row(row, bind_facts) for row in row_elements]
        if not expanded:
            return replace(candidate, mode=ExtractionMode.MAPPED if bind_facts else ExtractionMode.FLAT)

        texts = [" ".join(cell.text for cell in row) for row in expanded]
        header_index = detect_header_row(row_elements, texts, self.options.header_scan_rows)

        header = tuple(replace(cell, is_header=True) for cell in expanded[header_index])
        data_rows = [row for i, row in enumerate(expanded) if i != header_index]
        if self.options.ignore_empty_rows:
            data_rows = [row for row in data_rows if any(not c.is_empty or c.fact for c in row)]

        width = max([len(header)] + [len(row) for row in data_rows])
        header = self._pad(header, width, is_header=True)
        rows = tuple(self._pad(tuple(row), width) for row in data_rows)

        mapped = replace(
            candidate,
            header_rows=(header,),
            header=header,
            rows=rows,
            mode=ExtractionMode.MAPPED if bind_facts else ExtractionMode.FLAT,
        )
        mapped = replace(mapped, statistics=self.statistics(mapped))
        logger.debug(
            "cells.mapped",
            table_id=candidate.table_id,
            header_row=header_index,
            rows=len(rows),
            width=width,
            bound_facts=mapped.bound_fact_count,
        )
        return mapped

    def _expand_row(self, row: etree._Element, bind_facts: bool) -> List[Cell]:
        cells: List[Cell] = []
        elements = row_cells(row)
        label = normalize_cell_text("".join(elements[0].itertext())) if elements else None

        for position, element in enumerate(elements):
            raw = "".join(element.itertext())
            span = colspan_of(element)
            fact: Optional[Fact] = None
            if bind_facts and self.scope.scanner is not None:
                fact = self.scope.scanner.locate(element, label=label if position > 0 else None)

            cells.append(
                Cell(
                    text=normalize_cell_text(raw),
                    fact=fact,
                    is_header=is_heading_cell(element),
                    colspan=span,
                    indent=max(leading_indent(raw), style_indent(element)),
                )
            )
            cells.extend(Cell(is_placeholder=True) for _ in range(span - 1))
        return cells

    def _pad(self, row: Tuple[Cell, ...], width: int, is_header: bool = False) -> Tuple[Cell, ...]:
        if len(row) >= width:
            return row
        filler = Cell(is_placeholder=True, is_header=is_header)
        return row + tuple(filler for _ in range(width - len(row)))

    def statistics(self, candidate: TableCandidate) -> TableStatistics:
        """统计行列数、空单元格和绑定的标签"""
        total = sum(len(row) for row in candidate.rows)
        empty = sum(1 for row in candidate.rows for cell in row if cell.is_empty)
        tags: List[str] = []
        for fact in candidate.bound_facts:
            if fact.tag and fact.tag not in tags:
                tags.append(fact.tag)
        return TableStatistics(
            row_count=len(candidate.rows),
            column_count=candidate.width,
            empty_cells=empty,
            total_cells=total,
            xbrl_tag_count=len(tags),
            xbrl_tags=tuple(tags),
        )
