"""
表格分类器 - 为文档中的每个表格打分并判定报表类型
Table classifier - score each table and assign a statement type

打分项（可加性，因此在标题中加入关键词不会降低得分）：
- 前置标题命中关键词          +3
- 表格正文命中关键词          +2
- 包含已知分类标准的事实      +5
- 至少3行2列                  +1
- 第一列科目名命中报表词表    +2
"""

from typing import Iterable, List, Optional, Tuple

from lxml import etree

from edinet_extractor.core.config import ClassificationSettings
from edinet_extractor.core.logging import get_logger
from edinet_extractor.models.financial_data import StatementType, TableCandidate, TableStatistics
from edinet_extractor.parsers.document_scope import DocumentScope
from edinet_extractor.parsers.rules import first_match
from edinet_extractor.parsers.tables.html_table import (
    HEADING_TAGS,
    caption_text,
    contains_table,
    find_tables,
    row_cells,
    table_rows,
    table_text,
)
from edinet_extractor.parsers.tables.statement_taxonomy import (
    AGGREGATE_TAG_RULES,
    CANONICAL_TITLES,
    FINANCIAL_KEYWORDS,
    FIRST_COLUMN_LABELS,
    TABLE_TYPE_TAG_RULES,
    TABLE_TYPE_TEXT_RULES,
)
from edinet_extractor.parsers.xbrl.element_utils import element_text, is_element, local_name

logger = get_logger(__name__)

# 标题查找范围
MAX_HEADING_SIBLINGS = 3
MAX_HEADING_CLIMB = 2
MAX_HEADING_LENGTH = 80
TEXT_BLOCK_TAGS = {"p", "div", "span", "b", "strong", "font", "center"}


def contains_keyword(text: Optional[str], keywords: Iterable[str] = FINANCIAL_KEYWORDS) -> bool:
    if not text:
        return False
    lowered = text.lower()
    return any(keyword.lower() in lowered for keyword in keywords)


def type_from_text(*texts: Optional[str]) -> StatementType:
    """根据文字判定报表类型"""
    return first_match(TABLE_TYPE_TEXT_RULES, [t for t in texts if t], StatementType.UNKNOWN)


def type_from_tags(tags: Iterable[str]) -> StatementType:
    """根据单个标签的模式判定报表类型"""
    return first_match(TABLE_TYPE_TAG_RULES, [t for t in tags if t], StatementType.UNKNOWN)


def type_from_tag_vocabulary(tags: Iterable[str]) -> StatementType:
    """把所有标签拼接后整体判定报表类型"""
    joined = " ".join(t for t in tags if t)
    return first_match(AGGREGATE_TAG_RULES, [joined], StatementType.UNKNOWN)


class TableClassifier:
    """表格分类器"""

    def __init__(self, scope: DocumentScope, weights: Optional[ClassificationSettings] = None):
        """初始化表格分类器

        Args:
            scope: 文档作用域（需已完成事实扫描）
            weights: 打分权重，缺省取配置
        """
        self.scope = scope
        self.weights = weights or scope.settings.classification

    def classify_all(self) -> List[TableCandidate]:
        """对文档中的所有表格打分

        嵌套了其他表格的外层排版表格不参与打分。

        Returns:
            按文档顺序排列的表格候选（包括低于阈值的）
        """
        candidates: List[TableCandidate] = []
        for index, table in enumerate(find_tables(self.scope.root)):
            if contains_table(table):
                logger.debug("tables.layout_skipped", index=index)
                continue
            candidates.append(self.classify(table, index))

        retained = sum(1 for c in candidates if self.is_financial(c))
        logger.info("tables.classified", total=len(candidates), retained=retained)
        return candidates

    def classify(self, table: etree._Element, index: int) -> TableCandidate:
        """对单个表格打分并判定类型"""
        heading = self.heading_of(table)
        text = table_text(table)
        tags = self._tags_in(table)
        score = self.score(table, heading=heading, text=text, tags=tags)
        table_type = self.infer_type(heading, text, tags)

        title = heading or CANONICAL_TITLES.get(table_type)
        rows = table_rows(table)
        return TableCandidate(
            table_id=f"table-{index}",
            index=index,
            element=table,
            title=title,
            score=score,
            table_type=table_type,
            statistics=TableStatistics(
                row_count=len(rows),
                column_count=max((len(row_cells(row)) for row in rows), default=0),
                xbrl_tag_count=len(tags),
                xbrl_tags=tuple(tags),
            ),
        )

    def score(
        self,
        table: etree._Element,
        heading: Optional[str] = None,
        text: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> int:
        """计算表格得分"""
        heading = heading if heading is not None else self.heading_of(table)
        text = text if text is not None else table_text(table)

        score = 0
        if contains_keyword(heading):
            score += self.weights.heading_weight
        if contains_keyword(text):
            score += self.weights.text_weight
        if self._has_financial_fact(table):
            score += self.weights.fact_weight

        rows = table_rows(table)
        if len(rows) >= 3 and max((len(row_cells(row)) for row in rows), default=0) >= 2:
            score += self.weights.shape_weight

        if self._first_column_matches(rows):
            score += self.weights.label_weight

        return score

    def is_financial(self, candidate: TableCandidate) -> bool:
        return candidate.score >= self.weights.threshold

    def infer_type(self, heading: Optional[str], text: Optional[str], tags: Iterable[str]) -> StatementType:
        """依次根据标题、正文、标签判定类型"""
        for source in (heading, text):
            table_type = type_from_text(source)
            if table_type != StatementType.UNKNOWN:
                return table_type
        return type_from_tags(tags)

    def heading_of(self, table: etree._Element) -> Optional[str]:
        """查找表格的标题

        依次尝试 caption、紧邻的前置兄弟元素、外层包裹元素的前置兄弟元素。
        """
        caption = caption_text(table)
        if caption:
            return caption

        node = table
        for _ in range(MAX_HEADING_CLIMB + 1):
            heading = self._heading_before(node)
            if heading:
                return heading
            node = node.getparent()
            if node is None or local_name(node) in {"body", "html"}:
                break
        return None

    def preceding_texts(self, table: etree._Element) -> List[str]:
        """表格之前的若干段短文本（用于识别金额单位）"""
        texts = [caption_text(table)]
        node = table
        for _ in range(MAX_HEADING_CLIMB + 1):
            texts.extend(text for _element, text in self._preceding_blocks(node))
            node = node.getparent()
            if node is None:
                break
        return [text for text in texts if text]

    def _heading_before(self, node: etree._Element) -> Optional[str]:
        blocks = self._preceding_blocks(node)
        for element, text in blocks:
            if local_name(element) in HEADING_TAGS:
                return text
        for element, text in blocks:
            if local_name(element) in TEXT_BLOCK_TAGS and contains_keyword(text):
                return text
        return None

    def _preceding_blocks(self, node: etree._Element) -> List[Tuple[etree._Element, str]]:
        blocks: List[Tuple[etree._Element, str]] = []
        for sibling in node.itersiblings(preceding=True):
            if not is_element(sibling):
                continue
            if local_name(sibling) == "table":
                break
            text = element_text(sibling)
            if not text:
                continue
            if len(text) <= MAX_HEADING_LENGTH:
                blocks.append((sibling, text))
            if len(blocks) >= MAX_HEADING_SIBLINGS:
                break
        return blocks

    def _tags_in(self, table: etree._Element) -> List[str]:
        tags: List[str] = []
        seen = set()
        for element in table.iter():
            fact = self.scope.fact_at(element)
            if fact is None or not fact.tag or fact.tag in seen:
                continue
            seen.add(fact.tag)
            tags.append(fact.tag)
        return tags

    def _has_financial_fact(self, table: etree._Element) -> bool:
        for element in table.iter():
            fact = self.scope.fact_at(element)
            if fact is not None and self.scope.is_financial_tag(fact.tag):
                return True
        return False

    def _first_column_matches(self, rows: List[etree._Element]) -> bool:
        for row in rows:
            cells = row_cells(row)
            if cells and contains_keyword(element_text(cells[0]), FIRST_COLUMN_LABELS):
                return True
        return False
