"""HTML表格结构访问

XHTML（带命名空间）与HTML解析结果都按本地标签名访问。
"""

from typing import List

from lxml import etree

from edinet_extractor.parsers.xbrl.element_utils import element_text, get_attr, is_element, local_name

ROW_SECTIONS = {"thead", "tbody", "tfoot"}
CELL_TAGS = {"td", "th"}
HEADING_TAGS = {"h1", "h2", "h3", "h4", "h5", "h6"}


def find_tables(root: etree._Element) -> List[etree._Element]:
    """按文档顺序返回所有 table 元素"""
    return [element for element in root.iter() if is_element(element) and local_name(element) == "table"]


def contains_table(table: etree._Element) -> bool:
    """是否嵌套了其他表格（排版用的外层表格）"""
    return any(
        is_element(element) and local_name(element) == "table"
        for element in table.iterdescendants()
    )


def table_rows(table: etree._Element) -> List[etree._Element]:
    """返回表格自身的行，不进入嵌套表格"""
    rows: List[etree._Element] = []
    for child in table:
        name = local_name(child)
        if name == "tr":
            rows.append(child)
        elif name in ROW_SECTIONS:
            rows.extend(grandchild for grandchild in child if local_name(grandchild) == "tr")
    return rows


def row_cells(row: etree._Element) -> List[etree._Element]:
    return [child for child in row if local_name(child) in CELL_TAGS]


def colspan_of(cell: etree._Element) -> int:
    value = get_attr(cell, "colspan")
    if not value:
        return 1
    try:
        return max(1, int(value.strip()))
    except ValueError:
        return 1


def is_heading_cell(cell: etree._Element) -> bool:
    return local_name(cell) == "th"


def caption_text(table: etree._Element) -> str:
    for child in table:
        if local_name(child) == "caption":
            return element_text(child)
    return ""


def table_text(table: etree._Element) -> str:
    return " ".join(text.strip() for text in table.itertext() if text and text.strip())
