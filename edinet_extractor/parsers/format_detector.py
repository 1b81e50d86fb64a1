"""
格式检测器 - 识别开示文档的格式
Format detector - identify the disclosure document format
"""

import re
from enum import Enum
from typing import List

from lxml import etree

from edinet_extractor.core.logging import get_logger
from edinet_extractor.parsers.xbrl.element_utils import document_root, get_attr, is_element, local_name, tag_prefix

INLINE_XBRL_URI = "http://www.xbrl.org/2013/inlineXBRL"


class DocumentFormat(Enum):
    """文档格式枚举"""
    IXBRL = "ixbrl"         # 内联XBRL格式
    XBRL = "xbrl"           # 标准XBRL格式
    EDINET = "edinet"       # 带EDINET标签名的HTML
    TDNET = "tdnet"         # 带TDnet标签名的HTML
    HTML = "html"           # 普通HTML表格
    UNKNOWN = "unknown"     # 未知格式


class FormatDetector:
    """格式检测器"""

    def __init__(self):
        self.logger = get_logger(__name__)

        # 原始文本中的XML特征，用于决定解析方式
        self.xml_patterns = [
            r"^\s*<\?xml",
            r"<xbrli:xbrl[^>]*>",
            r"<xbrl[^>]*xmlns[^>]*>",
            r"http://www\.xbrl\.org/2003/instance",
        ]

        # iXBRL特征
        self.ixbrl_patterns = [
            r"xmlns:ix=",
            r"http://www\.xbrl\.org/2013/inlinexbrl",
            r"<ix:nonfraction[^>]*>",
            r"<ix:nonnumeric[^>]*>",
        ]

        self.inline_tags = {"nonfraction", "nonnumeric", "fraction"}

    def looks_like_xml(self, content: str) -> bool:
        """判断原始文本是否应按XML解析（XBRL实例或XHTML形式的iXBRL）"""
        if not content or not content.strip():
            return False
        sample = content[:10000].lower()
        return self._match_patterns(sample, self.xml_patterns) or (
            self._match_patterns(sample, self.ixbrl_patterns) and "<html" in sample and "xmlns=" in sample
        )

    def detect(self, document) -> DocumentFormat:
        """
        检测文档树的格式

        Args:
            document: lxml Element 或 ElementTree

        Returns:
            DocumentFormat: 检测到的格式
        """
        root = document_root(document)
        if root is None or not is_element(root):
            return DocumentFormat.UNKNOWN

        if self._declares_inline(root) or self._has_inline_tags(root):
            self.logger.debug("format.detected", format=DocumentFormat.IXBRL.value)
            return DocumentFormat.IXBRL

        if local_name(root) == "xbrl":
            self.logger.debug("format.detected", format=DocumentFormat.XBRL.value)
            return DocumentFormat.XBRL

        names = self._name_attributes(root)
        if any(name.startswith(("jpdei_", "jpcrp_", "jppfs_")) for name in names):
            self.logger.debug("format.detected", format=DocumentFormat.EDINET.value)
            return DocumentFormat.EDINET
        if any(name.startswith("tse_") for name in names):
            self.logger.debug("format.detected", format=DocumentFormat.TDNET.value)
            return DocumentFormat.TDNET

        if any(local_name(element) == "table" for element in root.iter()):
            return DocumentFormat.HTML

        self.logger.warning("format.unrecognized", root=local_name(root))
        return DocumentFormat.UNKNOWN

    def _declares_inline(self, root: etree._Element) -> bool:
        if INLINE_XBRL_URI in (root.nsmap or {}).values():
            return True
        return any(
            key.lower() == "xmlns:ix" or value == INLINE_XBRL_URI
            for key, value in root.attrib.items()
        )

    def _has_inline_tags(self, root: etree._Element) -> bool:
        for element in root.iter():
            if not is_element(element) or local_name(element) not in self.inline_tags:
                continue
            prefix = tag_prefix(element)
            if (prefix and prefix.lower() == "ix") or INLINE_XBRL_URI in element.tag:
                return True
        return False

    def _name_attributes(self, root: etree._Element) -> List[str]:
        return [
            name
            for name in (get_attr(element, "name") for element in root.iter() if is_element(element))
            if name
        ]

    def _match_patterns(self, content: str, patterns: list) -> bool:
        """检查内容是否匹配模式列表"""
        for pattern in patterns:
            if re.search(pattern, content, re.IGNORECASE | re.MULTILINE):
                return True
        return False
