"""
文档加载器
Build an lxml element tree from in-memory document content.

字节内容先用 UnicodeDammit 识别编码（日本开示文档常见 Shift_JIS / EUC-JP），
再按XML解析，失败时退回到容错的HTML解析。
"""

from typing import Optional, Union

from bs4 import UnicodeDammit
from lxml import etree

from edinet_extractor.core.error_handling import DocumentParseError
from edinet_extractor.core.logging import get_logger
from edinet_extractor.parsers.format_detector import FormatDetector

logger = get_logger(__name__)

JAPANESE_ENCODINGS = ["utf-8", "cp932", "shift_jis", "euc-jp"]


def decode_content(content: bytes) -> str:
    """识别编码并解码字节内容

    Args:
        content: 原始字节

    Returns:
        解码后的文本

    Raises:
        DocumentParseError: 无法识别编码
    """
    dammit = UnicodeDammit(content, JAPANESE_ENCODINGS, is_html=True)
    if dammit.unicode_markup is None:
        raise DocumentParseError("无法识别文档编码")
    logger.debug("document.decoded", encoding=dammit.original_encoding)
    return dammit.unicode_markup


def _strip_xml_declaration(text: str) -> str:
    # lxml 不接受带编码声明的 str 输入
    if text.lstrip().startswith("<?xml"):
        end = text.find("?>")
        if end != -1:
            return text[end + 2:]
    return text


def load_document(content: Union[bytes, str], as_xml: Optional[bool] = None) -> etree._Element:
    """把内存中的文档内容解析为元素树

    Args:
        content: 文档内容（字节或文本）
        as_xml: 强制按XML(True)或HTML(False)解析，None时自动判断

    Returns:
        根元素

    Raises:
        DocumentParseError: 内容为空或无法构建元素树
    """
    if content is None or not content.strip():
        raise DocumentParseError("文档内容为空")

    text = decode_content(content) if isinstance(content, bytes) else content
    text = _strip_xml_declaration(text)

    if as_xml is None:
        as_xml = FormatDetector().looks_like_xml(text)

    if as_xml:
        try:
            parser = etree.XMLParser(recover=True, huge_tree=True, resolve_entities=False, no_network=True)
            root = etree.fromstring(text.encode("utf-8"), parser)
            if root is not None:
                logger.info("document.loaded", parser="xml", root=root.tag)
                return root
        except etree.XMLSyntaxError as e:
            logger.warning("document.xml_parse_failed", error=str(e))

    try:
        parser = etree.HTMLParser(recover=True, encoding="utf-8")
        root = etree.fromstring(text.encode("utf-8"), parser)
    except (etree.ParserError, etree.XMLSyntaxError, ValueError) as e:
        logger.error("document.parse_failed", error=str(e), exc_info=True)
        raise DocumentParseError(f"无法解析文档: {e}") from e

    if root is None:
        raise DocumentParseError("无法解析文档: 没有根元素")

    logger.info("document.loaded", parser="html", root=root.tag)
    return root
