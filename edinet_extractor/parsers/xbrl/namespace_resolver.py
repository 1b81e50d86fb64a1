"""命名空间解析器

以日本开示用的已知命名空间为默认值，再用文档根元素上实际声明的命名空间覆盖。
"""

from typing import Dict, Optional

from lxml import etree

from edinet_extractor.core.logging import get_logger
from edinet_extractor.parsers.xbrl.element_utils import document_root, is_element

logger = get_logger(__name__)

EDINET_TAXONOMY_FAMILIES = (
    "jppfs", "jpcrp", "jpdei", "jpigp", "jplvh", "jpfie", "jpcai", "jppre",
)

DEFAULT_NAMESPACES: Dict[str, str] = {
    "ix": "http://www.xbrl.org/2013/inlineXBRL",
    "xbrli": "http://www.xbrl.org/2003/instance",
    **{
        family: f"http://disclosure.edinet-fsa.go.jp/taxonomy/{family}/2013-08-31/{family}_cor"
        for family in EDINET_TAXONOMY_FAMILIES
    },
    "link": "http://www.xbrl.org/2003/linkbase",
    "xbrldt": "http://xbrl.org/2005/xbrldt",
    "xlink": "http://www.w3.org/1999/xlink",
}

EDINET_URI_MARKER = "disclosure.edinet-fsa.go.jp"


class NamespaceResolver:
    """命名空间解析器

    纯函数式：构造时读取根元素声明，之后只做查询，不会抛出异常。
    """

    def __init__(self, document: Optional[etree._Element] = None):
        self.namespaces: Dict[str, str] = dict(DEFAULT_NAMESPACES)
        if document is not None:
            self.namespaces.update(self._declared_namespaces(document_root(document)))
        self._reverse: Dict[str, str] = {}
        for prefix, uri in self.namespaces.items():
            self._reverse.setdefault(uri, prefix)

    def _declared_namespaces(self, root: etree._Element) -> Dict[str, str]:
        """读取根元素的命名空间声明

        XML树的声明在 nsmap 中，HTML树的声明保留为普通的 xmlns:* 属性。
        """
        declared: Dict[str, str] = {}
        if root is None or not is_element(root):
            return declared

        for prefix, uri in (root.nsmap or {}).items():
            if prefix and uri:
                declared[prefix] = uri

        for key, value in root.attrib.items():
            if key.lower().startswith("xmlns:") and value:
                declared[key.split(":", 1)[1]] = value

        if declared:
            logger.debug("namespaces.declared", prefixes=sorted(declared))
        return declared

    def resolve(self, prefix: str) -> Optional[str]:
        """返回前缀对应的URI"""
        return self.namespaces.get(prefix)

    def prefix_for(self, uri: str) -> Optional[str]:
        """返回URI对应的前缀"""
        if not uri:
            return None
        return self._reverse.get(uri)

    def is_known_prefix(self, prefix: Optional[str]) -> bool:
        """`jppfs_cor` 之类的前缀按下划线前的部分判断"""
        if not prefix:
            return False
        return prefix in self.namespaces or prefix.split("_", 1)[0] in self.namespaces

    def is_financial_prefix(self, prefix: Optional[str]) -> bool:
        """是否属于日本开示分类标准（jppfs、jpcrp等）"""
        if not prefix:
            return False
        family = prefix.split("_", 1)[0].lower()
        if family in EDINET_TAXONOMY_FAMILIES:
            return True
        uri = self.namespaces.get(prefix) or ""
        return EDINET_URI_MARKER in uri

    def qualify(self, element: etree._Element) -> Optional[str]:
        """返回元素的限定名 `prefix:localName`"""
        if not is_element(element):
            return None
        tag = element.tag
        if tag.startswith("{"):
            uri, local = tag[1:].split("}", 1)
            prefix = element.prefix or self.prefix_for(uri)
            if not prefix:
                # 未声明的命名空间取URI最后一段作为前缀
                prefix = uri.rstrip("/").split("/")[-1]
            return f"{prefix}:{local}"
        return tag

    def __contains__(self, prefix: str) -> bool:
        return prefix in self.namespaces

    def __len__(self) -> int:
        return len(self.namespaces)
