"""XBRL事实扫描器

负责从XBRL/iXBRL文档中找出所有带标签的财务数据点，
并为表格单元格绑定对应的事实。
"""

from collections import Counter
from typing import Dict, List, Optional, Tuple

from lxml import etree

from edinet_extractor.core.error_handling import DiagnosticKind, DiagnosticsCollector
from edinet_extractor.core.logging import get_logger
from edinet_extractor.models.financial_data import Fact, FactBinding
from edinet_extractor.parsers.xbrl.element_utils import (
    document_root,
    element_text,
    get_attr,
    is_element,
    local_name,
    tag_prefix,
    walk,
)
from edinet_extractor.parsers.xbrl.namespace_resolver import NamespaceResolver

logger = get_logger(__name__)

INLINE_FACT_TAGS = {"nonfraction", "nonnumeric", "fraction"}

# 这些结构性元素及其子树不包含事实
STRUCTURAL_TAGS = {
    "context", "unit", "schemaref", "linkbaseref", "roleref", "arcroleref",
    "footnotelink", "references", "resources", "script", "style",
}

# 单元格上常见的标签属性
DATA_TAG_ATTRIBUTES = ("data-xbrl-tag", "data-xbrl-name", "data-tag")

# 绑定优先级：数值越小越优先
BINDING_PRIORITY = {
    FactBinding.INLINE: 0,
    FactBinding.NAMED: 1,
    FactBinding.ATTRIBUTE: 2,
    FactBinding.INHERITED: 3,
}

# 常见科目名 -> 标签本地名，用于继承上下文时猜测标签
LABEL_TAG_HINTS: Dict[str, str] = {
    "有形固定資産": "PropertyPlantAndEquipment",
    "無形固定資産": "IntangibleAssets",
    "投資その他の資産": "InvestmentsAndOtherAssets",
    "負債純資産合計": "LiabilitiesAndNetAssets",
    "資産合計": "TotalAssets",
    "負債合計": "TotalLiabilities",
    "純資産合計": "TotalNetAssets",
    "流動資産合計": "CurrentAssets",
    "固定資産合計": "NoncurrentAssets",
    "流動負債合計": "CurrentLiabilities",
    "固定負債合計": "NoncurrentLiabilities",
    "株主資本合計": "ShareholdersEquity",
    "流動資産": "CurrentAssets",
    "固定資産": "NoncurrentAssets",
    "流動負債": "CurrentLiabilities",
    "固定負債": "NoncurrentLiabilities",
    "株主資本": "ShareholdersEquity",
    "資本金": "CapitalStock",
    "資本剰余金": "CapitalSurplus",
    "利益剰余金": "RetainedEarnings",
    "自己株式": "TreasuryStock",
    "純資産": "NetAssets",
    "負債": "Liabilities",
    "資産": "Assets",
}

# 子串匹配时长的关键词优先，等长时按上表顺序
_HINTS_BY_LENGTH = sorted(LABEL_TAG_HINTS.items(), key=lambda item: len(item[0]), reverse=True)


def guess_tag(label: Optional[str]) -> Optional[str]:
    """根据科目名猜测标签本地名"""
    if not label:
        return None
    name = "".join(label.split())
    if name in LABEL_TAG_HINTS:
        return LABEL_TAG_HINTS[name]
    for keyword, tag in _HINTS_BY_LENGTH:
        if keyword in name:
            return tag
    return None


def _parse_scale(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        logger.debug("facts.invalid_scale", value=value)
        return None


class FactScanner:
    """XBRL事实扫描器

    每个元素按以下顺序匹配，先命中者生效：
    1. 内联事实标签（ix:nonFraction / ix:nonNumeric / ix:fraction）
    2. 带已知命名空间前缀的 name 属性
    3. 元素自身的 contextRef / unitRef 属性
    """

    def __init__(
        self,
        document: etree._Element,
        resolver: Optional[NamespaceResolver] = None,
        diagnostics: Optional[DiagnosticsCollector] = None,
        max_walk_depth: int = 8,
        context_aware: bool = True,
    ):
        """初始化事实扫描器

        Args:
            document: 已解析的lxml Element对象
            resolver: 命名空间解析器
            diagnostics: 诊断收集器
            max_walk_depth: 单元格内向下搜索和向上继承的最大层数
            context_aware: 是否允许从祖先/兄弟元素继承上下文
        """
        self.document = document_root(document)
        self.resolver = resolver or NamespaceResolver(self.document)
        self.diagnostics = diagnostics
        self.max_walk_depth = max_walk_depth
        self.context_aware = context_aware
        self.facts: List[Fact] = []
        self.index: Dict[etree._Element, Fact] = {}
        self._scanned = False

    def scan(self) -> List[Fact]:
        """扫描文档中的所有事实

        Returns:
            按文档顺序排列的事实列表
        """
        logger.info("facts.scan_started")
        self.facts = []
        self.index = {}

        for element, _depth in walk(self.document, skip=STRUCTURAL_TAGS):
            fact = self.match(element)
            if fact is None:
                continue
            self.facts.append(fact)
            self.index[element] = fact

        self._scanned = True
        logger.info("facts.scanned", count=len(self.facts))
        return list(self.facts)

    def match(self, element: etree._Element) -> Optional[Fact]:
        """对单个元素应用匹配规则，不匹配时返回None"""
        if not is_element(element):
            return None

        name = local_name(element)
        if name in INLINE_FACT_TAGS and self._is_inline(element):
            return self._build_fact(element, get_attr(element, "name"), FactBinding.INLINE)

        named_tag = self._named_tag(element)
        if named_tag:
            return self._build_fact(element, named_tag, FactBinding.NAMED)

        if get_attr(element, "contextRef") or get_attr(element, "unitRef"):
            return self._build_fact(element, self._attribute_tag(element), FactBinding.ATTRIBUTE)

        return None

    def _is_inline(self, element: etree._Element) -> bool:
        prefix = tag_prefix(element)
        if prefix and prefix.lower() == "ix":
            return True
        tag = element.tag
        if tag.startswith("{") and "inlinexbrl" in tag.lower():
            return True
        return get_attr(element, "name") is not None

    def _named_tag(self, element: etree._Element) -> Optional[str]:
        name = get_attr(element, "name")
        if name and ":" in name and self.resolver.is_known_prefix(name.split(":", 1)[0]):
            return name

        has_context = get_attr(element, "contextRef") is not None
        for attr in DATA_TAG_ATTRIBUTES:
            value = get_attr(element, attr)
            if not value:
                continue
            prefix = value.split(":", 1)[0] if ":" in value else None
            if has_context or self.resolver.is_known_prefix(prefix):
                return value
        return None

    def _attribute_tag(self, element: etree._Element) -> Optional[str]:
        name = get_attr(element, "name")
        if name:
            return name
        if element.tag.startswith("{") or ":" in element.tag:
            return self.resolver.qualify(element)
        return None

    def _build_fact(self, element: etree._Element, tag: Optional[str], binding: FactBinding) -> Fact:
        return Fact(
            tag=tag,
            context_ref=get_attr(element, "contextRef"),
            unit_ref=get_attr(element, "unitRef"),
            decimals=get_attr(element, "decimals"),
            scale=_parse_scale(get_attr(element, "scale")),
            format=get_attr(element, "format"),
            sign=get_attr(element, "sign"),
            raw_text=element_text(element),
            fact_id=get_attr(element, "id"),
            binding=binding,
        )

    def locate(self, cell: etree._Element, label: Optional[str] = None) -> Optional[Fact]:
        """为表格单元格找到绑定的事实

        先在单元格子树内按匹配优先级查找已扫描的事实，
        找不到时（且允许继承）向上查找祖先或兄弟元素上的上下文。

        Args:
            cell: 单元格元素
            label: 该行的科目名，用于猜测继承事实的标签

        Returns:
            绑定的事实，找不到时返回None
        """
        best: Optional[Tuple[int, Fact]] = None
        for element, _depth in walk(cell, skip=STRUCTURAL_TAGS, max_depth=self.max_walk_depth):
            fact = self.index.get(element)
            if fact is None:
                fact = self.match(element) if not self._scanned else None
            if fact is None:
                continue
            priority = BINDING_PRIORITY[fact.binding]
            if best is None or priority < best[0]:
                best = (priority, fact)
            if priority == 0:
                break

        if best is not None:
            return best[1]

        if self.context_aware:
            return self._inherit(cell, label)
        return None

    def _inherit(self, cell: etree._Element, label: Optional[str]) -> Optional[Fact]:
        """向上逐层查找带 contextRef 的祖先或兄弟元素"""
        text = element_text(cell)
        if not any(ch.isdigit() for ch in text):
            return None

        source = self._nearest_context_holder(cell)
        if source is None:
            return None

        context_ref = get_attr(source, "contextRef")
        fact = Fact(
            tag=guess_tag(label),
            context_ref=context_ref,
            unit_ref=get_attr(source, "unitRef"),
            decimals=get_attr(source, "decimals"),
            scale=_parse_scale(get_attr(source, "scale")),
            raw_text=text,
            binding=FactBinding.INHERITED,
        )
        if self.diagnostics is not None:
            self.diagnostics.record(
                DiagnosticKind.INHERITED_CONTEXT,
                f"cell '{text}' inherited context '{context_ref}' from a neighbouring element",
                context_ref=context_ref,
                source_tag=local_name(source),
            )
        return fact

    def _nearest_context_holder(self, cell: etree._Element) -> Optional[etree._Element]:
        node = cell
        for _ in range(self.max_walk_depth):
            for sibling in self._siblings(node):
                if get_attr(sibling, "contextRef"):
                    return sibling
            parent = node.getparent()
            if parent is None:
                return None
            if get_attr(parent, "contextRef"):
                return parent
            node = parent
        return None

    def _siblings(self, node: etree._Element) -> List[etree._Element]:
        """最近的兄弟元素优先：先向前，再向后"""
        previous = [s for s in node.itersiblings(preceding=True) if is_element(s)]
        following = [s for s in node.itersiblings() if is_element(s)]
        return previous + following

    def get_facts_by_name(self, tag: str) -> List[Fact]:
        """根据标签名获取事实"""
        if not self._scanned:
            raise RuntimeError("事实尚未扫描，请先调用scan()")
        return [fact for fact in self.facts if fact.tag == tag or fact.local_name == tag]

    def get_facts_by_context(self, context_ref: str) -> List[Fact]:
        """根据上下文获取事实"""
        if not self._scanned:
            raise RuntimeError("事实尚未扫描，请先调用scan()")
        return [fact for fact in self.facts if fact.context_ref == context_ref]

    def get_fact_statistics(self) -> Dict:
        """获取事实统计信息"""
        if not self._scanned:
            raise RuntimeError("事实尚未扫描，请先调用scan()")
        return {
            "total_facts": len(self.facts),
            "bindings": dict(Counter(fact.binding.value for fact in self.facts)),
            "prefixes": dict(Counter(fact.prefix for fact in self.facts if fact.prefix)),
            "contexts": dict(Counter(fact.context_ref for fact in self.facts if fact.context_ref)),
            "distinct_tags": len({fact.tag for fact in self.facts if fact.tag}),
        }

    @property
    def is_scanned(self) -> bool:
        return self._scanned

    @property
    def fact_count(self) -> int:
        return len(self.facts)
