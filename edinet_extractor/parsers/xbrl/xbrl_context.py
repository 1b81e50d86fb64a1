"""XBRL上下文注册表

负责解析文档中所有上下文（context），判定会计期间角色和合并口径，
并为只被引用、没有定义的上下文ID补充最小记录。
"""

from dataclasses import replace
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

from lxml import etree

from edinet_extractor.core.error_handling import DiagnosticKind, DiagnosticsCollector
from edinet_extractor.core.logging import get_logger
from edinet_extractor.models.financial_data import (
    ConsolidationKind,
    Context,
    DimensionMember,
    FiscalRole,
    PeriodKind,
)
from edinet_extractor.parsers.rules import first_match, keyword_rule
from edinet_extractor.parsers.xbrl.element_utils import document_root, get_attr, is_element
from edinet_extractor.parsers.xbrl.fiscal_policy import FiscalRolePolicy, YearWindowPolicy

logger = get_logger(__name__)

# 上下文ID中的期间标记（EDINET命名规则：CurrentYearInstant、Prior1YearDuration 等）
FISCAL_ROLE_RULES = [
    keyword_rule(FiscalRole.CURRENT, "CurrentYear", "Current", "ThisPeriod", "当期", "当連結", "当事業年度"),
    keyword_rule(FiscalRole.PREVIOUS, "PriorYear", "Prior", "Previous", "LastPeriod", "前期", "前連結", "前事業年度"),
]

# 维度成员值：NonConsolidated 包含 Consolidated，必须先判断
CONSOLIDATION_MEMBER_RULES = [
    keyword_rule(
        ConsolidationKind.NON_CONSOLIDATED,
        "NonConsolidated", "non-consolidated", "non_consolidated", "Individual", "個別",
    ),
    keyword_rule(ConsolidationKind.CONSOLIDATED, "Consolidated", "連結"),
]

CONSOLIDATION_ID_RULES = [
    keyword_rule(ConsolidationKind.NON_CONSOLIDATED, "nonconsolidated", "non-consolidated", "individual", "ncons"),
    keyword_rule(ConsolidationKind.CONSOLIDATED, "consolidated", "cons"),
]

# 合并口径轴本身的名字同时包含两种关键词，不能用于判断
CONSOLIDATION_AXIS = "ConsolidatedOrNonConsolidatedAxis"

# XML树用local-name()；HTML树的标签名保留前缀（xbrli:context），取冒号后的部分
CONTEXT_XPATH = "//*[local-name()='context' or substring-after(name(), ':')='context']"
EXPLICIT_MEMBER_XPATH = (
    ".//*[local-name()='explicitMember' or local-name()='explicitmember'"
    " or substring-after(name(), ':')='explicitmember']"
)
TYPED_MEMBER_XPATH = (
    ".//*[local-name()='typedMember' or local-name()='typedmember'"
    " or substring-after(name(), ':')='typedmember']"
)

DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y/%m/%d",
]


def classify_fiscal_role_from_id(context_id: str) -> FiscalRole:
    """仅根据ID中的标记判定会计期间角色"""
    return first_match(FISCAL_ROLE_RULES, [context_id], FiscalRole.UNKNOWN)


def classify_consolidation(context_id: str, dimensions: Tuple[DimensionMember, ...] = ()) -> ConsolidationKind:
    """判定合并口径：先看维度成员值，再看维度名，最后看ID"""
    kind = first_match(CONSOLIDATION_MEMBER_RULES, [m.value for m in dimensions], ConsolidationKind.UNKNOWN)
    if kind != ConsolidationKind.UNKNOWN:
        return kind

    names = [m.dimension for m in dimensions if CONSOLIDATION_AXIS not in m.dimension]
    kind = first_match(CONSOLIDATION_MEMBER_RULES, names, ConsolidationKind.UNKNOWN)
    if kind != ConsolidationKind.UNKNOWN:
        return kind

    return first_match(CONSOLIDATION_ID_RULES, [context_id], ConsolidationKind.UNKNOWN)


class ContextRegistry:
    """XBRL上下文注册表

    每个文档一个实例。解析后的上下文不可变，只能按ID查询。
    """

    def __init__(
        self,
        document: etree._Element,
        policy: Optional[FiscalRolePolicy] = None,
        diagnostics: Optional[DiagnosticsCollector] = None,
    ):
        """初始化上下文注册表

        Args:
            document: 已解析的lxml Element对象
            policy: 期末日回退策略，缺省为固定年份窗口
            diagnostics: 诊断收集器
        """
        self.document = document_root(document)
        self.policy = policy or YearWindowPolicy()
        self.diagnostics = diagnostics
        self.contexts: Dict[str, Context] = {}
        self._parsed = False

    def parse(self) -> Dict[str, Context]:
        """解析文档中的所有上下文

        Returns:
            以ID为键的上下文字典
        """
        logger.info("contexts.parse_started")
        self.contexts = {}

        explicit: List[Context] = []
        # 使用local-name()使其对命名空间前缀不敏感
        for context_elem in self.document.xpath(CONTEXT_XPATH):
            context = self._extract_context(context_elem)
            if context is not None and context.id not in self.contexts:
                explicit.append(context)
                self.contexts[context.id] = context

        self.policy.observe(c.period_end for c in explicit if c.period_end)
        for context in explicit:
            if context.fiscal_role == FiscalRole.UNKNOWN:
                self.contexts[context.id] = replace(context, fiscal_role=self.policy.classify(context.period_end))

        synthesized = self._synthesize_bare_references()

        self._parsed = True
        logger.info(
            "contexts.parsed",
            explicit=len(explicit),
            synthesized=synthesized,
            total=len(self.contexts),
        )
        return dict(self.contexts)

    def _extract_context(self, context_elem: etree._Element) -> Optional[Context]:
        """从元素中提取上下文"""
        context_id = get_attr(context_elem, "id")
        if not context_id:
            return None

        entity_elem = self._get_child_element(context_elem, "entity")
        period_elem = self._get_child_element(context_elem, "period")

        identifier, scheme = self._extract_entity(entity_elem)
        period_kind, instant, start_date, end_date = self._extract_period(period_elem)

        dimensions: List[DimensionMember] = []
        for holder in ("scenario", "segment"):
            # segment 位于 entity 之下，scenario 位于 context 之下
            for parent in (context_elem, entity_elem):
                if parent is None:
                    continue
                holder_elem = self._get_child_element(parent, holder)
                if holder_elem is not None:
                    dimensions.extend(self._extract_dimensions(holder_elem))
        members = tuple(dimensions)

        return Context(
            id=context_id,
            period_kind=period_kind,
            instant=instant,
            start_date=start_date,
            end_date=end_date,
            entity_identifier=identifier,
            entity_scheme=scheme,
            dimensions=members,
            fiscal_role=classify_fiscal_role_from_id(context_id),
            consolidation_kind=classify_consolidation(context_id, members),
        )

    def _extract_entity(self, entity_elem) -> Tuple[Optional[str], Optional[str]]:
        """从元素中提取实体标识"""
        if entity_elem is None:
            return None, None
        identifier_elem = self._get_child_element(entity_elem, "identifier")
        if identifier_elem is None:
            return None, None
        identifier = identifier_elem.text.strip() if identifier_elem.text else None
        return identifier, identifier_elem.get("scheme")

    def _extract_period(self, period_elem):
        """从元素中提取期间数据"""
        if period_elem is None:
            return PeriodKind.UNKNOWN, None, None, None

        instant_elem = self._get_child_element(period_elem, "instant")
        if instant_elem is not None:
            return PeriodKind.INSTANT, self._parse_date(instant_elem.text), None, None

        # HTML解析后标签名为小写
        start_elem = self._get_child_element(period_elem, "startDate")
        end_elem = self._get_child_element(period_elem, "endDate")
        if start_elem is not None or end_elem is not None:
            start = self._parse_date(start_elem.text) if start_elem is not None else None
            end = self._parse_date(end_elem.text) if end_elem is not None else None
            return PeriodKind.DURATION, None, start, end

        if self._get_child_element(period_elem, "forever") is not None:
            return PeriodKind.DURATION, None, None, None

        return PeriodKind.UNKNOWN, None, None, None

    def _extract_dimensions(self, holder_elem) -> List[DimensionMember]:
        """提取显式和类型化维度成员"""
        members: List[DimensionMember] = []

        for member in holder_elem.xpath(EXPLICIT_MEMBER_XPATH):
            dimension = member.get("dimension")
            value = member.text.strip() if member.text else None
            if dimension and value:
                members.append(DimensionMember(dimension=dimension, value=value))

        for member in holder_elem.xpath(TYPED_MEMBER_XPATH):
            dimension = member.get("dimension")
            if dimension:
                value = "".join(member.itertext()).strip()
                members.append(DimensionMember(dimension=dimension, value=value, typed=True))

        return members

    def _synthesize_bare_references(self) -> int:
        """为只被 contextRef 引用、没有定义的上下文补充记录"""
        count = 0
        for element in self.document.iter():
            if not is_element(element):
                continue
            context_ref = get_attr(element, "contextRef")
            if not context_ref or context_ref in self.contexts:
                continue

            self.contexts[context_ref] = Context(
                id=context_ref,
                fiscal_role=classify_fiscal_role_from_id(context_ref),
                consolidation_kind=classify_consolidation(context_ref),
                inferred=True,
            )
            count += 1
            if self.diagnostics is not None:
                self.diagnostics.record(
                    DiagnosticKind.UNRESOLVED_REFERENCE,
                    f"context '{context_ref}' is referenced but not defined",
                    reference=context_ref,
                    reference_type="context",
                )
        return count

    def _get_child_element(self, parent, child_name):
        """获取指定名称的第一个子元素，忽略命名空间和大小写"""
        wanted = child_name.lower()
        for child in parent:
            if not is_element(child):
                continue
            tag = child.tag.split("}", 1)[-1].split(":", 1)[-1]
            if tag.lower() == wanted:
                return child
        return None

    def _parse_date(self, date_str: Optional[str]) -> Optional[date]:
        """解析日期字符串

        Args:
            date_str: 日期字符串

        Returns:
            解析后的date对象，无法解析时返回None
        """
        if not date_str:
            return None
        date_str = date_str.strip()

        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(date_str, fmt).date()
            except ValueError:
                continue

        logger.warning("contexts.unparseable_date", value=date_str)
        return None

    def get(self, context_id: Optional[str]) -> Optional[Context]:
        """根据ID返回上下文，不存在时返回None"""
        if not context_id:
            return None
        return self.contexts.get(context_id)

    def get_context_details(self, context_id: str) -> Optional[Context]:
        """根据上下文ID返回其所有解析后的信息"""
        if not self._parsed:
            raise RuntimeError("上下文尚未解析，请先调用parse()")
        return self.get(context_id)

    def get_contexts_by_role(self, role: FiscalRole) -> List[Context]:
        """根据会计期间角色获取上下文"""
        if not self._parsed:
            raise RuntimeError("上下文尚未解析，请先调用parse()")
        return [c for c in self.contexts.values() if c.fiscal_role == role]

    def get_contexts_by_period_kind(self, period_kind: PeriodKind) -> List[Context]:
        """根据期间类型获取上下文"""
        if not self._parsed:
            raise RuntimeError("上下文尚未解析，请先调用parse()")
        return [c for c in self.contexts.values() if c.period_kind == period_kind]

    def role_of(self, context_id: Optional[str]) -> FiscalRole:
        context = self.get(context_id)
        return context.fiscal_role if context else FiscalRole.UNKNOWN

    @property
    def is_parsed(self) -> bool:
        """检查上下文是否已解析"""
        return self._parsed

    @property
    def context_count(self) -> int:
        """获取已解析的上下文数量"""
        return len(self.contexts)
