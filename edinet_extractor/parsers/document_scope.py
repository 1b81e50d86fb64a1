"""
文档作用域
Per-document state threaded through every pipeline stage.

上下文、单位、事实注册表都属于单个文档，每次提取新建一个作用域，
不在文档之间共享。
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from lxml import etree

from edinet_extractor.core.config import AppSettings, ExtractionOptions, get_settings
from edinet_extractor.core.error_handling import DiagnosticsCollector
from edinet_extractor.core.logging import get_logger
from edinet_extractor.models.financial_data import Context, Fact, FiscalRole, Unit
from edinet_extractor.parsers.xbrl.element_utils import document_root
from edinet_extractor.parsers.xbrl.fact_extractor import FactScanner
from edinet_extractor.parsers.xbrl.fiscal_policy import FiscalRolePolicy, build_policy
from edinet_extractor.parsers.xbrl.namespace_resolver import NamespaceResolver
from edinet_extractor.parsers.xbrl.unit_registry import UnitRegistry
from edinet_extractor.parsers.xbrl.xbrl_context import ContextRegistry

logger = get_logger(__name__)


@dataclass
class DocumentScope:
    """单个文档的解析状态"""
    root: etree._Element
    settings: AppSettings
    options: ExtractionOptions
    diagnostics: DiagnosticsCollector
    policy: FiscalRolePolicy
    resolver: Optional[NamespaceResolver] = None
    context_registry: Optional[ContextRegistry] = None
    unit_registry: Optional[UnitRegistry] = None
    scanner: Optional[FactScanner] = None
    facts: List[Fact] = field(default_factory=list)

    @classmethod
    def create(
        cls,
        document,
        settings: Optional[AppSettings] = None,
        options: Optional[ExtractionOptions] = None,
        reference_date: Optional[date] = None,
        policy: Optional[FiscalRolePolicy] = None,
    ) -> "DocumentScope":
        """为一个文档创建新的作用域

        Args:
            document: lxml Element 或 ElementTree
            settings: 应用配置，缺省使用全局配置
            options: 本次调用的选项，缺省由配置生成
            reference_date: 会计期间判定的基准日
            policy: 直接指定的会计期间策略，优先于配置
        """
        app_settings = settings or get_settings()
        return cls(
            root=document_root(document),
            settings=app_settings,
            options=options or ExtractionOptions.from_settings(app_settings),
            diagnostics=DiagnosticsCollector(),
            policy=policy or build_policy(app_settings.fiscal, reference_date),
        )

    def resolve_namespaces(self) -> NamespaceResolver:
        self.resolver = NamespaceResolver(self.root)
        return self.resolver

    def build_registries(self) -> None:
        self.context_registry = ContextRegistry(self.root, self.policy, self.diagnostics)
        self.context_registry.parse()
        self.unit_registry = UnitRegistry(self.root, self.diagnostics)
        self.unit_registry.parse()

    def scan_facts(self) -> List[Fact]:
        self.scanner = FactScanner(
            self.root,
            resolver=self.resolver or self.resolve_namespaces(),
            diagnostics=self.diagnostics,
            max_walk_depth=self.options.max_walk_depth,
            context_aware=self.options.context_aware,
        )
        self.facts = self.scanner.scan()
        return self.facts

    @property
    def contexts(self) -> Dict[str, Context]:
        return dict(self.context_registry.contexts) if self.context_registry else {}

    @property
    def units(self) -> Dict[str, Unit]:
        return dict(self.unit_registry.units) if self.unit_registry else {}

    def context_for(self, fact: Optional[Fact]) -> Optional[Context]:
        if fact is None or self.context_registry is None:
            return None
        return self.context_registry.get(fact.context_ref)

    def role_of(self, fact: Optional[Fact]) -> FiscalRole:
        context = self.context_for(fact)
        return context.fiscal_role if context else FiscalRole.UNKNOWN

    def unit_label(self, fact: Optional[Fact]) -> str:
        if fact is None or self.unit_registry is None:
            return ""
        return self.unit_registry.label_for(fact.unit_ref)

    def fact_at(self, element: etree._Element) -> Optional[Fact]:
        if self.scanner is None:
            return None
        return self.scanner.index.get(element)

    def is_financial_tag(self, tag: Optional[str]) -> bool:
        """标签是否属于日本开示分类标准"""
        if not tag or ":" not in tag:
            return False
        resolver = self.resolver or self.resolve_namespaces()
        return resolver.is_financial_prefix(tag.split(":", 1)[0])
