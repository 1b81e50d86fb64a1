"""提取编排器

按固定顺序运行各阶段：命名空间 -> 上下文/单位 -> 事实 -> 表格分类 ->
单元格映射 -> 期间列 -> 数值规范化 -> 选表 -> 层级 -> 回退 -> 组装结果。
单个表格的处理失败只记录诊断并跳过该表格。
"""

import time
from dataclasses import replace
from datetime import date
from types import MappingProxyType
from typing import Callable, List, Optional, Tuple, TypeVar, Union

from lxml import etree

from edinet_extractor.core.config import AppSettings, ExtractionOptions
from edinet_extractor.core.error_handling import DiagnosticKind, ErrorSeverity
from edinet_extractor.core.logging import get_logger
from edinet_extractor.models.financial_data import (
    ExtractionMode,
    ExtractionResult,
    StatementHierarchy,
    StatementType,
    TableCandidate,
)
from edinet_extractor.parsers.document_loader import load_document
from edinet_extractor.parsers.document_scope import DocumentScope
from edinet_extractor.parsers.format_detector import FormatDetector
from edinet_extractor.parsers.tables.cell_mapper import CellMapper
from edinet_extractor.parsers.tables.hierarchy_builder import HierarchyBuilder
from edinet_extractor.parsers.tables.period_columns import PeriodColumnDetector
from edinet_extractor.parsers.tables.statement_taxonomy import SELECTION_TAG_KEYWORDS, STATEMENT_TYPES
from edinet_extractor.parsers.tables.table_classifier import TableClassifier
from edinet_extractor.parsers.tables.value_normalizer import ValueNormalizer
from edinet_extractor.parsers.tables.virtual_table import VirtualTableBuilder
from edinet_extractor.parsers.xbrl.element_utils import is_element
from edinet_extractor.parsers.xbrl.fiscal_policy import FiscalRolePolicy

logger = get_logger(__name__)

T = TypeVar("T")


def selection_weight(candidate: TableCandidate, type_weight: int = 100) -> int:
    weight = type_weight if candidate.table_type in STATEMENT_TYPES else 0
    tags = {fact.tag for fact in candidate.bound_facts if fact.tag}
    return weight + sum(1 for tag in tags if any(keyword in tag for keyword in SELECTION_TAG_KEYWORDS))


class ExtractionOrchestrator:
    """提取编排器

    每次调用 extract 都新建 DocumentScope，实例本身只保存配置，可以重复使用。
    """

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        options: Optional[ExtractionOptions] = None,
        reference_date: Optional[date] = None,
        policy: Optional[FiscalRolePolicy] = None,
    ):
        self.settings = settings
        self.options = options
        self.reference_date = reference_date
        self.policy = policy
        self.format_detector = FormatDetector()
        self.normalizer = ValueNormalizer()

    def extract(self, document: Union[etree._Element, etree._ElementTree, bytes, str]) -> ExtractionResult:
        """从一个文档中提取财务报表

        Args:
            document: lxml Element / ElementTree，或内存中的文档内容

        Returns:
            ExtractionResult

        Raises:
            DocumentParseError: 内容无法解析为元素树
        """
        started = time.perf_counter()
        if isinstance(document, (bytes, str)):
            document = load_document(document)

        scope = DocumentScope.create(
            document,
            settings=self.settings,
            options=self.options,
            reference_date=self.reference_date,
            policy=self.policy,
        )
        file_type = self.format_detector.detect(scope.root).value
        logger.info("extraction.started", file_type=file_type)

        self._run_stage(scope, "namespaces", scope.resolve_namespaces, None)
        self._run_stage(scope, "registries", scope.build_registries, None)
        self._run_stage(scope, "facts", scope.scan_facts, [])

        classifier = TableClassifier(scope)
        classified = self._run_stage(scope, "classification", classifier.classify_all, [])
        retained = [c for c in classified if classifier.is_financial(c)]
        generic = [c for c in classified if not classifier.is_financial(c)]

        tables: Tuple[TableCandidate, ...] = ()
        hierarchy: Optional[StatementHierarchy] = None
        selected: Optional[TableCandidate] = None
        mode = ExtractionMode.EMPTY

        mapped = [t for t in (self._process(scope, c, bind_facts=True) for c in retained) if t is not None]
        if mapped and any(c.bound_fact_count for c in mapped):
            mode = ExtractionMode.MAPPED
            tables = tuple(mapped)
            selected = self.select(
                mapped,
                intelligent=scope.options.intelligent_selection,
                type_weight=scope.settings.classification.statement_type_weight,
            )
            hierarchy = self._build_hierarchy(scope, classifier, selected)
        elif retained:
            mode = ExtractionMode.FLAT
            tables = tuple(self._flat_tables(scope, retained))
            logger.info("extraction.flat_fallback", reason="no_bound_facts", tables=len(tables))
        else:
            flat = self._flat_tables(scope, generic[: scope.options.max_fallback_tables])
            virtual = self._virtual_table(scope) if scope.facts else None
            if virtual is not None:
                mode = ExtractionMode.VIRTUAL
                tables = tuple(flat) + (virtual,)
                selected = virtual
                hierarchy = self._run_stage(scope, "hierarchy", lambda: HierarchyBuilder(scope).build(virtual), None)
            elif flat:
                mode = ExtractionMode.FLAT
                tables = tuple(flat)
                logger.info("extraction.flat_fallback", reason="no_financial_tables", tables=len(tables))

        if mode == ExtractionMode.EMPTY:
            scope.diagnostics.record(
                DiagnosticKind.STRUCTURAL_ABSENCE,
                "文档中没有可提取的财务表格或事实",
                severity=ErrorSeverity.MEDIUM,
                tables=len(classified),
            )

        diagnostics = scope.diagnostics.freeze(
            file_type=file_type,
            element_count=sum(1 for element in scope.root.iter() if is_element(element)),
            fact_count=len(scope.facts),
            context_count=len(scope.contexts),
            unit_count=len(scope.units),
            table_count=len(classified),
            candidate_count=len(retained),
            mapped_table_count=sum(1 for t in tables if t.mode == ExtractionMode.MAPPED),
        )
        result = ExtractionResult(
            tables=tables,
            hierarchy=hierarchy,
            selected_table_id=selected.table_id if selected else None,
            contexts=MappingProxyType(scope.contexts),
            units=MappingProxyType(scope.units),
            facts=tuple(scope.facts),
            mode=mode,
            diagnostics=diagnostics,
        )
        logger.info(
            "extraction.completed",
            mode=mode.value,
            tables=len(tables),
            selected_table_id=result.selected_table_id,
            issues=len(diagnostics.issues),
            elapsed=round(time.perf_counter() - started, 4),
        )
        return result

    @staticmethod
    def select(
        candidates: List[TableCandidate],
        intelligent: bool = True,
        type_weight: int = 100,
    ) -> Optional[TableCandidate]:
        """选择主表

        权重 = 报表类型加权 + 含关键词的不同标签数；权重相同时保留文档中靠前的表格。

        Args:
            candidates: 已映射的表格，按文档顺序
            intelligent: False时直接取第一张
            type_weight: 三大报表类型的加权

        Returns:
            选中的表格
        """
        if not candidates:
            return None
        if not intelligent:
            return candidates[0]

        best = candidates[0]
        best_weight = selection_weight(best, type_weight)
        for candidate in candidates[1:]:
            weight = selection_weight(candidate, type_weight)
            if weight > best_weight:
                best, best_weight = candidate, weight
        logger.debug("table.selected", table_id=best.table_id, weight=best_weight)
        return best

    def _process(self, scope: DocumentScope, candidate: TableCandidate, bind_facts: bool) -> Optional[TableCandidate]:
        """映射、识别期间列并规范化一张表格；失败时记录诊断并返回None"""
        try:
            mapped = CellMapper(scope).map(candidate, bind_facts=bind_facts)
            if not mapped.rows:
                return mapped
            mapped = replace(mapped, period_columns=PeriodColumnDetector(scope).detect(mapped))
            return self.normalizer.normalize_table(mapped, scope)
        except Exception as e:
            scope.diagnostics.record_failure("table", e, table_id=candidate.table_id)
            return None

    def _flat_tables(self, scope: DocumentScope, candidates: List[TableCandidate]) -> List[TableCandidate]:
        processed = (self._process(scope, c, bind_facts=False) for c in candidates)
        return [t for t in processed if t is not None]

    def _virtual_table(self, scope: DocumentScope) -> Optional[TableCandidate]:
        def build() -> Optional[TableCandidate]:
            virtual = VirtualTableBuilder(scope).build()
            if virtual is None:
                return None
            return self.normalizer.normalize_table(virtual, scope)

        return self._run_stage(scope, "virtual_table", build, None)

    def _build_hierarchy(
        self,
        scope: DocumentScope,
        classifier: TableClassifier,
        candidate: Optional[TableCandidate],
    ) -> Optional[StatementHierarchy]:
        if candidate is None:
            return None
        if candidate.table_type == StatementType.UNKNOWN:
            scope.diagnostics.record(
                DiagnosticKind.AMBIGUOUS_CLASSIFICATION,
                "选中的表格无法判定报表类型",
                severity=ErrorSeverity.LOW,
                table_id=candidate.table_id,
            )

        def build() -> StatementHierarchy:
            texts = classifier.preceding_texts(candidate.element) if candidate.element is not None else []
            return HierarchyBuilder(scope).build(candidate, context_texts=texts)

        return self._run_stage(scope, "hierarchy", build, None)

    def _run_stage(self, scope: DocumentScope, stage: str, func: Callable[[], T], default: T) -> T:
        try:
            return func()
        except Exception as e:
            scope.diagnostics.record_failure(stage, e)
            return default


def extract(
    document: Union[etree._Element, etree._ElementTree, bytes, str],
    settings: Optional[AppSettings] = None,
    options: Optional[ExtractionOptions] = None,
    reference_date: Optional[date] = None,
) -> ExtractionResult:
    """便捷入口：用一次性的编排器提取文档"""
    return ExtractionOrchestrator(settings=settings, options=options, reference_date=reference_date).extract(document)
