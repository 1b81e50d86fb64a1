"""ContextRegistry单元测试"""

from datetime import date

import pytest
from lxml import etree

from edinet_extractor.core.error_handling import DiagnosticKind, DiagnosticsCollector
from edinet_extractor.models.financial_data import (
    ConsolidationKind,
    DimensionMember,
    FiscalRole,
    PeriodKind,
)
from edinet_extractor.parsers.xbrl.fiscal_policy import DocumentRelativePolicy, YearWindowPolicy
from edinet_extractor.parsers.xbrl.xbrl_context import (
    ContextRegistry,
    classify_consolidation,
    classify_fiscal_role_from_id,
)


class TestContextRegistry:
    """ContextRegistry测试类"""

    @pytest.fixture
    def sample_xbrl_xml(self):
        """创建示例XBRL XML内容"""
        return '''<?xml version="1.0" encoding="UTF-8"?>
<xbrli:xbrl xmlns:xbrli="http://www.xbrl.org/2003/instance"
            xmlns:xbrldi="http://xbrl.org/2006/xbrldi"
            xmlns:jppfs_cor="http://disclosure.edinet-fsa.go.jp/taxonomy/jppfs/2023-12-01/jppfs_cor">
    <xbrli:context id="CurrentYearInstant">
        <xbrli:entity>
            <xbrli:identifier scheme="http://disclosure.edinet-fsa.go.jp">E00001-000</xbrli:identifier>
        </xbrli:entity>
        <xbrli:period>
            <xbrli:instant>2024-03-31</xbrli:instant>
        </xbrli:period>
    </xbrli:context>

    <xbrli:context id="CurrentYearDuration">
        <xbrli:entity>
            <xbrli:identifier scheme="http://disclosure.edinet-fsa.go.jp">E00001-000</xbrli:identifier>
        </xbrli:entity>
        <xbrli:period>
            <xbrli:startDate>2023-04-01</xbrli:startDate>
            <xbrli:endDate>2024-03-31</xbrli:endDate>
        </xbrli:period>
    </xbrli:context>

    <xbrli:context id="CurrentYearInstant_NonConsolidatedMember">
        <xbrli:entity>
            <xbrli:identifier scheme="http://disclosure.edinet-fsa.go.jp">E00001-000</xbrli:identifier>
        </xbrli:entity>
        <xbrli:period>
            <xbrli:instant>2024-03-31</xbrli:instant>
        </xbrli:period>
        <xbrli:scenario>
            <xbrldi:explicitMember dimension="jppfs_cor:ConsolidatedOrNonConsolidatedAxis">jppfs_cor:NonConsolidatedMember</xbrldi:explicitMember>
        </xbrli:scenario>
    </xbrli:context>

    <xbrli:context id="FilingDateInstant">
        <xbrli:entity>
            <xbrli:identifier scheme="http://disclosure.edinet-fsa.go.jp">E00001-000</xbrli:identifier>
        </xbrli:entity>
        <xbrli:period>
            <xbrli:instant>2019-06-28</xbrli:instant>
        </xbrli:period>
    </xbrli:context>

    <jppfs_cor:Assets contextRef="CurrentYearInstant" unitRef="JPY">100</jppfs_cor:Assets>
    <jppfs_cor:Assets contextRef="Prior2YearInstant" unitRef="JPY">80</jppfs_cor:Assets>
</xbrli:xbrl>'''

    @pytest.fixture
    def id_only_html(self):
        """只有上下文ID、没有日期的HTML（标签名为小写）"""
        return '''<html>
<body>
    <xbrli:context id="CurrentYearInstant"></xbrli:context>
    <xbrli:context id="PriorYearInstant"></xbrli:context>
    <span name="jppfs_cor:Assets" contextref="CurrentYearInstant">100</span>
</body>
</html>'''

    @pytest.fixture
    def registry(self, sample_xbrl_xml):
        root = etree.fromstring(sample_xbrl_xml.encode('utf-8'))
        return ContextRegistry(root, policy=YearWindowPolicy(reference_year=2024), diagnostics=DiagnosticsCollector())

    def test_init(self, registry):
        """测试初始化"""
        assert not registry.is_parsed
        assert registry.context_count == 0

    def test_parse_contexts(self, registry):
        """测试解析上下文"""
        contexts = registry.parse()

        assert registry.is_parsed
        assert "CurrentYearInstant" in contexts
        assert "CurrentYearDuration" in contexts
        # 被引用但未定义的上下文也会补充
        assert "Prior2YearInstant" in contexts

    def test_explicit_instant_preserved(self, registry):
        """显式的时点日期原样保留"""
        registry.parse()
        context = registry.get_context_details("CurrentYearInstant")

        assert context.period_kind == PeriodKind.INSTANT
        assert context.instant == date(2024, 3, 31)
        assert context.period_end == date(2024, 3, 31)
        assert context.entity_identifier == "E00001-000"
        assert context.entity_scheme == "http://disclosure.edinet-fsa.go.jp"

    def test_duration_context(self, registry):
        registry.parse()
        context = registry.get("CurrentYearDuration")

        assert context.period_kind == PeriodKind.DURATION
        assert context.start_date == date(2023, 4, 1)
        assert context.end_date == date(2024, 3, 31)
        assert context.instant is None

    def test_dimensions_and_consolidation(self, registry):
        registry.parse()
        context = registry.get("CurrentYearInstant_NonConsolidatedMember")

        assert context.dimensions == (
            DimensionMember(
                dimension="jppfs_cor:ConsolidatedOrNonConsolidatedAxis",
                value="jppfs_cor:NonConsolidatedMember",
            ),
        )
        assert context.dimension_value("ConsolidatedOrNonConsolidatedAxis") == "jppfs_cor:NonConsolidatedMember"
        assert context.consolidation_kind == ConsolidationKind.NON_CONSOLIDATED
        assert context.fiscal_role == FiscalRole.CURRENT

    def test_date_fallback_uses_policy(self, registry):
        """ID中没有期间标记时按期末日判定"""
        registry.parse()
        # 2019 早于 2024-4，超出前期窗口
        assert registry.role_of("FilingDateInstant") == FiscalRole.UNKNOWN

    def test_synthesized_reference(self, registry):
        registry.parse()
        context = registry.get("Prior2YearInstant")

        assert context.inferred
        assert context.period_end is None
        assert context.period_kind == PeriodKind.UNKNOWN
        assert context.fiscal_role == FiscalRole.PREVIOUS
        assert registry.diagnostics.count(DiagnosticKind.UNRESOLVED_REFERENCE) == 1

    def test_roles_from_id_only(self, id_only_html):
        """没有日期时仅根据ID判定当期/前期"""
        root = etree.HTML(id_only_html)
        registry = ContextRegistry(root)
        registry.parse()

        assert registry.role_of("CurrentYearInstant") == FiscalRole.CURRENT
        assert registry.role_of("PriorYearInstant") == FiscalRole.PREVIOUS
        assert registry.get("CurrentYearInstant").period_end is None

    def test_get_contexts_by_role(self, registry):
        registry.parse()
        current_ids = {c.id for c in registry.get_contexts_by_role(FiscalRole.CURRENT)}

        assert {"CurrentYearInstant", "CurrentYearDuration", "CurrentYearInstant_NonConsolidatedMember"} <= current_ids

    def test_get_contexts_by_period_kind(self, registry):
        registry.parse()
        durations = registry.get_contexts_by_period_kind(PeriodKind.DURATION)

        assert [c.id for c in durations] == ["CurrentYearDuration"]

    def test_query_before_parse(self, registry):
        """测试在解析前调用查询方法会抛出异常"""
        with pytest.raises(RuntimeError):
            registry.get_context_details("CurrentYearInstant")
        with pytest.raises(RuntimeError):
            registry.get_contexts_by_role(FiscalRole.CURRENT)

    def test_document_relative_policy(self, sample_xbrl_xml):
        root = etree.fromstring(sample_xbrl_xml.encode('utf-8'))
        registry = ContextRegistry(root, policy=DocumentRelativePolicy())
        registry.parse()

        # 2019-06-28 是文档中第二晚的期末日
        assert registry.role_of("FilingDateInstant") == FiscalRole.PREVIOUS


class TestClassificationRules:
    """ID与维度的分类规则"""

    @pytest.mark.parametrize("context_id, expected", [
        ("CurrentYearInstant", FiscalRole.CURRENT),
        ("CurrentYearDuration_ReportableSegmentsMember", FiscalRole.CURRENT),
        ("Prior1YearInstant", FiscalRole.PREVIOUS),
        ("PriorYearDuration", FiscalRole.PREVIOUS),
        ("FilingDateInstant", FiscalRole.UNKNOWN),
    ])
    def test_fiscal_role_from_id(self, context_id, expected):
        assert classify_fiscal_role_from_id(context_id) == expected

    def test_non_consolidated_member_wins(self):
        members = (DimensionMember("jppfs_cor:ConsolidatedOrNonConsolidatedAxis", "jppfs_cor:NonConsolidatedMember"),)
        assert classify_consolidation("CurrentYearInstant", members) == ConsolidationKind.NON_CONSOLIDATED

    def test_consolidated_member(self):
        members = (DimensionMember("jppfs_cor:ConsolidatedOrNonConsolidatedAxis", "jppfs_cor:ConsolidatedMember"),)
        assert classify_consolidation("CurrentYearInstant", members) == ConsolidationKind.CONSOLIDATED

    def test_consolidation_from_id(self):
        assert classify_consolidation("CurrentYearInstant_NonConsolidated") == ConsolidationKind.NON_CONSOLIDATED
        assert classify_consolidation("CurrentYearInstant") == ConsolidationKind.UNKNOWN
