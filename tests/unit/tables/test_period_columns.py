"""PeriodColumnDetector单元测试"""

from datetime import date

import pytest
from lxml import etree

from edinet_extractor.core.error_handling import DiagnosticKind
from edinet_extractor.models.financial_data import PeriodColumnSource
from edinet_extractor.parsers.tables.cell_mapper import CellMapper
from edinet_extractor.parsers.tables.period_columns import PeriodColumnDetector, parse_header_date
from edinet_extractor.parsers.tables.table_classifier import TableClassifier


def _table(header_cells: str, data_rows: str = "") -> str:
    header = "".join(f"<th>{text}</th>" for text in header_cells.split("|"))
    return f'''<html><body>
        <h3>貸借対照表</h3>
        <table>
            <tr>{header}</tr>
            {data_rows or "<tr><td>資産合計</td><td>1</td><td>2</td><td>3</td><td>4</td></tr>"}
        </table>
    </body></html>'''


class TestPeriodColumnDetector:
    """PeriodColumnDetector测试类"""

    @pytest.fixture
    def detect(self, make_scope):
        def _detect(html: str):
            scope = make_scope(etree.HTML(html))
            candidate = TableClassifier(scope).classify_all()[0]
            mapped = CellMapper(scope).map(candidate)
            return scope, PeriodColumnDetector(scope).detect(mapped)
        return _detect

    def test_explicit_labels(self, detect):
        _, columns = detect(_table("科目|前期|当期"))

        assert (columns.previous, columns.current) == (1, 2)
        assert columns.source == PeriodColumnSource.MARKER
        assert not columns.is_low_confidence

    def test_explicit_labels_regardless_of_position(self, detect):
        """当期列在左、前期列在右时按标记识别"""
        _, columns = detect(_table("科目|当連結会計年度|前連結会計年度"))

        assert (columns.previous, columns.current) == (2, 1)

    def test_change_columns(self, detect):
        _, columns = detect(_table("科目|前期|当期|前期比増減|増減率(%)"))

        assert (columns.previous, columns.current) == (1, 2)
        assert columns.change == 3
        assert columns.change_rate == 4

    def test_data_column_votes(self, detect):
        html = '''<html><body>
            <div style="display:none">
                <xbrli:context id="CurrentYearInstant"></xbrli:context>
                <xbrli:context id="Prior1YearInstant"></xbrli:context>
            </div>
            <h3>貸借対照表</h3>
            <table>
                <tr><th>科目</th><th>2024年3月期</th><th>2023年3月期</th></tr>
                <tr><td>資産合計</td>
                    <td><span name="jppfs_cor:Assets" contextref="CurrentYearInstant">3,300</span></td>
                    <td><span name="jppfs_cor:Assets" contextref="Prior1YearInstant">3,000</span></td></tr>
            </table>
        </body></html>'''
        _, columns = detect(html)

        assert (columns.previous, columns.current) == (2, 1)
        assert columns.source == PeriodColumnSource.CONTEXT

    def test_header_dates(self, detect):
        _, columns = detect(_table("科目|2024年3月31日|2023年3月31日"))

        assert (columns.previous, columns.current) == (2, 1)
        assert columns.source == PeriodColumnSource.DATE

    def test_positional_fallback(self, detect):
        scope, columns = detect(_table("区分|A|B|C"))

        assert (columns.previous, columns.current, columns.change) == (1, 2, 3)
        assert columns.is_low_confidence
        assert scope.diagnostics.count(DiagnosticKind.AMBIGUOUS_CLASSIFICATION) == 1

    def test_single_value_column(self, detect):
        html = _table("区分|金額", "<tr><td>資産合計</td><td>100</td></tr>")
        _, columns = detect(html)

        assert columns.previous is None
        assert columns.current == 1
        assert columns.source == PeriodColumnSource.POSITIONAL


class TestParseHeaderDate:

    @pytest.mark.parametrize("text, expected", [
        ("2024年3月31日", date(2024, 3, 31)),
        ("2024/03/31現在", date(2024, 3, 31)),
        ("令和6年3月31日", date(2024, 3, 31)),
        ("平成31年3月31日", date(2019, 3, 31)),
        ("令和元年6月30日", date(2019, 6, 30)),
        ("当期", None),
        ("2024年13月1日", None),
    ])
    def test_parse_header_date(self, text, expected):
        assert parse_header_date(text) == expected
