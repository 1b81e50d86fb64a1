"""VirtualTableBuilder单元测试"""

from edinet_extractor.models.financial_data import ExtractionMode, StatementType
from edinet_extractor.parsers.tables.virtual_table import (
    VIRTUAL_HEADERS,
    VIRTUAL_TABLE_ID,
    VIRTUAL_TABLE_TITLE,
    VirtualTableBuilder,
)


class TestVirtualTableBuilder:
    """VirtualTableBuilder测试类"""

    def test_one_row_per_tag(self, make_scope, xbrl_root):
        scope = make_scope(xbrl_root)
        table = VirtualTableBuilder(scope).build()

        assert table.table_id == VIRTUAL_TABLE_ID
        assert table.title == VIRTUAL_TABLE_TITLE
        assert table.mode == ExtractionMode.VIRTUAL
        assert tuple(table.header_labels) == VIRTUAL_HEADERS
        assert [row[0].text for row in table.rows] == ["CashAndDeposits", "Assets", "Liabilities"]

    def test_values_placed_by_fiscal_role(self, make_scope, xbrl_root):
        scope = make_scope(xbrl_root)
        table = VirtualTableBuilder(scope).build()
        rows = {row[0].text: row for row in table.rows}

        cash = rows["CashAndDeposits"]
        assert cash[1].text == "1000000000"
        assert cash[1].fact.context_ref == "Prior1YearInstant"
        assert cash[2].text == "1200000000"
        assert cash[2].fact.context_ref == "CurrentYearInstant"

        # 只有当期值的标签，前期单元格为空
        assert rows["Assets"][1].fact is None
        assert rows["Assets"][1].text == ""
        assert rows["Assets"][2].text == "3300000000"

    def test_type_inferred_from_tags(self, make_scope, xbrl_root):
        table = VirtualTableBuilder(make_scope(xbrl_root)).build()

        assert table.table_type == StatementType.BALANCE_SHEET
        assert (table.period_columns.previous, table.period_columns.current) == (1, 2)
        assert table.statistics.row_count == 3
        assert table.statistics.column_count == 3

    def test_no_facts(self, make_scope, xbrl_root):
        scope = make_scope(xbrl_root)
        assert VirtualTableBuilder(scope).build(facts=[]) is None
