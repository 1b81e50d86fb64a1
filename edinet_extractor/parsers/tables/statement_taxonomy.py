"""财务报表词表

表格识别、类型判定和层级重建共用的关键词与标准科目表。
"""

from typing import Dict, List, Tuple

from edinet_extractor.models.financial_data import StatementType
from edinet_extractor.parsers.rules import Rule, keyword_rule

# 表格标题或正文中出现即视为财务表格
FINANCIAL_KEYWORDS: Tuple[str, ...] = (
    "貸借対照表", "損益計算書", "キャッシュ・フロー計算書", "株主資本等変動計算書",
    "財政状態", "経営成績", "包括利益", "連結財務諸表", "財務諸表",
    "資産", "負債", "純資産", "売上高", "売上", "収益", "費用", "利益", "営業",
    "balance sheet", "income statement", "cash flow", "statement of changes",
    "financial position", "financial performance", "comprehensive income",
    "assets", "liabilities", "equity", "revenue", "expenses", "profit", "loss",
    "jppfs", "jpcrp", "xbrl",
)

# 第一列科目名
FIRST_COLUMN_LABELS: Tuple[str, ...] = (
    "資産", "負債", "純資産", "売上", "費用", "利益",
    "cash", "assets", "liabilities", "equity", "revenue", "expenses",
)

# 表格类型：文字关键词（顺序即优先级）
# 现金流量表的专用标记先于损益表的宽泛科目名
TABLE_TYPE_TEXT_RULES: List[Rule[StatementType]] = [
    keyword_rule(
        StatementType.BALANCE_SHEET,
        "貸借対照表", "バランスシート", "資産の部", "負債の部", "純資産の部", "財政状態",
        "balance sheet", "financial position",
    ),
    keyword_rule(
        StatementType.CASH_FLOW,
        "キャッシュ・フロー", "キャッシュフロー", "営業活動による", "投資活動による", "財務活動による",
        "cash flow",
    ),
    keyword_rule(
        StatementType.INCOME_STATEMENT,
        "損益計算書", "経営成績", "売上高", "営業利益", "経常利益", "当期純利益",
        "income statement", "profit and loss",
    ),
    keyword_rule(StatementType.SHAREHOLDER, "大株主", "持株比率", "株主", "shareholder"),
]

# 表格类型：XBRL标签
TABLE_TYPE_TAG_RULES: List[Rule[StatementType]] = [
    keyword_rule(
        StatementType.BALANCE_SHEET,
        "jppfs_cor:BS", "BalanceSheet", "Assets", "Liabilities", "Equity",
        case_sensitive=True,
    ),
    keyword_rule(StatementType.CASH_FLOW, "CashFlow", case_sensitive=True),
    keyword_rule(
        StatementType.INCOME_STATEMENT,
        "ProfitAndLoss", "ProfitLoss", "Revenue", "NetSales", "Income",
        case_sensitive=True,
    ),
    keyword_rule(StatementType.SHAREHOLDER, "MajorShareholders", "Shareholder", case_sensitive=True),
]

# 由标签集合整体判定类型时使用的宽松关键词
AGGREGATE_TAG_RULES: List[Rule[StatementType]] = [
    keyword_rule(StatementType.BALANCE_SHEET, "assets", "liabilities", "equity", "資産"),
    keyword_rule(StatementType.INCOME_STATEMENT, "revenue", "income", "expense", "sales", "売上"),
    keyword_rule(StatementType.CASH_FLOW, "cash", "flow"),
]

CANONICAL_TITLES: Dict[StatementType, str] = {
    StatementType.BALANCE_SHEET: "貸借対照表",
    StatementType.INCOME_STATEMENT: "損益計算書",
    StatementType.CASH_FLOW: "キャッシュ・フロー計算書",
    StatementType.SHAREHOLDER: "大株主の状況",
}

STATEMENT_TYPES = (
    StatementType.BALANCE_SHEET,
    StatementType.INCOME_STATEMENT,
    StatementType.CASH_FLOW,
)

# 选表时计入权重的标签关键词
SELECTION_TAG_KEYWORDS: Tuple[str, ...] = (
    "jppfs", "jpcrp", "Asset", "Liability", "Equity", "Revenue", "Expense",
)

# 金额单位提示（単位：百万円）
UNIT_HINT_RULES: List[Rule[str]] = [
    keyword_rule("百万円", "百万円", "million yen", "millions of yen"),
    keyword_rule("千円", "千円", "thousand yen", "thousands of yen"),
    keyword_rule("円", "単位：円", "単位:円", "(円)", "（円）"),
]

# 标准科目 -> 下级科目（顺序即报表中的顺序）
BALANCE_SHEET_ITEMS: Dict[str, List[str]] = {
    "資産の部": [],
    "流動資産": [
        "現金及び預金", "受取手形", "売掛金", "有価証券", "商品及び製品", "仕掛品",
        "原材料及び貯蔵品", "前払費用", "繰延税金資産", "その他",
    ],
    "固定資産": [],
    "有形固定資産": [
        "建物", "構築物", "機械装置及び運搬具", "工具、器具及び備品", "土地", "リース資産", "建設仮勘定",
    ],
    "無形固定資産": ["のれん", "ソフトウエア", "リース資産", "その他"],
    "投資その他の資産": [
        "投資有価証券", "関係会社株式", "出資金", "関係会社出資金", "長期貸付金",
        "関係会社長期貸付金", "破産更生債権等", "長期前払費用", "繰延税金資産", "その他",
    ],
    "資産合計": [],
    "負債の部": [],
    "流動負債": [
        "支払手形", "買掛金", "短期借入金", "1年内償還予定の社債", "1年内返済予定の長期借入金",
        "リース債務", "未払金", "未払費用", "未払法人税等", "前受金", "預り金", "賞与引当金",
        "役員賞与引当金", "製品保証引当金", "その他",
    ],
    "固定負債": [
        "社債", "長期借入金", "リース債務", "繰延税金負債", "退職給付引当金", "役員退職慰労引当金", "その他",
    ],
    "負債合計": [],
    "純資産の部": [],
    "株主資本": ["資本金", "資本剰余金", "利益剰余金", "自己株式"],
    "評価・換算差額等": ["その他有価証券評価差額金", "繰延ヘッジ損益", "土地再評価差額金", "為替換算調整勘定"],
    "新株予約権": [],
    "非支配株主持分": [],
    "純資産合計": [],
    "負債純資産合計": [],
}

INCOME_STATEMENT_ITEMS: Dict[str, List[str]] = {
    "売上高": [],
    "売上原価": ["商品期首たな卸高", "当期商品仕入高", "合計", "商品期末たな卸高"],
    "売上総利益": [],
    "販売費及び一般管理費": [
        "広告宣伝費", "運搬費", "給料及び手当", "賞与引当金繰入額", "退職給付費用",
        "減価償却費", "研究開発費", "その他",
    ],
    "営業利益": [],
    "営業外収益": ["受取利息", "受取配当金", "為替差益", "持分法による投資利益", "その他"],
    "営業外費用": ["支払利息", "為替差損", "持分法による投資損失", "その他"],
    "経常利益": [],
    "特別利益": ["固定資産売却益", "投資有価証券売却益", "関係会社株式売却益", "新株予約権戻入益", "その他"],
    "特別損失": [
        "固定資産売却損", "固定資産除却損", "減損損失", "投資有価証券売却損",
        "投資有価証券評価損", "関係会社株式売却損", "関係会社株式評価損", "その他",
    ],
    "税引前当期純利益": [],
    "法人税、住民税及び事業税": [],
    "法人税等調整額": [],
    "法人税等合計": [],
    "当期純利益": [],
    "非支配株主に帰属する当期純利益": [],
    "親会社株主に帰属する当期純利益": [],
}

CASH_FLOW_ITEMS: Dict[str, List[str]] = {
    "営業活動によるキャッシュ・フロー": [
        "税引前当期純利益", "減価償却費", "のれん償却額", "減損損失", "貸倒引当金の増減額",
        "賞与引当金の増減額", "退職給付に係る負債の増減額", "受取利息及び受取配当金", "支払利息",
        "為替差損益", "持分法による投資損益", "投資有価証券売却損益", "固定資産売却損益",
        "売上債権の増減額", "たな卸資産の増減額", "仕入債務の増減額", "その他",
    ],
    "投資活動によるキャッシュ・フロー": [
        "定期預金の預入による支出", "定期預金の払戻による収入", "有形固定資産の取得による支出",
        "有形固定資産の売却による収入", "無形固定資産の取得による支出", "投資有価証券の取得による支出",
        "投資有価証券の売却による収入", "貸付けによる支出", "貸付金の回収による収入", "その他",
    ],
    "財務活動によるキャッシュ・フロー": [
        "短期借入金の純増減額", "長期借入れによる収入", "長期借入金の返済による支出",
        "社債の発行による収入", "社債の償還による支出", "自己株式の取得による支出",
        "配当金の支払額", "その他",
    ],
    "現金及び現金同等物に係る換算差額": [],
    "現金及び現金同等物の増減額": [],
    "現金及び現金同等物の期首残高": [],
    "現金及び現金同等物の期末残高": [],
}

STATEMENT_ITEMS: Dict[StatementType, Dict[str, List[str]]] = {
    StatementType.BALANCE_SHEET: BALANCE_SHEET_ITEMS,
    StatementType.INCOME_STATEMENT: INCOME_STATEMENT_ITEMS,
    StatementType.CASH_FLOW: CASH_FLOW_ITEMS,
}
