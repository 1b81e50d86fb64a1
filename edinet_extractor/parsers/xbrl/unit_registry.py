"""XBRL单位注册表

解析货币、股数、比率等单位定义，并生成显示用标签。
"""

from typing import Dict, List, Optional, Tuple

from lxml import etree

from edinet_extractor.core.error_handling import DiagnosticKind, DiagnosticsCollector
from edinet_extractor.core.logging import get_logger
from edinet_extractor.models.financial_data import Unit, UnitKind
from edinet_extractor.parsers.rules import Rule, first_match, keyword_rule
from edinet_extractor.parsers.xbrl.element_utils import document_root, get_attr, is_element, local_name

logger = get_logger(__name__)

UNIT_XPATH = "//*[local-name()='unit' or substring-after(name(), ':')='unit']"

# 度量 -> 显示标签，未列出的度量原样显示
MEASURE_LABELS: Dict[str, str] = {
    "iso4217:JPY": "円",
    "iso4217:USD": "ドル",
    "iso4217:EUR": "ユーロ",
    "xbrli:pure": "",
    "pure": "",
    "xbrli:shares": "株",
    "shares": "株",
    "percent": "%",
    "ratio": "%",
}

# 仅凭unitRef推断度量
UNIT_ID_RULES: List[Rule[str]] = [
    keyword_rule("iso4217:JPY", "JPY", case_sensitive=True),
    keyword_rule("iso4217:USD", "USD", case_sensitive=True),
    keyword_rule("iso4217:EUR", "EUR", case_sensitive=True),
    keyword_rule("xbrli:shares", "Share"),
    keyword_rule("percent", "Percent", "Ratio"),
    keyword_rule("xbrli:pure", "Pure"),
]


def measure_label(measure: Optional[str]) -> str:
    """返回度量的显示标签"""
    if not measure:
        return ""
    measure = measure.strip()
    if measure in MEASURE_LABELS:
        return MEASURE_LABELS[measure]
    lowered = measure.lower()
    if lowered in MEASURE_LABELS:
        return MEASURE_LABELS[lowered]
    if "percent" in lowered or "ratio" in lowered:
        return "%"
    return measure


def fraction_label(numerator: str, denominator: str) -> str:
    """分数单位标签：两边都有标签时为 "A/B"，否则使用原始度量"""
    num_label = measure_label(numerator)
    denom_label = measure_label(denominator)
    if num_label and denom_label:
        return f"{num_label}/{denom_label}"
    return f"{numerator}/{denominator}"


def infer_measure(unit_id: str) -> Optional[str]:
    return first_match(UNIT_ID_RULES, [unit_id], None)


class UnitRegistry:
    """XBRL单位注册表

    每个文档一个实例，生命周期与上下文注册表相同。
    """

    def __init__(self, document: etree._Element, diagnostics: Optional[DiagnosticsCollector] = None):
        """初始化单位注册表

        Args:
            document: 已解析的lxml Element对象
            diagnostics: 诊断收集器
        """
        self.document = document_root(document)
        self.diagnostics = diagnostics
        self.units: Dict[str, Unit] = {}
        self._parsed = False

    def parse(self) -> Dict[str, Unit]:
        """解析文档中的所有单位

        Returns:
            以ID为键的单位字典
        """
        self.units = {}
        explicit = 0
        for unit_elem in self.document.xpath(UNIT_XPATH):
            unit = self._extract_unit(unit_elem)
            if unit is not None and unit.id not in self.units:
                self.units[unit.id] = unit
                explicit += 1

        synthesized = self._synthesize_bare_references()
        self._parsed = True
        logger.info("units.parsed", explicit=explicit, synthesized=synthesized, total=len(self.units))
        return dict(self.units)

    def _extract_unit(self, unit_elem: etree._Element) -> Optional[Unit]:
        unit_id = get_attr(unit_elem, "id")
        if not unit_id:
            return None

        divide = self._find_child(unit_elem, "divide")
        if divide is not None:
            numerator = self._measures_under(self._find_child(divide, "unitnumerator"))
            denominator = self._measures_under(self._find_child(divide, "unitdenominator"))
            num = "*".join(numerator)
            denom = "*".join(denominator)
            return Unit(
                id=unit_id,
                measure=f"{num}/{denom}",
                kind=UnitKind.FRACTION,
                numerator=num,
                denominator=denom,
                label=fraction_label(num, denom),
            )

        measures = self._measures_under(unit_elem)
        measure = "*".join(measures) if measures else unit_id
        return Unit(id=unit_id, measure=measure, label=measure_label(measure))

    def _find_child(self, parent: Optional[etree._Element], name: str) -> Optional[etree._Element]:
        if parent is None:
            return None
        for child in parent:
            if local_name(child) == name:
                return child
        return None

    def _measures_under(self, parent: Optional[etree._Element]) -> List[str]:
        if parent is None:
            return []
        return [
            child.text.strip()
            for child in parent
            if local_name(child) == "measure" and child.text and child.text.strip()
        ]

    def _synthesize_bare_references(self) -> int:
        """为只被 unitRef 引用、没有定义的单位补充记录"""
        count = 0
        for element in self.document.iter():
            if not is_element(element):
                continue
            unit_ref = get_attr(element, "unitRef")
            if not unit_ref or unit_ref in self.units:
                continue

            self.units[unit_ref] = self.synthesize(unit_ref)
            count += 1
            if self.diagnostics is not None:
                self.diagnostics.record(
                    DiagnosticKind.UNRESOLVED_REFERENCE,
                    f"unit '{unit_ref}' is referenced but not defined",
                    reference=unit_ref,
                    reference_type="unit",
                )
        return count

    @staticmethod
    def synthesize(unit_id: str) -> Unit:
        """根据ID子串推断单位（JPYPerShares -> 円/株）"""
        numerator, denominator = _split_per(unit_id)
        if numerator and denominator:
            num = infer_measure(numerator)
            denom = infer_measure(denominator)
            if num and denom:
                return Unit(
                    id=unit_id,
                    measure=f"{num}/{denom}",
                    kind=UnitKind.FRACTION,
                    numerator=num,
                    denominator=denom,
                    label=fraction_label(num, denom),
                    inferred=True,
                )

        measure = infer_measure(unit_id)
        if measure is None:
            return Unit(id=unit_id, measure=unit_id, label=unit_id, inferred=True)
        return Unit(id=unit_id, measure=measure, label=measure_label(measure), inferred=True)

    def get(self, unit_ref: Optional[str]) -> Optional[Unit]:
        if not unit_ref:
            return None
        return self.units.get(unit_ref)

    def label_for(self, unit_ref: Optional[str]) -> str:
        """返回单位的显示标签，未知单位返回空字符串"""
        unit = self.get(unit_ref)
        return unit.label if unit else ""

    def get_all_units(self) -> Dict[str, Unit]:
        if not self._parsed:
            raise RuntimeError("单位尚未解析，请先调用parse()")
        return dict(self.units)

    @property
    def is_parsed(self) -> bool:
        return self._parsed

    @property
    def unit_count(self) -> int:
        return len(self.units)


def _split_per(unit_id: str) -> Tuple[Optional[str], Optional[str]]:
    if "Per" not in unit_id:
        return None, None
    numerator, _, denominator = unit_id.partition("Per")
    return numerator or None, denominator or None
