"""数值规范化

把单元格或事实的原始文字转换为数值：
去掉千位分隔符和全角标点，把会计负号（△、▲、括号）统一为负号，
按 scale 放大、按 decimals 舍入。单位标签只用于显示，不影响数值本身。
"""

import re
import unicodedata
from dataclasses import replace
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, Overflow
from typing import Optional, Tuple

from edinet_extractor.core.logging import get_logger
from edinet_extractor.models.financial_data import Cell, Fact, NormalizedValue, TableCandidate
from edinet_extractor.parsers.document_scope import DocumentScope

logger = get_logger(__name__)

NEGATIVE_GLYPHS = ("△", "▲", "−", "―", "‐", "ー")
DASHES = {"-", "--", "—", "―", "－", "‐", "−", "ー"}
UNIT_SUFFIXES = ("百万円", "千円", "円", "株", "%", "％")
NUMBER_PATTERN = re.compile(r"^-?\d+(\.\d+)?$")


def clean_text(raw: Optional[str], comma_decimal: bool = False) -> str:
    """清洗数值文字，可以重复调用

    Args:
        raw: 原始文字
        comma_decimal: 逗号为小数点的格式（1.234,5）

    Returns:
        清洗后的文字；如果不是数值，返回去掉首尾空白的原文
    """
    if raw is None:
        return ""
    text = unicodedata.normalize("NFKC", raw).strip()
    if not text:
        return ""

    candidate = "".join(text.split())
    negative = False

    if candidate.startswith("(") and candidate.endswith(")"):
        negative = True
        candidate = candidate[1:-1]

    for glyph in NEGATIVE_GLYPHS:
        if candidate.startswith(glyph):
            negative = not negative
            candidate = candidate[len(glyph):]
            break
    else:
        if candidate.startswith("-"):
            negative = not negative
            candidate = candidate[1:]

    for suffix in UNIT_SUFFIXES:
        if candidate.endswith(suffix):
            candidate = candidate[: -len(suffix)]
            break

    if comma_decimal:
        candidate = candidate.replace(".", "").replace(",", ".")
    else:
        candidate = candidate.replace(",", "").replace("、", "")

    if not NUMBER_PATTERN.match(candidate):
        return text
    if negative and candidate.strip("0.") != "":
        return "-" + candidate
    return candidate


def render(number: Decimal, unit_label: str = "") -> str:
    """千位分隔符 + 单位标签"""
    text = f"{number:,f}"
    return f"{text} {unit_label}" if unit_label else text


def apply_scale(number: Decimal, scale: Optional[int]) -> Decimal:
    if not scale:
        return number
    return number * (Decimal(10) ** scale)


def apply_decimals(number: Decimal, decimals: Optional[str]) -> Decimal:
    """decimals为非负整数时舍入，INF或负数不处理"""
    if decimals is None:
        return number
    try:
        places = int(str(decimals).strip())
    except ValueError:
        return number
    if places < 0:
        return number
    try:
        return number.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # 舍入结果超出精度时保留原值
        logger.debug("value.decimals_ignored", decimals=decimals)
        return number


class ValueNormalizer:
    """数值规范化器，不会抛出异常"""

    def normalize(
        self,
        raw: Optional[str],
        scale: Optional[int] = None,
        decimals: Optional[str] = None,
        sign: Optional[str] = None,
        fmt: Optional[str] = None,
        unit_label: str = "",
    ) -> Optional[NormalizedValue]:
        """规范化一个值

        Args:
            raw: 原始文字
            scale: 10的幂次
            decimals: 小数位数
            sign: ix:nonFraction 的 sign 属性
            fmt: ix:nonFraction 的 format 属性
            unit_label: 显示用单位标签

        Returns:
            空文字或单独的横线返回None；无法解析时数值为None、文字原样保留
        """
        raw = raw or ""
        fmt_lower = (fmt or "").lower()
        text = clean_text(raw, comma_decimal="numcommadecimal" in fmt_lower)
        if not text:
            return None

        if text in DASHES:
            if "zerodash" in fmt_lower or "fixed-zero" in fmt_lower:
                zero = Decimal(0)
                return NormalizedValue(raw=raw, number=zero, text="0", display=render(zero, unit_label), unit_label=unit_label)
            return None

        number, text = self._to_decimal(text)
        if number is None:
            return NormalizedValue(raw=raw, number=None, text=raw, display=raw, unit_label=unit_label)

        if sign == "-":
            number = -number
        try:
            number = apply_scale(number, scale)
        except (InvalidOperation, Overflow):
            logger.warning("value.scale_out_of_range", raw=raw, scale=scale)
            return NormalizedValue(raw=raw, number=None, text=raw, display=raw, unit_label=unit_label)
        number = apply_decimals(number, decimals)
        return NormalizedValue(raw=raw, number=number, text=text, display=render(number, unit_label), unit_label=unit_label)

    def normalize_fact(self, fact: Fact, unit_label: str = "") -> Optional[NormalizedValue]:
        return self.normalize(
            fact.raw_text,
            scale=fact.scale,
            decimals=fact.decimals,
            sign=fact.sign,
            fmt=fact.format,
            unit_label=unit_label,
        )

    def _to_decimal(self, text: str) -> Tuple[Optional[Decimal], str]:
        if not NUMBER_PATTERN.match(text):
            return None, text
        try:
            return Decimal(text), text
        except InvalidOperation:
            return None, text

    def normalize_table(self, candidate: TableCandidate, scope: DocumentScope) -> TableCandidate:
        """为数据行中除科目列以外的单元格计算数值"""
        rows = []
        for row in candidate.rows:
            cells = []
            for index, cell in enumerate(row):
                if index == 0 or cell.is_placeholder:
                    cells.append(cell)
                    continue
                cells.append(replace(cell, value=self.normalize_cell(cell, scope)))
            rows.append(tuple(cells))
        return replace(candidate, rows=tuple(rows))

    def normalize_cell(self, cell: Cell, scope: DocumentScope) -> Optional[NormalizedValue]:
        if cell.fact is not None:
            return self.normalize_fact(cell.fact, unit_label=scope.unit_label(cell.fact))
        return self.normalize(cell.text)
