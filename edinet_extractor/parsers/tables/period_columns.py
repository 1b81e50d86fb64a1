"""期间列识别

在表头的非科目列中找出前期、当期、增减额、增减率所在的列。
"""

import re
from collections import Counter
from datetime import date
from typing import Dict, List, Optional, Tuple

from edinet_extractor.core.error_handling import DiagnosticKind
from edinet_extractor.core.logging import get_logger
from edinet_extractor.models.financial_data import (
    FiscalRole,
    PeriodColumns,
    PeriodColumnSource,
    TableCandidate,
)
from edinet_extractor.parsers.document_scope import DocumentScope
from edinet_extractor.parsers.rules import Rule, contains_any, first_match, keyword_rule

logger = get_logger(__name__)

CHANGE_MARKERS = ("増減", "差額", "差異", "change")
RATE_MARKERS = ("%", "％", "率", "rate")

PREVIOUS = "previous"
CURRENT = "current"
CHANGE = "change"
CHANGE_RATE = "change_rate"


def _is_change_rate(text: str) -> bool:
    return contains_any(*CHANGE_MARKERS)(text) and contains_any(*RATE_MARKERS)(text)


# 「前期比増減」同时包含前期和增减标记，增减类规则必须在前
HEADER_MARKER_RULES: List[Rule[str]] = [
    Rule(label=CHANGE_RATE, predicate=_is_change_rate, name="change_rate"),
    keyword_rule(CHANGE, *CHANGE_MARKERS),
    keyword_rule(PREVIOUS, "前期", "前年", "前連結", "前事業年度", "prior", "previous"),
    keyword_rule(CURRENT, "当期", "当年", "当連結", "当事業年度", "current"),
]

WESTERN_DATE_PATTERN = re.compile(r"(\d{4})\s*[年/\-.]\s*(\d{1,2})\s*[月/\-.]\s*(\d{1,2})")
ERA_DATE_PATTERN = re.compile(r"(令和|平成)\s*(\d{1,2}|元)\s*年\s*(\d{1,2})\s*月\s*(\d{1,2})\s*日")
ERA_OFFSETS = {"令和": 2018, "平成": 1988}


def parse_header_date(text: str) -> Optional[date]:
    """从表头文字中读取日期（西历或和历）"""
    if not text:
        return None
    match = WESTERN_DATE_PATTERN.search(text)
    try:
        if match:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        match = ERA_DATE_PATTERN.search(text)
        if match:
            era_year = 1 if match.group(2) == "元" else int(match.group(2))
            return date(ERA_OFFSETS[match.group(1)] + era_year, int(match.group(3)), int(match.group(4)))
    except ValueError:
        return None
    return None


class PeriodColumnDetector:
    """期间列识别器

    依次尝试：表头文字标记、表头事实的上下文、数据列事实的上下文投票、
    表头日期先后，都失败且列数>=3时使用固定位置（低置信度）。
    """

    def __init__(self, scope: DocumentScope):
        self.scope = scope

    def detect(self, candidate: TableCandidate) -> PeriodColumns:
        header = candidate.header
        width = len(header)
        if width < 2:
            return PeriodColumns()

        markers = self._text_markers(candidate)
        change = markers.get(CHANGE)
        change_rate = markers.get(CHANGE_RATE)

        strategies = (
            (PeriodColumnSource.MARKER, markers),
            (PeriodColumnSource.CONTEXT, self._header_context_roles(candidate)),
            (PeriodColumnSource.CONTEXT, self._data_column_votes(candidate)),
            (PeriodColumnSource.DATE, self._header_dates(candidate)),
        )
        for source, found in strategies:
            if found.get(PREVIOUS) is not None or found.get(CURRENT) is not None:
                return PeriodColumns(
                    previous=found.get(PREVIOUS),
                    current=found.get(CURRENT),
                    change=change,
                    change_rate=change_rate,
                    source=source,
                )

        return self._positional(candidate, change, change_rate)

    def _label_columns(self, candidate: TableCandidate) -> List[Tuple[int, str]]:
        """非科目列的表头文字（跳过colspan占位）"""
        return [
            (index, cell.text)
            for index, cell in enumerate(candidate.header)
            if index > 0 and not cell.is_placeholder and cell.text
        ]

    def _text_markers(self, candidate: TableCandidate) -> Dict[str, int]:
        found: Dict[str, int] = {}
        for index, text in self._label_columns(candidate):
            role = first_match(HEADER_MARKER_RULES, [text], None)
            if role is not None and role not in found:
                found[role] = index
        return found

    def _header_context_roles(self, candidate: TableCandidate) -> Dict[str, int]:
        found: Dict[str, int] = {}
        for index, cell in enumerate(candidate.header):
            if index == 0 or cell.fact is None:
                continue
            role = self.scope.role_of(cell.fact)
            if role != FiscalRole.UNKNOWN and role.value not in found:
                found[role.value] = index
        return found

    def _data_column_votes(self, candidate: TableCandidate) -> Dict[str, int]:
        """按数据列中事实的会计期间角色投票"""
        votes: Dict[str, Counter] = {PREVIOUS: Counter(), CURRENT: Counter()}
        for row in candidate.rows:
            for index, cell in enumerate(row):
                if index == 0 or cell.fact is None:
                    continue
                role = self.scope.role_of(cell.fact)
                if role.value in votes:
                    votes[role.value][index] += 1

        found: Dict[str, int] = {}
        for role, counter in votes.items():
            if counter:
                # 票数相同时取靠左的列
                found[role] = min(counter, key=lambda column: (-counter[column], column))
        if found.get(PREVIOUS) is not None and found.get(PREVIOUS) == found.get(CURRENT):
            return {}
        return found

    def _header_dates(self, candidate: TableCandidate) -> Dict[str, int]:
        dated = [
            (parsed, index)
            for index, text in self._label_columns(candidate)
            for parsed in [parse_header_date(text)]
            if parsed is not None
        ]
        distinct = sorted({d for d, _ in dated})
        if len(distinct) < 2:
            return {}
        earliest = next(index for d, index in dated if d == distinct[-2])
        latest = next(index for d, index in dated if d == distinct[-1])
        return {PREVIOUS: earliest, CURRENT: latest}

    def _positional(
        self,
        candidate: TableCandidate,
        change: Optional[int],
        change_rate: Optional[int],
    ) -> PeriodColumns:
        width = len(candidate.header)
        if width >= 3:
            columns = PeriodColumns(
                previous=1,
                current=2,
                change=change if change is not None else (3 if width >= 4 else None),
                change_rate=change_rate if change_rate is not None else (4 if width >= 5 else None),
                source=PeriodColumnSource.POSITIONAL,
            )
        elif width == 2:
            # 只有一个数值列，视为当期
            columns = PeriodColumns(current=1, source=PeriodColumnSource.POSITIONAL)
        else:
            return PeriodColumns()

        self.scope.diagnostics.record(
            DiagnosticKind.AMBIGUOUS_CLASSIFICATION,
            f"period columns of {candidate.table_id} fall back to fixed positions",
            table_id=candidate.table_id,
            width=width,
        )
        return columns
