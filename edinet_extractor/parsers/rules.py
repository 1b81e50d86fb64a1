"""
有序分类规则
Ordered (predicate, label) classification rules

会计期间、合并口径、单位推断和表格类型都用同一种规则表示：
按顺序求值，第一条命中的规则给出结果。
"""

from dataclasses import dataclass
from typing import Callable, Generic, Iterable, Sequence, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Rule(Generic[T]):
    """一条分类规则"""
    label: T
    predicate: Callable[[str], bool]
    name: str = ""

    def matches(self, value: str) -> bool:
        return bool(value) and self.predicate(value)


def contains_any(*needles: str, case_sensitive: bool = False) -> Callable[[str], bool]:
    """子串匹配谓词"""
    if case_sensitive:
        return lambda value: any(needle in value for needle in needles)
    lowered = tuple(needle.lower() for needle in needles)
    return lambda value: any(needle in value.lower() for needle in lowered)


def keyword_rule(label: T, *keywords: str, case_sensitive: bool = False) -> Rule[T]:
    return Rule(label=label, predicate=contains_any(*keywords, case_sensitive=case_sensitive), name=keywords[0])


def first_match(rules: Sequence[Rule[T]], values: Iterable[str], default: T) -> T:
    """按规则顺序求值

    每条规则依次检查所有候选文本，先命中的规则优先。
    """
    values = [value for value in values if value]
    for rule in rules:
        if any(rule.matches(value) for value in values):
            return rule.label
    return default
