"""会计期间角色的日期回退策略

上下文ID中没有可识别的当期/前期标记时，根据期末日推断角色。
策略可以替换：默认按当前年份的固定窗口判断，也可以按文档内日期的相对顺序判断。
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Iterable, List, Optional

from edinet_extractor.core.config import FiscalPeriodSettings
from edinet_extractor.core.logging import get_logger
from edinet_extractor.models.financial_data import FiscalRole

logger = get_logger(__name__)


class FiscalRolePolicy(ABC):
    """按期末日判定会计期间角色的策略"""

    name = "abstract"

    def observe(self, period_ends: Iterable[date]) -> None:
        """在分类前接收文档中出现的全部期末日"""
        return None

    @abstractmethod
    def classify(self, period_end: Optional[date]) -> FiscalRole:
        raise NotImplementedError


class YearWindowPolicy(FiscalRolePolicy):
    """固定年份窗口

    期末年份 >= 基准年 - current_window 视为当期，
    >= 基准年 - previous_window 视为前期，其余未知。
    """

    name = "year_window"

    def __init__(self, reference_year: Optional[int] = None, current_window: int = 2, previous_window: int = 4):
        self.reference_year = reference_year or date.today().year
        self.current_window = current_window
        self.previous_window = previous_window

    def classify(self, period_end: Optional[date]) -> FiscalRole:
        if period_end is None:
            return FiscalRole.UNKNOWN
        if period_end.year >= self.reference_year - self.current_window:
            return FiscalRole.CURRENT
        if period_end.year >= self.reference_year - self.previous_window:
            return FiscalRole.PREVIOUS
        return FiscalRole.UNKNOWN


class DocumentRelativePolicy(FiscalRolePolicy):
    """文档内相对顺序

    文档中最晚的期末日为当期，次晚的为前期，更早的未知。
    不依赖处理时的系统日期。
    """

    name = "document_relative"

    def __init__(self):
        self._ranked: List[date] = []

    def observe(self, period_ends: Iterable[date]) -> None:
        self._ranked = sorted({d for d in period_ends if d is not None}, reverse=True)

    def classify(self, period_end: Optional[date]) -> FiscalRole:
        if period_end is None or not self._ranked:
            return FiscalRole.UNKNOWN
        if period_end == self._ranked[0]:
            return FiscalRole.CURRENT
        if len(self._ranked) > 1 and period_end == self._ranked[1]:
            return FiscalRole.PREVIOUS
        return FiscalRole.UNKNOWN


def build_policy(fiscal_settings: FiscalPeriodSettings, reference_date: Optional[date] = None) -> FiscalRolePolicy:
    """根据配置构建策略

    Args:
        fiscal_settings: 会计期间配置
        reference_date: 基准日，优先于配置中的基准年

    Returns:
        策略实例
    """
    if fiscal_settings.policy == DocumentRelativePolicy.name:
        return DocumentRelativePolicy()

    if fiscal_settings.policy != YearWindowPolicy.name:
        logger.warning("fiscal_policy.unknown", policy=fiscal_settings.policy, fallback=YearWindowPolicy.name)

    reference_year = reference_date.year if reference_date else fiscal_settings.reference_year
    return YearWindowPolicy(
        reference_year=reference_year,
        current_window=fiscal_settings.current_window_years,
        previous_window=fiscal_settings.previous_window_years,
    )
