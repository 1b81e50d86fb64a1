"""表格处理模块

- TableClassifier: 表格打分与报表类型判定
- CellMapper: colspan展开、表头识别、事实绑定
- PeriodColumnDetector: 前期/当期列识别
- ValueNormalizer: 数值规范化
- HierarchyBuilder: 科目层级构建
- VirtualTableBuilder: 由事实合成表格
"""

from .cell_mapper import CellMapper
from .hierarchy_builder import HierarchyBuilder
from .period_columns import PeriodColumnDetector
from .table_classifier import TableClassifier
from .value_normalizer import ValueNormalizer
from .virtual_table import VirtualTableBuilder

__all__ = [
    'CellMapper',
    'HierarchyBuilder',
    'PeriodColumnDetector',
    'TableClassifier',
    'ValueNormalizer',
    'VirtualTableBuilder',
]
