"""XBRL解析核心模块

本模块包含从（内联）XBRL文档中读取结构化数据的组件：
- NamespaceResolver: 命名空间前缀解析
- ContextRegistry: 上下文解析与会计期间判定
- UnitRegistry: 单位解析
- FactScanner: 事实扫描与单元格定位
"""

from .fact_extractor import FactScanner
from .fiscal_policy import DocumentRelativePolicy, FiscalRolePolicy, YearWindowPolicy, build_policy
from .namespace_resolver import NamespaceResolver
from .unit_registry import UnitRegistry
from .xbrl_context import ContextRegistry

__all__ = [
    'FactScanner',
    'DocumentRelativePolicy',
    'FiscalRolePolicy',
    'YearWindowPolicy',
    'build_policy',
    'NamespaceResolver',
    'UnitRegistry',
    'ContextRegistry',
]
