"""
错误处理与诊断收集
Error handling and non-fatal diagnostics for the extraction pipeline.

只有输入文档树无法构建时才向调用方抛出异常，其余问题都以诊断信息的形式
随提取结果一起返回。
"""

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from edinet_extractor.core.logging import get_logger

logger = get_logger(__name__)


class ErrorSeverity(Enum):
    """错误严重程度"""
    LOW = "low"          # 低置信度信号，可以忽略
    MEDIUM = "medium"    # 已降级处理
    HIGH = "high"        # 某个阶段失败，部分数据缺失


class DiagnosticKind(Enum):
    """诊断类别"""
    STRUCTURAL_ABSENCE = "structural_absence"              # 没有找到表格或事实
    AMBIGUOUS_CLASSIFICATION = "ambiguous_classification"  # 表格类型或期间列无法确定
    UNRESOLVED_REFERENCE = "unresolved_reference"          # 上下文/单位引用没有对应定义
    INHERITED_CONTEXT = "inherited_context"                # 通过祖先/兄弟元素继承的上下文
    STAGE_FAILURE = "stage_failure"                        # 单个阶段内部异常


class ExtractionError(Exception):
    """提取错误基类"""
    pass


class DocumentParseError(ExtractionError):
    """文档树无法构建"""

    def __init__(self, message: str, severity: ErrorSeverity = ErrorSeverity.HIGH):
        super().__init__(message)
        self.severity = severity


@dataclass(frozen=True)
class Diagnostic:
    """单条诊断信息"""
    kind: DiagnosticKind
    severity: ErrorSeverity
    message: str
    details: Tuple[Tuple[str, Any], ...] = ()

    def detail(self, key: str, default: Any = None) -> Any:
        for name, value in self.details:
            if name == key:
                return value
        return default

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
            "details": {name: value for name, value in self.details},
        }


@dataclass(frozen=True)
class ExtractionDiagnostics:
    """提取结果附带的统计与诊断信息"""
    file_type: str = "unknown"
    element_count: int = 0
    fact_count: int = 0
    context_count: int = 0
    unit_count: int = 0
    table_count: int = 0
    candidate_count: int = 0
    mapped_table_count: int = 0
    issues: Tuple[Diagnostic, ...] = ()

    @property
    def warnings(self) -> List[str]:
        return [issue.message for issue in self.issues]

    @property
    def has_warnings(self) -> bool:
        """是否有警告"""
        return len(self.issues) > 0

    def count(self, kind: DiagnosticKind) -> int:
        return sum(1 for issue in self.issues if issue.kind == kind)

    def of_kind(self, kind: DiagnosticKind) -> List[Diagnostic]:
        return [issue for issue in self.issues if issue.kind == kind]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_type": self.file_type,
            "element_count": self.element_count,
            "fact_count": self.fact_count,
            "context_count": self.context_count,
            "unit_count": self.unit_count,
            "table_count": self.table_count,
            "candidate_count": self.candidate_count,
            "mapped_table_count": self.mapped_table_count,
            "issues": [issue.to_dict() for issue in self.issues],
        }


# 每类诊断默认的严重程度
_DEFAULT_SEVERITY = {
    DiagnosticKind.STRUCTURAL_ABSENCE: ErrorSeverity.MEDIUM,
    DiagnosticKind.AMBIGUOUS_CLASSIFICATION: ErrorSeverity.LOW,
    DiagnosticKind.UNRESOLVED_REFERENCE: ErrorSeverity.LOW,
    DiagnosticKind.INHERITED_CONTEXT: ErrorSeverity.LOW,
    DiagnosticKind.STAGE_FAILURE: ErrorSeverity.HIGH,
}


class DiagnosticsCollector:
    """
    诊断收集器

    每个文档一个实例，记录各阶段的非致命问题并写入日志，
    最终冻结为 ExtractionDiagnostics。
    """

    def __init__(self):
        self._issues: List[Diagnostic] = []
        self._counts: Counter = Counter()

    def record(
        self,
        kind: DiagnosticKind,
        message: str,
        severity: Optional[ErrorSeverity] = None,
        **details: Any,
    ) -> Diagnostic:
        """记录一条诊断信息

        Args:
            kind: 诊断类别
            message: 面向用户的说明
            severity: 严重程度，缺省时按类别取默认值
            **details: 附加的结构化信息

        Returns:
            记录下来的诊断对象
        """
        severity = severity or _DEFAULT_SEVERITY[kind]
        diagnostic = Diagnostic(
            kind=kind,
            severity=severity,
            message=message,
            details=tuple(sorted(details.items())),
        )
        self._issues.append(diagnostic)
        self._counts[kind] += 1

        log = logger.warning if severity != ErrorSeverity.LOW else logger.debug
        log("diagnostic.recorded", kind=kind.value, severity=severity.value, message=message, **details)
        return diagnostic

    def record_failure(self, stage: str, error: Exception, **details: Any) -> Diagnostic:
        """记录阶段内部异常，同时保留堆栈信息"""
        logger.error("pipeline.stage_failed", stage=stage, error=str(error), exc_info=True)
        return self.record(
            DiagnosticKind.STAGE_FAILURE,
            f"{stage} failed: {error}",
            stage=stage,
            error_type=type(error).__name__,
            **details,
        )

    def count(self, kind: DiagnosticKind) -> int:
        return self._counts[kind]

    @property
    def issues(self) -> Tuple[Diagnostic, ...]:
        return tuple(self._issues)

    def freeze(self, **counts: Any) -> ExtractionDiagnostics:
        """生成不可变的诊断结果"""
        return ExtractionDiagnostics(issues=self.issues, **counts)
