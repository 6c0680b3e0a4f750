"""
Exception Framework
커넥터 전역의 구조화된 예외 처리.

계층:
- ConnectorError (base)
  - ConfigError (설정 누락, 생성 시점에 즉시 실패)
  - InvalidKeyError (잘못된 키, I/O 없이 콜백으로 보고)
  - UnsupportedKeyError (3개 이상 세그먼트 키)
  - MalformedValueError (값 형태 결함)
  - ConnectivityError (준비 확인 실패, 연결 끊김)
"""
from typing import Any, Dict, Optional, List
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
import logging

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """에러 심각도"""
    LOW = "low"           # 로그만, 호출자에게 보고
    MEDIUM = "medium"
    HIGH = "high"         # 작업 실패
    CRITICAL = "critical" # 커넥터 생성 불가


class ErrorCategory(Enum):
    """에러 카테고리"""
    CONFIG = "config"
    KEY = "key"
    VALUE = "value"
    STORAGE = "storage"
    NETWORK = "network"
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """에러 컨텍스트"""
    module: str
    operation: str
    timestamp: datetime = field(default_factory=datetime.now)
    extra: Dict[str, Any] = field(default_factory=dict)


class ConnectorError(Exception):
    """Base exception for the storage connector"""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        retryable: bool = False,
        context: Optional[ErrorContext] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.retryable = retryable
        self.context = context
        self.cause = cause
        self.timestamp = datetime.now()

        self._log()

    def _log(self) -> None:
        """에러 로깅"""
        log_data = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
        }

        if self.context:
            log_data["module"] = self.context.module
            log_data["operation"] = self.context.operation

        if self.severity == ErrorSeverity.CRITICAL:
            logger.critical(f"CRITICAL ERROR: {log_data}")
        elif self.severity == ErrorSeverity.HIGH:
            logger.error(f"ERROR: {log_data}")
        elif self.severity == ErrorSeverity.MEDIUM:
            logger.warning(f"WARNING: {log_data}")
        else:
            logger.debug(f"DEBUG: {log_data}")

    def to_dict(self) -> Dict[str, Any]:
        """직렬화"""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "timestamp": self.timestamp.isoformat(),
        }

        if self.context:
            result["context"] = {
                "module": self.context.module,
                "operation": self.context.operation,
                **self.context.extra,
            }

        if self.cause:
            result["cause"] = str(self.cause)

        return result


class ConfigError(ConnectorError):
    """설정 관련 에러"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        context = ErrorContext(
            module="config",
            operation="load",
            extra={"config_key": config_key},
        )
        super().__init__(
            message=message,
            category=ErrorCategory.CONFIG,
            severity=ErrorSeverity.CRITICAL,
            retryable=False,
            context=context,
            cause=kwargs.get("cause"),
        )
        self.config_key = config_key


class InvalidKeyError(ConnectorError):
    """세그먼트로 분해할 수 없는 키"""

    def __init__(self, key: str, operation: str = "segment", **kwargs):
        context = ErrorContext(
            module="key_segmenter",
            operation=operation,
            extra={"key": key},
        )
        super().__init__(
            message=kwargs.get("message", f"Invalid key {key}"),
            category=ErrorCategory.KEY,
            severity=ErrorSeverity.LOW,
            retryable=False,
            context=context,
        )
        self.key = key


class UnsupportedKeyError(InvalidKeyError):
    """Key addresses a relation path (three or more segments)."""

    def __init__(self, key: str, segment_count: int, operation: str = "synthesize"):
        super().__init__(
            key,
            operation=operation,
            message=f"Unsupported key {key}: relation paths of {segment_count} segments are not implemented",
        )
        self.segment_count = segment_count


class MalformedValueError(ConnectorError):
    """값에 필수 마커(_d, __ds)가 없음 - 프로그래밍 결함"""

    def __init__(
        self,
        message: str,
        direction: str = "unknown",
        missing_marker: Optional[str] = None,
    ):
        context = ErrorContext(
            module="transform",
            operation=direction,
            extra={"missing_marker": missing_marker},
        )
        super().__init__(
            message=message,
            category=ErrorCategory.VALUE,
            severity=ErrorSeverity.HIGH,
            retryable=False,
            context=context,
        )
        self.missing_marker = missing_marker


class ConnectivityError(ConnectorError):
    """Backend unreachable: failed readiness probe or dropped connection."""

    def __init__(
        self,
        message: str,
        uri: Optional[str] = None,
        **kwargs
    ):
        context = ErrorContext(
            module="executor",
            operation=kwargs.get("operation", "connect"),
            extra={"uri": uri},
        )
        super().__init__(
            message=message,
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.HIGH,
            retryable=True,
            context=context,
            cause=kwargs.get("cause"),
        )


# ==============================================================================
# Error Registry
# ==============================================================================

class ErrorRegistry:
    """에러 레지스트리 - 커넥터가 보고한 에러 수집"""

    def __init__(self, max_size: int = 1000):
        self._errors: List[Dict] = []
        self._max_size = max_size

    def record(self, error: BaseException) -> None:
        """에러 기록 (백엔드 예외도 요약해서 보관)"""
        if len(self._errors) >= self._max_size:
            self._errors.pop(0)  # FIFO
        if isinstance(error, ConnectorError):
            self._errors.append(error.to_dict())
        else:
            self._errors.append({
                "error_type": error.__class__.__name__,
                "message": str(error),
                "category": ErrorCategory.STORAGE.value,
                "severity": ErrorSeverity.HIGH.value,
                "retryable": False,
                "timestamp": datetime.now().isoformat(),
            })

    def get_recent(self, count: int = 10) -> List[Dict]:
        """최근 에러"""
        return self._errors[-count:]

    def get_by_category(self, category: ErrorCategory) -> List[Dict]:
        """카테고리별 에러"""
        return [e for e in self._errors if e["category"] == category.value]

    def get_stats(self) -> Dict[str, Any]:
        """통계"""
        stats = {
            "total": len(self._errors),
            "by_category": {},
            "by_severity": {},
        }

        for e in self._errors:
            cat = e["category"]
            sev = e["severity"]
            stats["by_category"][cat] = stats["by_category"].get(cat, 0) + 1
            stats["by_severity"][sev] = stats["by_severity"].get(sev, 0) + 1

        return stats

    def clear(self) -> None:
        """초기화"""
        self._errors.clear()


# 싱글톤
_error_registry = ErrorRegistry()


def get_error_registry() -> ErrorRegistry:
    return _error_registry
