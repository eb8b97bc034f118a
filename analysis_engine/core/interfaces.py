"""
핵심 인터페이스 정의

모든 레이어에서 사용하는 표준 인터페이스
"""
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from analysis_engine.core.exceptions import ToolTimeoutError


# ============================================
# Enums
# ============================================
class ToolStatus(Enum):
    """도구 실행 상태 (pending -> running -> completed | error)"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (ToolStatus.COMPLETED, ToolStatus.ERROR)


class RequestStatus(Enum):
    """분석 요청 전체 상태 (하위 ToolRun 상태에서 계산됨)"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class ErrorPolicy(Enum):
    """도구 실패 시 요청 전체 상태 결정 정책"""
    ANY_ERROR = "any_error"    # 하나라도 error면 요청 error
    PARTIAL_OK = "partial_ok"  # 모두 종료되면 completed (부분 실패 허용)


class AuthMode(Enum):
    """Provider 인증 방식"""
    NONE = "none"
    KEY = "key"        # {key} 치환 또는 key_header
    BEARER = "bearer"  # Authorization: Bearer <key>


class CheckStatus(Enum):
    """Provider 프로브 결과 분류"""
    SUCCESS = "success"
    WARNING = "warning"  # 선택 Provider 실패
    ERROR = "error"      # 필수 Provider 실패
    PENDING = "pending"


class OverallHealth(Enum):
    """시스템 전체 헬스 분류"""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    CRITICAL = "critical"


# ============================================
# Data Classes
# ============================================
@dataclass
class ToolResult:
    """
    도구 실행 결과 (오케스트레이터는 내용을 해석하지 않음)

    도구는 ToolResult 또는 임의 객체를 반환할 수 있음
    """
    data: Any = None
    source: str = ""  # 사용한 데이터 소스 (primary/fallback provider 이름)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"data": self.data, "source": self.source, "metadata": self.metadata}


@dataclass
class ToolContext:
    """
    도구 실행 컨텍스트

    deadline은 time.monotonic() 기준. 시간 초과 또는 분석 취소 시 cancelled 이벤트가 설정되므로
    오래 걸리는 도구는 check()로 협조적으로 중단할 수 있음
    """
    request_id: str
    tool_id: str
    timeout: float
    deadline: float
    attempt: int = 1
    health: Any = None  # HealthValidator (선택)
    cancelled: threading.Event = field(default_factory=threading.Event, repr=False)

    @classmethod
    def create(cls, request_id: str, tool_id: str, timeout: float, **kwargs) -> "ToolContext":
        return cls(
            request_id=request_id,
            tool_id=tool_id,
            timeout=timeout,
            deadline=time.monotonic() + timeout,
            **kwargs,
        )

    def remaining(self) -> float:
        """남은 시간 (초, 음수 없음)"""
        return max(0.0, self.deadline - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.cancelled.is_set() or time.monotonic() >= self.deadline

    def check(self) -> None:
        """시간 초과 시 ToolTimeoutError 발생"""
        if self.expired:
            raise ToolTimeoutError(self.tool_id, self.timeout)


# ============================================
# Abstract Interfaces
# ============================================
class ToolExecutor(ABC):
    """분석 도구 인터페이스 (도구 1개 = 실행기 1개)"""

    @property
    @abstractmethod
    def tool_id(self) -> str:
        """도구 식별자"""
        pass

    @property
    def name(self) -> str:
        """표시용 이름 (기본: tool_id)"""
        return self.tool_id

    @abstractmethod
    def execute(self, target: str, options: dict[str, Any], ctx: ToolContext) -> Any:
        """
        대상 분석 실행

        Returns:
            결과 payload (ToolResult 권장)

        Raises:
            Exception: 실패 시 (오케스트레이터가 ExecutionError로 감싸서 기록)
        """
        pass
