"""
커스텀 예외 클래스 정의

모든 레이어에서 사용하는 표준화된 예외 처리
"""
from typing import Any


class BaseError(Exception):
    """모든 커스텀 예외의 기본 클래스"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# ============================================
# Configuration Errors
# ============================================
class ConfigError(BaseError):
    """설정 관련 오류"""
    pass


class ConfigNotFoundError(ConfigError):
    """설정 파일을 찾을 수 없음"""
    pass


class ConfigValidationError(ConfigError):
    """설정 값 유효성 검증 실패"""
    pass


# ============================================
# Health Errors (Provider Registry / Validator)
# ============================================
class HealthError(BaseError):
    """외부 Provider 헬스체크 관련 오류"""
    pass


class ProviderConfigError(HealthError):
    """Provider 정의가 잘못됨 (프로그래머 오류)"""
    pass


class DuplicateProviderError(HealthError):
    """이미 등록된 Provider 이름"""

    def __init__(self, name: str):
        super().__init__(f"이미 등록된 Provider입니다: {name}", {"provider": name})
        self.name = name


class ProviderNotFoundError(HealthError):
    """등록되지 않은 Provider"""

    def __init__(self, name: str):
        super().__init__(f"등록되지 않은 Provider입니다: {name}", {"provider": name})
        self.name = name


class ProbeError(HealthError):
    """
    Provider 프로브 실패 (네트워크/인증/non-2xx)

    호출자에게 던지지 않고 HealthCheckResult 데이터로 변환됨
    """

    def __init__(
        self,
        message: str,
        provider: str,
        required: bool = False,
        status_code: int | None = None,
    ):
        super().__init__(
            message,
            {"provider": provider, "required": required, "status_code": status_code},
        )
        self.provider = provider
        self.required = required
        self.status_code = status_code


# ============================================
# Orchestrator Errors (요청 형태 오류 - 호출자에게 동기적으로 전달)
# ============================================
class OrchestratorError(BaseError):
    """오케스트레이터 관련 오류"""
    pass


class UnknownToolError(OrchestratorError):
    """알 수 없는 도구 ID (또는 빈 도구 목록)"""

    def __init__(self, message: str, tool_ids: list[str] | None = None):
        super().__init__(message, {"tool_ids": tool_ids or []})
        self.tool_ids = tool_ids or []


class NotFoundError(OrchestratorError):
    """존재하지 않거나 만료된 요청 ID"""

    def __init__(self, request_id: str):
        super().__init__(f"요청을 찾을 수 없습니다: {request_id}", {"request_id": request_id})
        self.request_id = request_id


class InvalidStateError(OrchestratorError):
    """허용되지 않는 상태 전이 (예: error가 아닌 도구 재시도)"""
    pass


class InvalidRequestError(OrchestratorError):
    """요청 값 유효성 검증 실패"""
    pass


class CapacityExceededError(OrchestratorError):
    """동시 실행 요청 수 초과"""

    def __init__(self, limit: int):
        super().__init__(f"동시 실행 가능한 요청 수를 초과했습니다: {limit}", {"limit": limit})
        self.limit = limit


# ============================================
# Execution Errors (도구 실행 오류 - ToolRun 데이터로만 관찰됨)
# ============================================
class ExecutionError(BaseError):
    """도구 실행 실패 (원인 예외를 감쌈)"""

    kind: str = "execution"

    def __init__(
        self,
        message: str,
        tool_id: str = "",
        cause: BaseException | None = None,
    ):
        details: dict[str, Any] = {"tool_id": tool_id, "kind": self.kind}
        if cause is not None:
            details["cause"] = type(cause).__name__
        super().__init__(message, details)
        self.tool_id = tool_id
        self.cause = cause

    @property
    def is_timeout(self) -> bool:
        return self.kind == "timeout"

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "message": self.message,
            "cause": type(self.cause).__name__ if self.cause is not None else None,
        }


class ToolTimeoutError(ExecutionError):
    """도구 실행 시간 초과"""

    kind = "timeout"

    def __init__(self, tool_id: str, timeout: float):
        super().__init__(f"도구 실행 시간 초과: {tool_id} ({timeout:g}초)", tool_id)
        self.timeout = timeout


class DispatchError(ExecutionError):
    """도구 실행 디스패치 실패 (인프라 오류)"""

    kind = "dispatch"


class ToolCancelledError(ExecutionError):
    """호출자가 분석을 취소함"""

    kind = "cancelled"

    def __init__(self, tool_id: str):
        super().__init__(f"도구 실행이 취소되었습니다: {tool_id}", tool_id)


class ExecutionTimeoutError(OrchestratorError):
    """wait_for_completion 대기 시간 초과"""

    def __init__(self, request_id: str, timeout: float):
        super().__init__(
            f"요청이 제한 시간 내에 완료되지 않았습니다: {request_id}",
            {"request_id": request_id, "timeout": timeout},
        )
        self.request_id = request_id
        self.timeout = timeout
