"""
Core 모듈 - 공통 인프라

- config: 설정 관리
- logger: 로깅 서비스
- cache: TTL 캐시
- exceptions: 커스텀 예외
- interfaces: 핵심 인터페이스
"""
from analysis_engine.core.config import Config, get_config
from analysis_engine.core.logger import get_logger, LoggerService, setup_logger_from_config
from analysis_engine.core.cache import CacheBackend, MemoryCache
from analysis_engine.core.exceptions import (
    BaseError,
    ConfigError,
    ConfigNotFoundError,
    ConfigValidationError,
    HealthError,
    ProviderConfigError,
    DuplicateProviderError,
    ProviderNotFoundError,
    ProbeError,
    OrchestratorError,
    UnknownToolError,
    NotFoundError,
    InvalidStateError,
    InvalidRequestError,
    CapacityExceededError,
    ExecutionError,
    ToolTimeoutError,
    DispatchError,
    ToolCancelledError,
    ExecutionTimeoutError,
)
from analysis_engine.core.interfaces import (
    ToolStatus,
    RequestStatus,
    ErrorPolicy,
    AuthMode,
    CheckStatus,
    OverallHealth,
    ToolResult,
    ToolContext,
    ToolExecutor,
)

__all__ = [
    # Config
    "Config",
    "get_config",
    # Logger
    "get_logger",
    "LoggerService",
    "setup_logger_from_config",
    # Cache
    "CacheBackend",
    "MemoryCache",
    # Exceptions
    "BaseError",
    "ConfigError",
    "ConfigNotFoundError",
    "ConfigValidationError",
    "HealthError",
    "ProviderConfigError",
    "DuplicateProviderError",
    "ProviderNotFoundError",
    "ProbeError",
    "OrchestratorError",
    "UnknownToolError",
    "NotFoundError",
    "InvalidStateError",
    "InvalidRequestError",
    "CapacityExceededError",
    "ExecutionError",
    "ToolTimeoutError",
    "DispatchError",
    "ToolCancelledError",
    "ExecutionTimeoutError",
    # Interfaces
    "ToolStatus",
    "RequestStatus",
    "ErrorPolicy",
    "AuthMode",
    "CheckStatus",
    "OverallHealth",
    "ToolResult",
    "ToolContext",
    "ToolExecutor",
]
