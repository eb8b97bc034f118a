"""
Health 데이터 모델

- ProviderDescriptor: 외부 데이터 Provider 정의 (등록 후 불변)
- HealthCheckResult: Provider 1개의 최신 프로브 결과
- HealthSummary: 전체 결과 집계 (요청마다 재계산)
"""
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from analysis_engine.core.exceptions import ProviderConfigError
from analysis_engine.core.interfaces import AuthMode, CheckStatus, OverallHealth

KEY_PLACEHOLDER = "{key}"


@dataclass(frozen=True)
class ProbeDefinition:
    """테스트 프로브 정의"""
    path: str = ""
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ProviderDescriptor:
    """
    외부 Provider 정의

    required=True 인 Provider의 실패는 전체 헬스를 critical로 만들고,
    선택 Provider의 실패는 warning으로만 기록됨
    """
    name: str
    base_url: str
    auth_mode: AuthMode = AuthMode.NONE
    api_key: str = field(default="", repr=False)
    required: bool = False
    timeout: float = 10.0
    probe: ProbeDefinition = field(default_factory=ProbeDefinition)
    key_header: str = ""
    description: str = ""

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ProviderConfigError("Provider 이름이 비어 있습니다")
        if not self.base_url:
            raise ProviderConfigError(
                f"Provider base_url이 비어 있습니다: {self.name}", {"provider": self.name}
            )
        if self.timeout <= 0:
            raise ProviderConfigError(
                f"Provider timeout은 0보다 커야 합니다: {self.name}",
                {"provider": self.name, "timeout": self.timeout},
            )

    @property
    def needs_key(self) -> bool:
        return self.auth_mode is not AuthMode.NONE

    def build_url(self) -> str:
        """프로브 URL 생성 ({key} 치환)"""
        url = self.base_url + self.probe.path
        return url.replace(KEY_PLACEHOLDER, self.api_key)

    def build_headers(self) -> dict[str, str]:
        """프로브 헤더 생성 (인증 방식 반영)"""
        headers = {
            name: value.replace(KEY_PLACEHOLDER, self.api_key)
            for name, value in self.probe.headers.items()
        }
        if self.auth_mode is AuthMode.BEARER:
            headers["Authorization"] = f"Bearer {self.api_key}"
        elif self.auth_mode is AuthMode.KEY and self.key_header:
            headers[self.key_header] = self.api_key
        return headers

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProviderDescriptor":
        """
        설정 dict에서 생성

        예:
            {"name": "Etherscan", "base_url": "https://api.etherscan.io/api",
             "auth": "key", "api_key_env": "ETHERSCAN_API_KEY", "required": true,
             "timeout": 15, "probe": {"path": "?module=stats&apikey={key}"}}
        """
        try:
            auth_mode = AuthMode(str(data.get("auth", "none")).lower())
        except ValueError:
            raise ProviderConfigError(
                f"지원하지 않는 인증 방식: {data.get('auth')}", {"provider": data.get("name")}
            )

        api_key = data.get("api_key") or ""
        if not api_key and data.get("api_key_env"):
            api_key = os.getenv(data["api_key_env"], "")

        probe_data = data.get("probe") or {}
        probe = ProbeDefinition(
            path=probe_data.get("path", ""),
            method=str(probe_data.get("method", "GET")).upper(),
            headers=dict(probe_data.get("headers") or {}),
        )

        return cls(
            name=str(data.get("name", "")),
            base_url=str(data.get("base_url", "")),
            auth_mode=auth_mode,
            api_key=api_key,
            required=bool(data.get("required", False)),
            timeout=float(data.get("timeout", 10.0)),
            probe=probe,
            key_header=data.get("key_header", ""),
            description=data.get("description", ""),
        )


@dataclass(frozen=True)
class ProviderDetails:
    """응답 메타데이터에서 추출한 부가 정보 (있을 때만)"""
    rate_limit_remaining: int | None = None
    rate_limit_reset: datetime | None = None
    version: str | None = None

    def to_dict(self) -> dict:
        return {
            "rate_limit_remaining": self.rate_limit_remaining,
            "rate_limit_reset": self.rate_limit_reset.isoformat() if self.rate_limit_reset else None,
            "version": self.version,
        }


@dataclass(frozen=True)
class HealthCheckResult:
    """Provider 프로브 결과 (다음 프로브 결과로 대체됨)"""
    provider: str
    is_valid: bool
    is_connected: bool
    status: CheckStatus
    response_time_ms: float = 0.0
    details: ProviderDetails | None = None
    error: str | None = None
    checked_at: datetime = field(default_factory=datetime.now)

    @property
    def ok(self) -> bool:
        return self.status is CheckStatus.SUCCESS

    def to_dict(self) -> dict:
        return {
            "provider": self.provider,
            "is_valid": self.is_valid,
            "is_connected": self.is_connected,
            "status": self.status.value,
            "response_time_ms": round(self.response_time_ms, 1),
            "details": self.details.to_dict() if self.details else None,
            "error": self.error,
            "checked_at": self.checked_at.isoformat(),
        }


@dataclass(frozen=True)
class HealthSummary:
    """전체 Provider 헬스 집계"""
    total: int
    valid: int
    connected: int
    failed: int
    overall_status: OverallHealth
    results: tuple[HealthCheckResult, ...] = ()
    required: frozenset[str] = frozenset()
    checked_at: datetime = field(default_factory=datetime.now)

    def get(self, name: str) -> HealthCheckResult | None:
        """Provider 결과 조회"""
        for result in self.results:
            if result.provider == name:
                return result
        return None

    def healthy_providers(self) -> list[HealthCheckResult]:
        return [r for r in self.results if r.ok]

    def failed_providers(self) -> list[HealthCheckResult]:
        return [r for r in self.results if not r.ok]

    def required_status(self) -> dict:
        """필수 Provider 상태 (healthy/total/critical)"""
        required_results = [r for r in self.results if r.provider in self.required]
        healthy = sum(1 for r in required_results if r.ok)
        return {
            "healthy": healthy,
            "total": len(required_results),
            "critical": healthy < len(required_results),
        }

    def summary(self) -> str:
        """결과 요약 문자열"""
        lines = [f"Health: {self.overall_status.value.upper()} "
                 f"({self.valid}/{self.total} valid, {self.failed} failed)"]
        for r in self.results:
            mark = "OK" if r.ok else r.status.value.upper()
            line = f"  {r.provider}: {mark} ({r.response_time_ms:.0f}ms)"
            if r.error:
                line += f" - {r.error}"
            lines.append(line)
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "valid": self.valid,
            "connected": self.connected,
            "failed": self.failed,
            "overall_status": self.overall_status.value,
            "checked_at": self.checked_at.isoformat(),
            "results": [r.to_dict() for r in self.results],
        }
