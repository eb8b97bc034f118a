"""
Health: 외부 Provider 헬스체크

- registry: Provider 정의 테이블
- validator: 동시 프로브 + TTL 캐시 + 전체 헬스 분류
"""
from analysis_engine.health.models import (
    ProbeDefinition,
    ProviderDescriptor,
    ProviderDetails,
    HealthCheckResult,
    HealthSummary,
)
from analysis_engine.health.registry import ProviderRegistry
from analysis_engine.health.validator import HealthValidator, classify_overall, build_summary

__all__ = [
    "ProbeDefinition",
    "ProviderDescriptor",
    "ProviderDetails",
    "HealthCheckResult",
    "HealthSummary",
    "ProviderRegistry",
    "HealthValidator",
    "classify_overall",
    "build_summary",
]
