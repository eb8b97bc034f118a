"""
Health Validator 모듈

외부 Provider 연결/인증 상태 확인
- 레지스트리의 모든 Provider를 동시에 프로브
- Provider별 결과를 TTL 캐시에 저장
- 전체 헬스 분류 (healthy / degraded / critical)

프로브 실패는 예외가 아닌 HealthCheckResult 데이터로 반환됨
"""
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable

import requests

from analysis_engine.core.cache import MemoryCache
from analysis_engine.core.exceptions import ConfigValidationError, ProbeError, ProviderNotFoundError
from analysis_engine.core.interfaces import CheckStatus, OverallHealth
from analysis_engine.core.logger import get_logger
from analysis_engine.health.models import (
    HealthCheckResult,
    HealthSummary,
    ProviderDescriptor,
    ProviderDetails,
)
from analysis_engine.health.registry import ProviderRegistry

# 캐시 기본 TTL (초)
DEFAULT_CACHE_TTL = 300.0

# valid 비율이 이 값보다 작으면 degraded
VALID_RATIO_THRESHOLD = 0.8

RATE_LIMIT_REMAINING_HEADERS = ("x-ratelimit-remaining", "x-rate-limit-remaining")
RATE_LIMIT_RESET_HEADERS = ("x-ratelimit-reset", "x-rate-limit-reset")
VERSION_HEADERS = ("api-version", "x-api-version")


def classify_overall(
    results: list[HealthCheckResult],
    required: frozenset[str],
) -> OverallHealth:
    """
    전체 헬스 분류

    - 필수 Provider 중 하나라도 error -> critical
    - error가 있거나 valid 비율이 80% 미만 -> degraded (80% 정확히는 healthy)
    - 그 외 -> healthy
    """
    if any(r.status is CheckStatus.ERROR and r.provider in required for r in results):
        return OverallHealth.CRITICAL

    total = len(results)
    valid = sum(1 for r in results if r.is_valid)
    failed = sum(1 for r in results if r.status is CheckStatus.ERROR)

    if failed > 0 or valid < total * VALID_RATIO_THRESHOLD:
        return OverallHealth.DEGRADED
    return OverallHealth.HEALTHY


def build_summary(
    results: list[HealthCheckResult],
    required: frozenset[str],
) -> HealthSummary:
    """결과 목록으로 HealthSummary 생성"""
    return HealthSummary(
        total=len(results),
        valid=sum(1 for r in results if r.is_valid),
        connected=sum(1 for r in results if r.is_connected),
        failed=sum(1 for r in results if r.status is CheckStatus.ERROR),
        overall_status=classify_overall(results, required),
        results=tuple(results),
        required=required,
    )


class HealthValidator:
    """
    Provider 헬스 검사기

    사용법:
        registry = ProviderRegistry.from_config()
        validator = HealthValidator(registry, cache_ttl=300)

        # 전체 검사 (동시 실행)
        summary = validator.validate_all()
        print(summary.summary())

        # 캐시 우선 검사 (TTL 내 결과 재사용)
        summary = validator.validate_with_cache()
        if summary.overall_status is OverallHealth.CRITICAL:
            ...
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        cache_ttl: float = DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        if cache_ttl <= 0:
            raise ConfigValidationError(
                f"cache_ttl은 0보다 커야 합니다: {cache_ttl}", {"cache_ttl": cache_ttl}
            )

        self.logger = get_logger(self.__class__.__name__)
        self.registry = registry
        self.cache_ttl = cache_ttl
        self._cache = MemoryCache(default_ttl=cache_ttl, clock=clock)

    @classmethod
    def from_config(cls, config: Any = None) -> "HealthValidator":
        """설정 파일(health 섹션) 기반 생성"""
        if config is None:
            from analysis_engine.core.config import get_config
            config = get_config()

        return cls(
            ProviderRegistry.from_config(config),
            cache_ttl=float(config.get("health.cache.ttl", DEFAULT_CACHE_TTL)),
        )

    # ========== 단일 Provider ==========

    def validate_one(self, descriptor: ProviderDescriptor) -> HealthCheckResult:
        """
        Provider 1개 프로브 (timeout 적용)

        실패(timeout/네트워크/인증/non-2xx) 시:
            is_connected=False, is_valid=False,
            status = error (필수) / warning (선택)

        Returns:
            HealthCheckResult (결과는 캐시에 덮어씀)
        """
        started = time.perf_counter()

        try:
            details = self._probe(descriptor)
            result = HealthCheckResult(
                provider=descriptor.name,
                is_valid=True,
                is_connected=True,
                status=CheckStatus.SUCCESS,
                response_time_ms=(time.perf_counter() - started) * 1000,
                details=details,
            )
            self.logger.info(
                f"✓ {descriptor.name} 정상 ({result.response_time_ms:.0f}ms)"
            )

        except ProbeError as e:
            result = HealthCheckResult(
                provider=descriptor.name,
                is_valid=False,
                is_connected=False,
                status=CheckStatus.ERROR if e.required else CheckStatus.WARNING,
                response_time_ms=(time.perf_counter() - started) * 1000,
                error=e.message,
            )
            self.logger.warning(
                f"✗ {descriptor.name} 실패 "
                f"({'필수' if e.required else '선택'}): {e.message}"
            )

        self._cache.set(descriptor.name, result)
        return result

    def validate_provider(self, name: str) -> HealthCheckResult:
        """
        이름으로 Provider 프로브

        Raises:
            ProviderNotFoundError: 등록되지 않은 Provider
        """
        descriptor = self.registry.get(name)
        if descriptor is None:
            raise ProviderNotFoundError(name)
        return self.validate_one(descriptor)

    def _probe(self, descriptor: ProviderDescriptor) -> ProviderDetails:
        """실제 HTTP 프로브 (실패 시 ProbeError)"""
        if descriptor.needs_key and not descriptor.api_key.strip():
            raise ProbeError("API key가 설정되지 않음", descriptor.name, descriptor.required)

        try:
            response = requests.request(
                descriptor.probe.method,
                descriptor.build_url(),
                headers=descriptor.build_headers(),
                timeout=descriptor.timeout,
            )
        except requests.Timeout:
            raise ProbeError(
                f"응답 시간 초과 ({descriptor.timeout:g}초)",
                descriptor.name,
                descriptor.required,
            )
        except requests.RequestException as e:
            raise ProbeError(f"연결 실패: {e}", descriptor.name, descriptor.required)

        if not response.ok:
            raise ProbeError(
                f"HTTP {response.status_code}: {response.reason}",
                descriptor.name,
                descriptor.required,
                status_code=response.status_code,
            )

        return self._extract_details(response.headers)

    @staticmethod
    def _first_header(headers: Any, names: tuple[str, ...]) -> str | None:
        for name in names:
            value = headers.get(name)
            if value:
                return value
        return None

    def _extract_details(self, headers: Any) -> ProviderDetails:
        """응답 헤더에서 rate limit / 버전 정보 추출 (없거나 잘못된 값은 무시)"""
        remaining = None
        reset = None

        raw = self._first_header(headers, RATE_LIMIT_REMAINING_HEADERS)
        if raw is not None:
            try:
                remaining = int(raw)
            except ValueError:
                self.logger.debug(f"rate limit 헤더 파싱 실패: {raw}")

        raw = self._first_header(headers, RATE_LIMIT_RESET_HEADERS)
        if raw is not None:
            try:
                reset = datetime.fromtimestamp(int(raw))
            except (ValueError, OverflowError, OSError):
                self.logger.debug(f"rate limit reset 헤더 파싱 실패: {raw}")

        return ProviderDetails(
            rate_limit_remaining=remaining,
            rate_limit_reset=reset,
            version=self._first_header(headers, VERSION_HEADERS),
        )

    # ========== 전체 Provider ==========

    def _validate_many(self, descriptors: list[ProviderDescriptor]) -> list[HealthCheckResult]:
        """Provider별 1개 스레드로 동시 프로브 (모두 끝날 때까지 대기)"""
        if not descriptors:
            return []

        with ThreadPoolExecutor(
            max_workers=len(descriptors), thread_name_prefix="health-probe"
        ) as pool:
            return list(pool.map(self.validate_one, descriptors))

    def validate_all(self) -> HealthSummary:
        """전체 Provider 동시 검사"""
        descriptors = self.registry.list()
        self.logger.info(f"Provider 헬스체크 시작: {len(descriptors)}개")

        results = self._validate_many(descriptors)
        summary = build_summary(results, self.registry.required_names())

        self._log_summary(summary)
        return summary

    def validate_with_cache(self) -> HealthSummary:
        """캐시 우선 검사 (TTL 이내 결과는 재사용, 나머지만 프로브)"""
        cached: dict[str, HealthCheckResult] = {}
        stale: list[ProviderDescriptor] = []
        descriptors = self.registry.list()

        for descriptor in descriptors:
            result = self._cache.get(descriptor.name)
            if result is not None:
                cached[descriptor.name] = result
            else:
                stale.append(descriptor)

        if stale:
            self.logger.debug(
                f"캐시 미스 {len(stale)}개, 캐시 적중 {len(cached)}개"
            )
            for result in self._validate_many(stale):
                cached[result.provider] = result

        results = [cached[d.name] for d in descriptors]
        return build_summary(results, self.registry.required_names())

    # ========== 캐시 ==========

    def get_cached_result(self, name: str) -> HealthCheckResult | None:
        """TTL 이내 캐시 결과 (없거나 만료면 None)"""
        return self._cache.get(name)

    def invalidate_cache(self, name: str | None = None) -> None:
        """캐시 삭제 (name 없으면 전체)"""
        if name is None:
            self._cache.clear()
            self.logger.debug("헬스체크 캐시 전체 삭제")
        else:
            self._cache.delete(name)
            self.logger.debug(f"헬스체크 캐시 삭제: {name}")

    def is_healthy(self, name: str) -> bool:
        """Provider 사용 가능 여부 (캐시 우선)"""
        result = self.get_cached_result(name)
        if result is None:
            result = self.validate_provider(name)
        return result.ok

    def _log_summary(self, summary: HealthSummary) -> None:
        message = (
            f"헬스체크 완료: {summary.overall_status.value} "
            f"(valid {summary.valid}/{summary.total}, failed {summary.failed})"
        )
        if summary.overall_status is OverallHealth.HEALTHY:
            self.logger.info(message)
        else:
            self.logger.warning(message)
