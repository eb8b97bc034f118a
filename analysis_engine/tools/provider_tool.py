"""
Provider 기반 도구

HealthValidator 캐시 결과로 primary / fallback 데이터 소스를 선택
선택 과정은 도구 내부에서만 일어나며 오케스트레이터는 성공/실패만 관찰
"""
from typing import Any, Callable

from analysis_engine.core.exceptions import ExecutionError
from analysis_engine.core.interfaces import ToolContext, ToolResult
from analysis_engine.health.models import ProviderDescriptor
from analysis_engine.tools.base import BaseTool

FetchFunc = Callable[[ProviderDescriptor, str, dict[str, Any], ToolContext], Any]


class ProviderBackedTool(BaseTool):
    """
    Provider 선택형 도구

    사용법:
        def fetch_supply(provider, target, options, ctx):
            return requests.get(provider.base_url, params={...}, timeout=ctx.remaining()).json()

        tool = ProviderBackedTool(
            "blockchain",
            providers=["Etherscan", "Alchemy"],   # 우선순위 순
            fetch=fetch_supply,
        )

    - 헬스체크가 success인 Provider만 사용 (validate_with_cache)
    - fetch 실패 시 해당 Provider 캐시를 무효화하고 다음 Provider 시도
    - 모두 불가하면 ExecutionError
    """

    def __init__(
        self,
        tool_id: str,
        providers: list[str],
        fetch: FetchFunc,
        name: str = "",
        timeout: float | None = None,
        health: Any = None,
    ):
        super().__init__(tool_id, name=name, timeout=timeout)
        if not providers:
            raise ValueError(f"Provider 목록이 비어 있습니다: {tool_id}")
        self.providers = list(providers)
        self._fetch = fetch
        self._health = health

    def select_providers(self, validator: Any) -> list[ProviderDescriptor]:
        """헬스체크를 통과한 Provider (우선순위 순)"""
        summary = validator.validate_with_cache()
        selected = []
        for provider_name in self.providers:
            result = summary.get(provider_name)
            descriptor = validator.registry.get(provider_name)
            if result is not None and result.ok and descriptor is not None:
                selected.append(descriptor)
            else:
                reason = result.error if result is not None else "미등록"
                self.logger.debug(f"Provider 제외: {provider_name} ({reason})")
        return selected

    def execute(self, target: str, options: dict[str, Any], ctx: ToolContext) -> ToolResult:
        validator = self._health or ctx.health
        if validator is None:
            raise ExecutionError("HealthValidator가 설정되지 않았습니다", self.tool_id)

        candidates = self.select_providers(validator)
        if not candidates:
            raise ExecutionError(
                f"사용 가능한 Provider가 없습니다: {', '.join(self.providers)}", self.tool_id
            )

        last_error: Exception | None = None
        for descriptor in candidates:
            ctx.check()
            try:
                data = self._fetch(descriptor, target, options, ctx)
            except ExecutionError:
                raise
            except Exception as e:
                last_error = e
                self.logger.warning(f"{descriptor.name} 호출 실패, 다음 Provider 시도: {e}")
                validator.invalidate_cache(descriptor.name)
                continue

            return ToolResult(
                data=data,
                source=descriptor.name,
                metadata={"fallback": descriptor.name != self.providers[0]},
            )

        raise ExecutionError(
            f"모든 Provider 호출 실패: {last_error}", self.tool_id, cause=last_error
        )
