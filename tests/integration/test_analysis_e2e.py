"""
E2E 통합 테스트: HealthValidator + AnalysisOrchestrator + 도구 연결

외부 Provider HTTP 호출은 mock하고
헬스체크 -> Provider 선택 -> 도구 실행 -> 재시도 흐름을 검증
"""
from unittest.mock import MagicMock, patch

import pytest

from analysis_engine.core.interfaces import AuthMode, RequestStatus, ToolStatus
from analysis_engine.health.models import ProviderDescriptor
from analysis_engine.health.registry import ProviderRegistry
from analysis_engine.health.validator import HealthValidator
from analysis_engine.orchestrator.orchestrator import AnalysisOrchestrator
from analysis_engine.tools.base import FunctionTool
from analysis_engine.tools.provider_tool import ProviderBackedTool


def make_response(status: int = 200):
    response = MagicMock()
    response.ok = status < 400
    response.status_code = status
    response.reason = "OK" if response.ok else "Service Unavailable"
    response.headers = {}
    return response


def build_registry() -> ProviderRegistry:
    return ProviderRegistry([
        ProviderDescriptor(
            name="Etherscan",
            base_url="https://api.etherscan.io/api",
            auth_mode=AuthMode.KEY,
            api_key="test-key",
            required=True,
        ),
        ProviderDescriptor(name="Alchemy", base_url="https://eth-mainnet.example.com/v2"),
    ])


class TestAnalysisE2E:
    """헬스체크 기반 도구 실행 E2E"""

    @patch("analysis_engine.health.validator.requests.request")
    def test_fallback_provider_used(self, mock_request):
        """primary 헬스 실패 시 fallback Provider로 분석 완료"""
        mock_request.side_effect = lambda method, url, **kwargs: make_response(
            503 if "etherscan" in url else 200
        )
        validator = HealthValidator(build_registry())

        fetch = MagicMock(side_effect=lambda provider, target, options, ctx: {"holders": 12})
        tools = [
            ProviderBackedTool("blockchain", ["Etherscan", "Alchemy"], fetch, name="온체인 분석"),
            FunctionTool("summary", lambda target, options, ctx: f"summary:{target}"),
        ]

        with AnalysisOrchestrator(tools, health=validator, tool_timeout=5) as orchestrator:
            request_id = orchestrator.start_analysis("0xabc", ["blockchain", "summary"])
            snapshot = orchestrator.wait_for_completion(request_id, timeout=5)

        assert snapshot.status is RequestStatus.COMPLETED
        chain = snapshot.runs["blockchain"]
        assert chain.result.source == "Alchemy"
        assert chain.result.metadata["fallback"] is True
        assert snapshot.runs["summary"].result == "summary:0xabc"

        # 이후 헬스 요약은 캐시에서 제공
        health = validator.validate_with_cache()
        assert health.get("Etherscan").status.value == "error"
        assert mock_request.call_count == 2

    @patch("analysis_engine.health.validator.requests.request")
    def test_retry_after_provider_recovers(self, mock_request):
        """모든 Provider 불가 -> error, 복구 후 재시도 성공"""
        mock_request.return_value = make_response(503)
        validator = HealthValidator(build_registry())
        tool = ProviderBackedTool(
            "blockchain", ["Etherscan", "Alchemy"], lambda p, t, o, c: {"provider": p.name}
        )

        with AnalysisOrchestrator([tool], health=validator, tool_timeout=5) as orchestrator:
            request_id = orchestrator.start_analysis("0xabc", ["blockchain"])
            failed = orchestrator.wait_for_completion(request_id, timeout=5)
            assert failed.status is RequestStatus.ERROR

            mock_request.return_value = make_response(200)
            validator.invalidate_cache()
            orchestrator.retry_tool(request_id, "blockchain")
            recovered = orchestrator.wait_for_completion(request_id, timeout=5)

        run = recovered.runs["blockchain"]
        assert run.status is ToolStatus.COMPLETED
        assert run.attempts == 2
        assert run.result.data == {"provider": "Etherscan"}
        assert recovered.to_dict()["summary"]["failed_tools"] == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
