"""
CLI 테스트
"""
import json
import time
from unittest.mock import MagicMock, patch

import pytest

from analysis_engine.cli import main

SETTINGS = """
app:
  name: analysis-engine
logging:
  level: WARNING
  file:
    enabled: false
orchestrator:
  timeout: 5
  workers: 2
health:
  cache:
    ttl: 60
  providers:
    - name: PageSpeed
      base_url: https://pagespeed.example.com
    - name: OpenAI
      base_url: https://openai.example.com
      auth: bearer
      api_key: sk-test
      required: true
"""


def make_response(status: int = 200):
    response = MagicMock()
    response.ok = status < 400
    response.status_code = status
    response.reason = "OK" if response.ok else "Unauthorized"
    response.headers = {}
    return response


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    """임시 설정 디렉토리"""
    from analysis_engine.core.config import Config
    from analysis_engine.core.logger import LoggerService

    (tmp_path / "settings.yaml").write_text(SETTINGS, encoding="utf-8")
    monkeypatch.setenv("ENGINE_CONFIG_DIR", str(tmp_path))
    monkeypatch.setenv("APP_ENV", "cli-test")
    Config.reset()
    LoggerService.reset()
    yield tmp_path
    Config.reset()
    LoggerService.reset()


class TestCli:
    """CLI 명령 테스트"""

    def test_providers(self, config_dir, capsys):
        assert main(["providers"]) == 0

        out = capsys.readouterr().out
        assert "PageSpeed" in out
        assert "OpenAI" in out

    def test_tools(self, config_dir, capsys):
        assert main(["tools"]) == 0
        assert "http-check" in capsys.readouterr().out

    @patch("analysis_engine.health.validator.requests.request")
    def test_health_healthy(self, mock_request, config_dir, capsys):
        mock_request.return_value = make_response()

        assert main(["health", "--no-cache"]) == 0
        assert "HEALTHY" in capsys.readouterr().out

    @patch("analysis_engine.health.validator.requests.request")
    def test_health_critical_json(self, mock_request, config_dir, capsys):
        """필수 Provider 실패 -> 종료 코드 2"""
        mock_request.side_effect = lambda method, url, **kwargs: make_response(
            401 if "openai" in url else 200
        )

        assert main(["health", "--json"]) == 2

        data = json.loads(capsys.readouterr().out)
        assert data["overall_status"] == "critical"
        assert data["total"] == 2

    def test_analyze_unknown_tool(self, config_dir, capsys):
        assert main(["analyze", "example.com", "--tools", "nope"]) == 1
        assert "알 수 없는 도구" in capsys.readouterr().err

    @patch("analysis_engine.tools.http_check.requests.get")
    def test_analyze(self, mock_get, config_dir, capsys):
        response = MagicMock()
        response.url = "https://example.com"
        response.status_code = 200
        response.headers = {}
        mock_get.return_value = response

        assert main(["analyze", "example.com", "--wait", "5"]) == 0

        out = capsys.readouterr().out
        assert "요청 ID: analysis_" in out
        assert '"status": "completed"' in out

    def test_analyze_wait_exceeded(self, config_dir, capsys):
        """--wait 초과 -> 취소 후 바로 종료 (도구 완료를 기다리지 않음)"""
        from analysis_engine.tools.base import FunctionTool

        slow = FunctionTool("slow", lambda target, options, ctx: ctx.cancelled.wait(5))

        started = time.monotonic()
        with patch("analysis_engine.cli.builtin_tools", return_value=[slow]):
            code = main(["analyze", "example.com", "--wait", "0.2"])
        elapsed = time.monotonic() - started

        assert code == 1
        assert elapsed < 2.0
        out = capsys.readouterr().out
        assert "취소함: slow" in out
        assert '"kind": "cancelled"' in out


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
