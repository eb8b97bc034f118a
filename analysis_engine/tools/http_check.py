"""
HTTP Check 도구

대상 URL에 GET 요청을 보내 응답 코드, 지연 시간, 보안 헤더 존재 여부를 수집
"""
import time
from typing import Any

import requests

from analysis_engine.core.exceptions import ExecutionError
from analysis_engine.core.interfaces import ToolContext, ToolResult
from analysis_engine.tools.base import BaseTool

SECURITY_HEADERS = [
    "Strict-Transport-Security",
    "Content-Security-Policy",
    "X-Frame-Options",
    "X-Content-Type-Options",
    "Referrer-Policy",
    "Permissions-Policy",
]


def normalize_url(target: str) -> str:
    """스킴이 없으면 https:// 추가"""
    target = target.strip()
    if "://" not in target:
        return f"https://{target}"
    return target


class HttpCheckTool(BaseTool):
    """
    HTTP 응답 확인 도구

    결과 data:
        {"url", "status_code", "response_time_ms", "server",
         "headers_present": [...], "headers_missing": [...]}
    """

    def __init__(self, tool_id: str = "http-check", name: str = "HTTP 응답 확인", timeout: float | None = 15.0):
        super().__init__(tool_id, name=name, timeout=timeout)

    def execute(self, target: str, options: dict[str, Any], ctx: ToolContext) -> ToolResult:
        url = normalize_url(target)
        started = time.perf_counter()

        try:
            response = requests.get(
                url,
                headers={"User-Agent": options.get("user_agent", "analysis-engine/1.0")},
                timeout=max(ctx.remaining(), 0.1),
                allow_redirects=True,
            )
        except requests.RequestException as e:
            raise ExecutionError(f"HTTP 요청 실패: {url} ({e})", self.tool_id, cause=e)

        elapsed_ms = (time.perf_counter() - started) * 1000
        present = [h for h in SECURITY_HEADERS if h in response.headers]

        self.logger.debug(f"{url} -> {response.status_code} ({elapsed_ms:.0f}ms)")

        return ToolResult(
            data={
                "url": response.url or url,
                "status_code": response.status_code,
                "response_time_ms": round(elapsed_ms, 1),
                "server": response.headers.get("Server"),
                "headers_present": present,
                "headers_missing": [h for h in SECURITY_HEADERS if h not in present],
            },
            source="direct",
        )
