"""
Tools: 분석 도구 어댑터

- BaseTool: 도구 기본 클래스
- FunctionTool: 함수를 도구로 감싸는 어댑터
- ProviderBackedTool: 헬스체크 기반 primary/fallback 선택 도구
- HttpCheckTool: 내장 HTTP 응답 확인 도구
"""
from analysis_engine.tools.base import BaseTool, FunctionTool
from analysis_engine.tools.provider_tool import ProviderBackedTool
from analysis_engine.tools.http_check import HttpCheckTool


def builtin_tools() -> list[BaseTool]:
    """기본 제공 도구 목록"""
    return [HttpCheckTool()]


__all__ = [
    "BaseTool",
    "FunctionTool",
    "ProviderBackedTool",
    "HttpCheckTool",
    "builtin_tools",
]
