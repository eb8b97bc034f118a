"""
Tools - 기본 클래스

모든 분석 도구의 공통 기능 및 함수 어댑터
"""
from abc import abstractmethod
from typing import Any, Callable

from analysis_engine.core.interfaces import ToolContext, ToolExecutor
from analysis_engine.core.logger import get_logger


class BaseTool(ToolExecutor):
    """
    분석 도구 기본 클래스

    하위 클래스는 execute()만 구현하면 됨
    timeout을 지정하면 오케스트레이터 기본 제한 시간 대신 사용됨
    """

    def __init__(self, tool_id: str, name: str = "", timeout: float | None = None):
        if not tool_id:
            raise ValueError("tool_id가 비어 있습니다")
        self._tool_id = tool_id
        self._name = name or tool_id
        self.timeout = timeout
        self.logger = get_logger(self.__class__.__name__, tool_id=tool_id)

    @property
    def tool_id(self) -> str:
        return self._tool_id

    @property
    def name(self) -> str:
        return self._name

    @abstractmethod
    def execute(self, target: str, options: dict[str, Any], ctx: ToolContext) -> Any:
        """분석 실행 (하위 클래스에서 구현)"""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._tool_id!r})"


class FunctionTool(BaseTool):
    """
    함수 어댑터

    사용법:
        def analyze_keywords(target, options, ctx):
            return ToolResult(data=fetch_keywords(target))

        tool = FunctionTool("keywords", analyze_keywords, name="키워드 분석", timeout=30)
    """

    def __init__(
        self,
        tool_id: str,
        func: Callable[[str, dict[str, Any], ToolContext], Any],
        name: str = "",
        timeout: float | None = None,
    ):
        super().__init__(tool_id, name=name, timeout=timeout)
        self._func = func

    def execute(self, target: str, options: dict[str, Any], ctx: ToolContext) -> Any:
        return self._func(target, options, ctx)
