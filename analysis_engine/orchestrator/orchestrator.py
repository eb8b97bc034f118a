"""
Analysis Orchestrator: 다중 도구 분석 조율

요청 1건의 도구들을 워커 스레드로 동시에 실행하고
도구별 상태(pending -> running -> completed | error)를 Run Store에 기록

- start_analysis: 즉시 요청 ID 반환 (도구 완료를 기다리지 않음)
- get_status: 현재 스냅샷 반환 (폴링은 호출자 책임)
- retry_tool: error 상태인 도구만 재실행
- cancel_analysis: 아직 종료되지 않은 도구를 error(cancelled)로 확정
"""
import threading
import time
import uuid
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from typing import Any

from analysis_engine.core.exceptions import (
    CapacityExceededError,
    ConfigValidationError,
    DispatchError,
    ExecutionError,
    ExecutionTimeoutError,
    InvalidRequestError,
    InvalidStateError,
    NotFoundError,
    ToolCancelledError,
    ToolTimeoutError,
    UnknownToolError,
)
from analysis_engine.core.interfaces import ErrorPolicy, ToolContext, ToolExecutor, ToolStatus
from analysis_engine.core.logger import get_logger
from analysis_engine.orchestrator.models import AnalysisRequest, ToolRun
from analysis_engine.orchestrator.run_store import MemoryRunStore, RunStore

# 기본값 (settings.yaml의 orchestrator 섹션으로 변경 가능)
DEFAULT_TOOL_TIMEOUT = 300.0
DEFAULT_MAX_WORKERS = 16
DEFAULT_RETENTION_SECONDS = 3600.0


def generate_request_id() -> str:
    """요청 ID 생성 (analysis_<ms>_<random>)"""
    return f"analysis_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class AnalysisOrchestrator:
    """
    다중 도구 분석 오케스트레이터

    사용법:
        orchestrator = AnalysisOrchestrator(
            tools=[FunctionTool("seo", analyze_seo), FunctionTool("security", audit)],
            health=validator,
            tool_timeout=60,
        )

        request_id = orchestrator.start_analysis("https://example.com", ["seo", "security"])

        # 폴링
        status = orchestrator.get_status(request_id)
        print(status.status, [r.status for r in status.runs.values()])

        # 실패한 도구만 재시도
        orchestrator.retry_tool(request_id, "security")
    """

    def __init__(
        self,
        tools: Mapping[str, ToolExecutor] | Iterable[ToolExecutor],
        store: RunStore | None = None,
        health: Any = None,
        tool_timeout: float = DEFAULT_TOOL_TIMEOUT,
        error_policy: ErrorPolicy = ErrorPolicy.ANY_ERROR,
        max_workers: int = DEFAULT_MAX_WORKERS,
        max_active_requests: int = 0,
        retention_seconds: float = DEFAULT_RETENTION_SECONDS,
    ):
        if tool_timeout <= 0:
            raise ConfigValidationError(f"tool_timeout은 0보다 커야 합니다: {tool_timeout}")
        if max_workers <= 0:
            raise ConfigValidationError(f"max_workers는 0보다 커야 합니다: {max_workers}")

        self.logger = get_logger(self.__class__.__name__)
        self._tools = self._index_tools(tools)
        self.store = store if store is not None else MemoryRunStore()
        self.health = health
        self.tool_timeout = tool_timeout
        self.error_policy = error_policy
        self.max_active_requests = max_active_requests
        self.retention_seconds = retention_seconds

        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="tool-run")
        # 활성 요청 수 확인과 등록을 원자적으로
        self._admission_lock = threading.Lock()
        # (request_id, tool_id) -> 현재 시도의 (컨텍스트, 제한 시간 타이머)
        self._inflight: dict[tuple[str, str], tuple[ToolContext, threading.Timer]] = {}
        self._inflight_lock = threading.Lock()
        self._closed = False

    @staticmethod
    def _index_tools(
        tools: Mapping[str, ToolExecutor] | Iterable[ToolExecutor],
    ) -> dict[str, ToolExecutor]:
        if isinstance(tools, Mapping):
            return dict(tools)

        indexed: dict[str, ToolExecutor] = {}
        for tool in tools:
            if tool.tool_id in indexed:
                raise ConfigValidationError(f"중복된 도구 ID: {tool.tool_id}")
            indexed[tool.tool_id] = tool
        return indexed

    @classmethod
    def from_config(
        cls,
        tools: Mapping[str, ToolExecutor] | Iterable[ToolExecutor],
        config: Any = None,
        store: RunStore | None = None,
        health: Any = None,
    ) -> "AnalysisOrchestrator":
        """설정 파일(orchestrator 섹션) 기반 생성"""
        if config is None:
            from analysis_engine.core.config import get_config
            config = get_config()

        section = config.get_section("orchestrator")
        try:
            policy = ErrorPolicy(section.get("policy", ErrorPolicy.ANY_ERROR.value))
        except ValueError:
            raise ConfigValidationError(
                f"지원하지 않는 오류 정책: {section.get('policy')}",
                {"allowed": [p.value for p in ErrorPolicy]},
            )

        return cls(
            tools,
            store=store,
            health=health,
            tool_timeout=float(section.get("timeout", DEFAULT_TOOL_TIMEOUT)),
            error_policy=policy,
            max_workers=int(section.get("workers", DEFAULT_MAX_WORKERS)),
            max_active_requests=int(section.get("capacity", 0)),
            retention_seconds=float(section.get("retention", DEFAULT_RETENTION_SECONDS)),
        )

    # ========== Public API ==========

    def list_tools(self) -> dict[str, str]:
        """등록된 도구 (ID -> 표시 이름)"""
        return {tool_id: tool.name for tool_id, tool in self._tools.items()}

    def start_analysis(
        self,
        target: str,
        tool_ids: list[str],
        options: dict[str, Any] | None = None,
    ) -> str:
        """
        분석 시작 (비동기 디스패치 후 즉시 반환)

        Args:
            target: 분석 대상 (주소, URL 등)
            tool_ids: 실행할 도구 ID 목록 (중복은 제거, 순서 유지)
            options: 도구에 전달할 옵션 ("timeout" 키로 도구별 제한 시간 지정 가능)

        Returns:
            요청 ID

        Raises:
            UnknownToolError: 도구 목록이 비었거나 알 수 없는 도구 포함
            InvalidRequestError: 대상이 비었거나 timeout 값이 잘못됨
            CapacityExceededError: 동시 실행 요청 수 초과
        """
        if not target or not str(target).strip():
            raise InvalidRequestError("분석 대상이 비어 있습니다")

        ordered = list(dict.fromkeys(tool_ids or []))
        if not ordered:
            raise UnknownToolError("실행할 도구가 지정되지 않았습니다", [])

        unknown = [t for t in ordered if t not in self._tools]
        if unknown:
            raise UnknownToolError(f"알 수 없는 도구: {', '.join(unknown)}", unknown)

        options = dict(options or {})
        if "timeout" in options:
            try:
                valid_timeout = float(options["timeout"]) > 0
            except (TypeError, ValueError):
                valid_timeout = False
            if not valid_timeout:
                raise InvalidRequestError(
                    f"timeout은 0보다 큰 숫자여야 합니다: {options['timeout']}"
                )

        request = AnalysisRequest(
            request_id=generate_request_id(),
            target=target,
            tool_ids=tuple(ordered),
            runs={
                tool_id: ToolRun(tool_id=tool_id, tool_name=self._tools[tool_id].name, attempts=1)
                for tool_id in ordered
            },
            options=options,
            error_policy=self.error_policy,
        )

        with self._admission_lock:
            if self.max_active_requests > 0 and self.store.count_active() >= self.max_active_requests:
                raise CapacityExceededError(self.max_active_requests)
            self.store.add(request)

        self.logger.info(
            f"분석 시작: {request.request_id} (대상: {target}, 도구 {len(ordered)}개: {ordered})"
        )

        for tool_id in ordered:
            self._dispatch(request.request_id, tool_id, 1, options)

        return request.request_id

    def get_status(self, request_id: str) -> AnalysisRequest:
        """
        현재 상태 스냅샷 (도구 완료를 기다리지 않음)

        Raises:
            NotFoundError: 존재하지 않거나 정리된 요청
        """
        return self.store.snapshot(request_id)

    def retry_tool(self, request_id: str, tool_id: str) -> None:
        """
        실패한 도구 재실행 (다른 도구 상태는 변경하지 않음)

        Raises:
            NotFoundError: 존재하지 않는 요청
            UnknownToolError: 요청에 포함되지 않은 도구
            InvalidStateError: 도구가 error 상태가 아님
        """

        def reset(request: AnalysisRequest) -> tuple[int, dict[str, Any]]:
            run = request.runs.get(tool_id)
            if run is None:
                raise UnknownToolError(f"요청에 포함되지 않은 도구: {tool_id}", [tool_id])
            if run.status is not ToolStatus.ERROR:
                raise InvalidStateError(
                    f"error 상태인 도구만 재시도할 수 있습니다: {tool_id} ({run.status.value})",
                    {"request_id": request_id, "tool_id": tool_id, "status": run.status.value},
                )

            run.status = ToolStatus.PENDING
            run.result = None
            run.error = None
            run.started_at = None
            run.completed_at = None
            run.attempts += 1
            return run.attempts, dict(request.options)

        attempt, options = self.store.update(request_id, reset)
        self.logger.bind(request_id=request_id).info(f"[{tool_id}] 재시도 (시도 {attempt}회차)")
        self._dispatch(request_id, tool_id, attempt, options)

    def cancel_analysis(self, request_id: str) -> list[str]:
        """
        분석 취소: 종료되지 않은 도구를 error(cancelled)로 확정하고 취소 신호 전달

        이미 종료된 도구는 변경하지 않으며, 취소된 도구는 retry_tool로 다시 실행 가능

        Returns:
            취소된 도구 ID 목록

        Raises:
            NotFoundError: 존재하지 않는 요청
        """
        snapshot = self.store.snapshot(request_id)
        cancelled: list[str] = []

        for tool_id, run in snapshot.runs.items():
            if run.is_terminal:
                continue

            with self._inflight_lock:
                entry = self._inflight.get((request_id, tool_id))

            if not self._complete(request_id, tool_id, run.attempts, error=ToolCancelledError(tool_id)):
                continue
            cancelled.append(tool_id)

            if entry is not None and entry[0].attempt == run.attempts:
                ctx, timer = entry
                timer.cancel()
                ctx.cancelled.set()

        if cancelled:
            self.logger.bind(request_id=request_id).info(
                f"분석 취소: {request_id} (도구 {len(cancelled)}개: {cancelled})"
            )
        return cancelled

    def wait_for_completion(
        self,
        request_id: str,
        timeout: float | None = None,
        poll_interval: float = 0.1,
    ) -> AnalysisRequest:
        """
        모든 도구가 종료될 때까지 폴링

        Raises:
            ExecutionTimeoutError: timeout 내에 종료되지 않음
        """
        deadline = time.monotonic() + timeout if timeout is not None else None

        while True:
            snapshot = self.get_status(request_id)
            if snapshot.is_settled:
                return snapshot
            if deadline is not None and time.monotonic() >= deadline:
                raise ExecutionTimeoutError(request_id, timeout)
            time.sleep(poll_interval)

    def cleanup(self, max_age: float | None = None) -> list[str]:
        """
        오래된 종료 요청 정리 (실행 중인 요청은 유지)

        Args:
            max_age: 보관 기간 (초, 기본: retention_seconds)

        Returns:
            정리된 요청 ID 목록
        """
        if max_age is None:
            max_age = self.retention_seconds

        evicted = self.store.evict_settled(datetime.now() - timedelta(seconds=max_age))
        if evicted:
            self.logger.info(f"종료된 요청 {len(evicted)}개 정리")
        return evicted

    def shutdown(self, wait: bool = True) -> None:
        """
        워커 풀 종료 (두 번째 호출부터는 무시)

        wait=False면 실행 중인 도구를 기다리지 않고 반환
        """
        if self._closed:
            return
        self._closed = True
        self._pool.shutdown(wait=wait)

    def __enter__(self) -> "AnalysisOrchestrator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    # ========== 실행 ==========

    def _resolve_timeout(self, tool: ToolExecutor, options: dict[str, Any]) -> float:
        """제한 시간: 요청 옵션 > 도구 자체 설정 > 기본값"""
        if "timeout" in options:
            return float(options["timeout"])
        tool_timeout = getattr(tool, "timeout", None)
        if tool_timeout:
            return float(tool_timeout)
        return self.tool_timeout

    def _dispatch(
        self, request_id: str, tool_id: str, attempt: int, options: dict[str, Any]
    ) -> None:
        """
        워커 풀에 도구 실행 제출 (실패 시 해당 ToolRun을 error로 기록)

        제한 시간은 제출 시점부터 계산하므로 워커를 기다리는 동안에도 흐름
        """
        timeout = self._resolve_timeout(self._tools[tool_id], options)
        ctx = ToolContext.create(
            request_id, tool_id, timeout, attempt=attempt, health=self.health
        )

        timer = threading.Timer(timeout, self._on_timeout, args=(request_id, tool_id, ctx))
        timer.daemon = True
        with self._inflight_lock:
            self._inflight[(request_id, tool_id)] = (ctx, timer)
        timer.start()

        try:
            self._pool.submit(self._invoke, request_id, tool_id, ctx, timer)
        except RuntimeError as e:
            timer.cancel()
            self._complete(
                request_id,
                tool_id,
                attempt,
                error=DispatchError(f"도구 실행을 시작할 수 없습니다: {e}", tool_id, cause=e),
            )

    def _invoke(
        self, request_id: str, tool_id: str, ctx: ToolContext, timer: threading.Timer
    ) -> None:
        """워커 스레드: running 전이 -> 실행 -> 완료 콜백"""
        tool = self._tools[tool_id]
        log = self.logger.bind(request_id=request_id)

        def begin(request: AnalysisRequest) -> tuple[str, dict[str, Any]] | None:
            run = request.runs[tool_id]
            if run.attempts != ctx.attempt or run.status is not ToolStatus.PENDING:
                return None
            run.status = ToolStatus.RUNNING
            run.started_at = datetime.now()
            return request.target, dict(request.options)

        try:
            started = self.store.update(request_id, begin)
        except NotFoundError:
            log.debug(f"[{tool_id}] 요청이 정리되어 실행 생략")
            started = None
        if started is None:
            # 대기 중에 시간 초과 또는 취소로 이미 확정됨
            timer.cancel()
            return

        target, options = started
        log.info(f"[{tool_id}] 시작 (남은 시간 {ctx.remaining():.1f}초)")

        result = None
        error: ExecutionError | None = None
        try:
            result = tool.execute(target, options, ctx)
        except ExecutionError as e:
            error = e
        except BaseException as e:
            # SystemExit 등도 ToolRun에 기록해 running에 머무르지 않게 함
            error = ExecutionError(f"{type(e).__name__}: {e}", tool_id, cause=e)
        finally:
            timer.cancel()

        self._complete(request_id, tool_id, ctx.attempt, result=result, error=error)

    def _on_timeout(self, request_id: str, tool_id: str, ctx: ToolContext) -> None:
        """제한 시간 초과: 도구에 취소 신호 후 error로 확정 (이후 도착한 결과는 버림)"""
        ctx.cancelled.set()
        self._complete(
            request_id, tool_id, ctx.attempt, error=ToolTimeoutError(tool_id, ctx.timeout)
        )

    def _complete(
        self,
        request_id: str,
        tool_id: str,
        attempt: int,
        result: Any = None,
        error: ExecutionError | None = None,
    ) -> bool:
        """
        완료 콜백 (시도 번호당 정확히 한 번만 반영)

        Returns:
            반영 여부 (이미 종료되었거나 새 시도로 교체된 경우 False)
        """

        def finish(request: AnalysisRequest) -> bool:
            run = request.runs[tool_id]
            if run.attempts != attempt or run.is_terminal:
                return False

            now = datetime.now()
            if run.status is ToolStatus.PENDING:
                # 디스패치 실패도 running을 거쳐 종료
                run.status = ToolStatus.RUNNING
                run.started_at = now

            if error is not None:
                run.status = ToolStatus.ERROR
                run.error = error
                run.result = None
            else:
                run.status = ToolStatus.COMPLETED
                run.result = result
                run.error = None
            run.completed_at = now
            return True

        log = self.logger.bind(request_id=request_id)
        try:
            delivered = self.store.update(request_id, finish)
        except NotFoundError:
            log.debug(f"[{tool_id}] 요청이 정리되어 결과 폐기")
            return False
        finally:
            with self._inflight_lock:
                entry = self._inflight.get((request_id, tool_id))
                if entry is not None and entry[0].attempt == attempt:
                    del self._inflight[(request_id, tool_id)]

        if not delivered:
            log.debug(f"[{tool_id}] 시도 {attempt}회차 결과 폐기 (이미 확정됨)")
        elif error is None:
            log.info(f"[{tool_id}] 완료")
        elif isinstance(error, ToolCancelledError):
            log.warning(f"[{tool_id}] 취소됨")
        elif error.is_timeout:
            log.warning(f"[{tool_id}] 시간 초과: {error.message}")
        else:
            log.error(f"[{tool_id}] 실패: {error.message}")

        return delivered
