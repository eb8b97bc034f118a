"""
Orchestrator 데이터 모델

- ToolRun: 요청 내 도구 1개의 실행 상태
- AnalysisRequest: 요청 단위 (ToolRun 맵 소유, 전체 상태는 계산 값)
"""
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from analysis_engine.core.exceptions import ExecutionError
from analysis_engine.core.interfaces import ErrorPolicy, RequestStatus, ToolStatus


@dataclass
class ToolRun:
    """도구 실행 상태"""
    tool_id: str
    tool_name: str = ""
    status: ToolStatus = ToolStatus.PENDING
    result: Any = None
    error: ExecutionError | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    attempts: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def duration_ms(self) -> float | None:
        """실행 시간 (ms, 종료 전이면 None)"""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds() * 1000
        return None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "tool_id": self.tool_id,
            "tool_name": self.tool_name or self.tool_id,
            "status": self.status.value,
            "attempts": self.attempts,
        }
        if self.status is ToolStatus.COMPLETED:
            data["result"] = self.result.to_dict() if hasattr(self.result, "to_dict") else self.result
        if self.error is not None:
            data["error"] = self.error.to_dict()
        if self.duration_ms is not None:
            data["duration_ms"] = round(self.duration_ms, 1)
        return data


def aggregate_status(runs: list[ToolRun], policy: ErrorPolicy) -> RequestStatus:
    """
    하위 ToolRun 상태로 요청 상태 계산

    - 모두 pending -> pending
    - 하나라도 미종료 -> running
    - 모두 종료: error 존재 + ANY_ERROR -> error, 그 외 completed
    """
    if not runs or all(r.status is ToolStatus.PENDING for r in runs):
        return RequestStatus.PENDING
    if not all(r.is_terminal for r in runs):
        return RequestStatus.RUNNING
    if policy is ErrorPolicy.ANY_ERROR and any(r.status is ToolStatus.ERROR for r in runs):
        return RequestStatus.ERROR
    return RequestStatus.COMPLETED


@dataclass
class AnalysisRequest:
    """분석 요청"""
    request_id: str
    target: str
    tool_ids: tuple[str, ...]
    runs: dict[str, ToolRun]
    options: dict[str, Any] = field(default_factory=dict)
    error_policy: ErrorPolicy = ErrorPolicy.ANY_ERROR
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def status(self) -> RequestStatus:
        """전체 상태 (하위 상태의 순수 함수, 직접 설정하지 않음)"""
        return aggregate_status(list(self.runs.values()), self.error_policy)

    @property
    def is_settled(self) -> bool:
        """모든 도구가 종료 상태인지"""
        return all(r.is_terminal for r in self.runs.values())

    @property
    def completed_at(self) -> datetime | None:
        if not self.is_settled:
            return None
        ends = [r.completed_at for r in self.runs.values() if r.completed_at]
        return max(ends) if ends else None

    def get_run(self, tool_id: str) -> ToolRun | None:
        return self.runs.get(tool_id)

    def copy(self) -> "AnalysisRequest":
        """스냅샷 (ToolRun 레코드 복사, result payload는 참조 공유)"""
        return replace(
            self,
            runs={tool_id: replace(run) for tool_id, run in self.runs.items()},
            options=dict(self.options),
        )

    def summary(self) -> dict:
        """요청 요약 (도구 수/성공/실패/실행 시간/주요 오류)"""
        runs = [self.runs[t] for t in self.tool_ids]
        succeeded = [r for r in runs if r.status is ToolStatus.COMPLETED]
        failed = [r for r in runs if r.status is ToolStatus.ERROR]

        return {
            "total_tools": len(runs),
            "completed_tools": len(succeeded) + len(failed),
            "successful_tools": len(succeeded),
            "failed_tools": len(failed),
            "total_execution_ms": round(sum(r.duration_ms or 0.0 for r in runs), 1),
            "critical_issues": [
                f"{r.tool_name or r.tool_id} 실패: {r.error.message}" for r in failed if r.error
            ],
        }

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "target": self.target,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "per_tool": [self.runs[t].to_dict() for t in self.tool_ids],
            "summary": self.summary(),
        }
