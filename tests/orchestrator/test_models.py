"""
Orchestrator 데이터 모델 테스트
"""
from datetime import datetime, timedelta

import pytest

from analysis_engine.core.exceptions import ExecutionError, ToolTimeoutError
from analysis_engine.core.interfaces import ErrorPolicy, RequestStatus, ToolResult, ToolStatus
from analysis_engine.orchestrator.models import AnalysisRequest, ToolRun, aggregate_status


def run(tool_id: str, status: ToolStatus) -> ToolRun:
    return ToolRun(tool_id=tool_id, status=status, attempts=1)


def make_request(*runs: ToolRun, policy: ErrorPolicy = ErrorPolicy.ANY_ERROR) -> AnalysisRequest:
    return AnalysisRequest(
        request_id="analysis_1_abc",
        target="example.com",
        tool_ids=tuple(r.tool_id for r in runs),
        runs={r.tool_id: r for r in runs},
        error_policy=policy,
    )


class TestAggregateStatus:
    """요청 상태 계산 테스트"""

    def test_all_pending(self):
        runs = [run("a", ToolStatus.PENDING), run("b", ToolStatus.PENDING)]
        assert aggregate_status(runs, ErrorPolicy.ANY_ERROR) is RequestStatus.PENDING

    def test_any_running(self):
        runs = [run("a", ToolStatus.COMPLETED), run("b", ToolStatus.RUNNING)]
        assert aggregate_status(runs, ErrorPolicy.ANY_ERROR) is RequestStatus.RUNNING

    def test_pending_and_terminal_is_running(self):
        """일부 종료 + 일부 pending -> running"""
        runs = [run("a", ToolStatus.ERROR), run("b", ToolStatus.PENDING)]
        assert aggregate_status(runs, ErrorPolicy.ANY_ERROR) is RequestStatus.RUNNING

    def test_all_completed(self):
        runs = [run("a", ToolStatus.COMPLETED), run("b", ToolStatus.COMPLETED)]
        assert aggregate_status(runs, ErrorPolicy.ANY_ERROR) is RequestStatus.COMPLETED

    def test_any_error_policy(self):
        """ANY_ERROR: 하나라도 error면 error"""
        runs = [run("a", ToolStatus.COMPLETED), run("b", ToolStatus.ERROR)]
        assert aggregate_status(runs, ErrorPolicy.ANY_ERROR) is RequestStatus.ERROR

    def test_partial_ok_policy(self):
        """PARTIAL_OK: 혼합 결과도 completed"""
        runs = [run("a", ToolStatus.COMPLETED), run("b", ToolStatus.ERROR)]
        assert aggregate_status(runs, ErrorPolicy.PARTIAL_OK) is RequestStatus.COMPLETED


class TestToolRun:
    """ToolRun 테스트"""

    def test_duration(self):
        started = datetime(2024, 1, 1, 12, 0, 0)
        tool_run = ToolRun(
            tool_id="seo",
            status=ToolStatus.COMPLETED,
            started_at=started,
            completed_at=started + timedelta(milliseconds=250),
        )
        assert tool_run.duration_ms == pytest.approx(250.0)

    def test_duration_not_finished(self):
        tool_run = ToolRun(tool_id="seo", status=ToolStatus.RUNNING, started_at=datetime.now())
        assert tool_run.duration_ms is None

    def test_to_dict_completed(self):
        tool_run = ToolRun(
            tool_id="seo",
            tool_name="SEO 분석",
            status=ToolStatus.COMPLETED,
            result=ToolResult(data={"score": 90}, source="direct"),
            attempts=1,
        )
        data = tool_run.to_dict()

        assert data["status"] == "completed"
        assert data["result"]["data"] == {"score": 90}
        assert "error" not in data

    def test_to_dict_timeout(self):
        tool_run = ToolRun(
            tool_id="y", status=ToolStatus.ERROR, error=ToolTimeoutError("y", 0.05), attempts=2
        )
        data = tool_run.to_dict()

        assert data["error"]["kind"] == "timeout"
        assert data["attempts"] == 2
        assert "result" not in data


class TestAnalysisRequest:
    """AnalysisRequest 테스트"""

    def test_status_is_derived(self):
        """요청 상태는 하위 상태에서 계산"""
        request = make_request(run("a", ToolStatus.PENDING), run("b", ToolStatus.PENDING))
        assert request.status is RequestStatus.PENDING

        request.runs["a"].status = ToolStatus.RUNNING
        assert request.status is RequestStatus.RUNNING

        request.runs["a"].status = ToolStatus.COMPLETED
        request.runs["b"].status = ToolStatus.COMPLETED
        assert request.status is RequestStatus.COMPLETED
        assert request.is_settled is True

    def test_copy_is_independent(self):
        """스냅샷 수정이 원본에 영향 없음"""
        request = make_request(run("a", ToolStatus.RUNNING))
        snapshot = request.copy()

        snapshot.runs["a"].status = ToolStatus.ERROR

        assert request.runs["a"].status is ToolStatus.RUNNING
        assert snapshot.runs["a"] is not request.runs["a"]

    def test_summary(self):
        started = datetime.now()
        ok = ToolRun(
            tool_id="seo", tool_name="SEO", status=ToolStatus.COMPLETED, attempts=1,
            started_at=started, completed_at=started + timedelta(milliseconds=100),
        )
        failed = ToolRun(
            tool_id="ssl", tool_name="SSL", status=ToolStatus.ERROR, attempts=1,
            error=ExecutionError("인증서 조회 실패", "ssl"),
            started_at=started, completed_at=started + timedelta(milliseconds=50),
        )
        summary = make_request(ok, failed).summary()

        assert summary["total_tools"] == 2
        assert summary["completed_tools"] == 2
        assert summary["successful_tools"] == 1
        assert summary["failed_tools"] == 1
        assert summary["total_execution_ms"] == pytest.approx(150.0)
        assert summary["critical_issues"] == ["SSL 실패: 인증서 조회 실패"]

    def test_to_dict_keeps_tool_order(self):
        request = make_request(run("b", ToolStatus.COMPLETED), run("a", ToolStatus.COMPLETED))
        data = request.to_dict()

        assert data["status"] == "completed"
        assert [t["tool_id"] for t in data["per_tool"]] == ["b", "a"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
