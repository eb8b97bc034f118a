"""
MemoryRunStore 테스트
"""
import threading
from datetime import datetime, timedelta

import pytest

from analysis_engine.core.exceptions import InvalidRequestError, NotFoundError
from analysis_engine.core.interfaces import ToolStatus
from analysis_engine.orchestrator.models import AnalysisRequest, ToolRun
from analysis_engine.orchestrator.run_store import MemoryRunStore


def make_request(request_id: str, *statuses: ToolStatus, created_at: datetime | None = None):
    runs = {
        f"t{i}": ToolRun(tool_id=f"t{i}", status=status, attempts=1)
        for i, status in enumerate(statuses)
    }
    return AnalysisRequest(
        request_id=request_id,
        target="example.com",
        tool_ids=tuple(runs),
        runs=runs,
        created_at=created_at or datetime.now(),
    )


class TestMemoryRunStore:
    """MemoryRunStore 테스트"""

    def test_add_and_snapshot(self):
        store = MemoryRunStore()
        store.add(make_request("r1", ToolStatus.PENDING))

        snapshot = store.snapshot("r1")

        assert snapshot.request_id == "r1"
        assert len(store) == 1

    def test_duplicate_id(self):
        store = MemoryRunStore()
        store.add(make_request("r1", ToolStatus.PENDING))

        with pytest.raises(InvalidRequestError):
            store.add(make_request("r1", ToolStatus.PENDING))

    def test_unknown_id(self):
        store = MemoryRunStore()

        with pytest.raises(NotFoundError):
            store.snapshot("missing")
        with pytest.raises(NotFoundError):
            store.update("missing", lambda req: None)

    def test_snapshot_is_copy(self):
        """스냅샷 수정은 저장소에 반영되지 않음"""
        store = MemoryRunStore()
        store.add(make_request("r1", ToolStatus.PENDING))

        snapshot = store.snapshot("r1")
        snapshot.runs["t0"].status = ToolStatus.ERROR

        assert store.snapshot("r1").runs["t0"].status is ToolStatus.PENDING

    def test_update_returns_mutator_value(self):
        store = MemoryRunStore()
        store.add(make_request("r1", ToolStatus.PENDING))

        def mutate(request):
            request.runs["t0"].status = ToolStatus.RUNNING
            return "changed"

        assert store.update("r1", mutate) == "changed"
        assert store.snapshot("r1").runs["t0"].status is ToolStatus.RUNNING

    def test_concurrent_updates_serialized(self):
        """같은 요청에 대한 동시 갱신 직렬화"""
        store = MemoryRunStore()
        store.add(make_request("r1", ToolStatus.PENDING))

        def bump(request):
            run = request.runs["t0"]
            current = run.attempts
            run.attempts = current + 1

        threads = [
            threading.Thread(target=lambda: [store.update("r1", bump) for _ in range(100)])
            for _ in range(8)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.snapshot("r1").runs["t0"].attempts == 1 + 800

    def test_count_active(self):
        store = MemoryRunStore()
        store.add(make_request("r1", ToolStatus.RUNNING))
        store.add(make_request("r2", ToolStatus.COMPLETED, ToolStatus.ERROR))
        store.add(make_request("r3", ToolStatus.PENDING))

        assert store.count_active() == 2

    def test_evict_settled(self):
        """오래되고 종료된 요청만 제거"""
        old = datetime.now() - timedelta(hours=2)
        store = MemoryRunStore()
        store.add(make_request("old-done", ToolStatus.COMPLETED, created_at=old))
        store.add(make_request("old-running", ToolStatus.RUNNING, created_at=old))
        store.add(make_request("new-done", ToolStatus.COMPLETED))

        evicted = store.evict_settled(datetime.now() - timedelta(hours=1))

        assert evicted == ["old-done"]
        assert sorted(store.list_ids()) == ["new-done", "old-running"]

    def test_delete(self):
        store = MemoryRunStore()
        store.add(make_request("r1", ToolStatus.COMPLETED))

        assert store.delete("r1") is True
        assert store.delete("r1") is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
