"""
Run Store: 분석 요청 상태 저장소

요청 ID별로 읽기/쓰기를 직렬화 (요청마다 개별 Lock)
서로 다른 요청 간에는 공유 Lock 없이 동작
"""
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, TypeVar

from analysis_engine.core.exceptions import InvalidRequestError, NotFoundError
from analysis_engine.orchestrator.models import AnalysisRequest

T = TypeVar("T")


class RunStore(ABC):
    """Run Store 인터페이스 (메모리 / 영속 저장소 확장 가능)"""

    @abstractmethod
    def add(self, request: AnalysisRequest) -> None:
        """요청 저장 (중복 ID 불가)"""
        pass

    @abstractmethod
    def snapshot(self, request_id: str) -> AnalysisRequest:
        """요청 스냅샷 조회 (없으면 NotFoundError)"""
        pass

    @abstractmethod
    def update(self, request_id: str, mutator: Callable[[AnalysisRequest], T]) -> T:
        """요청 단위 Lock 안에서 mutator 실행 (없으면 NotFoundError)"""
        pass

    @abstractmethod
    def delete(self, request_id: str) -> bool:
        """요청 삭제"""
        pass

    @abstractmethod
    def list_ids(self) -> list[str]:
        """저장된 요청 ID 목록"""
        pass

    @abstractmethod
    def evict_settled(self, older_than: datetime) -> list[str]:
        """older_than 이전에 생성되어 모두 종료된 요청 제거"""
        pass

    def count_active(self) -> int:
        """아직 종료되지 않은 요청 수"""
        active = 0
        for request_id in self.list_ids():
            try:
                if not self.snapshot(request_id).is_settled:
                    active += 1
            except NotFoundError:
                continue
        return active


@dataclass
class _Entry:
    request: AnalysisRequest
    lock: threading.Lock = field(default_factory=threading.Lock)


class MemoryRunStore(RunStore):
    """
    인메모리 Run Store

    사용법:
        store = MemoryRunStore()
        store.add(request)

        # 쓰기: 요청 Lock 안에서 실행
        store.update(request_id, lambda req: setattr(req.runs["seo"], "status", ToolStatus.RUNNING))

        # 읽기: 복사본 반환
        snapshot = store.snapshot(request_id)
    """

    def __init__(self):
        self._entries: dict[str, _Entry] = {}
        # ID -> Entry 맵 자체의 삽입/삭제/조회만 보호 (요청 상태는 Entry.lock)
        self._index_lock = threading.Lock()

    def _entry(self, request_id: str) -> _Entry:
        with self._index_lock:
            entry = self._entries.get(request_id)
        if entry is None:
            raise NotFoundError(request_id)
        return entry

    def add(self, request: AnalysisRequest) -> None:
        with self._index_lock:
            if request.request_id in self._entries:
                raise InvalidRequestError(
                    f"이미 존재하는 요청 ID입니다: {request.request_id}",
                    {"request_id": request.request_id},
                )
            self._entries[request.request_id] = _Entry(request)

    def snapshot(self, request_id: str) -> AnalysisRequest:
        entry = self._entry(request_id)
        with entry.lock:
            return entry.request.copy()

    def update(self, request_id: str, mutator: Callable[[AnalysisRequest], T]) -> T:
        entry = self._entry(request_id)
        with entry.lock:
            return mutator(entry.request)

    def delete(self, request_id: str) -> bool:
        with self._index_lock:
            return self._entries.pop(request_id, None) is not None

    def list_ids(self) -> list[str]:
        with self._index_lock:
            return list(self._entries)

    def evict_settled(self, older_than: datetime) -> list[str]:
        evicted = []
        with self._index_lock:
            entries = list(self._entries.items())

        for request_id, entry in entries:
            # 판단과 삭제 사이에 재시도가 끼어들지 않도록 요청 Lock 유지
            with entry.lock:
                expired = entry.request.created_at < older_than and entry.request.is_settled
                if expired and self.delete(request_id):
                    evicted.append(request_id)

        return evicted

    def __len__(self) -> int:
        with self._index_lock:
            return len(self._entries)
