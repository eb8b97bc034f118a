"""
캐시 서비스

메모리 기반 TTL 캐시 (스레드 안전, Redis 등 백엔드 확장 가능)
"""
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable


class CacheBackend(ABC):
    """캐시 백엔드 인터페이스"""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """캐시 조회"""
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """캐시 저장"""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """캐시 삭제"""
        pass

    @abstractmethod
    def clear(self) -> None:
        """전체 캐시 삭제"""
        pass


class MemoryCache(CacheBackend):
    """
    인메모리 캐시 (TTL 지원)

    - 만료된 항목은 없는 것으로 취급 (조회 시 제거)
    - 같은 키에 저장하면 덮어씀
    - ttl <= 0 이면 만료 없음

    사용법:
        cache = MemoryCache(default_ttl=300)
        cache.set("OpenAI", result)
        cached = cache.get("OpenAI")   # 300초 이내면 같은 객체 반환
    """

    def __init__(
        self,
        default_ttl: float = 3600,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._cache: dict[str, tuple[Any, float | None]] = {}
        self._default_ttl = default_ttl
        self._clock = clock
        self._lock = threading.Lock()

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    def get(self, key: str) -> Any | None:
        """캐시 조회 (만료 확인)"""
        with self._lock:
            if key not in self._cache:
                return None

            value, expires_at = self._cache[key]

            # 경과 시간이 TTL에 도달하면 만료
            if expires_at is not None and self._clock() >= expires_at:
                del self._cache[key]
                return None

            return value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """캐시 저장"""
        if ttl is None:
            ttl = self._default_ttl

        with self._lock:
            expires_at = self._clock() + ttl if ttl > 0 else None
            self._cache[key] = (value, expires_at)

    def delete(self, key: str) -> bool:
        """캐시 삭제"""
        with self._lock:
            return self._cache.pop(key, None) is not None

    def clear(self) -> None:
        """전체 캐시 삭제"""
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(
                1 for _, expires_at in self._cache.values()
                if expires_at is None or now < expires_at
            )
