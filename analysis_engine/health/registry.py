"""
Provider 레지스트리

외부 데이터 Provider 정의 테이블 (I/O 없음, 스레드 안전)
"""
import threading
from typing import Any

from analysis_engine.core.exceptions import DuplicateProviderError, ProviderNotFoundError
from analysis_engine.core.logger import get_logger
from analysis_engine.health.models import ProviderDescriptor


class ProviderRegistry:
    """
    Provider 레지스트리

    사용법:
        registry = ProviderRegistry()
        registry.register(ProviderDescriptor(name="CoinGecko", base_url="https://api.coingecko.com/api/v3"))

        descriptor = registry.get("CoinGecko")   # 없으면 None
        for d in registry.list():
            ...
    """

    def __init__(self, descriptors: list[ProviderDescriptor] | None = None):
        self.logger = get_logger(self.__class__.__name__)
        self._providers: dict[str, ProviderDescriptor] = {}
        self._lock = threading.Lock()

        for descriptor in descriptors or []:
            self.register(descriptor)

    def register(self, descriptor: ProviderDescriptor) -> None:
        """
        Provider 등록

        Raises:
            DuplicateProviderError: 같은 이름이 이미 등록된 경우 (덮어쓰지 않음)
        """
        with self._lock:
            if descriptor.name in self._providers:
                raise DuplicateProviderError(descriptor.name)
            self._providers[descriptor.name] = descriptor

        self.logger.debug(
            f"Provider 등록: {descriptor.name} "
            f"({'필수' if descriptor.required else '선택'}, {descriptor.auth_mode.value})"
        )

    def unregister(self, name: str) -> ProviderDescriptor:
        """
        Provider 제거

        Raises:
            ProviderNotFoundError: 등록되지 않은 이름
        """
        with self._lock:
            if name not in self._providers:
                raise ProviderNotFoundError(name)
            return self._providers.pop(name)

    def get(self, name: str) -> ProviderDescriptor | None:
        """Provider 조회 (없으면 None)"""
        with self._lock:
            return self._providers.get(name)

    def list(self) -> list[ProviderDescriptor]:
        """전체 Provider 목록 (등록 순서)"""
        with self._lock:
            return list(self._providers.values())

    def required_names(self) -> frozenset[str]:
        """필수 Provider 이름 집합"""
        with self._lock:
            return frozenset(n for n, d in self._providers.items() if d.required)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._providers

    def __len__(self) -> int:
        with self._lock:
            return len(self._providers)

    @classmethod
    def from_config(cls, config: Any = None) -> "ProviderRegistry":
        """설정 파일(health.providers) 기반 레지스트리 생성"""
        if config is None:
            from analysis_engine.core.config import get_config
            config = get_config()

        entries = config.get("health.providers", []) or []
        return cls([ProviderDescriptor.from_dict(entry) for entry in entries])
