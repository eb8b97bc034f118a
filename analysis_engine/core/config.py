"""
설정 로더

설정 우선순위 (뒤가 앞을 덮어씀):
    1. config/settings.yaml
    2. config/settings.<APP_ENV>.yaml
    3. ENGINE_ 접두사 환경 변수 (ENGINE_HEALTH_CACHE_TTL -> health.cache.ttl)
"""
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from analysis_engine.core.exceptions import ConfigError, ConfigNotFoundError

ENV_PREFIX = "ENGINE_"
CONFIG_DIR_ENV = "ENGINE_CONFIG_DIR"
DEFAULT_CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"


def merge_layers(*layers: Mapping[str, Any]) -> dict[str, Any]:
    """설정 레이어 병합 (새 dict 반환, 하위 dict는 재귀 병합)"""
    merged: dict[str, Any] = {}
    for layer in layers:
        for key, value in layer.items():
            if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
                merged[key] = merge_layers(merged[key], value)
            elif isinstance(value, Mapping):
                merged[key] = merge_layers(value)
            else:
                merged[key] = value
    return merged


def env_layer(environ: Mapping[str, str], prefix: str = ENV_PREFIX) -> dict[str, Any]:
    """접두사 환경 변수를 중첩 dict로 변환 (값은 YAML 스칼라로 해석)"""
    layer: dict[str, Any] = {}
    for name, raw in environ.items():
        if not name.startswith(prefix) or name == CONFIG_DIR_ENV:
            continue

        *parents, leaf = name[len(prefix):].lower().split("_")
        node = layer
        for part in parents:
            if not isinstance(node.get(part), dict):
                node[part] = {}
            node = node[part]
        node[leaf] = _scalar(raw)
    return layer


def _scalar(raw: str) -> Any:
    # "30" -> 30, "true" -> True, 그 외는 문자열 그대로
    try:
        value = yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw
    return raw if value is None or isinstance(value, (dict, list)) else value


def read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"YAML 파싱 오류: {path}", {"error": str(e)})


class Config:
    """
    프로세스 단위 설정 (싱글톤)

    사용법:
        config = get_config()
        ttl = config.get("health.cache.ttl", 300)
        section = config.get_section("orchestrator")
    """

    _instance: "Config | None" = None

    def __new__(cls, *args, **kwargs) -> "Config":
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._loaded = False
            cls._instance = instance
        return cls._instance

    def __init__(self, env: str | None = None, config_dir: Path | str | None = None):
        if self._loaded:
            return

        load_dotenv()
        self.env = env or os.getenv("APP_ENV", "development")
        self.config_dir = Path(config_dir or os.getenv(CONFIG_DIR_ENV) or DEFAULT_CONFIG_DIR)
        self._data = merge_layers(*self._layers())
        self._loaded = True

    def _layers(self) -> list[dict[str, Any]]:
        base = self.config_dir / "settings.yaml"
        if not base.exists():
            raise ConfigNotFoundError(f"기본 설정 파일을 찾을 수 없습니다: {base}")

        layers = [read_yaml(base)]
        env_file = self.config_dir / f"settings.{self.env}.yaml"
        if env_file.exists():
            layers.append(read_yaml(env_file))
        layers.append(env_layer(os.environ))
        return layers

    def get(self, key: str, default: Any = None) -> Any:
        """점 표기법 조회 ("orchestrator.timeout"), 없으면 default"""
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def get_section(self, section: str) -> dict[str, Any]:
        value = self.get(section)
        return value if isinstance(value, dict) else {}

    @classmethod
    def reset(cls) -> None:
        """싱글톤 리셋 (테스트용)"""
        cls._instance = None


def get_config() -> Config:
    return Config()
