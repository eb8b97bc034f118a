"""
로깅 서비스

loguru 기반 구조화된 로깅
"""
import sys
from pathlib import Path
from typing import Any

from loguru import logger

DEFAULT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> | "
    "{extra[request_id]} | "
    "<level>{message}</level>"
)


class LoggerService:
    """
    로깅 서비스

    사용법:
        from analysis_engine.core.logger import get_logger

        logger = get_logger(__name__)
        logger.info("작업 시작")

        # 요청/도구 컨텍스트 바인딩
        run_logger = get_logger("Orchestrator", request_id=request_id, tool_id="seo")
        run_logger.warning("도구 실행 실패")
    """

    _configured: bool = False

    @classmethod
    def configure(
        cls,
        level: str = "INFO",
        log_dir: str = "./logs",
        log_format: str | None = None,
        file_enabled: bool = True,
        rotation: str = "10 MB",
        retention: str = "7 days",
    ) -> None:
        """
        로거 설정

        Args:
            level: 로그 레벨 (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: 로그 파일 디렉토리
            log_format: 로그 포맷 (None이면 기본값 사용)
            file_enabled: 파일 로깅 활성화 여부
            rotation: 로그 파일 로테이션 크기
            retention: 로그 파일 보관 기간
        """
        if cls._configured:
            return

        # 기존 핸들러 제거
        logger.remove()

        # 바인딩되지 않은 레코드도 포맷 가능하도록 기본 extra 지정
        logger.configure(extra={"component": "-", "request_id": "-"})

        if log_format is None:
            log_format = DEFAULT_FORMAT

        # 콘솔 핸들러 (enqueue: 워커 스레드에서 동시에 기록)
        logger.add(
            sys.stderr,
            format=log_format,
            level=level,
            colorize=True,
            enqueue=True,
        )

        # 파일 핸들러
        if file_enabled:
            log_path = Path(log_dir)
            log_path.mkdir(parents=True, exist_ok=True)

            # 일반 로그
            logger.add(
                log_path / "engine.log",
                format=log_format,
                level=level,
                rotation=rotation,
                retention=retention,
                compression="zip",
                encoding="utf-8",
                enqueue=True,
            )

            # 에러 전용 로그
            logger.add(
                log_path / "error.log",
                format=log_format,
                level="ERROR",
                rotation=rotation,
                retention=retention,
                compression="zip",
                encoding="utf-8",
                enqueue=True,
            )

        cls._configured = True

    @classmethod
    def reset(cls) -> None:
        """설정 리셋 (테스트용)"""
        logger.remove()
        cls._configured = False


def get_logger(name: str, **context: Any) -> Any:
    """
    컴포넌트별 로거 반환

    Args:
        name: 컴포넌트 이름 (보통 클래스명 또는 __name__)
        **context: 추가 바인딩 값 (request_id, tool_id, provider 등)

    Returns:
        loguru logger 인스턴스
    """
    return logger.bind(component=name, **context)


def setup_logger_from_config() -> None:
    """설정 파일 기반 로거 초기화"""
    try:
        from analysis_engine.core.config import get_config

        config = get_config()
        logging_config = config.get_section("logging")
    except Exception as e:
        # 설정 로드 실패 시 기본 설정 사용
        LoggerService.configure(file_enabled=False)
        logger.warning(f"로깅 설정 로드 실패, 기본 설정 사용: {e}")
        return

    file_config = logging_config.get("file", {})
    LoggerService.configure(
        level=logging_config.get("level", "INFO"),
        log_dir=logging_config.get("log_dir", "./logs"),
        log_format=logging_config.get("format"),
        file_enabled=file_config.get("enabled", True),
        rotation=file_config.get("rotation", "10 MB"),
        retention=file_config.get("retention", "7 days"),
    )
