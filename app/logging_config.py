"""
로깅 설정

모든 모듈은 get_logger()로 로거를 얻고, 앱 시작 시 setup_logging_from_env()로 한 번 초기화합니다.
"""
import json
import logging
import os
import sys
from typing import Any, Optional

ROOT_LOGGER_NAME = "translation_sync"

# LogRecord 기본 속성 (extra 필드 구분용)
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """한 줄 JSON 포맷터 (extra 필드 포함)"""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", log_format: str = "text", log_file: Optional[str] = None) -> logging.Logger:
    """루트 로거 설정"""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False
    logger.handlers.clear()

    if log_format == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def setup_logging_from_env() -> logging.Logger:
    """LOG_LEVEL / LOG_FORMAT / LOG_FILE 환경변수로 로깅 초기화"""
    return setup_logging(
        level=os.getenv("LOG_LEVEL", "INFO"),
        log_format=os.getenv("LOG_FORMAT", "text").lower(),
        log_file=os.getenv("LOG_FILE") or None,
    )


def get_logger(name: str) -> logging.Logger:
    """모듈별 로거 반환"""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


_event_logger = get_logger("events")


def log_github_api_call(url: str, status_code: int, **kwargs: Any) -> None:
    """GitHub API 호출 결과 기록"""
    level = logging.INFO if status_code < 400 else logging.WARNING
    _event_logger.log(level, f"GitHub API {status_code}: {url}", extra={"url": url, "status_code": status_code, **kwargs})


def log_translation_call(mode: str, section_key: str, elapsed: float, **kwargs: Any) -> None:
    """번역 API 호출 기록"""
    _event_logger.info(
        f"Translation ({mode}) for '{section_key}' took {elapsed:.2f}s",
        extra={"mode": mode, "section_key": section_key, "elapsed": round(elapsed, 3), **kwargs},
    )


def log_sync_result(processed: int, errors: int, **kwargs: Any) -> None:
    """배치 동기화 결과 기록"""
    level = logging.INFO if errors == 0 else logging.WARNING
    _event_logger.log(
        level,
        f"Sync finished: {processed} processed, {errors} errors",
        extra={"processed": processed, "errors": errors, **kwargs},
    )


def log_error(message: str, error: BaseException, **kwargs: Any) -> None:
    """예외 기록 (스택 트레이스 포함)"""
    _event_logger.error(f"{message}: {error}", exc_info=error, extra={"error_type": type(error).__name__, **kwargs})
