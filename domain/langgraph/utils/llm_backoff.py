"""
LLM 호출 재시도 래퍼

레이트리밋/연결 오류/5xx 는 지수 백오프로 재시도하고,
인증 오류나 잘못된 요청은 즉시 실패시킵니다.
"""
import logging
from typing import Any, List, Optional

import openai
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from app import config
from app.logging_config import get_logger

logger = get_logger("llm_backoff")


def is_retryable_error(error: BaseException) -> bool:
    """재시도 대상 오류인지 판별"""
    if isinstance(error, (openai.RateLimitError, openai.APIConnectionError)):
        return True
    if isinstance(error, openai.APIStatusError):
        return error.status_code >= 500
    return False


def describe_api_error(error: BaseException) -> str:
    """API 오류를 사람이 읽을 수 있는 메시지로 변환"""
    if isinstance(error, openai.AuthenticationError):
        return "Authentication failed: Invalid or expired API key"
    if isinstance(error, openai.RateLimitError):
        return "Rate limit exceeded: Too many requests, retry later"
    if isinstance(error, openai.APIConnectionError):
        return "Connection error: Unable to reach the translation API (network)"
    if isinstance(error, openai.BadRequestError):
        return f"Bad request: {error}"
    if isinstance(error, openai.APIStatusError):
        return f"API error {error.status_code}: {error}"
    return str(error)


def invoke_with_retry(
    llm: Any,
    messages: List[Any],
    max_attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
) -> Any:
    """llm.invoke(messages) 를 재시도 정책과 함께 실행 (기본 3회, 대기 1s 후 2s)"""
    attempts = max_attempts if max_attempts is not None else config.RETRY_MAX_ATTEMPTS
    delay = base_delay if base_delay is not None else config.RETRY_BASE_DELAY

    retrying = Retrying(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_exponential(multiplier=delay, min=delay, max=delay * 8),
        retry=retry_if_exception(is_retryable_error),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    return retrying(llm.invoke, messages)
