"""
번역 서비스

ChatOpenAI 를 이용해 섹션/문서를 번역합니다.
- translate_new: 새 섹션 (하위 섹션 포함) 번역
- translate_update: 원문 변경분을 기존 번역에 반영
- translate_full: 번역이 없는 문서 전체 번역
"""
import math
import re
import time
from typing import Any, Dict, List, Optional

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from app import config
from app.logging_config import get_logger, log_translation_call
from domain.document.errors import TranslationError
from domain.document.section_parser import FENCE_PATTERN, HEADING_PATTERN
from .nodes.prompts import (
    SECTION_END,
    SECTION_START,
    build_full_document_prompt,
    build_new_section_prompt,
    build_update_prompt,
    format_glossary,
)
from .utils.llm_backoff import describe_api_error, invoke_with_retry

logger = get_logger("translator")

API_MAX_TOKENS = 32768
PROMPT_OVERHEAD_TOKENS = 2000

# 출력 토큰 / 입력 토큰 비율 (언어별 추정치)
_CJK_LANGUAGES = {"zh-cn", "zh-tw", "ja", "ko"}
_RTL_LANGUAGES = {"fa", "ar", "he", "ur"}

_WRAPPING_FENCE = re.compile(r"^```[a-zA-Z]*\n(.*)\n```\s*$", re.DOTALL)


def estimate_output_tokens(source_length: int, target_language: str) -> int:
    """원문 길이(문자 수)로 번역 출력 토큰 수 추정"""
    language = (target_language or "").lower()
    if language in _CJK_LANGUAGES:
        factor = 1.3
    elif language in _RTL_LANGUAGES:
        factor = 1.8
    else:
        factor = 1.5
    return math.ceil(source_length / 4 * factor) + PROMPT_OVERHEAD_TOKENS


def clean_response(text: str) -> str:
    """LLM 응답에서 섹션 마커와 전체를 감싼 코드 펜스 제거"""
    text = text.strip("\n")
    match = _WRAPPING_FENCE.match(text)
    if match:
        text = match.group(1)
    lines = [line for line in text.split("\n") if line.strip() not in (SECTION_START, SECTION_END)]
    return "\n".join(lines).strip("\n") + "\n"


class TranslationService:
    """LLM 기반 번역기"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        llm: Any = None,
    ):
        self.model = model or config.TRANSLATION_MODEL
        if llm is not None:
            self.llm = llm
        else:
            api_key = api_key or config.OPENAI_API_KEY
            if not api_key:
                raise ValueError("OPENAI_API_KEY is required (or set USE_MOCK_TRANSLATOR=true)")
            self.llm = ChatOpenAI(
                api_key=api_key,
                model=self.model,
                temperature=config.TRANSLATION_TEMPERATURE if temperature is None else temperature,
            )

    def translate_new(self, section_text: str, source_language: str, target_language: str,
                      glossary: Optional[Dict[str, Any]] = None, key: str = "") -> str:
        system, user = build_new_section_prompt(
            section_text, source_language, target_language,
            format_glossary(glossary, target_language, source_language),
        )
        return self._invoke("new", key, system, user)

    def translate_update(self, old_source: str, new_source: str, current_translation: str,
                         source_language: str, target_language: str,
                         glossary: Optional[Dict[str, Any]] = None, key: str = "") -> str:
        system, user = build_update_prompt(
            old_source, new_source, current_translation, source_language, target_language,
            format_glossary(glossary, target_language, source_language),
        )
        return self._invoke("update", key, system, user)

    def translate_full(self, document_text: str, source_language: str, target_language: str,
                       glossary: Optional[Dict[str, Any]] = None, key: str = "<document>") -> str:
        estimated = estimate_output_tokens(len(document_text), target_language)
        if estimated > API_MAX_TOKENS:
            raise TranslationError(
                key,
                f"document too large ({estimated} estimated tokens > {API_MAX_TOKENS}); "
                "split the document or sync it section by section",
            )
        system, user = build_full_document_prompt(
            document_text, source_language, target_language,
            format_glossary(glossary, target_language, source_language),
        )
        return self._invoke("full", key, system, user)

    def _invoke(self, mode: str, key: str, system: str, user: str) -> str:
        messages = [SystemMessage(content=system), HumanMessage(content=user)]
        started = time.monotonic()
        try:
            response = invoke_with_retry(self.llm, messages)
        except Exception as e:
            raise TranslationError(key, describe_api_error(e)) from e

        content = getattr(response, "content", response)
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part) for part in content
            )
        text = clean_response(str(content or ""))
        if not text.strip():
            raise TranslationError(key, "empty response from translation model")

        log_translation_call(mode, key, time.monotonic() - started, model=self.model)
        return text


class MockTranslationService:
    """
    테스트/개발용 번역기 (LLM 호출 없음)

    코드 블록/수식 밖의 헤딩과 문장 줄 앞에 '[언어] ' 를 붙입니다.
    """

    def __init__(self, fail_keys: Optional[List[str]] = None):
        self.model = "mock"
        self.fail_keys = set(fail_keys or [])
        self.calls: List[Dict[str, str]] = []

    def translate_new(self, section_text: str, source_language: str, target_language: str,
                      glossary: Optional[Dict[str, Any]] = None, key: str = "") -> str:
        return self._translate("new", key, section_text, target_language)

    def translate_update(self, old_source: str, new_source: str, current_translation: str,
                         source_language: str, target_language: str,
                         glossary: Optional[Dict[str, Any]] = None, key: str = "") -> str:
        return self._translate("update", key, new_source, target_language)

    def translate_full(self, document_text: str, source_language: str, target_language: str,
                       glossary: Optional[Dict[str, Any]] = None, key: str = "<document>") -> str:
        return self._translate("full", key, document_text, target_language)

    def _translate(self, mode: str, key: str, text: str, target_language: str) -> str:
        self.calls.append({"mode": mode, "key": key})
        if key in self.fail_keys:
            raise TranslationError(key, "mock failure")
        return mock_translate(text, target_language)


def mock_translate(text: str, target_language: str) -> str:
    prefix = f"[{target_language}] "
    out: List[str] = []
    fence = None
    in_math = False
    for line in text.splitlines(keepends=True):
        stripped = line.strip()
        if fence is not None:
            if stripped and stripped == fence[0] * len(stripped) and len(stripped) >= fence[1]:
                fence = None
            out.append(line)
            continue
        if in_math:
            if line.count("$$") % 2 == 1:
                in_math = False
            out.append(line)
            continue
        fence_match = FENCE_PATTERN.match(line)
        if fence_match:
            marker = fence_match.group(1)
            fence = (marker[0], len(marker))
            out.append(line)
            continue
        if stripped.startswith("$$") and line.count("$$") % 2 == 1:
            in_math = True
            out.append(line)
            continue

        heading = HEADING_PATTERN.match(line.rstrip("\r\n"))
        if heading:
            ending = line[len(line.rstrip("\r\n")):]
            out.append(f"{heading.group(1)} {prefix}{heading.group(2)}{ending}")
        elif line[:1].isalpha():
            out.append(prefix + line)
        else:
            out.append(line)
    return "".join(out)


def get_translator(use_mock: Optional[bool] = None):
    """설정에 맞는 번역기 인스턴스 반환"""
    if use_mock if use_mock is not None else config.USE_MOCK_TRANSLATOR:
        logger.info("Using mock translator")
        return MockTranslationService()
    return TranslationService()
