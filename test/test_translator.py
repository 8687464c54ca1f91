"""
Tests for the translation service, prompts and retry policy
"""
from unittest.mock import Mock

import httpx
import openai
import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from domain.document.errors import TranslationError
from domain.langgraph.nodes.prompts import (
    CURRENT_TRANSLATION,
    NEW_VERSION,
    OLD_VERSION,
    SECTION_END,
    SECTION_START,
    build_full_document_prompt,
    build_new_section_prompt,
    build_update_prompt,
    format_glossary,
)
from domain.langgraph.translator import (
    API_MAX_TOKENS,
    MockTranslationService,
    TranslationService,
    clean_response,
    estimate_output_tokens,
    mock_translate,
)
from domain.langgraph.utils.llm_backoff import describe_api_error, invoke_with_retry, is_retryable_error

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _rate_limit_error():
    return openai.RateLimitError("rate limited", response=httpx.Response(429, request=_REQUEST), body=None)


def _server_error():
    return openai.InternalServerError("boom", response=httpx.Response(500, request=_REQUEST), body=None)


def _auth_error():
    return openai.AuthenticationError("bad key", response=httpx.Response(401, request=_REQUEST), body=None)


GLOSSARY = {
    "terms": [
        {"en": "Markov chain", "zh-cn": "马尔可夫链"},
        {"en": "Exercise", "zh-cn": "练习", "context": "section heading"},
        {"en": "only english"},
    ]
}


class TestPrompts:
    """Test prompt construction."""

    def test_glossary_format(self):
        text = format_glossary(GLOSSARY, "zh-cn")

        assert text.splitlines() == [
            '- "Markov chain" → "马尔可夫链"',
            '- "Exercise" → "练习" (section heading)',
        ]

    def test_glossary_missing(self):
        assert format_glossary(None, "zh-cn") == ""

    def test_new_section_prompt_wraps_section(self):
        system, user = build_new_section_prompt("## A\n\ntext\n", "en", "zh-cn", "- \"a\" → \"甲\"")

        assert "Simplified Chinese" in system
        assert "Glossary" in system
        assert f"{SECTION_START}\n## A\n\ntext\n\n{SECTION_END}" in user

    def test_update_prompt_has_all_versions(self):
        _, user = build_update_prompt("old text", "new text", "旧译文", "en", "zh-cn")

        assert user.index(OLD_VERSION) < user.index(NEW_VERSION) < user.index(CURRENT_TRANSLATION)
        assert "old text" in user and "new text" in user and "旧译文" in user

    def test_full_prompt_keeps_heading_rule(self):
        system, user = build_full_document_prompt("## A\n", "en", "ja")

        assert "same level" in system
        assert "Japanese" in user


class TestResponseCleaning:
    """Test normalization of model output."""

    def test_strips_wrapping_fence(self):
        assert clean_response("```markdown\n## 甲\n\n文本\n```") == "## 甲\n\n文本\n"

    def test_strips_section_markers(self):
        assert clean_response(f"{SECTION_START}\n## 甲\n{SECTION_END}\n") == "## 甲\n"

    def test_keeps_inner_code_blocks(self):
        text = "## 甲\n\n```python\nx = 1\n```\n\n文本\n"
        assert clean_response(text) == text


class TestRetry:
    """Test the retry policy around LLM calls."""

    def test_retryable_classification(self):
        assert is_retryable_error(_rate_limit_error())
        assert is_retryable_error(_server_error())
        assert is_retryable_error(openai.APIConnectionError(request=_REQUEST))
        assert not is_retryable_error(_auth_error())
        assert not is_retryable_error(ValueError("x"))

    def test_retries_then_succeeds(self):
        llm = Mock()
        llm.invoke.side_effect = [_rate_limit_error(), _server_error(), AIMessage(content="ok")]

        result = invoke_with_retry(llm, ["msg"], max_attempts=3, base_delay=0)

        assert result.content == "ok"
        assert llm.invoke.call_count == 3

    def test_gives_up_after_max_attempts(self):
        llm = Mock()
        llm.invoke.side_effect = _rate_limit_error()

        with pytest.raises(openai.RateLimitError):
            invoke_with_retry(llm, ["msg"], max_attempts=3, base_delay=0)

        assert llm.invoke.call_count == 3

    def test_auth_error_is_not_retried(self):
        llm = Mock()
        llm.invoke.side_effect = _auth_error()

        with pytest.raises(openai.AuthenticationError):
            invoke_with_retry(llm, ["msg"], max_attempts=3, base_delay=0)

        assert llm.invoke.call_count == 1

    def test_error_descriptions(self):
        assert describe_api_error(_auth_error()).startswith("Authentication failed")
        assert describe_api_error(_rate_limit_error()).startswith("Rate limit exceeded")


class TestTranslationService:
    """Test TranslationService over a stubbed chat model."""

    def _service(self, *responses):
        llm = Mock()
        llm.invoke.side_effect = list(responses)
        return TranslationService(llm=llm, model="test-model"), llm

    def test_translate_new_sends_system_and_user_messages(self):
        service, llm = self._service(AIMessage(content="## 甲\n\n文本"))

        result = service.translate_new("## A\n\ntext\n", "en", "zh-cn", GLOSSARY, key="a")

        assert result == "## 甲\n\n文本\n"
        messages = llm.invoke.call_args[0][0]
        assert isinstance(messages[0], SystemMessage)
        assert isinstance(messages[1], HumanMessage)
        assert "马尔可夫链" in messages[0].content

    def test_translate_update_uses_update_prompt(self):
        service, llm = self._service(AIMessage(content="## 甲\n\n新文本\n"))

        service.translate_update("## A\nold\n", "## A\nnew\n", "## 甲\n旧\n", "en", "zh-cn", key="a")

        assert OLD_VERSION in llm.invoke.call_args[0][0][1].content

    def test_list_content_is_joined(self):
        service, _ = self._service(AIMessage(content=[{"type": "text", "text": "## 甲\n"}, {"type": "text", "text": "文本"}]))

        assert service.translate_new("## A\n", "en", "zh-cn", key="a") == "## 甲\n文本\n"

    def test_empty_response_raises(self):
        service, _ = self._service(AIMessage(content="   "))

        with pytest.raises(TranslationError) as exc_info:
            service.translate_new("## A\n", "en", "zh-cn", key="a")

        assert exc_info.value.key == "a"

    def test_api_failure_raises_translation_error(self):
        service, _ = self._service(_auth_error())

        with pytest.raises(TranslationError) as exc_info:
            service.translate_new("## A\n", "en", "zh-cn", key="a")

        assert "Authentication failed" in str(exc_info.value)

    def test_oversized_document_is_rejected_before_calling(self):
        service, llm = self._service()
        document = "x" * (API_MAX_TOKENS * 4)

        with pytest.raises(TranslationError):
            service.translate_full(document, "en", "zh-cn", key="big.md")

        llm.invoke.assert_not_called()

    def test_requires_api_key_without_llm(self, monkeypatch):
        monkeypatch.setattr("app.config.OPENAI_API_KEY", None)

        with pytest.raises(ValueError):
            TranslationService()


class TestTokenEstimate:
    """Test output size estimation."""

    def test_cjk_uses_smaller_factor(self):
        assert estimate_output_tokens(4000, "zh-cn") < estimate_output_tokens(4000, "fr")

    def test_rtl_uses_larger_factor(self):
        assert estimate_output_tokens(4000, "fa") > estimate_output_tokens(4000, "fr")


class TestMockTranslation:
    """Test the deterministic mock translator."""

    def test_prefixes_headings_and_prose(self):
        text = "## Alpha\n\nSome text.\n"
        assert mock_translate(text, "zh-cn") == "## [zh-cn] Alpha\n\n[zh-cn] Some text.\n"

    def test_leaves_code_and_math_alone(self):
        text = "```python\nprint('x')\n## not heading\n```\n$$\nx\n$$\n"
        assert mock_translate(text, "zh-cn") == text

    def test_records_calls_and_fails_on_request(self):
        service = MockTranslationService(fail_keys=["b"])

        service.translate_new("## A\n", "en", "zh-cn", key="a")
        with pytest.raises(TranslationError):
            service.translate_update("", "## B\n", "", "en", "zh-cn", key="b")

        assert [call["key"] for call in service.calls] == ["a", "b"]
