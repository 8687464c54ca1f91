"""
Test configuration and fixtures
"""
import logging
from typing import Dict, List, Optional

import pytest

from domain.document.errors import TranslationError


OLD_SOURCE = """# Lecture Title

Intro paragraph.

## Alpha

Alpha text.

### Alpha Details

Details text.

## Beta

Beta text.
"""

TARGET = """---
jupytext:
  text_representation:
    extension: .md
heading-map:
  alpha: 阿尔法
  alpha::alpha-details: 阿尔法细节
  beta: 贝塔
---
# 讲座标题

介绍段落。

## 阿尔法

阿尔法文本。

### 阿尔法细节

细节文本。

## 贝塔

贝塔文本。
"""


class FakeTranslator:
    """Translator double returning canned text per section key."""

    def __init__(self, responses: Optional[Dict[str, str]] = None, fail_keys: Optional[List[str]] = None):
        self.responses = responses or {}
        self.fail_keys = set(fail_keys or [])
        self.calls: List[Dict[str, str]] = []

    def _answer(self, mode: str, key: str, text: str) -> str:
        self.calls.append({"mode": mode, "key": key, "text": text})
        if key in self.fail_keys:
            raise TranslationError(key, "fake failure")
        return self.responses.get(key, text)

    def translate_new(self, section_text, source_language, target_language, glossary=None, key=""):
        return self._answer("new", key, section_text)

    def translate_update(self, old_source, new_source, current_translation,
                         source_language, target_language, glossary=None, key=""):
        return self._answer("update", key, new_source)

    def translate_full(self, document_text, source_language, target_language, glossary=None, key="<document>"):
        return self._answer("full", key, document_text)


@pytest.fixture(autouse=True)
def propagate_app_logs():
    """Let caplog see records from the application logger tree."""
    app_logger = logging.getLogger("translation_sync")
    previous = app_logger.propagate
    app_logger.propagate = True
    yield
    app_logger.propagate = previous


@pytest.fixture
def old_source():
    return OLD_SOURCE


@pytest.fixture
def target_document():
    return TARGET


@pytest.fixture
def fake_translator():
    return FakeTranslator()
