"""
Langgraph 도메인 모듈
LLM을 이용한 섹션 단위 번역 동기화
"""
from .translator import TranslationService, MockTranslationService, get_translator
from .translation_workflow import TranslationWorkflow

__all__ = [
    "TranslationService",
    "MockTranslationService",
    "get_translator",
    "TranslationWorkflow",
]
