from typing import Any, Dict, Optional
from functools import partial

from langgraph.graph import StateGraph, END

from app import config
from app.logging_config import get_logger
from domain.document.errors import FileError, SyncError, TranslationError, ValidationError
from domain.document.heading_map import build_heading_map, inject
from domain.document.section_parser import parse, split_front_matter
from domain.document.validator import validate_document

from .translation_state import TranslationState
from .translator import get_translator
from .nodes import (
    change_detector_node,
    section_translator_node,
    reconstructor_node,
)

logger = get_logger("translation_workflow")


def _route_after_detection(state: TranslationState) -> str:
    return "translate" if state.get("status") == "translating" else "end"


def _route_after_translation(state: TranslationState) -> str:
    return "reconstruct" if state.get("status") == "reconstructing" else "end"


#LangGraph 워크플로우 메인 클래스
class TranslationWorkflow:
    """
    문서 단위 섹션 번역 동기화 워크플로우

    3개 노드로 구성:
        1. change_detector: 이전/새 원문 비교 (변경 없으면 바로 종료)
        2. section_translator: 변경/추가 섹션만 번역
        3. reconstructor: 새 번역 문서 조립
    """

    def __init__(self, translator: Any = None, use_mock: Optional[bool] = None):
        """
        Args:
            translator: 번역기 (없으면 설정에 따라 생성)
            use_mock: True면 LLM 대신 Mock 번역기 사용 (테스트/개발용)
        """
        self.translator = translator or get_translator(use_mock)
        self.workflow = self._build_workflow()

    def _build_workflow(self):
        """LangGraph 워크플로우 구성"""
        workflow = StateGraph(TranslationState)

        workflow.add_node("change_detector", change_detector_node)
        # partial을 사용하여 translator를 바인딩
        workflow.add_node(
            "section_translator",
            partial(section_translator_node, translator=self.translator),
        )
        workflow.add_node("reconstructor", reconstructor_node)

        workflow.set_entry_point("change_detector")
        workflow.add_conditional_edges(
            "change_detector",
            _route_after_detection,
            {"translate": "section_translator", "end": END},
        )
        workflow.add_conditional_edges(
            "section_translator",
            _route_after_translation,
            {"reconstruct": "reconstructor", "end": END},
        )
        workflow.add_edge("reconstructor", END)

        return workflow.compile()

    def run(
        self,
        old_source: str,
        new_source: str,
        target_content: str,
        filename: str,
        source_language: Optional[str] = None,
        target_language: Optional[str] = None,
        glossary: Optional[Dict[str, Any]] = None,
    ) -> TranslationState:
        """워크플로우 실행 후 최종 상태 반환 (실패해도 예외 없이 status="error")"""
        initial_state: TranslationState = {
            "filename": filename,
            "old_source": old_source or "",
            "new_source": new_source or "",
            "target_content": target_content or "",
            "source_language": source_language or config.SOURCE_LANGUAGE,
            "target_language": target_language or config.TARGET_LANGUAGE,
            "glossary": glossary,
            "status": "detecting",
        }
        return self.workflow.invoke(initial_state)

    def process(
        self,
        old_source: str,
        new_source: str,
        target_content: str,
        filename: str,
        source_language: Optional[str] = None,
        target_language: Optional[str] = None,
        glossary: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        기존 번역 문서를 새 원문에 맞게 갱신

        Returns:
            새 번역 문서 텍스트

        Raises:
            FileError: 번역/매칭/검증 실패
        """
        result = self.run(old_source, new_source, target_content, filename,
                          source_language, target_language, glossary)

        if result.get("status") == "completed":
            return result.get("document_content") or ""

        cause = result.get("exception")
        if isinstance(cause, FileError):
            raise cause
        raise FileError(filename, cause or SyncError(result.get("error", "Unknown error")))

    def translate_new_file(
        self,
        new_source: str,
        filename: str,
        source_language: Optional[str] = None,
        target_language: Optional[str] = None,
        glossary: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        번역이 없는 문서 전체 번역

        원문 front matter 는 그대로 두고 본문만 번역한 뒤 heading-map 을 생성해 주입합니다.
        """
        source_language = source_language or config.SOURCE_LANGUAGE
        target_language = target_language or config.TARGET_LANGUAGE
        front_matter, body = split_front_matter(new_source)

        try:
            translated = self.translator.translate_full(
                body, source_language, target_language, glossary, key=filename
            ) if body.strip() else body
            heading_map = build_heading_map(parse(body), parse(translated))
            document = inject(front_matter + translated, heading_map)
            validate_document(document, filename)
        except (TranslationError, ValidationError) as e:
            logger.error(f"Full translation failed for {filename}: {e}")
            raise FileError(filename, e) from e

        logger.info(f"Translated new file {filename}: {len(heading_map)} heading-map entries")
        return document
