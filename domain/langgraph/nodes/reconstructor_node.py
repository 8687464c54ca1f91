"""
③ 재구성 노드

번역 결과와 기존 번역 문서를 합쳐 새 번역 문서를 만듭니다.
"""
from app.logging_config import get_logger
from domain.document.errors import FileError
from domain.document.reconstructor import reconstruct

from ..translation_state import TranslationState

logger = get_logger("nodes.reconstructor")


def reconstructor_node(state: TranslationState) -> TranslationState:
    """
    재구성 노드

    출력:
        - document_content: heading-map 이 주입된 새 번역 문서
        - updated_heading_map
        - status: "completed" | "error"
    """
    filename = state.get("filename", "<document>")
    translations = state.get("translations") or {}
    try:
        result = reconstruct(
            state.get("target_content", ""),
            state.get("change_tree", []),
            translations.get,
            state.get("heading_map") or {},
            filename=filename,
        )
        state["document_content"] = result.document
        state["updated_heading_map"] = result.heading_map
        state["status"] = "completed"
        return state

    except FileError as e:
        state["error"] = str(e)
        state["exception"] = e
        state["status"] = "error"
        return state
