"""
① 변경 감지 노드

이전/새 원문을 섹션 트리로 파싱해 비교하고 현재 번역의 heading-map 을 읽습니다.
"""
from app.logging_config import get_logger
from domain.document.change_detector import detect_changes, has_changes, summarize_changes
from domain.document.heading_map import extract
from domain.document.section_parser import parse

from ..translation_state import TranslationState

logger = get_logger("nodes.change_detector")


def change_detector_node(state: TranslationState) -> TranslationState:
    """
    변경 감지 노드

    출력:
        - change_tree, heading_map, change_summary
        - status: "translating" (변경 있음) | "completed" (변경 없음, 번역 그대로 유지)
    """
    filename = state.get("filename", "<document>")
    try:
        change_tree = detect_changes(parse(state.get("old_source", "")), parse(state.get("new_source", "")))
        state["change_tree"] = change_tree
        state["heading_map"] = extract(state.get("target_content", ""))
        state["change_summary"] = summarize_changes(change_tree)

        if not has_changes(change_tree):
            logger.info(f"{filename}: no section changes detected")
            state["document_content"] = state.get("target_content", "")
            state["updated_heading_map"] = state["heading_map"]
            state["status"] = "completed"
            return state

        logger.info(f"{filename}: changes {state['change_summary']}")
        state["status"] = "translating"
        return state

    except Exception as e:
        logger.error(f"{filename}: change detection failed: {e}")
        state["error"] = f"Change detection failed: {e}"
        state["exception"] = e
        state["status"] = "error"
        return state
