"""
② 섹션 번역 노드

변경 트리를 순회하며 번역이 필요한 섹션만 번역기에 요청합니다.
- added: 섹션 전체(하위 포함)를 새로 번역, 하위 레코드는 건너뜀
- changed (자체 본문 변경): 이전/새 원문 + 현재 번역으로 갱신 번역
- changed (하위만 변경), unchanged, removed: 번역 호출 없음
"""
from typing import Dict, List, Mapping, Optional

from app.logging_config import get_logger
from domain.document.change_detector import ChangeRecord, ChangeStatus, iter_records
from domain.document.errors import TranslationError
from domain.document.section_parser import (
    KEY_SEPARATOR,
    Section,
    own_text,
    parse,
    render_section,
    slugify,
    split_front_matter,
)

from ..translation_state import TranslationState

logger = get_logger("nodes.section_translator")


def find_target_section(target_tree: List[Section], key: str, heading_map: Mapping[str, str]) -> Optional[Section]:
    """heading-map 을 따라 키 경로에 해당하는 번역 섹션 찾기"""
    siblings = target_tree
    section: Optional[Section] = None
    prefix = ""
    for segment in key.split(KEY_SEPARATOR):
        prefix = f"{prefix}{KEY_SEPARATOR}{segment}" if prefix else segment
        candidates = [s for s in siblings if s.is_implicit] if segment == "_preamble" else \
            [s for s in siblings if not s.is_implicit]
        mapped = heading_map.get(prefix)
        section = None
        if segment == "_preamble":
            section = candidates[0] if candidates else None
        elif mapped:
            section = next((s for s in candidates if s.heading == mapped), None) or \
                next((s for s in candidates if s.id == slugify(mapped)), None)
        else:
            # 헤딩을 번역하지 않은 경우 (코드 이름 등)
            section = next((s for s in candidates if s.id == segment), None)
        if section is None:
            return None
        siblings = section.subsections
    return section


def _translate_record(translator, state: TranslationState, key: str, record: ChangeRecord,
                      target_tree: List[Section]) -> str:
    source_language = state.get("source_language", "en")
    target_language = state.get("target_language", "zh-cn")
    glossary = state.get("glossary")
    new_section = record.new_section

    if record.status == ChangeStatus.ADDED:
        text = new_section.content if new_section.is_implicit else render_section(new_section)
        return translator.translate_new(text, source_language, target_language, glossary, key=key)

    current = find_target_section(target_tree, key, state.get("heading_map") or {})
    if current is None:
        logger.warning(f"{key}: current translation not found, translating section from scratch")
        return translator.translate_new(own_text(new_section), source_language, target_language, glossary, key=key)

    return translator.translate_update(
        own_text(record.old_section),
        own_text(new_section),
        own_text(current),
        source_language,
        target_language,
        glossary,
        key=key,
    )


def section_translator_node(state: TranslationState, translator=None) -> TranslationState:
    """
    섹션 번역 노드

    입력:
        - change_tree, heading_map, target_content
        - translator: TranslationService | MockTranslationService

    출력:
        - translations: 섹션 키 -> 번역 텍스트
        - status: "reconstructing" | "error"
    """
    filename = state.get("filename", "<document>")
    translations: Dict[str, str] = {}
    try:
        if translator is None:
            raise ValueError("translator is required")

        _, target_body = split_front_matter(state.get("target_content", ""))
        target_tree = parse(target_body)
        added_prefixes: List[str] = []

        for key, record in iter_records(state.get("change_tree", []), include_implicit=True):
            if any(key.startswith(prefix + KEY_SEPARATOR) for prefix in added_prefixes):
                continue
            if record.status == ChangeStatus.ADDED:
                added_prefixes.append(key)
            if not record.needs_translation:
                continue
            translations[key] = _translate_record(translator, state, key, record, target_tree)

        logger.info(f"{filename}: translated {len(translations)} section(s)")
        state["translations"] = translations
        state["status"] = "reconstructing"
        return state

    except TranslationError as e:
        logger.error(f"{filename}: {e}")
        state["translations"] = translations
        state["error"] = str(e)
        state["exception"] = e
        state["status"] = "error"
        return state
    except Exception as e:
        logger.error(f"{filename}: section translation failed: {e}")
        state["error"] = f"Section translation failed: {e}"
        state["exception"] = e
        state["status"] = "error"
        return state
