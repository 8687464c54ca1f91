"""Prompt helper functions for section translation.

Goals:
1. 강한 단일 SYSTEM 역할: 번역만 수행, 설명/주석 추가 금지.
2. 마크다운 구조 보존: 헤딩 레벨, 코드 블록, 수식, 링크/레퍼런스 불변.
3. 모드별 Task Prompt: new (섹션 신규 번역), update (기존 번역 갱신), full (문서 전체).
4. 용어집(glossary) 주입: 지정된 번역어를 일관되게 사용.

Use build_prompts(mode, ...) to obtain (system_prompt, user_prompt).
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

SECTION_START = "[SECTION TO TRANSLATE]"
SECTION_END = "[/END SECTION]"
OLD_VERSION = "[OLD VERSION]"
NEW_VERSION = "[NEW VERSION]"
CURRENT_TRANSLATION = "[CURRENT TRANSLATION]"

MAX_GLOSSARY_TERMS = 300

LANGUAGE_NAMES = {
    "en": "English",
    "zh-cn": "Simplified Chinese",
    "zh-tw": "Traditional Chinese",
    "ja": "Japanese",
    "ko": "Korean",
    "fa": "Persian (Farsi)",
    "ar": "Arabic",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
}


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get((code or "").lower(), code)


# ============================================================
# Glossary
# ============================================================
def format_glossary(glossary: Optional[Dict[str, Any]], target_language: str, source_language: str = "en") -> str:
    """용어집을 '- "term" → "translation" (context)' 줄 목록으로 변환"""
    if not glossary:
        return ""
    lines: List[str] = []
    for term in (glossary.get("terms") or [])[:MAX_GLOSSARY_TERMS]:
        source = term.get(source_language)
        target = term.get(target_language)
        if not source or not target:
            continue
        context = term.get("context")
        line = f'- "{source}" → "{target}"'
        if context:
            line += f" ({context})"
        lines.append(line)
    return "\n".join(lines)


# ============================================================
# System Role (shared core)
# ============================================================
MARKDOWN_RULES = (
    "Markdown rules:\n"
    "- Keep every heading at exactly the same level (same number of '#') and keep a space after '#'\n"
    "- Translate heading text, keep the heading order and count unchanged\n"
    "- Do NOT translate code inside code blocks or inline code; keep fences (``` or ~~~) and their info strings intact\n"
    "- Keep math ($...$, $$...$$) and LaTeX commands unchanged\n"
    "- Keep MyST directives, roles, labels, cross references and URLs unchanged\n"
    "- Keep blank lines and list structure\n"
    "- Output only the translated markdown, without explanations or surrounding code fences\n"
)


def _system_role(source_language: str, target_language: str, glossary_text: str) -> str:
    role = (
        f"Role: professional technical translator from {language_name(source_language)} "
        f"to {language_name(target_language)} for lecture documents.\n"
        "Translate faithfully and naturally; do not add, omit or summarize content.\n"
        + MARKDOWN_RULES
    )
    if glossary_text:
        role += "\nGlossary (always use these translations):\n" + glossary_text + "\n"
    return role


# ============================================================
# Task Prompts
# ============================================================
def build_new_section_prompt(section_text: str, source_language: str, target_language: str,
                             glossary_text: str = "") -> Tuple[str, str]:
    system = _system_role(source_language, target_language, glossary_text)
    user = (
        f"Translate the following section into {language_name(target_language)}.\n\n"
        f"{SECTION_START}\n{section_text}\n{SECTION_END}\n"
    )
    return system, user


def build_update_prompt(old_source: str, new_source: str, current_translation: str,
                        source_language: str, target_language: str,
                        glossary_text: str = "") -> Tuple[str, str]:
    system = _system_role(source_language, target_language, glossary_text)
    user = (
        f"The {language_name(source_language)} section below was edited. Update the current "
        f"{language_name(target_language)} translation so it matches the new version.\n"
        "- Keep wording of unchanged sentences exactly as in the current translation\n"
        "- Translate only what was added or modified, remove what was deleted\n\n"
        f"{OLD_VERSION}\n{old_source}\n\n"
        f"{NEW_VERSION}\n{new_source}\n\n"
        f"{CURRENT_TRANSLATION}\n{current_translation}\n\n"
        "Return the complete updated translation of the section.\n"
    )
    return system, user


def build_full_document_prompt(document_text: str, source_language: str, target_language: str,
                               glossary_text: str = "") -> Tuple[str, str]:
    system = _system_role(source_language, target_language, glossary_text)
    user = (
        f"Translate the whole document below into {language_name(target_language)}. "
        "Every heading of the original must appear in the translation, in the same order.\n\n"
        f"{SECTION_START}\n{document_text}\n{SECTION_END}\n"
    )
    return system, user
