"""
마크다운 섹션 파싱 모듈

헤딩(## ~ ######)을 기준으로 문서를 섹션 트리로 파싱하고, 다시 원문 그대로 직렬화합니다.
코드 펜스(```, ~~~)와 수식 블록($$) 안의 '#' 줄은 헤딩으로 취급하지 않습니다.
"""

import re
import unicodedata
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from app.logging_config import get_logger

logger = get_logger("section_parser")

# 헤딩 앞 텍스트(제목, 도입부) 또는 헤딩이 없는 문서 전체를 담는 암시적 섹션
PREAMBLE_ID = "_preamble"

# heading-map 키 구분자 (부모::자식)
KEY_SEPARATOR = "::"

HEADING_PATTERN = re.compile(r'^(#{2,6}) (.*)$')
FENCE_PATTERN = re.compile(r'^ {0,3}(`{3,}|~{3,})')
FRONT_MATTER_CLOSERS = ("---", "...")


@dataclass
class Section:
    """헤딩 하나와 그 본문, 하위 섹션"""
    heading: str
    level: int
    id: str
    content: str = ""
    subsections: List["Section"] = field(default_factory=list)
    heading_line: str = ""

    @property
    def is_implicit(self) -> bool:
        return self.id == PREAMBLE_ID and not self.heading_line


def split_front_matter(text: str) -> Tuple[str, str]:
    """YAML front matter(--- ... ---)와 본문 분리. front matter가 없으면 ('', text)"""
    if not text.startswith("---"):
        return "", text
    lines = text.splitlines(keepends=True)
    if lines[0].rstrip("\r\n") != "---":
        return "", text
    for idx in range(1, len(lines)):
        if lines[idx].rstrip("\r\n") in FRONT_MATTER_CLOSERS:
            split_at = sum(len(line) for line in lines[:idx + 1])
            return text[:split_at], text[split_at:]
    # 닫히지 않은 front matter는 본문으로 취급
    return "", text


def slugify(heading: str) -> str:
    """헤딩 텍스트 -> id (소문자, 공백 연속은 '-', 문장부호 제거)"""
    lower = heading.strip().lower()
    kept = "".join(
        ch for ch in lower
        if ch.isspace() or ch in "-_" or unicodedata.category(ch)[0] in ("L", "N", "M")
    )
    slug = re.sub(r'\s+', '-', kept.strip())
    return slug or "section"


def _unique_id(base: str, siblings: List[Section]) -> str:
    existing = {s.id for s in siblings}
    if base not in existing:
        return base
    suffix = 2
    while f"{base}-{suffix}" in existing:
        suffix += 1
    return f"{base}-{suffix}"


def _clean_heading(raw: str) -> str:
    # ATX 닫는 '#' 제거 ("## Title ##")
    text = re.sub(r'\s+#+\s*$', '', raw)
    return text.strip()


def _fence_closes(line: str, fence: Tuple[str, int]) -> bool:
    char, length = fence
    stripped = line.strip()
    return len(stripped) >= length and stripped == char * len(stripped)


def parse(text: str) -> List[Section]:
    """
    텍스트를 최상위 섹션 리스트로 파싱

    - 헤딩은 직전에 열린 헤딩 중 레벨이 더 낮은 가장 가까운 헤딩의 자식이 됨
    - 헤딩 앞 텍스트는 암시적 섹션(PREAMBLE_ID)으로 보존
    - 헤딩이 없으면 문서 전체가 하나의 암시적 섹션
    - 닫히지 않은 펜스/수식은 예외 없이 문서 끝까지 열린 것으로 간주
    """
    _, body = split_front_matter(text)
    if not body:
        return []

    roots: List[Section] = []
    stack: List[Section] = []
    buffers: Dict[int, List[str]] = {}
    preamble_lines: List[str] = []
    current = preamble_lines

    fence: Optional[Tuple[str, int]] = None
    in_math = False
    region_start = 0

    for lineno, line in enumerate(body.splitlines(keepends=True), start=1):
        bare = line.rstrip("\r\n")

        if fence is not None:
            if _fence_closes(bare, fence):
                fence = None
            current.append(line)
            continue

        if in_math:
            if bare.count("$$") % 2 == 1:
                in_math = False
            current.append(line)
            continue

        fence_match = FENCE_PATTERN.match(bare)
        if fence_match:
            marker = fence_match.group(1)
            fence = (marker[0], len(marker))
            region_start = lineno
            current.append(line)
            continue

        if bare.strip().startswith("$$") and bare.count("$$") % 2 == 1:
            in_math = True
            region_start = lineno
            current.append(line)
            continue

        heading_match = HEADING_PATTERN.match(bare)
        if not heading_match:
            current.append(line)
            continue

        level = len(heading_match.group(1))
        heading = _clean_heading(heading_match.group(2))
        while stack and stack[-1].level >= level:
            stack.pop()
        siblings = stack[-1].subsections if stack else roots
        section = Section(
            heading=heading,
            level=level,
            id=_unique_id(slugify(heading), siblings),
            heading_line=line,
        )
        siblings.append(section)
        stack.append(section)
        current = buffers.setdefault(id(section), [])

    if fence is not None or in_math:
        region = "code fence" if fence is not None else "math block"
        logger.warning(f"Unclosed {region} opened at line {region_start}; treating the rest of the document as inside it")

    def _finalize(sections: List[Section]) -> None:
        for section in sections:
            section.content = "".join(buffers.get(id(section), []))
            _finalize(section.subsections)

    _finalize(roots)

    preamble = "".join(preamble_lines)
    if preamble:
        roots.insert(0, Section(heading="", level=1, id=PREAMBLE_ID, content=preamble))
    return roots


def render_section(section: Section) -> str:
    """섹션 하나를 (하위 섹션 포함) 원문으로 직렬화"""
    parts = [section.heading_line, section.content]
    parts.extend(render_section(child) for child in section.subsections)
    return "".join(parts)


def own_text(section: Section) -> str:
    """하위 섹션을 제외한 섹션 자체 텍스트 (헤딩 줄 + 본문)"""
    return section.heading_line + section.content


def serialize(sections: List[Section]) -> str:
    return "".join(render_section(s) for s in sections)


def join_key(parent_key: Optional[str], section_id: str) -> str:
    return f"{parent_key}{KEY_SEPARATOR}{section_id}" if parent_key else section_id


def iter_sections(sections: List[Section], parent_key: Optional[str] = None) -> Iterator[Tuple[str, Section]]:
    """(키, 섹션)을 문서 순서(깊이 우선)로 순회. 암시적 섹션은 제외"""
    for section in sections:
        if section.is_implicit:
            continue
        key = join_key(parent_key, section.id)
        yield key, section
        yield from iter_sections(section.subsections, key)


def section_keys(sections: List[Section]) -> List[str]:
    return [key for key, _ in iter_sections(sections)]
