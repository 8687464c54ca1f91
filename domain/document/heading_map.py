"""
Heading-map 모듈

원문 섹션 키(id 경로) -> 번역 문서의 헤딩 텍스트 매핑을 다룹니다.
매핑은 번역 문서 front matter 의 `heading-map` 키에 저장되며,
다른 front matter 항목은 그대로 둔 채 이 블록만 교체합니다.
"""

import re
from types import MappingProxyType
from typing import List, Mapping, Optional

import yaml

from app.logging_config import get_logger
from .change_detector import ChangeRecord, ChangeStatus, iter_records
from .section_parser import Section, join_key, split_front_matter

logger = get_logger("heading_map")

HEADING_MAP_KEY = "heading-map"

HeadingMap = Mapping[str, str]

_KEY_LINE = re.compile(rf'^{re.escape(HEADING_MAP_KEY)}\s*:')

EMPTY_MAP: HeadingMap = MappingProxyType({})


def _freeze(entries: dict) -> HeadingMap:
    return MappingProxyType(dict(entries))


def _front_matter_lines(front_matter: str) -> List[str]:
    return front_matter.splitlines(keepends=True)


def extract(target_text: str) -> HeadingMap:
    """번역 문서에서 heading-map 읽기 (없거나 읽을 수 없으면 빈 매핑)"""
    front_matter, _ = split_front_matter(target_text)
    if not front_matter:
        return EMPTY_MAP

    inner = "".join(_front_matter_lines(front_matter)[1:-1])
    try:
        # BaseLoader: Yes/No/1e3 같은 값도 적힌 문자열 그대로 읽음
        data = yaml.load(inner, Loader=yaml.BaseLoader)
    except yaml.YAMLError as e:
        logger.warning(f"Could not parse front matter, ignoring heading-map: {e}")
        return EMPTY_MAP

    if not isinstance(data, dict):
        return EMPTY_MAP
    raw = data.get(HEADING_MAP_KEY)
    if raw is None or raw == "":
        return EMPTY_MAP

    entries = {}
    if isinstance(raw, dict):
        for key, value in raw.items():
            entries[str(key)] = "" if value is None else str(value)
    elif isinstance(raw, list):
        # 리스트 형식 (- key: value) 도 허용
        for item in raw:
            if isinstance(item, dict):
                for key, value in item.items():
                    entries[str(key)] = "" if value is None else str(value)
    else:
        logger.warning(f"Unexpected {HEADING_MAP_KEY} type: {type(raw).__name__}, ignoring")
        return EMPTY_MAP
    return _freeze(entries)


def update(
    heading_map: HeadingMap,
    changes: List[ChangeRecord],
    resolved_headings: Mapping[str, str],
) -> HeadingMap:
    """
    변경 분류에 따라 새 heading-map 생성

    - changed / added: 재구성 중 확정된 번역 헤딩으로 설정/덮어쓰기
    - removed: 해당 키(와 하위 키) 삭제
    - unchanged: 기존 값 유지
    결과 키 집합은 새 원문 트리에서 도달 가능한 키와 정확히 같고, 순서도 새 원문 순서를 따릅니다.
    """
    entries = {}
    for key, record in iter_records(changes):
        if record.status == ChangeStatus.REMOVED:
            continue

        heading: Optional[str]
        if record.status == ChangeStatus.UNCHANGED:
            heading = heading_map.get(key) or resolved_headings.get(key)
        else:
            heading = resolved_headings.get(key) or heading_map.get(key)

        if not heading:
            logger.warning(f"No target heading resolved for '{key}', using source heading")
            heading = record.section.heading
        entries[key] = heading
    return _freeze(entries)


def render_block(heading_map: HeadingMap) -> str:
    """heading-map YAML 블록 텍스트"""
    if not heading_map:
        return ""
    return yaml.safe_dump(
        {HEADING_MAP_KEY: dict(heading_map)},
        allow_unicode=True,
        sort_keys=False,
        default_flow_style=False,
        width=1_000_000,
    )


def _block_end(inner: List[str], start: int) -> int:
    """heading-map 키 블록의 끝 인덱스 (들여쓴 줄과 최상위 '- ' 항목까지, 뒤 공백줄 제외)"""
    end = start + 1
    last_content = start + 1
    while end < len(inner):
        line = inner[end]
        if line.strip() == "":
            end += 1
            continue
        if line[0] in (" ", "\t") or line.startswith("- "):
            end += 1
            last_content = end
            continue
        break
    return last_content


def inject(document_text: str, heading_map: HeadingMap) -> str:
    """
    문서의 heading-map 블록만 교체

    저장된 매핑과 같으면 문서를 그대로 반환합니다 (바이트 단위 동일).
    """
    if list(extract(document_text).items()) == list(heading_map.items()):
        return document_text

    front_matter, body = split_front_matter(document_text)
    block = render_block(heading_map)

    if not front_matter:
        if not block:
            return document_text
        return f"---\n{block}---\n{body}"

    lines = _front_matter_lines(front_matter)
    opener, inner, closer = lines[0], lines[1:-1], lines[-1]

    start = next((i for i, line in enumerate(inner) if _KEY_LINE.match(line)), None)
    block_lines = block.splitlines(keepends=True)

    if start is None:
        if inner and not inner[-1].endswith("\n"):
            inner[-1] += "\n"
        inner = inner + block_lines
    else:
        end = _block_end(inner, start)
        inner = inner[:start] + block_lines + inner[end:]

    return opener + "".join(inner) + closer + body


def build_heading_map(source_tree: List[Section], translated_tree: List[Section],
                      parent_key: Optional[str] = None) -> HeadingMap:
    """
    새로 번역한 문서용 heading-map (원문/번역 트리를 같은 레벨에서 위치로 짝지음)

    번역 쪽에 대응 섹션이 없으면 원문 헤딩을 기록합니다.
    """
    entries = {}
    _pair_positionally(source_tree, translated_tree, parent_key, entries)
    return _freeze(entries)


def _pair_positionally(source: List[Section], translated: List[Section],
                       parent_key: Optional[str], entries: dict) -> None:
    source = [s for s in source if not s.is_implicit]
    translated = [s for s in translated if not s.is_implicit]
    if len(source) != len(translated):
        logger.warning(
            f"Heading count mismatch under '{parent_key or '<root>'}': "
            f"{len(source)} source vs {len(translated)} translated"
        )
    for index, section in enumerate(source):
        key = join_key(parent_key, section.id)
        match = translated[index] if index < len(translated) else None
        entries[key] = match.heading if match is not None else section.heading
        _pair_positionally(section.subsections, match.subsections if match is not None else [], key, entries)
