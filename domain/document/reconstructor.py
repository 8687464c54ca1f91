"""
번역 문서 재구성 모듈

원문 변경 트리(change tree)를 새 원문 순서대로 따라가며
- unchanged: 기존 번역 섹션(하위 포함)을 그대로 복사
- changed:   섹션 자체 본문만 새 번역으로 교체, 하위 섹션은 각각 재귀 판정
- added:     새 번역 텍스트로 하위 포함 전체 생성
- removed:   출력과 heading-map 에서 제외
하여 새 번역 문서와 갱신된 heading-map 을 만듭니다.

섹션의 최종 텍스트는 항상 (자체 본문) + (하위 섹션 직렬화) 입니다.
부모 본문에 남은 텍스트에서 하위 섹션을 다시 만들지 않습니다 (중복 방지).
실패 시 FileError 를 던지며 부분 결과는 반환하지 않습니다.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Set

from app.logging_config import get_logger
from .change_detector import ChangeRecord, ChangeStatus
from .errors import FileError, MatchError, TranslationError, ValidationError
from .heading_map import HeadingMap, inject, update
from .section_parser import (
    PREAMBLE_ID,
    Section,
    join_key,
    own_text,
    parse,
    render_section,
    serialize,
    slugify,
    split_front_matter,
)
from .validator import validate_document

logger = get_logger("reconstructor")

TranslatedTextLookup = Callable[[str], Optional[str]]


@dataclass(frozen=True)
class ReconstructionResult:
    document: str
    heading_map: HeadingMap


@dataclass
class _Context:
    heading_map: HeadingMap
    lookup: TranslatedTextLookup
    filename: str
    resolved: Dict[str, str] = field(default_factory=dict)


def _match_trailing_newlines(text: str, like: str) -> str:
    """text 끝의 줄바꿈 수를 like 와 같게 맞춤"""
    body = text.rstrip("\r\n")
    trailing = like[len(like.rstrip("\r\n")):]
    if not body:
        return trailing
    return body + (trailing or "\n")


def _with_level(section: Section, level: int) -> str:
    """헤딩 레벨이 원문과 다르면 헤딩 줄을 원문 레벨로 다시 씀"""
    if section.level == level:
        return section.heading_line
    ending = "\n" if section.heading_line.endswith("\n") else ""
    return f"{'#' * level} {section.heading}{ending}"


def _shift_levels(sections: List[Section], delta: int) -> None:
    for section in sections:
        if delta:
            new_level = min(6, max(2, section.level + delta))
            section.heading_line = _with_level(section, new_level)
            section.level = new_level
        _shift_levels(section.subsections, delta)


def _required_translation(ctx: _Context, key: str) -> str:
    text = ctx.lookup(key)
    if text is None or not text.strip():
        raise TranslationError(key, "no translated text available")
    return text


def _preamble_offset(records: List[ChangeRecord]) -> int:
    for record in records:
        if record.id == PREAMBLE_ID and record.old_section is not None and record.old_section.is_implicit:
            return 1
    return 0


def _resolve_target(
    ctx: _Context,
    record: ChangeRecord,
    key: str,
    target_siblings: List[Section],
    used: Set[int],
    offset: int,
) -> Optional[Section]:
    """
    기존 번역 섹션 찾기

    1) heading-map 에 기록된 번역 헤딩 -> 번역 트리에서 id 로 매칭
    2) 실패 시 이전 원문에서의 위치로 매칭 (경고)
    """
    candidates = [s for s in target_siblings if not s.is_implicit and id(s) not in used]

    mapped = ctx.heading_map.get(key)
    if mapped:
        for section in candidates:
            if section.heading == mapped:
                return section
        mapped_id = slugify(mapped)
        for section in candidates:
            if section.id == mapped_id:
                return section

    if record.old_index is not None:
        position = record.old_index - offset
        non_implicit = [s for s in target_siblings if not s.is_implicit]
        if 0 <= position < len(non_implicit) and id(non_implicit[position]) not in used:
            section = non_implicit[position]
            warning = MatchError(key, f"heading-map lookup failed, matched by position {position} ('{section.heading}')")
            logger.warning(str(warning), extra={"document": ctx.filename})
            return section
    return None


def _resolve_copied_headings(ctx: _Context, records: List[ChangeRecord], target_siblings: List[Section],
                             parent_key: Optional[str]) -> None:
    """그대로 복사된 서브트리의 하위 헤딩들을 heading-map 용으로 확정"""
    used: Set[int] = set()
    offset = _preamble_offset(records)
    for record in records:
        if record.status == ChangeStatus.REMOVED or record.section.is_implicit:
            continue
        key = join_key(parent_key, record.id)
        target = _resolve_target(ctx, record, key, target_siblings, used, offset)
        if target is not None:
            used.add(id(target))
            ctx.resolved[key] = ctx.heading_map.get(key) or target.heading
            _resolve_copied_headings(ctx, record.children, target.subsections, key)
        else:
            logger.warning(f"{key}: no target heading found inside copied section, keeping source heading")
            ctx.resolved[key] = ctx.heading_map.get(key) or record.section.heading
            _resolve_copied_headings(ctx, record.children, [], key)


def _resolve_added_headings(ctx: _Context, records: List[ChangeRecord], translated: List[Section],
                            parent_key: Optional[str]) -> None:
    """새로 추가된 서브트리: 원문과 번역 트리를 위치로 짝지어 번역 헤딩 확정"""
    translated = [s for s in translated if not s.is_implicit]
    for index, record in enumerate(records):
        key = join_key(parent_key, record.id)
        if index < len(translated):
            ctx.resolved[key] = translated[index].heading
            _resolve_added_headings(ctx, record.children, translated[index].subsections, key)
        else:
            logger.warning(f"{key}: translated section is missing this heading, keeping source heading")
            ctx.resolved[key] = record.section.heading
            _resolve_added_headings(ctx, record.children, [], key)


def _render_unchanged(ctx: _Context, record: ChangeRecord, key: str, target: Optional[Section]) -> str:
    if record.section.is_implicit:
        return target.content if target is not None else ""
    if target is None:
        raise MatchError(key, "no existing translation found for unchanged section")
    ctx.resolved[key] = ctx.heading_map.get(key) or target.heading
    _resolve_copied_headings(ctx, record.children, target.subsections, key)
    copied = render_section(target)
    new_text = render_section(record.new_section)
    if render_section(record.old_section) != new_text:
        # 끝 공백줄만 달라진 경우 새 원문의 줄바꿈 수를 따름
        return _match_trailing_newlines(copied, new_text)
    return copied


def _translated_own_text(ctx: _Context, record: ChangeRecord, key: str, target: Optional[Section]) -> str:
    """changed 섹션의 새 번역에서 섹션 자체 부분(헤딩 줄 + 본문)만 추출"""
    source = record.new_section
    text = _required_translation(ctx, key)
    like = own_text(source)

    if source.is_implicit:
        parsed = parse(text)
        if parsed and parsed[0].is_implicit:
            if len(parsed) > 1:
                logger.warning(f"{key}: dropping headings found in translated preamble")
            return _match_trailing_newlines(parsed[0].content, like)
        logger.warning(f"{key}: translated preamble starts with a heading, using it as plain text")
        return _match_trailing_newlines(text, like)

    parsed = [s for s in parse(text) if not s.is_implicit]
    if not parsed:
        # 번역 결과에 헤딩이 없으면 기존 번역 헤딩(없으면 원문 헤딩)을 붙임
        heading = ctx.heading_map.get(key) or (target.heading if target is not None else source.heading)
        logger.warning(f"{key}: translated text has no heading, reusing '{heading}'")
        ctx.resolved[key] = heading
        return _match_trailing_newlines(f"{'#' * source.level} {heading}\n{text}", like)

    first = parsed[0]
    extra = len(first.subsections) + len(parsed) - 1
    if extra:
        logger.warning(f"{key}: ignoring {extra} extra heading(s) in translated section text")
    ctx.resolved[key] = first.heading
    return _match_trailing_newlines(_with_level(first, source.level) + first.content, like)


def _render_added(ctx: _Context, record: ChangeRecord, key: str) -> str:
    source = record.new_section
    text = _required_translation(ctx, key)
    like = render_section(source)

    if source.is_implicit:
        return _match_trailing_newlines(text, like)

    parsed = parse(text)
    if parsed and parsed[0].is_implicit:
        if len(parsed) == 1:
            logger.warning(f"{key}: translated text has no heading, reusing source heading")
            heading_line = source.heading_line.rstrip("\r\n")
            parsed = parse(f"{heading_line}\n{text}")
        else:
            logger.warning(f"{key}: dropping text before the first heading of translated section")
        parsed = [s for s in parsed if not s.is_implicit]

    _shift_levels(parsed, source.level - parsed[0].level)
    ctx.resolved[key] = parsed[0].heading
    _resolve_added_headings(ctx, record.children, parsed[0].subsections, key)
    return _match_trailing_newlines(serialize(parsed), like)


def _merge_level(ctx: _Context, records: List[ChangeRecord], target_siblings: List[Section],
                 parent_key: Optional[str]) -> List[str]:
    parts: List[str] = []
    used: Set[int] = set()
    offset = _preamble_offset(records)
    target_preamble = next((s for s in target_siblings if s.is_implicit), None)

    if parent_key is None and target_preamble is not None and not any(r.id == PREAMBLE_ID for r in records):
        # 원문에 도입부가 없는 경우 번역 문서의 도입부 유지
        parts.append(target_preamble.content)

    for record in records:
        key = join_key(parent_key, record.id)
        if record.status == ChangeStatus.REMOVED:
            logger.debug(f"{key}: removed")
            continue

        is_implicit = record.section.is_implicit
        if is_implicit:
            target = target_preamble
        elif record.status == ChangeStatus.ADDED:
            target = None
        else:
            target = _resolve_target(ctx, record, key, target_siblings, used, offset)
            if target is not None:
                used.add(id(target))

        if record.status == ChangeStatus.UNCHANGED:
            parts.append(_render_unchanged(ctx, record, key, target))
            continue

        if record.status == ChangeStatus.ADDED:
            parts.append(_render_added(ctx, record, key))
            continue

        # changed
        if record.content_changed:
            parts.append(_translated_own_text(ctx, record, key, target))
        elif is_implicit:
            parts.append(target.content if target is not None else "")
        else:
            if target is None:
                raise MatchError(key, "no existing translation found for section with changed subsections")
            ctx.resolved[key] = ctx.heading_map.get(key) or target.heading
            parts.append(own_text(target))

        if not is_implicit:
            children = target.subsections if target is not None else []
            parts.extend(_merge_level(ctx, record.children, children, key))

    return parts


def reconstruct(
    target_text: str,
    change_tree: List[ChangeRecord],
    translated_text_for: TranslatedTextLookup,
    heading_map: Mapping[str, str],
    filename: str = "<document>",
) -> ReconstructionResult:
    """
    새 번역 문서와 갱신된 heading-map 생성

    원문이 그대로이고 heading_map 이 문서에 저장된 매핑과 같으면 target_text 를 그대로 반환합니다.
    heading-map 이 없는 문서는 변경이 없어도 위치로 찾은 번역 헤딩으로 heading-map 블록이 추가됩니다
    (결과 heading-map 은 항상 새 원문의 모든 섹션 키를 가짐). 한 번 추가된 뒤에는 다시 바뀌지 않습니다.

    Args:
        target_text: 현재 번역 문서 (front matter 포함)
        change_tree: detect_changes(이전 원문, 새 원문) 결과
        translated_text_for: 섹션 키 -> 새 번역 텍스트 (없으면 None)
        heading_map: 현재 heading-map
        filename: 로그/에러 메시지용 문서 이름

    Returns:
        ReconstructionResult (heading-map 이 주입된 문서 + 갱신된 heading-map)

    Raises:
        FileError: 번역 누락, 기존 번역 매칭 실패, 구조 검증 실패
    """
    front_matter, body = split_front_matter(target_text)
    target_tree = parse(body)
    ctx = _Context(heading_map=heading_map, lookup=translated_text_for, filename=filename)

    try:
        new_body = "".join(_merge_level(ctx, change_tree, target_tree, None))
        new_map = update(heading_map, change_tree, ctx.resolved)
        document = inject(front_matter + new_body, new_map)
        validate_document(document, filename)
    except (TranslationError, MatchError, ValidationError) as e:
        logger.error(f"Reconstruction failed for {filename}: {e}")
        raise FileError(filename, e) from e

    logger.info(f"Reconstructed {filename}: {len(new_map)} heading-map entries")
    return ReconstructionResult(document=document, heading_map=new_map)
