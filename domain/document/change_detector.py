"""
섹션 변경 감지 모듈

같은 언어의 두 문서 스냅샷(이전/현재)을 섹션 id 기준으로 비교하여
unchanged / changed / added / removed 를 트리 레벨별로 분류합니다.
내용 유사도는 사용하지 않고 id로만 매칭합니다.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

from .section_parser import Section, join_key, own_text


class ChangeStatus(str, Enum):
    UNCHANGED = "unchanged"
    CHANGED = "changed"
    ADDED = "added"
    REMOVED = "removed"


@dataclass
class ChangeRecord:
    """섹션 id 하나에 대한 변경 분류 (children은 다음 레벨의 분류)"""
    id: str
    status: ChangeStatus
    old_section: Optional[Section] = None
    new_section: Optional[Section] = None
    old_index: Optional[int] = None
    new_index: Optional[int] = None
    # changed 중 헤딩 줄/본문 자체가 바뀐 경우만 True (False면 하위 섹션만 바뀐 것)
    content_changed: bool = False
    children: List["ChangeRecord"] = field(default_factory=list)

    @property
    def section(self) -> Section:
        return self.new_section if self.new_section is not None else self.old_section

    @property
    def needs_translation(self) -> bool:
        return self.status == ChangeStatus.ADDED or (
            self.status == ChangeStatus.CHANGED and self.content_changed
        )


def _whole_subtree(sections: List[Section], status: ChangeStatus) -> List[ChangeRecord]:
    records = []
    for index, section in enumerate(sections):
        is_new = status == ChangeStatus.ADDED
        records.append(ChangeRecord(
            id=section.id,
            status=status,
            old_section=None if is_new else section,
            new_section=section if is_new else None,
            old_index=None if is_new else index,
            new_index=index if is_new else None,
            content_changed=True,
            children=_whole_subtree(section.subsections, status),
        ))
    return records


def _compare(old: Section, new: Section, old_index: int, new_index: int) -> ChangeRecord:
    children = detect_changes(old.subsections, new.subsections)
    # 섹션 끝 공백줄 차이는 변경으로 보지 않음 (뒤에 섹션이 추가/삭제될 때 생김)
    content_changed = own_text(old).rstrip() != own_text(new).rstrip()
    subtree_unchanged = all(c.status == ChangeStatus.UNCHANGED for c in children) and not _reordered(children)

    if not content_changed and subtree_unchanged:
        status = ChangeStatus.UNCHANGED
    else:
        status = ChangeStatus.CHANGED

    return ChangeRecord(
        id=new.id,
        status=status,
        old_section=old,
        new_section=new,
        old_index=old_index,
        new_index=new_index,
        content_changed=content_changed,
        children=children,
    )


def detect_changes(old_tree: List[Section], new_tree: List[Section]) -> List[ChangeRecord]:
    """
    같은 레벨의 섹션 리스트 두 개를 비교

    - 양쪽에 있는 id: 재귀 비교 (changed 부모의 자식도 독립적으로 판정)
    - 새 트리에만 있는 id: added (하위 섹션 전체 added)
    - 이전 트리에만 있는 id: removed (하위 섹션 전체 removed)
    - 같은 id가 여러 번 나오면 문서 내 상대 순서로 매칭

    결과는 새 트리 순서이며, removed는 이전 트리에서 바로 앞에 있던 매칭 섹션 뒤에 위치합니다.
    """
    old_by_id: Dict[str, List[int]] = defaultdict(list)
    for index, section in enumerate(old_tree):
        old_by_id[section.id].append(index)

    matched_old: Dict[int, ChangeRecord] = {}
    ordered: List[ChangeRecord] = []
    seen: Dict[str, int] = defaultdict(int)

    for new_index, new_section in enumerate(new_tree):
        occurrence = seen[new_section.id]
        seen[new_section.id] += 1
        candidates = old_by_id.get(new_section.id, [])
        if occurrence < len(candidates):
            old_index = candidates[occurrence]
            record = _compare(old_tree[old_index], new_section, old_index, new_index)
            matched_old[old_index] = record
        else:
            record = _whole_subtree([new_section], ChangeStatus.ADDED)[0]
            record.new_index = new_index
        ordered.append(record)

    # removed 레코드를 이전 트리 기준 앵커 뒤에 배치
    removed_after: Dict[Optional[int], List[ChangeRecord]] = defaultdict(list)
    anchor: Optional[int] = None
    for old_index, old_section in enumerate(old_tree):
        if old_index in matched_old:
            anchor = old_index
            continue
        record = _whole_subtree([old_section], ChangeStatus.REMOVED)[0]
        record.old_index = old_index
        removed_after[anchor].append(record)

    result: List[ChangeRecord] = list(removed_after.get(None, []))
    for record in ordered:
        result.append(record)
        if record.old_index is not None and record.status != ChangeStatus.ADDED:
            result.extend(removed_after.get(record.old_index, []))
    return result


def iter_records(records: List[ChangeRecord], parent_key: Optional[str] = None,
                 include_implicit: bool = False) -> Iterator[Tuple[str, ChangeRecord]]:
    """(heading-map 키, 레코드)를 깊이 우선으로 순회"""
    for record in records:
        if record.section.is_implicit and not include_implicit:
            continue
        key = join_key(parent_key, record.id)
        yield key, record
        yield from iter_records(record.children, key, include_implicit)


def _reordered(records: List[ChangeRecord]) -> bool:
    indices = [r.old_index for r in records if r.status != ChangeStatus.REMOVED and r.old_index is not None]
    if indices != sorted(indices):
        return True
    return any(_reordered(r.children) for r in records)


def has_changes(records: List[ChangeRecord]) -> bool:
    """변경/추가/삭제가 있거나 섹션 순서가 바뀌었으면 True"""
    return any(r.status != ChangeStatus.UNCHANGED for r in records) or _reordered(records)


def summarize_changes(records: List[ChangeRecord]) -> Dict[str, int]:
    """상태별 레코드 수 (모든 레벨 합산)"""
    summary = {status.value: 0 for status in ChangeStatus}
    for _, record in iter_records(records, include_implicit=True):
        summary[record.status.value] += 1
    return summary
