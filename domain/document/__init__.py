"""
문서 동기화 코어 모듈

섹션 파싱, 변경 감지, heading-map, 재구성을 제공합니다.
모든 함수는 동기식이며 외부 상태를 갖지 않습니다.
"""

from .section_parser import (
    PREAMBLE_ID,
    Section,
    parse,
    serialize,
    render_section,
    own_text,
    section_keys,
    split_front_matter,
    slugify,
)

from .change_detector import (
    ChangeRecord,
    ChangeStatus,
    detect_changes,
    has_changes,
    iter_records,
    summarize_changes,
)

from .heading_map import HeadingMap, build_heading_map, extract, update, inject

from .reconstructor import ReconstructionResult, reconstruct

from .validator import find_structure_issues, validate_document

from .errors import (
    SyncError,
    ParseError,
    MatchError,
    TranslationError,
    ValidationError,
    FileError,
)

__all__ = [
    'PREAMBLE_ID',
    'Section',
    'parse',
    'serialize',
    'render_section',
    'own_text',
    'section_keys',
    'split_front_matter',
    'slugify',
    'ChangeRecord',
    'ChangeStatus',
    'detect_changes',
    'has_changes',
    'iter_records',
    'summarize_changes',
    'HeadingMap',
    'extract',
    'update',
    'inject',
    'build_heading_map',
    'ReconstructionResult',
    'reconstruct',
    'find_structure_issues',
    'validate_document',
    'SyncError',
    'ParseError',
    'MatchError',
    'TranslationError',
    'ValidationError',
    'FileError',
]
