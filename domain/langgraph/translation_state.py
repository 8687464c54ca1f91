"""
LangGraph 워크플로우 상태 정의

문서 한 개의 섹션 단위 번역 동기화 상태를 관리합니다.
"""
from typing import Any, Dict, List, Optional, TypedDict

from domain.document.change_detector import ChangeRecord
from domain.document.heading_map import HeadingMap


class TranslationState(TypedDict, total=False):
    """
    LangGraph 워크플로우 상태

    워크플로우 단계:
    1. ChangeDetector: 이전/새 원문 비교, heading-map 추출
    2. SectionTranslator: 변경/추가된 섹션만 번역
    3. Reconstructor: 새 번역 문서 조립 및 heading-map 갱신
    """

    # ========== 입력 데이터 ==========
    filename: str
    old_source: str  # 변경 전 원문
    new_source: str  # 변경 후 원문
    target_content: str  # 현재 번역 문서
    source_language: str
    target_language: str
    glossary: Optional[Dict[str, Any]]

    # ========== 변경 감지 결과 ==========
    change_tree: List[ChangeRecord]
    heading_map: HeadingMap
    change_summary: Dict[str, int]

    # ========== 번역 결과 ==========
    translations: Dict[str, str]  # 섹션 키 -> 번역 텍스트

    # ========== 재구성 결과 ==========
    document_content: Optional[str]
    updated_heading_map: Optional[HeadingMap]

    # ========== 상태 및 에러 ==========
    status: str  # "detecting", "translating", "reconstructing", "completed", "error"
    error: Optional[str]
    exception: Optional[Exception]
