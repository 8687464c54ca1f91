"""
번역 동기화 API Pydantic 스키마 정의
"""
from pydantic import BaseModel
from typing import Any, Dict, List, Optional


class SyncPullRequestRequest(BaseModel):
    """머지된 원문 PR 을 번역 저장소에 동기화"""
    source_owner: str
    source_repo: str
    pr_number: int
    target_owner: str
    target_repo: str
    source_language: Optional[str] = None
    target_language: Optional[str] = None
    docs_folder: Optional[str] = None
    glossary_path: Optional[str] = None
    test_mode: bool = False  # 머지되지 않은 PR 도 head 커밋 기준으로 처리


class SyncPullRequestResponse(BaseModel):
    success: bool
    message: str
    processed_files: List[str] = []
    errors: List[str] = []
    pr_url: Optional[str] = None
    branch_name: Optional[str] = None


class DocumentSyncRequest(BaseModel):
    """문서 한 개를 주어진 텍스트로 동기화"""
    filename: str = "<document>"
    old_source: str = ""
    new_source: str
    target_content: Optional[str] = None  # 없으면 전체 번역
    source_language: Optional[str] = None
    target_language: Optional[str] = None
    glossary: Optional[Dict[str, Any]] = None


class DocumentSyncResponse(BaseModel):
    success: bool
    filename: str
    content: Optional[str] = None
    heading_map: Dict[str, str] = {}
    change_summary: Dict[str, int] = {}
    error: Optional[str] = None
