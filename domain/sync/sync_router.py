from functools import lru_cache

from fastapi import APIRouter, Depends

from app.logging_config import get_logger, log_error
from domain.document.errors import FileError
from domain.document.heading_map import extract
from domain.langgraph.translation_workflow import TranslationWorkflow
from .github_client import GitHubContentStore
from .schemas import (
    DocumentSyncRequest,
    DocumentSyncResponse,
    SyncPullRequestRequest,
    SyncPullRequestResponse,
)
from .sync_service import SyncService

router = APIRouter(prefix="/sync", tags=["Sync"])
logger = get_logger("sync_router")


@lru_cache()
def get_workflow() -> TranslationWorkflow:
    """설정(USE_MOCK_TRANSLATOR)에 맞는 워크플로우 (프로세스당 하나)"""
    return TranslationWorkflow()


async def get_sync_service():
    store = GitHubContentStore()
    try:
        yield SyncService(store=store, workflow=get_workflow())
    finally:
        await store.aclose()


@router.post("/pull-request", response_model=SyncPullRequestResponse)
async def sync_pull_request(
    request: SyncPullRequestRequest,
    service: SyncService = Depends(get_sync_service),
):
    """머지된 원문 PR 의 문서 변경을 번역 저장소 PR 로 동기화"""
    try:
        return await service.sync_pull_request(request)
    except Exception as e:
        log_error("Pull request sync failed", e, pr_number=request.pr_number)
        return SyncPullRequestResponse(success=False, message=f"Sync failed: {e}", errors=[str(e)])


@router.post("/document", response_model=DocumentSyncResponse)
def sync_document(
    request: DocumentSyncRequest,
    workflow: TranslationWorkflow = Depends(get_workflow),
):
    """문서 한 개 동기화 (번역 문서가 없으면 전체 번역)"""
    try:
        if request.target_content is None:
            content = workflow.translate_new_file(
                request.new_source, request.filename,
                request.source_language, request.target_language, request.glossary,
            )
            return DocumentSyncResponse(
                success=True, filename=request.filename, content=content,
                heading_map=dict(extract(content)),
            )

        state = workflow.run(
            request.old_source, request.new_source, request.target_content, request.filename,
            request.source_language, request.target_language, request.glossary,
        )
        if state.get("status") != "completed":
            return DocumentSyncResponse(
                success=False, filename=request.filename,
                change_summary=state.get("change_summary") or {},
                error=state.get("error", "Unknown error"),
            )
        return DocumentSyncResponse(
            success=True,
            filename=request.filename,
            content=state.get("document_content"),
            heading_map=dict(state.get("updated_heading_map") or {}),
            change_summary=state.get("change_summary") or {},
        )

    except FileError as e:
        logger.warning(f"Document sync failed: {e}")
        return DocumentSyncResponse(success=False, filename=request.filename, error=str(e))
