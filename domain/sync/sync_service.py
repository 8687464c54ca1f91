"""
번역 동기화 서비스

원문 PR 의 변경 파일을 가져와 오케스트레이터로 처리하고 번역 PR 을 엽니다.
"""
import asyncio
from typing import List, Optional, Tuple

from app import config
from app.config import normalize_docs_folder
from app.logging_config import get_logger, log_error
from domain.langgraph.translation_workflow import TranslationWorkflow
from .github_client import GitHubContentStore
from .pr_creator import PrCreatorConfig, create_translation_pr, source_pr_info_from
from .schemas import SyncPullRequestRequest, SyncPullRequestResponse
from .sync_orchestrator import (
    ClassifiedFiles,
    FileToSync,
    SyncConfig,
    SyncOrchestrator,
    classify_changed_files,
    load_glossary,
)

logger = get_logger("sync_service")


class SyncService:
    """PR 단위 번역 동기화"""

    def __init__(self, store: Optional[GitHubContentStore] = None,
                 workflow: Optional[TranslationWorkflow] = None):
        self.store = store or GitHubContentStore()
        self.workflow = workflow

    async def fetch_files_to_sync(self, request: SyncPullRequestRequest, classified: ClassifiedFiles,
                                  sha: str) -> Tuple[List[FileToSync], List[str]]:
        """분류된 파일들의 원문/번역 내용을 가져옴 (파일별 조회 실패는 errors 에 모으고 건너뜀)"""
        store = self.store
        src = (request.source_owner, request.source_repo)
        dst = (request.target_owner, request.target_repo)
        files: List[FileToSync] = []
        errors: List[str] = []

        def record_failure(message: str, filename: str, error: Exception) -> None:
            log_error(message, error, document=filename)
            errors.append(f"{message}: {error}")

        for info in classified.changed_markdown:
            filename = info["filename"]
            try:
                new_file = await store.get_file(*src, filename, ref=sha)
                if new_file is None:
                    raise FileNotFoundError(f"{filename} not found at {sha}")
                old_file = await store.get_file(*src, filename, ref=f"{sha}^")
                if old_file is None:
                    logger.info(f"{filename} is a new file")
                target_file = await store.get_file(*dst, filename)
                if target_file is None:
                    logger.info(f"{filename} does not exist in target repo - will create it")
                files.append(FileToSync(
                    filename=filename,
                    type="markdown",
                    new_content=new_file.content,
                    old_content=old_file.content if old_file else "",
                    target_content=target_file.content if target_file else "",
                    existing_file_sha=target_file.sha if target_file else None,
                    is_new_file=target_file is None,
                ))
            except Exception as e:
                record_failure(f"Error fetching content for {filename}", filename, e)

        for info in classified.renamed_markdown:
            filename = info["filename"]
            previous = info.get("previous_filename")
            try:
                new_file = await store.get_file(*src, filename, ref=sha)
                if new_file is None:
                    raise FileNotFoundError(f"{filename} not found at {sha}")
                old_file = await store.get_file(*src, previous, ref=f"{sha}^") if previous else None
                target_file = await store.get_file(*dst, previous) if previous else None
                if target_file is not None:
                    logger.info(f"Found existing translation at {previous} - will transfer to {filename}")
                files.append(FileToSync(
                    filename=filename,
                    type="renamed",
                    new_content=new_file.content,
                    old_content=old_file.content if old_file else "",
                    target_content=target_file.content if target_file else "",
                    previous_filename=previous,
                    old_file_sha=target_file.sha if target_file else None,
                    is_new_file=target_file is None,
                ))
            except Exception as e:
                record_failure(f"Error fetching content for renamed file {filename}", filename, e)

        for info in classified.changed_toc:
            filename = info["filename"]
            try:
                new_file = await store.get_file(*src, filename, ref=sha)
                if new_file is None:
                    raise FileNotFoundError(f"{filename} not found at {sha}")
                target_file = await store.get_file(*dst, filename)
                files.append(FileToSync(
                    filename=filename,
                    type="toc",
                    new_content=new_file.content,
                    existing_file_sha=target_file.sha if target_file else None,
                    is_new_file=target_file is None,
                ))
            except Exception as e:
                record_failure(f"Error fetching content for TOC file {filename}", filename, e)

        for info in classified.removed_markdown + classified.removed_toc:
            filename = info["filename"]
            try:
                target_file = await store.get_file(*dst, filename)
                if target_file is None:
                    logger.info(f"{filename} does not exist in target repo - skipping deletion")
                    continue
                files.append(FileToSync(filename=filename, type="removed",
                                        existing_file_sha=target_file.sha))
            except Exception as e:
                record_failure(f"Error checking removal of {filename}", filename, e)

        return files, errors

    async def sync_pull_request(self, request: SyncPullRequestRequest) -> SyncPullRequestResponse:
        source_language = request.source_language or config.SOURCE_LANGUAGE
        target_language = request.target_language or config.TARGET_LANGUAGE
        docs_folder = normalize_docs_folder(request.docs_folder) if request.docs_folder is not None \
            else config.DOCS_FOLDER

        pull_request = await self.store.get_pull_request(request.source_owner, request.source_repo,
                                                         request.pr_number)
        if pull_request.get("merged"):
            sha = pull_request.get("merge_commit_sha")
        elif request.test_mode:
            logger.info(f"TEST MODE: processing PR #{request.pr_number} (using head commit)")
            sha = pull_request["head"]["sha"]
        else:
            return SyncPullRequestResponse(success=True, message="PR was not merged. Nothing to sync.")

        pr_files = await self.store.list_pull_request_files(request.source_owner, request.source_repo,
                                                            request.pr_number)
        classified = classify_changed_files(pr_files, docs_folder)
        if classified.is_empty:
            return SyncPullRequestResponse(success=True,
                                           message="No markdown or TOC files changed in docs folder.")

        logger.info(
            f"PR #{request.pr_number}: {len(classified.changed_markdown)} changed, "
            f"{len(classified.renamed_markdown)} renamed, {len(classified.changed_toc)} TOC, "
            f"{len(classified.removed_markdown) + len(classified.removed_toc)} removed"
        )

        glossary = load_glossary(target_language, config.GLOSSARY_DIR,
                                 request.glossary_path or config.GLOSSARY_PATH)
        files, fetch_errors = await self.fetch_files_to_sync(request, classified, sha)

        orchestrator = SyncOrchestrator(
            SyncConfig(source_language=source_language, target_language=target_language,
                       model=config.TRANSLATION_MODEL),
            workflow=self.workflow,
        )
        # 번역은 동기 호출이므로 워커 스레드에서 실행
        result = await asyncio.to_thread(orchestrator.process_files, files, glossary)

        errors = fetch_errors + result.errors
        response = SyncPullRequestResponse(
            success=not errors,
            message=f"Processed {len(result.processed_files)} files with {len(errors)} errors",
            processed_files=result.processed_files,
            errors=errors,
        )
        if not result.translated_files and not result.files_to_delete:
            return response

        pr_config = PrCreatorConfig(
            target_owner=request.target_owner,
            target_repo=request.target_repo,
            source_language=source_language,
            target_language=target_language,
            model=config.TRANSLATION_MODEL,
            source_repo_owner=request.source_owner,
            source_repo_name=request.source_repo,
            pr_number=request.pr_number,
            pr_labels=config.PR_LABELS,
            pr_reviewers=config.PR_REVIEWERS,
            pr_team_reviewers=config.PR_TEAM_REVIEWERS,
        )
        try:
            created = await create_translation_pr(self.store, result.translated_files, result.files_to_delete,
                                                  pr_config, source_pr_info_from(pull_request))
        except Exception as e:
            log_error("Failed to create PR", e, pr_number=request.pr_number)
            response.success = False
            response.errors.append(f"Failed to create PR: {e}")
            return response

        response.pr_url = created.pr_url
        response.branch_name = created.branch_name
        return response
