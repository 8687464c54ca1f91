"""
번역 PR 생성

번역 저장소에 브랜치를 만들고 번역 파일 커밋, 삭제 파일 반영 후
원문 PR 정보를 담은 PR 을 엽니다. 라벨/리뷰어도 지정합니다.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from app.logging_config import get_logger
from .github_client import GitHubApiError, GitHubContentStore
from .sync_orchestrator import FileToDelete, TranslatedFile

logger = get_logger("pr_creator")

TITLE_PREFIX = "🌐 [translation-sync]"
EXCLUDED_SOURCE_LABELS = {"test-translation"}


@dataclass
class PrCreatorConfig:
    target_owner: str
    target_repo: str
    source_language: str
    target_language: str
    model: str
    source_repo_owner: str
    source_repo_name: str
    pr_number: int
    pr_labels: List[str] = field(default_factory=list)
    pr_reviewers: List[str] = field(default_factory=list)
    pr_team_reviewers: List[str] = field(default_factory=list)


@dataclass
class SourcePrInfo:
    title: str
    labels: List[str] = field(default_factory=list)


@dataclass
class PrCreationResult:
    pr_url: str
    branch_name: str
    pr_number: int


def build_branch_name(pr_number: int, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"translation-sync-{now.strftime('%Y-%m-%dT%H-%M-%S')}-pr-{pr_number}"


def build_pr_body(translated_files: List[TranslatedFile], files_to_delete: List[FileToDelete],
                  pr_config: PrCreatorConfig, source_pr_info: Optional[SourcePrInfo] = None) -> str:
    """파일 변경 내역을 포함한 PR 본문"""
    new_files = [f for f in translated_files if not f.sha]
    updated_files = [f for f in translated_files if f.sha]

    sections: List[str] = []
    if new_files:
        sections.append("### Files Added\n" + "\n".join(f"- ✅ `{f.path}`" for f in new_files))
    if updated_files:
        sections.append("### Files Updated\n" + "\n".join(f"- ✏️ `{f.path}`" for f in updated_files))
    if files_to_delete:
        sections.append("### Files Deleted\n" + "\n".join(f"- ❌ `{f.path}`" for f in files_to_delete))

    owner, name, number = pr_config.source_repo_owner, pr_config.source_repo_name, pr_config.pr_number
    source_title = source_pr_info.title if source_pr_info and source_pr_info.title else ""
    link_text = f"#{number} - {source_title}" if source_title else f"#{number}"

    parts = [
        "## Automated Translation Sync",
        f"This PR contains automated translations from [{owner}/{name}](https://github.com/{owner}/{name}).",
        f"### Source PR\n**[{link_text}](https://github.com/{owner}/{name}/pull/{number})**",
        *sections,
        "### Details\n"
        f"- **Source Language**: {pr_config.source_language}\n"
        f"- **Target Language**: {pr_config.target_language}\n"
        f"- **Model**: {pr_config.model}",
        "---\n*This PR was created automatically by the translation sync service.*",
    ]
    return "\n\n".join(parts)


def build_pr_title(translated_files: List[TranslatedFile], files_to_delete: List[FileToDelete],
                   source_pr_info: Optional[SourcePrInfo] = None) -> str:
    if source_pr_info and source_pr_info.title:
        return f"{TITLE_PREFIX} {source_pr_info.title}"

    all_files = [f.path for f in translated_files] + [f.path for f in files_to_delete]
    if len(all_files) == 1:
        file_list = all_files[0]
    elif len(all_files) == 2:
        file_list = f"{all_files[0]} + 1 more"
    else:
        file_list = f"{len(all_files)} files"
    return f"{TITLE_PREFIX} {file_list}"


def build_label_set(input_labels: List[str], source_pr_labels: Optional[List[str]] = None) -> List[str]:
    """입력 라벨 + 원문 PR 라벨 (중복 제거, 순서 유지)"""
    labels: List[str] = []
    for label in list(input_labels) + list(source_pr_labels or []):
        if label and label not in labels:
            labels.append(label)
    return labels


def source_pr_info_from(pull_request: dict) -> SourcePrInfo:
    """GitHub PR 응답에서 제목/라벨 추출 (테스트용 라벨 제외)"""
    labels = []
    for label in pull_request.get("labels") or []:
        name = label if isinstance(label, str) else (label.get("name") or "")
        if name and name not in EXCLUDED_SOURCE_LABELS:
            labels.append(name)
    return SourcePrInfo(title=pull_request.get("title") or "", labels=labels)


async def create_translation_pr(
    store: GitHubContentStore,
    translated_files: List[TranslatedFile],
    files_to_delete: List[FileToDelete],
    pr_config: PrCreatorConfig,
    source_pr_info: Optional[SourcePrInfo] = None,
) -> PrCreationResult:
    """번역 저장소에 브랜치/커밋/PR 생성"""
    owner, repo = pr_config.target_owner, pr_config.target_repo

    default_branch = await store.get_default_branch(owner, repo)
    base_sha = await store.get_branch_sha(owner, repo, default_branch)

    branch_name = build_branch_name(pr_config.pr_number)
    await store.create_branch(owner, repo, branch_name, base_sha)
    logger.info(f"Created branch: {branch_name}")

    for file in translated_files:
        await store.put_file(owner, repo, file.path, file.content,
                             f"Update translation: {file.path}", branch_name, sha=file.sha)
        logger.info(f"Committed: {file.path}")

    for file in files_to_delete:
        await store.delete_file(owner, repo, file.path,
                                f"Delete removed file: {file.path}", branch_name, file.sha)
        logger.info(f"Deleted: {file.path}")

    pr = await store.create_pull_request(
        owner, repo,
        title=build_pr_title(translated_files, files_to_delete, source_pr_info),
        body=build_pr_body(translated_files, files_to_delete, pr_config, source_pr_info),
        head=branch_name,
        base=default_branch,
    )
    logger.info(f"Created PR: {pr['html_url']}")

    labels = build_label_set(pr_config.pr_labels, source_pr_info.labels if source_pr_info else None)
    if labels:
        await store.add_labels(owner, repo, pr["number"], labels)
        logger.info(f"Added labels: {', '.join(labels)}")

    if pr_config.pr_reviewers or pr_config.pr_team_reviewers:
        try:
            await store.request_reviewers(owner, repo, pr["number"],
                                          pr_config.pr_reviewers, pr_config.pr_team_reviewers)
            logger.info(f"Requested reviewers: {pr_config.pr_reviewers + pr_config.pr_team_reviewers}")
        except GitHubApiError as e:
            # 리뷰어 지정 실패는 PR 생성 실패로 보지 않음
            logger.warning(f"Could not request reviewers: {e}")

    return PrCreationResult(pr_url=pr["html_url"], branch_name=branch_name, pr_number=pr["number"])
