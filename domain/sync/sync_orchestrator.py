"""
동기화 오케스트레이터

PR 에서 바뀐 파일들을 종류별로 처리해 번역 저장소에 반영할 결과를 모읍니다.
- markdown: 새 파일은 전체 번역, 기존 파일은 섹션 단위 갱신
- renamed: 이전 경로의 번역을 새 경로로 옮기고 이전 경로는 삭제 대상
- toc: 번역 없이 그대로 복사
- removed: 번역 저장소에 파일이 있으면 삭제 대상
파일 하나의 실패는 다른 파일 처리에 영향을 주지 않습니다.
"""
import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from app.logging_config import get_logger, log_error, log_sync_result
from domain.document.errors import SyncError
from domain.document.validator import validate_document
from domain.langgraph.translation_workflow import TranslationWorkflow

logger = get_logger("sync_orchestrator")

MARKDOWN_SUFFIX = ".md"
TOC_SUFFIX = "_toc.yml"


@dataclass
class SyncConfig:
    source_language: str
    target_language: str
    model: str = ""


@dataclass
class FileToSync:
    """처리할 파일 (내용은 호출자가 미리 가져옴)"""
    filename: str
    type: str  # "markdown" | "toc" | "renamed" | "removed"
    new_content: Optional[str] = None  # 새 원문
    old_content: Optional[str] = None  # 이전 원문
    target_content: Optional[str] = None  # 현재 번역
    previous_filename: Optional[str] = None  # renamed: 이전 경로
    existing_file_sha: Optional[str] = None  # 번역 저장소의 기존 파일 SHA
    old_file_sha: Optional[str] = None  # renamed: 이전 경로 파일 SHA
    is_new_file: bool = False


@dataclass
class TranslatedFile:
    path: str
    content: str
    sha: Optional[str] = None


@dataclass
class FileToDelete:
    path: str
    sha: str


@dataclass
class SyncProcessingResult:
    translated_files: List[TranslatedFile] = field(default_factory=list)
    files_to_delete: List[FileToDelete] = field(default_factory=list)
    processed_files: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


@dataclass
class ClassifiedFiles:
    changed_markdown: List[Dict[str, Any]] = field(default_factory=list)
    renamed_markdown: List[Dict[str, Any]] = field(default_factory=list)
    changed_toc: List[Dict[str, Any]] = field(default_factory=list)
    removed_markdown: List[Dict[str, Any]] = field(default_factory=list)
    removed_toc: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.changed_markdown or self.renamed_markdown or self.changed_toc
                    or self.removed_markdown or self.removed_toc)


def classify_changed_files(files: List[Dict[str, Any]], docs_folder: str) -> ClassifiedFiles:
    """PR 파일 목록(GitHub pulls/files 응답)을 동기화 분류로 나눔"""
    classified = ClassifiedFiles()
    for file_info in files:
        filename = file_info.get("filename", "")
        status = file_info.get("status")
        if not filename.startswith(docs_folder):
            continue

        if filename.endswith(MARKDOWN_SUFFIX):
            if status == "removed":
                classified.removed_markdown.append(file_info)
            elif status == "renamed":
                classified.renamed_markdown.append(file_info)
            else:
                classified.changed_markdown.append(file_info)
        elif filename.endswith(TOC_SUFFIX):
            if status == "removed":
                classified.removed_toc.append(file_info)
            elif status != "renamed":
                classified.changed_toc.append(file_info)
    return classified


def _read_glossary(path: str) -> Dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        glossary = json.load(f)
    if not isinstance(glossary, dict) or not isinstance(glossary.get("terms"), list):
        raise ValueError("glossary must be an object with a 'terms' list")
    return glossary


def load_glossary(target_language: str, builtin_dir: str,
                  custom_path: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """대상 언어 용어집 로드 (내장 용어집 우선, 없으면 사용자 지정 경로)"""
    builtin_path = os.path.join(builtin_dir, f"{target_language}.json")
    try:
        glossary = _read_glossary(builtin_path)
        logger.info(f"Loaded built-in glossary for {target_language} with {len(glossary['terms'])} terms")
        return glossary
    except (OSError, ValueError) as e:
        logger.warning(f"Could not load built-in glossary for {target_language}: {e}")

    if custom_path:
        try:
            glossary = _read_glossary(custom_path)
            logger.info(f"Loaded custom glossary from {custom_path} with {len(glossary['terms'])} terms")
            return glossary
        except (OSError, ValueError) as e:
            logger.warning(f"Could not load custom glossary from {custom_path}: {e}")

    return None


class SyncOrchestrator:
    """
    파일 처리 파이프라인

    파일은 순서대로 하나씩 처리합니다 (파일마다 번역 API 호출 가능).
    """

    def __init__(self, sync_config: SyncConfig, workflow: Optional[TranslationWorkflow] = None):
        self.config = sync_config
        self.workflow = workflow or TranslationWorkflow()

    def process_files(self, files: List[FileToSync],
                      glossary: Optional[Dict[str, Any]] = None) -> SyncProcessingResult:
        result = SyncProcessingResult()

        for file in files:
            try:
                if file.type == "markdown":
                    self._process_markdown_file(file, glossary, result)
                elif file.type == "renamed":
                    self._process_renamed_file(file, glossary, result)
                elif file.type == "toc":
                    self._process_toc_file(file, result)
                elif file.type == "removed":
                    self._process_removed_file(file, result)
                else:
                    raise SyncError(f"Unknown file type '{file.type}'")
            except Exception as e:
                message = f"Error processing {file.filename}: {e}"
                log_error(f"Error processing {file.filename}", e, document=file.filename)
                result.errors.append(message)

        log_sync_result(len(result.processed_files), len(result.errors))
        return result

    def _translate(self, file: FileToSync, glossary: Optional[Dict[str, Any]], full: bool) -> str:
        if full:
            content = self.workflow.translate_new_file(
                file.new_content, file.filename,
                self.config.source_language, self.config.target_language, glossary,
            )
        else:
            content = self.workflow.process(
                file.old_content or "", file.new_content, file.target_content or "", file.filename,
                self.config.source_language, self.config.target_language, glossary,
            )
        validate_document(content, file.filename)
        return content

    def _process_markdown_file(self, file: FileToSync, glossary: Optional[Dict[str, Any]],
                               result: SyncProcessingResult) -> None:
        logger.info(f"Processing {file.filename}...")
        if not file.new_content:
            raise SyncError(f"No content provided for {file.filename}")

        content = self._translate(file, glossary, full=file.is_new_file)

        logger.info(f"Successfully processed {file.filename}")
        result.processed_files.append(file.filename)
        result.translated_files.append(
            TranslatedFile(path=file.filename, content=content, sha=file.existing_file_sha)
        )

    def _process_renamed_file(self, file: FileToSync, glossary: Optional[Dict[str, Any]],
                              result: SyncProcessingResult) -> None:
        logger.info(f"Processing renamed file: {file.previous_filename} -> {file.filename}...")
        if not file.new_content:
            raise SyncError(f"No content provided for {file.filename}")

        content = self._translate(file, glossary, full=not file.target_content)

        logger.info(f"Successfully processed renamed file {file.filename}")
        result.processed_files.append(file.filename)
        # 새 경로에는 기존 파일이 없으므로 sha 없음
        result.translated_files.append(TranslatedFile(path=file.filename, content=content))

        if file.old_file_sha and file.previous_filename:
            result.files_to_delete.append(FileToDelete(path=file.previous_filename, sha=file.old_file_sha))
            logger.info(f"Marked {file.previous_filename} for deletion (renamed to {file.filename})")

    def _process_toc_file(self, file: FileToSync, result: SyncProcessingResult) -> None:
        logger.info(f"Processing TOC file {file.filename}...")
        if not file.new_content:
            raise SyncError(f"No content provided for {file.filename}")

        result.processed_files.append(file.filename)
        result.translated_files.append(
            TranslatedFile(path=file.filename, content=file.new_content, sha=file.existing_file_sha)
        )

    def _process_removed_file(self, file: FileToSync, result: SyncProcessingResult) -> None:
        if file.existing_file_sha:
            result.files_to_delete.append(FileToDelete(path=file.filename, sha=file.existing_file_sha))
            result.processed_files.append(file.filename)
            logger.info(f"Marked {file.filename} for deletion")
        else:
            logger.info(f"{file.filename} does not exist in target repo - skipping deletion")
