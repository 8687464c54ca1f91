"""
문서 동기화 예외 정의
"""
from typing import Optional


class SyncError(Exception):
    """동기화 관련 예외의 기본 클래스"""


class ParseError(SyncError):
    """헤딩/펜스 구조가 잘못된 경우 (파서 밖으로 전파되지 않고 경고로만 기록)"""


class MatchError(SyncError):
    """unchanged 섹션의 기존 번역 섹션을 찾지 못한 경우"""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"{key}: {message}")


class TranslationError(SyncError):
    """번역 결과가 없거나 번역 호출이 실패한 경우"""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"Translation failed for '{key}': {message}")


class ValidationError(SyncError):
    """재구성된 문서가 구조 검증을 통과하지 못한 경우"""


class FileError(SyncError):
    """문서 단위 실패 (해당 문서만 실패하고 배치의 다른 문서는 계속 처리)"""

    def __init__(self, filename: str, cause: Exception, message: Optional[str] = None):
        self.filename = filename
        self.cause = cause
        super().__init__(message or f"{filename}: {cause}")
