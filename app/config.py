"""
애플리케이션 설정

환경변수(.env 포함)에서 번역 동기화 설정을 읽어옵니다.
"""
import os
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _get_list(name: str) -> List[str]:
    """콤마로 구분된 환경변수를 리스트로 변환"""
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


def _get_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def normalize_docs_folder(folder: str) -> str:
    """문서 폴더 경로 정규화 ('.', '/', '' 은 저장소 루트)"""
    folder = (folder or "").strip()
    if folder in ("", ".", "/"):
        return ""
    folder = folder.lstrip("/")
    return folder if folder.endswith("/") else f"{folder}/"


# 번역 모델
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
TRANSLATION_MODEL = os.getenv("TRANSLATION_MODEL", "gpt-4o-mini")
TRANSLATION_TEMPERATURE = float(os.getenv("TRANSLATION_TEMPERATURE", "0.2"))
USE_MOCK_TRANSLATOR = _get_bool("USE_MOCK_TRANSLATOR")

# 언어 / 문서 위치
SOURCE_LANGUAGE = os.getenv("SOURCE_LANGUAGE", "en")
TARGET_LANGUAGE = os.getenv("TARGET_LANGUAGE", "zh-cn")
DOCS_FOLDER = normalize_docs_folder(os.getenv("DOCS_FOLDER", "lectures"))

# 용어집
GLOSSARY_DIR = os.getenv(
    "GLOSSARY_DIR",
    os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "glossary"),
)
GLOSSARY_PATH = os.getenv("GLOSSARY_PATH")

# GitHub
GITHUB_TOKEN = os.getenv("GITHUB_TOKEN")
GITHUB_API_URL = os.getenv("GITHUB_API_URL", "https://api.github.com")

# 번역 PR
PR_LABELS = _get_list("PR_LABELS") or ["translation", "automated"]
PR_REVIEWERS = _get_list("PR_REVIEWERS")
PR_TEAM_REVIEWERS = _get_list("PR_TEAM_REVIEWERS")

# 재시도 (번역 API 호출)
RETRY_MAX_ATTEMPTS = int(os.getenv("RETRY_MAX_ATTEMPTS", "3"))
RETRY_BASE_DELAY = float(os.getenv("RETRY_BASE_DELAY", "1.0"))
