"""
GitHub 콘텐츠 저장소 클라이언트

원문/번역 저장소의 파일 조회와 번역 PR 생성에 필요한 GitHub REST 호출을 담당합니다.
"""
import base64
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from app import config
from app.logging_config import get_logger, log_github_api_call
from domain.document.errors import SyncError

logger = get_logger("github_client")

PER_PAGE = 100


class GitHubApiError(SyncError):
    """GitHub API 가 실패 응답을 돌려준 경우"""

    def __init__(self, method: str, url: str, status_code: int, detail: str = ""):
        self.status_code = status_code
        super().__init__(f"GitHub API {method} {url} failed ({status_code}): {detail}".rstrip(": "))


@dataclass
class RepoFile:
    """저장소 파일 내용과 blob SHA"""
    path: str
    content: str
    sha: str


class GitHubContentStore:
    """httpx.AsyncClient 기반 GitHub 콘텐츠 저장소"""

    def __init__(self, token: Optional[str] = None, api_url: Optional[str] = None,
                 client: Optional[httpx.AsyncClient] = None):
        self.token = token or config.GITHUB_TOKEN
        self.api_url = (api_url or config.GITHUB_API_URL).rstrip("/")
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "GitHubContentStore":
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=30.0)
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    @property
    def headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/vnd.github.v3+json"}
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        return headers

    async def _request(self, method: str, path: str, expected=(200,), **kwargs) -> httpx.Response:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=30.0)
            self._owns_client = True
        url = f"{self.api_url}{path}"
        response = await self._client.request(method, url, headers=self.headers, **kwargs)
        log_github_api_call(url, response.status_code, method=method)
        if response.status_code not in expected:
            raise GitHubApiError(method, url, response.status_code, response.text[:200])
        return response

    # ========== 조회 ==========

    async def get_file(self, owner: str, repo: str, path: str, ref: Optional[str] = None) -> Optional[RepoFile]:
        """파일 조회 (없으면 None)"""
        params = {"ref": ref} if ref else None
        response = await self._request("GET", f"/repos/{owner}/{repo}/contents/{path}",
                                       expected=(200, 404), params=params)
        if response.status_code == 404:
            return None
        data = response.json()
        if not isinstance(data, dict) or "content" not in data:
            raise SyncError(f"Could not get content for {path}")
        content = base64.b64decode(data["content"]).decode("utf-8")
        return RepoFile(path=path, content=content, sha=data.get("sha", ""))

    async def list_pull_request_files(self, owner: str, repo: str, number: int) -> List[Dict[str, Any]]:
        files: List[Dict[str, Any]] = []
        page = 1
        while True:
            response = await self._request(
                "GET", f"/repos/{owner}/{repo}/pulls/{number}/files",
                params={"per_page": PER_PAGE, "page": page},
            )
            batch = response.json()
            files.extend(batch)
            if len(batch) < PER_PAGE:
                return files
            page += 1

    async def get_pull_request(self, owner: str, repo: str, number: int) -> Dict[str, Any]:
        response = await self._request("GET", f"/repos/{owner}/{repo}/pulls/{number}")
        return response.json()

    async def get_default_branch(self, owner: str, repo: str) -> str:
        response = await self._request("GET", f"/repos/{owner}/{repo}")
        return response.json()["default_branch"]

    async def get_branch_sha(self, owner: str, repo: str, branch: str) -> str:
        response = await self._request("GET", f"/repos/{owner}/{repo}/git/ref/heads/{branch}")
        return response.json()["object"]["sha"]

    # ========== 쓰기 ==========

    async def create_branch(self, owner: str, repo: str, branch: str, sha: str) -> None:
        await self._request("POST", f"/repos/{owner}/{repo}/git/refs", expected=(201,),
                            json={"ref": f"refs/heads/{branch}", "sha": sha})

    async def put_file(self, owner: str, repo: str, path: str, content: str, message: str,
                       branch: str, sha: Optional[str] = None) -> None:
        """파일 생성/수정 (기존 파일이면 sha 필요)"""
        payload = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": branch,
        }
        if sha:
            payload["sha"] = sha
        await self._request("PUT", f"/repos/{owner}/{repo}/contents/{path}", expected=(200, 201), json=payload)

    async def delete_file(self, owner: str, repo: str, path: str, message: str, branch: str, sha: str) -> None:
        await self._request("DELETE", f"/repos/{owner}/{repo}/contents/{path}",
                            json={"message": message, "branch": branch, "sha": sha})

    async def create_pull_request(self, owner: str, repo: str, title: str, body: str,
                                  head: str, base: str) -> Dict[str, Any]:
        response = await self._request("POST", f"/repos/{owner}/{repo}/pulls", expected=(201,),
                                       json={"title": title, "body": body, "head": head, "base": base})
        return response.json()

    async def add_labels(self, owner: str, repo: str, number: int, labels: List[str]) -> None:
        await self._request("POST", f"/repos/{owner}/{repo}/issues/{number}/labels",
                            json={"labels": labels})

    async def request_reviewers(self, owner: str, repo: str, number: int,
                                reviewers: List[str], team_reviewers: List[str]) -> None:
        payload: Dict[str, List[str]] = {}
        if reviewers:
            payload["reviewers"] = reviewers
        if team_reviewers:
            payload["team_reviewers"] = team_reviewers
        await self._request("POST", f"/repos/{owner}/{repo}/pulls/{number}/requested_reviewers",
                            expected=(201,), json=payload)
