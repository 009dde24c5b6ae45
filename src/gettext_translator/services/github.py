"""GitHub integration: open one pull request carrying changed catalogs and changelogs."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Protocol, Sequence

import requests

from gettext_translator.services.settings import Settings, get_secret

log = logging.getLogger(__name__)

_TIMEOUT = 30
_API_VERSION = "2022-11-28"


@dataclass
class FileChange:
    """A repository-relative path and the full new content of that file."""
    path: str
    content: str


class GitHostClient(Protocol):
    def create_pr(self, file_changes: Sequence[FileChange]) -> tuple[bool, str]: ...


@dataclass
class GitHubConfig:
    token: str
    owner: str
    repo: str
    base_url: str = "https://api.github.com"
    base_branch: str = "main"

    @property
    def repo_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/repos/{self.owner}/{self.repo}"

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "GitHubConfig":
        settings = settings or Settings.get()
        return cls(
            token=get_secret("github"),
            owner=settings["github_owner"],
            repo=settings["github_repo"],
            base_url=settings["github_api_url"],
            base_branch=settings["base_branch"],
        )


class GitHubError(Exception):
    pass


class GitHubClient:
    """Branch, contents and pulls endpoints of the GitHub REST API."""

    def __init__(self, config: GitHubConfig):
        self.config = config

    def _call(self, method: str, path: str, expect: tuple[int, ...] = (200, 201), **kwargs: Any) -> requests.Response:
        headers = {
            "Authorization": f"Bearer {self.config.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": _API_VERSION,
        }
        r = requests.request(method, f"{self.config.repo_url}/{path}", headers=headers,
                             timeout=_TIMEOUT, **kwargs)
        if r.status_code not in expect:
            raise GitHubError(f"{method} {path}: {r.status_code} {r.text}".rstrip())
        return r

    def branch_head(self, branch: str) -> str:
        return self._call("GET", f"git/ref/heads/{branch}", expect=(200,)).json()["object"]["sha"]

    def create_branch(self, name: str, from_branch: str) -> None:
        sha = self.branch_head(from_branch)
        self._call("POST", "git/refs", json={"ref": f"refs/heads/{name}", "sha": sha})

    def file_sha(self, path: str, branch: str) -> Optional[str]:
        """Blob SHA of *path* on *branch*, None for a file the branch does not have yet."""
        r = self._call("GET", f"contents/{path}", expect=(200, 404), params={"ref": branch})
        return r.json().get("sha") if r.status_code == 200 else None

    def put_file(self, change: FileChange, branch: str) -> None:
        body = {
            "message": f"Update translations in {change.path}",
            "content": base64.b64encode(change.content.encode("utf-8")).decode("ascii"),
            "branch": branch,
        }
        sha = self.file_sha(change.path, branch)
        if sha:
            body["sha"] = sha
        self._call("PUT", f"contents/{change.path}", json=body)

    def open_pull_request(self, head: str, paths: Sequence[str]) -> str:
        body = {
            "title": "Translation updates",
            "body": "\n".join(f"- `{p}`" for p in paths),
            "head": head,
            "base": self.config.base_branch,
        }
        return self._call("POST", "pulls", json=body).json().get("html_url", "")

    def create_pr(self, file_changes: Sequence[FileChange]) -> tuple[bool, str]:
        """Push *file_changes* to a fresh branch and open a PR. Returns (True, url) or (False, reason)."""
        if not file_changes:
            return False, "no changes"
        if not self.config.token:
            return False, "GitHub token not configured (set GITHUB_TOKEN)"

        branch = f"translation-updates-{int(datetime.now(timezone.utc).timestamp())}"
        try:
            self.create_branch(branch, self.config.base_branch)
            for change in file_changes:
                self.put_file(change, branch)
            url = self.open_pull_request(branch, [c.path for c in file_changes])
        except (GitHubError, requests.RequestException) as e:
            log.error("Pull request failed: %s", e)
            return False, str(e)
        log.info("Opened pull request %s", url)
        return True, url
