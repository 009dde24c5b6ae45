"""GitLab integration: commit changed catalogs to a new branch and open a merge request."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Sequence
from urllib.parse import quote

import requests

from gettext_translator.services.github import FileChange
from gettext_translator.services.settings import Settings, get_secret

log = logging.getLogger(__name__)

_TIMEOUT = 30


@dataclass
class GitLabConfig:
    token: str
    project: str                  # "group/app" or a numeric project id
    base_url: str = "https://gitlab.com/api/v4"
    base_branch: str = "main"

    @property
    def project_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/projects/{quote(str(self.project), safe='')}"

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "GitLabConfig":
        settings = settings or Settings.get()
        return cls(
            token=get_secret("gitlab"),
            project=settings["gitlab_project"],
            base_url=settings["gitlab_api_url"],
            base_branch=settings["base_branch"],
        )


class GitLabError(Exception):
    pass


class GitLabClient:
    """Commits and merge request endpoints of the GitLab REST API."""

    def __init__(self, config: GitLabConfig):
        self.config = config

    def _call(self, method: str, path: str, expect: tuple[int, ...] = (200, 201), **kwargs: Any) -> requests.Response:
        headers = {"PRIVATE-TOKEN": self.config.token}
        r = requests.request(method, f"{self.config.project_url}/{path}", headers=headers,
                             timeout=_TIMEOUT, **kwargs)
        if r.status_code not in expect:
            raise GitLabError(f"{method} {path}: {r.status_code} {r.text}".rstrip())
        return r

    def file_action(self, path: str, branch: str) -> str:
        """``update`` when *branch* already has *path*, ``create`` otherwise."""
        r = self._call("GET", f"repository/files/{quote(path, safe='')}", expect=(200, 404),
                       params={"ref": branch})
        return "update" if r.status_code == 200 else "create"

    def commit(self, branch: str, file_changes: Sequence[FileChange]) -> None:
        """One commit on a new *branch* started from the base branch."""
        base = self.config.base_branch
        actions = [
            {
                "action": self.file_action(change.path, base),
                "file_path": change.path,
                "content": base64.b64encode(change.content.encode("utf-8")).decode("ascii"),
                "encoding": "base64",
            }
            for change in file_changes
        ]
        self._call("POST", "repository/commits", json={
            "branch": branch,
            "start_branch": base,
            "commit_message": "Update translations",
            "actions": actions,
        })

    def open_merge_request(self, source: str, paths: Sequence[str]) -> str:
        body = {
            "source_branch": source,
            "target_branch": self.config.base_branch,
            "title": f"Translation updates {datetime.now(timezone.utc):%Y-%m-%d %H:%M:%S}",
            "description": "\n".join(f"- `{p}`" for p in paths),
            "remove_source_branch": True,
        }
        return self._call("POST", "merge_requests", json=body).json().get("web_url", "")

    def create_pr(self, file_changes: Sequence[FileChange]) -> tuple[bool, str]:
        """Commit *file_changes* to a fresh branch and open a merge request. Returns (True, url) or (False, reason)."""
        if not file_changes:
            return False, "no changes"
        if not self.config.token:
            return False, "GitLab token not configured (set GITLAB_TOKEN)"
        if not self.config.project:
            return False, "GitLab project not configured"

        branch = f"translation-updates-{int(datetime.now(timezone.utc).timestamp())}"
        try:
            self.commit(branch, file_changes)
            url = self.open_merge_request(branch, [c.path for c in file_changes])
        except (GitLabError, requests.RequestException) as e:
            log.error("Merge request failed: %s", e)
            return False, str(e)
        log.info("Opened merge request %s", url)
        return True, url
