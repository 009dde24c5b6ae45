"""Settings service: read ~/.config/gettext_translator/settings.json."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from gettext_translator import APP_ID

log = logging.getLogger(__name__)

_SETTINGS_FILE = Path.home() / ".config" / APP_ID / "settings.json"

DEFAULTS: dict[str, Any] = {
    # Catalogs
    "gettext_path": "priv/gettext",
    "app_root": "",              # install root the priv/ directories live under
    "ignored_languages": [],
    "load_timeout": 30.0,        # seconds, for load/save from a request handler

    # LLM
    "llm_provider": "openai",    # openai / anthropic
    "llm_model": "gpt-4o-mini",
    "llm_temperature": 0.2,
    "llm_persona": "You are a professional translator. Keep the meaning and roughly the length of the original.",
    "llm_style": "Casual, use simple language",

    # Git hosting
    "git_provider": "github",
    "github_owner": "",
    "github_repo": "",
    "github_api_url": "https://api.github.com",
    "gitlab_project": "",        # "group/app" or numeric id
    "gitlab_api_url": "https://gitlab.com/api/v4",
    "base_branch": "main",
    "repo_root": "",             # local checkout; PR file paths are relative to it
}

# Secrets come from the environment, never from the settings file.
SECRET_ENV_VARS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "github": "GITHUB_TOKEN",
    "gitlab": "GITLAB_TOKEN",
}


def get_secret(service: str) -> str:
    """API key/token for *service* from the environment, or an empty string."""
    var = SECRET_ENV_VARS.get(service)
    return os.environ.get(var, "") if var else ""


class Settings:
    """Application settings backed by a JSON file."""

    _instance: Settings | None = None

    def __init__(self):
        self._data: dict[str, Any] = json.loads(json.dumps(DEFAULTS))
        self._load()

    @classmethod
    def get(cls) -> Settings:
        if cls._instance is None:
            cls._instance = Settings()
        return cls._instance

    @classmethod
    def reset_instance(cls):
        cls._instance = None

    # ── Public API ────────────────────────────────────────────────

    def __getitem__(self, key: str) -> Any:
        return self._data.get(key, DEFAULTS.get(key))

    # ── Convenience properties ────────────────────────────────────

    @property
    def app_root(self) -> Optional[Path]:
        root = self._data.get("app_root") or ""
        return Path(root) if root else None

    @property
    def repo_root(self) -> Optional[Path]:
        root = self._data.get("repo_root") or ""
        return Path(root) if root else self.app_root

    @property
    def gettext_path(self) -> Path:
        path = Path(self._data.get("gettext_path") or DEFAULTS["gettext_path"])
        if not path.is_absolute() and self.app_root:
            return self.app_root / path
        return path

    @property
    def ignored_languages(self) -> list[str]:
        return list(self._data.get("ignored_languages") or [])

    @property
    def load_timeout(self) -> float:
        try:
            return float(self._data.get("load_timeout", DEFAULTS["load_timeout"]))
        except (TypeError, ValueError):
            return DEFAULTS["load_timeout"]

    # ── Private ───────────────────────────────────────────────────

    def _load(self):
        if not _SETTINGS_FILE.exists():
            return
        try:
            stored = json.loads(_SETTINGS_FILE.read_text("utf-8"))
        except (OSError, ValueError) as e:
            log.warning("Ignoring unreadable settings file %s: %s", _SETTINGS_FILE, e)
            return
        if isinstance(stored, dict):
            self._data.update(stored)
