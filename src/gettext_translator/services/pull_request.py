"""Collect the session's catalog and changelog changes into one pull or merge request."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from gettext_translator.parsers.changelog_parser import dump_changelog
from gettext_translator.parsers.po_parser import CatalogParseError
from gettext_translator.services.github import FileChange, GitHostClient, GitHubClient, GitHubConfig
from gettext_translator.services.gitlab import GitLabClient, GitLabConfig
from gettext_translator.services.settings import Settings
from gettext_translator.services.translation_store import TranslationStore

log = logging.getLogger(__name__)

HOSTS: dict[str, tuple[type, type]] = {
    "github": (GitHubClient, GitHubConfig),
    "gitlab": (GitLabClient, GitLabConfig),
}


class UnknownHostError(Exception):
    pass


def make_host_client(settings: Optional[Settings] = None) -> GitHostClient:
    """Build the client for the configured ``git_provider``."""
    settings = settings or Settings.get()
    provider = settings["git_provider"]
    if provider not in HOSTS:
        raise UnknownHostError(f"Unknown git provider: {provider}")
    client_cls, config_cls = HOSTS[provider]
    return client_cls(config_cls.from_settings(settings))


def repo_path(file_path: str | Path, repo_root: Optional[str | Path] = None) -> str:
    """Repository-relative path of a local file.

    Without a usable *repo_root* the path is cut at its ``priv/`` directory.
    """
    path = Path(file_path)
    if repo_root:
        try:
            return path.resolve().relative_to(Path(repo_root).resolve()).as_posix()
        except ValueError:
            pass
    text = path.as_posix()
    if "priv/" in text:
        return "priv/" + text.split("priv/", 1)[1]
    return text


def prepare_file_changes(store: TranslationStore, repo_root: Optional[str | Path] = None) -> list[FileChange]:
    """Render edited catalogs and merged changelogs without touching the files on disk."""
    changes = []
    for file_path, records in store.pending_changes().items():
        try:
            content = store.translations.render(file_path, records)
        except CatalogParseError as e:
            log.warning("Leaving %s out of the pull request: %s", file_path, e)
            continue
        changes.append(FileChange(repo_path(file_path, repo_root), content))

    for source_file, entries in store.changelog.dirty_entries_by_file().items():
        changelog_path, merged = store.changelog.render(source_file, entries)
        changes.append(FileChange(repo_path(changelog_path, repo_root), dump_changelog(merged)))
    return changes


def make_pull_request(store: TranslationStore, client: GitHostClient,
                      repo_root: Optional[str | Path] = None) -> tuple[bool, str]:
    """Open a pull request with every pending change. Returns (True, url) or (False, reason)."""
    changes = prepare_file_changes(store, repo_root)
    if not changes:
        log.info("Nothing to submit")
        return False, "no changes"
    log.info("Submitting %d file(s)", len(changes))
    return client.create_pr(changes)
