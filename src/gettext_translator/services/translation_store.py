"""Translation store: one record store shared by the translation and changelog services.

This is the object a dashboard or command talks to. Loads and saves run on a
single worker thread so there is one writer at a time, and callers get a
``(False, "timeout")`` result instead of blocking forever.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Optional

from gettext_translator.services.changelog import ChangelogService
from gettext_translator.services.record_store import CHANGELOG, TRANSLATIONS, RecordStore
from gettext_translator.services.records import ChangelogStatus, Translation, TranslationStatus
from gettext_translator.services.settings import Settings
from gettext_translator.services.translation import NOT_FOUND, TranslationService

log = logging.getLogger(__name__)

TIMEOUT = "timeout"
DEFAULT_TIMEOUT = 30.0


@dataclass
class SaveReport:
    """Per-file outcome of saving catalogs and changelogs."""
    files_written: list[str] = field(default_factory=list)
    files_failed: list[tuple[str, str]] = field(default_factory=list)
    changelog_results: list[tuple[bool, str]] = field(default_factory=list)

    @property
    def changelogs_written(self) -> int:
        return sum(1 for ok, _ in self.changelog_results if ok)

    @property
    def ok(self) -> bool:
        return not self.files_failed and all(ok for ok, _ in self.changelog_results)


class TranslationStore:
    def __init__(
        self,
        root: Optional[str | Path] = None,
        ignored_languages: Iterable[str] = (),
        timeout: float = DEFAULT_TIMEOUT,
        records: Optional[RecordStore] = None,
    ):
        self.records = records or RecordStore()
        self.changelog = ChangelogService(self.records, root)
        self.translations = TranslationService(self.records, self.changelog, ignored_languages)
        self._timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="translation-store")

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "TranslationStore":
        settings = settings or Settings.get()
        return cls(
            root=settings.app_root,
            ignored_languages=settings.ignored_languages,
            timeout=settings.load_timeout,
        )

    def close(self):
        self._executor.shutdown(wait=False)

    def _call(self, fn: Callable[..., Any], *args: Any, timeout: Optional[float] = None) -> Any:
        future = self._executor.submit(fn, *args)
        limit = timeout if timeout is not None else self._timeout
        try:
            return future.result(timeout=limit)
        except FuturesTimeout:
            log.error("%s did not finish within %.0fs", getattr(fn, "__name__", fn), limit)
            return False, TIMEOUT

    # ── Loading & queries ─────────────────────────────────────────

    def load_translations(self, gettext_path: str | Path, timeout: Optional[float] = None) -> tuple[bool, int | str]:
        """Scan *gettext_path* and reload every translation and its changelog history."""
        return self._call(self.translations.load, gettext_path, timeout=timeout)

    def list_translations(self) -> list[Translation]:
        return self.translations.list()

    def filter_translations(self, **criteria: Any) -> list[Translation]:
        return self.translations.filter(**criteria)

    def get_translation(self, translation_id: str) -> tuple[bool, Translation | str]:
        translation = self.translations.get(translation_id)
        if translation is None:
            return False, NOT_FOUND
        return True, translation

    def update_translation(self, translation_id: str, changes: Mapping[str, Any]) -> tuple[bool, Translation | str]:
        return self.translations.update(translation_id, changes)

    def create_changelog_entry(self, translation_id: str, status: ChangelogStatus | str = ChangelogStatus.NEW):
        """Start a changelog entry for a translation. Returns (True, entry) or (False, reason)."""
        translation = self.translations.get(translation_id)
        if translation is None:
            return False, NOT_FOUND
        try:
            status = ChangelogStatus(status)
        except ValueError:
            return False, f"invalid status: {status!r}"
        updated = self.changelog.create_entry(translation, status)
        self.records.insert(TRANSLATIONS, translation_id, updated)
        return True, self.records.get(CHANGELOG, updated.changelog_id)

    def update_changelog_status(self, changelog_id: str, status: ChangelogStatus | str):
        """Move a changelog entry to *status*. Returns (True, entry) or (False, reason)."""
        try:
            status = ChangelogStatus(status)
        except ValueError:
            return False, f"invalid status: {status!r}"
        entry = self.changelog.update_status(changelog_id, status)
        if entry is None:
            return False, NOT_FOUND
        return True, entry

    def stats(self) -> dict[str, int]:
        """Counts for the dashboard progress display."""
        count = self.records.count_where
        return {
            "total": len(self.records.list(TRANSLATIONS)),
            "pending": count(TRANSLATIONS, lambda t: t.status is TranslationStatus.PENDING),
            "modified": count(TRANSLATIONS, lambda t: t.status is TranslationStatus.MODIFIED),
            "translated": count(TRANSLATIONS, lambda t: t.status is TranslationStatus.TRANSLATED),
            "approved": self.records.approved_count(),
            "changelog": len(self.records.list(CHANGELOG)),
            "unsaved": count(CHANGELOG, lambda e: e.modified),
        }

    # ── Saving ────────────────────────────────────────────────────

    def pending_changes(self) -> dict[str, list[Translation]]:
        """Translations edited or approved this session, grouped by catalog file."""
        dirty_ids = {e.id for e in self.records.list(CHANGELOG) if e.modified}
        by_file: dict[str, list[Translation]] = {}
        for t in self.records.list(TRANSLATIONS):
            if t.status is TranslationStatus.MODIFIED or (
                t.status is TranslationStatus.TRANSLATED and t.changelog_id in dirty_ids
            ):
                by_file.setdefault(t.file_path, []).append(t)
        return by_file

    def _save_all(self) -> SaveReport:
        report = SaveReport()
        for file_path, records in self.pending_changes().items():
            ok, result = self.translations.write_back(file_path, records)
            if ok:
                report.files_written.append(result)
            else:
                report.files_failed.append((file_path, result))
        _, report.changelog_results = self.changelog.flush_to_disk()
        log.info(
            "Saved %d catalog(s), %d failed; %d changelog file(s) written",
            len(report.files_written), len(report.files_failed), report.changelogs_written,
        )
        return report

    def save_all_changes(self, timeout: Optional[float] = None) -> tuple[bool, SaveReport | str]:
        """Write back edited catalogs, then flush dirty changelog entries."""
        result = self._call(self._save_all, timeout=timeout)
        if isinstance(result, SaveReport):
            return True, result
        return result
