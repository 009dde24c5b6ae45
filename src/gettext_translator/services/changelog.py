"""Changelog service: translation history and approvals, persisted as changelog files.

Changelog entries are an append-only history keyed by content hash. For every
``(source_file, original text)`` pair the newest entry decides the
changelog status shown on the matching translation. Saving merges dirty
entries into whatever is already on disk, so separate sessions layer their
changes instead of overwriting each other.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from gettext_translator.parsers.changelog_parser import (
    CanonicalChangelog,
    ChangelogFormatError,
    disk_translations,
    newest,
    read_changelog,
    write_changelog,
)
from gettext_translator.services import paths
from gettext_translator.services.record_store import CHANGELOG, TRANSLATIONS, RecordStore
from gettext_translator.services.records import (
    PLURAL_SEPARATOR,
    CatalogFolder,
    ChangelogEntry,
    ChangelogStatus,
    Translation,
    content_id,
    utc_now_iso,
)

log = logging.getLogger(__name__)


class ChangelogService:
    """Loads, reconciles, records and flushes changelog entries in a :class:`RecordStore`."""

    def __init__(self, store: RecordStore, root: Optional[str | Path] = None):
        self._store = store
        self._root = Path(root) if root else None

    def changelog_path(self, source_file: str) -> Path:
        return paths.changelog_path_for(source_file, self._root)

    # ── Loading ───────────────────────────────────────────────────

    def load_and_reconcile(self, folders: Iterable[CatalogFolder]) -> int:
        """Load changelog files for every catalog and attach history to translations.

        Returns the number of changelog entries loaded.
        """
        entries = self.load_files(folders)
        self.reconcile()
        return len(entries)

    def load_files(self, folders: Iterable[CatalogFolder]) -> list[ChangelogEntry]:
        log.info("Loading changelog files")
        loaded: list[ChangelogEntry] = []
        for folder in folders:
            for file_path in folder.files:
                changelog_path = self.changelog_path(file_path)
                log.debug("Checking for changelog at: %s", changelog_path)
                entries = self._read_entries(changelog_path, file_path, folder.language_code)
                log.debug("Found %d entries in %s", len(entries), changelog_path)
                for entry in entries:
                    self._store.insert(CHANGELOG, entry.id, entry)
                loaded.extend(entries)
        log.info("Loaded %d total changelog entries", len(loaded))
        return loaded

    def _read_entries(self, changelog_path: Path, source_file: str, code: str) -> list[ChangelogEntry]:
        try:
            changelog = read_changelog(changelog_path)
        except ChangelogFormatError as e:
            log.error("Invalid changelog %s: %s", changelog_path, e)
            return []
        if changelog is None:
            log.debug("No changelog file found at %s", changelog_path)
            return []
        return changelog.to_entries(source_file, code)

    def reconcile(self) -> int:
        """Attach the newest matching changelog entry to each translation. Returns matches."""
        groups: dict[tuple[str, str], list[ChangelogEntry]] = {}
        for entry in self._store.list(CHANGELOG):
            groups.setdefault(entry.key, []).append(entry)

        matched = 0
        for translation in self._store.list(TRANSLATIONS):
            group = groups.get((translation.file_path, translation.message_id))
            if not group:
                continue
            latest = newest(group)
            self._store.insert(TRANSLATIONS, translation.id, replace(
                translation,
                changelog_id=latest.id,
                changelog_status=latest.status,
                changelog_timestamp=latest.timestamp,
            ))
            matched += 1
        return matched

    # ── Recording ─────────────────────────────────────────────────

    def record_modification(self, translation: Translation, changes: Mapping[str, Any]) -> Translation:
        """Record an edit made from the UI as a MODIFIED entry."""
        entry_id = self._entry_id(translation)
        entry = ChangelogEntry(
            id=entry_id,
            code=translation.language_code,
            status=ChangelogStatus.MODIFIED,
            timestamp=utc_now_iso(),
            original=translation.original,
            translated=self._edited_text(translation, changes),
            source_file=translation.file_path,
            modified=True,
        )
        self._store.insert(CHANGELOG, entry_id, entry)
        return self._attach(translation, entry)

    def record_approval(self, translation: Translation) -> Translation:
        """Mark the translation's changelog entry APPROVED, creating one if needed."""
        self._store.increment_approved()
        existing = self._store.get(CHANGELOG, translation.changelog_id) if translation.changelog_id else None
        if existing is None:
            return self.create_entry(translation, ChangelogStatus.APPROVED)
        if existing.status is not ChangelogStatus.APPROVED:
            existing = replace(existing, status=ChangelogStatus.APPROVED, timestamp=utc_now_iso(), modified=True)
            self._store.insert(CHANGELOG, existing.id, existing)
        return self._attach(translation, existing)

    def update_status(self, changelog_id: str, status: ChangelogStatus) -> Optional[ChangelogEntry]:
        """Set an entry's status. Returns None for an unknown id.

        The entry only becomes dirty when the status actually changes.
        """
        entry = self._store.get(CHANGELOG, changelog_id)
        if entry is None:
            return None
        if entry.status is not status:
            entry = replace(entry, status=status, timestamp=utc_now_iso(), modified=True)
            self._store.insert(CHANGELOG, changelog_id, entry)
            for translation in self._store.list(TRANSLATIONS):
                if translation.changelog_id == changelog_id:
                    self._store.insert(TRANSLATIONS, translation.id, replace(translation, changelog_status=status))
        return entry

    def create_entry(self, translation: Translation, status: ChangelogStatus = ChangelogStatus.NEW) -> Translation:
        entry = ChangelogEntry(
            id=self._entry_id(translation),
            code=translation.language_code,
            status=status,
            timestamp=utc_now_iso(),
            original=translation.original,
            translated=translation.translated_text,
            source_file=translation.file_path,
            modified=True,
        )
        log.debug("Creating changelog entry for %s with status %s", translation.message_id, status.value)
        self._store.insert(CHANGELOG, entry.id, entry)
        return self._attach(translation, entry)

    @staticmethod
    def _entry_id(translation: Translation) -> str:
        if translation.changelog_id:
            return translation.changelog_id
        return content_id(translation.file_path, translation.message_id, utc_now_iso())

    @staticmethod
    def _edited_text(translation: Translation, changes: Mapping[str, Any]) -> str:
        text = changes.get("translation", translation.translation) or ""
        if not translation.is_plural:
            return text
        plural = changes.get("plural_translation", translation.plural_translation) or ""
        return f"{text}{PLURAL_SEPARATOR}{plural}"

    @staticmethod
    def _attach(translation: Translation, entry: ChangelogEntry) -> Translation:
        return replace(
            translation,
            changelog_id=entry.id,
            changelog_status=entry.status,
            changelog_timestamp=entry.timestamp,
        )

    # ── Persistence ───────────────────────────────────────────────

    def dirty_entries_by_file(self) -> dict[str, list[ChangelogEntry]]:
        grouped: dict[str, list[ChangelogEntry]] = {}
        for entry in self._store.list(CHANGELOG):
            if entry.modified:
                grouped.setdefault(entry.source_file, []).append(entry)
        return grouped

    def render(self, source_file: str, entries: list[ChangelogEntry]) -> tuple[Path, CanonicalChangelog]:
        """Merge *entries* into the changelog currently on disk for *source_file*.

        Entries on disk that are not in *entries* are kept as they are.
        """
        changelog_path = self.changelog_path(source_file)
        language_code = entries[0].code if entries else paths.language_code_of(source_file)
        existing = self._existing(changelog_path, language_code, source_file)
        merged = existing.merged_with(disk_translations(entries))
        merged.language = language_code
        merged.source_file = source_file
        return changelog_path, merged

    def _existing(self, changelog_path: Path, language_code: str, source_file: str) -> CanonicalChangelog:
        empty = CanonicalChangelog(language_code, source_file)
        try:
            changelog = read_changelog(changelog_path)
        except ChangelogFormatError as e:
            log.error("Error reading changelog %s: %s", changelog_path, e)
            return empty
        if changelog is None:
            return empty
        if isinstance(changelog, CanonicalChangelog):
            return changelog
        return changelog.to_canonical()

    def flush_to_disk(self) -> tuple[bool, list[tuple[bool, str]]]:
        """Persist dirty entries, merged with existing files. Returns per-file results."""
        by_file = self.dirty_entries_by_file()
        if not by_file:
            log.info("No modified changelog entries to save")
            return True, []

        ok, reason = paths.ensure_changelog_dir(self._root)
        if not ok:
            return True, [(False, reason) for _ in by_file]

        results = []
        for source_file, entries in by_file.items():
            results.append(self._flush_file(source_file, entries))
        return True, results

    def _flush_file(self, source_file: str, entries: list[ChangelogEntry]) -> tuple[bool, str]:
        changelog_path, merged = self.render(source_file, entries)
        try:
            write_changelog(changelog_path, merged)
        except OSError as e:
            log.error("Failed to write changelog file %s: %s", changelog_path, e)
            return False, str(e)
        for entry in entries:
            # An entry edited again while we were writing stays dirty.
            self._store.compare_and_set(CHANGELOG, entry.id, entry, replace(entry, modified=False))
        log.info("Saved %d changelog entries to %s", len(entries), changelog_path)
        return True, str(changelog_path)
