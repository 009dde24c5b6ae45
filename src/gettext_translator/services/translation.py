"""Translation service: load PO catalogs into the record store and write edited catalogs back."""

from __future__ import annotations

import logging
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Optional

from gettext_translator.parsers import atomic_write_text
from gettext_translator.parsers.po_parser import (
    CatalogData,
    CatalogMessage,
    CatalogParseError,
    compose_catalog,
    parse_catalog,
    plural_forms_for,
)
from gettext_translator.services import paths
from gettext_translator.services.changelog import ChangelogService
from gettext_translator.services.record_store import CHANGELOG, TRANSLATIONS, RecordStore
from gettext_translator.services.records import (
    TRANSLATION_FIELDS,
    CatalogFolder,
    ChangelogStatus,
    MessageKind,
    Translation,
    TranslationStatus,
    content_id,
)

log = logging.getLogger(__name__)

NOT_FOUND = "not_found"

_ENUM_FIELDS: dict[str, type[Enum]] = {
    "status": TranslationStatus,
    "changelog_status": ChangelogStatus,
    "kind": MessageKind,
}


def _is_blank(text: Optional[str]) -> bool:
    return not text or not text.strip()


class TranslationService:
    """Owns the translations table; delegates history bookkeeping to :class:`ChangelogService`."""

    def __init__(
        self,
        store: RecordStore,
        changelog: ChangelogService,
        ignored_languages: Iterable[str] = (),
        parse: Callable[[str | Path], CatalogData] = parse_catalog,
        compose: Callable[[CatalogData], str] = compose_catalog,
    ):
        self._store = store
        self._changelog = changelog
        self._ignored = frozenset(ignored_languages)
        self._parse = parse
        self._compose = compose

    # ── Loading ───────────────────────────────────────────────────

    @staticmethod
    def scan(root: str | Path) -> list[CatalogFolder]:
        """Find ``<root>/<lang>/LC_MESSAGES/*.po``. Raises OSError if *root* cannot be listed."""
        root = Path(root)
        folders = []
        for lang_dir in sorted(p for p in root.iterdir() if p.is_dir()):
            messages_dir = lang_dir / paths.LC_MESSAGES
            if not messages_dir.is_dir():
                log.debug("Skipping %s: no %s directory", lang_dir, paths.LC_MESSAGES)
                continue
            files = sorted(
                str(p) for p in messages_dir.iterdir()
                if p.is_file() and p.suffix == paths.CATALOG_SUFFIX
            )
            folders.append(CatalogFolder(language_code=lang_dir.name, files=files))
        return folders

    def load(self, root: str | Path) -> tuple[bool, int | str]:
        """Reload every catalog under *root*. Returns (True, count) or (False, reason)."""
        self._store.reset(TRANSLATIONS)
        self._store.reset(CHANGELOG)
        self._store.reset_approved_counter()

        try:
            folders = self.scan(root)
        except OSError as e:
            log.error("Could not scan %s: %s", root, e)
            return False, str(e)

        folders = [f for f in folders if f.language_code not in self._ignored]
        for folder in folders:
            for file_path in folder.files:
                for translation in self._load_file(file_path, folder.language_code):
                    self._store.insert(TRANSLATIONS, translation.id, translation)

        self._changelog.load_and_reconcile(folders)
        count = len(self._store.list(TRANSLATIONS))
        log.info("Loaded %d translations from %s", count, root)
        return True, count

    def _load_file(self, file_path: str, language_code: str) -> list[Translation]:
        try:
            data = self._parse(file_path)
        except CatalogParseError as e:
            log.warning("Skipping unreadable catalog %s: %s", file_path, e)
            return []
        domain = paths.domain_of(file_path)
        return [self._build(m, file_path, language_code, domain) for m in data.messages]

    @staticmethod
    def _build(message: CatalogMessage, file_path: str, language_code: str, domain: str) -> Translation:
        common = dict(
            id=content_id(file_path, message.msgid),
            language_code=language_code,
            domain=domain,
            file_path=file_path,
            message_id=message.msgid,
            msgctxt=message.msgctxt,
        )
        if not message.is_plural:
            return Translation(
                kind=MessageKind.SINGULAR,
                translation=message.msgstr,
                status=TranslationStatus.PENDING if _is_blank(message.msgstr) else TranslationStatus.TRANSLATED,
                **common,
            )
        singular, plural = message.plural_form(0), message.plural_form(1)
        extra = tuple(message.msgstr_plural[i] for i in sorted(message.msgstr_plural) if i >= 2)
        pending = _is_blank(singular) or _is_blank(plural)
        return Translation(
            kind=MessageKind.PLURAL,
            plural_id=message.msgid_plural,
            translation=singular,
            plural_translation=plural,
            extra_plural_translations=extra,
            status=TranslationStatus.PENDING if pending else TranslationStatus.TRANSLATED,
            **common,
        )

    # ── Queries ───────────────────────────────────────────────────

    def get(self, translation_id: str) -> Optional[Translation]:
        return self._store.get(TRANSLATIONS, translation_id)

    def list(self) -> list[Translation]:
        return self._store.list(TRANSLATIONS)

    def filter(self, **criteria: Any) -> list[Translation]:
        """Translations whose attributes equal every given criterion."""
        return [
            t for t in self.list()
            if all(getattr(t, key, None) == value for key, value in criteria.items())
        ]

    # ── Editing ───────────────────────────────────────────────────

    def update(self, translation_id: str, changes: Mapping[str, Any]) -> tuple[bool, Translation | str]:
        """Merge *changes* into a translation.

        ``status=modified`` records an edit in the changelog and
        ``status=translated`` approves it; other changes have no changelog
        side effect. Returns (True, merged record) or (False, reason).
        """
        translation = self._store.get(TRANSLATIONS, translation_id)
        if translation is None:
            return False, NOT_FOUND

        try:
            values = self._coerce(translation_id, changes)
        except ValueError as e:
            return False, str(e)
        text_changed = any(
            key in values and values[key] != getattr(translation, key)
            for key in ("translation", "plural_translation")
        )
        if translation.is_plural and text_changed and "extra_plural_translations" not in values:
            # Forms past the second were written for the old text; let them fall back to form 1.
            values["extra_plural_translations"] = ()

        updated = replace(translation, **values)
        status = values.get("status")
        if status is TranslationStatus.TRANSLATED:
            updated = self._changelog.record_approval(updated)
        elif status is TranslationStatus.MODIFIED:
            updated = self._changelog.record_modification(updated, values)

        self._store.insert(TRANSLATIONS, translation_id, updated)
        return True, updated

    @staticmethod
    def _coerce(translation_id: str, changes: Mapping[str, Any]) -> dict[str, Any]:
        values = {}
        for key, value in changes.items():
            if key not in TRANSLATION_FIELDS:
                raise ValueError(f"unknown field: {key}")
            if key == "id":
                if value != translation_id:
                    raise ValueError("id cannot be changed")
                continue
            if key in _ENUM_FIELDS and value is not None:
                try:
                    value = _ENUM_FIELDS[key](value)
                except ValueError:
                    raise ValueError(f"invalid {key}: {value!r}") from None
            elif key == "extra_plural_translations":
                value = tuple(value or ())
            values[key] = value
        return values

    # ── Write-back ────────────────────────────────────────────────

    def _apply(self, file_path: str | Path, records: Iterable[Translation]) -> CatalogData:
        data = self._parse(file_path)
        by_key = {(r.msgctxt, r.message_id): r for r in records}
        for message in data.messages:
            record = by_key.get((message.msgctxt, message.msgid))
            if record is None:
                continue
            if message.is_plural:
                message.set_plural_forms(plural_forms_for(record.language_code, record.plural_forms))
            else:
                message.set_msgstr(record.translation)
        return data

    def render(self, file_path: str | Path, records: Iterable[Translation]) -> str:
        """PO text of *file_path* as on disk now, with *records* applied. Raises CatalogParseError."""
        return self._compose(self._apply(file_path, records))

    def write_back(self, file_path: str | Path, records: Iterable[Translation]) -> tuple[bool, str]:
        """Write *records* into the catalog on disk; messages without a record are left as they are."""
        try:
            data = self._apply(file_path, records)
            text = self._compose(data)
        except CatalogParseError as e:
            log.error("Cannot update %s: %s", file_path, e)
            return False, str(e)
        try:
            atomic_write_text(file_path, text, encoding=data.encoding)
        except (OSError, LookupError, UnicodeEncodeError) as e:
            log.error("Failed to write %s: %s", file_path, e)
            return False, str(e)
        return True, str(file_path)
