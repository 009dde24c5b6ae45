"""Translation and changelog records held by the record store."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

PLURAL_SEPARATOR = " | "


class MessageKind(str, Enum):
    SINGULAR = "singular"
    PLURAL = "plural"


class TranslationStatus(str, Enum):
    PENDING = "pending"        # empty msgstr on load
    MODIFIED = "modified"      # edited locally, not approved yet
    TRANSLATED = "translated"  # approved


class ChangelogStatus(str, Enum):
    NEW = "NEW"
    MODIFIED = "MODIFIED"
    APPROVED = "APPROVED"


def content_id(*parts: str) -> str:
    """Stable content hash over the given parts."""
    return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Translation:
    """One catalog message as shown in the review UI."""
    id: str
    language_code: str
    domain: str
    file_path: str
    kind: MessageKind
    message_id: str
    translation: str = ""
    status: TranslationStatus = TranslationStatus.PENDING
    plural_id: str = ""
    plural_translation: str = ""
    extra_plural_translations: tuple[str, ...] = ()
    msgctxt: str = ""
    changelog_id: Optional[str] = None
    changelog_status: Optional[ChangelogStatus] = None
    changelog_timestamp: Optional[str] = None

    @property
    def is_plural(self) -> bool:
        return self.kind is MessageKind.PLURAL

    @property
    def original(self) -> tuple[str, ...]:
        if self.is_plural:
            return (self.message_id, self.plural_id)
        return (self.message_id,)

    @property
    def plural_forms(self) -> list[str]:
        return [self.translation, self.plural_translation, *self.extra_plural_translations]

    @property
    def translated_text(self) -> str:
        """Translation text as recorded in the changelog."""
        if self.is_plural:
            return f"{self.translation}{PLURAL_SEPARATOR}{self.plural_translation}"
        return self.translation


TRANSLATION_FIELDS = frozenset(f.name for f in fields(Translation))


@dataclass(frozen=True)
class ChangelogEntry:
    """One history event for a message: its text and approval state at a point in time."""
    id: str
    code: str
    status: ChangelogStatus
    timestamp: str
    original: tuple[str, ...]
    translated: str
    source_file: str
    modified: bool = False

    @property
    def original_text(self) -> str:
        return self.original[0] if self.original else ""

    @property
    def key(self) -> tuple[str, str]:
        return (self.source_file, self.original_text)


@dataclass
class CatalogFolder:
    """A language directory and the PO files under its LC_MESSAGES."""
    language_code: str
    files: list[str] = field(default_factory=list)
