"""Translation changelog files (JSON).

Canonical layout::

    {"language": "uk", "source_file": "priv/gettext/uk/LC_MESSAGES/default.po",
     "translations": {"Hello": {"status": "approved", "text": "Привіт",
                                "last_updated": "2025-03-01T10:00:00+00:00"}}}

Older files use a list of batches instead::

    {"history": [{"timestamp": "...", "entries": [{"original": ["Hello"],
      "translated": "Привіт", "status": "NEW", "code": "uk", "type": "singular",
      "timestamp": "..."}]}]}

and the oldest ones a bare ``{"entries": [...]}`` list. Both legacy shapes decode
to :class:`LegacyChangelog`; everything is turned into ``ChangelogEntry``
records right after decoding.

The on-disk status vocabulary is a lossy projection: ``MODIFIED`` and
``APPROVED`` both persist as ``"approved"``, so a file cannot tell a fresh
approval from an edit that was saved without one.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

from gettext_translator.parsers import atomic_write_text
from gettext_translator.services.records import ChangelogEntry, ChangelogStatus, content_id

DISK_APPROVED = "approved"
DISK_PENDING_REVIEW = "pending_review"

STATUS_TO_DISK: dict[ChangelogStatus, str] = {
    ChangelogStatus.MODIFIED: DISK_APPROVED,
    ChangelogStatus.APPROVED: DISK_APPROVED,
    ChangelogStatus.NEW: DISK_PENDING_REVIEW,
}

STATUS_FROM_DISK: dict[str, ChangelogStatus] = {
    DISK_APPROVED: ChangelogStatus.APPROVED,
    DISK_PENDING_REVIEW: ChangelogStatus.NEW,
}

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ChangelogFormatError(Exception):
    pass


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp; anything unparseable sorts as the epoch."""
    if not isinstance(value, str) or not value:
        return _EPOCH
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_internal_status(value: Any) -> ChangelogStatus:
    """Map a status from any changelog shape to the internal vocabulary."""
    if isinstance(value, ChangelogStatus):
        return value
    if isinstance(value, str):
        if value in STATUS_FROM_DISK:
            return STATUS_FROM_DISK[value]
        try:
            return ChangelogStatus(value.upper())
        except ValueError:
            pass
    return ChangelogStatus.NEW


def newest(entries: list[ChangelogEntry]) -> ChangelogEntry:
    """Latest entry by timestamp; ties resolve on id so the result is order independent."""
    return max(entries, key=lambda e: (parse_timestamp(e.timestamp), e.id))


# ── Canonical shape ───────────────────────────────────────────────

@dataclass
class DiskTranslation:
    status: str
    text: str
    last_updated: str

    def to_json(self) -> dict[str, str]:
        return {"status": self.status, "text": self.text, "last_updated": self.last_updated}


@dataclass
class CanonicalChangelog:
    language: str
    source_file: str
    translations: dict[str, DiskTranslation] = field(default_factory=dict)

    def to_entries(self, source_file: str, code: str) -> list[ChangelogEntry]:
        entries = []
        for original, item in self.translations.items():
            entries.append(ChangelogEntry(
                id=content_id(source_file, original, item.last_updated),
                code=code,
                status=to_internal_status(item.status),
                timestamp=item.last_updated,
                original=(original,),
                translated=item.text,
                source_file=source_file,
                modified=False,
            ))
        return entries

    def merged_with(self, updates: dict[str, DiskTranslation]) -> "CanonicalChangelog":
        """Copy with *updates* layered over the existing translations."""
        merged = dict(self.translations)
        merged.update(updates)
        return CanonicalChangelog(self.language, self.source_file, merged)

    def to_json(self) -> dict[str, Any]:
        return {
            "language": self.language,
            "source_file": self.source_file,
            "translations": {k: v.to_json() for k, v in self.translations.items()},
        }


# ── Legacy shape ──────────────────────────────────────────────────

@dataclass
class LegacyEntry:
    original: tuple[str, ...]
    translated: str
    status: str
    timestamp: str
    code: str = ""
    type: str = "singular"


@dataclass
class LegacyBatch:
    timestamp: str
    entries: list[LegacyEntry]


@dataclass
class LegacyChangelog:
    language: str
    source_file: str
    history: list[LegacyBatch] = field(default_factory=list)

    def to_entries(self, source_file: str, code: str) -> list[ChangelogEntry]:
        entries = []
        for batch in self.history:
            for item in batch.entries:
                original_text = item.original[0] if item.original else ""
                entries.append(ChangelogEntry(
                    id=content_id(source_file, original_text, item.timestamp),
                    code=item.code or code,
                    status=to_internal_status(item.status),
                    timestamp=item.timestamp,
                    original=item.original,
                    translated=item.translated,
                    source_file=source_file,
                    modified=False,
                ))
        return entries

    def to_canonical(self) -> CanonicalChangelog:
        """Collapse the history to one translation per original text, newest first."""
        entries = self.to_entries(self.source_file, self.language)
        return CanonicalChangelog(self.language, self.source_file, disk_translations(entries))


ChangelogFile = Union[CanonicalChangelog, LegacyChangelog]


def disk_translations(entries: list[ChangelogEntry]) -> dict[str, DiskTranslation]:
    """On-disk translations map for *entries*; the newest entry per original text wins."""
    by_key: dict[str, list[ChangelogEntry]] = {}
    for entry in entries:
        by_key.setdefault(entry.original_text, []).append(entry)
    result = {}
    for original, group in by_key.items():
        entry = newest(group)
        result[original] = DiskTranslation(
            status=STATUS_TO_DISK.get(entry.status, DISK_PENDING_REVIEW),
            text=entry.translated or "",
            last_updated=entry.timestamp,
        )
    return result


# ── Decoding ──────────────────────────────────────────────────────

def _original(value: Any) -> tuple[str, ...]:
    if isinstance(value, list):
        return tuple(str(v) for v in value)
    if value is None:
        return ()
    return (str(value),)


def _legacy_entry(raw: Any, batch_timestamp: str) -> LegacyEntry:
    if not isinstance(raw, dict):
        raise ChangelogFormatError(f"legacy entry is not an object: {raw!r}")
    return LegacyEntry(
        original=_original(raw.get("original")),
        translated=str(raw.get("translated") or ""),
        status=str(raw.get("status") or ChangelogStatus.NEW.value),
        timestamp=str(raw.get("timestamp") or batch_timestamp),
        code=str(raw.get("code") or ""),
        type=str(raw.get("type") or "singular"),
    )


def decode_changelog(data: Any) -> ChangelogFile:
    """Decode parsed JSON into one of the known changelog shapes."""
    if not isinstance(data, dict):
        raise ChangelogFormatError("changelog root is not an object")
    language = str(data.get("language") or "")
    source_file = str(data.get("source_file") or "")

    translations = data.get("translations")
    if isinstance(translations, dict):
        items = {}
        for original, raw in translations.items():
            if not isinstance(raw, dict):
                raise ChangelogFormatError(f"translation for {original!r} is not an object")
            items[original] = DiskTranslation(
                status=str(raw.get("status") or DISK_PENDING_REVIEW),
                text=str(raw.get("text") or ""),
                last_updated=str(raw.get("last_updated") or ""),
            )
        return CanonicalChangelog(language, source_file, items)

    history = data.get("history")
    if isinstance(history, list):
        batches = []
        for raw_batch in history:
            if not isinstance(raw_batch, dict) or not isinstance(raw_batch.get("entries", []), list):
                raise ChangelogFormatError("history batch is malformed")
            stamp = str(raw_batch.get("timestamp") or "")
            batches.append(LegacyBatch(stamp, [_legacy_entry(e, stamp) for e in raw_batch.get("entries", [])]))
        return LegacyChangelog(language, source_file, batches)

    flat = data.get("entries")
    if isinstance(flat, list):
        return LegacyChangelog(language, source_file, [LegacyBatch("", [_legacy_entry(e, "") for e in flat])])

    raise ChangelogFormatError("unknown changelog layout")


def read_changelog(path: str | Path) -> Optional[ChangelogFile]:
    """Read a changelog file. Returns None if it does not exist."""
    path = Path(path)
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text("utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ChangelogFormatError(f"{path}: {e}") from e
    return decode_changelog(data)


def dump_changelog(changelog: CanonicalChangelog) -> str:
    return json.dumps(changelog.to_json(), ensure_ascii=False, indent=2) + "\n"


def write_changelog(path: str | Path, changelog: CanonicalChangelog) -> None:
    atomic_write_text(path, dump_changelog(changelog))
