"""Tests for the PO and changelog parsers."""
import json

import pytest


# ── PO catalogs ───────────────────────────────────────────────────

class TestPoParser:
    def test_parse_singular_and_plural(self, make_po):
        from gettext_translator.parsers.po_parser import parse_catalog
        path = make_po(
            'msgid "Hello"\n'
            'msgstr "Привіт"\n'
            "\n"
            'msgid "One file"\n'
            'msgid_plural "%d files"\n'
            'msgstr[0] "Один файл"\n'
            'msgstr[1] "%d файли"\n'
            'msgstr[2] "%d файлів"\n'
        )
        data = parse_catalog(path)
        assert data.total_count == 2
        hello, files = data.messages
        assert hello.msgstr == "Привіт"
        assert not hello.is_plural
        assert files.is_plural
        assert files.plural_form(2) == "%d файлів"
        assert files.plural_form(5) == ""
        assert data.metadata["Language"] == "uk"

    def test_obsolete_entries_skipped(self, make_po):
        from gettext_translator.parsers.po_parser import compose_catalog, parse_catalog
        path = make_po(
            'msgid "Live"\n'
            'msgstr ""\n'
            "\n"
            '#~ msgid "Gone"\n'
            '#~ msgstr "Зникло"\n'
        )
        data = parse_catalog(path)
        assert [m.msgid for m in data.messages] == ["Live"]
        assert '#~ msgid "Gone"' in compose_catalog(data)

    def test_missing_file(self, tmp_path):
        from gettext_translator.parsers.po_parser import CatalogParseError, parse_catalog
        with pytest.raises(CatalogParseError):
            parse_catalog(tmp_path / "nope.po")

    def test_malformed_file(self, make_po):
        from gettext_translator.parsers.po_parser import CatalogParseError, parse_catalog
        path = make_po('msgid "Hello"\nthis is not a po file\n')
        with pytest.raises(CatalogParseError):
            parse_catalog(path)

    def test_setters_write_through(self, make_po):
        from gettext_translator.parsers.po_parser import compose_catalog, parse_catalog
        path = make_po('msgid "Hello"\nmsgstr ""\n')
        data = parse_catalog(path)
        data.messages[0].set_msgstr("Привіт")
        assert 'msgstr "Привіт"' in compose_catalog(data)

    def test_compose_without_changes_returns_text(self, make_po):
        from gettext_translator.parsers.po_parser import compose_catalog, parse_catalog
        path = make_po('# translator note\nmsgid "Hello"\nmsgstr ""\n"Hi "\n"there"\n')
        data = parse_catalog(path)
        data.messages[0].set_msgstr("Hi there")
        assert not data.messages[0].changed
        assert compose_catalog(data) == path.read_text("utf-8")

    def test_compose_replaces_whole_plural_block(self, make_po):
        from gettext_translator.parsers.po_parser import compose_catalog, parse_catalog
        path = make_po(
            'msgid "One file"\n'
            'msgid_plural "%d files"\n'
            'msgstr[0] ""\n'
            '"Один "\n'
            '"файл"\n'
            'msgstr[1] "%d файли"\n'
            "\n"
            'msgid "Next"\n'
            'msgstr "Далі"\n'
        )
        data = parse_catalog(path)
        data.messages[0].set_plural_forms({0: "Один файл", 1: "%d файли", 2: "%d файлів"})
        text = compose_catalog(data)
        assert text.endswith(
            'msgid "One file"\n'
            'msgid_plural "%d files"\n'
            'msgstr[0] "Один файл"\n'
            'msgstr[1] "%d файли"\n'
            'msgstr[2] "%d файлів"\n'
            "\n"
            'msgid "Next"\n'
            'msgstr "Далі"\n'
        )

    def test_compose_escapes_new_text(self, make_po):
        from gettext_translator.parsers.po_parser import compose_catalog, parse_catalog
        path = make_po('msgid "Quote"\nmsgstr ""\n')
        data = parse_catalog(path)
        data.messages[0].set_msgstr('Він сказав "так"\nі пішов')
        assert 'msgstr "Він сказав \\"так\\"\\nі пішов"\n' in compose_catalog(data)


class TestPluralForms:
    def test_two_form_language(self):
        from gettext_translator.parsers.po_parser import plural_forms_for
        assert plural_forms_for("de", ["Datei", "Dateien"]) == {0: "Datei", 1: "Dateien"}

    def test_three_form_language_falls_back(self):
        from gettext_translator.parsers.po_parser import plural_forms_for
        assert plural_forms_for("uk", ["файл", "файли"]) == {0: "файл", 1: "файли", 2: "файли"}

    def test_three_form_language_with_region(self):
        from gettext_translator.parsers.po_parser import plural_forms_for
        assert len(plural_forms_for("sr@latin", ["a", "b"])) == 3
        assert len(plural_forms_for("ru_RU", ["a", "b"])) == 3

    def test_explicit_third_form_kept(self):
        from gettext_translator.parsers.po_parser import plural_forms_for
        assert plural_forms_for("uk", ["файл", "файли", "файлів"])[2] == "файлів"

    def test_empty_extra_form_falls_back(self):
        from gettext_translator.parsers.po_parser import plural_forms_for
        assert plural_forms_for("pl", ["plik", "pliki", ""])[2] == "pliki"

    def test_forms_zero_and_one_always_present(self):
        from gettext_translator.parsers.po_parser import plural_forms_for
        assert plural_forms_for("ja", []) == {0: "", 1: ""}


# ── Changelog files ───────────────────────────────────────────────

CANONICAL = {
    "language": "uk",
    "source_file": "priv/gettext/uk/LC_MESSAGES/default.po",
    "translations": {
        "Hello": {"status": "approved", "text": "Привіт", "last_updated": "2025-03-01T10:00:00Z"},
        "Bye": {"status": "pending_review", "text": "Бувай", "last_updated": "2025-03-02T10:00:00+00:00"},
    },
}

LEGACY_HISTORY = {
    "history": [
        {"timestamp": "2024-01-01T00:00:00Z", "entries": [
            {"original": ["Hello"], "translated": "Привіт", "status": "NEW", "code": "uk", "type": "singular"},
        ]},
        {"timestamp": "2024-02-01T00:00:00Z", "entries": [
            {"original": ["Hello"], "translated": "Вітаю", "status": "MODIFIED", "code": "uk",
             "timestamp": "2024-02-01T00:00:00Z"},
        ]},
    ],
}


class TestChangelogParser:
    def test_decode_canonical(self):
        from gettext_translator.parsers.changelog_parser import CanonicalChangelog, decode_changelog
        from gettext_translator.services.records import ChangelogStatus
        changelog = decode_changelog(CANONICAL)
        assert isinstance(changelog, CanonicalChangelog)
        entries = {e.original_text: e for e in changelog.to_entries("f.po", "uk")}
        assert entries["Hello"].status == ChangelogStatus.APPROVED
        assert entries["Bye"].status == ChangelogStatus.NEW
        assert not any(e.modified for e in entries.values())

    def test_decode_legacy_history(self):
        from gettext_translator.parsers.changelog_parser import LegacyChangelog, decode_changelog
        changelog = decode_changelog(LEGACY_HISTORY)
        assert isinstance(changelog, LegacyChangelog)
        entries = changelog.to_entries("f.po", "uk")
        assert len(entries) == 2
        assert entries[0].timestamp == "2024-01-01T00:00:00Z"

    def test_decode_legacy_flat(self):
        from gettext_translator.parsers.changelog_parser import LegacyChangelog, decode_changelog
        changelog = decode_changelog({"entries": [
            {"original": "Hello", "translated": "Привіт", "status": "approved", "timestamp": "2024-01-01T00:00:00Z"},
        ]})
        assert isinstance(changelog, LegacyChangelog)
        (entry,) = changelog.to_entries("f.po", "uk")
        assert entry.original == ("Hello",)

    def test_unknown_layout(self):
        from gettext_translator.parsers.changelog_parser import ChangelogFormatError, decode_changelog
        with pytest.raises(ChangelogFormatError):
            decode_changelog({"something": "else"})
        with pytest.raises(ChangelogFormatError):
            decode_changelog([1, 2, 3])

    def test_read_missing(self, tmp_path):
        from gettext_translator.parsers.changelog_parser import read_changelog
        assert read_changelog(tmp_path / "none.json") is None

    def test_read_invalid_json(self, tmp_path):
        from gettext_translator.parsers.changelog_parser import ChangelogFormatError, read_changelog
        path = tmp_path / "bad.json"
        path.write_text("{not json", "utf-8")
        with pytest.raises(ChangelogFormatError):
            read_changelog(path)

    def test_write_then_read(self, tmp_path):
        from gettext_translator.parsers.changelog_parser import decode_changelog, read_changelog, write_changelog
        path = tmp_path / "uk_default_changelog.json"
        write_changelog(path, decode_changelog(CANONICAL))
        raw = json.loads(path.read_text("utf-8"))
        assert raw["translations"]["Hello"]["text"] == "Привіт"
        assert "Привіт" in path.read_text("utf-8")
        assert read_changelog(path).translations.keys() == {"Hello", "Bye"}

    def test_legacy_to_canonical(self):
        from gettext_translator.parsers.changelog_parser import decode_changelog
        canonical = decode_changelog(dict(LEGACY_HISTORY, language="uk")).to_canonical()
        assert canonical.language == "uk"
        assert canonical.translations["Hello"].text == "Вітаю"
        assert canonical.translations["Hello"].status == "approved"


class TestStatusMapping:
    def test_to_disk(self):
        from gettext_translator.parsers.changelog_parser import STATUS_TO_DISK
        from gettext_translator.services.records import ChangelogStatus
        assert STATUS_TO_DISK[ChangelogStatus.MODIFIED] == "approved"
        assert STATUS_TO_DISK[ChangelogStatus.APPROVED] == "approved"
        assert STATUS_TO_DISK[ChangelogStatus.NEW] == "pending_review"

    def test_from_disk(self):
        from gettext_translator.parsers.changelog_parser import to_internal_status
        from gettext_translator.services.records import ChangelogStatus
        assert to_internal_status("approved") == ChangelogStatus.APPROVED
        assert to_internal_status("pending_review") == ChangelogStatus.NEW
        assert to_internal_status("MODIFIED") == ChangelogStatus.MODIFIED
        assert to_internal_status("garbage") == ChangelogStatus.NEW

    def test_parse_timestamp(self):
        from datetime import datetime, timezone
        from gettext_translator.parsers.changelog_parser import parse_timestamp
        assert parse_timestamp("2025-01-01T00:00:00Z") == datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert parse_timestamp("2025-01-01T00:00:00") == datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert parse_timestamp("yesterday").year == 1970

    def test_newest_is_order_independent(self):
        from gettext_translator.parsers.changelog_parser import newest
        from gettext_translator.services.records import ChangelogEntry, ChangelogStatus

        def entry(eid, ts):
            return ChangelogEntry(id=eid, code="uk", status=ChangelogStatus.NEW, timestamp=ts,
                                  original=("Hello",), translated=eid, source_file="f.po")

        old = entry("a", "2024-01-01T00:00:00Z")
        new = entry("b", "2024-06-01T00:00:00+00:00")
        assert newest([old, new]) is new
        assert newest([new, old]) is new
        tie_1, tie_2 = entry("x", "2024-01-01T00:00:00Z"), entry("y", "2024-01-01T00:00:00Z")
        assert newest([tie_1, tie_2]) is newest([tie_2, tie_1])
