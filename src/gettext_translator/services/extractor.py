"""Merge gettext templates (``*.pot``) into every language's catalogs.

Messages a catalog already has are left alone. New messages are appended
untranslated, so the existing text of the catalog keeps its exact bytes.
A language without a catalog for the template's domain gets a new one.
"""

from __future__ import annotations

import logging
from pathlib import Path

import polib

from gettext_translator.parsers import atomic_write_text
from gettext_translator.parsers.po_parser import CatalogParseError, parse_catalog, plural_forms_for

log = logging.getLogger(__name__)


def _message_key(entry: polib.POEntry) -> tuple[str, str, str]:
    return entry.msgctxt or "", entry.msgid, entry.msgid_plural or ""


def _untranslated(entry: polib.POEntry, language_code: str) -> polib.POEntry:
    """Copy of a template entry with empty msgstr forms for *language_code*."""
    new = polib.POEntry(
        msgid=entry.msgid,
        msgctxt=entry.msgctxt,
        comment=entry.comment,
        tcomment=entry.tcomment,
        occurrences=list(entry.occurrences),
        flags=list(entry.flags),
    )
    if entry.msgid_plural:
        new.msgid_plural = entry.msgid_plural
        new.msgstr_plural = plural_forms_for(language_code, ("", ""))
    return new


def _template_entries(template: polib.POFile) -> list[polib.POEntry]:
    return [e for e in template if not e.obsolete and e.msgid]


def _create_catalog(path: Path, template: polib.POFile, language_code: str) -> int:
    po = polib.POFile(wrapwidth=template.wrapwidth)
    po.metadata = dict(template.metadata)
    po.metadata["Language"] = language_code
    for entry in _template_entries(template):
        po.append(_untranslated(entry, language_code))
    path.parent.mkdir(parents=True, exist_ok=True)
    atomic_write_text(path, str(po))
    return len(po)


def _extend_catalog(path: Path, template: polib.POFile, language_code: str) -> int:
    data = parse_catalog(path)
    existing = {_message_key(e) for e in data.po}
    added = [
        _untranslated(e, language_code)
        for e in _template_entries(template)
        if _message_key(e) not in existing
    ]
    if not added:
        return 0
    text = data.text
    newline = "\r\n" if "\r\n" in text else "\n"
    if text and not text.endswith(("\n", "\r")):
        text += newline
    # str(POEntry) ends with a line break; a blank line goes before each entry.
    text += "".join(newline + str(entry).replace("\n", newline) for entry in added)
    atomic_write_text(path, text, encoding=data.encoding)
    return len(added)


def merge_template(template_path: str | Path, gettext_path: str | Path, language_code: str) -> int:
    """Merge one template into ``<language>/LC_MESSAGES/<domain>.po``. Returns the messages added.

    Raises CatalogParseError when the template or the catalog cannot be read,
    OSError when the catalog cannot be written.
    """
    template_path = Path(template_path)
    try:
        template = polib.pofile(str(template_path))
    except (OSError, ValueError) as e:
        raise CatalogParseError(f"{template_path}: {e}") from e
    po_path = Path(gettext_path) / language_code / "LC_MESSAGES" / f"{template_path.stem}.po"
    if po_path.is_file():
        return _extend_catalog(po_path, template, language_code)
    return _create_catalog(po_path, template, language_code)


def merge_templates(gettext_path: str | Path) -> tuple[bool, str]:
    """Merge every ``*.pot`` in *gettext_path* into every language directory next to it."""
    root = Path(gettext_path)
    templates = sorted(root.glob("*.pot"))
    if not templates:
        return False, f"No .pot files found in {root}"
    languages = sorted(p.name for p in root.iterdir() if p.is_dir())

    errors = []
    added = 0
    for template in templates:
        for language_code in languages:
            try:
                added += merge_template(template, root, language_code)
            except (CatalogParseError, OSError) as e:
                log.error("Merging %s into %s failed: %s", template.name, language_code, e)
                errors.append(str(e))
    if errors:
        return False, "Some merges failed: " + "; ".join(errors)
    log.info("Merged %d template(s) into %d language(s), %d new message(s)",
             len(templates), len(languages), added)
    return True, f"Merged {len(templates)} .pot file(s) into {len(languages)} language(s)"
