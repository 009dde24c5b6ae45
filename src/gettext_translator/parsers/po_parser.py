"""PO catalog parser using polib.

polib reads catalogs and locates entries. Writing goes back through the
original file text: only the ``msgstr`` lines of changed messages are
replaced, every other line keeps its exact bytes.
"""

from __future__ import annotations

import re

import polib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

# Languages whose plural grammar needs a third msgstr form.
THREE_FORM_LANGUAGES = frozenset({
    "be", "bs", "cs", "hr", "lt", "pl", "ru", "sk", "sr", "uk",
})

_CONTINUATION_RE = re.compile(r'^\s*"')
_MSGSTR_RE = re.compile(r"^\s*msgstr(?:\[\d+\])?\s")
# Line breaks as polib counts them (universal newlines), unlike str.splitlines.
_LINE_RE = re.compile(r"[^\r\n]*(?:\r\n|\r|\n)|[^\r\n]+\Z")


class CatalogParseError(Exception):
    pass


@dataclass
class CatalogMessage:
    """A singular or plural message, bound to the polib entry it came from."""
    msgid: str
    msgstr: str = ""
    msgid_plural: str = ""
    msgstr_plural: dict[int, str] = field(default_factory=dict)
    msgctxt: str = ""
    entry: Optional[polib.POEntry] = field(default=None, repr=False, compare=False)
    changed: bool = field(default=False, compare=False)

    @property
    def is_plural(self) -> bool:
        return bool(self.msgid_plural)

    @property
    def linenum(self) -> int:
        """1-based line where the entry starts in the source file, 0 if unknown."""
        if self.entry is None or not self.entry.linenum:
            return 0
        return int(self.entry.linenum)

    def plural_form(self, index: int) -> str:
        return self.msgstr_plural.get(index, "")

    @classmethod
    def from_polib(cls, entry: polib.POEntry) -> "CatalogMessage":
        return cls(
            msgid=entry.msgid,
            msgstr=entry.msgstr or "",
            msgid_plural=entry.msgid_plural or "",
            msgstr_plural={int(k): v for k, v in entry.msgstr_plural.items()} if entry.msgstr_plural else {},
            msgctxt=entry.msgctxt or "",
            entry=entry,
        )

    def set_msgstr(self, text: str) -> None:
        if text == self.msgstr:
            return
        self.msgstr = text
        self.changed = True
        if self.entry is not None:
            self.entry.msgstr = text

    def set_plural_forms(self, forms: dict[int, str]) -> None:
        if dict(forms) == self.msgstr_plural:
            return
        self.msgstr_plural = dict(forms)
        self.changed = True
        if self.entry is not None:
            self.entry.msgstr_plural = dict(forms)

    def msgstr_lines(self, newline: str = "\n", indent: str = "") -> list[str]:
        if self.is_plural:
            return [
                f'{indent}msgstr[{i}] "{polib.escape(self.msgstr_plural[i])}"{newline}'
                for i in sorted(self.msgstr_plural)
            ]
        return [f'{indent}msgstr "{polib.escape(self.msgstr)}"{newline}']


@dataclass
class CatalogData:
    """Parsed PO catalog. ``text`` is the file as read, used to write changes back in place."""
    path: Path
    po: polib.POFile
    messages: list[CatalogMessage]
    metadata: dict[str, str]
    encoding: str = "utf-8"
    text: str = ""

    @property
    def total_count(self) -> int:
        return len(self.messages)


def parse_catalog(path: str | Path) -> CatalogData:
    """Parse a PO file. Raises CatalogParseError on missing or malformed files."""
    path = Path(path)
    if not path.is_file():
        raise CatalogParseError(f"{path}: no such file")
    try:
        po = polib.pofile(str(path))
        encoding = po.encoding or "utf-8"
        text = path.read_bytes().decode(encoding)
    except (OSError, ValueError, LookupError) as e:
        raise CatalogParseError(f"{path}: {e}") from e
    messages = [CatalogMessage.from_polib(e) for e in po if not e.obsolete]
    metadata = dict(po.metadata) if po.metadata else {}
    return CatalogData(path=path, po=po, messages=messages, metadata=metadata,
                       encoding=encoding, text=text)


def _msgstr_span(lines: list[str], start: int) -> tuple[int, int]:
    """Index range of the msgstr block of the entry whose first line is *start*."""
    first = start
    while first < len(lines) and not _MSGSTR_RE.match(lines[first]):
        first += 1
    if first == len(lines):
        raise CatalogParseError(f"no msgstr after line {start + 1}")
    end = first + 1
    while end < len(lines) and (_MSGSTR_RE.match(lines[end]) or _CONTINUATION_RE.match(lines[end])):
        end += 1
    return first, end


def compose_catalog(data: CatalogData) -> str:
    """Catalog text with the changed messages' msgstr lines replaced.

    Lines outside those msgstr blocks (wrapping, comments, the header)
    come back exactly as they were read.
    """
    changed = [m for m in data.messages if m.changed]
    if not changed:
        return data.text
    lines = _LINE_RE.findall(data.text)
    spans = []
    for message in changed:
        first, end = _msgstr_span(lines, max(message.linenum - 1, 0))
        original = lines[first]
        newline = original[len(original.rstrip("\r\n")):] or "\n"
        indent = original[:len(original) - len(original.lstrip())]
        spans.append((first, end, message.msgstr_lines(newline, indent)))
    # Bottom up, so earlier indexes stay valid.
    for first, end, replacement in sorted(spans, key=lambda s: s[0], reverse=True):
        lines[first:end] = replacement
    return "".join(lines)


def plural_forms_for(language_code: str, forms: Sequence[str]) -> dict[int, str]:
    """Build the msgstr[n] map to write for a plural message.

    Forms 0 and 1 are always present, form 2 is added for three-form languages,
    and any further forms in *forms* are kept. Missing forms past the first
    fall back to form 1.
    """
    singular = forms[0] if len(forms) > 0 else ""
    plural = forms[1] if len(forms) > 1 else ""
    count = max(2, len(forms))
    if re.split(r"[_@.-]", language_code)[0] in THREE_FORM_LANGUAGES:
        count = max(count, 3)
    result = {0: singular, 1: plural}
    for index in range(2, count):
        value = forms[index] if index < len(forms) else ""
        result[index] = value or plural
    return result
