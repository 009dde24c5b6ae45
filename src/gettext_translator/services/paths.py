"""Path helpers: map PO catalog paths to language, domain and changelog paths and back."""

from __future__ import annotations

import logging
import re
from pathlib import Path, PurePath
from typing import Optional

log = logging.getLogger(__name__)

LC_MESSAGES = "LC_MESSAGES"
GETTEXT_DIR = "priv/gettext"
CHANGELOG_DIR = "priv/translation_changelog"
CATALOG_SUFFIX = ".po"
CHANGELOG_SUFFIX = "_changelog.json"
UNKNOWN_LANGUAGE = "unknown"

_LC_MESSAGES_RE = re.compile(r"(?:^|/)([^/]+)/LC_MESSAGES/[^/]+$")
_GETTEXT_DIR_RE = re.compile(r"(?:^|/)gettext/([^/]+)/")
# Language is a primary tag plus an optional upper-case region or title-case
# script, so "pt_BR_default" and "uk_my_domain" both split correctly.
_CHANGELOG_NAME_RE = re.compile(
    r"^(?P<lang>[A-Za-z]{2,3}(?:[_-](?:[A-Z]{2}|[0-9]{3}|[A-Z][a-z]{3}))?(?:@[A-Za-z]+)?)"
    r"_(?P<domain>.+)_changelog\.json$"
)


def _posix(path: str | PurePath) -> str:
    return str(path).replace("\\", "/")


def _under(root: Optional[str | Path], relative: str) -> Path:
    return Path(root) / relative if root else Path(relative)


def language_code_of(po_path: str | PurePath) -> str:
    """Language directory of a catalog path, or ``"unknown"`` if the layout does not match."""
    text = _posix(po_path)
    match = _LC_MESSAGES_RE.search(text) or _GETTEXT_DIR_RE.search(text)
    if match:
        return match.group(1)
    log.warning("Could not extract language code from path: %s", po_path)
    return UNKNOWN_LANGUAGE


def domain_of(po_path: str | PurePath) -> str:
    """Catalog basename without its extension."""
    return PurePath(_posix(po_path)).stem


def gettext_dir(root: Optional[str | Path] = None) -> Path:
    return _under(root, GETTEXT_DIR)


def changelog_dir(root: Optional[str | Path] = None) -> Path:
    return _under(root, CHANGELOG_DIR)


def changelog_path_for(po_path: str | PurePath, root: Optional[str | Path] = None) -> Path:
    """Changelog file for a catalog, e.g. ``priv/translation_changelog/uk_default_changelog.json``."""
    name = f"{language_code_of(po_path)}_{domain_of(po_path)}{CHANGELOG_SUFFIX}"
    return changelog_dir(root) / name


def catalog_path_for(changelog_path: str | PurePath, root: Optional[str | Path] = None) -> Optional[Path]:
    """Inverse of :func:`changelog_path_for`. Returns None for unexpected file names."""
    name = PurePath(_posix(changelog_path)).name
    match = _CHANGELOG_NAME_RE.match(name)
    if not match:
        log.warning("Could not extract language and domain from changelog path: %s", changelog_path)
        return None
    return gettext_dir(root) / match.group("lang") / LC_MESSAGES / f"{match.group('domain')}{CATALOG_SUFFIX}"


def ensure_changelog_dir(root: Optional[str | Path] = None) -> tuple[bool, str]:
    """Create the changelog directory. Returns (success, path or error)."""
    path = changelog_dir(root)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        log.error("Failed to create directory %s: %s", path, e)
        return False, str(e)
    return True, str(path)
