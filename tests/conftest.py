"""Shared fixtures for gettext_translator tests."""
import json
import sys
from pathlib import Path

import pytest

# Ensure src is on path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

PO_HEADER = (
    'msgid ""\n'
    'msgstr ""\n'
    '"Language: {language}\\n"\n'
    '"MIME-Version: 1.0\\n"\n'
    '"Content-Type: text/plain; charset=UTF-8\\n"\n'
    '"Content-Transfer-Encoding: 8bit\\n"\n'
    '"Plural-Forms: {plural_forms}\\n"\n'
    "\n"
)

PLURAL_FORMS = {
    "uk": "nplurals=3; plural=(n%10==1 && n%100!=11 ? 0 : n%10>=2 && n%10<=4 && (n%100<10 || n%100>=20) ? 1 : 2);",
    "de": "nplurals=2; plural=(n != 1);",
}


@pytest.fixture
def gettext_root(tmp_path):
    """``<tmp>/priv/gettext``, the default catalog layout under an app root of ``tmp_path``."""
    root = tmp_path / "priv" / "gettext"
    root.mkdir(parents=True)
    return root


@pytest.fixture
def make_po(gettext_root):
    """Write ``<lang>/LC_MESSAGES/<domain>.po`` with a standard header and *body*."""
    def _make(body: str, language: str = "uk", domain: str = "default") -> Path:
        path = gettext_root / language / "LC_MESSAGES" / f"{domain}.po"
        path.parent.mkdir(parents=True, exist_ok=True)
        header = PO_HEADER.format(
            language=language,
            plural_forms=PLURAL_FORMS.get(language, PLURAL_FORMS["de"]),
        )
        path.write_text(header + body, "utf-8")
        return path
    return _make


@pytest.fixture
def store(tmp_path):
    from gettext_translator.services.translation_store import TranslationStore
    s = TranslationStore(root=tmp_path, timeout=10)
    yield s
    s.close()


@pytest.fixture
def changelog_dir(tmp_path):
    return tmp_path / "priv" / "translation_changelog"


@pytest.fixture
def make_settings(tmp_path, monkeypatch):
    """Write *values* to an isolated settings.json and return a freshly loaded ``Settings``."""
    settings_file = tmp_path / "settings.json"
    monkeypatch.setattr("gettext_translator.services.settings._SETTINGS_FILE", settings_file)
    from gettext_translator.services.settings import Settings

    def _make(**values):
        settings_file.write_text(json.dumps(values), "utf-8")
        Settings.reset_instance()
        return Settings.get()

    Settings.reset_instance()
    yield _make
    Settings.reset_instance()
