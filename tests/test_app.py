"""Tests for the command entry point."""
import json

import polib
import pytest


class EchoClient:
    def translate(self, text, language_code):
        return text.upper()


@pytest.fixture
def settings(tmp_path, make_settings):
    return make_settings(app_root=str(tmp_path))


class TestTranslatorApp:
    def test_run(self, settings, make_po, changelog_dir, monkeypatch):
        from gettext_translator import app
        po = make_po('msgid "Hello"\nmsgstr ""\n')
        monkeypatch.setattr(app, "make_client", lambda s: EchoClient())

        assert app.TranslatorApp(["gettext-translator"]).run() == 0
        assert polib.pofile(str(po)).find("Hello").msgstr == "HELLO"
        saved = json.loads((changelog_dir / "uk_default_changelog.json").read_text("utf-8"))
        assert saved["translations"]["Hello"]["text"] == "HELLO"

    def test_gettext_path_argument(self, settings, tmp_path):
        from gettext_translator.app import MERGE_TEMPLATES_FLAG, TranslatorApp
        assert TranslatorApp(["prog"]).gettext_path == tmp_path / "priv" / "gettext"
        assert TranslatorApp(["prog", "/srv/locale"]).gettext_path.as_posix() == "/srv/locale"
        assert TranslatorApp(["prog", MERGE_TEMPLATES_FLAG, "/srv/locale"]).gettext_path.as_posix() == "/srv/locale"

    def test_missing_directory(self, settings, tmp_path):
        from gettext_translator.app import TranslatorApp
        assert TranslatorApp(["prog", str(tmp_path / "nope")]).run() == 1

    def test_unknown_provider(self, tmp_path, make_settings, make_po):
        from gettext_translator.app import TranslatorApp
        make_settings(app_root=str(tmp_path), llm_provider="babelfish")
        make_po('msgid "Hello"\nmsgstr ""\n')
        assert TranslatorApp(["prog"]).run() == 1

    def test_merge_templates_first(self, settings, make_po, gettext_root, monkeypatch):
        from gettext_translator import app
        po = make_po('msgid "Hello"\nmsgstr ""\n')
        (gettext_root / "default.pot").write_text(
            'msgid ""\nmsgstr ""\n\nmsgid "Hello"\nmsgstr ""\n\nmsgid "Goodbye"\nmsgstr ""\n', "utf-8")
        monkeypatch.setattr(app, "make_client", lambda s: EchoClient())

        assert app.TranslatorApp(["prog", app.MERGE_TEMPLATES_FLAG]).run() == 0
        catalog = polib.pofile(str(po))
        assert catalog.find("Hello").msgstr == "HELLO"
        assert catalog.find("Goodbye").msgstr == "GOODBYE"

    def test_merge_templates_without_templates(self, settings, make_po):
        from gettext_translator import app
        make_po('msgid "Hello"\nmsgstr ""\n')
        assert app.TranslatorApp(["prog", app.MERGE_TEMPLATES_FLAG]).run() == 1

    def test_pull_request(self, settings, make_po, tmp_path, monkeypatch):
        from gettext_translator import app
        po = make_po('msgid "Hello"\nmsgstr ""\n')
        before = po.read_text("utf-8")
        submitted = []

        class FakeHost:
            def create_pr(self, file_changes):
                submitted.extend(file_changes)
                return True, "https://github.com/acme/app/pull/3"

        monkeypatch.setattr(app, "make_client", lambda s: EchoClient())
        monkeypatch.setattr(app, "make_host_client", lambda s: FakeHost())

        assert app.TranslatorApp(["prog", app.PULL_REQUEST_FLAG]).run() == 0
        assert po.read_text("utf-8") == before
        assert {c.path for c in submitted} == {
            "priv/gettext/uk/LC_MESSAGES/default.po",
            "priv/translation_changelog/uk_default_changelog.json",
        }

    def test_pull_request_unknown_git_provider(self, tmp_path, make_settings, make_po, monkeypatch):
        from gettext_translator import app
        make_settings(app_root=str(tmp_path), git_provider="bitbucket")
        make_po('msgid "Hello"\nmsgstr ""\n')
        monkeypatch.setattr(app, "make_client", lambda s: EchoClient())
        assert app.TranslatorApp(["prog", app.PULL_REQUEST_FLAG]).run() == 1
