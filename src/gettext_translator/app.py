"""Command entry point: translate pending messages of a gettext tree and save the results.

Usage: gettext-translator [--merge-templates] [--pull-request] [gettext_dir]

``--merge-templates`` first merges the ``*.pot`` templates into every
language's catalogs. With ``--pull-request`` the catalogs and changelogs on
disk are left alone and the changes are submitted to the configured GitHub
or GitLab repository instead.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from gettext_translator.services.extractor import merge_templates
from gettext_translator.services.pull_request import UnknownHostError, make_host_client, make_pull_request
from gettext_translator.services.settings import Settings
from gettext_translator.services.translation_store import TranslationStore
from gettext_translator.services.translator import TranslationError, make_client, translate_pending

log = logging.getLogger("gettext_translator")

PULL_REQUEST_FLAG = "--pull-request"
MERGE_TEMPLATES_FLAG = "--merge-templates"
FLAGS = (PULL_REQUEST_FLAG, MERGE_TEMPLATES_FLAG)


class TranslatorApp:
    """Loads the catalogs, runs the configured LLM over pending entries and saves."""

    def __init__(self, argv: list[str]):
        self._args = [a for a in argv[1:] if a not in FLAGS]
        self._pull_request = PULL_REQUEST_FLAG in argv[1:]
        self._merge_templates = MERGE_TEMPLATES_FLAG in argv[1:]
        self._settings = Settings.get()

    @property
    def gettext_path(self) -> Path:
        if self._args:
            return Path(self._args[0])
        return self._settings.gettext_path

    def run(self) -> int:
        if self._merge_templates:
            ok, message = merge_templates(self.gettext_path)
            if not ok:
                log.error("%s", message)
                return 1
            log.info("%s", message)

        store = TranslationStore.from_settings(self._settings)
        try:
            ok, result = store.load_translations(self.gettext_path)
            if not ok:
                log.error("Could not load %s: %s", self.gettext_path, result)
                return 1
            log.info("GettextTranslator has started, %d messages loaded", result)

            try:
                client = make_client(self._settings)
            except TranslationError as e:
                log.error("%s", e)
                return 1
            report = translate_pending(store, client)
            log.info(
                "GettextTranslator has finished with translations. %d messages has been translated",
                report.translated,
            )
            if self._pull_request:
                return self._submit(store)
            return self._save(store)
        finally:
            store.close()

    def _save(self, store: TranslationStore) -> int:
        ok, saved = store.save_all_changes()
        if not ok:
            log.error("Saving failed: %s", saved)
            return 1
        return 0 if saved.ok else 1

    def _submit(self, store: TranslationStore) -> int:
        try:
            host = make_host_client(self._settings)
        except UnknownHostError as e:
            log.error("%s", e)
            return 1
        ok, result = make_pull_request(store, host, self._settings.repo_root)
        if not ok:
            log.error("Pull request not created: %s", result)
            return 1
        print(result)
        return 0


def main():
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")
    app = TranslatorApp(sys.argv)
    sys.exit(app.run())


if __name__ == "__main__":
    main()
