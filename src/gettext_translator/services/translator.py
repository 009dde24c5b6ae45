"""LLM translation of pending catalog entries.

Engines: OpenAI and Anthropic (API key from the environment). The store only
sees the results, which go through ``update_translation(..., status=modified)``
so every machine translation is recorded in the changelog for review.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Optional, Protocol

from gettext_translator.services.records import TranslationStatus
from gettext_translator.services.settings import Settings, get_secret

if TYPE_CHECKING:
    from gettext_translator.services.translation_store import TranslationStore

log = logging.getLogger(__name__)


class TranslationError(Exception):
    pass


class LLMClient(Protocol):
    def translate(self, text: str, language_code: str) -> str: ...


def _instructions(persona: str, style: str, language_code: str) -> str:
    return (
        f"{persona}\nStyle: {style}\n"
        f"Translate the user's message to the language with code '{language_code}'. "
        "Keep placeholders such as %{name}, %s and {0} unchanged. Return only the translation."
    )


# ── Engines ───────────────────────────────────────────────────────────

class OpenAIClient:
    """Chat completion via the OpenAI SDK."""

    def __init__(self, model: str = "gpt-4o-mini", temperature: float = 0.2, api_key: str = "",
                 persona: str = "", style: str = ""):
        self.model = model
        self.temperature = temperature
        self.api_key = api_key
        self.persona = persona
        self.style = style

    def translate(self, text: str, language_code: str) -> str:
        api_key = self.api_key or get_secret("openai")
        if not api_key:
            raise TranslationError("OpenAI API key required (set OPENAI_API_KEY)")
        try:
            import openai
        except ImportError:
            raise TranslationError("Install openai: pip install openai")
        try:
            client = openai.OpenAI(api_key=api_key)
            resp = client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": _instructions(self.persona, self.style, language_code)},
                    {"role": "user", "content": text},
                ],
                temperature=self.temperature,
            )
        except openai.OpenAIError as e:
            raise TranslationError(f"OpenAI: {e}")
        return (resp.choices[0].message.content or "").strip()


class AnthropicClient:
    """Messages API via the Anthropic SDK."""

    def __init__(self, model: str = "claude-sonnet-4-20250514", temperature: float = 0.2, api_key: str = "",
                 persona: str = "", style: str = ""):
        self.model = model
        self.temperature = temperature
        self.api_key = api_key
        self.persona = persona
        self.style = style

    def translate(self, text: str, language_code: str) -> str:
        api_key = self.api_key or get_secret("anthropic")
        if not api_key:
            raise TranslationError("Anthropic API key required (set ANTHROPIC_API_KEY)")
        try:
            import anthropic
        except ImportError:
            raise TranslationError("Install anthropic: pip install anthropic")
        try:
            client = anthropic.Anthropic(api_key=api_key)
            resp = client.messages.create(
                model=self.model,
                max_tokens=1024,
                temperature=self.temperature,
                system=_instructions(self.persona, self.style, language_code),
                messages=[{"role": "user", "content": text}],
            )
        except anthropic.AnthropicError as e:
            raise TranslationError(f"Anthropic: {e}")
        return "".join(block.text for block in resp.content if getattr(block, "type", "") == "text").strip()


ENGINES: dict[str, type] = {
    "openai": OpenAIClient,
    "anthropic": AnthropicClient,
}


def make_client(settings: Optional[Settings] = None) -> LLMClient:
    """Build the configured engine."""
    settings = settings or Settings.get()
    provider = settings["llm_provider"]
    engine = ENGINES.get(provider)
    if engine is None:
        raise TranslationError(f"Unknown LLM provider: {provider}")
    return engine(
        model=settings["llm_model"],
        temperature=float(settings["llm_temperature"]),
        persona=settings["llm_persona"],
        style=settings["llm_style"],
    )


# ── Batch translation ─────────────────────────────────────────────────

@dataclass
class TranslateReport:
    translated: int = 0
    failed: list[tuple[str, str]] = field(default_factory=list)
    cancelled: bool = False


def translate_pending(store: "TranslationStore", client: LLMClient, language_code: Optional[str] = None,
                      limit: Optional[int] = None, cancel: Optional[threading.Event] = None) -> TranslateReport:
    """Machine-translate pending entries and record them as modified."""
    criteria = {"status": TranslationStatus.PENDING}
    if language_code:
        criteria["language_code"] = language_code
    report = TranslateReport()

    for translation in store.filter_translations(**criteria):
        if limit is not None and report.translated >= limit:
            break
        if cancel is not None and cancel.is_set():
            report.cancelled = True
            break
        try:
            changes = {
                "translation": client.translate(translation.message_id, translation.language_code),
                "status": TranslationStatus.MODIFIED,
            }
            if translation.is_plural:
                changes["plural_translation"] = client.translate(translation.plural_id, translation.language_code)
        except TranslationError as e:
            log.warning("Could not translate %r to %s: %s", translation.message_id, translation.language_code, e)
            report.failed.append((translation.id, str(e)))
            continue
        ok, result = store.update_translation(translation.id, changes)
        if ok:
            report.translated += 1
        else:
            report.failed.append((translation.id, result))

    log.info("Translated %d message(s), %d failed", report.translated, len(report.failed))
    return report


def start_translate_pending(store: "TranslationStore", client: LLMClient,
                            on_done: Callable[[TranslateReport], None],
                            language_code: Optional[str] = None) -> tuple[threading.Thread, threading.Event]:
    """Run :func:`translate_pending` in the background and hand the report to *on_done*.

    Set the returned event to stop after the message in progress.
    """
    cancel = threading.Event()

    def do_translate():
        on_done(translate_pending(store, client, language_code=language_code, cancel=cancel))

    thread = threading.Thread(target=do_translate, daemon=True)
    thread.start()
    return thread, cancel
