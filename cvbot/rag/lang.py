from __future__ import annotations

import asyncio
import logging
import re
from enum import Enum
from typing import Protocol

from cvbot.ai.types import AIClient, ChatMessage
from cvbot.rag.text import normalize_text

logger = logging.getLogger(__name__)


class Lang(str, Enum):
    EN = "en"
    DE = "de"
    RO = "ro"


BASELINE_LANG = Lang.EN

LANGUAGE_NAMES: dict[Lang, str] = {
    Lang.EN: "English",
    Lang.DE: "German",
    Lang.RO: "Romanian",
}

_DE_CHARS = re.compile(r"[äöüß]")
_RO_CHARS = re.compile(r"[ăâîșşțţ]")
_WORDS = re.compile(r"[a-z]+")

# Normalized (diacritic-free) function words. Overlaps between languages are
# resolved by counting, ties go to the earlier language in _SCORING_ORDER.
_FUNCTION_WORDS: dict[Lang, frozenset[str]] = {
    Lang.EN: frozenset(
        {
            "the", "a", "an", "and", "is", "are", "was", "were", "does", "did", "do",
            "what", "which", "who", "how", "why", "when", "where", "her", "she", "about",
            "tell", "with", "in", "at", "of", "for", "has", "have", "can", "me", "on",
            "to", "from", "any", "there", "this", "that",
        }
    ),
    Lang.DE: frozenset(
        {
            "der", "die", "das", "und", "ist", "sind", "war", "hat", "haben", "wie", "was",
            "welche", "welcher", "welches", "warum", "wer", "wo", "ihre", "ihr", "ihren",
            "ihrer", "sie", "mit", "bei", "uber", "ueber", "fur", "fuer", "nicht", "ein",
            "eine", "einen", "erzahl", "erzahle", "mir", "von", "starken", "schwachen",
            "arbeitsumfeld", "lebenslauf", "rolle", "rollen", "faehigkeiten", "fahigkeiten",
            "werkzeuge", "gehalt", "spricht", "kann", "auch",
        }
    ),
    Lang.RO: frozenset(
        {
            "este", "sunt", "care", "ce", "cum", "ea", "ei", "si", "despre", "din", "cu",
            "pentru", "spune", "mi", "sa", "la", "de", "in", "are", "ani", "fost", "lucrat",
            "rolul", "nu", "mai", "unde", "cand", "puncte", "punctele", "tari", "slabe",
            "angajam", "mediu", "munca", "abilitati", "fluxuri", "cati", "varsta", "copii",
            "casatorita", "relatie", "salariu", "limbi", "vorbeste", "intr",
        }
    ),
}
_SCORING_ORDER = (Lang.EN, Lang.DE, Lang.RO)


def parse_lang(value: str | None) -> Lang | None:
    code = (value or "").strip().lower()
    for lang in Lang:
        if code == lang.value:
            return lang
    return None


def detect_lang(text: str | None) -> Lang:
    """Lexical guess: distinctive diacritics first, then function-word counts."""
    lowered = (text or "").strip().lower()
    if not lowered:
        return BASELINE_LANG
    if _DE_CHARS.search(lowered):
        return Lang.DE
    if _RO_CHARS.search(lowered):
        return Lang.RO

    tokens = _WORDS.findall(normalize_text(lowered))
    if not tokens:
        return BASELINE_LANG
    scores = {
        lang: sum(1 for token in tokens if token in _FUNCTION_WORDS[lang])
        for lang in _SCORING_ORDER
    }
    best = max(_SCORING_ORDER, key=lambda lang: scores[lang])
    if scores[best] == 0:
        return BASELINE_LANG
    return best


class LanguageClassifier(Protocol):
    async def classify(self, text: str) -> Lang: ...


class LexicalLanguageClassifier:
    async def classify(self, text: str) -> Lang:
        return detect_lang(text)


_CLASSIFIER_PROMPT = (
    "Identify the language of the user's message. "
    "Reply with exactly one code and nothing else: en, de or ro. "
    "If unsure, reply en."
)


class LLMLanguageClassifier:
    """Delegates to the chat model; any failure or odd reply falls back to English."""

    def __init__(self, client: AIClient, *, timeout_s: float = 10.0):
        self._client = client
        self._timeout_s = timeout_s

    async def classify(self, text: str) -> Lang:
        if not (text or "").strip():
            return BASELINE_LANG
        messages = [
            ChatMessage(role="system", content=_CLASSIFIER_PROMPT),
            ChatMessage(role="user", content=text),
        ]
        try:
            reply = await asyncio.wait_for(
                self._client.complete(messages, temperature=0.0, max_tokens=3),
                timeout=self._timeout_s,
            )
        except Exception as exc:  # noqa: BLE001 - classification must never fail the request
            logger.warning("language_classifier_failed: %s", exc)
            return BASELINE_LANG

        tokens = (reply or "").strip().lower().split()
        lang = parse_lang(tokens[0].strip(".,;:'\"`")) if tokens else None
        if lang is None:
            logger.info("language_classifier_unrecognized reply=%r", (reply or "")[:20])
            return BASELINE_LANG
        return lang
