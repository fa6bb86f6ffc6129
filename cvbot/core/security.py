from __future__ import annotations

import hmac

from fastapi import HTTPException, status

from cvbot.core.config import settings
from cvbot.rag.lang import Lang, parse_lang


def _auth_error_message(lang: str | None) -> str:
    key = parse_lang((lang or "").split(",")[0].strip()[:2])
    messages = {
        Lang.EN: "Please provide a valid API key to use the chatbot.",
        Lang.DE: "Bitte gib einen gültigen API-Schlüssel an, um den Chatbot zu nutzen.",
        Lang.RO: "Te rugăm să furnizezi o cheie API validă pentru a folosi chatbotul.",
    }
    return messages[key or Lang.EN]


def check_api_key(x_api_key: str | None, lang: str | None = None) -> None:
    """Reject the request unless auth is public or the key matches."""
    if settings.chat_auth_mode != "protected" or not settings.api_key:
        return
    if not x_api_key or not hmac.compare_digest(x_api_key, settings.api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=_auth_error_message(lang),
        )
