from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

def _get_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env(name, None)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_float(name: str, default: float) -> float:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_env_list(name: str, default: list[str]) -> tuple[str, ...]:
    raw = _get_env(name, None)
    if raw is None:
        return tuple(default)
    values = [item.strip() for item in raw.split(",")]
    clean = [item for item in values if item]
    return tuple(clean) if clean else tuple(default)


@dataclass(frozen=True)
class Settings:
    api_key: str | None
    chat_auth_mode: str
    rate_limit: str
    rate_limit_enabled: bool
    log_level: str
    sentry_dsn: str | None
    cors_allowed_origins: tuple[str, ...]
    cors_allow_origin_regex: str | None
    cors_allow_credentials: bool
    knowledge_base_path: str
    interview_bank_path: str
    pipeline_config_path: str | None
    boundaries_config_path: str | None
    language_classifier: str
    upstream_timeout_s: float
    history_max_entries: int
    history_max_sessions: int
    variant_counter_max_keys: int
    debug_enabled: bool
    random_seed: int | None


settings = Settings(
    api_key=_get_env("API_KEY"),
    chat_auth_mode=(_get_env("CHAT_AUTH_MODE", "public") or "public").strip().lower(),
    rate_limit=_get_env("RATE_LIMIT", "60/minute") or "60/minute",
    rate_limit_enabled=_get_env_bool("RATE_LIMIT_ENABLED", True),
    log_level=_get_env("LOG_LEVEL", "INFO") or "INFO",
    sentry_dsn=_get_env("SENTRY_DSN"),
    cors_allowed_origins=_get_env_list(
        "CORS_ALLOWED_ORIGINS",
        [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
        ],
    ),
    cors_allow_origin_regex=_get_env("CORS_ALLOW_ORIGIN_REGEX"),
    cors_allow_credentials=_get_env_bool("CORS_ALLOW_CREDENTIALS", False),
    knowledge_base_path=_get_env("KNOWLEDGE_BASE_PATH", "data/embeddings.json") or "data/embeddings.json",
    interview_bank_path=_get_env("INTERVIEW_BANK_PATH", "data/interview.i18n.json") or "data/interview.i18n.json",
    pipeline_config_path=_get_env("PIPELINE_CONFIG_PATH"),
    boundaries_config_path=_get_env("BOUNDARIES_CONFIG_PATH"),
    language_classifier=(_get_env("LANGUAGE_CLASSIFIER", "lexical") or "lexical").strip().lower(),
    upstream_timeout_s=_get_env_float("UPSTREAM_TIMEOUT_S", 30.0),
    history_max_entries=_get_env_int("HISTORY_MAX_ENTRIES", 12),
    history_max_sessions=_get_env_int("HISTORY_MAX_SESSIONS", 1000),
    variant_counter_max_keys=_get_env_int("VARIANT_COUNTER_MAX_KEYS", 5000),
    debug_enabled=_get_env_bool("CHAT_DEBUG_ENABLED", True),
    random_seed=(
        _get_env_int("RANDOM_SEED", 0) if _get_env("RANDOM_SEED") is not None else None
    ),
)

if settings.chat_auth_mode not in {"public", "protected"}:
    raise RuntimeError("CHAT_AUTH_MODE must be either 'public' or 'protected'.")

if settings.chat_auth_mode == "protected" and not settings.api_key:
    raise RuntimeError("CHAT_AUTH_MODE=protected requires API_KEY to be set.")

if settings.language_classifier not in {"lexical", "llm"}:
    raise RuntimeError("LANGUAGE_CLASSIFIER must be either 'lexical' or 'llm'.")

if settings.history_max_entries < 2 or settings.history_max_entries % 2:
    raise RuntimeError("HISTORY_MAX_ENTRIES must be an even number >= 2.")
