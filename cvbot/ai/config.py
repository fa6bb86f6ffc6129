import os
from dataclasses import dataclass


@dataclass(frozen=True)
class AIConfig:
    provider: str
    model: str
    embedding_provider: str
    embedding_model: str


_DEFAULT_EMBEDDING_MODELS = {
    "openai": "text-embedding-3-small",
    "sentence-transformers": "sentence-transformers/all-MiniLM-L6-v2",
    "hashing": "hashing-64",
}


def load_ai_config() -> AIConfig:
    provider = os.getenv("AI_PROVIDER", "openai").strip().lower()
    model = os.getenv("AI_MODEL", "gpt-4o-mini").strip()
    embedding_provider = os.getenv("EMBEDDING_PROVIDER", "openai").strip().lower()
    embedding_model = (
        os.getenv("EMBEDDING_MODEL", "").strip()
        or _DEFAULT_EMBEDDING_MODELS.get(embedding_provider, "")
    )
    return AIConfig(
        provider=provider,
        model=model,
        embedding_provider=embedding_provider,
        embedding_model=embedding_model,
    )
