from cvbot.ai.config import AIConfig, load_ai_config
from cvbot.ai.types import AIClient, Embedder

from cvbot.ai.providers.openai_provider import OpenAIEmbedder, OpenAIProvider
from cvbot.ai.providers.hashing_embeddings import HashingEmbedder


def get_ai_client(cfg: AIConfig | None = None) -> AIClient:
    cfg = cfg or load_ai_config()

    if cfg.provider == "openai":
        return OpenAIProvider(model=cfg.model)

    raise ValueError(f"Unsupported AI_PROVIDER='{cfg.provider}'")


def get_embedder(cfg: AIConfig | None = None) -> Embedder:
    cfg = cfg or load_ai_config()

    if cfg.embedding_provider == "openai":
        return OpenAIEmbedder(model=cfg.embedding_model)

    if cfg.embedding_provider == "sentence-transformers":
        # Imported lazily: torch is heavy and optional for the OpenAI setup.
        from cvbot.ai.providers.local_embeddings import SentenceTransformerEmbedder

        return SentenceTransformerEmbedder(model_name=cfg.embedding_model)

    if cfg.embedding_provider == "hashing":
        return HashingEmbedder()

    raise ValueError(f"Unsupported EMBEDDING_PROVIDER='{cfg.embedding_provider}'")
