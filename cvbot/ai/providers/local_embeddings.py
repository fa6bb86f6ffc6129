from __future__ import annotations

import asyncio
from typing import Sequence

import numpy as np
from sentence_transformers import SentenceTransformer

from cvbot.ai.errors import UpstreamError


class SentenceTransformerEmbedder:
    _model_cache: dict[str, SentenceTransformer] = {}

    def __init__(self, model_name: str = "sentence-transformers/all-MiniLM-L6-v2"):
        self.model_name = model_name

    @classmethod
    def _get_model(cls, model_name: str) -> SentenceTransformer:
        if model_name not in cls._model_cache:
            cls._model_cache[model_name] = SentenceTransformer(model_name)
        return cls._model_cache[model_name]

    def _encode(self, texts: list[str]) -> list[list[float]]:
        model = self._get_model(self.model_name)
        vectors = model.encode(texts, normalize_embeddings=True, show_progress_bar=False)
        return np.asarray(vectors, dtype="float32").tolist()

    async def embed(self, text: str) -> list[float]:
        vectors = await self.embed_many([text])
        return vectors[0]

    async def embed_many(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        # encode() is CPU bound; keep it off the event loop.
        try:
            return await asyncio.to_thread(self._encode, list(texts))
        except (OSError, RuntimeError, ValueError) as exc:
            raise UpstreamError(str(exc), code="failed", service="embedding") from exc
