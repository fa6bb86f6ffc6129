from __future__ import annotations

import hashlib
import math
import re
from typing import Sequence

from cvbot.rag.text import normalize_text

_TOKEN_PATTERN = re.compile(r"[a-z0-9\+#]+")


class HashingEmbedder:
    """Offline bag-of-words embedder: each token hashes into one of `dimension` buckets."""

    def __init__(self, dimension: int = 64) -> None:
        if dimension <= 0:
            raise ValueError("dimension must be greater than 0")
        self.dimension = dimension

    async def embed(self, text: str) -> list[float]:
        return self._embed_single(text)

    async def embed_many(self, texts: Sequence[str]) -> list[list[float]]:
        return [self._embed_single(text) for text in texts]

    def _embed_single(self, text: str) -> list[float]:
        vector = [0.0] * self.dimension
        tokens = _TOKEN_PATTERN.findall(normalize_text(text))
        for token in tokens:
            digest = hashlib.sha256(token.encode("utf-8")).hexdigest()
            index = int(digest[:8], 16) % self.dimension
            vector[index] += 1.0

        norm = math.sqrt(sum(value * value for value in vector))
        if norm <= 0:
            return vector
        return [value / norm for value in vector]
