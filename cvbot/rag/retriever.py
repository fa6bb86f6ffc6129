from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from cvbot.rag.knowledge import KnowledgeChunk

_EPSILON = 1e-9


@dataclass(frozen=True)
class ScoredChunk:
    chunk: KnowledgeChunk
    score: float


class OutOfScopeError(LookupError):
    """A tag-restricted search had no chunks carrying that tag."""

    def __init__(self, tag: str):
        super().__init__(f"no knowledge chunks tagged '{tag}'")
        self.tag = tag


def cosine_similarity(left: Sequence[float], right: Sequence[float]) -> float:
    a = np.asarray(left, dtype="float64")
    b = np.asarray(right, dtype="float64")
    if a.shape != b.shape:
        raise ValueError(f"dimension mismatch: {a.shape} vs {b.shape}")
    denom = max(float(np.linalg.norm(a) * np.linalg.norm(b)), _EPSILON)
    return float(np.clip(np.dot(a, b) / denom, -1.0, 1.0))


class KnowledgeBase:
    """Immutable in-memory corpus with brute-force cosine ranking."""

    def __init__(self, chunks: Sequence[KnowledgeChunk] = ()):
        self._chunks = tuple(chunks)
        if self._chunks:
            self._matrix = np.asarray([c.embedding for c in self._chunks], dtype="float64")
        else:
            self._matrix = np.zeros((0, 0), dtype="float64")
        self._norms = np.linalg.norm(self._matrix, axis=1) if self._chunks else np.zeros(0)
        self._by_tag: dict[str, list[int]] = {}
        for idx, chunk in enumerate(self._chunks):
            self._by_tag.setdefault(chunk.tag, []).append(idx)

    def __len__(self) -> int:
        return len(self._chunks)

    @property
    def dimension(self) -> int:
        return int(self._matrix.shape[1]) if self._chunks else 0

    def count(self, tag: str) -> int:
        return len(self._by_tag.get(tag, ()))

    def rank(
        self,
        query_embedding: Sequence[float],
        *,
        tag: str | None = None,
        k: int = 3,
    ) -> list[ScoredChunk]:
        """Top-k chunks by cosine score, highest first; ties keep corpus order.

        With `tag` set only chunks of that tag are scored. An empty tag scope
        raises OutOfScopeError instead of widening to the whole corpus.
        """
        if tag is not None:
            indices = self._by_tag.get(tag, [])
            if not indices:
                raise OutOfScopeError(tag)
        else:
            indices = list(range(len(self._chunks)))
        if not indices or k <= 0:
            return []

        query = np.asarray(query_embedding, dtype="float64")
        if query.shape != (self.dimension,):
            raise ValueError(
                f"query embedding has shape {query.shape}, corpus dimension is {self.dimension}"
            )

        idx = np.asarray(indices)
        denom = np.maximum(self._norms[idx] * np.linalg.norm(query), _EPSILON)
        scores = np.clip((self._matrix[idx] @ query) / denom, -1.0, 1.0)
        order = np.argsort(-scores, kind="stable")[:k]
        return [ScoredChunk(chunk=self._chunks[int(idx[i])], score=float(scores[i])) for i in order]
