from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Collection, Sequence

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

logger = logging.getLogger(__name__)


class KnowledgeChunk(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    tag: str
    text: str
    embedding: tuple[float, ...]

    @field_validator("embedding")
    @classmethod
    def _non_empty(cls, value: tuple[float, ...]) -> tuple[float, ...]:
        if not value:
            raise ValueError("embedding must not be empty")
        return value


def load_chunks(path: str | Path, allowed_tags: Collection[str] | None = None) -> list[KnowledgeChunk]:
    """Read the embeddings corpus. A missing file yields an empty corpus."""
    p = Path(path)
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.warning("No knowledge base found at %s. Running without CV memory.", p)
        return []
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Knowledge base at %s unreadable (%s). Running without CV memory.", p, exc)
        return []

    records = raw.get("chunks", []) if isinstance(raw, dict) else raw
    chunks: list[KnowledgeChunk] = []
    dimension: int | None = None
    for index, record in enumerate(records or []):
        try:
            chunk = KnowledgeChunk.model_validate(record)
        except ValidationError as exc:
            logger.warning("Skipping knowledge chunk #%d: %s", index, exc.errors()[0].get("msg"))
            continue
        if allowed_tags is not None and chunk.tag not in allowed_tags:
            logger.warning("Skipping knowledge chunk %s: unknown tag '%s'", chunk.id, chunk.tag)
            continue
        if dimension is None:
            dimension = len(chunk.embedding)
        elif len(chunk.embedding) != dimension:
            logger.warning(
                "Skipping knowledge chunk %s: dimension %d != %d",
                chunk.id,
                len(chunk.embedding),
                dimension,
            )
            continue
        chunks.append(chunk)

    logger.info("Loaded KB with %d chunks", len(chunks))
    return chunks


def write_chunks(path: str | Path, chunks: Sequence[KnowledgeChunk]) -> None:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    payload = [chunk.model_dump(mode="json") for chunk in chunks]
    out.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
