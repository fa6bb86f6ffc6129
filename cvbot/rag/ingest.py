import json
import logging
import re
from pathlib import Path
from typing import Collection, List, Tuple

from cvbot.ai.types import Embedder
from cvbot.rag.knowledge import KnowledgeChunk, write_chunks

logger = logging.getLogger(__name__)

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


def _read_markdown_files(doc_dir: Path) -> List[Tuple[str, str]]:
    files = sorted([p for p in doc_dir.glob("*.md") if p.is_file()])
    return [(p.stem, p.read_text(encoding="utf-8")) for p in files]


def split_paragraphs(text: str) -> List[str]:
    """Profile files are pre-chunked by hand: one paragraph, one chunk."""
    paragraphs = []
    for block in _PARAGRAPH_BREAK.split(text):
        lines = [line.strip() for line in block.splitlines()]
        # Markdown headings only label the file for humans.
        lines = [line for line in lines if line and not line.startswith("#")]
        if lines:
            paragraphs.append(" ".join(lines))
    return paragraphs


async def build_knowledge_base(
    embedder: Embedder,
    documents_dir: str = "data/profile",
    out_path: str = "data/embeddings.json",
    allowed_tags: Collection[str] | None = None,
) -> dict:
    doc_dir = Path(documents_dir)
    md_files = _read_markdown_files(doc_dir)

    pending: List[Tuple[str, str, str]] = []
    for tag, content in md_files:
        if allowed_tags is not None and tag not in allowed_tags:
            raise ValueError(
                f"Unknown tag '{tag}' for {doc_dir / (tag + '.md')}; expected one of {sorted(allowed_tags)}"
            )
        for i, paragraph in enumerate(split_paragraphs(content)):
            pending.append((f"{tag}::chunk::{i}", tag, paragraph))

    if not pending:
        raise RuntimeError(f"No chunks found. Put <tag>.md files into {documents_dir}")

    vectors = await embedder.embed_many([text for _, _, text in pending])
    if len(vectors) != len(pending):
        raise RuntimeError(f"Embedder returned {len(vectors)} vectors for {len(pending)} chunks")

    chunks = [
        KnowledgeChunk(id=chunk_id, tag=tag, text=text, embedding=tuple(float(v) for v in vector))
        for (chunk_id, tag, text), vector in zip(pending, vectors)
    ]
    write_chunks(out_path, chunks)

    per_tag: dict[str, int] = {}
    for chunk in chunks:
        per_tag[chunk.tag] = per_tag.get(chunk.tag, 0) + 1
    summary = {
        "chunks": len(chunks),
        "dimension": len(chunks[0].embedding),
        "tags": per_tag,
        "out": str(out_path),
    }
    logger.info(json.dumps({"event": "knowledge_base_built", **summary}))
    return summary
