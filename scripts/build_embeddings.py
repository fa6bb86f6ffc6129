from __future__ import annotations

import argparse
import asyncio
import json
import logging

from cvbot.ai.factory import get_embedder
from cvbot.core.config import settings
from cvbot.core.config.pipeline import get_pipeline_config
from cvbot.rag.ingest import build_knowledge_base
from cvbot.rag.tags import TagDetector


def main() -> None:
    parser = argparse.ArgumentParser(description="Embed the profile paragraphs into the knowledge base file.")
    parser.add_argument("--docs", default="data/profile", help="Directory of <tag>.md files")
    parser.add_argument(
        "--out",
        default=settings.knowledge_base_path,
        help="Output embeddings JSON path",
    )
    parser.add_argument(
        "--any-tag",
        action="store_true",
        help="Accept file names outside the configured tag set.",
    )
    args = parser.parse_args()

    logging.basicConfig(level=settings.log_level, format="%(message)s")
    allowed = None
    if not args.any_tag:
        allowed = TagDetector.from_config(get_pipeline_config().get("tags") or {}).tags

    summary = asyncio.run(
        build_knowledge_base(get_embedder(), documents_dir=args.docs, out_path=args.out, allowed_tags=allowed)
    )
    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
