import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import asyncio
import tempfile

from cvbot.ai.providers.hashing_embeddings import HashingEmbedder
from cvbot.rag.ingest import build_knowledge_base, split_paragraphs
from cvbot.rag.knowledge import load_chunks


class SplitParagraphsTests(unittest.TestCase):
    def test_blank_lines_separate_chunks_and_headings_drop(self):
        text = "# Skills\n\nProcess design,\nstakeholder alignment.\n\n\nData analysis.\n"
        self.assertEqual(split_paragraphs(text), ["Process design, stakeholder alignment.", "Data analysis."])


class BuildKnowledgeBaseTests(unittest.TestCase):
    def test_builds_loadable_corpus(self):
        with tempfile.TemporaryDirectory() as tmp:
            docs = Path(tmp) / "profile"
            docs.mkdir()
            (docs / "skills.md").write_text("Process design.\n\nData analysis.", encoding="utf-8")
            (docs / "gannaca.md").write_text("Strategic Operator (2023-Present).", encoding="utf-8")
            out = Path(tmp) / "embeddings.json"

            summary = asyncio.run(
                build_knowledge_base(
                    HashingEmbedder(dimension=8),
                    documents_dir=str(docs),
                    out_path=str(out),
                    allowed_tags={"skills", "gannaca"},
                )
            )
            chunks = load_chunks(out, allowed_tags={"skills", "gannaca"})

        self.assertEqual(summary["chunks"], 3)
        self.assertEqual(summary["tags"], {"gannaca": 1, "skills": 2})
        self.assertEqual([c.id for c in chunks], ["gannaca::chunk::0", "skills::chunk::0", "skills::chunk::1"])
        self.assertEqual(len(chunks[0].embedding), 8)

    def test_unknown_tag_file_rejected(self):
        with tempfile.TemporaryDirectory() as tmp:
            (Path(tmp) / "hobbies.md").write_text("Chess.", encoding="utf-8")
            with self.assertRaises(ValueError):
                asyncio.run(
                    build_knowledge_base(
                        HashingEmbedder(),
                        documents_dir=tmp,
                        out_path=str(Path(tmp) / "out.json"),
                        allowed_tags={"skills"},
                    )
                )

    def test_empty_directory_rejected(self):
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(RuntimeError):
                asyncio.run(build_knowledge_base(HashingEmbedder(), documents_dir=tmp, out_path=str(Path(tmp) / "o.json")))


class LoadChunksTests(unittest.TestCase):
    def test_missing_file_is_empty_corpus(self):
        self.assertEqual(load_chunks(Path(tempfile.gettempdir()) / "no-kb.json"), [])

    def test_invalid_records_skipped(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "kb.json"
            path.write_text(
                '[{"id": "a", "tag": "skills", "text": "x", "embedding": [1, 0]},'
                ' {"id": "b", "tag": "skills", "text": "y", "embedding": []},'
                ' {"id": "c", "tag": "hobbies", "text": "z", "embedding": [0, 1]},'
                ' {"id": "d", "tag": "skills", "text": "w", "embedding": [0, 1, 0]}]',
                encoding="utf-8",
            )
            chunks = load_chunks(path, allowed_tags={"skills"})
        self.assertEqual([c.id for c in chunks], ["a"])


if __name__ == "__main__":
    unittest.main()
