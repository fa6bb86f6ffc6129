import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from cvbot.rag.retriever import KnowledgeBase, OutOfScopeError, cosine_similarity
from tests.fakes import chunk, sample_chunks


class CosineSimilarityTests(unittest.TestCase):
    def test_basic_values(self):
        self.assertAlmostEqual(cosine_similarity([1, 0], [1, 0]), 1.0)
        self.assertAlmostEqual(cosine_similarity([1, 0], [0, 1]), 0.0)
        self.assertAlmostEqual(cosine_similarity([1, 0], [-1, 0]), -1.0)

    def test_zero_vector_scores_zero(self):
        self.assertEqual(cosine_similarity([0, 0], [1, 0]), 0.0)

    def test_dimension_mismatch(self):
        with self.assertRaises(ValueError):
            cosine_similarity([1, 0], [1, 0, 0])


class KnowledgeBaseTests(unittest.TestCase):
    def setUp(self):
        self.kb = KnowledgeBase(sample_chunks())

    def test_counts(self):
        self.assertEqual(len(self.kb), 5)
        self.assertEqual(self.kb.dimension, 3)
        self.assertEqual(self.kb.count("gannaca"), 2)
        self.assertEqual(self.kb.count("covestro"), 0)

    def test_rank_orders_by_score(self):
        ranked = self.kb.rank([1.0, 0.0, 0.0], k=3)
        self.assertEqual(
            [s.chunk.id for s in ranked],
            ["gannaca::chunk::0", "ingram::chunk::0", "gannaca::chunk::1"],
        )
        self.assertAlmostEqual(ranked[0].score, 1.0)

    def test_tag_scope_never_leaks(self):
        ranked = self.kb.rank([0.0, 1.0, 0.0], tag="gannaca", k=3)
        self.assertEqual({s.chunk.tag for s in ranked}, {"gannaca"})
        self.assertEqual(len(ranked), 2)

    def test_tag_scope_is_subset_of_unrestricted_ranking(self):
        query = [0.7, 0.7, 0.1]
        scoped = [s.chunk.id for s in self.kb.rank(query, tag="gannaca", k=3)]
        unrestricted = [s.chunk.id for s in self.kb.rank(query, k=len(self.kb)) if s.chunk.tag == "gannaca"]
        self.assertEqual(scoped, unrestricted)

    def test_empty_tag_scope_is_out_of_scope(self):
        with self.assertRaises(OutOfScopeError) as ctx:
            self.kb.rank([1.0, 0.0, 0.0], tag="covestro")
        self.assertEqual(ctx.exception.tag, "covestro")

    def test_ties_keep_corpus_order(self):
        kb = KnowledgeBase([chunk("a", "skills", (1.0, 0.0)), chunk("b", "skills", (2.0, 0.0))])
        self.assertEqual([s.chunk.id for s in kb.rank([1.0, 0.0], k=2)], ["a", "b"])

    def test_empty_corpus_ranks_nothing(self):
        self.assertEqual(KnowledgeBase([]).rank([1.0, 0.0], k=3), [])

    def test_query_dimension_mismatch(self):
        with self.assertRaises(ValueError):
            self.kb.rank([1.0, 0.0])


if __name__ == "__main__":
    unittest.main()
