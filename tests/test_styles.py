import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from cvbot.core.config.pipeline import get_pipeline_config
from cvbot.rag.styles import StyleDirective, StyleSelector, VariantCounter


class VariantCounterTests(unittest.TestCase):
    def test_counts_per_key(self):
        counter = VariantCounter()
        self.assertEqual(counter.increment("a"), 1)
        self.assertEqual(counter.increment("a"), 2)
        self.assertEqual(counter.increment("b"), 1)

    def test_least_recent_key_evicted(self):
        counter = VariantCounter(max_keys=2)
        counter.increment("a")
        counter.increment("b")
        counter.increment("a")
        counter.increment("c")
        self.assertEqual(len(counter), 2)
        self.assertEqual(counter.increment("b"), 1)
        self.assertEqual(counter.increment("a"), 1)


class StyleSelectorTests(unittest.TestCase):
    def test_round_robin_over_pool(self):
        pool = [StyleDirective("one", "1"), StyleDirective("two", "2"), StyleDirective("three", "3")]
        selector = StyleSelector(pool)
        picked = [selector.select("same question").id for _ in range(4)]
        self.assertEqual(picked, ["one", "two", "three", "one"])

    def test_questions_rotate_independently(self):
        selector = StyleSelector.from_config(get_pipeline_config()["styles"])
        self.assertEqual(selector.select("q1").id, "twoSentences")
        self.assertEqual(selector.select("q2").id, "twoSentences")
        self.assertEqual(selector.select("q1").id, "shortPara")

    def test_empty_entity_pool_uses_default(self):
        selector = StyleSelector.from_config(get_pipeline_config()["styles"])
        self.assertEqual(selector.pool(tag_is_entity=True), selector.pool())

    def test_entity_pool_when_configured(self):
        selector = StyleSelector([StyleDirective("d", "")], entity_pool=[StyleDirective("e", "")])
        self.assertEqual(selector.select("q", tag_is_entity=True).id, "e")

    def test_empty_default_pool_rejected(self):
        with self.assertRaises(ValueError):
            StyleSelector([])


if __name__ == "__main__":
    unittest.main()
