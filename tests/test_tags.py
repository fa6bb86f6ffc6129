import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from cvbot.core.config.pipeline import get_pipeline_config
from cvbot.rag.tags import TagDetector, TagKind


class TagDetectorTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.detector = TagDetector.from_config(get_pipeline_config()["tags"])

    def test_closed_tag_set(self):
        self.assertEqual(
            self.detector.tags,
            {"gannaca", "ingram", "cancom", "covestro", "education", "skills", "tools", "languages", "early", "certifications"},
        )

    def test_entities_win_over_sections(self):
        self.assertEqual(self.detector.detect("which tools did she use at covestro?"), "covestro")

    def test_section_cues_in_each_language(self):
        self.assertEqual(self.detector.detect("what are her skills?"), "skills")
        self.assertEqual(self.detector.detect("welche sprachen spricht sie?"), "languages")
        self.assertEqual(self.detector.detect("ce certificări are?"), "certifications")
        self.assertEqual(self.detector.detect("what did she do in 2008?"), "early")

    def test_word_boundaries(self):
        self.assertIsNone(self.detector.detect("what about her toolshed?"))
        self.assertIsNone(self.detector.detect("what was her biggest project?"))

    def test_kind_lookup(self):
        self.assertIs(self.detector.kind_of("ingram"), TagKind.ENTITY)
        self.assertIs(self.detector.kind_of("education"), TagKind.SECTION)
        self.assertIsNone(self.detector.kind_of(None))
        self.assertTrue(self.detector.is_entity("cancom"))
        self.assertFalse(self.detector.is_section("cancom"))


if __name__ == "__main__":
    unittest.main()
