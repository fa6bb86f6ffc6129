import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from cvbot.rag.lang import Lang, LLMLanguageClassifier, detect_lang, parse_lang
from cvbot.rag.text import normalize_text
from tests.fakes import FakeAIClient


class NormalizeTextTests(unittest.TestCase):
    def test_strips_diacritics_case_and_spacing(self):
        self.assertEqual(normalize_text("  Câți   ANI  are? "), "cati ani are?")
        self.assertEqual(normalize_text("Stärken"), "starken")
        self.assertEqual(normalize_text(None), "")

    def test_idempotent(self):
        for text in ("  Câți   ANI  are? ", "Welche Stärken?", "ÎNTREBARE\tdespre  ea", ""):
            once = normalize_text(text)
            self.assertEqual(normalize_text(once), once)


class DetectLangTests(unittest.TestCase):
    def test_diacritics_decide_first(self):
        self.assertEqual(detect_lang("Welche Stärken hat sie?"), Lang.DE)
        self.assertEqual(detect_lang("Câți ani are?"), Lang.RO)

    def test_function_words_without_diacritics(self):
        self.assertEqual(detect_lang("What was her role there?"), Lang.EN)
        self.assertEqual(detect_lang("Was ist ihre Rolle bei der Firma?"), Lang.DE)
        self.assertEqual(detect_lang("Ce rol are ea in echipa?"), Lang.RO)

    def test_unknown_or_empty_falls_back_to_english(self):
        self.assertEqual(detect_lang(""), Lang.EN)
        self.assertEqual(detect_lang("Gannaca?"), Lang.EN)
        self.assertEqual(detect_lang("12345"), Lang.EN)

    def test_parse_lang(self):
        self.assertEqual(parse_lang(" DE "), Lang.DE)
        self.assertIsNone(parse_lang("fr"))


class LLMLanguageClassifierTests(unittest.IsolatedAsyncioTestCase):
    async def test_parses_first_token(self):
        classifier = LLMLanguageClassifier(FakeAIClient(reply="ro."))
        self.assertEqual(await classifier.classify("Spune-mi despre ea"), Lang.RO)

    async def test_unrecognized_reply_falls_back(self):
        classifier = LLMLanguageClassifier(FakeAIClient(reply="French"))
        self.assertEqual(await classifier.classify("Parlez-vous?"), Lang.EN)

    async def test_failure_falls_back(self):
        classifier = LLMLanguageClassifier(FakeAIClient(error=RuntimeError("boom")))
        self.assertEqual(await classifier.classify("Wie alt ist sie?"), Lang.EN)

    async def test_timeout_falls_back(self):
        classifier = LLMLanguageClassifier(FakeAIClient(reply="de", delay=0.5), timeout_s=0.05)
        self.assertEqual(await classifier.classify("Wie alt ist sie?"), Lang.EN)


if __name__ == "__main__":
    unittest.main()
