import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from fastapi.testclient import TestClient

from cvbot.ai.errors import UpstreamError
from cvbot.api.v1.chat import get_chat_pipeline
from cvbot.main import app
from tests.fakes import FakeAIClient, make_pipeline


class ChatApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        # No `with` block: the lifespan would build the real pipeline.
        cls.client = TestClient(app)

    def setUp(self):
        self.ai = FakeAIClient(reply="She owned the marketplace onboarding end to end.")
        self.pipeline = make_pipeline(ai_client=self.ai)
        app.dependency_overrides[get_chat_pipeline] = lambda: self.pipeline

    def tearDown(self):
        app.dependency_overrides.clear()

    def test_chat_returns_answer_only_by_default(self):
        response = self.client.post("/v1/chat", json={"message": "What did she do at Gannaca?"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"answer": "She owned the marketplace onboarding end to end."})

    def test_debug_exposes_tag_and_used_chunks(self):
        response = self.client.post("/v1/chat?debug=true", json={"message": "What did she do at Gannaca?"})
        self.assertEqual(response.status_code, 200)
        body = response.json()

        self.assertEqual(body["tag"], "gannaca")
        self.assertEqual(body["stage"], "generated")
        self.assertEqual(body["style_variant"], "twoSentences")
        self.assertEqual([c["tag"] for c in body["used_chunks"]], ["gannaca", "gannaca"])
        self.assertEqual(body["used_chunks"][0]["score"], 1.0)
        self.assertTrue(body["used_chunks"][0]["preview"].startswith("Strategic Operator"))

    def test_debug_untagged_question_reports_auto(self):
        response = self.client.post("/v1/chat?debug=true", json={"message": "How old is she?"})
        body = response.json()

        self.assertEqual(body["tag"], "(auto)")
        self.assertEqual(body["stage"], "boundary")
        self.assertEqual(body["used_chunks"], [])

    def test_repeated_question_in_session_rotates_style(self):
        payload = {"message": "What was her biggest project?", "sessionId": "web-2"}
        first = self.client.post("/v1/chat?debug=true", json=payload).json()
        second = self.client.post("/v1/chat?debug=true", json=payload).json()

        self.assertNotEqual(first["style_variant"], second["style_variant"])
        self.assertIn("Style variant: One short paragraph", self.ai.calls[1]["messages"][1].content)

    def test_out_of_scope_entity(self):
        response = self.client.post("/v1/chat?debug=true", json={"message": "What did she do at Cancom?"})
        body = response.json()

        self.assertEqual(body["answer"], "Not in scope for the CV context.")
        self.assertEqual(body["used_chunks"], [])

    def test_missing_message_asks_for_question(self):
        response = self.client.post("/v1/chat", json={})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["answer"], "Please ask a question.")

    def test_null_message_asks_for_question(self):
        response = self.client.post("/v1/chat", json={"message": None, "sessionId": "web-3"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"answer": "Please ask a question."})
        self.assertEqual(self.ai.calls, [])

    def test_session_id_alias_is_accepted(self):
        self.client.post("/v1/chat", json={"message": "What was her biggest project?", "sessionId": "web-1"})
        self.assertEqual(len(self.pipeline.history.get("web-1")), 2)

    def test_quota_error_maps_to_429(self):
        self.ai.error = UpstreamError("insufficient_quota", code="rate_limited", status=429)
        response = self.client.post("/v1/chat", json={"message": "What was her biggest project?"})

        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.json(), {"error": "quota_exceeded", "detail": "insufficient_quota"})

    def test_timeout_maps_to_504(self):
        self.ai.error = UpstreamError("generation call timed out", code="timeout")
        response = self.client.post("/v1/chat", json={"message": "What was her biggest project?"})

        self.assertEqual(response.status_code, 504)
        self.assertEqual(response.json()["error"], "upstream_timeout")

    def test_other_upstream_failure_maps_to_500(self):
        self.ai.error = UpstreamError("bad gateway", code="failed", status=502)
        response = self.client.post("/v1/chat", json={"message": "What was her biggest project?"})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "chat_failed", "detail": "bad gateway"})


class HealthApiTests(unittest.TestCase):
    def test_health_reports_loaded_data(self):
        app.state.pipeline = make_pipeline()
        try:
            response = TestClient(app).get("/v1/health")
        finally:
            app.state.pipeline = None

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "healthy")
        self.assertEqual(body["chunks"], 5)
        self.assertEqual(body["boundary_rules"], 5)
        self.assertEqual(body["clusters"], 9)


if __name__ == "__main__":
    unittest.main()
