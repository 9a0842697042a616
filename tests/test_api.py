import unittest
from unittest import mock

from fastapi.testclient import TestClient

from app.main import app
from app.db import SessionLocal
from app.models.progress import QuizProgress
from app.services.progress import StoreUnavailable
from app.domain.quiz.clients import HttpProgressStore
from app.routers.progress import STORE_DOWN_MSG

SNAPSHOT = {
    "questionOrder": ["T2", "T1", "T3"],
    "currentQuestionIndex": 1,
    "score": 1,
    "answered": 1,
    "topicStats": {"Astronomy": {"correct": 1, "total": 1}},
    "answerHistory": {
        "T2": {"selectedOption": "C", "correct": True, "correctAnswer": "C", "topic": "Astronomy", "legacy": False},
    },
}


class ApiTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.client = TestClient(app)
        cls.client.__enter__()

    @classmethod
    def tearDownClass(cls) -> None:
        cls.client.__exit__(None, None, None)

    def setUp(self) -> None:
        db = SessionLocal()
        try:
            db.query(QuizProgress).delete()
            db.commit()
        finally:
            db.close()


class QuestionRoutesTests(ApiTestCase):
    def test_health(self) -> None:
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})

    def test_list_questions_hides_answers(self) -> None:
        r = self.client.get("/api/questions")
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual([q["id"] for q in body], ["T1", "T2", "T3"])
        for q in body:
            self.assertNotIn("correctAnswer", q)
            self.assertEqual(set(q["options"]), {"A", "B", "C", "D"})

    def test_count(self) -> None:
        self.assertEqual(self.client.get("/api/questions/count").json(), {"count": 3})

    def test_check_answer(self) -> None:
        r = self.client.post("/api/check-answer", json={"questionId": "T2", "answer": "C"})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json(), {
            "correct": True,
            "correctAnswer": "C",
            "topic": "Astronomy",
            "text": "Which planet is known as the red planet?",
        })
        wrong = self.client.post("/api/check-answer", json={"questionId": "T2", "answer": "A"}).json()
        self.assertFalse(wrong["correct"])
        self.assertEqual(wrong["correctAnswer"], "C")

    def test_check_answer_unknown_question_is_404(self) -> None:
        r = self.client.post("/api/check-answer", json={"questionId": "X9", "answer": "A"})
        self.assertEqual(r.status_code, 404)

    def test_check_answer_malformed_body_is_422(self) -> None:
        r = self.client.post("/api/check-answer", json={"answer": "A"})
        self.assertEqual(r.status_code, 422)


class ProgressRoutesTests(ApiTestCase):
    def test_unknown_identity_does_not_exist(self) -> None:
        r = self.client.get("/api/progress/nobody@example.com")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json(), {"exists": False})

    def test_save_then_load_with_normalized_identity(self) -> None:
        r = self.client.post("/api/progress/save", json={
            "identity": "  Ana@Example.com ",
            "sourceTag": "newsletter",
            "snapshot": SNAPSHOT,
        })
        self.assertEqual(r.json(), {"success": True})

        body = self.client.get("/api/progress/ana@example.com").json()
        self.assertTrue(body["exists"])
        self.assertEqual(body["snapshot"], SNAPSHOT)
        self.assertEqual(body["sourceTag"], "newsletter")
        self.assertIn("updatedAt", body)

    def test_save_is_an_upsert(self) -> None:
        self.client.post("/api/progress/save", json={"identity": "ana@example.com", "snapshot": SNAPSHOT})
        newer = dict(SNAPSHOT, currentQuestionIndex=2)
        self.client.post("/api/progress/save", json={"identity": "ANA@example.com", "snapshot": newer})
        body = self.client.get("/api/progress/ana@example.com").json()
        self.assertEqual(body["snapshot"]["currentQuestionIndex"], 2)
        db = SessionLocal()
        try:
            self.assertEqual(db.query(QuizProgress).count(), 1)
        finally:
            db.close()

    def test_legacy_snapshot_is_accepted(self) -> None:
        legacy = {k: v for k, v in SNAPSHOT.items() if k != "answerHistory"}
        r = self.client.post("/api/progress/save", json={"identity": "old@example.com", "snapshot": legacy})
        self.assertEqual(r.status_code, 200)
        body = self.client.get("/api/progress/old@example.com").json()
        self.assertEqual(body["snapshot"]["answered"], 1)
        self.assertEqual(body["snapshot"]["answerHistory"], {})

    def test_save_requires_identity_and_snapshot(self) -> None:
        r1 = self.client.post("/api/progress/save", json={"snapshot": SNAPSHOT})
        r2 = self.client.post("/api/progress/save", json={"identity": "ana@example.com"})
        r3 = self.client.post("/api/progress/save", json={"identity": "   ", "snapshot": SNAPSHOT})
        self.assertEqual((r1.status_code, r2.status_code, r3.status_code), (400, 400, 400))
        db = SessionLocal()
        try:
            self.assertEqual(db.query(QuizProgress).count(), 0)
        finally:
            db.close()

    def test_reset_always_succeeds(self) -> None:
        self.client.post("/api/progress/save", json={"identity": "ana@example.com", "snapshot": SNAPSHOT})
        self.assertEqual(self.client.post("/api/progress/reset", json={"identity": "ana@example.com"}).json(),
                         {"success": True})
        self.assertEqual(self.client.get("/api/progress/ana@example.com").json(), {"exists": False})
        again = self.client.post("/api/progress/reset", json={"identity": "ana@example.com"})
        self.assertEqual(again.json(), {"success": True})

    def test_store_failure_is_503_without_snapshot_contents(self) -> None:
        with mock.patch("app.routers.progress.save_progress", side_effect=StoreUnavailable("save")):
            r = self.client.post("/api/progress/save", json={"identity": "ana@example.com", "snapshot": SNAPSHOT})
        self.assertEqual(r.status_code, 503)
        self.assertNotIn("questionOrder", r.text)

    def test_http_progress_store_maps_failures(self) -> None:
        store = HttpProgressStore(http=self.client)
        store.put("Ana@example.com", SNAPSHOT, "newsletter")
        self.assertEqual(store.get("ana@example.com"), SNAPSHOT)
        store.delete("ana@example.com")
        self.assertIsNone(store.get("ana@example.com"))
        with mock.patch("app.routers.progress.get_progress", side_effect=StoreUnavailable("get")):
            with self.assertRaises(StoreUnavailable):
                store.get("ana@example.com")

    def test_identity_with_a_slash_round_trips(self) -> None:
        store = HttpProgressStore(http=self.client)
        store.put("team/ana@example.com", SNAPSHOT)
        self.assertEqual(store.get("team/ana@example.com"), SNAPSHOT)
        self.assertIsNone(store.get("ana@example.com"))

    def test_error_details_are_in_english(self) -> None:
        r = self.client.post("/api/progress/save", json={"snapshot": SNAPSHOT})
        self.assertEqual(r.json()["detail"], "identity and snapshot are required")
        with mock.patch("app.routers.progress.get_progress", side_effect=StoreUnavailable("get")):
            r = self.client.get("/api/progress/ana@example.com")
        self.assertEqual((r.status_code, r.json()["detail"]), (503, STORE_DOWN_MSG))


if __name__ == "__main__":
    unittest.main()
