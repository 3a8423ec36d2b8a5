"""
End-to-end API tests through FastAPI's TestClient.

Gemini is stubbed; the database is in-memory SQLite.
Run: pytest tests/integration/test_api.py -v
"""
import json

import pytest
from fastapi.testclient import TestClient

from quizcraft.main import app
from quizcraft.services.gemini_service import gemini_service

INSTRUCTOR = {"X-User-Id": "prof-1", "X-User-Role": "instructor"}
STUDENT = {"X-User-Id": "student-1", "X-User-Role": "student"}
OTHER_STUDENT = {"X-User-Id": "student-2", "X-User-Role": "student"}

GENERATED_TOPICS = [
    {"name": "Membranes", "weight": 8, "description": "Lipid bilayers"},
    {"name": "Organelles", "weight": 6, "description": "Cell compartments"},
]

GENERATED_QUESTIONS = [
    {
        "questionId": "q1",
        "text": "Membranes are made of?",
        "type": "multiple-choice",
        "options": ["Lipids", "Sugars", "Metals", "Salt"],
        "correctAnswer": "Lipids",
        "topic": "Membranes",
        "difficulty": 1,
        "explanation": "Phospholipid bilayer.",
    },
    {
        "questionId": "q2",
        "text": "Mitochondria make ATP.",
        "type": "true_false",
        "correctAnswer": "true",
        "topic": "Organelles",
        "difficulty": "expert",
    },
]


class StubResponse:
    def __init__(self, text):
        self.text = text


class StubModel:
    def __init__(self, *responses):
        self.responses = list(responses)

    def generate_content(self, prompt):
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return StubResponse(response)


@pytest.fixture
def client(db):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def stub_generator(monkeypatch):
    monkeypatch.setattr(
        gemini_service, "model",
        StubModel(json.dumps(GENERATED_TOPICS), json.dumps(GENERATED_QUESTIONS))
    )


def upload(client, headers=INSTRUCTOR, filename="cells.txt", content=b"Cells have membranes and organelles.", **form):
    data = {"title": "Cell Biology", "num_questions": "2", "adaptive_mode": "false"}
    data.update(form)
    return client.post(
        "/api/quizzes/upload",
        headers=headers,
        files={"file": (filename, content, "text/plain")},
        data=data,
    )


@pytest.fixture
def quiz_id(client, stub_generator):
    response = upload(client)
    assert response.status_code == 201
    return response.json()["quiz"]["quiz_id"]


class TestPrincipal:

    def test_missing_headers_unauthorized(self, client):
        response = client.get("/api/progress/overview")
        assert response.status_code == 401

    def test_unknown_role_forbidden(self, client):
        response = client.get("/api/progress/overview", headers={"X-User-Id": "x", "X-User-Role": "admin"})
        assert response.status_code == 403

    def test_student_cannot_upload(self, client):
        response = upload(client, headers=STUDENT)

        assert response.status_code == 403
        assert response.json()["error"] == "access_denied"


class TestQuizAuthoring:

    def test_upload_validates_generated_content(self, client, quiz_id):
        detail = client.get(f"/api/quizzes/{quiz_id}", headers=INSTRUCTOR).json()

        assert detail["total_questions"] == 2
        assert [t["name"] for t in detail["topics"]] == ["Membranes", "Organelles"]
        first, second = detail["questions"]
        assert first["difficulty"] == "easy" and first["points"] == 5
        assert second["type"] == "true-false"
        assert second["difficulty"] == "medium"
        assert second["correct_answer"] == "True"
        assert detail["total_points"] == 15

    def test_generator_outage_falls_back(self, client, monkeypatch):
        monkeypatch.setattr(gemini_service, "model", StubModel(TimeoutError(), TimeoutError()))

        response = upload(client, num_questions="3")

        assert response.status_code == 201
        quiz = response.json()["quiz"]
        assert quiz["total_questions"] == 3
        assert [t["name"] for t in quiz["topics"]] == ["General Concepts"]

    def test_unsupported_file_rejected(self, client, stub_generator):
        response = upload(client, filename="slides.pptx")

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_question_count_bounds(self, client, stub_generator):
        assert upload(client, num_questions="0").status_code == 400

    def test_students_see_summary_only(self, client, quiz_id):
        summary = client.get(f"/api/quizzes/{quiz_id}", headers=STUDENT).json()

        assert summary["title"] == "Cell Biology"
        assert "questions" not in summary

    def test_list_mine(self, client, quiz_id):
        mine = client.get("/api/quizzes/mine", headers=INSTRUCTOR).json()

        assert mine["total"] == 1
        assert mine["quizzes"][0]["quiz_id"] == quiz_id

    def test_unknown_quiz(self, client):
        response = client.get("/api/quizzes/00000000-0000-0000-0000-000000000000", headers=INSTRUCTOR)

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_deactivated_quiz_cannot_start(self, client, quiz_id):
        response = client.patch(f"/api/quizzes/{quiz_id}/status", headers=INSTRUCTOR, json={"is_active": False})
        assert response.status_code == 200
        assert response.json()["is_active"] is False

        response = client.post(f"/api/attempts/start/{quiz_id}", headers=STUDENT)
        assert response.status_code == 409
        assert response.json()["error"] == "inactive"

    def test_only_owner_changes_status(self, client, quiz_id):
        other = {"X-User-Id": "prof-2", "X-User-Role": "instructor"}
        response = client.patch(f"/api/quizzes/{quiz_id}/status", headers=other, json={"is_active": False})

        assert response.status_code == 403

    def test_owner_edits_metadata_and_settings(self, client, quiz_id):
        response = client.patch(
            f"/api/quizzes/{quiz_id}", headers=INSTRUCTOR,
            json={"title": "  Cells, revised ", "time_limit": 45, "settings": {"show_correct_answers": False}},
        )

        assert response.status_code == 200
        detail = response.json()
        assert detail["title"] == "Cells, revised"
        assert detail["time_limit"] == 45
        assert detail["description"] == ""
        assert detail["settings"] == {"adaptive_mode": False, "allow_retake": True, "show_correct_answers": False}
        assert [q["question_id"] for q in detail["questions"]] == ["q1", "q2"]

        summary = client.get(f"/api/quizzes/{quiz_id}", headers=STUDENT).json()
        assert summary["title"] == "Cells, revised"

    def test_edit_rejects_blank_title(self, client, quiz_id):
        response = client.patch(f"/api/quizzes/{quiz_id}", headers=INSTRUCTOR, json={"title": "   "})

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_edit_rejects_bad_time_limit(self, client, quiz_id):
        response = client.patch(f"/api/quizzes/{quiz_id}", headers=INSTRUCTOR, json={"time_limit": 0})
        assert response.status_code == 422

    def test_only_owner_edits_or_deletes(self, client, quiz_id):
        other = {"X-User-Id": "prof-2", "X-User-Role": "instructor"}

        assert client.patch(f"/api/quizzes/{quiz_id}", headers=other, json={"title": "Mine"}).status_code == 403
        assert client.delete(f"/api/quizzes/{quiz_id}", headers=other).status_code == 403
        assert client.delete(f"/api/quizzes/{quiz_id}", headers=STUDENT).status_code == 403

    def test_delete_removes_attempts_and_progress(self, client, quiz_id):
        attempt_id = client.post(f"/api/attempts/start/{quiz_id}", headers=STUDENT).json()["attempt_id"]

        response = client.delete(f"/api/quizzes/{quiz_id}", headers=INSTRUCTOR)

        assert response.status_code == 200
        body = response.json()
        assert body["attempts_deleted"] == 1
        assert body["progress_deleted"] == 1
        assert client.get(f"/api/quizzes/{quiz_id}", headers=INSTRUCTOR).status_code == 404
        assert client.get(f"/api/attempts/{attempt_id}/results", headers=STUDENT).status_code == 404
        assert client.get(f"/api/progress/quiz/{quiz_id}", headers=STUDENT).status_code == 404
        assert client.get("/api/quizzes/mine", headers=INSTRUCTOR).json()["total"] == 0

    def test_delete_unknown_quiz(self, client):
        response = client.delete("/api/quizzes/00000000-0000-0000-0000-000000000000", headers=INSTRUCTOR)
        assert response.status_code == 404
        assert response.status_code == 403


class TestAttemptFlow:

    def test_full_attempt(self, client, quiz_id):
        started = client.post(f"/api/attempts/start/{quiz_id}", headers=STUDENT)
        assert started.status_code == 201
        body = started.json()
        attempt_id = body["attempt_id"]
        assert body["current_question"]["question_id"] == "q1"
        assert "correct_answer" not in body["current_question"]

        peek = client.get(f"/api/attempts/{attempt_id}/next", headers=STUDENT).json()
        assert peek["question"]["question_id"] == "q1"

        first = client.post(
            f"/api/attempts/{attempt_id}/answers", headers=STUDENT,
            json={"question_id": "q1", "answer": "Lipids", "time_spent": 30},
        ).json()
        assert first["completed"] is False
        assert first["is_correct"] is True
        assert first["next_question"]["question_id"] == "q2"

        duplicate = client.post(
            f"/api/attempts/{attempt_id}/answers", headers=STUDENT,
            json={"question_id": "q1", "answer": "Lipids", "time_spent": 5},
        )
        assert duplicate.status_code == 409
        assert duplicate.json()["error"] == "invalid_state"

        final = client.post(
            f"/api/attempts/{attempt_id}/answers", headers=STUDENT,
            json={"question_id": "q2", "answer": "True", "time_spent": 30},
        ).json()
        assert final["completed"] is True
        assert final["score"] == 100
        assert final["reward"]["xp"]["total"] == 170
        assert final["reward"]["level_info"]["level"] == 2

        results = client.get(f"/api/attempts/{attempt_id}/results", headers=STUDENT).json()
        assert results["attempt"]["status"] == "completed"
        assert results["progress"]["strong_topics"] == ["Membranes", "Organelles"]

        assert client.get(f"/api/attempts/{attempt_id}/results", headers=OTHER_STUDENT).status_code == 403

        overview = client.get("/api/progress/overview", headers=STUDENT).json()
        assert overview["game_state"]["xp"] == 170
        assert overview["progress"]["total_quizzes"] == 1
        assert overview["progress"]["overall_mastery"]["mastery"] == 100.0

        badges = client.get("/api/progress/badges", headers=STUDENT).json()
        assert badges["total_badges"] == 2
        assert set(badges["badges_by_category"]) == {"achievement"}

        quiz_progress = client.get(f"/api/progress/quiz/{quiz_id}", headers=STUDENT).json()
        assert quiz_progress["best_score"] == 100

        board = client.get("/api/progress/leaderboard?type=xp&limit=5", headers=OTHER_STUDENT).json()
        assert board["entries"][0]["student_id"] == "student-1"
        assert board["entries"][0]["rank"] == 1

    def test_instructor_cannot_take_quiz(self, client, quiz_id):
        assert client.post(f"/api/attempts/start/{quiz_id}", headers=INSTRUCTOR).status_code == 403

    def test_malformed_answer_payload(self, client, quiz_id):
        attempt_id = client.post(f"/api/attempts/start/{quiz_id}", headers=STUDENT).json()["attempt_id"]

        response = client.post(
            f"/api/attempts/{attempt_id}/answers", headers=STUDENT,
            json={"question_id": "q1", "answer": "Lipids", "time_spent": -3},
        )
        assert response.status_code == 422
        assert response.json()["error"] == "invalid_request"


class TestProgressEndpoints:

    def test_overview_before_any_attempt(self, client):
        overview = client.get("/api/progress/overview", headers=STUDENT).json()

        assert overview["game_state"]["level"] == 1
        assert overview["progress"]["total_quizzes"] == 0

    def test_quiz_progress_missing(self, client, quiz_id):
        assert client.get(f"/api/progress/quiz/{quiz_id}", headers=STUDENT).status_code == 404

    def test_bad_leaderboard_type(self, client):
        response = client.get("/api/progress/leaderboard?type=karma", headers=STUDENT)
        assert response.status_code == 400

    def test_health_is_public(self, client):
        response = client.get("/health")

        assert response.json()["status"] == "healthy"
        assert response.json()["database"] == "ok"
        assert response.headers["X-Request-Id"]
