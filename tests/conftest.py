"""
Pytest Configuration and Fixtures.

The environment is seeded before any quizcraft module is imported:
settings are read at import time, and the engine is built from
DATABASE_URL. Tests run against in-memory SQLite with no Redis and no
Gemini access.
"""
import os
import sys
import tempfile
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("GEMINI_API_KEY", "test-key")
os.environ["REDIS_URL"] = "redis://127.0.0.1:1/0"
os.environ["RATE_LIMIT_PER_MINUTE"] = "100000"
os.environ["RATE_LIMIT_PER_HOUR"] = "100000"
os.environ["UPLOAD_DIR"] = os.path.join(tempfile.gettempdir(), "quizcraft-test-uploads")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from tests.factories import make_question  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (SQLite in memory)")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def db():
    """Fresh schema per test on the shared in-memory database."""
    import quizcraft.models  # noqa: F401
    from quizcraft.database import Base, SessionLocal, engine

    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_quiz(db):
    """Factory persisting a quiz from question payloads."""
    from quizcraft.models import Quiz

    def _make_quiz(questions, topics=None, instructor_id="instructor-1", **overrides):
        topic_names = topics or list(dict.fromkeys(q["topic"] for q in questions))
        values = dict(
            instructor_id=instructor_id,
            title="Cell Biology",
            description="Week 3 lecture",
            lecture_id="lecture-1",
            lecture_title="cells.pdf",
            questions=questions,
            topics=[{"name": name, "weight": 5.0, "description": ""} for name in topic_names],
            total_questions=len(questions),
            time_limit=30,
            is_active=True,
            adaptive_mode=True,
            allow_retake=True,
            show_correct_answers=True,
        )
        values.update(overrides)
        quiz = Quiz(**values)
        db.add(quiz)
        db.commit()
        db.refresh(quiz)
        return quiz

    return _make_quiz


@pytest.fixture
def three_question_quiz(make_quiz):
    """Two topics, fixed order."""
    return make_quiz(
        [
            make_question("q1", "easy", "Membranes", answer="A"),
            make_question("q2", "medium", "Membranes", qtype="true-false", answer="True"),
            make_question("q3", "hard", "Organelles", qtype="short-answer", answer="Mitochondria"),
        ],
        adaptive_mode=False,
    )
