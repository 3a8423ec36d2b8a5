"""
Quiz model - stores validated quiz definitions
"""
from sqlalchemy import Column, String, Integer, Boolean, Text, TIMESTAMP, JSON, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from quizcraft.database import Base
import uuid

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Quiz(Base):
    """
    Quizzes table - questions and topics are written once, at creation
    """
    __tablename__ = "quizzes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    instructor_id = Column(String(64), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, default="")
    lecture_id = Column(String(64), nullable=False)
    lecture_title = Column(String(255), nullable=False)
    questions = Column(JSONType, nullable=False)  # [Question.model_dump()]
    topics = Column(JSONType, nullable=False)  # [{"name": ..., "weight": ...}]
    total_questions = Column(Integer, nullable=False, default=0)
    time_limit = Column(Integer, nullable=False, default=30)  # minutes
    is_active = Column(Boolean, nullable=False, default=True)
    adaptive_mode = Column(Boolean, nullable=False, default=True)
    allow_retake = Column(Boolean, nullable=False, default=True)
    show_correct_answers = Column(Boolean, nullable=False, default=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Quiz(id={self.id}, title={self.title}, questions={self.total_questions})>"
