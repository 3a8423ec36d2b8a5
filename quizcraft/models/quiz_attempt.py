"""
QuizAttempt model - one student's pass through a quiz
"""
from sqlalchemy import Column, String, Integer, Boolean, TIMESTAMP, ForeignKey, Uuid, func
from quizcraft.database import Base
from quizcraft.models.quiz import JSONType
import uuid


class QuizAttempt(Base):
    """
    Quiz attempts table - answers are appended while in progress and the
    row is frozen once is_completed is set
    """
    __tablename__ = "quiz_attempts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(String(64), nullable=False, index=True)
    quiz_id = Column(Uuid(as_uuid=True), ForeignKey("quizzes.id"), nullable=False, index=True)
    answers = Column(JSONType, nullable=False, default=list)  # [AnswerRecord]
    score = Column(Integer, nullable=False, default=0)  # 0-100
    total_questions = Column(Integer, nullable=False)
    correct_answers = Column(Integer, nullable=False, default=0)
    time_spent = Column(Integer, nullable=False, default=0)  # seconds
    is_completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(TIMESTAMP(timezone=True), nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def answered_question_ids(self) -> set:
        return {answer["question_id"] for answer in (self.answers or [])}

    def __repr__(self):
        return f"<QuizAttempt(student_id={self.student_id}, quiz_id={self.quiz_id}, score={self.score})>"
