"""
Progress model - per (student, quiz) mastery record
"""
from sqlalchemy import Column, String, Integer, TIMESTAMP, ForeignKey, UniqueConstraint, Uuid, func
from quizcraft.database import Base
from quizcraft.models.quiz import JSONType
import uuid


class Progress(Base):
    """
    Progress table - created on the first attempt start, updated on every
    answer and finalized when an attempt completes
    """
    __tablename__ = "progress"
    __table_args__ = (UniqueConstraint("student_id", "quiz_id", name="uq_progress_student_quiz"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(String(64), nullable=False, index=True)
    quiz_id = Column(Uuid(as_uuid=True), ForeignKey("quizzes.id"), nullable=False, index=True)
    attempt_ids = Column(JSONType, nullable=False, default=list)  # ["<uuid>", ...]
    best_score = Column(Integer, nullable=False, default=0)
    total_attempts = Column(Integer, nullable=False, default=0)
    last_attempt = Column(TIMESTAMP(timezone=True), nullable=True)
    topic_mastery = Column(JSONType, nullable=False, default=list)  # [TopicMastery]
    weak_topics = Column(JSONType, nullable=False, default=list)
    strong_topics = Column(JSONType, nullable=False, default=list)
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Progress(student_id={self.student_id}, quiz_id={self.quiz_id}, best={self.best_score})>"
