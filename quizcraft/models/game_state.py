"""
GameState model - one row of gamification state per student
"""
from sqlalchemy import Column, String, Integer, Float, TIMESTAMP, func
from quizcraft.database import Base
from quizcraft.models.quiz import JSONType
from quizcraft.schemas.game import (
    Badge, GameStateRecord, LevelSnapshot, LifetimeStats, StreakState
)


class GameState(Base):
    """
    Game states table - written only from a GameStateRecord produced by the
    reward engine, never field by field
    """
    __tablename__ = "game_states"

    student_id = Column(String(64), primary_key=True)
    xp = Column(Integer, nullable=False, default=0)
    level = Column(Integer, nullable=False, default=1)
    current_level = Column(JSONType, nullable=True)  # LevelSnapshot
    badges = Column(JSONType, nullable=False, default=list)  # [Badge]

    streak_current = Column(Integer, nullable=False, default=0)
    streak_longest = Column(Integer, nullable=False, default=0)
    last_activity = Column(TIMESTAMP(timezone=True), nullable=True)

    total_quizzes_completed = Column(Integer, nullable=False, default=0)
    total_questions_answered = Column(Integer, nullable=False, default=0)
    total_correct_answers = Column(Integer, nullable=False, default=0)
    average_accuracy = Column(Float, nullable=False, default=0.0)
    total_time_spent = Column(Integer, nullable=False, default=0)  # minutes
    fastest_quiz = Column(Integer, nullable=True)  # seconds

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    def to_record(self) -> GameStateRecord:
        """Detached value copy for the reward engine"""
        return GameStateRecord(
            student_id=self.student_id,
            xp=self.xp or 0,
            level=self.level or 1,
            current_level=LevelSnapshot(**self.current_level) if self.current_level else None,
            streaks=StreakState(
                current=self.streak_current or 0,
                longest=self.streak_longest or 0,
                last_activity=self.last_activity,
            ),
            stats=LifetimeStats(
                total_quizzes_completed=self.total_quizzes_completed or 0,
                total_questions_answered=self.total_questions_answered or 0,
                total_correct_answers=self.total_correct_answers or 0,
                average_accuracy=self.average_accuracy or 0.0,
                total_time_spent=self.total_time_spent or 0,
                fastest_quiz=self.fastest_quiz,
            ),
            badges=[Badge(**badge) for badge in (self.badges or [])],
        )

    def apply_record(self, record: GameStateRecord) -> None:
        """Overwrite every column from a computed record"""
        self.xp = record.xp
        self.level = record.level
        self.current_level = record.current_level.model_dump(mode="json") if record.current_level else None
        self.badges = [badge.model_dump(mode="json") for badge in record.badges]

        self.streak_current = record.streaks.current
        self.streak_longest = record.streaks.longest
        self.last_activity = record.streaks.last_activity

        self.total_quizzes_completed = record.stats.total_quizzes_completed
        self.total_questions_answered = record.stats.total_questions_answered
        self.total_correct_answers = record.stats.total_correct_answers
        self.average_accuracy = record.stats.average_accuracy
        self.total_time_spent = record.stats.total_time_spent
        self.fastest_quiz = record.stats.fastest_quiz

    def __repr__(self):
        return f"<GameState(student_id={self.student_id}, xp={self.xp}, level={self.level})>"
