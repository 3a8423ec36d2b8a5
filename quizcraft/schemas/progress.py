"""
Pydantic schemas for per-topic mastery and progress views
"""
from pydantic import BaseModel
from typing import List, Optional
from uuid import UUID
from datetime import datetime

from quizcraft.schemas.game import GameStateSnapshot


class TopicMastery(BaseModel):
    """Mastery counters for one topic of one quiz"""
    topic: str
    mastery: float = 0.0  # 0-100 percentage
    questions_answered: int = 0
    correct_answers: int = 0


class ProgressSnapshot(BaseModel):
    """A student's progress on one quiz"""
    quiz_id: UUID
    quiz_title: Optional[str] = None
    best_score: int
    total_attempts: int
    last_attempt: Optional[datetime] = None
    topic_mastery: List[TopicMastery]
    weak_topics: List[str]
    strong_topics: List[str]


class TopicTotal(BaseModel):
    """Cross-quiz totals for one topic name"""
    topic: str
    mastery: float
    questions_answered: int
    correct_answers: int


class OverallMastery(BaseModel):
    mastery: float
    questions_answered: int
    correct_answers: int
    topics: List[TopicTotal]


class RecentQuiz(BaseModel):
    quiz_id: UUID
    quiz_title: str
    best_score: int
    total_attempts: int
    last_attempt: Optional[datetime] = None
    topic_mastery: List[TopicMastery]


class ProgressSummary(BaseModel):
    total_quizzes: int
    average_score: float
    recent_quizzes: List[RecentQuiz]
    overall_mastery: OverallMastery


class ProgressOverview(BaseModel):
    """Game state plus quiz progress for a student's dashboard"""
    game_state: GameStateSnapshot
    progress: ProgressSummary
