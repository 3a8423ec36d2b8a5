"""
Pydantic schemas for the gamification layer: xp, levels, streaks, badges
"""
from enum import Enum
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import datetime


class BadgeCategory(str, Enum):
    ACHIEVEMENT = "achievement"
    STREAK = "streak"
    MASTERY = "mastery"
    SPEED = "speed"
    ACCURACY = "accuracy"


class Badge(BaseModel):
    id: str
    name: str
    description: str
    icon: str
    category: BadgeCategory
    unlocked_at: datetime


class LevelInfo(BaseModel):
    """Position of an xp total inside its level band"""
    level: int = Field(..., ge=1)
    xp_for_current_level: int
    xp_for_next_level: int
    progress: float = Field(..., ge=0.0, le=100.0)


class LevelSnapshot(BaseModel):
    """Level reached at the latest level-up"""
    level: int
    name: str
    xp_required: int
    unlocked_at: datetime


class StreakState(BaseModel):
    current: int = 0
    longest: int = 0
    last_activity: Optional[datetime] = None


class LifetimeStats(BaseModel):
    total_quizzes_completed: int = 0
    total_questions_answered: int = 0
    total_correct_answers: int = 0
    average_accuracy: float = 0.0
    total_time_spent: int = 0  # minutes
    fastest_quiz: Optional[int] = None  # seconds


class GameStateRecord(BaseModel):
    """
    Owned value copy of a student's game state

    The reward engine takes one of these and returns a new one; the ORM
    row is only written from a fully computed record.
    """
    student_id: str
    xp: int = 0
    level: int = 1
    current_level: Optional[LevelSnapshot] = None
    streaks: StreakState = Field(default_factory=StreakState)
    stats: LifetimeStats = Field(default_factory=LifetimeStats)
    badges: List[Badge] = []

    @property
    def badge_ids(self) -> set:
        return {badge.id for badge in self.badges}


class XpBreakdown(BaseModel):
    base: int
    accuracy_bonus: int
    speed_bonus: int
    total: int


class LevelUpEvent(BaseModel):
    new_level: int
    xp_gained: int
    total_xp: int
    progress: float


class RewardOutcome(BaseModel):
    """What a completed attempt earned, returned for notifications"""
    xp: XpBreakdown
    total_xp: int
    leveled_up: bool
    level_up: Optional[LevelUpEvent] = None
    level_info: LevelInfo
    streak: StreakState
    new_badges: List[Badge] = []


class GameStateSnapshot(BaseModel):
    xp: int
    level: int
    level_info: LevelInfo
    current_level: Optional[LevelSnapshot] = None
    badges: List[Badge]
    streaks: StreakState
    stats: LifetimeStats


class BadgeCollection(BaseModel):
    badges: List[Badge]
    badges_by_category: Dict[str, List[Badge]]
    total_badges: int


class LeaderboardEntry(BaseModel):
    rank: int
    student_id: str
    xp: int
    level: int
    streak: int
    accuracy: float
    badges: int
    quizzes_completed: int


class Leaderboard(BaseModel):
    type: str
    entries: List[LeaderboardEntry]
