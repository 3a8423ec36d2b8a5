"""
Read-side views over progress records and game states
"""
import logging
from collections import defaultdict
from typing import List
from uuid import UUID

from sqlalchemy.orm import Session

from quizcraft.exceptions import NotFoundError, ValidationError
from quizcraft.models import GameState, Progress, Quiz
from quizcraft.schemas.game import (
    BadgeCollection, GameStateRecord, GameStateSnapshot, Leaderboard, LeaderboardEntry
)
from quizcraft.schemas.progress import (
    ProgressOverview, ProgressSnapshot, ProgressSummary, RecentQuiz, TopicMastery
)
from quizcraft.services.mastery_service import mastery_service
from quizcraft.services.reward_service import reward_service

logger = logging.getLogger(__name__)

RECENT_QUIZ_COUNT = 5
MAX_LEADERBOARD_SIZE = 100

# Leaderboard type -> sort column
LEADERBOARD_SORTS = {
    "xp": GameState.xp,
    "level": GameState.level,
    "streak": GameState.streak_current,
    "accuracy": GameState.average_accuracy,
}


class ProgressService:
    """Dashboards, per-quiz progress, badges and leaderboards"""

    @staticmethod
    def topic_mastery_of(progress: Progress) -> List[TopicMastery]:
        return [TopicMastery(**entry) for entry in (progress.topic_mastery or [])]

    def snapshot(self, progress: Progress, quiz_title: str = None) -> ProgressSnapshot:
        return ProgressSnapshot(
            quiz_id=progress.quiz_id,
            quiz_title=quiz_title,
            best_score=progress.best_score,
            total_attempts=progress.total_attempts,
            last_attempt=progress.last_attempt,
            topic_mastery=self.topic_mastery_of(progress),
            weak_topics=list(progress.weak_topics or []),
            strong_topics=list(progress.strong_topics or []),
        )

    def _game_record(self, db: Session, student_id: str) -> GameStateRecord:
        # Students without a completed attempt have no row yet
        game_state = db.get(GameState, student_id)
        if not game_state:
            return GameStateRecord(student_id=student_id)
        return game_state.to_record()

    def game_snapshot(self, record: GameStateRecord) -> GameStateSnapshot:
        return GameStateSnapshot(
            xp=record.xp,
            level=record.level,
            level_info=reward_service.calculate_level(record.xp),
            current_level=record.current_level,
            badges=record.badges,
            streaks=record.streaks,
            stats=record.stats,
        )

    def overview(self, db: Session, student_id: str) -> ProgressOverview:
        """
        Game state plus quiz progress

        Overall mastery sums answer counters per topic across every
        quiz before computing percentages.
        """
        rows = db.query(Progress, Quiz.title).join(
            Quiz, Quiz.id == Progress.quiz_id
        ).filter(
            Progress.student_id == student_id
        ).all()

        # Most recent first, never-attempted records last
        rows.sort(key=lambda row: (row[0].last_attempt is not None, row[0].last_attempt), reverse=True)

        recent = [
            RecentQuiz(
                quiz_id=progress.quiz_id,
                quiz_title=title,
                best_score=progress.best_score,
                total_attempts=progress.total_attempts,
                last_attempt=progress.last_attempt,
                topic_mastery=self.topic_mastery_of(progress),
            )
            for progress, title in rows[:RECENT_QUIZ_COUNT]
        ]

        total_quizzes = len(rows)
        average_score = 0.0
        if total_quizzes:
            average_score = round(sum(p.best_score for p, _ in rows) / total_quizzes, 2)

        overall = mastery_service.aggregate(self.topic_mastery_of(p) for p, _ in rows)

        return ProgressOverview(
            game_state=self.game_snapshot(self._game_record(db, student_id)),
            progress=ProgressSummary(
                total_quizzes=total_quizzes,
                average_score=average_score,
                recent_quizzes=recent,
                overall_mastery=overall,
            ),
        )

    def quiz_progress(self, db: Session, student_id: str, quiz_id: UUID) -> ProgressSnapshot:
        row = db.query(Progress, Quiz.title).join(
            Quiz, Quiz.id == Progress.quiz_id
        ).filter(
            Progress.student_id == student_id,
            Progress.quiz_id == quiz_id
        ).first()

        if not row:
            raise NotFoundError("Progress not found for this quiz")

        progress, title = row
        return self.snapshot(progress, title)

    def badges(self, db: Session, student_id: str) -> BadgeCollection:
        record = self._game_record(db, student_id)

        by_category = defaultdict(list)
        for badge in record.badges:
            by_category[badge.category.value].append(badge)

        return BadgeCollection(
            badges=record.badges,
            badges_by_category=dict(by_category),
            total_badges=len(record.badges),
        )

    def leaderboard(self, db: Session, board_type: str = "xp", limit: int = 10) -> Leaderboard:
        """
        Students ranked by xp, level, current streak or accuracy

        Raises:
            ValidationError: unknown board type or limit out of range
        """
        if board_type not in LEADERBOARD_SORTS:
            raise ValidationError(f"Unknown leaderboard type '{board_type}'. Use one of: {', '.join(LEADERBOARD_SORTS)}")
        if not 1 <= limit <= MAX_LEADERBOARD_SIZE:
            raise ValidationError(f"Limit must be between 1 and {MAX_LEADERBOARD_SIZE}")

        rows = db.query(GameState).order_by(
            LEADERBOARD_SORTS[board_type].desc(),
            GameState.xp.desc(),
            GameState.student_id
        ).limit(limit).all()

        entries = [
            LeaderboardEntry(
                rank=rank,
                student_id=row.student_id,
                xp=row.xp,
                level=row.level,
                streak=row.streak_current,
                accuracy=row.average_accuracy,
                badges=len(row.badges or []),
                quizzes_completed=row.total_quizzes_completed,
            )
            for rank, row in enumerate(rows, start=1)
        ]

        return Leaderboard(type=board_type, entries=entries)


# Global instance
progress_service = ProgressService()
