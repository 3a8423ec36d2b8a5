"""
Reward engine: experience, levels, streaks, lifetime stats and badges

Everything here is a pure transformation of a GameStateRecord. The caller
loads the record, calls apply_attempt_reward, and persists the returned
record in one commit; a failure anywhere leaves the stored row untouched.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from quizcraft.schemas.game import (
    Badge, BadgeCategory, GameStateRecord, LevelInfo, LevelSnapshot,
    LevelUpEvent, LifetimeStats, RewardOutcome, StreakState, XpBreakdown
)

logger = logging.getLogger(__name__)

BASE_XP = 50
SPEED_BONUS_XP = 20
FIRST_LEVEL_XP = 100
LEVEL_STEP_XP = 50
WEEK_STREAK_DAYS = 7

# Badge id -> catalogue entry
BADGE_CATALOGUE = {
    "first_quiz": {
        "name": "First Steps",
        "description": "Completed your first quiz!",
        "icon": "🎯",
        "category": BadgeCategory.ACHIEVEMENT,
    },
    "perfectionist": {
        "name": "Perfectionist",
        "description": "Achieved 100% accuracy!",
        "icon": "⭐",
        "category": BadgeCategory.ACHIEVEMENT,
    },
    "week_warrior": {
        "name": "Week Warrior",
        "description": "7-day quiz streak!",
        "icon": "🔥",
        "category": BadgeCategory.STREAK,
    },
}


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they were written as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class RewardService:
    """Turns a completed attempt into xp, level, streak, stats and badges"""

    def calculate_xp(self, score: int, time_spent: int, time_limit: int) -> XpBreakdown:
        """
        Experience for one completed attempt

        Args:
            score: Attempt score, 0-100
            time_spent: Seconds spent on the attempt
            time_limit: Quiz time limit in minutes
        """
        accuracy_bonus = (score // 10) * 10
        speed_bonus = SPEED_BONUS_XP if time_spent < time_limit * 30 else 0

        return XpBreakdown(
            base=BASE_XP,
            accuracy_bonus=accuracy_bonus,
            speed_bonus=speed_bonus,
            total=BASE_XP + accuracy_bonus + speed_bonus,
        )

    def calculate_level(self, xp: int) -> LevelInfo:
        """
        Level for an xp total

        Level 1 ends at 100 xp; after that, level N spans N * 50 xp
        (thresholds 100, 200, 350, 550, ...).
        """
        level = 1
        xp_for_next_level = FIRST_LEVEL_XP

        while xp >= xp_for_next_level:
            level += 1
            xp_for_next_level += level * LEVEL_STEP_XP

        xp_for_current_level = 0 if level == 1 else xp_for_next_level - level * LEVEL_STEP_XP
        span = xp_for_next_level - xp_for_current_level
        progress = (xp - xp_for_current_level) / span * 100

        return LevelInfo(
            level=level,
            xp_for_current_level=xp_for_current_level,
            xp_for_next_level=xp_for_next_level,
            progress=round(min(100.0, max(0.0, progress)), 2),
        )

    def update_streak(self, streaks: StreakState, now: datetime) -> StreakState:
        """
        Advance the daily streak for activity at `now`

        Yesterday extends the streak, same day leaves it alone, any longer
        gap restarts it at 1.
        """
        current = streaks.current

        if streaks.last_activity is None or current <= 0:
            current = 1
        else:
            gap = (_as_utc(now).date() - _as_utc(streaks.last_activity).date()).days
            if gap == 1:
                current += 1
            elif gap > 1:
                current = 1

        return StreakState(
            current=current,
            longest=max(streaks.longest, current),
            last_activity=now,
        )

    def update_stats(
        self,
        stats: LifetimeStats,
        questions_answered: int,
        correct_answers: int,
        time_spent: int
    ) -> LifetimeStats:
        """Fold one completed attempt into the lifetime statistics"""
        total_questions = stats.total_questions_answered + questions_answered
        total_correct = stats.total_correct_answers + correct_answers

        average_accuracy = 0.0
        if total_questions > 0:
            average_accuracy = round(total_correct / total_questions * 100, 2)

        fastest = stats.fastest_quiz
        if fastest is None or time_spent < fastest:
            fastest = time_spent

        return LifetimeStats(
            total_quizzes_completed=stats.total_quizzes_completed + 1,
            total_questions_answered=total_questions,
            total_correct_answers=total_correct,
            average_accuracy=average_accuracy,
            total_time_spent=stats.total_time_spent + time_spent // 60,
            fastest_quiz=fastest,
        )

    def evaluate_badges(self, record: GameStateRecord, now: datetime) -> List[Badge]:
        """Badges earned by the record that it does not already hold"""
        earned = []

        if record.stats.total_quizzes_completed >= 1:
            earned.append("first_quiz")
        if record.stats.total_questions_answered > 0 and record.stats.average_accuracy == 100:
            earned.append("perfectionist")
        if record.streaks.current >= WEEK_STREAK_DAYS:
            earned.append("week_warrior")

        owned = record.badge_ids
        return [
            Badge(id=badge_id, unlocked_at=now, **BADGE_CATALOGUE[badge_id])
            for badge_id in earned
            if badge_id not in owned
        ]

    def apply_attempt_reward(
        self,
        record: GameStateRecord,
        score: int,
        questions_answered: int,
        correct_answers: int,
        time_spent: int,
        time_limit: int,
        now: Optional[datetime] = None
    ) -> Tuple[GameStateRecord, RewardOutcome]:
        """
        Apply one completed attempt to a game state

        Args:
            record: Current game state (not modified)
            score: Attempt score, 0-100
            questions_answered: Answers recorded in the attempt
            correct_answers: Correct answers in the attempt
            time_spent: Attempt duration in seconds
            time_limit: Quiz time limit in minutes
            now: Completion time, defaults to the current UTC time

        Returns:
            (new game state, outcome for notifications)
        """
        now = now or datetime.now(timezone.utc)
        updated = record.model_copy(deep=True)

        xp = self.calculate_xp(score, time_spent, time_limit)
        previous_level = updated.level
        updated.xp += xp.total

        level_info = self.calculate_level(updated.xp)
        updated.level = level_info.level

        level_up = None
        if updated.level > previous_level:
            updated.current_level = LevelSnapshot(
                level=updated.level,
                name=f"Level {updated.level}",
                xp_required=level_info.xp_for_next_level,
                unlocked_at=now,
            )
            level_up = LevelUpEvent(
                new_level=updated.level,
                xp_gained=xp.total,
                total_xp=updated.xp,
                progress=level_info.progress,
            )
            logger.info(f"Student {record.student_id} reached level {updated.level}")

        updated.streaks = self.update_streak(updated.streaks, now)
        updated.stats = self.update_stats(updated.stats, questions_answered, correct_answers, time_spent)

        new_badges = self.evaluate_badges(updated, now)
        updated.badges = updated.badges + new_badges
        for badge in new_badges:
            logger.info(f"Student {record.student_id} unlocked badge {badge.id}")

        outcome = RewardOutcome(
            xp=xp,
            total_xp=updated.xp,
            leveled_up=level_up is not None,
            level_up=level_up,
            level_info=level_info,
            streak=updated.streaks,
            new_badges=new_badges,
        )
        return updated, outcome


# Global instance
reward_service = RewardService()
