"""
Next-question selection for in-progress attempts

Policy (applied the same way in both quiz modes):

1. Pool = unanswered questions on a currently weak topic, if any exist,
   otherwise every unanswered question.
2. Fixed order: the first question of the pool.
   Adaptive: the first question of the pool at the target difficulty,
   else the first question of the pool.

Target difficulty is easy until something has been answered, then set
by rolling accuracy: >= 0.8 hard, >= 0.6 medium, otherwise easy. Ties
always resolve to quiz order, so selection is deterministic.
"""
import logging
from typing import Iterable, List, Optional, Set

from quizcraft.schemas.quiz import Difficulty, Question

logger = logging.getLogger(__name__)


class QuestionSelector:
    """Chooses the next unanswered question; never raises"""

    HARD_ACCURACY = 0.8
    MEDIUM_ACCURACY = 0.6

    @staticmethod
    def rolling_accuracy(correct_answers: int, answered: int) -> float:
        if answered <= 0:
            return 0.0
        return correct_answers / answered

    def target_difficulty(self, correct_answers: int, answered: int) -> Difficulty:
        """Difficulty band for the next question"""
        if answered <= 0:
            return Difficulty.EASY

        accuracy = self.rolling_accuracy(correct_answers, answered)
        if accuracy >= self.HARD_ACCURACY:
            return Difficulty.HARD
        if accuracy >= self.MEDIUM_ACCURACY:
            return Difficulty.MEDIUM
        return Difficulty.EASY

    def select_next(
        self,
        questions: List[Question],
        answered_ids: Set[str],
        correct_answers: int,
        adaptive_mode: bool,
        weak_topics: Optional[Iterable[str]] = None
    ) -> Optional[Question]:
        """
        Pick the next question

        Args:
            questions: Quiz questions in their original order
            answered_ids: Question ids already answered in this attempt
            correct_answers: Correct answers so far in this attempt
            adaptive_mode: Vary difficulty by rolling accuracy
            weak_topics: Topics currently classified weak for this student

        Returns:
            The next question, or None when every question is answered
        """
        unanswered = [q for q in questions if q.question_id not in answered_ids]
        if not unanswered:
            return None

        weak = set(weak_topics or [])
        pool = [q for q in unanswered if q.topic in weak] or unanswered

        if not adaptive_mode:
            return pool[0]

        target = self.target_difficulty(correct_answers, len(answered_ids))
        for question in pool:
            if question.difficulty == target:
                return question

        logger.debug(f"No unanswered {target.value} question left, falling back to quiz order")
        return pool[0]


# Global instance
question_selector = QuestionSelector()
