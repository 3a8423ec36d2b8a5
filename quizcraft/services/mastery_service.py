"""
Topic mastery tracking

Mastery is kept as raw (answered, correct) counters per topic; the
percentage is always derived from the counters, so incremental updates
and a one-shot recomputation agree exactly.
"""
import logging
from collections import OrderedDict
from typing import Iterable, List, Tuple

from quizcraft.config import settings
from quizcraft.schemas.progress import OverallMastery, TopicMastery, TopicTotal
from quizcraft.schemas.quiz import Topic

logger = logging.getLogger(__name__)


class MasteryService:
    """Per-topic mastery counters and weak/strong classification"""

    def __init__(
        self,
        weak_threshold: float = settings.WEAK_TOPIC_THRESHOLD,
        strong_threshold: float = settings.STRONG_TOPIC_THRESHOLD
    ):
        self.weak_threshold = weak_threshold
        self.strong_threshold = strong_threshold

    @staticmethod
    def compute_mastery(correct_answers: int, questions_answered: int) -> float:
        """Percentage correct, 0 for an untouched topic"""
        if questions_answered <= 0:
            return 0.0
        return round(correct_answers / questions_answered * 100, 2)

    def seed_topic_mastery(self, topics: List[Topic]) -> List[TopicMastery]:
        """Zero mastery entry for every quiz topic"""
        return [TopicMastery(topic=topic.name) for topic in topics]

    def record_answer(
        self,
        topic_mastery: List[TopicMastery],
        topic: str,
        is_correct: bool
    ) -> List[TopicMastery]:
        """
        Count one answer against its topic

        Returns a new list; only the matching entry changes. A topic that
        is missing from the record gets its own entry.
        """
        updated = []
        matched = False

        for entry in topic_mastery:
            if entry.topic == topic and not matched:
                answered = entry.questions_answered + 1
                correct = entry.correct_answers + (1 if is_correct else 0)
                entry = TopicMastery(
                    topic=topic,
                    mastery=self.compute_mastery(correct, answered),
                    questions_answered=answered,
                    correct_answers=correct,
                )
                matched = True
            updated.append(entry)

        if not matched:
            logger.warning(f"Answer for untracked topic '{topic}', adding mastery entry")
            correct = 1 if is_correct else 0
            updated.append(TopicMastery(
                topic=topic,
                mastery=self.compute_mastery(correct, 1),
                questions_answered=1,
                correct_answers=correct,
            ))

        return updated

    def classify(self, topic_mastery: List[TopicMastery]) -> Tuple[List[str], List[str]]:
        """
        Split answered topics into weak (< weak threshold) and strong
        (>= strong threshold); topics with no answers are neither
        """
        weak, strong = [], []

        for entry in topic_mastery:
            if entry.questions_answered <= 0:
                continue
            # From the counters, never the rounded stored percentage
            percentage = entry.correct_answers / entry.questions_answered * 100
            if percentage < self.weak_threshold:
                weak.append(entry.topic)
            elif percentage >= self.strong_threshold:
                strong.append(entry.topic)

        return weak, strong

    def aggregate(self, records: Iterable[List[TopicMastery]]) -> OverallMastery:
        """
        Combine mastery across quizzes by summing counters per topic name

        Percentages are recomputed from the sums, never averaged.
        """
        totals: "OrderedDict[str, List[int]]" = OrderedDict()

        for topic_mastery in records:
            for entry in topic_mastery:
                answered, correct = totals.get(entry.topic, [0, 0])
                totals[entry.topic] = [
                    answered + entry.questions_answered,
                    correct + entry.correct_answers,
                ]

        topics = [
            TopicTotal(
                topic=topic,
                mastery=self.compute_mastery(correct, answered),
                questions_answered=answered,
                correct_answers=correct,
            )
            for topic, (answered, correct) in totals.items()
        ]

        questions_answered = sum(t.questions_answered for t in topics)
        correct_answers = sum(t.correct_answers for t in topics)

        return OverallMastery(
            mastery=self.compute_mastery(correct_answers, questions_answered),
            questions_answered=questions_answered,
            correct_answers=correct_answers,
            topics=topics,
        )

    def generate_recommendations(
        self,
        weak_topics: List[str],
        strong_topics: List[str],
        accuracy: float
    ) -> List[str]:
        """Study advice from accuracy (0-100) and topic classification"""

        recommendations = []

        if accuracy < 50:
            recommendations.append("Consider reviewing the lecture material before retaking the quiz")
        elif accuracy < 70:
            recommendations.append("Good progress! Focus on the weak topics to improve your score")
        elif accuracy >= 90:
            recommendations.append("Excellent work! You have a strong understanding of the material")

        if weak_topics:
            recommendations.append(f"Focus on these topics: {', '.join(weak_topics)}")

        if strong_topics:
            recommendations.append(f"Great job on: {', '.join(strong_topics)}")

        if not recommendations:
            recommendations.append("Keep up the good work! Continue regular practice")

        return recommendations


# Global instance
mastery_service = MasteryService()
