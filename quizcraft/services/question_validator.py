"""
Validation boundary for content generator output

Raw topic and question payloads from the generator are parsed, repaired
and turned into Topic / Question models exactly once, before a quiz is
persisted. Nothing downstream re-checks difficulty, type or points.
"""
import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from quizcraft.schemas.quiz import Difficulty, Question, QuestionOption, QuestionType, Topic

logger = logging.getLogger(__name__)


DIFFICULTY_POINTS = {
    Difficulty.EASY: 5,
    Difficulty.MEDIUM: 10,
    Difficulty.HARD: 15,
}

# 1-5 numeric scale used by some generator responses
NUMERIC_DIFFICULTY = {
    1: Difficulty.EASY,
    2: Difficulty.EASY,
    3: Difficulty.MEDIUM,
    4: Difficulty.HARD,
    5: Difficulty.HARD,
}

DEFAULT_TOPIC = "General Concepts"


class QuestionValidator:
    """Repairs generator payloads into storable quiz content"""

    def coerce_difficulty(self, raw: Any) -> Difficulty:
        """easy/medium/hard as-is, 1-5 mapped, anything else medium"""
        if isinstance(raw, Difficulty):
            return raw

        if isinstance(raw, str):
            value = raw.strip().lower()
            if value in Difficulty._value2member_map_:
                return Difficulty(value)
            raw = value

        try:
            number = int(float(raw))
        except (TypeError, ValueError, OverflowError):
            return Difficulty.MEDIUM

        return NUMERIC_DIFFICULTY.get(number, Difficulty.MEDIUM)

    def coerce_type(self, raw: Any) -> QuestionType:
        """Normalizes separators and falls back to multiple-choice"""
        if isinstance(raw, QuestionType):
            return raw

        if isinstance(raw, str):
            value = raw.strip().lower().replace("_", "-").replace(" ", "-")
            if value in QuestionType._value2member_map_:
                return QuestionType(value)

        return QuestionType.MULTIPLE_CHOICE

    def _coerce_options(
        self,
        raw_options: Any,
        correct_answer: Optional[str],
    ) -> List[QuestionOption]:
        """Turn strings or dicts into options, guaranteeing one correct option"""
        options: List[QuestionOption] = []

        for raw in raw_options or []:
            if isinstance(raw, dict):
                text = raw.get("text")
                if text is None:
                    continue
                is_correct = bool(raw.get("isCorrect", raw.get("is_correct", False)))
                options.append(QuestionOption(text=str(text).strip(), is_correct=is_correct))
            elif raw is not None:
                options.append(QuestionOption(text=str(raw).strip(), is_correct=False))

        if not options:
            return options

        if correct_answer is not None:
            # The stored answer string wins over generator flags
            match = next((o for o in options if o.text == correct_answer), None)
            if match is None:
                match = next((o for o in options if o.text.casefold() == correct_answer.casefold()), None)
            if match is not None:
                for option in options:
                    option.is_correct = option is match
                return options

        flagged = [option for option in options if option.is_correct]
        if flagged:
            for option in flagged[1:]:
                option.is_correct = False
            return options

        # Last resort: first option is the answer
        options[0].is_correct = True
        return options

    def validate_question(
        self,
        raw: Dict[str, Any],
        index: int,
        default_topic: str = DEFAULT_TOPIC,
    ) -> Optional[Question]:
        """
        Parse one generator question

        Returns None when the question cannot be repaired (no text, or a
        short-answer question without an expected answer).
        """
        if not isinstance(raw, dict):
            logger.warning(f"Dropping question #{index + 1}: not an object")
            return None

        text = str(raw.get("text") or raw.get("question") or "").strip()
        if not text:
            logger.warning(f"Dropping question #{index + 1}: missing text")
            return None

        question_type = self.coerce_type(raw.get("type"))
        difficulty = self.coerce_difficulty(raw.get("difficulty"))

        correct_answer = raw.get("correctAnswer", raw.get("correct_answer"))
        correct_answer = str(correct_answer).strip() if correct_answer is not None else None

        if question_type == QuestionType.SHORT_ANSWER:
            if not correct_answer:
                logger.warning(f"Dropping short-answer question #{index + 1}: no expected answer")
                return None
            options: List[QuestionOption] = []
        else:
            raw_options = raw.get("options")
            if question_type == QuestionType.TRUE_FALSE and not raw_options:
                raw_options = ["True", "False"]
            options = self._coerce_options(raw_options, correct_answer or None)

            if not options:
                if not correct_answer:
                    logger.warning(f"Dropping question #{index + 1}: no options and no answer")
                    return None
                options = [QuestionOption(text=correct_answer, is_correct=True)]

            correct_answer = next(option.text for option in options if option.is_correct)

        topic = str(raw.get("topic") or "").strip() or default_topic

        return Question(
            question_id=str(raw.get("questionId") or raw.get("question_id") or "").strip(),
            text=text,
            type=question_type,
            options=options,
            correct_answer=correct_answer,
            topic=topic,
            difficulty=difficulty,
            explanation=str(raw.get("explanation") or ""),
            points=DIFFICULTY_POINTS[difficulty],
        )

    def validate_questions(
        self,
        raw_questions: Any,
        default_topic: str = DEFAULT_TOPIC,
    ) -> List[Question]:
        """Validate a generator question list, assigning unique ids"""
        if not isinstance(raw_questions, list):
            logger.warning("Generator returned no question list")
            return []

        questions: List[Question] = []
        seen_ids = set()

        for index, raw in enumerate(raw_questions):
            question = self.validate_question(raw, index, default_topic)
            if question is None:
                continue

            if not question.question_id or question.question_id in seen_ids:
                question.question_id = f"q{len(questions) + 1}"
                while question.question_id in seen_ids:
                    question.question_id = f"{question.question_id}_"
            seen_ids.add(question.question_id)
            questions.append(question)

        dropped = len(raw_questions) - len(questions)
        if dropped:
            logger.warning(f"Dropped {dropped} unrepairable question(s) from generator output")

        return questions

    def validate_topics(self, raw_topics: Any) -> List[Topic]:
        """Topics need a name; weight defaults to 5"""
        topics: List[Topic] = []
        seen = set()

        for raw in raw_topics if isinstance(raw_topics, list) else []:
            if isinstance(raw, str):
                raw = {"name": raw}
            if not isinstance(raw, dict):
                continue

            name = str(raw.get("name") or "").strip()
            if not name or name in seen:
                continue

            try:
                weight = float(raw.get("weight", 5))
            except (TypeError, ValueError):
                weight = 5.0
            if not math.isfinite(weight):
                weight = 5.0

            topics.append(Topic(name=name, weight=weight, description=str(raw.get("description") or "")))
            seen.add(name)

        return topics

    def reconcile_topics(self, topics: List[Topic], questions: List[Question]) -> List[Topic]:
        """Every question topic must be listed so mastery seeding covers it"""
        known = {topic.name for topic in topics}
        reconciled = list(topics)

        for question in questions:
            if question.topic not in known:
                reconciled.append(Topic(name=question.topic, weight=1.0))
                known.add(question.topic)

        return reconciled

    def validate_quiz_content(
        self,
        raw_topics: Any,
        raw_questions: Any,
    ) -> Tuple[List[Topic], List[Question]]:
        """Full boundary pass over one generator response"""
        topics = self.validate_topics(raw_topics)
        default_topic = topics[0].name if topics else DEFAULT_TOPIC
        questions = self.validate_questions(raw_questions, default_topic)
        return self.reconcile_topics(topics, questions), questions


# Global instance
question_validator = QuestionValidator()
