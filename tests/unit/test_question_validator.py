"""
Unit tests for the generator validation boundary.

Run: pytest tests/unit/test_question_validator.py -v
"""
import json

import pytest

from quizcraft.schemas.quiz import Difficulty, QuestionType
from quizcraft.services.question_validator import DEFAULT_TOPIC, QuestionValidator


@pytest.fixture
def validator():
    return QuestionValidator()


class TestDifficultyCoercion:
    """Difficulty is always one of easy/medium/hard after validation."""

    @pytest.mark.parametrize("raw, expected", [
        ("easy", Difficulty.EASY),
        ("HARD ", Difficulty.HARD),
        (1, Difficulty.EASY),
        ("2", Difficulty.EASY),
        (3, Difficulty.MEDIUM),
        (4.0, Difficulty.HARD),
        (5, Difficulty.HARD),
    ])
    def test_known_values(self, validator, raw, expected):
        assert validator.coerce_difficulty(raw) == expected

    @pytest.mark.parametrize("raw", [
        "expert", None, 9, "", {"level": 2},
        float("inf"), float("-inf"), float("nan"), "1e999",
    ])
    def test_unknown_values_become_medium(self, validator, raw):
        assert validator.coerce_difficulty(raw) == Difficulty.MEDIUM


class TestTypeCoercion:

    @pytest.mark.parametrize("raw, expected", [
        ("multiple-choice", QuestionType.MULTIPLE_CHOICE),
        ("true_false", QuestionType.TRUE_FALSE),
        ("Short Answer", QuestionType.SHORT_ANSWER),
    ])
    def test_separators_normalized(self, validator, raw, expected):
        assert validator.coerce_type(raw) == expected

    @pytest.mark.parametrize("raw", ["essay", None, 3])
    def test_unknown_types_become_multiple_choice(self, validator, raw):
        assert validator.coerce_type(raw) == QuestionType.MULTIPLE_CHOICE


class TestQuestionRepair:
    """Single question parsing."""

    def test_string_options_use_stored_answer(self, validator):
        question = validator.validate_question({
            "text": "Powerhouse of the cell?",
            "options": ["Nucleus", "Mitochondria", "Ribosome"],
            "correctAnswer": "Mitochondria",
            "difficulty": "hard",
        }, 0)

        assert [o.is_correct for o in question.options] == [False, True, False]
        assert question.correct_answer == "Mitochondria"
        assert question.points == 15

    def test_string_options_without_answer_mark_first_correct(self, validator):
        question = validator.validate_question({
            "text": "Pick one",
            "options": ["A", "B"],
        }, 0)

        assert question.options[0].is_correct
        assert not question.options[1].is_correct
        assert question.correct_answer == "A"

    def test_generator_flag_used_when_answer_missing(self, validator):
        question = validator.validate_question({
            "text": "Pick one",
            "options": [{"text": "A", "isCorrect": False}, {"text": "B", "isCorrect": True}],
        }, 0)

        assert question.correct_answer == "B"

    def test_multiple_flags_keep_only_first(self, validator):
        question = validator.validate_question({
            "text": "Pick one",
            "options": [{"text": "A", "isCorrect": True}, {"text": "B", "isCorrect": True}],
        }, 0)

        assert [o.is_correct for o in question.options] == [True, False]

    def test_true_false_defaults_options(self, validator):
        question = validator.validate_question({
            "text": "Cells have membranes",
            "type": "true-false",
            "correctAnswer": "false",
        }, 0)

        assert [o.text for o in question.options] == ["True", "False"]
        assert question.correct_answer == "False"

    def test_points_follow_corrected_difficulty(self, validator):
        question = validator.validate_question({
            "text": "Q",
            "options": ["A", "B"],
            "difficulty": "legendary",
            "points": 99,
        }, 0)

        assert question.difficulty == Difficulty.MEDIUM
        assert question.points == 10

    def test_missing_topic_uses_default(self, validator):
        question = validator.validate_question({"text": "Q", "options": ["A"]}, 0)
        assert question.topic == DEFAULT_TOPIC

    def test_question_without_text_dropped(self, validator):
        assert validator.validate_question({"options": ["A"]}, 0) is None

    def test_short_answer_without_answer_dropped(self, validator):
        assert validator.validate_question({"text": "Explain", "type": "short-answer"}, 0) is None

    def test_non_dict_dropped(self, validator):
        assert validator.validate_question("What?", 0) is None


class TestQuizContent:
    """Whole generator responses."""

    def test_duplicate_and_missing_ids_reassigned(self, validator):
        questions = validator.validate_questions([
            {"questionId": "q1", "text": "One", "options": ["A"]},
            {"questionId": "q1", "text": "Two", "options": ["A"]},
            {"text": "Three", "options": ["A"]},
        ])

        ids = [q.question_id for q in questions]
        assert len(ids) == 3
        assert len(set(ids)) == 3
        assert ids[0] == "q1"

    def test_non_list_response_gives_no_questions(self, validator):
        assert validator.validate_questions({"questions": []}) == []

    def test_topics_reconciled_with_question_topics(self, validator):
        topics, questions = validator.validate_quiz_content(
            [{"name": "Membranes", "weight": 8}, "Organelles", {"weight": 3}],
            [
                {"text": "One", "options": ["A"], "topic": "Membranes"},
                {"text": "Two", "options": ["A"], "topic": "Transport"},
            ],
        )

        names = [t.name for t in topics]
        assert names == ["Membranes", "Organelles", "Transport"]
        assert {q.topic for q in questions} <= set(names)

    def test_topicless_question_takes_first_topic(self, validator):
        topics, questions = validator.validate_quiz_content(
            [{"name": "Membranes"}],
            [{"text": "One", "options": ["A"]}],
        )

        assert questions[0].topic == "Membranes"
        assert [t.name for t in topics] == ["Membranes"]

    def test_non_finite_numbers_repaired(self, validator):
        raw = json.loads(
            '[{"text": "Q?", "options": ["A", "B"], "difficulty": 1e999},'
            ' {"text": "R?", "options": ["A", "B"], "difficulty": -Infinity}]'
        )
        topics, questions = validator.validate_quiz_content(
            json.loads('[{"name": "Membranes", "weight": 1e999}]'),
            raw,
        )

        assert [q.difficulty for q in questions] == [Difficulty.MEDIUM, Difficulty.MEDIUM]
        assert topics[0].weight == 5.0
