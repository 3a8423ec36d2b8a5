"""
Pydantic schemas for quiz definitions, questions and authoring endpoints
"""
from enum import Enum
from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    SHORT_ANSWER = "short-answer"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class QuestionOption(BaseModel):
    """A selectable option of a multiple-choice or true/false question"""
    text: str
    is_correct: bool = False


class Question(BaseModel):
    """
    Validated question as stored on a quiz

    Only produced by the question validator; every stored value of
    type and difficulty is one of the enum members.
    """
    question_id: str
    text: str
    type: QuestionType
    options: List[QuestionOption] = []
    correct_answer: str
    topic: str
    difficulty: Difficulty
    explanation: str = ""
    points: int


class QuestionView(BaseModel):
    """Question as served to a student mid-attempt (no answer key)"""
    question_id: str
    text: str
    type: QuestionType
    options: List[str] = []
    topic: str
    difficulty: Difficulty
    points: int

    @classmethod
    def from_question(cls, question: Question) -> "QuestionView":
        return cls(
            question_id=question.question_id,
            text=question.text,
            type=question.type,
            options=[option.text for option in question.options],
            topic=question.topic,
            difficulty=question.difficulty,
            points=question.points,
        )


class Topic(BaseModel):
    """Lecture topic with its coverage weight (1-10)"""
    name: str
    weight: float = 5.0
    description: str = ""


class QuizSettings(BaseModel):
    """Delivery settings of a quiz"""
    adaptive_mode: bool = True
    allow_retake: bool = True
    show_correct_answers: bool = True


class QuizSummary(BaseModel):
    """Quiz metadata without questions"""
    quiz_id: UUID
    title: str
    description: str
    lecture_title: str
    total_questions: int
    time_limit: int
    is_active: bool
    topics: List[Topic]
    settings: QuizSettings
    created_at: Optional[datetime] = None


class QuizDetail(QuizSummary):
    """Full quiz definition, visible to the owning instructor"""
    instructor_id: str
    questions: List[Question]
    total_points: int


class QuizCreated(BaseModel):
    """Response after a lecture upload produced a quiz"""
    message: str
    quiz: QuizSummary


class QuizStatusUpdate(BaseModel):
    """Activate or deactivate a quiz"""
    is_active: bool


class QuizSettingsUpdate(BaseModel):
    """Omitted settings keep their current value"""
    adaptive_mode: Optional[bool] = None
    allow_retake: Optional[bool] = None
    show_correct_answers: Optional[bool] = None


class QuizUpdate(BaseModel):
    """Editable quiz metadata; questions and topics are fixed at creation"""
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    time_limit: Optional[int] = Field(None, ge=1)
    settings: Optional[QuizSettingsUpdate] = None


class QuizDeleted(BaseModel):
    message: str
    quiz_id: UUID
    attempts_deleted: int
    progress_deleted: int


class QuizList(BaseModel):
    quizzes: List[QuizSummary]
    total: int = Field(..., ge=0)
