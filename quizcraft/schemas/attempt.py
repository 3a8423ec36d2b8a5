"""
Pydantic schemas for the attempt lifecycle: start, submit answer, results
"""
from enum import Enum
from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime

from quizcraft.schemas.quiz import Difficulty, Question, QuestionView, Topic
from quizcraft.schemas.progress import ProgressSnapshot
from quizcraft.schemas.game import RewardOutcome


class AttemptStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class AnswerRecord(BaseModel):
    """One answered question inside an attempt"""
    question_id: str
    answer: str
    is_correct: bool
    time_spent: int = 0  # seconds
    timestamp: datetime


class StartAttemptResponse(BaseModel):
    """First question of a freshly started attempt"""
    message: str = "Quiz started successfully"
    attempt_id: UUID
    quiz_id: UUID
    title: str
    total_questions: int
    adaptive_mode: bool
    current_question: QuestionView
    question_number: int = 1
    time_remaining_seconds: int


class AnswerSubmission(BaseModel):
    """Answer to one question of an in-progress attempt"""
    question_id: str = Field(..., min_length=1)
    answer: str
    time_spent: int = Field(0, ge=0, description="Seconds spent on this question")


class SubmitAnswerResponse(BaseModel):
    """
    Outcome of a submitted answer

    While the attempt is in progress the feedback fields and the next
    question are filled; on the final answer the completion fields are.
    """
    completed: bool
    is_correct: bool
    message: str

    # In-progress branch
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None
    next_question: Optional[QuestionView] = None
    question_number: Optional[int] = None
    time_remaining_seconds: Optional[int] = None

    # Completed branch
    score: Optional[int] = None
    correct_answers: Optional[int] = None
    total_questions: Optional[int] = None
    time_spent: Optional[int] = None
    reward: Optional[RewardOutcome] = None
    reward_warning: Optional[str] = None


class Performance(BaseModel):
    """Rolling accuracy that drove the next difficulty choice"""
    accuracy: float
    target_difficulty: Difficulty


class NextQuestionResponse(BaseModel):
    """Read-only look at what the selector would serve next"""
    question: Optional[QuestionView] = None
    question_number: int
    performance: Optional[Performance] = None
    quiz_complete: bool = False


class AttemptSummary(BaseModel):
    attempt_id: UUID
    status: AttemptStatus
    score: int
    correct_answers: int
    total_questions: int
    time_spent: int
    completed_at: Optional[datetime] = None
    answers: List[AnswerRecord]


class QuizSnapshot(BaseModel):
    quiz_id: UUID
    title: str
    questions: List[Question]
    topics: List[Topic]


class AttemptResults(BaseModel):
    """Attempt summary with the quiz and progress it belongs to"""
    attempt: AttemptSummary
    quiz: QuizSnapshot
    progress: Optional[ProgressSnapshot] = None
    recommendations: List[str] = []
