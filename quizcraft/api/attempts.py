"""
Quiz attempt API endpoints

Start and answer calls hold the student's lock so progress and game
state updates for one student never interleave.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from quizcraft.api.dependencies import Principal, require_student
from quizcraft.database import get_db
from quizcraft.schemas.attempt import (
    AnswerSubmission,
    AttemptResults,
    NextQuestionResponse,
    StartAttemptResponse,
    SubmitAnswerResponse,
)
from quizcraft.services.attempt_service import attempt_service
from quizcraft.utils.cache import cache_service


router = APIRouter(prefix="/api/attempts", tags=["attempts"])
logger = logging.getLogger(__name__)


def student_lock(student_id: str):
    return cache_service.lock(f"student:{student_id}")


@router.post("/start/{quiz_id}", response_model=StartAttemptResponse, status_code=201)
def start_attempt(
    quiz_id: UUID,
    principal: Principal = Depends(require_student),
    db: Session = Depends(get_db),
):
    """
    Start a quiz attempt

    Returns the first question (answer key withheld) and the time
    remaining in seconds.
    """
    with student_lock(principal.id):
        return attempt_service.start(db, principal.id, quiz_id)


@router.post("/{attempt_id}/answers", response_model=SubmitAnswerResponse)
def submit_answer(
    attempt_id: UUID,
    submission: AnswerSubmission,
    principal: Principal = Depends(require_student),
    db: Session = Depends(get_db),
):
    """
    Submit the answer to one question

    - Not finished: correctness feedback and the next question
    - Finished: score, totals and the rewards earned
    """
    with student_lock(principal.id):
        return attempt_service.submit_answer(db, attempt_id, principal.id, submission)


@router.get("/{attempt_id}/results", response_model=AttemptResults)
def get_results(
    attempt_id: UUID,
    principal: Principal = Depends(require_student),
    db: Session = Depends(get_db),
):
    """Attempt summary, quiz snapshot, progress and recommendations"""
    return attempt_service.get_results(db, attempt_id, principal.id)


@router.get("/{attempt_id}/next", response_model=NextQuestionResponse)
def peek_next_question(
    attempt_id: UUID,
    principal: Principal = Depends(require_student),
    db: Session = Depends(get_db),
):
    """Next question the selector would serve, with the rolling performance"""
    return attempt_service.peek_next(db, attempt_id, principal.id)
