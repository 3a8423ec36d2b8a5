"""
Quiz authoring and management API endpoints
"""

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session
from typing import Union
from uuid import UUID
import logging

from quizcraft.api.dependencies import Principal, get_principal, require_instructor
from quizcraft.config import settings
from quizcraft.database import get_db
from quizcraft.schemas.quiz import (
    QuizCreated, QuizDeleted, QuizDetail, QuizList, QuizStatusUpdate, QuizSummary, QuizUpdate
)
from quizcraft.services.quiz_service import quiz_service


router = APIRouter(prefix="/api/quizzes", tags=["quizzes"])
logger = logging.getLogger(__name__)


@router.post("/upload", response_model=QuizCreated, status_code=201)
async def upload_lecture(
    file: UploadFile = File(...),
    title: str = Form(...),
    description: str = Form(""),
    time_limit: int = Form(settings.DEFAULT_TIME_LIMIT_MINUTES),
    num_questions: int = Form(settings.DEFAULT_NUM_QUESTIONS),
    adaptive_mode: bool = Form(True),
    allow_retake: bool = Form(True),
    show_correct_answers: bool = Form(True),
    principal: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    """
    Create a quiz from an uploaded lecture (PDF, DOCX or TXT)

    - Archives the upload
    - Extracts lecture text
    - Generates topics and questions with Gemini
    - Falls back to stub content if extraction or generation fails
    """
    content = await file.read()
    logger.info(f"Lecture upload from instructor {principal.id}: {file.filename} ({len(content)} bytes)")

    quiz = await quiz_service.create_from_upload(
        db,
        instructor_id=principal.id,
        filename=file.filename,
        content=content,
        title=title,
        description=description,
        time_limit=time_limit,
        num_questions=num_questions,
        adaptive_mode=adaptive_mode,
        allow_retake=allow_retake,
        show_correct_answers=show_correct_answers,
    )

    return QuizCreated(
        message="Quiz created successfully",
        quiz=quiz_service.summary(quiz),
    )


@router.get("/mine", response_model=QuizList)
async def list_my_quizzes(
    principal: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    """Quizzes owned by the calling instructor, newest first"""
    return quiz_service.list_mine(db, principal.id)


@router.get("/{quiz_id}", response_model=Union[QuizDetail, QuizSummary])
async def get_quiz(
    quiz_id: UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """
    Get a quiz

    The owning instructor sees questions and answers; everyone else
    gets the summary.
    """
    return quiz_service.get_quiz_view(db, quiz_id, principal.id)


@router.patch("/{quiz_id}/status", response_model=QuizSummary)
async def update_quiz_status(
    quiz_id: UUID,
    update: QuizStatusUpdate,
    principal: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    """Activate or deactivate a quiz (owner only)"""
    return quiz_service.set_status(db, quiz_id, principal.id, update.is_active)


@router.patch("/{quiz_id}", response_model=QuizDetail)
async def update_quiz(
    quiz_id: UUID,
    update: QuizUpdate,
    principal: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    """
    Edit quiz metadata and delivery settings (owner only)

    - title, description, time_limit
    - settings: adaptive_mode, allow_retake, show_correct_answers
    - Omitted fields are left unchanged; questions cannot be edited
    """
    return quiz_service.update_quiz(db, quiz_id, principal.id, update)


@router.delete("/{quiz_id}", response_model=QuizDeleted)
async def delete_quiz(
    quiz_id: UUID,
    principal: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    """Delete a quiz along with its attempts and progress records (owner only)"""
    return quiz_service.delete_quiz(db, quiz_id, principal.id)
