"""
Student progress and gamification API endpoints
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from quizcraft.api.dependencies import Principal, get_principal, require_student
from quizcraft.database import get_db
from quizcraft.schemas.game import BadgeCollection, Leaderboard
from quizcraft.schemas.progress import ProgressOverview, ProgressSnapshot
from quizcraft.services.progress_service import progress_service


router = APIRouter(prefix="/api/progress", tags=["progress"])
logger = logging.getLogger(__name__)


@router.get("/overview", response_model=ProgressOverview)
async def get_overview(
    principal: Principal = Depends(require_student),
    db: Session = Depends(get_db),
):
    """
    Student dashboard

    - XP, level progress, streaks, badges and lifetime stats
    - Five most recent quizzes
    - Mastery summed across every quiz
    """
    return progress_service.overview(db, principal.id)


@router.get("/quiz/{quiz_id}", response_model=ProgressSnapshot)
async def get_quiz_progress(
    quiz_id: UUID,
    principal: Principal = Depends(require_student),
    db: Session = Depends(get_db),
):
    """Progress record for one quiz"""
    return progress_service.quiz_progress(db, principal.id, quiz_id)


@router.get("/badges", response_model=BadgeCollection)
async def get_badges(
    principal: Principal = Depends(require_student),
    db: Session = Depends(get_db),
):
    """Unlocked badges, also grouped by category"""
    return progress_service.badges(db, principal.id)


@router.get("/leaderboard", response_model=Leaderboard)
async def get_leaderboard(
    type: str = Query("xp", description="xp, level, streak or accuracy"),
    limit: int = Query(10),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Top students by the chosen measure"""
    return progress_service.leaderboard(db, board_type=type, limit=limit)
