"""
Quiz authoring and management

Turns an uploaded lecture into a stored quiz: archive the file, extract
its text, ask the content generator for topics and questions, and pass
the result through the validation boundary. Generator and extraction
failures never fail the upload; they degrade to the stub content.
"""
import aiofiles
import logging
import os
import uuid
from typing import List, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from quizcraft.config import settings
from quizcraft.exceptions import AccessDeniedError, NotFoundError, ValidationError
from quizcraft.models import Progress, Quiz, QuizAttempt
from quizcraft.schemas.quiz import (
    Question, QuizDeleted, QuizDetail, QuizList, QuizSettings, QuizSummary, QuizUpdate, Topic
)
from quizcraft.services.document_service import DocumentExtractionError, document_service
from quizcraft.services.gemini_service import gemini_service
from quizcraft.services.question_validator import question_validator
from quizcraft.utils.cache import cache_service

logger = logging.getLogger(__name__)


class QuizService:
    """Creates, reads and toggles quizzes"""

    @staticmethod
    def questions_of(quiz: Quiz) -> List[Question]:
        return [Question(**question) for question in (quiz.questions or [])]

    @staticmethod
    def topics_of(quiz: Quiz) -> List[Topic]:
        return [Topic(**topic) for topic in (quiz.topics or [])]

    def get_quiz(self, db: Session, quiz_id: UUID) -> Quiz:
        quiz = db.get(Quiz, quiz_id)
        if not quiz:
            raise NotFoundError("Quiz not found")
        return quiz

    def summary(self, quiz: Quiz) -> QuizSummary:
        return QuizSummary(
            quiz_id=quiz.id,
            title=quiz.title,
            description=quiz.description or "",
            lecture_title=quiz.lecture_title,
            total_questions=quiz.total_questions,
            time_limit=quiz.time_limit,
            is_active=quiz.is_active,
            topics=self.topics_of(quiz),
            settings=QuizSettings(
                adaptive_mode=quiz.adaptive_mode,
                allow_retake=quiz.allow_retake,
                show_correct_answers=quiz.show_correct_answers,
            ),
            created_at=quiz.created_at,
        )

    def detail(self, quiz: Quiz) -> QuizDetail:
        questions = self.questions_of(quiz)
        return QuizDetail(
            **self.summary(quiz).model_dump(),
            instructor_id=quiz.instructor_id,
            questions=questions,
            total_points=sum(q.points for q in questions),
        )

    async def archive_upload(self, filename: str, content: bytes) -> Tuple[str, str]:
        """
        Keep a copy of the uploaded lecture

        Returns:
            (lecture id, archive path)
        """
        extension = document_service.file_extension(filename)
        lecture_id = uuid.uuid4().hex

        os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
        archive_path = os.path.join(settings.UPLOAD_DIR, f"{lecture_id}.{extension}")

        async with aiofiles.open(archive_path, 'wb') as f:
            await f.write(content)

        logger.info(f"Archived lecture {filename} as {archive_path}")
        return lecture_id, archive_path

    def build_content(self, text: str, num_questions: int) -> Tuple[List[Topic], List[Question]]:
        """Generator output passed through the validation boundary"""

        raw_topics = gemini_service.extract_topics(text)
        raw_questions = gemini_service.generate_questions(text, raw_topics, num_questions)

        topics, questions = question_validator.validate_quiz_content(raw_topics, raw_questions)

        if not questions:
            logger.warning("No usable generated questions, using fallback questions")
            fallback_topics = [t.model_dump() for t in topics] or gemini_service.get_fallback_topics()
            topics, questions = question_validator.validate_quiz_content(
                fallback_topics,
                gemini_service.get_fallback_questions(num_questions),
            )

        if len(questions) > num_questions:
            questions = questions[:num_questions]
            topics = question_validator.reconcile_topics(topics, questions)

        return topics, questions

    async def create_from_upload(
        self,
        db: Session,
        instructor_id: str,
        filename: str,
        content: bytes,
        title: str,
        description: str = "",
        time_limit: int = settings.DEFAULT_TIME_LIMIT_MINUTES,
        num_questions: int = settings.DEFAULT_NUM_QUESTIONS,
        adaptive_mode: bool = True,
        allow_retake: bool = True,
        show_correct_answers: bool = True
    ) -> Quiz:
        """
        Create a quiz from a lecture upload

        Raises:
            ValidationError: bad file, title, time limit or question count
        """
        document_service.validate_upload(filename, len(content))

        if not title or not title.strip():
            raise ValidationError("Quiz title is required")
        if time_limit < 1:
            raise ValidationError("Time limit must be at least 1 minute")
        if not 1 <= num_questions <= settings.MAX_QUIZ_QUESTIONS:
            raise ValidationError(f"Number of questions must be between 1 and {settings.MAX_QUIZ_QUESTIONS}")

        lecture_id, _ = await self.archive_upload(filename, content)

        try:
            text = document_service.extract_text(filename, content)
        except DocumentExtractionError as e:
            logger.warning(f"Using fallback content for {filename}: {str(e)}")
            text = ""

        topics, questions = self.build_content(text, num_questions)

        quiz = Quiz(
            instructor_id=instructor_id,
            title=title.strip(),
            description=description or "",
            lecture_id=lecture_id,
            lecture_title=filename,
            questions=[q.model_dump(mode="json") for q in questions],
            topics=[t.model_dump(mode="json") for t in topics],
            total_questions=len(questions),
            time_limit=time_limit,
            is_active=True,
            adaptive_mode=adaptive_mode,
            allow_retake=allow_retake,
            show_correct_answers=show_correct_answers,
        )

        try:
            db.add(quiz)
            db.commit()
            db.refresh(quiz)
        except Exception:
            db.rollback()
            raise

        logger.info(f"Quiz created: {quiz.id} ({quiz.total_questions} questions, {len(topics)} topics)")
        return quiz

    def get_quiz_view(self, db: Session, quiz_id: UUID, user_id: str):
        """
        Quiz as seen by `user_id`

        The owning instructor gets the full definition (cached); everyone
        else gets the question-free summary.
        """
        cached = cache_service.get(cache_service.quiz_key(str(quiz_id)))
        if cached and cached.get("instructor_id") == user_id:
            return QuizDetail(**cached)

        quiz = self.get_quiz(db, quiz_id)
        if quiz.instructor_id != user_id:
            return self.summary(quiz)

        detail = self.detail(quiz)
        cache_service.set(cache_service.quiz_key(str(quiz_id)), detail.model_dump(mode="json"))
        return detail

    def list_mine(self, db: Session, instructor_id: str) -> QuizList:
        quizzes = db.query(Quiz).filter(
            Quiz.instructor_id == instructor_id
        ).order_by(Quiz.created_at.desc()).all()

        return QuizList(quizzes=[self.summary(q) for q in quizzes], total=len(quizzes))

    def _get_owned_quiz(self, db: Session, quiz_id: UUID, instructor_id: str, action: str) -> Quiz:
        quiz = self.get_quiz(db, quiz_id)
        if quiz.instructor_id != instructor_id:
            raise AccessDeniedError(f"Only the quiz owner can {action}")
        return quiz

    def _commit(self, db: Session, quiz: Quiz) -> None:
        try:
            db.commit()
            db.refresh(quiz)
        except Exception:
            db.rollback()
            raise

    def set_status(self, db: Session, quiz_id: UUID, instructor_id: str, is_active: bool) -> QuizSummary:
        """
        Activate or deactivate a quiz

        Raises:
            NotFoundError: quiz does not exist
            AccessDeniedError: caller does not own the quiz
        """
        quiz = self._get_owned_quiz(db, quiz_id, instructor_id, "change its status")

        quiz.is_active = is_active
        self._commit(db, quiz)

        cache_service.delete(cache_service.quiz_key(str(quiz_id)))
        logger.info(f"Quiz {quiz_id} {'activated' if is_active else 'deactivated'}")
        return self.summary(quiz)

    def update_quiz(self, db: Session, quiz_id: UUID, instructor_id: str, update: QuizUpdate) -> QuizDetail:
        """
        Edit title, description, time limit and delivery settings

        Only the fields present in `update` change. Settings apply to the
        next question served, including in attempts already running.

        Raises:
            NotFoundError: quiz does not exist
            AccessDeniedError: caller does not own the quiz
            ValidationError: blank title
        """
        quiz = self._get_owned_quiz(db, quiz_id, instructor_id, "edit it")

        changes = update.model_dump(exclude_none=True)
        changes.update(changes.pop("settings", {}))

        if "title" in changes:
            changes["title"] = changes["title"].strip()
            if not changes["title"]:
                raise ValidationError("Quiz title is required")

        for field, value in changes.items():
            setattr(quiz, field, value)
        self._commit(db, quiz)

        cache_service.delete(cache_service.quiz_key(str(quiz_id)))
        logger.info(f"Quiz {quiz_id} updated: {', '.join(sorted(changes)) or 'no changes'}")
        return self.detail(quiz)

    def delete_quiz(self, db: Session, quiz_id: UUID, instructor_id: str) -> QuizDeleted:
        """
        Delete a quiz with its attempts and progress records

        Experience, levels and badges already earned from the quiz stay
        on the students' game states.

        Raises:
            NotFoundError: quiz does not exist
            AccessDeniedError: caller does not own the quiz
        """
        quiz = self._get_owned_quiz(db, quiz_id, instructor_id, "delete it")
        archive_path = os.path.join(
            settings.UPLOAD_DIR,
            f"{quiz.lecture_id}.{document_service.file_extension(quiz.lecture_title)}"
        )

        try:
            attempts_deleted = db.query(QuizAttempt).filter(
                QuizAttempt.quiz_id == quiz_id
            ).delete(synchronize_session=False)
            progress_deleted = db.query(Progress).filter(
                Progress.quiz_id == quiz_id
            ).delete(synchronize_session=False)
            db.delete(quiz)
            db.commit()
        except Exception:
            db.rollback()
            raise

        cache_service.delete(cache_service.quiz_key(str(quiz_id)))

        if os.path.exists(archive_path):
            try:
                os.remove(archive_path)
            except OSError as e:
                logger.warning(f"Could not remove archived lecture {archive_path}: {str(e)}")

        logger.info(
            f"Quiz {quiz_id} deleted with {attempts_deleted} attempt(s) "
            f"and {progress_deleted} progress record(s)"
        )
        return QuizDeleted(
            message="Quiz deleted successfully",
            quiz_id=quiz_id,
            attempts_deleted=attempts_deleted,
            progress_deleted=progress_deleted,
        )


# Global instance
quiz_service = QuizService()
