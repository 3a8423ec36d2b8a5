"""
Attempt lifecycle: start, submit answer, results

start creates an attempt already in progress; the last answer moves it
to completed, which is terminal. Callers serialize calls per student (see CacheService.lock);
this service only does the read-modify-write against the session.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from quizcraft.exceptions import AccessDeniedError, InactiveQuizError, InvalidStateError, NotFoundError
from quizcraft.models import GameState, Progress, Quiz, QuizAttempt
from quizcraft.schemas.attempt import (
    AnswerRecord, AnswerSubmission, AttemptResults, AttemptStatus, AttemptSummary,
    NextQuestionResponse, Performance, QuizSnapshot, StartAttemptResponse, SubmitAnswerResponse
)
from quizcraft.schemas.game import RewardOutcome
from quizcraft.schemas.progress import TopicMastery
from quizcraft.schemas.quiz import Question, QuestionType, QuestionView
from quizcraft.services.mastery_service import mastery_service
from quizcraft.services.progress_service import progress_service
from quizcraft.services.question_selector import question_selector
from quizcraft.services.quiz_service import quiz_service
from quizcraft.services.reward_service import reward_service

logger = logging.getLogger(__name__)

REWARD_WARNING = "Quiz completed, but rewards could not be updated. They will not be applied for this attempt."


class AttemptService:
    """Drives one student's attempt through its lifecycle"""

    @staticmethod
    def status_of(attempt: QuizAttempt) -> AttemptStatus:
        if attempt.is_completed:
            return AttemptStatus.COMPLETED
        return AttemptStatus.IN_PROGRESS

    @staticmethod
    def check_answer(question: Question, answer: str) -> bool:
        """
        Literal answer check

        Multiple-choice and true/false need the exact stored answer;
        short-answer ignores case and surrounding whitespace.
        """
        if question.type == QuestionType.SHORT_ANSWER:
            return answer.strip().casefold() == question.correct_answer.strip().casefold()
        return answer == question.correct_answer

    @staticmethod
    def score_of(correct_answers: int, total_questions: int) -> int:
        """Percentage correct, halves rounded up (1 of 8 -> 13)"""
        if total_questions <= 0:
            return 0
        return (correct_answers * 200 + total_questions) // (total_questions * 2)

    @staticmethod
    def time_remaining(quiz: Quiz, time_spent: int) -> int:
        return max(0, quiz.time_limit * 60 - time_spent)

    def _answers_of(self, attempt: QuizAttempt) -> List[AnswerRecord]:
        return [AnswerRecord(**answer) for answer in (attempt.answers or [])]

    def _get_owned_attempt(self, db: Session, attempt_id: UUID, student_id: str) -> QuizAttempt:
        attempt = db.get(QuizAttempt, attempt_id)
        if not attempt:
            raise NotFoundError("Quiz attempt not found")
        if attempt.student_id != student_id:
            raise AccessDeniedError("You do not have access to this attempt")
        return attempt

    def _get_progress(self, db: Session, student_id: str, quiz_id: UUID) -> Optional[Progress]:
        return db.query(Progress).filter(
            Progress.student_id == student_id,
            Progress.quiz_id == quiz_id
        ).first()

    def _get_or_create_progress(self, db: Session, student_id: str, quiz: Quiz) -> Progress:
        progress = self._get_progress(db, student_id, quiz.id)
        if progress:
            return progress

        seeded = mastery_service.seed_topic_mastery(quiz_service.topics_of(quiz))
        progress = Progress(
            student_id=student_id,
            quiz_id=quiz.id,
            attempt_ids=[],
            best_score=0,
            total_attempts=0,
            topic_mastery=[entry.model_dump(mode="json") for entry in seeded],
            weak_topics=[],
            strong_topics=[],
        )
        db.add(progress)
        logger.info(f"Created progress record for student {student_id} on quiz {quiz.id}")
        return progress

    def _get_or_create_game_state(self, db: Session, student_id: str) -> GameState:
        game_state = db.get(GameState, student_id)
        if not game_state:
            game_state = GameState(student_id=student_id)
            db.add(game_state)
        return game_state

    def start(self, db: Session, student_id: str, quiz_id: UUID) -> StartAttemptResponse:
        """
        Start a new attempt and serve its first question

        Raises:
            NotFoundError: quiz does not exist
            InactiveQuizError: quiz is disabled
            InvalidStateError: retakes are off and the student already finished the quiz
        """
        quiz = quiz_service.get_quiz(db, quiz_id)

        if not quiz.is_active:
            raise InactiveQuizError("Quiz is not active")

        if not quiz.allow_retake:
            finished = db.query(QuizAttempt).filter(
                QuizAttempt.student_id == student_id,
                QuizAttempt.quiz_id == quiz.id,
                QuizAttempt.is_completed.is_(True)
            ).first()
            if finished:
                raise InvalidStateError("Retakes are not allowed for this quiz")

        questions = quiz_service.questions_of(quiz)
        progress = self._get_or_create_progress(db, student_id, quiz)

        first_question = question_selector.select_next(
            questions,
            answered_ids=set(),
            correct_answers=0,
            adaptive_mode=quiz.adaptive_mode,
            weak_topics=progress.weak_topics,
        )
        if first_question is None:
            raise InvalidStateError("Quiz has no questions")

        now = datetime.now(timezone.utc)
        attempt = QuizAttempt(
            student_id=student_id,
            quiz_id=quiz.id,
            answers=[],
            score=0,
            total_questions=len(questions),
            correct_answers=0,
            time_spent=0,
            is_completed=False,
        )
        db.add(attempt)
        db.flush()

        progress.attempt_ids = list(progress.attempt_ids or []) + [str(attempt.id)]
        progress.total_attempts = (progress.total_attempts or 0) + 1
        progress.last_attempt = now

        try:
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Attempt {attempt.id} started by student {student_id} on quiz {quiz.id}")

        return StartAttemptResponse(
            attempt_id=attempt.id,
            quiz_id=quiz.id,
            title=quiz.title,
            total_questions=attempt.total_questions,
            adaptive_mode=quiz.adaptive_mode,
            current_question=QuestionView.from_question(first_question),
            question_number=1,
            time_remaining_seconds=self.time_remaining(quiz, 0),
        )

    def submit_answer(
        self,
        db: Session,
        attempt_id: UUID,
        student_id: str,
        submission: AnswerSubmission
    ) -> SubmitAnswerResponse:
        """
        Record one answer and either serve the next question or finish

        Raises:
            NotFoundError: attempt or question does not exist
            AccessDeniedError: attempt belongs to someone else
            InvalidStateError: attempt completed, or question already answered
        """
        attempt = self._get_owned_attempt(db, attempt_id, student_id)

        if attempt.is_completed:
            raise InvalidStateError("Quiz attempt is already completed")

        quiz = quiz_service.get_quiz(db, attempt.quiz_id)
        questions = quiz_service.questions_of(quiz)

        question = next((q for q in questions if q.question_id == submission.question_id), None)
        if question is None:
            raise NotFoundError(f"Question {submission.question_id} not found in this quiz")

        if submission.question_id in attempt.answered_question_ids:
            raise InvalidStateError(f"Question {submission.question_id} has already been answered")

        now = datetime.now(timezone.utc)
        is_correct = self.check_answer(question, submission.answer)

        record = AnswerRecord(
            question_id=question.question_id,
            answer=submission.answer,
            is_correct=is_correct,
            time_spent=submission.time_spent,
            timestamp=now,
        )
        attempt.answers = list(attempt.answers or []) + [record.model_dump(mode="json")]
        attempt.correct_answers = (attempt.correct_answers or 0) + (1 if is_correct else 0)
        attempt.time_spent = (attempt.time_spent or 0) + submission.time_spent

        progress = self._get_or_create_progress(db, student_id, quiz)
        topic_mastery = mastery_service.record_answer(
            [TopicMastery(**entry) for entry in (progress.topic_mastery or [])],
            question.topic,
            is_correct,
        )
        progress.topic_mastery = [entry.model_dump(mode="json") for entry in topic_mastery]

        answered_ids = attempt.answered_question_ids
        next_question = None
        if len(answered_ids) < attempt.total_questions:
            next_question = question_selector.select_next(
                questions,
                answered_ids=answered_ids,
                correct_answers=attempt.correct_answers,
                adaptive_mode=quiz.adaptive_mode,
                weak_topics=progress.weak_topics,
            )

        logger.info(
            f"Attempt {attempt.id}: answered {question.question_id} "
            f"({'correct' if is_correct else 'incorrect'}), {len(answered_ids)}/{attempt.total_questions}"
        )

        if next_question is None:
            return self._complete(db, attempt, quiz, progress, topic_mastery, is_correct, now)

        try:
            db.commit()
        except Exception:
            db.rollback()
            raise

        reveal = quiz.show_correct_answers
        return SubmitAnswerResponse(
            completed=False,
            is_correct=is_correct,
            message="Correct!" if is_correct else "Incorrect",
            correct_answer=question.correct_answer if reveal else None,
            explanation=question.explanation if reveal else None,
            next_question=QuestionView.from_question(next_question),
            question_number=len(answered_ids) + 1,
            time_remaining_seconds=self.time_remaining(quiz, attempt.time_spent),
        )

    def _complete(
        self,
        db: Session,
        attempt: QuizAttempt,
        quiz: Quiz,
        progress: Progress,
        topic_mastery: List[TopicMastery],
        is_correct: bool,
        now: datetime
    ) -> SubmitAnswerResponse:
        """Finalize score and progress, then apply rewards exactly once"""

        total = attempt.total_questions
        score = self.score_of(attempt.correct_answers, total)

        attempt.score = score
        attempt.is_completed = True
        attempt.completed_at = now

        weak, strong = mastery_service.classify(topic_mastery)
        progress.best_score = max(progress.best_score or 0, score)
        progress.weak_topics = weak
        progress.strong_topics = strong
        progress.last_attempt = now

        try:
            db.commit()
        except Exception:
            db.rollback()
            raise

        # Read back before the reward step; a rollback there expires the rows
        student_id = attempt.student_id
        correct_answers = attempt.correct_answers
        answered = len(attempt.answers or [])
        time_spent = attempt.time_spent

        logger.info(f"Attempt {attempt.id} completed with score {score}")

        reward, warning = self._apply_reward(
            db, student_id, score, answered, correct_answers, time_spent, quiz.time_limit, now
        )

        return SubmitAnswerResponse(
            completed=True,
            is_correct=is_correct,
            message="Quiz completed!",
            score=score,
            correct_answers=correct_answers,
            total_questions=total,
            time_spent=time_spent,
            reward=reward,
            reward_warning=warning,
        )

    def _apply_reward(
        self,
        db: Session,
        student_id: str,
        score: int,
        questions_answered: int,
        correct_answers: int,
        time_spent: int,
        time_limit: int,
        now: datetime
    ) -> Tuple[Optional[RewardOutcome], Optional[str]]:
        """
        Reward update as one unit of work

        Failures are rolled back and reported as a warning; the completed
        attempt is already committed and stays valid.
        """
        try:
            game_state = self._get_or_create_game_state(db, student_id)
            record, outcome = reward_service.apply_attempt_reward(
                game_state.to_record(),
                score=score,
                questions_answered=questions_answered,
                correct_answers=correct_answers,
                time_spent=time_spent,
                time_limit=time_limit,
                now=now,
            )
            game_state.apply_record(record)
            db.commit()
            return outcome, None
        except Exception as e:
            db.rollback()
            logger.error(f"Reward update failed for student {student_id}: {str(e)}", exc_info=True)
            return None, REWARD_WARNING

    def get_results(self, db: Session, attempt_id: UUID, student_id: str) -> AttemptResults:
        """
        Attempt summary with quiz and progress snapshots

        Answer keys are included only once the attempt is completed and
        the quiz allows revealing them.
        """
        attempt = self._get_owned_attempt(db, attempt_id, student_id)
        quiz = quiz_service.get_quiz(db, attempt.quiz_id)
        progress = self._get_progress(db, student_id, quiz.id)

        answers = self._answers_of(attempt)
        reveal = attempt.is_completed and quiz.show_correct_answers

        summary = AttemptSummary(
            attempt_id=attempt.id,
            status=self.status_of(attempt),
            score=attempt.score,
            correct_answers=attempt.correct_answers,
            total_questions=attempt.total_questions,
            time_spent=attempt.time_spent,
            completed_at=attempt.completed_at,
            answers=answers,
        )

        snapshot = QuizSnapshot(
            quiz_id=quiz.id,
            title=quiz.title,
            questions=quiz_service.questions_of(quiz) if reveal else [],
            topics=quiz_service.topics_of(quiz),
        )

        progress_snapshot = None
        recommendations = []
        if progress:
            progress_snapshot = progress_service.snapshot(progress, quiz.title)
            if attempt.is_completed:
                recommendations = mastery_service.generate_recommendations(
                    progress_snapshot.weak_topics,
                    progress_snapshot.strong_topics,
                    attempt.score,
                )

        return AttemptResults(
            attempt=summary,
            quiz=snapshot,
            progress=progress_snapshot,
            recommendations=recommendations,
        )

    def peek_next(self, db: Session, attempt_id: UUID, student_id: str) -> NextQuestionResponse:
        """What the selector would serve next, without changing anything"""
        attempt = self._get_owned_attempt(db, attempt_id, student_id)
        answered_ids = attempt.answered_question_ids

        if attempt.is_completed:
            return NextQuestionResponse(question_number=len(answered_ids), quiz_complete=True)

        quiz = quiz_service.get_quiz(db, attempt.quiz_id)
        progress = self._get_progress(db, student_id, quiz.id)

        question = question_selector.select_next(
            quiz_service.questions_of(quiz),
            answered_ids=answered_ids,
            correct_answers=attempt.correct_answers,
            adaptive_mode=quiz.adaptive_mode,
            weak_topics=progress.weak_topics if progress else None,
        )

        performance = None
        if quiz.adaptive_mode:
            performance = Performance(
                accuracy=round(question_selector.rolling_accuracy(attempt.correct_answers, len(answered_ids)), 4),
                target_difficulty=question_selector.target_difficulty(attempt.correct_answers, len(answered_ids)),
            )

        return NextQuestionResponse(
            question=QuestionView.from_question(question) if question else None,
            question_number=len(answered_ids) + 1,
            performance=performance,
            quiz_complete=question is None,
        )


# Global instance
attempt_service = AttemptService()
