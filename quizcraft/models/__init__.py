"""
Database models package
"""
from quizcraft.models.quiz import Quiz
from quizcraft.models.quiz_attempt import QuizAttempt
from quizcraft.models.progress import Progress
from quizcraft.models.game_state import GameState

__all__ = ["Quiz", "QuizAttempt", "Progress", "GameState"]
