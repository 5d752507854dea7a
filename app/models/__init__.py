from app.models.base import Base, get_db
from app.models.question import Question
from app.models.quiz import Quiz
from app.models.quiz_attempt import AttemptAnswer, QuizAttempt

__all__ = ["Base", "Quiz", "Question", "QuizAttempt", "AttemptAnswer", "get_db"]
