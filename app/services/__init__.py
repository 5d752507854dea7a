from app.services.ai_service import generate_questions
from app.services.grading_service import calculate_percentage, grade_answers, submit_quiz
from app.services.performance_service import get_attempt_detail, get_history, get_performance
from app.services.quiz_service import generate_quiz, get_quiz, list_quizzes
from app.services.quiz_session import QuizSession, QuizSessionState

__all__ = [
    "generate_questions",
    "generate_quiz",
    "get_quiz",
    "list_quizzes",
    "grade_answers",
    "calculate_percentage",
    "submit_quiz",
    "get_performance",
    "get_history",
    "get_attempt_detail",
    "QuizSession",
    "QuizSessionState",
]
