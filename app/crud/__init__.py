from app.crud.attempt import (
    add_attempt_with_answers,
    get_attempt_by_id,
    get_attempt_count_by_user,
    get_attempts_by_user,
    get_overall_stats,
    get_recent_attempts,
    get_stats_by_content_type,
)
from app.crud.quiz import (
    create_quiz_with_questions,
    get_quiz_by_id,
    get_quizzes_with_stats_by_user,
)

__all__ = [
    "get_quiz_by_id",
    "create_quiz_with_questions",
    "get_quizzes_with_stats_by_user",
    "add_attempt_with_answers",
    "get_attempt_by_id",
    "get_attempts_by_user",
    "get_attempt_count_by_user",
    "get_overall_stats",
    "get_stats_by_content_type",
    "get_recent_attempts",
]
