from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.question import Question
from app.models.quiz import Quiz
from app.models.quiz_attempt import QuizAttempt
from app.schemas.ai import AIQuestion
from app.schemas.analysis import ContentType


async def get_quiz_by_id(
    session: AsyncSession,
    quiz_id: int,
    load_questions: bool = False,
) -> Quiz | None:
    """ID로 퀴즈 조회

    Args:
        session: 데이터베이스 세션
        quiz_id: 퀴즈 ID
        load_questions: 문제 목록을 eager load할지 여부
    """
    stmt = select(Quiz).where(Quiz.id == quiz_id)

    if load_questions:
        stmt = stmt.options(selectinload(Quiz.questions))

    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def create_quiz_with_questions(
    session: AsyncSession,
    user_id: int,
    title: str,
    content_type: ContentType,
    questions: list[AIQuestion],
    history_id: int | None = None,
    topic_keywords: list[str] | None = None,
    source_summary: str | None = None,
) -> Quiz:
    """퀴즈 + 문제 추가 (커밋은 호출 측에서 수행)

    문제는 AI 반환 순서대로 position을 부여하고, 선택지 순서는 그대로 저장합니다.
    """
    quiz = Quiz(
        user_id=user_id,
        history_id=history_id,
        title=title,
        content_type=content_type.value,
        total_questions=len(questions),
        topic_keywords=topic_keywords or [],
        source_summary=source_summary,
    )
    quiz.questions = [
        Question(
            position=position,
            question_text=ai_question.question,
            options=ai_question.options_json,
            correct_option=ai_question.correct_option,
            explanation=ai_question.explanation,
            difficulty=ai_question.difficulty,
        )
        for position, ai_question in enumerate(questions)
    ]
    session.add(quiz)
    await session.flush()
    return quiz


async def get_quizzes_with_stats_by_user(
    session: AsyncSession,
    user_id: int,
) -> list[dict]:
    """사용자 퀴즈 목록 조회 (응시 횟수/평균 점수는 조회 시 계산)"""
    # LEFT JOIN으로 응시 기록이 없는 퀴즈도 포함
    stmt = (
        select(
            Quiz.id,
            Quiz.title,
            Quiz.content_type,
            Quiz.total_questions,
            Quiz.created_at,
            func.count(QuizAttempt.id).label("attempt_count"),
            func.avg(QuizAttempt.percentage).label("avg_score"),
        )
        .outerjoin(QuizAttempt, Quiz.id == QuizAttempt.quiz_id)
        .where(Quiz.user_id == user_id)
        .group_by(Quiz.id, Quiz.title, Quiz.content_type, Quiz.total_questions, Quiz.created_at)
        .order_by(Quiz.created_at.desc(), Quiz.id.desc())
    )
    result = await session.execute(stmt)

    quizzes = []
    for row in result.all():
        quizzes.append({
            "id": row.id,
            "title": row.title,
            "content_type": row.content_type,
            "total_questions": row.total_questions,
            "created_at": row.created_at,
            "attempt_count": row.attempt_count or 0,
            "avg_score": round(float(row.avg_score), 2) if row.avg_score is not None else None,
        })
    return quizzes
