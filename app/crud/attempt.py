import json
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.quiz import Quiz
from app.models.quiz_attempt import AttemptAnswer, QuizAttempt
from app.schemas.quiz import AnswerRecordResponse


async def add_attempt_with_answers(
    session: AsyncSession,
    quiz_id: int,
    user_id: int,
    score: int,
    total_questions: int,
    percentage: int,
    time_taken_seconds: int,
    records: list[AnswerRecordResponse],
) -> QuizAttempt:
    """응시 기록 + 문제별 스냅샷 추가 (커밋은 호출 측에서 한 번에 수행)"""
    attempt = QuizAttempt(
        quiz_id=quiz_id,
        user_id=user_id,
        score=score,
        total_questions=total_questions,
        percentage=percentage,
        time_taken_seconds=time_taken_seconds,
    )
    attempt.answers = [
        AttemptAnswer(
            question_id=record.question_id,
            position=record.position,
            selected=record.selected,
            correct_option=record.correct,
            is_correct=record.is_correct,
            question_text=record.question,
            options=_options_json(record),
            explanation=record.explanation,
        )
        for record in records
    ]
    session.add(attempt)
    await session.flush()
    return attempt


def _options_json(record: AnswerRecordResponse) -> str:
    """스냅샷 선택지를 JSON 문자열로 변환"""
    return json.dumps(
        [{"index": opt.index, "text": opt.text} for opt in record.options],
        ensure_ascii=False,
    )


async def get_attempt_by_id(
    session: AsyncSession,
    attempt_id: int,
    load_answers: bool = False,
) -> QuizAttempt | None:
    """ID로 응시 기록 조회 (퀴즈 정보 포함)"""
    stmt = select(QuizAttempt).where(QuizAttempt.id == attempt_id).options(selectinload(QuizAttempt.quiz))

    if load_answers:
        stmt = stmt.options(selectinload(QuizAttempt.answers))

    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_attempts_by_user(
    session: AsyncSession,
    user_id: int,
    limit: int | None = None,
    offset: int = 0,
) -> Sequence[QuizAttempt]:
    """사용자 응시 기록 조회 (최신순)"""
    stmt = (
        select(QuizAttempt)
        .where(QuizAttempt.user_id == user_id)
        .options(selectinload(QuizAttempt.quiz))
        .order_by(QuizAttempt.created_at.desc(), QuizAttempt.id.desc())
        .offset(offset)
    )
    if limit is not None:
        stmt = stmt.limit(limit)

    result = await session.execute(stmt)
    return result.scalars().all()


async def get_attempt_count_by_user(session: AsyncSession, user_id: int) -> int:
    """사용자 응시 횟수 조회"""
    count_stmt = select(func.count(QuizAttempt.id)).where(QuizAttempt.user_id == user_id)
    total_count = await session.scalar(count_stmt)
    return total_count or 0


async def get_overall_stats(session: AsyncSession, user_id: int) -> dict:
    """전체 응시 통계 (횟수, 평균, 최고점)"""
    stmt = select(
        func.count(QuizAttempt.id).label("total_attempts"),
        func.avg(QuizAttempt.percentage).label("avg_score"),
        func.max(QuizAttempt.percentage).label("best_score"),
    ).where(QuizAttempt.user_id == user_id)
    row = (await session.execute(stmt)).one()
    return {
        "total_attempts": row.total_attempts or 0,
        "avg_score": float(row.avg_score) if row.avg_score is not None else None,
        "best_score": int(row.best_score) if row.best_score is not None else None,
    }


async def get_stats_by_content_type(session: AsyncSession, user_id: int) -> list[dict]:
    """콘텐츠 유형별 평균 점수 (퀴즈의 content_type 기준 그룹화)"""
    stmt = (
        select(
            Quiz.content_type,
            func.count(QuizAttempt.id).label("attempt_count"),
            func.avg(QuizAttempt.percentage).label("avg_score"),
        )
        .join(Quiz, Quiz.id == QuizAttempt.quiz_id)
        .where(QuizAttempt.user_id == user_id)
        .group_by(Quiz.content_type)
        .order_by(Quiz.content_type)
    )
    result = await session.execute(stmt)
    return [
        {
            "content_type": row.content_type,
            "attempt_count": row.attempt_count,
            "avg_score": float(row.avg_score),
        }
        for row in result.all()
    ]


async def get_recent_attempts(
    session: AsyncSession,
    user_id: int,
    window: int,
) -> list[QuizAttempt]:
    """최근 N회 응시 기록 (차트용, 시간 오름차순)"""
    attempts = await get_attempts_by_user(session, user_id, limit=window)
    return list(reversed(attempts))
