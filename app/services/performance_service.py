import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.crud import attempt as attempt_crud
from app.exceptions import AttemptNotFoundError
from app.schemas import performance as performance_schema
from app.schemas.quiz import AnswerRecordResponse

logger = logging.getLogger(__name__)


def _round_score(value: float | None) -> float | None:
    return round(value, 2) if value is not None else None


async def get_performance(
    session: AsyncSession,
    user_id: int,
) -> performance_schema.PerformanceResponse:
    """사용자 성적 집계 (전체 / 콘텐츠 유형별 / 최근 추이)

    읽기 전용이며, 방금 제출한 응시 기록이 즉시 반영되지 않을 수 있습니다.
    """
    window = settings.performance_trend_window

    overall_row = await attempt_crud.get_overall_stats(session, user_id)
    overall = performance_schema.OverallPerformance(
        total_attempts=overall_row["total_attempts"],
        avg_score=_round_score(overall_row["avg_score"]),
        best_score=overall_row["best_score"],
    )

    # 기록이 없으면 평균 0점이 아니라 "데이터 없음"으로 응답
    if overall.total_attempts == 0:
        return performance_schema.PerformanceResponse(
            has_data=False,
            overall=overall,
            by_content_type=[],
            recent_trend=performance_schema.RecentTrend(
                window_size=window,
                points=[],
                window_average=None,
                chartable=False,
            ),
        )

    by_content_type = [
        performance_schema.ContentTypePerformance(
            content_type=row["content_type"],
            attempt_count=row["attempt_count"],
            avg_score=_round_score(row["avg_score"]),
        )
        for row in await attempt_crud.get_stats_by_content_type(session, user_id)
    ]

    recent_attempts = await attempt_crud.get_recent_attempts(session, user_id, window)
    points = [
        performance_schema.TrendPoint(
            attempt_id=a.id,
            quiz_id=a.quiz_id,
            title=a.quiz.title,
            percentage=a.percentage,
            created_at=a.created_at,
        )
        for a in recent_attempts
    ]
    window_average = (
        _round_score(sum(p.percentage for p in points) / len(points)) if points else None
    )

    logger.debug(
        f"성적 집계: user_id={user_id}, total_attempts={overall.total_attempts}, "
        f"trend_points={len(points)}"
    )

    return performance_schema.PerformanceResponse(
        has_data=True,
        overall=overall,
        by_content_type=by_content_type,
        recent_trend=performance_schema.RecentTrend(
            window_size=window,
            points=points,
            window_average=window_average,
            chartable=len(points) >= 2,
        ),
    )


async def get_history(
    session: AsyncSession,
    user_id: int,
    limit: int | None = None,
    offset: int = 0,
) -> performance_schema.AttemptHistoryResponse:
    """사용자 응시 기록 목록 (최신순)"""
    attempts = await attempt_crud.get_attempts_by_user(session, user_id, limit=limit, offset=offset)
    total = await attempt_crud.get_attempt_count_by_user(session, user_id)
    return performance_schema.AttemptHistoryResponse(
        attempts=[performance_schema.AttemptSummaryResponse.from_attempt(a) for a in attempts],
        total=total,
    )


async def get_attempt_detail(
    session: AsyncSession,
    attempt_id: int,
    user_id: int,
) -> performance_schema.AttemptDetailResponse:
    """응시 기록 상세 (문제별 스냅샷 포함, 다른 사용자의 기록은 찾을 수 없음으로 처리)"""
    attempt = await attempt_crud.get_attempt_by_id(session, attempt_id, load_answers=True)
    if not attempt or attempt.user_id != user_id:
        raise AttemptNotFoundError(attempt_id)

    summary = performance_schema.AttemptSummaryResponse.from_attempt(attempt)
    return performance_schema.AttemptDetailResponse(
        **summary.model_dump(),
        answers=[AnswerRecordResponse.from_record(r) for r in attempt.answers],
    )
