from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import get_db
from app.schemas import performance as performance_schema, quiz as quiz_schema
from app.services import grading_service, performance_service, quiz_service

router = APIRouter(prefix="/quiz", tags=["quiz"])


@router.post("/generate", response_model=quiz_schema.QuizDetailResponse, status_code=status.HTTP_201_CREATED)
async def generate_quiz(
    request: quiz_schema.QuizGenerateRequest,
    db: AsyncSession = Depends(get_db),
):
    """퀴즈 생성 API (분석 결과 → 객관식 문제 세트)"""
    return await quiz_service.generate_quiz(
        db,
        user_id=request.user_id,
        analysis=request.to_analysis(),
        history_id=request.history_id,
    )


@router.get("/history/{user_id}", response_model=performance_schema.AttemptHistoryResponse)
async def get_quiz_history(
    user_id: int,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """응시 기록 목록 API (최신순)"""
    return await performance_service.get_history(db, user_id, limit=limit, offset=offset)


@router.get("/performance/{user_id}", response_model=performance_schema.PerformanceResponse)
async def get_quiz_performance(
    user_id: int,
    db: AsyncSession = Depends(get_db),
):
    """성적 집계 API (전체 / 유형별 / 최근 추이)"""
    return await performance_service.get_performance(db, user_id)


@router.get("/attempts/{attempt_id}", response_model=performance_schema.AttemptDetailResponse)
async def get_attempt_detail(
    attempt_id: int,
    user_id: int = Query(..., description="사용자 ID"),
    db: AsyncSession = Depends(get_db),
):
    """응시 기록 상세 API (문제별 답안 스냅샷)"""
    return await performance_service.get_attempt_detail(db, attempt_id, user_id)


@router.get("/users/{user_id}/quizzes", response_model=quiz_schema.QuizStatsListResponse)
async def get_user_quizzes(
    user_id: int,
    db: AsyncSession = Depends(get_db),
):
    """사용자 퀴즈 목록 API (응시 횟수/평균 점수 포함)"""
    return await quiz_service.list_quizzes(db, user_id)


@router.get("/{quiz_id}", response_model=quiz_schema.QuizDetailResponse)
async def get_quiz(
    quiz_id: int,
    user_id: int = Query(..., description="사용자 ID"),
    show_answers: bool = Query(False, description="정답/해설 포함 여부"),
    show_answers_camel: bool | None = Query(None, alias="showAnswers", description="show_answers (camelCase)"),
    db: AsyncSession = Depends(get_db),
):
    """퀴즈 조회 API (show_answers / showAnswers 모두 지원)"""
    if show_answers_camel is not None:
        show_answers = show_answers_camel
    return await quiz_service.get_quiz(db, quiz_id, user_id, show_answers=show_answers)


@router.post("/{quiz_id}/submit", response_model=quiz_schema.QuizResultResponse, status_code=status.HTTP_201_CREATED)
async def submit_quiz(
    quiz_id: int,
    request: quiz_schema.QuizSubmitRequest,
    db: AsyncSession = Depends(get_db),
):
    """퀴즈 제출 API (채점 + 응시 기록 저장)"""
    return await grading_service.submit_quiz(db, quiz_id, request)
