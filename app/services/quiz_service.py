import logging
import re

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.crud import quiz as quiz_crud
from app.exceptions import (
    BaseAppError,
    InvalidQuizRequestError,
    PersistenceFailureError,
    QuizGenerationFailedError,
    QuizNotFoundError,
)
from app.schemas import ai, quiz as quiz_schema
from app.schemas.analysis import AnalysisResult, ContentType
from app.services import ai_service

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 80

DEFAULT_TITLES = {
    ContentType.TEXT: "Reading Quiz",
    ContentType.MATH: "Math Quiz",
    ContentType.APTITUDE: "Aptitude Quiz",
}


def derive_title(summary: str, content_type: ContentType, suggested: str | None = None) -> str:
    """퀴즈 제목 결정: AI 제안 제목 → 요약 첫 문장 → 유형별 기본 제목"""
    candidate = (suggested or "").strip()
    if not candidate:
        first_line = summary.strip().splitlines()[0] if summary.strip() else ""
        candidate = re.split(r"(?<=[.!?])\s", first_line, maxsplit=1)[0].strip()

    if not candidate:
        return DEFAULT_TITLES[content_type]
    if len(candidate) > MAX_TITLE_LENGTH:
        candidate = candidate[: MAX_TITLE_LENGTH - 1].rstrip() + "…"
    return candidate


def to_quiz_detail(quiz, show_answers: bool = False) -> quiz_schema.QuizDetailResponse:
    """Quiz 모델(문제 로드 필요)을 응답으로 변환 (풀이 중에는 정답/해설 숨김)"""
    question_responses = [quiz_schema.QuestionResponse.model_validate(q) for q in quiz.questions]
    if not show_answers:
        for qr in question_responses:
            qr.correct_option = None
            qr.explanation = None

    return quiz_schema.QuizDetailResponse(
        quiz=quiz_schema.QuizResponse.model_validate(quiz),
        questions=question_responses,
    )


async def generate_quiz(
    session: AsyncSession,
    user_id: int,
    analysis: AnalysisResult,
    history_id: int | None = None,
) -> quiz_schema.QuizDetailResponse:
    """분석 결과로 퀴즈 생성 (Quiz 1개 + Question N개 저장)"""
    if not analysis.extracted_text.strip():
        raise InvalidQuizRequestError("추출된 텍스트가 비어있어 퀴즈를 생성할 수 없습니다")
    if not analysis.summary.strip():
        raise InvalidQuizRequestError("요약이 비어있어 퀴즈를 생성할 수 없습니다")

    ai_request = ai.AIQuizGenerationRequest(
        extracted_text=analysis.extracted_text,
        summary=analysis.summary,
        key_words=analysis.key_words,
        content_type=analysis.type,
        solution_steps=analysis.solution_steps,
        final_answer=analysis.final_answer,
        question_count=settings.quiz_question_count,
    )

    try:
        ai_response = await ai_service.generate_questions(ai_request)
    except BaseAppError:
        raise
    except Exception as e:
        logger.error(
            f"퀴즈 생성 AI 호출 실패: user_id={user_id}, "
            f"에러={e.__class__.__name__}: {str(e)[:200]}",
            exc_info=True,
        )
        raise QuizGenerationFailedError()

    if not ai_response.questions:
        logger.warning(f"사용 가능한 문제 0개: user_id={user_id}, content_type={analysis.type.value}")
        raise QuizGenerationFailedError("생성된 문제가 없습니다. 다시 시도해주세요.")

    if len(ai_response.questions) < settings.quiz_question_count:
        logger.info(
            f"요청보다 적은 문제 생성: 요청={settings.quiz_question_count}, "
            f"실제={len(ai_response.questions)}, user_id={user_id}"
        )

    title = derive_title(analysis.summary, analysis.type, ai_response.title)

    # 퀴즈와 문제를 하나의 트랜잭션으로 저장
    try:
        quiz = await quiz_crud.create_quiz_with_questions(
            session,
            user_id=user_id,
            title=title,
            content_type=analysis.type,
            questions=ai_response.questions,
            history_id=history_id,
            topic_keywords=analysis.key_words,
            source_summary=analysis.summary,
        )
        await session.commit()
        await session.refresh(quiz, attribute_names=["created_at"])
    except SQLAlchemyError as e:
        logger.error(f"퀴즈 저장 실패: user_id={user_id}, 에러={e.__class__.__name__}", exc_info=True)
        await session.rollback()
        raise PersistenceFailureError("퀴즈 저장 중 오류가 발생했습니다. 다시 시도해주세요.")

    logger.info(
        f"퀴즈 생성 완료: quiz_id={quiz.id}, user_id={user_id}, "
        f"content_type={analysis.type.value}, 문제 수={quiz.total_questions}"
    )
    return to_quiz_detail(quiz, show_answers=False)


async def get_quiz(
    session: AsyncSession,
    quiz_id: int,
    user_id: int,
    show_answers: bool = False,
) -> quiz_schema.QuizDetailResponse:
    """퀴즈 조회 (다른 사용자의 퀴즈는 찾을 수 없음으로 처리)"""
    quiz = await quiz_crud.get_quiz_by_id(session, quiz_id, load_questions=True)
    if not quiz or quiz.user_id != user_id:
        raise QuizNotFoundError(quiz_id)
    return to_quiz_detail(quiz, show_answers=show_answers)


async def list_quizzes(
    session: AsyncSession,
    user_id: int,
) -> quiz_schema.QuizStatsListResponse:
    """사용자 퀴즈 목록 (응시 횟수/평균 점수 포함)"""
    rows = await quiz_crud.get_quizzes_with_stats_by_user(session, user_id)
    quizzes = [quiz_schema.QuizStatsResponse.model_validate(row) for row in rows]
    return quiz_schema.QuizStatsListResponse(quizzes=quizzes, total=len(quizzes))
