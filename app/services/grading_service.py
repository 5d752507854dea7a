import logging
from typing import Sequence

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud import attempt as attempt_crud, quiz as quiz_crud
from app.exceptions import (
    InvalidAnswerReferenceError,
    PersistenceFailureError,
    QuizNotFoundError,
)
from app.models.question import Question
from app.schemas import quiz as quiz_schema

logger = logging.getLogger(__name__)

UNANSWERED = -1


class GradeOutcome(BaseModel):
    """채점 결과 (저장 전)"""
    score: int
    total: int
    percentage: int
    records: list[quiz_schema.AnswerRecordResponse]


def calculate_percentage(score: int, total: int) -> int:
    """정답률 계산 (정수 반올림, 0.5는 올림)"""
    if total <= 0:
        return 0
    return (200 * score + total) // (2 * total)


def grade_answers(
    quiz_id: int,
    questions: Sequence[Question],
    answers: Sequence[quiz_schema.AnswerSubmission],
) -> GradeOutcome:
    """제출 답안 채점 (입력에 대한 순수 함수)

    제출 답안이 아니라 퀴즈의 문제를 기준으로 순회하므로 모든 문제가 정확히 한 번씩
    결과에 포함됩니다. 누락된 문제는 미응답(-1)으로 오답 처리하고, 같은 문제에 대한
    답안이 여러 개면 마지막 답안을 사용합니다.

    Raises:
        InvalidAnswerReferenceError: 퀴즈에 속하지 않는 문제 ID가 답안에 포함된 경우
    """
    question_ids = {q.id for q in questions}
    unknown_ids = sorted({a.question_id for a in answers if a.question_id not in question_ids})
    if unknown_ids:
        raise InvalidAnswerReferenceError(quiz_id, unknown_ids)

    selected_by_question = {a.question_id: a.selected for a in answers}

    records = []
    for question in sorted(questions, key=lambda q: q.position):
        selected = selected_by_question.get(question.id, UNANSWERED)
        is_correct = selected != UNANSWERED and selected == question.correct_option
        records.append(
            quiz_schema.AnswerRecordResponse(
                question_id=question.id,
                position=question.position,
                selected=selected,
                correct=question.correct_option,
                is_correct=is_correct,
                question=question.question_text,
                options=question.options,
                explanation=question.explanation,
            )
        )

    score = sum(1 for r in records if r.is_correct)
    total = len(records)
    return GradeOutcome(
        score=score,
        total=total,
        percentage=calculate_percentage(score, total),
        records=records,
    )


async def submit_quiz(
    session: AsyncSession,
    quiz_id: int,
    request: quiz_schema.QuizSubmitRequest,
) -> quiz_schema.QuizResultResponse:
    """퀴즈 제출 및 채점 (응시 기록 1개 + 문제별 스냅샷 N개를 하나의 트랜잭션으로 저장)

    같은 세션을 다시 제출하면 새 응시 기록이 생성됩니다 (중복 제거 없음).
    """
    quiz = await quiz_crud.get_quiz_by_id(session, quiz_id, load_questions=True)
    if not quiz or quiz.user_id != request.user_id:
        raise QuizNotFoundError(quiz_id)

    outcome = grade_answers(quiz.id, quiz.questions, request.answers)

    try:
        attempt = await attempt_crud.add_attempt_with_answers(
            session,
            quiz_id=quiz.id,
            user_id=request.user_id,
            score=outcome.score,
            total_questions=outcome.total,
            percentage=outcome.percentage,
            time_taken_seconds=request.time_taken_seconds,
            records=outcome.records,
        )
        await session.commit()
        await session.refresh(attempt, attribute_names=["created_at"])
    except SQLAlchemyError as e:
        logger.error(
            f"응시 기록 저장 실패: quiz_id={quiz_id}, user_id={request.user_id}, "
            f"에러={e.__class__.__name__}",
            exc_info=True,
        )
        await session.rollback()
        raise PersistenceFailureError()

    logger.info(
        f"퀴즈 제출 완료: attempt_id={attempt.id}, quiz_id={quiz_id}, user_id={request.user_id}, "
        f"score={outcome.score}/{outcome.total} ({outcome.percentage}%)"
    )

    return quiz_schema.QuizResultResponse(
        attempt_id=attempt.id,
        quiz_id=quiz.id,
        score=outcome.score,
        total=outcome.total,
        percentage=outcome.percentage,
        time_taken_seconds=request.time_taken_seconds,
        answers=outcome.records,
        created_at=attempt.created_at,
    )
