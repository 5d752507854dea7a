"""Grading Service 테스트"""
import json

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import InvalidAnswerReferenceError, PersistenceFailureError, QuizNotFoundError
from app.models.question import Question
from app.schemas import quiz as quiz_schema
from app.services import grading_service


def make_question(question_id: int, position: int, correct_option: int) -> Question:
    return Question(
        id=question_id,
        quiz_id=1,
        position=position,
        question_text=f"문제{position + 1}",
        options=json.dumps(
            [{"index": i, "text": f"선택지{i + 1}"} for i in range(4)],
            ensure_ascii=False,
        ),
        correct_option=correct_option,
        explanation=f"해설{position + 1}",
        difficulty="medium",
    )


def answer(question_id: int, selected: int) -> quiz_schema.AnswerSubmission:
    return quiz_schema.AnswerSubmission(question_id=question_id, selected=selected)


@pytest.fixture
def questions():
    """정답이 [0, 2, 1]인 3문제"""
    return [
        make_question(11, 0, 0),
        make_question(12, 1, 2),
        make_question(13, 2, 1),
    ]


def test_grade_answers_mixed(questions):
    """2/3 정답이면 67%"""
    outcome = grading_service.grade_answers(1, questions, [answer(11, 0), answer(12, 2), answer(13, 3)])

    assert outcome.score == 2
    assert outcome.total == 3
    assert outcome.percentage == 67
    assert [r.is_correct for r in outcome.records] == [True, True, False]
    assert outcome.records[2].selected == 3
    assert outcome.records[2].correct == 1


def test_grade_answers_missing_answers_are_unanswered(questions):
    """누락된 문제는 -1로 기록되고 오답 처리"""
    outcome = grading_service.grade_answers(1, questions, [answer(11, 0)])

    assert outcome.score == 1
    assert outcome.total == 3
    assert outcome.percentage == 33
    assert [r.selected for r in outcome.records] == [0, -1, -1]
    assert [r.is_correct for r in outcome.records] == [True, False, False]


def test_grade_answers_single_wrong_answer(questions):
    """첫 문제만 오답으로 제출하면 0점"""
    outcome = grading_service.grade_answers(1, questions, [answer(11, 1)])

    assert outcome.score == 0
    assert outcome.percentage == 0
    assert [(r.selected, r.is_correct) for r in outcome.records] == [(1, False), (-1, False), (-1, False)]


def test_grade_answers_empty(questions):
    """답안이 없으면 0점이지만 모든 문제가 결과에 포함"""
    outcome = grading_service.grade_answers(1, questions, [])

    assert outcome.score == 0
    assert outcome.percentage == 0
    assert len(outcome.records) == 3
    assert all(r.selected == -1 for r in outcome.records)


def test_grade_answers_all_correct(questions):
    """전부 정답이면 100%"""
    outcome = grading_service.grade_answers(1, questions, [answer(11, 0), answer(12, 2), answer(13, 1)])

    assert outcome.score == 3
    assert outcome.percentage == 100


def test_grade_answers_explicit_unanswered_is_wrong():
    """정답과 무관하게 -1은 항상 오답"""
    outcome = grading_service.grade_answers(1, [make_question(1, 0, 0)], [answer(1, -1)])

    assert outcome.score == 0
    assert outcome.records[0].is_correct is False


def test_grade_answers_unknown_question(questions):
    """퀴즈에 없는 문제 ID가 있으면 예외 발생"""
    with pytest.raises(InvalidAnswerReferenceError) as exc_info:
        grading_service.grade_answers(1, questions, [answer(11, 0), answer(999, 1)])

    assert exc_info.value.question_ids == [999]
    assert exc_info.value.status_code == 400


def test_grade_answers_duplicate_answer_last_wins(questions):
    """같은 문제에 답안이 여러 개면 마지막 답안 사용"""
    outcome = grading_service.grade_answers(1, questions, [answer(11, 3), answer(11, 0)])

    assert outcome.records[0].selected == 0
    assert outcome.records[0].is_correct is True
    assert len(outcome.records) == 3


def test_grade_answers_follows_question_position(questions):
    """결과는 제출 순서가 아니라 문제 순서를 따름"""
    outcome = grading_service.grade_answers(
        1, list(reversed(questions)), [answer(13, 1), answer(11, 0)]
    )

    assert [r.position for r in outcome.records] == [0, 1, 2]
    assert [r.question_id for r in outcome.records] == [11, 12, 13]


def test_grade_answers_is_deterministic(questions):
    """같은 입력이면 같은 결과"""
    answers = [answer(11, 1), answer(12, 2)]
    first = grading_service.grade_answers(1, questions, answers)
    second = grading_service.grade_answers(1, questions, answers)

    assert first == second


def test_grade_answers_snapshot_content(questions):
    """결과에 문제/선택지/해설 스냅샷 포함"""
    outcome = grading_service.grade_answers(1, questions, [])
    record = outcome.records[1]

    assert record.question == "문제2"
    assert record.explanation == "해설2"
    assert [opt.text for opt in record.options] == ["선택지1", "선택지2", "선택지3", "선택지4"]


@pytest.mark.parametrize(
    "score,total,expected",
    [
        (0, 3, 0),
        (1, 3, 33),
        (2, 3, 67),
        (1, 2, 50),
        (1, 8, 13),
        (5, 5, 100),
        (0, 0, 0),
    ],
)
def test_calculate_percentage(score, total, expected):
    """정수 반올림 (0.5 올림)"""
    assert grading_service.calculate_percentage(score, total) == expected


@pytest.fixture
def mock_db_session():
    """모킹된 DB 세션"""
    return AsyncMock(spec=AsyncSession)


@pytest.fixture
def mock_quiz(questions):
    quiz = MagicMock()
    quiz.id = 1
    quiz.user_id = 7
    quiz.questions = questions
    return quiz


@pytest.mark.asyncio
async def test_submit_quiz_not_found(mock_db_session):
    """퀴즈가 없으면 예외 발생"""
    from app.crud import quiz as quiz_crud

    with patch.object(quiz_crud, "get_quiz_by_id", new_callable=AsyncMock, return_value=None):
        request = quiz_schema.QuizSubmitRequest(user_id=7, answers=[])

        with pytest.raises(QuizNotFoundError):
            await grading_service.submit_quiz(mock_db_session, 1, request)


@pytest.mark.asyncio
async def test_submit_quiz_other_user(mock_db_session, mock_quiz):
    """다른 사용자의 퀴즈는 찾을 수 없음으로 처리"""
    from app.crud import quiz as quiz_crud

    with patch.object(quiz_crud, "get_quiz_by_id", new_callable=AsyncMock, return_value=mock_quiz):
        request = quiz_schema.QuizSubmitRequest(user_id=8, answers=[])

        with pytest.raises(QuizNotFoundError):
            await grading_service.submit_quiz(mock_db_session, 1, request)


@pytest.mark.asyncio
async def test_submit_quiz_invalid_reference_saves_nothing(mock_db_session, mock_quiz):
    """잘못된 문제 참조는 저장 전에 거부"""
    from app.crud import attempt as attempt_crud, quiz as quiz_crud

    with patch.object(quiz_crud, "get_quiz_by_id", new_callable=AsyncMock, return_value=mock_quiz):
        with patch.object(attempt_crud, "add_attempt_with_answers", new_callable=AsyncMock) as mock_add:
            request = quiz_schema.QuizSubmitRequest(user_id=7, answers=[answer(999, 0)])

            with pytest.raises(InvalidAnswerReferenceError):
                await grading_service.submit_quiz(mock_db_session, 1, request)

            mock_add.assert_not_called()
            mock_db_session.commit.assert_not_called()


@pytest.mark.asyncio
async def test_submit_quiz_commit_failure(mock_db_session, mock_quiz):
    """커밋 실패 시 롤백 후 PersistenceFailureError"""
    from app.crud import attempt as attempt_crud, quiz as quiz_crud

    mock_db_session.commit.side_effect = OperationalError("INSERT", {}, Exception("db down"))

    with patch.object(quiz_crud, "get_quiz_by_id", new_callable=AsyncMock, return_value=mock_quiz):
        with patch.object(attempt_crud, "add_attempt_with_answers", new_callable=AsyncMock):
            request = quiz_schema.QuizSubmitRequest(user_id=7, answers=[answer(11, 0)])

            with pytest.raises(PersistenceFailureError) as exc_info:
                await grading_service.submit_quiz(mock_db_session, 1, request)

            assert exc_info.value.status_code == 503
            mock_db_session.rollback.assert_awaited_once()
