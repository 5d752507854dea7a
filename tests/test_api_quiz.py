"""Quiz API 통합 테스트"""
import pytest
from unittest.mock import AsyncMock, patch
from sqlalchemy import select

from app.exceptions import GeminiServiceUnavailableError
from app.models.question import Question
from app.models.quiz_attempt import QuizAttempt
from app.schemas.ai import AIQuestion, AIQuizGenerationResponse

USER_ID = 7

ANALYSIS_PAYLOAD = {
    "userId": USER_ID,
    "historyId": 12,
    "type": "text",
    "extractedText": "Photosynthesis converts light energy into chemical energy.",
    "summary": "Plants make food from sunlight. They also release oxygen.",
    "keyWords": ["photosynthesis", "oxygen"],
    "realWorldExamples": ["Houseplants near a window grow faster."],
}


def ai_response(correct_options=(0, 2, 1)) -> AIQuizGenerationResponse:
    return AIQuizGenerationResponse(
        title="Photosynthesis Basics",
        questions=[
            AIQuestion(
                question=f"문제{i + 1}",
                options=["선택지1", "선택지2", "선택지3", "선택지4"],
                correct_option=correct,
                explanation=f"해설{i + 1}",
                difficulty="easy",
            )
            for i, correct in enumerate(correct_options)
        ],
    )


async def generate(client) -> dict:
    with patch("app.services.ai_service.generate_questions", new_callable=AsyncMock) as mock_ai:
        mock_ai.return_value = ai_response()
        response = await client.post("/api/v1/quiz/generate", json=ANALYSIS_PAYLOAD)
    assert response.status_code == 201
    return response.json()


async def submit(client, quiz_id: int, question_ids: list[int], selections: list[int], seconds: int = 30):
    return await client.post(
        f"/api/v1/quiz/{quiz_id}/submit",
        json={
            "userId": USER_ID,
            "timeTakenSeconds": seconds,
            "answers": [
                {"questionId": qid, "selected": sel} for qid, sel in zip(question_ids, selections)
            ],
        },
    )


@pytest.mark.asyncio
async def test_generate_quiz(client, test_db_session):
    """분석 결과로 퀴즈 생성 (정답/해설 숨김)"""
    data = await generate(client)

    assert data["quiz"]["user_id"] == USER_ID
    assert data["quiz"]["history_id"] == 12
    assert data["quiz"]["title"] == "Photosynthesis Basics"
    assert data["quiz"]["content_type"] == "text"
    assert data["quiz"]["total_questions"] == 3
    assert data["quiz"]["topic_keywords"] == ["photosynthesis", "oxygen"]
    assert data["quiz"]["source_summary"] == ANALYSIS_PAYLOAD["summary"]
    assert [q["position"] for q in data["questions"]] == [0, 1, 2]
    assert all(q["correct_option"] is None for q in data["questions"])
    assert all(q["explanation"] is None for q in data["questions"])
    assert data["questions"][0]["options"][3] == {"index": 3, "text": "선택지4"}

    result = await test_db_session.execute(select(Question).order_by(Question.position))
    stored = result.scalars().all()
    assert [q.correct_option for q in stored] == [0, 2, 1]


@pytest.mark.asyncio
async def test_generate_quiz_blank_summary(client):
    """요약이 비어있으면 400"""
    payload = {**ANALYSIS_PAYLOAD, "summary": "  "}

    response = await client.post("/api/v1/quiz/generate", json=payload)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_generate_quiz_ai_unavailable(client, test_db_session):
    """AI 과부하 시 503, 퀴즈는 저장되지 않음"""
    with patch(
        "app.services.ai_service.generate_questions",
        new_callable=AsyncMock,
        side_effect=GeminiServiceUnavailableError(),
    ):
        response = await client.post("/api/v1/quiz/generate", json=ANALYSIS_PAYLOAD)

    assert response.status_code == 503
    assert "detail" in response.json()

    list_response = await client.get(f"/api/v1/quiz/users/{USER_ID}/quizzes")
    assert list_response.json()["total"] == 0


@pytest.mark.asyncio
async def test_get_quiz_show_answers(client):
    """검토 모드에서는 정답/해설 포함"""
    created = await generate(client)
    quiz_id = created["quiz"]["id"]

    hidden = await client.get(f"/api/v1/quiz/{quiz_id}", params={"user_id": USER_ID})
    shown = await client.get(f"/api/v1/quiz/{quiz_id}", params={"user_id": USER_ID, "show_answers": True})

    assert hidden.status_code == 200
    assert hidden.json()["questions"][1]["correct_option"] is None
    assert shown.json()["questions"][1]["correct_option"] == 2
    assert shown.json()["questions"][1]["explanation"] == "해설2"


@pytest.mark.asyncio
async def test_get_quiz_show_answers_camel_case(client):
    """모바일 클라이언트의 showAnswers 쿼리 파라미터 지원"""
    created = await generate(client)
    quiz_id = created["quiz"]["id"]

    shown = await client.get(f"/api/v1/quiz/{quiz_id}", params={"user_id": USER_ID, "showAnswers": "true"})
    hidden = await client.get(f"/api/v1/quiz/{quiz_id}", params={"user_id": USER_ID, "showAnswers": "false"})

    assert shown.status_code == 200
    assert [q["correct_option"] for q in shown.json()["questions"]] == [0, 2, 1]
    assert hidden.json()["questions"][0]["correct_option"] is None


@pytest.mark.asyncio
async def test_get_quiz_other_user(client):
    """다른 사용자의 퀴즈는 404"""
    created = await generate(client)

    response = await client.get(f"/api/v1/quiz/{created['quiz']['id']}", params={"user_id": USER_ID + 1})

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_get_quiz_not_found(client):
    response = await client.get("/api/v1/quiz/999", params={"user_id": USER_ID})

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_submit_quiz(client):
    """채점 결과: 2/3 정답, 67%"""
    created = await generate(client)
    quiz_id = created["quiz"]["id"]
    question_ids = [q["id"] for q in created["questions"]]

    response = await submit(client, quiz_id, question_ids, [0, 2, 3], seconds=95)

    assert response.status_code == 201
    data = response.json()
    assert data["quiz_id"] == quiz_id
    assert data["score"] == 2
    assert data["total"] == 3
    assert data["percentage"] == 67
    assert data["time_taken_seconds"] == 95
    assert [a["is_correct"] for a in data["answers"]] == [True, True, False]
    assert data["answers"][2]["correct"] == 1


@pytest.mark.asyncio
async def test_submit_quiz_partial_answers(client):
    """누락 문제는 미응답(-1)으로 기록"""
    created = await generate(client)
    question_ids = [q["id"] for q in created["questions"]]

    response = await submit(client, created["quiz"]["id"], question_ids[:1], [0])

    data = response.json()
    assert data["score"] == 1
    assert data["percentage"] == 33
    assert [a["selected"] for a in data["answers"]] == [0, -1, -1]


@pytest.mark.asyncio
async def test_submit_quiz_invalid_reference(client, test_db_session):
    """퀴즈에 없는 문제 ID는 400, 응시 기록 미생성"""
    created = await generate(client)

    response = await submit(client, created["quiz"]["id"], [99999], [0])

    assert response.status_code == 400
    attempts = (await test_db_session.execute(select(QuizAttempt))).scalars().all()
    assert attempts == []


@pytest.mark.asyncio
async def test_submit_quiz_invalid_option(client):
    """선택지 범위를 벗어나면 422"""
    created = await generate(client)
    question_ids = [q["id"] for q in created["questions"]]

    response = await submit(client, created["quiz"]["id"], question_ids[:1], [4])

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_resubmit_creates_new_attempt(client):
    """같은 퀴즈 재응시는 별도 기록, 히스토리는 최신순"""
    created = await generate(client)
    quiz_id = created["quiz"]["id"]
    question_ids = [q["id"] for q in created["questions"]]

    first = (await submit(client, quiz_id, question_ids, [0, 2, 3])).json()
    second = (await submit(client, quiz_id, question_ids, [0, 2, 1])).json()
    assert first["attempt_id"] != second["attempt_id"]

    response = await client.get(f"/api/v1/quiz/history/{USER_ID}")

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert [a["attempt_id"] for a in data["attempts"]] == [second["attempt_id"], first["attempt_id"]]
    assert data["attempts"][0]["percentage"] == 100
    assert data["attempts"][0]["title"] == "Photosynthesis Basics"
    assert data["attempts"][0]["topic_keywords"] == ["photosynthesis", "oxygen"]


@pytest.mark.asyncio
async def test_history_pagination(client):
    created = await generate(client)
    question_ids = [q["id"] for q in created["questions"]]
    for _ in range(3):
        await submit(client, created["quiz"]["id"], question_ids, [0, 0, 0])

    response = await client.get(f"/api/v1/quiz/history/{USER_ID}", params={"limit": 2, "offset": 2})

    data = response.json()
    assert data["total"] == 3
    assert len(data["attempts"]) == 1


@pytest.mark.asyncio
async def test_performance_empty(client):
    """기록이 없으면 데이터 없음 응답"""
    response = await client.get(f"/api/v1/quiz/performance/{USER_ID}")

    assert response.status_code == 200
    data = response.json()
    assert data["has_data"] is False
    assert data["overall"]["total_attempts"] == 0
    assert data["overall"]["avg_score"] is None
    assert data["recent_trend"]["chartable"] is False


@pytest.mark.asyncio
async def test_performance_after_attempts(client):
    """제출 후 성적 집계 반영"""
    created = await generate(client)
    quiz_id = created["quiz"]["id"]
    question_ids = [q["id"] for q in created["questions"]]
    await submit(client, quiz_id, question_ids, [0, 2, 3])
    await submit(client, quiz_id, question_ids, [0, 2, 1])

    response = await client.get(f"/api/v1/quiz/performance/{USER_ID}")

    data = response.json()
    assert data["has_data"] is True
    assert data["overall"]["total_attempts"] == 2
    assert data["overall"]["avg_score"] == 83.5
    assert data["overall"]["best_score"] == 100
    assert data["by_content_type"] == [{"content_type": "text", "attempt_count": 2, "avg_score": 83.5}]
    assert [p["percentage"] for p in data["recent_trend"]["points"]] == [67, 100]
    assert data["recent_trend"]["chartable"] is True


@pytest.mark.asyncio
async def test_attempt_detail_is_snapshot(client, test_db_session):
    """문제가 수정되어도 응시 기록 상세는 제출 시점 내용 유지"""
    created = await generate(client)
    question_ids = [q["id"] for q in created["questions"]]
    submitted = (await submit(client, created["quiz"]["id"], question_ids, [1, 2, 1])).json()

    question = await test_db_session.get(Question, question_ids[0])
    question.question_text = "수정된 문제"
    await test_db_session.commit()

    response = await client.get(
        f"/api/v1/quiz/attempts/{submitted['attempt_id']}", params={"user_id": USER_ID}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["score"] == 2
    assert data["answers"][0]["question"] == "문제1"
    assert data["answers"][0]["selected"] == 1
    assert data["answers"][0]["is_correct"] is False


@pytest.mark.asyncio
async def test_attempt_detail_other_user(client):
    created = await generate(client)
    question_ids = [q["id"] for q in created["questions"]]
    submitted = (await submit(client, created["quiz"]["id"], question_ids, [0, 0, 0])).json()

    response = await client.get(
        f"/api/v1/quiz/attempts/{submitted['attempt_id']}", params={"user_id": USER_ID + 1}
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_user_quizzes_with_stats(client):
    """퀴즈 목록의 응시 횟수/평균 점수"""
    created = await generate(client)
    question_ids = [q["id"] for q in created["questions"]]
    await submit(client, created["quiz"]["id"], question_ids, [0, 2, 1])
    await generate(client)

    response = await client.get(f"/api/v1/quiz/users/{USER_ID}/quizzes")

    data = response.json()
    assert data["total"] == 2
    newest, oldest = data["quizzes"]
    assert newest["attempt_count"] == 0
    assert newest["avg_score"] is None
    assert oldest["attempt_count"] == 1
    assert oldest["avg_score"] == 100.0


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_app_error_response_has_detail_and_cors(client):
    """애플리케이션 예외는 detail 메시지와 CORS 헤더를 포함"""
    response = await client.get(
        "/api/v1/quiz/999",
        params={"user_id": USER_ID},
        headers={"Origin": "http://localhost:8081"},
    )

    assert response.status_code == 404
    assert response.json() == {"detail": "퀴즈를 찾을 수 없습니다: 999"}
    assert response.headers["access-control-allow-origin"] == "http://localhost:8081"
