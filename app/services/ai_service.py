import asyncio
import json
import logging
import random

from google import genai
from google.genai import types
from google.genai.errors import ClientError, ServerError
from pydantic import ValidationError

from app.core.config import settings
from app.exceptions import GeminiAPIKeyError, GeminiServiceUnavailableError, QuizGenerationFailedError
from app.schemas.ai import AIQuestion, AIQuizGenerationRequest, AIQuizGenerationResponse

logger = logging.getLogger(__name__)

_gemini_client: genai.Client | None = None
# 동시 Gemini API 요청 수 제한 (과부하 방지)
_gemini_semaphore: asyncio.Semaphore | None = None


def get_gemini_client() -> genai.Client:
    """Gemini 클라이언트 싱글톤"""
    global _gemini_client
    if _gemini_client is None:
        if not settings.gemini_api_key:
            raise GeminiAPIKeyError("GEMINI_API_KEY가 설정되지 않았습니다")
        _gemini_client = genai.Client(api_key=settings.gemini_api_key)
    return _gemini_client


def get_gemini_semaphore() -> asyncio.Semaphore:
    """Gemini API 동시 요청 제한 Semaphore 싱글톤"""
    global _gemini_semaphore
    if _gemini_semaphore is None:
        _gemini_semaphore = asyncio.Semaphore(settings.gemini_max_concurrent)
        logger.info(f"Gemini API 동시 요청 제한 설정: 최대 {settings.gemini_max_concurrent}개")
    return _gemini_semaphore


def build_prompt(request: AIQuizGenerationRequest) -> str:
    """문제 생성 프롬프트 구성 (유형별로 예시/풀이 정보 포함)"""
    keywords = ", ".join(request.key_words) if request.key_words else "(none)"
    sections = [
        f"Extracted text:\n{request.extracted_text}",
        f"Summary:\n{request.summary}",
        f"Key words: {keywords}",
    ]
    if request.content_type.has_solution:
        steps = "\n".join(
            f"{s.step}. {s.title}: {s.explanation} [{s.expression}]" for s in request.solution_steps
        )
        sections.append(f"Solution steps:\n{steps or '(none)'}")
        sections.append(f"Final answer: {request.final_answer or '(none)'}")

    source = "\n\n".join(sections)

    return f"""You are EasyTutor, a friendly teacher who writes quizzes for students.

Write exactly {request.question_count} multiple-choice questions about the {request.content_type.value} content below.

{source}

Respond in this JSON format:
{{
  "title": "short quiz title (max 8 words)",
  "questions": [
    {{
      "question": "question text",
      "options": ["option A", "option B", "option C", "option D"],
      "correct_option": 0,
      "explanation": "why the correct option is right",
      "difficulty": "easy"
    }}
  ]
}}

Requirements:
- exactly 4 options per question
- correct_option is the 0-based index of the correct option (0-3)
- vary the position of the correct option across questions
- mix difficulties: include easy, medium and hard questions
- only ask about what is in the content above
- for math/aptitude content, ask about the method, the steps and the final answer
- keep explanations to 1-2 simple sentences"""


def _strip_code_fence(text: str) -> str:
    """마크다운 코드 블록 제거"""
    result = text.strip()
    if result.startswith("```json"):
        result = result[7:]
    if result.startswith("```"):
        result = result[3:]
    if result.endswith("```"):
        result = result[:-3]
    return result.strip()


def parse_generation_response(raw_text: str) -> AIQuizGenerationResponse:
    """AI 응답 파싱 (검증 실패 문제는 개별적으로 제외, 반환 순서 유지)"""
    if not raw_text:
        raise QuizGenerationFailedError("AI 응답이 비어있습니다")

    try:
        data = json.loads(_strip_code_fence(raw_text))
    except json.JSONDecodeError as e:
        logger.error(f"AI 응답 JSON 파싱 실패: {e}")
        raise QuizGenerationFailedError("AI 응답 형식이 올바르지 않습니다")

    if isinstance(data, list):
        data = {"questions": data}
    if not isinstance(data, dict):
        raise QuizGenerationFailedError("AI 응답 형식이 올바르지 않습니다")

    questions = []
    for idx, item in enumerate(data.get("questions") or []):
        try:
            questions.append(AIQuestion.model_validate(item))
        except ValidationError as e:
            logger.warning(f"AI 생성 문제 검증 실패로 제외: index={idx}, errors={e.error_count()}")

    title = data.get("title")
    return AIQuizGenerationResponse(
        title=title.strip() if isinstance(title, str) and title.strip() else None,
        questions=questions,
    )


async def generate_questions_with_gemini(request: AIQuizGenerationRequest) -> AIQuizGenerationResponse:
    """Gemini를 사용하여 문제 세트 생성 (재시도 로직 포함, 동시 요청 제한)"""
    client = get_gemini_client()
    semaphore = get_gemini_semaphore()
    prompt = build_prompt(request)

    # 재시도 설정 (503 에러 대응)
    max_retries = settings.gemini_max_retries
    base_delay = 2.0
    max_delay = 16.0

    async with semaphore:
        for attempt in range(max_retries):
            try:
                # Gemini SDK 호출은 동기 API이므로 executor로 실행
                loop = asyncio.get_running_loop()
                response = await loop.run_in_executor(
                    None,
                    lambda: client.models.generate_content(
                        model=settings.gemini_model,
                        contents=prompt,
                        config=types.GenerateContentConfig(
                            temperature=settings.gemini_temperature,
                            response_mime_type="application/json",
                        ),
                    ),
                )

                if attempt > 0:
                    logger.info(f"Gemini API 호출 성공 (시도 {attempt + 1}/{max_retries})")

                return parse_generation_response(response.text)

            except ClientError as e:
                error_message = str(e).lower()
                if "403" in str(e) or "permission_denied" in error_message or "leaked" in error_message:
                    logger.error(
                        f"Gemini API 키 문제 감지: status_code=403, "
                        f"error_type={type(e).__name__}"
                    )
                    raise GeminiAPIKeyError()
                logger.error(
                    f"Gemini API ClientError: status_code={getattr(e, 'code', 'unknown')}, "
                    f"error_type={type(e).__name__}"
                )
                raise QuizGenerationFailedError()
            except ServerError as e:
                error_message = str(e)
                if "503" in error_message or "UNAVAILABLE" in error_message or "overloaded" in error_message.lower():
                    if attempt < max_retries - 1:
                        # 지수 백오프 + jitter: 2초, 4초, 8초, 16초 (최대 16초)
                        delay = min(base_delay * (2 ** attempt), max_delay)
                        jitter = delay * 0.2 * (random.random() * 2 - 1)
                        delay_with_jitter = max(0.5, delay + jitter)

                        logger.warning(
                            f"Gemini API 503 에러 발생 (시도 {attempt + 1}/{max_retries}). "
                            f"{delay_with_jitter:.1f}초 후 재시도합니다. (에러: {error_message[:100]})"
                        )
                        await asyncio.sleep(delay_with_jitter)
                        continue
                    logger.error(
                        f"Gemini API 503 에러: 최대 재시도 횟수({max_retries}) 도달. "
                        f"에러 메시지: {error_message}"
                    )
                    raise GeminiServiceUnavailableError()
                logger.error(f"Gemini API ServerError (503 아님): {error_message}")
                raise QuizGenerationFailedError()

    raise GeminiServiceUnavailableError()


async def generate_questions(request: AIQuizGenerationRequest) -> AIQuizGenerationResponse:
    """AI를 사용하여 객관식 문제 세트 생성 (Gemini 사용)"""
    return await generate_questions_with_gemini(request)
