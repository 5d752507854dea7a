import json
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from app.schemas.analysis import ContentType, SolutionStep


class AIQuizGenerationRequest(BaseModel):
    """AI 문제 생성 요청 스키마 (내부 사용)"""
    extracted_text: str = Field(..., description="추출 텍스트")
    summary: str = Field(..., description="요약")
    key_words: list[str] = Field(default_factory=list, description="핵심 키워드")
    content_type: ContentType = Field(ContentType.TEXT, description="콘텐츠 유형")
    solution_steps: list[SolutionStep] = Field(default_factory=list, description="풀이 단계 (math/aptitude)")
    final_answer: str | None = Field(None, description="최종 답 (math/aptitude)")
    question_count: int = Field(5, ge=1, le=20, description="요청 문제 수")


class AIQuestion(BaseModel):
    """AI 생성 객관식 문제 스키마 (선택지 4개, 순서 고정)"""
    question: str = Field(..., min_length=1, description="문제 내용")
    options: list[str] = Field(..., min_length=4, max_length=4, description="선택지 (4개 필수, A-D 순서)")
    correct_option: int = Field(..., ge=0, le=3, description="정답 인덱스 (0-3)")
    explanation: str = Field("", description="해설")
    difficulty: Literal["easy", "medium", "hard"] = Field("medium", description="난이도")

    @field_validator("question")
    @classmethod
    def strip_question(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("문제 내용이 비어있습니다")
        return v

    @field_validator("options", mode="before")
    @classmethod
    def numbers_to_text(cls, v):
        """수학/적성 문제의 숫자 선택지는 문자열로 변환"""
        if isinstance(v, list):
            return [str(opt) if isinstance(opt, (int, float)) and not isinstance(opt, bool) else opt for opt in v]
        return v

    @field_validator("options")
    @classmethod
    def validate_options(cls, v: list[str]) -> list[str]:
        if any(not opt.strip() for opt in v):
            raise ValueError("빈 선택지가 포함되어 있습니다")
        return [opt.strip() for opt in v]

    @field_validator("difficulty", mode="before")
    @classmethod
    def normalize_difficulty(cls, v) -> str:
        """알 수 없는 난이도는 medium으로 처리"""
        if isinstance(v, str) and v.strip().lower() in ("easy", "medium", "hard"):
            return v.strip().lower()
        return "medium"

    @field_validator("explanation", mode="before")
    @classmethod
    def none_to_blank(cls, v):
        return "" if v is None else v

    @property
    def options_json(self) -> str:
        """선택지를 JSON 문자열로 변환 (DB 저장용, 원래 순서 유지)"""
        return json.dumps(
            [{"index": idx, "text": text} for idx, text in enumerate(self.options)],
            ensure_ascii=False,
        )


class AIQuizGenerationResponse(BaseModel):
    """AI 문제 생성 응답 스키마 (검증 통과한 문제만 포함)"""
    title: str | None = Field(None, description="AI 제안 퀴즈 제목")
    questions: list[AIQuestion] = Field(default_factory=list, description="생성된 문제 목록 (반환 순서 유지)")
