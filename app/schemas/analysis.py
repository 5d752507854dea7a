from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator


class ContentType(str, Enum):
    """분석 결과 콘텐츠 유형"""
    TEXT = "text"
    MATH = "math"
    APTITUDE = "aptitude"

    @classmethod
    def parse(cls, value) -> "ContentType":
        """알 수 없는 값/누락은 text로 처리"""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.TEXT

    @property
    def has_solution(self) -> bool:
        """풀이(solution_steps/final_answer) 기반 유형인지 여부"""
        return self in (ContentType.MATH, ContentType.APTITUDE)


class SolutionStep(BaseModel):
    """수학/적성 문제 풀이 단계"""
    step: int = Field(..., ge=1, description="단계 번호")
    title: str = Field("", description="단계 제목")
    explanation: str = Field("", description="단계 설명")
    expression: str = Field("", description="계산식/추론 과정")


class AnalysisResult(BaseModel):
    """외부 AI 이미지 분석 결과 (입력 전용, 프론트엔드 camelCase 필드명 지원)"""
    type: ContentType = Field(ContentType.TEXT, description="콘텐츠 유형 (text | math | aptitude)")
    extracted_text: str = Field("", alias="extractedText", description="이미지에서 추출한 텍스트")
    summary: str = Field("", description="요약 설명")
    visual_explanation: str | None = Field(None, alias="visualExplanation", description="시각적 설명")
    key_words: list[str] = Field(default_factory=list, alias="keyWords", description="핵심 키워드")
    real_world_examples: list[str] = Field(
        default_factory=list, alias="realWorldExamples", description="실생활 예시 (text 유형)"
    )
    solution_steps: list[SolutionStep] = Field(
        default_factory=list, alias="solutionSteps", description="풀이 단계 (math/aptitude 유형)"
    )
    final_answer: str | None = Field(None, alias="finalAnswer", description="최종 답 (math/aptitude 유형)")

    model_config = {"populate_by_name": True}

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v) -> ContentType:
        return ContentType.parse(v)

    @field_validator("key_words", "real_world_examples", "solution_steps", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return [] if v is None else v

    @field_validator("extracted_text", "summary", mode="before")
    @classmethod
    def none_to_blank(cls, v):
        return "" if v is None else v

    @model_validator(mode="after")
    def select_type_fields(self) -> "AnalysisResult":
        """유형에 맞는 필드만 유지 (예시 경로 vs 풀이 경로)"""
        if self.type.has_solution:
            self.real_world_examples = []
        else:
            self.solution_steps = []
            self.final_answer = None
        return self
