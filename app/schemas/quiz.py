import json
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.schemas.analysis import AnalysisResult, ContentType


class QuizGenerateRequest(AnalysisResult):
    """퀴즈 생성 요청 스키마 (분석 결과 + 사용자 정보, 프론트엔드 camelCase 지원)"""
    user_id: int = Field(..., alias="userId", description="사용자 ID (인증 계층에서 전달)")
    history_id: int | None = Field(None, alias="historyId", description="저장된 학습 기록 ID (선택사항)")

    def to_analysis(self) -> AnalysisResult:
        """요청에서 분석 결과 부분만 분리"""
        return AnalysisResult.model_validate(
            self.model_dump(exclude={"user_id", "history_id"})
        )


class QuestionOptionResponse(BaseModel):
    """선택지 응답 스키마"""
    index: int = Field(..., description="선택지 인덱스 (0-3)")
    text: str = Field(..., description="선택지 텍스트")


def parse_options(value) -> list:
    """DB의 JSON 문자열 options를 리스트로 변환"""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return []
    if not isinstance(value, list):
        return []
    options = []
    for idx, opt in enumerate(value):
        if isinstance(opt, dict):
            options.append(opt)
        else:
            options.append({"index": idx, "text": str(opt)})
    return options


class QuestionResponse(BaseModel):
    """문제 응답 스키마"""
    id: int
    quiz_id: int
    position: int
    question_text: str
    options: list[QuestionOptionResponse]
    correct_option: int | None = Field(None, description="정답 (풀이 중에는 None)")
    explanation: str | None = Field(None, description="해설 (풀이 중에는 None)")
    difficulty: str

    model_config = {"from_attributes": True}

    @field_validator("options", mode="before")
    @classmethod
    def parse_options(cls, v):
        return parse_options(v)


class QuizResponse(BaseModel):
    """퀴즈 응답 스키마"""
    id: int
    user_id: int
    history_id: int | None
    title: str
    content_type: ContentType
    total_questions: int
    topic_keywords: list[str] = Field(default_factory=list)
    source_summary: str | None = Field(None, description="퀴즈 생성에 사용한 요약")
    created_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("content_type", mode="before")
    @classmethod
    def normalize_content_type(cls, v) -> ContentType:
        return ContentType.parse(v)

    @field_validator("topic_keywords", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return [] if v is None else v


class QuizDetailResponse(BaseModel):
    """퀴즈 + 문제 목록 응답 스키마"""
    quiz: QuizResponse
    questions: list[QuestionResponse]


class AnswerSubmission(BaseModel):
    """문제별 제출 답안"""
    question_id: int = Field(..., alias="questionId", description="문제 ID")
    selected: int = Field(-1, ge=-1, le=3, description="선택한 인덱스 (0-3, -1은 미응답)")

    model_config = {"populate_by_name": True}


class QuizSubmitRequest(BaseModel):
    """퀴즈 제출 요청 스키마"""
    user_id: int = Field(..., alias="userId", description="사용자 ID")
    answers: list[AnswerSubmission] = Field(default_factory=list, description="제출 답안 (누락 문제는 미응답 처리)")
    time_taken_seconds: int = Field(0, ge=0, alias="timeTakenSeconds", description="풀이 소요 시간(초)")

    model_config = {"populate_by_name": True}


class AnswerRecordResponse(BaseModel):
    """문제별 채점 결과 (제출 시점 스냅샷)"""
    question_id: int | None
    position: int
    selected: int = Field(..., description="선택한 인덱스 (-1은 미응답)")
    correct: int = Field(..., description="정답 인덱스")
    is_correct: bool
    question: str
    options: list[QuestionOptionResponse]
    explanation: str | None

    @field_validator("options", mode="before")
    @classmethod
    def parse_options(cls, v):
        return parse_options(v)

    @classmethod
    def from_record(cls, record) -> "AnswerRecordResponse":
        """AttemptAnswer 모델을 응답으로 변환"""
        return cls(
            question_id=record.question_id,
            position=record.position,
            selected=record.selected,
            correct=record.correct_option,
            is_correct=record.is_correct,
            question=record.question_text,
            options=record.options,
            explanation=record.explanation,
        )


class QuizResultResponse(BaseModel):
    """퀴즈 제출 결과 응답 스키마"""
    attempt_id: int
    quiz_id: int
    score: int
    total: int
    percentage: int
    time_taken_seconds: int
    answers: list[AnswerRecordResponse]
    created_at: datetime


class QuizStatsResponse(BaseModel):
    """퀴즈 목록 항목 (응시 횟수/평균 점수는 조회 시 계산)"""
    id: int
    title: str
    content_type: ContentType
    total_questions: int
    attempt_count: int
    avg_score: float | None
    created_at: datetime

    @field_validator("content_type", mode="before")
    @classmethod
    def normalize_content_type(cls, v) -> ContentType:
        return ContentType.parse(v)


class QuizStatsListResponse(BaseModel):
    """퀴즈 목록 응답 스키마"""
    quizzes: list[QuizStatsResponse]
    total: int
