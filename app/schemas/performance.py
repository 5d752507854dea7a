from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.schemas.analysis import ContentType
from app.schemas.quiz import AnswerRecordResponse


class AttemptSummaryResponse(BaseModel):
    """응시 기록 요약 (히스토리 목록 항목)"""
    attempt_id: int
    quiz_id: int
    title: str
    content_type: ContentType
    topic_keywords: list[str] = Field(default_factory=list)
    score: int
    total_questions: int
    percentage: int
    time_taken_seconds: int
    created_at: datetime

    @field_validator("content_type", mode="before")
    @classmethod
    def normalize_content_type(cls, v) -> ContentType:
        return ContentType.parse(v)

    @field_validator("topic_keywords", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return [] if v is None else v

    @classmethod
    def from_attempt(cls, attempt) -> "AttemptSummaryResponse":
        """QuizAttempt 모델(quiz 관계 로드 필요)을 응답으로 변환"""
        return cls(
            attempt_id=attempt.id,
            quiz_id=attempt.quiz_id,
            title=attempt.quiz.title,
            content_type=attempt.quiz.content_type,
            topic_keywords=attempt.quiz.topic_keywords,
            score=attempt.score,
            total_questions=attempt.total_questions,
            percentage=attempt.percentage,
            time_taken_seconds=attempt.time_taken_seconds,
            created_at=attempt.created_at,
        )


class AttemptHistoryResponse(BaseModel):
    """응시 기록 목록 응답 스키마 (최신순)"""
    attempts: list[AttemptSummaryResponse]
    total: int


class AttemptDetailResponse(AttemptSummaryResponse):
    """응시 기록 상세 (문제별 스냅샷 포함)"""
    answers: list[AnswerRecordResponse]


class OverallPerformance(BaseModel):
    """전체 성적 요약 (기록이 없으면 avg/best는 None)"""
    total_attempts: int
    avg_score: float | None
    best_score: int | None


class ContentTypePerformance(BaseModel):
    """콘텐츠 유형별 평균 점수"""
    content_type: ContentType
    attempt_count: int
    avg_score: float

    @field_validator("content_type", mode="before")
    @classmethod
    def normalize_content_type(cls, v) -> ContentType:
        return ContentType.parse(v)


class TrendPoint(BaseModel):
    """최근 추이 차트의 한 점"""
    attempt_id: int
    quiz_id: int
    title: str
    percentage: int
    created_at: datetime


class RecentTrend(BaseModel):
    """최근 N회 응시 추이 (시간 오름차순)"""
    window_size: int
    points: list[TrendPoint]
    window_average: float | None
    chartable: bool = Field(..., description="점이 2개 이상일 때만 차트 표시")


class PerformanceResponse(BaseModel):
    """성적 대시보드 응답 스키마"""
    has_data: bool
    overall: OverallPerformance
    by_content_type: list[ContentTypePerformance]
    recent_trend: RecentTrend
