from app.schemas.ai import (
    AIQuestion,
    AIQuizGenerationRequest,
    AIQuizGenerationResponse,
)
from app.schemas.analysis import (
    AnalysisResult,
    ContentType,
    SolutionStep,
)
from app.schemas.performance import (
    AttemptDetailResponse,
    AttemptHistoryResponse,
    AttemptSummaryResponse,
    ContentTypePerformance,
    OverallPerformance,
    PerformanceResponse,
    RecentTrend,
    TrendPoint,
)
from app.schemas.quiz import (
    AnswerRecordResponse,
    AnswerSubmission,
    QuestionOptionResponse,
    QuestionResponse,
    QuizDetailResponse,
    QuizGenerateRequest,
    QuizResponse,
    QuizResultResponse,
    QuizStatsListResponse,
    QuizStatsResponse,
    QuizSubmitRequest,
)

__all__ = [
    "AnalysisResult",
    "ContentType",
    "SolutionStep",
    "AIQuestion",
    "AIQuizGenerationRequest",
    "AIQuizGenerationResponse",
    "QuizGenerateRequest",
    "QuizResponse",
    "QuestionResponse",
    "QuestionOptionResponse",
    "QuizDetailResponse",
    "AnswerSubmission",
    "QuizSubmitRequest",
    "AnswerRecordResponse",
    "QuizResultResponse",
    "QuizStatsResponse",
    "QuizStatsListResponse",
    "AttemptSummaryResponse",
    "AttemptHistoryResponse",
    "AttemptDetailResponse",
    "OverallPerformance",
    "ContentTypePerformance",
    "TrendPoint",
    "RecentTrend",
    "PerformanceResponse",
]
