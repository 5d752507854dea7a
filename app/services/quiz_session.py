"""퀴즈 풀이 세션 상태 머신

한 사용자의 한 번의 퀴즈 응시를 추적하는 클라이언트 측 객체입니다. UI 계층에는 이 객체를
직접 넘겨 사용하며, 전역 상태나 특정 UI 프레임워크에 의존하지 않습니다.

상태 전이:
    LOADING → READY → IN_PROGRESS → SUBMITTING → SUBMITTED
                                        ↓
                                      FAILED → (resume) IN_PROGRESS

- 타이머는 IN_PROGRESS 진입 시점(첫 문제 표시)에 시작하므로 생성 대기 시간은 포함되지 않습니다.
- 문제 간 이동은 순서와 횟수에 제한이 없고, 같은 문제를 다시 선택하면 이전 선택을 덮어씁니다.
- 제출은 어느 문제에서든 가능하며, 선택하지 않은 문제는 -1(미응답)로 제출됩니다.
- 제출 실패 시 답안은 그대로 유지되어 다시 제출할 수 있습니다 (자동 재제출 없음).
- 취소하면 메모리의 답안을 모두 버리며 응시 기록은 만들어지지 않습니다.
"""
import logging
import time
from collections.abc import Awaitable, Callable
from enum import Enum

from app.exceptions import InvalidQuizRequestError, InvalidSessionStateError
from app.schemas import quiz as quiz_schema

logger = logging.getLogger(__name__)

UNANSWERED = -1

Grader = Callable[[quiz_schema.QuizSubmitRequest], Awaitable[quiz_schema.QuizResultResponse]]


class QuizSessionState(str, Enum):
    LOADING = "loading"
    READY = "ready"
    IN_PROGRESS = "in_progress"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    FAILED = "failed"
    CANCELLED = "cancelled"


class QuizSession:
    """퀴즈 1회 응시 세션"""

    def __init__(self, user_id: int, clock: Callable[[], float] = time.monotonic):
        self.user_id = user_id
        self.state = QuizSessionState.LOADING
        self.quiz: quiz_schema.QuizResponse | None = None
        self.questions: list[quiz_schema.QuestionResponse] = []
        self.current_index = 0
        self.time_taken_seconds: int | None = None
        self.result: quiz_schema.QuizResultResponse | None = None
        self.last_error: Exception | None = None
        self._clock = clock
        self._started_at: float | None = None
        self._selections: dict[int, int] = {}

    def _require(self, action: str, *states: QuizSessionState) -> None:
        if self.state not in states:
            raise InvalidSessionStateError(action, self.state.value)

    # 로딩 / 시작

    def load(self, detail: quiz_schema.QuizDetailResponse) -> None:
        """생성/조회된 퀴즈를 세션에 적재 (LOADING → READY)"""
        self._require("load", QuizSessionState.LOADING)
        if not detail.questions:
            raise InvalidQuizRequestError("문제가 없는 퀴즈는 시작할 수 없습니다")
        self.quiz = detail.quiz
        self.questions = sorted(detail.questions, key=lambda q: q.position)
        self.state = QuizSessionState.READY

    def start(self) -> None:
        """첫 문제 진입 (READY → IN_PROGRESS), 이 시점부터 경과 시간 측정"""
        self._require("start", QuizSessionState.READY)
        self.current_index = 0
        self._started_at = self._clock()
        self.state = QuizSessionState.IN_PROGRESS
        logger.debug(f"퀴즈 세션 시작: quiz_id={self.quiz.id}, user_id={self.user_id}")

    # 풀이 중 동작

    @property
    def current_question(self) -> quiz_schema.QuestionResponse | None:
        if not self.questions:
            return None
        return self.questions[self.current_index]

    @property
    def is_last_question(self) -> bool:
        return bool(self.questions) and self.current_index == len(self.questions) - 1

    @property
    def answered_count(self) -> int:
        return len(self._selections)

    @property
    def elapsed_seconds(self) -> int:
        """현재까지 경과 시간 (제출 후에는 제출 시점 기준)"""
        if self.time_taken_seconds is not None and self.state != QuizSessionState.IN_PROGRESS:
            return self.time_taken_seconds
        if self._started_at is None:
            return 0
        return round(self._clock() - self._started_at)

    def selection_for(self, question_id: int) -> int | None:
        """문제의 현재 선택 (선택하지 않았으면 None)"""
        return self._selections.get(question_id)

    def select(self, question_id: int, option_index: int) -> None:
        """선택지 선택 (이전 선택은 덮어씀)"""
        self._require("select", QuizSessionState.IN_PROGRESS)
        if not any(q.id == question_id for q in self.questions):
            raise InvalidQuizRequestError(f"퀴즈에 없는 문제입니다: {question_id}")
        if not 0 <= option_index <= 3:
            raise InvalidQuizRequestError(f"선택지 인덱스는 0-3이어야 합니다: {option_index}")
        self._selections[question_id] = option_index

    def select_current(self, option_index: int) -> None:
        """현재 문제의 선택지 선택"""
        self.select(self.current_question.id, option_index)

    def go_to(self, index: int) -> None:
        """특정 문제로 이동 (문제 번호 점 네비게이션)"""
        self._require("go_to", QuizSessionState.IN_PROGRESS)
        if not 0 <= index < len(self.questions):
            raise InvalidQuizRequestError(f"문제 번호가 범위를 벗어났습니다: {index}")
        self.current_index = index

    def next(self) -> None:
        self._require("next", QuizSessionState.IN_PROGRESS)
        if self.current_index < len(self.questions) - 1:
            self.go_to(self.current_index + 1)

    def previous(self) -> None:
        self._require("previous", QuizSessionState.IN_PROGRESS)
        if self.current_index > 0:
            self.go_to(self.current_index - 1)

    # 제출

    def begin_submit(self) -> quiz_schema.QuizSubmitRequest:
        """제출 시작 (IN_PROGRESS → SUBMITTING), 타이머를 멈추고 제출 요청 생성"""
        self._require("submit", QuizSessionState.IN_PROGRESS)
        self.time_taken_seconds = round(self._clock() - self._started_at)
        self.state = QuizSessionState.SUBMITTING
        return quiz_schema.QuizSubmitRequest(
            user_id=self.user_id,
            answers=[
                quiz_schema.AnswerSubmission(
                    question_id=q.id,
                    selected=self._selections.get(q.id, UNANSWERED),
                )
                for q in self.questions
            ],
            time_taken_seconds=self.time_taken_seconds,
        )

    def complete(self, result: quiz_schema.QuizResultResponse) -> None:
        """채점/저장 성공 (SUBMITTING → SUBMITTED), 세션의 답안은 폐기"""
        self._require("complete", QuizSessionState.SUBMITTING)
        self.result = result
        self.last_error = None
        self._selections = {}
        self.state = QuizSessionState.SUBMITTED

    def fail(self, error: Exception) -> None:
        """채점/저장 실패 (SUBMITTING → FAILED), 답안은 유지"""
        self._require("fail", QuizSessionState.SUBMITTING)
        self.last_error = error
        self.state = QuizSessionState.FAILED
        logger.warning(
            f"퀴즈 제출 실패: quiz_id={self.quiz.id}, user_id={self.user_id}, "
            f"에러={error.__class__.__name__}"
        )

    def resume(self) -> None:
        """실패 후 재시도 가능 상태로 복귀 (FAILED → IN_PROGRESS)"""
        self._require("resume", QuizSessionState.FAILED)
        self.time_taken_seconds = None
        self.state = QuizSessionState.IN_PROGRESS

    async def submit(self, grader: Grader) -> quiz_schema.QuizResultResponse:
        """제출 실행: 실패하면 IN_PROGRESS로 돌아가고 예외를 그대로 전파"""
        request = self.begin_submit()
        try:
            result = await grader(request)
        except Exception as e:
            self.fail(e)
            self.resume()
            raise
        self.complete(result)
        return result

    def cancel(self) -> None:
        """세션 포기: 메모리의 답안을 모두 버림 (응시 기록 생성 없음)"""
        if self.state in (QuizSessionState.SUBMITTING, QuizSessionState.SUBMITTED):
            raise InvalidSessionStateError("cancel", self.state.value)
        self._selections = {}
        self._started_at = None
        self.state = QuizSessionState.CANCELLED
