"""커스텀 예외 클래스 정의"""


class BaseAppError(Exception):
    """애플리케이션 기본 예외 클래스"""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class QuizGenerationFailedError(BaseAppError):
    """퀴즈 생성 실패 (502): AI 호출 오류 또는 사용 가능한 문제 0개"""

    def __init__(self, message: str = "퀴즈 생성에 실패했습니다. 잠시 후 다시 시도해주세요.", status_code: int = 502):
        super().__init__(message, status_code=status_code)


class GeminiServiceUnavailableError(QuizGenerationFailedError):
    """Gemini API 서비스 일시적 과부하 에러 (503)"""

    def __init__(self, message: str = "Gemini API가 일시적으로 과부하 상태입니다. 잠시 후 다시 시도해주세요."):
        super().__init__(message, status_code=503)


class GeminiAPIKeyError(QuizGenerationFailedError):
    """Gemini API 키 관련 에러 (403)"""

    def __init__(self, message: str = "Gemini API 키 문제로 퀴즈 생성에 실패했습니다. 관리자에게 문의하세요."):
        super().__init__(message, status_code=403)


class QuizNotFoundError(BaseAppError):
    """퀴즈를 찾을 수 없거나 요청한 사용자의 퀴즈가 아닐 때 (404)"""

    def __init__(self, quiz_id: int):
        super().__init__(f"퀴즈를 찾을 수 없습니다: {quiz_id}", status_code=404)


class AttemptNotFoundError(BaseAppError):
    """응시 기록을 찾을 수 없거나 요청한 사용자의 기록이 아닐 때 (404)"""

    def __init__(self, attempt_id: int):
        super().__init__(f"응시 기록을 찾을 수 없습니다: {attempt_id}", status_code=404)


class InvalidQuizRequestError(BaseAppError):
    """잘못된 퀴즈 요청일 때 발생하는 예외 (400)"""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class InvalidAnswerReferenceError(BaseAppError):
    """제출 답안이 해당 퀴즈에 속하지 않는 문제를 참조할 때 (400)"""

    def __init__(self, quiz_id: int, question_ids: list[int]):
        self.quiz_id = quiz_id
        self.question_ids = question_ids
        super().__init__(
            f"퀴즈({quiz_id})에 속하지 않는 문제가 답안에 포함되어 있습니다: {question_ids}",
            status_code=400,
        )


class PersistenceFailureError(BaseAppError):
    """트랜잭션 커밋 실패 (503): 저장소 장애 또는 제약 조건 위반"""

    def __init__(self, message: str = "저장 중 오류가 발생했습니다. 답안은 유지되니 다시 제출해주세요."):
        super().__init__(message, status_code=503)


class InvalidSessionStateError(BaseAppError):
    """퀴즈 세션 상태에서 허용되지 않는 동작 (409)"""

    def __init__(self, action: str, state: str):
        self.action = action
        self.state = state
        super().__init__(f"현재 세션 상태({state})에서는 '{action}'을(를) 할 수 없습니다", status_code=409)
