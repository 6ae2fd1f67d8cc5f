"""커스텀 예외 클래스 정의"""


class BaseAppError(Exception):
    """애플리케이션 기본 예외 클래스"""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class GeminiServiceUnavailableError(BaseAppError):
    """Gemini API 서비스 일시적 과부하 에러 (503)"""

    def __init__(self, message: str = "Gemini API가 일시적으로 과부하 상태입니다. 잠시 후 다시 시도해주세요."):
        super().__init__(message, status_code=503)


class GeminiAPIKeyError(BaseAppError):
    """Gemini API 키 관련 에러 (403)"""

    def __init__(self, message: str = "Gemini API 키 문제로 문제 생성에 실패했습니다. 관리자에게 문의하세요."):
        super().__init__(message, status_code=403)


class QuestionNotFoundError(BaseAppError):
    """문제를 찾을 수 없을 때 발생하는 예외 (404)"""

    def __init__(self, question_id: int):
        super().__init__(f"문제를 찾을 수 없습니다: {question_id}", status_code=404)


class QuizSessionNotFoundError(BaseAppError):
    """퀴즈 세션을 찾을 수 없을 때 발생하는 예외 (404)"""

    def __init__(self, identifier: int | str):
        super().__init__(f"퀴즈 세션을 찾을 수 없습니다: {identifier}", status_code=404)


class QuizSessionExpiredError(BaseAppError):
    """세션 제한 시간이 지났을 때 발생하는 예외 (410)"""

    def __init__(self, identifier: int | str):
        super().__init__(f"만료된 퀴즈 세션입니다: {identifier}", status_code=410)


class WrongSessionTypeError(BaseAppError):
    """세션 유형에 맞지 않는 작업일 때 발생하는 예외 (400)"""

    def __init__(self, message: str = "클래스 세션에서만 문제를 방송할 수 있습니다"):
        super().__init__(message, status_code=400)


class NotSessionOwnerError(BaseAppError):
    """세션 생성자가 아닐 때 발생하는 예외 (403)"""

    def __init__(self, message: str = "세션 생성자만 이 작업을 수행할 수 있습니다"):
        super().__init__(message, status_code=403)


class ForbiddenError(BaseAppError):
    """권한이 없을 때 발생하는 예외 (403)"""

    def __init__(self, message: str = "이 작업을 수행할 권한이 없습니다"):
        super().__init__(message, status_code=403)


class QuestionAlreadyReservedError(BaseAppError):
    """다른 세션에서 이미 사용 중인 문제일 때 발생하는 예외 (409)"""

    def __init__(self, question_id: int):
        super().__init__(f"다른 세션에서 사용 중인 문제입니다: {question_id}", status_code=409)


class NoActiveQuestionError(BaseAppError):
    """방송 중인 문제가 없을 때 발생하는 예외 (409)"""

    def __init__(self, message: str = "현재 진행 중인 문제가 없습니다"):
        super().__init__(message, status_code=409)


class DuplicateSubmissionError(BaseAppError):
    """이미 답안을 제출했을 때 발생하는 예외 (409)"""

    def __init__(self, question_id: int):
        super().__init__(f"이미 답안이 제출되었습니다: question_id={question_id}", status_code=409)


class InvalidInputError(BaseAppError):
    """잘못된 입력일 때 발생하는 예외 (400)"""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class CodeAllocationError(BaseAppError):
    """세션 코드 발급 재시도 횟수를 초과했을 때 발생하는 예외 (503)"""

    def __init__(self, attempts: int):
        super().__init__(
            f"세션 코드 발급에 실패했습니다 (시도 {attempts}회). 잠시 후 다시 시도해주세요.",
            status_code=503,
        )
