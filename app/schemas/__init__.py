from app.schemas.ai import (
    AIQuestionGenerationRequest,
    AIQuestionGenerationResponse,
)
from app.schemas.question import (
    QuestionCreateRequest,
    QuestionGenerateRequest,
    QuestionListResponse,
    QuestionResponse,
    StudentQuestionResponse,
)
from app.schemas.quiz_session import (
    BroadcastRequest,
    BroadcastResponse,
    JoinRequest,
    ParticipantResponse,
    QuizSessionCreateRequest,
    QuizSessionDetailResponse,
    QuizSessionResponse,
    SessionStatsResponse,
    StudentSessionView,
)
from app.schemas.submission import (
    QuestionResultSummary,
    SessionResultsResponse,
    SubmissionRecordResponse,
    SubmitAnswerRequest,
    SubmitAnswerResponse,
)
from app.schemas.user import CurrentUser

__all__ = [
    "AIQuestionGenerationRequest",
    "AIQuestionGenerationResponse",
    "QuestionCreateRequest",
    "QuestionGenerateRequest",
    "QuestionResponse",
    "QuestionListResponse",
    "StudentQuestionResponse",
    "QuizSessionCreateRequest",
    "BroadcastRequest",
    "JoinRequest",
    "QuizSessionResponse",
    "QuizSessionDetailResponse",
    "BroadcastResponse",
    "ParticipantResponse",
    "StudentSessionView",
    "SessionStatsResponse",
    "SubmitAnswerRequest",
    "SubmitAnswerResponse",
    "SubmissionRecordResponse",
    "QuestionResultSummary",
    "SessionResultsResponse",
    "CurrentUser",
]
