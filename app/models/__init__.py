from app.models.base import Base, get_db
from app.models.question import Question
from app.models.quiz_session import (
    ClassQuizSession,
    QuizSession,
    QuizSessionBroadcast,
    SessionParticipant,
    SessionStatus,
    SessionType,
    SingleQuizSession,
)
from app.models.submission import Submission

__all__ = [
    "Base",
    "Question",
    "QuizSession",
    "SingleQuizSession",
    "ClassQuizSession",
    "QuizSessionBroadcast",
    "SessionParticipant",
    "SessionStatus",
    "SessionType",
    "Submission",
    "get_db",
]
