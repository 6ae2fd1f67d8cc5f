from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin


class SessionType:
    SINGLE = "single"
    CLASS = "class"


class SessionStatus:
    WAITING = "waiting"
    ACTIVE = "active"
    EXPIRED = "expired"


_LIVE_CODE_WHERE = text("status <> 'expired'")


class QuizSession(Base, TimestampMixin):
    """퀴즈 세션 공통 필드 (session_type으로 단일/클래스 세션 구분)"""
    __tablename__ = "quiz_sessions"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    session_type: Mapped[str] = mapped_column(String(16), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)  # 초 단위
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, index=True)  # 'waiting', 'active', 'expired'
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_by_name: Mapped[str | None] = mapped_column(String(255), default=None)
    course_id: Mapped[str] = mapped_column(String(64), nullable=False)

    __table_args__ = (
        # 만료되지 않은 세션끼리만 코드 중복 금지 (만료된 세션의 코드는 재사용 가능)
        Index(
            "uq_quiz_sessions_live_code",
            "code",
            unique=True,
            postgresql_where=_LIVE_CODE_WHERE,
            sqlite_where=_LIVE_CODE_WHERE,
        ),
        Index("ix_quiz_sessions_status_expires_at", "status", "expires_at"),
    )
    __mapper_args__ = {"polymorphic_on": "session_type"}


class SingleQuizSession(QuizSession):
    """단일 문제 세션: 생성 시 고정된 문제 1개, 생성 즉시 active"""
    question_id: Mapped[int | None] = mapped_column(ForeignKey("questions.id"), nullable=True)

    __mapper_args__ = {"polymorphic_identity": SessionType.SINGLE, "polymorphic_load": "inline"}


class ClassQuizSession(QuizSession):
    """클래스 세션: waiting으로 시작, 방송된 문제가 바뀌며 진행"""
    active_question_id: Mapped[int | None] = mapped_column(ForeignKey("questions.id"), nullable=True)

    __mapper_args__ = {"polymorphic_identity": SessionType.CLASS, "polymorphic_load": "inline"}


class QuizSessionBroadcast(Base):
    """클래스 세션 문제 방송 이력 (추가만 가능)"""
    __tablename__ = "quiz_session_broadcasts"

    id: Mapped[int] = mapped_column(primary_key=True)
    session_id: Mapped[int] = mapped_column(ForeignKey("quiz_sessions.id"), nullable=False, index=True)
    question_id: Mapped[int] = mapped_column(ForeignKey("questions.id"), nullable=False)
    broadcasted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class SessionParticipant(Base):
    """클래스 세션 참여 학생"""
    __tablename__ = "quiz_session_participants"

    id: Mapped[int] = mapped_column(primary_key=True)
    session_id: Mapped[int] = mapped_column(ForeignKey("quiz_sessions.id"), nullable=False, index=True)
    student_identity: Mapped[str] = mapped_column(String(255), nullable=False)
    student_name: Mapped[str | None] = mapped_column(String(255), default=None)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("session_id", "student_identity", name="uq_quiz_session_participants_student"),
    )
