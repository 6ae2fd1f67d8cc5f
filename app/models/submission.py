from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class Submission(Base):
    __tablename__ = "quiz_submissions"

    id: Mapped[int] = mapped_column(primary_key=True)
    session_id: Mapped[int] = mapped_column(ForeignKey("quiz_sessions.id"), nullable=False, index=True)
    question_id: Mapped[int] = mapped_column(ForeignKey("questions.id"), nullable=False)
    student_identity: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    student_name: Mapped[str | None] = mapped_column(String(255), default=None)
    selected_option: Mapped[int] = mapped_column(Integer, nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    time_taken: Mapped[float] = mapped_column(Float, nullable=False)  # 문제 시작부터 제출까지 (초)
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        # 세션/문제/학생당 제출 1회 (중복 제출 방지는 DB 제약으로만 보장)
        UniqueConstraint("session_id", "question_id", "student_identity", name="uq_quiz_submissions_answer"),
    )
