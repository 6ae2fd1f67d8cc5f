from datetime import datetime
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.submission import Submission


async def create_submission(
    session: AsyncSession,
    quiz_session_id: int,
    question_id: int,
    student_identity: str,
    selected_option: int,
    is_correct: bool,
    time_taken: float,
    submitted_at: datetime,
    student_name: str | None = None,
) -> Submission:
    """제출 기록 생성

    (session_id, question_id, student_identity) 유니크 제약 위반 시 flush에서 IntegrityError 발생
    """
    submission = Submission(
        session_id=quiz_session_id,
        question_id=question_id,
        student_identity=student_identity,
        student_name=student_name,
        selected_option=selected_option,
        is_correct=is_correct,
        time_taken=time_taken,
        submitted_at=submitted_at,
    )
    session.add(submission)
    await session.flush()
    return submission


async def get_submission(
    session: AsyncSession,
    quiz_session_id: int,
    question_id: int,
    student_identity: str,
) -> Submission | None:
    """세션/문제/학생 기준 제출 기록 조회"""
    stmt = select(Submission).where(
        Submission.session_id == quiz_session_id,
        Submission.question_id == question_id,
        Submission.student_identity == student_identity,
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_submissions_by_session(session: AsyncSession, quiz_session_id: int) -> Sequence[Submission]:
    """세션 제출 기록 조회 (제출 순)"""
    stmt = (
        select(Submission)
        .where(Submission.session_id == quiz_session_id)
        .order_by(Submission.submitted_at, Submission.id)
    )
    result = await session.execute(stmt)
    return result.scalars().all()
