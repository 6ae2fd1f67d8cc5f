from datetime import datetime
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.question import Question
from app.models.quiz_session import (
    QuizSession,
    QuizSessionBroadcast,
    SessionParticipant,
    SessionStatus,
)


async def get_session_by_id(session: AsyncSession, quiz_session_id: int) -> QuizSession | None:
    """ID로 퀴즈 세션 조회"""
    result = await session.execute(select(QuizSession).where(QuizSession.id == quiz_session_id))
    return result.scalar_one_or_none()


async def get_live_session_by_code(session: AsyncSession, code: str) -> QuizSession | None:
    """코드로 만료 처리되지 않은 세션 조회"""
    stmt = select(QuizSession).where(
        QuizSession.code == code,
        QuizSession.status != SessionStatus.EXPIRED,
    )
    result = await session.execute(stmt)
    return result.scalars().first()


async def get_session_by_code(session: AsyncSession, code: str) -> QuizSession | None:
    """코드로 세션 조회 (진행 중인 세션 우선, 없으면 가장 최근 만료 세션)"""
    live_session = await get_live_session_by_code(session, code)
    if live_session:
        return live_session

    stmt = (
        select(QuizSession)
        .where(QuizSession.code == code)
        .order_by(QuizSession.id.desc())
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def add_broadcast(
    session: AsyncSession,
    quiz_session_id: int,
    question_id: int,
    broadcasted_at: datetime,
) -> QuizSessionBroadcast:
    """방송 이력 추가"""
    broadcast = QuizSessionBroadcast(
        session_id=quiz_session_id,
        question_id=question_id,
        broadcasted_at=broadcasted_at,
    )
    session.add(broadcast)
    await session.flush()
    return broadcast


async def get_broadcasts(session: AsyncSession, quiz_session_id: int) -> Sequence[QuizSessionBroadcast]:
    """세션 방송 이력 조회 (방송 순)"""
    stmt = (
        select(QuizSessionBroadcast)
        .where(QuizSessionBroadcast.session_id == quiz_session_id)
        .order_by(QuizSessionBroadcast.broadcasted_at, QuizSessionBroadcast.id)
    )
    result = await session.execute(stmt)
    return result.scalars().all()


async def get_latest_broadcast(
    session: AsyncSession,
    quiz_session_id: int,
    question_id: int,
) -> QuizSessionBroadcast | None:
    """특정 문제의 가장 최근 방송 이력 조회"""
    stmt = (
        select(QuizSessionBroadcast)
        .where(
            QuizSessionBroadcast.session_id == quiz_session_id,
            QuizSessionBroadcast.question_id == question_id,
        )
        .order_by(QuizSessionBroadcast.broadcasted_at.desc(), QuizSessionBroadcast.id.desc())
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_participant(
    session: AsyncSession,
    quiz_session_id: int,
    student_identity: str,
) -> SessionParticipant | None:
    stmt = select(SessionParticipant).where(
        SessionParticipant.session_id == quiz_session_id,
        SessionParticipant.student_identity == student_identity,
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def add_participant(
    session: AsyncSession,
    quiz_session_id: int,
    student_identity: str,
    student_name: str | None,
    joined_at: datetime,
) -> bool:
    """참여 학생 추가 (이미 있으면 무시, 추가했으면 True)"""
    if await get_participant(session, quiz_session_id, student_identity):
        return False

    participant = SessionParticipant(
        session_id=quiz_session_id,
        student_identity=student_identity,
        student_name=student_name,
        joined_at=joined_at,
    )
    try:
        async with session.begin_nested():
            session.add(participant)
    except IntegrityError:
        # 동시 참여 요청이 먼저 추가한 경우
        return False
    return True


async def get_participants(session: AsyncSession, quiz_session_id: int) -> Sequence[SessionParticipant]:
    """참여 학생 목록 (참여 순)"""
    stmt = (
        select(SessionParticipant)
        .where(SessionParticipant.session_id == quiz_session_id)
        .order_by(SessionParticipant.joined_at, SessionParticipant.id)
    )
    result = await session.execute(stmt)
    return result.scalars().all()


async def get_stale_sessions(session: AsyncSession, now: datetime) -> Sequence[QuizSession]:
    """제한 시간이 지났지만 아직 만료 처리되지 않은 세션 조회"""
    stmt = select(QuizSession).where(
        QuizSession.status != SessionStatus.EXPIRED,
        QuizSession.expires_at <= now,
    )
    result = await session.execute(stmt)
    return result.scalars().all()


async def get_stale_reservation_holders(
    session: AsyncSession,
    course_id: str,
    now: datetime,
) -> Sequence[QuizSession]:
    """과목 문제를 점유한 채 제한 시간이 지났지만 아직 만료 처리되지 않은 세션 조회"""
    stmt = (
        select(QuizSession)
        .join(Question, Question.reserved_by_session_id == QuizSession.id)
        .where(
            Question.course_id == course_id,
            QuizSession.status != SessionStatus.EXPIRED,
            QuizSession.expires_at <= now,
        )
        .distinct()
    )
    result = await session.execute(stmt)
    return result.scalars().all()


async def count_sessions_by_status(session: AsyncSession) -> dict[str, int]:
    """상태별 세션 개수"""
    stmt = select(QuizSession.status, func.count(QuizSession.id)).group_by(QuizSession.status)
    result = await session.execute(stmt)
    return {row[0]: row[1] for row in result.all()}
