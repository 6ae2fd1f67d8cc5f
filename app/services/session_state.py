"""퀴즈 세션 상태 판정 (지연 만료)

세션 상태는 조회 시점의 시각으로 판정한다. 백그라운드 정리 작업도 같은 observe()를 사용한다.
"""
import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.crud import question as question_crud
from app.exceptions import QuizSessionExpiredError
from app.models.quiz_session import QuizSession, SessionStatus
from app.utils.time import as_utc

logger = logging.getLogger(__name__)


def status_at(quiz_session: QuizSession, now: datetime) -> str:
    """주어진 시각 기준 세션 상태 (DB 변경 없음)"""
    if quiz_session.status == SessionStatus.EXPIRED:
        return SessionStatus.EXPIRED
    if as_utc(now) >= as_utc(quiz_session.expires_at):
        return SessionStatus.EXPIRED
    return quiz_session.status


def remaining_seconds(quiz_session: QuizSession, now: datetime) -> int:
    """남은 시간 (초, 만료 시 0)"""
    if status_at(quiz_session, now) == SessionStatus.EXPIRED:
        return 0
    remaining = (as_utc(quiz_session.expires_at) - as_utc(now)).total_seconds()
    return max(0, int(remaining))


async def observe(session: AsyncSession, quiz_session: QuizSession, now: datetime) -> str:
    """세션 상태를 판정하고, 시간이 지났으면 만료 처리 후 점유 문제를 해제한다 (flush만 수행)"""
    status = status_at(quiz_session, now)
    if status == SessionStatus.EXPIRED and quiz_session.status != SessionStatus.EXPIRED:
        quiz_session.status = SessionStatus.EXPIRED
        released = await question_crud.release_session_questions(session, quiz_session.id)
        await session.flush()
        logger.info(
            f"세션 만료 처리: session_id={quiz_session.id}, code={quiz_session.code}, "
            f"released_questions={released}"
        )
    return status


async def observe_active(session: AsyncSession, quiz_session: QuizSession, now: datetime) -> str:
    """observe() 후 만료 상태면 만료 처리를 커밋하고 QuizSessionExpiredError 발생"""
    status = await observe(session, quiz_session, now)
    if status == SessionStatus.EXPIRED:
        await session.commit()
        raise QuizSessionExpiredError(quiz_session.code)
    return status
