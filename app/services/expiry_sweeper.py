import asyncio
import logging

from app.models.base import get_async_session_maker
from app.services import session_service

logger = logging.getLogger(__name__)


async def sweep_once() -> int:
    """만료 대상 세션 1회 정리"""
    async with get_async_session_maker()() as session:
        return await session_service.expire_stale_sessions(session)


async def run_expiry_sweeper(interval_seconds: int) -> None:
    """주기적으로 만료 세션 정리 (실패해도 다음 주기에 재시도)"""
    logger.info(f"세션 만료 정리 작업 시작: interval={interval_seconds}s")
    while True:
        try:
            expired = await sweep_once()
            if expired:
                logger.info(f"만료 처리된 세션: {expired}개")
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("세션 만료 정리 작업 실패")
        await asyncio.sleep(interval_seconds)
