import logging
import random
import re
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.crud import quiz_session as quiz_session_crud
from app.exceptions import CodeAllocationError, InvalidInputError
from app.models.quiz_session import SessionStatus, SessionType
from app.services.session_state import observe

logger = logging.getLogger(__name__)

CLASS_CODE_PREFIX = "CS_"
MAX_CODE_ATTEMPTS = 20

CODE_PATTERNS = {
    SessionType.SINGLE: re.compile(r"^\d{6}$"),
    SessionType.CLASS: re.compile(r"^CS_\d{6}$"),
}


def generate_code(session_type: str) -> str:
    """세션 코드 후보 생성 (single: 6자리 숫자, class: CS_ + 6자리 숫자)"""
    digits = str(random.randint(100000, 999999))
    if session_type == SessionType.CLASS:
        return f"{CLASS_CODE_PREFIX}{digits}"
    return digits


def code_session_type(code: str) -> str | None:
    """코드 형식으로 세션 유형 판별 (형식이 맞지 않으면 None)"""
    for session_type, pattern in CODE_PATTERNS.items():
        if pattern.fullmatch(code):
            return session_type
    return None


def validate_code(code: str) -> str:
    """코드 형식 검증 후 앞뒤 공백을 제거한 코드 반환"""
    normalized = code.strip()
    if code_session_type(normalized) is None:
        raise InvalidInputError(f"잘못된 세션 코드 형식입니다: {code}")
    return normalized


async def allocate_code(
    session: AsyncSession,
    session_type: str,
    now: datetime,
    max_attempts: int = MAX_CODE_ATTEMPTS,
) -> str:
    """만료되지 않은 세션과 겹치지 않는 코드 발급

    같은 코드의 세션이 시간이 지난 상태로 남아 있으면 만료 처리 후 코드를 재사용한다.
    최종 중복 방지는 quiz_sessions의 부분 유니크 인덱스가 담당한다.
    """
    for attempt in range(max_attempts):
        candidate = generate_code(session_type)
        existing = await quiz_session_crud.get_live_session_by_code(session, candidate)
        if existing is None:
            return candidate
        if await observe(session, existing, now) == SessionStatus.EXPIRED:
            return candidate
        logger.debug(f"세션 코드 충돌: code={candidate}, attempt={attempt + 1}/{max_attempts}")

    logger.error(f"세션 코드 발급 실패: session_type={session_type}, attempts={max_attempts}")
    raise CodeAllocationError(max_attempts)
