import json
import logging
import re
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.crud import question as question_crud, quiz_session as quiz_session_crud
from app.exceptions import (
    ForbiddenError,
    InvalidInputError,
    QuestionAlreadyReservedError,
    QuestionNotFoundError,
)
from app.models.question import Question
from app.models.quiz_session import SessionStatus
from app.schemas import ai, question as question_schema
from app.schemas.user import CurrentUser
from app.services import ai_service
from app.services.session_state import observe
from app.utils.time import utcnow

logger = logging.getLogger(__name__)

# AI 문제 생성 소스 텍스트 길이 제한
MIN_SOURCE_TEXT_LENGTH = 50
MAX_SOURCE_TEXT_LENGTH = 6000


def _require_author(user: CurrentUser) -> None:
    if not user.can_manage_sessions:
        raise ForbiddenError("문제 관리는 강사 또는 관리자만 가능합니다")


def normalize_source_text(source_text: str) -> str:
    """공백 정리 후 길이 검증 (최대 길이 초과분은 잘라냄)"""
    normalized = re.sub(r"\s+", " ", source_text).strip()
    if len(normalized) < MIN_SOURCE_TEXT_LENGTH:
        raise InvalidInputError(
            f"본문이 너무 짧습니다. 최소 {MIN_SOURCE_TEXT_LENGTH}자 이상 입력해주세요."
        )
    return normalized[:MAX_SOURCE_TEXT_LENGTH]


async def get_question(session: AsyncSession, question_id: int) -> Question:
    """문제 조회 (없으면 QuestionNotFoundError)"""
    question = await question_crud.get_question_by_id(session, question_id)
    if not question:
        raise QuestionNotFoundError(question_id)
    return question


async def create_question(
    session: AsyncSession,
    request: question_schema.QuestionCreateRequest,
    user: CurrentUser,
) -> question_schema.QuestionResponse:
    """문제 직접 작성"""
    _require_author(user)

    question = await question_crud.create_question(
        session,
        course_id=request.course_id,
        question=request.question,
        options=json.dumps(request.options, ensure_ascii=False),
        correct_answer=request.correct_answer,
        explanation=request.explanation,
        difficulty=request.difficulty,
        source="manual",
        created_by=user.identity,
        created_by_name=user.name,
    )
    await session.commit()
    await session.refresh(question)

    logger.info(f"문제 작성: question_id={question.id}, course_id={request.course_id}")
    return question_schema.QuestionResponse.model_validate(question)


async def generate_question(
    session: AsyncSession,
    request: question_schema.QuestionGenerateRequest,
    user: CurrentUser,
) -> question_schema.QuestionResponse:
    """AI로 문제 생성 후 저장"""
    _require_author(user)

    source_text = normalize_source_text(request.source_text)
    ai_response = await ai_service.generate_question(
        ai.AIQuestionGenerationRequest(source_text=source_text, difficulty=request.difficulty)
    )

    question = await question_crud.create_question(
        session,
        course_id=request.course_id,
        question=ai_response.question,
        options=ai_response.options_json,
        correct_answer=ai_response.correct_answer,
        explanation=ai_response.explanation,
        difficulty=request.difficulty,
        source="ai",
        created_by=user.identity,
        created_by_name=user.name,
    )
    await session.commit()
    await session.refresh(question)

    logger.info(f"AI 문제 생성: question_id={question.id}, course_id={request.course_id}")
    return question_schema.QuestionResponse.model_validate(question)


async def list_questions(
    session: AsyncSession,
    course_id: str,
    user: CurrentUser,
) -> question_schema.QuestionListResponse:
    """과목별 전체 문제 목록 (사용 현황 포함)"""
    _require_author(user)
    questions = await question_crud.get_questions_by_course(session, course_id)
    responses = [question_schema.QuestionResponse.model_validate(q) for q in questions]
    return question_schema.QuestionListResponse(questions=responses, total=len(responses))


async def list_available_questions(
    session: AsyncSession,
    course_id: str,
    user: CurrentUser,
    now: datetime | None = None,
) -> question_schema.QuestionListResponse:
    """다른 세션에서 사용 중이지 않은 문제 목록 (오래 안 쓴 문제 우선)

    시간이 지난 세션이 점유한 문제는 해당 세션을 만료 처리한 뒤 목록에 포함한다.
    """
    now = now or utcnow()
    _require_author(user)

    stale_holders = await quiz_session_crud.get_stale_reservation_holders(session, course_id, now)
    for holder in stale_holders:
        await observe(session, holder, now)
    if stale_holders:
        await session.commit()

    questions = await question_crud.get_available_questions(session, course_id)
    responses = [question_schema.QuestionResponse.model_validate(q) for q in questions]
    return question_schema.QuestionListResponse(questions=responses, total=len(responses))


async def get_question_detail(
    session: AsyncSession,
    question_id: int,
    user: CurrentUser,
) -> question_schema.QuestionResponse:
    """문제 상세 (정답 포함)"""
    _require_author(user)
    question = await get_question(session, question_id)
    return question_schema.QuestionResponse.model_validate(question)


async def reserve_question(
    session: AsyncSession,
    question_id: int,
    quiz_session_id: int,
    now: datetime | None = None,
) -> None:
    """문제 점유 (다른 세션이 점유 중이면 QuestionAlreadyReservedError, 상태 변경 없음)

    점유 중인 세션의 제한 시간이 지났으면 그 세션을 만료 처리(점유 해제)한 뒤 한 번 더 시도한다.
    """
    now = now or utcnow()
    if await question_crud.reserve_question(session, question_id, quiz_session_id):
        return

    holder_id = await question_crud.get_reservation_holder(session, question_id)
    if holder_id is None:
        if await question_crud.get_question_by_id(session, question_id) is None:
            raise QuestionNotFoundError(question_id)
        raise QuestionAlreadyReservedError(question_id)

    holder = await quiz_session_crud.get_session_by_id(session, holder_id)
    if holder is not None and await observe(session, holder, now) == SessionStatus.EXPIRED:
        # 이미 만료 상태로 저장된 세션이 점유를 남긴 경우도 해제
        await question_crud.release_question(session, question_id)
        if await question_crud.reserve_question(session, question_id, quiz_session_id):
            logger.info(
                f"만료된 세션의 점유 문제 재점유: question_id={question_id}, "
                f"previous_session_id={holder_id}, session_id={quiz_session_id}"
            )
            return

    raise QuestionAlreadyReservedError(question_id)
