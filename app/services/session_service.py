import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud import question as question_crud, quiz_session as quiz_session_crud, submission as submission_crud
from app.exceptions import (
    BaseAppError,
    CodeAllocationError,
    ForbiddenError,
    InvalidInputError,
    NotSessionOwnerError,
    QuizSessionNotFoundError,
    WrongSessionTypeError,
)
from app.models.quiz_session import (
    ClassQuizSession,
    QuizSession,
    SessionStatus,
    SessionType,
    SingleQuizSession,
)
from app.schemas import question as question_schema, quiz_session as quiz_session_schema
from app.schemas.user import CurrentUser
from app.services import code_allocator, question_service
from app.services.session_state import observe, observe_active, remaining_seconds, status_at
from app.utils.time import utcnow

logger = logging.getLogger(__name__)

# 세션 유형별 제한 시간 범위 (초)
DURATION_LIMITS = {
    SessionType.SINGLE: (30, 600),
    SessionType.CLASS: (1800, 10800),
}


def validate_duration(session_type: str, duration: int) -> None:
    """세션 유형별 제한 시간 검증"""
    minimum, maximum = DURATION_LIMITS[session_type]
    if not minimum <= duration <= maximum:
        raise InvalidInputError(
            f"{session_type} 세션의 제한 시간은 {minimum}초 이상 {maximum}초 이하여야 합니다: {duration}"
        )


def to_session_response(
    quiz_session: QuizSession,
    now: datetime,
    response_cls: type[quiz_session_schema.QuizSessionResponse] = quiz_session_schema.QuizSessionResponse,
    **extra,
) -> quiz_session_schema.QuizSessionResponse:
    """QuizSession 모델을 응답 스키마로 변환 (상태는 조회 시각 기준)"""
    return response_cls(
        id=quiz_session.id,
        code=quiz_session.code,
        session_type=quiz_session.session_type,
        duration=quiz_session.duration,
        started_at=quiz_session.started_at,
        expires_at=quiz_session.expires_at,
        status=status_at(quiz_session, now),
        created_by=quiz_session.created_by,
        course_id=quiz_session.course_id,
        question_id=getattr(quiz_session, "question_id", None),
        active_question_id=getattr(quiz_session, "active_question_id", None),
        remaining_seconds=remaining_seconds(quiz_session, now),
        **extra,
    )


def current_question_id(quiz_session: QuizSession) -> int | None:
    """현재 학생에게 보여줄 문제 ID (단일: 고정 문제, 클래스: 방송 중인 문제)"""
    if isinstance(quiz_session, SingleQuizSession):
        return quiz_session.question_id
    if isinstance(quiz_session, ClassQuizSession):
        return quiz_session.active_question_id
    return None


def _require_owner(quiz_session: QuizSession, user: CurrentUser) -> None:
    if quiz_session.created_by != user.identity:
        raise NotSessionOwnerError()


async def get_quiz_session(session: AsyncSession, quiz_session_id: int) -> QuizSession:
    """세션 조회 (없으면 QuizSessionNotFoundError)"""
    quiz_session = await quiz_session_crud.get_session_by_id(session, quiz_session_id)
    if not quiz_session:
        raise QuizSessionNotFoundError(quiz_session_id)
    return quiz_session


def _build_session(
    request: quiz_session_schema.QuizSessionCreateRequest,
    user: CurrentUser,
    code: str,
    now: datetime,
) -> QuizSession:
    common = dict(
        code=code,
        duration=request.duration,
        started_at=now,
        expires_at=now + timedelta(seconds=request.duration),
        created_by=user.identity,
        created_by_name=user.name,
        course_id=request.course_id,
    )
    if request.session_type == SessionType.SINGLE:
        return SingleQuizSession(question_id=request.question_id, status=SessionStatus.ACTIVE, **common)
    return ClassQuizSession(active_question_id=None, status=SessionStatus.WAITING, **common)


async def _insert_session(
    session: AsyncSession,
    request: quiz_session_schema.QuizSessionCreateRequest,
    user: CurrentUser,
    now: datetime,
) -> QuizSession:
    """코드 발급 후 세션 저장 (동시 발급으로 유니크 인덱스에 막히면 다른 코드로 재시도)"""
    for attempt in range(code_allocator.MAX_CODE_ATTEMPTS):
        code = await code_allocator.allocate_code(session, request.session_type, now)
        quiz_session = _build_session(request, user, code, now)
        try:
            async with session.begin_nested():
                session.add(quiz_session)
        except IntegrityError:
            logger.warning(f"세션 코드 동시 발급 충돌, 재시도: code={code}, attempt={attempt + 1}")
            continue
        return quiz_session

    raise CodeAllocationError(code_allocator.MAX_CODE_ATTEMPTS)


async def create_session(
    session: AsyncSession,
    request: quiz_session_schema.QuizSessionCreateRequest,
    user: CurrentUser,
    now: datetime | None = None,
) -> quiz_session_schema.QuizSessionResponse:
    """퀴즈 세션 생성

    single: 지정한 문제를 점유하고 즉시 active
    class: 문제 없이 waiting으로 시작
    """
    now = now or utcnow()
    if not user.can_manage_sessions:
        raise ForbiddenError("퀴즈 세션은 강사 또는 관리자만 생성할 수 있습니다")

    validate_duration(request.session_type, request.duration)

    if request.session_type == SessionType.SINGLE:
        if request.question_id is None:
            raise InvalidInputError("single 세션은 question_id가 필요합니다")
        question = await question_service.get_question(session, request.question_id)
        if question.course_id != request.course_id:
            raise InvalidInputError(f"해당 과목의 문제가 아닙니다: question_id={question.id}")

    try:
        quiz_session = await _insert_session(session, request, user, now)

        if isinstance(quiz_session, SingleQuizSession):
            await question_service.reserve_question(session, quiz_session.question_id, quiz_session.id, now)
            await question_crud.mark_question_used(session, quiz_session.question_id, now)

        await session.commit()
    except BaseAppError:
        await session.rollback()
        raise
    except Exception as e:
        logger.error(f"세션 생성 중 예상치 못한 오류: {e}", exc_info=True)
        await session.rollback()
        raise

    logger.info(
        f"세션 생성: session_id={quiz_session.id}, code={quiz_session.code}, "
        f"type={quiz_session.session_type}, duration={quiz_session.duration}"
    )
    return to_session_response(quiz_session, now)


async def broadcast_question(
    session: AsyncSession,
    quiz_session_id: int,
    question_id: int,
    user: CurrentUser,
    now: datetime | None = None,
) -> quiz_session_schema.QuizSessionResponse:
    """클래스 세션에 문제 방송 (이전 문제 점유 해제 후 새 문제 점유)"""
    now = now or utcnow()
    quiz_session = await get_quiz_session(session, quiz_session_id)
    await observe_active(session, quiz_session, now)

    if not isinstance(quiz_session, ClassQuizSession):
        raise WrongSessionTypeError()
    _require_owner(quiz_session, user)

    question = await question_service.get_question(session, question_id)
    if question.course_id != quiz_session.course_id:
        raise InvalidInputError(f"해당 과목의 문제가 아닙니다: question_id={question_id}")

    previous_question_id = quiz_session.active_question_id
    try:
        if previous_question_id is not None and previous_question_id != question_id:
            await question_crud.release_question(session, previous_question_id)
        await question_service.reserve_question(session, question_id, quiz_session.id, now)
        await quiz_session_crud.add_broadcast(session, quiz_session.id, question_id, now)
        quiz_session.active_question_id = question_id
        quiz_session.status = SessionStatus.ACTIVE
        await question_crud.mark_question_used(session, question_id, now)
        await session.commit()
    except BaseAppError:
        await session.rollback()
        raise
    except Exception as e:
        logger.error(f"문제 방송 중 예상치 못한 오류: {e}, session_id={quiz_session_id}", exc_info=True)
        await session.rollback()
        raise

    logger.info(
        f"문제 방송: session_id={quiz_session.id}, question_id={question_id}, "
        f"previous_question_id={previous_question_id}"
    )
    return to_session_response(quiz_session, now)


async def end_session(
    session: AsyncSession,
    quiz_session_id: int,
    user: CurrentUser,
    now: datetime | None = None,
) -> quiz_session_schema.QuizSessionResponse:
    """세션 종료 (점유 문제 해제, expires_at은 변경하지 않음)"""
    now = now or utcnow()
    quiz_session = await get_quiz_session(session, quiz_session_id)
    _require_owner(quiz_session, user)

    released = await question_crud.release_session_questions(session, quiz_session.id)
    quiz_session.status = SessionStatus.EXPIRED
    await session.commit()

    logger.info(f"세션 종료: session_id={quiz_session.id}, released_questions={released}")
    return to_session_response(quiz_session, now)


async def get_session_detail(
    session: AsyncSession,
    quiz_session_id: int,
    user: CurrentUser,
    now: datetime | None = None,
) -> quiz_session_schema.QuizSessionDetailResponse:
    """세션 상세 (생성자 또는 관리자만)"""
    now = now or utcnow()
    quiz_session = await get_quiz_session(session, quiz_session_id)
    if quiz_session.created_by != user.identity and not user.is_admin:
        raise ForbiddenError("세션 생성자만 조회할 수 있습니다")

    await observe(session, quiz_session, now)
    broadcasts = await quiz_session_crud.get_broadcasts(session, quiz_session.id)
    participants = await quiz_session_crud.get_participants(session, quiz_session.id)
    await session.commit()

    return to_session_response(
        quiz_session,
        now,
        response_cls=quiz_session_schema.QuizSessionDetailResponse,
        questions_history=[quiz_session_schema.BroadcastResponse.model_validate(b) for b in broadcasts],
        students_joined=[quiz_session_schema.ParticipantResponse.model_validate(p) for p in participants],
    )


async def _build_student_view(
    session: AsyncSession,
    quiz_session: QuizSession,
    user: CurrentUser,
    now: datetime,
) -> quiz_session_schema.StudentSessionView:
    """학생용 세션 상태 (대기 / 문제 진행 / 제출 완료)"""
    base = dict(
        session_id=quiz_session.id,
        code=quiz_session.code,
        session_type=quiz_session.session_type,
        course_id=quiz_session.course_id,
        expires_at=quiz_session.expires_at,
        remaining_seconds=remaining_seconds(quiz_session, now),
    )

    question_id = current_question_id(quiz_session)
    if question_id is None:
        return quiz_session_schema.StudentSessionView(status="waiting", **base)

    submitted = await submission_crud.get_submission(session, quiz_session.id, question_id, user.identity)
    if submitted:
        return quiz_session_schema.StudentSessionView(status="submitted", **base)

    question = await question_service.get_question(session, question_id)
    if isinstance(quiz_session, ClassQuizSession):
        broadcast = await quiz_session_crud.get_latest_broadcast(session, quiz_session.id, question_id)
        question_started_at = broadcast.broadcasted_at if broadcast else None
    else:
        question_started_at = quiz_session.started_at

    return quiz_session_schema.StudentSessionView(
        status="active",
        question=question_schema.StudentQuestionResponse.model_validate(question),
        question_started_at=question_started_at,
        **base,
    )


async def _resolve_code(session: AsyncSession, code: str, now: datetime) -> QuizSession:
    normalized = code_allocator.validate_code(code)
    quiz_session = await quiz_session_crud.get_session_by_code(session, normalized)
    if not quiz_session:
        raise QuizSessionNotFoundError(normalized)
    await observe_active(session, quiz_session, now)
    return quiz_session


async def join_session(
    session: AsyncSession,
    code: str,
    user: CurrentUser,
    now: datetime | None = None,
) -> quiz_session_schema.StudentSessionView:
    """코드로 세션 참여 (클래스 세션은 참여 학생 목록에 추가, 중복 참여는 무시)"""
    now = now or utcnow()
    quiz_session = await _resolve_code(session, code, now)

    if isinstance(quiz_session, ClassQuizSession):
        added = await quiz_session_crud.add_participant(
            session, quiz_session.id, user.identity, user.name, now
        )
        if added:
            logger.info(f"세션 참여: session_id={quiz_session.id}, student={user.identity}")

    view = await _build_student_view(session, quiz_session, user, now)
    await session.commit()
    return view


async def poll_session(
    session: AsyncSession,
    code: str,
    user: CurrentUser,
    now: datetime | None = None,
) -> quiz_session_schema.StudentSessionView:
    """세션 상태 재조회 (참여 목록은 변경하지 않음)"""
    now = now or utcnow()
    quiz_session = await _resolve_code(session, code, now)
    view = await _build_student_view(session, quiz_session, user, now)
    await session.commit()
    return view


async def expire_stale_sessions(session: AsyncSession, now: datetime | None = None) -> int:
    """시간이 지난 세션 일괄 만료 처리 (observe와 같은 경로 사용)"""
    now = now or utcnow()
    stale_sessions = await quiz_session_crud.get_stale_sessions(session, now)
    expired_count = 0
    for quiz_session in stale_sessions:
        if await observe(session, quiz_session, now) == SessionStatus.EXPIRED:
            expired_count += 1
    await session.commit()
    return expired_count


async def get_session_stats(
    session: AsyncSession,
    user: CurrentUser,
    now: datetime | None = None,
) -> quiz_session_schema.SessionStatsResponse:
    """상태별 세션 현황 (관리자 전용)"""
    now = now or utcnow()
    if not user.is_admin:
        raise ForbiddenError("관리자만 조회할 수 있습니다")

    await expire_stale_sessions(session, now)
    counts = await quiz_session_crud.count_sessions_by_status(session)
    await session.commit()

    return quiz_session_schema.SessionStatsResponse(
        waiting=counts.get(SessionStatus.WAITING, 0),
        active=counts.get(SessionStatus.ACTIVE, 0),
        expired=counts.get(SessionStatus.EXPIRED, 0),
        total=sum(counts.values()),
        timestamp=now,
    )
