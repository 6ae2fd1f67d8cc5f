import json
import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud import quiz_session as quiz_session_crud, submission as submission_crud
from app.exceptions import DuplicateSubmissionError, InvalidInputError, NoActiveQuestionError
from app.models.quiz_session import ClassQuizSession, QuizSession, SingleQuizSession
from app.schemas import submission as submission_schema
from app.schemas.user import CurrentUser
from app.services import question_service
from app.services.session_service import get_quiz_session
from app.services.session_state import observe_active
from app.utils.time import as_utc, utcnow

logger = logging.getLogger(__name__)

VALID_OPTIONS = range(0, 4)


async def _resolve_question_scope(
    session: AsyncSession,
    quiz_session: QuizSession,
    requested_question_id: int | None,
) -> tuple[int, datetime]:
    """답안 대상 문제와 문제 시작 시각 결정

    클래스 세션에서 학생이 보고 있던 문제(question_id)가 방송 이력에 있으면,
    그 사이 다음 문제가 방송되었더라도 해당 문제로 제출을 받는다.
    """
    if isinstance(quiz_session, SingleQuizSession):
        if requested_question_id is not None and requested_question_id != quiz_session.question_id:
            raise InvalidInputError(f"이 세션의 문제가 아닙니다: question_id={requested_question_id}")
        return quiz_session.question_id, quiz_session.started_at

    if not isinstance(quiz_session, ClassQuizSession):
        raise InvalidInputError(f"알 수 없는 세션 유형입니다: {quiz_session.session_type}")

    question_id = requested_question_id if requested_question_id is not None else quiz_session.active_question_id
    if question_id is None:
        raise NoActiveQuestionError()

    broadcast = await quiz_session_crud.get_latest_broadcast(session, quiz_session.id, question_id)
    if broadcast is None:
        raise NoActiveQuestionError(f"이 세션에서 방송된 문제가 아닙니다: question_id={question_id}")
    return question_id, broadcast.broadcasted_at


async def submit_answer(
    session: AsyncSession,
    quiz_session_id: int,
    request: submission_schema.SubmitAnswerRequest,
    user: CurrentUser,
    now: datetime | None = None,
) -> submission_schema.SubmitAnswerResponse:
    """답안 제출

    중복 제출은 (session_id, question_id, student_identity) 유니크 제약으로만 막는다.
    정답과 해설은 제출이 저장된 후에만 응답에 포함된다.
    """
    now = now or utcnow()
    if request.selected_option not in VALID_OPTIONS:
        raise InvalidInputError(f"선택지는 0-3 사이여야 합니다: {request.selected_option}")

    quiz_session = await get_quiz_session(session, quiz_session_id)
    await observe_active(session, quiz_session, now)

    question_id, question_started_at = await _resolve_question_scope(
        session, quiz_session, request.question_id
    )
    question = await question_service.get_question(session, question_id)

    is_correct = request.selected_option == question.correct_answer
    time_taken = max(0.0, (as_utc(now) - as_utc(question_started_at)).total_seconds())

    try:
        submission = await submission_crud.create_submission(
            session,
            quiz_session_id=quiz_session.id,
            question_id=question_id,
            student_identity=user.identity,
            student_name=user.name,
            selected_option=request.selected_option,
            is_correct=is_correct,
            time_taken=time_taken,
            submitted_at=now,
        )
        await session.commit()
    except IntegrityError:
        await session.rollback()
        logger.info(
            f"중복 제출 거부: session_id={quiz_session_id}, question_id={question_id}, "
            f"student={user.identity}"
        )
        raise DuplicateSubmissionError(question_id)

    options = json.loads(question.options)
    logger.info(
        f"답안 제출: session_id={quiz_session_id}, question_id={question_id}, "
        f"student={user.identity}, is_correct={is_correct}"
    )
    return submission_schema.SubmitAnswerResponse(
        submission_id=submission.id,
        session_id=quiz_session_id,
        question_id=question_id,
        selected_option=request.selected_option,
        is_correct=is_correct,
        correct_answer=question.correct_answer,
        correct_option=options[question.correct_answer],
        explanation=question.explanation,
        time_taken=time_taken,
        submitted_at=now,
    )
