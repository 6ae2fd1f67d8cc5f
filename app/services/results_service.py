from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.crud import quiz_session as quiz_session_crud, submission as submission_crud
from app.exceptions import ForbiddenError
from app.models.quiz_session import ClassQuizSession
from app.schemas import submission as submission_schema
from app.schemas.user import CurrentUser
from app.services.session_service import get_quiz_session
from app.services.session_state import observe
from app.utils.time import utcnow


async def get_session_results(
    session: AsyncSession,
    quiz_session_id: int,
    user: CurrentUser,
    now: datetime | None = None,
) -> submission_schema.SessionResultsResponse:
    """세션 결과 집계 (저장된 제출 기록에서 매번 계산)"""
    now = now or utcnow()
    quiz_session = await get_quiz_session(session, quiz_session_id)
    if quiz_session.created_by != user.identity and not user.is_admin:
        raise ForbiddenError("세션 결과는 생성자 또는 관리자만 조회할 수 있습니다")

    status = await observe(session, quiz_session, now)
    submissions = await submission_crud.get_submissions_by_session(session, quiz_session.id)
    if isinstance(quiz_session, ClassQuizSession):
        participant_count = len(await quiz_session_crud.get_participants(session, quiz_session.id))
    else:
        participant_count = len({s.student_identity for s in submissions})
    await session.commit()

    total = len(submissions)
    correct_count = sum(1 for s in submissions if s.is_correct)
    accuracy = round(correct_count / total * 100) if total else 0
    average_time_taken = sum(s.time_taken for s in submissions) / total if total else None

    per_question: dict[int, list] = {}
    for s in submissions:
        per_question.setdefault(s.question_id, []).append(s)
    questions = [
        submission_schema.QuestionResultSummary(
            question_id=question_id,
            total_submissions=len(items),
            correct_count=sum(1 for s in items if s.is_correct),
            incorrect_count=sum(1 for s in items if not s.is_correct),
        )
        for question_id, items in per_question.items()
    ]

    return submission_schema.SessionResultsResponse(
        session_id=quiz_session.id,
        code=quiz_session.code,
        session_type=quiz_session.session_type,
        status=status,
        total_submissions=total,
        correct_count=correct_count,
        incorrect_count=total - correct_count,
        accuracy=accuracy,
        average_time_taken=average_time_taken,
        participant_count=participant_count,
        questions=questions,
        submissions=[submission_schema.SubmissionRecordResponse.model_validate(s) for s in submissions],
    )
