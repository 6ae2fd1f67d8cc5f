"""답안 제출 서비스 테스트"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from app.exceptions import (
    DuplicateSubmissionError,
    InvalidInputError,
    NoActiveQuestionError,
    QuizSessionExpiredError,
    QuizSessionNotFoundError,
)
from app.models import Submission
from app.schemas import quiz_session as quiz_session_schema
from app.schemas.submission import SubmitAnswerRequest
from app.services import session_service, submission_service

NOW = datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc)


async def create_single(session, question_id, user, duration=60):
    request = quiz_session_schema.QuizSessionCreateRequest(
        session_type="single", duration=duration, course_id="course-1", question_id=question_id
    )
    return await session_service.create_session(session, request, user, now=NOW)


async def create_class(session, user, duration=3600):
    request = quiz_session_schema.QuizSessionCreateRequest(
        session_type="class", duration=duration, course_id="course-1"
    )
    return await session_service.create_session(session, request, user, now=NOW)


async def count_submissions(session) -> int:
    result = await session.execute(select(func.count(Submission.id)))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_single_session_submit_then_duplicate(test_db_session, make_question, instructor, student):
    """단일 세션: 첫 제출 성공 (정답 공개), 두 번째 제출은 DuplicateSubmissionError"""
    question = await make_question(correct_answer=2)
    created = await create_single(test_db_session, question.id, instructor)

    response = await submission_service.submit_answer(
        test_db_session, created.id, SubmitAnswerRequest(selected_option=2), student, now=NOW + timedelta(seconds=10)
    )

    assert response.is_correct is True
    assert response.correct_answer == 2
    assert response.correct_option == "선택지3"
    assert response.explanation == "해설"
    assert response.time_taken == pytest.approx(10.0)

    with pytest.raises(DuplicateSubmissionError) as exc_info:
        await submission_service.submit_answer(
            test_db_session, created.id, SubmitAnswerRequest(selected_option=1), student, now=NOW + timedelta(seconds=20)
        )
    assert exc_info.value.status_code == 409
    assert await count_submissions(test_db_session) == 1


@pytest.mark.asyncio
async def test_wrong_answer(test_db_session, make_question, instructor, student):
    question = await make_question(correct_answer=0)
    created = await create_single(test_db_session, question.id, instructor)

    response = await submission_service.submit_answer(
        test_db_session, created.id, SubmitAnswerRequest(selected_option=3), student, now=NOW + timedelta(seconds=5)
    )

    assert response.is_correct is False
    assert response.correct_answer == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("selected_option", [-1, 4, 10])
async def test_option_out_of_range(test_db_session, student, selected_option):
    """선택지 범위 검증은 세션 조회보다 먼저"""
    with pytest.raises(InvalidInputError):
        await submission_service.submit_answer(
            test_db_session, 9999, SubmitAnswerRequest(selected_option=selected_option), student, now=NOW
        )


@pytest.mark.asyncio
async def test_submit_unknown_session(test_db_session, student):
    with pytest.raises(QuizSessionNotFoundError):
        await submission_service.submit_answer(
            test_db_session, 9999, SubmitAnswerRequest(selected_option=0), student, now=NOW
        )


@pytest.mark.asyncio
async def test_submit_after_expiry(test_db_session, make_question, instructor, student):
    """제한 시간이 지난 뒤 제출은 QuizSessionExpiredError, 기록 없음"""
    question = await make_question()
    created = await create_single(test_db_session, question.id, instructor, duration=30)

    with pytest.raises(QuizSessionExpiredError):
        await submission_service.submit_answer(
            test_db_session, created.id, SubmitAnswerRequest(selected_option=0), student, now=NOW + timedelta(seconds=30)
        )
    assert await count_submissions(test_db_session) == 0


@pytest.mark.asyncio
async def test_single_session_other_question_rejected(test_db_session, make_question, instructor, student):
    question = await make_question()
    other = await make_question(question="다른 문제")
    created = await create_single(test_db_session, question.id, instructor)

    with pytest.raises(InvalidInputError):
        await submission_service.submit_answer(
            test_db_session,
            created.id,
            SubmitAnswerRequest(selected_option=0, question_id=other.id),
            student,
            now=NOW + timedelta(seconds=5),
        )


@pytest.mark.asyncio
async def test_class_session_without_broadcast(test_db_session, instructor, student):
    """방송된 문제가 없으면 NoActiveQuestionError"""
    created = await create_class(test_db_session, instructor)

    with pytest.raises(NoActiveQuestionError):
        await submission_service.submit_answer(
            test_db_session, created.id, SubmitAnswerRequest(selected_option=0), student, now=NOW + timedelta(minutes=1)
        )


@pytest.mark.asyncio
async def test_class_session_per_question_submissions(test_db_session, make_question, instructor, student):
    """클래스 세션: 문제마다 한 번씩 제출 가능, 소요 시간은 방송 시각 기준"""
    q1 = await make_question(question="문제 1", correct_answer=0)
    q2 = await make_question(question="문제 2", correct_answer=1)
    created = await create_class(test_db_session, instructor)

    await session_service.broadcast_question(
        test_db_session, created.id, q1.id, instructor, now=NOW + timedelta(minutes=1)
    )
    first = await submission_service.submit_answer(
        test_db_session, created.id, SubmitAnswerRequest(selected_option=0), student,
        now=NOW + timedelta(minutes=1, seconds=12),
    )
    assert first.question_id == q1.id
    assert first.time_taken == pytest.approx(12.0)

    await session_service.broadcast_question(
        test_db_session, created.id, q2.id, instructor, now=NOW + timedelta(minutes=5)
    )
    second = await submission_service.submit_answer(
        test_db_session, created.id, SubmitAnswerRequest(selected_option=0), student,
        now=NOW + timedelta(minutes=5, seconds=30),
    )
    assert second.question_id == q2.id
    assert second.is_correct is False
    assert second.time_taken == pytest.approx(30.0)

    assert await count_submissions(test_db_session) == 2


@pytest.mark.asyncio
async def test_in_flight_submission_for_superseded_question(test_db_session, make_question, instructor, student):
    """다음 문제가 방송된 뒤 도착한 이전 문제 답안도 방송 이력에 있으면 이전 문제로 기록"""
    q1 = await make_question(question="문제 1", correct_answer=3)
    q2 = await make_question(question="문제 2")
    created = await create_class(test_db_session, instructor)

    await session_service.broadcast_question(test_db_session, created.id, q1.id, instructor, now=NOW)
    await session_service.broadcast_question(
        test_db_session, created.id, q2.id, instructor, now=NOW + timedelta(minutes=2)
    )

    response = await submission_service.submit_answer(
        test_db_session,
        created.id,
        SubmitAnswerRequest(selected_option=3, question_id=q1.id),
        student,
        now=NOW + timedelta(minutes=2, seconds=1),
    )

    assert response.question_id == q1.id
    assert response.is_correct is True


@pytest.mark.asyncio
async def test_submission_for_never_broadcast_question(test_db_session, make_question, instructor, student):
    q1 = await make_question(question="문제 1")
    q2 = await make_question(question="방송되지 않은 문제")
    created = await create_class(test_db_session, instructor)
    await session_service.broadcast_question(test_db_session, created.id, q1.id, instructor, now=NOW)

    with pytest.raises(NoActiveQuestionError):
        await submission_service.submit_answer(
            test_db_session,
            created.id,
            SubmitAnswerRequest(selected_option=0, question_id=q2.id),
            student,
            now=NOW + timedelta(seconds=5),
        )


@pytest.mark.asyncio
async def test_two_students_same_question(test_db_session, make_question, instructor, student, student2):
    question = await make_question()
    created = await create_single(test_db_session, question.id, instructor)

    for user in (student, student2):
        await submission_service.submit_answer(
            test_db_session, created.id, SubmitAnswerRequest(selected_option=2), user, now=NOW + timedelta(seconds=3)
        )

    assert await count_submissions(test_db_session) == 2


@pytest.mark.asyncio
async def test_concurrent_duplicate_submissions(session_maker, test_db_session, make_question, instructor, student):
    """같은 학생의 동시 제출 중 하나만 저장되고 나머지는 DuplicateSubmissionError"""
    question = await make_question()
    created = await create_single(test_db_session, question.id, instructor)
    await test_db_session.commit()

    async def submit(option: int):
        async with session_maker() as session:
            return await submission_service.submit_answer(
                session, created.id, SubmitAnswerRequest(selected_option=option), student,
                now=NOW + timedelta(seconds=5),
            )

    results = await asyncio.gather(*(submit(i % 4) for i in range(5)), return_exceptions=True)

    successes = [r for r in results if not isinstance(r, Exception)]
    duplicates = [r for r in results if isinstance(r, DuplicateSubmissionError)]
    assert len(successes) == 1
    assert len(duplicates) == 4

    async with session_maker() as session:
        assert await count_submissions(session) == 1


@pytest.mark.asyncio
async def test_submit_and_poll_from_new_db_session(session_maker, make_question, instructor, student):
    """생성 요청과 다른 DB 세션에서 단일 세션을 불러와 조회 및 제출"""
    question = await make_question(correct_answer=1)
    async with session_maker() as session:
        created = await create_single(session, question.id, instructor)

    async with session_maker() as session:
        view = await session_service.poll_session(session, created.code, student, now=NOW + timedelta(seconds=5))
        assert view.question.id == question.id

    async with session_maker() as session:
        response = await submission_service.submit_answer(
            session, created.id, SubmitAnswerRequest(selected_option=1), student, now=NOW + timedelta(seconds=8)
        )
        assert response.question_id == question.id
        assert response.is_correct is True

    async with session_maker() as session:
        detail = await session_service.get_session_detail(session, created.id, instructor, now=NOW + timedelta(seconds=9))
        assert detail.question_id == question.id
