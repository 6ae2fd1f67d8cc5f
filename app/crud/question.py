from datetime import datetime
from typing import Sequence

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.question import Question


async def get_question_by_id(session: AsyncSession, question_id: int) -> Question | None:
    """ID로 문제 조회"""
    result = await session.execute(select(Question).where(Question.id == question_id))
    return result.scalar_one_or_none()


async def create_question(
    session: AsyncSession,
    course_id: str,
    question: str,
    options: str,
    correct_answer: int,
    explanation: str,
    created_by: str,
    difficulty: str = "medium",
    source: str = "manual",
    created_by_name: str | None = None,
) -> Question:
    """문제 생성 (flush만 수행, commit은 호출 측 책임)"""
    new_question = Question(
        course_id=course_id,
        question=question,
        options=options,
        correct_answer=correct_answer,
        explanation=explanation,
        difficulty=difficulty,
        source=source,
        created_by=created_by,
        created_by_name=created_by_name,
    )
    session.add(new_question)
    await session.flush()
    return new_question


async def get_questions_by_course(session: AsyncSession, course_id: str) -> Sequence[Question]:
    """과목별 전체 문제 조회 (최신순)"""
    stmt = (
        select(Question)
        .where(Question.course_id == course_id)
        .order_by(Question.created_at.desc(), Question.id.desc())
    )
    result = await session.execute(stmt)
    return result.scalars().all()


async def get_available_questions(session: AsyncSession, course_id: str) -> Sequence[Question]:
    """점유되지 않은 문제 조회

    오래 전에 사용한 문제(미사용 문제 우선)부터, 같은 조건이면 최근 생성된 문제부터 반환하여
    특정 문제만 반복 출제되지 않도록 한다.
    """
    stmt = (
        select(Question)
        .where(
            Question.course_id == course_id,
            Question.reserved_by_session_id.is_(None),
        )
        .order_by(
            Question.last_used_at.asc().nulls_first(),
            Question.created_at.desc(),
            Question.id.desc(),
        )
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return result.scalars().all()


async def reserve_question(session: AsyncSession, question_id: int, session_id: int) -> bool:
    """문제 점유 (조건부 UPDATE 한 번으로 수행)

    비어 있거나 이미 같은 세션이 점유한 경우에만 성공한다.
    """
    stmt = (
        update(Question)
        .where(
            Question.id == question_id,
            or_(
                Question.reserved_by_session_id.is_(None),
                Question.reserved_by_session_id == session_id,
            ),
        )
        .values(reserved_by_session_id=session_id)
    )
    result = await session.execute(stmt)
    return (result.rowcount or 0) > 0


async def get_reservation_holder(session: AsyncSession, question_id: int) -> int | None:
    """문제를 점유 중인 세션 ID (문제가 없거나 비어 있으면 None)"""
    result = await session.execute(
        select(Question.reserved_by_session_id).where(Question.id == question_id)
    )
    return result.scalar_one_or_none()


async def release_question(session: AsyncSession, question_id: int) -> None:
    """문제 점유 해제 (무조건, 멱등)"""
    await session.execute(
        update(Question)
        .where(Question.id == question_id)
        .values(reserved_by_session_id=None)
    )


async def release_session_questions(session: AsyncSession, session_id: int) -> int:
    """세션이 점유한 모든 문제 해제"""
    result = await session.execute(
        update(Question)
        .where(Question.reserved_by_session_id == session_id)
        .values(reserved_by_session_id=None)
    )
    return int(result.rowcount or 0)


async def mark_question_used(session: AsyncSession, question_id: int, used_at: datetime) -> None:
    """사용 횟수 증가 및 마지막 사용 시각 갱신"""
    await session.execute(
        update(Question)
        .where(Question.id == question_id)
        .values(times_used=Question.times_used + 1, last_used_at=used_at)
    )
