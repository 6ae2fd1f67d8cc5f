"""테스트 공통 fixture (SQLite + aiosqlite)"""
import json

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.main import app
from app.models import Base, Question
from app.models.base import get_db
from app.schemas.user import CurrentUser



@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """테스트용 DB 엔진 (테스트마다 새 파일)"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        connect_args={"timeout": 30},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        # aiosqlite 자체 BEGIN 비활성화 (SAVEPOINT 정상 동작용)
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        # 쓰기 트랜잭션 직렬화
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(test_engine):
    return async_sessionmaker(test_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def test_db_session(session_maker):
    """테스트용 DB 세션"""
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_maker):
    """API 테스트 클라이언트 (요청마다 새 DB 세션)"""
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def instructor():
    return CurrentUser(identity="teacher@example.com", name="김강사", role="instructor")


@pytest.fixture
def other_instructor():
    return CurrentUser(identity="other@example.com", name="이강사", role="instructor")


@pytest.fixture
def admin():
    return CurrentUser(identity="admin@example.com", name="관리자", role="admin")


@pytest.fixture
def student():
    return CurrentUser(identity="student1@example.com", name="학생1", role="student")


@pytest.fixture
def student2():
    return CurrentUser(identity="student2@example.com", name="학생2", role="student")


@pytest.fixture
def auth_headers():
    """게이트웨이 인증 헤더 생성"""
    def _headers(user: CurrentUser) -> dict[str, str]:
        return {"X-User-Id": user.identity, "X-User-Role": user.role}
    return _headers


@pytest.fixture
def make_question(test_db_session):
    """테스트용 문제 저장 (commit 후 트랜잭션을 열어두지 않음)"""
    async def _make_question(
        course_id: str = "course-1",
        correct_answer: int = 2,
        question: str = "다음 중 옳은 것은?",
        **fields,
    ) -> Question:
        new_question = Question(
            course_id=course_id,
            question=question,
            options=json.dumps(["선택지1", "선택지2", "선택지3", "선택지4"], ensure_ascii=False),
            correct_answer=correct_answer,
            explanation="해설",
            difficulty="medium",
            source="manual",
            created_by="teacher@example.com",
            **fields,
        )
        test_db_session.add(new_question)
        await test_db_session.commit()
        return new_question
    return _make_question
