from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.models.base import get_db
from app.schemas import quiz_session as quiz_session_schema, submission as submission_schema
from app.schemas.user import CurrentUser
from app.services import results_service, session_service, submission_service

router = APIRouter(prefix="/quiz-sessions", tags=["quiz-sessions"])


@router.post("", response_model=quiz_session_schema.QuizSessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    request: quiz_session_schema.QuizSessionCreateRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """퀴즈 세션 생성 API"""
    return await session_service.create_session(db, request, user)


@router.get("/stats", response_model=quiz_session_schema.SessionStatsResponse)
async def get_session_stats(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """세션 현황 API (관리자 전용)"""
    return await session_service.get_session_stats(db, user)


@router.post("/join", response_model=quiz_session_schema.StudentSessionView)
async def join_session(
    request: quiz_session_schema.JoinRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """세션 참여 API"""
    return await session_service.join_session(db, request.code, user)


@router.get("/poll/{code}", response_model=quiz_session_schema.StudentSessionView)
async def poll_session(
    code: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """세션 상태 재조회 API"""
    return await session_service.poll_session(db, code, user)


@router.get("/{session_id}", response_model=quiz_session_schema.QuizSessionDetailResponse)
async def get_session(
    session_id: int,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """세션 상세 API (생성자용)"""
    return await session_service.get_session_detail(db, session_id, user)


@router.post("/{session_id}/broadcast", response_model=quiz_session_schema.QuizSessionResponse)
async def broadcast_question(
    session_id: int,
    request: quiz_session_schema.BroadcastRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """클래스 세션 문제 방송 API"""
    return await session_service.broadcast_question(db, session_id, request.question_id, user)


@router.post("/{session_id}/end", response_model=quiz_session_schema.QuizSessionResponse)
async def end_session(
    session_id: int,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """세션 종료 API"""
    return await session_service.end_session(db, session_id, user)


@router.post("/{session_id}/submit", response_model=submission_schema.SubmitAnswerResponse)
async def submit_answer(
    session_id: int,
    request: submission_schema.SubmitAnswerRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """답안 제출 API"""
    return await submission_service.submit_answer(db, session_id, request, user)


@router.get("/{session_id}/results", response_model=submission_schema.SessionResultsResponse)
async def get_session_results(
    session_id: int,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """세션 결과 API (생성자 또는 관리자)"""
    return await results_service.get_session_results(db, session_id, user)
