from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.models.base import get_db
from app.schemas import question as question_schema
from app.schemas.user import CurrentUser
from app.services import question_service

router = APIRouter(prefix="/questions", tags=["questions"])


@router.post("", response_model=question_schema.QuestionResponse, status_code=status.HTTP_201_CREATED)
async def create_question(
    request: question_schema.QuestionCreateRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """문제 직접 작성 API"""
    return await question_service.create_question(db, request, user)


@router.post("/generate", response_model=question_schema.QuestionResponse, status_code=status.HTTP_201_CREATED)
async def generate_question(
    request: question_schema.QuestionGenerateRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """AI 문제 생성 API"""
    return await question_service.generate_question(db, request, user)


@router.get("", response_model=question_schema.QuestionListResponse)
async def list_questions(
    course_id: str = Query(..., description="과목 ID"),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """과목별 문제 목록 API"""
    return await question_service.list_questions(db, course_id, user)


@router.get("/available", response_model=question_schema.QuestionListResponse)
async def list_available_questions(
    course_id: str = Query(..., description="과목 ID"),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """출제 가능한 문제 목록 API (다른 세션에서 사용 중인 문제 제외)"""
    return await question_service.list_available_questions(db, course_id, user)


@router.get("/{question_id}", response_model=question_schema.QuestionResponse)
async def get_question(
    question_id: int,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """문제 조회 API"""
    return await question_service.get_question_detail(db, question_id, user)
