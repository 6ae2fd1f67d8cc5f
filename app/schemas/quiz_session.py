from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from app.schemas.question import StudentQuestionResponse


class QuizSessionCreateRequest(BaseModel):
    """퀴즈 세션 생성 요청 스키마"""
    session_type: Literal["single", "class"] = Field("single", description="세션 유형")
    duration: int = Field(..., description="제한 시간 (초, single: 30-600, class: 1800-10800)")
    course_id: str = Field(..., min_length=1, description="과목 ID")
    question_id: int | None = Field(None, description="단일 세션 문제 ID (single일 때 필수)")


class BroadcastRequest(BaseModel):
    """클래스 세션 문제 방송 요청 스키마"""
    question_id: int = Field(..., description="방송할 문제 ID")


class JoinRequest(BaseModel):
    """세션 참여 요청 스키마"""
    code: str = Field(..., description="세션 코드 (123456 또는 CS_123456)")


class QuizSessionResponse(BaseModel):
    """퀴즈 세션 응답 스키마 (생성자용)"""
    id: int
    code: str
    session_type: str
    duration: int
    started_at: datetime
    expires_at: datetime
    status: str
    created_by: str
    course_id: str
    question_id: int | None = None
    active_question_id: int | None = None
    remaining_seconds: int


class BroadcastResponse(BaseModel):
    """방송 이력 응답 스키마"""
    question_id: int
    broadcasted_at: datetime

    model_config = {"from_attributes": True}


class ParticipantResponse(BaseModel):
    """참여 학생 응답 스키마"""
    student_identity: str
    student_name: str | None
    joined_at: datetime

    model_config = {"from_attributes": True}


class QuizSessionDetailResponse(QuizSessionResponse):
    """퀴즈 세션 상세 응답 스키마 (방송 이력, 참여 학생 포함)"""
    questions_history: list[BroadcastResponse] = Field(default_factory=list)
    students_joined: list[ParticipantResponse] = Field(default_factory=list)


class StudentSessionView(BaseModel):
    """학생용 세션 상태 스키마

    status가 'active'일 때만 question이 포함된다.
    'submitted'는 현재 문제에 이미 답안을 제출한 상태로, 문제 내용을 다시 내려주지 않는다.
    """
    session_id: int
    code: str
    session_type: str
    course_id: str
    status: Literal["waiting", "active", "submitted"]
    expires_at: datetime
    remaining_seconds: int
    question: StudentQuestionResponse | None = None
    question_started_at: datetime | None = None


class SessionStatsResponse(BaseModel):
    """세션 현황 응답 스키마"""
    waiting: int
    active: int
    expired: int
    total: int
    timestamp: datetime
