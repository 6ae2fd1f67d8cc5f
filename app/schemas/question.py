import json
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator


def _load_options(value):
    """DB의 JSON 문자열 options를 리스트로 변환"""
    if isinstance(value, str):
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return []
    return value


class QuestionCreateRequest(BaseModel):
    """문제 직접 작성 요청 스키마"""
    course_id: str = Field(..., min_length=1, description="과목 ID")
    question: str = Field(..., min_length=1, description="문제 내용")
    options: list[str] = Field(..., min_length=4, max_length=4, description="선택지 (4개 필수)")
    correct_answer: int = Field(..., ge=0, le=3, description="정답 인덱스 (0-3)")
    explanation: str = Field(..., min_length=1, description="해설")
    difficulty: Literal["easy", "medium", "hard"] = Field("medium", description="난이도")

    @field_validator("options")
    @classmethod
    def validate_options(cls, v: list[str]) -> list[str]:
        if any(not option.strip() for option in v):
            raise ValueError("빈 선택지는 허용되지 않습니다")
        return v


class QuestionGenerateRequest(BaseModel):
    """AI 문제 생성 요청 스키마"""
    course_id: str = Field(..., min_length=1, description="과목 ID")
    source_text: str = Field(..., description="문제 생성에 사용할 본문")
    difficulty: Literal["easy", "medium", "hard"] = Field("medium", description="난이도")


class QuestionResponse(BaseModel):
    """문제 응답 스키마 (작성자용, 정답 포함)"""
    id: int
    course_id: str
    question: str
    options: list[str]
    correct_answer: int
    explanation: str
    difficulty: str
    source: str
    created_by: str
    times_used: int
    last_used_at: datetime | None
    reserved_by_session_id: int | None
    created_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("options", mode="before")
    @classmethod
    def parse_options(cls, v):
        return _load_options(v)


class QuestionListResponse(BaseModel):
    """문제 목록 응답 스키마"""
    questions: list[QuestionResponse]
    total: int


class StudentQuestionResponse(BaseModel):
    """학생용 문제 스키마 (정답, 해설 제외)"""
    id: int
    question: str
    options: list[str]
    difficulty: str

    model_config = {"from_attributes": True}

    @field_validator("options", mode="before")
    @classmethod
    def parse_options(cls, v):
        return _load_options(v)
