from datetime import datetime

from pydantic import BaseModel, Field


class SubmitAnswerRequest(BaseModel):
    """답안 제출 요청 스키마"""
    selected_option: int = Field(..., description="선택한 답안 (0-3)")
    question_id: int | None = Field(None, description="학생 화면에 표시된 문제 ID (생략 시 현재 문제)")


class SubmitAnswerResponse(BaseModel):
    """답안 제출 결과 스키마 (제출 성공 후에만 정답 공개)"""
    submission_id: int
    session_id: int
    question_id: int
    selected_option: int
    is_correct: bool
    correct_answer: int
    correct_option: str
    explanation: str
    time_taken: float
    submitted_at: datetime


class SubmissionRecordResponse(BaseModel):
    """학생별 제출 기록 스키마"""
    student_identity: str
    student_name: str | None
    question_id: int
    selected_option: int
    is_correct: bool
    time_taken: float
    submitted_at: datetime

    model_config = {"from_attributes": True}


class QuestionResultSummary(BaseModel):
    """문제별 집계"""
    question_id: int
    total_submissions: int
    correct_count: int
    incorrect_count: int


class SessionResultsResponse(BaseModel):
    """세션 결과 응답 스키마"""
    session_id: int
    code: str
    session_type: str
    status: str
    total_submissions: int
    correct_count: int
    incorrect_count: int
    accuracy: int = Field(..., description="정답률 (%)")
    average_time_taken: float | None
    participant_count: int
    questions: list[QuestionResultSummary]
    submissions: list[SubmissionRecordResponse]
