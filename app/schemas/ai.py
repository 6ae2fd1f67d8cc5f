import json
from typing import Literal

from pydantic import BaseModel, Field


class AIQuestionGenerationRequest(BaseModel):
    """AI 문제 생성 요청 스키마 (내부 사용)"""
    source_text: str = Field(..., description="문제 생성 소스 텍스트")
    difficulty: Literal["easy", "medium", "hard"] = Field("medium", description="난이도")


class AIQuestionGenerationResponse(BaseModel):
    """AI 문제 생성 응답 스키마 (Structured Output)"""
    question: str = Field(..., description="문제 내용")
    options: list[str] = Field(..., min_length=4, max_length=4, description="선택지 (4개 필수)")
    correct_answer: int = Field(..., ge=0, le=3, description="정답 인덱스 (0-3)")
    explanation: str = Field(..., description="해설")

    @property
    def options_json(self) -> str:
        """선택지를 JSON 문자열로 변환 (DB 저장용)"""
        return json.dumps(self.options, ensure_ascii=False)
