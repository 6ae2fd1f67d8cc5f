from typing import Literal

from pydantic import BaseModel, Field

UserRole = Literal["student", "instructor", "admin"]


class CurrentUser(BaseModel):
    """인증 게이트웨이가 전달한 요청자 정보"""
    identity: str = Field(..., description="사용자 식별자 (이메일 또는 사용자 ID)")
    name: str | None = Field(None, description="표시 이름")
    role: UserRole = Field("student", description="역할 (student | instructor | admin)")

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def can_manage_sessions(self) -> bool:
        """세션 생성/방송/문제 작성 권한"""
        return self.role in ("instructor", "admin")
