from fastapi import Header, HTTPException, status

from app.schemas.user import CurrentUser

VALID_ROLES = ("student", "instructor", "admin")


async def get_current_user(
    x_user_id: str | None = Header(None),
    x_user_role: str | None = Header(None),
    x_user_name: str | None = Header(None),
) -> CurrentUser:
    """인증 게이트웨이가 검증 후 전달한 사용자 헤더로 요청자 구성"""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="인증 정보가 없습니다",
        )

    role = (x_user_role or "student").lower()
    if role not in VALID_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"알 수 없는 역할입니다: {x_user_role}",
        )

    return CurrentUser(identity=x_user_id, name=x_user_name, role=role)
