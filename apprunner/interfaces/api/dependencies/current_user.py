"""当前用户依赖

身份由前置的认证代理注入到请求头：
    X-User-Id（必填）、X-User-Email、X-User-Name
"""

from __future__ import annotations

from fastapi import Header, HTTPException, status

from apprunner.domain.entities.current_user import CurrentUser


def get_current_user(
    x_user_id: str | None = Header(default=None),
    x_user_email: str | None = Header(default=None),
    x_user_name: str | None = Header(default=None),
) -> CurrentUser:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="缺少用户身份（X-User-Id）",
        )
    return CurrentUser(
        id=x_user_id.strip(),
        email=(x_user_email or "").strip(),
        name=(x_user_name or "").strip(),
    )
