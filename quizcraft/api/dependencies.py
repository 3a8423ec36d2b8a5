"""
Principal extraction

Authentication happens upstream; the gateway forwards the caller as
X-User-Id / X-User-Role headers.
"""
from pydantic import BaseModel
from typing import Optional

from fastapi import Depends, Header, HTTPException

from quizcraft.exceptions import AccessDeniedError

ROLES = ("student", "instructor")


class Principal(BaseModel):
    id: str
    role: str


def get_principal(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None)
) -> Principal:
    """Authenticated caller, 401 without identity headers"""
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=401, detail="Missing authenticated principal")

    role = x_user_role.strip().lower()
    if role not in ROLES:
        raise HTTPException(status_code=403, detail=f"Unknown role: {x_user_role}")

    return Principal(id=x_user_id.strip(), role=role)


def require_student(principal: Principal = Depends(get_principal)) -> Principal:
    if principal.role != "student":
        raise AccessDeniedError("Only students can perform this action")
    return principal


def require_instructor(principal: Principal = Depends(get_principal)) -> Principal:
    if principal.role != "instructor":
        raise AccessDeniedError("Only instructors can perform this action")
    return principal
