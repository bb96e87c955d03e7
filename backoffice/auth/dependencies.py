"""Auth dependencies: JWT validation, RBAC enforcement.

Tokens are issued by the identity service. A token is accepted when its
signature verifies, it is an access token, and a matching un-revoked,
unexpired ``UserSession`` row exists.
"""

from __future__ import annotations

import hashlib
import uuid
from typing import Callable

from fastapi import Depends, Request
from fastapi.exceptions import HTTPException
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.models import UserSession
from backoffice.common.constants import UserRole
from backoffice.common.exceptions import ForbiddenException
from backoffice.common.timeutils import utcnow
from backoffice.config import settings
from backoffice.core_hr.models import Employee
from backoffice.database import get_db

# Each role implicitly includes the ones below it
_ROLE_RANK: dict[UserRole, int] = {
    UserRole.employee: 0,
    UserRole.manager: 1,
    UserRole.admin: 2,
}


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def _extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header.")
    return auth_header[7:]


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Employee:
    """Validate JWT, verify session, return the authenticated Employee."""
    token = _extract_bearer(request)

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token has expired.")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token.")

    if payload.get("type") != "access":
        raise HTTPException(status_code=401, detail="Invalid token type.")

    result = await db.execute(
        select(UserSession).where(
            UserSession.token_hash == hash_token(token),
            UserSession.is_revoked.is_(False),
            UserSession.expires_at > utcnow(),
        ),
    )
    if result.scalars().first() is None:
        raise HTTPException(status_code=401, detail="Session invalid or expired.")

    try:
        employee_id = uuid.UUID(payload["sub"])
    except (KeyError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token subject.")

    emp_result = await db.execute(
        select(Employee).where(Employee.id == employee_id, Employee.is_active.is_(True)),
    )
    employee = emp_result.scalars().first()
    if employee is None:
        raise HTTPException(status_code=401, detail="User account is inactive or not found.")

    try:
        role = UserRole(payload.get("role", UserRole.employee.value))
    except ValueError:
        role = UserRole.employee
    request.state.user_role = role

    return employee


# ── Role-based dependency ───────────────────────────────────────────

def require_role(minimum: UserRole) -> Callable:
    """Return a FastAPI dependency that admits *minimum* and every role above it."""

    async def _check(
        request: Request,
        employee: Employee = Depends(get_current_user),
    ) -> Employee:
        user_role: UserRole = request.state.user_role
        if _ROLE_RANK[user_role] < _ROLE_RANK[minimum]:
            raise ForbiddenException(
                detail=f"Role '{user_role.value}' is not permitted. Required: '{minimum.value}' or above.",
            )
        return employee

    return _check
