"""
Authentication and Authorization Module

Resolves the bearer token on a request to the acting user and their role
context: role plus the organization, school and classroom they belong to.
The context is re-read from the database on every request so that a
student who joins or leaves a classroom is authorized accordingly right away.

SECURITY NOTE:
- Development mode token bypass is ONLY enabled when PYTHON_ENV=development
- Production environments MUST set PYTHON_ENV=production to disable it
"""

import logging
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.security import decode_token
from app.modules.users.models import User, UserRole
from app.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

# Security scheme for OpenAPI documentation
security = HTTPBearer(
    auto_error=False,
    description="JWT Bearer token for authentication",
)


@dataclass
class CurrentUser:
    """
    The authenticated actor and their role context.

    Attributes:
        id: User id
        email: User's email address
        role: User's role
        name: Display name
        organization_id: Organization for ORG_ADMIN users
        school_id: School for school staff and students
        classroom_id: Classroom for teachers and students
    """

    id: str
    email: str
    role: UserRole
    name: str | None = None
    organization_id: str | None = None
    school_id: str | None = None
    classroom_id: str | None = None

    @classmethod
    def from_user(cls, user: User) -> "CurrentUser":
        return cls(
            id=str(user.id),
            email=user.email,
            role=user.role,
            name=user.name,
            organization_id=user.organization_id,
            school_id=user.school_id,
            classroom_id=user.classroom_id,
        )

    def __str__(self) -> str:
        return f"CurrentUser(id={self.id}, role={self.role.value})"


def _is_dev_mode_safe() -> bool:
    """
    Check if development token bypass is safe to enable.

    Requires PYTHON_ENV=development in settings and that the raw
    environment variable does not name a production-like environment.
    """
    env_var = os.getenv("PYTHON_ENV", "").lower()

    is_safe = (
        settings.is_development
        and not settings.is_production
        and env_var not in ("production", "staging")
    )

    if is_safe:
        logger.warning(
            "SECURITY: Development auth mode is ENABLED. This MUST NOT be used in production!"
        )

    return is_safe


# In development a raw user UUID is accepted as a bearer token
_DEVELOPMENT_MODE = _is_dev_mode_safe()


def _unauthorized(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def _resolve_user_id(token: str) -> str:
    """
    Extract the user id from a bearer token.

    Raises:
        HTTPException 401: If the token is invalid, expired or not an access token
    """
    if _DEVELOPMENT_MODE:
        try:
            return str(UUID(token))
        except ValueError:
            pass

    payload = decode_token(token)
    if payload is None:
        logger.warning("Invalid or expired JWT token")
        raise _unauthorized("INVALID_TOKEN", "Invalid or expired authentication token.")

    if payload.get("type", "access") != "access":
        logger.warning(f"Invalid token type: {payload.get('type')}")
        raise _unauthorized("INVALID_TOKEN_TYPE", "This endpoint requires an access token.")

    user_id = payload.get("sub")
    if not user_id:
        logger.warning("Token is missing the 'sub' claim")
        raise _unauthorized("INVALID_TOKEN_CLAIMS", "Token contains invalid or missing claims.")

    return str(user_id)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """
    FastAPI dependency returning the authenticated actor.

    Raises:
        HTTPException 401: If the token is missing or invalid, or the user
            no longer exists or is deactivated
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("UNAUTHENTICATED", "Authentication required.")

    user_id = _resolve_user_id(credentials.credentials)
    user = await UserRepository.get_by_id(db, user_id)

    if user is None or not user.is_active:
        logger.warning(f"Token for unknown or inactive user: {user_id}")
        raise _unauthorized("INVALID_TOKEN", "Invalid or expired authentication token.")

    current_user = CurrentUser.from_user(user)
    request.state.user_id = current_user.id
    return current_user


def require_roles(*roles: UserRole) -> Callable[..., Awaitable[CurrentUser]]:
    """
    Build a dependency that only admits the given roles.

    Usage:
        @router.post("/signups")
        async def sign_up(user: CurrentUser = Depends(require_roles(UserRole.STUDENT))):
            ...

    Raises:
        HTTPException 403: If the actor's role is not in ``roles``
    """
    allowed = frozenset(roles)

    async def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in allowed:
            logger.warning(
                f"Access denied: user {user.id} has role '{user.role.value}', "
                f"requires one of {sorted(r.value for r in allowed)}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "error": "INSUFFICIENT_ROLE",
                    "message": "Your role does not permit this action.",
                },
            )
        return user

    return dependency


__all__ = [
    "CurrentUser",
    "get_current_user",
    "require_roles",
]
