"""Authentication router."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, get_current_user
from app.core.database import get_db
from app.core.exceptions import (
    NotFoundError,
    ServiceError,
    internal_server_error,
    to_http_exception,
)
from app.core.rate_limit import enforce_ip_rate_limit
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    verify_password,
)
from app.modules.auth import service
from app.modules.auth.schemas import (
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from app.modules.users.models import User
from app.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

router = APIRouter()

LOGIN_RATE_LIMIT = 10
LOGIN_RATE_WINDOW_SECONDS = 60


def _invalid_credentials() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={
            "error": "INVALID_CREDENTIALS",
            "message": "Invalid email or password.",
        },
    )


def _issue_tokens(user: User) -> LoginResponse:
    additional_claims = {
        "email": user.email,
        "role": user.role.value,
        "name": user.name,
    }
    return LoginResponse(
        access_token=create_access_token(subject=str(user.id), additional_claims=additional_claims),
        refresh_token=create_refresh_token(subject=str(user.id)),
        token_type="bearer",
        user=UserResponse.model_validate(user),
    )


@router.post("/register", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """
    Create an account and sign in.

    Raises:
        HTTPException 404: If a teacher names an unknown school
        HTTPException 409: If the email is already registered
    """
    await enforce_ip_rate_limit(request, "register", LOGIN_RATE_LIMIT, LOGIN_RATE_WINDOW_SECONDS)

    try:
        user = await service.register_user(db, data)
        return _issue_tokens(user)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error registering account: {e}")
        raise internal_server_error() from e


@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """
    Authenticate user and return JWT tokens.

    Args:
        credentials: Email and password
        request: Incoming request, for per-IP rate limiting
        db: Database session

    Returns:
        Access token, refresh token, and user info

    Raises:
        HTTPException 401: Invalid credentials
        HTTPException 403: Account inactive
        HTTPException 429: Too many attempts from this address
    """
    await enforce_ip_rate_limit(request, "login", LOGIN_RATE_LIMIT, LOGIN_RATE_WINDOW_SECONDS)

    user = await UserRepository.get_by_email(db, credentials.email)

    if not user:
        logger.warning(f"Login attempt for non-existent email: {credentials.email}")
        raise _invalid_credentials()

    if not verify_password(credentials.password, user.password_hash):
        logger.warning(f"Invalid password for user: {credentials.email}")
        raise _invalid_credentials()

    if not user.is_active:
        logger.warning(f"Login attempt for inactive account: {credentials.email}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "ACCOUNT_INACTIVE",
                "message": "Your account has been deactivated.",
            },
        )

    logger.info(f"User logged in: {user.email} (role: {user.role.value})")
    return _issue_tokens(user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    data: RefreshRequest,
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    """Exchange a refresh token for a new token pair."""
    payload = decode_token(data.refresh_token)
    if payload is None or payload.get("type") != "refresh" or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "INVALID_TOKEN",
                "message": "Invalid or expired refresh token.",
            },
        )

    user = await UserRepository.get_by_id(db, payload["sub"])
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "INVALID_TOKEN",
                "message": "Invalid or expired refresh token.",
            },
        )

    tokens = _issue_tokens(user)
    return TokenResponse(access_token=tokens.access_token, refresh_token=tokens.refresh_token)


@router.get("/me", response_model=UserResponse)
async def me(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """The caller's profile."""
    account = await UserRepository.get_by_id(db, user.id)
    if account is None:
        raise to_http_exception(NotFoundError("User", user.id))
    return UserResponse.model_validate(account)
