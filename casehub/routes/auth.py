import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, status
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from casehub.config import settings
from casehub.database import get_db
from casehub.errors import AuthenticationError, InvalidCredentialsError, ValidationError
from casehub.middleware.auth import get_current_user, current_user_id
from casehub.models.staff import Staff
from casehub.models.user import User
from casehub.schemas.auth import (
    LoginRequest,
    TokenResponse,
    RefreshTokenRequest,
    ChangePasswordRequest,
    UserResponse,
)
from casehub.services.auth_service import (
    hash_password,
    verify_password,
    create_access_token,
    create_refresh_token,
    verify_refresh_token,
)

logger = structlog.get_logger()

router = APIRouter()


def _issue_tokens(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(
            user_id=str(user.id), role=user.role, email=user.email
        ),
        refresh_token=create_refresh_token(user_id=str(user.id)),
        token_type="Bearer",
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


async def _active_user(db: AsyncSession, user_id) -> User | None:
    result = await db.execute(
        select(User).where(User.id == user_id, User.is_active == True)  # noqa: E712
    )
    return result.scalar_one_or_none()


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Authenticate user and return JWT tokens."""
    result = await db.execute(
        select(User).where(User.email == body.email.lower(), User.is_active == True)  # noqa: E712
    )
    user = result.scalar_one_or_none()

    if not user or not verify_password(body.password, user.password_hash):
        logger.warning("login_failed", email=body.email)
        raise InvalidCredentialsError("Invalid email or password")

    user.last_login_at = datetime.utcnow()

    logger.info("user_logged_in", user_id=str(user.id), role=user.role)
    return _issue_tokens(user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(body: RefreshTokenRequest, db: AsyncSession = Depends(get_db)):
    """Exchange a valid refresh token for a fresh token pair."""
    try:
        payload = verify_refresh_token(body.refresh_token)
    except JWTError:
        raise AuthenticationError("Invalid or expired refresh token")

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise AuthenticationError("Invalid or expired refresh token")

    user = await _active_user(db, user_id)
    if not user:
        raise AuthenticationError("User no longer exists or is deactivated")

    return _issue_tokens(user)


@router.get("/me", response_model=UserResponse)
async def me(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await _active_user(db, current_user_id(current_user))
    if not user:
        raise AuthenticationError("User no longer exists or is deactivated")

    staff_id = (
        await db.execute(select(Staff.id).where(Staff.user_id == user.id))
    ).scalar_one_or_none()

    return UserResponse(
        id=str(user.id),
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        role=user.role,
        is_active=user.is_active,
        staff_id=str(staff_id) if staff_id else None,
        last_login_at=user.last_login_at.isoformat() if user.last_login_at else None,
    )


@router.post("/change-password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(
    body: ChangePasswordRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Change the authenticated user's password."""
    user = await _active_user(db, current_user_id(current_user))
    if not user:
        raise AuthenticationError("User no longer exists or is deactivated")

    if not verify_password(body.current_password, user.password_hash):
        raise ValidationError.for_field("current_password", "Incorrect current password")

    user.password_hash = hash_password(body.new_password)
    logger.info("password_changed", user_id=str(user.id))
