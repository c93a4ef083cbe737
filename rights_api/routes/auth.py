from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from rights_api.config import settings
from rights_api.database import get_db
from rights_api.middleware.auth import get_current_user
from rights_api.models.user import User
from rights_api.routes.users import user_to_response
from rights_api.schemas.auth import (
    AcceptInviteRequest,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    ResetPasswordRequest,
    TokenResponse,
    UserResponse,
)
from rights_api.services.audit_service import create_audit_log
from rights_api.services.auth_service import (
    create_access_token,
    generate_reset_token,
    hash_password,
    token_expired,
    verify_password,
)
from rights_api.services.contract_service import parse_uuid

logger = structlog.get_logger()

router = APIRouter()


def _token_for(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(
            user_id=str(user.id), role=user.role, email=user.email
        ),
        token_type="Bearer",
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


def _invalid_token(code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"code": code, "message": message},
    )


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Authenticate user and return a JWT access token."""
    result = await db.execute(
        select(User).where(User.email == body.email, User.is_active == True)  # noqa: E712
    )
    user = result.scalar_one_or_none()

    if not user or not verify_password(body.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "code": "AUTH_INVALID_CREDENTIALS",
                "message": "Invalid email or password",
            },
        )

    # Naive UTC to match TIMESTAMP WITHOUT TIME ZONE column
    user.last_login_at = datetime.utcnow()
    await db.flush()

    logger.info("user_logged_in", user_id=str(user.id), role=user.role)
    return _token_for(user)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    """Get current authenticated user profile."""
    result = await db.execute(select(User).where(User.id == parse_uuid(current_user["user_id"])))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "USER_NOT_FOUND", "message": "User not found"},
        )
    return user_to_response(user)


@router.post("/accept-invite", response_model=TokenResponse)
async def accept_invite(body: AcceptInviteRequest, db: AsyncSession = Depends(get_db)):
    """Set a password for an invited user and sign them in."""
    result = await db.execute(select(User).where(User.invite_token == body.token))
    user = result.scalar_one_or_none()
    if not user or user.invite_status != "pending":
        raise _invalid_token("INVITE_INVALID", "Invalid invitation token")
    if token_expired(user.invite_token_expiry):
        raise _invalid_token("INVITE_EXPIRED", "Invitation has expired")

    user.password_hash = hash_password(body.password)
    user.invite_token = None
    user.invite_token_expiry = None
    user.invite_status = "accepted"
    user.is_active = True
    user.last_login_at = datetime.utcnow()
    await db.flush()

    await create_audit_log(
        db,
        action="Invite Accepted",
        entity_type="User",
        entity_id=str(user.id),
        user_id=str(user.id),
    )
    logger.info("invite_accepted", user_id=str(user.id))
    return _token_for(user)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(body: ForgotPasswordRequest, db: AsyncSession = Depends(get_db)):
    """
    Store a password reset token for the account, if there is one.

    The response is identical for known and unknown emails. The token only
    leaves the service through /internal/jobs/password-resets.
    """
    result = await db.execute(
        select(User).where(User.email == body.email, User.is_active == True)  # noqa: E712
    )
    user = result.scalar_one_or_none()
    if user:
        token, expiry = generate_reset_token()
        user.reset_token = token
        user.reset_token_expiry = expiry
        await db.flush()
        logger.info("password_reset_requested", user_id=str(user.id))

    return MessageResponse(message="If the email exists, a reset link will be sent")


@router.post("/reset-password", status_code=status.HTTP_204_NO_CONTENT)
async def reset_password(body: ResetPasswordRequest, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(User).where(User.reset_token == body.token))
    user = result.scalar_one_or_none()
    if not user:
        raise _invalid_token("RESET_TOKEN_INVALID", "Invalid reset token")
    if token_expired(user.reset_token_expiry):
        raise _invalid_token("RESET_TOKEN_EXPIRED", "Reset token has expired")

    user.password_hash = hash_password(body.password)
    user.reset_token = None
    user.reset_token_expiry = None
    await db.flush()

    await create_audit_log(
        db,
        action="Password Reset",
        entity_type="User",
        entity_id=str(user.id),
        user_id=str(user.id),
    )
    logger.info("password_reset", user_id=str(user.id))
