from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from rights_api.database import get_db
from rights_api.middleware.auth import get_current_user
from rights_api.middleware.authorization import require_capability
from rights_api.models.audit_log import AuditLog
from rights_api.models.content_item import ContentItem
from rights_api.models.contract import Contract
from rights_api.models.royalty import Royalty
from rights_api.models.user import User
from rights_api.schemas.auth import (
    InviteResponse,
    UserCreateRequest,
    UserInviteRequest,
    UserResponse,
    UserUpdateRequest,
)
from rights_api.schemas.common import PaginatedResponse, build_pagination
from rights_api.services.audit_service import create_audit_log, request_meta, snapshot
from rights_api.services.auth_service import generate_invite_token, hash_password
from rights_api.services.contract_service import parse_uuid

logger = structlog.get_logger()
router = APIRouter()


def user_to_response(u: User) -> UserResponse:
    return UserResponse(
        id=str(u.id),
        email=u.email,
        first_name=u.first_name,
        last_name=u.last_name,
        role=u.role,
        is_active=bool(u.is_active),
        invite_status=u.invite_status,
        last_login_at=u.last_login_at.isoformat() if u.last_login_at else None,
    )


async def _get_or_404(db: AsyncSession, user_id: str) -> User:
    uid = parse_uuid(user_id)
    user = None
    if uid is not None:
        user = (await db.execute(select(User).where(User.id == uid))).scalar_one_or_none()
    if not user:
        raise HTTPException(
            status_code=404,
            detail={"code": "USER_NOT_FOUND", "message": "User not found"},
        )
    return user


async def _ensure_email_free(db: AsyncSession, email: str) -> None:
    existing = await db.execute(select(User).where(User.email == email))
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "code": "USER_EMAIL_EXISTS",
                "message": f"Email '{email}' is already registered",
            },
        )


@router.get("", response_model=PaginatedResponse[UserResponse])
async def list_users(
    page: int = Query(1, ge=1, le=1000),
    limit: int = Query(20, ge=1, le=100),
    role: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_capability("users:manage")),
    db: AsyncSession = Depends(get_db),
):
    q = select(User)
    count_q = select(func.count(User.id))
    if role:
        q = q.where(User.role == role)
        count_q = count_q.where(User.role == role)
    if is_active is not None:
        q = q.where(User.is_active == is_active)
        count_q = count_q.where(User.is_active == is_active)

    total = (await db.execute(count_q)).scalar() or 0
    result = await db.execute(q.order_by(User.email).offset((page - 1) * limit).limit(limit))
    items = [user_to_response(u) for u in result.scalars().all()]
    return PaginatedResponse(data=items, pagination=build_pagination(page, limit, total))


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreateRequest,
    request: Request,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_capability("users:manage")),
    db: AsyncSession = Depends(get_db),
):
    await _ensure_email_free(db, body.email)

    user = User(
        email=body.email,
        password_hash=hash_password(body.password),
        first_name=body.first_name,
        last_name=body.last_name,
        role=body.role,
        is_active=True,
        invite_status="accepted",
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    await create_audit_log(
        db,
        action="User Created",
        entity_type="User",
        entity_id=str(user.id),
        user_id=current_user["user_id"],
        new_values=snapshot(user),
        **request_meta(request),
    )
    return user_to_response(user)


@router.post("/invite", response_model=InviteResponse, status_code=status.HTTP_201_CREATED)
async def invite_user(
    body: UserInviteRequest,
    request: Request,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_capability("users:manage")),
    db: AsyncSession = Depends(get_db),
):
    """Create a pending user; the caller delivers the returned token."""
    await _ensure_email_free(db, body.email)

    token, expiry = generate_invite_token()
    user = User(
        email=body.email,
        first_name=body.first_name,
        last_name=body.last_name,
        role=body.role,
        is_active=False,
        invite_token=token,
        invite_token_expiry=expiry,
        invite_status="pending",
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    await create_audit_log(
        db,
        action="User Invited",
        entity_type="User",
        entity_id=str(user.id),
        user_id=current_user["user_id"],
        new_values=snapshot(user),
        **request_meta(request),
    )
    logger.info("user_invited", user_id=str(user.id), role=user.role)
    return InviteResponse(
        user=user_to_response(user),
        invite_token=token,
        invite_token_expiry=expiry.isoformat(),
    )


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    body: UserUpdateRequest,
    request: Request,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_capability("users:manage")),
    db: AsyncSession = Depends(get_db),
):
    user = await _get_or_404(db, user_id)
    before = snapshot(user)

    update_data = body.model_dump(exclude_none=True)
    if "email" in update_data and update_data["email"] != user.email:
        await _ensure_email_free(db, update_data["email"])
    password = update_data.pop("password", None)
    if password:
        user.password_hash = hash_password(password)

    for field, value in update_data.items():
        setattr(user, field, value)
    user.updated_at = datetime.utcnow()

    await db.flush()
    await db.refresh(user)

    await create_audit_log(
        db,
        action="User Updated",
        entity_type="User",
        entity_id=str(user.id),
        user_id=current_user["user_id"],
        old_values=before,
        new_values=snapshot(user),
        **request_meta(request),
    )
    return user_to_response(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    request: Request,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_capability("users:manage")),
    db: AsyncSession = Depends(get_db),
):
    """Hard-delete a user, detaching the records they authored."""
    user = await _get_or_404(db, user_id)
    if str(user.id) == current_user["user_id"]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "USER_SELF_DELETE", "message": "You cannot delete your own account"},
        )
    before = snapshot(user)

    await db.execute(update(AuditLog).where(AuditLog.user_id == user.id).values(user_id=None))
    await db.execute(update(Contract).where(Contract.created_by == user.id).values(created_by=None))
    await db.execute(
        update(Royalty).where(Royalty.calculated_by == user.id).values(calculated_by=None)
    )
    await db.execute(
        update(ContentItem).where(ContentItem.created_by == user.id).values(created_by=None)
    )
    await db.delete(user)
    await db.flush()

    await create_audit_log(
        db,
        action="User Deleted",
        entity_type="User",
        entity_id=user_id,
        user_id=current_user["user_id"],
        old_values=before,
        **request_meta(request),
    )
    logger.info("user_deleted", user_id=user_id)
