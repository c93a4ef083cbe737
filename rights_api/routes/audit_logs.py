from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from rights_api.database import get_db
from rights_api.middleware.auth import get_current_user
from rights_api.middleware.authorization import require_capability
from rights_api.models.audit_log import AuditLog
from rights_api.models.user import User
from rights_api.schemas.audit_log import AuditLogResponse
from rights_api.schemas.common import PaginatedResponse, build_pagination
from rights_api.services.contract_service import parse_uuid

router = APIRouter()


@router.get("", response_model=PaginatedResponse[AuditLogResponse])
async def list_audit_logs(
    action: Optional[str] = Query(None),
    entity_type: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    page: int = Query(1, ge=1, le=1000),
    limit: int = Query(20, ge=1, le=100),
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_capability("audit:read")),
    db: AsyncSession = Depends(get_db),
):
    q = select(AuditLog, User.email).outerjoin(User, AuditLog.user_id == User.id)
    count_q = select(func.count(AuditLog.id))

    filters = []
    if action:
        filters.append(AuditLog.action == action)
    if entity_type:
        filters.append(AuditLog.entity_type == entity_type)
    if user_id:
        filters.append(AuditLog.user_id == parse_uuid(user_id))
    if from_date:
        filters.append(AuditLog.created_at >= datetime.combine(from_date, datetime.min.time()))
    if to_date:
        filters.append(AuditLog.created_at <= datetime.combine(to_date, datetime.max.time()))
    if filters:
        q = q.where(*filters)
        count_q = count_q.where(*filters)

    total = (await db.execute(count_q)).scalar() or 0
    result = await db.execute(
        q.order_by(AuditLog.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )

    items = [
        AuditLogResponse(
            id=str(log.id),
            action=log.action,
            entity_type=log.entity_type,
            entity_id=log.entity_id,
            old_values=log.old_values,
            new_values=log.new_values,
            user_id=str(log.user_id) if log.user_id else None,
            user_email=email,
            ip_address=log.ip_address,
            created_at=log.created_at.isoformat() if log.created_at else "",
        )
        for log, email in result.all()
    ]

    return PaginatedResponse(data=items, pagination=build_pagination(page, limit, total))
