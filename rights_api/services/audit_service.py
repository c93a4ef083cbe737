"""Audit logging service: records entity state changes."""

from typing import Optional
from datetime import date, datetime
from decimal import Decimal
import uuid

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from rights_api.models.audit_log import AuditLog

logger = structlog.get_logger()

# Never copied into audit snapshots
_REDACTED_FIELDS = {"password_hash", "invite_token", "reset_token"}


def _to_uuid(value: Optional[str], field_name: str) -> Optional[uuid.UUID]:
    if value is None:
        return None
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError):
        logger.warning("audit_invalid_uuid", field=field_name, value=str(value))
        return None


def _json_safe(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (Decimal, uuid.UUID)):
        return str(value)
    return value


def snapshot(entity) -> Optional[dict]:
    """JSON-serialisable dict of a mapped row's column values."""
    if entity is None:
        return None
    return {
        attr.key: _json_safe(getattr(entity, attr.key))
        for attr in inspect(entity).mapper.column_attrs
        if attr.key not in _REDACTED_FIELDS
    }


async def create_audit_log(
    session: AsyncSession,
    action: str,
    entity_type: str,
    entity_id: Optional[str],
    user_id: Optional[str],
    old_values: Optional[dict] = None,
    new_values: Optional[dict] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> AuditLog:
    """
    Append an audit log entry.

    Uses session.flush(); caller owns the transaction.
    """
    audit = AuditLog(
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        old_values=old_values,
        new_values=new_values,
        user_id=_to_uuid(user_id, "user_id"),
        ip_address=ip_address,
        user_agent=user_agent,
        created_at=datetime.utcnow(),
    )
    session.add(audit)
    await session.flush()

    logger.info(
        "audit_log_created",
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        user_id=user_id,
    )
    return audit


def request_meta(request) -> dict:
    """ip_address / user_agent kwargs for create_audit_log from a Starlette request."""
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }
