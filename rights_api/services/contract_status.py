"""
Contract status model: effective lifecycle state of a contract.

The stored ``contracts.status`` column is a cache. Every read path goes
through derive_status(); reconcile_expired_statuses() is the only writer
that moves rows to Expired.

Precedence:
  Terminated → In Perpetuity → auto-renew (never expires) → end date passed → stored
"""

from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy import or_, update
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from rights_api.models.contract import Contract

logger = structlog.get_logger()

STATUS_ACTIVE = "Active"
STATUS_EXPIRED = "Expired"
STATUS_IN_PERPETUITY = "In Perpetuity"
STATUS_TERMINATED = "Terminated"

TERMINAL_STATUSES = (STATUS_TERMINATED, STATUS_IN_PERPETUITY)
LIVE_STATUSES = (STATUS_ACTIVE, STATUS_IN_PERPETUITY)


def _to_date(value) -> Optional[date]:
    """Normalise a date-ish value; anything unparseable becomes None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def derive_status(contract, today: Optional[date] = None) -> str:
    """Effective status of a contract. Pure; never raises on bad dates."""
    today = _to_date(today) or date.today()
    stored = getattr(contract, "status", None)

    if stored in TERMINAL_STATUSES:
        return stored

    if getattr(contract, "auto_renew", False):
        return stored or STATUS_ACTIVE

    end_date = _to_date(getattr(contract, "end_date", None))
    if end_date is None:
        logger.warning(
            "contract_missing_end_date",
            contract_id=str(getattr(contract, "id", "")),
        )
    elif end_date < today:
        return STATUS_EXPIRED

    return stored or STATUS_ACTIVE


def is_live(contract, today: Optional[date] = None) -> bool:
    """Live contracts can block a new grant."""
    return derive_status(contract, today) in LIVE_STATUSES


def days_until_expiry(contract, today: Optional[date] = None) -> Optional[int]:
    """Days left before end_date; None for auto-renewing or open-ended contracts."""
    if getattr(contract, "auto_renew", False):
        return None
    end_date = _to_date(getattr(contract, "end_date", None))
    if end_date is None:
        return None
    return (end_date - (_to_date(today) or date.today())).days


def expiring_within(
    contracts: Iterable, days: int, today: Optional[date] = None
) -> list:
    """Active, non-renewing contracts ending in [today, today + days], soonest first."""
    today = _to_date(today) or date.today()
    horizon = today + timedelta(days=days)
    expiring = [
        c
        for c in contracts
        if derive_status(c, today) == STATUS_ACTIVE
        and not getattr(c, "auto_renew", False)
        and _to_date(c.end_date) is not None
        and today <= _to_date(c.end_date) <= horizon
    ]
    return sorted(expiring, key=lambda c: _to_date(c.end_date))


async def reconcile_expired_statuses(
    session: AsyncSession, today: Optional[date] = None
) -> int:
    """
    Set stored status to Expired for Active, non-renewing contracts whose
    end date has passed. Single set-based UPDATE; safe to run repeatedly.

    Uses the caller's session (no commit). Returns the number of rows changed.
    """
    today = _to_date(today) or date.today()
    result = await session.execute(
        update(Contract)
        .where(
            Contract.status == STATUS_ACTIVE,
            Contract.end_date < today,
            or_(Contract.auto_renew.is_(False), Contract.auto_renew.is_(None)),
        )
        .values(status=STATUS_EXPIRED, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    changed = result.rowcount or 0
    if changed:
        logger.info("contract_statuses_reconciled", expired=changed, as_of=today.isoformat())
    return changed
