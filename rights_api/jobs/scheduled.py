"""
Scheduled jobs triggered by an external scheduler calling these endpoints.

Jobs:
  - reconcile-contract-statuses: Daily at 00:15 UTC
  - expiring-contracts: Weekly Monday 8:00 UTC
  - reporting-due: Weekly Monday 8:00 UTC
  - password-resets: Every 5 minutes

The notification jobs return the payload for the mailer; no email is sent here.
"""

from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from rights_api.config import settings
from rights_api.database import get_db
from rights_api.models.contract import Contract
from rights_api.models.user import User
from rights_api.schemas.auth import PendingResetResponse
from rights_api.schemas.contract import ExpiringContractResponse
from rights_api.services.contract_status import (
    STATUS_ACTIVE,
    days_until_expiry,
    expiring_within,
    reconcile_expired_statuses,
)
from rights_api.services.royalty_service import next_report_due

logger = structlog.get_logger()
router = APIRouter()


async def _require_internal_auth(request: Request):
    """
    Verify the request comes from the scheduler or another internal service.
    Validates X-Internal-Secret header against INTERNAL_JOB_SECRET from settings.
    """
    secret = settings.INTERNAL_JOB_SECRET
    if not secret:
        # In development (DEBUG=True), allow unauthenticated internal calls
        if settings.DEBUG:
            return
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "code": "INTERNAL_AUTH_UNCONFIGURED",
                "message": "INTERNAL_JOB_SECRET is not configured",
            },
        )
    provided = request.headers.get("X-Internal-Secret")
    if not provided or provided != secret:
        logger.warning("internal_auth_failed", path=request.url.path)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "INTERNAL_AUTH_FAILED", "message": "Forbidden"},
        )


async def _admin_recipients(db: AsyncSession) -> list[dict]:
    result = await db.execute(
        select(User).where(User.role == "Admin", User.is_active == True)  # noqa: E712
    )
    return [
        {"email": u.email, "name": u.first_name or "Admin"}
        for u in result.scalars().all()
        if u.email
    ]


@router.post("/reconcile-contract-statuses")
async def reconcile_contract_statuses(
    db: AsyncSession = Depends(get_db),
    _auth: None = Depends(_require_internal_auth),
):
    """Daily: persist Expired on lapsed, non-renewing Active contracts."""
    expired = await reconcile_expired_statuses(db)
    logger.info("job_reconcile_contract_statuses", expired=expired)
    return {"expired": expired}


@router.post("/expiring-contracts")
async def expiring_contracts(
    days: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
    _auth: None = Depends(_require_internal_auth),
):
    """Weekly: contracts ending within ``days`` that will not auto-renew."""
    today = date.today()
    await reconcile_expired_statuses(db, today)
    result = await db.execute(
        select(Contract).where(
            Contract.status == STATUS_ACTIVE,
            Contract.end_date.is_not(None),
        )
    )
    contracts = expiring_within(result.scalars().all(), days, today)
    recipients = await _admin_recipients(db)

    items = [
        ExpiringContractResponse(
            id=str(c.id),
            partner=c.partner,
            licensee=c.licensee,
            end_date=str(c.end_date),
            days_remaining=days_until_expiry(c, today),
            auto_renew=bool(c.auto_renew),
        )
        for c in contracts
    ]
    logger.info("job_expiring_contracts", count=len(items), recipients=len(recipients))
    return {"contracts": items, "recipients": recipients}


@router.post("/reporting-due")
async def reporting_due(
    db: AsyncSession = Depends(get_db),
    _auth: None = Depends(_require_internal_auth),
):
    """Weekly: active contracts with a revenue reporting obligation and its next due date."""
    today = date.today()
    await reconcile_expired_statuses(db, today)
    result = await db.execute(
        select(Contract)
        .where(
            Contract.status == STATUS_ACTIVE,
            Contract.reporting_frequency.is_not(None),
            Contract.reporting_frequency != "None",
        )
        .order_by(Contract.partner)
    )
    items = [
        {
            "id": str(c.id),
            "partner": c.partner,
            "licensee": c.licensee,
            "reporting_frequency": c.reporting_frequency,
            "next_report_due": str(next_report_due(c.reporting_frequency, today)),
        }
        for c in result.scalars().all()
    ]
    recipients = await _admin_recipients(db)
    logger.info("job_reporting_due", count=len(items), recipients=len(recipients))
    return {"contracts": items, "recipients": recipients}


@router.post("/password-resets")
async def password_resets(
    db: AsyncSession = Depends(get_db),
    _auth: None = Depends(_require_internal_auth),
):
    """Frequent: unexpired reset tokens issued by /auth/forgot-password, for the mailer to deliver."""
    now = datetime.utcnow()
    result = await db.execute(
        select(User)
        .where(
            User.is_active == True,  # noqa: E712
            User.reset_token.is_not(None),
            User.reset_token_expiry > now,
        )
        .order_by(User.reset_token_expiry)
    )
    resets = [
        PendingResetResponse(
            email=u.email,
            name=u.first_name or u.email,
            reset_token=u.reset_token,
            expires_at=u.reset_token_expiry.isoformat(),
        )
        for u in result.scalars().all()
    ]
    logger.info("job_password_resets", count=len(resets))
    return {"resets": resets}
