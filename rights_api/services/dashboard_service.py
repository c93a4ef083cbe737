"""
Dashboard statistics.

Counts run after a reconciliation pass so stored status matches derived
status for the SQL aggregates.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from rights_api.config import settings
from rights_api.models.contract import Contract
from rights_api.models.royalty import Royalty
from rights_api.services.contract_status import STATUS_ACTIVE, reconcile_expired_statuses

logger = structlog.get_logger()

PERIODS = ("month", "quarter", "year")


@dataclass
class DashboardStats:
    active_contracts: int
    expiring_soon: int
    total_royalties: Decimal
    pending_reviews: int
    period_label: str


def period_bounds(period: str, today: date) -> tuple[date, str]:
    """Return (period start, display label). Unknown periods fall back to month."""
    if period == "quarter":
        quarter = (today.month - 1) // 3
        return date(today.year, quarter * 3 + 1, 1), f"Q{quarter + 1} {today.year}"
    if period == "year":
        return date(today.year, 1, 1), str(today.year)
    return date(today.year, today.month, 1), today.strftime("%B %Y")


async def get_dashboard_stats(
    session: AsyncSession,
    period: str = "month",
    today: Optional[date] = None,
) -> DashboardStats:
    today = today or date.today()
    await reconcile_expired_statuses(session, today)

    active = (
        await session.execute(
            select(func.count(Contract.id)).where(Contract.status == STATUS_ACTIVE)
        )
    ).scalar() or 0

    horizon = today + timedelta(days=settings.EXPIRING_SOON_DAYS)
    expiring = (
        await session.execute(
            select(func.count(Contract.id)).where(
                Contract.status == STATUS_ACTIVE,
                Contract.end_date.is_not(None),
                Contract.end_date >= today,
                Contract.end_date <= horizon,
            )
        )
    ).scalar() or 0

    period_start, label = period_bounds(period, today)
    total = (
        await session.execute(
            select(func.coalesce(func.sum(Royalty.royalty_amount), 0)).where(
                Royalty.status == "Paid",
                Royalty.calculated_at >= datetime.combine(period_start, datetime.min.time()),
            )
        )
    ).scalar() or 0

    pending = (
        await session.execute(
            select(func.count(Royalty.id)).where(Royalty.status == "Pending")
        )
    ).scalar() or 0

    logger.info("dashboard_stats_computed", period=period, active_contracts=active)
    return DashboardStats(
        active_contracts=int(active),
        expiring_soon=int(expiring),
        total_royalties=Decimal(str(total)),
        pending_reviews=int(pending),
        period_label=label,
    )
