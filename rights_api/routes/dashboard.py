from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rights_api.database import get_db
from rights_api.middleware.auth import get_current_user
from rights_api.schemas.dashboard import DashboardStatsResponse
from rights_api.services.dashboard_service import get_dashboard_stats

router = APIRouter()


@router.get("/stats", response_model=DashboardStatsResponse)
async def dashboard_stats(
    period: str = Query("month", pattern="^(month|quarter|year)$"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    stats = await get_dashboard_stats(db, period)
    return DashboardStatsResponse(
        active_contracts=stats.active_contracts,
        expiring_soon=stats.expiring_soon,
        total_royalties=f"{stats.total_royalties:.2f}",
        pending_reviews=stats.pending_reviews,
        period_label=stats.period_label,
    )
