from pydantic import BaseModel


class DashboardStatsResponse(BaseModel):
    active_contracts: int
    expiring_soon: int
    # Paid royalties calculated since the start of the period
    total_royalties: str
    pending_reviews: int
    period_label: str
