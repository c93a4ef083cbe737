from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field

RoyaltyStatus = Literal["Pending", "Approved", "Paid"]


class RoyaltyCreate(BaseModel):
    contract_id: str
    reporting_period: str = Field(..., min_length=1, max_length=50)
    revenue: Decimal = Field(..., ge=0)


class RoyaltyUpdate(BaseModel):
    reporting_period: Optional[str] = Field(None, min_length=1, max_length=50)
    revenue: Optional[Decimal] = Field(None, ge=0)
    status: Optional[RoyaltyStatus] = None


class RoyaltyResponse(BaseModel):
    id: str
    contract_id: str
    partner: Optional[str] = None
    licensee: Optional[str] = None
    reporting_period: str
    revenue: str
    royalty_amount: str
    status: str
    calculated_at: Optional[str] = None
    calculated_by: Optional[str] = None

    model_config = {"from_attributes": True}
