from datetime import date
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field

# Expired is only ever written by the reconciliation pass
WritableStatus = Literal["Active", "In Perpetuity", "Terminated"]
Exclusivity = Literal["Exclusive", "Non-Exclusive", "Limited Exclusive"]
RoyaltyType = Literal["Revenue Share", "Flat Fee"]
PaymentTerms = Literal["Net 30", "Net 60", "Net 90"]
ReportingFrequency = Literal["None", "Monthly", "Quarterly", "Annually"]


class ContractCreate(BaseModel):
    partner: str = Field(..., min_length=1, max_length=255)
    licensor: str = Field(..., min_length=1, max_length=255)
    licensee: str = Field(..., min_length=1, max_length=255)
    territory: str = Field(..., min_length=1, max_length=255)
    platform: str = Field(..., min_length=1, max_length=255)
    content: Optional[str] = None
    start_date: date
    end_date: Optional[date] = None
    auto_renew: bool = False
    royalty_type: RoyaltyType = "Revenue Share"
    royalty_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    flat_fee_amount: Optional[Decimal] = Field(None, ge=0)
    minimum_payment: Optional[Decimal] = Field(None, ge=0)
    payment_terms: PaymentTerms = "Net 30"
    reporting_frequency: ReportingFrequency = "None"
    exclusivity: Exclusivity = "Non-Exclusive"
    status: WritableStatus = "Active"
    parent_contract_id: Optional[str] = None
    contract_document_url: Optional[str] = Field(None, max_length=500)


class ContractUpdate(BaseModel):
    partner: Optional[str] = Field(None, min_length=1, max_length=255)
    licensor: Optional[str] = Field(None, min_length=1, max_length=255)
    licensee: Optional[str] = Field(None, min_length=1, max_length=255)
    territory: Optional[str] = Field(None, min_length=1, max_length=255)
    platform: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    auto_renew: Optional[bool] = None
    royalty_type: Optional[RoyaltyType] = None
    royalty_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    flat_fee_amount: Optional[Decimal] = Field(None, ge=0)
    minimum_payment: Optional[Decimal] = Field(None, ge=0)
    payment_terms: Optional[PaymentTerms] = None
    reporting_frequency: Optional[ReportingFrequency] = None
    exclusivity: Optional[Exclusivity] = None
    status: Optional[WritableStatus] = None
    parent_contract_id: Optional[str] = None
    contract_document_url: Optional[str] = Field(None, max_length=500)


class ContractResponse(BaseModel):
    id: str
    partner: str
    licensor: str
    licensee: str
    territory: str
    platform: str
    content: Optional[str] = None
    start_date: str
    end_date: Optional[str] = None
    auto_renew: bool
    royalty_type: str
    royalty_rate: Optional[str] = None
    flat_fee_amount: Optional[str] = None
    minimum_payment: Optional[str] = None
    payment_terms: str
    reporting_frequency: str
    exclusivity: str
    # Derived status; stored_status is the raw column value
    status: str
    stored_status: str
    parent_contract_id: Optional[str] = None
    contract_document_url: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    model_config = {"from_attributes": True}


class ContentLinkRequest(BaseModel):
    content_id: str
    notes: Optional[str] = None


class ExpiringContractResponse(BaseModel):
    id: str
    partner: str
    licensee: str
    end_date: str
    days_remaining: int
    auto_renew: bool
