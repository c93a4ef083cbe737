"""
Contract model: licensing deals between a licensor and a licensee.

Stored status: Active / Expired / In Perpetuity / Terminated.
The column is a cache; read paths go through services.contract_status.derive_status.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from rights_api.database import Base


CONTRACT_STATUSES = ("Active", "Expired", "In Perpetuity", "Terminated")
EXCLUSIVITY_TYPES = ("Exclusive", "Non-Exclusive", "Limited Exclusive")
ROYALTY_TYPES = ("Revenue Share", "Flat Fee")
PAYMENT_TERMS = ("Net 30", "Net 60", "Net 90")
REPORTING_FREQUENCIES = ("None", "Monthly", "Quarterly", "Annually")


class Contract(Base):
    __tablename__ = "contracts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    partner: Mapped[str] = mapped_column(String(255), nullable=False)
    licensor: Mapped[str] = mapped_column(String(255), nullable=False)
    licensee: Mapped[str] = mapped_column(String(255), nullable=False)
    # Free text, may be comma-joined ("US, Canada" / "SVOD, AVOD")
    territory: Mapped[str] = mapped_column(String(255), nullable=False)
    platform: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[Optional[str]] = mapped_column(Text)
    # Contract period; end_date is NULL for auto-renewing contracts
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    auto_renew: Mapped[bool] = mapped_column(Boolean, default=False)
    # Commercial terms
    royalty_type: Mapped[str] = mapped_column(String(20), default="Revenue Share")
    royalty_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2))
    flat_fee_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2))
    minimum_payment: Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2))
    payment_terms: Mapped[str] = mapped_column(String(20), default="Net 30")
    reporting_frequency: Mapped[str] = mapped_column(String(20), default="None")
    exclusivity: Mapped[str] = mapped_column(String(30), default="Non-Exclusive")
    status: Mapped[str] = mapped_column(String(20), default="Active")
    # Amendments point at the contract they amend
    parent_contract_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("contracts.id", ondelete="SET NULL"), nullable=True
    )
    # Object key of the signed document; storage itself lives outside this service
    contract_document_url: Mapped[Optional[str]] = mapped_column(String(500))
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('Active','Expired','In Perpetuity','Terminated')",
            name="chk_contract_status",
        ),
        CheckConstraint(
            "exclusivity IN ('Exclusive','Non-Exclusive','Limited Exclusive')",
            name="chk_contract_exclusivity",
        ),
        Index("idx_contracts_partner", "partner"),
        Index("idx_contracts_status", "status"),
        Index("idx_contracts_start_date", "start_date"),
        Index("idx_contracts_end_date", "end_date"),
        Index("idx_contracts_parent", "parent_contract_id"),
    )


class ContractContent(Base):
    """
    Association table linking contracts to catalog content items.
    """
    __tablename__ = "contract_content"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    contract_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False
    )
    content_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("content_items.id", ondelete="CASCADE"), nullable=False
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("contract_id", "content_id", name="uq_contract_content"),
        Index("idx_contract_content_contract", "contract_id"),
        Index("idx_contract_content_content", "content_id"),
    )
