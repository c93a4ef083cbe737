"""
Contract service: write-time integrity rules, listings, amendment chains.

All functions use the caller's session (no commit). get_db() auto-commits.
"""

import uuid
from datetime import date
from typing import Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from rights_api.models.contract import Contract, ContractContent
from rights_api.models.royalty import Royalty
from rights_api.schemas.contract import ContractResponse
from rights_api.services.availability_service import contains_ignore_case
from rights_api.services.contract_status import (
    TERMINAL_STATUSES,
    derive_status,
    expiring_within,
    reconcile_expired_statuses,
)

logger = structlog.get_logger()

MAX_AMENDMENT_DEPTH = 50
EXPIRING_WINDOWS = (30, 60, 90)


class ContractValidationError(Exception):
    """A contract write would break a data-integrity rule."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


def _str(value) -> Optional[str]:
    return str(value) if value is not None else None


def to_response(c: Contract, today: Optional[date] = None) -> ContractResponse:
    return ContractResponse(
        id=str(c.id),
        partner=c.partner,
        licensor=c.licensor,
        licensee=c.licensee,
        territory=c.territory,
        platform=c.platform,
        content=c.content,
        start_date=str(c.start_date),
        end_date=_str(c.end_date),
        auto_renew=bool(c.auto_renew),
        royalty_type=c.royalty_type or "Revenue Share",
        royalty_rate=_str(c.royalty_rate),
        flat_fee_amount=_str(c.flat_fee_amount),
        minimum_payment=_str(c.minimum_payment),
        payment_terms=c.payment_terms or "Net 30",
        reporting_frequency=c.reporting_frequency or "None",
        exclusivity=c.exclusivity or "Non-Exclusive",
        status=derive_status(c, today),
        stored_status=c.status or "Active",
        parent_contract_id=_str(c.parent_contract_id),
        contract_document_url=c.contract_document_url,
        created_by=_str(c.created_by),
        created_at=c.created_at.isoformat() if c.created_at else None,
        updated_at=c.updated_at.isoformat() if c.updated_at else None,
    )


def validate_contract_fields(values: dict) -> None:
    """
    Check the merged field values of a contract about to be written.

    Raises ContractValidationError naming the first offending field.
    """
    auto_renew = bool(values.get("auto_renew"))
    status = values.get("status") or "Active"
    start_date = values.get("start_date")
    end_date = values.get("end_date")

    if auto_renew and end_date is not None:
        raise ContractValidationError(
            "end_date", "end_date must be empty for auto-renewing contracts"
        )
    if not auto_renew and end_date is None and status not in TERMINAL_STATUSES:
        raise ContractValidationError(
            "end_date", "end_date is required unless the contract auto-renews"
        )
    if start_date is not None and end_date is not None and end_date < start_date:
        raise ContractValidationError(
            "end_date", "end_date must be on or after start_date"
        )

    royalty_type = values.get("royalty_type") or "Revenue Share"
    if royalty_type == "Flat Fee" and values.get("flat_fee_amount") is None:
        raise ContractValidationError(
            "flat_fee_amount", "flat_fee_amount is required for Flat Fee contracts"
        )


def parse_uuid(value) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError):
        return None


async def get_contract(session: AsyncSession, contract_id: str) -> Optional[Contract]:
    cid = parse_uuid(contract_id)
    if cid is None:
        return None
    result = await session.execute(select(Contract).where(Contract.id == cid))
    return result.scalar_one_or_none()


async def get_amendment_chain(session: AsyncSession, contract: Contract) -> list[Contract]:
    """Ancestors of ``contract`` root first, ending with the contract itself."""
    chain = [contract]
    seen = {contract.id}
    current = contract
    while current.parent_contract_id is not None and len(chain) < MAX_AMENDMENT_DEPTH:
        if current.parent_contract_id in seen:
            logger.warning("amendment_cycle_detected", contract_id=str(contract.id))
            break
        result = await session.execute(
            select(Contract).where(Contract.id == current.parent_contract_id)
        )
        parent = result.scalar_one_or_none()
        if parent is None:
            break
        chain.append(parent)
        seen.add(parent.id)
        current = parent
    chain.reverse()
    return chain


async def get_amendments(session: AsyncSession, contract_id: uuid.UUID) -> list[Contract]:
    result = await session.execute(
        select(Contract)
        .where(Contract.parent_contract_id == contract_id)
        .order_by(Contract.start_date.asc())
    )
    return list(result.scalars().all())


async def resolve_parent(
    session: AsyncSession,
    parent_contract_id: Optional[str],
    contract_id: Optional[uuid.UUID] = None,
) -> Optional[uuid.UUID]:
    """Validate an amendment link and return the parent id."""
    if parent_contract_id is None:
        return None
    parent = await get_contract(session, parent_contract_id)
    if parent is None:
        raise ContractValidationError("parent_contract_id", "Parent contract not found")
    if contract_id is not None:
        if parent.id == contract_id:
            raise ContractValidationError(
                "parent_contract_id", "A contract cannot amend itself"
            )
        ancestry = await get_amendment_chain(session, parent)
        if any(c.id == contract_id for c in ancestry):
            raise ContractValidationError(
                "parent_contract_id", "Amendment link would create a cycle"
            )
    return parent.id


async def list_contracts(
    session: AsyncSession,
    status: Optional[str] = None,
    territory: Optional[str] = None,
    search: Optional[str] = None,
    expiring: Optional[int] = None,
    today: Optional[date] = None,
) -> list[Contract]:
    """Contracts matching the filters, newest first. Status filters on derived status."""
    today = today or date.today()
    await reconcile_expired_statuses(session, today)

    q = select(Contract)
    if territory:
        q = q.where(contains_ignore_case(Contract.territory, territory))
    if search:
        q = q.where(
            or_(
                contains_ignore_case(Contract.partner, search),
                contains_ignore_case(Contract.licensee, search),
                contains_ignore_case(Contract.licensor, search),
            )
        )
    result = await session.execute(q.order_by(Contract.created_at.desc()))
    contracts = list(result.scalars().all())

    if status:
        contracts = [c for c in contracts if derive_status(c, today) == status]
    if expiring in EXPIRING_WINDOWS:
        contracts = expiring_within(contracts, expiring, today)
    return contracts


async def delete_contract(session: AsyncSession, contract: Contract) -> None:
    """Delete a contract with its royalties and content links; amendments are detached."""
    await session.execute(delete(Royalty).where(Royalty.contract_id == contract.id))
    await session.execute(
        delete(ContractContent).where(ContractContent.contract_id == contract.id)
    )
    await session.delete(contract)
    await session.flush()
    logger.info("contract_deleted", contract_id=str(contract.id))
