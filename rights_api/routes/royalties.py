"""
Royalty statements: /api/v1/royalties

Amounts are always calculated server-side from the contract terms.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from rights_api.database import get_db
from rights_api.middleware.auth import get_current_user
from rights_api.middleware.authorization import require_capability
from rights_api.models.contract import Contract
from rights_api.models.royalty import Royalty
from rights_api.schemas.common import PaginatedResponse, build_pagination
from rights_api.schemas.royalty import RoyaltyCreate, RoyaltyResponse, RoyaltyUpdate
from rights_api.services.audit_service import create_audit_log, request_meta, snapshot
from rights_api.services.contract_service import get_contract, parse_uuid
from rights_api.services.royalty_service import (
    RoyaltyCalculationError,
    calculate_royalty,
    can_edit_revenue,
    can_transition,
)

logger = structlog.get_logger()
router = APIRouter()


def _to_response(r: Royalty, contract: Optional[Contract] = None) -> RoyaltyResponse:
    return RoyaltyResponse(
        id=str(r.id),
        contract_id=str(r.contract_id),
        partner=contract.partner if contract else None,
        licensee=contract.licensee if contract else None,
        reporting_period=r.reporting_period,
        revenue=str(r.revenue),
        royalty_amount=str(r.royalty_amount),
        status=r.status or "Pending",
        calculated_at=r.calculated_at.isoformat() if r.calculated_at else None,
        calculated_by=str(r.calculated_by) if r.calculated_by else None,
    )


def _calculation_error(exc: RoyaltyCalculationError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"code": "ROYALTY_CALCULATION_FAILED", "message": str(exc)},
    )


async def _get_with_contract(db: AsyncSession, royalty_id: str) -> tuple[Royalty, Contract]:
    rid = parse_uuid(royalty_id)
    row = None
    if rid is not None:
        result = await db.execute(
            select(Royalty, Contract)
            .join(Contract, Royalty.contract_id == Contract.id)
            .where(Royalty.id == rid)
        )
        row = result.first()
    if not row:
        raise HTTPException(
            status_code=404,
            detail={"code": "ROYALTY_NOT_FOUND", "message": "Royalty not found"},
        )
    return row[0], row[1]


@router.get("", response_model=PaginatedResponse[RoyaltyResponse])
async def list_royalties(
    page: int = Query(1, ge=1, le=1000),
    limit: int = Query(50, ge=1, le=200),
    royalty_status: Optional[str] = Query(None, alias="status"),
    contract_id: Optional[str] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    q = select(Royalty, Contract).join(Contract, Royalty.contract_id == Contract.id)
    count_q = select(func.count(Royalty.id))
    if royalty_status:
        q = q.where(Royalty.status == royalty_status)
        count_q = count_q.where(Royalty.status == royalty_status)
    if contract_id:
        cid = parse_uuid(contract_id)
        q = q.where(Royalty.contract_id == cid)
        count_q = count_q.where(Royalty.contract_id == cid)

    total = (await db.execute(count_q)).scalar() or 0
    result = await db.execute(
        q.order_by(Royalty.calculated_at.desc()).offset((page - 1) * limit).limit(limit)
    )
    items = [_to_response(r, c) for r, c in result.all()]
    return PaginatedResponse(data=items, pagination=build_pagination(page, limit, total))


@router.get("/{royalty_id}", response_model=RoyaltyResponse)
async def get_royalty(
    royalty_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    royalty, contract = await _get_with_contract(db, royalty_id)
    return _to_response(royalty, contract)


@router.post("", response_model=RoyaltyResponse, status_code=status.HTTP_201_CREATED)
async def create_royalty(
    body: RoyaltyCreate,
    request: Request,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_capability("royalties:write")),
    db: AsyncSession = Depends(get_db),
):
    contract = await get_contract(db, body.contract_id)
    if not contract:
        raise HTTPException(
            status_code=404,
            detail={"code": "CONTRACT_NOT_FOUND", "message": "Contract not found"},
        )
    try:
        calc = calculate_royalty(contract, body.revenue)
    except RoyaltyCalculationError as e:
        raise _calculation_error(e)

    royalty = Royalty(
        contract_id=contract.id,
        reporting_period=body.reporting_period,
        revenue=calc.revenue,
        royalty_amount=calc.royalty_amount,
        status="Pending",
        calculated_at=datetime.utcnow(),
        calculated_by=parse_uuid(current_user["user_id"]),
    )
    db.add(royalty)
    await db.flush()
    await db.refresh(royalty)

    await create_audit_log(
        db,
        action="Royalty Calculated",
        entity_type="Royalty",
        entity_id=str(royalty.id),
        user_id=current_user["user_id"],
        new_values=snapshot(royalty),
        **request_meta(request),
    )
    logger.info(
        "royalty_calculated",
        royalty_id=str(royalty.id),
        contract_id=str(contract.id),
        amount=str(calc.royalty_amount),
        minimum_applied=calc.minimum_applied,
    )
    return _to_response(royalty, contract)


@router.put("/{royalty_id}", response_model=RoyaltyResponse)
async def update_royalty(
    royalty_id: str,
    body: RoyaltyUpdate,
    request: Request,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_capability("royalties:write")),
    db: AsyncSession = Depends(get_db),
):
    royalty, contract = await _get_with_contract(db, royalty_id)
    before = snapshot(royalty)
    changes = body.model_dump(exclude_none=True)

    new_status = changes.get("status")
    if new_status and not can_transition(royalty.status or "Pending", new_status):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "code": "ROYALTY_INVALID_TRANSITION",
                "message": f"Cannot move royalty from {royalty.status} to {new_status}",
            },
        )

    if "revenue" in changes and not can_edit_revenue(royalty.status):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "code": "ROYALTY_LOCKED",
                "message": f"Revenue cannot change on a {royalty.status} royalty",
            },
        )

    if "reporting_period" in changes:
        royalty.reporting_period = changes["reporting_period"]
    if "revenue" in changes:
        try:
            calc = calculate_royalty(contract, changes["revenue"])
        except RoyaltyCalculationError as e:
            raise _calculation_error(e)
        royalty.revenue = calc.revenue
        royalty.royalty_amount = calc.royalty_amount
        royalty.calculated_at = datetime.utcnow()
        royalty.calculated_by = parse_uuid(current_user["user_id"])
    if new_status:
        royalty.status = new_status

    await db.flush()
    await db.refresh(royalty)

    await create_audit_log(
        db,
        action="Royalty Updated",
        entity_type="Royalty",
        entity_id=str(royalty.id),
        user_id=current_user["user_id"],
        old_values=before,
        new_values=snapshot(royalty),
        **request_meta(request),
    )
    return _to_response(royalty, contract)
