"""
Contract management: /api/v1/contracts

CRUD for licensing contracts, amendment chains and content links.
Responses always carry the derived status (see services.contract_status).
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from rights_api.database import get_db
from rights_api.middleware.auth import get_current_user
from rights_api.middleware.authorization import require_capability
from rights_api.models.content_item import ContentItem
from rights_api.models.contract import Contract, ContractContent
from rights_api.routes.content import content_to_response
from rights_api.schemas.common import PaginatedResponse, build_pagination, page_slice
from rights_api.schemas.content import ContractContentResponse
from rights_api.schemas.contract import (
    ContentLinkRequest,
    ContractCreate,
    ContractResponse,
    ContractUpdate,
)
from rights_api.services.audit_service import create_audit_log, request_meta, snapshot
from rights_api.services.contract_service import (
    ContractValidationError,
    delete_contract as delete_contract_cascade,
    get_amendment_chain,
    get_amendments,
    get_contract as find_contract,
    list_contracts as find_contracts,
    parse_uuid,
    resolve_parent,
    to_response,
    validate_contract_fields,
)
from rights_api.services.contract_status import reconcile_expired_statuses

logger = structlog.get_logger()
router = APIRouter()


def _integrity_error(exc: ContractValidationError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={
            "code": "CONTRACT_INTEGRITY_VIOLATION",
            "message": exc.message,
            "field": exc.field,
        },
    )


async def _get_or_404(db: AsyncSession, contract_id: str) -> Contract:
    contract = await find_contract(db, contract_id)
    if not contract:
        raise HTTPException(
            status_code=404,
            detail={"code": "CONTRACT_NOT_FOUND", "message": "Contract not found"},
        )
    return contract


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=PaginatedResponse[ContractResponse])
async def list_contracts(
    page: int = Query(1, ge=1, le=1000),
    limit: int = Query(50, ge=1, le=200),
    contract_status: Optional[str] = Query(None, alias="status"),
    territory: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    expiring: Optional[int] = Query(None, description="30, 60 or 90 days"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List contracts. Supports filtering by derived status, territory, text search and expiry window."""
    today = date.today()
    contracts = await find_contracts(
        db,
        status=contract_status,
        territory=territory,
        search=search,
        expiring=expiring,
        today=today,
    )
    items = [to_response(c, today) for c in page_slice(contracts, page, limit)]
    return PaginatedResponse(data=items, pagination=build_pagination(page, limit, len(contracts)))


@router.get("/{contract_id}", response_model=ContractResponse)
async def get_contract(
    contract_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await reconcile_expired_statuses(db)
    contract = await _get_or_404(db, contract_id)
    return to_response(contract)


@router.post("", response_model=ContractResponse, status_code=status.HTTP_201_CREATED)
async def create_contract(
    body: ContractCreate,
    request: Request,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_capability("contracts:write")),
    db: AsyncSession = Depends(get_db),
):
    values = body.model_dump()
    try:
        validate_contract_fields(values)
        values["parent_contract_id"] = await resolve_parent(db, body.parent_contract_id)
    except ContractValidationError as e:
        raise _integrity_error(e)

    contract = Contract(**values, created_by=parse_uuid(current_user["user_id"]))
    db.add(contract)
    await db.flush()
    await db.refresh(contract)

    await create_audit_log(
        db,
        action="Contract Created",
        entity_type="Contract",
        entity_id=str(contract.id),
        user_id=current_user["user_id"],
        new_values=snapshot(contract),
        **request_meta(request),
    )
    logger.info("contract_created", contract_id=str(contract.id), partner=contract.partner)
    return to_response(contract)


@router.put("/{contract_id}", response_model=ContractResponse)
async def update_contract(
    contract_id: str,
    body: ContractUpdate,
    request: Request,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_capability("contracts:write")),
    db: AsyncSession = Depends(get_db),
):
    contract = await _get_or_404(db, contract_id)
    before = snapshot(contract)
    changes = body.model_dump(exclude_unset=True)

    merged = {
        key: changes.get(key, getattr(contract, key))
        for key in (
            "auto_renew", "status", "start_date", "end_date",
            "royalty_type", "flat_fee_amount",
        )
    }
    try:
        validate_contract_fields(merged)
        if "parent_contract_id" in changes:
            changes["parent_contract_id"] = await resolve_parent(
                db, changes["parent_contract_id"], contract.id
            )
    except ContractValidationError as e:
        raise _integrity_error(e)

    for field, value in changes.items():
        setattr(contract, field, value)
    await db.flush()
    await db.refresh(contract)

    await create_audit_log(
        db,
        action="Contract Updated",
        entity_type="Contract",
        entity_id=str(contract.id),
        user_id=current_user["user_id"],
        old_values=before,
        new_values=snapshot(contract),
        **request_meta(request),
    )
    return to_response(contract)


@router.delete("/{contract_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contract(
    contract_id: str,
    request: Request,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_capability("contracts:delete")),
    db: AsyncSession = Depends(get_db),
):
    """Delete a contract together with its royalties and content links."""
    contract = await _get_or_404(db, contract_id)
    before = snapshot(contract)
    await delete_contract_cascade(db, contract)

    await create_audit_log(
        db,
        action="Contract Deleted",
        entity_type="Contract",
        entity_id=contract_id,
        user_id=current_user["user_id"],
        old_values=before,
        **request_meta(request),
    )


# ---------------------------------------------------------------------------
# Amendments
# ---------------------------------------------------------------------------


@router.get("/{contract_id}/amendments", response_model=list[ContractResponse])
async def list_amendments(
    contract_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Direct amendments of a contract, oldest first."""
    contract = await _get_or_404(db, contract_id)
    today = date.today()
    return [to_response(c, today) for c in await get_amendments(db, contract.id)]


@router.get("/{contract_id}/chain", response_model=list[ContractResponse])
async def amendment_chain(
    contract_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Original contract first, then each amendment down to this one."""
    contract = await _get_or_404(db, contract_id)
    today = date.today()
    return [to_response(c, today) for c in await get_amendment_chain(db, contract)]


# ---------------------------------------------------------------------------
# Content links
# ---------------------------------------------------------------------------


@router.get("/{contract_id}/content", response_model=list[ContractContentResponse])
async def list_contract_content(
    contract_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    contract = await _get_or_404(db, contract_id)
    result = await db.execute(
        select(ContractContent, ContentItem)
        .join(ContentItem, ContractContent.content_id == ContentItem.id)
        .where(ContractContent.contract_id == contract.id)
    )
    return [
        ContractContentResponse(
            id=str(link.id),
            contract_id=str(link.contract_id),
            content_id=str(link.content_id),
            notes=link.notes,
            content=content_to_response(item),
        )
        for link, item in result.all()
    ]


@router.post(
    "/{contract_id}/content",
    response_model=ContractContentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def link_content(
    contract_id: str,
    body: ContentLinkRequest,
    request: Request,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_capability("contracts:write")),
    db: AsyncSession = Depends(get_db),
):
    contract = await _get_or_404(db, contract_id)
    content_id = parse_uuid(body.content_id)
    item = None
    if content_id is not None:
        item = (
            await db.execute(select(ContentItem).where(ContentItem.id == content_id))
        ).scalar_one_or_none()
    if not item:
        raise HTTPException(
            status_code=404,
            detail={"code": "CONTENT_NOT_FOUND", "message": "Content item not found"},
        )

    link = ContractContent(contract_id=contract.id, content_id=item.id, notes=body.notes)
    db.add(link)
    try:
        await db.flush()
    except IntegrityError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "code": "CONTENT_ALREADY_LINKED",
                "message": "Content item is already linked to this contract",
            },
        )

    await create_audit_log(
        db,
        action="Content Linked",
        entity_type="Contract",
        entity_id=str(contract.id),
        user_id=current_user["user_id"],
        new_values={"content_id": str(item.id), "notes": body.notes},
        **request_meta(request),
    )
    return ContractContentResponse(
        id=str(link.id),
        contract_id=str(contract.id),
        content_id=str(item.id),
        notes=link.notes,
        content=content_to_response(item),
    )


@router.delete("/{contract_id}/content/{content_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unlink_content(
    contract_id: str,
    content_id: str,
    request: Request,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_capability("contracts:write")),
    db: AsyncSession = Depends(get_db),
):
    contract = await _get_or_404(db, contract_id)
    result = await db.execute(
        select(ContractContent).where(
            ContractContent.contract_id == contract.id,
            ContractContent.content_id == parse_uuid(content_id),
        )
    )
    link = result.scalar_one_or_none()
    if not link:
        raise HTTPException(
            status_code=404,
            detail={"code": "CONTENT_LINK_NOT_FOUND", "message": "Content link not found"},
        )
    await db.delete(link)
    await db.flush()

    await create_audit_log(
        db,
        action="Content Unlinked",
        entity_type="Contract",
        entity_id=str(contract.id),
        user_id=current_user["user_id"],
        old_values={"content_id": content_id},
        **request_meta(request),
    )
