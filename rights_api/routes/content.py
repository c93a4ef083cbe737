"""
Content catalog: /api/v1/content

Films, series and channel feeds that contracts can be linked to.
"""

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from rights_api.database import get_db
from rights_api.middleware.auth import get_current_user
from rights_api.middleware.authorization import require_capability
from rights_api.models.content_item import ContentItem
from rights_api.models.contract import Contract, ContractContent
from rights_api.schemas.common import PaginatedResponse, build_pagination
from rights_api.schemas.content import (
    ContentItemCreate,
    ContentItemResponse,
    ContentItemUpdate,
)
from rights_api.schemas.contract import ContractResponse
from rights_api.services.audit_service import create_audit_log, request_meta, snapshot
from rights_api.services.availability_service import contains_ignore_case
from rights_api.services.contract_service import parse_uuid, to_response

logger = structlog.get_logger()
router = APIRouter()


def content_to_response(item: ContentItem) -> ContentItemResponse:
    return ContentItemResponse(
        id=str(item.id),
        title=item.title,
        type=item.type,
        description=item.description,
        season=item.season,
        episode_count=item.episode_count,
        release_year=item.release_year,
        genre=item.genre,
        duration=item.duration,
        created_at=item.created_at.isoformat() if item.created_at else None,
    )


async def _get_or_404(db: AsyncSession, content_id: str) -> ContentItem:
    cid = parse_uuid(content_id)
    item = None
    if cid is not None:
        result = await db.execute(select(ContentItem).where(ContentItem.id == cid))
        item = result.scalar_one_or_none()
    if not item:
        raise HTTPException(
            status_code=404,
            detail={"code": "CONTENT_NOT_FOUND", "message": "Content item not found"},
        )
    return item


@router.get("", response_model=PaginatedResponse[ContentItemResponse])
async def list_content(
    page: int = Query(1, ge=1, le=1000),
    limit: int = Query(50, ge=1, le=200),
    content_type: Optional[str] = Query(None, alias="type"),
    search: Optional[str] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    query = select(ContentItem)
    count_query = select(func.count(ContentItem.id))

    if content_type:
        query = query.where(ContentItem.type == content_type)
        count_query = count_query.where(ContentItem.type == content_type)
    if search:
        clause = or_(
            contains_ignore_case(ContentItem.title, search),
            contains_ignore_case(ContentItem.genre, search),
        )
        query = query.where(clause)
        count_query = count_query.where(clause)

    total = (await db.execute(count_query)).scalar() or 0
    result = await db.execute(
        query.order_by(ContentItem.title.asc()).offset((page - 1) * limit).limit(limit)
    )
    items = [content_to_response(i) for i in result.scalars().all()]
    return PaginatedResponse(data=items, pagination=build_pagination(page, limit, total))


@router.get("/{content_id}", response_model=ContentItemResponse)
async def get_content(
    content_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return content_to_response(await _get_or_404(db, content_id))


@router.get("/{content_id}/contracts", response_model=list[ContractResponse])
async def list_content_contracts(
    content_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Contracts this content item is linked to."""
    item = await _get_or_404(db, content_id)
    result = await db.execute(
        select(Contract)
        .join(ContractContent, ContractContent.contract_id == Contract.id)
        .where(ContractContent.content_id == item.id)
        .order_by(Contract.start_date.desc())
    )
    today = date.today()
    return [to_response(c, today) for c in result.scalars().all()]


@router.post("", response_model=ContentItemResponse, status_code=status.HTTP_201_CREATED)
async def create_content(
    body: ContentItemCreate,
    request: Request,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_capability("content:write")),
    db: AsyncSession = Depends(get_db),
):
    item = ContentItem(**body.model_dump(), created_by=parse_uuid(current_user["user_id"]))
    db.add(item)
    await db.flush()
    await db.refresh(item)

    await create_audit_log(
        db,
        action="Content Created",
        entity_type="ContentItem",
        entity_id=str(item.id),
        user_id=current_user["user_id"],
        new_values=snapshot(item),
        **request_meta(request),
    )
    logger.info("content_created", content_id=str(item.id), type=item.type)
    return content_to_response(item)


@router.put("/{content_id}", response_model=ContentItemResponse)
async def update_content(
    content_id: str,
    body: ContentItemUpdate,
    request: Request,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_capability("content:write")),
    db: AsyncSession = Depends(get_db),
):
    item = await _get_or_404(db, content_id)
    before = snapshot(item)
    changes = body.model_dump(exclude_unset=True)

    new_type = changes.get("type", item.type)
    if new_type != "TV Series":
        # Series-only fields are cleared when the item stops being a series
        changes["season"] = None
        changes["episode_count"] = None

    for field, value in changes.items():
        setattr(item, field, value)
    item.updated_at = datetime.utcnow()
    await db.flush()
    await db.refresh(item)

    await create_audit_log(
        db,
        action="Content Updated",
        entity_type="ContentItem",
        entity_id=str(item.id),
        user_id=current_user["user_id"],
        old_values=before,
        new_values=snapshot(item),
        **request_meta(request),
    )
    return content_to_response(item)


@router.delete("/{content_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_content(
    content_id: str,
    request: Request,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_capability("content:write")),
    db: AsyncSession = Depends(get_db),
):
    """Delete a content item; its contract links go with it."""
    item = await _get_or_404(db, content_id)
    before = snapshot(item)
    await db.execute(delete(ContractContent).where(ContractContent.content_id == item.id))
    await db.delete(item)
    await db.flush()

    await create_audit_log(
        db,
        action="Content Deleted",
        entity_type="ContentItem",
        entity_id=content_id,
        user_id=current_user["user_id"],
        old_values=before,
        **request_meta(request),
    )
