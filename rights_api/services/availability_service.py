"""
Rights availability: conflict detection and alternative suggestions.

A contract conflicts with a request when it belongs to the same partner,
is live (derived status Active / In Perpetuity), overlaps the requested
window and, when given, its territory / platform text contains the
requested value (case-insensitive substring, so "US, Canada" matches "US").

Suggestions are only computed when a conflict is Exclusive. They list the
fixed territories / platforms not already held exclusively by the partner
in the window.

Read-only. Query errors propagate to the caller untouched.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional

from sqlalchemy import Select, and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from rights_api.config import settings
from rights_api.models.contract import Contract
from rights_api.schemas.availability import AvailabilityRequest
from rights_api.services.contract_status import LIVE_STATUSES, derive_status

logger = structlog.get_logger()

TERRITORIES = ("Global", "US", "Canada", "UK")
PLATFORMS = ("SVOD", "TVOD", "AVOD", "FAST", "Linear")

EXCLUSIVE = "Exclusive"


@dataclass
class Suggestions:
    territories: list[str] = field(default_factory=list)
    platforms: list[str] = field(default_factory=list)


@dataclass
class AvailabilityResult:
    available: bool
    conflicts: list = field(default_factory=list)
    suggestions: Optional[Suggestions] = None


def _like_escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def contains_ignore_case(column, needle: str):
    """Case-insensitive substring match with LIKE wildcards in the needle escaped."""
    return column.ilike(f"%{_like_escape(needle)}%", escape="\\")


def _overlaps(start: date, end: date):
    # Open-ended (NULL end_date) contracts run forever
    return and_(
        Contract.start_date <= end,
        or_(Contract.end_date >= start, Contract.end_date.is_(None)),
    )


def build_conflict_query(request: AvailabilityRequest) -> Select:
    stmt = select(Contract).where(
        Contract.partner == request.partner,
        Contract.status.in_(LIVE_STATUSES),
        _overlaps(request.start, request.end),
    )
    if request.territory:
        stmt = stmt.where(contains_ignore_case(Contract.territory, request.territory))
    if request.platform:
        stmt = stmt.where(contains_ignore_case(Contract.platform, request.platform))
    return stmt.order_by(Contract.created_at.desc())


def build_exclusive_query(partner: str, start: date, end: date) -> Select:
    """Broader scan: every exclusive grant for the partner, any territory / platform."""
    return select(Contract).where(
        Contract.partner == partner,
        Contract.exclusivity == EXCLUSIVE,
        Contract.status.in_(LIVE_STATUSES),
        _overlaps(start, end),
    )


def _encumbered(values: Iterable[Optional[str]], split_multi_value: bool) -> set[str]:
    taken = set()
    for value in values:
        if not value:
            continue
        if split_multi_value:
            taken.update(token.strip() for token in value.split(",") if token.strip())
        else:
            taken.add(value)
    return taken


def compute_suggestions(
    exclusive_contracts: Iterable, split_multi_value: bool = False
) -> Suggestions:
    """
    Territories / platforms from the fixed lists that no exclusive contract holds.

    By default a multi-value field such as "US, Canada" is one opaque token,
    so it removes nothing from the lists. split_multi_value=True splits on
    commas instead.
    """
    exclusive_contracts = list(exclusive_contracts)
    taken_territories = _encumbered(
        (c.territory for c in exclusive_contracts), split_multi_value
    )
    taken_platforms = _encumbered(
        (c.platform for c in exclusive_contracts), split_multi_value
    )
    return Suggestions(
        territories=[t for t in TERRITORIES if t not in taken_territories],
        platforms=[p for p in PLATFORMS if p not in taken_platforms],
    )


def _live_only(contracts: Iterable, today: date) -> list:
    live = []
    for c in contracts:
        if derive_status(c, today) in LIVE_STATUSES:
            live.append(c)
        else:
            # Stored status is stale until the reconciliation pass runs
            logger.info("availability_stale_status_skipped", contract_id=str(c.id))
    return live


async def suggest_alternatives(
    session: AsyncSession,
    request: AvailabilityRequest,
    today: Optional[date] = None,
) -> Suggestions:
    today = today or date.today()
    result = await session.execute(
        build_exclusive_query(request.partner, request.start, request.end)
    )
    exclusive_contracts = _live_only(result.scalars().all(), today)
    return compute_suggestions(
        exclusive_contracts,
        split_multi_value=settings.SUGGESTIONS_SPLIT_MULTI_VALUE,
    )


async def check_availability(
    session: AsyncSession,
    request: AvailabilityRequest,
    today: Optional[date] = None,
) -> AvailabilityResult:
    """Can ``request.partner`` be granted the territory / platform for the window?"""
    today = today or date.today()

    result = await session.execute(build_conflict_query(request))
    conflicts = _live_only(result.scalars().all(), today)

    suggestions = None
    if any(c.exclusivity == EXCLUSIVE for c in conflicts):
        suggestions = await suggest_alternatives(session, request, today)

    logger.info(
        "availability_checked",
        partner=request.partner,
        territory=request.territory,
        platform=request.platform,
        start_date=request.start_date,
        end_date=request.end_date,
        conflict_count=len(conflicts),
        has_suggestions=suggestions is not None,
    )
    return AvailabilityResult(
        available=not conflicts,
        conflicts=conflicts,
        suggestions=suggestions,
    )
