"""
Rights availability: /api/v1/availability
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from rights_api.database import get_db
from rights_api.middleware.auth import get_current_user
from rights_api.schemas.availability import (
    AvailabilityRequest,
    AvailabilityResponse,
    SuggestionsResponse,
)
from rights_api.services.availability_service import check_availability
from rights_api.services.contract_service import to_response

logger = structlog.get_logger()
router = APIRouter()


@router.post(
    "/check",
    response_model=AvailabilityResponse,
    response_model_exclude_unset=True,
)
async def check(
    body: AvailabilityRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Check whether a partner can be granted rights for a territory / platform window.

    ``suggestions`` is present only when a conflicting contract is Exclusive.
    """
    today = date.today()
    try:
        result = await check_availability(db, body, today)
    except SQLAlchemyError as e:
        logger.error("availability_check_failed", partner=body.partner, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "code": "SERVICE_UNAVAILABLE",
                "message": "Failed to check availability",
            },
        )

    payload = {
        "available": result.available,
        "conflicts": [to_response(c, today) for c in result.conflicts],
    }
    if result.suggestions is not None:
        payload["suggestions"] = SuggestionsResponse(
            territories=result.suggestions.territories,
            platforms=result.suggestions.platforms,
        )
    return AvailabilityResponse(**payload)
