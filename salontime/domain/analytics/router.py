"""Analytics router - salon owner dashboard and review management"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import UserProfile
from ...schemas import success
from ..reviews.schemas import ReviewResponse
from .service import AnalyticsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])


def get_analytics_service(db: Session = Depends(get_db)) -> AnalyticsService:
    """Dependency injection for AnalyticsService"""
    return AnalyticsService(db)


# ============================================================================
# Owner dashboard
# ============================================================================


@router.get("")
async def get_salon_analytics(
    period: int = Query(30, ge=1, le=365),
    current_user: UserProfile = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Revenue, bookings, views, favorites, reviews and booking patterns for the last `period` days"""
    return success(service.get_salon_analytics(current_user, period))


@router.get("/reviews")
async def get_salon_reviews(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: UserProfile = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    result = service.get_reviews(current_user, page, limit)
    return success(
        {
            "reviews": [ReviewResponse.from_review(r) for r in result["reviews"]],
            "pagination": result["pagination"],
        }
    )
