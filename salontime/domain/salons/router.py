"""Salon router - FastAPI endpoints for salons, business hours and Stripe Connect"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, get_optional_user
from ...database import get_db
from ...models import UserProfile
from ...schemas import SalonResponse, ServiceResponse, success
from ..favorites.repository import FavoriteRepository
from .schemas import BusinessHoursUpdate, SalonCreate, SalonUpdate, TrackFavoriteRequest, TrackViewRequest
from .service import SalonService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/salons", tags=["Salons"])
business_hours_router = APIRouter(prefix="/api/salon", tags=["Business Hours"])


def get_salon_service(db: Session = Depends(get_db)) -> SalonService:
    """Dependency injection for SalonService"""
    return SalonService(db)


# ============================================================================
# OWNER OPERATIONS
# ============================================================================


@router.post("", status_code=201)
async def create_salon(
    data: SalonCreate,
    current_user: UserProfile = Depends(get_current_user),
    service: SalonService = Depends(get_salon_service),
):
    """Create the caller's salon (inactive until Stripe onboarding completes)"""
    salon, stripe_setup = service.create_salon(current_user, data)
    return success({"salon": SalonResponse.model_validate(salon), "stripe_setup": stripe_setup})


@router.get("/my/salon")
async def get_my_salon(
    current_user: UserProfile = Depends(get_current_user),
    service: SalonService = Depends(get_salon_service),
):
    salon = service.get_owner_salon(current_user)
    return success({"salon": SalonResponse.model_validate(salon)})


@router.put("/my/salon")
async def update_my_salon(
    data: SalonUpdate,
    current_user: UserProfile = Depends(get_current_user),
    service: SalonService = Depends(get_salon_service),
):
    salon = service.update_salon(current_user, data)
    return success({"salon": SalonResponse.model_validate(salon)})


@router.get("/clients")
async def get_salon_clients(
    current_user: UserProfile = Depends(get_current_user),
    service: SalonService = Depends(get_salon_service),
):
    """Clients who have booked at the caller's salon"""
    return success({"clients": service.get_clients(current_user)})


# ============================================================================
# STRIPE CONNECT
# ============================================================================


@router.post("/stripe/account", status_code=201)
async def create_stripe_account(
    current_user: UserProfile = Depends(get_current_user),
    service: SalonService = Depends(get_salon_service),
):
    return success(service.create_stripe_account(current_user))


@router.get("/stripe/onboarding-link")
async def get_stripe_onboarding_link(
    current_user: UserProfile = Depends(get_current_user),
    service: SalonService = Depends(get_salon_service),
):
    return success({"onboarding_url": service.get_onboarding_link(current_user)})


@router.get("/stripe/check-status")
async def check_stripe_status(
    current_user: UserProfile = Depends(get_current_user),
    service: SalonService = Depends(get_salon_service),
):
    return success(service.check_stripe_status(current_user))


@router.get("/stripe/dashboard-link")
async def get_stripe_dashboard_link(
    current_user: UserProfile = Depends(get_current_user),
    service: SalonService = Depends(get_salon_service),
):
    return success({"dashboard_url": service.get_dashboard_link(current_user)})


# ============================================================================
# PUBLIC DISCOVERY
# ============================================================================


@router.get("/search")
async def search_salons(
    q: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    min_rating: Optional[float] = Query(None, ge=0, le=5),
    sort: str = Query("rating"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: SalonService = Depends(get_salon_service),
):
    salons, total = service.search(q=q, city=city, min_rating=min_rating, sort=sort, limit=limit, offset=offset)
    return success(
        {
            "salons": [SalonResponse.model_validate(s) for s in salons],
            "pagination": {"total": total, "limit": limit, "offset": offset, "has_more": offset + limit < total},
        }
    )


@router.get("/popular")
async def get_popular_salons(
    limit: int = Query(10, ge=1, le=50),
    service: SalonService = Depends(get_salon_service),
):
    return success({"salons": [SalonResponse.model_validate(s) for s in service.get_popular(limit)]})


@router.get("/nearby")
async def get_nearby_salons(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    radius: float = Query(10, gt=0, le=500),
    limit: int = Query(20, ge=1, le=100),
    service: SalonService = Depends(get_salon_service),
):
    """Active salons within radius km, nearest first"""
    return success({"salons": service.get_nearby(latitude, longitude, radius, limit)})


@router.get("/recommendations/personalized")
async def get_personalized_recommendations(
    latitude: Optional[float] = Query(None, ge=-90, le=90),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    longitude: Optional[float] = Query(None, ge=-180, le=180),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    radius: float = Query(50, gt=0, le=500),
    limit: int = Query(20, ge=1, le=50),
    current_user: UserProfile = Depends(get_current_user),
    service: SalonService = Depends(get_salon_service),
):
    """Salons matched to the caller's history, or popular salons when nothing matches"""
    salons, personalized = service.get_recommendations(
        current_user,
        latitude=latitude if latitude is not None else lat,
        longitude=longitude if longitude is not None else lng,
        radius_km=radius,
        limit=limit,
    )
    return success({"salons": salons, "personalized": personalized})


@router.get("/{salon_id}")
async def get_salon(
    salon_id: str,
    current_user: Optional[UserProfile] = Depends(get_optional_user),
    service: SalonService = Depends(get_salon_service),
):
    salon = dict(service.get_public_salon(salon_id))
    if current_user:
        salon["is_favorite"] = FavoriteRepository.get(service.db, current_user.id, salon_id) is not None
    return success({"salon": salon})


@router.get("/{salon_id}/services")
async def get_salon_services(salon_id: str, service: SalonService = Depends(get_salon_service)):
    services = service.get_salon_services(salon_id)
    return success({"services": [ServiceResponse.model_validate(s) for s in services]})


# ============================================================================
# ACTIVITY TRACKING
# ============================================================================


@router.post("/{salon_id}/track-view")
async def track_salon_view(
    salon_id: str,
    data: Optional[TrackViewRequest] = None,
    current_user: Optional[UserProfile] = Depends(get_optional_user),
    service: SalonService = Depends(get_salon_service),
):
    """Record a profile view; anonymous visitors are counted too"""
    return success(service.track_view(salon_id, current_user, data or TrackViewRequest()), message="View tracked")


@router.post("/{salon_id}/track-favorite")
async def track_salon_favorite(
    salon_id: str,
    data: Optional[TrackFavoriteRequest] = None,
    service: SalonService = Depends(get_salon_service),
):
    return success(service.track_favorite(salon_id, data or TrackFavoriteRequest()), message="Favorite tracked")


# ============================================================================
# BUSINESS HOURS
# ============================================================================


@business_hours_router.get("/{salon_id}/business-hours")
async def get_business_hours(salon_id: str, service: SalonService = Depends(get_salon_service)):
    return success({"business_hours": service.get_business_hours(salon_id)})


@business_hours_router.put("/{salon_id}/business-hours")
async def update_business_hours(
    salon_id: str,
    data: BusinessHoursUpdate,
    current_user: UserProfile = Depends(get_current_user),
    service: SalonService = Depends(get_salon_service),
):
    hours = service.update_business_hours(current_user, salon_id, data.business_hours)
    return success({"business_hours": hours}, message="Business hours updated successfully")
