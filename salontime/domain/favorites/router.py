"""Favorites router - saved salons for the current user"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...errors import AppError
from ...models import Salon, UserProfile
from ...schemas import SalonResponse, success
from .repository import FavoriteRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/favorites", tags=["Favorites"])


@router.get("")
async def get_favorites(
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    favorites = FavoriteRepository.list_for_user(db, current_user.id)
    return success(
        {
            "favorites": [
                {"id": f.id, "created_at": f.created_at, "salon": SalonResponse.model_validate(f.salon)}
                for f in favorites
                if f.salon is not None
            ]
        }
    )


@router.post("", status_code=201)
async def add_favorite(
    payload: dict = Body(...),
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Accepts {"salon_id": ...} (or the camelCase salonId sent by the mobile app)"""
    salon_id: Optional[str] = payload.get("salon_id") or payload.get("salonId")
    if not salon_id:
        raise AppError("Salon ID is required", 400, "MISSING_SALON_ID")

    if not db.query(Salon).filter(Salon.id == salon_id).first():
        raise AppError("Salon not found", 404, "SALON_NOT_FOUND")
    if FavoriteRepository.get(db, current_user.id, salon_id):
        raise AppError("Salon is already in favorites", 409, "ALREADY_FAVORITE")

    favorite = FavoriteRepository.create(db, current_user.id, salon_id)
    logger.info(f"⭐ User {current_user.id} favorited salon {salon_id}")
    return success({"favorite": {"id": favorite.id, "salon_id": salon_id}}, message="Salon added to favorites")


@router.delete("/{salon_id}")
async def remove_favorite(
    salon_id: str,
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    favorite = FavoriteRepository.get(db, current_user.id, salon_id)
    if not favorite:
        raise AppError("Favorite not found", 404, "FAVORITE_NOT_FOUND")
    FavoriteRepository.delete(db, favorite)
    return success(message="Salon removed from favorites")


@router.get("/check/{salon_id}")
async def check_favorite(
    salon_id: str,
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return success({"is_favorite": FavoriteRepository.get(db, current_user.id, salon_id) is not None})
