"""User router - profile, auth check and settings endpoints"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import UserProfile
from ...schemas import UserProfileResponse, success
from .schemas import UserProfileUpdate, UserSettingsResponse, UserSettingsUpdate
from .service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Users"])


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    """Dependency injection for UserService"""
    return UserService(db)


# ============================================================================
# AUTH
# ============================================================================


@router.get("/auth/profile")
async def get_profile(current_user: UserProfile = Depends(get_current_user)):
    """Get the authenticated user's profile"""
    return success({"user": UserProfileResponse.model_validate(current_user)})


@router.get("/auth/check")
async def check_auth(current_user: UserProfile = Depends(get_current_user)):
    return success({"authenticated": True, "user_id": current_user.id, "user_type": current_user.user_type})


@router.put("/user/profile")
async def update_profile(
    data: UserProfileUpdate,
    current_user: UserProfile = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    user = service.update_profile(current_user, data)
    return success({"user": UserProfileResponse.model_validate(user)})


# ============================================================================
# SETTINGS
# ============================================================================


@router.get("/user/settings")
async def get_settings(
    current_user: UserProfile = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    settings = service.get_settings(current_user)
    return success({"settings": UserSettingsResponse.model_validate(settings)})


@router.put("/user/settings")
async def update_settings(
    data: UserSettingsUpdate,
    current_user: UserProfile = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    settings = service.update_settings(current_user, data)
    return success({"settings": UserSettingsResponse.model_validate(settings)})
