"""Onboarding router - salon owner onboarding wizard"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...email_service import send_salon_owner_welcome
from ...models import UserProfile
from ...schemas import SalonResponse, UserProfileResponse, success
from .schemas import SalonOwnerOnboarding, StripeOnboardingComplete
from .service import OnboardingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/onboarding", tags=["Onboarding"])


def get_onboarding_service(db: Session = Depends(get_db)) -> OnboardingService:
    """Dependency injection for OnboardingService"""
    return OnboardingService(db)


@router.post("/salon-owner", status_code=201)
async def complete_salon_owner_onboarding(
    data: SalonOwnerOnboarding,
    background_tasks: BackgroundTasks,
    current_user: UserProfile = Depends(get_current_user),
    service: OnboardingService = Depends(get_onboarding_service),
):
    """Complete salon owner onboarding: profile, salon, services and Stripe setup"""
    result = service.complete_salon_owner_onboarding(current_user, data)
    salon = result["salon"]

    background_tasks.add_task(
        send_salon_owner_welcome, current_user.email, current_user.full_name, salon.business_name
    )

    salon_data = SalonResponse.model_validate(salon).model_dump(mode="json")
    salon_data["services_count"] = result["services_count"]
    return success(
        {
            "user": UserProfileResponse.model_validate(result["user"]),
            "salon": salon_data,
            "stripe_setup": result["stripe_setup"],
            "next_steps": result["next_steps"],
        }
    )


@router.get("/status")
async def get_onboarding_status(
    current_user: UserProfile = Depends(get_current_user),
    service: OnboardingService = Depends(get_onboarding_service),
):
    result = service.get_status(current_user)
    result["user"] = UserProfileResponse.model_validate(result["user"])
    result["salon"] = SalonResponse.model_validate(result["salon"]) if result["salon"] else None
    return success(result)


@router.post("/stripe/complete")
async def complete_stripe_onboarding(
    data: StripeOnboardingComplete,
    current_user: UserProfile = Depends(get_current_user),
    service: OnboardingService = Depends(get_onboarding_service),
):
    """Pull the connected account state from Stripe after the owner returns from onboarding"""
    return success(service.complete_stripe_onboarding(current_user, data.account_id))
