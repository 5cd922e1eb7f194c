"""Onboarding service - salon owner signup wizard and progress tracking"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import AppError
from ...models import Salon, Service, StripeAccount, UserProfile
from ...services import stripe_service
from ...shared.validators import sanitize_string, validate_business_hours
from ..catalog.repository import ServiceRepository
from ..catalog.service import validate_service_fields
from ..salons.repository import SalonRepository, StripeAccountRepository
from ..salons.service import apply_account_status, setup_stripe_account
from .schemas import SalonOwnerOnboarding

logger = logging.getLogger(__name__)

STEP_FLAGS = (
    "user_profile_completed",
    "salon_created",
    "stripe_account_created",
    "stripe_onboarding_completed",
    "services_added",
    "salon_activated",
)


class OnboardingService:
    def __init__(self, db: Session):
        self.db = db
        self.salons = SalonRepository()

    def complete_salon_owner_onboarding(self, user: UserProfile, data: SalonOwnerOnboarding) -> dict:
        """
        Turn the caller into a salon owner: profile, salon, initial services,
        then a best-effort Stripe Connect setup.
        """
        if not data.business_name or not data.full_name:
            raise AppError("Business name and full name are required", 400, "MISSING_REQUIRED_INFO")
        if not data.country:
            raise AppError("Country is required for Stripe account creation", 400, "MISSING_COUNTRY")
        if self.salons.get_by_owner(self.db, user.id):
            raise AppError("You already have a salon", 409, "SALON_ALREADY_EXISTS")

        business_hours = None
        if data.business_hours:
            try:
                business_hours = validate_business_hours(data.business_hours)
            except ValueError as e:
                raise AppError(str(e), 400, "INVALID_BUSINESS_HOURS") from e
        for item in data.services_offered:
            validate_service_fields(item.name, item.price, item.duration)

        # 1. Profile
        user.full_name = data.full_name.strip()
        if data.phone:
            user.phone = data.phone
        user.user_type = "salon_owner"
        user.onboarding_completed = True

        # 2. Salon, inactive until payouts are enabled
        salon = Salon(
            owner_id=user.id,
            business_name=data.business_name.strip(),
            description=sanitize_string(data.business_description),
            address={
                "street": data.street_address,
                "city": data.city,
                "state": data.state,
                "zip_code": data.zip_code,
                "country": data.country,
            },
            city=data.city,
            state=data.state,
            zip_code=data.zip_code,
            country=data.country,
            latitude=data.latitude,
            longitude=data.longitude,
            phone=data.business_phone or data.phone,
            email=data.business_email or user.email,
            website=data.website,
            business_hours=business_hours,
            amenities=data.amenities,
            images=[],
            is_active=False,
            verification_status="pending",
        )
        self.db.add(salon)
        self.db.commit()
        self.db.refresh(salon)
        logger.info(f"✅ Onboarding: salon {salon.id} created for {user.email}")

        # 3. Initial services
        if data.services_offered:
            ServiceRepository.create_many(
                self.db,
                salon.id,
                [
                    {
                        "name": item.name.strip(),
                        "description": sanitize_string(item.description),
                        "price": float(item.price),
                        "duration": int(item.duration),
                        "category_id": item.category_id,
                        "is_active": True,
                    }
                    for item in data.services_offered
                ],
            )

        # 4. Stripe Connect (can be completed later)
        stripe_setup = setup_stripe_account(self.db, user, salon, business_type=data.business_type)
        self.db.refresh(salon)

        return {
            "user": user,
            "salon": salon,
            "services_count": len(data.services_offered),
            "stripe_setup": {
                "account_created": stripe_setup["account_created"],
                "onboarding_required": stripe_setup["account_created"],
                "onboarding_url": stripe_setup["onboarding_url"],
                "status": salon.stripe_account_status or "not_created",
            },
            "next_steps": [
                "Complete Stripe onboarding to receive payments"
                if stripe_setup["account_created"]
                else "Set up Stripe account for payment processing",
                "Add more services to your salon",
                "Set up your business hours",
                "Activate your salon for bookings",
            ],
        }

    def get_status(self, user: UserProfile) -> dict:
        salon = self.salons.get_by_owner(self.db, user.id)
        stripe_record: Optional[StripeAccount] = (
            StripeAccountRepository.get_by_salon(self.db, salon.id) if salon else None
        )
        services_count = (
            self.db.query(Service).filter(Service.salon_id == salon.id).count() if salon else 0
        )

        status = {
            "user_profile_completed": bool(user.full_name and user.phone),
            "salon_created": salon is not None,
            "stripe_account_created": bool(salon and salon.stripe_account_id),
            "stripe_onboarding_completed": bool(stripe_record and stripe_record.onboarding_completed),
            "services_added": services_count > 0,
            "salon_activated": bool(salon and salon.is_active),
        }
        status["overall_completed"] = all(
            status[flag] for flag in STEP_FLAGS if flag != "salon_activated"
        )

        next_action = None
        action_url = None
        if not status["salon_created"]:
            next_action = "complete_salon_setup"
        elif not status["stripe_account_created"]:
            next_action = "create_stripe_account"
        elif not status["stripe_onboarding_completed"]:
            next_action = "complete_stripe_onboarding"
            try:
                action_url = stripe_service.create_account_link(salon.stripe_account_id)
            except AppError as e:
                logger.warning(f"⚠️ Failed to generate onboarding link: {e.message}")
        elif not status["services_added"]:
            next_action = "add_services"
        elif not status["salon_activated"]:
            next_action = "activate_salon"

        completed_steps = sum(1 for flag in STEP_FLAGS if status[flag])
        return {
            "user": user,
            "salon": salon,
            "onboarding_status": status,
            "next_action": next_action,
            "action_url": action_url,
            "completion_percentage": round(completed_steps / len(STEP_FLAGS) * 100),
        }

    def complete_stripe_onboarding(self, user: UserProfile, account_id: Optional[str]) -> dict:
        if not account_id:
            raise AppError("Account ID is required", 400, "ACCOUNT_ID_REQUIRED")

        salon = self.salons.get_by_stripe_account(self.db, account_id)
        if not salon or salon.owner_id != user.id:
            raise AppError("Stripe account not found", 404, "STRIPE_ACCOUNT_NOT_FOUND")

        status = stripe_service.get_account_status(account_id)
        account_status = apply_account_status(self.db, salon, status)
        return {
            "account_status": account_status,
            "onboarding_completed": status["details_submitted"],
            "salon_activated": account_status == "active",
        }
