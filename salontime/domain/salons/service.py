"""Salon service - Business logic for salons, business hours and Stripe Connect"""

import logging
import math
import re
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ...cache import get_salon_cached, invalidate_salon_cache, set_salon_cached
from ...errors import AppError
from ...models import Salon, UserProfile
from ...schemas import PublicUserResponse, SalonResponse, ServiceResponse
from ...services import stripe_service
from ...shared.validators import sanitize_string, validate_business_hours
from ..favorites.repository import FavoriteRepository
from .repository import SalonRepository, StripeAccountRepository
from .schemas import SalonCreate, SalonUpdate, TrackFavoriteRequest, TrackViewRequest

logger = logging.getLogger(__name__)

REQUIRED_SALON_FIELDS = ("business_name", "city", "state", "zip_code")

EARTH_RADIUS_KM = 6371.0

# Trending score: weighted activity over the last TRENDING_WINDOW_DAYS
TRENDING_WINDOW_DAYS = 7
VIEW_WEIGHT = 1.0
BOOKING_WEIGHT = 10.0
FAVORITE_WEIGHT = 5.0

# Popular-salon fallback when a user has no usable history
FALLBACK_MIN_RATING = 4.0
FALLBACK_MIN_REVIEWS = 5

CITY_MATCH_WEIGHT = 2.0
TOKEN_PATTERN = re.compile(r"[a-z]{3,}")
STOP_WORDS = {"and", "the", "for", "with", "our", "your", "from", "all"}


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates in kilometres"""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def _tokens(*texts: Optional[str]) -> set[str]:
    words = set()
    for text in texts:
        if text:
            words.update(TOKEN_PATTERN.findall(text.lower()))
    return words - STOP_WORDS


def _salon_tokens(salon: Salon) -> set[str]:
    """Words describing what a salon offers: description, active services and their categories"""
    texts = [salon.description]
    for service in salon.services or []:
        if service.is_active:
            texts.append(service.name)
            texts.append(service.category.name if service.category else None)
    return _tokens(*texts)


def build_address(data: SalonCreate) -> Optional[dict]:
    if isinstance(data.address, dict):
        return data.address
    if data.address is None and not any((data.city, data.state, data.zip_code)):
        return None
    return {
        "street": data.address if isinstance(data.address, str) else None,
        "city": data.city,
        "state": data.state,
        "zip_code": data.zip_code,
        "country": data.country,
    }


def apply_account_status(db: Session, salon: Salon, status: dict) -> str:
    """
    Mirror a Stripe account's state onto the salon and its StripeAccount record.
    A salon whose account can take charges and pay out is activated.
    """
    is_ready = bool(status.get("charges_enabled")) and bool(status.get("payouts_enabled"))
    account_status = "active" if is_ready else "pending"

    salon.stripe_account_status = account_status
    if is_ready:
        salon.is_active = True

    record = StripeAccountRepository.get_by_account_id(db, salon.stripe_account_id) if salon.stripe_account_id else None
    if record:
        record.account_status = account_status
        record.onboarding_completed = bool(status.get("details_submitted"))
        if status.get("capabilities") is not None:
            record.capabilities = status.get("capabilities")
        if status.get("requirements") is not None:
            record.requirements = status.get("requirements")

    db.commit()
    invalidate_salon_cache(salon.id)
    logger.info(f"🔄 Salon {salon.id} Stripe account status: {account_status}")
    return account_status


def refresh_trending_score(db: Session, salon: Salon) -> float:
    """Recompute the salon's trending score from its recent views, bookings and favorites"""
    since = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(days=TRENDING_WINDOW_DAYS)
    views, bookings, favorites = SalonRepository.count_recent_activity(db, salon.id, since)
    salon.trending_score = views * VIEW_WEIGHT + bookings * BOOKING_WEIGHT + favorites * FAVORITE_WEIGHT
    return salon.trending_score


def setup_stripe_account(db: Session, user: UserProfile, salon: Salon, business_type: str = "individual") -> dict:
    """
    Create the salon's Express account and onboarding link.
    Best effort: Stripe failures are reported in the result, never raised.
    """
    result = {"account_created": False, "account_id": None, "onboarding_url": None, "error": None}
    try:
        account = stripe_service.create_connect_account(
            email=salon.email or user.email,
            business_name=salon.business_name,
            country=salon.country,
            salon_id=salon.id,
            owner_id=user.id,
            website=salon.website,
            business_type=business_type,
        )
        StripeAccountRepository.create(
            db,
            salon.id,
            account.id,
            account_status="pending",
            country=salon.country,
            currency=stripe_service.STRIPE_DEFAULT_CURRENCY.upper(),
        )
        salon.stripe_account_id = account.id
        salon.stripe_account_status = "pending"
        db.commit()

        result["account_created"] = True
        result["account_id"] = account.id
        result["onboarding_url"] = stripe_service.create_account_link(account.id)
    except AppError as e:
        db.rollback()
        logger.warning(f"⚠️ Stripe setup skipped for salon {salon.id}: {e.message}")
        result["error"] = e.message
    return result


class SalonService:
    """Service layer for salon business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SalonRepository()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_owner_salon(self, user: UserProfile) -> Salon:
        """The caller's own salon, or 404 SALON_NOT_FOUND"""
        salon = self.repo.get_by_owner(self.db, user.id)
        if not salon:
            raise AppError("Salon not found", 404, "SALON_NOT_FOUND")
        return salon

    def get_public_salon(self, salon_id: str) -> dict:
        """Active salon with its active services (cached)"""
        cached = get_salon_cached(salon_id)
        if cached is not None:
            return cached

        salon = self.repo.get_active_by_id(self.db, salon_id)
        if not salon:
            raise AppError("Salon not found", 404, "SALON_NOT_FOUND")

        data = SalonResponse.model_validate(salon).model_dump(mode="json")
        data["services"] = [
            ServiceResponse.model_validate(s).model_dump(mode="json")
            for s in self.repo.get_active_services(self.db, salon_id)
        ]
        set_salon_cached(salon_id, data)
        return data

    def get_salon_services(self, salon_id: str) -> list:
        if not self.repo.get_active_by_id(self.db, salon_id):
            raise AppError("Salon not found", 404, "SALON_NOT_FOUND")
        return self.repo.get_active_services(self.db, salon_id)

    def search(self, **filters) -> tuple[list[Salon], int]:
        return self.repo.search(self.db, **filters)

    def get_popular(self, limit: int) -> list[Salon]:
        return self.repo.get_popular(self.db, limit)

    def get_nearby(self, latitude: float, longitude: float, radius_km: float, limit: int) -> list[dict]:
        nearby = []
        for salon in self.repo.get_active_with_coordinates(self.db):
            distance = haversine_km(latitude, longitude, salon.latitude, salon.longitude)
            if distance <= radius_km:
                data = SalonResponse.model_validate(salon).model_dump(mode="json")
                data["distance_km"] = round(distance, 2)
                nearby.append(data)
        nearby.sort(key=lambda s: s["distance_km"])
        return nearby[:limit]

    def get_clients(self, user: UserProfile) -> list[dict]:
        salon = self.get_owner_salon(user)
        return [
            {
                **PublicUserResponse.model_validate(client).model_dump(),
                "email": client.email,
                "phone": client.phone,
                "booking_count": count,
            }
            for client, count in self.repo.get_clients(self.db, salon.id)
        ]

    # ------------------------------------------------------------------
    # Create / update
    # ------------------------------------------------------------------

    def create_salon(self, user: UserProfile, data: SalonCreate) -> tuple[Salon, dict]:
        for field in REQUIRED_SALON_FIELDS:
            value = getattr(data, field)
            if not value or not str(value).strip():
                raise AppError(f"{field.replace('_', ' ').capitalize()} is required", 400, f"MISSING_{field.upper()}")

        if self.repo.get_by_owner(self.db, user.id):
            raise AppError("You already have a salon", 409, "SALON_ALREADY_EXISTS")

        business_hours = None
        if data.business_hours:
            business_hours = self._validated_hours(data.business_hours)

        salon = self.repo.create(
            self.db,
            user.id,
            business_name=data.business_name.strip(),
            description=sanitize_string(data.description),
            address=build_address(data),
            city=data.city,
            state=data.state,
            zip_code=data.zip_code,
            country=data.country,
            phone=data.phone,
            email=data.email or user.email,
            website=data.website,
            latitude=data.latitude,
            longitude=data.longitude,
            business_hours=business_hours,
            amenities=data.amenities or [],
            images=data.images or [],
            is_active=False,
            verification_status="pending",
        )
        logger.info(f"✅ Salon created: {salon.id} for owner {user.id}")

        if user.user_type != "salon_owner":
            user.user_type = "salon_owner"
            self.db.commit()

        stripe_setup = {"account_created": False, "account_id": None, "onboarding_url": None, "error": None}
        if data.country:
            stripe_setup = setup_stripe_account(self.db, user, salon)
            self.db.refresh(salon)
        return salon, stripe_setup

    def update_salon(self, user: UserProfile, data: SalonUpdate) -> Salon:
        salon = self.get_owner_salon(user)
        updates = data.model_dump(exclude_unset=True)

        if "business_name" in updates and not (updates["business_name"] or "").strip():
            raise AppError("Business name cannot be empty", 400, "MISSING_BUSINESS_NAME")
        if "description" in updates:
            updates["description"] = sanitize_string(updates["description"])
        if updates.get("business_hours") is not None:
            updates["business_hours"] = self._validated_hours(updates["business_hours"])
        if any(key in updates for key in ("address", "city", "state", "zip_code")) and not isinstance(
            updates.get("address"), dict
        ):
            current = salon.address or {}
            street = updates["address"] if isinstance(updates.get("address"), str) else current.get("street")
            updates["address"] = {
                **current,
                "street": street,
                "city": updates.get("city", salon.city),
                "state": updates.get("state", salon.state),
                "zip_code": updates.get("zip_code", salon.zip_code),
            }

        salon = self.repo.update(self.db, salon, **updates)
        invalidate_salon_cache(salon.id)
        logger.info(f"✅ Salon updated: {salon.id}")
        return salon

    # ------------------------------------------------------------------
    # Business hours
    # ------------------------------------------------------------------

    @staticmethod
    def _validated_hours(hours) -> dict:
        try:
            return validate_business_hours(hours)
        except ValueError as e:
            raise AppError(str(e), 400, "INVALID_BUSINESS_HOURS") from e

    def get_business_hours(self, salon_id: str) -> dict:
        salon = self.repo.get_by_id(self.db, salon_id)
        if not salon:
            raise AppError("Salon not found", 404, "SALON_NOT_FOUND")
        return salon.business_hours or {}

    def update_business_hours(self, user: UserProfile, salon_id: str, hours) -> dict:
        if not hours or not isinstance(hours, dict):
            raise AppError("Invalid business hours format", 400, "INVALID_BUSINESS_HOURS")

        salon = self.repo.get_by_id(self.db, salon_id)
        if not salon:
            raise AppError("Salon not found", 404, "SALON_NOT_FOUND")
        if salon.owner_id != user.id:
            raise AppError("You can only update your own salon", 403, "UNAUTHORIZED")

        salon = self.repo.update(self.db, salon, business_hours=self._validated_hours(hours))
        invalidate_salon_cache(salon.id)
        return salon.business_hours

    # ------------------------------------------------------------------
    # Stripe Connect
    # ------------------------------------------------------------------

    def create_stripe_account(self, user: UserProfile) -> dict:
        salon = self.get_owner_salon(user)
        if salon.stripe_account_id:
            raise AppError("Stripe account already exists", 409, "STRIPE_ACCOUNT_EXISTS")
        if not salon.country:
            raise AppError("Country is required for Stripe account creation", 400, "MISSING_COUNTRY")

        account = stripe_service.create_connect_account(
            email=salon.email or user.email,
            business_name=salon.business_name,
            country=salon.country,
            salon_id=salon.id,
            owner_id=user.id,
            website=salon.website,
        )
        StripeAccountRepository.create(
            self.db,
            salon.id,
            account.id,
            account_status="pending",
            country=salon.country,
            currency=stripe_service.STRIPE_DEFAULT_CURRENCY.upper(),
        )
        self.repo.update(self.db, salon, stripe_account_id=account.id, stripe_account_status="pending")
        onboarding_url = stripe_service.create_account_link(account.id)
        return {"account_id": account.id, "onboarding_url": onboarding_url}

    def _require_stripe_account(self, user: UserProfile) -> Salon:
        salon = self.get_owner_salon(user)
        if not salon.stripe_account_id:
            raise AppError("No Stripe account found for this salon", 404, "STRIPE_ACCOUNT_NOT_FOUND")
        return salon

    def get_onboarding_link(self, user: UserProfile) -> str:
        salon = self._require_stripe_account(user)
        return stripe_service.create_account_link(salon.stripe_account_id)

    def check_stripe_status(self, user: UserProfile) -> dict:
        salon = self._require_stripe_account(user)
        status = stripe_service.get_account_status(salon.stripe_account_id)
        account_status = apply_account_status(self.db, salon, status)
        return {
            "account_id": salon.stripe_account_id,
            "account_status": account_status,
            "charges_enabled": status["charges_enabled"],
            "payouts_enabled": status["payouts_enabled"],
            "details_submitted": status["details_submitted"],
            "requirements": status.get("requirements"),
        }

    def get_dashboard_link(self, user: UserProfile) -> str:
        salon = self._require_stripe_account(user)
        if salon.stripe_account_status != "active":
            raise AppError("Stripe account onboarding is not complete", 400, "ACCOUNT_NOT_READY")
        return stripe_service.create_dashboard_link(salon.stripe_account_id)

    # ------------------------------------------------------------------
    # Activity tracking
    # ------------------------------------------------------------------

    def track_view(self, salon_id: str, user: Optional[UserProfile], data: TrackViewRequest) -> dict:
        salon = self.repo.get_active_by_id(self.db, salon_id)
        if not salon:
            raise AppError("Salon not found", 404, "SALON_NOT_FOUND")

        self.repo.add_view(
            self.db,
            salon.id,
            user.id if user else None,
            session_id=data.session_id,
            source=data.source or "unknown",
            device_type=data.device_type or "unknown",
        )
        salon.view_count = (salon.view_count or 0) + 1
        self.db.flush()
        refresh_trending_score(self.db, salon)
        self.db.commit()
        logger.info(f"👁️ View tracked for salon {salon.id} (user: {user.id if user else 'anonymous'})")
        return {"view_count": salon.view_count, "trending_score": salon.trending_score}

    def track_favorite(self, salon_id: str, data: TrackFavoriteRequest) -> dict:
        if data.action not in ("add", "remove"):
            raise AppError("Action must be 'add' or 'remove'", 400, "INVALID_ACTION")

        salon = self.repo.get_active_by_id(self.db, salon_id)
        if not salon:
            raise AppError("Salon not found", 404, "SALON_NOT_FOUND")

        current = salon.favorite_count or 0
        salon.favorite_count = current + 1 if data.action == "add" else max(current - 1, 0)
        refresh_trending_score(self.db, salon)
        self.db.commit()
        logger.info(f"❤️ Favorite {data.action} tracked for salon {salon.id}")
        return {"favorite_count": salon.favorite_count, "trending_score": salon.trending_score}

    # ------------------------------------------------------------------
    # Recommendations
    # ------------------------------------------------------------------

    def _preference_profile(self, user: UserProfile) -> tuple[Counter, set[str]]:
        """Word weights and cities drawn from completed bookings and favorite salons"""
        profile: Counter = Counter()
        cities = set()
        for booking in self.repo.get_completed_bookings_for_client(self.db, user.id):
            service = booking.service
            profile.update(
                _tokens(
                    service.name if service else None,
                    service.category.name if service and service.category else None,
                    booking.salon.description if booking.salon else None,
                )
            )
            if booking.salon and booking.salon.city:
                cities.add(booking.salon.city.lower())

        for favorite in FavoriteRepository.list_for_user(self.db, user.id):
            if favorite.salon is None:
                continue
            profile.update(_salon_tokens(favorite.salon))
            if favorite.salon.city:
                cities.add(favorite.salon.city.lower())
        return profile, cities

    @staticmethod
    def _recommendation(salon: Salon, distance: Optional[float], score: Optional[float] = None) -> dict:
        data = SalonResponse.model_validate(salon).model_dump(mode="json")
        if distance is not None:
            data["distance_km"] = round(distance, 2)
        if score is not None:
            data["match_score"] = round(score, 2)
        return data

    @staticmethod
    def _distance_within(salon: Salon, latitude: Optional[float], longitude: Optional[float], radius_km: float):
        """(in_range, distance) for a salon; every salon is in range when no location is given"""
        if latitude is None or longitude is None:
            return True, None
        if salon.latitude is None or salon.longitude is None:
            return False, None
        distance = haversine_km(latitude, longitude, salon.latitude, salon.longitude)
        return distance <= radius_km, distance

    def get_recommendations(
        self,
        user: UserProfile,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        radius_km: float = 50,
        limit: int = 20,
    ) -> tuple[list[dict], bool]:
        """
        Salons matching the user's booking and favorites history, best match first.

        Falls back to well-rated popular salons when the history matches nothing.
        Returns (salons, personalized).
        """
        profile, cities = self._preference_profile(user)

        scored = []
        if profile or cities:
            for salon in self.repo.get_recommendation_candidates(self.db):
                in_range, distance = self._distance_within(salon, latitude, longitude, radius_km)
                if not in_range:
                    continue
                score = float(sum(profile[token] for token in _salon_tokens(salon)))
                if salon.city and salon.city.lower() in cities:
                    score += CITY_MATCH_WEIGHT
                if score > 0:
                    scored.append((score, salon, distance))

        if scored:
            scored.sort(key=lambda item: (item[0], item[1].rating_average, item[1].trending_score or 0), reverse=True)
            logger.info(f"🎯 {len(scored)} personalized matches for user {user.id}")
            return [self._recommendation(salon, distance, score) for score, salon, distance in scored[:limit]], True

        logger.info(f"ℹ️ No personalized matches for user {user.id}, falling back to popular salons")
        has_location = latitude is not None and longitude is not None
        popular = self.repo.get_popular_filtered(
            self.db, FALLBACK_MIN_RATING, FALLBACK_MIN_REVIEWS, None if has_location else limit
        )
        fallback = []
        for salon in popular:
            in_range, distance = self._distance_within(salon, latitude, longitude, radius_km)
            if in_range:
                fallback.append(self._recommendation(salon, distance))
        return fallback[:limit], False
