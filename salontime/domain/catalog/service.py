"""Catalog service - Business logic for salon services"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...cache import get_categories_cached, invalidate_salon_cache, set_categories_cached
from ...errors import AppError
from ...models import Booking, Salon, Service, UserProfile
from ...shared.validators import sanitize_string
from .repository import ServiceRepository
from .schemas import CategoryResponse, ServiceCreate, ServiceUpdate

logger = logging.getLogger(__name__)


def validate_service_fields(name: Optional[str], price, duration) -> None:
    """Shared checks for services created by owners and during onboarding"""
    if name is not None and not name.strip():
        raise AppError("Service name is required", 400, "VALIDATION_ERROR")
    if price is not None:
        try:
            if float(price) < 0:
                raise ValueError
        except (TypeError, ValueError) as e:
            raise AppError("Price must be a valid non-negative number", 400, "VALIDATION_ERROR") from e
    if duration is not None:
        try:
            if int(duration) <= 0:
                raise ValueError
        except (TypeError, ValueError) as e:
            raise AppError("Duration must be a positive number of minutes", 400, "VALIDATION_ERROR") from e


class CatalogService:
    """Service layer for salon service management"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ServiceRepository()

    def _owner_salon(self, user: UserProfile) -> Salon:
        salon = self.db.query(Salon).filter(Salon.owner_id == user.id).first()
        if not salon:
            raise AppError("Salon not found", 404, "SALON_NOT_FOUND")
        return salon

    def _owned_service(self, user: UserProfile, service_id: str) -> tuple[Salon, Service]:
        salon = self._owner_salon(user)
        service = self.repo.get_for_salon(self.db, service_id, salon.id)
        if not service:
            raise AppError("Service not found", 404, "SERVICE_NOT_FOUND")
        return salon, service

    def list_services(self, user: UserProfile, page: int, limit: int) -> tuple[list[Service], int]:
        salon = self._owner_salon(user)
        return self.repo.list_for_salon(self.db, salon.id, offset=(page - 1) * limit, limit=limit)

    def create_service(self, user: UserProfile, data: ServiceCreate) -> Service:
        salon = self._owner_salon(user)

        if not data.name or data.price is None or data.duration is None:
            raise AppError("Name, price and duration are required", 400, "VALIDATION_ERROR")
        validate_service_fields(data.name, data.price, data.duration)

        service = self.repo.create(
            self.db,
            salon.id,
            name=data.name.strip(),
            description=sanitize_string(data.description),
            price=float(data.price),
            duration=int(data.duration),
            category_id=data.category_id,
            is_active=data.is_active if data.is_active is not None else True,
        )
        invalidate_salon_cache(salon.id)
        logger.info(f"✅ Service created: {service.id} for salon {salon.id}")
        return service

    def update_service(self, user: UserProfile, service_id: str, data: ServiceUpdate) -> Service:
        salon, service = self._owned_service(user, service_id)

        updates = data.model_dump(exclude_unset=True, exclude_none=True)
        validate_service_fields(updates.get("name"), updates.get("price"), updates.get("duration"))
        if "name" in updates:
            updates["name"] = updates["name"].strip()
        if "description" in updates:
            updates["description"] = sanitize_string(updates["description"])

        service = self.repo.update(self.db, service, **updates)
        invalidate_salon_cache(salon.id)
        return service

    def delete_service(self, user: UserProfile, service_id: str) -> bool:
        """
        Delete a service. Services with booking history are deactivated instead.
        Returns True when the row was removed.
        """
        salon, service = self._owned_service(user, service_id)

        has_bookings = self.db.query(Booking.id).filter(Booking.service_id == service.id).first() is not None
        if has_bookings:
            self.repo.update(self.db, service, is_active=False)
            deleted = False
            logger.info(f"🗃️ Service {service_id} has bookings - deactivated instead of deleted")
        else:
            self.repo.delete(self.db, service)
            deleted = True
        invalidate_salon_cache(salon.id)
        return deleted

    def list_categories(self) -> list:
        cached = get_categories_cached()
        if cached is not None:
            return cached
        categories = [
            CategoryResponse.model_validate(c).model_dump() for c in self.repo.list_categories(self.db)
        ]
        set_categories_cached(categories)
        return categories
