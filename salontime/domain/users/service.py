"""User service - Business logic for profiles and settings"""

import logging

from sqlalchemy.orm import Session

from ...errors import AppError
from ...models import UserProfile, UserSettings
from .repository import UserRepository
from .schemas import UserProfileUpdate, UserSettingsUpdate

logger = logging.getLogger(__name__)


class UserService:
    """Service layer for user business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository()

    def get_settings(self, user: UserProfile) -> UserSettings:
        """Get settings, creating defaults on first read"""
        settings = self.repo.get_settings(self.db, user.id)
        if not settings:
            logger.info(f"🆕 Creating default settings for user {user.id}")
            settings = self.repo.create_default_settings(self.db, user.id)
        return settings

    def update_settings(self, user: UserProfile, data: UserSettingsUpdate) -> UserSettings:
        updates = data.model_dump(exclude_none=True)
        if not updates:
            raise AppError("No valid fields to update", 400, "NO_UPDATES_PROVIDED")

        settings = self.get_settings(user)
        return self.repo.update_settings(self.db, settings, **updates)

    def update_profile(self, user: UserProfile, data: UserProfileUpdate) -> UserProfile:
        updates = data.model_dump(exclude_none=True)
        if not updates:
            raise AppError("No valid fields to update", 400, "NO_UPDATES_PROVIDED")

        if "first_name" in updates or "last_name" in updates:
            first = updates.get("first_name", user.first_name) or ""
            last = updates.get("last_name", user.last_name) or ""
            updates["full_name"] = f"{first} {last}".strip() or None

        return self.repo.update_profile(self.db, user, **updates)
