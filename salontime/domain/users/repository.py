"""User repository - Database operations for profiles and settings"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import UserProfile, UserSettings


class UserRepository:
    """Repository for user database operations"""

    @staticmethod
    def get_settings(db: Session, user_id: str) -> Optional[UserSettings]:
        return db.query(UserSettings).filter(UserSettings.user_id == user_id).first()

    @staticmethod
    def create_default_settings(db: Session, user_id: str) -> UserSettings:
        """Create settings row with column defaults"""
        settings = UserSettings(user_id=user_id)
        db.add(settings)
        db.commit()
        db.refresh(settings)
        return settings

    @staticmethod
    def update_settings(db: Session, settings: UserSettings, **updates) -> UserSettings:
        for key, value in updates.items():
            setattr(settings, key, value)
        db.commit()
        db.refresh(settings)
        return settings

    @staticmethod
    def update_profile(db: Session, user: UserProfile, **updates) -> UserProfile:
        """Update a profile with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(user, key):
                setattr(user, key, value)
        db.commit()
        db.refresh(user)
        return user
