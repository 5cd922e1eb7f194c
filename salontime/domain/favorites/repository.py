"""Favorites repository - Database operations for saved salons"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import UserFavorite


class FavoriteRepository:
    @staticmethod
    def get(db: Session, user_id: str, salon_id: str) -> Optional[UserFavorite]:
        return (
            db.query(UserFavorite)
            .filter(UserFavorite.user_id == user_id, UserFavorite.salon_id == salon_id)
            .first()
        )

    @staticmethod
    def list_for_user(db: Session, user_id: str) -> list[UserFavorite]:
        return (
            db.query(UserFavorite)
            .options(joinedload(UserFavorite.salon))
            .filter(UserFavorite.user_id == user_id)
            .order_by(UserFavorite.created_at.desc())
            .all()
        )

    @staticmethod
    def create(db: Session, user_id: str, salon_id: str) -> UserFavorite:
        favorite = UserFavorite(user_id=user_id, salon_id=salon_id)
        db.add(favorite)
        db.commit()
        db.refresh(favorite)
        return favorite

    @staticmethod
    def delete(db: Session, favorite: UserFavorite) -> None:
        db.delete(favorite)
        db.commit()
