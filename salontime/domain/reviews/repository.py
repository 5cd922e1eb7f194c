"""Review repository - Database operations for reviews"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import Booking, Review


class ReviewRepository:
    """Repository for review database operations"""

    @staticmethod
    def list_visible_for_salon(db: Session, salon_id: str, limit: int = 20, offset: int = 0) -> list[Review]:
        return (
            db.query(Review)
            .options(
                joinedload(Review.client),
                joinedload(Review.booking).joinedload(Booking.service),
            )
            .filter(Review.salon_id == salon_id, Review.is_visible.is_(True))
            .order_by(Review.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    @staticmethod
    def visible_stats(db: Session, salon_id: str) -> tuple[float, int]:
        """Average rating (2 decimals) and count over visible reviews"""
        average, count = (
            db.query(func.avg(Review.rating), func.count(Review.id))
            .filter(Review.salon_id == salon_id, Review.is_visible.is_(True))
            .one()
        )
        return (round(float(average), 2) if average is not None else 0.0), (count or 0)

    @staticmethod
    def get_by_id(db: Session, review_id: str) -> Optional[Review]:
        return db.query(Review).filter(Review.id == review_id, Review.deleted_at.is_(None)).first()

    @staticmethod
    def get_for_client(db: Session, review_id: str, client_id: str) -> Optional[Review]:
        return (
            db.query(Review)
            .filter(Review.id == review_id, Review.client_id == client_id, Review.deleted_at.is_(None))
            .first()
        )

    @staticmethod
    def get_by_booking(db: Session, booking_id: str) -> Optional[Review]:
        return db.query(Review).filter(Review.booking_id == booking_id).first()

    @staticmethod
    def list_for_client(db: Session, client_id: str) -> list[Review]:
        return (
            db.query(Review)
            .options(joinedload(Review.salon), joinedload(Review.booking).joinedload(Booking.service))
            .filter(Review.client_id == client_id, Review.deleted_at.is_(None))
            .order_by(Review.created_at.desc())
            .all()
        )

    @staticmethod
    def get_client_booking(db: Session, booking_id: str, client_id: str) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.id == booking_id, Booking.client_id == client_id).first()

    @staticmethod
    def has_completed_booking(db: Session, client_id: str, salon_id: str) -> bool:
        return (
            db.query(Booking.id)
            .filter(
                Booking.client_id == client_id,
                Booking.salon_id == salon_id,
                Booking.status == "completed",
            )
            .first()
            is not None
        )

    @staticmethod
    def create(db: Session, **review_data) -> Review:
        review = Review(**review_data)
        db.add(review)
        db.commit()
        db.refresh(review)
        return review

    @staticmethod
    def update(db: Session, review: Review, **updates) -> Review:
        for key, value in updates.items():
            setattr(review, key, value)
        db.commit()
        db.refresh(review)
        return review
