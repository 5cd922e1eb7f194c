"""Analytics repository - Read-only queries behind the salon owner dashboard"""

from datetime import date, datetime

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import Booking, Payment, Review, SalonView, Service, UserFavorite


class AnalyticsRepository:
    @staticmethod
    def completed_payments_since(db: Session, salon_id: str, since: datetime) -> list[Payment]:
        return (
            db.query(Payment)
            .join(Booking, Payment.booking_id == Booking.id)
            .filter(Booking.salon_id == salon_id, Payment.status == "completed", Payment.created_at >= since)
            .order_by(Payment.created_at.asc())
            .all()
        )

    @staticmethod
    def bookings_created_since(db: Session, salon_id: str, since: datetime) -> list[Booking]:
        return (
            db.query(Booking)
            .filter(Booking.salon_id == salon_id, Booking.created_at >= since)
            .order_by(Booking.created_at.asc())
            .all()
        )

    @staticmethod
    def bookings_scheduled_since(db: Session, salon_id: str, since: date) -> list[Booking]:
        """Bookings with an appointment on or after the given day, with service and category loaded"""
        return (
            db.query(Booking)
            .options(joinedload(Booking.service).joinedload(Service.category))
            .filter(Booking.salon_id == salon_id, Booking.appointment_date >= since)
            .all()
        )

    @staticmethod
    def returning_client_ids(db: Session, salon_id: str, before: date, client_ids: set[str]) -> set[str]:
        """Clients among client_ids with a completed booking before the given day"""
        if not client_ids:
            return set()
        rows = (
            db.query(Booking.client_id)
            .filter(
                Booking.salon_id == salon_id,
                Booking.status == "completed",
                Booking.appointment_date < before,
                Booking.client_id.in_(list(client_ids)),
            )
            .distinct()
            .all()
        )
        return {row[0] for row in rows}

    @staticmethod
    def views_since(db: Session, salon_id: str, since: datetime) -> list[SalonView]:
        return (
            db.query(SalonView)
            .filter(SalonView.salon_id == salon_id, SalonView.viewed_at >= since)
            .order_by(SalonView.viewed_at.asc())
            .all()
        )

    @staticmethod
    def favorites_for_salon(db: Session, salon_id: str) -> list[UserFavorite]:
        return (
            db.query(UserFavorite)
            .options(joinedload(UserFavorite.user))
            .filter(UserFavorite.salon_id == salon_id)
            .order_by(UserFavorite.created_at.desc())
            .all()
        )

    @staticmethod
    def reviews_since(db: Session, salon_id: str, since: datetime) -> list[Review]:
        return (
            db.query(Review)
            .options(joinedload(Review.client), joinedload(Review.booking).joinedload(Booking.service))
            .filter(
                Review.salon_id == salon_id,
                Review.is_visible.is_(True),
                Review.created_at >= since,
            )
            .order_by(Review.created_at.desc())
            .all()
        )

    @staticmethod
    def count_bookings(db: Session, salon_id: str) -> int:
        return db.query(func.count(Booking.id)).filter(Booking.salon_id == salon_id).scalar() or 0

    @staticmethod
    def reviews_page(db: Session, salon_id: str, limit: int, offset: int) -> tuple[list[Review], int]:
        """Every review the owner can manage (hidden ones included, author-deleted ones excluded)"""
        query = db.query(Review).filter(Review.salon_id == salon_id, Review.deleted_at.is_(None))
        total = query.count()
        reviews = (
            query.options(joinedload(Review.client), joinedload(Review.booking).joinedload(Booking.service))
            .order_by(Review.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return reviews, total
