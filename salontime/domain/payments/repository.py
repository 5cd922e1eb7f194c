"""Payment repository - Database operations for payments"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Booking, Payment, Service


class PaymentRepository:
    """Repository for payment database operations"""

    @staticmethod
    def get_by_intent(db: Session, payment_intent_id: str) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.stripe_payment_intent_id == payment_intent_id).first()

    @staticmethod
    def get_by_booking(db: Session, booking_id: str) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.booking_id == booking_id).first()

    @staticmethod
    def get_booking(db: Session, booking_id: str) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.id == booking_id).first()

    @staticmethod
    def get_latest_booking(db: Session, client_id: str, salon_id: str, service_id: str) -> Optional[Booking]:
        return (
            db.query(Booking)
            .filter(
                Booking.client_id == client_id,
                Booking.salon_id == salon_id,
                Booking.service_id == service_id,
            )
            .order_by(Booking.created_at.desc())
            .first()
        )

    @staticmethod
    def create(db: Session, **payment_data) -> Payment:
        payment = Payment(**payment_data)
        db.add(payment)
        db.commit()
        db.refresh(payment)
        return payment

    @staticmethod
    def list_for_client(db: Session, client_id: str, page: int = 1, limit: int = 20) -> list[Payment]:
        return (
            db.query(Payment)
            .join(Booking, Payment.booking_id == Booking.id)
            .options(joinedload(Payment.booking).joinedload(Booking.salon), joinedload(Payment.booking).joinedload(Booking.service))
            .filter(Booking.client_id == client_id)
            .order_by(Payment.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

    @staticmethod
    def list_for_salon(db: Session, salon_id: str, page: int = 1, limit: int = 20) -> list[Payment]:
        return (
            db.query(Payment)
            .join(Booking, Payment.booking_id == Booking.id)
            .options(joinedload(Payment.booking).joinedload(Booking.client), joinedload(Payment.booking).joinedload(Booking.service))
            .filter(Booking.salon_id == salon_id)
            .order_by(Payment.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

    @staticmethod
    def completed_for_salon(
        db: Session, salon_id: str, start: datetime, end: datetime
    ) -> list[Payment]:
        """Completed payments created in [start, end)"""
        return (
            db.query(Payment)
            .join(Booking, Payment.booking_id == Booking.id)
            .options(
                joinedload(Payment.booking).joinedload(Booking.service).joinedload(Service.category)
            )
            .filter(
                Booking.salon_id == salon_id,
                Payment.status == "completed",
                Payment.created_at >= start,
                Payment.created_at < end,
            )
            .order_by(Payment.created_at.desc())
            .all()
        )
