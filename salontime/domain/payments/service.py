"""Payment service - Stripe payments for bookings and payment reconciliation"""

import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ...config import STRIPE_DEFAULT_CURRENCY
from ...errors import AppError
from ...models import Booking, Payment, UserProfile
from ...services import stripe_service
from ..salons.repository import SalonRepository, StripeAccountRepository
from ..salons.service import apply_account_status
from .repository import PaymentRepository
from .schemas import PAYMENT_STATUSES, PaymentIntentCreate

logger = logging.getLogger(__name__)

DEFAULT_ANALYTICS_DAYS = 30

# Stripe PaymentIntent status -> local payment status
INTENT_STATUS_MAP = {
    "succeeded": "completed",
    "processing": "pending",
    "requires_payment_method": "failed",
    "canceled": "failed",
}

# Terminal states a late failure must not overwrite
SETTLED_STATUSES = {"completed", "refunded"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _metadata_value(metadata: dict, *keys: str) -> Optional[str]:
    for key in keys:
        if metadata.get(key):
            return metadata[key]
    return None


# ============================================================================
# RECONCILIATION (webhook event handlers)
# ============================================================================


def mark_booking_paid(booking: Optional[Booking]) -> None:
    if booking is not None:
        booking.payment_status = "paid"


def handle_checkout_session_completed(db: Session, session: dict) -> None:
    booking_id = (session.get("metadata") or {}).get("booking_id")
    if not booking_id:
        logger.warning(f"⚠️ Checkout session {session.get('id')} completed without booking_id metadata")
        return

    booking = PaymentRepository.get_booking(db, booking_id)
    if not booking:
        logger.warning(f"⚠️ Checkout session {session.get('id')} references unknown booking {booking_id}")
        return

    payment_intent_id = session.get("payment_intent")
    payment = PaymentRepository.get_by_booking(db, booking_id)
    if payment is None:
        payment = Payment(
            booking_id=booking_id,
            amount=(session.get("amount_total") or 0) / 100,
            currency=(session.get("currency") or STRIPE_DEFAULT_CURRENCY).upper(),
        )
        db.add(payment)

    payment.status = "completed"
    payment.stripe_checkout_session_id = session.get("id")
    if payment_intent_id:
        payment.stripe_payment_intent_id = payment_intent_id
    payment.payment_method = stripe_service.resolve_payment_method(payment_intent_id)

    mark_booking_paid(booking)
    if booking.status == "pending":
        booking.status = "confirmed"

    db.commit()
    logger.info(f"✅ Payment completed via checkout session for booking {booking_id}")


def _find_payment_for_intent(db: Session, intent: dict) -> Optional[Payment]:
    """
    Locate the local payment row for a PaymentIntent: by intent id, then by
    metadata booking_id, then by the client's latest booking for the
    salon and service. A missing row is created against the booking.
    """
    payment = PaymentRepository.get_by_intent(db, intent["id"])
    if payment:
        return payment

    metadata = intent.get("metadata") or {}
    booking = None
    booking_id = _metadata_value(metadata, "booking_id", "bookingId")
    if booking_id:
        booking = PaymentRepository.get_booking(db, booking_id)

    if booking is None:
        user_id = _metadata_value(metadata, "user_id", "userId")
        salon_id = _metadata_value(metadata, "salon_id", "salonId")
        service_id = _metadata_value(metadata, "service_id", "serviceId")
        if user_id and salon_id and service_id:
            booking = PaymentRepository.get_latest_booking(db, user_id, salon_id, service_id)

    if booking is None:
        return None

    payment = PaymentRepository.get_by_booking(db, booking.id)
    if payment is None:
        payment = Payment(
            booking_id=booking.id,
            amount=(intent.get("amount") or 0) / 100,
            currency=(intent.get("currency") or STRIPE_DEFAULT_CURRENCY).upper(),
            status="pending",
        )
        db.add(payment)
        logger.info(f"🔗 Created payment record for booking {booking.id}")
    payment.stripe_payment_intent_id = intent["id"]
    return payment


def handle_payment_intent_succeeded(db: Session, intent: dict) -> None:
    intent_id = intent.get("id")
    if not intent_id:
        logger.warning("⚠️ payment_intent.succeeded without an intent id, skipping")
        return

    payment = _find_payment_for_intent(db, intent)
    if payment is None:
        logger.warning(f"⚠️ Payment succeeded but no booking found to link: {intent_id}")
        return

    payment.status = "completed"
    if not payment.payment_method:
        payment.payment_method = stripe_service.resolve_payment_method(intent_id)
    mark_booking_paid(PaymentRepository.get_booking(db, payment.booking_id))
    db.commit()
    logger.info(f"✅ Payment succeeded and updated: {intent_id}")


def handle_payment_intent_failed(db: Session, intent: dict) -> None:
    intent_id = intent.get("id")
    if not intent_id:
        logger.warning("⚠️ payment_intent.payment_failed without an intent id, skipping")
        return

    payment = PaymentRepository.get_by_intent(db, intent_id)
    if payment is None:
        logger.warning(f"⚠️ Payment failed for unknown intent: {intent_id}")
        return
    if payment.status in SETTLED_STATUSES:
        logger.info(f"ℹ️ Ignoring failure for settled payment {payment.id} ({payment.status})")
        return

    payment.status = "failed"
    booking = PaymentRepository.get_booking(db, payment.booking_id)
    if booking is not None:
        booking.payment_status = "pending"
    db.commit()
    logger.info(f"❌ Payment failed: {intent_id}")


def handle_account_updated(db: Session, account: dict) -> None:
    account_id = account.get("id")
    if not account_id:
        logger.warning("⚠️ account.updated without an account id, skipping")
        return

    salon = SalonRepository.get_by_stripe_account(db, account_id)
    if salon is None:
        record = StripeAccountRepository.get_by_account_id(db, account_id)
        salon = SalonRepository.get_by_id(db, record.salon_id) if record else None
    if salon is None:
        logger.warning(f"⚠️ account.updated for unknown Stripe account {account_id}")
        return

    apply_account_status(
        db,
        salon,
        {
            "details_submitted": bool(account.get("details_submitted")),
            "charges_enabled": bool(account.get("charges_enabled")),
            "payouts_enabled": bool(account.get("payouts_enabled")),
            "requirements": account.get("requirements"),
            "capabilities": account.get("capabilities"),
        },
    )


# ============================================================================
# PAYMENT SERVICE
# ============================================================================


class PaymentService:
    def __init__(self, db: Session):
        self.db = db
        self.payments = PaymentRepository()
        self.salons = SalonRepository()

    def create_payment_intent(self, user: UserProfile, data: PaymentIntentCreate) -> dict:
        if not data.amount or not data.service_id or not data.salon_id:
            raise AppError(
                "Missing required fields: amount, service_id, salon_id", 400, "MISSING_REQUIRED_FIELDS"
            )

        salon = self.salons.get_by_id(self.db, data.salon_id)
        if not salon or not salon.stripe_account_id:
            raise AppError("Salon not found or Stripe not configured", 404, "SALON_NOT_FOUND")

        booking = None
        if data.booking_id:
            booking = self.payments.get_booking(self.db, data.booking_id)
            if not booking or booking.client_id != user.id:
                raise AppError("Booking not found", 404, "BOOKING_NOT_FOUND")

        currency = (data.currency or STRIPE_DEFAULT_CURRENCY).lower()
        metadata = {
            "user_id": user.id,
            "service_id": data.service_id,
            "salon_id": data.salon_id,
            "salon_name": salon.business_name,
        }
        if booking is not None:
            metadata["booking_id"] = booking.id

        intent = stripe_service.create_payment_intent(
            amount_cents=int(round(data.amount * 100)),
            currency=currency,
            destination_account=salon.stripe_account_id,
            metadata=metadata,
        )

        if booking is not None:
            payment = self.payments.get_by_booking(self.db, booking.id)
            if payment is None:
                payment = Payment(booking_id=booking.id, amount=data.amount, currency=currency.upper())
                self.db.add(payment)
            if payment.status not in SETTLED_STATUSES:
                payment.status = "pending"
            payment.stripe_payment_intent_id = intent.id
            self.db.commit()

        return {
            "client_secret": intent.client_secret,
            "payment_intent_id": intent.id,
            "metadata": metadata,
        }

    def confirm_payment(self, user: UserProfile, payment_intent_id: str) -> dict:
        intent = stripe_service.retrieve_payment_intent(payment_intent_id)

        payment = self.payments.get_by_intent(self.db, payment_intent_id)
        if payment is not None:
            booking = self.payments.get_booking(self.db, payment.booking_id)
            if booking is not None and booking.client_id == user.id and payment.status not in SETTLED_STATUSES:
                payment.status = INTENT_STATUS_MAP.get(intent.status, payment.status)
                if payment.status == "completed":
                    mark_booking_paid(booking)
                self.db.commit()

        return {
            "status": intent.status,
            "payment_intent": {
                "id": intent.id,
                "amount": intent.amount,
                "currency": intent.currency,
                "status": intent.status,
            },
        }

    def get_payment_history(self, user: UserProfile, page: int, limit: int) -> dict:
        payments = self.payments.list_for_client(self.db, user.id, page=page, limit=limit)
        items = []
        for payment in payments:
            booking = payment.booking
            salon = booking.salon if booking else None
            service = booking.service if booking else None
            items.append(
                {
                    **self._payment_fields(payment),
                    "salon": {"id": salon.id, "name": salon.business_name, "address": salon.address}
                    if salon
                    else None,
                    "service": {"name": service.name, "duration": service.duration, "price": service.price}
                    if service
                    else None,
                }
            )
        return {
            "payments": items,
            "pagination": {"page": page, "limit": limit, "has_more": len(payments) == limit},
        }

    def get_salon_payments(self, user: UserProfile, page: int, limit: int) -> dict:
        salon = self._require_owned_salon(user)
        payments = self.payments.list_for_salon(self.db, salon.id, page=page, limit=limit)
        items = []
        for payment in payments:
            booking = payment.booking
            client = booking.client if booking else None
            service = booking.service if booking else None
            items.append(
                {
                    **self._payment_fields(payment),
                    "client": {"email": client.email, "full_name": client.full_name} if client else None,
                    "service": {"name": service.name, "duration": service.duration} if service else None,
                }
            )
        return {
            "payments": items,
            "pagination": {"page": page, "limit": limit, "has_more": len(payments) == limit},
        }

    def get_payment_analytics(
        self,
        user: UserProfile,
        period: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> dict:
        """Revenue summary, trends and breakdowns for completed payments in a date window"""
        salon = self._require_owned_salon(user)

        if start_date and end_date:
            if end_date < start_date:
                raise AppError("end_date must not be before start_date", 400, "INVALID_DATE_RANGE")
            start = datetime.combine(start_date, time.min)
            end = datetime.combine(end_date + timedelta(days=1), time.min)
        else:
            if period is not None and period <= 0:
                raise AppError("Invalid period parameter", 400, "INVALID_PERIOD")
            end = _utcnow()
            start = end - timedelta(days=period or DEFAULT_ANALYTICS_DAYS)

        payments = self.payments.completed_for_salon(self.db, salon.id, start, end)

        total_revenue = sum(p.amount for p in payments)
        total_transactions = len(payments)

        daily: dict[str, float] = defaultdict(float)
        monthly: dict[str, float] = defaultdict(float)
        by_category: dict[str, float] = defaultdict(float)
        service_totals: dict[str, dict] = {}
        for payment in payments:
            created = payment.created_at or start
            daily[created.strftime("%Y-%m-%d")] += payment.amount
            monthly[created.strftime("%Y-%m")] += payment.amount

            service = payment.booking.service if payment.booking else None
            category = service.category.name if service and service.category else "Other"
            by_category[category] += payment.amount

            name = service.name if service else "Unknown Service"
            totals = service_totals.setdefault(name, {"revenue": 0.0, "count": 0})
            totals["revenue"] += payment.amount
            totals["count"] += 1

        top_services = sorted(
            (
                {
                    "name": name,
                    "revenue": round(totals["revenue"], 2),
                    "transaction_count": totals["count"],
                    "average_value": round(totals["revenue"] / totals["count"], 2),
                }
                for name, totals in service_totals.items()
            ),
            key=lambda item: item["revenue"],
            reverse=True,
        )[:10]

        previous = self.payments.completed_for_salon(self.db, salon.id, start - (end - start), start)
        previous_revenue = sum(p.amount for p in previous)
        growth = (total_revenue - previous_revenue) / previous_revenue * 100 if previous_revenue > 0 else 0

        return {
            "salon": {"id": salon.id, "name": salon.business_name},
            "period": {
                "start_date": start.date().isoformat(),
                "end_date": end.date().isoformat(),
                "days": (end - start).days,
            },
            "summary": {
                "total_revenue": round(total_revenue, 2),
                "total_transactions": total_transactions,
                "average_transaction": round(total_revenue / total_transactions, 2) if total_transactions else 0,
                "currency": payments[0].currency if payments else STRIPE_DEFAULT_CURRENCY.upper(),
            },
            "growth": {
                "previous_period_revenue": round(previous_revenue, 2),
                "revenue_growth": round(growth, 2),
            },
            "trends": {"daily": dict(daily), "monthly": dict(monthly)},
            "breakdown": {"by_category": dict(by_category), "top_services": top_services},
        }

    def update_booking_payment_status(
        self, user: UserProfile, booking_id: str, status: Optional[str], payment_method: Optional[str]
    ) -> Payment:
        """Owner records a manual (cash, terminal) payment outcome"""
        if status not in PAYMENT_STATUSES:
            raise AppError("Invalid payment status", 400, "INVALID_PAYMENT_STATUS")

        booking = self._require_owned_booking(user, booking_id)
        payment = self.payments.get_by_booking(self.db, booking_id)
        if payment is None:
            payment = Payment(
                booking_id=booking_id,
                amount=booking.service.price if booking.service else 0,
                currency=STRIPE_DEFAULT_CURRENCY.upper(),
            )
            self.db.add(payment)

        payment.status = status
        if payment_method:
            payment.payment_method = payment_method
        if status == "completed":
            booking.payment_status = "paid"
        elif status == "refunded":
            booking.payment_status = "refunded"
        else:
            booking.payment_status = "pending"

        self.db.commit()
        self.db.refresh(payment)
        logger.info(f"💵 Booking {booking_id} payment set to {status} by owner")
        return payment

    def create_payment_link(self, user: UserProfile, booking_id: str) -> dict:
        booking = self._require_owned_booking(user, booking_id)
        salon = booking.salon
        if not salon.stripe_account_id:
            raise AppError(
                "Salon Stripe account not configured. Please complete Stripe onboarding first.",
                400,
                "STRIPE_NOT_CONFIGURED",
            )

        payment = self.payments.get_by_booking(self.db, booking_id)
        if payment is None:
            payment = self.payments.create(
                self.db,
                booking_id=booking_id,
                amount=booking.service.price if booking.service else 0,
                currency=STRIPE_DEFAULT_CURRENCY.upper(),
                status="pending",
            )

        service_name = booking.service.name if booking.service else "Service"
        session = stripe_service.create_checkout_session(
            booking_id=booking_id,
            amount=payment.amount,
            connected_account_id=salon.stripe_account_id,
            description=(
                f"{service_name} - {salon.business_name}, "
                f"{booking.appointment_date.isoformat()} at {booking.start_time}"
            ),
        )

        payment.stripe_checkout_session_id = session.id
        self.db.commit()
        logger.info(f"🔗 Payment link created for booking {booking_id}")

        return {
            "payment_link": session.url,
            "checkout_session_id": session.id,
            "expires_at": session.expires_at,
            "email": {
                "to": booking.client.email if booking.client else None,
                "business_name": salon.business_name,
                "service_name": service_name,
                "amount": payment.amount,
                "currency": payment.currency,
                "payment_url": session.url,
            },
        }

    def _require_owned_salon(self, user: UserProfile):
        salon = self.salons.get_by_owner(self.db, user.id)
        if not salon:
            raise AppError("Access denied: Not a salon owner", 403, "ACCESS_DENIED")
        return salon

    def _require_owned_booking(self, user: UserProfile, booking_id: str) -> Booking:
        booking = self.payments.get_booking(self.db, booking_id)
        if not booking:
            raise AppError("Booking not found", 404, "BOOKING_NOT_FOUND")
        if not booking.salon or booking.salon.owner_id != user.id:
            raise AppError("Access denied: Not the salon owner", 403, "ACCESS_DENIED")
        return booking

    @staticmethod
    def _payment_fields(payment: Payment) -> dict:
        return {
            "id": payment.id,
            "booking_id": payment.booking_id,
            "amount": payment.amount,
            "currency": payment.currency,
            "status": payment.status,
            "payment_method": payment.payment_method,
            "stripe_payment_intent_id": payment.stripe_payment_intent_id,
            "created_at": payment.created_at,
            "updated_at": payment.updated_at,
        }
