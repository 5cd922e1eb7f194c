"""Review service - Business logic for salon reviews"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import AppError
from ...models import Booking, Review, Salon, UserProfile
from ...services.moderation_service import update_salon_rating
from ...shared.validators import sanitize_string
from .repository import ReviewRepository
from .schemas import ReviewCreate, ReviewUpdate

logger = logging.getLogger(__name__)


def booking_is_past(booking: Booking, now: Optional[datetime] = None) -> bool:
    """A booking can be reviewed once its slot has started or it is marked completed"""
    if booking.status == "completed":
        return True
    now = now or datetime.now()
    try:
        start = datetime.strptime(f"{booking.appointment_date.isoformat()} {booking.start_time}", "%Y-%m-%d %H:%M")
    except ValueError:
        start = datetime.combine(booking.appointment_date, datetime.min.time())
    return start < now


def _validate_rating(rating) -> int:
    try:
        value = int(rating)
    except (TypeError, ValueError):
        raise AppError("Rating must be between 1 and 5", 400, "INVALID_RATING")
    if value < 1 or value > 5:
        raise AppError("Rating must be between 1 and 5", 400, "INVALID_RATING")
    return value


class ReviewService:
    def __init__(self, db: Session):
        self.db = db
        self.repository = ReviewRepository()

    def get_salon_reviews(self, salon_id: str, limit: int = 20, offset: int = 0) -> dict:
        reviews = self.repository.list_visible_for_salon(self.db, salon_id, limit=limit, offset=offset)
        average, total = self.repository.visible_stats(self.db, salon_id)
        return {
            "reviews": reviews,
            "stats": {"average_rating": average, "total_reviews": total},
        }

    def create_review(self, user: UserProfile, data: ReviewCreate) -> Review:
        if not data.salon_id or not data.rating:
            raise AppError("Salon ID and rating are required", 400, "MISSING_REQUIRED_FIELDS")
        rating = _validate_rating(data.rating)

        if data.booking_id:
            booking = self.repository.get_client_booking(self.db, data.booking_id, user.id)
            if not booking:
                raise AppError("Booking not found or does not belong to you", 404, "BOOKING_NOT_FOUND")
            if not booking_is_past(booking):
                raise AppError("You can only review completed or past bookings", 400, "BOOKING_NOT_COMPLETED")
            if self.repository.get_by_booking(self.db, data.booking_id):
                raise AppError("Review already exists for this booking", 409, "REVIEW_ALREADY_EXISTS")
            if booking.salon_id != data.salon_id:
                raise AppError("Booking does not belong to this salon", 400, "INVALID_SALON")
        elif not self.repository.has_completed_booking(self.db, user.id, data.salon_id):
            raise AppError(
                "You can only review salons you have completed bookings with", 400, "NO_COMPLETED_BOOKINGS"
            )

        comment = sanitize_string(data.comment) or None
        review = self.repository.create(
            self.db,
            client_id=user.id,
            salon_id=data.salon_id,
            booking_id=data.booking_id or None,
            rating=rating,
            comment=comment,
            is_visible=True,
        )
        update_salon_rating(self.db, data.salon_id)
        logger.info(f"⭐ Review {review.id} created for salon {data.salon_id} ({rating}/5)")
        return review

    def get_owned_review(self, user: UserProfile, review_id: str) -> Review:
        review = self.repository.get_for_client(self.db, review_id, user.id)
        if not review:
            raise AppError("Review not found", 404, "REVIEW_NOT_FOUND")
        return review

    def update_review(self, user: UserProfile, review_id: str, data: ReviewUpdate) -> tuple[Review, bool]:
        """
        Update the caller's review.

        Returns the review and whether its comment changed (needs re-moderation).
        """
        review = self.get_owned_review(user, review_id)
        updates = {}

        if data.rating is not None:
            updates["rating"] = _validate_rating(data.rating)

        comment_changed = False
        if data.comment is not None:
            comment = sanitize_string(data.comment) or None
            if comment != review.comment:
                comment_changed = True
                updates["comment"] = comment
                # Previous verdict no longer applies
                updates.update(ai_analyzed=False, ai_flag_type=None, ai_confidence=None, ai_notes=None)
                if not review.is_visible and review.ai_flag_type and not review.human_reviewed:
                    updates["is_visible"] = True

        if updates:
            review = self.repository.update(self.db, review, **updates)
            update_salon_rating(self.db, review.salon_id)
        return review, comment_changed and bool(review.comment)

    def delete_review(self, user: UserProfile, review_id: str) -> None:
        review = self.get_owned_review(user, review_id)
        self.repository.update(self.db, review, is_visible=False, deleted_at=datetime.now(timezone.utc))
        update_salon_rating(self.db, review.salon_id)
        logger.info(f"🗑️ Review {review_id} deleted by author")

    def get_my_reviews(self, user: UserProfile) -> list[Review]:
        return self.repository.list_for_client(self.db, user.id)

    def can_review(self, user: UserProfile, booking_id: str) -> dict:
        booking = self.repository.get_client_booking(self.db, booking_id, user.id)
        if not booking:
            raise AppError("Booking not found or does not belong to you", 404, "BOOKING_NOT_FOUND")
        has_review = self.repository.get_by_booking(self.db, booking_id) is not None
        is_past = booking_is_past(booking)
        return {
            "can_review": is_past and not has_review,
            "has_review": has_review,
            "is_past": is_past,
            "booking_status": booking.status,
        }

    def reply_to_review(self, user: UserProfile, review_id: str, reply: Optional[str]) -> Review:
        if not reply or not reply.strip():
            raise AppError("Reply text is required", 400, "MISSING_REPLY")

        review = self.repository.get_by_id(self.db, review_id)
        if not review:
            raise AppError("Review not found", 404, "REVIEW_NOT_FOUND")
        salon = self.db.query(Salon).filter(Salon.id == review.salon_id).first()
        if not salon:
            raise AppError("Salon not found", 404, "SALON_NOT_FOUND")
        if salon.owner_id != user.id:
            raise AppError("You do not have permission to reply to this review", 403, "UNAUTHORIZED")

        return self.repository.update(
            self.db,
            review,
            owner_reply=sanitize_string(reply.strip()),
            owner_reply_at=datetime.now(timezone.utc),
        )

    def notification_details(self, review: Review) -> Optional[dict]:
        """Recipient and template values for the new-review email, None when there is no address"""
        salon = review.salon
        if not salon:
            return None
        recipient = salon.email or (salon.owner.email if salon.owner else None)
        if not recipient:
            logger.warning(f"⚠️ No email for salon {salon.id} - skipping review notification")
            return None
        client = review.client
        client_name = (client.full_name or client.first_name or "A client") if client else "A client"
        return {
            "to": recipient,
            "business_name": salon.business_name,
            "client_name": client_name,
            "rating": review.rating,
            "comment": review.comment,
        }
