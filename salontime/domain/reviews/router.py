"""Reviews router - salon reviews, owner replies and review eligibility"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...email_service import send_new_review_notification
from ...models import UserProfile
from ...schemas import success
from ...services.moderation_service import moderate_review
from .schemas import ReviewCreate, ReviewReply, ReviewResponse, ReviewUpdate
from .service import ReviewService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reviews", tags=["Reviews"])


def get_review_service(db: Session = Depends(get_db)) -> ReviewService:
    """Dependency injection for ReviewService"""
    return ReviewService(db)


# ============================================================================
# Public
# ============================================================================


@router.get("/salon/{salon_id}")
async def get_salon_reviews(
    salon_id: str,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: ReviewService = Depends(get_review_service),
):
    result = service.get_salon_reviews(salon_id, limit=limit, offset=offset)
    return success(
        {
            "reviews": [ReviewResponse.from_review(r) for r in result["reviews"]],
            "stats": result["stats"],
        }
    )


# ============================================================================
# Client
# ============================================================================


@router.post("", status_code=201)
async def create_review(
    data: ReviewCreate,
    background_tasks: BackgroundTasks,
    current_user: UserProfile = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    """Create a review; moderation and the owner email run after the response"""
    review = service.create_review(current_user, data)

    if review.comment:
        background_tasks.add_task(moderate_review, review.id)

    notification = service.notification_details(review)
    if notification:
        background_tasks.add_task(send_new_review_notification, **notification)

    return success(ReviewResponse.from_review(review), "Review created successfully")


@router.get("/my-reviews")
async def get_my_reviews(
    current_user: UserProfile = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    reviews = service.get_my_reviews(current_user)
    return success({"reviews": [ReviewResponse.from_review(r) for r in reviews]})


@router.get("/can-review/{booking_id}")
async def can_review_booking(
    booking_id: str,
    current_user: UserProfile = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return success(service.can_review(current_user, booking_id))


@router.put("/{review_id}")
async def update_review(
    review_id: str,
    data: ReviewUpdate,
    background_tasks: BackgroundTasks,
    current_user: UserProfile = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    review, needs_moderation = service.update_review(current_user, review_id, data)
    if needs_moderation:
        background_tasks.add_task(moderate_review, review.id)
    return success(ReviewResponse.from_review(review), "Review updated successfully")


@router.delete("/{review_id}")
async def delete_review(
    review_id: str,
    current_user: UserProfile = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    service.delete_review(current_user, review_id)
    return success(message="Review deleted successfully")


# ============================================================================
# Salon owner
# ============================================================================


@router.post("/{review_id}/reply")
async def reply_to_review(
    review_id: str,
    data: ReviewReply,
    current_user: UserProfile = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    review = service.reply_to_review(current_user, review_id, data.reply)
    logger.info(f"💬 Owner {current_user.id} replied to review {review_id}")
    return success(ReviewResponse.from_review(review), "Reply added successfully")
