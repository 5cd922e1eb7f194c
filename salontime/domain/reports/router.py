"""Reports router - user reports against reviews"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...errors import AppError
from ...models import UserProfile
from ...schemas import success
from ...services.moderation_service import moderate_review
from ...shared.validators import sanitize_string
from ..reviews.repository import ReviewRepository
from .repository import ReportRepository
from .schemas import REPORT_REASONS, ReportCreate, ReportResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reports", tags=["Reports"])


@router.post("/review/{review_id}", status_code=201)
async def report_review(
    review_id: str,
    data: ReportCreate,
    background_tasks: BackgroundTasks,
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Report a review. The review is re-analyzed in the background even if it
    was already checked, so content the first pass missed can still be hidden.
    """
    if not data.reason:
        raise AppError("Report reason is required", 400, "MISSING_REASON")
    if data.reason not in REPORT_REASONS:
        raise AppError("Invalid report reason", 400, "INVALID_REASON")

    review = ReviewRepository.get_by_id(db, review_id)
    if not review:
        raise AppError("Review not found", 404, "REVIEW_NOT_FOUND")
    if review.client_id == current_user.id:
        raise AppError("You cannot report your own review", 400, "CANNOT_REPORT_SELF")
    if ReportRepository.get_by_reporter(db, review_id, current_user.id):
        raise AppError("You have already reported this review", 409, "REPORT_ALREADY_EXISTS")

    report = ReportRepository.create(
        db,
        review_id=review_id,
        reporter_id=current_user.id,
        reportee_id=review.client_id,
        reason=data.reason,
        description=sanitize_string(data.description) or None,
        status="pending",
        ai_flagged=False,
        human_action_required=False,
    )
    logger.info(f"🚩 Review {review_id} reported by {current_user.id} ({data.reason})")

    background_tasks.add_task(moderate_review, review_id, True)

    return success({"report": ReportResponse.model_validate(report)})
