"""Payments router - payment intents, history, analytics and owner payment tools"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...email_service import send_payment_link
from ...models import UserProfile
from ...schemas import PaymentResponse, success
from .schemas import PaymentIntentCreate, PaymentLinkCreate, PaymentStatusUpdate
from .service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["Payments"])


def get_payment_service(db: Session = Depends(get_db)) -> PaymentService:
    """Dependency injection for PaymentService"""
    return PaymentService(db)


# ============================================================================
# Client payments
# ============================================================================


@router.post("/create-intent")
async def create_payment_intent(
    data: PaymentIntentCreate,
    current_user: UserProfile = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    """Create a destination-charge PaymentIntent paid out to the salon"""
    return success(service.create_payment_intent(current_user, data))


@router.get("/confirm/{payment_intent_id}")
async def confirm_payment(
    payment_intent_id: str,
    current_user: UserProfile = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    return success(service.confirm_payment(current_user, payment_intent_id))


@router.get("/history")
async def get_payment_history(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: UserProfile = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    return success(service.get_payment_history(current_user, page, limit))


# ============================================================================
# Salon owner
# ============================================================================


@router.get("/salon")
async def get_salon_payments(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: UserProfile = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    return success(service.get_salon_payments(current_user, page, limit))


@router.get("/analytics")
async def get_payment_analytics(
    period: Optional[int] = Query(None, description="Number of days to look back"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    current_user: UserProfile = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    return success(service.get_payment_analytics(current_user, period, start_date, end_date))


@router.patch("/bookings/{booking_id}/status")
async def update_payment_status(
    booking_id: str,
    data: PaymentStatusUpdate,
    current_user: UserProfile = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    """Record a cash or in-person payment outcome for a booking"""
    payment = service.update_booking_payment_status(current_user, booking_id, data.status, data.payment_method)
    return success({"payment": PaymentResponse.model_validate(payment)})


@router.post("/bookings/{booking_id}/payment-link")
async def generate_payment_link(
    booking_id: str,
    background_tasks: BackgroundTasks,
    data: Optional[PaymentLinkCreate] = Body(None),
    current_user: UserProfile = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    """Create a Stripe Checkout link the owner can share with the client"""
    result = service.create_payment_link(current_user, booking_id)
    email = result.pop("email")

    if data and data.send_email and email["to"]:
        background_tasks.add_task(send_payment_link, **email)
        logger.info(f"📧 Payment link email queued for booking {booking_id}")

    return success(result)
