"""Review domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel

from ...schemas import PublicUserResponse


class ReviewCreate(BaseModel):
    salon_id: Optional[str] = None
    booking_id: Optional[str] = None
    rating: Optional[int] = None
    comment: Optional[str] = None


class ReviewUpdate(BaseModel):
    rating: Optional[int] = None
    comment: Optional[str] = None


class ReviewReply(BaseModel):
    reply: Optional[str] = None


class ReviewBookingInfo(BaseModel):
    id: str
    appointment_date: date
    service_id: str

    class Config:
        from_attributes = True


class ReviewServiceInfo(BaseModel):
    id: str
    name: str

    class Config:
        from_attributes = True


class ReviewSalonInfo(BaseModel):
    id: str
    business_name: str

    class Config:
        from_attributes = True


class ReviewResponse(BaseModel):
    id: str
    client_id: str
    salon_id: str
    booking_id: Optional[str] = None
    rating: int
    comment: Optional[str] = None
    is_visible: bool
    owner_reply: Optional[str] = None
    owner_reply_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    client: Optional[PublicUserResponse] = None
    booking: Optional[ReviewBookingInfo] = None
    service: Optional[ReviewServiceInfo] = None
    salon: Optional[ReviewSalonInfo] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_review(cls, review) -> "ReviewResponse":
        """Enrich a review with its client, booking and service"""
        response = cls.model_validate(review)
        if review.booking is not None and review.booking.service is not None:
            response.service = ReviewServiceInfo.model_validate(review.booking.service)
        return response
