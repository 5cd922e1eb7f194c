"""Response models shared across domains"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class UserProfileResponse(BaseModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    user_type: str
    language: Optional[str] = None
    onboarding_completed: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PublicUserResponse(BaseModel):
    """Client details safe to show on public pages"""

    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None

    class Config:
        from_attributes = True


class SalonResponse(BaseModel):
    id: str
    owner_id: str
    business_name: str
    description: Optional[str] = None
    address: Optional[dict[str, Any]] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    business_hours: Optional[dict[str, Any]] = None
    amenities: Optional[list[Any]] = None
    images: Optional[list[Any]] = None
    is_active: bool
    verification_status: Optional[str] = None
    rating_average: float = 0
    rating_count: int = 0
    stripe_account_status: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ServiceResponse(BaseModel):
    id: str
    salon_id: str
    category_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    price: float
    duration: int
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentResponse(BaseModel):
    id: str
    booking_id: str
    amount: float
    currency: str
    status: str
    payment_method: Optional[str] = None
    stripe_payment_intent_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


def success(data: Any = None, message: Optional[str] = None) -> dict:
    """Standard success envelope"""
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body
