"""Onboarding domain schemas - Pydantic models for validation"""

from typing import Any, Optional

from pydantic import BaseModel, field_validator


class OnboardingService(BaseModel):
    name: str
    description: Optional[str] = None
    price: float
    duration: int
    category_id: Optional[str] = None


class SalonOwnerOnboarding(BaseModel):
    """Everything a new salon owner submits in the onboarding wizard"""

    # Personal information
    full_name: Optional[str] = None
    phone: Optional[str] = None

    # Business information
    business_name: Optional[str] = None
    business_type: str = "individual"
    business_description: Optional[str] = None
    business_email: Optional[str] = None
    business_phone: Optional[str] = None
    website: Optional[str] = None

    # Address
    street_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    business_hours: Optional[dict[str, Any]] = None
    services_offered: list[OnboardingService] = []
    amenities: list[Any] = []

    @field_validator("business_type")
    @classmethod
    def validate_business_type(cls, v):
        if v not in ("individual", "company"):
            raise ValueError("business_type must be individual or company")
        return v

    @field_validator("country")
    @classmethod
    def normalize_country(cls, v):
        if v:
            v = v.strip().upper()
            if len(v) != 2:
                raise ValueError("country must be a 2-letter ISO code")
        return v


class StripeOnboardingComplete(BaseModel):
    account_id: Optional[str] = None
