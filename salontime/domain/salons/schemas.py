"""Salon domain schemas - Pydantic models for validation"""

from typing import Any, Optional, Union

from pydantic import BaseModel, field_validator


class SalonCreate(BaseModel):
    """Required fields are checked by the service so each one reports its own error code"""

    business_name: Optional[str] = None
    description: Optional[str] = None
    address: Optional[Union[dict[str, Any], str]] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    business_hours: Optional[dict[str, Any]] = None
    amenities: Optional[list[Any]] = None
    images: Optional[list[Any]] = None

    @field_validator("country")
    @classmethod
    def normalize_country(cls, v):
        if v:
            v = v.strip().upper()
            if len(v) != 2:
                raise ValueError("country must be a 2-letter ISO code")
        return v


class SalonUpdate(BaseModel):
    business_name: Optional[str] = None
    description: Optional[str] = None
    address: Optional[Union[dict[str, Any], str]] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    business_hours: Optional[dict[str, Any]] = None
    amenities: Optional[list[Any]] = None
    images: Optional[list[Any]] = None


class BusinessHoursUpdate(BaseModel):
    business_hours: Optional[Any] = None


class TrackViewRequest(BaseModel):
    session_id: Optional[str] = None
    source: Optional[str] = None
    device_type: Optional[str] = None


class TrackFavoriteRequest(BaseModel):
    action: str = "add"  # add, remove
