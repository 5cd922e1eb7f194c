"""User domain schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, field_validator


class UserSettingsResponse(BaseModel):
    user_id: str
    language: str
    theme: str
    color_scheme: str
    notifications_enabled: bool
    email_notifications: bool
    sms_notifications: bool
    push_notifications: bool
    booking_reminders: bool
    marketing_emails: bool
    location_sharing: bool
    data_analytics: bool

    class Config:
        from_attributes = True


class UserSettingsUpdate(BaseModel):
    """Only known settings keys are accepted; anything else is ignored"""

    language: Optional[str] = None
    theme: Optional[str] = None
    color_scheme: Optional[str] = None
    notifications_enabled: Optional[bool] = None
    email_notifications: Optional[bool] = None
    sms_notifications: Optional[bool] = None
    push_notifications: Optional[bool] = None
    booking_reminders: Optional[bool] = None
    marketing_emails: Optional[bool] = None
    location_sharing: Optional[bool] = None
    data_analytics: Optional[bool] = None

    @field_validator("theme")
    @classmethod
    def validate_theme(cls, v):
        if v is not None and v not in ("light", "dark", "system"):
            raise ValueError("theme must be light, dark or system")
        return v


class UserProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    language: Optional[str] = None
