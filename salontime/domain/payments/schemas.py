"""Payment domain schemas"""

from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

PAYMENT_STATUSES = ("pending", "completed", "failed", "refunded")


class PaymentIntentCreate(BaseModel):
    amount: Optional[float] = None
    currency: Optional[str] = None
    service_id: Optional[str] = Field(None, validation_alias=AliasChoices("service_id", "serviceId"))
    salon_id: Optional[str] = Field(None, validation_alias=AliasChoices("salon_id", "salonId"))
    booking_id: Optional[str] = Field(None, validation_alias=AliasChoices("booking_id", "bookingId"))

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v):
        if v is not None and v <= 0:
            raise ValueError("Amount must be greater than 0")
        return v


class PaymentStatusUpdate(BaseModel):
    status: Optional[str] = None
    payment_method: Optional[str] = None


class PaymentLinkCreate(BaseModel):
    send_email: bool = False
