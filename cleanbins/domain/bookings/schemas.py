"""Booking schemas - Request bodies for the public booking form and admin updates"""

import re
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class BookingRequest(BaseModel):
    """
    Public booking form.

    Required fields are checked by the service so that a missing field answers
    "Missing required fields" rather than a validation error.
    """

    name: Optional[str] = Field(None, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    city: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=500)
    postalCode: Optional[str] = Field(None, max_length=20)
    serviceType: Optional[str] = Field(None, max_length=100)
    binCount: Optional[str] = Field(None, max_length=20)
    variantId: Optional[int] = None
    preferredDate: Optional[str] = None
    preferredTime: Optional[str] = None
    message: Optional[str] = Field(None, max_length=5000)
    rgpdConsent: bool = False
    marketingConsent: bool = False
    subscriptionContractConsent: bool = False

    @field_validator(
        "name", "email", "phone", "city", "address", "postalCode", "serviceType",
        "preferredDate", "preferredTime", "message",
        mode="before",
    )
    @classmethod
    def strip_blank(cls, v):
        if isinstance(v, str):
            v = v.strip()
        return _blank_to_none(v)

    @field_validator("binCount", mode="before")
    @classmethod
    def bin_count_as_text(cls, v):
        if v is None or v == "":
            return None
        return str(v)

    @field_validator("preferredTime")
    @classmethod
    def validate_time(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not TIME_PATTERN.match(v):
            raise ValueError("Heure invalide (format attendu HH:MM)")
        return v


class StatusUpdate(BaseModel):
    status: Optional[str] = None
