"""Quote schemas - Public quote request and admin status update"""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class QuoteRequest(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    city: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=500)
    postalCode: Optional[str] = Field(None, max_length=20)
    serviceType: Optional[str] = Field(None, max_length=100)
    binCount: Optional[str] = Field(None, max_length=20)
    company: Optional[str] = Field(None, max_length=255)
    message: Optional[str] = Field(None, max_length=5000)
    rgpdConsent: bool = False
    marketingConsent: bool = False

    @field_validator(
        "name", "email", "phone", "city", "address", "postalCode", "serviceType",
        "company", "message",
        mode="before",
    )
    @classmethod
    def strip_blank(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("binCount", mode="before")
    @classmethod
    def bin_count_as_text(cls, v):
        if v is None or v == "":
            return None
        return str(v)


class QuoteStatusUpdate(BaseModel):
    status: Optional[str] = None
