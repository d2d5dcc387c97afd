"""Mail service request schemas"""

from typing import Any, Optional, Union

from pydantic import BaseModel, EmailStr, Field, field_validator

Recipients = Union[EmailStr, list[EmailStr]]


def _strip(v):
    if isinstance(v, str):
        return v.strip()
    if isinstance(v, list):
        return [item.strip() if isinstance(item, str) else item for item in v]
    return v


class SendEmailRequest(BaseModel):
    to: Recipients
    subject: str = Field(..., min_length=1, max_length=200)
    text: Optional[str] = Field(None, max_length=10000)
    html: Optional[str] = Field(None, max_length=50000)
    replyTo: Optional[EmailStr] = None
    cc: Optional[Recipients] = None
    bcc: Optional[Recipients] = None

    @field_validator("to", "cc", "bcc", mode="before")
    @classmethod
    def strip_addresses(cls, v):
        return _strip(v)

    @field_validator("to")
    @classmethod
    def to_not_empty(cls, v):
        if isinstance(v, list) and not v:
            raise ValueError("Le destinataire est requis")
        return v


class SendTemplateRequest(BaseModel):
    to: Recipients
    subject: str = Field(..., min_length=1, max_length=200)
    template: str = Field(..., min_length=1, max_length=50000)
    data: Optional[dict[str, Any]] = None
    replyTo: Optional[EmailStr] = None

    @field_validator("to", mode="before")
    @classmethod
    def strip_addresses(cls, v):
        return _strip(v)

    @field_validator("to")
    @classmethod
    def to_not_empty(cls, v):
        if isinstance(v, list) and not v:
            raise ValueError("Le destinataire est requis")
        return v


class ContactRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=20)
    message: str = Field(..., min_length=10, max_length=5000)
    subject: Optional[str] = Field(None, max_length=200)

    @field_validator("name", "phone", "message", "subject", mode="before")
    @classmethod
    def strip_text(cls, v):
        return _strip(v)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower()
