"""Contact schemas"""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class ContactMessage(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    message: Optional[str] = Field(None, max_length=5000)

    @field_validator("name", "email", "phone", "message", mode="before")
    @classmethod
    def strip_blank(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v
