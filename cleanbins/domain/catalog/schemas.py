"""Catalog schemas - Pydantic models for services, variants and cities"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _check_week(value: Optional[int]) -> Optional[int]:
    if value is not None and not 0 <= value <= 5:
        raise ValueError("la semaine doit être comprise entre 0 (toutes) et 5 (dernière)")
    return value


def _check_day(value: Optional[int]) -> Optional[int]:
    if value is not None and not 0 <= value <= 6:
        raise ValueError("le jour doit être compris entre 0 (dimanche) et 6 (samedi)")
    return value


class PassageFields(BaseModel):
    """Two optional (week of month, weekday) passage rules"""

    passage1Week: Optional[int] = None
    passage1Day: Optional[int] = None
    passage2Week: Optional[int] = None
    passage2Day: Optional[int] = None

    @field_validator("passage1Week", "passage1Day", "passage2Week", "passage2Day", mode="before")
    @classmethod
    def blank_passage(cls, v):
        return _blank_to_none(v)

    @field_validator("passage1Week", "passage2Week")
    @classmethod
    def validate_week(cls, v):
        return _check_week(v)

    @field_validator("passage1Day", "passage2Day")
    @classmethod
    def validate_day(cls, v):
        return _check_day(v)


class CityPayload(PassageFields):
    """Schema for creating or updating a served city"""

    cityName: Optional[str] = None
    postalCode: Optional[str] = None
    enabled: bool = True
    cutoffDate: Optional[date] = Field(None, description="Last bookable date for this city")

    @field_validator("cutoffDate", "postalCode", mode="before")
    @classmethod
    def blank_optional(cls, v):
        return _blank_to_none(v)


class ServicePayload(PassageFields):
    """Schema for creating or updating a service"""

    serviceId: Optional[str] = None
    name: Optional[str] = None
    translationKey: Optional[str] = None
    stripeProductId: Optional[str] = None
    price: int = Field(0, ge=0, description="Price in cents")
    enabled: bool = True
    order: int = 0
    maxBookingsPerDay: Optional[int] = Field(None, ge=1)
    isSubscription: bool = False
    information: Optional[str] = None
    contractUrl: Optional[str] = None

    @field_validator("maxBookingsPerDay", "stripeProductId", "translationKey", mode="before")
    @classmethod
    def blank_optional(cls, v):
        return _blank_to_none(v)


class VariantPayload(BaseModel):
    """Schema for creating or updating a service variant"""

    name: Optional[str] = None
    description: Optional[str] = None
    priceModifier: int = Field(0, description="Added to the service price, in cents")
    imagePath: Optional[str] = None
    enabled: bool = True
    order: int = 0
