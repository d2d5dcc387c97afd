"""Settings router - Public site configuration and admin config switches"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ...auth import get_current_admin, require_admin
from ...database import get_db
from ...models import AdminUser
from ...security_utils import get_client_ip
from ..catalog.repository import CityRepository
from ..catalog.service import serialize_city, serialize_public_city
from .service import ConfigService


class FlagUpdate(BaseModel):
    enabled: Any = None


class MaxBookingsUpdate(BaseModel):
    maxBookingsPerDay: Any = None


class ContactPhoneUpdate(BaseModel):
    contactPhone: Optional[str] = None


router = APIRouter(prefix="/api", tags=["Settings"])
admin_router = APIRouter(prefix="/api/admin/config", tags=["Admin Settings"])


def get_config_service(db: Session = Depends(get_db)) -> ConfigService:
    """Dependency injection for ConfigService"""
    return ConfigService(db)


@router.get("/config")
def public_config(
    config: ConfigService = Depends(get_config_service),
    db: Session = Depends(get_db),
):
    """Feature flags and served cities for the public site"""
    cities = CityRepository.list_enabled(db)
    return {
        "ok": True,
        "config": {
            "quotesEnabled": config.quotes_enabled(),
            "timeSelectionEnabled": config.time_selection_enabled(),
            "languagesEnabled": config.languages_enabled(),
            "contactPhone": config.contact_phone(),
            "serviceCities": [serialize_public_city(c) for c in cities],
        },
    }


@admin_router.get("")
def admin_config(
    _admin: AdminUser = Depends(get_current_admin),
    config: ConfigService = Depends(get_config_service),
    db: Session = Depends(get_db),
):
    cities = CityRepository.list_all(db)
    return {
        "ok": True,
        "config": {
            "quotesEnabled": config.quotes_enabled(),
            "timeSelectionEnabled": config.time_selection_enabled(),
            "languagesEnabled": config.languages_enabled(),
            "testModeEnabled": config.test_mode_enabled(),
            "maxBookingsPerDay": config.max_bookings_per_day(),
            "contactPhone": config.contact_phone(),
            "cities": [serialize_city(c) for c in cities],
        },
    }


@admin_router.put("/max-bookings")
def update_max_bookings(
    data: MaxBookingsUpdate,
    request: Request,
    admin: AdminUser = Depends(get_current_admin),
    config: ConfigService = Depends(get_config_service),
):
    return config.set_max_bookings(data.maxBookingsPerDay, admin, get_client_ip(request))


@admin_router.put("/contact-phone")
def update_contact_phone(
    data: ContactPhoneUpdate,
    request: Request,
    admin: AdminUser = Depends(get_current_admin),
    config: ConfigService = Depends(get_config_service),
):
    return config.set_contact_phone(data.contactPhone, admin, get_client_ip(request))


@admin_router.put("/quotes")
def update_quotes_flag(
    data: FlagUpdate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    config: ConfigService = Depends(get_config_service),
):
    return config.set_flag("quotes", data.enabled, admin, get_client_ip(request))


@admin_router.put("/time-selection")
def update_time_selection_flag(
    data: FlagUpdate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    config: ConfigService = Depends(get_config_service),
):
    return config.set_flag("time-selection", data.enabled, admin, get_client_ip(request))


@admin_router.put("/languages")
def update_languages_flag(
    data: FlagUpdate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    config: ConfigService = Depends(get_config_service),
):
    return config.set_flag("languages", data.enabled, admin, get_client_ip(request))


@admin_router.put("/test-mode")
def update_test_mode_flag(
    data: FlagUpdate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    config: ConfigService = Depends(get_config_service),
):
    """Accept or refuse Stripe test-mode payments"""
    return config.set_flag("test-mode", data.enabled, admin, get_client_ip(request))
