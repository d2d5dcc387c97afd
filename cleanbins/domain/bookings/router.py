"""Booking router - Public booking form and admin booking management"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...models import AdminUser
from ...security_utils import get_client_ip
from ..availability.router import parse_iso_date
from ..settings.service import ConfigService
from .schemas import BookingRequest, StatusUpdate
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Bookings"])
admin_router = APIRouter(prefix="/api/admin/bookings", tags=["Admin Bookings"])


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db, ConfigService(db))


@router.post("/booking")
def create_booking(
    data: BookingRequest,
    request: Request,
    service: BookingService = Depends(get_booking_service),
):
    """Register a booking; it stays awaiting payment until Stripe confirms it"""
    return service.create_booking(data, get_client_ip(request))


@admin_router.get("")
def list_bookings(
    date: Optional[str] = Query(None),
    _admin: AdminUser = Depends(get_current_admin),
    service: BookingService = Depends(get_booking_service),
):
    day = parse_iso_date(date, "date") if date else None
    try:
        return {"ok": True, "bookings": service.list_bookings(day)}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Failed to list bookings: {e}")
        raise HTTPException(status_code=500, detail="Erreur serveur")


@admin_router.get("/calendar")
def bookings_calendar(
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    serviceType: Optional[str] = Query(None),
    _admin: AdminUser = Depends(get_current_admin),
    service: BookingService = Depends(get_booking_service),
):
    """Per-day totals for the admin calendar; serviceType=all means every service"""
    if not startDate or not endDate:
        raise HTTPException(status_code=400, detail="startDate et endDate sont requis")

    start = parse_iso_date(startDate, "startDate")
    end = parse_iso_date(endDate, "endDate")
    return {"ok": True, "bookings": service.calendar(start, end, serviceType)}


@admin_router.put("/{booking_id}/status")
def update_booking_status(
    booking_id: int,
    data: StatusUpdate,
    request: Request,
    admin: AdminUser = Depends(get_current_admin),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.update_status(booking_id, data.status, admin, get_client_ip(request))
    return {"ok": True, "booking": booking}
