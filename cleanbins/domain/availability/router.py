"""Availability router - Bookable dates for the public booking calendar"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ..settings.service import ConfigService
from .service import AvailabilityResolver

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings", tags=["Availability"])


def get_availability_resolver(db: Session = Depends(get_db)) -> AvailabilityResolver:
    """Dependency injection for AvailabilityResolver"""
    return AvailabilityResolver(db, ConfigService(db))


def parse_iso_date(value: str, field: str) -> date:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise HTTPException(
            status_code=400, detail=f"{field} invalide (format attendu AAAA-MM-JJ)"
        ) from e


@router.get("/available-dates")
def available_dates(
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    serviceType: Optional[str] = Query(None),
    resolver: AvailabilityResolver = Depends(get_availability_resolver),
):
    """Full dates and, when passage rules apply, the only allowed dates in the range"""
    if not startDate or not endDate:
        raise HTTPException(status_code=400, detail="startDate et endDate sont requis")

    start = parse_iso_date(startDate, "startDate")
    end = parse_iso_date(endDate, "endDate")
    if end < start:
        raise HTTPException(status_code=400, detail="endDate doit être postérieure à startDate")

    logger.info(f"📥 Available dates {start} -> {end} city={city} service={serviceType}")
    return resolver.available_dates(start, end, city, serviceType)
