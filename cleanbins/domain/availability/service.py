"""Availability service - Passage precedence and daily capacity resolution"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Service, ServiceCity
from ..catalog.repository import CityRepository, ServiceRepository
from ..scheduling.recurrence import Passage, build_passages, passage_dates
from ..settings.service import ConfigService
from .repository import AvailabilityRepository

logger = logging.getLogger(__name__)

SOURCE_SERVICE = "service"
SOURCE_CITY = "city"
SOURCE_NONE = "none"


def _passages_of(entity) -> list[Passage]:
    return build_passages(
        entity.passage1_week, entity.passage1_day, entity.passage2_week, entity.passage2_day
    )


def resolve_passage_config(
    service: Optional[Service], city: Optional[ServiceCity]
) -> tuple[str, Optional[list[Passage]]]:
    """
    Decide which passage rules restrict the bookable dates.

    1. The service defines a passage week (either one) -> the service rules, even if
       they end up producing no date.
    2. Otherwise the city exists and is enabled -> the city rules.
    3. Otherwise -> no restriction (None).
    """
    if service is not None and (
        service.passage1_week is not None or service.passage2_week is not None
    ):
        return SOURCE_SERVICE, _passages_of(service)

    if city is not None and city.enabled:
        return SOURCE_CITY, _passages_of(city)

    return SOURCE_NONE, None


class AvailabilityResolver:
    """
    Answers which dates are full and which dates are the only bookable ones.

    Capacity is read from the injected ConfigService on every call: a service with its own
    max_bookings_per_day gets that limit counted over its own bookings, any other request
    uses the global default counted over every service. Only paid, non-cancelled bookings
    consume capacity.
    """

    def __init__(self, db: Session, config: ConfigService):
        self.db = db
        self.config = config
        self.repo = AvailabilityRepository()

    def effective_capacity(self, service: Optional[Service]) -> tuple[int, Optional[str]]:
        """(limit, service_type scope or None for all services)"""
        if service is not None and service.max_bookings_per_day is not None:
            return service.max_bookings_per_day, service.service_id
        return self.config.max_bookings_per_day(), None

    def capacity_for(self, service_type: Optional[str]) -> tuple[int, Optional[str]]:
        service = ServiceRepository.get_by_service_id(self.db, service_type) if service_type else None
        return self.effective_capacity(service)

    def full_dates(self, start: date, end: date, service_type: Optional[str] = None) -> list[str]:
        limit, scope = self.capacity_for(service_type)
        counts = self.repo.paid_counts_by_date(self.db, start, end, scope)
        return sorted(day.isoformat() for day, count in counts.items() if count >= limit)

    def is_full(self, day: date, service_type: Optional[str] = None) -> bool:
        """Whether another paid booking on ``day`` would exceed the capacity"""
        limit, scope = self.capacity_for(service_type)
        count = self.repo.paid_count_on(self.db, day, scope)
        if count >= limit:
            logger.info(f"📊 {day} is full: {count}/{limit} paid bookings (scope={scope or 'all'})")
            return True
        return False

    def allowed_dates(
        self, start: date, end: date, city: Optional[str], service_type: Optional[str]
    ) -> Optional[list[str]]:
        service = ServiceRepository.get_by_service_id(self.db, service_type) if service_type else None
        city_row = CityRepository.get_by_name(self.db, city) if city else None

        source, passages = resolve_passage_config(service, city_row)
        logger.debug(f"🔍 Passage rules from {source}: {passages}")
        if passages is None:
            return None

        dates = passage_dates(passages, start, end)
        return dates or None

    def available_dates(
        self,
        start: date,
        end: date,
        city: Optional[str] = None,
        service_type: Optional[str] = None,
    ) -> dict:
        """
        Returns:
            {"ok": True, "fullDates": [...], "allowedDates": [...] or None}

        A date may appear in both lists; callers exclude fullDates after applying allowedDates.
        """
        return {
            "ok": True,
            "fullDates": self.full_dates(start, end, service_type),
            "allowedDates": self.allowed_dates(start, end, city, service_type),
        }
