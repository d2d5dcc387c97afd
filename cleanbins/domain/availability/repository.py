"""Availability repository - Booking counts used by the capacity rules"""

from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import BOOKING_CANCELLED, PAYMENT_PAID, Booking


class AvailabilityRepository:
    """Repository for per-day booking counts"""

    @staticmethod
    def _paid_active(db: Session, service_type: Optional[str]):
        query = db.query(Booking).filter(
            Booking.payment_status == PAYMENT_PAID,
            Booking.status != BOOKING_CANCELLED,
        )
        if service_type is not None:
            query = query.filter(Booking.service_type == service_type)
        return query

    @staticmethod
    def paid_counts_by_date(
        db: Session, start: date, end: date, service_type: Optional[str] = None
    ) -> dict[date, int]:
        """Paid, non-cancelled bookings per date in [start, end], optionally for one service"""
        query = db.query(Booking.preferred_date, func.count(Booking.id)).filter(
            Booking.payment_status == PAYMENT_PAID,
            Booking.status != BOOKING_CANCELLED,
            Booking.preferred_date >= start,
            Booking.preferred_date <= end,
        )
        if service_type is not None:
            query = query.filter(Booking.service_type == service_type)
        rows = query.group_by(Booking.preferred_date).all()
        return {day: count for day, count in rows}

    @staticmethod
    def paid_count_on(db: Session, day: date, service_type: Optional[str] = None) -> int:
        return (
            AvailabilityRepository._paid_active(db, service_type)
            .filter(Booking.preferred_date == day)
            .count()
        )

    @staticmethod
    def slot_holder(
        db: Session, day: date, time_slot: str, exclude_booking_id: Optional[int] = None
    ) -> Optional[Booking]:
        """The non-cancelled booking holding (day, time_slot), if any"""
        query = db.query(Booking).filter(
            Booking.preferred_date == day,
            Booking.preferred_time == time_slot,
            Booking.status != BOOKING_CANCELLED,
        )
        if exclude_booking_id is not None:
            query = query.filter(Booking.id != exclude_booking_id)
        return query.first()
