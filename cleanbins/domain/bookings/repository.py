"""Booking repository - Database operations for bookings"""

from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import BOOKING_CANCELLED, PAYMENT_PAID, Booking, Service, ServiceVariant


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def create(db: Session, **fields) -> Booking:
        """Add a booking to the open transaction and flush to get its id"""
        booking = Booking(**fields)
        db.add(booking)
        db.flush()
        return booking

    @staticmethod
    def get_by_id(db: Session, booking_id: int) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.id == booking_id).first()

    @staticmethod
    def get_by_session_id(db: Session, session_id: str) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.stripe_session_id == session_id).first()

    @staticmethod
    def list_with_details(db: Session, day: Optional[date] = None) -> list[tuple]:
        """
        Bookings joined with their service name and variant.

        Rows are (Booking, service_name, ServiceVariant or None); ordered by date then
        time, or by time only when ``day`` is given.
        """
        query = (
            db.query(Booking, Service.name, ServiceVariant)
            .outerjoin(Service, Booking.service_type == Service.service_id)
            .outerjoin(ServiceVariant, Booking.variant_id == ServiceVariant.id)
        )
        if day is not None:
            query = query.filter(Booking.preferred_date == day).order_by(Booking.preferred_time)
        else:
            query = query.order_by(Booking.preferred_date, Booking.preferred_time)
        return query.all()

    @staticmethod
    def counts_by_date(
        db: Session,
        start: date,
        end: date,
        service_type: Optional[str] = None,
        paid_only: bool = False,
    ) -> dict[date, int]:
        """Non-cancelled bookings per date in [start, end]"""
        query = db.query(Booking.preferred_date, func.count(Booking.id)).filter(
            Booking.status != BOOKING_CANCELLED,
            Booking.preferred_date >= start,
            Booking.preferred_date <= end,
        )
        if service_type is not None:
            query = query.filter(Booking.service_type == service_type)
        if paid_only:
            query = query.filter(Booking.payment_status == PAYMENT_PAID)
        return {day: count for day, count in query.group_by(Booking.preferred_date).all()}

    @staticmethod
    def count_by_status(db: Session, status: str) -> int:
        return db.query(Booking).filter(Booking.status == status).count()

    @staticmethod
    def count_upcoming(db: Session, today: date) -> int:
        return db.query(Booking).filter(Booking.preferred_date >= today).count()

    @staticmethod
    def count_all(db: Session) -> int:
        return db.query(Booking).count()

    @staticmethod
    def list_by_email(db: Session, email: str) -> list[Booking]:
        return (
            db.query(Booking)
            .filter(func.lower(Booking.email) == email.strip().lower())
            .order_by(Booking.created_at.desc())
            .all()
        )

    @staticmethod
    def delete_by_email(db: Session, email: str) -> int:
        """Delete every booking of ``email``; the caller commits"""
        return (
            db.query(Booking)
            .filter(func.lower(Booking.email) == email.strip().lower())
            .delete(synchronize_session=False)
        )
