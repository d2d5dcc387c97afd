"""Booking service - Booking creation, admin listing and status transitions"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...database import begin_write_transaction
from ...email_templates import format_french_date
from ...models import (
    BOOKING_AWAITING_PAYMENT,
    BOOKING_STATUSES,
    PAYMENT_UNPAID,
    AdminUser,
    Booking,
    ServiceCity,
    ServiceVariant,
)
from ..audit.service import CREATE, STATUS_CHANGE, log_action, stage_audit
from ..availability.repository import AvailabilityRepository
from ..availability.service import AvailabilityResolver
from ..catalog.repository import CityRepository
from ..settings.service import ConfigService
from .repository import BookingRepository
from .schemas import BookingRequest

logger = logging.getLogger(__name__)

CITY_NOT_SERVED = "Nous n'intervenons pas encore dans cette ville"
DATE_FULL = "Désolé, cette date est complète. Veuillez choisir une autre date pour votre réservation."
SLOT_TAKEN = "Cette date et heure sont déjà réservées"


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def serialize_booking(
    booking: Booking,
    service_name: Optional[str] = None,
    variant: Optional[ServiceVariant] = None,
) -> dict:
    """Admin row: column names as stored, plus the joined service and variant fields"""
    return {
        "id": booking.id,
        "name": booking.name,
        "email": booking.email,
        "phone": booking.phone,
        "city": booking.city,
        "address": booking.address,
        "postal_code": booking.postal_code,
        "service_type": booking.service_type,
        "bin_count": booking.bin_count,
        "variant_id": booking.variant_id,
        "preferred_date": _iso(booking.preferred_date),
        "preferred_time": booking.preferred_time,
        "message": booking.message,
        "status": booking.status,
        "payment_status": booking.payment_status or PAYMENT_UNPAID,
        "stripe_session_id": booking.stripe_session_id,
        "stripe_payment_intent_id": booking.stripe_payment_intent_id,
        "rgpd_consent": bool(booking.rgpd_consent),
        "marketing_consent": bool(booking.marketing_consent),
        "consent_date": _iso(booking.consent_date),
        "consent_ip": booking.consent_ip,
        "subscription_contract_consent": bool(booking.subscription_contract_consent),
        "subscription_contract_date": _iso(booking.subscription_contract_date),
        "created_at": _iso(booking.created_at),
        "updated_at": _iso(booking.updated_at),
        "service_name": service_name,
        "variant_name": variant.name if variant else None,
        "variant_description": variant.description if variant else None,
        "variant_image_path": variant.image_path if variant else None,
        "variant_price_modifier": variant.price_modifier if variant else None,
    }


def parse_booking_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise HTTPException(status_code=400, detail="Date de réservation invalide") from e


def check_city_open(db: Session, city_name: Optional[str], preferred_date: Optional[date]) -> ServiceCity:
    """
    The enabled city matching ``city_name``.

    Raises 400 when the city is not served, or when ``preferred_date`` falls after the
    city's booking cutoff.
    """
    city = CityRepository.get_enabled_by_name(db, city_name) if city_name else None
    if city is None:
        logger.warning(f"🚫 Booking refused, city not served: {city_name}")
        raise HTTPException(status_code=400, detail=CITY_NOT_SERVED)

    check_cutoff(city, city_name, preferred_date)
    return city


def check_cutoff(city: Optional[ServiceCity], city_name: str, preferred_date: Optional[date]) -> None:
    """400 when ``preferred_date`` is after the city's last bookable day"""
    if city is None or not city.cutoff_date or preferred_date is None:
        return
    if preferred_date > city.cutoff_date:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Les réservations pour {city_name} sont fermées au-delà du "
                f"{format_french_date(city.cutoff_date)}"
            ),
        )


class BookingService:
    def __init__(self, db: Session, config: ConfigService):
        self.db = db
        self.config = config
        self.resolver = AvailabilityResolver(db, config)

    def create_booking(self, data: BookingRequest, client_ip: Optional[str] = None) -> dict:
        """
        Register a booking awaiting payment.

        The paid-capacity check, the slot conflict check and the insert run in one
        write transaction. No email is sent here; the operator is notified once the
        payment is confirmed.
        """
        preferred_date = parse_booking_date(data.preferredDate) if data.preferredDate else None
        check_city_open(self.db, data.city, preferred_date)

        logger.info(
            f"📥 New booking request: city={data.city} service={data.serviceType} "
            f"date={data.preferredDate} time={data.preferredTime or '-'}"
        )

        time_required = self.config.time_selection_enabled()
        if (
            not data.name
            or not data.email
            or not data.phone
            or not data.city
            or not data.serviceType
            or preferred_date is None
            or (time_required and not data.preferredTime)
        ):
            logger.warning(f"❌ Booking missing required fields (time required: {time_required})")
            raise HTTPException(status_code=400, detail="Missing required fields")

        preferred_time = data.preferredTime if time_required else None

        try:
            begin_write_transaction(self.db)

            if self.resolver.is_full(preferred_date, data.serviceType):
                logger.warning(f"🚫 Booking refused, {preferred_date} is full")
                raise HTTPException(status_code=409, detail=DATE_FULL)

            if preferred_time and AvailabilityRepository.slot_holder(self.db, preferred_date, preferred_time):
                logger.warning(f"🚫 Booking refused, slot {preferred_date} {preferred_time} taken")
                raise HTTPException(status_code=409, detail=SLOT_TAKEN)

            now = datetime.now()
            booking = BookingRepository.create(
                self.db,
                name=data.name,
                email=str(data.email),
                phone=data.phone,
                city=data.city,
                address=data.address,
                postal_code=data.postalCode,
                service_type=data.serviceType,
                bin_count=data.binCount,
                variant_id=data.variantId,
                preferred_date=preferred_date,
                preferred_time=preferred_time,
                message=data.message,
                status=BOOKING_AWAITING_PAYMENT,
                payment_status=PAYMENT_UNPAID,
                rgpd_consent=data.rgpdConsent,
                marketing_consent=data.marketingConsent,
                consent_date=now,
                consent_ip=client_ip,
                subscription_contract_consent=data.subscriptionContractConsent,
                subscription_contract_date=now if data.subscriptionContractConsent else None,
            )
            stage_audit(
                self.db,
                CREATE,
                "booking",
                booking.id,
                new_value={
                    "serviceType": booking.service_type,
                    "preferredDate": preferred_date.isoformat(),
                    "preferredTime": booking.preferred_time,
                },
                description=f"Réservation créée pour {booking.name}",
                ip_address=client_ip,
            )
            self.db.commit()
        except HTTPException:
            self.db.rollback()
            raise
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Slot conflict on insert {preferred_date} {preferred_time}: {e}")
            raise HTTPException(status_code=409, detail=SLOT_TAKEN)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"❌ Failed to save booking for {data.email} on {preferred_date} "
                f"({data.serviceType}): {e}"
            )
            raise HTTPException(
                status_code=500, detail="Erreur lors de l'enregistrement de la réservation"
            )

        logger.info(f"✅ Booking #{booking.id} created, awaiting payment")
        return {"ok": True, "bookingId": booking.id, "message": "Réservation créée avec succès"}

    def list_bookings(self, day: Optional[date] = None) -> list[dict]:
        rows = BookingRepository.list_with_details(self.db, day)
        return [serialize_booking(booking, service_name, variant) for booking, service_name, variant in rows]

    def calendar(self, start: date, end: date, service_type: Optional[str] = None) -> list[dict]:
        """Per date: non-cancelled bookings and, of those, the paid ones"""
        scope = service_type if service_type and service_type != "all" else None
        totals = BookingRepository.counts_by_date(self.db, start, end, scope)
        paid = BookingRepository.counts_by_date(self.db, start, end, scope, paid_only=True)
        return [
            {"date": day.isoformat(), "count": totals.get(day, 0), "paidCount": paid.get(day, 0)}
            for day in sorted(set(totals) | set(paid))
        ]

    def update_status(
        self,
        booking_id: int,
        status: Optional[str],
        admin: Optional[AdminUser] = None,
        ip_address: Optional[str] = None,
    ) -> dict:
        if status not in BOOKING_STATUSES:
            raise HTTPException(status_code=400, detail="Statut invalide")

        booking = BookingRepository.get_by_id(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Réservation non trouvée")

        old_status = booking.status
        booking.status = status
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Booking #{booking_id} cannot leave {old_status}, slot already rebooked: {e}")
            raise HTTPException(status_code=409, detail=SLOT_TAKEN)
        self.db.refresh(booking)

        log_action(
            self.db,
            STATUS_CHANGE,
            "booking",
            booking.id,
            old_value={"status": old_status},
            new_value={"status": status},
            description=f"Changement de statut de réservation: {old_status} → {status}",
            admin=admin,
            ip_address=ip_address,
        )
        logger.info(f"✅ Booking #{booking.id} status {old_status} -> {status}")
        return serialize_booking(booking)
