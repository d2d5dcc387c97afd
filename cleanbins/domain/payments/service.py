"""
Payment services

PaymentConfirmationService turns a completed Stripe Checkout session into a paid booking.
It is shared by the webhook (push) and the verify-payment call (pull), so the same
session may be confirmed twice; the second call is a no-op.
"""

import logging
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ... import email_service
from ...config import BASE_URL, STRIPE_CURRENCY
from ...database import begin_write_transaction
from ...email_templates import booking_confirmed_email, refund_required_email
from ...models import (
    BOOKING_AWAITING_PAYMENT,
    BOOKING_PENDING,
    PAYMENT_PAID,
    PAYMENT_UNPAID,
    Booking,
)
from ...services.stripe_service import StripeGateway
from ..audit.repository import AuditRepository
from ..audit.service import REFUND_REQUIRED, STATUS_CHANGE, stage_audit
from ..availability.repository import AvailabilityRepository
from ..availability.service import AvailabilityResolver
from ..bookings.repository import BookingRepository
from ..bookings.schemas import BookingRequest
from ..bookings.service import check_cutoff, parse_booking_date
from ..catalog.repository import CityRepository, ServiceRepository, VariantRepository
from ..quotes.repository import QuoteRepository
from ..quotes.service import QuoteService
from ..settings.service import ConfigService
from .schemas import CheckoutRequest

logger = logging.getLogger(__name__)

# Confirmation outcomes
CONFIRMED = "confirmed"
ALREADY_CONFIRMED = "already_confirmed"
DATE_FULL = "date_full"
SLOT_CONFLICT = "slot_conflict"
NOT_FOUND = "not_found"
INCOMPLETE_METADATA = "incomplete_metadata"
TEST_MODE_REFUSED = "test_mode_disabled"
QUOTE_PAID = "quote_paid"
IGNORED = "ignored"
FAILED = "failed"

CHECKOUT_COMPLETED = "checkout.session.completed"


def _outcome(status: str, **fields) -> dict:
    return {"status": status, **fields}


def _flag(value) -> bool:
    return str(value).lower() == "true"


def is_session_paid(session: dict) -> bool:
    """Test sessions may report payment_status None once complete"""
    return session.get("payment_status") == "paid" or session.get("status") == "complete"


def booking_metadata(data: BookingRequest) -> dict:
    """Booking form carried in Checkout metadata (Stripe metadata values are strings)"""

    def text(value) -> str:
        return "" if value is None else str(value)

    return {
        "bookingName": text(data.name),
        "bookingEmail": text(data.email),
        "bookingPhone": text(data.phone),
        "bookingCity": text(data.city),
        "bookingAddress": text(data.address),
        "bookingPostalCode": text(data.postalCode),
        "bookingServiceType": text(data.serviceType),
        "bookingBinCount": text(data.binCount),
        "bookingPreferredDate": text(data.preferredDate),
        "bookingPreferredTime": text(data.preferredTime),
        "bookingMessage": text(data.message),
        "bookingRgpdConsent": "true" if data.rgpdConsent else "false",
        "bookingMarketingConsent": "true" if data.marketingConsent else "false",
        "bookingSubscriptionContractConsent": "true" if data.subscriptionContractConsent else "false",
    }


class PaymentConfirmationService:
    """
    Confirms paid Checkout sessions against the booking table.

    Capacity and slot checks are repeated inside one write transaction: a session paid
    for a date that filled up in the meantime is not confirmed, it is flagged for a
    manual refund instead.
    """

    def __init__(self, db: Session, config: ConfigService):
        self.db = db
        self.config = config
        self.resolver = AvailabilityResolver(db, config)

    def test_session_refused(self, session: dict) -> bool:
        return session.get("livemode") is False and not self.config.test_mode_enabled()

    def confirm_session(self, session: dict) -> dict:
        session_id = session.get("id")
        test_mode = session.get("livemode") is False

        if self.test_session_refused(session):
            logger.warning(f"⚠️ Test payment ignored (test mode disabled) for session {session_id}")
            return _outcome(
                TEST_MODE_REFUSED,
                testMode=True,
                error="Mode test désactivé. Les paiements de test ne sont pas acceptés.",
            )

        metadata = session.get("metadata") or {}
        kind = metadata.get("type")
        logger.info(f"📥 Confirming session {session_id}: type={kind} test={test_mode}")

        if kind == "booking":
            if metadata.get("bookingId"):
                try:
                    booking_id = int(metadata["bookingId"])
                except (TypeError, ValueError):
                    outcome = self._incomplete(session_id)
                else:
                    outcome = self._confirm_existing(session, booking_id)
            elif metadata.get("bookingName") and metadata.get("bookingPreferredDate"):
                outcome = self._create_from_metadata(session, metadata)
            else:
                outcome = self._incomplete(session_id)
        elif kind == "quote" and metadata.get("quoteId"):
            outcome = self._confirm_quote(session, metadata["quoteId"])
        else:
            logger.info(f"🔍 Session {session_id} has no booking or quote metadata, ignored")
            outcome = _outcome(IGNORED)

        outcome["testMode"] = test_mode
        return outcome

    # ------------------------------------------------------------------
    # Booking flows
    # ------------------------------------------------------------------

    def _incomplete(self, session_id: Optional[str]) -> dict:
        logger.error(f"❌ Incomplete booking metadata on session {session_id}")
        return _outcome(INCOMPLETE_METADATA, error="Métadonnées de réservation incomplètes")

    def _confirm_existing(self, session: dict, booking_id: int) -> dict:
        """Booking created before checkout: flip it to paid"""
        session_id = session.get("id")
        try:
            begin_write_transaction(self.db)
            booking = BookingRepository.get_by_id(self.db, booking_id)
            if booking is None:
                self.db.rollback()
                logger.error(f"❌ Booking #{booking_id} not found for session {session_id}")
                return _outcome(NOT_FOUND, bookingId=booking_id, error="Réservation non trouvée")

            if booking.payment_status == PAYMENT_PAID:
                self.db.rollback()
                logger.info(f"ℹ️ Booking #{booking_id} already confirmed, nothing to do")
                return _outcome(ALREADY_CONFIRMED, bookingId=booking_id)

            if self.resolver.is_full(booking.preferred_date, booking.service_type):
                # Keep the payment references so the refund can be traced from the row
                booking.stripe_session_id = session_id
                booking.stripe_payment_intent_id = session.get("payment_intent")
                first_time = self._stage_refund(session_id, booking.name, booking.preferred_date, "date complète")
                self.db.commit()
                if first_time:
                    self._send_refund_alert(booking.name, booking.email, booking.preferred_date, session_id)
                return self._date_full(booking_id)

            if booking.preferred_time and AvailabilityRepository.slot_holder(
                self.db, booking.preferred_date, booking.preferred_time, exclude_booking_id=booking.id
            ):
                self._stage_refund(session_id, booking.name, booking.preferred_date, "créneau déjà réservé")
                self.db.commit()
                return self._slot_conflict(booking_id)

            old_status = booking.status
            self._apply_payment(booking, session)
            stage_audit(
                self.db,
                STATUS_CHANGE,
                "booking",
                booking.id,
                old_value={"status": old_status, "payment_status": PAYMENT_UNPAID},
                new_value={"status": booking.status, "payment_status": PAYMENT_PAID, "stripe_session_id": session_id},
                description=f"Paiement confirmé pour réservation: {booking.name} - {booking.city}",
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to confirm booking #{booking_id} for session {session_id}: {e}")
            return _outcome(FAILED, bookingId=booking_id, error="Erreur lors de la validation de la réservation")

        logger.info(f"✅ Payment confirmed for booking #{booking_id}")
        self._send_confirmation(booking, session_id)
        return _outcome(CONFIRMED, bookingId=booking_id)

    def _create_from_metadata(self, session: dict, metadata: dict) -> dict:
        """Booking carried in the session metadata: create it already paid"""
        session_id = session.get("id")
        try:
            preferred_date = date.fromisoformat(metadata["bookingPreferredDate"])
        except ValueError:
            return self._incomplete(session_id)

        name = metadata.get("bookingName")
        service_type = metadata.get("bookingServiceType") or None
        preferred_time = metadata.get("bookingPreferredTime") or None
        if not self.config.time_selection_enabled():
            preferred_time = None

        try:
            begin_write_transaction(self.db)
            existing = BookingRepository.get_by_session_id(self.db, session_id)
            if existing is not None:
                self.db.rollback()
                if existing.payment_status == PAYMENT_PAID:
                    logger.info(f"ℹ️ Session {session_id} already produced booking #{existing.id}")
                    return _outcome(ALREADY_CONFIRMED, bookingId=existing.id)
                return self._confirm_existing(session, existing.id)

            if self.resolver.is_full(preferred_date, service_type):
                first_time = self._stage_refund(session_id, name, preferred_date, "date complète")
                self.db.commit()
                if first_time:
                    self._send_refund_alert(name, metadata.get("bookingEmail"), preferred_date, session_id)
                return self._date_full(None)

            if preferred_time and AvailabilityRepository.slot_holder(self.db, preferred_date, preferred_time):
                self._stage_refund(session_id, name, preferred_date, "créneau déjà réservé")
                self.db.commit()
                return self._slot_conflict(None)

            now = datetime.now()
            contract_consent = _flag(metadata.get("bookingSubscriptionContractConsent"))
            variant_id = metadata.get("variantId")
            booking = BookingRepository.create(
                self.db,
                name=name,
                email=metadata.get("bookingEmail") or "",
                phone=metadata.get("bookingPhone") or "",
                city=metadata.get("bookingCity") or "",
                address=metadata.get("bookingAddress") or None,
                postal_code=metadata.get("bookingPostalCode") or None,
                service_type=service_type or "",
                bin_count=metadata.get("bookingBinCount") or None,
                variant_id=int(variant_id) if variant_id and variant_id.isdigit() else None,
                preferred_date=preferred_date,
                preferred_time=preferred_time,
                message=metadata.get("bookingMessage") or None,
                status=BOOKING_PENDING,
                payment_status=PAYMENT_PAID,
                stripe_session_id=session_id,
                stripe_payment_intent_id=session.get("payment_intent"),
                rgpd_consent=_flag(metadata.get("bookingRgpdConsent")),
                marketing_consent=_flag(metadata.get("bookingMarketingConsent")),
                consent_date=now,
                subscription_contract_consent=contract_consent,
                subscription_contract_date=now if contract_consent else None,
            )
            stage_audit(
                self.db,
                STATUS_CHANGE,
                "booking",
                booking.id,
                new_value={"payment_status": PAYMENT_PAID, "stripe_session_id": session_id},
                description=f"Paiement confirmé pour réservation: {booking.name} - {booking.city}",
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Slot taken while creating booking for session {session_id}: {e}")
            return self._slot_conflict(None)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to create paid booking for session {session_id}: {e}")
            return _outcome(FAILED, error="Erreur lors de la création de la réservation")

        logger.info(f"✅ Paid booking #{booking.id} created from session {session_id}")
        self._send_confirmation(booking, session_id)
        return _outcome(CONFIRMED, bookingId=booking.id)

    def _confirm_quote(self, session: dict, raw_quote_id) -> dict:
        try:
            quote_id = int(raw_quote_id)
        except (TypeError, ValueError):
            return _outcome(IGNORED)

        quote = QuoteService(self.db, self.config).mark_paid(
            quote_id, session.get("id"), session.get("payment_intent")
        )
        if quote is None:
            return _outcome(NOT_FOUND, quoteId=quote_id, error="Devis non trouvé")
        return _outcome(QUOTE_PAID, quoteId=quote_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_payment(booking: Booking, session: dict) -> None:
        booking.payment_status = PAYMENT_PAID
        booking.stripe_session_id = session.get("id")
        booking.stripe_payment_intent_id = session.get("payment_intent")
        if booking.status == BOOKING_AWAITING_PAYMENT:
            booking.status = BOOKING_PENDING

    def _date_full(self, booking_id: Optional[int]) -> dict:
        return _outcome(
            DATE_FULL,
            bookingId=booking_id,
            error="Date complète, réservation non créée",
            details="La date sélectionnée est complète. Veuillez contacter le support pour un remboursement.",
        )

    def _slot_conflict(self, booking_id: Optional[int]) -> dict:
        return _outcome(SLOT_CONFLICT, bookingId=booking_id, error="Conflit de réservation détecté")

    def _stage_refund(self, session_id: str, name: str, preferred_date: date, reason: str) -> bool:
        """Stage the refund marker for ``session_id``; False when it was already recorded"""
        if AuditRepository.exists(self.db, REFUND_REQUIRED, "stripe_session", session_id):
            logger.info(f"ℹ️ Refund already flagged for session {session_id}")
            return False

        logger.warning(f"⚠️ Payment {session_id} needs a refund: {reason} ({preferred_date})")
        stage_audit(
            self.db,
            REFUND_REQUIRED,
            "stripe_session",
            session_id,
            new_value={"name": name, "preferredDate": preferred_date.isoformat(), "reason": reason},
            description=f"Remboursement à effectuer pour {name} ({preferred_date.isoformat()}) : {reason}",
        )
        return True

    def _send_refund_alert(self, name: str, email: Optional[str], preferred_date: date, session_id: str) -> None:
        subject, text = refund_required_email(name, preferred_date.isoformat(), session_id)
        try:
            email_service.send_operator_email(subject, text, reply_to=email or None)
        except Exception as e:
            logger.error(f"⚠️ Refund alert email failed for session {session_id}: {e}")

    def _send_confirmation(self, booking: Booking, session_id: str) -> None:
        subject, text = booking_confirmed_email(booking, session_id)
        try:
            email_service.send_operator_email(subject, text, reply_to=booking.email or None)
            logger.info(f"📧 Confirmation email sent for booking #{booking.id}")
        except Exception as e:
            logger.error(f"⚠️ Confirmation email failed for booking #{booking.id}: {e}")


class CheckoutService:
    """Creates Stripe Checkout sessions for bookings and quotes"""

    def __init__(self, db: Session, gateway: StripeGateway):
        self.db = db
        self.gateway = gateway

    def create_checkout_session(self, data: CheckoutRequest) -> dict:
        if not self.gateway.configured:
            raise HTTPException(status_code=503, detail="Stripe non configuré")

        if not data.type or not data.serviceId:
            raise HTTPException(status_code=400, detail="type et serviceId sont requis")

        service = ServiceRepository.get_by_service_id(self.db, data.serviceId)
        if not service or not service.stripe_product_id:
            raise HTTPException(status_code=400, detail="Service non trouvé ou non configuré pour Stripe")

        variant = None
        total_price = service.price or 0
        if data.variantId:
            variant = VariantRepository.get_by_id(self.db, data.variantId)
            if not variant or variant.service_id != service.id:
                raise HTTPException(
                    status_code=400, detail="Variante non trouvée ou ne correspond pas au service"
                )
            total_price += variant.price_modifier or 0

        metadata = {"type": data.type, "serviceId": data.serviceId}
        if variant:
            metadata["variantId"] = str(variant.id)

        booking = quote = None
        if data.type == "booking":
            if data.bookingData:
                customer_email = data.bookingData.email
                if data.bookingData.city and data.bookingData.preferredDate:
                    city = CityRepository.get_enabled_by_name(self.db, data.bookingData.city)
                    check_cutoff(
                        city, data.bookingData.city, parse_booking_date(data.bookingData.preferredDate)
                    )
                metadata.update(booking_metadata(data.bookingData))
            elif data.id:
                booking = BookingRepository.get_by_id(self.db, data.id)
                if not booking:
                    raise HTTPException(status_code=404, detail="Réservation non trouvée")
                customer_email = booking.email
                metadata["bookingId"] = str(booking.id)
            else:
                raise HTTPException(status_code=400, detail="id ou bookingData requis pour type=booking")
        elif data.type == "quote":
            if not data.id:
                raise HTTPException(status_code=400, detail="id requis pour type=quote")
            quote = QuoteRepository.get_by_id(self.db, data.id)
            if not quote:
                raise HTTPException(status_code=404, detail="Devis non trouvé")
            customer_email = quote.email
            metadata["quoteId"] = str(quote.id)
        else:
            raise HTTPException(status_code=400, detail="Type invalide")

        try:
            price = self.gateway.first_active_price(service.stripe_product_id)
            if price is None:
                raise HTTPException(
                    status_code=400, detail="Aucun prix configuré pour ce produit dans Stripe"
                )

            if variant and variant.price_modifier:
                line_item = {
                    "price_data": {
                        "currency": STRIPE_CURRENCY,
                        "product": service.stripe_product_id,
                        "unit_amount": total_price,
                    },
                    "quantity": 1,
                }
            else:
                line_item = {"price": price["id"], "quantity": 1}

            params = {
                "payment_method_types": ["card"],
                "mode": "payment",
                "success_url": f"{BASE_URL}/paiement-reussi?session_id={{CHECKOUT_SESSION_ID}}",
                "cancel_url": f"{BASE_URL}/paiement-annule",
                "metadata": metadata,
                "line_items": [line_item],
            }
            if customer_email:
                params["customer_email"] = str(customer_email)

            session = self.gateway.create_checkout_session(**params)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"❌ Stripe checkout creation failed for {data.type} {data.serviceId}: {e}")
            raise HTTPException(status_code=500, detail="Erreur lors de la création de la session de paiement")

        # Existing rows remember their pending session; inline bookings are created on payment
        if booking is not None:
            booking.stripe_session_id = session["id"]
            booking.payment_status = PAYMENT_UNPAID
            self.db.commit()
        elif quote is not None:
            quote.stripe_session_id = session["id"]
            quote.payment_status = PAYMENT_UNPAID
            self.db.commit()

        logger.info(f"✅ Checkout session {session['id']} created for {data.type}")
        return {"ok": True, "sessionId": session["id"], "url": session.get("url")}


class PaymentReportService:
    """Admin payments listing, enriched with amounts from Stripe"""

    def __init__(self, db: Session, gateway: StripeGateway):
        self.db = db
        self.gateway = gateway

    def _stripe_details(self, payment_intent_id: Optional[str]) -> tuple[Optional[float], Optional[str]]:
        if not payment_intent_id or not self.gateway.configured:
            return None, None
        try:
            intent = self.gateway.retrieve_payment_intent(payment_intent_id)
        except Exception as e:
            logger.error(f"❌ Stripe error for payment intent {payment_intent_id}: {e}")
            return None, None

        amount = intent.get("amount")
        created = intent.get("created")
        return (
            amount / 100 if amount else None,
            datetime.fromtimestamp(created, tz=timezone.utc).isoformat() if created else None,
        )

    def list_payments(self) -> list[dict]:
        payments = []
        for booking, service_name, _variant in BookingRepository.list_with_details(self.db):
            amount, transaction_timestamp = self._stripe_details(booking.stripe_payment_intent_id)
            payments.append(
                {
                    "id": booking.id,
                    "name": booking.name,
                    "email": booking.email,
                    "phone": booking.phone,
                    "city": booking.city,
                    "service_type": booking.service_type,
                    "service_name": service_name,
                    "preferred_date": booking.preferred_date.isoformat(),
                    "preferred_time": booking.preferred_time,
                    "payment_status": booking.payment_status or PAYMENT_UNPAID,
                    "stripe_payment_intent_id": booking.stripe_payment_intent_id,
                    "amount": amount,
                    "transaction_timestamp": transaction_timestamp,
                    "created_at": booking.created_at.isoformat() if booking.created_at else None,
                    "status": booking.status,
                }
            )
        return payments
