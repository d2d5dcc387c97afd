"""Quote service - Quote requests mailed to the operator, admin follow-up"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ... import email_service
from ...email_templates import quote_request_email
from ...models import PAYMENT_PAID, PAYMENT_UNPAID, QUOTE_STATUSES, AdminUser, Quote
from ..audit.service import STATUS_CHANGE, log_action
from ..catalog.repository import CityRepository
from ..settings.service import ConfigService
from .repository import QuoteRepository
from .schemas import QuoteRequest

logger = logging.getLogger(__name__)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def serialize_quote(quote: Quote) -> dict:
    return {
        "id": quote.id,
        "name": quote.name,
        "email": quote.email,
        "phone": quote.phone,
        "city": quote.city,
        "address": quote.address,
        "postal_code": quote.postal_code,
        "service_type": quote.service_type,
        "bin_count": quote.bin_count,
        "company": quote.company,
        "message": quote.message,
        "status": quote.status,
        "rgpd_consent": bool(quote.rgpd_consent),
        "marketing_consent": bool(quote.marketing_consent),
        "consent_date": _iso(quote.consent_date),
        "consent_ip": quote.consent_ip,
        "stripe_session_id": quote.stripe_session_id,
        "stripe_payment_intent_id": quote.stripe_payment_intent_id,
        "payment_status": quote.payment_status or PAYMENT_UNPAID,
        "created_at": _iso(quote.created_at),
        "updated_at": _iso(quote.updated_at),
    }


class QuoteService:
    def __init__(self, db: Session, config: ConfigService):
        self.db = db
        self.config = config

    def request_quote(self, data: QuoteRequest, client_ip: Optional[str] = None) -> dict:
        """
        Mail the quote request to the operator, then keep a copy.

        The email is what matters to the business: a failed send is a 500, a failed
        insert after a successful send is only logged.
        """
        if not self.config.quotes_enabled():
            raise HTTPException(
                status_code=403, detail="Les demandes de devis sont actuellement désactivées"
            )

        if not data.city or CityRepository.get_enabled_by_name(self.db, data.city) is None:
            raise HTTPException(status_code=400, detail="Nous n'intervenons pas encore dans cette ville")

        if not data.name or not data.email or not data.phone or not data.serviceType:
            raise HTTPException(status_code=400, detail="Missing required fields")

        logger.info(f"📧 New quote request: city={data.city} service={data.serviceType}")

        subject, text = quote_request_email(data)
        try:
            result = email_service.send_operator_email(subject, text, reply_to=str(data.email))
        except Exception as e:
            logger.error(f"❌ Quote request email failed for {data.email}: {e}")
            raise HTTPException(status_code=500, detail="Email send failed")
        logger.info(f"✅ Quote request email sent: {result.get('messageId')}")

        try:
            quote = QuoteRepository.create(
                self.db,
                name=data.name,
                email=str(data.email),
                phone=data.phone,
                city=data.city,
                address=data.address,
                postal_code=data.postalCode,
                service_type=data.serviceType,
                bin_count=data.binCount,
                company=data.company,
                message=data.message,
                rgpd_consent=data.rgpdConsent,
                marketing_consent=data.marketingConsent,
                consent_date=datetime.now(),
                consent_ip=client_ip,
            )
            logger.info(f"✅ Quote #{quote.id} saved")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"⚠️ Quote for {data.email} not saved (email was sent): {e}")

        return {"ok": True}

    def list_quotes(self) -> list[dict]:
        return [serialize_quote(q) for q in QuoteRepository.list_all(self.db)]

    def update_status(
        self,
        quote_id: int,
        status: Optional[str],
        admin: Optional[AdminUser] = None,
        ip_address: Optional[str] = None,
    ) -> dict:
        if status not in QUOTE_STATUSES:
            raise HTTPException(status_code=400, detail="Statut invalide")

        quote = QuoteRepository.get_by_id(self.db, quote_id)
        if not quote:
            raise HTTPException(status_code=404, detail="Devis non trouvé")

        old_status = quote.status
        quote.status = status
        self.db.commit()

        log_action(
            self.db,
            STATUS_CHANGE,
            "quote",
            quote.id,
            old_value={"status": old_status},
            new_value={"status": status},
            description=f"Changement de statut de devis: {old_status} → {status} ({quote.name})",
            admin=admin,
            ip_address=ip_address,
        )
        return serialize_quote(quote)

    def mark_paid(self, quote_id: int, session_id: str, payment_intent_id: Optional[str]) -> Optional[Quote]:
        """Record a completed Stripe payment on a quote; None when the quote is unknown"""
        quote = QuoteRepository.get_by_id(self.db, quote_id)
        if not quote:
            logger.warning(f"⚠️ Paid session {session_id} for unknown quote #{quote_id}")
            return None

        quote.stripe_session_id = session_id
        quote.stripe_payment_intent_id = payment_intent_id
        quote.payment_status = PAYMENT_PAID
        self.db.commit()
        logger.info(f"✅ Payment confirmed for quote #{quote_id}")
        return quote
