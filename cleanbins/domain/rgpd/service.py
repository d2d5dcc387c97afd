"""RGPD service - Right of access, portability and erasure for customer data"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import DATA_CONTROLLER_CONTACT, DATA_CONTROLLER_NAME
from ...models import AdminUser
from ..audit.service import DELETE, EXPORT, log_action
from ..bookings.repository import BookingRepository
from ..bookings.service import serialize_booking
from ..quotes.repository import QuoteRepository
from ..quotes.service import serialize_quote

logger = logging.getLogger(__name__)

RIGHTS_INFO = (
    "Conformément au RGPD, vous disposez des droits d'accès, de rectification, de suppression, "
    "de limitation, d'opposition et de portabilité de vos données personnelles."
)


def _require_email(email: Optional[str]) -> str:
    if not email or not email.strip():
        raise HTTPException(status_code=400, detail="Email requis")
    return email.strip()


class RgpdService:
    def __init__(self, db: Session):
        self.db = db

    def _collect(self, email: str) -> tuple[list[dict], list[dict]]:
        bookings = [serialize_booking(b) for b in BookingRepository.list_by_email(self.db, email)]
        quotes = [serialize_quote(q) for q in QuoteRepository.list_by_email(self.db, email)]
        return bookings, quotes

    def client_data(self, email: Optional[str]) -> dict:
        email = _require_email(email)
        bookings, quotes = self._collect(email)
        return {
            "email": email,
            "bookings": bookings,
            "quotes": quotes,
            "totalRecords": len(bookings) + len(quotes),
        }

    def export(self, email: Optional[str], admin: AdminUser, ip_address: Optional[str] = None) -> dict:
        """Portable copy of everything stored about ``email``"""
        email = _require_email(email)
        bookings, quotes = self._collect(email)

        log_action(
            self.db,
            EXPORT,
            "rgpd",
            email,
            description=(
                f"Export RGPD des données de {email} "
                f"({len(bookings)} réservations, {len(quotes)} devis)"
            ),
            admin=admin,
            ip_address=ip_address,
        )
        return {
            "metadata": {
                "exportDate": datetime.now(timezone.utc).isoformat(),
                "email": email,
                "dataController": DATA_CONTROLLER_NAME,
                "contact": DATA_CONTROLLER_CONTACT,
            },
            "personalData": {"bookings": bookings, "quotes": quotes},
            "rights": {
                "info": RIGHTS_INFO,
                "contact": f"Pour exercer vos droits, contactez-nous à : {DATA_CONTROLLER_CONTACT}",
            },
        }

    def erase(self, email: Optional[str], admin: AdminUser, ip_address: Optional[str] = None) -> dict:
        """Delete every booking and quote of ``email`` in one transaction"""
        email = _require_email(email)
        try:
            bookings_deleted = BookingRepository.delete_by_email(self.db, email)
            quotes_deleted = QuoteRepository.delete_by_email(self.db, email)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ RGPD erasure failed for {email}: {e}")
            raise HTTPException(status_code=500, detail="Erreur serveur")

        log_action(
            self.db,
            DELETE,
            "rgpd",
            email,
            description=(
                f"Suppression RGPD de toutes les données de {email} "
                f"({bookings_deleted} réservations, {quotes_deleted} devis supprimés)"
            ),
            admin=admin,
            ip_address=ip_address,
        )
        logger.info(
            f"🗑️ RGPD data deleted for {email}: {bookings_deleted} bookings, {quotes_deleted} quotes"
        )
        return {"bookings": bookings_deleted, "quotes": quotes_deleted}
