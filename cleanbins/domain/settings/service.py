"""Config service - Typed access to runtime business settings"""

import logging
from typing import Any

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import AdminUser
from ..audit.service import CONFIG_CHANGE, log_action
from .repository import ConfigRepository

logger = logging.getLogger(__name__)

QUOTES_ENABLED = "quotes_enabled"
TIME_SELECTION_ENABLED = "time_selection_enabled"
LANGUAGES_ENABLED = "languages_enabled"
TEST_MODE_ENABLED = "test_mode_enabled"
MAX_BOOKINGS_PER_DAY = "max_bookings_per_day"
CONTACT_PHONE = "contact_phone"

FALLBACK_MAX_BOOKINGS_PER_DAY = 5

# Flags editable through PUT /api/admin/config/<slug>: slug -> (key, response field, label)
FEATURE_FLAGS = {
    "quotes": (QUOTES_ENABLED, "quotesEnabled", "Devis"),
    "time-selection": (TIME_SELECTION_ENABLED, "timeSelectionEnabled", "Sélection d'heure"),
    "languages": (LANGUAGES_ENABLED, "languagesEnabled", "Langues"),
    "test-mode": (TEST_MODE_ENABLED, "testModeEnabled", "Mode test Stripe"),
}


class ConfigService:
    """
    Explicit configuration interface for the booking rules.

    Every read goes to the config table so admin changes apply to the next request.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = ConfigRepository()

    def get(self, key: str, default: str = "") -> str:
        value = self.repo.get(self.db, key)
        return default if value is None else value

    def max_bookings_per_day(self) -> int:
        raw = self.repo.get(self.db, MAX_BOOKINGS_PER_DAY)
        try:
            value = int(raw)
        except (TypeError, ValueError):
            return FALLBACK_MAX_BOOKINGS_PER_DAY
        return value if value >= 1 else FALLBACK_MAX_BOOKINGS_PER_DAY

    def time_selection_enabled(self) -> bool:
        return self.repo.get(self.db, TIME_SELECTION_ENABLED) != "false"

    def quotes_enabled(self) -> bool:
        return self.repo.get(self.db, QUOTES_ENABLED) == "true"

    def languages_enabled(self) -> bool:
        return self.repo.get(self.db, LANGUAGES_ENABLED) != "false"

    def test_mode_enabled(self) -> bool:
        return self.repo.get(self.db, TEST_MODE_ENABLED) == "true"

    def contact_phone(self) -> str:
        return self.get(CONTACT_PHONE, "")

    def set(self, key: str, value: str) -> None:
        self.repo.set(self.db, key, value)
        self.db.commit()

    # ------------------------------------------------------------------
    # Admin updates
    # ------------------------------------------------------------------

    def set_flag(self, slug: str, enabled: Any, admin: AdminUser, ip_address: str) -> dict:
        key, field, label = FEATURE_FLAGS[slug]
        if not isinstance(enabled, bool):
            raise HTTPException(
                status_code=400, detail="Le paramètre 'enabled' doit être un booléen"
            )

        old_value = self.repo.get(self.db, key)
        new_value = "true" if enabled else "false"
        self.set(key, new_value)
        logger.info(f"⚙️ {admin.username} set {key}={new_value}")

        log_action(
            self.db,
            CONFIG_CHANGE,
            "config",
            key,
            old_value={key: old_value},
            new_value={key: new_value},
            description=f"{label} {'activé(e)s' if enabled else 'désactivé(e)s'}",
            admin=admin,
            ip_address=ip_address,
        )
        return {"ok": True, field: enabled}

    def set_max_bookings(self, value: Any, admin: AdminUser, ip_address: str) -> dict:
        if value is None:
            raise HTTPException(
                status_code=400, detail="Le paramètre 'maxBookingsPerDay' est requis"
            )
        try:
            if isinstance(value, bool):
                raise ValueError("boolean")
            number = int(value)
        except (TypeError, ValueError):
            number = 0
        if number < 1:
            raise HTTPException(
                status_code=400,
                detail="Le paramètre 'maxBookingsPerDay' doit être un nombre positif",
            )

        old_value = self.repo.get(self.db, MAX_BOOKINGS_PER_DAY)
        self.set(MAX_BOOKINGS_PER_DAY, str(number))
        log_action(
            self.db,
            CONFIG_CHANGE,
            "config",
            MAX_BOOKINGS_PER_DAY,
            old_value={"maxBookingsPerDay": old_value},
            new_value={"maxBookingsPerDay": number},
            description=f"Limite de réservations par jour définie à {number}",
            admin=admin,
            ip_address=ip_address,
        )
        return {"ok": True, "maxBookingsPerDay": number}

    def set_contact_phone(self, phone: Any, admin: AdminUser, ip_address: str) -> dict:
        if phone is None:
            raise HTTPException(status_code=400, detail="Le paramètre 'contactPhone' est requis")

        self.set(CONTACT_PHONE, str(phone))
        log_action(
            self.db,
            CONFIG_CHANGE,
            "config",
            CONTACT_PHONE,
            new_value={"contactPhone": phone},
            description=f"Téléphone de contact mis à jour : {phone}",
            admin=admin,
            ip_address=ip_address,
        )
        return {"ok": True, "contactPhone": str(phone)}
