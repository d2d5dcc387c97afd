"""Config repository - Key/value access to the config table"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import ConfigEntry


class ConfigRepository:
    """Repository for config table operations"""

    @staticmethod
    def get(db: Session, key: str) -> Optional[str]:
        entry = db.query(ConfigEntry).filter(ConfigEntry.key == key).first()
        return entry.value if entry else None

    @staticmethod
    def set(db: Session, key: str, value: str) -> None:
        """Upsert a value; the caller commits"""
        entry = db.query(ConfigEntry).filter(ConfigEntry.key == key).first()
        if entry:
            entry.value = value
        else:
            db.add(ConfigEntry(key=key, value=value))

    @staticmethod
    def seed_defaults(db: Session, defaults: dict[str, str]) -> int:
        """Insert missing keys only; returns the number inserted"""
        existing = {row.key for row in db.query(ConfigEntry.key).all()}
        missing = [key for key in defaults if key not in existing]
        for key in missing:
            db.add(ConfigEntry(key=key, value=defaults[key]))
        db.commit()
        return len(missing)
