"""Catalog repository - Database operations for services, variants and cities"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Service, ServiceCity, ServiceVariant


class CityRepository:
    """Repository for served city database operations"""

    @staticmethod
    def list_all(db: Session) -> list[ServiceCity]:
        return db.query(ServiceCity).order_by(ServiceCity.city_name).all()

    @staticmethod
    def list_enabled(db: Session) -> list[ServiceCity]:
        return (
            db.query(ServiceCity)
            .filter(ServiceCity.enabled.is_(True))
            .order_by(ServiceCity.city_name)
            .all()
        )

    @staticmethod
    def get_by_id(db: Session, city_id: int) -> Optional[ServiceCity]:
        return db.query(ServiceCity).filter(ServiceCity.id == city_id).first()

    @staticmethod
    def get_by_name(db: Session, name: str) -> Optional[ServiceCity]:
        """Case-insensitive lookup, the booking forms send free text"""
        return (
            db.query(ServiceCity)
            .filter(func.lower(ServiceCity.city_name) == name.strip().lower())
            .first()
        )

    @staticmethod
    def get_enabled_by_name(db: Session, name: str) -> Optional[ServiceCity]:
        city = CityRepository.get_by_name(db, name)
        return city if city and city.enabled else None


class ServiceRepository:
    """Repository for service database operations"""

    @staticmethod
    def list_all(db: Session) -> list[Service]:
        return db.query(Service).order_by(Service.display_order, Service.id).all()

    @staticmethod
    def list_enabled(db: Session) -> list[Service]:
        return (
            db.query(Service)
            .filter(Service.enabled.is_(True))
            .order_by(Service.display_order, Service.id)
            .all()
        )

    @staticmethod
    def get_by_id(db: Session, pk: int) -> Optional[Service]:
        return db.query(Service).filter(Service.id == pk).first()

    @staticmethod
    def get_by_service_id(db: Session, service_id: str) -> Optional[Service]:
        return db.query(Service).filter(Service.service_id == service_id).first()


class VariantRepository:
    """Repository for service variant database operations"""

    @staticmethod
    def list_for_service(db: Session, service_pk: int, enabled_only: bool = False) -> list[ServiceVariant]:
        query = db.query(ServiceVariant).filter(ServiceVariant.service_id == service_pk)
        if enabled_only:
            query = query.filter(ServiceVariant.enabled.is_(True))
        return query.order_by(ServiceVariant.display_order, ServiceVariant.id).all()

    @staticmethod
    def get_by_id(db: Session, variant_id: int) -> Optional[ServiceVariant]:
        return db.query(ServiceVariant).filter(ServiceVariant.id == variant_id).first()
