"""Catalog service - Business logic for services, variants and served cities"""

import logging

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import AdminUser, Service, ServiceCity, ServiceVariant
from ...services.stripe_service import StripeGateway
from ..audit.service import CREATE, DELETE, UPDATE, log_action
from .repository import CityRepository, ServiceRepository, VariantRepository
from .schemas import CityPayload, ServicePayload, VariantPayload

logger = logging.getLogger(__name__)


def serialize_city(city: ServiceCity) -> dict:
    return {
        "id": city.id,
        "cityName": city.city_name,
        "postalCode": city.postal_code,
        "passage1Week": city.passage1_week,
        "passage1Day": city.passage1_day,
        "passage2Week": city.passage2_week,
        "passage2Day": city.passage2_day,
        "enabled": bool(city.enabled),
        "cutoffDate": city.cutoff_date.isoformat() if city.cutoff_date else None,
    }


def serialize_public_city(city: ServiceCity) -> dict:
    return {
        "id": city.id,
        "name": city.city_name,
        "postalCode": city.postal_code,
        "cutoffDate": city.cutoff_date.isoformat() if city.cutoff_date else None,
    }


def serialize_public_service(service: Service) -> dict:
    return {
        "id": service.service_id,
        "name": service.name,
        "translationKey": service.translation_key,
        "stripeProductId": service.stripe_product_id,
        "price": service.price or 0,
        "enabled": bool(service.enabled),
        "order": service.display_order,
        "isSubscription": bool(service.is_subscription),
        "information": service.information,
        "contractUrl": service.contract_url,
    }


def serialize_admin_service(service: Service) -> dict:
    data = serialize_public_service(service)
    data.update(
        {
            "id": service.id,
            "serviceId": service.service_id,
            "passage1Week": service.passage1_week,
            "passage1Day": service.passage1_day,
            "passage2Week": service.passage2_week,
            "passage2Day": service.passage2_day,
            "maxBookingsPerDay": service.max_bookings_per_day,
        }
    )
    return data


def serialize_variant(variant: ServiceVariant, include_timestamps: bool = False) -> dict:
    data = {
        "id": variant.id,
        "serviceId": variant.service_id,
        "name": variant.name,
        "description": variant.description,
        "priceModifier": variant.price_modifier or 0,
        "imagePath": variant.image_path,
        "enabled": bool(variant.enabled),
        "order": variant.display_order,
    }
    if include_timestamps:
        data["createdAt"] = variant.created_at.isoformat() if variant.created_at else None
        data["updatedAt"] = variant.updated_at.isoformat() if variant.updated_at else None
    return data


class CatalogService:
    """Service layer for the catalog: cities, services and variants"""

    def __init__(self, db: Session):
        self.db = db
        self.cities = CityRepository()
        self.services = ServiceRepository()
        self.variants = VariantRepository()

    # ------------------------------------------------------------------
    # Cities
    # ------------------------------------------------------------------

    def _apply_city(self, city: ServiceCity, data: CityPayload) -> None:
        city.city_name = data.cityName.strip()
        city.postal_code = data.postalCode
        city.passage1_week = data.passage1Week
        city.passage1_day = data.passage1Day
        city.passage2_week = data.passage2Week
        city.passage2_day = data.passage2Day
        city.enabled = data.enabled
        city.cutoff_date = data.cutoffDate

    def create_city(self, data: CityPayload, admin: AdminUser, ip_address: str) -> ServiceCity:
        if not data.cityName or not data.cityName.strip():
            raise HTTPException(status_code=400, detail="Le nom de la ville est requis")

        city = ServiceCity()
        self._apply_city(city, data)
        self.db.add(city)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(status_code=409, detail="Cette ville existe déjà") from e
        self.db.refresh(city)

        logger.info(f"✅ City created: {city.city_name} (id={city.id})")
        log_action(
            self.db,
            CREATE,
            "city",
            city.id,
            new_value=serialize_city(city),
            description=f"Ajout de la ville: {city.city_name}",
            admin=admin,
            ip_address=ip_address,
        )
        return city

    def update_city(self, city_id: int, data: CityPayload, admin: AdminUser, ip_address: str) -> ServiceCity:
        if not data.cityName or not data.cityName.strip():
            raise HTTPException(status_code=400, detail="Le nom de la ville est requis")

        city = self.cities.get_by_id(self.db, city_id)
        if not city:
            raise HTTPException(status_code=404, detail="Ville non trouvée")

        old_value = serialize_city(city)
        self._apply_city(city, data)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(status_code=409, detail="Cette ville existe déjà") from e
        self.db.refresh(city)

        log_action(
            self.db,
            UPDATE,
            "city",
            city.id,
            old_value=old_value,
            new_value=serialize_city(city),
            description=f"Modification de la ville: {city.city_name}",
            admin=admin,
            ip_address=ip_address,
        )
        return city

    def delete_city(self, city_id: int, admin: AdminUser, ip_address: str) -> None:
        city = self.cities.get_by_id(self.db, city_id)
        if not city:
            raise HTTPException(status_code=404, detail="Ville non trouvée")

        old_value = {"cityName": city.city_name, "postalCode": city.postal_code}
        self.db.delete(city)
        self.db.commit()

        log_action(
            self.db,
            DELETE,
            "city",
            city_id,
            old_value=old_value,
            description=f"Suppression de la ville: {old_value['cityName']}",
            admin=admin,
            ip_address=ip_address,
        )

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    def get_service(self, pk: int) -> Service:
        service = self.services.get_by_id(self.db, pk)
        if not service:
            raise HTTPException(status_code=404, detail="Service non trouvé")
        return service

    def _apply_service(self, service: Service, data: ServicePayload) -> None:
        service.service_id = data.serviceId
        service.name = data.name
        service.translation_key = data.translationKey
        service.stripe_product_id = data.stripeProductId
        service.price = data.price or 0
        service.enabled = data.enabled
        service.display_order = data.order or 0
        service.passage1_week = data.passage1Week
        service.passage1_day = data.passage1Day
        service.passage2_week = data.passage2Week
        service.passage2_day = data.passage2Day
        service.max_bookings_per_day = data.maxBookingsPerDay
        service.is_subscription = data.isSubscription
        service.information = data.information
        service.contract_url = data.contractUrl

    def create_service(self, data: ServicePayload, admin: AdminUser, ip_address: str) -> Service:
        if not data.serviceId or not data.name:
            raise HTTPException(status_code=400, detail="serviceId et name sont requis")
        if self.services.get_by_service_id(self.db, data.serviceId):
            raise HTTPException(status_code=409, detail="Un service avec cet ID existe déjà")

        service = Service()
        self._apply_service(service, data)
        self.db.add(service)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(status_code=409, detail="Un service avec cet ID existe déjà") from e
        self.db.refresh(service)

        logger.info(f"✅ Service created: {service.service_id} (id={service.id})")
        log_action(
            self.db,
            CREATE,
            "service",
            service.id,
            new_value={"serviceId": service.service_id, "name": service.name, "price": service.price},
            description=f"Création du service: {service.name}",
            admin=admin,
            ip_address=ip_address,
        )
        return service

    def update_service(self, pk: int, data: ServicePayload, admin: AdminUser, ip_address: str) -> Service:
        if not data.serviceId or not data.name:
            raise HTTPException(status_code=400, detail="serviceId et name sont requis")

        service = self.get_service(pk)
        conflict = self.services.get_by_service_id(self.db, data.serviceId)
        if conflict and conflict.id != service.id:
            raise HTTPException(status_code=409, detail="Un service avec cet ID existe déjà")

        old_value = {"name": service.name, "price": service.price, "enabled": service.enabled}
        self._apply_service(service, data)
        self.db.commit()
        self.db.refresh(service)

        log_action(
            self.db,
            UPDATE,
            "service",
            service.id,
            old_value=old_value,
            new_value={"name": service.name, "price": service.price, "enabled": service.enabled},
            description=f"Modification du service: {service.name}",
            admin=admin,
            ip_address=ip_address,
        )
        return service

    def delete_service(self, pk: int, admin: AdminUser, ip_address: str) -> None:
        service = self.get_service(pk)
        old_value = {"name": service.name, "serviceId": service.service_id}
        self.db.delete(service)
        self.db.commit()

        log_action(
            self.db,
            DELETE,
            "service",
            pk,
            old_value=old_value,
            description=f"Suppression du service: {old_value['name']}",
            admin=admin,
            ip_address=ip_address,
        )

    def sync_stripe_prices(self, gateway: StripeGateway) -> dict:
        """Copy the first active Stripe price of each linked product into the service price"""
        if not gateway.configured:
            raise HTTPException(status_code=503, detail="Stripe non configuré")

        synced = 0
        errors = []
        for service in self.services.list_all(self.db):
            if not service.stripe_product_id:
                continue
            try:
                price = gateway.first_active_price(service.stripe_product_id)
            except Exception as e:
                logger.error(f"❌ Stripe price sync failed for {service.name}: {e}")
                errors.append(f"Erreur pour {service.name}: {e}")
                continue

            if not price:
                errors.append(f"Aucun prix actif trouvé pour {service.name}")
                continue

            service.price = price.get("unit_amount") or 0
            synced += 1
            logger.info(f"✅ Price synced for {service.name}: {service.price} cents")

        self.db.commit()
        result = {
            "ok": True,
            "syncCount": synced,
            "message": f"{synced} prix synchronisé(s) depuis Stripe"
            + (f" ({len(errors)} erreur(s))" if errors else ""),
        }
        if errors:
            result["errors"] = errors
        return result

    # ------------------------------------------------------------------
    # Variants
    # ------------------------------------------------------------------

    def public_variants(self, service_id: str) -> list[ServiceVariant]:
        service = self.services.get_by_service_id(self.db, service_id)
        if not service:
            raise HTTPException(status_code=404, detail="Service non trouvé")
        return self.variants.list_for_service(self.db, service.id, enabled_only=True)

    def admin_variants(self, pk: int) -> list[ServiceVariant]:
        service = self.get_service(pk)
        return self.variants.list_for_service(self.db, service.id)

    def _get_variant(self, pk: int, variant_id: int) -> ServiceVariant:
        variant = self.variants.get_by_id(self.db, variant_id)
        if not variant or variant.service_id != pk:
            raise HTTPException(status_code=404, detail="Variante non trouvée")
        return variant

    def create_variant(self, pk: int, data: VariantPayload, admin: AdminUser, ip_address: str) -> ServiceVariant:
        if not data.name:
            raise HTTPException(status_code=400, detail="Le nom est requis")
        service = self.get_service(pk)

        variant = ServiceVariant(
            service_id=service.id,
            name=data.name,
            description=data.description,
            price_modifier=data.priceModifier or 0,
            image_path=data.imagePath,
            enabled=data.enabled,
            display_order=data.order or 0,
        )
        self.db.add(variant)
        self.db.commit()
        self.db.refresh(variant)

        log_action(
            self.db,
            CREATE,
            "service",
            f"variant-{variant.id}",
            new_value={"name": variant.name, "serviceId": service.id, "priceModifier": variant.price_modifier},
            description=f"Création de la variante: {variant.name} pour le service {service.name}",
            admin=admin,
            ip_address=ip_address,
        )
        return variant

    def update_variant(
        self, pk: int, variant_id: int, data: VariantPayload, admin: AdminUser, ip_address: str
    ) -> ServiceVariant:
        if not data.name:
            raise HTTPException(status_code=400, detail="Le nom est requis")
        variant = self._get_variant(pk, variant_id)

        old_value = {"name": variant.name, "priceModifier": variant.price_modifier}
        variant.name = data.name
        variant.description = data.description
        variant.price_modifier = data.priceModifier or 0
        if data.imagePath is not None:
            variant.image_path = data.imagePath
        variant.enabled = data.enabled
        variant.display_order = data.order or 0
        self.db.commit()
        self.db.refresh(variant)

        log_action(
            self.db,
            UPDATE,
            "service",
            f"variant-{variant.id}",
            old_value=old_value,
            new_value={"name": variant.name, "priceModifier": variant.price_modifier},
            description=f"Modification de la variante: {variant.name}",
            admin=admin,
            ip_address=ip_address,
        )
        return variant

    def delete_variant(self, pk: int, variant_id: int, admin: AdminUser, ip_address: str) -> None:
        variant = self._get_variant(pk, variant_id)
        name = variant.name
        self.db.delete(variant)
        self.db.commit()

        log_action(
            self.db,
            DELETE,
            "service",
            f"variant-{variant_id}",
            old_value={"name": name},
            description=f"Suppression de la variante: {name}",
            admin=admin,
            ip_address=ip_address,
        )
