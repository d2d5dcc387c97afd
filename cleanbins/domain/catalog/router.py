"""Catalog router - Public catalog reads and admin CRUD for cities, services and variants"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...models import AdminUser
from ...security_utils import get_client_ip
from ...services.stripe_service import StripeGateway, get_stripe_gateway
from .repository import ServiceRepository
from .schemas import CityPayload, ServicePayload, VariantPayload
from .service import (
    CatalogService,
    serialize_admin_service,
    serialize_city,
    serialize_public_service,
    serialize_variant,
)


router = APIRouter(prefix="/api", tags=["Catalog"])
admin_router = APIRouter(prefix="/api/admin", tags=["Admin Catalog"])


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    """Dependency injection for CatalogService"""
    return CatalogService(db)


# ============================================================================
# PUBLIC
# ============================================================================


@router.get("/services")
def list_services(db: Session = Depends(get_db)):
    """Enabled services, in display order"""
    services = ServiceRepository.list_enabled(db)
    return {"ok": True, "services": [serialize_public_service(s) for s in services]}


@router.get("/services/{service_id}/variants")
def list_service_variants(service_id: str, service: CatalogService = Depends(get_catalog_service)):
    variants = service.public_variants(service_id)
    return {"ok": True, "variants": [serialize_variant(v) for v in variants]}


# ============================================================================
# ADMIN - CITIES
# ============================================================================


@admin_router.post("/cities")
def create_city(
    data: CityPayload,
    request: Request,
    admin: AdminUser = Depends(get_current_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    city = service.create_city(data, admin, get_client_ip(request))
    return {"ok": True, "city": serialize_city(city)}


@admin_router.put("/cities/{city_id}")
def update_city(
    city_id: int,
    data: CityPayload,
    request: Request,
    admin: AdminUser = Depends(get_current_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    city = service.update_city(city_id, data, admin, get_client_ip(request))
    return {"ok": True, "city": serialize_city(city)}


@admin_router.delete("/cities/{city_id}")
def delete_city(
    city_id: int,
    request: Request,
    admin: AdminUser = Depends(get_current_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    service.delete_city(city_id, admin, get_client_ip(request))
    return {"ok": True}


# ============================================================================
# ADMIN - SERVICES
# ============================================================================


@admin_router.get("/services")
def list_all_services(
    _admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    services = ServiceRepository.list_all(db)
    return {"ok": True, "services": [serialize_admin_service(s) for s in services]}


@admin_router.post("/services/sync-stripe-prices")
def sync_stripe_prices(
    _admin: AdminUser = Depends(get_current_admin),
    service: CatalogService = Depends(get_catalog_service),
    gateway: StripeGateway = Depends(get_stripe_gateway),
):
    """Refresh service prices from the first active price of each Stripe product"""
    return service.sync_stripe_prices(gateway)


@admin_router.post("/services")
def create_service(
    data: ServicePayload,
    request: Request,
    admin: AdminUser = Depends(get_current_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    created = service.create_service(data, admin, get_client_ip(request))
    return {"ok": True, "service": serialize_admin_service(created)}


@admin_router.put("/services/{service_pk}")
def update_service(
    service_pk: int,
    data: ServicePayload,
    request: Request,
    admin: AdminUser = Depends(get_current_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    updated = service.update_service(service_pk, data, admin, get_client_ip(request))
    return {"ok": True, "service": serialize_admin_service(updated)}


@admin_router.delete("/services/{service_pk}")
def delete_service(
    service_pk: int,
    request: Request,
    admin: AdminUser = Depends(get_current_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    service.delete_service(service_pk, admin, get_client_ip(request))
    return {"ok": True}


# ============================================================================
# ADMIN - VARIANTS
# ============================================================================


@admin_router.get("/services/{service_pk}/variants")
def list_variants(
    service_pk: int,
    _admin: AdminUser = Depends(get_current_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    variants = service.admin_variants(service_pk)
    return {"ok": True, "variants": [serialize_variant(v, include_timestamps=True) for v in variants]}


@admin_router.post("/services/{service_pk}/variants")
def create_variant(
    service_pk: int,
    data: VariantPayload,
    request: Request,
    admin: AdminUser = Depends(get_current_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    variant = service.create_variant(service_pk, data, admin, get_client_ip(request))
    return {"ok": True, "variant": serialize_variant(variant)}


@admin_router.put("/services/{service_pk}/variants/{variant_id}")
def update_variant(
    service_pk: int,
    variant_id: int,
    data: VariantPayload,
    request: Request,
    admin: AdminUser = Depends(get_current_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    variant = service.update_variant(service_pk, variant_id, data, admin, get_client_ip(request))
    return {"ok": True, "variant": serialize_variant(variant)}


@admin_router.delete("/services/{service_pk}/variants/{variant_id}")
def delete_variant(
    service_pk: int,
    variant_id: int,
    request: Request,
    admin: AdminUser = Depends(get_current_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    service.delete_variant(service_pk, variant_id, admin, get_client_ip(request))
    return {"ok": True}
