"""RGPD router - Admin tools for customer data requests"""

import json
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import AdminUser
from ...security_utils import get_client_ip
from .schemas import ErasureRequest
from .service import RgpdService

router = APIRouter(prefix="/api/admin/rgpd", tags=["RGPD"])


def get_rgpd_service(db: Session = Depends(get_db)) -> RgpdService:
    """Dependency injection for RgpdService"""
    return RgpdService(db)


@router.get("/client-data")
def client_data(
    email: Optional[str] = Query(None),
    _admin: AdminUser = Depends(require_admin),
    service: RgpdService = Depends(get_rgpd_service),
):
    return {"ok": True, "data": service.client_data(email)}


@router.get("/export")
def export_client_data(
    request: Request,
    email: Optional[str] = Query(None),
    admin: AdminUser = Depends(require_admin),
    service: RgpdService = Depends(get_rgpd_service),
):
    """JSON download of a customer's bookings and quotes"""
    export = service.export(email, admin, get_client_ip(request))
    filename = f"donnees-client-{export['metadata']['email']}-{date.today().isoformat()}.json"
    return Response(
        content=json.dumps(export, ensure_ascii=False, default=str),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.delete("/delete")
def erase_client_data(
    data: ErasureRequest,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    service: RgpdService = Depends(get_rgpd_service),
):
    deleted = service.erase(data.email, admin, get_client_ip(request))
    return {"ok": True, "deleted": deleted}
