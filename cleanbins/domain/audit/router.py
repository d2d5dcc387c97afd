"""Audit router - Admin access to the audit trail"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import AdminUser
from ...security_utils import get_client_ip
from .service import AuditService

router = APIRouter(prefix="/api/admin/logs", tags=["Audit"])


def get_audit_service(db: Session = Depends(get_db)) -> AuditService:
    """Dependency injection for AuditService"""
    return AuditService(db)


@router.get("")
def list_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    action: Optional[str] = Query(None),
    adminId: Optional[int] = Query(None),
    _admin: AdminUser = Depends(require_admin),
    service: AuditService = Depends(get_audit_service),
):
    """Newest entries first, optionally filtered by action and/or admin"""
    return service.list_logs(page, limit, action or None, adminId)


@router.delete("")
def purge_logs(
    request: Request,
    admin: AdminUser = Depends(require_admin),
    service: AuditService = Depends(get_audit_service),
):
    deleted = service.purge(admin, get_client_ip(request))
    return {"ok": True, "logsDeleted": deleted}
