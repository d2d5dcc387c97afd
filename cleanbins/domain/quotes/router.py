"""Quote router - Public quote requests and admin follow-up"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...models import AdminUser
from ...security_utils import get_client_ip
from ..settings.service import ConfigService
from .schemas import QuoteRequest, QuoteStatusUpdate
from .service import QuoteService


router = APIRouter(prefix="/api", tags=["Quotes"])
admin_router = APIRouter(prefix="/api/admin/quotes", tags=["Admin Quotes"])


def get_quote_service(db: Session = Depends(get_db)) -> QuoteService:
    """Dependency injection for QuoteService"""
    return QuoteService(db, ConfigService(db))


@router.post("/contact")
def request_quote(
    data: QuoteRequest,
    request: Request,
    service: QuoteService = Depends(get_quote_service),
):
    return service.request_quote(data, get_client_ip(request))


@admin_router.get("")
def list_quotes(
    _admin: AdminUser = Depends(get_current_admin),
    service: QuoteService = Depends(get_quote_service),
):
    return {"ok": True, "quotes": service.list_quotes()}


@admin_router.put("/{quote_id}/status")
def update_quote_status(
    quote_id: int,
    data: QuoteStatusUpdate,
    request: Request,
    admin: AdminUser = Depends(get_current_admin),
    service: QuoteService = Depends(get_quote_service),
):
    quote = service.update_status(quote_id, data.status, admin, get_client_ip(request))
    return {"ok": True, "quote": quote}
