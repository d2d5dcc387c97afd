import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .models import ROLE_ADMIN, ROLE_MANAGER, ROLE_SUPERADMIN, AdminUser
from .security_utils import verify_jwt_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

ADMIN_ROLES = (ROLE_ADMIN, ROLE_MANAGER, ROLE_SUPERADMIN)


def get_current_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> AdminUser:
    """Resolve the admin account behind the Bearer token"""
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Token manquant")

    payload = verify_jwt_token(credentials.credentials)
    if not payload or "userId" not in payload:
        raise HTTPException(status_code=403, detail="Token invalide")

    admin = db.query(AdminUser).filter(AdminUser.id == payload["userId"]).first()
    if not admin or not admin.is_active:
        logger.warning(f"🚫 Token for unknown or disabled admin id={payload.get('userId')}")
        raise HTTPException(status_code=403, detail="Token invalide")

    return admin


def require_admin(admin: AdminUser = Depends(get_current_admin)) -> AdminUser:
    """Admin, manager or superadmin"""
    if admin.role not in ADMIN_ROLES:
        raise HTTPException(
            status_code=403, detail="Accès refusé. Droits administrateur requis."
        )
    return admin


def require_superadmin(admin: AdminUser = Depends(get_current_admin)) -> AdminUser:
    if admin.role != ROLE_SUPERADMIN:
        raise HTTPException(
            status_code=403,
            detail="Accès refusé. Seuls les super administrateurs peuvent effectuer cette action.",
        )
    return admin
