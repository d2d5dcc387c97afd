"""Admin router - Login, account management, password flows and dashboard stats"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ...auth import get_current_admin, require_admin, require_superadmin
from ...database import get_db
from ...models import AdminUser
from ...rate_limiter import create_rate_limiter
from ...security_utils import get_client_ip
from .schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    PasswordChange,
    ResetPasswordRequest,
    UserCreate,
    UserUpdate,
)
from .service import AdminService, serialize_user


router = APIRouter(prefix="/api/admin", tags=["Admin"])

rate_limit_login = create_rate_limiter(
    limit=20,
    window_seconds=900,  # 15 minutes
    key_prefix="admin_login",
    message="Trop de tentatives de connexion, veuillez réessayer plus tard.",
)

rate_limit_password_reset = create_rate_limiter(
    limit=10,
    window_seconds=3600,  # 1 hour
    key_prefix="password_reset",
    message="Trop de demandes de réinitialisation, veuillez réessayer plus tard.",
)


def get_admin_service(db: Session = Depends(get_db)) -> AdminService:
    """Dependency injection for AdminService"""
    return AdminService(db)


# ============================================================================
# AUTHENTICATION
# ============================================================================


@router.post("/login")
def login(
    data: LoginRequest,
    request: Request,
    service: AdminService = Depends(get_admin_service),
    _: None = Depends(rate_limit_login),
):
    """Returns a 7-day Bearer token"""
    return service.login(data.username, data.password, get_client_ip(request))


@router.post("/init")
def init_first_admin(
    data: LoginRequest,
    service: AdminService = Depends(get_admin_service),
    _: None = Depends(rate_limit_login),
):
    return service.init_first_admin(data.username, data.password)


# ============================================================================
# USERS
# ============================================================================


@router.get("/users")
def list_users(
    _admin: AdminUser = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return {"ok": True, "users": service.list_users()}


@router.get("/users/{user_id}")
def get_user(
    user_id: int,
    _admin: AdminUser = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return {"ok": True, "user": serialize_user(service.get_user(user_id))}


@router.post("/users")
def create_user(
    data: UserCreate,
    request: Request,
    admin: AdminUser = Depends(require_superadmin),
    service: AdminService = Depends(get_admin_service),
):
    return service.create_user(data, admin, get_client_ip(request))


@router.put("/users/{user_id}")
def update_user(
    user_id: int,
    data: UserUpdate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.update_user(user_id, data, admin, get_client_ip(request))


@router.delete("/users/{user_id}")
def delete_user(
    user_id: int,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.delete_user(user_id, admin, get_client_ip(request))


# ============================================================================
# PASSWORDS
# ============================================================================


@router.put("/profile/password")
def change_password(
    data: PasswordChange,
    admin: AdminUser = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.change_password(admin, data.currentPassword, data.newPassword)


@router.post("/forgot-password")
def forgot_password(
    data: ForgotPasswordRequest,
    service: AdminService = Depends(get_admin_service),
    _: None = Depends(rate_limit_password_reset),
):
    return service.forgot_password(data.email)


@router.post("/reset-password")
def reset_password(
    data: ResetPasswordRequest,
    service: AdminService = Depends(get_admin_service),
    _: None = Depends(rate_limit_password_reset),
):
    return service.reset_password(data.token, data.newPassword)


@router.get("/verify-reset-token")
def verify_reset_token(
    token: Optional[str] = Query(None),
    service: AdminService = Depends(get_admin_service),
):
    return service.verify_reset_token(token)


# ============================================================================
# DASHBOARD
# ============================================================================


@router.get("/stats")
def stats(
    _admin: AdminUser = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    return {"ok": True, "stats": service.stats()}
