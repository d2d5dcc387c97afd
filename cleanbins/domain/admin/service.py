"""Admin service - Authentication, admin accounts, password resets and dashboard stats"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ... import email_service
from ...config import ADMIN_TOKEN_EXPIRE_DAYS, FRONTEND_URL, PASSWORD_RESET_EXPIRE_MINUTES
from ...models import (
    BOOKING_PENDING,
    ROLE_ADMIN,
    ROLE_MANAGER,
    ROLE_OPERATOR,
    ROLE_SUPERADMIN,
    AdminUser,
)
from ...security_utils import (
    create_jwt_token,
    generate_reset_token,
    hash_password_bcrypt,
    verify_password_bcrypt,
)
from ..audit.service import CREATE, DELETE, LOGIN, UPDATE, log_action
from ..bookings.repository import BookingRepository
from ..quotes.repository import QuoteRepository
from .repository import AdminRepository, PasswordResetRepository
from .schemas import UserCreate, UserUpdate

logger = logging.getLogger(__name__)

ASSIGNABLE_ROLES = (ROLE_ADMIN, ROLE_MANAGER, ROLE_OPERATOR)
ADMINISTRATOR_ROLES = (ROLE_ADMIN, ROLE_SUPERADMIN)
MIN_PASSWORD_LENGTH = 6
RESET_SENT_MESSAGE = "Si cet email existe, un lien de réinitialisation a été envoyé"


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def serialize_user(admin: AdminUser) -> dict:
    """Account row without the password hash"""
    return {
        "id": admin.id,
        "username": admin.username,
        "full_name": admin.full_name,
        "role": admin.role,
        "is_active": bool(admin.is_active),
        "created_at": _iso(admin.created_at),
        "updated_at": _iso(admin.updated_at),
    }


class AdminService:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def login(self, username: Optional[str], password: Optional[str], ip_address: Optional[str] = None) -> dict:
        if not username or not password:
            raise HTTPException(status_code=400, detail="Username et password requis")

        admin = AdminRepository.get_by_username(self.db, username)
        if not admin:
            logger.warning(f"🚫 Login attempt for unknown admin {username}")
            raise HTTPException(status_code=401, detail="Identifiants incorrects")
        if not admin.is_active:
            raise HTTPException(status_code=401, detail="Compte désactivé")
        if not verify_password_bcrypt(password, admin.password_hash):
            logger.warning(f"🚫 Wrong password for admin {username}")
            raise HTTPException(status_code=401, detail="Identifiants incorrects")

        role = admin.role or ROLE_OPERATOR
        token = create_jwt_token(
            {"username": admin.username, "userId": admin.id, "role": role, "fullName": admin.full_name},
            expires_delta=timedelta(days=ADMIN_TOKEN_EXPIRE_DAYS),
        )
        log_action(
            self.db,
            LOGIN,
            "auth",
            description="Connexion réussie",
            admin=admin,
            ip_address=ip_address,
        )
        logger.info(f"✅ Admin {admin.username} logged in")
        return {
            "ok": True,
            "token": token,
            "username": admin.username,
            "role": role,
            "fullName": admin.full_name,
        }

    def init_first_admin(self, username: Optional[str], password: Optional[str]) -> dict:
        """Bootstrap the first superadmin; refused once any administrator exists"""
        if not username or not password:
            raise HTTPException(status_code=400, detail="Username et password requis")

        if AdminRepository.count_administrators(self.db) > 0:
            raise HTTPException(status_code=403, detail="Un admin existe déjà")

        AdminRepository.create(
            self.db,
            username=username,
            password_hash=hash_password_bcrypt(password),
            full_name=username,
            role=ROLE_SUPERADMIN,
            is_active=True,
        )
        logger.info(f"✅ First superadmin created: {username}")
        return {"ok": True, "message": "Super admin créé avec succès"}

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def list_users(self) -> list[dict]:
        return [serialize_user(u) for u in AdminRepository.list_all(self.db)]

    def get_user(self, user_id: int) -> AdminUser:
        user = AdminRepository.get_by_id(self.db, user_id)
        if not user:
            raise HTTPException(status_code=404, detail="Utilisateur non trouvé")
        return user

    def create_user(self, data: UserCreate, actor: AdminUser, ip_address: Optional[str] = None) -> dict:
        if not data.username or not data.password:
            raise HTTPException(status_code=400, detail="Username et password requis")
        if data.role and data.role not in ASSIGNABLE_ROLES:
            raise HTTPException(status_code=400, detail="Rôle invalide")
        if AdminRepository.get_by_username(self.db, data.username):
            raise HTTPException(status_code=400, detail="Cet utilisateur existe déjà")

        role = data.role or ROLE_OPERATOR
        is_active = True if data.isActive is None else data.isActive
        user = AdminRepository.create(
            self.db,
            username=data.username,
            password_hash=hash_password_bcrypt(data.password),
            full_name=data.fullName,
            role=role,
            is_active=is_active,
        )
        log_action(
            self.db,
            CREATE,
            "user",
            user.id,
            new_value={"username": user.username, "fullName": user.full_name, "role": role, "isActive": is_active},
            description=f"Création de l'utilisateur {user.username}",
            admin=actor,
            ip_address=ip_address,
        )
        logger.info(f"✅ Admin account {user.username} created by {actor.username}")
        return {"ok": True, "message": "Utilisateur créé avec succès", "userId": user.id}

    def update_user(
        self, user_id: int, data: UserUpdate, actor: AdminUser, ip_address: Optional[str] = None
    ) -> dict:
        user = self.get_user(user_id)

        if data.role and data.role not in ASSIGNABLE_ROLES:
            raise HTTPException(status_code=400, detail="Rôle invalide")

        demoting = data.role is not None and data.role not in ADMINISTRATOR_ROLES
        if (
            user.role in ADMINISTRATOR_ROLES
            and demoting
            and AdminRepository.count_administrators(self.db) == 1
        ):
            raise HTTPException(
                status_code=400, detail="Impossible de modifier le rôle du dernier administrateur"
            )

        if data.username and data.username != user.username:
            if AdminRepository.get_by_username(self.db, data.username):
                raise HTTPException(status_code=400, detail="Ce nom d'utilisateur est déjà pris")

        old_value = {"username": user.username, "role": user.role, "isActive": bool(user.is_active)}

        if data.username:
            user.username = data.username
        if data.fullName is not None:
            user.full_name = data.fullName
        if data.role:
            user.role = data.role
        if data.isActive is not None:
            user.is_active = data.isActive
        if data.password:
            user.password_hash = hash_password_bcrypt(data.password)
        self.db.commit()

        log_action(
            self.db,
            UPDATE,
            "user",
            user.id,
            old_value=old_value,
            new_value={"username": user.username, "role": user.role, "isActive": bool(user.is_active)},
            description=(
                f"Modification de l'utilisateur: {user.username}"
                f"{' (mot de passe changé)' if data.password else ''}"
            ),
            admin=actor,
            ip_address=ip_address,
        )
        return {"ok": True, "message": "Utilisateur mis à jour avec succès"}

    def delete_user(self, user_id: int, actor: AdminUser, ip_address: Optional[str] = None) -> dict:
        user = self.get_user(user_id)

        if user.id == actor.id:
            raise HTTPException(status_code=400, detail="Impossible de supprimer votre propre compte")
        if user.role in ADMINISTRATOR_ROLES and AdminRepository.count_administrators(self.db) == 1:
            raise HTTPException(
                status_code=400, detail="Impossible de supprimer le dernier administrateur"
            )

        old_value = {"username": user.username, "role": user.role}
        AdminRepository.delete(self.db, user)
        log_action(
            self.db,
            DELETE,
            "user",
            user_id,
            old_value=old_value,
            description=f"Suppression de l'utilisateur {old_value['username']}",
            admin=actor,
            ip_address=ip_address,
        )
        logger.info(f"✅ Admin account {old_value['username']} deleted by {actor.username}")
        return {"ok": True, "message": "Utilisateur supprimé avec succès"}

    # ------------------------------------------------------------------
    # Passwords
    # ------------------------------------------------------------------

    def change_password(
        self, admin: AdminUser, current_password: Optional[str], new_password: Optional[str]
    ) -> dict:
        if not current_password or not new_password:
            raise HTTPException(
                status_code=400, detail="Mot de passe actuel et nouveau mot de passe requis"
            )
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise HTTPException(
                status_code=400,
                detail="Le nouveau mot de passe doit contenir au moins 6 caractères",
            )
        if not verify_password_bcrypt(current_password, admin.password_hash):
            raise HTTPException(status_code=401, detail="Mot de passe actuel incorrect")

        admin.password_hash = hash_password_bcrypt(new_password)
        self.db.commit()
        logger.info(f"✅ Password changed for admin {admin.username}")
        return {"ok": True, "message": "Mot de passe modifié avec succès"}

    def forgot_password(self, email: Optional[str]) -> dict:
        """
        Mail a one-hour reset link. Usernames are email addresses.

        The answer is the same whether or not the account exists.
        """
        if not email:
            raise HTTPException(status_code=400, detail="Email requis")

        admin = AdminRepository.get_by_username(self.db, email)
        if not admin:
            logger.warning(f"⚠️ Password reset requested for unknown account: {email}")
            return {"ok": True, "message": RESET_SENT_MESSAGE}

        token = generate_reset_token()
        expires_at = datetime.now() + timedelta(minutes=PASSWORD_RESET_EXPIRE_MINUTES)
        PasswordResetRepository.create(self.db, admin.id, token, expires_at)

        reset_link = f"{FRONTEND_URL}/admin/reset-password?token={token}"
        try:
            email_service.send_password_reset_email(email, reset_link, admin.full_name or admin.username)
        except Exception as e:
            logger.error(f"❌ Password reset email failed for {email}: {e}")
            raise HTTPException(status_code=500, detail="Erreur lors de l'envoi de l'email")

        logger.info(f"📧 Password reset email sent to {email}")
        return {"ok": True, "message": RESET_SENT_MESSAGE}

    def reset_password(self, token: Optional[str], new_password: Optional[str]) -> dict:
        if not token or not new_password:
            raise HTTPException(status_code=400, detail="Token et nouveau mot de passe requis")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise HTTPException(
                status_code=400, detail="Le mot de passe doit contenir au moins 6 caractères"
            )

        now = datetime.now()
        PasswordResetRepository.delete_expired(self.db, now)
        reset = PasswordResetRepository.get_valid(self.db, token, now)
        if not reset:
            raise HTTPException(status_code=400, detail="Token invalide ou expiré")

        admin = AdminRepository.get_by_id(self.db, reset.admin_id)
        if not admin:
            raise HTTPException(status_code=400, detail="Token invalide ou expiré")

        admin.password_hash = hash_password_bcrypt(new_password)
        reset.used = True
        self.db.commit()
        logger.info(f"✅ Password reset for admin id {admin.id}")
        return {"ok": True, "message": "Mot de passe réinitialisé avec succès"}

    def verify_reset_token(self, token: Optional[str]) -> dict:
        if not token:
            raise HTTPException(status_code=400, detail="Token requis")

        now = datetime.now()
        PasswordResetRepository.delete_expired(self.db, now)
        if not PasswordResetRepository.get_valid(self.db, token, now):
            return {"ok": False, "valid": False, "error": "Token invalide ou expiré"}
        return {"ok": True, "valid": True}

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def stats(self) -> dict:
        return {
            "pending_quotes": QuoteRepository.count_by_status(self.db, "pending"),
            "pending_bookings": BookingRepository.count_by_status(self.db, BOOKING_PENDING),
            "upcoming_bookings": BookingRepository.count_upcoming(self.db, date.today()),
            "total_quotes": QuoteRepository.count_all(self.db),
            "total_bookings": BookingRepository.count_all(self.db),
        }
