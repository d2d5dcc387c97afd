"""Admin repository - Database operations for admin accounts and reset tokens"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import ROLE_ADMIN, ROLE_SUPERADMIN, AdminUser, PasswordResetToken


class AdminRepository:
    """Repository for admin account database operations"""

    @staticmethod
    def get_by_id(db: Session, admin_id: int) -> Optional[AdminUser]:
        return db.query(AdminUser).filter(AdminUser.id == admin_id).first()

    @staticmethod
    def get_by_username(db: Session, username: str) -> Optional[AdminUser]:
        return db.query(AdminUser).filter(AdminUser.username == username).first()

    @staticmethod
    def list_all(db: Session) -> list[AdminUser]:
        return db.query(AdminUser).order_by(AdminUser.created_at.desc(), AdminUser.id.desc()).all()

    @staticmethod
    def create(db: Session, **fields) -> AdminUser:
        admin = AdminUser(**fields)
        db.add(admin)
        db.commit()
        db.refresh(admin)
        return admin

    @staticmethod
    def count_administrators(db: Session) -> int:
        """Accounts with the admin or superadmin role"""
        return db.query(AdminUser).filter(AdminUser.role.in_((ROLE_ADMIN, ROLE_SUPERADMIN))).count()

    @staticmethod
    def delete(db: Session, admin: AdminUser) -> None:
        db.delete(admin)
        db.commit()


class PasswordResetRepository:
    """Repository for password reset tokens"""

    @staticmethod
    def create(db: Session, admin_id: int, token: str, expires_at: datetime) -> PasswordResetToken:
        entry = PasswordResetToken(admin_id=admin_id, token=token, expires_at=expires_at)
        db.add(entry)
        db.commit()
        return entry

    @staticmethod
    def get_valid(db: Session, token: str, now: datetime) -> Optional[PasswordResetToken]:
        """Unused, unexpired token"""
        return (
            db.query(PasswordResetToken)
            .filter(
                PasswordResetToken.token == token,
                PasswordResetToken.used.is_(False),
                PasswordResetToken.expires_at > now,
            )
            .first()
        )

    @staticmethod
    def delete_expired(db: Session, now: datetime) -> int:
        deleted = (
            db.query(PasswordResetToken)
            .filter(PasswordResetToken.expires_at < now)
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted
