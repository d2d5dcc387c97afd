"""Audit service - Records admin and booking mutations"""

import json
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from ...models import AdminUser, AuditLog
from .repository import AuditRepository

logger = logging.getLogger(__name__)

# Actions
CREATE = "CREATE"
UPDATE = "UPDATE"
DELETE = "DELETE"
LOGIN = "LOGIN"
CONFIG_CHANGE = "CONFIG_CHANGE"
STATUS_CHANGE = "STATUS_CHANGE"
EXPORT = "EXPORT"
REFUND_REQUIRED = "REFUND_REQUIRED"


def _to_json(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False, default=str)


def stage_audit(
    db: Session,
    action: str,
    entity_type: str,
    entity_id: Any = None,
    old_value: Any = None,
    new_value: Any = None,
    description: Optional[str] = None,
    admin: Optional[AdminUser] = None,
    ip_address: Optional[str] = None,
) -> AuditLog:
    """Add an audit entry to the caller's open transaction; the caller commits"""
    return AuditRepository.add(
        db,
        admin_id=admin.id if admin else None,
        admin_username=admin.username if admin else None,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        old_value=_to_json(old_value),
        new_value=_to_json(new_value),
        description=description,
        ip_address=ip_address,
    )


def log_action(db: Session, action: str, entity_type: str, entity_id: Any = None, **kwargs) -> None:
    """Write an audit entry in its own commit. Failures are logged, never raised."""
    try:
        stage_audit(db, action, entity_type, entity_id, **kwargs)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to write audit log {action} {entity_type}#{entity_id}: {e}")


def serialize_log(entry: AuditLog) -> dict:
    def _load(raw: Optional[str]):
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            return raw

    return {
        "id": entry.id,
        "adminId": entry.admin_id,
        "adminUsername": entry.admin_username,
        "action": entry.action,
        "entityType": entry.entity_type,
        "entityId": entry.entity_id,
        "oldValue": _load(entry.old_value),
        "newValue": _load(entry.new_value),
        "description": entry.description,
        "ipAddress": entry.ip_address,
        "createdAt": entry.created_at.isoformat() if entry.created_at else None,
    }


class AuditService:
    """Service layer for reading and purging the audit trail"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AuditRepository()

    def list_logs(
        self, page: int, limit: int, action: Optional[str], admin_id: Optional[int]
    ) -> dict:
        logs, total = self.repo.list_logs(self.db, page, limit, action, admin_id)
        return {
            "ok": True,
            "logs": [serialize_log(entry) for entry in logs],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": (total + limit - 1) // limit,
            },
        }

    def purge(self, admin: AdminUser, ip_address: str) -> int:
        deleted = self.repo.delete_all(self.db)
        self.db.commit()
        logger.info(f"🧹 {admin.username} purged {deleted} audit log entries")
        log_action(
            self.db,
            DELETE,
            "audit_logs",
            "all",
            old_value={"count": deleted},
            description=f"Suppression de {deleted} entrées du journal d'audit",
            admin=admin,
            ip_address=ip_address,
        )
        return deleted
