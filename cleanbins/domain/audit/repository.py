"""Audit repository - Database operations for audit logs"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import AuditLog


class AuditRepository:
    """Repository for audit log database operations"""

    @staticmethod
    def add(db: Session, **fields) -> AuditLog:
        """Stage an audit entry in the current transaction (no commit)"""
        entry = AuditLog(**fields)
        db.add(entry)
        return entry

    @staticmethod
    def exists(db: Session, action: str, entity_type: str, entity_id: str) -> bool:
        return (
            db.query(AuditLog.id)
            .filter(
                AuditLog.action == action,
                AuditLog.entity_type == entity_type,
                AuditLog.entity_id == entity_id,
            )
            .first()
            is not None
        )

    @staticmethod
    def list_logs(
        db: Session,
        page: int,
        limit: int,
        action: Optional[str] = None,
        admin_id: Optional[int] = None,
    ) -> tuple[list[AuditLog], int]:
        """Page through logs, newest first"""
        query = db.query(AuditLog)
        if action:
            query = query.filter(AuditLog.action == action)
        if admin_id is not None:
            query = query.filter(AuditLog.admin_id == admin_id)

        total = query.count()
        logs = (
            query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return logs, total

    @staticmethod
    def delete_all(db: Session) -> int:
        return db.query(AuditLog).delete(synchronize_session=False)
