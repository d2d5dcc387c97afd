"""Quote repository - Database operations for quote requests"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Quote


class QuoteRepository:
    """Repository for quote database operations"""

    @staticmethod
    def create(db: Session, **fields) -> Quote:
        quote = Quote(**fields)
        db.add(quote)
        db.commit()
        db.refresh(quote)
        return quote

    @staticmethod
    def get_by_id(db: Session, quote_id: int) -> Optional[Quote]:
        return db.query(Quote).filter(Quote.id == quote_id).first()

    @staticmethod
    def list_all(db: Session) -> list[Quote]:
        return db.query(Quote).order_by(Quote.created_at.desc(), Quote.id.desc()).all()

    @staticmethod
    def count_by_status(db: Session, status: str) -> int:
        return db.query(Quote).filter(Quote.status == status).count()

    @staticmethod
    def count_all(db: Session) -> int:
        return db.query(Quote).count()

    @staticmethod
    def list_by_email(db: Session, email: str) -> list[Quote]:
        return (
            db.query(Quote)
            .filter(func.lower(Quote.email) == email.strip().lower())
            .order_by(Quote.created_at.desc())
            .all()
        )

    @staticmethod
    def delete_by_email(db: Session, email: str) -> int:
        """Delete every quote of ``email``; the caller commits"""
        return (
            db.query(Quote)
            .filter(func.lower(Quote.email) == email.strip().lower())
            .delete(synchronize_session=False)
        )
