from sqlalchemy.orm import Session
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
import logging

from app.models.progress import QuizProgress

log = logging.getLogger("progress")

class StoreUnavailable(Exception):
    """El store remoto falló. El mensaje nunca incluye el snapshot."""

def normalize_identity(raw: str | None) -> str:
    return (raw or "").strip().lower()

def get_progress(db: Session, email: str) -> QuizProgress | None:
    try:
        return db.execute(
            select(QuizProgress).where(QuizProgress.email == normalize_identity(email))
        ).scalar_one_or_none()
    except SQLAlchemyError as e:
        log.error("progress.get failed: %s", e.__class__.__name__)
        raise StoreUnavailable("get") from e

def save_progress(db: Session, email: str, snapshot: dict, source_tag: str | None = None) -> QuizProgress:
    """Upsert idempotente por email. Último en escribir gana."""
    key = normalize_identity(email)
    try:
        row = db.execute(select(QuizProgress).where(QuizProgress.email == key)).scalar_one_or_none()
        if row:
            row.snapshot = snapshot
            if source_tag:
                row.source_tag = source_tag
        else:
            row = QuizProgress(email=key, snapshot=snapshot, source_tag=source_tag)
            db.add(row)
        db.commit()
        db.refresh(row)
        return row
    except SQLAlchemyError as e:
        db.rollback()
        log.error("progress.save failed: %s", e.__class__.__name__)
        raise StoreUnavailable("save") from e

def reset_progress(db: Session, email: str) -> bool:
    """Borra el snapshot guardado. Devuelve si existía."""
    try:
        row = db.execute(
            select(QuizProgress).where(QuizProgress.email == normalize_identity(email))
        ).scalar_one_or_none()
        if not row:
            return False
        db.delete(row)
        db.commit()
        return True
    except SQLAlchemyError as e:
        db.rollback()
        log.error("progress.reset failed: %s", e.__class__.__name__)
        raise StoreUnavailable("reset") from e
