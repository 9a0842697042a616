from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.deps import get_db
from app.schemas.progress import ProgressSaveIn, ProgressResetIn, ProgressOut, SuccessOut
from app.services.progress import (
    StoreUnavailable,
    normalize_identity,
    get_progress,
    save_progress,
    reset_progress,
)

router = APIRouter(prefix="/api/progress", tags=["progress"])

STORE_DOWN_MSG = "Saved progress is unavailable right now. Please try again."

@router.post("/save", response_model=SuccessOut)
def save(body: ProgressSaveIn, db: Session = Depends(get_db)):
    email = normalize_identity(body.identity)
    if not email or body.snapshot is None:
        raise HTTPException(400, "identity and snapshot are required")
    try:
        save_progress(db, email, body.snapshot.model_dump(), source_tag=body.sourceTag)
    except StoreUnavailable:
        raise HTTPException(503, STORE_DOWN_MSG)
    return {"success": True}

@router.get("/{identity:path}", response_model=ProgressOut, response_model_exclude_none=True)
def load(identity: str, db: Session = Depends(get_db)):
    email = normalize_identity(identity)
    if not email:
        raise HTTPException(400, "identity is required")
    try:
        row = get_progress(db, email)
    except StoreUnavailable:
        raise HTTPException(503, STORE_DOWN_MSG)
    if not row:
        return {"exists": False}
    return {
        "exists": True,
        "snapshot": row.snapshot,
        "sourceTag": row.source_tag,
        "updatedAt": row.updated_at,
    }

@router.post("/reset", response_model=SuccessOut)
def reset(body: ProgressResetIn, db: Session = Depends(get_db)):
    email = normalize_identity(body.identity)
    if not email:
        raise HTTPException(400, "identity is required")
    try:
        reset_progress(db, email)   # éxito aunque no existiera
    except StoreUnavailable:
        raise HTTPException(503, STORE_DOWN_MSG)
    return {"success": True}
