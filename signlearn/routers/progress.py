"""Progress screen endpoint."""
from typing import Dict
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from signlearn.db.database import get_db
from signlearn.routers.deps import require_user
from signlearn.services.progress import compute_and_persist

router = APIRouter(prefix="/api", tags=["progress"])


@router.get("/progress")
async def get_progress(user: Dict = Depends(require_user), db: Session = Depends(get_db)):
    """
    Recompute the user's counters, cache them and evaluate badges.

    Returns:
    - counters (learned signs, tests, best score, streak, favorites)
    - completion percentage against the catalogue
    - all badges with their unlocked flag
    - the 20 most recent activity events
    - whether the snapshot was saved
    """
    return compute_and_persist(db, user["id"]).to_dict()
