"""Traffic sign catalogue lookups and learned-sign logging."""
from datetime import date
from typing import Dict, List, Optional
from sqlalchemy.orm import Session
from signlearn.constants import ACTIVITY_LEARNED_SIGN
from signlearn.db import store
from signlearn.db.models import TrafficSign
from signlearn.errors import FetchError
from signlearn.logging_config import get_logger
from signlearn.services.progress import local_day_bounds
from signlearn.services.streak import local_today

logger = get_logger(__name__)


def sign_to_dict(sign: TrafficSign) -> Dict:
    return {
        "id": sign.id,
        "name_english": sign.name_english,
        "name_hindi": sign.name_hindi,
        "meaning": sign.meaning,
        "hindi_meaning": sign.hindi_meaning,
        "explanation": sign.explanation,
        "real_life_example": sign.real_life_example,
        "color": sign.color,
        "shape": sign.shape,
        "category": sign.category,
        "video_url": sign.video_url,
        "icon_urls": list(sign.icon_urls or []),
    }


def list_signs(db: Session) -> List[TrafficSign]:
    """Whole catalogue, or an empty list if the store is unreachable."""
    try:
        return store.select_signs_catalogue(db)
    except FetchError:
        return []


def search_signs(db: Session, query: str) -> List[TrafficSign]:
    query = (query or "").strip()
    if not query:
        return list_signs(db)
    try:
        return store.select_signs_catalogue(db, search=query)
    except FetchError:
        return []


def get_sign(db: Session, sign_id: str) -> Optional[TrafficSign]:
    try:
        rows = store.select_signs_catalogue(db, sign_id=sign_id)
    except FetchError:
        return None
    return rows[0] if rows else None


def mark_sign_learned(db: Session, user_id: str, sign_id: str, today: Optional[date] = None) -> bool:
    """
    Log a learned_sign event unless one already exists for this sign today.

    Returns:
        True if a new event was written
    """
    try:
        existing = store.select_activity(
            db, user_id,
            activity_type=ACTIVITY_LEARNED_SIGN,
            date_range=local_day_bounds(today or local_today()),
            details=sign_id,
            limit=1,
        )
        if existing:
            return False
        store.insert_activity(db, user_id, ACTIVITY_LEARNED_SIGN, sign_id)
    except FetchError:
        logger.warning("Could not record learned sign", extra={"user_id": user_id, "sign_id": sign_id})
        return False
    return True
