"""Sign catalogue, sign detail and favorites endpoints."""
from typing import Dict, Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from signlearn.db.database import get_db
from signlearn.errors import FetchError
from signlearn.logging_config import get_logger
from signlearn.routers.deps import http_error, optional_user, require_user
from signlearn.services import catalogue
from signlearn.services.local_store import LocalStore

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["signs"])


@router.get("/signs")
async def list_signs(db: Session = Depends(get_db)):
    signs = catalogue.list_signs(db)
    return {"signs": [catalogue.sign_to_dict(sign) for sign in signs], "total": len(signs)}


@router.get("/signs/search")
async def search_signs(q: str = "", db: Session = Depends(get_db)):
    """Case-insensitive match on the English or Hindi name. A blank query lists everything."""
    signs = catalogue.search_signs(db, q)
    return {"query": q, "signs": [catalogue.sign_to_dict(sign) for sign in signs]}


@router.get("/signs/{sign_id}")
async def sign_detail(sign_id: str, user: Optional[Dict] = Depends(optional_user),
                      db: Session = Depends(get_db)):
    """
    Full detail for one sign.

    Viewing a sign while signed in counts it as learned (once per day) and
    reports whether it is a favorite.
    """
    sign = catalogue.get_sign(db, sign_id)
    if sign is None:
        raise HTTPException(status_code=404, detail="Sign not found")

    data = {"sign": catalogue.sign_to_dict(sign), "is_favorite": False, "newly_learned": False}
    if user is not None:
        data["newly_learned"] = catalogue.mark_sign_learned(db, user["id"], sign.id)
        try:
            data["is_favorite"] = LocalStore(db, user["id"]).is_favorite(sign.id)
        except FetchError:
            logger.warning("Favorite state unavailable", extra={"user_id": user["id"], "sign_id": sign.id})
    return data


@router.get("/favorites")
async def list_favorites(user: Dict = Depends(require_user), db: Session = Depends(get_db)):
    """Favorite signs in the order they were added. Ids no longer in the catalogue are skipped."""
    try:
        favorite_ids = LocalStore(db, user["id"]).get_favorites()
    except FetchError as e:
        raise http_error(e)
    by_id = {sign.id: sign for sign in catalogue.list_signs(db)}
    signs = [catalogue.sign_to_dict(by_id[sign_id]) for sign_id in favorite_ids if sign_id in by_id]
    return {"favorites": favorite_ids, "signs": signs}


@router.post("/favorites/{sign_id}")
async def toggle_favorite(sign_id: str, user: Dict = Depends(require_user),
                          db: Session = Depends(get_db)):
    if catalogue.get_sign(db, sign_id) is None:
        raise HTTPException(status_code=404, detail="Sign not found")
    local = LocalStore(db, user["id"])
    try:
        is_favorite = local.toggle_favorite(sign_id)
        count = local.favorites_count()
    except FetchError as e:
        raise http_error(e)
    return {"sign_id": sign_id, "is_favorite": is_favorite, "favorites_count": count}
