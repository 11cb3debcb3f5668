"""Request dependencies and error translation shared by the routers."""
from typing import Dict, Optional
from fastapi import Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session
from signlearn.config import settings
from signlearn.constants import COOKIE_NAME
from signlearn.db.database import get_db
from signlearn.errors import (
    AuthenticationError,
    FetchError,
    InputValidationError,
    InsufficientDataError,
    SessionNotFoundError,
    SignLearnError,
)
from signlearn.logging_config import get_logger
from signlearn.services.auth import get_current_user

logger = get_logger(__name__)

STATUS_CODES = {
    AuthenticationError: 401,
    InputValidationError: 400,
    InsufficientDataError: 409,
    SessionNotFoundError: 404,
    FetchError: 503,
}


def http_error(error: SignLearnError) -> HTTPException:
    """Map a service error to the HTTP status it is reported with."""
    for error_type, status_code in STATUS_CODES.items():
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


def get_session_token(request: Request) -> Optional[str]:
    return request.cookies.get(COOKIE_NAME)


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        max_age=settings.COOKIE_MAX_AGE,
        httponly=settings.COOKIE_HTTPONLY,
        samesite=settings.COOKIE_SAMESITE,
        secure=settings.COOKIE_SECURE,
    )


def optional_user(request: Request, db: Session = Depends(get_db)) -> Optional[Dict]:
    """Signed-in user or None. A store failure reads as signed out."""
    try:
        return get_current_user(db, get_session_token(request))
    except FetchError:
        logger.warning("Could not resolve session; treating request as anonymous")
        return None


def require_user(user: Optional[Dict] = Depends(optional_user)) -> Dict:
    if user is None:
        raise HTTPException(status_code=401, detail="Please log in to continue")
    return user
