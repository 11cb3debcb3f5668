"""Account, consent and home screen endpoints."""
from typing import Dict, Optional
from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, Field, validator
from sqlalchemy.orm import Session
from signlearn.constants import CONSENT_VERSION, COOKIE_NAME
from signlearn.db.database import get_db
from signlearn.errors import FetchError, SignLearnError
from signlearn.routers.deps import (
    get_session_token,
    http_error,
    optional_user,
    require_user,
    set_session_cookie,
)
from signlearn.services import auth as auth_service
from signlearn.services import consent as consent_service
from signlearn.services.progress import home_summary
from signlearn.services.sessions import game_sessions, quiz_sessions

router = APIRouter(prefix="/api", tags=["auth"])


class SignUpRequest(BaseModel):
    """Request body for account creation."""
    name: str = Field(..., max_length=100)
    email: str = Field(..., max_length=255)
    password: str = Field(..., max_length=128)

    @validator("email")
    def validate_email(cls, v):
        v = v.strip()
        if v and "@" not in v:
            raise ValueError("Please enter a valid email")
        return v


class LoginRequest(BaseModel):
    email: str = Field(..., max_length=255)
    password: str = Field(..., max_length=128)


class ProfileUpdate(BaseModel):
    name: str = Field(..., max_length=100)


class ConsentRequest(BaseModel):
    given: bool = True


def _user_payload(user) -> Dict:
    return {"id": user.id, "email": user.email, "name": user.name}


@router.post("/auth/signup")
async def sign_up(body: SignUpRequest, response: Response, db: Session = Depends(get_db)):
    """Create an account and start a login session."""
    try:
        user, token = auth_service.sign_up(db, body.name, body.email, body.password)
    except SignLearnError as e:
        raise http_error(e)
    set_session_cookie(response, token)
    return {"user": _user_payload(user)}


@router.post("/auth/login")
async def log_in(body: LoginRequest, response: Response, db: Session = Depends(get_db)):
    try:
        user, token = auth_service.log_in(db, body.email, body.password)
    except SignLearnError as e:
        raise http_error(e)
    set_session_cookie(response, token)
    return {"user": _user_payload(user)}


@router.post("/auth/logout")
async def log_out(request: Request, response: Response,
                  user: Optional[Dict] = Depends(optional_user),
                  db: Session = Depends(get_db)):
    """End the login session, any running quiz or game, and wipe local storage."""
    if user is not None:
        quiz_sessions.end(user["id"])
        game_sessions.end(user["id"])
    try:
        auth_service.sign_out(db, get_session_token(request))
    except FetchError as e:
        raise http_error(e)
    response.delete_cookie(COOKIE_NAME)
    return {"status": "logged_out"}


@router.get("/auth/me")
async def me(user: Dict = Depends(require_user)):
    return {"user": user}


@router.put("/auth/profile")
async def update_profile(body: ProfileUpdate, user: Dict = Depends(require_user),
                         db: Session = Depends(get_db)):
    try:
        name = auth_service.update_profile_name(db, user["id"], body.name)
    except SignLearnError as e:
        raise http_error(e)
    return {"user": {**user, "name": name}}


@router.get("/consent")
async def get_consent(user: Dict = Depends(require_user), db: Session = Depends(get_db)):
    """Stored consent record and whether it covers the current policy version."""
    try:
        record = consent_service.get_consent(db, user["id"])
    except FetchError as e:
        raise http_error(e)
    return {
        "consent": record,
        "current_version": CONSENT_VERSION,
        "up_to_date": bool(record and record["given"] and record["version"] == CONSENT_VERSION),
    }


@router.post("/consent")
async def give_consent(body: ConsentRequest, user: Dict = Depends(require_user),
                       db: Session = Depends(get_db)):
    try:
        record = consent_service.set_consent(db, user["id"], given=body.given)
    except FetchError as e:
        raise http_error(e)
    return {"consent": record}


@router.get("/home")
async def home(user: Dict = Depends(require_user), db: Session = Depends(get_db)):
    """
    Home screen data.

    Returns:
    - greeting name
    - whether consent has been given
    - signs learned today, cached streak and best score
    """
    user_id = user["id"]
    try:
        name = auth_service.display_name(db, user_id)
    except FetchError:
        name = user["name"] or user["email"].split("@")[0]
    return {
        "display_name": name,
        "has_consent": consent_service.has_consent(db, user_id),
        **home_summary(db, user_id),
    }
