"""Accounts, login sessions and the cached login flags.

Passwords are hashed with argon2id. A login session is a random token stored
in ``auth_sessions`` and handed to the client as a cookie.
"""
import secrets
import uuid
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple
import argon2
from sqlalchemy.orm import Session
from signlearn.config import settings
from signlearn.constants import (
    DEFAULT_DISPLAY_NAME,
    KEY_LOGGED_IN,
    KEY_USER_EMAIL,
    KEY_USER_ID,
    KEY_USER_NAME,
)
from signlearn.db.models import AuthSession, User
from signlearn.db.store import store_operation
from signlearn.errors import AuthenticationError, InputValidationError
from signlearn.logging_config import get_logger
from signlearn.services.local_store import LocalStore

logger = get_logger(__name__)

MIN_PASSWORD_LENGTH = 6

_hasher = argon2.PasswordHasher(type=argon2.Type.ID)


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """True if the password matches. Never raises on mismatch."""
    try:
        return _hasher.verify(password_hash, password)
    except argon2.exceptions.VerifyMismatchError:
        return False
    except argon2.exceptions.InvalidHashError:
        return False


def _cache_login(db: Session, user: User) -> None:
    local = LocalStore(db, user.id)
    local.set(KEY_LOGGED_IN, "true")
    local.set(KEY_USER_ID, user.id)
    local.set(KEY_USER_EMAIL, user.email)
    if user.name:
        local.set(KEY_USER_NAME, user.name)


def _clear_login_flags(db: Session, user_id: str) -> None:
    local = LocalStore(db, user_id)
    for key in (KEY_LOGGED_IN, KEY_USER_EMAIL, KEY_USER_ID):
        local.remove(key)


def _open_session(db: Session, user: User) -> str:
    token = secrets.token_urlsafe(32)
    db.add(AuthSession(
        token=token,
        user_id=user.id,
        expires_at=datetime.utcnow() + timedelta(seconds=settings.COOKIE_MAX_AGE),
    ))
    db.commit()
    return token


def sign_up(db: Session, name: str, email: str, password: str) -> Tuple[User, str]:
    """
    Create an account and log it in.

    Raises:
        InputValidationError: missing fields, short password or taken email

    Returns:
        (user, session token)
    """
    name = (name or "").strip()
    email = (email or "").strip().lower()
    if not name or not email or not password:
        raise InputValidationError("Please fill all fields")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InputValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    with store_operation(db, "sign_up"):
        if db.query(User).filter(User.email == email).first():
            raise InputValidationError("An account with this email already exists")

        user = User(
            id=str(uuid.uuid4()),
            name=name,
            email=email,
            password_hash=hash_password(password),
        )
        db.add(user)
        db.flush()
        token = _open_session(db, user)
        _cache_login(db, user)

    logger.info("Account created", extra={"user_id": user.id})
    return user, token


def log_in(db: Session, email: str, password: str) -> Tuple[User, str]:
    """Check credentials and open a session. Raises AuthenticationError on mismatch."""
    email = (email or "").strip().lower()
    if not email or not password:
        raise InputValidationError("Please fill all fields")

    with store_operation(db, "log_in"):
        user = db.query(User).filter(User.email == email).first()
        if user is None or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid email or password")
        token = _open_session(db, user)
        _cache_login(db, user)

    logger.info("User logged in", extra={"user_id": user.id})
    return user, token


def get_current_user(db: Session, token: Optional[str]) -> Optional[Dict]:
    """
    Resolve a session token to {id, email, name}.

    An expired session is deleted and its cached login flags cleared.

    Returns:
        User dict, or None when there is no valid session
    """
    if not token:
        return None

    with store_operation(db, "get_current_user"):
        session = db.query(AuthSession).filter(AuthSession.token == token).first()
        if session is None:
            return None

        if session.expires_at <= datetime.utcnow():
            user_id = session.user_id
            db.delete(session)
            db.commit()
            _clear_login_flags(db, user_id)
            logger.info("Session expired", extra={"user_id": user_id})
            return None

        user = session.user
        return {"id": user.id, "email": user.email, "name": user.name}


def sign_out(db: Session, token: Optional[str]) -> None:
    """End the session and wipe the user's local storage."""
    if not token:
        return
    with store_operation(db, "sign_out"):
        session = db.query(AuthSession).filter(AuthSession.token == token).first()
        if session is None:
            return
        user_id = session.user_id
        db.delete(session)
        db.commit()
    LocalStore(db, user_id).clear()
    logger.info("User logged out", extra={"user_id": user_id})


def update_profile_name(db: Session, user_id: str, name: str) -> str:
    """Rename the user. Raises InputValidationError for a blank name."""
    name = (name or "").strip()
    if not name:
        raise InputValidationError("Name cannot be empty")

    with store_operation(db, "update_profile_name"):
        user = db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise AuthenticationError("User not found")
        user.name = name
        db.commit()
    LocalStore(db, user_id).set(KEY_USER_NAME, name)
    return name


def display_name(db: Session, user_id: str) -> str:
    """Cached name, else the email's local part, else a generic greeting."""
    local = LocalStore(db, user_id)
    name = local.get(KEY_USER_NAME)
    if name:
        return name
    email = local.get(KEY_USER_EMAIL)
    if email:
        return email.split("@")[0]
    return DEFAULT_DISPLAY_NAME
