"""Relational store operations used by the services.

Every operation converts driver failures into ``FetchError`` after rolling the
session back, so callers deal with a single failure type at the I/O boundary.
"""
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional, Tuple
from sqlalchemy import desc, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from signlearn.db.models import (
    Category,
    Question,
    TrafficSign,
    UserActivity,
    UserConsent,
    UserProgress,
)
from signlearn.errors import FetchError
from signlearn.logging_config import get_logger

logger = get_logger(__name__)

SNAPSHOT_FIELDS = ("learned_signs", "tests_completed", "best_score", "streak", "favorites")


@contextmanager
def store_operation(db: Session, operation: str) -> Iterator[None]:
    """Run a block of store calls, translating SQLAlchemy errors to FetchError."""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Store operation '{operation}' failed: {e}")
        raise FetchError(f"{operation} failed") from e


# --- Activity log -----------------------------------------------------------

def select_activity(
    db: Session,
    user_id: str,
    activity_type: Optional[str] = None,
    date_range: Optional[Tuple[datetime, datetime]] = None,
    limit: Optional[int] = None,
    newest_first: bool = False,
    details: Optional[str] = None,
) -> List[UserActivity]:
    """
    Fetch a user's activity events.

    Args:
        db: Database session
        user_id: Owner of the events
        activity_type: Only events of this type
        date_range: (start, end) UTC datetimes, start inclusive, end exclusive
        limit: Maximum number of rows
        newest_first: Order by created_at descending
        details: Only events with exactly this details payload

    Returns:
        List of UserActivity rows
    """
    with store_operation(db, "select_activity"):
        query = db.query(UserActivity).filter(UserActivity.user_id == user_id)
        if activity_type is not None:
            query = query.filter(UserActivity.type == activity_type)
        if details is not None:
            query = query.filter(UserActivity.details == details)
        if date_range is not None:
            start, end = date_range
            query = query.filter(UserActivity.created_at >= start, UserActivity.created_at < end)
        if newest_first:
            query = query.order_by(desc(UserActivity.created_at), desc(UserActivity.id))
        if limit is not None:
            query = query.limit(limit)
        return query.all()


def insert_activity(
    db: Session,
    user_id: str,
    activity_type: str,
    details: Optional[str] = None,
) -> UserActivity:
    """Append one event. created_at is assigned here and never changed."""
    with store_operation(db, "insert_activity"):
        event = UserActivity(user_id=user_id, type=activity_type, details=details)
        db.add(event)
        db.commit()
        db.refresh(event)
        return event


# --- Progress snapshot ------------------------------------------------------

def get_progress_snapshot(db: Session, user_id: str) -> Optional[UserProgress]:
    with store_operation(db, "get_progress_snapshot"):
        return db.query(UserProgress).filter(UserProgress.user_id == user_id).first()


def upsert_progress_snapshot(db: Session, user_id: str, **fields) -> UserProgress:
    """
    Insert or update the snapshot keyed by user_id.

    Only the given counters are written; others keep their stored value.
    Last write wins, there is no version check.
    """
    unknown = set(fields) - set(SNAPSHOT_FIELDS)
    if unknown:
        raise ValueError(f"Unknown snapshot fields: {sorted(unknown)}")

    with store_operation(db, "upsert_progress_snapshot"):
        row = db.query(UserProgress).filter(UserProgress.user_id == user_id).first()
        if row is None:
            row = UserProgress(user_id=user_id, **{name: 0 for name in SNAPSHOT_FIELDS})
            db.add(row)
        for name, value in fields.items():
            setattr(row, name, int(value))
        row.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(row)
        return row


# --- Reference data ---------------------------------------------------------

def count_signs(db: Session) -> int:
    with store_operation(db, "count_signs"):
        return db.query(func.count(TrafficSign.id)).scalar() or 0


def select_signs_catalogue(
    db: Session,
    sign_id: Optional[str] = None,
    search: Optional[str] = None,
) -> List[TrafficSign]:
    """
    Fetch signs ordered by sort_order then English name.

    Args:
        sign_id: Only the sign with this id
        search: Case-insensitive substring of the English or Hindi name
    """
    with store_operation(db, "select_signs_catalogue"):
        query = db.query(TrafficSign)
        if sign_id is not None:
            query = query.filter(TrafficSign.id == sign_id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                TrafficSign.name_english.ilike(pattern),
                TrafficSign.name_hindi.ilike(pattern),
            ))
        return query.order_by(TrafficSign.sort_order, TrafficSign.name_english).all()


def select_questions(db: Session, category_id: Optional[int] = None) -> List[Question]:
    with store_operation(db, "select_questions"):
        query = db.query(Question)
        if category_id is not None:
            query = query.filter(Question.category_id == category_id)
        return query.order_by(Question.id).all()


def select_categories(db: Session) -> List[Category]:
    with store_operation(db, "select_categories"):
        return db.query(Category).order_by(Category.name).all()


# --- Consent ----------------------------------------------------------------

def get_consent(db: Session, user_id: str) -> Optional[UserConsent]:
    with store_operation(db, "get_consent"):
        return db.query(UserConsent).filter(UserConsent.user_id == user_id).first()


def set_consent(
    db: Session,
    user_id: str,
    given: bool,
    version: str,
    timestamp: datetime,
) -> UserConsent:
    """Insert or replace the user's consent record."""
    with store_operation(db, "set_consent"):
        record = db.query(UserConsent).filter(UserConsent.user_id == user_id).first()
        if record is None:
            record = UserConsent(user_id=user_id)
            db.add(record)
        record.consent_given = given
        record.consent_version = version
        record.accepted_at = timestamp
        db.commit()
        db.refresh(record)
        return record
