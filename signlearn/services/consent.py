"""Privacy consent checks."""
from datetime import datetime
from typing import Dict, Optional
from sqlalchemy.orm import Session
from signlearn.constants import CONSENT_VERSION
from signlearn.db import store
from signlearn.errors import FetchError
from signlearn.logging_config import get_logger

logger = get_logger(__name__)


def get_consent(db: Session, user_id: str) -> Optional[Dict]:
    """{given, version, accepted_at} or None when no record exists."""
    record = store.get_consent(db, user_id)
    if record is None:
        return None
    return {
        "given": bool(record.consent_given),
        "version": record.consent_version,
        "accepted_at": record.accepted_at.isoformat(),
    }


def has_consent(db: Session, user_id: str) -> bool:
    """A failed lookup counts as no consent."""
    try:
        consent = get_consent(db, user_id)
    except FetchError:
        return False
    return bool(consent and consent["given"])


def set_consent(db: Session, user_id: str, given: bool = True, version: str = CONSENT_VERSION,
                timestamp: Optional[datetime] = None) -> Dict:
    store.set_consent(db, user_id, given, version, timestamp or datetime.utcnow())
    logger.info(f"Consent recorded: given={given} version={version}", extra={"user_id": user_id})
    return get_consent(db, user_id)
