"""Progress aggregation: counters, streak, best score, badges and the snapshot.

The activity log is the source of truth. ``compute_and_persist`` recomputes
every counter from it on each call and caches the result in ``user_progress``;
the cached row is only read back by the home screen summary.
"""
import re
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Tuple
from sqlalchemy.orm import Session
from signlearn.config import settings
from signlearn.constants import (
    ACTIVITY_LEARNED_SIGN,
    ACTIVITY_TEST_COMPLETED,
    RECENT_ACTIVITY_LIMIT,
    SCORE_DETAILS_TEMPLATE,
    STREAK_MIN_RECENT_DAYS,
    STREAK_WIDEN_LIMIT,
)
from signlearn.db import store
from signlearn.db.models import UserActivity, UserProgress
from signlearn.errors import FetchError
from signlearn.logging_config import get_logger
from signlearn.services.badges import BadgeStatus, ProgressCounters, evaluate_badges
from signlearn.services.local_store import LocalStore
from signlearn.services.streak import calculate_streak, collect_day_keys, local_today

logger = get_logger(__name__)

SCORE_PATTERN = re.compile(r"Score:\s*([0-9]+)\s*/\s*([0-9]+)", re.IGNORECASE)

ACTIVITY_LABELS = {
    ACTIVITY_TEST_COMPLETED: "Completed a test",
    ACTIVITY_LEARNED_SIGN: "Learned a new sign",
}


@dataclass
class ProgressSnapshot:
    """Cached per-user counters as stored in user_progress."""
    user_id: Optional[str]
    learned_signs: int = 0
    tests_completed: int = 0
    best_score: int = 0
    streak: int = 0
    favorites: int = 0
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: UserProgress) -> "ProgressSnapshot":
        return cls(
            user_id=row.user_id,
            learned_signs=row.learned_signs,
            tests_completed=row.tests_completed,
            best_score=row.best_score,
            streak=row.streak,
            favorites=row.favorites,
            updated_at=row.updated_at,
        )

    @property
    def counters(self) -> ProgressCounters:
        return ProgressCounters(
            learned_signs=self.learned_signs,
            tests_completed=self.tests_completed,
            best_score=self.best_score,
            streak=self.streak,
            favorites=self.favorites,
        )

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return data


@dataclass
class ProgressReport:
    snapshot: ProgressSnapshot
    badges: List[BadgeStatus] = field(default_factory=list)
    total_signs: int = 0
    recent_activity: List[Dict] = field(default_factory=list)
    persisted: bool = False

    @property
    def completion_percent(self) -> int:
        if not self.total_signs:
            return 0
        return round(self.snapshot.learned_signs / self.total_signs * 100)

    @property
    def unlocked_count(self) -> int:
        return sum(1 for badge in self.badges if badge.unlocked)

    def to_dict(self) -> Dict:
        return {
            **self.snapshot.to_dict(),
            "total_signs": self.total_signs,
            "completion_percent": self.completion_percent,
            "badges": [badge.to_dict() for badge in self.badges],
            "unlocked_badges": self.unlocked_count,
            "recent_activity": self.recent_activity,
            "persisted": self.persisted,
        }


def parse_score_percent(details: Optional[str]) -> Optional[int]:
    """
    Extract round(score / total * 100) from a "Score: X/Y" details string.

    Returns None when the string does not match or the total is zero.
    """
    if not details:
        return None
    match = SCORE_PATTERN.search(details)
    if not match:
        return None
    score, total = int(match.group(1)), int(match.group(2))
    if total == 0:
        return None
    return round(score / total * 100)


def best_score_percent(details_list: Iterable[Optional[str]]) -> int:
    """Highest percentage among parseable score strings; unparseable ones are skipped."""
    best = 0
    for details in details_list:
        percent = parse_score_percent(details)
        if percent is None:
            if details:
                logger.debug(f"Skipping unparseable score details: {details!r}")
            continue
        best = max(best, percent)
    return best


def describe_activity(event: UserActivity) -> Dict:
    """Feed entry for one activity event."""
    score = None
    if event.type == ACTIVITY_TEST_COMPLETED and event.details:
        match = SCORE_PATTERN.search(event.details)
        if match:
            score = f"{match.group(1)}/{match.group(2)}"
    return {
        "id": event.id,
        "type": event.type,
        "label": ACTIVITY_LABELS.get(event.type, event.type.replace("_", " ")),
        "details": event.details,
        "score": score,
        "created_at": event.created_at.isoformat() if event.created_at else None,
    }


def local_day_bounds(day: date) -> Tuple[datetime, datetime]:
    """UTC (naive) start and end of a local calendar day."""
    tz = settings.tzinfo
    start = datetime.combine(day, time.min, tzinfo=tz).astimezone(timezone.utc).replace(tzinfo=None)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz).astimezone(timezone.utc).replace(tzinfo=None)
    return start, end


def _collect_streak_days(db: Session, user_id: str, recent: List[UserActivity]) -> set:
    day_keys = collect_day_keys(event.created_at for event in recent)
    if len(day_keys) < STREAK_MIN_RECENT_DAYS:
        try:
            older = store.select_activity(db, user_id, limit=STREAK_WIDEN_LIMIT, newest_first=True)
        except FetchError:
            logger.warning("Widening streak fetch failed; using recent events only",
                           extra={"user_id": user_id})
        else:
            day_keys |= collect_day_keys(event.created_at for event in older)
    return day_keys


def compute_and_persist(db: Session, user_id: Optional[str], today: Optional[date] = None) -> ProgressReport:
    """
    Recompute a user's progress counters, cache them and evaluate badges.

    Each counter degrades to zero on its own when its fetch fails. Degraded
    counters are reported but left out of the cached row, and the cached
    best_score never goes down. A failed upsert only clears ``persisted``.
    Nothing is raised to the caller.

    Args:
        db: Database session
        user_id: Current user, or None when nobody is signed in
        today: Local calendar date for the streak (defaults to now)

    Returns:
        ProgressReport with snapshot, badges, catalogue size and recent feed
    """
    today = today or local_today()

    if user_id is None:
        snapshot = ProgressSnapshot(user_id=None)
        return ProgressReport(snapshot=snapshot, badges=evaluate_badges(snapshot.counters))

    # counters whose fetch succeeded; failed ones are shown as zero but never cached
    fields: Dict[str, int] = {}

    # 1) catalogue size
    try:
        total_signs = store.count_signs(db)
    except FetchError:
        total_signs = 0

    # 2) distinct signs ever learned
    try:
        learned_rows = store.select_activity(db, user_id, activity_type=ACTIVITY_LEARNED_SIGN)
        learned = len({row.details for row in learned_rows if row.details is not None})
        fields["learned_signs"] = learned
    except FetchError:
        learned = 0

    # 3-4) completed tests and best score
    try:
        test_rows = store.select_activity(
            db, user_id, activity_type=ACTIVITY_TEST_COMPLETED, newest_first=True
        )
        tests_completed = len(test_rows)
        best = best_score_percent(row.details for row in test_rows)
        fields["tests_completed"] = tests_completed
        fields["best_score"] = best
    except FetchError:
        tests_completed, best = 0, 0

    # 5) recent feed and streak
    try:
        recent = store.select_activity(db, user_id, limit=RECENT_ACTIVITY_LIMIT, newest_first=True)
        recent_ok = True
    except FetchError:
        recent, recent_ok = [], False
    streak = calculate_streak(_collect_streak_days(db, user_id, recent), today)
    if recent_ok:
        fields["streak"] = streak

    # 6) favorites from local storage
    try:
        favorites = LocalStore(db, user_id).favorites_count()
        fields["favorites"] = favorites
    except FetchError:
        favorites = 0

    snapshot = ProgressSnapshot(
        user_id=user_id,
        learned_signs=learned,
        tests_completed=tests_completed,
        best_score=best,
        streak=streak,
        favorites=favorites,
    )

    # 7) cache, best effort
    persisted = False
    try:
        if "best_score" in fields:
            stored = store.get_progress_snapshot(db, user_id)
            if stored is not None:
                fields["best_score"] = max(stored.best_score, best)
        row = store.upsert_progress_snapshot(db, user_id, **fields)
        snapshot.updated_at = row.updated_at
        persisted = True
    except FetchError:
        logger.warning("Progress snapshot not saved; showing unsaved counters",
                       extra={"user_id": user_id})

    logger.info(
        f"Progress computed: learned={learned} tests={tests_completed} best={best} "
        f"streak={streak} favorites={favorites}",
        extra={"user_id": user_id}
    )

    # 8) badges
    return ProgressReport(
        snapshot=snapshot,
        badges=evaluate_badges(snapshot.counters),
        total_signs=total_signs,
        recent_activity=[describe_activity(event) for event in recent],
        persisted=persisted,
    )


def load_snapshot(db: Session, user_id: str) -> Optional[ProgressSnapshot]:
    """Read the cached snapshot back, or None if it was never written."""
    row = store.get_progress_snapshot(db, user_id)
    return ProgressSnapshot.from_row(row) if row else None


def record_test_result(db: Session, user_id: str, score: int, total: int) -> bool:
    """
    Log a completed test and fold it into the cached snapshot.

    Appends a test_completed event, then increments tests_completed and raises
    best_score if this result beats the stored one.

    Returns:
        True if both writes succeeded
    """
    try:
        store.insert_activity(
            db, user_id, ACTIVITY_TEST_COMPLETED,
            SCORE_DETAILS_TEMPLATE.format(score=score, total=total)
        )
    except FetchError:
        logger.error("Could not save test result", extra={"user_id": user_id})
        return False

    percentage = round(score / total * 100) if total else 0
    try:
        current = store.get_progress_snapshot(db, user_id)
        tests_completed = (current.tests_completed if current else 0) + 1
        best = max(current.best_score if current else 0, percentage)
        store.upsert_progress_snapshot(db, user_id, tests_completed=tests_completed, best_score=best)
    except FetchError:
        logger.warning("Test result logged but snapshot not updated", extra={"user_id": user_id})
        return False

    return True


def todays_learned_count(db: Session, user_id: str, today: Optional[date] = None) -> int:
    """Distinct signs with a learned_sign event during the local calendar day."""
    rows = store.select_activity(
        db, user_id,
        activity_type=ACTIVITY_LEARNED_SIGN,
        date_range=local_day_bounds(today or local_today()),
    )
    return len({row.details for row in rows if row.details is not None})


def home_summary(db: Session, user_id: str, today: Optional[date] = None) -> Dict:
    """Daily-goal widget: signs learned today plus cached streak and best score."""
    try:
        learned_today = todays_learned_count(db, user_id, today)
    except FetchError:
        learned_today = 0

    try:
        snapshot = load_snapshot(db, user_id)
    except FetchError:
        snapshot = None

    return {
        "learned_today": learned_today,
        "streak": snapshot.streak if snapshot else 0,
        "best_score": snapshot.best_score if snapshot else 0,
    }
