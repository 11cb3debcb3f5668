"""Badge catalogue and unlock evaluation."""
from dataclasses import asdict, dataclass
from typing import Callable, Dict, List


@dataclass(frozen=True)
class ProgressCounters:
    """The five aggregate counters every badge is derived from."""
    learned_signs: int = 0
    tests_completed: int = 0
    best_score: int = 0
    streak: int = 0
    favorites: int = 0


@dataclass(frozen=True)
class BadgeDef:
    id: str
    name: str
    icon: str
    description: str
    color: str
    check: Callable[[ProgressCounters], bool]


@dataclass(frozen=True)
class BadgeStatus:
    id: str
    name: str
    icon: str
    description: str
    color: str
    unlocked: bool

    def to_dict(self) -> Dict:
        return asdict(self)


BADGE_CATALOGUE: List[BadgeDef] = [
    BadgeDef("first_sign", "First Step", "🎯", "Learned your first sign", "#10B981",
             lambda c: c.learned_signs >= 1),
    BadgeDef("five_signs", "Getting Started", "🌟", "Learned 5 signs", "#3B82F6",
             lambda c: c.learned_signs >= 5),
    BadgeDef("ten_signs", "Road Scholar", "📚", "Learned 10 signs", "#A855F7",
             lambda c: c.learned_signs >= 10),
    BadgeDef("twenty_signs", "Sign Expert", "🎓", "Learned 20 signs", "#8B5CF6",
             lambda c: c.learned_signs >= 20),
    BadgeDef("first_test", "Test Taker", "✏️", "Completed your first test", "#F59E0B",
             lambda c: c.tests_completed >= 1),
    BadgeDef("five_tests", "Test Master", "📝", "Completed 5 tests", "#F97316",
             lambda c: c.tests_completed >= 5),
    BadgeDef("perfect_score", "Perfect Score", "💯", "Scored 100% on a test", "#EF4444",
             lambda c: c.best_score == 100),
    BadgeDef("high_scorer", "High Scorer", "⭐", "Scored 90% or higher", "#DC2626",
             lambda c: c.best_score >= 90),
    BadgeDef("week_streak", "Dedicated", "🔥", "7-day learning streak", "#F59E0B",
             lambda c: c.streak >= 7),
    BadgeDef("month_streak", "Unstoppable", "💪", "30-day learning streak", "#DC2626",
             lambda c: c.streak >= 30),
    BadgeDef("favorite_collector", "Favorites Fan", "❤️", "Added 5 signs to favorites", "#EF4444",
             lambda c: c.favorites >= 5),
    BadgeDef("favorite_master", "Favorite Master", "💖", "Added 10 signs to favorites", "#EC4899",
             lambda c: c.favorites >= 10),
]


def evaluate_badges(counters: ProgressCounters) -> List[BadgeStatus]:
    """
    Evaluate every badge against the counters.

    Recomputed from scratch on each call: a badge whose threshold is no longer
    met comes back locked.
    """
    return [
        BadgeStatus(
            id=badge.id,
            name=badge.name,
            icon=badge.icon,
            description=badge.description,
            color=badge.color,
            unlocked=bool(badge.check(counters)),
        )
        for badge in BADGE_CATALOGUE
    ]


def unlocked_badge_ids(counters: ProgressCounters) -> List[str]:
    return [status.id for status in evaluate_badges(counters) if status.unlocked]
