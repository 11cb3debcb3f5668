"""Application-wide constants and configuration values.

Gameplay numbers, storage keys and progress limits used throughout the
service live here so they can be tuned in one place.
"""

# Activity event types
ACTIVITY_LEARNED_SIGN = "learned_sign"
ACTIVITY_TEST_COMPLETED = "test_completed"

# Progress and streaks
STREAK_MAX_DAYS = 30
"""A streak is never reported longer than this many days."""

RECENT_ACTIVITY_LIMIT = 20
"""Most recent events fetched for the activity feed and the first streak pass."""

STREAK_WIDEN_LIMIT = 200
"""Events fetched when the recent window does not cover enough days."""

STREAK_MIN_RECENT_DAYS = 7
"""Distinct days the recent window must cover before widening is skipped."""

SCORE_DETAILS_TEMPLATE = "Score: {score}/{total}"
"""Format of the details payload of a test_completed event."""

# Quiz (practice test)
QUIZ_LENGTH = 10
"""Questions sampled into one practice test."""

MIN_UNSCOPED_POOL = 10
"""Questions required in the full pool before an uncategorized test can start."""

FEEDBACK_DWELL_SECONDS = 4.0
"""Seconds the correct/incorrect feedback stays up before auto-advancing."""

SCOPED_SCORE_BUCKET = 10
"""Category-scoped tests score against a denominator rounded up to this multiple."""

# Matching game
MATCH_PAIRS = 6
MATCH_SCORE_INCREMENT = 10
MATCH_FLIP_BACK_SECONDS = 1.0

# Guess / speed / true-false games
GUESS_ROUNDS = 10
GUESS_OPTION_COUNT = 4
SPEED_ROUND_SECONDS = 15
SPEED_TICK_SECONDS = 1.0
SPEED_WARNING_SECONDS = 5
"""Remaining seconds at or below which the countdown is flagged as urgent."""

TRUE_FALSE_ROUNDS = 10

# Sequence-recall game
SEQUENCE_BASE_LENGTH = 2
"""Level n shows min(n + SEQUENCE_BASE_LENGTH, SEQUENCE_MAX_LENGTH) signs."""

SEQUENCE_MAX_LENGTH = 6
SEQUENCE_DISTRACTORS = 2
SEQUENCE_REVEAL_SECONDS = 1.5
SEQUENCE_INPUT_DELAY_SECONDS = 0.5
SEQUENCE_POINTS_PER_LEVEL = 10

# Consent
CONSENT_VERSION = "1.0"

# Session cookie
COOKIE_NAME = "sl_session"

# Local key-value storage keys
KEY_LOGGED_IN = "isLoggedIn"
KEY_USER_NAME = "userName"
KEY_USER_EMAIL = "userEmail"
KEY_USER_ID = "userId"
KEY_FAVORITES = "favoriteSignsV2"

DEFAULT_DISPLAY_NAME = "Driver"
