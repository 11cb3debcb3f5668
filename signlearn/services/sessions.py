"""Ownership of the active quiz or game session for each user.

Starting a session replaces the previous one for that user, bumping the
generation and cancelling every timer the old session owned. Timer callbacks
only touch the session when their generation is still current.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
from signlearn.errors import SessionNotFoundError
from signlearn.logging_config import get_logger
from signlearn.services.timers import RepeatingTask, ScheduledTask

logger = get_logger(__name__)


@dataclass
class SessionEntry:
    user_id: str
    session: Any
    generation: int
    tasks: List[ScheduledTask] = field(default_factory=list)
    closed: bool = False

    def cancel_timers(self) -> None:
        for task in self.tasks:
            task.cancel()
        self.tasks.clear()


class SessionRegistry:
    """In-memory map of user id to active session, one per user."""

    def __init__(self, name: str):
        self.name = name
        self._entries: Dict[str, SessionEntry] = {}
        self._generations: Dict[str, int] = {}

    def start(self, user_id: str, session: Any) -> SessionEntry:
        """Install a new session, discarding the user's previous one."""
        self.end(user_id)
        generation = self._generations.get(user_id, 0) + 1
        self._generations[user_id] = generation
        entry = SessionEntry(user_id=user_id, session=session, generation=generation)
        self._entries[user_id] = entry
        logger.debug(f"{self.name} session started (generation {generation})", extra={"user_id": user_id})
        return entry

    def get(self, user_id: str) -> SessionEntry:
        entry = self._entries.get(user_id)
        if entry is None:
            raise SessionNotFoundError(f"No active {self.name} session")
        return entry

    def find(self, user_id: str) -> Optional[SessionEntry]:
        return self._entries.get(user_id)

    def end(self, user_id: str) -> bool:
        """Tear down the user's session and its timers. Returns False if none existed."""
        entry = self._entries.pop(user_id, None)
        if entry is None:
            return False
        entry.closed = True
        entry.cancel_timers()
        return True

    def is_current(self, entry: SessionEntry) -> bool:
        current = self._entries.get(entry.user_id)
        return (
            current is entry
            and not entry.closed
            and self._generations.get(entry.user_id) == entry.generation
        )

    def _guard(self, entry: SessionEntry, callback: Callable[[], Any]) -> Callable[[], Any]:
        def guarded():
            if not self.is_current(entry):
                return False
            return callback()
        return guarded

    def schedule(self, entry: SessionEntry, delay: float, callback: Callable[[], Any]) -> ScheduledTask:
        """Run callback once after delay, unless the session has moved on."""
        task = ScheduledTask(delay, self._guard(entry, callback)).start()
        entry.tasks.append(task)
        return task

    def repeat(self, entry: SessionEntry, interval: float, on_tick: Callable[[], bool]) -> RepeatingTask:
        """Run on_tick every interval while it returns True and the session is current."""
        task = RepeatingTask(interval, self._guard(entry, on_tick)).start()
        entry.tasks.append(task)
        return task

    def clear(self) -> None:
        for user_id in list(self._entries):
            self.end(user_id)


quiz_sessions = SessionRegistry("quiz")
game_sessions = SessionRegistry("game")
