"""Cancellable scheduled callbacks on the running asyncio loop."""
import asyncio
from typing import Callable, Optional
from signlearn.logging_config import get_logger

logger = get_logger(__name__)


class ScheduledTask:
    """
    Fire-once callback, re-armable.

    Wraps ``loop.call_later``. A repeating countdown is built by re-arming from
    inside the callback, so at most one firing is ever pending.
    """

    def __init__(self, delay: float, callback: Callable[[], None],
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        self.delay = delay
        self._callback = callback
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self.cancelled = False

    @property
    def pending(self) -> bool:
        return self._handle is not None and not self.cancelled

    def start(self) -> "ScheduledTask":
        return self.rearm()

    def rearm(self, delay: Optional[float] = None) -> "ScheduledTask":
        """Schedule the next firing, replacing any pending one."""
        if self.cancelled:
            return self
        if self._handle is not None:
            self._handle.cancel()
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay if delay is None else delay, self._fire)
        return self

    def cancel(self) -> None:
        self.cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        if self.cancelled:
            return
        try:
            self._callback()
        except Exception:
            # Timer callbacks run outside any request; log and stop this task
            logger.exception("Scheduled callback failed")
            self.cancel()


class RepeatingTask(ScheduledTask):
    """
    Calls ``on_tick`` every ``interval`` seconds while it returns True.

    Each firing re-arms a single ``call_later``; returning False (or cancel())
    ends the chain.
    """

    def __init__(self, interval: float, on_tick: Callable[[], bool],
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        super().__init__(interval, self._tick, loop)
        self._on_tick = on_tick

    def _tick(self) -> None:
        if self._on_tick() and not self.cancelled:
            self.rearm()
