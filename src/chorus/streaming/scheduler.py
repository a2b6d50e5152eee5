"""Flush schedulers for the stream throttler.

Hides how "later" is decided: a fixed-rate event loop timer, or a
frame-synchronized tick. A host with a real display-refresh callback can
implement FlushScheduler over it and hand that to the throttler.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable

from ..config import FRAME_RATE


class FlushScheduler(ABC):
    """Cancellable one-shot scheduler. At most one flush is pending at a time."""

    @abstractmethod
    def schedule_next_flush(self, callback: Callable[[], None], delay: float | None = None) -> None:
        """Run ``callback`` later unless a flush is already pending.

        Args:
            callback: Flush function
            delay: Seconds to wait; None uses the scheduler's own cadence
        """

    @abstractmethod
    def cancel(self) -> None:
        """Drop the pending flush, if any."""

    @property
    @abstractmethod
    def pending(self) -> bool:
        """Whether a flush is scheduled."""


class TimerFlushScheduler(FlushScheduler):
    """Event loop timer scheduler (``loop.call_later``)."""

    def __init__(self, interval: float, loop: asyncio.AbstractEventLoop | None = None):
        """Initialize the scheduler.

        Args:
            interval: Default delay in seconds
            loop: Event loop (defaults to the running loop at schedule time)
        """
        self._interval = interval
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule_next_flush(self, callback: Callable[[], None], delay: float | None = None) -> None:
        if self._handle is not None:
            return
        loop = self._loop or asyncio.get_running_loop()
        wait = self._interval if delay is None else max(delay, 0.0)
        self._handle = loop.call_later(wait, self._fire, callback)

    def _fire(self, callback: Callable[[], None]) -> None:
        self._handle = None
        callback()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class FrameFlushScheduler(TimerFlushScheduler):
    """Frame-synchronized scheduler: flushes land on the next frame tick."""

    def __init__(self, frame_rate: int = FRAME_RATE, loop: asyncio.AbstractEventLoop | None = None):
        super().__init__(1.0 / frame_rate, loop)

    def schedule_next_flush(self, callback: Callable[[], None], delay: float | None = None) -> None:
        # A frame tick has a fixed cadence; requested delays are ignored
        super().schedule_next_flush(callback)
