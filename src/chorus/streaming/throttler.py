"""Stream throttler.

Decouples the arrival cadence of provider deltas from the cadence of UI
updates. The throttler may change when and in what chunks text is
delivered, never its order or content: the concatenation of all flushes
equals the concatenation of all pushed text.
"""

import time
from collections.abc import Callable
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from ..config import FRAME_RATE, IMMEDIATE_FLUSH_THRESHOLD_MS, StreamingSpeed
from .scheduler import FlushScheduler, FrameFlushScheduler, TimerFlushScheduler


class DeliveryPolicy(str, Enum):
    """When buffered text is handed to the renderer."""

    FRAME = "frame"          # Once per frame tick
    INTERVAL = "interval"    # Immediately when fast, else every interval_ms
    COMPLETE = "complete"    # Once, at stream end


class ThrottleConfig(BaseModel):
    """Throttler settings."""

    model_config = ConfigDict(frozen=True)

    policy: DeliveryPolicy = Field(default=DeliveryPolicy.FRAME)
    interval_ms: int = Field(
        default=StreamingSpeed.VERY_FAST,
        ge=0,
        description="Minimum time between interval flushes"
    )
    immediate_threshold_ms: int = Field(
        default=IMMEDIATE_FLUSH_THRESHOLD_MS,
        ge=0,
        description="Interval delivery at or below this flushes every delta"
    )
    frame_rate: int = Field(default=FRAME_RATE, ge=1)

    @property
    def immediate(self) -> bool:
        return self.policy == DeliveryPolicy.INTERVAL and self.interval_ms <= self.immediate_threshold_ms


def create_scheduler(config: ThrottleConfig) -> FlushScheduler | None:
    """Create the scheduler a policy needs (None when it needs none)."""
    if config.policy == DeliveryPolicy.FRAME:
        return FrameFlushScheduler(frame_rate=config.frame_rate)
    if config.policy == DeliveryPolicy.INTERVAL and not config.immediate:
        return TimerFlushScheduler(interval=config.interval_ms / 1000)
    return None


class StreamThrottler:
    """Buffers pushed text and flushes it to a callback at a bounded rate.

    Usage:
        throttler = StreamThrottler(on_flush=render, config=ThrottleConfig())
        async for delta in stream:
            throttler.push(delta.text)
        throttler.finish()   # forced flush of any remainder

    After ``cancel()`` nothing is flushed again, not even by ``finish()``.
    """

    def __init__(
        self,
        on_flush: Callable[[str], None],
        config: ThrottleConfig | None = None,
        scheduler: FlushScheduler | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the throttler.

        Args:
            on_flush: Receives each flushed chunk, in order
            config: Delivery policy settings
            scheduler: Overrides the scheduler the policy would create
            clock: Monotonic clock in seconds (interval policy)
        """
        self._on_flush = on_flush
        self._config = config or ThrottleConfig()
        self._scheduler = scheduler if scheduler is not None else create_scheduler(self._config)
        self._clock = clock
        self._buffer: list[str] = []
        self._last_flush = clock()
        self._flush_count = 0
        self._finished = False
        self._cancelled = False

    @property
    def config(self) -> ThrottleConfig:
        return self._config

    @property
    def flush_count(self) -> int:
        return self._flush_count

    @property
    def pending_text(self) -> str:
        return "".join(self._buffer)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def finished(self) -> bool:
        return self._finished

    def push(self, text: str) -> None:
        """Accept one delta."""
        if self._finished or self._cancelled or not text:
            return

        self._buffer.append(text)
        policy = self._config.policy

        if policy == DeliveryPolicy.COMPLETE:
            return

        if policy == DeliveryPolicy.FRAME:
            self._schedule()
            return

        if self._config.immediate:
            self._flush()
            return

        interval = self._config.interval_ms / 1000
        elapsed = self._clock() - self._last_flush
        if elapsed >= interval:
            self._flush()
        else:
            # Stalled streams still show buffered text once the interval passes
            self._schedule(delay=interval - elapsed)

    def finish(self) -> None:
        """Stream ended: stop the scheduler and flush the remainder."""
        if self._finished or self._cancelled:
            return
        self._finished = True
        if self._scheduler is not None:
            self._scheduler.cancel()
        self._flush()

    def cancel(self) -> None:
        """Stream aborted: stop scheduling and drop the buffer without flushing."""
        self._cancelled = True
        if self._scheduler is not None:
            self._scheduler.cancel()
        self._buffer.clear()

    def _schedule(self, delay: float | None = None) -> None:
        if self._scheduler is None:
            self._flush()
            return
        self._scheduler.schedule_next_flush(self._flush, delay)

    def _flush(self) -> None:
        if self._cancelled or not self._buffer:
            return
        text = "".join(self._buffer)
        self._buffer.clear()
        self._last_flush = self._clock()
        self._flush_count += 1
        self._on_flush(text)
