"""Throttled delivery of streamed text to a renderer."""

from .scheduler import FlushScheduler, FrameFlushScheduler, TimerFlushScheduler
from .throttler import DeliveryPolicy, StreamThrottler, ThrottleConfig, create_scheduler

__all__ = [
    "FlushScheduler",
    "FrameFlushScheduler",
    "TimerFlushScheduler",
    "DeliveryPolicy",
    "StreamThrottler",
    "ThrottleConfig",
    "create_scheduler",
]
