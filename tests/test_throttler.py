"""Unit tests for the streaming module."""
import asyncio

import pytest
from conftest import FakeClock, ManualScheduler
from hypothesis import given, settings
from hypothesis import strategies as st

from chorus.streaming import (
    DeliveryPolicy,
    FrameFlushScheduler,
    StreamThrottler,
    ThrottleConfig,
    TimerFlushScheduler,
    create_scheduler,
)

operations = st.lists(
    st.one_of(
        st.tuples(st.just("push"), st.text(max_size=6)),
        st.tuples(st.just("fire"), st.none()),
        st.tuples(st.just("tick"), st.floats(min_value=0.0, max_value=0.2)),
    ),
    max_size=40,
)


def _replay(config: ThrottleConfig, ops) -> tuple[list[str], str]:
    flushed: list[str] = []
    clock = FakeClock()
    scheduler = ManualScheduler()
    throttler = StreamThrottler(flushed.append, config, scheduler=scheduler, clock=clock)
    pushed = []
    for op, value in ops:
        if op == "push":
            pushed.append(value)
            throttler.push(value)
        elif op == "fire":
            scheduler.fire()
        else:
            clock.advance(value)
    throttler.finish()
    return flushed, "".join(pushed)


class TestThrottleConfig:
    """Tests for delivery policy selection."""

    def test_immediate_only_for_fast_interval(self):
        """Test that interval delivery at or below the threshold is immediate."""
        assert ThrottleConfig(policy=DeliveryPolicy.INTERVAL, interval_ms=15).immediate
        assert not ThrottleConfig(policy=DeliveryPolicy.INTERVAL, interval_ms=50).immediate
        assert not ThrottleConfig(policy=DeliveryPolicy.FRAME, interval_ms=5).immediate

    def test_create_scheduler_per_policy(self):
        """Test that each policy gets the scheduler it needs."""
        assert isinstance(create_scheduler(ThrottleConfig()), FrameFlushScheduler)
        assert isinstance(
            create_scheduler(ThrottleConfig(policy=DeliveryPolicy.INTERVAL, interval_ms=100)),
            TimerFlushScheduler,
        )
        assert create_scheduler(ThrottleConfig(policy=DeliveryPolicy.INTERVAL, interval_ms=10)) is None
        assert create_scheduler(ThrottleConfig(policy=DeliveryPolicy.COMPLETE)) is None


class TestStreamThrottlerProperties:
    """Property tests: flushes always concatenate to the pushed text."""

    @given(ops=operations)
    @settings(max_examples=100)
    def test_frame_policy_preserves_text(self, ops):
        """Test frame delivery under arbitrary push/tick interleavings."""
        flushed, pushed = _replay(ThrottleConfig(policy=DeliveryPolicy.FRAME), ops)
        assert "".join(flushed) == pushed

    @given(ops=operations, interval_ms=st.integers(min_value=16, max_value=200))
    @settings(max_examples=100)
    def test_interval_policy_preserves_text(self, ops, interval_ms):
        """Test batched interval delivery under arbitrary clock advances."""
        config = ThrottleConfig(policy=DeliveryPolicy.INTERVAL, interval_ms=interval_ms)
        flushed, pushed = _replay(config, ops)
        assert "".join(flushed) == pushed

    @given(ops=operations)
    @settings(max_examples=50)
    def test_immediate_policy_preserves_text(self, ops):
        """Test immediate interval delivery."""
        config = ThrottleConfig(policy=DeliveryPolicy.INTERVAL, interval_ms=5)
        flushed, pushed = _replay(config, ops)
        assert "".join(flushed) == pushed

    @given(ops=operations)
    @settings(max_examples=50)
    def test_complete_policy_flushes_once(self, ops):
        """Test that complete delivery flushes everything exactly once at the end."""
        flushed, pushed = _replay(ThrottleConfig(policy=DeliveryPolicy.COMPLETE), ops)
        assert flushed == ([pushed] if pushed else [])

    @given(ops=operations)
    @settings(max_examples=50)
    def test_no_empty_flushes(self, ops):
        """Test that the renderer never receives an empty chunk."""
        flushed, _ = _replay(ThrottleConfig(policy=DeliveryPolicy.FRAME), ops)
        assert all(flushed)


class TestStreamThrottler:
    """Tests for StreamThrottler behaviour."""

    def test_frame_policy_batches_until_tick(self):
        """Test that frame delivery holds text until the frame fires."""
        flushed = []
        scheduler = ManualScheduler()
        throttler = StreamThrottler(flushed.append, ThrottleConfig(), scheduler=scheduler)

        throttler.push("He")
        throttler.push("llo")
        assert flushed == []
        assert throttler.pending_text == "Hello"

        scheduler.fire()
        assert flushed == ["Hello"]
        assert throttler.flush_count == 1

    def test_immediate_policy_flushes_each_push(self):
        """Test that fast interval delivery flushes on every push."""
        flushed = []
        config = ThrottleConfig(policy=DeliveryPolicy.INTERVAL, interval_ms=15)
        throttler = StreamThrottler(flushed.append, config)

        throttler.push("a")
        throttler.push("b")

        assert flushed == ["a", "b"]

    def test_interval_policy_waits_for_interval(self):
        """Test that slow interval delivery flushes once the interval elapsed."""
        flushed = []
        clock = FakeClock()
        scheduler = ManualScheduler()
        config = ThrottleConfig(policy=DeliveryPolicy.INTERVAL, interval_ms=100)
        throttler = StreamThrottler(flushed.append, config, scheduler=scheduler, clock=clock)

        clock.advance(0.03)
        throttler.push("a")
        assert flushed == []
        assert scheduler.requested_delays[-1] == pytest.approx(0.07)

        clock.advance(0.08)
        throttler.push("b")
        assert flushed == ["ab"]

    def test_cancel_stops_all_flushes(self):
        """Test that nothing is flushed after cancel, not even by finish."""
        flushed = []
        scheduler = ManualScheduler()
        throttler = StreamThrottler(flushed.append, ThrottleConfig(), scheduler=scheduler)

        throttler.push("partial")
        throttler.cancel()
        scheduler.fire()
        throttler.finish()
        throttler.push("more")

        assert flushed == []
        assert throttler.cancelled
        assert not scheduler.pending

    def test_finish_is_idempotent(self):
        """Test that finishing twice flushes once."""
        flushed = []
        throttler = StreamThrottler(flushed.append, ThrottleConfig(policy=DeliveryPolicy.COMPLETE))

        throttler.push("x")
        throttler.finish()
        throttler.finish()

        assert flushed == ["x"]
        assert throttler.finished

    @pytest.mark.asyncio
    async def test_timer_scheduler_flushes_on_event_loop(self):
        """Test real timer delivery on the running loop."""
        flushed = []
        config = ThrottleConfig(policy=DeliveryPolicy.INTERVAL, interval_ms=20)
        throttler = StreamThrottler(flushed.append, config)

        throttler.push("a")
        throttler.push("b")
        await asyncio.sleep(0.1)

        assert "".join(flushed) == "ab"
        throttler.finish()
        assert "".join(flushed) == "ab"
