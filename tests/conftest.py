"""Pytest configuration and shared fixtures."""
import asyncio
import os

import pytest

from chorus.credentials import StaticCredentials
from chorus.llm import (
    AdapterRegistry,
    DeltaChannel,
    GenerationRequest,
    LLMResponse,
    ProviderAdapter,
    ProviderTag,
    TextDelta,
    TokenUsage,
)
from chorus.preferences import Preferences
from chorus.sessions import SessionStore
from chorus.streaming import FlushScheduler


class FakeAdapter(ProviderAdapter):
    """Adapter that replays a script instead of calling a provider.

    Script items are strings (main-channel deltas), TextDelta values,
    TokenUsage values, exceptions (raised at that point of the stream) or
    asyncio.Event values (the stream waits on them).
    When ``gate`` is set the stream waits on it before the first delta.
    """

    def __init__(self, provider: ProviderTag, script=None, reply: str = "ok", gate=None):
        super().__init__()
        self.provider = provider
        self.script = list(script or [])
        self.reply = reply
        self.gate = gate
        self.requests: list[GenerationRequest] = []
        self.closed = False
        self.stream_closed = False

    async def _stream(self, request, capabilities):
        self.requests.append(request)
        try:
            if self.gate is not None:
                await self.gate.wait()
            for item in self.script:
                if isinstance(item, asyncio.Event):
                    await item.wait()
                    continue
                if isinstance(item, BaseException):
                    raise item
                if isinstance(item, str):
                    item = TextDelta(text=item)
                yield item
                await asyncio.sleep(0)
        finally:
            self.stream_closed = True

    async def complete(self, request):
        self.requests.append(request)
        if isinstance(self.reply, BaseException):
            raise self.reply
        return LLMResponse(content=self.reply, model=request.model_name)

    async def close(self):
        self.closed = True


class ManualScheduler(FlushScheduler):
    """Scheduler whose pending flush runs only when the test fires it."""

    def __init__(self):
        self._callback = None
        self.requested_delays: list[float | None] = []

    @property
    def pending(self) -> bool:
        return self._callback is not None

    def schedule_next_flush(self, callback, delay=None):
        self.requested_delays.append(delay)
        if self._callback is None:
            self._callback = callback

    def cancel(self):
        self._callback = None

    def fire(self):
        callback, self._callback = self._callback, None
        if callback is not None:
            callback()


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session")
def api_keys():
    """Return API keys from environment."""
    return {
        "google": os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY"),
        "openai": os.getenv("OPENAI_API_KEY"),
        "xai": os.getenv("XAI_API_KEY"),
        "deepseek": os.getenv("DEEPSEEK_API_KEY"),
    }


@pytest.fixture
def preferences():
    """Preferences that deliver on an immediate interval (no timers)."""
    return Preferences(streaming_speed_ms=10, first_delta_timeout=None)


@pytest.fixture
def store(preferences):
    """Session store with one default session."""
    return SessionStore(preferences=preferences)


@pytest.fixture
def fake_adapters():
    """One fake adapter per provider."""
    return {tag: FakeAdapter(tag) for tag in ProviderTag}


@pytest.fixture
def registry(fake_adapters):
    """Registry whose adapters are the fakes."""
    registry = AdapterRegistry(StaticCredentials({}))
    for tag, adapter in fake_adapters.items():
        registry.register(tag, adapter)
    return registry


@pytest.fixture
def reasoning_script():
    """Script with interleaved auxiliary and main deltas."""
    return [
        TextDelta(text="Let me think. ", channel=DeltaChannel.AUXILIARY),
        TextDelta(text="Done.", channel=DeltaChannel.AUXILIARY),
        "The answer ",
        "is 4.",
        TokenUsage(prompt_tokens=3, completion_tokens=4, total_tokens=7),
    ]
