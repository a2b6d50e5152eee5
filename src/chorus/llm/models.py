import asyncio
from collections.abc import AsyncIterator
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..config import DEFAULT_MAX_OUTPUT_TOKENS, DEFAULT_TEMPERATURE
from ..errors import GenerationTimeoutError


class ProviderTag(str, Enum):
    """Provider family a model is served by."""

    GOOGLE = "google"
    OPENAI = "openai"
    XAI = "xai"
    DEEPSEEK = "deepseek"


class DeltaChannel(str, Enum):
    """Which text channel a delta belongs to."""

    MAIN = "main"              # The answer text
    AUXILIARY = "auxiliary"    # Reasoning / thinking trace


class TextDelta(BaseModel):
    """An incremental fragment of generated text."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Fragment text")
    channel: DeltaChannel = Field(default=DeltaChannel.MAIN, description="Target channel")


class TokenUsage(BaseModel):
    """Token usage reported by a provider at the end of a stream."""

    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class StreamingResponse:
    """Wrapper for streaming LLM responses that captures usage info.

    Acts as an async iterator of TextDelta values. Adapters may also yield a
    TokenUsage item; it is absorbed here and exposed through ``usage`` rather
    than handed to the caller.

    Everything yielded so far is accumulated in ``content`` and
    ``auxiliary_content``, so a stream that fails mid-way still leaves the
    received text available to the caller.

    Usage:
        stream = adapter.stream_completion(request)
        async for delta in stream:
            print(delta.text, end="")
        print(stream.usage)  # {"prompt_tokens": 100, "completion_tokens": 50, ...}
    """

    def __init__(
        self,
        async_iter: AsyncIterator[TextDelta | TokenUsage],
        first_delta_timeout: float | None = None,
    ):
        """Initialize with an async iterator of deltas.

        Args:
            async_iter: Async iterator yielding TextDelta (and optionally TokenUsage) items
            first_delta_timeout: Seconds to wait for the first delta (None waits forever)
        """
        self._iter = async_iter
        self._first_delta_timeout = first_delta_timeout
        self._received_first = False
        self._usage: TokenUsage | None = None
        self._main: list[str] = []
        self._auxiliary: list[str] = []

    @property
    def usage(self) -> dict[str, Any] | None:
        """Get token usage info (available after iteration completes)."""
        return self._usage.model_dump() if self._usage else None

    def set_usage(self, usage: TokenUsage) -> None:
        """Set token usage info."""
        self._usage = usage

    @property
    def content(self) -> str:
        """Main-channel text received so far."""
        return "".join(self._main)

    @property
    def auxiliary_content(self) -> str:
        """Auxiliary-channel text received so far."""
        return "".join(self._auxiliary)

    def __aiter__(self) -> "StreamingResponse":
        """Return self as async iterator."""
        return self

    async def __anext__(self) -> TextDelta:
        """Get the next delta from the underlying iterator."""
        while True:
            item = await self._next_item()
            if isinstance(item, TokenUsage):
                self._usage = item
                continue
            self._received_first = True
            if item.channel == DeltaChannel.AUXILIARY:
                self._auxiliary.append(item.text)
            else:
                self._main.append(item.text)
            return item

    async def _next_item(self) -> TextDelta | TokenUsage:
        if self._received_first or self._first_delta_timeout is None:
            return await self._iter.__anext__()

        async def _first() -> TextDelta | TokenUsage:
            return await self._iter.__anext__()

        try:
            return await asyncio.wait_for(_first(), timeout=self._first_delta_timeout)
        except asyncio.TimeoutError:
            raise GenerationTimeoutError(
                f"No response within {self._first_delta_timeout:g}s"
            ) from None

    async def aclose(self) -> None:
        """Terminate the underlying request."""
        aclose = getattr(self._iter, "aclose", None)
        if aclose is not None:
            await aclose()


class ChatMessage(BaseModel):
    """Represents a chat message in a conversation."""

    model_config = ConfigDict(frozen=True)

    role: str = Field(description="Role of the message sender: 'user', 'assistant', or 'system'")
    content: str = Field(description="Content of the message")


class GenerationParameters(BaseModel):
    """Sampling parameters for one session."""

    model_config = ConfigDict(frozen=True)

    temperature: float = Field(
        default=DEFAULT_TEMPERATURE,
        ge=0.0,
        le=2.0,
        description="Sampling temperature"
    )
    max_output_tokens: int = Field(
        default=DEFAULT_MAX_OUTPUT_TOKENS,
        ge=1,
        description="Maximum tokens to generate"
    )


class GenerationRequest(BaseModel):
    """Provider-agnostic completion request, built fresh per call."""

    model_config = ConfigDict(frozen=True)

    history: list[ChatMessage] = Field(default_factory=list, description="Prior conversation turns")
    system_prompt: str | None = Field(
        default=None,
        description="Session system prompt; adapters place it per the model's system prompt mode"
    )
    model_name: str = Field(description="Catalogue model id")
    parameters: GenerationParameters = Field(default_factory=GenerationParameters)


class LLMResponse(BaseModel):
    """Response from a non-streaming completion."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(description="Generated text content")
    model: str = Field(description="Model that generated the response")
    auxiliary_content: str | None = Field(
        default=None,
        description="Reasoning / thinking trace, when the model emits one"
    )
    usage: dict[str, int] | None = Field(
        default=None,
        description="Token usage information"
    )


class ProbeResult(BaseModel):
    """Outcome of a model availability probe."""

    model_config = ConfigDict(frozen=True)

    available: bool
    supports_streaming: bool
    error: str | None = Field(default=None, description="Why the model is unavailable")
