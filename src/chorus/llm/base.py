import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any

from ..config import PROBE_MAX_TOKENS, PROBE_PROMPT
from ..errors import ChatError, UnknownModelError
from .capabilities import ModelCapabilities, ModelCatalog, SystemPromptMode, default_catalog
from .models import (
    ChatMessage,
    GenerationParameters,
    GenerationRequest,
    LLMResponse,
    ProbeResult,
    ProviderTag,
    StreamingResponse,
    TextDelta,
    TokenUsage,
)

logger = logging.getLogger(__name__)

FOLD_SEPARATOR = "\n\n"


def shape_messages(
    request: GenerationRequest,
    mode: SystemPromptMode
) -> tuple[str | None, list[ChatMessage]]:
    """Place the system prompt according to the model's system prompt mode.

    Args:
        request: The provider-agnostic request
        mode: How the target model accepts a system prompt

    Returns:
        Tuple of (native system prompt or None, conversation turns). For
        FOLDED models the prompt is merged into the first user turn, or sent
        as a lone user turn when the history has none.
    """
    history = list(request.history)
    prompt = request.system_prompt
    if not prompt or not prompt.strip() or mode == SystemPromptMode.NONE:
        return None, history

    if mode == SystemPromptMode.NATIVE:
        return prompt, history

    for index, message in enumerate(history):
        if message.role == "user":
            history[index] = ChatMessage(
                role="user",
                content=f"{prompt}{FOLD_SEPARATOR}{message.content}"
            )
            return None, history

    return None, [ChatMessage(role="user", content=prompt), *history]


class ProviderAdapter(ABC):
    """Abstract base class for provider adapters.

    This module hides the design decision of which LLM provider serves a
    request. Implementations must handle provider-specific details like:
    - API client setup and authentication
    - Request/response format conversion (system prompt placement)
    - Channel tagging of reasoning/thinking output
    - Translation of SDK errors into the chat error taxonomy

    Supports async context manager protocol for proper resource cleanup:
        async with adapter:
            stream = adapter.stream_completion(request)
            async for delta in stream:
                ...
        # Automatically cleaned up
    """

    provider: ProviderTag

    def __init__(self, catalog: ModelCatalog | None = None):
        self._catalog = catalog or default_catalog

    def resolve(self, model_name: str) -> ModelCapabilities:
        """Resolve capabilities, rejecting models this adapter does not serve.

        Raises:
            UnknownModelError: If the model is unknown or belongs to another provider
        """
        capabilities = self._catalog.resolve(model_name)
        if capabilities.provider != self.provider:
            raise UnknownModelError(
                f"Model {model_name} is served by {capabilities.provider.value}, "
                f"not {self.provider.value}",
                provider=self.provider.value,
                model=model_name,
            )
        return capabilities

    def stream_completion(
        self,
        request: GenerationRequest,
        first_delta_timeout: float | None = None
    ) -> StreamingResponse:
        """Generate a streaming chat completion.

        The model is validated immediately; the network call starts on the
        first iteration of the returned stream.

        Args:
            request: Provider-agnostic request
            first_delta_timeout: Seconds to wait for the first delta

        Returns:
            StreamingResponse yielding TextDelta values tagged by channel

        Raises:
            UnknownModelError: If the model is not recognized
        """
        capabilities = self.resolve(request.model_name)
        return StreamingResponse(
            self._stream(request, capabilities),
            first_delta_timeout=first_delta_timeout,
        )

    @abstractmethod
    def _stream(
        self,
        request: GenerationRequest,
        capabilities: ModelCapabilities
    ) -> AsyncIterator[TextDelta | TokenUsage]:
        """Provider-specific delta generator.

        Raises:
            ChatError: Translated provider failures
        """

    @abstractmethod
    async def complete(self, request: GenerationRequest) -> LLMResponse:
        """Generate a non-streaming chat completion.

        Raises:
            ChatError: Translated provider failures
        """

    async def probe(self, model_name: str) -> ProbeResult:
        """Check that a model answers a minimal request.

        Never raises for configuration or provider failures; they are
        reported as an unavailable result.
        """
        try:
            capabilities = self.resolve(model_name)
            await self.complete(GenerationRequest(
                history=[ChatMessage(role="user", content=PROBE_PROMPT)],
                model_name=model_name,
                parameters=GenerationParameters(max_output_tokens=PROBE_MAX_TOKENS),
            ))
        except ChatError as e:
            logger.info("Model %s not available: %s", model_name, e.message)
            return ProbeResult(available=False, supports_streaming=False, error=e.message)

        return ProbeResult(available=True, supports_streaming=capabilities.supports_streaming)

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections or resources."""
        pass

    async def __aenter__(self) -> "ProviderAdapter":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit with automatic cleanup.

        Note: Suppresses "Event loop is closed" errors during cleanup.
        This is a known harmless race condition in httpx/anyio cleanup:
        https://github.com/encode/httpx/issues/914
        """
        try:
            await self.close()
        except RuntimeError as e:
            if "Event loop is closed" not in str(e):
                raise
