"""OpenAI-compatible adapter.

Serves OpenAI directly and is the base for every provider that speaks the
Chat Completions protocol (xAI, DeepSeek).
"""

from collections.abc import AsyncIterator
from typing import Any

import openai
from openai import AsyncOpenAI

from ...errors import (
    ChatError,
    ConfigurationError,
    CredentialError,
    MalformedResponseError,
    ModelUnavailableError,
    ProviderRefusal,
    TransportError,
)
from ..base import ProviderAdapter, shape_messages
from ..capabilities import ModelCapabilities, ModelCatalog
from ..models import (
    ChatMessage,
    DeltaChannel,
    GenerationRequest,
    LLMResponse,
    ProviderTag,
    TextDelta,
    TokenUsage,
)


def translate_openai_error(error: openai.OpenAIError, provider: str, model: str) -> ChatError:
    """Map an OpenAI SDK exception onto the chat error taxonomy."""
    context = {"provider": provider, "model": model}
    message = str(error) or type(error).__name__

    if isinstance(error, openai.APIResponseValidationError):
        return MalformedResponseError(message, **context)
    if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return CredentialError(message, **context)
    if isinstance(error, openai.NotFoundError):
        return ModelUnavailableError(message, **context)
    if isinstance(error, openai.APIConnectionError):
        return TransportError(message, **context)
    if isinstance(error, openai.APIError):
        return ProviderRefusal(message, **context)
    return ConfigurationError(message, **context)


def _to_wire(system_prompt: str | None, turns: list[ChatMessage]) -> list[dict[str, str]]:
    wire = []
    if system_prompt:
        wire.append({"role": "system", "content": system_prompt})
    for msg in turns:
        wire.append({
            "role": "user" if msg.role == "user" else "assistant",
            "content": msg.content
        })
    return wire


class OpenAIAdapter(ProviderAdapter):
    """OpenAI Chat Completions adapter.

    Hidden design decisions:
    - OpenAI API client initialization
    - Message format conversion (system role or folded prompt)
    - Error translation
    - Authentication mechanism
    """

    provider = ProviderTag.OPENAI

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        organization: str | None = None,
        catalog: ModelCatalog | None = None,
        **client_kwargs: Any
    ):
        """Initialize the adapter.

        Args:
            api_key: Provider API key
            base_url: Optional custom API base URL
            organization: Optional organization ID
            catalog: Model catalogue (defaults to the built-in one)
            **client_kwargs: Additional kwargs for AsyncOpenAI client
        """
        super().__init__(catalog)
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            organization=organization,
            **client_kwargs
        )

    def _auxiliary_text(self, payload: Any) -> str | None:
        """Extract reasoning text from a delta or message, if the provider sends one."""
        return None

    def _request_params(
        self,
        request: GenerationRequest,
        capabilities: ModelCapabilities
    ) -> dict[str, Any]:
        system_prompt, turns = shape_messages(request, capabilities.system_prompt_mode)
        return {
            "model": capabilities.api_name,
            "messages": _to_wire(system_prompt, turns),
            "temperature": request.parameters.temperature,
            "max_tokens": min(request.parameters.max_output_tokens, capabilities.max_context),
        }

    async def complete(self, request: GenerationRequest) -> LLMResponse:
        """Generate a chat completion.

        Args:
            request: Provider-agnostic request

        Returns:
            LLMResponse with generated content
        """
        capabilities = self.resolve(request.model_name)
        try:
            completion = await self._client.chat.completions.create(
                **self._request_params(request, capabilities)
            )
        except openai.OpenAIError as e:
            raise translate_openai_error(e, self.provider.value, request.model_name) from e

        if not completion.choices:
            raise MalformedResponseError(
                "Completion has no choices",
                provider=self.provider.value,
                model=request.model_name,
            )

        usage = None
        if completion.usage:
            usage = {
                "prompt_tokens": completion.usage.prompt_tokens,
                "completion_tokens": completion.usage.completion_tokens,
                "total_tokens": completion.usage.total_tokens
            }

        message = completion.choices[0].message
        return LLMResponse(
            content=message.content or "",
            model=completion.model or capabilities.api_name,
            auxiliary_content=self._auxiliary_text(message) if capabilities.auxiliary_channel else None,
            usage=usage
        )

    async def _stream(
        self,
        request: GenerationRequest,
        capabilities: ModelCapabilities
    ) -> AsyncIterator[TextDelta | TokenUsage]:
        """Yield channel-tagged deltas from a Chat Completions stream."""
        try:
            stream = await self._client.chat.completions.create(
                **self._request_params(request, capabilities),
                stream=True,
                stream_options={"include_usage": True},
            )
            try:
                async for chunk in stream:
                    if chunk.usage is not None:
                        yield TokenUsage(
                            prompt_tokens=chunk.usage.prompt_tokens,
                            completion_tokens=chunk.usage.completion_tokens,
                            total_tokens=chunk.usage.total_tokens,
                        )
                    if not chunk.choices:
                        continue

                    delta = chunk.choices[0].delta
                    if delta is None:
                        continue
                    if capabilities.auxiliary_channel:
                        reasoning = self._auxiliary_text(delta)
                        if reasoning:
                            yield TextDelta(text=reasoning, channel=DeltaChannel.AUXILIARY)
                    if delta.content:
                        yield TextDelta(text=delta.content)
            finally:
                await stream.close()
        except openai.OpenAIError as e:
            raise translate_openai_error(e, self.provider.value, request.model_name) from e

    async def close(self) -> None:
        """Close the OpenAI client.

        Note: Uses the OpenAI SDK's async context manager for proper cleanup.
        See: https://github.com/openai/openai-python#async-usage
        """
        await self._client.close()
