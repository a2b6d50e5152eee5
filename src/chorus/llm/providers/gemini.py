"""Google Gemini adapter.

Uses the official Google GenAI SDK for async streaming completions.
Reference: https://github.com/googleapis/python-genai

Note: Gemini can block a prompt through safety filtering. A blocked prompt
is reported as a provider refusal rather than an empty answer.
"""

from collections.abc import AsyncIterator
from typing import Any

import httpx
from google import genai
from google.genai import errors, types

from ...errors import (
    ChatError,
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

# Default safety settings - relaxed to avoid blocking code-related content
DEFAULT_SAFETY_SETTINGS = [
    types.SafetySetting(category="HARM_CATEGORY_HARASSMENT", threshold="BLOCK_ONLY_HIGH"),
    types.SafetySetting(category="HARM_CATEGORY_HATE_SPEECH", threshold="BLOCK_ONLY_HIGH"),
    types.SafetySetting(category="HARM_CATEGORY_SEXUALLY_EXPLICIT", threshold="BLOCK_ONLY_HIGH"),
    types.SafetySetting(category="HARM_CATEGORY_DANGEROUS_CONTENT", threshold="BLOCK_ONLY_HIGH"),
]


def translate_gemini_error(error: Exception, model: str) -> ChatError:
    """Map a GenAI SDK or transport exception onto the chat error taxonomy."""
    context = {"provider": ProviderTag.GOOGLE.value, "model": model}

    if isinstance(error, errors.APIError):
        message = error.message or str(error)
        if error.code in (401, 403):
            return CredentialError(message, **context)
        if error.code == 404:
            return ModelUnavailableError(message, **context)
        return ProviderRefusal(message, **context)
    if isinstance(error, httpx.HTTPError):
        return TransportError(str(error) or type(error).__name__, **context)
    return MalformedResponseError(str(error) or type(error).__name__, **context)


def _usage_from(metadata: Any) -> TokenUsage:
    return TokenUsage(
        prompt_tokens=metadata.prompt_token_count or 0,
        completion_tokens=metadata.candidates_token_count or 0,
        total_tokens=metadata.total_token_count or 0,
    )


class GeminiAdapter(ProviderAdapter):
    """Google Gemini adapter.

    Hidden design decisions:
    - Google GenAI client initialization
    - Message format conversion (``model`` role, system_instruction)
    - Routing of thought parts to the auxiliary channel
    - Relaxed safety settings to avoid blocking code content
    """

    provider = ProviderTag.GOOGLE

    def __init__(
        self,
        api_key: str,
        catalog: ModelCatalog | None = None,
        **client_kwargs: Any
    ):
        """Initialize Gemini adapter.

        Args:
            api_key: Google AI API key
            catalog: Model catalogue (defaults to the built-in one)
            **client_kwargs: Additional kwargs for Client
        """
        super().__init__(catalog)
        self._client = genai.Client(api_key=api_key, **client_kwargs)

    def _convert_messages(
        self,
        system_prompt: str | None,
        turns: list[ChatMessage]
    ) -> tuple[str | None, list[types.Content]]:
        """Convert chat turns to Gemini contents.

        Returns:
            Tuple of (system_instruction, contents)
        """
        contents = [
            types.Content(
                role="user" if msg.role == "user" else "model",
                parts=[types.Part(text=msg.content)]
            )
            for msg in turns
        ]

        # Gemini rejects an empty contents list; a prompt-only call becomes a user turn
        if not contents and system_prompt:
            return None, [types.Content(role="user", parts=[types.Part(text=system_prompt)])]

        return system_prompt, contents

    def _build_config(
        self,
        request: GenerationRequest,
        capabilities: ModelCapabilities,
        system_instruction: str | None
    ) -> types.GenerateContentConfig:
        # Use tool_config with mode=NONE to disable automatic function detection
        tool_config = types.ToolConfig(
            function_calling_config=types.FunctionCallingConfig(mode="NONE")
        )
        config = types.GenerateContentConfig(
            temperature=request.parameters.temperature,
            max_output_tokens=min(request.parameters.max_output_tokens, capabilities.max_context),
            system_instruction=system_instruction,
            safety_settings=DEFAULT_SAFETY_SETTINGS,
            tool_config=tool_config,
        )
        if capabilities.auxiliary_channel:
            config.thinking_config = types.ThinkingConfig(include_thoughts=True)
        return config

    def _prepare(
        self,
        request: GenerationRequest,
        capabilities: ModelCapabilities
    ) -> tuple[list[types.Content], types.GenerateContentConfig]:
        system_prompt, turns = shape_messages(request, capabilities.system_prompt_mode)
        system_instruction, contents = self._convert_messages(system_prompt, turns)
        return contents, self._build_config(request, capabilities, system_instruction)

    def _split_parts(self, response: Any) -> list[TextDelta]:
        """Extract channel-tagged text from a response or stream chunk."""
        feedback = getattr(response, "prompt_feedback", None)
        if feedback is not None and feedback.block_reason:
            raise ProviderRefusal(
                f"Prompt blocked: {feedback.block_reason}",
                provider=self.provider.value,
            )

        if not response.candidates:
            return []

        candidate = response.candidates[0]
        if not candidate.content or not candidate.content.parts:
            return []

        deltas = []
        for part in candidate.content.parts:
            if not part.text:
                continue
            channel = DeltaChannel.AUXILIARY if part.thought else DeltaChannel.MAIN
            deltas.append(TextDelta(text=part.text, channel=channel))
        return deltas

    async def complete(self, request: GenerationRequest) -> LLMResponse:
        """Generate a chat completion using Google Gemini.

        Args:
            request: Provider-agnostic request

        Returns:
            LLMResponse with generated content
        """
        capabilities = self.resolve(request.model_name)
        contents, config = self._prepare(request, capabilities)

        try:
            response = await self._client.aio.models.generate_content(
                model=capabilities.api_name,
                contents=contents,
                config=config
            )
        except (errors.APIError, httpx.HTTPError) as e:
            raise translate_gemini_error(e, request.model_name) from e

        deltas = self._split_parts(response)
        main = "".join(d.text for d in deltas if d.channel == DeltaChannel.MAIN)
        auxiliary = "".join(d.text for d in deltas if d.channel == DeltaChannel.AUXILIARY)

        return LLMResponse(
            content=main,
            model=capabilities.api_name,
            auxiliary_content=auxiliary or None,
            usage=_usage_from(response.usage_metadata).model_dump() if response.usage_metadata else None
        )

    async def _stream(
        self,
        request: GenerationRequest,
        capabilities: ModelCapabilities
    ) -> AsyncIterator[TextDelta | TokenUsage]:
        """Yield channel-tagged deltas and capture usage from chunks."""
        contents, config = self._prepare(request, capabilities)
        usage = None

        try:
            stream = await self._client.aio.models.generate_content_stream(
                model=capabilities.api_name, contents=contents, config=config
            )
            async for chunk in stream:
                # usage_metadata is cumulative; the final chunk carries the totals
                if chunk.usage_metadata:
                    usage = _usage_from(chunk.usage_metadata)
                for delta in self._split_parts(chunk):
                    yield delta
        except (errors.APIError, httpx.HTTPError) as e:
            raise translate_gemini_error(e, request.model_name) from e

        if usage:
            yield usage

    async def close(self) -> None:
        """Close the Gemini client.

        Note: The Google GenAI client doesn't require explicit closing,
        but we implement this for interface consistency.
        """
        pass
