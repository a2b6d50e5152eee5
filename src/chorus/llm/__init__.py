from .base import ProviderAdapter, shape_messages
from .capabilities import (
    DEFAULT_MODELS,
    ModelCapabilities,
    ModelCatalog,
    ModelSpec,
    ProviderCapabilities,
    SystemPromptMode,
    default_catalog,
)
from .factory import create_provider_adapter
from .models import (
    ChatMessage,
    DeltaChannel,
    GenerationParameters,
    GenerationRequest,
    LLMResponse,
    ProbeResult,
    ProviderTag,
    StreamingResponse,
    TextDelta,
    TokenUsage,
)
from .providers import DeepSeekAdapter, GeminiAdapter, OpenAIAdapter, XAIAdapter
from .registry import AdapterRegistry

__all__ = [
    "ProviderAdapter",
    "shape_messages",
    "create_provider_adapter",
    "AdapterRegistry",
    "DEFAULT_MODELS",
    "ModelCapabilities",
    "ModelCatalog",
    "ModelSpec",
    "ProviderCapabilities",
    "SystemPromptMode",
    "default_catalog",
    "ChatMessage",
    "DeltaChannel",
    "GenerationParameters",
    "GenerationRequest",
    "LLMResponse",
    "ProbeResult",
    "ProviderTag",
    "StreamingResponse",
    "TextDelta",
    "TokenUsage",
    "DeepSeekAdapter",
    "GeminiAdapter",
    "OpenAIAdapter",
    "XAIAdapter",
]
