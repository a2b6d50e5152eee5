from typing import Any

from .base import ProviderAdapter
from .providers import DeepSeekAdapter, GeminiAdapter, OpenAIAdapter, XAIAdapter


def create_provider_adapter(provider: str, **config: Any) -> ProviderAdapter:
    """Create a provider adapter instance.

    This factory function hides the instantiation logic for different providers.

    Args:
        provider: Provider tag ('google', 'openai', 'xai', 'deepseek')
        **config: Provider-specific configuration
            For Google (Gemini):
                - api_key: str (required)
            For OpenAI:
                - api_key: str (required)
                - base_url: str | None
                - organization: str | None
            For xAI:
                - api_key: str (required)
                - base_url: str (default: 'https://api.x.ai/v1')
            For DeepSeek:
                - api_key: str (required)
                - base_url: str (default: 'https://api.deepseek.com')
            All adapters accept ``catalog`` to use a custom ModelCatalog.

    Returns:
        Initialized provider adapter

    Raises:
        ValueError: If provider type is not supported
        TypeError: If required configuration is missing

    Examples:
        >>> adapter = create_provider_adapter("deepseek", api_key="sk-...")

        >>> adapter = create_provider_adapter("google", api_key="...")
    """
    provider_lower = provider.lower()

    if provider_lower in ("google", "gemini"):
        if "api_key" not in config:
            raise TypeError("Google provider requires 'api_key' in config")
        return GeminiAdapter(**config)

    if provider_lower == "openai":
        if "api_key" not in config:
            raise TypeError("OpenAI provider requires 'api_key' in config")
        return OpenAIAdapter(**config)

    if provider_lower in ("xai", "grok"):
        if "api_key" not in config:
            raise TypeError("xAI provider requires 'api_key' in config")
        return XAIAdapter(**config)

    if provider_lower == "deepseek":
        if "api_key" not in config:
            raise TypeError("DeepSeek provider requires 'api_key' in config")
        return DeepSeekAdapter(**config)

    raise ValueError(
        f"Unsupported provider: {provider}. "
        f"Supported providers: 'google', 'openai', 'xai', 'deepseek'"
    )
