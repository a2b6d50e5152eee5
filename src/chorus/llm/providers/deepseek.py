from typing import Any

from ..capabilities import ModelCatalog
from ..models import ProviderTag
from .openai import OpenAIAdapter


class DeepSeekAdapter(OpenAIAdapter):
    """DeepSeek adapter using the OpenAI-compatible API.

    Hidden design decisions:
    - DeepSeek API client initialization (via OpenAI SDK)
    - Routing of ``reasoning_content`` (deepseek-reasoner) to the auxiliary channel
    """

    provider = ProviderTag.DEEPSEEK

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.deepseek.com",
        catalog: ModelCatalog | None = None,
        **client_kwargs: Any
    ):
        """Initialize DeepSeek adapter.

        Args:
            api_key: DeepSeek API key
            base_url: DeepSeek API base URL (default: https://api.deepseek.com)
            catalog: Model catalogue (defaults to the built-in one)
            **client_kwargs: Additional kwargs for AsyncOpenAI client
        """
        super().__init__(api_key=api_key, base_url=base_url, catalog=catalog, **client_kwargs)

    def _auxiliary_text(self, payload: Any) -> str | None:
        # Not part of the OpenAI schema; the SDK keeps unknown fields as attributes
        return getattr(payload, "reasoning_content", None)
