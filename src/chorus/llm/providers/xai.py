from typing import Any

from ..capabilities import ModelCatalog
from ..models import ProviderTag
from .openai import OpenAIAdapter


class XAIAdapter(OpenAIAdapter):
    """xAI (Grok) adapter using the OpenAI-compatible API.

    The catalogue maps ``grok-*-latest`` ids to their wire names.
    """

    provider = ProviderTag.XAI

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.x.ai/v1",
        catalog: ModelCatalog | None = None,
        **client_kwargs: Any
    ):
        super().__init__(api_key=api_key, base_url=base_url, catalog=catalog, **client_kwargs)
