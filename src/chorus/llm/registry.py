"""Adapter registry.

Hides adapter lifecycle: one adapter per provider, created on first use
from the credential collaborator and reused for every later request.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from ..errors import ConfigurationError, CredentialError
from .base import ProviderAdapter
from .capabilities import ModelCatalog, default_catalog
from .factory import create_provider_adapter
from .models import ProbeResult, ProviderTag

if TYPE_CHECKING:
    from ..credentials import CredentialSource

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Caches provider adapters and answers model availability questions."""

    def __init__(
        self,
        credentials: "CredentialSource",
        catalog: ModelCatalog | None = None,
        adapter_config: dict[str, dict[str, Any]] | None = None,
        factory: Callable[..., ProviderAdapter] = create_provider_adapter,
    ):
        """Initialize the registry.

        Args:
            credentials: Source of provider API keys
            catalog: Model catalogue shared with the adapters
            adapter_config: Extra per-provider kwargs for the factory (e.g. base_url)
            factory: Adapter factory, ``create_provider_adapter`` by default
        """
        self._credentials = credentials
        self._catalog = catalog or default_catalog
        self._adapter_config = adapter_config or {}
        self._factory = factory
        self._adapters: dict[ProviderTag, ProviderAdapter] = {}

    @property
    def catalog(self) -> ModelCatalog:
        return self._catalog

    def register(self, provider: ProviderTag | str, adapter: ProviderAdapter) -> None:
        """Install a ready-made adapter for a provider."""
        self._adapters[ProviderTag(provider)] = adapter

    def adapter_for(self, provider: ProviderTag | str) -> ProviderAdapter:
        """Get or create the adapter for a provider.

        Raises:
            CredentialError: If no API key is configured for the provider
        """
        tag = ProviderTag(provider)
        if tag in self._adapters:
            return self._adapters[tag]

        api_key = self._credentials.get_credential(tag)
        if not api_key:
            raise CredentialError(f"No API key configured for {tag.value}", provider=tag.value)

        config = dict(self._adapter_config.get(tag.value, {}))
        adapter = self._factory(tag.value, api_key=api_key, catalog=self._catalog, **config)
        self._adapters[tag] = adapter
        logger.debug("Created %s adapter", tag.value)
        return adapter

    def adapter_for_model(self, model_name: str) -> ProviderAdapter:
        """Get the adapter serving a catalogue model.

        Raises:
            UnknownModelError: If the model is not in the catalogue
            CredentialError: If no API key is configured for its provider
        """
        return self.adapter_for(self._catalog.provider_for(model_name))

    async def probe(self, model_name: str) -> ProbeResult:
        """Probe one model. Missing configuration reports unavailable."""
        try:
            adapter = self.adapter_for_model(model_name)
        except ConfigurationError as e:
            return ProbeResult(available=False, supports_streaming=False, error=e.message)
        return await adapter.probe(model_name)

    async def probe_all(self, model_names: list[str] | None = None) -> dict[str, ProbeResult]:
        """Probe models concurrently.

        When nothing is available the default model is reported available
        so a host always has one model to offer.
        """
        names = model_names or [spec.id for spec in self._catalog.models]
        results = await asyncio.gather(*(self.probe(name) for name in names))
        capabilities = dict(zip(names, results))

        if not any(result.available for result in capabilities.values()):
            logger.error("No models available, falling back to default model")
            capabilities[self._catalog.default_model] = ProbeResult(
                available=True, supports_streaming=True
            )
        return capabilities

    async def close(self) -> None:
        """Close every adapter created so far."""
        adapters = list(self._adapters.values())
        self._adapters.clear()
        for adapter in adapters:
            await adapter.close()
