"""Credential collaborator.

Hides where API keys come from. The engine asks for a provider's secret
by tag and never logs or persists what it gets back.
"""

import os
from abc import ABC, abstractmethod
from collections.abc import Mapping

from .llm.capabilities import PROVIDER_CAPABILITIES
from .llm.models import ProviderTag


class CredentialSource(ABC):
    """Looks up the secret for a provider."""

    @abstractmethod
    def get_credential(self, provider: ProviderTag | str) -> str | None:
        """Return the provider's secret, or None when not configured."""

    def has_credential(self, provider: ProviderTag | str) -> bool:
        return bool(self.get_credential(provider))


class EnvironmentCredentials(CredentialSource):
    """Reads secrets from environment variables.

    Environment variables:
        GEMINI_API_KEY or GOOGLE_API_KEY: Google AI key
        OPENAI_API_KEY: OpenAI key
        XAI_API_KEY: xAI key
        DEEPSEEK_API_KEY: DeepSeek key
    """

    def __init__(self, environ: Mapping[str, str] | None = None):
        self._environ = os.environ if environ is None else environ

    def get_credential(self, provider: ProviderTag | str) -> str | None:
        tag = ProviderTag(provider)
        for name in PROVIDER_CAPABILITIES[tag].credential_env:
            value = self._environ.get(name)
            if value:
                return value
        return None


class StaticCredentials(CredentialSource):
    """Secrets supplied directly, keyed by provider tag."""

    def __init__(self, keys: Mapping[str, str | None] | None = None):
        self._keys = {ProviderTag(k): v for k, v in (keys or {}).items()}

    def get_credential(self, provider: ProviderTag | str) -> str | None:
        return self._keys.get(ProviderTag(provider)) or None


class ChainedCredentials(CredentialSource):
    """First source that knows a secret wins."""

    def __init__(self, *sources: CredentialSource):
        self._sources = sources

    def get_credential(self, provider: ProviderTag | str) -> str | None:
        for source in self._sources:
            value = source.get_credential(provider)
            if value:
                return value
        return None
