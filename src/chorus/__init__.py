"""
Chorus: a multi-provider streaming chat engine.

This package follows Parnas's information hiding principles,
where each module hides a specific design decision: which provider
serves a request, how streamed text is paced, how sessions are kept
and persisted, and how a request moves through its lifecycle.
"""

__version__ = "0.1.0"

from .credentials import ChainedCredentials, CredentialSource, EnvironmentCredentials, StaticCredentials
from .errors import ChatError, ConfigurationError, GenerationTimeoutError, ProviderRefusal, TransportError
from .llm import AdapterRegistry, ProviderTag, create_provider_adapter, default_catalog
from .orchestrator import ChatOrchestrator, GenerationOutcome, RequestState
from .preferences import Preferences
from .sessions import Message, Role, Session, SessionRepository, SessionStore, TitleGenerator
from .storage import create_key_value_store

__all__ = [
    "AdapterRegistry",
    "ChainedCredentials",
    "ChatError",
    "ChatOrchestrator",
    "ConfigurationError",
    "CredentialSource",
    "EnvironmentCredentials",
    "GenerationOutcome",
    "GenerationTimeoutError",
    "Message",
    "Preferences",
    "ProviderRefusal",
    "ProviderTag",
    "RequestState",
    "Role",
    "Session",
    "SessionRepository",
    "SessionStore",
    "StaticCredentials",
    "TitleGenerator",
    "TransportError",
    "create_key_value_store",
    "create_provider_adapter",
    "default_catalog",
]
