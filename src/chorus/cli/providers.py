"""Collaborator factory functions for the CLI.

Centralizes creation of the persistence store and the adapter registry
from environment variables. Hides configuration details from command
implementations.
"""

import os
from pathlib import Path
from typing import Any

from ..credentials import EnvironmentCredentials
from ..llm import AdapterRegistry
from ..storage import KeyValueStore, create_key_value_store

DEFAULT_DB_PATH = Path.home() / ".chorus" / "chorus.db"


def get_key_value_store(path: Path | None = None) -> KeyValueStore:
    """Create the persistence store.

    Args:
        path: SQLite file; overrides the environment

    Returns:
        SQLite key-value store (not yet connected)

    Environment variables:
        CHORUS_DB: SQLite file path (default: ~/.chorus/chorus.db)
        CHORUS_STORAGE: Backend type, "sqlite" or "memory" (default: sqlite)
    """
    backend = os.getenv("CHORUS_STORAGE", "sqlite")
    if backend == "memory":
        return create_key_value_store("memory")
    return create_key_value_store(
        "sqlite",
        path=path or Path(os.getenv("CHORUS_DB", str(DEFAULT_DB_PATH))),
    )


def get_registry() -> AdapterRegistry:
    """Create the adapter registry from environment variables.

    Environment variables:
        GEMINI_API_KEY / GOOGLE_API_KEY, OPENAI_API_KEY, XAI_API_KEY,
        DEEPSEEK_API_KEY: Provider keys
        OPENAI_BASE_URL: Optional OpenAI-compatible endpoint override
    """
    adapter_config: dict[str, dict[str, Any]] = {}
    openai_base_url = os.getenv("OPENAI_BASE_URL")
    if openai_base_url:
        adapter_config["openai"] = {"base_url": openai_base_url}

    return AdapterRegistry(EnvironmentCredentials(), adapter_config=adapter_config)
