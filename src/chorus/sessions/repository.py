"""Session repository.

Maps the session collection and preferences onto a key-value store. The
on-disk format is JSON with ISO-8601 timestamps under fixed keys, and
records written by older clients are still readable.
"""

import json
import logging
from typing import Any

import pydantic

from ..config import (
    LEGACY_KEY_MAX_TOKENS,
    LEGACY_KEY_PROVIDER,
    LEGACY_KEY_STREAMING,
    LEGACY_KEY_STREAMING_SPEED,
    LEGACY_KEY_SYSTEM_PROMPTS,
    LEGACY_KEY_TEMPERATURE,
    STORAGE_KEY_ACTIVE_SESSION,
    STORAGE_KEY_PREFERENCES,
    STORAGE_KEY_SESSIONS,
)
from ..preferences import Preferences
from ..storage import KeyValueStore
from .models import Session, SessionCollection

logger = logging.getLogger(__name__)


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() == "true"


# Legacy key -> (preferences field, parser)
_LEGACY_PREFERENCE_KEYS = {
    LEGACY_KEY_STREAMING: ("streaming_enabled", _parse_bool),
    LEGACY_KEY_STREAMING_SPEED: ("streaming_speed_ms", int),
    LEGACY_KEY_PROVIDER: ("provider", str.strip),
    LEGACY_KEY_TEMPERATURE: ("temperature", float),
    LEGACY_KEY_MAX_TOKENS: ("max_output_tokens", int),
    LEGACY_KEY_SYSTEM_PROMPTS: ("system_prompts", json.loads),
}


class SessionRepository:
    """Loads and saves sessions and preferences through a KeyValueStore."""

    def __init__(self, store: KeyValueStore):
        self._store = store

    @property
    def store(self) -> KeyValueStore:
        return self._store

    async def load_collection(self) -> SessionCollection:
        """Load every saved session and the active pointer.

        Unreadable data yields an empty collection (the session store then
        creates a default session). Messages saved mid-stream are loaded as
        finalized.
        """
        raw = await self._store.get(STORAGE_KEY_SESSIONS)
        if raw is None:
            return SessionCollection()

        try:
            records = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Discarding unreadable session data: %s", e)
            return SessionCollection()

        if not isinstance(records, list):
            logger.warning("Discarding session data: expected a list, got %s", type(records).__name__)
            return SessionCollection()

        sessions = []
        for record in records:
            try:
                session = Session.model_validate(record)
            except pydantic.ValidationError as e:
                logger.warning("Skipping unreadable session record: %s", e.errors()[:1])
                continue
            for message in session.messages:
                message.is_streaming = False
            sessions.append(session)

        active_id = await self._store.get(STORAGE_KEY_ACTIVE_SESSION)
        if active_id is not None and not any(s.id == active_id for s in sessions):
            active_id = None

        logger.debug("Loaded %d sessions", len(sessions))
        return SessionCollection(sessions=sessions, active_session_id=active_id)

    async def save_collection(self, collection: SessionCollection) -> None:
        """Persist every session and the active pointer."""
        payload = [session.model_dump(mode="json") for session in collection.sessions]
        await self._store.set(STORAGE_KEY_SESSIONS, json.dumps(payload))
        if collection.active_session_id is not None:
            await self._store.set(STORAGE_KEY_ACTIVE_SESSION, collection.active_session_id)
        else:
            await self._store.delete(STORAGE_KEY_ACTIVE_SESSION)

    async def load_preferences(self) -> Preferences:
        """Load preferences.

        When the single preferences key is absent, values are migrated from
        the per-setting keys older clients wrote. Invalid values fall back
        to defaults.
        """
        raw = await self._store.get(STORAGE_KEY_PREFERENCES)
        if raw is not None:
            try:
                return Preferences.model_validate_json(raw)
            except pydantic.ValidationError as e:
                logger.warning("Discarding unreadable preferences: %s", e.errors()[:1])
                return Preferences()

        return await self._migrate_legacy_preferences()

    async def _migrate_legacy_preferences(self) -> Preferences:
        values: dict[str, Any] = {}
        for key, (field, parse) in _LEGACY_PREFERENCE_KEYS.items():
            raw = await self._store.get(key)
            if raw is None:
                continue
            try:
                values[field] = parse(raw)
            except ValueError:
                logger.warning("Ignoring unreadable legacy setting %s", key)

        if not values:
            return Preferences()

        preferences = Preferences()
        for field, value in values.items():
            try:
                preferences = preferences.updated(**{field: value})
            except pydantic.ValidationError:
                logger.warning("Ignoring invalid legacy value for %s", field)

        logger.info("Migrated %d legacy preference settings", len(values))
        return preferences

    async def save_preferences(self, preferences: Preferences) -> None:
        """Persist preferences under the single preferences key."""
        await self._store.set(STORAGE_KEY_PREFERENCES, preferences.model_dump_json())
