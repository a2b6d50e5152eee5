"""Session store.

Owns the session collection and every mutation of it. All mutations are
keyed by session id and message id, update the session's ``updated_at``
and notify change listeners. The collection is never left without an
active session.
"""

import logging
from collections.abc import Callable

from ..config import BRANCH_TITLE_PREFIX_LENGTH, PLACEHOLDER_TITLE
from ..errors import SessionNotFoundError
from ..llm.capabilities import ModelCatalog, default_catalog
from ..llm.models import GenerationParameters, ProviderTag
from ..preferences import Preferences
from .models import Message, Role, Session, SessionCollection, new_id, utcnow

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str | None], None]


class SessionStore:
    """In-memory owner of all sessions and the active pointer."""

    def __init__(
        self,
        collection: SessionCollection | None = None,
        preferences: Preferences | None = None,
        catalog: ModelCatalog | None = None,
    ):
        """Initialize the store.

        Args:
            collection: Existing sessions (a default session is created if empty)
            preferences: Defaults for new sessions
            catalog: Model catalogue used to derive providers from model names
        """
        self._collection = collection or SessionCollection()
        self._preferences = preferences or Preferences()
        self._catalog = catalog or default_catalog
        self._listeners: list[ChangeListener] = []
        self._ensure_active()

    @property
    def collection(self) -> SessionCollection:
        return self._collection

    @property
    def catalog(self) -> ModelCatalog:
        return self._catalog

    @property
    def preferences(self) -> Preferences:
        return self._preferences

    @preferences.setter
    def preferences(self, value: Preferences) -> None:
        self._preferences = value

    @property
    def sessions(self) -> list[Session]:
        return list(self._collection.sessions)

    @property
    def active_session_id(self) -> str:
        return self._collection.active_session_id

    @property
    def active_session(self) -> Session:
        return self._collection.active

    def get_session(self, session_id: str) -> Session | None:
        return self._collection.get(session_id)

    def require_session(self, session_id: str) -> Session:
        """Look up a session.

        Raises:
            SessionNotFoundError: If no session has this id
        """
        session = self._collection.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session not found: {session_id}")
        return session

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, session_id: str | None) -> None:
        for listener in list(self._listeners):
            listener(session_id)

    def _provider_for(self, model_name: str, fallback: ProviderTag) -> ProviderTag:
        if model_name in self._catalog:
            return self._catalog.provider_for(model_name)
        return fallback

    def _default_session(self) -> Session:
        prefs = self._preferences
        return Session(
            model_name=prefs.default_model,
            provider=self._provider_for(prefs.default_model, prefs.provider),
            system_prompt=prefs.system_prompt,
            parameters=prefs.generation_parameters(),
        )

    def _ensure_active(self) -> None:
        if not self._collection.sessions:
            self._collection.sessions.append(self._default_session())
        if self._collection.active is None:
            self._collection.active_session_id = self._collection.sessions[0].id

    def create_session(
        self,
        seed_model: str | None = None,
        seed_provider: ProviderTag | str | None = None,
        seed_system_prompt: str | None = None,
        activate: bool = True,
    ) -> Session:
        """Create a fresh session.

        Unseeded values are taken from the active session, then from preferences.

        Args:
            seed_model: Model for the new session
            seed_provider: Provider (derived from the model when omitted)
            seed_system_prompt: System prompt for the new session
            activate: Make the new session active

        Returns:
            The new session
        """
        active = self.active_session
        model = seed_model or (active.model_name if active else self._preferences.default_model)

        if seed_provider is not None:
            provider = ProviderTag(seed_provider)
        elif seed_model is None and active is not None:
            provider = active.provider
        else:
            provider = self._provider_for(model, self._preferences.provider)

        if seed_system_prompt is None:
            seed_system_prompt = active.system_prompt if active else self._preferences.system_prompt

        session = Session(
            model_name=model,
            provider=provider,
            system_prompt=seed_system_prompt,
            parameters=self._preferences.generation_parameters(),
        )
        self._collection.sessions.append(session)
        if activate:
            self._collection.active_session_id = session.id
        logger.debug("Created session %s (%s)", session.id, model)
        self._notify(session.id)
        return session

    def delete_session(self, session_id: str) -> bool:
        """Delete a session.

        Deleting the active session promotes the first remaining one, or a
        fresh default session when none remain.

        Returns:
            False if no session has this id
        """
        session = self._collection.get(session_id)
        if session is None:
            return False

        self._collection.sessions.remove(session)
        if self._collection.active_session_id == session_id:
            self._collection.active_session_id = None
        self._ensure_active()
        logger.debug("Deleted session %s", session_id)
        self._notify(session_id)
        return True

    def select_session(self, session_id: str) -> bool:
        """Make a session active. Returns False for unknown ids."""
        if self._collection.get(session_id) is None:
            return False
        self._collection.active_session_id = session_id
        self._notify(session_id)
        return True

    def append_message(
        self,
        session_id: str,
        role: Role | str,
        content: str,
        *,
        is_streaming: bool = False,
        provider: ProviderTag | None = None,
        model_name: str | None = None,
    ) -> Message:
        """Append a message to a session.

        Raises:
            SessionNotFoundError: If no session has this id
        """
        session = self.require_session(session_id)
        message = Message(
            role=Role(role),
            content=content,
            is_streaming=is_streaming,
            provider=provider,
            model_name=model_name,
        )
        session.messages.append(message)
        session.touch()
        self._notify(session_id)
        return message

    def update_message_content(
        self,
        session_id: str,
        message_id: str,
        content: str,
        auxiliary_content: str | None = None,
    ) -> bool:
        """Replace the text of a streaming message.

        Finalized messages are immutable; updating one is refused.

        Returns:
            True if the message was updated
        """
        session = self._collection.get(session_id)
        message = session.get_message(message_id) if session else None
        if message is None or not message.is_streaming:
            return False

        message.content = content
        if auxiliary_content is not None:
            message.auxiliary_content = auxiliary_content
        session.touch()
        self._notify(session_id)
        return True

    def finalize_message(
        self,
        session_id: str,
        message_id: str,
        *,
        content: str | None = None,
        auxiliary_content: str | None = None,
        provider: ProviderTag | None = None,
        model_name: str | None = None,
    ) -> bool:
        """End streaming for a message, optionally setting its final text and tags."""
        session = self._collection.get(session_id)
        message = session.get_message(message_id) if session else None
        if message is None:
            return False

        if content is not None:
            message.content = content
        if auxiliary_content:
            message.auxiliary_content = auxiliary_content
        if provider is not None:
            message.provider = provider
        if model_name is not None:
            message.model_name = model_name
        message.is_streaming = False
        session.touch()
        self._notify(session_id)
        return True

    def branch_session(self, source_id: str, upto_message_id: str) -> Session | None:
        """Create a session holding the history strictly before a message.

        Copied messages get fresh ids. The branch copies the source's model,
        provider, system prompt and parameters, and becomes active.

        Returns:
            The new session, or None if the source or cutoff does not exist
        """
        source = self._collection.get(source_id)
        if source is None:
            return None

        cutoff = source.index_of(upto_message_id)
        if cutoff < 0:
            return None

        now = utcnow()
        session = Session(
            title=f"Branched from {source.title[:BRANCH_TITLE_PREFIX_LENGTH]}...",
            messages=[
                message.model_copy(update={"id": new_id(), "is_streaming": False})
                for message in source.messages[:cutoff]
            ],
            created_at=now,
            updated_at=now,
            model_name=source.model_name,
            provider=source.provider,
            system_prompt=source.system_prompt,
            parameters=source.parameters,
        )
        self._collection.sessions.append(session)
        self._collection.active_session_id = session.id
        logger.debug("Branched session %s from %s at %s", session.id, source_id, upto_message_id)
        self._notify(session.id)
        return session

    def _mutate(self, session_id: str, **changes) -> bool:
        session = self._collection.get(session_id)
        if session is None:
            return False
        for name, value in changes.items():
            setattr(session, name, value)
        session.touch()
        self._notify(session_id)
        return True

    def set_session_title(self, session_id: str, title: str) -> bool:
        return self._mutate(session_id, title=title.strip() or PLACEHOLDER_TITLE)

    def set_session_model(self, session_id: str, model_name: str) -> bool:
        """Switch a session's model; its provider follows the catalogue.

        Raises:
            UnknownModelError: If the model is not in the catalogue
        """
        provider = self._catalog.provider_for(model_name)
        return self._mutate(session_id, model_name=model_name, provider=provider)

    def set_session_provider(self, session_id: str, provider: ProviderTag | str) -> bool:
        return self._mutate(session_id, provider=ProviderTag(provider))

    def set_session_system_prompt(self, session_id: str, system_prompt: str) -> bool:
        return self._mutate(session_id, system_prompt=system_prompt)

    def set_session_parameters(self, session_id: str, parameters: GenerationParameters) -> bool:
        return self._mutate(session_id, parameters=parameters)

    def clear_session(self, session_id: str) -> bool:
        """Drop every message of a session."""
        return self._mutate(session_id, messages=[])

    def truncate_for_regeneration(
        self,
        session_id: str,
        message_id: str,
        new_content: str,
    ) -> Message | None:
        """Edit a message and drop the assistant turns after it.

        User turns that follow the edited message are kept; only assistant
        turns after it are removed.

        Returns:
            The edited message, or None if the session or message does not exist
        """
        session = self._collection.get(session_id)
        if session is None:
            return None

        index = session.index_of(message_id)
        if index < 0:
            return None

        edited = session.messages[index]
        edited.content = new_content
        session.messages = [
            message
            for position, message in enumerate(session.messages)
            if position <= index or message.role == Role.USER
        ]
        session.touch()
        self._notify(session_id)
        return edited
