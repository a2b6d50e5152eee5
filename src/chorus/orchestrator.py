"""Chat orchestrator.

Drives one request per session through its lifecycle:

    IDLE -> SENDING -> STREAMING -> FINALIZED | FAILED | CANCELED

The orchestrator appends the user turn and a streaming placeholder,
resolves the adapter, pipes deltas through throttlers into the session
store, and is the single place where provider failures become a
displayable message. It never raises for generation failures; the
outcome carries the error instead.
"""

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .config import (
    CONFIGURATION_FALLBACK_TEXT,
    ERROR_FALLBACK_TEXT,
    PARTIAL_SEPARATOR,
    PLACEHOLDER_TITLE,
    TIMEOUT_FALLBACK_TEXT,
)
from .errors import ChatError, ConfigurationError, GenerationTimeoutError
from .llm.models import DeltaChannel, GenerationRequest, StreamingResponse
from .llm.registry import AdapterRegistry
from .preferences import Preferences
from .sessions.models import Message, Role, Session
from .sessions.store import SessionStore
from .sessions.titles import TitleGenerator
from .streaming import FlushScheduler, StreamThrottler, ThrottleConfig, create_scheduler

logger = logging.getLogger(__name__)

SchedulerFactory = Callable[[ThrottleConfig], FlushScheduler | None]


class RequestState(str, Enum):
    """Lifecycle of one in-flight request."""

    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    FINALIZED = "finalized"
    FAILED = "failed"
    CANCELED = "canceled"


class GenerationOutcome(BaseModel):
    """Result of one send or regenerate."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    session_id: str
    message_id: str = Field(description="Id of the assistant message")
    state: RequestState
    content: str = ""
    auxiliary_content: str | None = None
    error: ChatError | None = Field(default=None, description="Set when state is FAILED")
    usage: dict[str, int] | None = None


def fallback_text(error: ChatError) -> str:
    """User-facing text for a failed generation."""
    if isinstance(error, GenerationTimeoutError):
        return TIMEOUT_FALLBACK_TEXT
    if isinstance(error, ConfigurationError):
        return CONFIGURATION_FALLBACK_TEXT
    return ERROR_FALLBACK_TEXT


class ChatOrchestrator:
    """Coordinates sessions, adapters and throttled delivery.

    Usage:
        orchestrator = ChatOrchestrator(store, registry, preferences)
        outcome = await orchestrator.send_message("Hello")
        if outcome and outcome.state == RequestState.FAILED:
            print(outcome.error.to_dict())
        await orchestrator.aclose()

    One request may be in flight per session; a second send to a busy
    session is rejected. Different sessions generate concurrently.
    """

    def __init__(
        self,
        store: SessionStore,
        registry: AdapterRegistry,
        preferences: Preferences | None = None,
        title_generator: TitleGenerator | None = None,
        scheduler_factory: SchedulerFactory | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            store: Session store holding every session
            registry: Adapter registry
            preferences: User preferences (defaults to the store's)
            title_generator: Titles new sessions (defaults to one on the title model)
            scheduler_factory: Creates flush schedulers for the throttlers
        """
        self._store = store
        self._registry = registry
        self._preferences = preferences or store.preferences
        self._title_generator = title_generator or TitleGenerator(
            registry, self._preferences.title_model
        )
        self._scheduler_factory = scheduler_factory or create_scheduler
        self._tasks: dict[str, asyncio.Task] = {}
        self._states: dict[str, RequestState] = {}
        self._title_tasks: set[asyncio.Task] = set()

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def registry(self) -> AdapterRegistry:
        return self._registry

    @property
    def preferences(self) -> Preferences:
        return self._preferences

    @preferences.setter
    def preferences(self, value: Preferences) -> None:
        self._preferences = value
        self._store.preferences = value

    def state(self, session_id: str | None = None) -> RequestState:
        """State of the latest request of a session."""
        return self._states.get(session_id or self._store.active_session_id, RequestState.IDLE)

    def is_busy(self, session_id: str | None = None) -> bool:
        """Whether a session has a request in flight."""
        task = self._tasks.get(session_id or self._store.active_session_id)
        return task is not None and not task.done()

    async def send_message(
        self,
        text: str,
        session_id: str | None = None,
    ) -> GenerationOutcome | None:
        """Send a user message and stream the reply.

        Args:
            text: User input
            session_id: Target session (defaults to the active one)

        Returns:
            The outcome, or None when nothing was sent (blank input,
            unknown session, or a request already in flight)
        """
        if not text or not text.strip():
            return None

        session = self._acceptable_session(session_id)
        if session is None:
            return None

        first_exchange = not session.messages and session.has_placeholder_title
        self._store.append_message(session.id, Role.USER, text)
        return await self._generate(session, title_seed=text if first_exchange else None)

    async def regenerate_from_message(
        self,
        message_id: str,
        new_content: str,
        session_id: str | None = None,
    ) -> GenerationOutcome | None:
        """Edit a message and regenerate the reply.

        Later assistant turns are dropped and later user turns kept. When the
        edited message is a user turn one fresh reply is streamed to the end
        of the session.

        Returns:
            The outcome, or None when nothing was generated
        """
        if not new_content or not new_content.strip():
            return None

        session = self._acceptable_session(session_id)
        if session is None:
            return None

        edited = self._store.truncate_for_regeneration(session.id, message_id, new_content)
        if edited is None:
            logger.warning("Message %s not found in session %s", message_id, session.id)
            return None
        if edited.role != Role.USER:
            return None

        return await self._generate(session)

    def branch_from_message(self, session_id: str, message_id: str) -> Session | None:
        """Branch a session before a message and activate the branch. Sends nothing."""
        return self._store.branch_session(session_id, message_id)

    def select_session(self, session_id: str, cancel_inflight: bool = False) -> bool:
        """Activate a session, optionally cancelling the previous session's request."""
        previous = self._store.active_session_id
        if cancel_inflight and previous != session_id:
            self.cancel(previous)
        return self._store.select_session(session_id)

    def delete_session(self, session_id: str) -> bool:
        """Delete a session, cancelling its in-flight request first.

        Returns:
            False if no session has this id
        """
        self.cancel(session_id)
        return self._store.delete_session(session_id)

    def cancel(self, session_id: str | None = None) -> bool:
        """Cancel a session's in-flight request.

        The reply keeps every delta received so far and is finalized.

        Returns:
            True if a request was cancelled
        """
        task = self._tasks.get(session_id or self._store.active_session_id)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    async def aclose(self) -> None:
        """Cancel in-flight requests, wait for title tasks and close adapters."""
        for task in list(self._tasks.values()):
            task.cancel()
        pending = [*self._tasks.values(), *self._title_tasks]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        await self._registry.close()

    def _acceptable_session(self, session_id: str | None) -> Session | None:
        sid = session_id or self._store.active_session_id
        session = self._store.get_session(sid)
        if session is None:
            logger.warning("Session %s not found", sid)
            return None
        if self.is_busy(sid):
            logger.warning("Session %s already has a request in flight", sid)
            return None
        return session

    async def _generate(self, session: Session, title_seed: str | None = None) -> GenerationOutcome:
        history = [message.to_chat_message() for message in session.messages]
        request = GenerationRequest(
            history=history,
            system_prompt=session.system_prompt,
            model_name=session.model_name,
            parameters=session.parameters,
        )
        placeholder = self._store.append_message(
            session.id,
            Role.ASSISTANT,
            "",
            is_streaming=True,
            provider=session.provider,
            model_name=session.model_name,
        )
        self._states[session.id] = RequestState.SENDING

        task = asyncio.create_task(self._run(session.id, placeholder.id, request, title_seed))
        self._tasks[session.id] = task
        task.add_done_callback(
            lambda done: self._on_task_done(session.id, placeholder.id, done)
        )

        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                task.cancel()
                raise
            return self._outcome_from_store(session.id, placeholder.id, RequestState.CANCELED)

    async def _run(
        self,
        session_id: str,
        message_id: str,
        request: GenerationRequest,
        title_seed: str | None,
    ) -> GenerationOutcome:
        flushed_main: list[str] = []
        flushed_aux: list[str] = []

        def publish() -> None:
            self._store.update_message_content(
                session_id,
                message_id,
                "".join(flushed_main),
                "".join(flushed_aux) if flushed_aux else None,
            )

        def on_main(text: str) -> None:
            flushed_main.append(text)
            publish()

        def on_aux(text: str) -> None:
            flushed_aux.append(text)
            publish()

        config = self._preferences.throttle_config()
        main = StreamThrottler(on_main, config, scheduler=self._scheduler_factory(config))
        auxiliary = StreamThrottler(on_aux, config, scheduler=self._scheduler_factory(config))
        stream: StreamingResponse | None = None

        try:
            capabilities = self._registry.catalog.resolve(request.model_name)
            adapter = self._registry.adapter_for(capabilities.provider)
            stream = adapter.stream_completion(
                request, first_delta_timeout=self._preferences.first_delta_timeout
            )
            self._states[session_id] = RequestState.STREAMING
            logger.info("Streaming %s reply for session %s", request.model_name, session_id)

            async for delta in stream:
                if delta.channel == DeltaChannel.AUXILIARY:
                    auxiliary.push(delta.text)
                else:
                    main.push(delta.text)

            main.finish()
            auxiliary.finish()
            self._store.finalize_message(
                session_id,
                message_id,
                content=stream.content,
                auxiliary_content=stream.auxiliary_content or None,
                provider=capabilities.provider,
                model_name=request.model_name,
            )
            self._states[session_id] = RequestState.FINALIZED
            logger.info("Finalized reply for session %s", session_id)

            if title_seed is not None:
                self._schedule_title(session_id, title_seed, stream.content)

            return GenerationOutcome(
                session_id=session_id,
                message_id=message_id,
                state=RequestState.FINALIZED,
                content=stream.content,
                auxiliary_content=stream.auxiliary_content or None,
                usage=stream.usage,
            )

        except asyncio.CancelledError:
            main.cancel()
            auxiliary.cancel()
            if stream is not None:
                await stream.aclose()
            self._store.finalize_message(
                session_id,
                message_id,
                content=stream.content if stream else "",
                auxiliary_content=(stream.auxiliary_content or None) if stream else None,
            )
            self._states[session_id] = RequestState.CANCELED
            logger.info("Cancelled reply for session %s", session_id)
            raise

        except ChatError as e:
            return self._fail(session_id, message_id, e, stream, main, auxiliary)

        except Exception as e:
            logger.exception("Unexpected error while generating for session %s", session_id)
            error = ChatError(f"Unexpected error: {e}", model=request.model_name)
            return self._fail(session_id, message_id, error, stream, main, auxiliary)

    def _fail(
        self,
        session_id: str,
        message_id: str,
        error: ChatError,
        stream: StreamingResponse | None,
        *throttlers: StreamThrottler,
    ) -> GenerationOutcome:
        for throttler in throttlers:
            throttler.cancel()

        partial = stream.content if stream else ""
        text = fallback_text(error)
        content = f"{partial}{PARTIAL_SEPARATOR}{text}" if partial else text
        auxiliary_content = (stream.auxiliary_content or None) if stream else None

        self._store.finalize_message(
            session_id, message_id, content=content, auxiliary_content=auxiliary_content
        )
        self._states[session_id] = RequestState.FAILED
        logger.warning(
            "Generation failed for session %s (%s): %s",
            session_id, error.category, error.message,
        )
        return GenerationOutcome(
            session_id=session_id,
            message_id=message_id,
            state=RequestState.FAILED,
            content=content,
            auxiliary_content=auxiliary_content,
            error=error,
        )

    def _on_task_done(self, session_id: str, message_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(session_id) is task:
            del self._tasks[session_id]
        if self._store.get_session(session_id) is None:
            self._states.pop(session_id, None)
            return
        if not task.cancelled():
            return
        # Cancelled before it started: the placeholder was never finalized
        message = self._find_message(session_id, message_id)
        if message is not None and message.is_streaming:
            self._store.finalize_message(session_id, message_id)
        self._states[session_id] = RequestState.CANCELED

    def _find_message(self, session_id: str, message_id: str) -> Message | None:
        session = self._store.get_session(session_id)
        return session.get_message(message_id) if session else None

    def _outcome_from_store(
        self,
        session_id: str,
        message_id: str,
        state: RequestState,
    ) -> GenerationOutcome:
        message = self._find_message(session_id, message_id)
        return GenerationOutcome(
            session_id=session_id,
            message_id=message_id,
            state=state,
            content=message.content if message else "",
            auxiliary_content=message.auxiliary_content if message else None,
        )

    def _schedule_title(self, session_id: str, user_text: str, assistant_text: str) -> None:
        task = asyncio.create_task(self._assign_title(session_id, user_text, assistant_text))
        self._title_tasks.add(task)
        task.add_done_callback(self._title_tasks.discard)

    async def _assign_title(self, session_id: str, user_text: str, assistant_text: str) -> None:
        title = await self._title_generator.generate(user_text, assistant_text)
        session = self._store.get_session(session_id)
        if session is None or not session.has_placeholder_title or title == PLACEHOLDER_TITLE:
            return
        self._store.set_session_title(session_id, title)
        logger.debug("Titled session %s", session_id)
