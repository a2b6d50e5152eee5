"""Data models for conversation sessions.

These models define the structure of sessions and messages independent
of the storage backend. They also accept records written by older
clients (camelCase keys, ``timestamp``, role ``model``) and fill in
defaults for fields those records lack.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, Field, field_serializer, field_validator

from ..config import DEFAULT_MODEL, DEFAULT_PROVIDER, DEFAULT_SYSTEM_PROMPT, PLACEHOLDER_TITLE
from ..llm.models import ChatMessage, GenerationParameters, ProviderTag


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _provider_or_default(value: Any) -> Any:
    if value is None or isinstance(value, ProviderTag):
        return value
    if value not in {tag.value for tag in ProviderTag}:
        return DEFAULT_PROVIDER
    return value


class Role(str, Enum):
    """Author of a message."""

    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """One turn of a conversation.

    ``content`` is mutated in place while ``is_streaming`` is true and is
    final once streaming ends.
    """

    id: str = Field(default_factory=new_id)
    role: Role
    content: str = ""
    created_at: datetime = Field(
        default_factory=utcnow,
        validation_alias=AliasChoices("created_at", "createdAt", "timestamp"),
    )
    is_streaming: bool = Field(
        default=False,
        validation_alias=AliasChoices("is_streaming", "isStreaming", "isLoading"),
    )
    provider: ProviderTag | None = None
    model_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("model_name", "modelName"),
    )
    auxiliary_content: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "auxiliary_content", "auxiliaryContent", "reasoningContent", "thinkingContent"
        ),
        description="Reasoning / thinking trace",
    )

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, v: Any) -> Any:
        """Older records store assistant turns as ``model``."""
        return Role.ASSISTANT if v == "model" else v

    @field_validator("provider", mode="before")
    @classmethod
    def normalize_provider(cls, v: Any) -> Any:
        return _provider_or_default(v)

    @field_validator("created_at")
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        return _as_aware(v)

    @field_serializer("created_at")
    def serialize_datetime(self, value: datetime) -> str:
        """Serialize datetime to ISO format."""
        return value.isoformat()

    def to_chat_message(self) -> ChatMessage:
        return ChatMessage(role=self.role.value, content=self.content)


class Session(BaseModel):
    """One independent conversation thread."""

    id: str = Field(default_factory=new_id)
    title: str = PLACEHOLDER_TITLE
    messages: list[Message] = Field(default_factory=list)
    created_at: datetime = Field(
        default_factory=utcnow,
        validation_alias=AliasChoices("created_at", "createdAt"),
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        validation_alias=AliasChoices("updated_at", "updatedAt"),
    )
    model_name: str = Field(
        default=DEFAULT_MODEL,
        validation_alias=AliasChoices("model_name", "modelName"),
    )
    provider: ProviderTag = ProviderTag.GOOGLE
    system_prompt: str = Field(
        default=DEFAULT_SYSTEM_PROMPT,
        validation_alias=AliasChoices("system_prompt", "systemPrompt"),
    )
    parameters: GenerationParameters = Field(default_factory=GenerationParameters)

    @field_validator("provider", mode="before")
    @classmethod
    def normalize_provider(cls, v: Any) -> Any:
        return _provider_or_default(v) or DEFAULT_PROVIDER

    @field_validator("created_at", "updated_at")
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        return _as_aware(v)

    @field_serializer("created_at", "updated_at")
    def serialize_datetime(self, value: datetime) -> str:
        """Serialize datetime to ISO format."""
        return value.isoformat()

    @property
    def has_placeholder_title(self) -> bool:
        return self.title == PLACEHOLDER_TITLE

    def touch(self) -> None:
        """Record a mutation."""
        self.updated_at = utcnow()

    def index_of(self, message_id: str) -> int:
        """Position of a message, or -1."""
        for index, message in enumerate(self.messages):
            if message.id == message_id:
                return index
        return -1

    def get_message(self, message_id: str) -> Message | None:
        index = self.index_of(message_id)
        return self.messages[index] if index >= 0 else None


class SessionCollection(BaseModel):
    """Every session plus the active pointer."""

    sessions: list[Session] = Field(default_factory=list)
    active_session_id: str | None = None

    def get(self, session_id: str | None) -> Session | None:
        for session in self.sessions:
            if session.id == session_id:
                return session
        return None

    @property
    def active(self) -> Session | None:
        return self.get(self.active_session_id)
