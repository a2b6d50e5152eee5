"""Conversation sessions: models, the session store, persistence and titles."""

from .models import Message, Role, Session, SessionCollection
from .repository import SessionRepository
from .store import SessionStore
from .titles import TitleGenerator, clean_title

__all__ = [
    "Message",
    "Role",
    "Session",
    "SessionCollection",
    "SessionRepository",
    "SessionStore",
    "TitleGenerator",
    "clean_title",
]
