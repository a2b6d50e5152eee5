"""Unit tests for the session store."""
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from chorus.errors import SessionNotFoundError, UnknownModelError
from chorus.llm import GenerationParameters, ProviderTag
from chorus.preferences import Preferences
from chorus.sessions import Role, Session, SessionCollection, SessionStore


def _store_with_history(turns: int) -> tuple[SessionStore, Session]:
    store = SessionStore()
    session = store.active_session
    for index in range(turns):
        role = Role.USER if index % 2 == 0 else Role.ASSISTANT
        store.append_message(session.id, role, f"message {index}")
    return store, session


class TestSessionStoreLifecycle:
    """Tests for creating, selecting and deleting sessions."""

    def test_new_store_has_active_default_session(self):
        """Test that an empty store starts with one active session."""
        store = SessionStore(preferences=Preferences(default_model="gpt-4o"))

        assert len(store.sessions) == 1
        assert store.active_session.title == "New Chat"
        assert store.active_session.model_name == "gpt-4o"
        assert store.active_session.provider == ProviderTag.OPENAI

    def test_invalid_active_id_is_repaired(self):
        """Test that a dangling active pointer is moved to the first session."""
        first, second = Session(), Session()
        store = SessionStore(SessionCollection(sessions=[first, second], active_session_id="gone"))
        assert store.active_session_id == first.id

    def test_create_session_inherits_from_active(self):
        """Test that unseeded values come from the active session."""
        store = SessionStore()
        active = store.active_session
        store.set_session_model(active.id, "deepseek-chat")
        store.set_session_system_prompt(active.id, "Be terse")

        created = store.create_session()

        assert created.model_name == "deepseek-chat"
        assert created.provider == ProviderTag.DEEPSEEK
        assert created.system_prompt == "Be terse"
        assert store.active_session_id == created.id

    def test_create_session_with_seeds(self):
        """Test that a seeded model derives its provider from the catalogue."""
        store = SessionStore()
        created = store.create_session(seed_model="grok-2-latest", activate=False)

        assert created.provider == ProviderTag.XAI
        assert store.active_session_id != created.id

    def test_delete_only_session_leaves_one(self):
        """Test that deleting the last session creates a fresh active one."""
        store = SessionStore()
        only = store.active_session_id

        assert store.delete_session(only)

        assert len(store.sessions) == 1
        assert store.active_session_id != only
        assert store.active_session is not None

    def test_delete_active_promotes_remaining(self):
        """Test that deleting the active session activates another."""
        store = SessionStore()
        first = store.active_session_id
        second = store.create_session().id

        store.delete_session(second)

        assert store.active_session_id == first

    def test_unknown_ids_are_rejected(self):
        """Test that operations on unknown ids report failure."""
        store = SessionStore()
        assert not store.delete_session("missing")
        assert not store.select_session("missing")
        assert not store.set_session_title("missing", "x")
        assert not store.update_message_content(store.active_session_id, "missing", "x")
        with pytest.raises(SessionNotFoundError):
            store.append_message("missing", Role.USER, "hi")

    def test_set_unknown_model_raises(self):
        """Test that switching to an unknown model surfaces immediately."""
        store = SessionStore()
        with pytest.raises(UnknownModelError):
            store.set_session_model(store.active_session_id, "nope")


class TestSessionStoreMessages:
    """Tests for message mutations."""

    def test_mutations_update_timestamp(self):
        """Test that every mutation moves updated_at forward."""
        store = SessionStore()
        session = store.active_session
        before = session.updated_at

        store.append_message(session.id, Role.USER, "hi")

        assert session.updated_at >= before

    def test_streaming_message_is_mutable_until_finalized(self):
        """Test that content is frozen once streaming ends."""
        store = SessionStore()
        sid = store.active_session_id
        message = store.append_message(sid, Role.ASSISTANT, "", is_streaming=True)

        assert store.update_message_content(sid, message.id, "Hel")
        assert store.finalize_message(sid, message.id, content="Hello")
        assert not store.update_message_content(sid, message.id, "changed")

        assert message.content == "Hello"
        assert not message.is_streaming

    def test_parameters_and_clear(self):
        """Test per-session parameters and clearing messages."""
        store, session = _store_with_history(4)
        params = GenerationParameters(temperature=0.1, max_output_tokens=64)

        store.set_session_parameters(session.id, params)
        store.clear_session(session.id)

        assert session.parameters == params
        assert session.messages == []

    def test_truncate_for_regeneration_keeps_user_turns(self):
        """Test that only later assistant turns are dropped."""
        store, session = _store_with_history(4)
        first_user = session.messages[0]

        edited = store.truncate_for_regeneration(session.id, first_user.id, "edited")

        assert edited is first_user
        assert edited.content == "edited"
        assert [(m.role, m.content) for m in session.messages] == [
            (Role.USER, "edited"),
            (Role.USER, "message 2"),
        ]

    def test_listeners_are_notified(self):
        """Test that subscribers receive the mutated session id."""
        store = SessionStore()
        seen = []
        unsubscribe = store.subscribe(seen.append)

        store.append_message(store.active_session_id, Role.USER, "hi")
        unsubscribe()
        store.append_message(store.active_session_id, Role.USER, "again")

        assert seen == [store.active_session_id]


class TestBranchSession:
    """Tests for branching."""

    @given(turns=st.integers(min_value=1, max_value=12), data=st.data())
    @settings(max_examples=50)
    def test_branch_copies_exact_prefix(self, turns, data):
        """Test that a branch holds exactly the messages before the cutoff."""
        store, source = _store_with_history(turns)
        store.set_session_system_prompt(source.id, "Be terse")
        cutoff = data.draw(st.integers(min_value=0, max_value=turns - 1))

        branch = store.branch_session(source.id, source.messages[cutoff].id)

        assert branch is not None
        assert [m.content for m in branch.messages] == [m.content for m in source.messages[:cutoff]]
        assert [m.role for m in branch.messages] == [m.role for m in source.messages[:cutoff]]
        source_ids = {m.id for m in source.messages}
        assert not any(m.id in source_ids for m in branch.messages)
        assert branch.model_name == source.model_name
        assert branch.provider == source.provider
        assert branch.system_prompt == "Be terse"
        assert store.active_session_id == branch.id
        assert len(source.messages) == turns

    def test_branch_title(self):
        """Test the branch title format."""
        store, source = _store_with_history(2)
        store.set_session_title(source.id, "A very long conversation title")

        branch = store.branch_session(source.id, source.messages[1].id)

        assert branch.title == "Branched from A very long conversa..."

    def test_invalid_branch_changes_nothing(self):
        """Test that an invalid source or cutoff returns None."""
        store, source = _store_with_history(2)
        count = len(store.sessions)

        assert store.branch_session("missing", source.messages[0].id) is None
        assert store.branch_session(source.id, "missing") is None
        assert len(store.sessions) == count
        assert store.active_session_id == source.id
