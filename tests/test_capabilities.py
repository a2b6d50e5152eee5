"""Unit tests for the model catalogue and system prompt shaping."""
import pytest
from conftest import FakeAdapter

from chorus.errors import ConfigurationError, UnknownModelError
from chorus.llm import (
    ChatMessage,
    GenerationRequest,
    ModelCatalog,
    ModelSpec,
    ProviderTag,
    SystemPromptMode,
    default_catalog,
    shape_messages,
)


class TestModelCatalog:
    """Tests for catalogue lookups and capability resolution."""

    def test_provider_for_known_models(self):
        """Test that every provider family resolves from the catalogue."""
        assert default_catalog.provider_for("gemini-2.0-flash") == ProviderTag.GOOGLE
        assert default_catalog.provider_for("gpt-4o-mini") == ProviderTag.OPENAI
        assert default_catalog.provider_for("grok-2-latest") == ProviderTag.XAI
        assert default_catalog.provider_for("deepseek-reasoner") == ProviderTag.DEEPSEEK

    def test_unknown_model_is_configuration_error(self):
        """Test that unknown models raise a configuration error."""
        with pytest.raises(UnknownModelError) as exc_info:
            default_catalog.resolve("no-such-model")
        assert isinstance(exc_info.value, ConfigurationError)
        assert exc_info.value.category == "configuration"

    def test_resolve_merges_provider_defaults(self):
        """Test that unset model fields inherit the provider table."""
        caps = default_catalog.resolve("gpt-4o")
        assert caps.system_prompt_mode == SystemPromptMode.NATIVE
        assert caps.max_context == 4096
        assert not caps.auxiliary_channel
        assert caps.api_name == "gpt-4o"

    def test_resolve_applies_model_overrides(self):
        """Test per-model overrides from the catalogue."""
        assert default_catalog.resolve("gemini-1.5-flash-8b").system_prompt_mode == SystemPromptMode.FOLDED
        assert default_catalog.resolve("deepseek-reasoner").auxiliary_channel
        assert default_catalog.resolve("gemini-2.5-pro-exp-03-25").auxiliary_channel

    def test_grok_wire_name_drops_latest_suffix(self):
        """Test that xAI models are sent under their wire names."""
        caps = default_catalog.resolve("grok-2-latest")
        assert caps.api_name == "grok-2"
        assert caps.base_url == "https://api.x.ai/v1"

    def test_models_for_provider(self):
        """Test filtering the catalogue by provider."""
        ids = [spec.id for spec in default_catalog.models_for("deepseek")]
        assert ids == ["deepseek-chat", "deepseek-reasoner"]

    def test_register_custom_model(self):
        """Test adding a model without touching call sites."""
        catalog = ModelCatalog()
        catalog.register(ModelSpec(id="gpt-4.1", name="GPT-4.1", provider=ProviderTag.OPENAI))

        assert "gpt-4.1" in catalog
        assert "gpt-4.1" not in default_catalog
        assert catalog.resolve("gpt-4.1").provider == ProviderTag.OPENAI


class TestShapeMessages:
    """Tests for system prompt placement."""

    def _request(self, prompt, history):
        return GenerationRequest(
            history=[ChatMessage(role=role, content=text) for role, text in history],
            system_prompt=prompt,
            model_name="gemini-1.5-flash-8b",
        )

    def test_native_mode_keeps_prompt_separate(self):
        """Test that native models get a distinct system prompt."""
        system, turns = shape_messages(
            self._request("Be terse", [("user", "Hi")]), SystemPromptMode.NATIVE
        )
        assert system == "Be terse"
        assert [t.content for t in turns] == ["Hi"]

    def test_folded_mode_prefixes_first_user_turn(self):
        """Test that the prompt is folded into the first user turn only."""
        system, turns = shape_messages(
            self._request("Be terse", [("user", "Hi"), ("assistant", "Hello"), ("user", "Again")]),
            SystemPromptMode.FOLDED,
        )
        assert system is None
        assert turns[0].content == "Be terse\n\nHi"
        assert turns[2].content == "Again"

    def test_folded_mode_without_user_turn(self):
        """Test that a lone user turn carries the prompt when history has none."""
        system, turns = shape_messages(self._request("Be terse", []), SystemPromptMode.FOLDED)
        assert system is None
        assert turns == [ChatMessage(role="user", content="Be terse")]

    @pytest.mark.parametrize("prompt", [None, "", "   "])
    def test_blank_prompt_is_dropped(self, prompt):
        """Test that blank prompts are never sent."""
        system, turns = shape_messages(self._request(prompt, [("user", "Hi")]), SystemPromptMode.FOLDED)
        assert system is None
        assert turns[0].content == "Hi"

    def test_none_mode_suppresses_prompt(self):
        """Test that models without prompt support never see it."""
        system, turns = shape_messages(self._request("Be terse", [("user", "Hi")]), SystemPromptMode.NONE)
        assert system is None
        assert turns[0].content == "Hi"


class TestProviderAdapterBase:
    """Tests for the shared adapter behaviour."""

    def test_adapter_rejects_other_providers_models(self):
        """Test that an adapter refuses models served by another provider."""
        adapter = FakeAdapter(ProviderTag.OPENAI)
        with pytest.raises(UnknownModelError):
            adapter.stream_completion(GenerationRequest(model_name="gemini-2.0-flash"))

    @pytest.mark.asyncio
    async def test_probe_reports_available(self):
        """Test a successful probe."""
        adapter = FakeAdapter(ProviderTag.OPENAI, reply="Hi")
        result = await adapter.probe("gpt-4o")

        assert result.available
        assert result.supports_streaming
        assert adapter.requests[0].parameters.max_output_tokens == 5
        assert adapter.requests[0].history[0].content == "Hello"

    @pytest.mark.asyncio
    async def test_probe_never_raises(self):
        """Test that provider failures are reported as unavailable."""
        adapter = FakeAdapter(ProviderTag.OPENAI, reply=ConfigurationError("bad key"))
        result = await adapter.probe("gpt-4o")

        assert not result.available
        assert result.error == "bad key"

    @pytest.mark.asyncio
    async def test_context_manager_closes(self):
        """Test that leaving the context closes the adapter."""
        adapter = FakeAdapter(ProviderTag.GOOGLE)
        async with adapter:
            pass
        assert adapter.closed
