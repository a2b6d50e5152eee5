"""Unit tests for session title generation."""
import logging

import pytest

from chorus.config import PLACEHOLDER_TITLE, TITLE_MAX_TOKENS, TITLE_SYSTEM_PROMPT
from chorus.credentials import StaticCredentials
from chorus.errors import ProviderRefusal
from chorus.llm import AdapterRegistry, ProviderTag
from chorus.sessions import TitleGenerator, clean_title


class TestCleanTitle:
    """Tests for title normalization."""

    @pytest.mark.parametrize("raw,expected", [
        ("Async Python Basics", "Async Python Basics"),
        ('"Async Python Basics."', "Async Python Basics"),
        ("Title: Debugging Rust lifetimes", "Debugging Rust lifetimes"),
        ("One two three four five six seven", "One two three four five"),
        ("First line\nSecond line", "First line"),
        ("", PLACEHOLDER_TITLE),
        ('  ""  ', PLACEHOLDER_TITLE),
    ])
    def test_clean_title(self, raw, expected):
        """Test label, quote, punctuation and length handling."""
        assert clean_title(raw) == expected


class TestTitleGenerator:
    """Tests for TitleGenerator."""

    @pytest.mark.asyncio
    async def test_generate(self, registry, fake_adapters):
        """Test the request sent to the title model and the cleaned reply."""
        fake_adapters[ProviderTag.OPENAI].reply = "Title: 'Weekend Trip Ideas'"
        generator = TitleGenerator(registry, "gpt-4o-mini")

        title = await generator.generate("Where should I go?", "Try the coast.")

        assert title == "Weekend Trip Ideas"
        request = fake_adapters[ProviderTag.OPENAI].requests[0]
        assert request.system_prompt == TITLE_SYSTEM_PROMPT
        assert request.parameters.max_output_tokens == TITLE_MAX_TOKENS
        assert "Where should I go?" in request.history[0].content

    @pytest.mark.asyncio
    async def test_provider_failure_keeps_placeholder(self, registry, fake_adapters, caplog):
        """Test that a failing title model yields the placeholder."""
        fake_adapters[ProviderTag.OPENAI].reply = ProviderRefusal("rate limited", provider="openai")

        with caplog.at_level(logging.WARNING):
            title = await TitleGenerator(registry).generate("hi", "hello")

        assert title == PLACEHOLDER_TITLE
        assert "Title generation failed" in caplog.text

    @pytest.mark.asyncio
    async def test_missing_credential_keeps_placeholder(self):
        """Test that an unconfigured title model yields the placeholder."""
        generator = TitleGenerator(AdapterRegistry(StaticCredentials({})))
        assert await generator.generate("hi", "hello") == PLACEHOLDER_TITLE

    @pytest.mark.asyncio
    async def test_unexpected_error_keeps_placeholder(self, registry, fake_adapters, caplog):
        """Test that errors outside the chat error hierarchy are contained."""
        fake_adapters[ProviderTag.OPENAI].reply = RuntimeError("boom")

        with caplog.at_level(logging.ERROR):
            title = await TitleGenerator(registry).generate("hi", "hello")

        assert title == PLACEHOLDER_TITLE
        assert "Unexpected error during title generation" in caplog.text
