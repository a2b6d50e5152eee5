"""Session title generation.

Asks a small model for a short title once the first exchange of a
session completes. Any failure leaves the placeholder title in place.
"""

import logging
import re

from ..config import (
    PLACEHOLDER_TITLE,
    TITLE_MAX_TOKENS,
    TITLE_MAX_WORDS,
    TITLE_MODEL,
    TITLE_SYSTEM_PROMPT,
    TITLE_TEMPERATURE,
)
from ..errors import ChatError
from ..llm.models import ChatMessage, GenerationParameters, GenerationRequest
from ..llm.registry import AdapterRegistry

logger = logging.getLogger(__name__)

_STRIP_CHARS = "\"'`*#.,;:!?-_ \t\n"


def clean_title(raw: str, max_words: int = TITLE_MAX_WORDS) -> str:
    """Normalize a model-produced title.

    Keeps the first line, drops a leading "Title:" label, surrounding
    quotes and punctuation, and truncates to ``max_words`` words.
    Returns the placeholder title when nothing is left.
    """
    lines = [line for line in raw.strip().splitlines() if line.strip()]
    if not lines:
        return PLACEHOLDER_TITLE

    title = re.sub(r"^\s*title\s*:\s*", "", lines[0], flags=re.IGNORECASE)
    title = title.strip(_STRIP_CHARS)
    words = title.split()[:max_words]
    cleaned = " ".join(words).strip(_STRIP_CHARS)
    return cleaned or PLACEHOLDER_TITLE


class TitleGenerator:
    """Generates session titles through the adapter registry."""

    def __init__(self, registry: AdapterRegistry, model_name: str = TITLE_MODEL):
        """Initialize the generator.

        Args:
            registry: Registry used to reach the title model
            model_name: Catalogue id of the title model
        """
        self._registry = registry
        self._model_name = model_name

    @property
    def model_name(self) -> str:
        return self._model_name

    async def generate(self, user_message: str, assistant_message: str) -> str:
        """Title a conversation from its first exchange.

        Never raises; any failure yields the placeholder title.

        Returns:
            A title of at most a few words, or the placeholder title
        """
        request = GenerationRequest(
            history=[
                ChatMessage(
                    role="user",
                    content=(
                        "Generate a title for this conversation:\n\n"
                        f"User: {user_message}\n\nAssistant: {assistant_message}"
                    ),
                )
            ],
            system_prompt=TITLE_SYSTEM_PROMPT,
            model_name=self._model_name,
            parameters=GenerationParameters(
                temperature=TITLE_TEMPERATURE,
                max_output_tokens=TITLE_MAX_TOKENS,
            ),
        )

        try:
            adapter = self._registry.adapter_for_model(self._model_name)
            response = await adapter.complete(request)
        except ChatError as e:
            logger.warning("Title generation failed: %s", e.message)
            return PLACEHOLDER_TITLE
        except Exception:
            logger.exception("Unexpected error during title generation")
            return PLACEHOLDER_TITLE

        return clean_title(response.content)
