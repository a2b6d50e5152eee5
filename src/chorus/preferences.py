"""User preferences.

One value object for every user-tunable knob, loaded and saved through a
single boundary (SessionRepository) and handed to the orchestrator at
construction.
"""

from pydantic import BaseModel, ConfigDict, Field

from .config import (
    DEFAULT_FIRST_DELTA_TIMEOUT,
    DEFAULT_MAX_OUTPUT_TOKENS,
    DEFAULT_MODEL,
    DEFAULT_SYSTEM_PROMPT,
    DEFAULT_TEMPERATURE,
    FRAME_POLICY_MAX_INTERVAL_MS,
    TITLE_MODEL,
    StreamingSpeed,
)
from .llm.models import GenerationParameters, ProviderTag
from .streaming import DeliveryPolicy, ThrottleConfig


class SystemPromptPreset(BaseModel):
    """A named, reusable system prompt."""

    model_config = ConfigDict(frozen=True)

    name: str
    prompt: str


DEFAULT_SYSTEM_PROMPT_PRESETS = [
    SystemPromptPreset(
        name="Default Assistant",
        prompt=(
            "You are a helpful, accurate, and friendly AI assistant. You provide detailed "
            "and thoughtful responses while being accurate and unbiased."
        ),
    ),
    SystemPromptPreset(
        name="Code Expert",
        prompt=(
            "You are an expert programmer with deep knowledge of software development best "
            "practices, design patterns, and modern frameworks."
        ),
    ),
    SystemPromptPreset(
        name="Creative Writer",
        prompt=(
            "You are a creative writing assistant skilled in storytelling, character "
            "development, and engaging narrative techniques."
        ),
    ),
]


class Preferences(BaseModel):
    """Persisted user preferences."""

    model_config = ConfigDict(frozen=True)

    streaming_enabled: bool = Field(default=True, description="Show text as it arrives")
    streaming_speed_ms: int = Field(
        default=StreamingSpeed.VERY_FAST,
        ge=0,
        description="Render interval; lower is faster"
    )
    provider: ProviderTag = Field(default=ProviderTag.GOOGLE, description="Last selected provider")
    default_model: str = Field(default=DEFAULT_MODEL, description="Model for new sessions")
    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=DEFAULT_MAX_OUTPUT_TOKENS, ge=1)
    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT, description="Prompt for new sessions")
    system_prompts: list[SystemPromptPreset] = Field(
        default_factory=lambda: list(DEFAULT_SYSTEM_PROMPT_PRESETS)
    )
    title_model: str = Field(default=TITLE_MODEL, description="Model used to name sessions")
    first_delta_timeout: float | None = Field(
        default=DEFAULT_FIRST_DELTA_TIMEOUT,
        gt=0,
        description="Seconds to wait for the first delta (None waits forever)"
    )

    def generation_parameters(self) -> GenerationParameters:
        """Parameters seeded into new sessions."""
        return GenerationParameters(
            temperature=self.temperature,
            max_output_tokens=self.max_output_tokens,
        )

    def throttle_config(self) -> ThrottleConfig:
        """Map streaming preferences onto a delivery policy.

        Speeds at or below 5 ms render per frame, slower speeds batch on an
        interval, and disabled streaming delivers once at the end.
        """
        if not self.streaming_enabled:
            return ThrottleConfig(policy=DeliveryPolicy.COMPLETE)
        if self.streaming_speed_ms <= FRAME_POLICY_MAX_INTERVAL_MS:
            return ThrottleConfig(policy=DeliveryPolicy.FRAME, interval_ms=self.streaming_speed_ms)
        return ThrottleConfig(policy=DeliveryPolicy.INTERVAL, interval_ms=self.streaming_speed_ms)

    def updated(self, **changes) -> "Preferences":
        """Return a validated copy with ``changes`` applied."""
        return Preferences.model_validate({**self.model_dump(), **changes})
