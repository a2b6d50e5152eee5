"""Model catalogue and capability table.

Hides which models exist and what each can do. Provider-level defaults
live in one static table; models override only what differs. Callers
resolve a model once per request instead of testing name prefixes.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from ..config import DEFAULT_MODEL
from ..errors import UnknownModelError
from .models import ProviderTag


class SystemPromptMode(str, Enum):
    """How a model accepts a system prompt."""

    NATIVE = "native"    # Distinct system-role message
    FOLDED = "folded"    # Folded into the first user turn
    NONE = "none"        # Cannot carry one; suppressed


class ProviderCapabilities(BaseModel):
    """Defaults shared by every model of one provider."""

    model_config = ConfigDict(frozen=True)

    provider: ProviderTag
    supports_system_role: bool = True
    max_context: int = Field(default=4096, ge=1)
    auxiliary_channel: bool = False
    base_url: str | None = None
    credential_env: tuple[str, ...] = ()


class ModelSpec(BaseModel):
    """One catalogue entry. ``None`` fields inherit the provider default."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    provider: ProviderTag
    capabilities: tuple[str, ...] = ("Text",)
    api_name: str | None = Field(default=None, description="Wire model name, if it differs from id")
    system_prompt_mode: SystemPromptMode | None = None
    auxiliary_channel: bool | None = None
    max_context: int | None = None
    supports_streaming: bool = True


class ModelCapabilities(BaseModel):
    """Fully resolved capabilities for one model."""

    model_config = ConfigDict(frozen=True)

    model_id: str
    api_name: str
    provider: ProviderTag
    system_prompt_mode: SystemPromptMode
    auxiliary_channel: bool
    max_context: int
    supports_streaming: bool
    base_url: str | None = None


PROVIDER_CAPABILITIES: dict[ProviderTag, ProviderCapabilities] = {
    ProviderTag.GOOGLE: ProviderCapabilities(
        provider=ProviderTag.GOOGLE,
        max_context=1_048_576,
        credential_env=("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    ),
    ProviderTag.OPENAI: ProviderCapabilities(
        provider=ProviderTag.OPENAI,
        max_context=4096,
        credential_env=("OPENAI_API_KEY",),
    ),
    ProviderTag.XAI: ProviderCapabilities(
        provider=ProviderTag.XAI,
        max_context=8192,
        base_url="https://api.x.ai/v1",
        credential_env=("XAI_API_KEY",),
    ),
    ProviderTag.DEEPSEEK: ProviderCapabilities(
        provider=ProviderTag.DEEPSEEK,
        max_context=4096,
        base_url="https://api.deepseek.com",
        credential_env=("DEEPSEEK_API_KEY",),
    ),
}

DEFAULT_MODELS: tuple[ModelSpec, ...] = (
    ModelSpec(
        id="gemini-2.0-flash",
        name="Gemini 2.0 Flash",
        description="Next generation features, speed, thinking, realtime streaming, and multimodal generation",
        provider=ProviderTag.GOOGLE,
        capabilities=("Audio", "Images", "Videos", "Text"),
    ),
    ModelSpec(
        id="gemini-2.5-pro-exp-03-25",
        name="Gemini 2.5 Pro Experimental",
        description="Enhanced thinking and reasoning, multimodal understanding, advanced coding, and more",
        provider=ProviderTag.GOOGLE,
        capabilities=("Audio", "Images", "Videos", "Text"),
        auxiliary_channel=True,
    ),
    ModelSpec(
        id="gemini-2.0-flash-lite",
        name="Gemini 2.0 Flash Lite",
        description="Cost efficiency and low latency",
        provider=ProviderTag.GOOGLE,
        capabilities=("Audio", "Images", "Videos", "Text"),
    ),
    ModelSpec(
        id="gemini-1.5-flash",
        name="Gemini 1.5 Flash",
        description="Fast and versatile performance across a diverse variety of tasks",
        provider=ProviderTag.GOOGLE,
        capabilities=("Audio", "Images", "Videos", "Text"),
    ),
    ModelSpec(
        id="gemini-1.5-flash-8b",
        name="Gemini 1.5 Flash 8B",
        description="High volume and lower intelligence tasks",
        provider=ProviderTag.GOOGLE,
        capabilities=("Audio", "Images", "Videos", "Text"),
        system_prompt_mode=SystemPromptMode.FOLDED,
    ),
    ModelSpec(
        id="gemini-1.5-pro",
        name="Gemini 1.5 Pro",
        description="Complex reasoning tasks requiring more intelligence",
        provider=ProviderTag.GOOGLE,
        capabilities=("Audio", "Images", "Videos", "Text"),
    ),
    ModelSpec(
        id="gpt-4o",
        name="GPT-4o",
        description="Most capable multimodal model, optimized for chat and image understanding",
        provider=ProviderTag.OPENAI,
        capabilities=("Text", "Images"),
    ),
    ModelSpec(
        id="gpt-4o-mini",
        name="GPT-4o Mini",
        description="Smaller, faster version of GPT-4o with excellent performance",
        provider=ProviderTag.OPENAI,
        capabilities=("Text", "Images"),
    ),
    ModelSpec(
        id="grok-2-latest",
        name="Grok 2",
        description="Latest model from xAI with strong reasoning capabilities",
        provider=ProviderTag.XAI,
        api_name="grok-2",
    ),
    ModelSpec(
        id="grok-2-vision-latest",
        name="Grok 2 Vision",
        description="Multimodal model from xAI capable of understanding images",
        provider=ProviderTag.XAI,
        capabilities=("Text", "Images"),
        api_name="grok-2-vision",
    ),
    ModelSpec(
        id="deepseek-chat",
        name="DeepSeek Chat",
        description="DeepSeek-V3 chat model with strong general capabilities",
        provider=ProviderTag.DEEPSEEK,
    ),
    ModelSpec(
        id="deepseek-reasoner",
        name="DeepSeek Reasoner",
        description="DeepSeek-R1 with advanced reasoning and Chain of Thought capabilities",
        provider=ProviderTag.DEEPSEEK,
        capabilities=("Text", "Reasoning"),
        auxiliary_channel=True,
    ),
)


class ModelCatalog:
    """Registry of known models and their resolved capabilities."""

    def __init__(
        self,
        models: tuple[ModelSpec, ...] | list[ModelSpec] = DEFAULT_MODELS,
        providers: dict[ProviderTag, ProviderCapabilities] | None = None,
        default_model: str = DEFAULT_MODEL,
    ):
        self._providers = dict(providers or PROVIDER_CAPABILITIES)
        self._models: dict[str, ModelSpec] = {}
        for spec in models:
            self.register(spec)
        self._default_model = default_model

    def register(self, spec: ModelSpec) -> None:
        """Add or replace a catalogue entry."""
        if spec.provider not in self._providers:
            raise ValueError(f"No capability table entry for provider: {spec.provider.value}")
        self._models[spec.id] = spec

    @property
    def default_model(self) -> str:
        return self._default_model

    @property
    def models(self) -> list[ModelSpec]:
        return list(self._models.values())

    def models_for(self, provider: ProviderTag | str) -> list[ModelSpec]:
        """Models served by one provider, in catalogue order."""
        tag = ProviderTag(provider)
        return [spec for spec in self._models.values() if spec.provider == tag]

    def __contains__(self, model_name: object) -> bool:
        return model_name in self._models

    def get(self, model_name: str) -> ModelSpec:
        """Look up a model.

        Raises:
            UnknownModelError: If the model is not in the catalogue
        """
        spec = self._models.get(model_name)
        if spec is None:
            raise UnknownModelError(f"Unknown model: {model_name}", model=model_name)
        return spec

    def provider_for(self, model_name: str) -> ProviderTag:
        return self.get(model_name).provider

    def provider_capabilities(self, provider: ProviderTag | str) -> ProviderCapabilities:
        return self._providers[ProviderTag(provider)]

    def resolve(self, model_name: str) -> ModelCapabilities:
        """Merge a model's overrides over its provider defaults.

        Raises:
            UnknownModelError: If the model is not in the catalogue
        """
        spec = self.get(model_name)
        provider = self._providers[spec.provider]

        mode = spec.system_prompt_mode
        if mode is None:
            mode = SystemPromptMode.NATIVE if provider.supports_system_role else SystemPromptMode.FOLDED

        return ModelCapabilities(
            model_id=spec.id,
            api_name=spec.api_name or spec.id,
            provider=spec.provider,
            system_prompt_mode=mode,
            auxiliary_channel=(
                provider.auxiliary_channel if spec.auxiliary_channel is None else spec.auxiliary_channel
            ),
            max_context=spec.max_context or provider.max_context,
            supports_streaming=spec.supports_streaming,
            base_url=provider.base_url,
        )


default_catalog = ModelCatalog()
