"""Engine configuration constants.

Centralizes magic numbers, default texts and storage keys.
"""


class StreamingSpeed:
    """Render interval presets in milliseconds. Lower is faster."""

    SLOW = 100
    NORMAL = 50
    FAST = 15
    VERY_FAST = 5

    _from_string = {
        "slow": SLOW,
        "normal": NORMAL,
        "fast": FAST,
        "very_fast": VERY_FAST,
    }

    @classmethod
    def from_string(cls, speed: str) -> int:
        """Convert a preset name to milliseconds. Returns VERY_FAST if invalid."""
        return cls._from_string.get(speed.lower().replace("-", "_"), cls.VERY_FAST)


# Session defaults
PLACEHOLDER_TITLE = "New Chat"
BRANCH_TITLE_PREFIX_LENGTH = 20  # Characters of the source title kept in a branch title
DEFAULT_MODEL = "gemini-2.0-flash"
DEFAULT_PROVIDER = "google"
DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful, accurate, and friendly AI assistant. You provide detailed and "
    "thoughtful responses to user queries while striving to be as accurate and unbiased "
    "as possible. When you don't know something or aren't sure, you admit it clearly "
    "rather than making something up. You can assist with a wide range of tasks including "
    "answering questions, providing explanations, generating creative content, and more."
)

# Generation defaults
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_OUTPUT_TOKENS = 2048
DEFAULT_FIRST_DELTA_TIMEOUT = 30.0  # Seconds to wait for the first delta

# Throttling
FRAME_RATE = 60  # Frame-synchronized flushes per second
FRAME_POLICY_MAX_INTERVAL_MS = 5  # Speeds at or below this use frame delivery
IMMEDIATE_FLUSH_THRESHOLD_MS = 15  # Interval delivery flushes every delta at or below this

# Probing
PROBE_PROMPT = "Hello"
PROBE_MAX_TOKENS = 5

# Title generation
TITLE_MODEL = "gpt-4o-mini"
TITLE_TEMPERATURE = 0.2
TITLE_MAX_TOKENS = 20
TITLE_MAX_WORDS = 5
TITLE_SYSTEM_PROMPT = (
    "You are a highly efficient chat title generator. Your only job is to create a brief, "
    "relevant title (maximum 5 words) based on the first message exchange in a conversation. "
    "Be concise and capture the essence. Respond ONLY with the title, nothing else. "
    "Prefer shorter titles over longer ones. Do not use quotes or punctuation."
)

# User-facing failure texts
ERROR_FALLBACK_TEXT = "Sorry, there was an error generating a response. Please try again."
CONFIGURATION_FALLBACK_TEXT = (
    "Sorry, this model is not configured. Check the API key and model selection, then try again."
)
TIMEOUT_FALLBACK_TEXT = "Sorry, the model did not respond in time. Please try again."
PARTIAL_SEPARATOR = "\n\n"  # Between partial output and a failure text

# Persistence keys
STORAGE_KEY_SESSIONS = "ai_chat_sessions"
STORAGE_KEY_ACTIVE_SESSION = "ai_active_session_id"
STORAGE_KEY_PREFERENCES = "chat_preferences"

# Keys written by older clients, read once to migrate into chat_preferences
LEGACY_KEY_STREAMING = "ai_streaming_enabled"
LEGACY_KEY_STREAMING_SPEED = "ai_streaming_speed"
LEGACY_KEY_PROVIDER = "ai_selected_provider"
LEGACY_KEY_TEMPERATURE = "chat_temperature"
LEGACY_KEY_MAX_TOKENS = "chat_max_tokens"
LEGACY_KEY_SYSTEM_PROMPTS = "chat_system_prompts"
