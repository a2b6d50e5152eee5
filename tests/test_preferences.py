"""Unit tests for preferences."""
import pydantic
import pytest

from chorus.config import StreamingSpeed
from chorus.llm import ProviderTag
from chorus.preferences import Preferences
from chorus.streaming import DeliveryPolicy


class TestPreferences:
    """Tests for the preferences value object."""

    def test_defaults(self):
        """Test the out-of-the-box values."""
        prefs = Preferences()

        assert prefs.streaming_enabled
        assert prefs.streaming_speed_ms == StreamingSpeed.VERY_FAST
        assert prefs.provider == ProviderTag.GOOGLE
        assert [p.name for p in prefs.system_prompts] == [
            "Default Assistant", "Code Expert", "Creative Writer"
        ]

    @pytest.mark.parametrize("speed,policy", [
        (0, DeliveryPolicy.FRAME),
        (StreamingSpeed.VERY_FAST, DeliveryPolicy.FRAME),
        (StreamingSpeed.FAST, DeliveryPolicy.INTERVAL),
        (StreamingSpeed.SLOW, DeliveryPolicy.INTERVAL),
    ])
    def test_throttle_config_policy(self, speed, policy):
        """Test the speed to delivery policy mapping."""
        config = Preferences(streaming_speed_ms=speed).throttle_config()

        assert config.policy == policy
        assert config.interval_ms == speed

    def test_disabled_streaming_delivers_once(self):
        """Test that streaming off maps to complete delivery."""
        config = Preferences(streaming_enabled=False).throttle_config()
        assert config.policy == DeliveryPolicy.COMPLETE

    def test_fast_interval_is_immediate(self):
        """Test that short intervals flush every delta."""
        assert Preferences(streaming_speed_ms=StreamingSpeed.FAST).throttle_config().immediate
        assert not Preferences(streaming_speed_ms=StreamingSpeed.SLOW).throttle_config().immediate

    def test_generation_parameters(self):
        """Test that session parameters come from preferences."""
        params = Preferences(temperature=0.1, max_output_tokens=99).generation_parameters()

        assert params.temperature == 0.1
        assert params.max_output_tokens == 99

    def test_updated_validates(self):
        """Test that updates return a new validated copy."""
        prefs = Preferences()

        changed = prefs.updated(temperature=1.5)

        assert changed.temperature == 1.5
        assert prefs.temperature != 1.5
        with pytest.raises(pydantic.ValidationError):
            prefs.updated(temperature=5)

    @pytest.mark.parametrize("name,expected", [
        ("slow", StreamingSpeed.SLOW),
        ("Normal", StreamingSpeed.NORMAL),
        ("very-fast", StreamingSpeed.VERY_FAST),
        ("warp", StreamingSpeed.VERY_FAST),
    ])
    def test_speed_presets(self, name, expected):
        """Test preset name parsing."""
        assert StreamingSpeed.from_string(name) == expected
