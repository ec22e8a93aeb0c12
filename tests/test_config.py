"""Tests for engine settings."""

import pytest

from reactant import Settings, configure, get_settings, reset_settings


class TestConfigure:
    def test_defaults(self):
        settings = get_settings()
        assert settings == Settings()
        assert settings.max_cascade_depth == 100
        assert settings.effect_self_trigger is False

    def test_override(self):
        updated = configure(max_cascade_depth=7)
        assert updated.max_cascade_depth == 7
        assert get_settings() is updated
        assert updated.effect_self_trigger is False

    def test_unknown_setting(self):
        with pytest.raises(TypeError, match="Unknown setting"):
            configure(debounce=10)

    def test_depth_must_be_positive(self):
        with pytest.raises(ValueError):
            configure(max_cascade_depth=0)
        assert get_settings().max_cascade_depth == 100

    def test_reset(self):
        configure(max_cascade_depth=3, effect_self_trigger=True)
        assert reset_settings() == Settings()

    def test_settings_are_frozen(self):
        with pytest.raises(AttributeError):
            get_settings().max_cascade_depth = 1
