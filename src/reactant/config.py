"""Engine settings.

Settings are process-wide, like the rest of the tracking state. Change them
with configure() before building reactive graphs; reset_settings() restores
the defaults (handy in tests).
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace


@dataclass(frozen=True)
class Settings:
    # Longest chain of computations scheduling each other in one flush.
    max_cascade_depth: int = 100
    # Whether effects may re-queue themselves from their own writes.
    effect_self_trigger: bool = False


_settings = Settings()


def get_settings() -> Settings:
    return _settings


def configure(**overrides) -> Settings:
    """Replace individual settings. Returns the new Settings.

    Usage:
        reactant.configure(max_cascade_depth=20)
    """
    global _settings
    known = {f.name for f in fields(Settings)}
    unknown = set(overrides) - known
    if unknown:
        raise TypeError(f"Unknown setting(s): {', '.join(sorted(unknown))}")
    if "max_cascade_depth" in overrides and overrides["max_cascade_depth"] < 1:
        raise ValueError("max_cascade_depth must be at least 1")
    _settings = replace(_settings, **overrides)
    return _settings


def reset_settings() -> Settings:
    global _settings
    _settings = Settings()
    return _settings
