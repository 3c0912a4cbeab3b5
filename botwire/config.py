"""botwire — Process-wide configuration.

Configuration is loaded from (in order of increasing priority):
    1. Built-in defaults (this file)
    2. Environment variables prefixed with BOTWIRE_
       (nested fields use ``__``, e.g. ``BOTWIRE_ROBOT__MODE=auto``)
    3. Keyword arguments passed to ``Settings(...)``

Robots, factories and the registry read the module-level singleton
returned by :func:`get_settings` unless a ``Settings`` instance is injected.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ---------------------------------------------------------------------------
# Sub-configuration blocks
# ---------------------------------------------------------------------------


class RobotConfig(BaseModel):
    mode: Literal["manual", "auto"] = Field(
        default="manual",
        description=(
            "manual — the caller invokes Robot.start() explicitly. "
            "auto   — every Robot schedules start() on the next loop iteration."
        ),
    )
    work_mode: Literal["async", "sync"] = Field(
        default="async",
        description=(
            "async — run the work routine once all devices have started. "
            "sync  — start connections and devices only; the caller drives work."
        ),
    )


class TestingConfig(BaseModel):
    env: str = Field(
        default="production",
        description="Deployment environment. Test mode is only honoured when this is 'test'.",
    )
    test_mode: bool = Field(
        default=False,
        description="Substitute the 'test' adaptor/driver stubs for every plugin.",
    )


class PluginConfig(BaseModel):
    prefix: str = Field(
        default="botwire_",
        description=(
            "Prefix joined with a capability name to form the module tried "
            "on demand (capability 'firmata' → module 'botwire_firmata')."
        ),
    )
    entry_point_group: str = Field(
        default="botwire.plugins",
        description="Entry point group scanned by CapabilityRegistry.discover_plugins().",
    )
    discover_on_startup: bool = Field(
        default=False,
        description="Scan entry points when the default registry is first created.",
    )

    @field_validator("prefix")
    @classmethod
    def prefix_is_importable(cls, v: str) -> str:
        if "-" in v:
            raise ValueError("plugin prefix must be a valid Python identifier fragment")
        return v


class LoggingConfig(BaseModel):
    level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    format: Literal["json", "console"] = "console"
    file: Path | None = None


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BOTWIRE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    robot: RobotConfig = Field(default_factory=RobotConfig)
    testing: TestingConfig = Field(default_factory=TestingConfig)
    plugins: PluginConfig = Field(default_factory=PluginConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def mode(self) -> str:
        return self.robot.mode

    @property
    def work_mode(self) -> str:
        return self.robot.work_mode

    @property
    def plugin_prefix(self) -> str:
        return self.plugins.prefix

    @property
    def test_mode_active(self) -> bool:
        """True when stub plugins must replace real ones."""
        return self.testing.env == "test" and self.testing.test_mode


# Module-level singleton — built lazily from the environment.
_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def override_settings(settings: Settings | None) -> None:
    """Replace the module-level singleton. Used in tests."""
    global _settings
    _settings = settings
