"""
GDMT Configuration

Centralized configuration using Pydantic Settings.
All configuration is loaded from environment variables with sensible defaults.
Core evaluation functions never read settings themselves; only the outer
entry points (default ruleset, default action-plan cap) consult them.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RulesetSettings(BaseSettings):
    """Ruleset location."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="", extra="ignore"
    )

    # None means the ruleset bundled with the package
    ruleset_path: Path | None = Field(default=None, alias="GDMT_RULESET_PATH")

    @field_validator("ruleset_path", mode="before")
    @classmethod
    def resolve_path(cls, v: str | Path | None) -> Path | None:
        if v is None or v == "":
            return None
        return Path(v).expanduser().resolve()


class ActionPlanSettings(BaseSettings):
    """Action plan presentation limits."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="", extra="ignore"
    )

    max_items: int = Field(default=5, ge=1, le=20, alias="GDMT_ACTION_PLAN_MAX_ITEMS")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="", extra="ignore"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )
    log_format: Literal["json", "text"] = Field(default="text", alias="LOG_FORMAT")


class Settings(BaseSettings):
    """
    Main GDMT settings aggregator.

    Usage:
        from gdmt.config import get_settings
        settings = get_settings()
        print(settings.action_plan.max_items)
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Sub-settings (composed)
    ruleset: RulesetSettings = Field(default_factory=RulesetSettings)
    action_plan: ActionPlanSettings = Field(default_factory=ActionPlanSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# Singleton pattern for settings
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance (singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (useful for testing)."""
    global _settings
    _settings = None
