"""Environment-based configuration using pydantic-settings.

All knobs load from ``TUIKIT_*`` environment variables or a local ``.env``
file. Widgets read the cached instance from :func:`get_settings` unless one is
passed explicitly.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TuikitSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="TUIKIT_", case_sensitive=False, extra="ignore"
    )

    # Logging
    log_level: str = Field(default="WARNING", description="Application log level")
    log_format: str = Field(default="text", description="Log format: json or text")
    log_file: Optional[str] = Field(
        default=None,
        description="Write logs to this file instead of stderr (keeps the terminal clean)",
    )

    # Theming
    theme: str = Field(default="dark", description="Base theme name")
    theme_file: Optional[str] = Field(default=None, description="YAML theme overrides")

    # Validation
    strict_validation: bool = Field(
        default=False, description="Warn about props the schema does not declare"
    )
    revalidate_on_update: bool = Field(
        default=True, description="Validate merged props on every update() call"
    )

    debug: bool = Field(default=False, description="Verbose deprecation and render diagnostics")

    @field_validator("log_format")
    @classmethod
    def _check_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v

    @field_validator("log_level")
    @classmethod
    def _check_level(cls, v: str) -> str:
        return v.upper()


@lru_cache(maxsize=1)
def get_settings() -> TuikitSettings:
    return TuikitSettings()
