"""
Runtime settings read from the environment.

- KUBEPIZZA_LOG_LEVEL: logging level name or number (default WARNING).
- KUBEPIZZA_SEND_DELAY: seconds the "sending order" spinner waits (default 2.0).
- KUBEPIZZA_FANCY: render help and faults inside panels (boolean literal).
- NO_COLOR: any non-empty value disables styling.
"""
import logging

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_prefix="KUBEPIZZA_", env_ignore_empty=True, populate_by_name=True, extra="ignore")

    level: int = Field(logging.WARNING, validation_alias="KUBEPIZZA_LOG_LEVEL")
    delay: float = Field(2.0, ge=0, validation_alias="KUBEPIZZA_SEND_DELAY")
    fancy: bool = False
    colorful: bool = True
    no_color: bool = Field(False, validation_alias="NO_COLOR", exclude=True)

    @field_validator("level", mode="before")
    @classmethod
    def _level(cls, value):
        if isinstance(value, str):
            value = value.strip()
            if value.isdigit():
                return int(value)
            if not isinstance(level := logging.getLevelName(value.upper()), int):
                raise ValueError(f"invalid log level {value!r}")
            return level
        return value

    @field_validator("no_color", mode="before")
    @classmethod
    def _no_color(cls, value):
        # NO_COLOR disables styling whatever its value
        return bool(value)

    @model_validator(mode="after")
    def _colors(self):
        if self.no_color:
            self.colorful = False
        return self


__all__ = (
    "Settings",
)
