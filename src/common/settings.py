"""
Process-wide settings shared by the service and the scripts.
Only the log level lives here; API behavior is configured through `src.api.api_config`.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

_LOG_LEVEL_NAMES = frozenset(logging.getLevelNamesMapping())


class Settings(BaseModel):
    """Typed runtime configuration."""

    model_config = ConfigDict(extra="ignore")

    LOG_LEVEL: str = "INFO"

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level_name = value.strip().upper()
        if level_name not in _LOG_LEVEL_NAMES:
            raise ValueError(f"Unknown log level: {value!r}")
        return level_name


def load_settings(*, load_env: bool = True) -> Settings:
    """Load and validate settings from `.env` and the process environment."""

    if load_env:
        load_dotenv()

    raw_level = os.getenv("LOG_LEVEL")
    values = {"LOG_LEVEL": raw_level} if raw_level else {}
    try:
        return Settings.model_validate(values)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid environment configuration: {exc}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached accessor for application settings."""

    return load_settings()
