# This file defines runtime settings for the product API layer in one place.
# It exists so route prefixes, data-source names, and update behavior can be configured without code edits.
# The config loader reads environment variables and applies safe defaults for local development.
# It also validates table names and the route prefix to prevent unsafe SQL identifier usage.

from __future__ import annotations

import os
import re
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

_IDENTIFIER_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


class ApiConfig(BaseModel):
    """Typed API runtime configuration."""

    model_config = ConfigDict(extra="ignore")

    api_name: str = "Product Catalog API"
    api_prefix: str = "/api"
    host: str = "0.0.0.0"
    port: int = 8000
    environment: str = "local"
    database_url: str
    enable_request_logging: bool = False
    allowed_origins: list[str] = Field(default_factory=list)
    product_table_name: str = "products"
    request_log_table_name: str = "api_request_log"
    atomic_rating_updates: bool = False
    app_version: str = "0.1.0"
    allowed_table_names: set[str] = Field(default_factory=set)

    @field_validator("api_prefix")
    @classmethod
    def validate_api_prefix(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("api_prefix must start with '/'.")
        cleaned = value.rstrip("/")
        if not cleaned:
            raise ValueError("api_prefix must not be the root path.")
        return cleaned

    @field_validator("product_table_name", "request_log_table_name")
    @classmethod
    def validate_identifier(cls, value: str) -> str:
        if not _IDENTIFIER_RE.match(value):
            raise ValueError(f"Unsafe SQL identifier: {value!r}")
        return value

    @field_validator("port")
    @classmethod
    def validate_port(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Value must be greater than 0.")
        return value

    def validate_table_name(self, table_name: str) -> str:
        if not _IDENTIFIER_RE.match(table_name):
            raise ValueError(f"Unsafe SQL identifier: {table_name!r}")
        if table_name not in self.allowed_table_names:
            raise ValueError(f"Table name is not in allowlist: {table_name!r}")
        return table_name


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "y", "on"}:
        return True
    if value in {"0", "false", "no", "n", "off"}:
        return False
    raise ValueError(f"{name} must be boolean-like, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _env_list(name: str, default: list[str] | None = None) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default or [])
    return [item.strip() for item in raw.split(",") if item.strip()]


def _build_allowed_table_names(config_values: dict[str, object]) -> set[str]:
    configured_names = {
        str(config_values["product_table_name"]),
        str(config_values["request_log_table_name"]),
        "products",
        "api_request_log",
    }
    configured_names.update(_env_list("API_ALLOWED_TABLE_NAMES", []))
    for table_name in configured_names:
        if not _IDENTIFIER_RE.match(table_name):
            raise ValueError(f"Unsafe SQL identifier in allowlist: {table_name!r}")
    return configured_names


def load_api_config(*, load_env: bool = True) -> ApiConfig:
    """Load API configuration from `.env` and process environment."""

    if load_env:
        load_dotenv()

    config_values: dict[str, object] = {
        "api_name": os.getenv("API_NAME", "Product Catalog API"),
        "api_prefix": os.getenv("API_PREFIX", "/api"),
        "host": os.getenv("API_HOST", "0.0.0.0"),
        "port": _env_int("API_PORT", 8000),
        "environment": os.getenv("ENV", "local"),
        "database_url": os.getenv("DATABASE_URL", ""),
        "enable_request_logging": _env_bool("API_ENABLE_REQUEST_LOGGING", False),
        "allowed_origins": _env_list("API_ALLOWED_ORIGINS", []),
        "product_table_name": os.getenv("API_PRODUCT_TABLE_NAME", "products"),
        "request_log_table_name": os.getenv("API_REQUEST_LOG_TABLE_NAME", "api_request_log"),
        "atomic_rating_updates": _env_bool("API_ATOMIC_RATING_UPDATES", False),
        "app_version": os.getenv("APP_VERSION", "0.1.0"),
    }
    if not config_values["database_url"]:
        raise RuntimeError("DATABASE_URL is required for API startup.")

    config_values["allowed_table_names"] = _build_allowed_table_names(config_values)

    return ApiConfig.model_validate(config_values)


@lru_cache(maxsize=1)
def get_api_config() -> ApiConfig:
    """Cached accessor for API config."""

    return load_api_config()
