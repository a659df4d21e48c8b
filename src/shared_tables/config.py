"""
Client configuration.

A ClientConfig is built once (usually with ClientConfig.from_env) and passed
to the client and transport; nothing in the package holds a global client.
"""

from __future__ import annotations

import os
from contextlib import suppress
from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from shared_tables.errors import ConfigError

DEFAULT_ORIGIN = "http://localhost:8000"
DEFAULT_TIMEOUT = 30.0
DEFAULT_CONNECT_TIMEOUT = 10.0

ENV_ORIGIN = "SHARED_TABLES_ORIGIN"
ENV_API_KEY = "SHARED_TABLES_API_KEY"
ENV_TIMEOUT = "SHARED_TABLES_TIMEOUT_SECS"
ENV_TRUST_ENV = "SHARED_TABLES_TRUST_ENV"


class ClientConfig(BaseModel):
    """Connection and behaviour settings for a TablesClient."""

    model_config = ConfigDict(frozen=True)

    origin: str = Field(default=DEFAULT_ORIGIN, description="Query service origin")
    api_key: str | None = Field(
        default=None, description="Bearer token sent as the Authorization header"
    )
    timeout: float = Field(
        default=DEFAULT_TIMEOUT, gt=0, description="Read/write timeout in seconds"
    )
    connect_timeout: float = Field(
        default=DEFAULT_CONNECT_TIMEOUT, gt=0, description="Connect timeout in seconds"
    )
    camel_response: bool = Field(
        default=False, description="Camelize record keys after user transforms"
    )
    trust_env: bool = Field(
        default=False, description="Let httpx read proxy settings from the environment"
    )

    @field_validator("origin")
    @classmethod
    def _check_origin(cls, value: str) -> str:
        parts = urlsplit(value)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"origin must be an http(s) URL, got {value!r}")
        return value.rstrip("/")

    @classmethod
    def from_env(cls, **overrides: Any) -> ClientConfig:
        """Build a config from SHARED_TABLES_* environment variables.

        Explicit keyword overrides win over the environment.

        Raises:
            ConfigError: If a value is invalid
        """
        values: dict[str, Any] = {}

        origin = os.getenv(ENV_ORIGIN)
        if origin:
            values["origin"] = origin

        api_key = os.getenv(ENV_API_KEY)
        if api_key:
            values["api_key"] = api_key

        env_timeout = os.getenv(ENV_TIMEOUT)
        if env_timeout:
            with suppress(ValueError):
                values["timeout"] = float(env_timeout)

        values["trust_env"] = os.getenv(ENV_TRUST_ENV, "0") == "1"

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.create(**values)

    @classmethod
    def create(cls, **values: Any) -> ClientConfig:
        """Validate values into a config, raising ConfigError on failure."""
        try:
            return cls(**values)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(p) for p in first.get("loc", ()))
            raise ConfigError(
                f"Invalid client configuration: {first.get('msg')}", field=field or None
            ) from e
