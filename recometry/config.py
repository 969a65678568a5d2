"""
Recometry Client – Configuration

This module defines the immutable configuration supplied once at
construction of the client.

CRITICAL RULES:
- api_key and env are REQUIRED (construction fails immediately otherwise)
- env is a closed set (sandbox | live), each with a fixed base address
- The base address is NOT user-overridable
- Configuration is IMMUTABLE after construction
"""

import os
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from loguru import logger

from .types import BASE_URLS, Environment

# Called with the raw error value of a transport error notification.
# May be a plain function or a coroutine function.
ErrorCallback = Callable[[Any], Union[None, Awaitable[None]]]

DEFAULT_LOGGER = logger.bind(sdk="recometry")


@dataclass(frozen=True)
class RecometryConfig:
    """
    Client configuration.

    FIELDS:
    - api_key: Opaque bearer credential (required)
    - env: Target environment, Environment or its string value (required)
    - on_error: Optional callback for asynchronous transport errors
    - logger: Optional loguru-compatible logger; defaults to the package logger
    - auto_reconnect: Let the transport reconnect on its own after a drop
    - request_timeout: Total timeout for recommend/predict, None = library default
    """

    api_key: str
    env: Union[Environment, str]
    on_error: Optional[ErrorCallback] = None
    logger: Optional[Any] = None
    auto_reconnect: bool = True
    request_timeout: Optional[float] = None

    def __post_init__(self):
        """Validate configuration on creation."""
        if not self.api_key or not isinstance(self.api_key, str):
            raise ValueError("api_key must be a non-empty string")

        try:
            env = Environment(self.env)
        except ValueError:
            allowed = ", ".join(e.value for e in Environment)
            raise ValueError(f"env must be one of: {allowed} (got {self.env!r})")
        object.__setattr__(self, "env", env)

        if self.on_error is not None and not callable(self.on_error):
            raise ValueError("on_error must be callable")

        if self.request_timeout is not None and self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")

    @property
    def base_url(self) -> str:
        """Base address for both the hub channel and the ML endpoints."""
        return BASE_URLS[self.env]

    @property
    def log(self):
        return self.logger if self.logger is not None else DEFAULT_LOGGER

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **overrides: Any
    ) -> "RecometryConfig":
        """
        Build a configuration from environment variables.

        Reads:
            RECOMETRY_API_KEY: Bearer credential (required)
            RECOMETRY_ENV: sandbox | live (default: sandbox)
            RECOMETRY_REQUEST_TIMEOUT: Seconds, optional

        Keyword overrides take precedence over the environment.

        Raises:
            ValueError: If the resulting configuration is invalid
        """
        environ = os.environ if environ is None else environ

        values = {
            "api_key": environ.get("RECOMETRY_API_KEY", ""),
            "env": environ.get("RECOMETRY_ENV", Environment.SANDBOX.value),
        }

        timeout = environ.get("RECOMETRY_REQUEST_TIMEOUT")
        if timeout:
            try:
                values["request_timeout"] = float(timeout)
            except ValueError:
                raise ValueError(
                    f"RECOMETRY_REQUEST_TIMEOUT must be a number (got {timeout!r})"
                )

        values.update(overrides)
        return cls(**values)
