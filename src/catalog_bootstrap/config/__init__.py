"""Application configuration helpers."""

from __future__ import annotations

from .bootstrap import (
    DEFAULT_MAX_WORKERS,
    ApiEndpoints,
    Credentials,
    ItemTopicsMode,
    LogLevel,
    RunConfig,
)
from .env import optional_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging

__all__ = [
    "DEFAULT_MAX_WORKERS",
    "ApiEndpoints",
    "ConfigurationError",
    "Credentials",
    "ItemTopicsMode",
    "LogLevel",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "RunConfig",
    "configure_logging",
    "optional_env_var",
    "require_env_vars",
]
