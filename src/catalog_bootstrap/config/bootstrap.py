"""Run-scoped configuration for bootstrapping a catalog instance."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from .env import optional_env_var, require_env_vars
from .errors import ConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

type LogLevel = Literal["silent", "info", "verbose"]
type ItemTopicsMode = Literal["amend", "replace"]

DEFAULT_MAX_WORKERS = 5

_HOSTS: dict[str, tuple[str, str]] = {
    "dev": ("https://pim-dev.catalog-api.dev/graphql", "https://api-dev.catalog-api.dev"),
    "prod": ("https://pim.catalog-api.com/graphql", "https://api.catalog-api.com"),
}


@dataclass(frozen=True, slots=True)
class Credentials:
    """Access-token pair used against the management API."""

    access_token_id: str
    access_token_secret: str

    @classmethod
    def from_environment(cls) -> Credentials:
        values = require_env_vars(("CATALOG_ACCESS_TOKEN_ID", "CATALOG_ACCESS_TOKEN_SECRET"))
        return cls(
            access_token_id=values["CATALOG_ACCESS_TOKEN_ID"],
            access_token_secret=values["CATALOG_ACCESS_TOKEN_SECRET"],
        )


@dataclass(frozen=True, slots=True)
class ApiEndpoints:
    management_url: str
    api_base_url: str

    @classmethod
    def for_environment(cls, env: str | None = None) -> ApiEndpoints:
        selected = env if env is not None else optional_env_var("CATALOG_ENV", "prod")
        management_url, api_base_url = _HOSTS["dev" if selected == "dev" else "prod"]
        return cls(management_url=management_url, api_base_url=api_base_url)

    def catalog_url(self, instance_identifier: str) -> str:
        return f"{self.api_base_url}/{instance_identifier}/catalog"

    def orders_url(self, instance_identifier: str) -> str:
        return f"{self.api_base_url}/{instance_identifier}/orders"


@dataclass(frozen=True, slots=True)
class RunConfig:
    max_workers: int = DEFAULT_MAX_WORKERS
    multilingual: bool = False
    item_topics: ItemTopicsMode = "amend"
    log_level: LogLevel = "silent"
    use_reference_cache: bool = False
    resilience: ResilienceConfig = field(
        default_factory=lambda: ResilienceConfig(
            name="catalog",
            retry=RetryPolicy(total=3),
            ratelimit=RateLimit(max_calls=20, per_seconds=1.0),
        )
    )

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be at least 1, got {self.max_workers}")
        if self.item_topics not in ("amend", "replace"):
            raise ConfigurationError(f"Unsupported item_topics mode: {self.item_topics}")
        if self.log_level not in ("silent", "info", "verbose"):
            raise ConfigurationError(f"Unsupported log level: {self.log_level}")

    @property
    def effective_workers(self) -> int:
        # Per-language writes against one parent race when run in parallel.
        return 1 if self.multilingual else self.max_workers
