"""Worker-bounded GraphQL transport for the catalog endpoints."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, replace
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from catalog_bootstrap.adapters.http_resilience import ResilientClient

from .schema import GraphQLResponse

if TYPE_CHECKING:
    from collections.abc import Mapping

    from catalog_bootstrap.config import LogLevel, ResilienceConfig

log = getLogger(__name__)

ErrorNotifier = Callable[[str], None]


@dataclass(frozen=True, slots=True)
class AccessTokenAuth:
    access_token_id: str
    access_token_secret: str

    def headers(self) -> dict[str, str]:
        return {
            "X-Access-Token-Id": self.access_token_id,
            "X-Access-Token-Secret": self.access_token_secret,
        }


@dataclass(frozen=True, slots=True)
class StaticTokenAuth:
    token: str

    def headers(self) -> dict[str, str]:
        return {"X-Static-Auth-Token": self.token}


type ApiCredential = AccessTokenAuth | StaticTokenAuth


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class GraphQLClient:
    """Execute GraphQL documents against one endpoint.

    ``push`` never raises for transport or remote failures. Errors are handed to
    the notifier and returned in the response envelope so callers can fold them
    into per-entity warnings.
    """

    def __init__(
        self,
        *,
        name: str,
        url: str,
        credential: ApiCredential,
        resilience: ResilienceConfig,
        max_workers: int,
        error_notifier: ErrorNotifier | None = None,
        log_level: LogLevel = "silent",
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self.name = name
        self.url = url
        self.credential = credential
        self.log_level = log_level
        self._error_notifier = error_notifier
        self._client = (client_factory or _default_client_factory)(
            replace(resilience, name=name, base_url=None)
        )
        self._max_workers = max_workers
        self._slots: asyncio.Semaphore | None = None
        self._in_flight = 0

    @property
    def max_workers(self) -> int:
        return self._max_workers

    @max_workers.setter
    def max_workers(self, value: int) -> None:
        if value < 1:
            raise ValueError(f"max_workers must be at least 1, got {value}")
        if self._in_flight:
            raise RuntimeError("Cannot resize the worker pool while requests are in flight")
        self._max_workers = value
        self._slots = None

    @property
    def in_flight(self) -> int:
        return self._in_flight

    async def push(
        self, query: str, variables: Mapping[str, object] | None = None
    ) -> GraphQLResponse:
        if self._slots is None:
            self._slots = asyncio.Semaphore(self._max_workers)
        async with self._slots:
            self._in_flight += 1
            try:
                result = await self._execute(query, variables)
            finally:
                self._in_flight -= 1

        if result.errors:
            self._notify(result.error_text())
        return result

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _execute(
        self, query: str, variables: Mapping[str, object] | None
    ) -> GraphQLResponse:
        payload = {"query": query, "variables": dict(variables or {})}
        if self.log_level == "verbose":
            log.debug("%s request: %s", self.name, payload)

        try:
            response = await self._client.post(
                self.url, json=payload, headers=self.credential.headers()
            )
        except httpx.HTTPError as exc:
            return GraphQLResponse.failure(f"{self.name}: {type(exc).__name__}: {exc}")

        try:
            body = response.json()
        except ValueError:
            return GraphQLResponse.failure(
                f"{self.name}: HTTP {response.status_code} with non-JSON body"
            )

        if not isinstance(body, dict):
            return GraphQLResponse.failure(f"{self.name}: unexpected response payload")

        try:
            result = GraphQLResponse.model_validate(body)
        except ValidationError as exc:
            return GraphQLResponse.failure(f"{self.name}: malformed response: {exc}")

        if response.is_error and not result.errors:
            return GraphQLResponse.failure(f"{self.name}: HTTP {response.status_code}")

        if self.log_level == "verbose":
            log.debug("%s response: %s", self.name, body)
        return result

    def _notify(self, message: str) -> None:
        if self.log_level != "silent":
            log.warning("%s call failed: %s", self.name, message)
        if self._error_notifier is not None:
            self._error_notifier(message)
