"""In-memory stand-ins for the GraphQL endpoints."""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, cast

import httpx

from catalog_bootstrap.adapters.graphql import GraphQLResponse
from catalog_bootstrap.adapters.http_resilience import ResilientClient
from catalog_bootstrap.config import RunConfig
from catalog_bootstrap.domain.context import BootstrapContext
from catalog_bootstrap.domain.spec import SpecLanguage

if TYPE_CHECKING:
    from catalog_bootstrap.adapters.graphql import GraphQLClient
    from catalog_bootstrap.config import ResilienceConfig

type Route = Mapping[str, Any] | GraphQLResponse | Callable[[dict[str, Any]], Any]

_OPERATION = re.compile(r"(?:query|mutation)\s+(\w+)")


def operation_name(query: str) -> str:
    match = _OPERATION.search(query)
    return match.group(1) if match else ""


def data(payload: Mapping[str, Any]) -> GraphQLResponse:
    return GraphQLResponse(data=dict(payload))


def error(message: str) -> GraphQLResponse:
    return GraphQLResponse.failure(message)


class FakeGraphQL:
    """Answer GraphQL documents by operation name and record every call.

    A route is a fixed payload, a ``GraphQLResponse`` or a callable taking the
    variables. Unknown operations answer with empty data.
    """

    def __init__(self, routes: Mapping[str, Route] | None = None) -> None:
        self.routes: dict[str, Route] = dict(routes or {})
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def push(
        self, query: str, variables: Mapping[str, object] | None = None
    ) -> GraphQLResponse:
        name = operation_name(query)
        arguments = dict(variables or {})
        self.calls.append((name, arguments))
        route = self.routes.get(name)
        if route is None:
            return GraphQLResponse(data={})
        result = route(arguments) if callable(route) else route
        if isinstance(result, GraphQLResponse):
            return result
        return GraphQLResponse.model_validate({"data": result})

    def named(self, name: str) -> list[dict[str, Any]]:
        return [arguments for operation, arguments in self.calls if operation == name]

    def count(self, name: str) -> int:
        return len(self.named(name))

    async def aclose(self) -> None:
        return None

    def as_client(self) -> GraphQLClient:
        return cast("GraphQLClient", self)


def make_context(
    management: FakeGraphQL | None = None,
    *,
    catalog: FakeGraphQL | None = None,
    orders: FakeGraphQL | None = None,
    config: RunConfig | None = None,
) -> BootstrapContext:
    return BootstrapContext(
        config=config or RunConfig(),
        instance_id="instance-1",
        instance_identifier="acme",
        default_language=SpecLanguage(code="en", name="English", isDefault=True),
        management=management.as_client() if management else None,
        catalog=catalog.as_client() if catalog else None,
        orders=orders.as_client() if orders else None,
    )


def serve(remotes: Mapping[str, FakeGraphQL]) -> Callable[[ResilienceConfig], ResilientClient]:
    """Client factory answering each named endpoint from its ``FakeGraphQL``."""

    def handler_for(remote: FakeGraphQL) -> httpx.MockTransport:
        async def handle(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            response = await remote.push(body["query"], body.get("variables"))
            return httpx.Response(200, json=response.model_dump(exclude_none=True))

        return httpx.MockTransport(handle)

    def factory(config: ResilienceConfig) -> ResilientClient:
        return ResilientClient(config, transport=handler_for(remotes[config.name]))

    return factory
