from __future__ import annotations

import asyncio

import httpx

from catalog_bootstrap.adapters.http_resilience import ResilientClient, build_retry
from catalog_bootstrap.config import ResilienceConfig, RetryPolicy


def test_build_retry_copies_policy() -> None:
    policy = RetryPolicy(total=2, backoff_factor=0.1, status_forcelist=frozenset({503}))

    retry = build_retry(policy)

    assert retry.total == 2
    assert retry.backoff_factor == 0.1
    assert 503 in retry.status_forcelist


def test_resilient_client_posts_through_injected_transport() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    config = ResilienceConfig(
        name="test",
        base_url="https://example.test",
        retry=RetryPolicy(total=0),
        default_headers={"X-Client": "catalog-bootstrap"},
    )

    async def run() -> httpx.Response:
        async with ResilientClient(config, transport=httpx.MockTransport(handler)) as client:
            return await client.post("/graphql", json={"query": "{ ping }"})

    response = asyncio.run(run())

    assert response.json() == {"ok": True}
    assert seen[0].method == "POST"
    assert str(seen[0].url) == "https://example.test/graphql"
    assert seen[0].headers["X-Client"] == "catalog-bootstrap"


def test_resilient_client_retries_gateway_errors() -> None:
    attempts = 0

    def handler(_request: httpx.Request) -> httpx.Response:
        nonlocal attempts
        attempts += 1
        if attempts == 1:
            return httpx.Response(503)
        return httpx.Response(200, json={})

    config = ResilienceConfig(
        name="test",
        retry=RetryPolicy(total=2, backoff_factor=0.0, backoff_jitter=0.0),
    )

    async def run() -> httpx.Response:
        async with ResilientClient(config, transport=httpx.MockTransport(handler)) as client:
            return await client.post("https://example.test/graphql", json={})

    response = asyncio.run(run())

    assert response.status_code == 200
    assert attempts == 2


def _count_posts(first_failure: Exception) -> tuple[int, BaseException | None]:
    attempts = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal attempts
        attempts += 1
        if attempts == 1:
            raise first_failure
        return httpx.Response(200, json={})

    config = ResilienceConfig(
        name="test", retry=RetryPolicy(backoff_factor=0.0, backoff_jitter=0.0)
    )

    async def run() -> None:
        async with ResilientClient(config, transport=httpx.MockTransport(handler)) as client:
            await client.post("https://example.test/graphql", json={"query": "mutation"})

    try:
        asyncio.run(run())
    except httpx.HTTPError as exc:
        return attempts, exc
    return attempts, None


def test_read_timeout_on_post_is_not_retried() -> None:
    attempts, failure = _count_posts(httpx.ReadTimeout("read timed out"))

    assert attempts == 1
    assert isinstance(failure, httpx.ReadTimeout)


def test_connect_error_on_post_is_retried() -> None:
    attempts, failure = _count_posts(httpx.ConnectError("connection refused"))

    assert attempts == 2
    assert failure is None
