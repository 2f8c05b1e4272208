"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING

from catalog_bootstrap.config import ApiEndpoints, Credentials, RunConfig
from catalog_bootstrap.domain.bootstrapper import Bootstrapper
from catalog_bootstrap.domain.events import EventName

if TYPE_CHECKING:
    from catalog_bootstrap.adapters.http_resilience import ResilientClient
    from catalog_bootstrap.config import ResilienceConfig
    from catalog_bootstrap.domain.events import Event, EventStream
    from catalog_bootstrap.domain.export import ExportOptions
    from catalog_bootstrap.domain.spec import Spec
    from catalog_bootstrap.domain.status import Status

ClientFactory = Callable[["ResilienceConfig"], "ResilientClient"]


log = getLogger(__name__)


async def report_progress(stream: EventStream) -> Status | None:
    """Log run events until the stream ends; return the last status snapshot."""

    last_status: Status | None = None
    async for event in stream:
        if event.name is EventName.STATUS_UPDATE:
            last_status = event.payload["status"]  # type: ignore[assignment]
        elif event.name is EventName.ERROR:
            log.warning("%s", event.payload.get("error"))
        elif event.name is EventName.DONE:
            log.info("Done in %s", event.payload.get("duration_text"))
        elif event.name.endswith("-done"):
            log.info("%s", event.name)
        else:
            _log_area_message(event)
    return last_status


def _log_area_message(event: Event) -> None:
    update = event.payload.get("update")
    message = getattr(update, "message", None)
    if message:
        log.debug("%s: %s", event.payload.get("area"), message)


def _build_bootstrapper(
    instance_identifier: str,
    config: RunConfig,
    credentials: Credentials | None,
    endpoints: ApiEndpoints | None,
    client_factory: ClientFactory | None,
) -> Bootstrapper:
    effective_credentials = credentials or Credentials.from_environment()
    bootstrapper = Bootstrapper(
        config,
        endpoints=endpoints or ApiEndpoints.for_environment(),
        client_factory=client_factory,
    )
    bootstrapper.set_access_token(
        effective_credentials.access_token_id, effective_credentials.access_token_secret
    )
    bootstrapper.set_instance_identifier(instance_identifier)
    return bootstrapper


def bootstrap_instance(
    instance_identifier: str,
    spec: Spec,
    *,
    config: RunConfig | None = None,
    credentials: Credentials | None = None,
    endpoints: ApiEndpoints | None = None,
    client_factory: ClientFactory | None = None,
) -> Status:
    """Reconcile ``instance_identifier`` to ``spec`` and return the final status."""

    bootstrapper = _build_bootstrapper(
        instance_identifier, config or RunConfig(), credentials, endpoints, client_factory
    )
    bootstrapper.set_spec(spec)
    log.info("Starting bootstrap of instance %s", instance_identifier)

    async def run() -> Status:
        reporter = asyncio.create_task(report_progress(bootstrapper.bus.stream()))
        try:
            await bootstrapper.start()
        finally:
            await reporter
            await bootstrapper.aclose()
        return bootstrapper.status

    status = asyncio.run(run())
    for area, warnings in status.warnings.items():
        log.info("%s finished with %d warning(s)", area, len(warnings))
    return status


def create_spec(
    instance_identifier: str,
    options: ExportOptions | None = None,
    *,
    config: RunConfig | None = None,
    credentials: Credentials | None = None,
    endpoints: ApiEndpoints | None = None,
    client_factory: ClientFactory | None = None,
) -> Spec:
    """Export the current state of ``instance_identifier`` as a spec document."""

    export_config = replace(config or RunConfig(), use_reference_cache=True)
    bootstrapper = _build_bootstrapper(
        instance_identifier, export_config, credentials, endpoints, client_factory
    )
    log.info("Exporting instance %s", instance_identifier)

    async def run() -> Spec:
        bootstrapper.bus.subscribe(
            EventName.ERROR, lambda event: log.warning("%s", event.payload.get("error"))
        )
        try:
            return await bootstrapper.create_spec(options)
        finally:
            await bootstrapper.aclose()

    return asyncio.run(run())
