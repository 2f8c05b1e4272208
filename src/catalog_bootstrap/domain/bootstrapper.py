"""Orchestrate a full bootstrap run against one catalog instance.

The bootstrapper resolves the instance once, then runs the area reconcilers
in dependency order:

languages, price variants, stock locations, subscription plans, vat types,
shapes, topics, grids, items, customers, orders, and a second grid pass that
fills in item references created by the items phase.

Progress leaves through the ``EventBus``: per-area ``*-update`` and
``*-done`` events, ``status-update`` with an immutable ``Status`` snapshot,
``error`` and a final ``done`` carrying the run duration.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from catalog_bootstrap.adapters.graphql import AccessTokenAuth, GraphQLClient, StaticTokenAuth
from catalog_bootstrap.config import ApiEndpoints, RunConfig

from .areas import (
    backfill_grids,
    reconcile_customers,
    reconcile_grids,
    reconcile_items,
    reconcile_languages,
    reconcile_orders,
    reconcile_price_variants,
    reconcile_shapes,
    reconcile_stock_locations,
    reconcile_subscription_plans,
    reconcile_topics,
    reconcile_vat_types,
)
from .context import BootstrapContext
from .errors import (
    BootstrapError,
    InstanceNotFoundError,
    LanguageResolutionError,
    TransportNotReadyError,
)
from .events import AREA_EVENTS, EventBus, EventName
from .export import ExportOptions, export_spec
from .spec import Spec
from .status import Area, StatusAggregator

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from catalog_bootstrap.adapters.graphql import ApiCredential
    from catalog_bootstrap.adapters.http_resilience import ResilientClient
    from catalog_bootstrap.config import ResilienceConfig

    from .areas.items import ItemsOutcome
    from .reconcile import UpdateSink
    from .status import AreaUpdate, Status

log = getLogger(__name__)

# Lets the caller supply credentials right after the identifier, in either order.
INSTANCE_LOOKUP_GRACE_SECONDS = 0.005

INSTANCE_QUERY = """
query GET_INSTANCE($identifier: String!) {
  instance {
    get(identifier: $identifier) {
      id
      identifier
      staticAuthToken
    }
  }
}
"""


class RunState(StrEnum):
    UNINITIALIZED = "uninitialized"
    RESOLVING_INSTANCE = "resolving-instance"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


def format_duration(duration: timedelta) -> str:
    total = duration.total_seconds()
    hours, remainder = divmod(int(total), 3600)
    minutes, _ = divmod(remainder, 60)
    seconds = total - hours * 3600 - minutes * 60
    parts: list[str] = []
    if hours:
        parts.append(f"{hours}h")
    if hours or minutes:
        parts.append(f"{minutes}m")
    parts.append(f"{seconds:.1f}s")
    return " ".join(parts)


def find_fatal(exc: BaseException) -> BootstrapError | None:
    """Return the first ``BootstrapError`` in ``exc``, looking inside task groups."""

    if isinstance(exc, BootstrapError):
        return exc
    if isinstance(exc, BaseExceptionGroup):
        for inner in exc.exceptions:
            if (found := find_fatal(inner)) is not None:
                return found
    return None


class Bootstrapper:
    def __init__(
        self,
        config: RunConfig | None = None,
        *,
        endpoints: ApiEndpoints | None = None,
        bus: EventBus | None = None,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self.config = config or RunConfig()
        self.endpoints = endpoints or ApiEndpoints.for_environment()
        self.bus = bus or EventBus()
        self.spec = Spec()
        self.state = RunState.UNINITIALIZED
        self.context = BootstrapContext(config=self.config, emit_error=self._emit_error)
        self.context.reference_cache.clear()
        self._status = StatusAggregator()
        self._client_factory = client_factory
        self._instance_lookup: asyncio.Task[None] | None = None

    @property
    def status(self) -> Status:
        return self._status.snapshot

    def set_access_token(self, access_token_id: str, access_token_secret: str) -> None:
        self.context.management = self._client(
            "management",
            self.endpoints.management_url,
            AccessTokenAuth(access_token_id, access_token_secret),
        )

    def set_spec(self, spec: Spec) -> None:
        self.spec = spec

    def set_instance_identifier(self, instance_identifier: str) -> None:
        """Select the target instance and, inside a running loop, start resolving it."""

        self.context.instance_identifier = instance_identifier
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        self._lookup()

    async def get_instance_basics(self) -> None:
        """Resolve the instance id and static token exactly once per bootstrapper."""

        await self._lookup()

    def _lookup(self) -> asyncio.Task[None]:
        if self._instance_lookup is None:
            self._instance_lookup = asyncio.ensure_future(self._resolve_instance())
        return self._instance_lookup

    async def _resolve_instance(self) -> None:
        self.state = RunState.RESOLVING_INSTANCE
        await asyncio.sleep(INSTANCE_LOOKUP_GRACE_SECONDS)

        management = self.context.management
        if management is None:
            raise TransportNotReadyError("Access token is not set")
        # Applied late so config changes made after set_access_token still count.
        management.max_workers = self.config.effective_workers
        management.log_level = self.config.log_level

        identifier = self.context.instance_identifier
        response = await self.context.call_management(INSTANCE_QUERY, {"identifier": identifier})
        instance = response.select("instance", "get")
        if not isinstance(instance, dict) or not instance.get("id"):
            raise InstanceNotFoundError(identifier)

        self.context.instance_id = instance["id"]
        token = StaticTokenAuth(instance.get("staticAuthToken") or "")
        self.context.catalog = self._client(
            "catalog", self.endpoints.catalog_url(identifier), token
        )
        self.context.orders = self._client("orders", self.endpoints.orders_url(identifier), token)
        log.info("Resolved instance %s (%s)", identifier, self.context.instance_id)

    def _client(self, name: str, url: str, credential: ApiCredential) -> GraphQLClient:
        return GraphQLClient(
            name=name,
            url=url,
            credential=credential,
            resilience=self.config.resilience,
            max_workers=self.config.effective_workers,
            error_notifier=self._emit_error,
            log_level=self.config.log_level,
            client_factory=self._client_factory,
        )

    def _emit_error(self, message: str) -> None:
        self.bus.publish(EventName.ERROR, {"error": message})

    def _sink(self, area: Area) -> UpdateSink:
        update_event, _ = AREA_EVENTS[area]

        def on_update(update: AreaUpdate) -> None:
            self.bus.publish(update_event, {"area": area, "update": update})
            snapshot = self._status.apply(area, update)
            if snapshot is not None:
                self.bus.publish(EventName.STATUS_UPDATE, {"status": snapshot})

        return on_update

    def _done(self, area: Area) -> None:
        _, done_event = AREA_EVENTS[area]
        self.bus.publish(done_event)

    async def set_languages(self) -> None:
        await self.get_instance_basics()
        languages = await reconcile_languages(
            self.spec.languages, self.context, self._sink(Area.LANGUAGES)
        )
        if not languages:
            raise LanguageResolutionError("Cannot get languages for the instance")
        default = next((language for language in languages if language.is_default), None)
        if default is None:
            raise LanguageResolutionError("Cannot determine default language for the instance")

        self.context.default_language = default
        self.context.languages = languages if self.config.multilingual else [default]
        self._done(Area.LANGUAGES)

    async def set_price_variants(self) -> None:
        await self.get_instance_basics()
        self.context.price_variants = await reconcile_price_variants(
            self.spec.price_variants, self.context, self._sink(Area.PRICE_VARIANTS)
        )
        self._done(Area.PRICE_VARIANTS)

    async def set_stock_locations(self) -> None:
        await self.get_instance_basics()
        self.context.stock_locations = await reconcile_stock_locations(
            self.spec.stock_locations, self.context, self._sink(Area.STOCK_LOCATIONS)
        )
        self._done(Area.STOCK_LOCATIONS)

    async def set_subscription_plans(self) -> None:
        await self.get_instance_basics()
        self.context.subscription_plans = await reconcile_subscription_plans(
            self.spec.subscription_plans, self.context, self._sink(Area.SUBSCRIPTION_PLANS)
        )
        self._done(Area.SUBSCRIPTION_PLANS)

    async def set_vat_types(self) -> None:
        await self.get_instance_basics()
        self.context.vat_types = await reconcile_vat_types(
            self.spec.vat_types, self.context, self._sink(Area.VAT_TYPES)
        )
        self._done(Area.VAT_TYPES)

    async def set_shapes(self) -> None:
        await self.get_instance_basics()
        self.context.shapes = await reconcile_shapes(
            self.spec.shapes, self.context, self._sink(Area.SHAPES)
        )
        self._done(Area.SHAPES)

    async def set_topics(self) -> None:
        await self.get_instance_basics()
        await reconcile_topics(self.spec.topic_maps, self.context, self._sink(Area.TOPIC_MAPS))
        self._done(Area.TOPIC_MAPS)

    async def set_grids(self, *, backfill: bool = False) -> None:
        """Create missing grids, or with ``backfill`` fill item cells of grids made this run."""

        await self.get_instance_basics()
        if backfill:
            await backfill_grids(self.context, self._sink(Area.GRIDS))
        else:
            await reconcile_grids(self.spec.grids, self.context, self._sink(Area.GRIDS))
        self._done(Area.GRIDS)

    async def set_items(self) -> ItemsOutcome:
        await self.get_instance_basics()
        outcome = await reconcile_items(self.spec.items, self.context, self._sink(Area.ITEMS))
        self._done(Area.ITEMS)
        return outcome

    async def set_customers(self) -> None:
        await self.get_instance_basics()
        self.context.customers = await reconcile_customers(
            self.spec.customers, self.context, self._sink(Area.CUSTOMERS)
        )
        self._done(Area.CUSTOMERS)

    async def set_orders(self) -> None:
        await self.get_instance_basics()
        await reconcile_orders(self.spec.orders, self.context, self._sink(Area.ORDERS))
        self._done(Area.ORDERS)

    def steps(self) -> list[tuple[str, Callable[[], Awaitable[object]]]]:
        return [
            ("languages", self.set_languages),
            ("price variants", self.set_price_variants),
            ("stock locations", self.set_stock_locations),
            ("subscription plans", self.set_subscription_plans),
            ("vat types", self.set_vat_types),
            ("shapes", self.set_shapes),
            ("topics", self.set_topics),
            ("grids", self.set_grids),
            ("items", self.set_items),
            ("customers", self.set_customers),
            ("orders", self.set_orders),
            ("grid item references", lambda: self.set_grids(backfill=True)),
        ]

    async def start(self) -> None:
        """Run every area in order.

        An unexpected failure inside one area is published as an ``error`` event
        and the run moves on. A ``BootstrapError`` fails the run and is re-raised.
        """

        started = datetime.now(UTC)
        try:
            await self.get_instance_basics()
            self.state = RunState.RUNNING
            for name, step in self.steps():
                try:
                    await step()
                except BootstrapError:
                    raise
                except Exception as exc:
                    if (fatal := find_fatal(exc)) is not None:
                        raise fatal from exc
                    log.exception("Bootstrapping %s failed", name)
                    self._emit_error(f"Bootstrapping {name} failed: {exc}")
        except BootstrapError as exc:
            self.state = RunState.FAILED
            self._emit_error(str(exc))
            raise
        else:
            ended = datetime.now(UTC)
            duration = ended - started
            self.state = RunState.DONE
            self.bus.publish(
                EventName.DONE,
                {
                    "start": started,
                    "end": ended,
                    "duration": duration,
                    "duration_text": format_duration(duration),
                },
            )
        finally:
            self.bus.close()

    async def create_spec(self, options: ExportOptions | None = None) -> Spec:
        await self.get_instance_basics()
        return await export_spec(self.context, options, on_error=self._emit_error)

    async def aclose(self) -> None:
        for client in (self.context.management, self.context.catalog, self.context.orders):
            if client is not None:
                await client.aclose()
