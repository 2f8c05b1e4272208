"""Lifecycle events and the in-process event bus."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from logging import getLogger
from types import MappingProxyType
from typing import TYPE_CHECKING, cast

from .status import Area

if TYPE_CHECKING:
    from collections.abc import Mapping

log = getLogger(__name__)


class EventName(StrEnum):
    LANGUAGES_UPDATE = "languages-update"
    LANGUAGES_DONE = "languages-done"
    PRICE_VARIANTS_UPDATE = "price-variants-update"
    PRICE_VARIANTS_DONE = "price-variants-done"
    STOCK_LOCATIONS_UPDATE = "stock-locations-update"
    STOCK_LOCATIONS_DONE = "stock-locations-done"
    SUBSCRIPTION_PLANS_UPDATE = "subscription-plans-update"
    SUBSCRIPTION_PLANS_DONE = "subscription-plans-done"
    VAT_TYPES_UPDATE = "vat-types-update"
    VAT_TYPES_DONE = "vat-types-done"
    SHAPES_UPDATE = "shapes-update"
    SHAPES_DONE = "shapes-done"
    TOPICS_UPDATE = "topics-update"
    TOPICS_DONE = "topics-done"
    GRIDS_UPDATE = "grids-update"
    GRIDS_DONE = "grids-done"
    ITEMS_UPDATE = "items-update"
    ITEMS_DONE = "items-done"
    CUSTOMERS_UPDATE = "customers-update"
    CUSTOMERS_DONE = "customers-done"
    ORDERS_UPDATE = "orders-update"
    ORDERS_DONE = "orders-done"
    STATUS_UPDATE = "status-update"
    ERROR = "error"
    DONE = "done"


AREA_EVENTS: Mapping[Area, tuple[EventName, EventName]] = MappingProxyType(
    {
        Area.LANGUAGES: (EventName.LANGUAGES_UPDATE, EventName.LANGUAGES_DONE),
        Area.PRICE_VARIANTS: (EventName.PRICE_VARIANTS_UPDATE, EventName.PRICE_VARIANTS_DONE),
        Area.STOCK_LOCATIONS: (EventName.STOCK_LOCATIONS_UPDATE, EventName.STOCK_LOCATIONS_DONE),
        Area.SUBSCRIPTION_PLANS: (
            EventName.SUBSCRIPTION_PLANS_UPDATE,
            EventName.SUBSCRIPTION_PLANS_DONE,
        ),
        Area.VAT_TYPES: (EventName.VAT_TYPES_UPDATE, EventName.VAT_TYPES_DONE),
        Area.SHAPES: (EventName.SHAPES_UPDATE, EventName.SHAPES_DONE),
        Area.TOPIC_MAPS: (EventName.TOPICS_UPDATE, EventName.TOPICS_DONE),
        Area.GRIDS: (EventName.GRIDS_UPDATE, EventName.GRIDS_DONE),
        Area.ITEMS: (EventName.ITEMS_UPDATE, EventName.ITEMS_DONE),
        Area.CUSTOMERS: (EventName.CUSTOMERS_UPDATE, EventName.CUSTOMERS_DONE),
        Area.ORDERS: (EventName.ORDERS_UPDATE, EventName.ORDERS_DONE),
    }
)


@dataclass(frozen=True, slots=True)
class Event:
    name: EventName
    payload: Mapping[str, object] = field(default_factory=lambda: MappingProxyType({}))
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


EventHandler = Callable[[Event], None]

_CLOSED = object()


class EventStream:
    """Async iterator over every event published after it was opened."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Event | object] = asyncio.Queue()

    def __aiter__(self) -> EventStream:
        return self

    async def __anext__(self) -> Event:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return cast("Event", item)

    def _put(self, item: Event | object) -> None:
        self._queue.put_nowait(item)


class EventBus:
    """Fan events out to named handlers and to open streams."""

    def __init__(self) -> None:
        self._handlers: dict[EventName, list[EventHandler]] = {}
        self._streams: list[EventStream] = []
        self._closed = False

    def subscribe(self, event_name: EventName, handler: EventHandler) -> None:
        self._handlers.setdefault(event_name, []).append(handler)

    def unsubscribe(self, event_name: EventName, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_name, [])
        if handler in handlers:
            handlers.remove(handler)

    def stream(self) -> EventStream:
        stream = EventStream()
        if self._closed:
            stream._put(_CLOSED)  # noqa: SLF001
        else:
            self._streams.append(stream)
        return stream

    def publish(self, name: EventName, payload: Mapping[str, object] | None = None) -> Event:
        event = Event(name=name, payload=MappingProxyType(dict(payload or {})))
        for stream in self._streams:
            stream._put(event)  # noqa: SLF001
        for handler in list(self._handlers.get(name, [])):
            try:
                handler(event)
            except Exception:
                log.exception("Event handler failed for %s", name)
        return event

    def close(self) -> None:
        """End every open stream; later ``stream()`` calls end immediately."""

        if self._closed:
            return
        self._closed = True
        for stream in self._streams:
            stream._put(_CLOSED)  # noqa: SLF001
        self._streams.clear()
