from __future__ import annotations

import asyncio
import logging

import pytest

from catalog_bootstrap.domain.events import Event, EventBus, EventName


def test_handlers_receive_only_their_event() -> None:
    bus = EventBus()
    received: list[Event] = []
    bus.subscribe(EventName.SHAPES_DONE, received.append)

    bus.publish(EventName.SHAPES_DONE)
    bus.publish(EventName.ITEMS_DONE)

    assert [event.name for event in received] == [EventName.SHAPES_DONE]


def test_unsubscribed_handler_is_not_called() -> None:
    bus = EventBus()
    received: list[Event] = []
    bus.subscribe(EventName.DONE, received.append)
    bus.unsubscribe(EventName.DONE, received.append)

    bus.publish(EventName.DONE)

    assert received == []


def test_failing_handler_is_logged_and_others_still_run(
    caplog: pytest.LogCaptureFixture,
) -> None:
    bus = EventBus()
    received: list[Event] = []

    def broken(_event: Event) -> None:
        raise RuntimeError("handler bug")

    bus.subscribe(EventName.ERROR, broken)
    bus.subscribe(EventName.ERROR, received.append)

    with caplog.at_level(logging.ERROR):
        bus.publish(EventName.ERROR, {"error": "boom"})

    assert len(received) == 1
    assert "Event handler failed" in caplog.text


def test_payload_is_read_only() -> None:
    event = EventBus().publish(EventName.ERROR, {"error": "boom"})

    with pytest.raises(TypeError):
        event.payload["error"] = "changed"  # type: ignore[index]


def test_stream_yields_events_until_closed() -> None:
    async def run() -> list[EventName]:
        bus = EventBus()
        stream = bus.stream()
        bus.publish(EventName.LANGUAGES_DONE)
        bus.publish(EventName.DONE)
        bus.close()
        return [event.name async for event in stream]

    assert asyncio.run(run()) == [EventName.LANGUAGES_DONE, EventName.DONE]


def test_stream_opened_after_close_ends_immediately() -> None:
    async def run() -> list[Event]:
        bus = EventBus()
        bus.close()
        return [event async for event in bus.stream()]

    assert asyncio.run(run()) == []
