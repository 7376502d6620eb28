from __future__ import annotations

import logging

import pytest

from pynagare._hashing import encode_key
from pynagare.exceptions import NagareConfigError, NagareError
from pynagare.notifications import NotificationBus, NotificationEvent, NotificationType


def _always(event: NotificationEvent) -> bool:
    return True


def test_type_kinds() -> None:
    assert NotificationType.QUERY_CANCEL.is_query
    assert NotificationType.QUERY_INVALIDATE.is_query
    assert not NotificationType.QUERY_REFRESH.is_mutation
    assert NotificationType.MUTATION_RETRY.is_mutation
    assert NotificationType("queryCancel") is NotificationType.QUERY_CANCEL


def test_event_targets() -> None:
    event = NotificationEvent(type=NotificationType.QUERY_CANCEL, key={"page": 1, "q": "x"})

    assert event.targets(encode_key({"q": "x", "page": 1}))
    assert not event.targets(encode_key({"page": 2}))


def test_broadcast_event_targets_everything() -> None:
    event = NotificationEvent(type=NotificationType.QUERY_CANCEL)

    assert event.is_broadcast
    assert event.targets("deadbeef")


def test_event_rejects_unserializable_key() -> None:
    with pytest.raises(NagareConfigError):
        NotificationEvent(type=NotificationType.QUERY_CANCEL, key=object())


def test_publish_delivers_to_matching_listeners() -> None:
    bus = NotificationBus()
    seen: list[NotificationEvent] = []
    skipped: list[NotificationEvent] = []
    bus.subscribe(lambda e: e.type.is_query, seen.append)
    bus.subscribe(lambda e: e.type.is_mutation, skipped.append)

    event = NotificationEvent(type=NotificationType.QUERY_REFRESH, key="todos", payload={"why": "test"})
    bus.publish(event)

    assert seen == [event]
    assert skipped == []


def test_unsubscribe_is_idempotent() -> None:
    bus = NotificationBus()
    seen: list[NotificationEvent] = []
    unsubscribe = bus.subscribe(_always, seen.append)

    unsubscribe()
    unsubscribe()
    bus.publish(NotificationEvent(type=NotificationType.QUERY_CANCEL))

    assert seen == []
    assert len(bus) == 0


def test_same_handler_subscribed_twice_is_removed_once() -> None:
    bus = NotificationBus()
    seen: list[NotificationEvent] = []
    first = bus.subscribe(_always, seen.append)
    bus.subscribe(_always, seen.append)

    first()
    bus.publish(NotificationEvent(type=NotificationType.QUERY_CANCEL))

    assert len(seen) == 1


def test_failing_handler_does_not_stop_delivery(caplog: pytest.LogCaptureFixture) -> None:
    bus = NotificationBus()
    seen: list[NotificationEvent] = []

    def _boom(event: NotificationEvent) -> None:
        raise RuntimeError("boom")

    bus.subscribe(_always, _boom)
    bus.subscribe(_always, seen.append)

    with caplog.at_level(logging.WARNING, logger="pynagare.notifications"):
        bus.publish(NotificationEvent(type=NotificationType.QUERY_CANCEL))

    assert len(seen) == 1
    assert "Notification handler failed" in caplog.text


def test_handler_may_unsubscribe_during_delivery() -> None:
    bus = NotificationBus()
    seen: list[str] = []
    unsubscribe_first = None

    def _first(event: NotificationEvent) -> None:
        seen.append("first")
        assert unsubscribe_first is not None
        unsubscribe_first()

    unsubscribe_first = bus.subscribe(_always, _first)
    bus.subscribe(_always, lambda e: seen.append("second"))

    bus.publish(NotificationEvent(type=NotificationType.QUERY_CANCEL))
    bus.publish(NotificationEvent(type=NotificationType.QUERY_CANCEL))

    assert seen == ["first", "second", "second"]


def test_closed_bus_refuses_traffic() -> None:
    bus = NotificationBus()
    bus.subscribe(_always, lambda e: None)

    bus.close()

    assert bus.closed
    assert len(bus) == 0
    with pytest.raises(NagareError):
        bus.publish(NotificationEvent(type=NotificationType.QUERY_CANCEL))
    with pytest.raises(NagareError):
        bus.subscribe(_always, lambda e: None)
