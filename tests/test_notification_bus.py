from __future__ import annotations

from typing import Any

from tiingo_stream.common.events import NotificationBus, StreamNotification


def test_publish_runs_handlers_in_order() -> None:
    bus = NotificationBus()
    calls: list[tuple[str, Any]] = []

    bus.on(StreamNotification.RECONNECTION_SUCCEEDED, lambda p: calls.append(("a", p)))
    bus.on(StreamNotification.RECONNECTION_SUCCEEDED, lambda p: calls.append(("b", p)))
    bus.publish(StreamNotification.RECONNECTION_SUCCEEDED, "transport")

    assert calls == [("a", "transport"), ("b", "transport")]


def test_handlers_are_scoped_to_kind_and_instance() -> None:
    bus = NotificationBus()
    other = NotificationBus()
    calls: list[Any] = []

    bus.on(StreamNotification.RECONNECTION_STARTED, calls.append)
    bus.publish(StreamNotification.RECONNECTION_SUCCEEDED, 1)
    other.publish(StreamNotification.RECONNECTION_STARTED, 2)

    assert calls == []
    bus.publish(StreamNotification.RECONNECTION_STARTED, 3)
    assert calls == [3]


def test_failing_handler_does_not_block_others() -> None:
    bus = NotificationBus()
    calls: list[Any] = []

    def _boom(_: Any) -> None:
        raise RuntimeError("boom")

    bus.on(StreamNotification.RECONNECTION_STARTED, _boom)
    bus.on(StreamNotification.RECONNECTION_STARTED, calls.append)
    bus.publish(StreamNotification.RECONNECTION_STARTED)

    assert calls == [None]


def test_off_removes_only_that_handler() -> None:
    bus = NotificationBus()
    calls: list[Any] = []
    kept: list[Any] = []

    bus.on(StreamNotification.RECONNECTION_STARTED, calls.append)
    bus.on(StreamNotification.RECONNECTION_STARTED, kept.append)
    bus.off(StreamNotification.RECONNECTION_STARTED, calls.append)
    bus.off(StreamNotification.RECONNECTION_SUCCEEDED, kept.append)
    bus.publish(StreamNotification.RECONNECTION_STARTED, 1)

    assert calls == []
    assert kept == [1]
