from __future__ import annotations

import asyncio
from typing import Any, Callable

import pytest

from tiingo_stream import (
    ConfigurationError,
    ConnectionStatus,
    ProtocolFatalError,
    RetriesExhaustedError,
    StreamClient,
    StreamClosedError,
    StreamError,
)
from tests.factory_builders import (
    build_config_options,
    build_connection_policy_domain,
    build_data_payload,
    build_error_payload,
    build_heartbeat_payload,
    build_heartbeat_policy_domain,
    build_info_payload,
)
from tests.fakes import FakeTransportFactory


def _build_client(
    factory: FakeTransportFactory, *, reconnect_delay: float = 0.0, **overrides: Any
) -> StreamClient:
    return StreamClient.from_options(
        transport_factory=factory,
        heartbeat_policy=build_heartbeat_policy_domain(check_interval=0.05),
        connection_policy=build_connection_policy_domain(
            minimum_reconnection_delay=reconnect_delay
        ),
        **build_config_options(**overrides),
    )


async def _wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout=timeout)


def test_invalid_endpoint_fails_before_any_transport() -> None:
    factory = FakeTransportFactory(auto_ack=build_info_payload())

    with pytest.raises(ConfigurationError) as exc_info:
        _build_client(factory, endpoint="wss://api.tiingo.com/stocks")

    assert exc_info.value.field == "endpoint"
    assert factory.created == []


@pytest.mark.asyncio
async def test_handshake_success_sets_fresh_stream_id() -> None:
    factory = FakeTransportFactory(auto_ack=build_info_payload())
    client = _build_client(factory)
    assert client.stream_id is None

    outcome = await client.connect()

    assert outcome.success is True
    assert client.is_connected() is True
    assert client.status is ConnectionStatus.CONNECTED
    assert client.stream_id and client.stream_id == outcome.stream_id
    assert client.connection_timestamp > 0
    await client.close()


@pytest.mark.asyncio
async def test_concurrent_connect_opens_single_transport() -> None:
    factory = FakeTransportFactory()
    client = _build_client(factory)

    first = asyncio.create_task(client.connect())
    second = asyncio.create_task(client.connect())
    await _wait_until(lambda: len(factory.created) == 1)
    await asyncio.sleep(0.01)
    await factory.last.feed(build_info_payload())
    outcomes = await asyncio.gather(first, second)

    assert outcomes[0] is outcomes[1]
    assert outcomes[0].success is True
    assert len(factory.created) == 1
    await client.close()


@pytest.mark.asyncio
async def test_ticks_delivered_with_session_id_in_both_forms() -> None:
    factory = FakeTransportFactory(auto_ack=build_info_payload())
    client = _build_client(factory)
    parsed: list[Any] = []
    text: list[Any] = []
    client.get_ticks(parsed.append, json=True, attach_session_id=True)
    await client.connect()
    client.get_ticks(text.append, json=False, attach_session_id=True)

    await factory.last.feed(build_data_payload([1, 2, 3]))

    assert parsed == [[1, 2, 3, client.stream_id]]
    assert text == [f'[1,2,3,"{client.stream_id}"]']
    await client.close()


@pytest.mark.asyncio
async def test_get_ticks_rejects_non_boolean_options() -> None:
    client = _build_client(FakeTransportFactory())

    with pytest.raises(ConfigurationError, match="Additional parameters must be valid boolean values"):
        client.get_ticks(print, json="yes")  # type: ignore[arg-type]
    with pytest.raises(ConfigurationError):
        client.get_ticks("not callable")  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_stalled_heartbeat_forces_single_reconnect_and_keeps_consumers() -> None:
    factory = FakeTransportFactory(auto_ack=build_info_payload())
    client = _build_client(factory, reconnection_attempts=5)
    received: list[Any] = []
    client.get_ticks(received.append, json=True, attach_session_id=True)
    await client.connect()
    first_transport = factory.last
    first_id = client.stream_id

    await first_transport.feed(build_heartbeat_payload())
    await _wait_until(lambda: len(factory.created) == 2 and client.is_connected())

    assert first_transport.closed is True
    assert len(factory.created) == 2
    assert client.stream_id != first_id
    assert client.reconnection_attempts_remaining == 5

    await first_transport.feed(build_data_payload(["stale"]))
    await factory.last.feed(build_data_payload(["fresh"]))
    assert received == [["fresh", client.stream_id]]
    await client.close()


@pytest.mark.asyncio
async def test_reconnect_after_failed_attempt_restores_budget() -> None:
    factory = FakeTransportFactory(
        auto_ack=build_info_payload(),
        open_errors=[None, ConnectionRefusedError("refused"), None],
    )
    client = _build_client(factory, reconnection_attempts=3)
    await client.connect()

    await factory.last.drop("server restart")
    await _wait_until(lambda: len(factory.created) == 3 and client.is_connected())

    assert client.retry_budget.remaining == 3
    assert client.terminal_error is None
    await client.close()


@pytest.mark.asyncio
async def test_close_right_after_reconnect_ack_triggers_another_attempt() -> None:
    factory = FakeTransportFactory(
        auto_ack=build_info_payload(), drops_after_ack=[False, True, False]
    )
    client = _build_client(factory, reconnection_attempts=5)
    await client.connect()

    await factory.last.drop("server restart")
    await _wait_until(lambda: len(factory.created) == 3 and client.is_connected())
    await asyncio.sleep(0.05)

    assert factory.created[1].closed is True
    assert factory.created[2].closed is False
    assert client.is_connected() is True
    assert client.retry_budget.remaining == 5
    assert client.terminal_error is None
    await client.close()


@pytest.mark.asyncio
async def test_manual_connect_during_backoff_keeps_new_transport() -> None:
    factory = FakeTransportFactory(
        auto_ack=build_info_payload(),
        open_errors=[None, ConnectionRefusedError("refused")],
    )
    client = _build_client(factory, reconnect_delay=0.2, reconnection_attempts=3)
    await client.connect()

    await factory.last.drop("server restart")
    await _wait_until(lambda: len(factory.created) == 2)
    await asyncio.sleep(0.01)
    outcome = await client.connect()
    manual_transport = factory.last
    await asyncio.sleep(0.35)

    assert outcome.success is True
    assert len(factory.created) == 3
    assert manual_transport.closed is False
    assert client.is_connected() is True
    assert client.retry_budget.remaining == 3
    await client.close()


@pytest.mark.asyncio
async def test_zero_attempts_terminates_without_reconnecting() -> None:
    factory = FakeTransportFactory(auto_ack=build_info_payload())
    client = _build_client(factory, reconnection_attempts=0, reconnect=True)
    terminated: list[StreamError] = []
    client.on_terminated(terminated.append)
    await client.connect()

    await factory.last.drop("closed by peer")

    with pytest.raises(RetriesExhaustedError):
        await asyncio.wait_for(client.wait_closed(), timeout=1.0)
    assert len(factory.created) == 1
    assert isinstance(terminated[0], RetriesExhaustedError)
    assert client.status is ConnectionStatus.RETIRED
    assert isinstance((await client.connect()).error, StreamClosedError)


@pytest.mark.asyncio
async def test_error_frame_after_connect_is_terminal() -> None:
    factory = FakeTransportFactory(auto_ack=build_info_payload())
    client = _build_client(factory)
    await client.connect()

    await factory.last.feed(build_error_payload(message="subscription revoked"))

    with pytest.raises(ProtocolFatalError, match="subscription revoked"):
        await asyncio.wait_for(client.wait_closed(), timeout=1.0)
    assert factory.last.closed is True
    assert len(factory.created) == 1


@pytest.mark.asyncio
async def test_rejected_initial_handshake_surfaces_in_outcome() -> None:
    factory = FakeTransportFactory(auto_ack=build_info_payload(code=401, message="bad token"))
    client = _build_client(factory)

    outcome = await client.connect()

    assert outcome.success is False
    assert client.is_connected() is False
    assert client.session.connection_in_flight is False
    await client.close()


@pytest.mark.asyncio
async def test_explicit_close_never_reconnects() -> None:
    factory = FakeTransportFactory(auto_ack=build_info_payload())
    client = _build_client(factory)
    await client.connect()

    await client.close()
    await asyncio.sleep(0.02)

    assert client.is_connected() is False
    assert len(factory.created) == 1
    assert factory.last.close_calls == 1
    await client.wait_closed()
    outcome = await client.connect()
    assert isinstance(outcome.error, StreamClosedError)


@pytest.mark.asyncio
async def test_disabled_reconnect_leaves_stream_down() -> None:
    factory = FakeTransportFactory(auto_ack=build_info_payload())
    client = _build_client(factory, reconnect=False)
    await client.connect()

    await factory.last.drop("closed by peer")
    await asyncio.wait_for(client.wait_closed(), timeout=1.0)

    assert client.is_connected() is False
    assert len(factory.created) == 1
    assert client.terminal_error is None
    await client.close()


@pytest.mark.asyncio
async def test_async_context_manager_connects_and_closes() -> None:
    factory = FakeTransportFactory(auto_ack=build_info_payload())

    async with _build_client(factory) as client:
        assert client.is_connected() is True

    assert client.is_connected() is False
    assert factory.last.closed is True
