from __future__ import annotations

from tiingo_stream.core.connection.session import StreamSession
from tiingo_stream.core.types import ConnectionStatus, connection_status_format


def _clock_from(values: list[float]):
    it = iter(values)
    return lambda: next(it)


def test_mark_connected_issues_new_stream_id_each_time() -> None:
    session = StreamSession(wall_clock=lambda: 1_700_000_000.5)

    first = session.mark_connected()
    second = session.mark_connected()

    assert first.stream_id != second.stream_id
    assert second.generation == first.generation + 1
    assert session.connected is True
    assert session.connection_timestamp == 1_700_000_000_500
    assert session.is_current(second) is True
    assert session.is_current(first) is False


def test_invalidate_makes_token_stale() -> None:
    session = StreamSession()
    token = session.mark_connected()

    session.invalidate()

    assert session.is_current(token) is False
    assert session.stream_id == token.stream_id


def test_record_heartbeat_reports_first_only() -> None:
    session = StreamSession(clock=_clock_from([10.0, 11.0, 12.0]))
    session.mark_connected()

    assert session.record_heartbeat() is True
    assert session.record_heartbeat() is False
    assert session.last_heartbeat_ts == 11.0

    session.clear_heartbeat()
    assert session.record_heartbeat() is True


def test_mark_connected_resets_heartbeat() -> None:
    session = StreamSession(clock=lambda: 5.0)
    session.mark_connected()
    session.record_heartbeat()

    session.mark_connected()

    assert session.last_heartbeat_ts == 0.0


def test_retire_is_terminal() -> None:
    session = StreamSession()
    token = session.mark_connected()

    session.retire()

    assert session.connected is False
    assert session.retired is True
    assert session.is_current(token) is False
    assert session.status is ConnectionStatus.RETIRED


def test_status_transitions() -> None:
    session = StreamSession()
    assert session.status is ConnectionStatus.DISCONNECTED

    session.connection_in_flight = True
    assert session.status is ConnectionStatus.CONNECTING

    session.mark_connected()
    assert session.status is ConnectionStatus.CONNECTED
    assert connection_status_format(session.status) == "connected"

    session.mark_disconnected()
    session.reconnecting = True
    assert session.status is ConnectionStatus.RECONNECTING
