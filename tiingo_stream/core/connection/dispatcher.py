from __future__ import annotations

import inspect
from typing import Any

import orjson

from tiingo_stream.common.events import NotificationBus, StreamNotification
from tiingo_stream.common.logger import PipelineLogger
from tiingo_stream.core.connection.session import StreamSession
from tiingo_stream.core.connection.transport import StreamTransport, TransportEvent
from tiingo_stream.core.connection.utils.logging.logging_mixin import (
    ScopedStreamLoggingMixin,
)
from tiingo_stream.core.dto.internal.common import StreamScopeDomain
from tiingo_stream.core.dto.internal.subscription import TickSubscriptionDomain
from tiingo_stream.core.dto.io.frames import DataFrameDTO
from tiingo_stream.core.types import TickCallback, TickPayload

logger = PipelineLogger.get_logger("dispatcher", "connection")


def render_tick(
    data: list[Any] | str, subscription: TickSubscriptionDomain, stream_id: str | None
) -> TickPayload:
    """Data 프레임 페이로드를 컨슈머 옵션에 맞게 변환

    - 리스트는 컨슈머마다 새로 복사 (다른 컨슈머의 변경이 번지지 않도록)
    - 문자열(csv) 페이로드는 그대로, attach_session_id 면 ",<id>" 덧붙임
    """
    if isinstance(data, str):
        if subscription.attach_session_id:
            return f"{data},{stream_id}"
        return data

    payload = list(data)
    if subscription.attach_session_id:
        payload.append(stream_id)
    if subscription.as_json:
        return payload
    return orjson.dumps(payload).decode()


class TickDispatcher(ScopedStreamLoggingMixin):
    """Data 프레임을 등록된 컨슈머에게 전달

    재연결 시작 알림에 현재 전송에서 분리되고, 재연결 성공 알림에 새 전송으로 다시 붙는다.
    컨슈머는 재등록 없이 하나의 연속된 스트림을 받는다.
    """

    def __init__(
        self,
        scope: StreamScopeDomain,
        session: StreamSession,
        bus: NotificationBus,
        *,
        verbose: bool = False,
    ) -> None:
        self.scope = scope
        self.verbose = verbose
        self._logger = logger
        self._session = session
        self._subscriptions: list[TickSubscriptionDomain] = []
        self._transport: StreamTransport | None = None
        self._bus = bus

        bus.on(StreamNotification.RECONNECTION_STARTED, self._on_reconnection_started)
        bus.on(StreamNotification.RECONNECTION_SUCCEEDED, self._on_reconnection_succeeded)

    def _current_stream_id(self) -> str | None:
        return self._session.stream_id

    @property
    def subscriptions(self) -> tuple[TickSubscriptionDomain, ...]:
        return tuple(self._subscriptions)

    @property
    def attached_transport(self) -> StreamTransport | None:
        return self._transport

    def register(
        self,
        callback: TickCallback,
        *,
        as_json: bool = False,
        attach_session_id: bool = False,
    ) -> TickSubscriptionDomain:
        subscription = TickSubscriptionDomain(
            callback=callback, as_json=as_json, attach_session_id=attach_session_id
        )
        self._subscriptions.append(subscription)
        self._log_debug(
            "틱 컨슈머 등록",
            phase="ticks_register",
            as_json=as_json,
            attach_session_id=attach_session_id,
        )
        return subscription

    def attach(self, transport: StreamTransport) -> None:
        """전송의 MESSAGE 이벤트 구독. 같은 전송에 두 번 붙지 않는다"""
        if transport is self._transport:
            return
        self.detach()
        transport.on(TransportEvent.MESSAGE, self._on_frame)
        self._transport = transport

    def detach(self) -> None:
        if self._transport is not None:
            self._transport.remove_listener(TransportEvent.MESSAGE, self._on_frame)
        self._transport = None

    def close(self) -> None:
        """스트림 종료 시 전송 분리 및 알림 구독 해제"""
        self.detach()
        self._bus.off(StreamNotification.RECONNECTION_STARTED, self._on_reconnection_started)
        self._bus.off(StreamNotification.RECONNECTION_SUCCEEDED, self._on_reconnection_succeeded)

    def _on_reconnection_started(self, _payload: Any) -> None:
        self.detach()

    def _on_reconnection_succeeded(self, transport: Any) -> None:
        if transport is not None:
            self.attach(transport)

    async def _on_frame(self, frame: Any) -> None:
        if not isinstance(frame, DataFrameDTO):
            return

        stream_id = self._session.stream_id
        for subscription in list(self._subscriptions):
            payload = render_tick(frame.data, subscription, stream_id)
            try:
                result = subscription.callback(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self._log_error(
                    f"틱 컨슈머 콜백 실패 - {e}",
                    phase="ticks_deliver",
                    exc_info=True,
                    callback=getattr(subscription.callback, "__qualname__", repr(subscription.callback)),
                )
