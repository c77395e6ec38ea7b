from __future__ import annotations

import asyncio
from functools import partial
from typing import Any, Callable

from tiingo_stream.common.events import NotificationBus
from tiingo_stream.common.exceptions.errors import (
    ConfigurationError,
    ProtocolFatalError,
    StreamError,
)
from tiingo_stream.common.logger import PipelineLogger
from tiingo_stream.config.settings import websocket_settings
from tiingo_stream.core.connection.dispatcher import TickDispatcher
from tiingo_stream.core.connection.handshake import HandshakeProtocol
from tiingo_stream.core.connection.health_monitor import HeartbeatMonitor
from tiingo_stream.core.connection.session import StreamSession
from tiingo_stream.core.connection.supervisor import ReconnectionSupervisor
from tiingo_stream.core.connection.transport import (
    StreamTransport,
    TransportEvent,
    TransportFactory,
    WebsocketTransport,
)
from tiingo_stream.core.connection.utils.logging.logging_mixin import (
    ScopedStreamLoggingMixin,
)
from tiingo_stream.core.dto.internal.common import (
    ConnectionPolicyDomain,
    HeartbeatPolicyDomain,
    RetryBudgetDomain,
)
from tiingo_stream.core.dto.internal.session import ConnectOutcome, GenerationToken
from tiingo_stream.core.dto.io.config import StreamConfigDTO
from tiingo_stream.core.dto.io.frames import ErrorFrameDTO
from tiingo_stream.core.types import (
    CONNECTION_EXCEPTIONS,
    ConnectionStatus,
    TickCallback,
    connection_status_format,
)

logger = PipelineLogger.get_logger("client", "connection")

TerminatedCallback = Callable[[StreamError], Any]


class StreamClient(ScopedStreamLoggingMixin):
    """피드 스트림 하나를 유지하는 클라이언트

    구성 요소:
    - StreamSession: stream id/세대/연결 플래그
    - HandshakeProtocol: open → subscribe → ack
    - HeartbeatMonitor: 하트비트 중단 시 연결 강제 종료
    - ReconnectionSupervisor: 예산 내 재연결
    - TickDispatcher: 재연결을 넘어 컨슈머에게 연속 전달

    치명 오류(Error 프레임, 재연결 예산 소진)는 프로세스를 종료하지 않고
    terminal_error 로 기록한 뒤 on_terminated 콜백과 wait_closed() 로 알린다.
    """

    def __init__(
        self,
        config: StreamConfigDTO,
        *,
        transport_factory: TransportFactory | None = None,
        heartbeat_policy: HeartbeatPolicyDomain | None = None,
        connection_policy: ConnectionPolicyDomain | None = None,
    ) -> None:
        self.config = config
        self.scope = config.to_scope()
        self.verbose = config.verbose
        self._logger = logger

        self.heartbeat_policy = heartbeat_policy or websocket_settings.heartbeat_policy()
        self.connection_policy = connection_policy or websocket_settings.connection_policy(
            config.minimum_reconnection_delay
        )
        self._transport_factory = transport_factory or self._default_transport_factory

        self._session = StreamSession()
        self._bus = NotificationBus()
        self._budget = RetryBudgetDomain.full(config.reconnection_attempts)
        self._transport: StreamTransport | None = None
        self._transport_listeners: list[tuple[TransportEvent, Callable[[Any], Any]]] = []
        self._terminal_error: StreamError | None = None
        self._terminated_callbacks: list[TerminatedCallback] = []
        self._closed_event = asyncio.Event()
        self._cleanup_task: asyncio.Task[None] | None = None

        self._handshake = HandshakeProtocol(
            config,
            self._session,
            self.connection_policy,
            self._transport_factory,
            on_established=self._on_established,
            on_fatal=self._terminate,
        )
        self._monitor = HeartbeatMonitor(
            self.scope,
            self.heartbeat_policy,
            self._session,
            on_dead=self._on_heartbeat_lost,
            verbose=self.verbose,
        )
        self._supervisor = ReconnectionSupervisor(
            self.scope,
            self._session,
            self.connection_policy,
            self._budget,
            self._bus,
            connect=self._handshake.connect,
            close_transport=self._close_active_transport,
            on_terminal=self._terminate,
            enabled=config.reconnect,
            verbose=self.verbose,
        )
        self._dispatcher = TickDispatcher(
            self.scope, self._session, self._bus, verbose=self.verbose
        )

    @classmethod
    def from_options(
        cls,
        *,
        transport_factory: TransportFactory | None = None,
        heartbeat_policy: HeartbeatPolicyDomain | None = None,
        connection_policy: ConnectionPolicyDomain | None = None,
        **options: Any,
    ) -> StreamClient:
        """원시 옵션(snake_case/camelCase)으로 생성. 잘못된 값은 ConfigurationError"""
        return cls(
            StreamConfigDTO.from_options(**options),
            transport_factory=transport_factory,
            heartbeat_policy=heartbeat_policy,
            connection_policy=connection_policy,
        )

    def _default_transport_factory(self, url: str) -> StreamTransport:
        return WebsocketTransport(url, open_timeout=self.connection_policy.open_timeout)

    def _current_stream_id(self) -> str | None:
        return self._session.stream_id

    # ------------------------------------------------------------------
    # 조회
    # ------------------------------------------------------------------
    @property
    def stream_id(self) -> str | None:
        return self._session.stream_id

    @property
    def status(self) -> ConnectionStatus:
        return self._session.status

    @property
    def connection_timestamp(self) -> int:
        return self._session.connection_timestamp

    @property
    def retry_budget(self) -> RetryBudgetDomain:
        return self._budget

    @property
    def reconnection_attempts_remaining(self) -> int:
        return self._budget.remaining

    @property
    def terminal_error(self) -> StreamError | None:
        return self._terminal_error

    @property
    def session(self) -> StreamSession:
        return self._session

    def is_connected(self) -> bool:
        return self._session.connected

    # ------------------------------------------------------------------
    # 공개 동작
    # ------------------------------------------------------------------
    async def connect(self) -> ConnectOutcome:
        """연결 수립. 동시 호출자는 진행 중인 시도 하나의 결과를 공유한다"""
        return await self._handshake.connect()

    def get_ticks(
        self,
        callback: TickCallback,
        *,
        json: bool = False,
        attach_session_id: bool = False,
    ) -> None:
        """틱 컨슈머 등록

        Args:
            callback: 틱 하나를 받는 함수 (동기/비동기)
            json: True 면 파싱된 리스트, False 면 JSON 문자열
            attach_session_id: 페이로드 끝에 현재 stream id 추가
        """
        if not isinstance(json, bool) or not isinstance(attach_session_id, bool):
            raise ConfigurationError(
                "Additional parameters must be valid boolean values", field="options"
            )
        if not callable(callback):
            raise ConfigurationError("callback must be callable", field="callback")

        self._dispatcher.register(callback, as_json=json, attach_session_id=attach_session_id)
        if self._transport is not None and self._session.connected:
            self._dispatcher.attach(self._transport)

    async def close(self) -> None:
        """스트림 종료. 이후 재연결하지 않으며 connect() 는 실패 결과를 돌려준다"""
        if self._session.retired and self._closed_event.is_set():
            await self._await_cleanup()
            return

        self._trace("Closing socket", phase="close", tag="CLOSE")
        self._session.retire()
        self._monitor.disarm()
        self._dispatcher.close()
        await self._supervisor.cancel()
        await self._handshake.abort()
        await self._close_active_transport()
        self._closed_event.set()
        self._log_info(
            "스트림 종료 완료", phase="close", status=connection_status_format(self.status)
        )

    def on_terminated(self, callback: TerminatedCallback) -> None:
        """복구 불가 오류로 스트림이 끝났을 때 호출될 콜백 등록"""
        self._terminated_callbacks.append(callback)

    async def wait_closed(self) -> None:
        """스트림이 끝날 때까지 대기. 복구 불가 오류로 끝났으면 해당 예외 발생"""
        await self._closed_event.wait()
        await self._await_cleanup()
        if self._terminal_error is not None:
            raise self._terminal_error

    async def __aenter__(self) -> StreamClient:
        outcome = await self.connect()
        outcome.raise_for_error()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # 내부 수명주기
    # ------------------------------------------------------------------
    def _on_established(self, transport: StreamTransport, token: GenerationToken) -> None:
        """핸드셰이크 성공 직후 (수신 루프 안에서 동기) 호출"""
        self._detach_transport_listeners()
        self._transport = transport
        self._closed_event.clear()

        listeners: list[tuple[TransportEvent, Callable[[Any], Any]]] = [
            (TransportEvent.MESSAGE, self._on_control_frame),
            (TransportEvent.ERROR, partial(self._on_transport_error, transport)),
            (TransportEvent.CLOSE, partial(self._on_transport_closed, transport)),
        ]
        for event, listener in listeners:
            transport.on(event, listener)
        self._transport_listeners = listeners

        self._monitor.arm(transport, token)
        self._supervisor.handle_established(transport)
        self._dispatcher.attach(transport)
        self._log_info(
            "스트림 연결 수립",
            phase="established",
            status=connection_status_format(self.status),
            remaining=self._budget.remaining,
        )

    def _detach_transport_listeners(self) -> None:
        if self._transport is not None:
            for event, listener in self._transport_listeners:
                self._transport.remove_listener(event, listener)
        self._transport_listeners = []

    def _on_control_frame(self, frame: Any) -> None:
        if isinstance(frame, ErrorFrameDTO):
            self._terminate(ProtocolFatalError(frame.response.message, frame.response.code))

    def _on_transport_error(self, transport: StreamTransport, error: Any) -> None:
        self._trace(f"{error}", phase="transport_error", tag="ERR")
        self._handle_disconnect(transport, f"error: {error}")

    def _on_transport_closed(self, transport: StreamTransport, reason: Any) -> None:
        self._trace(f"Socket closed ({reason})", phase="transport_close", tag="CLOSE")
        self._handle_disconnect(transport, f"close: {reason}")

    def _handle_disconnect(self, transport: StreamTransport, reason: str) -> None:
        if transport is not self._transport or self._session.retired:
            return

        self._session.mark_disconnected()
        self._monitor.disarm()
        if self._supervisor.notify_disconnect(reason):
            return
        if not self._supervisor.enabled:
            self._log_warning(
                f"연결 종료 - 재연결 비활성화 상태: {reason}",
                phase="disconnected",
                status=connection_status_format(self.status),
            )
            self._closed_event.set()

    async def _on_heartbeat_lost(self) -> None:
        transport = self._transport
        await self._close_active_transport()
        if transport is not None:
            self._handle_disconnect(transport, "heartbeat lost")

    async def _close_active_transport(self) -> None:
        transport = self._transport
        if transport is None or transport.closed:
            return
        try:
            await transport.close()
        except CONNECTION_EXCEPTIONS as e:
            self._log_warning(f"소켓 종료 실패 - {e}", phase="transport_close")

    def _terminate(self, error: StreamError) -> None:
        """복구 불가 상태 기록 (세션 폐기, 대기자 해제, 정리 작업 예약)"""
        if self._terminal_error is not None or self._session.retired:
            return

        self._terminal_error = error
        self._trace(f"{error}", phase="terminated", tag="ERR")
        self._log_error(
            f"스트림 종료 - 복구 불가 오류: {error}",
            phase="terminated",
            error_type=type(error).__name__,
        )
        self._session.retire()
        self._monitor.disarm()
        self._dispatcher.close()
        self._closed_event.set()

        for callback in list(self._terminated_callbacks):
            try:
                callback(error)
            except Exception as e:
                self._log_error(
                    f"on_terminated 콜백 실패 - {e}", phase="terminated", exc_info=True
                )

        self._cleanup_task = asyncio.create_task(
            self._cleanup_after_terminal(), name=f"terminate:{self.scope.endpoint}"
        )

    async def _cleanup_after_terminal(self) -> None:
        await self._supervisor.cancel()
        await self._close_active_transport()

    async def _await_cleanup(self) -> None:
        task = self._cleanup_task
        if task is not None and task is not asyncio.current_task():
            await task
