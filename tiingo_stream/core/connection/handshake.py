from __future__ import annotations

import asyncio
from typing import Any, Callable

from tiingo_stream.common.exceptions.errors import (
    ProtocolFatalError,
    ProtocolRejectionError,
    StreamClosedError,
    StreamError,
    TransportFaultError,
)
from tiingo_stream.common.exceptions.exception_rule import to_stream_error
from tiingo_stream.common.logger import PipelineLogger
from tiingo_stream.core.connection.session import StreamSession
from tiingo_stream.core.connection.transport import (
    StreamTransport,
    TransportEvent,
    TransportFactory,
)
from tiingo_stream.core.connection.utils.logging.logging_mixin import (
    ScopedStreamLoggingMixin,
)
from tiingo_stream.core.dto.internal.common import ConnectionPolicyDomain
from tiingo_stream.core.dto.internal.session import ConnectOutcome, GenerationToken
from tiingo_stream.core.dto.io.commands import SubscribeRequestDTO
from tiingo_stream.core.dto.io.config import StreamConfigDTO
from tiingo_stream.core.dto.io.frames import ErrorFrameDTO, InfoFrameDTO
from tiingo_stream.core.types import CONNECTION_EXCEPTIONS, ErrorCode

logger = PipelineLogger.get_logger("handshake", "connection")

EstablishedCallback = Callable[[StreamTransport, GenerationToken], None]
FatalCallback = Callable[[StreamError], None]


class HandshakeProtocol(ScopedStreamLoggingMixin):
    """open → subscribe → ack 핸드셰이크 전담 클래스

    책임:
    - 동시에 하나의 연결 시도만 진행 (진행 중이면 같은 결과를 공유)
    - 첫 Info/Error 프레임으로 성공/실패 판정
    - 성공 시 세션 갱신 후 on_established 를 수신 루프 안에서 동기 호출
      (다음 프레임이 도착하기 전에 하트비트/틱 리스너가 붙도록)
    """

    def __init__(
        self,
        config: StreamConfigDTO,
        session: StreamSession,
        policy: ConnectionPolicyDomain,
        transport_factory: TransportFactory,
        on_established: EstablishedCallback,
        on_fatal: FatalCallback,
    ) -> None:
        self.config = config
        self.scope = config.to_scope()
        self.policy = policy
        self.verbose = config.verbose
        self._logger = logger
        self._session = session
        self._transport_factory = transport_factory
        self._on_established = on_established
        self._on_fatal = on_fatal

        self._inflight: asyncio.Future[ConnectOutcome] | None = None
        self._pending_transport: StreamTransport | None = None

    def _current_stream_id(self) -> str | None:
        return self._session.stream_id

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None

    async def connect(self) -> ConnectOutcome:
        """연결 시도. 이미 연결됐거나 시도 중이면 새 소켓을 열지 않는다"""
        if self._session.retired:
            return ConnectOutcome.failed(StreamClosedError("stream is closed"))

        if self._session.connected:
            self._trace("No action taken, the socket is already connected", phase="connect")
            return ConnectOutcome.succeeded(self._session.stream_id)

        if self._inflight is not None:
            self._trace("No action taken, a connection attempt is processing", phase="connect")
            return await asyncio.shield(self._inflight)

        future: asyncio.Future[ConnectOutcome] = asyncio.get_running_loop().create_future()
        self._inflight = future
        self._session.connection_in_flight = True
        try:
            outcome = await self._attempt()
        except BaseException:
            # 공유 중인 호출자에게는 실패 결과로 전달
            if not future.done():
                future.set_result(
                    ConnectOutcome.failed(StreamClosedError("connection attempt cancelled"))
                )
            raise
        finally:
            self._session.connection_in_flight = False
            self._inflight = None

        future.set_result(outcome)
        return outcome

    async def abort(self) -> None:
        """진행 중인 핸드셰이크의 소켓을 닫는다 (close 이벤트로 실패 처리됨)"""
        transport = self._pending_transport
        if transport is not None and not transport.closed:
            await self._discard(transport)

    async def _attempt(self) -> ConnectOutcome:
        transport = self._transport_factory(self.config.endpoint)
        self._pending_transport = transport
        settled: asyncio.Future[ConnectOutcome] = asyncio.get_running_loop().create_future()

        def _settle(outcome: ConnectOutcome) -> None:
            if not settled.done():
                settled.set_result(outcome)

        def _on_frame(frame: Any) -> None:
            if settled.done():
                return
            match frame:
                case InfoFrameDTO() if frame.succeeded:
                    if self._session.retired:
                        _settle(ConnectOutcome.failed(StreamClosedError("stream is closed")))
                        return
                    transport.remove_listener(TransportEvent.MESSAGE, _on_frame)
                    transport.remove_listener(TransportEvent.CLOSE, _on_close)
                    token = self._session.mark_connected()
                    self._on_established(transport, token)
                    self._trace("Socket connected successfully", phase="handshake_ack")
                    _settle(ConnectOutcome.succeeded(token.stream_id))
                case InfoFrameDTO():
                    _settle(
                        ConnectOutcome.failed(
                            ProtocolRejectionError(frame.response.code, frame.response.message)
                        )
                    )
                case ErrorFrameDTO():
                    _settle(
                        ConnectOutcome.failed(
                            ProtocolFatalError(frame.response.message, frame.response.code)
                        )
                    )
                case _:
                    # 첫 프레임은 Info 또는 Error 여야 한다
                    return

        def _on_close(reason: Any) -> None:
            if self._session.retired:
                _settle(ConnectOutcome.failed(StreamClosedError("stream is closed")))
                return
            _settle(
                ConnectOutcome.failed(
                    TransportFaultError(f"socket closed during handshake: {reason}")
                )
            )

        transport.on(TransportEvent.MESSAGE, _on_frame)
        transport.on(TransportEvent.CLOSE, _on_close)
        try:
            await transport.open()
            request = SubscribeRequestDTO.from_config(self.config)
            await transport.send(request.to_wire())
            self._log_debug("구독 요청 전송 완료", phase="handshake_subscribe")
            try:
                outcome = await asyncio.wait_for(settled, timeout=self.policy.handshake_timeout)
            except TimeoutError:
                outcome = ConnectOutcome.failed(
                    TransportFaultError(
                        f"no subscription response within {self.policy.handshake_timeout}s",
                        code=ErrorCode.HANDSHAKE_TIMEOUT,
                    )
                )
        except StreamError as e:
            outcome = ConnectOutcome.failed(e)
        except CONNECTION_EXCEPTIONS as e:
            outcome = ConnectOutcome.failed(to_stream_error(e))
        except asyncio.CancelledError:
            await self._discard(transport)
            raise
        finally:
            transport.remove_listener(TransportEvent.MESSAGE, _on_frame)
            transport.remove_listener(TransportEvent.CLOSE, _on_close)
            self._pending_transport = None

        if outcome.success:
            return outcome

        error = outcome.error
        self._trace(f"{error}", phase="handshake_failed", tag="ERR")
        self._log_warning(
            f"핸드셰이크 실패 - {error}",
            phase="handshake_failed",
            error_type=type(error).__name__,
        )
        await self._discard(transport)
        if isinstance(error, ProtocolFatalError):
            self._on_fatal(error)
        return outcome

    async def _discard(self, transport: StreamTransport) -> None:
        if transport.closed:
            return
        try:
            await transport.close()
        except CONNECTION_EXCEPTIONS as close_error:
            self._log_warning(
                f"실패한 핸드셰이크 소켓 종료 실패 - {close_error}",
                phase="handshake_discard",
            )
