from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from tiingo_stream.common.events import NotificationBus, StreamNotification
from tiingo_stream.common.exceptions.errors import RetriesExhaustedError, StreamError
from tiingo_stream.common.logger import PipelineLogger
from tiingo_stream.core.connection.services.backoff import compute_reconnect_delay
from tiingo_stream.core.connection.session import StreamSession
from tiingo_stream.core.connection.transport import StreamTransport
from tiingo_stream.core.connection.utils.logging.logging_mixin import (
    ScopedStreamLoggingMixin,
)
from tiingo_stream.core.dto.internal.common import (
    ConnectionPolicyDomain,
    RetryBudgetDomain,
    StreamScopeDomain,
)
from tiingo_stream.core.dto.internal.session import ConnectOutcome

logger = PipelineLogger.get_logger("supervisor", "connection")


class ReconnectionSupervisor(ScopedStreamLoggingMixin):
    """예기치 않은 종료 이후 연결 복구

    상태: Idle → Reconnecting → (성공) Idle / (예산 소진) Terminal
    - 세션당 재연결 루프는 하나만 실행
    - 시도마다 예산 1 차감, 성공 시 최대값으로 복원
    - 시도 시작/성공을 알림 버스로 발행 (틱 디스패처가 detach/attach)
    """

    def __init__(
        self,
        scope: StreamScopeDomain,
        session: StreamSession,
        policy: ConnectionPolicyDomain,
        budget: RetryBudgetDomain,
        bus: NotificationBus,
        connect: Callable[[], Awaitable[ConnectOutcome]],
        close_transport: Callable[[], Awaitable[None]],
        on_terminal: Callable[[StreamError], None],
        *,
        enabled: bool = True,
        verbose: bool = False,
    ) -> None:
        self.scope = scope
        self.policy = policy
        self.budget = budget
        self.enabled = enabled
        self.verbose = verbose
        self._logger = logger
        self._session = session
        self._bus = bus
        self._connect = connect
        self._close_transport = close_transport
        self._on_terminal = on_terminal

        self._task: asyncio.Task[None] | None = None

    def _current_stream_id(self) -> str | None:
        return self._session.stream_id

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def task(self) -> asyncio.Task[None] | None:
        return self._task

    def notify_disconnect(self, reason: str) -> bool:
        """close/error 관찰 시 호출. 재연결 루프를 시작했으면 True"""
        if self._session.retired:
            return False
        if not self.enabled:
            self._trace(f"Reconnection disabled, stream stays down ({reason})", phase="reconnect")
            return False
        if self._session.connected:
            return False
        if self.active:
            # 진행 중인 루프가 시도 결과를 받은 뒤 session.connected 로 다시 판단한다
            self._trace(f"Reconnection already running ({reason})", phase="reconnect")
            return False

        self._log_info(f"연결 끊김 감지 - 재연결 시작: {reason}", phase="reconnect_start")
        self._task = asyncio.create_task(
            self._run(), name=f"reconnect:{self.scope.endpoint}"
        )
        return True

    def handle_established(self, transport: StreamTransport) -> None:
        """핸드셰이크 성공 직후 (수신 루프 안에서 동기) 호출"""
        if self._session.reconnecting:
            self._bus.publish(StreamNotification.RECONNECTION_SUCCEEDED, transport)

    async def _run(self) -> None:
        session = self._session
        session.reconnecting = True
        session.clear_heartbeat()
        session.invalidate()
        try:
            while True:
                if session.retired:
                    return
                if session.connected:
                    self._settle_external_connect()
                    return
                if self.budget.exhausted:
                    self._give_up()
                    return

                remaining = self.budget.consume()
                await self._close_transport()
                self._trace(
                    f"Reconnecting... ({remaining} attempts left)",
                    phase="reconnect_attempt",
                    remaining=remaining,
                )
                self._bus.publish(StreamNotification.RECONNECTION_STARTED)

                outcome = await self._connect()
                if outcome.success:
                    self.budget.restore()
                    if session.connected or session.retired:
                        self._log_info(
                            "재연결 성공", phase="reconnect_success", remaining=self.budget.remaining
                        )
                        return
                    # 수립 직후 끊김: 루프가 살아 있는 동안 들어온 종료는 여기서 이어받는다
                    self._log_warning(
                        "재연결 직후 연결 끊김 - 재시도 계속",
                        phase="reconnect_dropped",
                        remaining=self.budget.remaining,
                    )
                    session.clear_heartbeat()
                    session.invalidate()
                    reason = "dropped right after handshake"
                else:
                    if session.retired:
                        return
                    if self.budget.exhausted:
                        self._give_up()
                        return
                    reason = f"{outcome.error}"

                delay = compute_reconnect_delay(self.policy)
                self._trace(
                    f"Reconnection failed ({reason}), retrying in {delay:.3f}s",
                    phase="reconnect_wait",
                    tag="ERR",
                )
                await asyncio.sleep(delay)
        finally:
            session.reconnecting = False

    def _settle_external_connect(self) -> None:
        """대기 중 다른 호출자의 connect() 로 연결이 복구된 경우"""
        self.budget.restore()
        self._log_info(
            "대기 중 연결 복구됨 - 재연결 루프 종료",
            phase="reconnect_success",
            remaining=self.budget.remaining,
        )

    def _give_up(self) -> None:
        self._trace("No reconnection attempts left", phase="reconnect_exhausted", tag="ERR")
        self._log_error(
            f"재연결 예산 소진 - 스트림 포기 (maximum={self.budget.maximum})",
            phase="reconnect_exhausted",
        )
        self._on_terminal(RetriesExhaustedError(self.budget.maximum))

    async def cancel(self) -> None:
        """진행 중인 재연결 루프 취소 (close() 에서 사용)"""
        task = self._task
        self._task = None
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
