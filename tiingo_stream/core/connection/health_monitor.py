from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from tiingo_stream.common.logger import PipelineLogger
from tiingo_stream.core.connection.services.backoff import compute_health_check_interval
from tiingo_stream.core.connection.session import StreamSession
from tiingo_stream.core.connection.transport import StreamTransport, TransportEvent
from tiingo_stream.core.connection.utils.logging.logging_mixin import (
    ScopedStreamLoggingMixin,
)
from tiingo_stream.core.dto.internal.common import HeartbeatPolicyDomain, StreamScopeDomain
from tiingo_stream.core.dto.internal.session import GenerationToken
from tiingo_stream.core.dto.io.frames import HeartbeatFrameDTO

logger = PipelineLogger.get_logger("health_monitor", "connection")


class HeartbeatMonitor(ScopedStreamLoggingMixin):
    """하트비트 기반 연결 생존 감시

    책임:
    - 현재 세대의 Heartbeat 프레임 수신 시각 갱신
    - 첫 하트비트 이후 주기적 헬스체크 (간격 내 갱신이 없으면 연결 강제 종료)
    - 다른 세대에 예약된 작업은 실행 시점에 무시
    """

    def __init__(
        self,
        scope: StreamScopeDomain,
        policy: HeartbeatPolicyDomain,
        session: StreamSession,
        on_dead: Callable[[], Awaitable[None]],
        *,
        verbose: bool = False,
    ) -> None:
        self.scope = scope
        self.policy = policy
        self.verbose = verbose
        self._logger = logger
        self._session = session
        self._on_dead = on_dead

        self._transport: StreamTransport | None = None
        self._listener: Callable[[Any], None] | None = None
        self._token: GenerationToken | None = None
        self._check_task: asyncio.Task[None] | None = None

    def _current_stream_id(self) -> str | None:
        return self._session.stream_id

    @property
    def is_armed(self) -> bool:
        return self._listener is not None

    @property
    def check_task(self) -> asyncio.Task[None] | None:
        return self._check_task

    def arm(self, transport: StreamTransport, token: GenerationToken) -> None:
        """주어진 세대에 대해 하트비트 감시 시작"""
        self.disarm()

        def _on_frame(frame: Any) -> None:
            if isinstance(frame, HeartbeatFrameDTO):
                self.handle_heartbeat(token)

        self._transport = transport
        self._listener = _on_frame
        self._token = token
        transport.on(TransportEvent.MESSAGE, _on_frame)
        self._log_debug("하트비트 감시 시작", phase="heartbeat_arm")

    def disarm(self) -> None:
        """감시 중단 (리스너 제거 + 예약된 헬스체크 취소)"""
        if self._transport is not None and self._listener is not None:
            self._transport.remove_listener(TransportEvent.MESSAGE, self._listener)
        self._transport = None
        self._listener = None
        self._token = None

        task = self._check_task
        self._check_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def handle_heartbeat(self, token: GenerationToken) -> None:
        """Heartbeat 프레임 처리. token 이 현재 세대가 아니면 아무 것도 하지 않는다"""
        if not self._session.is_current(token):
            return

        self._trace("Heartbeat received", phase="heartbeat")
        if self._session.record_heartbeat():
            self._check_task = asyncio.create_task(
                self._health_check_loop(token), name=f"heartbeat-check:{token.stream_id}"
            )

    async def _health_check_loop(self, token: GenerationToken) -> None:
        """헬스체크 루프: 예약 시점의 하트비트 시각이 그대로면 연결을 닫는다"""
        while True:
            captured = self._session.last_heartbeat_ts
            interval = compute_health_check_interval(self.policy)
            await asyncio.sleep(interval)

            if not self._session.is_current(token):
                return

            if captured != self._session.last_heartbeat_ts:
                self._trace("Heartbeat updated", phase="heartbeat_check")
                continue

            self._trace("Heartbeat stopped", phase="heartbeat_check")
            self._log_warning(
                f"하트비트 중단 감지 - {interval:.1f}s 동안 갱신 없음, 연결 종료",
                phase="heartbeat_dead",
                interval=round(interval, 3),
            )
            self._check_task = None
            await self._on_dead()
            return
