from __future__ import annotations

import time
import uuid
from typing import Callable

from tiingo_stream.core.dto.internal.session import GenerationToken
from tiingo_stream.core.types import ConnectionStatus


class StreamSession:
    """논리 스트림 하나의 식별자/연결 상태 보관

    책임:
    - 핸드셰이크 성공마다 새 stream id 발급 및 세대 번호 증가
    - 하트비트 수신 시각 추적 (0 은 "아직 수신 없음")
    - 지연 콜백이 자신의 세대가 아직 유효한지 판별
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self._clock = clock
        self._wall_clock = wall_clock

        self.connected: bool = False
        self.connection_in_flight: bool = False
        self.stream_id: str | None = None
        self.generation: int = 0
        self.connection_timestamp: int = 0  # epoch ms
        self.last_heartbeat_ts: float = 0.0
        self.reconnecting: bool = False
        self.retired: bool = False

    @property
    def status(self) -> ConnectionStatus:
        if self.retired:
            return ConnectionStatus.RETIRED
        if self.connected:
            return ConnectionStatus.CONNECTED
        if self.reconnecting:
            return ConnectionStatus.RECONNECTING
        if self.connection_in_flight:
            return ConnectionStatus.CONNECTING
        return ConnectionStatus.DISCONNECTED

    def token(self) -> GenerationToken:
        return GenerationToken(stream_id=self.stream_id, generation=self.generation)

    def is_current(self, token: GenerationToken) -> bool:
        return (
            not self.retired
            and token.generation == self.generation
            and token.stream_id == self.stream_id
        )

    def mark_connected(self) -> GenerationToken:
        """핸드셰이크 성공: 새 세대 발급"""
        self.stream_id = str(uuid.uuid4())
        self.generation += 1
        self.connected = True
        self.connection_in_flight = False
        self.connection_timestamp = int(self._wall_clock() * 1000)
        self.last_heartbeat_ts = 0.0
        return self.token()

    def mark_disconnected(self) -> None:
        self.connected = False

    def invalidate(self) -> None:
        """진행 중인 지연 작업을 모두 무효화 (세대만 증가, stream id 유지)"""
        self.generation += 1

    def record_heartbeat(self) -> bool:
        """하트비트 시각 갱신. 이번 세대 첫 하트비트면 True"""
        first = self.last_heartbeat_ts == 0
        self.last_heartbeat_ts = self._clock()
        return first

    def clear_heartbeat(self) -> None:
        self.last_heartbeat_ts = 0.0

    def retire(self) -> None:
        """명시적 close 또는 종료 상태 - 이후 재연결/재사용 불가"""
        self.retired = True
        self.connected = False
        self.reconnecting = False
        self.invalidate()
