from __future__ import annotations

import asyncio
import inspect
from enum import StrEnum
from typing import Any, Callable, Protocol

import websockets
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed

from tiingo_stream.common.exceptions.errors import TransportFaultError
from tiingo_stream.common.logger import PipelineLogger
from tiingo_stream.core.dto.io.frames import decode_frame
from tiingo_stream.core.types import CONNECTION_EXCEPTIONS, FRAME_DECODE_EXCEPTIONS

logger = PipelineLogger.get_logger("transport", "connection")

TransportListener = Callable[[Any], Any]


class TransportEvent(StrEnum):
    OPEN = "open"
    MESSAGE = "message"
    ERROR = "error"
    CLOSE = "close"


class StreamTransport(Protocol):
    """스트림이 사용하는 전송 계층 인터페이스"""

    url: str

    @property
    def closed(self) -> bool: ...

    def on(self, event: TransportEvent, listener: TransportListener) -> None: ...

    def remove_listener(self, event: TransportEvent, listener: TransportListener) -> None: ...

    async def open(self) -> None: ...

    async def send(self, message: str) -> None: ...

    async def close(self) -> None: ...


TransportFactory = Callable[[str], StreamTransport]


class TransportEventEmitter:
    """전송 수명주기 이벤트(open/message/error/close) 리스너 관리

    - MESSAGE 리스너는 디코딩된 프레임 DTO 를 받는다
    - 리스너는 동기/비동기 모두 허용하며 등록 순서대로 하나씩 실행된다
    - 실행 중 추가된 리스너는 현재 이벤트를 받지 않는다
    """

    def __init__(self) -> None:
        self._listeners: dict[TransportEvent, list[TransportListener]] = {
            event: [] for event in TransportEvent
        }

    def on(self, event: TransportEvent, listener: TransportListener) -> None:
        self._listeners[event].append(listener)

    def remove_listener(self, event: TransportEvent, listener: TransportListener) -> None:
        if listener in self._listeners[event]:
            self._listeners[event].remove(listener)

    def listener_count(self, event: TransportEvent) -> int:
        return len(self._listeners[event])

    async def _emit(self, event: TransportEvent, payload: Any = None) -> None:
        for listener in list(self._listeners[event]):
            if listener not in self._listeners[event]:
                # 앞선 리스너가 제거한 경우
                continue
            try:
                result = listener(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    f"transport {event.value} listener failed - {e}",
                    exc_info=True,
                    extra={"event": event.value},
                )

    async def _dispatch_raw(self, raw: str | bytes) -> None:
        """원시 메시지 → 프레임 DTO 변환 후 MESSAGE 발행. 깨진 프레임은 버린다"""
        try:
            frame = decode_frame(raw)
        except (ValidationError, *FRAME_DECODE_EXCEPTIONS) as e:
            logger.warning(
                f"프레임 디코딩 실패 - 메시지 무시: {e}",
                extra={"raw_preview": str(raw)[:200]},
            )
            return
        if frame is None:
            return
        await self._emit(TransportEvent.MESSAGE, frame)


class WebsocketTransport(TransportEventEmitter):
    """websockets 기반 전송 어댑터

    open() 이후 수신 루프 태스크가 메시지를 디코딩해 MESSAGE 이벤트로 전달하고,
    루프가 끝나면 (비정상 종료는 ERROR 후) CLOSE 이벤트를 정확히 한 번 발행한다.
    """

    def __init__(self, url: str, *, open_timeout: float = 10.0) -> None:
        super().__init__()
        self.url = url
        self.open_timeout = open_timeout
        self._websocket: Any = None
        self._reader_task: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def open(self) -> None:
        if self._websocket is not None or self._closed:
            raise TransportFaultError("transport can only be opened once")
        self._websocket = await websockets.connect(
            self.url, ping_interval=None, open_timeout=self.open_timeout
        )
        logger.debug(f"소켓 오픈 완료: {self.url}")
        await self._emit(TransportEvent.OPEN)
        self._reader_task = asyncio.create_task(
            self._reader_loop(), name=f"transport-reader:{self.url}"
        )

    async def send(self, message: str) -> None:
        if self._websocket is None or self._closed:
            raise TransportFaultError("transport is not open")
        await self._websocket.send(message)

    async def close(self) -> None:
        if self._websocket is None:
            self._closed = True
            return

        await self._websocket.close()

        # 리더 태스크 내부(리스너)에서 호출된 경우 자기 자신을 기다리지 않는다
        task = self._reader_task
        if task is not None and task is not asyncio.current_task() and not task.done():
            try:
                await task
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise

    async def _reader_loop(self) -> None:
        reason = "closed by peer"
        try:
            async for raw in self._websocket:
                await self._dispatch_raw(raw)
            close_code = getattr(self._websocket, "close_code", None)
            reason = f"closed (code={close_code})"
        except ConnectionClosed as e:
            reason = str(e)
            await self._emit(TransportEvent.ERROR, e)
        except CONNECTION_EXCEPTIONS as e:
            reason = f"{type(e).__name__}: {e}"
            await self._emit(TransportEvent.ERROR, e)
        finally:
            self._closed = True
            await self._emit(TransportEvent.CLOSE, reason)
