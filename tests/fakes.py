from __future__ import annotations

from typing import Any

import orjson

from tiingo_stream.core.connection.transport import TransportEvent, TransportEventEmitter


class FakeTransport(TransportEventEmitter):
    """메모리 전송. 전송된 프레임을 기록하고 수신/종료/오류를 주입할 수 있다"""

    def __init__(
        self,
        url: str,
        *,
        auto_ack: dict[str, Any] | None = None,
        open_error: BaseException | None = None,
        drop_after_ack: bool = False,
    ) -> None:
        super().__init__()
        self.url = url
        self.auto_ack = auto_ack
        self.open_error = open_error
        self.drop_after_ack = drop_after_ack
        self.sent: list[str] = []
        self.opened = False
        self.close_calls = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def sent_payloads(self) -> list[dict[str, Any]]:
        return [orjson.loads(message) for message in self.sent]

    async def open(self) -> None:
        if self.open_error is not None:
            raise self.open_error
        self.opened = True
        await self._emit(TransportEvent.OPEN)

    async def send(self, message: str) -> None:
        self.sent.append(message)
        if self.auto_ack is not None:
            await self.feed(self.auto_ack)
            if self.drop_after_ack:
                await self.drop("closed right after ack")

    async def close(self) -> None:
        self.close_calls += 1
        await self.drop("closed by client")

    async def feed(self, payload: dict[str, Any] | str) -> None:
        raw = payload if isinstance(payload, str) else orjson.dumps(payload).decode()
        await self._dispatch_raw(raw)

    async def drop(self, reason: str = "closed by peer") -> None:
        if self._closed:
            return
        self._closed = True
        await self._emit(TransportEvent.CLOSE, reason)

    async def fail(self, error: BaseException) -> None:
        await self._emit(TransportEvent.ERROR, error)
        await self.drop(f"{type(error).__name__}: {error}")


class FakeTransportFactory:
    """생성한 FakeTransport 를 순서대로 기록하는 팩토리"""

    def __init__(
        self,
        *,
        auto_ack: dict[str, Any] | None = None,
        open_errors: list[BaseException | None] | None = None,
        drops_after_ack: list[bool] | None = None,
    ) -> None:
        self.auto_ack = auto_ack
        self.open_errors = list(open_errors or [])
        self.drops_after_ack = list(drops_after_ack or [])
        self.created: list[FakeTransport] = []

    def __call__(self, url: str) -> FakeTransport:
        open_error = self.open_errors.pop(0) if self.open_errors else None
        drop_after_ack = self.drops_after_ack.pop(0) if self.drops_after_ack else False
        transport = FakeTransport(
            url, auto_ack=self.auto_ack, open_error=open_error, drop_after_ack=drop_after_ack
        )
        self.created.append(transport)
        return transport

    @property
    def last(self) -> FakeTransport:
        return self.created[-1]
