from __future__ import annotations

from dataclasses import dataclass

from tiingo_stream.common.exceptions.errors import StreamError


@dataclass(slots=True, frozen=True, eq=True, match_args=False, kw_only=True)
class GenerationToken:
    """연결 세대 식별자.

    지연 실행되는 콜백(하트비트 타이머, 핸드셰이크 리스너)은 예약 시점의 토큰을 들고 있다가
    실행 시점에 세션의 현재 토큰과 다르면 아무 것도 하지 않는다.
    """

    stream_id: str | None
    generation: int


@dataclass(slots=True, frozen=True, repr=False, match_args=False, kw_only=True)
class ConnectOutcome:
    """연결 시도 결과 (성공/실패 두 경우를 명시적으로 구분)"""

    success: bool
    stream_id: str | None = None
    error: StreamError | None = None

    @classmethod
    def succeeded(cls, stream_id: str | None) -> ConnectOutcome:
        return cls(success=True, stream_id=stream_id)

    @classmethod
    def failed(cls, error: StreamError) -> ConnectOutcome:
        return cls(success=False, error=error)

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error

    def __repr__(self) -> str:
        if self.success:
            return f"ConnectOutcome(success=True, stream_id={self.stream_id!r})"
        return f"ConnectOutcome(success=False, error={self.error!r})"
