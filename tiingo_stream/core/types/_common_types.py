from __future__ import annotations

from enum import Enum, StrEnum
from typing import Any, Awaitable, Callable, Final, Literal, TypeAlias, assert_never

# 공통 타입/별칭을 한곳에 모읍니다.
# - 코어 계층 어디서나 재사용 가능한 최소 단위만 정의합니다.
# - 프레임/구독 스키마 세부는 dto 모듈에 두고, 여기에는 기반 타입만 둡니다.


class FeedEndpoint(StrEnum):
    """허용된 피드 웹소켓 엔드포인트 (자산군별 고정 주소)"""

    FX = "wss://api.tiingo.com/fx"
    CRYPTO = "wss://api.tiingo.com/crypto"
    IEX = "wss://api.tiingo.com/iex"


FEED_ENDPOINTS: Final[tuple[str, ...]] = tuple(e.value for e in FeedEndpoint)

DataFormat: TypeAlias = Literal["json", "csv"]
MessageType: TypeAlias = Literal["I", "E", "H", "A"]

# 핸드셰이크 성공 응답 코드
HANDSHAKE_SUCCESS_CODE: Final[int] = 200

# 틱 컨슈머: 파싱된 리스트(json=True) 또는 직렬화 문자열을 받는다. 동기/비동기 모두 허용
TickPayload: TypeAlias = list[Any] | str
TickCallback: TypeAlias = Callable[[TickPayload], Any] | Callable[[TickPayload], Awaitable[Any]]


class ConnectionStatus(Enum):
    """스트림 연결 상태 Enum."""

    CONNECTED = "connected"
    CONNECTING = "connecting"
    RECONNECTING = "reconnecting"
    DISCONNECTED = "disconnected"
    RETIRED = "retired"


def connection_status_format(status: ConnectionStatus) -> str:
    """상태 로깅 포맷터: Enum 분기 완전탐색 보장."""
    match status:
        case ConnectionStatus.CONNECTED:
            return "connected"
        case ConnectionStatus.CONNECTING:
            return "connecting"
        case ConnectionStatus.RECONNECTING:
            return "reconnecting"
        case ConnectionStatus.DISCONNECTED:
            return "disconnected"
        case ConnectionStatus.RETIRED:
            return "retired"
        case _:
            assert_never(status)
