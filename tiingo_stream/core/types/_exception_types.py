"""트라이/캐치 블록에서 사용할 예외 타입 정의 모듈.

광범위한 Exception 사용을 지양하고, 의도한 예외만 명시적으로 처리하기 위해 사용합니다.
"""

import asyncio
from enum import StrEnum
from typing import Final, TypeAlias

import orjson
import websockets


class ErrorDomain(StrEnum):
    """에러 도메인 분류"""

    CONFIGURATION = "configuration"
    CONNECTION = "connection"
    PROTOCOL = "protocol"
    DESERIALIZATION = "deserialization"
    STREAM = "stream"
    UNKNOWN = "unknown"


class ErrorCode(StrEnum):
    """에러 코드 분류"""

    INVALID_FIELD = "invalid_field"
    CONNECT_FAILED = "connect_failed"
    CONNECT_TIMEOUT = "connect_timeout"
    CONNECTION_LOST = "connection_lost"
    HANDSHAKE_TIMEOUT = "handshake_timeout"
    SUBSCRIPTION_REJECTED = "subscription_rejected"
    PROTOCOL_FATAL = "protocol_fatal"
    DESERIALIZATION_ERROR = "deserialization_error"
    RETRIES_EXHAUSTED = "retries_exhausted"
    STREAM_CLOSED = "stream_closed"
    UNKNOWN_ERROR = "unknown_error"


# 1. 네트워크/연결 관련 예외 (재시도 대상)
# - websockets.ConnectionClosed: 정상/비정상 종료
# - websockets.InvalidHandshake: HTTP 업그레이드 실패 (InvalidStatus 포함)
# - TimeoutError: 시간 초과 (3.11+ 에서 asyncio.TimeoutError 와 동일)
# - OSError: 소켓 레벨 에러 (ConnectionError 포함)
CONNECTION_EXCEPTIONS: Final[tuple[type[BaseException], ...]] = (
    websockets.ConnectionClosed,
    websockets.InvalidHandshake,
    websockets.InvalidURI,
    asyncio.TimeoutError,
    TimeoutError,
    OSError,
)

# 2. 프레임 역직렬화 관련 예외 (해당 프레임만 버림)
FRAME_DECODE_EXCEPTIONS: Final[tuple[type[BaseException], ...]] = (
    orjson.JSONDecodeError,
    ValueError,
    TypeError,
)


ErrorCategory: TypeAlias = tuple[ErrorDomain, ErrorCode, bool]
ExceptionGroup: TypeAlias = type[BaseException] | tuple[type[BaseException], ...]
