from __future__ import annotations

import asyncio

from pydantic import ValidationError
from websockets.exceptions import (
    ConnectionClosed,
    InvalidHandshake,
    WebSocketException,
)

from tiingo_stream.common.exceptions.errors import StreamError, TransportFaultError
from tiingo_stream.core.dto.internal.common import RuleDomain
from tiingo_stream.core.types import (
    FRAME_DECODE_EXCEPTIONS,
    ErrorCategory,
    ErrorCode,
    ErrorDomain,
)

# 1) asyncio 규칙
RULES_ASYNCIO: list[RuleDomain] = [
    RuleDomain(
        exc=asyncio.CancelledError,
        result=(ErrorDomain.STREAM, ErrorCode.STREAM_CLOSED, False),
    ),
    RuleDomain(
        exc=(asyncio.TimeoutError, TimeoutError),
        result=(ErrorDomain.CONNECTION, ErrorCode.CONNECT_TIMEOUT, True),
    ),
]

# 2) 웹소켓 규칙 (구체 -> 포괄)
RULES_WEBSOCKET: list[RuleDomain] = [
    RuleDomain(
        exc=ConnectionClosed,
        result=(ErrorDomain.CONNECTION, ErrorCode.CONNECTION_LOST, True),
    ),
    RuleDomain(
        exc=InvalidHandshake,
        result=(ErrorDomain.CONNECTION, ErrorCode.CONNECT_FAILED, True),
    ),
    RuleDomain(
        exc=(WebSocketException, OSError),
        result=(ErrorDomain.CONNECTION, ErrorCode.CONNECT_FAILED, True),
    ),
]

# 3) 프레임 역직렬화 규칙
RULES_FRAME: list[RuleDomain] = [
    RuleDomain(
        exc=(ValidationError, *FRAME_DECODE_EXCEPTIONS),
        result=(ErrorDomain.DESERIALIZATION, ErrorCode.DESERIALIZATION_ERROR, False),
    ),
]

# 주의: 매칭 우선순위를 보장하기 위해 선언 순서를 유지합니다.
RULES_FOR_STREAM: list[RuleDomain] = [
    *RULES_ASYNCIO,
    *RULES_WEBSOCKET,
    *RULES_FRAME,
]


def classify_exception(err: BaseException) -> ErrorCategory:
    """예외 → (ErrorDomain, ErrorCode, retryable) 분류기 (규칙 테이블 기반)

    - StreamError 는 자신이 가진 분류를 그대로 사용합니다.
    - 규칙은 "구체 → 포괄" 순서로 선언되어 가장 특수한 규칙이 먼저 매칭됩니다.
    """
    if isinstance(err, StreamError):
        return err.category

    for rule in RULES_FOR_STREAM:
        if isinstance(err, rule.exc):
            return rule.result

    return (ErrorDomain.UNKNOWN, ErrorCode.UNKNOWN_ERROR, False)


def to_stream_error(err: BaseException) -> StreamError:
    """원시 전송 예외를 TransportFaultError 로 감싼다 (__cause__ 유지)."""
    if isinstance(err, StreamError):
        return err

    _, code, _ = classify_exception(err)
    wrapped = TransportFaultError(f"{type(err).__name__}: {err}", code=code)
    wrapped.__cause__ = err
    return wrapped
