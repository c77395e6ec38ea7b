"""스트림 예외 계층.

모든 예외는 (ErrorDomain, ErrorCode, retryable) 분류를 함께 가진다.
- 생성 시점 오류: ConfigurationError (즉시, 동기)
- 연결 시점 오류: ConnectOutcome.error 로 전달
- 연결 이후 치명 오류: 클라이언트 종료 상태로 기록되어 wait_closed() 에서 발생
"""

from __future__ import annotations

from tiingo_stream.core.types import ErrorCategory, ErrorCode, ErrorDomain


class StreamError(Exception):
    """스트림 예외 베이스"""

    domain: ErrorDomain = ErrorDomain.UNKNOWN
    code: ErrorCode = ErrorCode.UNKNOWN_ERROR
    retryable: bool = False

    @property
    def category(self) -> ErrorCategory:
        return (self.domain, self.code, self.retryable)


class ConfigurationError(StreamError, ValueError):
    """생성자 설정 필드가 유효하지 않음 (재시도 없음)"""

    domain = ErrorDomain.CONFIGURATION
    code = ErrorCode.INVALID_FIELD

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class ProtocolRejectionError(StreamError):
    """핸드셰이크 Info 프레임이 성공 코드가 아님"""

    domain = ErrorDomain.PROTOCOL
    code = ErrorCode.SUBSCRIPTION_REJECTED
    retryable = True

    def __init__(self, status_code: int | str | None, message: str) -> None:
        super().__init__(f"subscription rejected ({status_code}): {message}")
        self.status_code = status_code
        self.reason = message


class ProtocolFatalError(StreamError):
    """피드가 Error 프레임을 보냄 - 스트림 전체에 치명적"""

    domain = ErrorDomain.PROTOCOL
    code = ErrorCode.PROTOCOL_FATAL

    def __init__(self, message: str, status_code: int | str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransportFaultError(StreamError):
    """소켓 오류/종료/타임아웃 (재연결 대상)"""

    domain = ErrorDomain.CONNECTION
    code = ErrorCode.CONNECTION_LOST
    retryable = True

    def __init__(self, message: str, code: ErrorCode | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code


class RetriesExhaustedError(StreamError):
    """재연결 예산 소진 - 스트림 포기"""

    domain = ErrorDomain.STREAM
    code = ErrorCode.RETRIES_EXHAUSTED

    def __init__(self, attempts: int) -> None:
        super().__init__(f"no reconnection attempts left (configured maximum: {attempts})")
        self.attempts = attempts


class StreamClosedError(StreamError):
    """이미 close() 되었거나 종료된 스트림에 대한 요청"""

    domain = ErrorDomain.STREAM
    code = ErrorCode.STREAM_CLOSED


__all__ = [
    "ConfigurationError",
    "ProtocolFatalError",
    "ProtocolRejectionError",
    "RetriesExhaustedError",
    "StreamClosedError",
    "StreamError",
    "TransportFaultError",
]
