from tiingo_stream.core.types._common_types import (
    FEED_ENDPOINTS,
    HANDSHAKE_SUCCESS_CODE,
    ConnectionStatus,
    DataFormat,
    FeedEndpoint,
    MessageType,
    TickCallback,
    TickPayload,
    connection_status_format,
)
from tiingo_stream.core.types._exception_types import (
    CONNECTION_EXCEPTIONS,
    FRAME_DECODE_EXCEPTIONS,
    ErrorCategory,
    ErrorCode,
    ErrorDomain,
    ExceptionGroup,
)

__all__ = [
    # _common_types
    "FEED_ENDPOINTS",
    "HANDSHAKE_SUCCESS_CODE",
    "ConnectionStatus",
    "DataFormat",
    "FeedEndpoint",
    "MessageType",
    "TickCallback",
    "TickPayload",
    "connection_status_format",
    # _exception_types
    "CONNECTION_EXCEPTIONS",
    "FRAME_DECODE_EXCEPTIONS",
    "ErrorCategory",
    "ErrorCode",
    "ErrorDomain",
    "ExceptionGroup",
]
