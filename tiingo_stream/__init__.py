"""Tiingo 실시간 피드 스트림 클라이언트"""

from tiingo_stream.common.exceptions import (
    ConfigurationError,
    ProtocolFatalError,
    ProtocolRejectionError,
    RetriesExhaustedError,
    StreamClosedError,
    StreamError,
    TransportFaultError,
)
from tiingo_stream.core.connection import StreamClient
from tiingo_stream.core.dto.internal.session import ConnectOutcome
from tiingo_stream.core.dto.io.config import StreamConfigDTO
from tiingo_stream.core.types import ConnectionStatus, FeedEndpoint

__all__ = [
    "ConfigurationError",
    "ConnectOutcome",
    "ConnectionStatus",
    "FeedEndpoint",
    "ProtocolFatalError",
    "ProtocolRejectionError",
    "RetriesExhaustedError",
    "StreamClient",
    "StreamClosedError",
    "StreamConfigDTO",
    "StreamError",
    "TransportFaultError",
]
