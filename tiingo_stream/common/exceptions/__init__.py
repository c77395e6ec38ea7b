from tiingo_stream.common.exceptions.errors import (
    ConfigurationError,
    ProtocolFatalError,
    ProtocolRejectionError,
    RetriesExhaustedError,
    StreamClosedError,
    StreamError,
    TransportFaultError,
)

__all__ = [
    "ConfigurationError",
    "ProtocolFatalError",
    "ProtocolRejectionError",
    "RetriesExhaustedError",
    "StreamClosedError",
    "StreamError",
    "TransportFaultError",
]
