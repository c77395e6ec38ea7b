from tiingo_stream.core.connection.client import StreamClient
from tiingo_stream.core.connection.transport import (
    StreamTransport,
    TransportEvent,
    TransportEventEmitter,
    WebsocketTransport,
)

__all__ = [
    "StreamClient",
    "StreamTransport",
    "TransportEvent",
    "TransportEventEmitter",
    "WebsocketTransport",
]
