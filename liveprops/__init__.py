"""
Public API:
- LiveClient: core client (get_prop / set_prop / call, add_listener / remove_listener)
- connect: one-liner factory (config or LIVEPROPS_* env -> started client)
- Address, Segment: path into the host's object graph ("track 0 chain 1 volume")
- PendingReply: handle for one in-flight request
- Transport: abstract class transports must implement (UdpTransport, MemoryTransport)
- encode_request, decode_frame: wire framing (JSON or msgpack mappings)
- Timeout, TransportError, ProtocolError, DecodeError, ShuttingDown: error kinds
"""

# Core runtime
from .client import LiveClient
from .factory import connect
from .config import ClientConfig

# Addressing & wire types
from .address import Address, Segment
from .builder import RequestBuilder
from .message import Event, Op, Reply, Request
from .correlator import PendingReply, RequestCorrelator
from .registry import ListenerRegistry, Subscription

# Transport contract
from .transport import Transport
from .transports import MemoryTransport, UdpTransport

# Framing helpers
from .codecs import Codecs, JSONCodec, MsgPackCodec
from .wire import decode_frame, encode_request

# Errors
from .errors import (
    DecodeError,
    LivePropsError,
    ProtocolError,
    ShuttingDown,
    Timeout,
    TransportError,
)

__all__ = [
    "LiveClient",
    "connect",
    "ClientConfig",
    "Address",
    "Segment",
    "RequestBuilder",
    "Event",
    "Op",
    "Reply",
    "Request",
    "PendingReply",
    "RequestCorrelator",
    "ListenerRegistry",
    "Subscription",
    "Transport",
    "MemoryTransport",
    "UdpTransport",
    "Codecs",
    "JSONCodec",
    "MsgPackCodec",
    "decode_frame",
    "encode_request",
    "DecodeError",
    "LivePropsError",
    "ProtocolError",
    "ShuttingDown",
    "Timeout",
    "TransportError",
]

__version__ = "0.1.0"
