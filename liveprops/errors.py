"""
Error kinds surfaced by the client.

Timeout, TransportError, ProtocolError and ShuttingDown reach the caller of
the failing operation. DecodeError stays inside the inbound router.
"""
from __future__ import annotations
from typing import Optional


class LivePropsError(Exception):
    """Base class for every liveprops error."""


class Timeout(LivePropsError):
    def __init__(self, request_id: Optional[int] = None, seconds: Optional[float] = None):
        self.request_id = request_id
        self.seconds = seconds
        msg = "no reply"
        if request_id is not None:
            msg += f" to request {request_id}"
        if seconds is not None:
            msg += f" within {seconds:g}s"
        super().__init__(msg)


class TransportError(LivePropsError):
    """Local send/receive failure (socket closed, frame too large, ...)."""


class ProtocolError(LivePropsError):
    """The host rejected the operation. `detail` is the host's message verbatim."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class DecodeError(LivePropsError):
    """Malformed inbound frame."""


class ShuttingDown(LivePropsError):
    def __init__(self, msg: str = "client is shutting down"):
        super().__init__(msg)
