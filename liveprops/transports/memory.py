from __future__ import annotations
import logging
import threading
from typing import List, Optional, Tuple

from ..errors import TransportError
from ..transport import ReceiveCallback, Transport

logger = logging.getLogger(__name__)


class MemoryTransport(Transport):
    """In-process transport; `pair()` returns two linked ends.

    send() hands the frame straight to the peer's callback on the calling
    thread. Loss, duplication and reordering can be simulated:

    - drop_outbound: frames are silently discarded
    - duplicate_outbound: every frame is delivered twice
    - hold_outbound: frames are queued until release() (optionally reversed)
    """

    def __init__(self, mtu: int = 65507):
        self._mtu = mtu
        self._peer: Optional["MemoryTransport"] = None
        self._cb: Optional[ReceiveCallback] = None
        self._running = False
        self._held: List[bytes] = []
        self._lock = threading.Lock()
        self.drop_outbound = False
        self.duplicate_outbound = False
        self.hold_outbound = False
        self.sent: List[bytes] = []

    @classmethod
    def pair(cls, mtu: int = 65507) -> Tuple["MemoryTransport", "MemoryTransport"]:
        a, b = cls(mtu), cls(mtu)
        a._peer, b._peer = b, a
        return a, b

    @property
    def mtu(self) -> int:
        return self._mtu

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        self._running = True

    def stop(self) -> None:
        self._running = False

    def on_receive(self, cb: ReceiveCallback) -> None:
        self._cb = cb

    def send(self, frame: bytes) -> None:
        if not self._running:
            raise TransportError("transport is not started")
        if len(frame) > self._mtu:
            raise TransportError(f"frame of {len(frame)} bytes exceeds mtu {self._mtu}")
        with self._lock:
            self.sent.append(frame)
            if self.drop_outbound:
                logger.debug("Dropping %d byte frame", len(frame))
                return
            if self.hold_outbound:
                self._held.append(frame)
                return
        copies = 2 if self.duplicate_outbound else 1
        for _ in range(copies):
            self._deliver(frame)

    def release(self, *, reverse: bool = False) -> int:
        """Deliver held frames; returns how many were delivered."""
        with self._lock:
            held, self._held = self._held, []
        if reverse:
            held.reverse()
        copies = 2 if self.duplicate_outbound else 1
        for frame in held:
            for _ in range(copies):
                self._deliver(frame)
        return len(held)

    def inject(self, frame: bytes) -> None:
        """Deliver a frame to this end as if the peer had sent it."""
        if self._running and self._cb:
            self._cb(frame)

    def _deliver(self, frame: bytes) -> None:
        peer = self._peer
        if peer is None:
            raise TransportError("transport has no peer")
        peer.inject(frame)
