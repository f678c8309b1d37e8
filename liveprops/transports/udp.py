from __future__ import annotations
import logging
import socket
import threading
from typing import Optional

from ..errors import TransportError
from ..transport import ReceiveCallback, Transport

logger = logging.getLogger(__name__)

# IPv4 UDP payload limit
UDP_MTU = 65507

class UdpTransport(Transport):
    """Transport over a single UDP socket.

    - send -> sendto() the configured host endpoint
    - one daemon thread reads the socket and hands every datagram to the
      registered callback; datagrams from other endpoints are ignored

    The receive callback runs on the reader thread and must not block.
    """

    def __init__(self, host: str, port: int, *, bind_host: str = "0.0.0.0",
                 bind_port: int = 0, recv_timeout: float = 0.05):
        self.host = host
        self.port = port
        self.bind_host = bind_host
        self.bind_port = bind_port
        self.recv_timeout = recv_timeout
        self._sock: Optional[socket.socket] = None
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._cb: Optional[ReceiveCallback] = None
        self._peer: Optional[tuple] = None

    @property
    def mtu(self) -> int:
        return UDP_MTU

    @property
    def local_address(self) -> Optional[tuple]:
        return self._sock.getsockname() if self._sock else None

    def on_receive(self, cb: ReceiveCallback) -> None:
        self._cb = cb

    def start(self) -> None:
        if self._sock is not None:
            return
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.bind_host, self.bind_port))
            sock.settimeout(self.recv_timeout)
            self._peer = (socket.gethostbyname(self.host), self.port)
        except OSError as ex:
            raise TransportError(f"cannot open UDP socket: {ex}") from ex
        self._sock = sock
        self._stop.clear()
        self._thread = threading.Thread(target=self._rx_loop, name="liveprops-udp-rx", daemon=True)
        self._thread.start()
        logger.info("UDP transport bound on %s:%s -> %s:%s",
                    *sock.getsockname()[:2], self.host, self.port)

    def stop(self) -> None:
        self._stop.set()
        sock, self._sock = self._sock, None
        if sock:
            try:
                sock.close()
            except OSError:
                pass
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=1.0)
        self._thread = None
        if sock:
            logger.info("UDP transport to %s:%s closed", self.host, self.port)

    def send(self, frame: bytes) -> None:
        sock = self._sock
        if sock is None or self._peer is None:
            raise TransportError("transport is not started")
        if len(frame) > self.mtu:
            raise TransportError(f"frame of {len(frame)} bytes exceeds mtu {self.mtu}")
        try:
            sock.sendto(frame, self._peer)
        except OSError as ex:
            raise TransportError(f"sendto {self.host}:{self.port} failed: {ex}") from ex
        logger.debug("UDP sent %d bytes", len(frame))

    # ------------------------------------------------------------------ #
    def _rx_loop(self) -> None:
        while not self._stop.is_set():
            sock = self._sock
            if sock is None:
                break
            try:
                data, addr = sock.recvfrom(65535)
            except socket.timeout:
                continue
            except OSError:
                break
            if self._peer and addr[:2] != self._peer:
                logger.debug("Ignoring datagram from unexpected peer %s", addr)
                continue
            logger.debug("UDP received %d bytes", len(data))
            cb = self._cb
            if cb:
                try:
                    cb(data)
                except Exception:
                    logger.exception("Receive callback failed; reader keeps running")
