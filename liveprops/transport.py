from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable

ReceiveCallback = Callable[[bytes], None]

class Transport(ABC):
    """
    Duplex datagram channel to a single peer (the host).
    No delivery, ordering or de-duplication guarantees.
    """

    @property
    @abstractmethod
    def mtu(self) -> int:
        """Best-effort max frame size in bytes."""
        raise NotImplementedError

    @abstractmethod
    def start(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def stop(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def send(self, frame: bytes) -> None:
        """Send one frame to the peer. Raises TransportError on local failure."""
        raise NotImplementedError

    @abstractmethod
    def on_receive(self, cb: ReceiveCallback) -> None:
        """Register the single callback invoked for every inbound frame."""
        raise NotImplementedError
