"""Concrete transports."""

from .memory import MemoryTransport
from .udp import UdpTransport

__all__ = ["MemoryTransport", "UdpTransport"]
