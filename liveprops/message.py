from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, List, Any
from enum import StrEnum
import time

from .address import Address

# Operations a request frame can carry
class Op(StrEnum):
    GET        = "get"
    SET        = "set"
    CALL       = "call"
    OBSERVE    = "observe"      # enable notifications for an address
    UNOBSERVE  = "unobserve"    # disable notifications for an address

@dataclass(frozen=True)
class Request:
    """
    Outbound frame. 'id' is the correlation id echoed back by the host.
    """
    id: int                      # unique among in-flight requests
    op: Op
    path: Address
    args: List[Any] = field(default_factory=list)
    created_at: float = field(default_factory=time.monotonic)

@dataclass(frozen=True)
class Reply:
    """Host answer to a Request; exactly one of value/error is meaningful."""
    id: int
    value: Any = None
    error: Optional[str] = None  # host error detail, verbatim

    @property
    def ok(self) -> bool:
        return self.error is None

@dataclass(frozen=True)
class Event:
    """Unsolicited notification, never correlated to a Request."""
    path: Address
    payload: Any = None
