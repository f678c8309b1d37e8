from __future__ import annotations
from typing import Any, Dict, Iterable, Optional

from .address import Address, AddressLike
from .message import Op, Request

class RequestBuilder:
    """
    Builder that always produces a valid Request.
     - SET carries exactly one argument (the new value)
     - CALL carries the method name first, then its arguments
     - OBSERVE/UNOBSERVE need a non-root address
    The correlation id is filled in by the correlator via .id().
    """
    def __init__(self, path: AddressLike):
        self._req: Dict[str, Any] = {
            "id":   None,
            "op":   Op.GET,
            "path": Address.of(path),
            "args": [],
        }

    def get(self):
        self._req["op"]   = Op.GET
        self._req["args"] = []
        return self

    def set(self, value: Any):
        self._req["op"]   = Op.SET
        self._req["args"] = [value]
        return self

    def call(self, method: str, args: Iterable[Any] = ()):
        self._req["op"]   = Op.CALL
        self._req["args"] = [method, *args]
        return self

    def observe(self):
        self._req["op"]   = Op.OBSERVE
        self._req["args"] = []
        return self

    def unobserve(self):
        self._req["op"]   = Op.UNOBSERVE
        self._req["args"] = []
        return self

    def op(self, op: Op, args: Iterable[Any] = ()):
        self._req["op"]   = Op(op)
        self._req["args"] = list(args)
        return self

    def id(self, request_id: Optional[int]):
        self._req["id"] = request_id
        return self

    def build(self) -> Request:
        op, args = self._req["op"], self._req["args"]
        if not isinstance(self._req["id"], int):
            raise ValueError("Request needs an integer correlation id.")
        if op == Op.SET and len(args) != 1:
            raise ValueError("SET takes exactly one value.")
        if op == Op.CALL and (not args or not isinstance(args[0], str) or not args[0]):
            raise ValueError("CALL requires a method name.")
        if op in (Op.OBSERVE, Op.UNOBSERVE) and not self._req["path"]:
            raise ValueError("Cannot observe the root address.")
        return Request(**self._req)
