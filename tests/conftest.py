from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, List

import pytest

from liveprops import Address, LiveClient, MemoryTransport
from liveprops.codecs import Codec, JSONCodec
from liveprops.message import Op, Request
from liveprops.wire import decode_request, encode_event, encode_reply


class MockHost:
    """Host stand-in that keeps property state and answers every request."""

    def __init__(self, transport: MemoryTransport, codec: Codec | None = None):
        self.t = transport
        self.codec = codec or JSONCodec()
        self.state: Dict[Address, Any] = {}
        self.methods: Dict[str, Callable[..., Any]] = {}
        self.refuse_observe: set[Address] = set()
        self.requests: List[Request] = []
        self.silent = False
        self._lock = threading.Lock()
        transport.on_receive(self._on_request)

    def _on_request(self, frame: bytes) -> None:
        req = decode_request(frame, self.codec)
        with self._lock:
            self.requests.append(req)
        if self.silent:
            return
        value, error = self._handle(req)
        self.t.send(encode_reply(req.id, value, error=error, codec=self.codec))

    def _handle(self, req: Request) -> tuple[Any, str | None]:
        if req.op == Op.GET:
            if req.path not in self.state:
                return None, "no such property"
            return self.state[req.path], None
        if req.op == Op.SET:
            self.state[req.path] = req.args[0]
            return None, None
        if req.op == Op.CALL:
            method = self.methods.get(req.args[0])
            if method is None:
                return None, f"unknown method {req.args[0]}"
            return method(req.path, *req.args[1:]), None
        if req.op == Op.OBSERVE and req.path in self.refuse_observe:
            return None, "cannot observe"
        return True, None

    def set(self, path: str, value: Any) -> None:
        self.state[Address.parse(path)] = value

    def emit(self, path: str, payload: Any) -> None:
        self.t.send(encode_event(path, payload, codec=self.codec))

    def ops(self, op: Op) -> List[Request]:
        with self._lock:
            return [r for r in self.requests if r.op == op]


def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


@pytest.fixture()
def transports() -> tuple[MemoryTransport, MemoryTransport]:
    client_end, host_end = MemoryTransport.pair()
    host_end.start()
    return client_end, host_end


@pytest.fixture()
def host(transports) -> MockHost:
    return MockHost(transports[1])


@pytest.fixture()
def client(transports, host):
    c = LiveClient(transports[0], timeout=0.5)
    c.start()
    try:
        yield c
    finally:
        c.close()
