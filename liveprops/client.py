from __future__ import annotations
import logging
import queue
import threading
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Union

from .address import Address, AddressLike
from .codecs import Codec, JSONCodec
from .correlator import PendingReply, RequestCorrelator
from .errors import DecodeError, ProtocolError, ShuttingDown
from .message import Event, Op, Reply
from .registry import ErrorListener, Listener, ListenerRegistry, Subscription
from .transport import Transport
from .wire import decode_frame

logger = logging.getLogger(__name__)

_STOP = object()


class LiveClient:

    # Notes:
    # - get/set/call = one correlator submission each; callers block on the PendingReply
    # - Transport reader thread -> _on_frame: replies go to the correlator,
    #   events are appended to their address's lane (callbacks never run on the reader)
    # - One lane per address with events waiting; a lane is drained by at most one
    #   dispatch worker at a time, so order holds per address and a slow callback
    #   only holds up its own address
    # - Malformed frames are counted and dropped, never raised
    # - close(): fail pending requests, clear listeners, then stop the transport

    def __init__(self, transport: Transport, *, timeout: float = 5.0,
                 codec: Codec = JSONCodec(), dispatch_workers: int = 4):
        if dispatch_workers < 1:
            raise ValueError("dispatch_workers must be at least 1.")
        self.t = transport
        self.codec = codec
        self.timeout = timeout
        self.dispatch_workers = dispatch_workers
        self.correlator = RequestCorrelator(transport, codec=codec, default_timeout=timeout)
        self.registry = ListenerRegistry(self.correlator, timeout=timeout)

        # address -> events not yet dispatched; present iff that address is in _ready or being drained
        self._lanes: Dict[Address, Deque[Event]] = {}
        self._lanes_lock = threading.Lock()
        self._ready: "queue.Queue[Any]" = queue.Queue()
        self._workers: List[threading.Thread] = []
        self._state_lock = threading.Lock()
        self._started = False
        self._closed = False
        self._counters: Dict[str, int] = {"decode_errors": 0, "events": 0, "dropped_events": 0}

        self.t.on_receive(self._on_frame)

    # ---- lifecycle ----
    def start(self) -> "LiveClient":
        with self._state_lock:
            if self._closed:
                raise ShuttingDown()
            if self._started:
                return self
            self._started = True
        self.t.start()
        for i in range(self.dispatch_workers):
            worker = threading.Thread(target=self._dispatch_loop,
                                      name=f"liveprops-dispatch-{i}", daemon=True)
            worker.start()
            self._workers.append(worker)
        logger.info("Client started (timeout=%gs, codec=%s)", self.timeout, self.codec.name)
        return self

    def close(self) -> None:
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
        failed = self.correlator.fail_all(ShuttingDown())
        cleared = self.registry.clear(ShuttingDown())
        with self._lanes_lock:
            self._lanes.clear()
        workers, self._workers = self._workers, []
        for _ in workers:
            self._ready.put(_STOP)
        for worker in workers:
            if worker is not threading.current_thread():
                worker.join(timeout=1.0)
        self.t.stop()
        logger.info("Client closed (%d pending requests failed, %d listeners cleared)",
                    failed, cleared)

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "LiveClient":
        return self.start()

    def __exit__(self, *exc) -> None:
        self.close()

    # ---- API ----
    def get_prop_async(self, path: AddressLike, *, timeout: Optional[float] = None) -> PendingReply:
        return self.correlator.submit(path, Op.GET, timeout=timeout)

    def set_prop_async(self, path: AddressLike, value: Any, *,
                       timeout: Optional[float] = None) -> PendingReply:
        return self.correlator.submit(path, Op.SET, [value], timeout=timeout)

    def call_async(self, path: AddressLike, method: str, *args: Any,
                   timeout: Optional[float] = None) -> PendingReply:
        return self.correlator.submit(path, Op.CALL, [method, *args], timeout=timeout)

    def get_prop(self, path: AddressLike, *, timeout: Optional[float] = None) -> Any:
        """Read a property; blocks until the host answers or the request times out."""
        return self.get_prop_async(path, timeout=timeout).result()

    def set_prop(self, path: AddressLike, value: Any, *, timeout: Optional[float] = None) -> Any:
        """Write a property; returns the host's acknowledgement value."""
        return self.set_prop_async(path, value, timeout=timeout).result()

    def call(self, path: AddressLike, method: str, *args: Any,
             timeout: Optional[float] = None) -> Any:
        """Invoke a method on the object at `path`."""
        return self.call_async(path, method, *args, timeout=timeout).result()

    def add_listener(self, path: AddressLike, callback: Listener,
                     on_error: Optional[ErrorListener] = None) -> Subscription:
        """
        Call `callback(payload)` for every change event at `path`.
        `on_error` receives ShuttingDown when the client closes.
        Raises if the host refuses to enable notifications.
        """
        return self.registry.add_listener(path, callback, on_error)

    def remove_listener(self, path: AddressLike,
                        handle: Union[Subscription, Listener]) -> bool:
        return self.registry.remove_listener(path, handle)

    def has_listeners(self, path: AddressLike) -> bool:
        return self.registry.has_listeners(path)

    @property
    def stats(self) -> Dict[str, int]:
        with self._state_lock:
            out = dict(self._counters)
        out["late_replies"] = self.correlator.late_replies
        out["pending"] = len(self.correlator)
        out["listeners"] = len(self.registry)
        return out

    # ---- inbound path ----
    def _on_frame(self, frame: bytes) -> None:
        try:
            msg = decode_frame(frame, self.codec)
        except DecodeError as ex:
            self._bump("decode_errors")
            logger.debug("Dropping malformed frame (%d bytes): %s", len(frame), ex)
            return

        if isinstance(msg, Reply):
            if msg.ok:
                self.correlator.resolve(msg.id, msg.value)
            else:
                self.correlator.fail(msg.id, ProtocolError(msg.error))
            return

        if self._closed:
            self._bump("dropped_events")
            return
        self._bump("events")
        with self._lanes_lock:
            lane = self._lanes.get(msg.path)
            if lane is not None:
                lane.append(msg)
                return
            self._lanes[msg.path] = deque([msg])
        self._ready.put(msg.path)

    def _dispatch_loop(self) -> None:
        while True:
            item = self._ready.get()
            if item is _STOP:
                break
            self._drain(item)

    def _drain(self, path: Address) -> None:
        while True:
            with self._lanes_lock:
                lane = self._lanes.get(path)
                if lane is None:
                    return
                if not lane:
                    del self._lanes[path]
                    return
                event = lane.popleft()
            if self.registry.dispatch(event) == 0:
                self._bump("dropped_events")
                logger.debug("No listener for event at %s", event.path)

    def _bump(self, key: str) -> None:
        with self._state_lock:
            self._counters[key] += 1
