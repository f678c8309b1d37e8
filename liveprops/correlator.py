from __future__ import annotations
import heapq
import itertools
import logging
import threading
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .address import AddressLike
from .builder import RequestBuilder
from .codecs import Codec, JSONCodec
from .errors import ShuttingDown, Timeout, TransportError
from .message import Op, Request
from .transport import Transport
from .wire import encode_request

logger = logging.getLogger(__name__)

# Correlation ids wrap inside a signed 32-bit range
MAX_ID = 2 ** 31 - 1


class PendingReply:
    """
    Caller-side handle for one in-flight request.
    Completes at most once; later completion attempts return False.
    """

    def __init__(self, request: Request):
        self.request = request
        self._done = threading.Event()
        self._lock = threading.Lock()
        self._value: Any = None
        self._error: Optional[BaseException] = None
        self._callbacks: List[Callable[["PendingReply"], None]] = []

    @property
    def id(self) -> int:
        return self.request.id

    def set_result(self, value: Any) -> bool:
        return self._complete(value, None)

    def set_error(self, error: BaseException) -> bool:
        return self._complete(None, error)

    def _complete(self, value: Any, error: Optional[BaseException]) -> bool:
        with self._lock:
            if self._done.is_set():
                return False
            self._value, self._error = value, error
            self._done.set()
            callbacks, self._callbacks = self._callbacks, []
        for cb in callbacks:
            self._run_callback(cb)
        return True

    def done(self) -> bool:
        return self._done.is_set()

    def result(self, timeout: Optional[float] = None) -> Any:
        """Block until completion; return the value or raise the failure."""
        if not self._done.wait(timeout):
            raise Timeout(self.request.id, timeout)
        if self._error is not None:
            raise self._error
        return self._value

    def exception(self, timeout: Optional[float] = None) -> Optional[BaseException]:
        if not self._done.wait(timeout):
            raise Timeout(self.request.id, timeout)
        return self._error

    def add_done_callback(self, cb: Callable[["PendingReply"], None]) -> None:
        with self._lock:
            if not self._done.is_set():
                self._callbacks.append(cb)
                return
        self._run_callback(cb)

    def _run_callback(self, cb: Callable[["PendingReply"], None]) -> None:
        try:
            cb(self)
        except Exception:
            logger.exception("Done-callback for request %s failed", self.request.id)

    def __repr__(self) -> str:
        state = "done" if self.done() else "pending"
        return f"<PendingReply id={self.request.id} op={self.request.op} {state}>"


class RequestCorrelator:

    # Notes:
    # - One entry per in-flight request: id -> reply
    # - Deadlines live in one heap served by a single timeout thread per correlator;
    #   heap items for requests that already completed are skipped when they come due
    # - Whoever pops the entry first (reply, timeout, send failure, shutdown) completes it
    # - Replies for ids with no entry are late/duplicate/bogus and are discarded

    def __init__(self, transport: Transport, *, codec: Codec = JSONCodec(),
                 default_timeout: float = 5.0):
        self.t = transport
        self.codec = codec
        self.default_timeout = default_timeout
        self._pending: Dict[int, PendingReply] = {}
        self._lock = threading.Lock()
        self._wakeup = threading.Condition(self._lock)
        # (deadline, seq, request id, seconds, reply)
        self._deadlines: List[Tuple[float, int, int, float, PendingReply]] = []
        self._seq = itertools.count()
        self._timeouts: Optional[threading.Thread] = None
        self._last_id = 0
        self._closed = False
        self.late_replies = 0

    def submit(self, address: AddressLike, op: Op, args: Iterable[Any] = (),
               timeout: Optional[float] = None) -> PendingReply:
        """Register, encode and send one request. Never blocks on the reply."""
        wait_seconds = self.default_timeout if timeout is None else timeout
        builder = RequestBuilder(address).op(op, args)

        with self._lock:
            if self._closed:
                raise ShuttingDown()
            req = builder.id(self._allocate_id()).build()
            reply = PendingReply(req)
            self._pending[req.id] = reply
            deadline = time.monotonic() + wait_seconds
            heapq.heappush(self._deadlines,
                           (deadline, next(self._seq), req.id, wait_seconds, reply))
            if self._timeouts is None:
                self._timeouts = threading.Thread(target=self._timeout_loop,
                                                  name="liveprops-timeouts", daemon=True)
                self._timeouts.start()
            elif self._deadlines[0][0] == deadline:
                self._wakeup.notify()

        try:
            frame = encode_request(req, self.codec)
        except Exception:
            self._pop(req.id)
            raise

        try:
            self.t.send(frame)
        except TransportError as ex:
            if self._pop(req.id):
                reply.set_error(ex)
        else:
            logger.debug("Sent %s %s (id=%d)", req.op, req.path, req.id)
        return reply

    def resolve(self, request_id: int, value: Any) -> bool:
        reply = self._pop(request_id)
        if reply is None:
            self._discard(request_id)
            return False
        return reply.set_result(value)

    def fail(self, request_id: int, error: BaseException) -> bool:
        reply = self._pop(request_id)
        if reply is None:
            self._discard(request_id)
            return False
        return reply.set_error(error)

    def fail_all(self, error: BaseException) -> int:
        """Fail every pending request and refuse new ones."""
        with self._lock:
            self._closed = True
            replies, self._pending = list(self._pending.values()), {}
            self._deadlines = []
            self._wakeup.notify_all()
        for reply in replies:
            reply.set_error(error)
        return len(replies)

    def pending_ids(self) -> List[int]:
        with self._lock:
            return sorted(self._pending)

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    # ---- internals ----
    def _allocate_id(self) -> int:
        # caller holds self._lock
        for _ in range(len(self._pending) + 1):
            self._last_id = self._last_id % MAX_ID + 1
            if self._last_id not in self._pending:
                return self._last_id
        raise RuntimeError("correlation id space exhausted")

    def _pop(self, request_id: int) -> Optional[PendingReply]:
        with self._lock:
            return self._pending.pop(request_id, None)

    def _timeout_loop(self) -> None:
        while True:
            with self._wakeup:
                expired = self._take_expired()
                while not expired and not self._closed:
                    self._wakeup.wait(self._next_wait())
                    expired = self._take_expired()
                if not expired:
                    return
            for request_id, seconds, reply in expired:
                logger.debug("Request %d timed out after %gs", request_id, seconds)
                reply.set_error(Timeout(request_id, seconds))

    def _take_expired(self) -> List[Tuple[int, float, PendingReply]]:
        # caller holds self._lock
        now = time.monotonic()
        expired = []
        while self._deadlines and self._deadlines[0][0] <= now:
            _, _, request_id, seconds, reply = heapq.heappop(self._deadlines)
            if self._pending.get(request_id) is reply:
                del self._pending[request_id]
                expired.append((request_id, seconds, reply))
        return expired

    def _next_wait(self) -> Optional[float]:
        # caller holds self._lock
        if not self._deadlines:
            return None
        return max(0.0, self._deadlines[0][0] - time.monotonic())

    def _discard(self, request_id: int) -> None:
        with self._lock:
            self.late_replies += 1
        logger.debug("Discarding reply for unknown request id %s", request_id)
