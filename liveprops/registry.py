from __future__ import annotations
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from .address import Address, AddressLike
from .correlator import PendingReply, RequestCorrelator
from .errors import LivePropsError, ShuttingDown
from .message import Event, Op

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]
ErrorListener = Callable[[BaseException], None]


@dataclass(eq=False)
class Subscription:
    """One registered listener. Two registrations of the same callback are two handles."""
    address: Address
    callback: Listener
    on_error: Optional[ErrorListener] = None
    sub_id: int = 0
    active: bool = field(default=True)

    def __repr__(self) -> str:
        return f"<Subscription #{self.sub_id} {self.address} active={self.active}>"


@dataclass(eq=False)
class _Enabling:
    """OBSERVE in flight for one address; later adders wait on it too."""
    subs: List[Subscription] = field(default_factory=list)
    done: threading.Event = field(default_factory=threading.Event)
    error: Optional[BaseException] = None


class ListenerRegistry:
    """Address -> ordered list of subscriptions.

    The first subscription at an address enables host notifications
    (OBSERVE, waited for by every adder that arrives before the host
    answers); removing the last one disables them (UNOBSERVE, best effort).
    The lock is never held while callbacks run.
    """

    def __init__(self, correlator: RequestCorrelator, *, timeout: Optional[float] = None):
        self.correlator = correlator
        self.timeout = timeout
        self._subs: Dict[Address, List[Subscription]] = {}
        self._enabling: Dict[Address, _Enabling] = {}
        self._lock = threading.Lock()
        self._next_id = 0
        self._closed = False

    def add_listener(self, address: AddressLike, callback: Listener,
                     on_error: Optional[ErrorListener] = None) -> Subscription:
        addr = Address.of(address)
        with self._lock:
            if self._closed:
                raise ShuttingDown()
            self._next_id += 1
            sub = Subscription(addr, callback, on_error, self._next_id)
            current = self._subs.setdefault(addr, [])
            state = self._enabling.get(addr)
            owner = state is None and not current
            if owner:
                state = _Enabling()
                self._enabling[addr] = state
            if state is not None:
                state.subs.append(sub)
            current.append(sub)

        if state is None:
            return sub  # notifications already enabled

        if owner:
            error: Optional[BaseException] = None
            try:
                self.correlator.submit(addr, Op.OBSERVE, timeout=self.timeout).result()
            except Exception as ex:
                error = ex
            self._finish_enable(addr, state, error)
        else:
            state.done.wait()

        if state.error is not None:
            raise state.error
        return sub

    def remove_listener(self, address: AddressLike,
                        handle: Union[Subscription, Listener]) -> bool:
        """Remove one subscription (by handle, or the oldest one holding the callback)."""
        addr = Address.of(address)
        with self._lock:
            current = self._subs.get(addr, [])
            sub = _find(current, handle)
            if sub is None:
                return False
            current.remove(sub)
            last = not current
            if last:
                del self._subs[addr]
            # while OBSERVE is in flight, _finish_enable decides about UNOBSERVE
            enabling = addr in self._enabling
        sub.active = False
        if last and not enabling and not self._closed:
            self._unobserve(addr)
        return True

    def dispatch(self, event: Event) -> int:
        """Invoke every callback registered at event.path, in insertion order."""
        with self._lock:
            snapshot = list(self._subs.get(event.path, ()))
        for sub in snapshot:
            try:
                sub.callback(event.payload)
            except Exception:
                logger.exception("Listener #%d for %s failed", sub.sub_id, event.path)
        return len(snapshot)

    def clear(self, error: BaseException) -> int:
        """Teardown: drop every subscription and tell each one why."""
        with self._lock:
            self._closed = True
            subs = [s for lst in self._subs.values() for s in lst]
            self._subs = {}
        for sub in subs:
            sub.active = False
            if sub.on_error:
                try:
                    sub.on_error(error)
                except Exception:
                    logger.exception("Error listener #%d for %s failed", sub.sub_id, sub.address)
        return len(subs)

    def has_listeners(self, address: AddressLike) -> bool:
        with self._lock:
            return bool(self._subs.get(Address.of(address)))

    def listeners(self, address: AddressLike) -> List[Subscription]:
        with self._lock:
            return list(self._subs.get(Address.of(address), ()))

    def __len__(self) -> int:
        with self._lock:
            return sum(len(lst) for lst in self._subs.values())

    # ---- internals ----
    def _finish_enable(self, addr: Address, state: "_Enabling",
                       error: Optional[BaseException]) -> None:
        """Settle every subscription that joined while OBSERVE was in flight."""
        with self._lock:
            if self._enabling.get(addr) is state:
                del self._enabling[addr]
            current = self._subs.get(addr, [])
            if error is not None:
                for sub in state.subs:
                    if sub in current:
                        current.remove(sub)
                    sub.active = False
                if addr in self._subs and not current:
                    del self._subs[addr]
            orphaned = error is None and not current and not self._closed
            state.error = error
        state.done.set()

        if error is not None:
            logger.debug("Enabling notifications for %s failed: %s", addr, error)
        elif orphaned:
            # every listener went away before the host confirmed
            self._unobserve(addr)
        else:
            logger.debug("Notifications enabled for %s", addr)

    def _unobserve(self, addr: Address) -> None:
        try:
            reply = self.correlator.submit(addr, Op.UNOBSERVE, timeout=self.timeout)
        except LivePropsError as ex:
            logger.warning("Could not disable notifications for %s: %s", addr, ex)
            return

        def _log_failure(r: PendingReply) -> None:
            err = r.exception(0)
            if err is not None:
                logger.warning("Disabling notifications for %s failed: %s", addr, err)

        reply.add_done_callback(_log_failure)


def _find(subs: List[Subscription], handle: Union[Subscription, Listener]) -> Optional[Subscription]:
    if isinstance(handle, Subscription):
        return handle if handle in subs else None
    for sub in subs:
        if sub.callback == handle:
            return sub
    return None
