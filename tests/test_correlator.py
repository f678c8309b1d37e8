from __future__ import annotations

import random
import threading

import pytest

from liveprops import Op, ProtocolError, RequestCorrelator, ShuttingDown, Timeout, TransportError
from liveprops.transport import Transport
from liveprops.wire import decode_request


class RecordingTransport(Transport):
    def __init__(self, fail: bool = False):
        self.frames: list[bytes] = []
        self.fail = fail
        self._lock = threading.Lock()

    @property
    def mtu(self) -> int:
        return 65507

    def start(self) -> None:
        pass

    def stop(self) -> None:
        pass

    def on_receive(self, cb) -> None:
        pass

    def send(self, frame: bytes) -> None:
        if self.fail:
            raise TransportError("socket unavailable")
        with self._lock:
            self.frames.append(frame)

    def requests(self):
        return [decode_request(f) for f in self.frames]


@pytest.fixture()
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture()
def correlator(transport) -> RequestCorrelator:
    return RequestCorrelator(transport, default_timeout=1.0)


def test_submit_sends_frame_and_resolves(correlator, transport) -> None:
    pending = correlator.submit("track 0 volume", Op.GET)
    (req,) = transport.requests()
    assert req.id == pending.id
    assert str(req.path) == "track 0 volume"
    assert not pending.done()

    assert correlator.resolve(pending.id, 0.75) is True
    assert pending.result(0) == 0.75
    assert len(correlator) == 0


def test_host_error_fails_with_protocol_error(correlator) -> None:
    pending = correlator.submit("track 0 volume", Op.GET)
    correlator.fail(pending.id, ProtocolError("no such property"))
    with pytest.raises(ProtocolError) as info:
        pending.result(0)
    assert info.value.detail == "no such property"


def test_duplicate_reply_is_discarded(correlator) -> None:
    first = correlator.submit("track 0 volume", Op.GET)
    other = correlator.submit("track 1 volume", Op.GET)
    assert correlator.resolve(first.id, 1) is True
    assert correlator.resolve(first.id, 2) is False
    assert correlator.resolve(12345, 3) is False
    assert first.result(0) == 1
    assert not other.done()
    assert correlator.pending_ids() == [other.id]
    assert correlator.late_replies == 2


def test_timeout_fails_and_frees_id(transport) -> None:
    correlator = RequestCorrelator(transport, default_timeout=0.05)
    pending = correlator.submit("track 0 volume", Op.GET)
    with pytest.raises(Timeout):
        pending.result(2.0)
    assert pending.id not in correlator.pending_ids()
    # a late reply after the timeout is a no-op
    assert correlator.resolve(pending.id, 0.5) is False
    with pytest.raises(Timeout):
        pending.result(0)


def test_per_request_timeout_overrides_default(correlator) -> None:
    slow = correlator.submit("a", Op.GET)
    fast = correlator.submit("b", Op.GET, timeout=0.05)
    with pytest.raises(Timeout):
        fast.result(2.0)
    assert not slow.done()


def test_ids_wrap_and_skip_pending(correlator, monkeypatch) -> None:
    import liveprops.correlator as mod

    monkeypatch.setattr(mod, "MAX_ID", 3)
    a = correlator.submit("a", Op.GET)
    b = correlator.submit("b", Op.GET)
    correlator.resolve(a.id, None)
    c = correlator.submit("c", Op.GET)
    d = correlator.submit("d", Op.GET)
    assert (a.id, b.id, c.id) == (1, 2, 3)
    assert d.id == 1  # wrapped, 2 and 3 still pending
    assert len({b.id, c.id, d.id}) == 3


def test_transport_error_only_fails_that_request() -> None:
    transport = RecordingTransport()
    correlator = RequestCorrelator(transport, default_timeout=1.0)
    ok = correlator.submit("a", Op.GET)
    transport.fail = True
    broken = correlator.submit("b", Op.GET)
    with pytest.raises(TransportError):
        broken.result(0)
    assert correlator.pending_ids() == [ok.id]


def test_fail_all_and_refuse_new(correlator) -> None:
    replies = [correlator.submit(f"track {i}", Op.GET) for i in range(3)]
    assert correlator.fail_all(ShuttingDown()) == 3
    for r in replies:
        assert isinstance(r.exception(0), ShuttingDown)
    with pytest.raises(ShuttingDown):
        correlator.submit("track 0", Op.GET)


def test_concurrent_submissions_with_reordered_replies(correlator, transport) -> None:
    n = 50
    results: dict[int, object] = {}
    lock = threading.Lock()

    def worker(i: int) -> None:
        pending = correlator.submit(f"track {i} volume", Op.GET)
        value = pending.result(5.0)
        with lock:
            results[i] = value

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(n)]
    for t in threads:
        t.start()

    # wait until every request hit the wire, then answer in random order
    for _ in range(400):
        if len(transport.frames) == n:
            break
        threading.Event().wait(0.005)
    reqs = transport.requests()
    assert len({r.id for r in reqs}) == n
    random.shuffle(reqs)
    for r in reqs:
        correlator.resolve(r.id, r.path.segments[0].index)
        correlator.resolve(r.id, -1)  # duplicate, ignored

    for t in threads:
        t.join(5.0)
    assert results == {i: i for i in range(n)}


def test_done_callback_runs_once(correlator) -> None:
    calls = []
    pending = correlator.submit("a", Op.GET)
    pending.add_done_callback(lambda r: calls.append(r.result(0)))
    correlator.resolve(pending.id, 1)
    assert pending.set_result(2) is False
    pending.add_done_callback(lambda r: calls.append("late"))
    assert calls == [1, "late"]


def test_many_pending_requests_share_one_timeout_thread(transport) -> None:
    correlator = RequestCorrelator(transport, default_timeout=0.2)
    before = threading.active_count()
    replies = [correlator.submit(f"track {i} volume", Op.GET) for i in range(200)]
    assert threading.active_count() <= before + 1
    # a shorter deadline pushed later still fires first
    early = correlator.submit("track 0 mute", Op.GET, timeout=0.02)
    with pytest.raises(Timeout):
        early.result(2.0)
    assert not replies[0].done()
    for r in replies:
        assert isinstance(r.exception(2.0), Timeout)
    assert len(correlator) == 0
    assert correlator.fail_all(ShuttingDown()) == 0
