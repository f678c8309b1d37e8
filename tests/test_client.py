from __future__ import annotations

import threading

import pytest

from liveprops import Address, LiveClient, Op, ProtocolError, ShuttingDown, Timeout, TransportError
from liveprops.transports import MemoryTransport

from conftest import MockHost, wait_for


def test_set_then_get_round_trip(client: LiveClient, host: MockHost) -> None:
    for path, value in [
        ("track 0 volume", 0.75),
        ("track 0 chain 1 name", "Kick"),
        ("track 2 mute", True),
        ("track 0 chain 1 devices 2 sends 0", [0.1, 0.2]),
    ]:
        client.set_prop(path, value)
        assert client.get_prop(path) == value


def test_reply_value_and_host_error(client: LiveClient, host: MockHost) -> None:
    host.set("track 0 volume", 0.75)
    assert client.get_prop("track 0 volume") == 0.75

    with pytest.raises(ProtocolError) as info:
        client.get_prop("track 0 pan")
    assert str(info.value) == "no such property"


def test_call_invokes_host_method(client: LiveClient, host: MockHost) -> None:
    host.methods["delete_device"] = lambda path, index: f"{path}:{index}"
    assert client.call("track 0 chain 1", "delete_device", 2) == "track 0 chain 1:2"
    with pytest.raises(ProtocolError):
        client.call("track 0", "explode")


def test_silent_host_times_out(client: LiveClient, host: MockHost) -> None:
    host.silent = True
    pending = client.get_prop_async("track 0 volume", timeout=0.05)
    with pytest.raises(Timeout):
        pending.result(2.0)
    assert client.stats["pending"] == 0


def test_reordered_replies_reach_the_right_callers(client, host, transports) -> None:
    _, host_end = transports
    n = 20
    for i in range(n):
        host.set(f"track {i} volume", i / 100)
    host_end.hold_outbound = True

    results: dict[int, float] = {}
    lock = threading.Lock()

    def worker(i: int) -> None:
        value = client.get_prop(f"track {i} volume", timeout=5.0)
        with lock:
            results[i] = value

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(n)]
    for t in threads:
        t.start()
    assert wait_for(lambda: len(host.ops(Op.GET)) == n)

    host_end.duplicate_outbound = True
    assert host_end.release(reverse=True) == n
    for t in threads:
        t.join(5.0)

    assert results == {i: i / 100 for i in range(n)}
    assert client.stats["late_replies"] == n


def test_malformed_frames_are_counted_and_dropped(client, host, transports) -> None:
    client_end, _ = transports
    client_end.inject(b"\x00garbage")
    client_end.inject(b'{"id":"nope"}')
    host.set("track 0 volume", 0.5)
    assert client.get_prop("track 0 volume") == 0.5
    assert client.stats["decode_errors"] == 2


def test_events_reach_listeners_in_order(client: LiveClient, host: MockHost) -> None:
    seen: list[float] = []
    client.add_listener("track 0 volume", seen.append)
    assert len(host.ops(Op.OBSERVE)) == 1

    for v in (0.1, 0.2, 0.3):
        host.emit("track 0 volume", v)
    host.emit("track 1 volume", 9.9)

    assert wait_for(lambda: len(seen) == 3)
    assert seen == [0.1, 0.2, 0.3]
    assert wait_for(lambda: client.stats["dropped_events"] == 1)


def test_slow_listener_does_not_stall_replies(client: LiveClient, host: MockHost) -> None:
    gate = threading.Event()
    entered = threading.Event()

    def slow(payload):
        entered.set()
        gate.wait(2.0)

    client.add_listener("track 0 mute", slow)
    host.emit("track 0 mute", True)
    assert entered.wait(2.0)

    host.set("track 0 volume", 0.3)
    assert client.get_prop("track 0 volume") == 0.3
    gate.set()


def test_slow_listener_only_holds_up_its_own_address(client: LiveClient, host: MockHost) -> None:
    gate = threading.Event()
    entered = threading.Event()
    seen_a: list = []
    seen_b: list = []

    def slow(payload):
        entered.set()
        gate.wait(2.0)
        seen_a.append(payload)

    client.add_listener("track 0 mute", slow)
    client.add_listener("track 1 mute", seen_b.append)
    host.emit("track 0 mute", 1)
    assert entered.wait(2.0)
    host.emit("track 0 mute", 2)
    host.emit("track 1 mute", True)

    assert wait_for(lambda: seen_b == [True], 1.0)
    assert seen_a == []
    gate.set()
    assert wait_for(lambda: seen_a == [1, 2])


def test_dispatch_workers_must_be_positive(transports) -> None:
    with pytest.raises(ValueError):
        LiveClient(transports[0], dispatch_workers=0)


def test_remove_listener_by_callback(client: LiveClient, host: MockHost) -> None:
    seen: list = []
    client.add_listener("track 0 solo", seen.append)
    assert client.has_listeners("track 0 solo")
    assert client.remove_listener(Address.parse("track 0 solo"), seen.append)
    assert not client.has_listeners("track 0 solo")
    assert [r.path for r in host.ops(Op.UNOBSERVE)] == [Address.parse("track 0 solo")]


def test_close_fails_pending_and_clears_listeners(transports, host: MockHost) -> None:
    client_end, _ = transports
    client = LiveClient(client_end, timeout=5.0).start()
    errors: list[BaseException] = []
    client.add_listener("track 0 volume", lambda p: None, on_error=errors.append)

    host.silent = True
    pending = client.get_prop_async("track 0 volume")
    client.close()

    assert isinstance(pending.exception(1.0), ShuttingDown)
    assert len(errors) == 1 and isinstance(errors[0], ShuttingDown)
    assert not client_end.running
    assert client.stats["listeners"] == 0
    with pytest.raises(ShuttingDown):
        client.get_prop("track 0 volume")
    with pytest.raises(ShuttingDown):
        client.add_listener("track 0 volume", lambda p: None)
    client.close()  # idempotent


def test_send_failure_surfaces_as_transport_error() -> None:
    client_end, host_end = MemoryTransport.pair(mtu=64)
    host_end.start()
    MockHost(host_end)
    with LiveClient(client_end, timeout=0.5) as client:
        with pytest.raises(TransportError):
            client.set_prop("track 0 name", "x" * 100)
        assert client.stats["pending"] == 0


def test_unencodable_value_is_raised_to_caller(client: LiveClient, host: MockHost) -> None:
    with pytest.raises(ValueError):
        client.set_prop("track 0 volume", float("nan"))
    assert client.stats["pending"] == 0
    assert host.ops(Op.SET) == []
