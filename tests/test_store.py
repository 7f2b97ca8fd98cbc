import gc
import threading

from config_client.services.config.snapshot import ConfigSnapshot
from config_client.services.config.store import ConfigStore


def snap(number: int) -> ConfigSnapshot:
    return ConfigSnapshot({"number": number})


def test_current_is_none_until_first_replace():
    store = ConfigStore()

    assert store.current() is None
    assert not store.initialized
    assert store.generation == 0


def test_current_is_stable_between_replaces():
    store = ConfigStore()
    first = snap(1)
    store.replace(first)

    assert store.current() is first
    assert store.current() is store.current()

    second = snap(2)
    store.replace(second)
    assert store.current() is second
    assert store.generation == 2


def test_subscribers_notified_in_registration_order():
    store = ConfigStore()
    calls = []
    store.subscribe(lambda s: calls.append(("first", s["number"])), weak=False)
    store.subscribe(lambda s: calls.append(("second", s["number"])), weak=False)

    store.replace(snap(7))

    assert calls == [("first", 7), ("second", 7)]


def test_subscriber_sees_new_snapshot_as_current():
    store = ConfigStore()
    seen = []
    store.subscribe(lambda s: seen.append(store.current() is s), weak=False)

    store.replace(snap(1))

    assert seen == [True]


def test_failing_subscriber_does_not_block_others_or_the_swap(caplog):
    store = ConfigStore()
    calls = []

    def broken(snapshot):
        raise RuntimeError("boom")

    store.subscribe(broken, weak=False)
    store.subscribe(calls.append, weak=False)

    new = snap(3)
    store.replace(new)

    assert store.current() is new
    assert calls == [new]
    assert "boom" in caplog.text


def test_unsubscribe_stops_notifications():
    store = ConfigStore()
    calls = []
    handle = store.subscribe(calls.append, weak=False)

    store.replace(snap(1))
    store.unsubscribe(handle)
    store.unsubscribe(handle)
    store.replace(snap(2))

    assert len(calls) == 1


def test_weak_subscribers_are_dropped_once_collected():
    store = ConfigStore()
    calls = []

    class Listener:
        def on_snapshot(self, snapshot):
            calls.append(snapshot)

    listener = Listener()
    store.subscribe(listener.on_snapshot)
    store.replace(snap(1))
    assert len(calls) == 1

    del listener
    gc.collect()

    assert store.subscriber_count == 0
    store.replace(snap(2))
    assert len(calls) == 1


def test_concurrent_readers_never_see_torn_snapshots():
    store = ConfigStore()
    snapshots = [ConfigSnapshot({"a": i, "b": i}) for i in range(200)]
    store.replace(snapshots[0])
    installed = {id(s) for s in snapshots}
    errors = []
    done = threading.Event()

    def reader():
        while not done.is_set():
            current = store.current()
            if id(current) not in installed or current["a"] != current["b"]:
                errors.append(current)

    readers = [threading.Thread(target=reader) for _ in range(4)]
    for t in readers:
        t.start()

    for snapshot in snapshots[1:]:
        store.replace(snapshot)

    done.set()
    for t in readers:
        t.join()

    assert errors == []
    assert store.current() is snapshots[-1]
    assert store.generation == 200


def test_concurrent_replaces_are_serialised():
    store = ConfigStore()
    order = []
    store.subscribe(lambda s: order.append((s["n"], store.generation)), weak=False)

    threads = [
        threading.Thread(target=store.replace, args=(ConfigSnapshot({"n": i}),))
        for i in range(20)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert store.generation == 20
    # Each notification ran before the next swap
    assert sorted(gen for _, gen in order) == list(range(1, 21))
