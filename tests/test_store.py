"""
Tests del `EventStore`: orden FIFO y *append* concurrente sin pérdidas.
"""
from __future__ import annotations

import threading

import pytest

from conftest import make_record
from zcdiscover.discovery.events import ResolvedServiceRecord, ServiceEvent
from zcdiscover.discovery.store import EventStore


def test_snapshot_preserves_append_order() -> None:
    store = EventStore()
    records = [make_record(f"svc-{i}") for i in range(5)]
    for r in records:
        store.append(r)

    assert store.snapshot() == records
    assert list(store) == records
    assert len(store) == 5


def test_duplicate_resolutions_are_kept() -> None:
    store = EventStore()
    store.append(make_record("printer"))
    store.append(make_record("printer"))

    snap = store.snapshot()
    assert len(snap) == 2
    assert snap[0].instance_key == snap[1].instance_key


def test_snapshot_is_a_copy() -> None:
    store = EventStore()
    store.append(make_record("a"))
    snap = store.snapshot()
    snap.clear()
    assert len(store) == 1


# ════════════════════════════════════════════════════════════════════════════
# N hilos × M registros ⇒ N·M registros, orden por hilo intacto
# ════════════════════════════════════════════════════════════════════════════
def test_concurrent_append_loses_nothing() -> None:
    store = EventStore()
    n_threads, per_thread = 8, 200
    barrier = threading.Barrier(n_threads)

    def _writer(t: int) -> None:
        barrier.wait()
        for i in range(per_thread):
            store.append(make_record(f"t{t}-{i}"))

    threads = [threading.Thread(target=_writer, args=(t,)) for t in range(n_threads)]
    for th in threads:
        th.start()
    for th in threads:
        th.join()

    snap = store.snapshot()
    assert len(snap) == n_threads * per_thread
    assert len({r.name for r in snap}) == n_threads * per_thread

    # El orden relativo de cada hilo se conserva.
    for t in range(n_threads):
        mine = [r.name for r in snap if r.name.startswith(f"t{t}-")]
        assert mine == [f"t{t}-{i}" for i in range(per_thread)]


def test_record_requires_resolved_event() -> None:
    with pytest.raises(ValueError):
        ResolvedServiceRecord.from_event(ServiceEvent("_http._tcp.local.", "printer"))


def test_record_rejects_out_of_range_port() -> None:
    with pytest.raises(ValueError):
        make_record(port=70000)


def test_record_is_immutable() -> None:
    record = make_record()
    with pytest.raises(ValueError):
        record.port = 80  # type: ignore[misc]
