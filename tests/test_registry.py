import threading
import time

from xipher.core.crypto.registry import KeyRegistry, OnceCell, default_registry


class _Key:
    def __init__(self, raw):
        self.raw = raw


def test_intern_returns_identical_object(registry):
    first = registry.intern("ecc-private", b"\x01" * 32, lambda: _Key(b"\x01" * 32))
    second = registry.intern("ecc-private", b"\x01" * 32, lambda: _Key(b"\x01" * 32))
    assert first is second
    assert len(registry) == 1


def test_intern_distinguishes_bytes_and_kind(registry):
    a = registry.intern("ecc-private", b"a" * 32, lambda: _Key(b"a"))
    b = registry.intern("ecc-private", b"b" * 32, lambda: _Key(b"b"))
    c = registry.intern("ecc-public", b"a" * 32, lambda: _Key(b"a"))
    assert a is not b
    assert a is not c
    assert ("ecc-public", b"a" * 32) in registry
    assert ("ecc-public", b"z" * 32) not in registry


def test_intern_accepts_bytearray(registry):
    first = registry.intern("k", bytearray(b"xyz"), lambda: _Key(b"xyz"))
    assert registry.lookup("k", b"xyz") is first


def test_intern_callers_share_one_object_under_contention(registry):
    barrier = threading.Barrier(8)
    results = []

    def worker():
        barrier.wait()
        results.append(registry.intern("k", b"same", lambda: _Key(b"same")))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 8
    assert all(r is results[0] for r in results)
    assert len(registry) == 1


def test_intern_runs_factory_once_under_contention(registry):
    barrier = threading.Barrier(8)
    calls = []
    results = []

    def slow_factory():
        calls.append(1)
        time.sleep(0.05)
        return _Key(b"slow")

    def worker():
        barrier.wait()
        results.append(registry.intern("k", b"slow", slow_factory))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert calls == [1]
    assert all(r is results[0] for r in results)


def test_failed_factory_leaves_no_entry(registry):
    def failing():
        raise RuntimeError("boom")

    try:
        registry.intern("k", b"x", failing)
    except RuntimeError:
        pass
    assert registry.lookup("k", b"x") is None
    assert len(registry) == 0
    assert registry.intern("k", b"x", lambda: _Key(b"x")).raw == b"x"


def test_clear_drops_entries():
    registry = KeyRegistry("scratch")
    registry.intern("k", b"1", lambda: _Key(b"1"))
    registry.clear()
    assert len(registry) == 0


def test_default_registry_is_process_singleton():
    assert default_registry() is default_registry()


def test_once_cell_runs_factory_once():
    cell = OnceCell()
    calls = []

    def factory():
        calls.append(1)
        return object()

    assert not cell.is_set
    first = cell.get_or_init(factory)
    assert cell.get_or_init(factory) is first
    assert cell.is_set
    assert calls == [1]


def test_once_cell_retries_after_failure():
    cell = OnceCell()

    def failing():
        raise RuntimeError("boom")

    try:
        cell.get_or_init(failing)
    except RuntimeError:
        pass
    assert not cell.is_set
    assert cell.get_or_init(lambda: 42) == 42


def test_once_cell_concurrent_readers_see_one_value():
    cell = OnceCell()
    barrier = threading.Barrier(8)
    seen = []

    def worker():
        barrier.wait()
        seen.append(cell.get_or_init(object))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert all(v is seen[0] for v in seen)
