from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from fakes import FakeClock, FakeStore

from nodelabel_orch.core.errors import ManifestNotFoundError, StoreError
from nodelabel_orch.lib.manifests.config_cache import ConfigCache

TTL = 3600


def test_reads_within_ttl_fetch_once(clock: FakeClock) -> None:
    store = FakeStore({"cluster-completed.spec": b"v1"})
    cache = ConfigCache(store, clock=clock)

    assert cache.read("cluster-completed.spec", TTL) == b"v1"
    clock.advance(TTL - 1)
    assert cache.read("cluster-completed.spec", TTL) == b"v1"

    assert store.reads == ["cluster-completed.spec"]


def test_read_after_ttl_fetches_again(clock: FakeClock) -> None:
    store = FakeStore({"cluster-completed.spec": b"v1"})
    cache = ConfigCache(store, clock=clock)
    cache.read("cluster-completed.spec", TTL)

    store.files["cluster-completed.spec"] = b"v2"
    clock.advance(TTL)

    assert cache.read("cluster-completed.spec", TTL) == b"v2"
    assert len(store.reads) == 2


def test_paths_are_cached_independently(clock: FakeClock) -> None:
    store = FakeStore({"a": b"A", "b": b"B"})
    cache = ConfigCache(store, clock=clock)

    assert cache.read("a", TTL) == b"A"
    assert cache.read("b", TTL) == b"B"
    assert cache.read("a", TTL) == b"A"
    assert store.reads == ["a", "b"]


def test_fetch_failure_propagates_without_stale_fallback(clock: FakeClock) -> None:
    store = FakeStore({"cluster-completed.spec": b"v1"})
    cache = ConfigCache(store, clock=clock)
    cache.read("cluster-completed.spec", TTL)

    clock.advance(TTL + 1)
    store.error = StoreError("connection reset")

    with pytest.raises(StoreError):
        cache.read("cluster-completed.spec", TTL)


def test_missing_manifest_is_not_cached(clock: FakeClock) -> None:
    store = FakeStore()
    cache = ConfigCache(store, clock=clock)

    with pytest.raises(ManifestNotFoundError):
        cache.read("instancegroup/nope", TTL)
    with pytest.raises(ManifestNotFoundError):
        cache.read("instancegroup/nope", TTL)

    assert len(store.reads) == 2


class _BlockingStore(FakeStore):
    def __init__(self, files: dict[str, bytes]) -> None:
        super().__init__(files)
        self.entered = threading.Event()
        self.release = threading.Event()

    def read_path(self, path: str) -> bytes:
        self.entered.set()
        assert self.release.wait(timeout=5)
        return super().read_path(path)


def test_concurrent_misses_collapse_into_one_fetch() -> None:
    store = _BlockingStore({"cluster-completed.spec": b"v1"})
    cache = ConfigCache(store)

    with ThreadPoolExecutor(max_workers=8) as pool:
        futures = [pool.submit(cache.read, "cluster-completed.spec", TTL) for _ in range(8)]
        assert store.entered.wait(timeout=5)
        store.release.set()
        results = [f.result(timeout=5) for f in futures]

    assert results == [b"v1"] * 8
    assert store.reads == ["cluster-completed.spec"]


def test_hit_does_not_wait_for_another_paths_fetch() -> None:
    store = _BlockingStore({"a": b"A", "b": b"B"})
    cache = ConfigCache(store)
    store.release.set()
    cache.read("a", TTL)

    store.release.clear()
    store.entered.clear()
    with ThreadPoolExecutor(max_workers=1) as pool:
        pending = pool.submit(cache.read, "b", TTL)
        assert store.entered.wait(timeout=5)

        assert cache.read("a", TTL) == b"A"

        store.release.set()
        assert pending.result(timeout=5) == b"B"
