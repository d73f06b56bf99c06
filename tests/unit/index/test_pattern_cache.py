from __future__ import annotations

import threading

import pytest

from repo_index.index.matcher import PatternCache, compile_filters
from repo_index.index.models import FilterOptions


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_equivalent_pattern_sets_share_one_compiled_matcher() -> None:
    cache = PatternCache()

    first = compile_filters(FilterOptions(include=("src/**", "lib/**")), cache)
    second = compile_filters(FilterOptions(include=(" lib/**", "src/**", "src/**")), cache)

    assert first is second
    stats = cache.stats()
    assert (stats.hits, stats.misses, stats.size) == (1, 1, 1)
    assert stats.hit_rate == 0.5


def test_include_and_exclude_are_keyed_separately() -> None:
    cache = PatternCache()

    included = compile_filters(FilterOptions(include=("src/**",)), cache)
    excluded = compile_filters(FilterOptions(exclude=("src/**",)), cache)

    assert included is not excluded
    assert len(cache) == 2


def test_least_recently_used_entry_is_evicted() -> None:
    cache = PatternCache(max_size=2)
    calls: list[str] = []

    def compile_as(name: str):
        def factory() -> str:
            calls.append(name)
            return name

        return factory

    cache.get_or_compile(("a",), compile_as("a"))
    cache.get_or_compile(("b",), compile_as("b"))
    cache.get_or_compile(("a",), compile_as("a"))
    cache.get_or_compile(("c",), compile_as("c"))
    cache.get_or_compile(("a",), compile_as("a"))
    cache.get_or_compile(("b",), compile_as("b"))

    assert calls == ["a", "b", "c", "b"]
    assert len(cache) == 2


def test_entries_expire_after_ttl() -> None:
    clock = _Clock()
    cache = PatternCache(max_size=10, ttl_seconds=5, clock=clock)
    calls: list[int] = []

    def factory() -> int:
        calls.append(1)
        return len(calls)

    assert cache.get_or_compile(("k",), factory) == 1
    clock.now = 4.9
    assert cache.get_or_compile(("k",), factory) == 1
    clock.now = 5.0
    assert cache.get_or_compile(("k",), factory) == 2


def test_cleanup_and_clear() -> None:
    clock = _Clock()
    cache = PatternCache(max_size=10, ttl_seconds=5, clock=clock)
    cache.get_or_compile(("old",), lambda: "old")
    clock.now = 3.0
    cache.get_or_compile(("new",), lambda: "new")
    clock.now = 6.0

    assert cache.cleanup() == 1
    assert len(cache) == 1

    cache.clear()
    stats = cache.stats()
    assert (stats.hits, stats.misses, stats.size) == (0, 0, 0)
    assert stats.hit_rate == 0.0


def test_invalid_cache_sizes_are_rejected() -> None:
    with pytest.raises(ValueError):
        PatternCache(max_size=0)
    with pytest.raises(ValueError):
        PatternCache(ttl_seconds=0)


def test_concurrent_misses_on_one_key_all_succeed() -> None:
    cache = PatternCache()
    workers = 8
    start = threading.Barrier(workers)
    compiling = threading.Barrier(workers, timeout=5)
    results: list[object] = []
    errors: list[BaseException] = []

    def factory() -> tuple[str, ...]:
        compiling.wait()
        return ("src/**", "lib/**")

    def worker() -> None:
        try:
            start.wait(timeout=5)
            results.append(cache.get_or_compile(("include", "src/**"), factory))
        except BaseException as exc:
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert errors == []
    assert results == [("src/**", "lib/**")] * workers
    assert len(cache) == 1
    stats = cache.stats()
    assert (stats.hits, stats.misses, stats.size) == (0, workers, 1)
    assert cache.get_or_compile(("include", "src/**"), factory) == ("src/**", "lib/**")
    assert cache.stats().hits == 1
