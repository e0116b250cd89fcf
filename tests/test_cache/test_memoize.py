"""Tests for run_cached and the cached decorator."""

from __future__ import annotations

import functools

import pytest

from pkgcache.cache import CacheStore, MemoryBoard, cached, run_cached
from pkgcache.exceptions import InvalidArgumentError
from pkgcache.fingerprint import call_to_hash, describe_call
from pkgcache.models import CacheConfig


class Counter:
    """Callable that records how often it ran."""

    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, x, y=1):
        self.calls += 1
        return x + y


def add(x, y=1):
    return x + y


class TestRunCached:
    def test_second_call_is_served_from_cache(self, memory_store: CacheStore) -> None:
        ns = memory_store.ensure("mypkg")
        counter = Counter()

        assert run_cached(ns, counter, 2, y=3) == 5
        assert run_cached(ns, counter, 2, y=3) == 5
        assert counter.calls == 1

    def test_different_arguments_are_separate_entries(self, memory_store: CacheStore) -> None:
        ns = memory_store.ensure("mypkg")
        counter = Counter()

        run_cached(ns, counter, 2, y=3)
        run_cached(ns, counter, 2, y=4)
        assert counter.calls == 2

    def test_use_cache_false_recomputes_and_stores(self, memory_store: CacheStore) -> None:
        ns = memory_store.ensure("mypkg")
        counter = Counter()

        run_cached(ns, counter, 1)
        run_cached(ns, counter, 1, use_cache=False)
        assert counter.calls == 2
        run_cached(ns, counter, 1)
        assert counter.calls == 2

    def test_stale_result_is_recomputed(self, memory_store: CacheStore, clock) -> None:
        ns = memory_store.ensure("mypkg")
        counter = Counter()

        run_cached(ns, counter, 1, cache_lifespan="1 hour")
        clock.advance(hours=2)
        run_cached(ns, counter, 1, cache_lifespan="1 hour")
        assert counter.calls == 2

    def test_key_is_the_call_fingerprint(self, memory_store: CacheStore) -> None:
        ns = memory_store.ensure("mypkg")
        run_cached(ns, add, 2, y=5)
        expected = call_to_hash(describe_call(add, 2, y=5))
        assert [e.key for e in ns.list()] == [expected]
        assert expected.startswith(f"{__name__}-add-")

    def test_explicit_key(self, memory_store: CacheStore) -> None:
        ns = memory_store.ensure("mypkg")
        assert run_cached(ns, add, 1, key="one-plus-one") == 2
        assert ns.get("one-plus-one") == 2

    def test_partials_keep_their_bound_arguments(self, memory_store: CacheStore) -> None:
        ns = memory_store.ensure("mypkg")
        assert run_cached(ns, functools.partial(add, 1)) == 2
        assert run_cached(ns, functools.partial(add, 10)) == 11

    def test_lambda_needs_explicit_key(self, memory_store: CacheStore) -> None:
        ns = memory_store.ensure("mypkg")
        with pytest.raises(InvalidArgumentError):
            run_cached(ns, lambda: 1)
        assert run_cached(ns, lambda: 1, key="one") == 1
        assert run_cached(ns, lambda: 2, key="two") == 2

    def test_namespace_run_shortcut(self, memory_store: CacheStore) -> None:
        ns = memory_store.ensure("mypkg")
        counter = Counter()
        ns.run(counter, 3)
        ns.run(counter, 3)
        assert counter.calls == 1


class TestCachedDecorator:
    def test_decorated_function_is_cached(self, memory_store: CacheStore) -> None:
        ns = memory_store.ensure("mypkg")
        calls = []

        @cached(ns)
        def slow_square(x):
            calls.append(x)
            return x * x

        assert slow_square(4) == 16
        assert slow_square(4) == 16
        assert calls == [4]
        assert slow_square.__name__ == "slow_square"
        assert slow_square.cache_namespace is ns

    def test_control_arguments_do_not_reach_function(self, memory_store: CacheStore) -> None:
        ns = memory_store.ensure("mypkg")

        @cached(ns)
        def echo(**kwargs):
            return sorted(kwargs)

        assert echo(a=1, use_cache=False, cache_lifespan="1 hour") == ["a"]

    def test_control_arguments_do_not_change_key(self, memory_store: CacheStore) -> None:
        ns = memory_store.ensure("mypkg")
        calls = []

        @cached(ns)
        def f(a, b):
            calls.append((a, b))
            return a + b

        f(1, 2, use_cache=True)
        f(1, 2, cache_lifespan="2 days")
        assert calls == [(1, 2)]
        assert len(ns.list()) == 1

    def test_lifespan_default_and_override(self, memory_store: CacheStore, clock) -> None:
        ns = memory_store.ensure("mypkg")
        calls = []

        @ns.cached(lifespan="1 hour")
        def f(x):
            calls.append(x)
            return x

        f(1)
        clock.advance(minutes=90)
        f(1, cache_lifespan="2 hours")
        assert len(calls) == 1
        f(1)
        assert len(calls) == 2

    def test_function_parameter_named_key(self, memory_store: CacheStore) -> None:
        ns = memory_store.ensure("mypkg")

        @cached(ns)
        def lookup(key):
            return key.upper()

        assert lookup("abc") == "ABC"
        assert lookup(key="abc") == "ABC"

    def test_configured_exclusions(self, clock) -> None:
        store = CacheStore(
            backend=MemoryBoard(),
            config=CacheConfig(exclude_args=["verbose"]),
            clock=clock,
        )
        ns = store.ensure("mypkg")
        calls = []

        @ns.cached()
        def report(x, verbose=False):
            calls.append(x)
            return x

        report(1, verbose=True)
        report(1, verbose=False)
        assert calls == [1]
        store.close()

    def test_reserved_parameter_names_are_rejected(self, memory_store: CacheStore) -> None:
        ns = memory_store.ensure("mypkg")

        def fetch(x, use_cache=True):
            return x

        def fetch_for(x, *, cache_lifespan=None):
            return x

        with pytest.raises(InvalidArgumentError, match="use_cache"):
            cached(ns)(fetch)
        with pytest.raises(InvalidArgumentError, match="cache_lifespan"):
            cached(ns)(fetch_for)

    def test_var_keyword_function_is_accepted(self, memory_store: CacheStore) -> None:
        ns = memory_store.ensure("mypkg")

        @cached(ns)
        def fetch(x, **options):
            return x

        assert fetch(1) == 1
