"""Tests for ResolutionCache and the clean_cache() scope."""

import gc
import weakref

import pytest

from subflow import (
    CyclicDependencyError,
    Environment,
    Ref,
    ResolutionCache,
    clean_cache,
    resolve,
    with_deps,
)
from subflow.engine.context_vars import active_cache

# -----------------------------------------------------------------------
# Memoization
# -----------------------------------------------------------------------


class TestGetOrCompute:
    def test_miss_then_hit(self, cache: ResolutionCache) -> None:
        env = Environment({"K": 1})
        calls = []

        def compute() -> int:
            calls.append(1)
            return 42

        assert cache.get_or_compute("K", env, compute) == 42
        assert cache.get_or_compute("K", env, compute) == 42
        assert len(calls) == 1
        assert (cache.hits, cache.misses) == (1, 1)
        assert len(cache) == 1

    def test_key_is_name_and_environment(self, cache: ResolutionCache) -> None:
        env1 = Environment({"K": 1})
        env2 = Environment({"K": 2})

        assert cache.get_or_compute("K", env1, lambda: "one") == "one"
        assert cache.get_or_compute("K", env2, lambda: "two") == "two"
        assert len(cache) == 2

    def test_equal_environments_share_entries(self, cache: ResolutionCache) -> None:
        cache.get_or_compute("K", Environment({"K": 1}), lambda: "first")
        assert cache.get_or_compute("K", Environment({"K": 1}), lambda: "second") == "first"

    def test_none_is_cached(self, cache: ResolutionCache) -> None:
        env = Environment()
        calls = []
        for _ in range(2):
            cache.get_or_compute("K", env, lambda: calls.append(1))
        assert len(calls) == 1

    def test_failed_compute_is_not_cached(self, cache: ResolutionCache) -> None:
        env = Environment()

        def boom() -> None:
            raise ValueError("boom")

        with pytest.raises(ValueError):
            cache.get_or_compute("K", env, boom)
        assert len(cache) == 0
        assert cache.chain == []

    def test_hits_return_detached_copies(self, cache: ResolutionCache) -> None:
        env = Environment()
        first = cache.get_or_compute("K", env, lambda: {"x": [1], "t": ({"y": 2},)})
        first["x"].append(99)

        second = cache.get_or_compute("K", env, lambda: None)
        third = cache.get_or_compute("K", env, lambda: None)
        assert second == {"x": [1], "t": ({"y": 2},)}
        second["t"][0]["y"] = 3
        assert third["t"][0]["y"] == 2

    def test_leaf_objects_shared_between_hits(self, cache: ResolutionCache) -> None:
        class Frame(dict):
            pass

        frame = Frame(a=1)
        env = Environment()
        cache.get_or_compute("K", env, lambda: {"data": frame})
        assert cache.get_or_compute("K", env, lambda: None)["data"] is frame

    def test_entries_keep_identity_bindings_alive(self, cache: ResolutionCache) -> None:
        def make():
            return lambda env: 1

        fn = make()
        alive = weakref.ref(fn)
        cache.get_or_compute("K", Environment({"K": fn}), lambda: 1)
        del fn
        gc.collect()
        assert alive() is not None

        cache.close()
        gc.collect()
        assert alive() is None

    def test_entries_expose_key_parts(self, cache: ResolutionCache) -> None:
        env = Environment({"K": 1})
        cache.get_or_compute(Ref("K"), env, lambda: 1)
        (entry,) = cache.entries()
        assert entry.name == "K"
        assert type(entry.name) is str
        assert entry.environment_key == env.fingerprint()
        assert cache.key_for("K", env) in cache


# -----------------------------------------------------------------------
# Cycle and depth guards
# -----------------------------------------------------------------------


class TestGuards:
    def test_reentry_raises_with_chain(self, cache: ResolutionCache) -> None:
        env = Environment()

        def a() -> object:
            return cache.get_or_compute("B", env, b)

        def b() -> object:
            return cache.get_or_compute("A", env, a)

        with pytest.raises(CyclicDependencyError) as exc_info:
            cache.get_or_compute("A", env, a)

        assert exc_info.value.chain == ["A", "B"]
        assert exc_info.value.key == "A"
        assert "A → B → A" in str(exc_info.value)
        assert cache.chain == []

    def test_max_depth(self, cache: ResolutionCache) -> None:
        env = Environment()

        def nest(level: int) -> object:
            return cache.get_or_compute(f"K{level}", env, lambda: nest(level + 1), max_depth=5)

        with pytest.raises(CyclicDependencyError) as exc_info:
            nest(0)

        assert exc_info.value.max_depth == 5
        assert exc_info.value.chain == ["K0", "K1", "K2", "K3", "K4"]
        assert "SUBFLOW_MAX_DEPTH" in str(exc_info.value)


# -----------------------------------------------------------------------
# Scope
# -----------------------------------------------------------------------


class TestCacheScope:
    def test_closed_cache_refuses_use(self) -> None:
        with ResolutionCache() as cache:
            cache.get_or_compute("K", Environment(), lambda: 1)

        assert cache.closed
        assert len(cache) == 0
        with pytest.raises(RuntimeError, match="after its resolution scope ended"):
            cache.get_or_compute("K", Environment(), lambda: 1)

    def test_clear_resets_stats(self, cache: ResolutionCache) -> None:
        cache.get_or_compute("K", Environment(), lambda: 1)
        cache.clear()
        assert (len(cache), cache.hits, cache.misses) == (0, 0, 0)

    def test_repr(self) -> None:
        cache = ResolutionCache()
        assert repr(cache) == "ResolutionCache(open, entries=0)"
        cache.close()
        assert repr(cache) == "ResolutionCache(closed, entries=0)"

    def test_resolve_uses_fresh_cache_per_call(self, counter) -> None:
        template = {"v": Ref("V")}
        env = {"V": with_deps()(counter.wrap("v", lambda: "value"))}

        resolve(template, env)
        resolve(template, env)

        assert counter.count("v") == 2

    def test_clean_cache_shares_across_calls(self, counter) -> None:
        template = {"v": Ref("V")}
        env = {"V": with_deps()(counter.wrap("v", lambda: "value"))}

        with clean_cache() as cache:
            assert active_cache.get() is cache
            resolve(template, env)
            resolve(template, env)

        assert counter.count("v") == 1
        assert cache.closed
        assert active_cache.get() is None

    def test_clean_cache_unbinds_on_error(self) -> None:
        with pytest.raises(ValueError):
            with clean_cache():
                raise ValueError("boom")
        assert active_cache.get() is None

    def test_explicit_cache_survives_call(self, cache: ResolutionCache, counter) -> None:
        env = {"V": with_deps()(counter.wrap("v", lambda: 1))}
        resolve(Ref("V"), env, cache=cache)
        resolve(Ref("V"), env, cache=cache)

        assert not cache.closed
        assert counter.count("v") == 1
