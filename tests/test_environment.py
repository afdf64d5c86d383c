"""Tests for scoped environments and their content fingerprints."""

import gc
import weakref

import pytest

from subflow import Environment, Ref
from subflow.engine.environment import LARGE_COLLECTION, freeze


class TestScoping:
    def test_lookup_outermost(self) -> None:
        env = Environment({"X": 1})
        assert env["X"] == 1
        assert env.lookup("missing", None) is None

    def test_missing_name_raises_key_error(self) -> None:
        with pytest.raises(KeyError):
            Environment({"X": 1}).lookup("Y")

    def test_child_shadows_parent(self) -> None:
        outer = Environment({"X": 1, "Y": "y"})
        inner = outer.child({"X": 2})

        assert outer["X"] == 1
        assert inner["X"] == 2
        assert inner["Y"] == "y"
        assert inner.depth == 2

    def test_child_with_empty_defaults_is_same_environment(self) -> None:
        env = Environment({"X": 1})
        assert env.child({}) is env

    def test_overrides_win_over_every_scope(self) -> None:
        env = Environment({"X": 1}, overrides={"X": "user"})
        inner = env.child({"X": 2}).child({"X": 3})
        assert inner["X"] == "user"

    def test_with_overrides_merges(self) -> None:
        env = Environment({"X": 1}, overrides={"A": 1}).with_overrides({"B": 2})
        assert env.overrides == {"A": 1, "B": 2}

    def test_coerce_reuses_environment(self) -> None:
        env = Environment({"X": 1})
        assert Environment.coerce(env) is env
        assert Environment.coerce({"X": 1}) == env
        assert Environment.coerce(None) == Environment()

    def test_mapping_protocol(self) -> None:
        env = Environment({"X": 1}).child({"Y": 2})
        assert dict(env) == {"X": 1, "Y": 2}
        assert len(env) == 2
        assert "Y" in env
        assert 1 not in env

    def test_ref_lookup(self) -> None:
        env = Environment({"X": 1})
        assert env[Ref("X")] == 1
        assert env.binds(Ref("X"))


class TestFingerprint:
    def test_equal_content_equal_fingerprint(self) -> None:
        assert Environment({"K": 1}).fingerprint() == Environment({"K": 1}).fingerprint()

    def test_different_values_differ(self) -> None:
        assert Environment({"K": 1}) != Environment({"K": 2})

    def test_bool_and_int_distinct(self) -> None:
        assert Environment({"K": True}) != Environment({"K": 1})

    def test_ref_and_string_binding_distinct(self) -> None:
        assert Environment({"K": Ref("A")}) != Environment({"K": "A"})

    def test_collections_compared_structurally(self) -> None:
        a = Environment({"K": {"x": [1, 2]}})
        b = Environment({"K": {"x": [1, 2]}})
        assert a == b
        assert hash(a) == hash(b)

    def test_list_and_tuple_distinct(self) -> None:
        assert Environment({"K": [1]}) != Environment({"K": (1,)})

    def test_functions_compared_by_identity(self) -> None:
        def f(env):
            return 1

        def g(env):
            return 1

        assert Environment({"K": f}) == Environment({"K": f})
        assert Environment({"K": f}) != Environment({"K": g})

    def test_unhashable_values_supported(self) -> None:
        class Blob:
            __hash__ = None  # type: ignore[assignment]

        blob = Blob()
        assert Environment({"K": blob}) == Environment({"K": blob})

    def test_large_collections_compared_by_identity(self) -> None:
        column = list(range(LARGE_COLLECTION + 1))
        assert Environment({"K": column}) == Environment({"K": column})
        assert Environment({"K": column}) != Environment({"K": list(column)})

    def test_identity_key_keeps_value_alive(self) -> None:
        def make():
            return lambda env: 1

        fn = make()
        alive = weakref.ref(fn)
        key = freeze(fn)
        del fn
        gc.collect()

        assert alive() is not None
        del key
        gc.collect()
        assert alive() is None

    def test_fingerprint_uses_effective_bindings(self) -> None:
        nested = Environment({"K": 1}).child({"K": 2})
        flat = Environment({"K": 2})
        assert nested == flat

    def test_snapshot_is_printable(self) -> None:
        snapshot = Environment({"K": "x" * 200, "N": 1}).snapshot()
        assert snapshot["N"] == "1"
        assert snapshot["K"].endswith("...")
        assert len(snapshot["K"]) == 80
