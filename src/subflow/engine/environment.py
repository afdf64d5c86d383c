"""
Scoped environments for reference resolution.

An Environment is an immutable chain of binding scopes plus a user-override
channel. Lookups consult, in order:

    overrides  ->  innermost scope  ->  ...  ->  outermost scope

Entering a mapping that carries nested defaults creates a child environment
with one more innermost scope; the parent is left untouched, so the new
bindings are invisible outside that subtree. Overrides always stay innermost.

Environments compare by content through fingerprint(), which is what the
resolution cache keys on.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterator, Mapping
from typing import Any

_MISSING = object()

# Containers with more elements than this are keyed by identity, not content
LARGE_COLLECTION = 1000


class _Identity:
    """Identity key that holds a strong reference to its value."""

    __slots__ = ("value",)

    def __init__(self, value: Any):
        self.value = value

    def __eq__(self, other: object) -> bool:
        return isinstance(other, _Identity) and other.value is self.value

    def __hash__(self) -> int:
        return id(self.value)

    def __repr__(self) -> str:
        return f"_Identity({type(self.value).__name__} at {id(self.value):#x})"


def freeze(value: Any) -> Hashable:
    """
    Build a hashable content key for a binding value.

    - Hashable scalars are keyed by (type, value), so True and 1 stay distinct
    - dict/list/tuple are keyed structurally, up to LARGE_COLLECTION elements
    - Everything else (functions, datasets, unhashable objects, large
      containers) by identity

    Identity keys keep their object alive for as long as the key exists, so an
    id can never be reused by another object while a cache still holds it.
    """
    if isinstance(value, (str, int, float, bool, bytes, type(None))):
        return (type(value), value)
    if isinstance(value, (dict, list)) or type(value) is tuple:
        if len(value) > LARGE_COLLECTION:
            return _Identity(value)
        if isinstance(value, dict):
            return (dict, frozenset((key, freeze(item)) for key, item in value.items()))
        return (type(value), tuple(freeze(item) for item in value))
    return _Identity(value)


class Environment(Mapping[str, Any]):
    """
    Immutable, scoped key -> value bindings.

    Example:
        env = Environment({"X": 1}, overrides={"Y": 3})
        inner = env.child({"X": 2})
        env["X"], inner["X"]   # (1, 2)
    """

    __slots__ = ("_scopes", "_overrides", "_fingerprint")

    def __init__(
        self,
        bindings: Mapping[str, Any] | None = None,
        *,
        overrides: Mapping[str, Any] | None = None,
    ):
        """
        Initialize environment.

        Args:
            bindings: Outermost scope (builder defaults, caller bindings)
            overrides: User override channel, consulted before any scope
        """
        self._scopes: tuple[Mapping[str, Any], ...] = (dict(bindings),) if bindings else ()
        self._overrides: Mapping[str, Any] = dict(overrides) if overrides else {}
        self._fingerprint: Hashable | None = None

    @classmethod
    def _from_parts(
        cls,
        scopes: tuple[Mapping[str, Any], ...],
        overrides: Mapping[str, Any],
    ) -> Environment:
        env = cls.__new__(cls)
        env._scopes = scopes
        env._overrides = overrides
        env._fingerprint = None
        return env

    @classmethod
    def coerce(
        cls,
        env: Mapping[str, Any] | None,
        overrides: Mapping[str, Any] | None = None,
    ) -> Environment:
        """
        Build an Environment from whatever the caller passed.

        An existing Environment is reused (with extra overrides merged on top).
        """
        if isinstance(env, Environment):
            if not overrides:
                return env
            return cls._from_parts(env._scopes, {**env._overrides, **overrides})
        return cls(env, overrides=overrides)

    # ------------------------------------------------------------------
    # Scoping
    # ------------------------------------------------------------------

    def child(self, defaults: Mapping[str, Any]) -> Environment:
        """Return a new environment with defaults as the innermost scope."""
        if not defaults:
            return self
        return self._from_parts(self._scopes + (dict(defaults),), self._overrides)

    def with_overrides(self, overrides: Mapping[str, Any]) -> Environment:
        """Return a new environment with extra user overrides."""
        return self.coerce(self, overrides)

    @property
    def depth(self) -> int:
        """Number of binding scopes (overrides not counted)."""
        return len(self._scopes)

    @property
    def overrides(self) -> Mapping[str, Any]:
        return dict(self._overrides)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(self, name: str, default: Any = _MISSING) -> Any:
        """
        Find the binding for name, innermost first.

        Returns default (or raises KeyError when no default is given) if no
        scope binds the name.
        """
        if name in self._overrides:
            return self._overrides[name]
        for scope in reversed(self._scopes):
            if name in scope:
                return scope[name]
        if default is _MISSING:
            raise KeyError(name)
        return default

    def binds(self, name: str) -> bool:
        return name in self._overrides or any(name in scope for scope in self._scopes)

    def __getitem__(self, name: str) -> Any:
        return self.lookup(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.binds(name)

    def __iter__(self) -> Iterator[str]:
        return iter(self.flatten())

    def __len__(self) -> int:
        return len(self.flatten())

    def flatten(self) -> dict[str, Any]:
        """Merged view of all scopes, innermost winning."""
        merged: dict[str, Any] = {}
        for scope in self._scopes:
            merged.update(scope)
        merged.update(self._overrides)
        return merged

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def fingerprint(self) -> Hashable:
        """
        Content-based identity of the effective bindings.

        Two environments built separately but binding the same names to equal
        values share a fingerprint; the same name bound differently does not.
        """
        if self._fingerprint is None:
            self._fingerprint = frozenset(
                (key, freeze(value)) for key, value in self.flatten().items()
            )
        return self._fingerprint

    def snapshot(self) -> dict[str, str]:
        """Printable copy of the effective bindings, for error reports."""
        return {str(key): _short_repr(value) for key, value in self.flatten().items()}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Environment):
            return NotImplemented
        return self.fingerprint() == other.fingerprint()

    def __hash__(self) -> int:
        return hash(self.fingerprint())

    def __repr__(self) -> str:
        names = ", ".join(sorted(str(key) for key in self.flatten()))
        return f"Environment(scopes={len(self._scopes)}, names=[{names}])"


def _short_repr(value: Any, limit: int = 80) -> str:
    text = repr(value)
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text
