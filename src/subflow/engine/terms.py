"""
Term model for substitution templates.

A template is an ordinary nested Python value. Most of it is plain data
(dicts, lists, tuples, scalars); the parts that make it a template are:

- Ref: a symbolic placeholder resolved against an environment
- RMV: the removal sentinel, dropped from its containing collection
- DEFAULTS_KEY: reserved mapping key holding a nested defaults scope
- DependencyFn: a function value with declared dependencies (see dependency.py)

Example:
    template = {
        "title": Ref("Title"),
        "axis": {"label": Ref("XLabel")},
        DEFAULTS_KEY: {"Title": "My Plot", "XLabel": RMV},
    }
"""

from __future__ import annotations

from typing import Any

DEFAULTS_KEY = "::defaults"


class Ref(str):
    """
    Symbolic reference to a binding in the environment.

    Ref is a str subclass so that environments can be keyed by plain strings:
    Ref("x") == "x" and both hash the same. Only Ref instances (or strings
    matching a configured naming prefix) are looked up during resolution;
    plain strings in a template are ordinary data.
    """

    __slots__ = ()

    @property
    def name(self) -> str:
        return str.__str__(self)

    def __repr__(self) -> str:
        return f"Ref({str.__repr__(self)})"

    def __reduce__(self) -> tuple[Any, ...]:
        return (Ref, (str(self),))


def ref(name: str) -> Ref:
    """Shorthand for Ref(name)."""
    if not isinstance(name, str) or not name:
        raise ValueError(f"Reference name must be a non-empty string, got {name!r}")
    return name if isinstance(name, Ref) else Ref(name)


class _RemoveType:
    """Type of the RMV singleton."""

    _instance: _RemoveType | None = None

    def __new__(cls) -> _RemoveType:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "RMV"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> _RemoveType:
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> _RemoveType:
        return self

    def __reduce__(self) -> str:
        return "RMV"


RMV = _RemoveType()


def is_removed(value: Any) -> bool:
    """Check whether value is the removal sentinel."""
    return value is RMV
