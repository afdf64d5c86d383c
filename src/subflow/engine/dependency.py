"""
Dependency-aware function values.

A DependencyFn pairs a callable with the explicit, ordered list of reference
names it needs. The resolver resolves exactly those names (through the cache)
before invoking the callable, which receives the resolved values positionally
in declaration order. The raw environment is never passed in.

Because the dependency list is data, callers can ask a function what it needs
without running it:

    @with_deps("Area")
    def radius(area):
        "Compute radius from area"
        return math.sqrt(area / math.pi)

    radius.deps   # (Ref('Area'),)
    radius.doc    # 'Compute radius from area'
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .terms import Ref


def _normalize_deps(deps: Iterable[str]) -> tuple[Ref, ...]:
    if isinstance(deps, str):
        # A bare string would silently become one dependency per character
        raise TypeError(
            f"Dependencies must be a sequence of names, not a single string {deps!r}. "
            f"Use [{deps!r}] instead."
        )
    normalized: list[Ref] = []
    for name in deps:
        if not isinstance(name, str):
            raise TypeError(f"Dependency name must be a string, got {type(name).__name__}")
        if not name:
            raise ValueError("Dependency name must not be empty")
        normalized.append(name if isinstance(name, Ref) else Ref(name))
    return tuple(normalized)


@dataclass(frozen=True, eq=False)
class DependencyFn:
    """
    A function value carrying its own dependency declaration.

    Attributes:
        fn: Callable invoked with the resolved dependency values, in order
        deps: Reference names the function needs
        doc: Human-readable documentation (defaults to fn's docstring)
        name: Display name (defaults to fn's __name__)
    """

    fn: Callable[..., Any]
    deps: tuple[Ref, ...]
    doc: str | None = None
    name: str = field(default="")

    def __post_init__(self) -> None:
        if not callable(self.fn):
            raise TypeError(f"DependencyFn requires a callable, got {type(self.fn).__name__}")
        object.__setattr__(self, "deps", _normalize_deps(self.deps))
        if self.doc is None:
            doc = getattr(self.fn, "__doc__", None)
            object.__setattr__(self, "doc", doc.strip() if doc else None)
        if not self.name:
            object.__setattr__(self, "name", getattr(self.fn, "__name__", "<anonymous>"))

    def __call__(self, *args: Any) -> Any:
        return self.fn(*args)

    def invoke(self, values: Mapping[str, Any]) -> Any:
        """
        Invoke the function with already-resolved dependency values.

        Args:
            values: Mapping from dependency name to resolved value

        Returns:
            Whatever the wrapped function returns (resolved further by the caller)
        """
        return self.fn(*(values[dep] for dep in self.deps))

    def describe(self) -> dict[str, Any]:
        """Introspection record: name, dependency names and documentation."""
        return {
            "name": self.name,
            "deps": [dep.name for dep in self.deps],
            "doc": self.doc,
        }

    def __repr__(self) -> str:
        deps = ", ".join(dep.name for dep in self.deps)
        return f"DependencyFn({self.name}, deps=[{deps}])"


def with_deps(*deps: str, doc: str | None = None) -> Callable[[Callable[..., Any]], DependencyFn]:
    """
    Decorator turning a function into a DependencyFn.

    Example:
        @with_deps("DbHost", "DbPort", "DbName")
        def db_url(host, port, name):
            return f"postgresql://{host}:{port}/{name}"
    """

    def decorator(fn: Callable[..., Any]) -> DependencyFn:
        return DependencyFn(fn=fn, deps=deps, doc=doc)

    return decorator


def fn_with_deps(doc: str | None, deps: Iterable[str], fn: Callable[..., Any]) -> DependencyFn:
    """Build a DependencyFn inline, typically from a lambda."""
    return DependencyFn(fn=fn, deps=tuple(_normalize_deps(deps)), doc=doc)


def dependencies_of(value: Any) -> tuple[Ref, ...] | None:
    """Declared dependencies of value, or None if it is not a DependencyFn."""
    if isinstance(value, DependencyFn):
        return value.deps
    return None
