"""
Lazy environment view handed to plain callables.

A plain function bound in the environment receives an EnvironmentProxy
instead of the raw bindings. Every access goes through the resolver and
the per-call cache, so the function always sees resolved values and a
binding that is never accessed is never computed.

Example:
    def greeting(env):
        return f"Hello, {env['Name']}!"      # or env.Name
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..cache import ResolutionCache
    from ..environment import Environment
    from .resolver import SubstitutionResolver


class EnvironmentProxy(Mapping[str, Any]):
    """
    Read-only mapping that resolves bindings on access.

    Access rules:
    - proxy["Name"]: resolved value, KeyError if no scope binds Name
    - proxy.get("Name", default): resolved value or default
    - proxy.Name: resolved value, None if unbound
    """

    def __init__(
        self,
        resolver: SubstitutionResolver,
        env: Environment,
        cache: ResolutionCache,
    ):
        object.__setattr__(self, "_resolver", resolver)
        object.__setattr__(self, "_env", env)
        object.__setattr__(self, "_cache", cache)

    def __getitem__(self, name: str) -> Any:
        env = object.__getattribute__(self, "_env")
        if not isinstance(name, str) or not env.binds(name):
            raise KeyError(name)
        resolver = object.__getattribute__(self, "_resolver")
        cache = object.__getattribute__(self, "_cache")
        return resolver.cached_resolve(name, env, cache)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__"):
            raise AttributeError(name)
        try:
            return self[name]
        except KeyError:
            return None

    def __contains__(self, name: object) -> bool:
        env = object.__getattribute__(self, "_env")
        return isinstance(name, str) and env.binds(name)

    def __iter__(self) -> Iterator[str]:
        env = object.__getattribute__(self, "_env")
        return iter(env)

    def __len__(self) -> int:
        env = object.__getattribute__(self, "_env")
        return len(env)

    def __setattr__(self, name: str, value: Any) -> None:
        """Prevent attribute modification"""
        raise AttributeError("EnvironmentProxy is read-only")

    def __delattr__(self, name: str) -> None:
        """Prevent attribute deletion"""
        raise AttributeError("EnvironmentProxy is read-only")

    def __repr__(self) -> str:
        env = object.__getattribute__(self, "_env")
        return f"EnvironmentProxy({env!r})"


def as_mapping(value: Any) -> Mapping[str, Any] | None:
    """Return value if it is usable as a scope of bindings, else None."""
    if isinstance(value, Mapping):
        return value
    return None
