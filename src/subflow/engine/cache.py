"""
Per-call memoization of reference resolution.

ResolutionCache stores the resolved value of each (reference name,
environment fingerprint) pair. Keying on the pair, not on the name alone,
keeps two environments that bind the same name differently from sharing a
result.

A cache belongs to exactly one top-level resolution. Use it as a context
manager (or let resolve() create one) so that it is closed afterwards;
a closed cache refuses further use instead of serving stale values.

Cached collections are handed out as fresh copies of their dict/list/tuple
structure, so a caller mutating one place in the output never changes
another place that referenced the same name. Leaf objects are shared.

Example:
    with ResolutionCache() as cache:
        a = resolver.cached_resolve("A", env, cache)
        b = resolver.cached_resolve("A", env, cache)   # hit, no recomputation
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Any

from .environment import Environment
from .exceptions import CyclicDependencyError

logger = logging.getLogger(__name__)

CacheKey = tuple[str, Hashable]


def detach(value: Any) -> Any:
    """Copy the plain dict/list/tuple structure of value; other objects are shared."""
    if type(value) is dict:
        return {key: detach(item) for key, item in value.items()}
    if type(value) is list:
        return [detach(item) for item in value]
    if type(value) is tuple:
        return tuple(detach(item) for item in value)
    return value


@dataclass(frozen=True)
class CacheEntry:
    """One memoized resolution."""

    name: str
    environment_key: Hashable
    value: Any


class ResolutionCache:
    """Memo table keyed by (reference name, environment fingerprint)."""

    def __init__(self) -> None:
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._pending: list[CacheKey] = []
        self._closed = False
        self.hits = 0
        self.misses = 0

    @staticmethod
    def key_for(name: str, env: Environment) -> CacheKey:
        return (str(name), env.fingerprint())

    def get_or_compute(
        self,
        name: str,
        env: Environment,
        compute: Callable[[], Any],
        *,
        detect_cycles: bool = True,
        max_depth: int | None = None,
    ) -> Any:
        """
        Return the cached value for (name, env), computing it on a miss.

        Args:
            name: Reference name being resolved
            env: Environment it is resolved under
            compute: Zero-argument callable producing the value on a miss
            detect_cycles: Raise if the pair is already being computed
            max_depth: Maximum number of nested in-flight computations

        Returns:
            The resolved value

        Raises:
            CyclicDependencyError: On re-entry or when max_depth is exceeded
            RuntimeError: If the cache has been closed
        """
        if self._closed:
            raise RuntimeError(
                "ResolutionCache used after its resolution scope ended. "
                "Create a new cache for each top-level resolution."
            )

        key = self.key_for(name, env)
        entry = self._entries.get(key)
        if entry is not None:
            self.hits += 1
            logger.debug("Cache hit: %s", name)
            return detach(entry.value)

        if detect_cycles and key in self._pending:
            start = self._pending.index(key)
            raise CyclicDependencyError(key=key[0], chain=self.chain[start:])

        if max_depth is not None and len(self._pending) >= max_depth:
            raise CyclicDependencyError(key=key[0], chain=self.chain, max_depth=max_depth)

        self.misses += 1
        logger.debug("Cache miss: %s (depth %d)", name, len(self._pending))
        self._pending.append(key)
        try:
            value = compute()
        finally:
            self._pending.pop()

        self._entries[key] = CacheEntry(name=key[0], environment_key=key[1], value=detach(value))
        return value

    @property
    def chain(self) -> list[str]:
        """Names currently being computed, outermost first."""
        return [name for name, _ in self._pending]

    def entries(self) -> list[CacheEntry]:
        return list(self._entries.values())

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def closed(self) -> bool:
        return self._closed

    def clear(self) -> None:
        self._entries.clear()
        self._pending.clear()
        self.hits = 0
        self.misses = 0

    def close(self) -> None:
        """Discard all entries and refuse further use."""
        logger.debug(
            "Closing resolution cache: %d entries, %d hits, %d misses",
            len(self._entries),
            self.hits,
            self.misses,
        )
        self._entries.clear()
        self._pending.clear()
        self._closed = True

    def __enter__(self) -> ResolutionCache:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"ResolutionCache({state}, entries={len(self._entries)})"
