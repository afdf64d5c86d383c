"""Context-local cache binding for substitution resolution.

Uses Python's contextvars module so that a cache opened by clean_cache()
is visible to every resolve() call made inside the block, without passing
it explicitly, while staying isolated per thread and per asyncio task.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from .cache import ResolutionCache

# Active resolution cache
#
# Set by: clean_cache()
# Read by: SubstitutionResolver.resolve() when no explicit cache is passed
active_cache: ContextVar[ResolutionCache | None] = ContextVar("active_cache", default=None)


@contextmanager
def clean_cache() -> Iterator[ResolutionCache]:
    """
    Bind a fresh ResolutionCache for the duration of the block.

    All resolve() calls inside the block share the cache; it is closed and
    unbound on exit, even if the block raises.

    Example:
        with clean_cache() as cache:
            resolve({"y": Ref("Y")}, env)
            resolve({"z": Ref("Y")}, env)   # Y not recomputed
    """
    cache = ResolutionCache()
    token = active_cache.set(cache)
    try:
        yield cache
    finally:
        active_cache.reset(token)
        cache.close()
