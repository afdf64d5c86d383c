"""Shared test configuration for subflow tests.

Provides:
- A default resolver and a cache that is closed after each test
- A call counter for asserting how often functions run
- Isolation from user-level configuration (SUBFLOW_* variables, ~/.subflow)
"""

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest

from subflow import ResolutionCache, SubstitutionResolver


class CallCounter:
    """Records every call made through wrap()."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def wrap(self, name: str, fn: Any) -> Any:
        def counted(*args: Any) -> Any:
            self.calls.append(name)
            return fn(*args)

        counted.__name__ = name
        counted.__doc__ = fn.__doc__
        return counted

    def count(self, name: str) -> int:
        return self.calls.count(name)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep tests independent of the developer's SUBFLOW_* settings and home directory."""
    for var in ("SUBFLOW_CONFIG", "SUBFLOW_MAX_DEPTH", "SUBFLOW_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


@pytest.fixture
def resolver() -> SubstitutionResolver:
    return SubstitutionResolver()


@pytest.fixture
def cache() -> Iterator[ResolutionCache]:
    with ResolutionCache() as c:
        yield c


@pytest.fixture
def counter() -> CallCounter:
    return CallCounter()
