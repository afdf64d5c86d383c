"""AnalysisResult for static dependency analysis.

Graph analysis (ordering, cycle checks) reports problems through this
small error monad instead of raising, so callers can inspect a broken
dependency graph without evaluating anything.

Resolution itself does not use it: resolve() returns values and raises
SubstitutionError subclasses.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class AnalysisStatus(str, Enum):
    """Status of an analysis operation."""

    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class AnalysisResult(Generic[T]):  # noqa: UP046
    """
    Outcome of a static analysis operation.

    Usage:
        order = graph.topological_order()
        if order.is_success:
            for name in order.value:
                ...
        else:
            print(f"Analysis error: {order.error}")
            print(order.metadata.get("cycle"))
    """

    status: AnalysisStatus
    value: T | None = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate state consistency after initialization.

        - SUCCESS results must have a value
        - FAILED results must have an error message
        """
        if self.status == AnalysisStatus.SUCCESS and self.value is None:
            raise ValueError("Success result must have a value")
        if self.status == AnalysisStatus.FAILED and not self.error:
            raise ValueError("Failed result must have an error message")

    @property
    def is_success(self) -> bool:
        return self.status == AnalysisStatus.SUCCESS

    @property
    def is_failure(self) -> bool:
        return self.status == AnalysisStatus.FAILED

    @classmethod
    def success(cls, value: T, metadata: dict[str, Any] | None = None) -> "AnalysisResult[T]":
        """Create a successful result."""
        return cls(status=AnalysisStatus.SUCCESS, value=value, metadata=metadata or {})

    @classmethod
    def failure(cls, error: str, metadata: dict[str, Any] | None = None) -> "AnalysisResult[T]":
        """Create a failed result carrying an error message."""
        return cls(status=AnalysisStatus.FAILED, error=error, metadata=metadata or {})

    def __bool__(self) -> bool:
        """Allow using result in if statements."""
        return self.is_success

    def unwrap(self) -> T:
        """Get value or raise exception if failed."""
        if not self.is_success:
            raise ValueError(f"Cannot unwrap failed result: {self.error}")
        if self.value is None:
            raise ValueError("Cannot unwrap result: value is None")
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Get value or return default if failed."""
        if self.is_success and self.value is not None:
            return self.value
        return default
