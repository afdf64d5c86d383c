"""Substitution engine exceptions."""

from __future__ import annotations

from collections.abc import Iterable, Mapping


class SubstitutionError(Exception):
    """Base class for all errors raised by the substitution engine."""


class ResolutionError(SubstitutionError):
    """
    A template could not be resolved because of a structural problem.

    Raised for malformed input such as a nested defaults entry that is not a
    mapping, or (in strict dependency mode) a DependencyFn whose declared
    dependency has no binding in any enclosing scope.

    Attributes:
        key: The reference name or template key that failed
        environment: Snapshot of the effective bindings at the point of failure
        reason: Short description of what went wrong
    """

    def __init__(
        self,
        key: str,
        reason: str,
        environment: Mapping[str, str] | None = None,
    ):
        """
        Initialize resolution error.

        Args:
            key: Failing reference name or template key
            reason: What went wrong
            environment: Printable snapshot of the environment (see Environment.snapshot)
        """
        self.key = key
        self.reason = reason
        self.environment = dict(environment or {})

        available = ", ".join(sorted(self.environment)) or "none"
        super().__init__(f"Cannot resolve '{key}': {reason}\nAvailable bindings: {available}")

    def __repr__(self) -> str:
        """Developer-friendly representation."""
        return f"ResolutionError(key={self.key!r}, reason={self.reason!r})"


class UnresolvedReferenceError(ResolutionError):
    """
    References survived resolution while strict mode was enabled.

    Attributes:
        refs: Sorted names of the references left in the output
    """

    def __init__(
        self,
        refs: Iterable[str],
        environment: Mapping[str, str] | None = None,
    ):
        self.refs = sorted(str(r) for r in refs)
        super().__init__(
            key=self.refs[0] if self.refs else "",
            reason=f"unbound reference(s) left in output: {', '.join(self.refs)}",
            environment=environment,
        )

    def __repr__(self) -> str:
        """Developer-friendly representation."""
        return f"UnresolvedReferenceError(refs={self.refs!r})"


class CyclicDependencyError(SubstitutionError):
    """
    A reference depends on itself through a chain longer than one hop.

    Raised either when a (name, environment) pair is re-entered while it is
    still being computed, or when the resolution depth limit is exceeded.

    Attributes:
        key: Reference at which the cycle was detected
        chain: In-flight reference names, outermost first
        max_depth: Configured depth limit (None when detected by re-entry)
    """

    def __init__(self, key: str, chain: list[str], max_depth: int | None = None):
        """
        Initialize cyclic dependency error.

        Args:
            key: Reference being resolved when the cycle was found
            chain: In-flight reference chain
            max_depth: Depth limit that was exceeded, if any
        """
        self.key = key
        self.chain = list(chain)
        self.max_depth = max_depth

        call_chain = " → ".join(self.chain + [key]) if key else " → ".join(self.chain)
        if max_depth is None:
            message = f"Cyclic dependency detected for '{key}'. Chain: {call_chain}"
        else:
            message = (
                f"Resolution depth limit exceeded for '{key}' (limit: {max_depth}). "
                f"Chain: {call_chain}\n\n"
                f"This usually indicates a dependency cycle. If the chain is legitimate, "
                f"raise max_depth in ResolverConfig or set SUBFLOW_MAX_DEPTH."
            )
        super().__init__(message)

    def __repr__(self) -> str:
        """Developer-friendly representation."""
        return (
            f"CyclicDependencyError(key={self.key!r}, depth={len(self.chain)}, "
            f"limit={self.max_depth})"
        )
