"""
Rule system foundation for substitution.

This module provides the base classes for the rewriting rules applied by
SubstitutionResolver. At every template node the resolver hands a
RuleContext to the first rule (in priority order) whose applies_to()
accepts it. The rule either finishes the node by setting context.done, or
rewrites the context (term, environment, metadata) and lets the resolver
pick the next rule.

Rule Types:
    - LOOKUP: Replace a reference with its binding
    - FIXPOINT: Stop on unbound or self-bound references
    - APPLICATION: Invoke function values
    - SCOPE: Enter nested defaults scopes
    - COLLECTION: Recurse into mappings and sequences
    - REMOVAL: Drop removed entries
    - PASS_THROUGH: Return leaves unchanged

Example:
    class UppercaseRule(TransformRule):
        rule_type = RuleType.PASS_THROUGH
        priority = 85

        def applies_to(self, context: RuleContext) -> bool:
            return isinstance(context.term, str) and context.term.startswith("!")

        def transform(self, context: RuleContext, resolver) -> RuleContext:
            context.term = context.term[1:].upper()
            context.done = True
            return context

        @property
        def description(self) -> str:
            return "Uppercase strings starting with '!'"
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..cache import ResolutionCache
    from ..environment import Environment
    from .classifier import TermKind
    from .resolver import SubstitutionResolver


class RuleType(Enum):
    """Types of substitution rules."""

    LOOKUP = "lookup"
    FIXPOINT = "fixpoint"
    APPLICATION = "application"
    SCOPE = "scope"
    COLLECTION = "collection"
    REMOVAL = "removal"
    PASS_THROUGH = "pass_through"


@dataclass
class RuleContext:
    """
    Context passed to rules for processing.

    Attributes:
        term: Template node being resolved
        kind: Classification of term (refreshed by the resolver after each rewrite)
        env: Environment the node is resolved under
        cache: Per-call resolution cache
        steps: Number of rewrites already applied at this node
        done: Set by a rule when term is fully resolved
        metadata: Rule-specific scratch space (e.g. collected flag)
    """

    term: Any
    kind: TermKind
    env: Environment
    cache: ResolutionCache
    steps: int = 0
    done: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)


class TransformRule(ABC):
    """
    Base class for substitution rules.

    Rules are tried in priority order (lower = tried first). The first rule
    whose applies_to() returns True transforms the context.
    """

    rule_type: RuleType
    priority: int = 0  # Lower = higher priority

    @abstractmethod
    def applies_to(self, context: RuleContext) -> bool:
        """
        Check if rule applies to this context.

        Args:
            context: Current rule context

        Returns:
            True if rule should be applied
        """
        pass

    @abstractmethod
    def transform(self, context: RuleContext, resolver: SubstitutionResolver) -> RuleContext:
        """
        Apply transformation to context.

        Args:
            context: Current rule context
            resolver: Resolver, for recursive resolution of children and dependencies

        Returns:
            Transformed rule context
        """
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what this rule does."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(priority={self.priority})"
