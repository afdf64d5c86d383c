"""
Built-in substitution rules.

Rules, in the order they are tried at each node:

    LookupRule          (10)  bound reference -> resolved binding (cached)
    FixpointRule        (20)  unbound or self-bound reference -> itself
    ApplicationRule     (30)  DependencyFn -> fn(*resolved deps), resolved further
    CallableRule        (35)  plain function -> fn(lazy env view), resolved further
    NestedDefaultsRule  (40)  mapping with defaults -> enter child scope
    CollectionRule      (50)  mapping/sequence -> resolve every child
    RemovalRule         (60)  drop RMV and emptied children
    PassThroughRule     (90)  anything else -> unchanged
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..exceptions import ResolutionError
from ..terms import RMV
from .classifier import TermKind
from .proxies import EnvironmentProxy, as_mapping
from .rules import RuleContext, RuleType, TransformRule

if TYPE_CHECKING:
    from .resolver import SubstitutionResolver

logger = logging.getLogger(__name__)


class LookupRule(TransformRule):
    """
    Replace a bound reference with its fully resolved binding.

    Goes through the cache, so each (name, environment) pair is resolved
    at most once per top-level call no matter how often it is referenced.
    """

    rule_type = RuleType.LOOKUP
    priority = 10

    def applies_to(self, context: RuleContext) -> bool:
        if context.kind is not TermKind.REF or not context.env.binds(context.term):
            return False
        return not is_self_binding(context.env.lookup(context.term), context.term)

    def transform(self, context: RuleContext, resolver: SubstitutionResolver) -> RuleContext:
        context.term = resolver.cached_resolve(context.term, context.env, context.cache)
        context.done = True
        return context

    @property
    def description(self) -> str:
        return "Replace bound references with their resolved bindings"


class FixpointRule(TransformRule):
    """
    Stop on a reference with no binding, or bound to itself.

    The reference itself is the result. This is not an error: unresolved
    references pass through to the output (see strict mode).
    """

    rule_type = RuleType.FIXPOINT
    priority = 20

    def applies_to(self, context: RuleContext) -> bool:
        return context.kind is TermKind.REF

    def transform(self, context: RuleContext, resolver: SubstitutionResolver) -> RuleContext:
        context.done = True
        return context

    @property
    def description(self) -> str:
        return "Leave unbound and self-bound references unchanged"


class ApplicationRule(TransformRule):
    """
    Invoke a DependencyFn with its resolved dependencies.

    Every declared dependency is resolved through the cache before the call;
    the return value is resolved further under the same environment.
    """

    rule_type = RuleType.APPLICATION
    priority = 30

    def applies_to(self, context: RuleContext) -> bool:
        return context.kind is TermKind.FUNCTION

    def transform(self, context: RuleContext, resolver: SubstitutionResolver) -> RuleContext:
        fn = context.term
        values = resolver.resolve_dependencies(fn, context.env, context.cache)
        logger.debug("Invoking %s(%s)", fn.name, ", ".join(dep.name for dep in fn.deps))
        context.term = fn.invoke(values)
        return context

    @property
    def description(self) -> str:
        return "Call dependency-aware functions with resolved dependencies"


class CallableRule(TransformRule):
    """
    Invoke a plain function with a lazy, read-only view of the environment.

    Bindings are resolved only when the function reads them.
    """

    rule_type = RuleType.APPLICATION
    priority = 35

    def applies_to(self, context: RuleContext) -> bool:
        return context.kind is TermKind.CALLABLE

    def transform(self, context: RuleContext, resolver: SubstitutionResolver) -> RuleContext:
        fn = context.term
        logger.debug("Invoking %s with environment view", getattr(fn, "__name__", fn))
        context.term = fn(EnvironmentProxy(resolver, context.env, context.cache))
        return context

    @property
    def description(self) -> str:
        return "Call plain functions with a lazy environment view"


class NestedDefaultsRule(TransformRule):
    """
    Enter the nested defaults scope carried by a mapping.

    The defaults become the innermost binding scope (user overrides still
    win) for the rest of the mapping and its descendants. The defaults entry
    itself never appears in the output.
    """

    rule_type = RuleType.SCOPE
    priority = 40

    def __init__(self, defaults_key: str):
        self.defaults_key = defaults_key

    def applies_to(self, context: RuleContext) -> bool:
        return context.kind is TermKind.MAPPING and self.defaults_key in context.term

    def transform(self, context: RuleContext, resolver: SubstitutionResolver) -> RuleContext:
        mapping = context.term
        defaults = mapping[self.defaults_key]
        scope = as_mapping(defaults)
        if scope is None:
            raise ResolutionError(
                key=self.defaults_key,
                reason=f"nested defaults must be a mapping, got {type(defaults).__name__}",
                environment=context.env.snapshot(),
            )
        logger.debug("Entering defaults scope with %d binding(s)", len(scope))
        context.env = context.env.child(scope)
        context.term = {k: v for k, v in mapping.items() if k != self.defaults_key}
        return context

    @property
    def description(self) -> str:
        return "Merge nested defaults as the innermost scope of a subtree"


class CollectionRule(TransformRule):
    """Resolve every entry of a mapping or element of a sequence independently."""

    rule_type = RuleType.COLLECTION
    priority = 50

    def applies_to(self, context: RuleContext) -> bool:
        return (
            context.kind in (TermKind.MAPPING, TermKind.SEQUENCE)
            and not context.metadata.get("collected")
        )

    def transform(self, context: RuleContext, resolver: SubstitutionResolver) -> RuleContext:
        env, cache = context.env, context.cache
        if context.kind is TermKind.MAPPING:
            context.term = {
                key: resolver.resolve_term(value, env, cache) for key, value in context.term.items()
            }
        else:
            items = [resolver.resolve_term(item, env, cache) for item in context.term]
            context.term = tuple(items) if isinstance(context.term, tuple) else items
        context.metadata["collected"] = True
        return context

    @property
    def description(self) -> str:
        return "Recurse into mappings and sequences"


class RemovalRule(TransformRule):
    """
    Drop children that resolved to RMV.

    With remove_empty (the default), children that resolved to an empty
    mapping or sequence are dropped too, so removal bubbles up through any
    number of levels.
    """

    rule_type = RuleType.REMOVAL
    priority = 60

    def applies_to(self, context: RuleContext) -> bool:
        return bool(context.metadata.get("collected"))

    def transform(self, context: RuleContext, resolver: SubstitutionResolver) -> RuleContext:
        term = context.term
        if isinstance(term, dict):
            context.term = {
                key: value for key, value in term.items() if not self._dropped(value, resolver)
            }
        else:
            kept = [item for item in term if not self._dropped(item, resolver)]
            context.term = tuple(kept) if isinstance(term, tuple) else kept
        context.done = True
        return context

    @staticmethod
    def _dropped(value: Any, resolver: SubstitutionResolver) -> bool:
        if value is RMV:
            return True
        return (
            resolver.config.remove_empty
            and resolver.classifier.is_collection(value)
            and len(value) == 0
        )

    @property
    def description(self) -> str:
        return "Remove RMV entries and collections emptied by removal"


class PassThroughRule(TransformRule):
    """Scalars, leaf values and RMV resolve to themselves."""

    rule_type = RuleType.PASS_THROUGH
    priority = 90

    def applies_to(self, context: RuleContext) -> bool:
        return True

    def transform(self, context: RuleContext, resolver: SubstitutionResolver) -> RuleContext:
        context.done = True
        return context

    @property
    def description(self) -> str:
        return "Return scalars and leaf values unchanged"


def is_self_binding(binding: Any, name: str) -> bool:
    """True for the `K -> K` binding, which is a fixpoint, not a cycle."""
    return isinstance(binding, str) and binding == name


def default_rules(defaults_key: str) -> list[TransformRule]:
    """Built-in rule set, unsorted."""
    return [
        LookupRule(),
        FixpointRule(),
        ApplicationRule(),
        CallableRule(),
        NestedDefaultsRule(defaults_key),
        CollectionRule(),
        RemovalRule(),
        PassThroughRule(),
    ]
