"""
Substitution resolver with rule-based rewriting.

This module implements the resolver that drives the rewriting rules:
1. Term classification for rule routing
2. Rule selection in priority order
3. Small-step rewriting until a rule marks the node done
4. Per-call caching of reference lookups
5. Strict-mode validation of the output

Architecture:
    Template + Environment
          ↓
    Term Classifier
          ↓
    Rule Pipeline (Lookup, Fixpoint, Application, Scope, Collection, Removal)
          ↓
    Resolution Cache (name, environment)
          ↓
    Resolved value

Example:
    resolver = SubstitutionResolver()
    resolver.resolve({"title": Ref("Title")}, {"Title": "Sales"})
    # {"title": "Sales"}
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable, Mapping
from typing import Any

from ..cache import ResolutionCache
from ..config import ResolverConfig
from ..context_vars import active_cache
from ..dependency import DependencyFn
from ..environment import Environment
from ..exceptions import CyclicDependencyError, ResolutionError, UnresolvedReferenceError
from ..template import find_refs
from .classifier import TermClassifier
from .rules import RuleContext, TransformRule
from .substitution_rules import default_rules, is_self_binding

logger = logging.getLogger(__name__)


class SubstitutionResolver:
    """
    Resolve templates against scoped environments.

    Example:
        resolver = SubstitutionResolver(ResolverConfig(strict=True))

        # One-off resolution (fresh cache)
        result = resolver.resolve(template, env, overrides={"Title": "Q3"})

        # Shared cache across several calls
        with clean_cache():
            a = resolver.resolve(template_a, env)
            b = resolver.resolve(template_b, env)
    """

    def __init__(
        self,
        config: ResolverConfig | None = None,
        rules: list[TransformRule] | None = None,
        leaf_types: Iterable[type | str] = (),
    ):
        """
        Initialize substitution resolver.

        Args:
            config: Behavior switches (defaults to ResolverConfig())
            rules: Optional custom rules, merged with the built-in ones
            leaf_types: Extra types never recursed into, on top of config.leaf_types
        """
        self.config = config or ResolverConfig()
        self.classifier = TermClassifier(
            leaf_types=[*self.config.leaf_types, *leaf_types],
            ref_prefix=self.config.ref_prefix,
        )
        self.rules = self._initialize_rules(rules)

    def _initialize_rules(self, custom_rules: list[TransformRule] | None) -> list[TransformRule]:
        """
        Initialize rewriting rules in priority order.

        Args:
            custom_rules: Optional custom rules to add

        Returns:
            Sorted list of rules (by priority)
        """
        all_rules = default_rules(self.config.defaults_key) + (custom_rules or [])

        # Sort by priority (lower number = higher priority); stable for ties
        return sorted(all_rules, key=lambda r: r.priority)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(
        self,
        template: Any,
        env: Mapping[str, Any] | None = None,
        *,
        cache: ResolutionCache | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> Any:
        """
        Resolve a template to its final value.

        Args:
            template: Any template node (mapping, sequence, reference, function, scalar)
            env: Caller bindings (mapping or Environment)
            cache: Explicit cache; defaults to the clean_cache() cache if one is
                active, else a fresh cache discarded on return
            overrides: User bindings that win over every defaults scope

        Returns:
            Resolved value. Nested RMV entries are removed; a top-level RMV
            is returned as is.

        Raises:
            CyclicDependencyError: If a reference depends on itself
            ResolutionError: On malformed defaults or strict dependency failures
            UnresolvedReferenceError: In strict mode, if references remain
        """
        environment = Environment.coerce(env, overrides)

        owned = False
        if cache is None:
            cache = active_cache.get()
            if cache is None:
                cache = ResolutionCache()
                owned = True

        try:
            result = self.resolve_term(template, environment, cache)
            logger.debug(
                "Resolved template: %d cache hits, %d misses", cache.hits, cache.misses
            )
        except RecursionError as e:
            raise CyclicDependencyError(
                key="<template>",
                chain=cache.chain,
                max_depth=sys.getrecursionlimit(),
            ) from e
        finally:
            if owned:
                cache.close()

        if self.config.strict:
            leftover = find_refs(result, self.classifier, self.config.defaults_key)
            if leftover:
                raise UnresolvedReferenceError(leftover, environment.snapshot())

        return result

    def resolve_term(self, term: Any, env: Environment, cache: ResolutionCache) -> Any:
        """
        Rewrite a single node until a rule marks it done.

        Args:
            term: Template node
            env: Environment in effect at this node
            cache: Resolution cache of the current top-level call

        Returns:
            Resolved node
        """
        context = RuleContext(term=term, kind=self.classifier.classify(term), env=env, cache=cache)

        while not context.done:
            if context.steps >= self.config.max_depth:
                raise CyclicDependencyError(
                    key=_describe(context.term),
                    chain=cache.chain,
                    max_depth=self.config.max_depth,
                )
            rule = self._select_rule(context)
            context = rule.transform(context, self)
            context.steps += 1
            if not context.done:
                context.kind = self.classifier.classify(context.term)

        return context.term

    def cached_resolve(self, name: str, env: Environment, cache: ResolutionCache) -> Any:
        """
        Resolve the binding of name under env, at most once per (name, env).

        Unbound and self-bound names are fixpoints: the reference itself is
        returned and nothing is cached.

        Args:
            name: Reference name (Ref or plain str)
            env: Environment to look the name up in
            cache: Resolution cache

        Returns:
            Fully resolved binding, or the reference if it has none
        """
        if not env.binds(name):
            return self.classifier.as_ref(name)
        binding = env.lookup(name)
        if is_self_binding(binding, name):
            return self.classifier.as_ref(name)

        return cache.get_or_compute(
            name,
            env,
            lambda: self.resolve_term(binding, env, cache),
            detect_cycles=self.config.detect_cycles,
            max_depth=self.config.max_depth,
        )

    def resolve_dependencies(
        self,
        fn: DependencyFn,
        env: Environment,
        cache: ResolutionCache,
    ) -> dict[str, Any]:
        """
        Resolve every declared dependency of fn through the cache.

        Args:
            fn: Function whose dependencies are needed
            env: Environment in effect at the call site
            cache: Resolution cache

        Returns:
            Mapping from dependency name to resolved value

        Raises:
            ResolutionError: If strict dependency checking is on and a
                dependency does not resolve to a value
        """
        values: dict[str, Any] = {}
        for dep in fn.deps:
            value = self.cached_resolve(dep, env, cache)
            if self.config.check_dependencies and self.classifier.is_ref(value):
                reason = (
                    f"dependency of {fn.name} has no binding"
                    if not env.binds(dep)
                    else f"dependency of {fn.name} resolved to unbound reference {str(value)!r}"
                )
                raise ResolutionError(key=dep.name, reason=reason, environment=env.snapshot())
            values[dep] = value
        return values

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _select_rule(self, context: RuleContext) -> TransformRule:
        for rule in self.rules:
            if rule.applies_to(context):
                return rule
        # Unreachable with the built-in PassThroughRule; custom rule sets may omit it
        raise ResolutionError(
            key=_describe(context.term),
            reason=f"no rule applies to {context.kind.value} term",
            environment=context.env.snapshot(),
        )


def _describe(term: Any) -> str:
    if isinstance(term, str):
        return str(term)
    if isinstance(term, DependencyFn):
        return term.name
    return type(term).__name__


# Module-level resolver with default configuration
_default_resolver: SubstitutionResolver | None = None


def get_default_resolver() -> SubstitutionResolver:
    """Lazily build the module-level resolver with built-in defaults."""
    global _default_resolver
    if _default_resolver is None:
        _default_resolver = SubstitutionResolver()
    return _default_resolver


def resolve(
    template: Any,
    env: Mapping[str, Any] | None = None,
    *,
    cache: ResolutionCache | None = None,
    config: ResolverConfig | None = None,
    **overrides: Any,
) -> Any:
    """
    Resolve template in one call.

    Keyword arguments other than cache and config are user overrides:

        resolve(template, env, Title="Q3 revenue")

    Uses the module-level resolver unless a config is given.
    """
    resolver = SubstitutionResolver(config) if config is not None else get_default_resolver()
    return resolver.resolve(template, env, cache=cache, overrides=overrides or None)


def cached_resolve(name: str, env: Mapping[str, Any], cache: ResolutionCache) -> Any:
    """Resolve a single reference with the default resolver through cache."""
    return get_default_resolver().cached_resolve(name, Environment.coerce(env), cache)
