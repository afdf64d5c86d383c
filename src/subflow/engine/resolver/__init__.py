"""
Substitution resolver package.

This package implements template resolution as a small-step rewriting
system: every template node is handed to the first applicable rule, in
priority order, until one of them marks it done.

The architecture uses rule-based transformations:
1. Term classification for rule routing
2. Reference lookup through a per-call cache
3. Function application (dependency-aware and plain)
4. Nested defaults scoping and collection recursion
5. Removal of RMV entries

Public API:
    - SubstitutionResolver: Main resolver class
    - resolve / cached_resolve: One-call helpers using a default resolver
    - TransformRule: Base class for custom rules
    - EnvironmentProxy: Lazy environment view given to plain callables
    - TermClassifier: Term kind detection for routing
"""

from .classifier import TermClassifier, TermKind, import_leaf_type
from .proxies import EnvironmentProxy
from .resolver import SubstitutionResolver, cached_resolve, get_default_resolver, resolve
from .rules import RuleContext, RuleType, TransformRule
from .substitution_rules import (
    ApplicationRule,
    CallableRule,
    CollectionRule,
    FixpointRule,
    LookupRule,
    NestedDefaultsRule,
    PassThroughRule,
    RemovalRule,
    default_rules,
)

__all__ = [
    "SubstitutionResolver",
    "resolve",
    "cached_resolve",
    "get_default_resolver",
    "TransformRule",
    "RuleType",
    "RuleContext",
    "LookupRule",
    "FixpointRule",
    "ApplicationRule",
    "CallableRule",
    "NestedDefaultsRule",
    "CollectionRule",
    "RemovalRule",
    "PassThroughRule",
    "default_rules",
    "EnvironmentProxy",
    "TermClassifier",
    "TermKind",
    "import_leaf_type",
]
