"""subflow: substitution and dataflow resolution for nested templates.

Templates are plain nested dicts and lists whose leaves may be references
(Ref), dependency-aware functions (DependencyFn) or the removal sentinel
(RMV). resolve() rewrites a template against an environment of bindings
until only concrete values remain.

Example:
    from subflow import DEFAULTS_KEY, Ref, resolve, with_deps

    @with_deps("Width", "Height")
    def area(w, h):
        return w * h

    template = {
        "size": Ref("Area"),
        DEFAULTS_KEY: {"Area": area, "Width": 3, "Height": 4},
    }
    resolve(template)                 # {"size": 12}
    resolve(template, Width=10)       # {"size": 40}
"""

from .engine import (
    DEFAULTS_KEY,
    RMV,
    AnalysisResult,
    CacheEntry,
    ConfigLoader,
    CyclicDependencyError,
    DependencyFn,
    DependencyGraph,
    Environment,
    EnvironmentProxy,
    Ref,
    ResolutionCache,
    ResolutionError,
    ResolverConfig,
    SubstitutionError,
    SubstitutionResolver,
    TransformRule,
    UnresolvedReferenceError,
    cached_resolve,
    clean_cache,
    dependencies_of,
    find_refs,
    fn_with_deps,
    get_default,
    is_removed,
    ref,
    resolve,
    with_defaults,
    with_deps,
)
from .formatting import format_dependency_markdown, format_graph_markdown
from .logging_config import configure_logging

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "Ref",
    "ref",
    "RMV",
    "is_removed",
    "DEFAULTS_KEY",
    "DependencyFn",
    "with_deps",
    "fn_with_deps",
    "dependencies_of",
    "Environment",
    "EnvironmentProxy",
    "ResolutionCache",
    "CacheEntry",
    "clean_cache",
    "SubstitutionResolver",
    "TransformRule",
    "resolve",
    "cached_resolve",
    "ResolverConfig",
    "ConfigLoader",
    "configure_logging",
    "DependencyGraph",
    "AnalysisResult",
    "find_refs",
    "with_defaults",
    "get_default",
    "format_dependency_markdown",
    "format_graph_markdown",
    "SubstitutionError",
    "ResolutionError",
    "UnresolvedReferenceError",
    "CyclicDependencyError",
]
