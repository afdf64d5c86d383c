"""Substitution engine core components.

This package contains the template resolution engine.

Key Components:

- Ref / RMV / DEFAULTS_KEY: Term vocabulary (references, removal, nested defaults)
- DependencyFn: Function value declaring the references it needs
- Environment: Scoped bindings with a user-override channel
- ResolutionCache: Per-call memo table keyed by (name, environment)
- clean_cache: Context-local cache scope shared by nested resolve() calls
- SubstitutionResolver: Rule-based resolver (see resolver package)
- ResolverConfig / ConfigLoader: Pydantic v2 configuration loaded from YAML
- DependencyGraph: Static dependency analysis via Kahn's algorithm
- AnalysisResult: Error monad for graph analysis

Architecture:
- Resolution is synchronous and single-threaded
- Each top-level resolve() owns its cache unless a clean_cache() scope is active
- Errors propagate as SubstitutionError subclasses; user function errors unchanged
"""

from .cache import CacheEntry, ResolutionCache
from .config import ConfigLoader, ResolverConfig
from .context_vars import active_cache, clean_cache
from .dependency import DependencyFn, dependencies_of, fn_with_deps, with_deps
from .environment import Environment
from .exceptions import (
    CyclicDependencyError,
    ResolutionError,
    SubstitutionError,
    UnresolvedReferenceError,
)
from .graph import DependencyGraph
from .resolver import (
    EnvironmentProxy,
    SubstitutionResolver,
    TransformRule,
    cached_resolve,
    resolve,
)
from .result import AnalysisResult, AnalysisStatus
from .template import find_refs, get_default, with_defaults
from .terms import DEFAULTS_KEY, RMV, Ref, is_removed, ref

__all__ = [
    # Terms
    "Ref",
    "ref",
    "RMV",
    "is_removed",
    "DEFAULTS_KEY",
    # Functions
    "DependencyFn",
    "with_deps",
    "fn_with_deps",
    "dependencies_of",
    # Environment & cache
    "Environment",
    "ResolutionCache",
    "CacheEntry",
    "clean_cache",
    "active_cache",
    # Resolution
    "SubstitutionResolver",
    "TransformRule",
    "EnvironmentProxy",
    "resolve",
    "cached_resolve",
    # Configuration
    "ResolverConfig",
    "ConfigLoader",
    # Analysis
    "DependencyGraph",
    "AnalysisResult",
    "AnalysisStatus",
    "find_refs",
    "with_defaults",
    "get_default",
    # Exceptions
    "SubstitutionError",
    "ResolutionError",
    "UnresolvedReferenceError",
    "CyclicDependencyError",
]
