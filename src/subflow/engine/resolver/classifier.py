"""
Term classification for rule routing.

This module classifies template nodes so that substitution rules can decide
cheaply whether they apply. Classification is purely structural and never
looks into the environment.

Term Kinds:
    REF: Symbolic reference (Ref instance, or prefixed string in convention mode)
    FUNCTION: DependencyFn with declared dependencies
    CALLABLE: Plain Python function or bound method
    MAPPING: dict (recursed into)
    SEQUENCE: list or plain tuple (recursed into)
    REMOVED: The RMV sentinel
    SCALAR: Everything else, including configured leaf types
"""

import importlib
import inspect
import logging
from collections.abc import Iterable
from enum import Enum
from typing import Any

from ..dependency import DependencyFn
from ..terms import RMV, Ref

logger = logging.getLogger(__name__)


class TermKind(Enum):
    """Kinds of template nodes."""

    REF = "ref"
    FUNCTION = "function"  # DependencyFn
    CALLABLE = "callable"  # def f(env): ...
    MAPPING = "mapping"
    SEQUENCE = "sequence"
    REMOVED = "removed"
    SCALAR = "scalar"


def import_leaf_type(dotted_path: str) -> type | None:
    """
    Import a type from a dotted path such as "pandas.DataFrame".

    Returns None (and logs at debug level) when the module is not installed,
    so that optional libraries can be listed in configuration unconditionally.
    """
    module_name, _, attr = dotted_path.rpartition(".")
    if not module_name:
        raise ValueError(f"Leaf type must be a dotted path 'module.Type', got {dotted_path!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError:
        logger.debug("Leaf type module not available: %s", module_name)
        return None
    leaf_type = getattr(module, attr, None)
    if not isinstance(leaf_type, type):
        raise ValueError(f"'{dotted_path}' does not name a type")
    return leaf_type


class TermClassifier:
    """
    Classify template nodes to route them to the matching rule.

    Example:
        classifier = TermClassifier(ref_prefix="=")
        classifier.classify("=x-field")   # TermKind.REF
        classifier.classify("x-field")    # TermKind.SCALAR
        classifier.classify({"a": 1})     # TermKind.MAPPING
    """

    def __init__(
        self,
        leaf_types: Iterable[type | str] = (),
        ref_prefix: str | None = None,
    ):
        """
        Initialize classifier.

        Args:
            leaf_types: Types never recursed into (types or dotted import paths)
            ref_prefix: If set, plain strings starting with it count as references
        """
        resolved: list[type] = []
        for leaf_type in leaf_types:
            if isinstance(leaf_type, str):
                imported = import_leaf_type(leaf_type)
                if imported is not None:
                    resolved.append(imported)
            else:
                resolved.append(leaf_type)
        self.leaf_types: tuple[type, ...] = tuple(resolved)
        self.ref_prefix = ref_prefix or None

    def is_leaf_type(self, value: Any) -> bool:
        return bool(self.leaf_types) and isinstance(value, self.leaf_types)

    def is_ref(self, value: Any) -> bool:
        if isinstance(value, Ref):
            return True
        return (
            self.ref_prefix is not None
            and type(value) is str
            and len(value) > len(self.ref_prefix)
            and value.startswith(self.ref_prefix)
        )

    def as_ref(self, value: Any) -> Ref:
        """Normalize a reference-like value to a Ref."""
        return value if isinstance(value, Ref) else Ref(value)

    def classify(self, term: Any) -> TermKind:
        """
        Classify a template node.

        Args:
            term: Any template node

        Returns:
            TermKind enum value
        """
        if term is RMV:
            return TermKind.REMOVED

        # Leaf types win over everything else, even dict/list subclasses
        if self.is_leaf_type(term):
            return TermKind.SCALAR

        if self.is_ref(term):
            return TermKind.REF

        if isinstance(term, DependencyFn):
            return TermKind.FUNCTION

        if inspect.isfunction(term) or inspect.ismethod(term):
            return TermKind.CALLABLE

        if isinstance(term, dict):
            return TermKind.MAPPING

        # Named tuples and other tuple subclasses are records, not sequences
        if isinstance(term, list) or type(term) is tuple:
            return TermKind.SEQUENCE

        return TermKind.SCALAR

    def is_collection(self, value: Any) -> bool:
        return self.classify(value) in (TermKind.MAPPING, TermKind.SEQUENCE)
