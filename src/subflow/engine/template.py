"""
Helpers for building and inspecting templates without resolving them.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .terms import DEFAULTS_KEY

if TYPE_CHECKING:
    from .resolver.classifier import TermClassifier


def find_refs(
    template: Any,
    classifier: TermClassifier | None = None,
    defaults_key: str = DEFAULTS_KEY,
) -> set[str]:
    """
    Collect the references occurring anywhere in template.

    Leaf values and the contents of nested defaults are not searched; the
    latter are bindings, not output.

    Args:
        template: Template node
        classifier: Term classifier deciding what counts as a reference
            (defaults to one recognising Ref instances only)
        defaults_key: Mapping key carrying nested defaults

    Returns:
        Set of reference names
    """
    if classifier is None:
        from .resolver.classifier import TermClassifier

        classifier = TermClassifier()

    found: set[str] = set()
    stack = [template]
    while stack:
        node = stack.pop()
        if classifier.is_leaf_type(node):
            continue
        if classifier.is_ref(node):
            found.add(str(node))
        elif isinstance(node, dict):
            stack.extend(value for key, value in node.items() if key != defaults_key)
        elif isinstance(node, list) or type(node) is tuple:
            stack.extend(node)
    return found


def with_defaults(
    template: Mapping[str, Any],
    mapping: Mapping[str, Any] | None = None,
    **defaults: Any,
) -> dict[str, Any]:
    """
    Return a copy of template with extra top-level defaults.

    New defaults override existing ones of the same name; the template
    itself is not modified.

    Example:
        base = {"title": Ref("Title"), DEFAULTS_KEY: {"Title": "Untitled"}}
        with_defaults(base, Title="Revenue")[DEFAULTS_KEY]   # {"Title": "Revenue"}
    """
    if not isinstance(template, Mapping):
        raise TypeError(f"Defaults can only be attached to a mapping, got {type(template).__name__}")
    existing = template.get(DEFAULTS_KEY) or {}
    if not isinstance(existing, Mapping):
        raise TypeError(f"Existing {DEFAULTS_KEY} entry is not a mapping")
    merged = {**existing, **(mapping or {}), **defaults}
    return {**template, DEFAULTS_KEY: merged}


def get_default(template: Mapping[str, Any], name: str, default: Any = None) -> Any:
    """Unresolved top-level default for name, or default if the template has none."""
    scope = template.get(DEFAULTS_KEY) if isinstance(template, Mapping) else None
    if not isinstance(scope, Mapping):
        return default
    return scope.get(name, default)
