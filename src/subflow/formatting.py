"""Markdown rendering of dependency information.

Used by notebooks and debugging tools to document which bindings a
template provides and what each DependencyFn needs, without resolving
anything.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from .engine.dependency import DependencyFn
from .engine.graph import DependencyGraph

# =============================================================================
# Markdown Formatting Utilities
# =============================================================================


def format_dependency_markdown(functions: Mapping[str, Any] | Iterable[DependencyFn]) -> str:
    """Format DependencyFn documentation as markdown.

    Args:
        functions: Either a bindings mapping (non-function values are skipped)
            or an iterable of DependencyFn

    Returns:
        Markdown list with one entry per function: name, dependencies, doc
    """
    if isinstance(functions, Mapping):
        entries = [(str(k), v) for k, v in functions.items() if isinstance(v, DependencyFn)]
    else:
        entries = [(fn.name, fn) for fn in functions]

    if not entries:
        return "No dependency functions found"

    lines = [f"## Dependency Functions ({len(entries)})", ""]
    for name, fn in entries:
        deps = ", ".join(f"`{dep.name}`" for dep in fn.deps) or "none"
        lines.append(f"- **{name}** - depends on: {deps}")
        if fn.doc:
            lines.append(f"  {fn.doc}")

    return "\n".join(lines)


def format_graph_markdown(graph: DependencyGraph) -> str:
    """Format a dependency graph as markdown.

    Args:
        graph: Dependency graph to describe

    Returns:
        Markdown with evaluation order (or the cycle) and unbound inputs
    """
    lines = [
        "# Dependency Graph",
        "",
        f"- **Nodes**: {len(graph.nodes)}",
        f"- **Edges**: {len(graph.edges)}",
    ]

    order = graph.topological_order()
    lines.append("")
    if order.is_success:
        lines.append("## Evaluation Order")
        for index, name in enumerate(order.unwrap(), start=1):
            deps = graph.dependencies(name)
            suffix = f" (after {', '.join(deps)})" if deps else ""
            lines.append(f"{index}. {name}{suffix}")
    else:
        lines.append("## Cycle")
        lines.append(f"**Error**: {order.error}")
        for name in order.metadata.get("cycle", []):
            lines.append(f"- {name} -> {', '.join(graph.dependencies(name))}")

    unbound = graph.unbound()
    if unbound:
        lines.append("")
        lines.append("## Unbound Inputs")
        lines.extend(f"- {name}" for name in unbound)

    return "\n".join(lines)
