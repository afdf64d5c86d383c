"""
Static dependency graph of a set of bindings.

ARCHITECTURAL DECISION: This module never resolves anything.

Edges come from what bindings declare, not from running them:
- a DependencyFn contributes one edge per declared dependency
- any other value contributes one edge per reference found inside it
- plain callables contribute nothing (their reads are only known at run time)

This is the graph the resolver discovers lazily during resolution; building
it up front lets tooling order, draw or cycle-check a template without
evaluating a single function.

Edges point from a dependency to the binding that needs it
(`Area -> Radius` when Radius depends on Area).
"""

from __future__ import annotations

from collections import deque
from collections.abc import Mapping
from typing import Any

from .dependency import DependencyFn
from .resolver.classifier import TermClassifier
from .result import AnalysisResult
from .template import find_refs
from .terms import DEFAULTS_KEY


class DependencyGraph:
    """Dependency edges between the names bound in an environment."""

    def __init__(
        self,
        bindings: Mapping[str, Any],
        classifier: TermClassifier | None = None,
        defaults_key: str = DEFAULTS_KEY,
    ):
        """
        Initialize dependency graph.

        Args:
            bindings: Name -> binding mapping (environment or defaults scope)
            classifier: Decides what counts as a reference (Ref only by default)
            defaults_key: Nested defaults key, not searched for references
        """
        self.bindings = dict(bindings)
        self.classifier = classifier or TermClassifier()
        self.defaults_key = defaults_key

        self._dependencies: dict[str, list[str]] = {}
        for name, value in self.bindings.items():
            self._dependencies[str(name)] = self._declared_dependencies(str(name), value)

        nodes: dict[str, None] = {}
        for name, deps in self._dependencies.items():
            nodes.setdefault(name)
            for dep in deps:
                nodes.setdefault(dep)
        self.nodes: list[str] = list(nodes)

        self._dependents: dict[str, list[str]] = {node: [] for node in self.nodes}
        for name, deps in self._dependencies.items():
            for dep in deps:
                self._dependents[dep].append(name)

    @classmethod
    def from_template(
        cls,
        template: Any,
        env: Mapping[str, Any] | None = None,
        classifier: TermClassifier | None = None,
        defaults_key: str = DEFAULTS_KEY,
    ) -> DependencyGraph:
        """
        Build the graph of every binding visible anywhere in a template.

        Scopes are merged outermost first (env, then top-level defaults, then
        nested defaults in document order), so a nested default shadows an
        outer binding of the same name.
        """
        bindings: dict[str, Any] = dict(env or {})
        stack = [template]
        while stack:
            node = stack.pop(0)
            if isinstance(node, dict):
                scope = node.get(defaults_key)
                if isinstance(scope, Mapping):
                    bindings.update(scope)
                stack.extend(value for key, value in node.items() if key != defaults_key)
            elif isinstance(node, list) or type(node) is tuple:
                stack.extend(node)
        return cls(bindings, classifier=classifier, defaults_key=defaults_key)

    def _declared_dependencies(self, name: str, value: Any) -> list[str]:
        if isinstance(value, DependencyFn):
            return list(dict.fromkeys(dep.name for dep in value.deps))
        refs = find_refs(value, self.classifier, self.defaults_key)
        # K -> K is a fixpoint, not a dependency
        refs.discard(name)
        return sorted(refs)

    @property
    def edges(self) -> list[tuple[str, str]]:
        """(dependency, dependent) pairs."""
        return [(dep, name) for name, deps in self._dependencies.items() for dep in deps]

    def dependencies(self, name: str) -> list[str]:
        """Names that name directly depends on."""
        return list(self._dependencies.get(name, []))

    def dependents(self, name: str) -> list[str]:
        """Names that directly depend on name."""
        return list(self._dependents.get(name, []))

    def unbound(self) -> list[str]:
        """Dependencies that no binding provides."""
        return [node for node in self.nodes if node not in self._dependencies]

    def topological_order(self) -> AnalysisResult[list[str]]:
        """
        Order names so that every dependency comes before its dependents.

        Returns:
            Result containing the ordered names, or a failure whose metadata
            lists the names on a cycle under "cycle"
        """
        in_degree = {node: len(self._dependencies.get(node, [])) for node in self.nodes}

        # Kahn's algorithm for topological sort
        queue = deque(node for node in self.nodes if in_degree[node] == 0)
        result = []

        while queue:
            current = queue.popleft()
            result.append(current)

            for neighbor in self._dependents[current]:
                in_degree[neighbor] -= 1
                if in_degree[neighbor] == 0:
                    queue.append(neighbor)

        if len(result) != len(self.nodes):
            cycle = self._cycle_members({node for node in self.nodes if in_degree[node] > 0})
            return AnalysisResult.failure(
                f"Cyclic dependency detected: {', '.join(cycle)}",
                metadata={"cycle": cycle},
            )

        return AnalysisResult.success(result)

    def _cycle_members(self, remaining: set[str]) -> list[str]:
        # Kahn left everything downstream of a cycle too; peel off the nodes
        # nobody in the remainder depends on until only cycles are left
        changed = True
        while changed:
            changed = False
            for node in list(remaining):
                if not any(d in remaining for d in self._dependents[node]):
                    remaining.discard(node)
                    changed = True
        return [node for node in self.nodes if node in remaining]

    def to_elements(self) -> dict[str, list[dict[str, Any]]]:
        """Cytoscape-style elements for drawing the graph."""
        return {
            "nodes": [{"data": {"id": node}} for node in self.nodes],
            "edges": [
                {"data": {"id": f"{source}->{target}", "source": source, "target": target}}
                for source, target in self.edges
            ],
        }

    def __contains__(self, name: object) -> bool:
        return name in self._dependents

    def __len__(self) -> int:
        return len(self.nodes)

    def __repr__(self) -> str:
        return f"DependencyGraph(nodes={len(self.nodes)}, edges={len(self.edges)})"
