"""
Dependency graph and evaluation order for calculated fields.

Nodes are calculated targets; A depends on B when B appears in A's
dependencies and is itself calculated. The order is computed once per
schema and reused for every evaluation pass.
"""

from __future__ import annotations

import heapq
import logging
from collections.abc import Iterable

from formlogic.core.errors import CycleError
from formlogic.core.ir.fields import CalculationSpec

logger = logging.getLogger(__name__)


class DependencyGraph:
    """
    Calculated-field dependency graph.

    Attributes:
        targets: Calculated targets in declaration order
        dependencies: target -> calculated targets it reads
        dependents: target -> calculated targets that read it
    """

    def __init__(self, calculations: Iterable[CalculationSpec]) -> None:
        calcs = list(calculations)
        self.targets: list[str] = [c.target for c in calcs]
        self._position = {target: i for i, target in enumerate(self.targets)}
        self._inputs: dict[str, list[str]] = {c.target: list(c.depends_on) for c in calcs}

        self.dependencies: dict[str, list[str]] = {}
        self.dependents: dict[str, list[str]] = {t: [] for t in self.targets}
        for calc in calcs:
            deps = [d for d in dict.fromkeys(calc.depends_on) if d in self._position]
            self.dependencies[calc.target] = deps
            for dep in deps:
                self.dependents[dep].append(calc.target)

    def __len__(self) -> int:
        return len(self.targets)

    def topological_order(self) -> list[str]:
        """
        Order targets so that every target follows the targets it reads.

        Kahn's algorithm; among ready targets the earliest declared goes
        first, so the order is deterministic.

        Raises:
            CycleError: If the graph has a cycle
        """
        in_degree = {t: len(self.dependencies[t]) for t in self.targets}
        ready = [self._position[t] for t in self.targets if in_degree[t] == 0]
        heapq.heapify(ready)
        order: list[str] = []

        while ready:
            target = self.targets[heapq.heappop(ready)]
            order.append(target)
            for dependent in self.dependents[target]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    heapq.heappush(ready, self._position[dependent])

        if len(order) != len(self.targets):
            unresolved = [t for t in self.targets if in_degree[t] > 0]
            cycle = self.find_cycle(unresolved)
            cycle_str = " -> ".join(cycle)
            raise CycleError(f"Circular calculated-field dependency: {cycle_str}", cycle)

        return order

    def find_cycle(self, candidates: list[str]) -> list[str]:
        """Return one concrete cycle among ``candidates`` as [a, b, ..., a]."""
        remaining = set(candidates)
        visited: set[str] = set()

        def _visit(node: str, path: list[str]) -> list[str] | None:
            if node in path:
                start = path.index(node)
                return path[start:] + [node]
            if node in visited:
                return None
            visited.add(node)
            path.append(node)
            for dep in self.dependencies[node]:
                if dep in remaining:
                    found = _visit(dep, path)
                    if found:
                        return found
            path.pop()
            return None

        for start in candidates:
            found = _visit(start, [])
            if found:
                return found
        # Unreachable for a stalled Kahn pass; keep the error informative anyway
        return list(candidates)

    def affected_by(self, changed_paths: Iterable[str]) -> list[str]:
        """
        Targets that must be recomputed when ``changed_paths`` change.

        Includes targets reading a changed path directly and, transitively,
        targets reading those targets. Returned in declaration order.
        """
        changed = set(changed_paths)
        affected: set[str] = {
            t for t in self.targets if any(dep in changed for dep in self._inputs[t])
        }
        frontier = list(affected | (changed & set(self.targets)))
        while frontier:
            node = frontier.pop()
            for dependent in self.dependents.get(node, []):
                if dependent not in affected:
                    affected.add(dependent)
                    frontier.append(dependent)
        return [t for t in self.targets if t in affected]


def build_order(calculations: Iterable[CalculationSpec]) -> list[str]:
    """
    Compute the evaluation order for calculated fields.

    Args:
        calculations: Calculations in declaration order

    Returns:
        Calculated targets, each after every calculated target it reads

    Raises:
        CycleError: If calculated fields depend on each other in a cycle
    """
    graph = DependencyGraph(calculations)
    order = graph.topological_order()
    logger.debug(f"Calculation order: {order}")
    return order
