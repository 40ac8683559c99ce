"""Topological ordering of metrics and sources."""

import heapq
import logging
from collections.abc import Callable, Hashable, Iterable, Mapping, Sequence
from typing import Any

from windfarm_metrics.core.errors import DependencyError
from windfarm_metrics.models.metric_config import MetricConfig

logger = logging.getLogger(__name__)


def topological_sort(
    dependencies: Mapping[str, Sequence[str]],
    sort_key: Callable[[str], Hashable] | None = None,
) -> list[str]:
    """
    Order nodes so that every node follows all of its dependencies.

    Among nodes that are ready at the same time, the one with the smallest
    ``sort_key`` goes first; ties fall back to declaration order.

    Args:
        dependencies: Mapping of node id to the ids it depends on, in
            declaration order.
        sort_key: Optional tie-break key per node.

    Returns:
        All node ids in dependency order.

    Raises:
        DependencyError: On an unknown dependency or a cycle.
    """
    declared = {node: index for index, node in enumerate(dependencies)}

    unknown = sorted(
        {dep for deps in dependencies.values() for dep in deps if dep not in declared}
    )
    if unknown:
        raise DependencyError(f"Unknown dependencies: {', '.join(unknown)}", unknown)

    def key(node: str) -> tuple[Any, int, str]:
        primary = sort_key(node) if sort_key else 0
        return (primary, declared[node], node)

    remaining = {node: len(set(deps)) for node, deps in dependencies.items()}
    dependents: dict[str, list[str]] = {node: [] for node in dependencies}
    for node, deps in dependencies.items():
        for dep in set(deps):
            dependents[dep].append(node)

    ready = [key(node) for node, count in remaining.items() if count == 0]
    heapq.heapify(ready)
    order: list[str] = []

    while ready:
        node = heapq.heappop(ready)[-1]
        order.append(node)
        for dependent in dependents[node]:
            remaining[dependent] -= 1
            if remaining[dependent] == 0:
                heapq.heappush(ready, key(dependent))

    if len(order) != len(dependencies):
        cyclic = sorted(node for node, count in remaining.items() if count > 0)
        raise DependencyError(
            f"Circular dependency among: {', '.join(cyclic)}", cyclic
        )
    return order


def transitive_dependencies(
    dependencies: Mapping[str, Sequence[str]], targets: Iterable[str]
) -> set[str]:
    """Targets plus everything they depend on, directly or indirectly."""
    closure: set[str] = set()
    stack = list(targets)
    while stack:
        node = stack.pop()
        if node in closure:
            continue
        closure.add(node)
        stack.extend(dependencies.get(node, ()))
    return closure


class DependencyResolver:
    """
    Resolves the computation order of a set of metrics.

    Validation happens at construction: a cycle, an unknown dependency, or any
    metric depending on an analytical one raises ``DependencyError`` before
    anything is computed. Analytical metrics may only consume foundational
    results.

    Args:
        metrics: Metric configurations in declaration order.
    """

    def __init__(self, metrics: Iterable[MetricConfig]) -> None:
        self.metrics: dict[str, MetricConfig] = {}
        for metric in metrics:
            if metric.id in self.metrics:
                raise DependencyError(f"Duplicate metric id '{metric.id}'", [metric.id])
            self.metrics[metric.id] = metric

        self.dependencies = {
            metric_id: tuple(metric.depends_on)
            for metric_id, metric in self.metrics.items()
        }
        self._validate_tiers()
        self.order = topological_sort(self.dependencies, self._sort_key)
        logger.debug("Resolved metric order: %s", self.order)

    def _sort_key(self, metric_id: str) -> tuple[int, int]:
        metric = self.metrics[metric_id]
        return (metric.category.order, metric.priority)

    def _validate_tiers(self) -> None:
        edges = []
        offending = []
        for metric in self.metrics.values():
            for dep in metric.depends_on:
                target = self.metrics.get(dep)
                if target is not None and not target.is_foundational:
                    edges.append(f"{metric.id}->{dep}")
                    if metric.id not in offending:
                        offending.append(metric.id)
        if edges:
            raise DependencyError(
                "Metrics cannot depend on analytical metrics: " + ", ".join(edges),
                offending,
            )

    def order_for(self, targets: Iterable[str]) -> list[str]:
        """
        Resolved order restricted to ``targets`` and their dependencies.

        Raises:
            DependencyError: If a target is not a known metric.
        """
        targets = list(targets)
        unknown = [target for target in targets if target not in self.metrics]
        if unknown:
            raise DependencyError(f"Unknown metrics: {', '.join(unknown)}", unknown)
        needed = transitive_dependencies(self.dependencies, targets)
        return [metric_id for metric_id in self.order if metric_id in needed]

    def dependents_of(self, metric_id: str) -> list[str]:
        """Metrics that depend on ``metric_id``, directly or indirectly, in order."""
        affected = {metric_id}
        for candidate in self.order:
            if any(dep in affected for dep in self.dependencies[candidate]):
                affected.add(candidate)
        affected.discard(metric_id)
        return [candidate for candidate in self.order if candidate in affected]
