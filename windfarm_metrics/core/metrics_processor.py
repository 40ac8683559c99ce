"""Metrics processor orchestrating metric computation across scenarios."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import replace
from typing import Any

from windfarm_metrics.core.aggregation import AggregationStrategy
from windfarm_metrics.core.errors import ErrorCode, MetricsError
from windfarm_metrics.interfaces.data_accessor import DataAccessorInterface
from windfarm_metrics.metrics.registry import MetricsRegistry
from windfarm_metrics.models.dict_data_accessor import as_accessor
from windfarm_metrics.models.metric_config import MetricConfig
from windfarm_metrics.models.metric_result import (
    MetricInput,
    MetricResult,
    ScenarioResult,
)
from windfarm_metrics.models.project_settings import ProjectSettings
from windfarm_metrics.models.scenario import PercentileScenario
from windfarm_metrics.models.source_extractor import (
    ExtractedSources,
    SourceRegistry,
    extract_all,
)
from windfarm_metrics.models.time_series import TimeSeries

logger = logging.getLogger(__name__)


class MetricsProcessor:
    """
    Computes registry metrics for one or many percentile scenarios.

    Each scenario is computed independently: sources are extracted once,
    then metrics run in resolved order. A failing metric yields a failed
    MetricResult and never stops its siblings or other scenarios.

    Args:
        registry: Metrics registry.
        source_registry: Source registry used for extraction.

    Example:
        >>> processor = MetricsProcessor(build_default_registry(), sources)
        >>> results = processor.compute_all([PercentileScenario.unified(50)], data)
        >>> results["npv"][0].result.value
    """

    def __init__(self, registry: MetricsRegistry, source_registry: SourceRegistry) -> None:
        self.registry = registry
        self.source_registry = source_registry

    def compute_all(
        self,
        scenarios: Iterable[PercentileScenario],
        accessor: DataAccessorInterface | Mapping[str, Any] | Any,
        targets: Iterable[str] | None = None,
    ) -> dict[str, list[ScenarioResult]]:
        """
        Compute metrics for every scenario.

        Args:
            scenarios: Scenarios to compute, in output order.
            accessor: Scenario data accessor, dict or ``get_value_by_path``
                callable.
            targets: Optional metric ids to restrict the pass to (their
                dependencies are computed too).

        Returns:
            Dict mapping metric id to ``ScenarioResult`` entries in scenario
            order.
        """
        accessor = as_accessor(accessor)
        order = self._order(targets)
        output: dict[str, list[ScenarioResult]] = {metric_id: [] for metric_id in order}

        for scenario in scenarios:
            results = self.compute_scenario(scenario, accessor, targets=targets)
            for metric_id in order:
                output[metric_id].append(ScenarioResult(scenario.key, results[metric_id]))

        return output

    def compute_scenario(
        self,
        scenario: PercentileScenario,
        accessor: DataAccessorInterface | Mapping[str, Any] | Any,
        targets: Iterable[str] | None = None,
        adjustments: Mapping[str, TimeSeries] | None = None,
        settings: ProjectSettings | None = None,
    ) -> dict[str, MetricResult]:
        """
        Compute metrics for a single scenario.

        Args:
            scenario: Active percentile scenario.
            accessor: Scenario data accessor.
            targets: Optional metric subset; dependencies are included.
            adjustments: Replacement series by source id, applied after
                extraction.
            settings: Project settings; read from the accessor when omitted.

        Returns:
            Dict of metric id to MetricResult in computation order.
        """
        accessor = as_accessor(accessor)
        settings = settings or ProjectSettings.from_accessor(accessor)
        order = self._order(targets)

        sources = self.extract_sources(scenario, accessor, settings, order)
        if adjustments:
            sources = sources.replace(adjustments)

        results: dict[str, MetricResult] = {}
        for metric_id in order:
            metric = self.registry.get(metric_id)
            results[metric_id] = self._compute_metric(
                metric, scenario, settings, sources, results
            )

        failed = sum(1 for result in results.values() if not result.ok)
        logger.debug(
            "Scenario %s: %d metrics computed, %d failed",
            scenario.key,
            len(results),
            failed,
        )
        return results

    def extract_sources(
        self,
        scenario: PercentileScenario,
        accessor: DataAccessorInterface,
        settings: ProjectSettings,
        order: Iterable[str] | None = None,
    ) -> ExtractedSources:
        """Extract the sources read by the foundational metrics in ``order``."""
        only = None
        if order is not None:
            only = self._sources_for(order)
        return extract_all(self.source_registry, scenario, accessor, settings, only)

    def _order(self, targets: Iterable[str] | None) -> list[str]:
        if targets is None:
            return self.registry.order
        return self.registry.order_for(targets)

    def _sources_for(self, order: Iterable[str]) -> set[str]:
        wanted: set[str] = set()
        for metric_id in order:
            metric = self.registry.get(metric_id)
            if not metric.is_foundational:
                continue
            wanted.update(metric.source_ids)
            wanted.update(
                source.id
                for source in self.source_registry
                if source.group in metric.source_groups
            )
        return wanted

    def _compute_metric(
        self,
        metric: MetricConfig,
        scenario: PercentileScenario,
        settings: ProjectSettings,
        sources: ExtractedSources,
        results: Mapping[str, MetricResult],
    ) -> MetricResult:
        failed_deps = [dep for dep in metric.depends_on if not results[dep].ok]
        if failed_deps:
            return MetricResult.failure(
                f"Dependencies failed: {', '.join(failed_deps)}",
                ErrorCode.DEPENDENCY_ERROR,
                failed_dependencies=failed_deps,
            )

        metric_input = MetricInput(
            metric_id=metric.id,
            scenario_key=scenario.key,
            dependencies={dep: results[dep] for dep in metric.depends_on},
            settings=settings,
            sources=sources if metric.is_foundational else None,
            source_ids=metric.source_ids,
            source_groups=metric.source_groups,
        )
        strategy = metric.aggregation or AggregationStrategy()

        try:
            result = metric.calculate(metric_input, strategy)
        except MetricsError as exc:
            logger.warning("Metric '%s' failed in %s: %s", metric.id, scenario.key, exc)
            return MetricResult.from_exception(exc)
        except Exception as exc:
            logger.exception("Metric '%s' raised in %s", metric.id, scenario.key)
            return MetricResult.from_exception(exc)

        if not isinstance(result, MetricResult):
            return MetricResult.failure(
                f"'{metric.id}' returned {type(result).__name__}, expected MetricResult"
            )
        return self._with_warnings(metric, result)

    @staticmethod
    def _with_warnings(metric: MetricConfig, result: MetricResult) -> MetricResult:
        if not result.ok or not isinstance(result.value, (int, float)):
            return result
        breached = metric.breached_thresholds(result.value)
        if not breached:
            return result
        warnings = [
            {"severity": threshold.severity, "message": threshold.message}
            for threshold in breached
        ]
        return replace(result, metadata={**result.metadata, "warnings": warnings})
