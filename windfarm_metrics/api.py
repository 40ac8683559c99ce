"""Public entry points for metric computation and sensitivity analysis."""

import logging
from collections.abc import Iterable, Mapping
from functools import lru_cache
from typing import Any

from windfarm_metrics.core.metrics_processor import MetricsProcessor
from windfarm_metrics.core.sensitivity_engine import SensitivityCube, SensitivityEngine
from windfarm_metrics.metrics.registry import MetricsRegistry
from windfarm_metrics.models.dict_data_accessor import as_accessor
from windfarm_metrics.models.metric_result import ScenarioResult
from windfarm_metrics.models.project_settings import ProjectSettings
from windfarm_metrics.models.scenario import build_scenarios
from windfarm_metrics.models.sensitivity_variables import (
    SensitivityVariable,
    discover_variables,
    select_variables,
)
from windfarm_metrics.models.source_extractor import SourceRegistry, build_source_registry
from windfarm_metrics.templates.metric_templates import build_default_registry
from windfarm_metrics.templates.registry_templates import (
    INDIRECT_VARIABLES_TEMPLATE,
    SOURCE_REGISTRY_TEMPLATE,
)

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def default_registries() -> tuple[MetricsRegistry, SourceRegistry]:
    """Metrics and source registries built from the bundled templates."""
    return (
        build_default_registry(),
        build_source_registry(SOURCE_REGISTRY_TEMPLATE).unwrap(),
    )


def _processor(
    registry: MetricsRegistry | None, source_registry: SourceRegistry | None
) -> MetricsProcessor:
    default_metrics, default_sources = default_registries()
    if registry is None:
        registry = default_metrics
    if source_registry is None:
        source_registry = default_sources
    return MetricsProcessor(registry, source_registry)


async def compute_all_metrics(
    percentile_scenarios: Iterable[Any] | None,
    per_source_percentiles: Mapping[str, float] | None,
    get_value_by_path: Any,
    *,
    fallback_percentile: float | None = None,
    targets: Iterable[str] | None = None,
    registry: MetricsRegistry | None = None,
    source_registry: SourceRegistry | None = None,
) -> dict[str, list[ScenarioResult]]:
    """
    Compute every metric for a batch of percentile scenarios.

    Args:
        percentile_scenarios: Unified percentiles (e.g. ``[10, 50, 90]``),
            scenario dicts or PercentileScenario instances.
        per_source_percentiles: Optional per-source selection computed as an
            extra ``perSource`` scenario.
        get_value_by_path: Data accessor, scenario dict or callable.
        fallback_percentile: Percentile for sources missing from
            ``per_source_percentiles``.
        targets: Optional metric ids to restrict the batch to.
        registry: Metrics registry (defaults to the bundled one).
        source_registry: Source registry (defaults to the bundled one).

    Returns:
        Dict mapping metric id to ``ScenarioResult`` entries in scenario order.

    Example:
        >>> results = asyncio.run(compute_all_metrics([50, 90], None, scenario))
        >>> [entry.scenario_key for entry in results["npv"]]
        ['P50', 'P90']
    """
    scenarios = build_scenarios(
        percentile_scenarios, per_source_percentiles, fallback_percentile
    )
    processor = _processor(registry, source_registry)
    logger.debug("Computing metrics for %d scenarios", len(scenarios))
    return processor.compute_all(scenarios, get_value_by_path, targets=targets)


async def build_sensitivity_cube(
    variables: Iterable[SensitivityVariable | str] | None,
    target_metrics: Iterable[str] | None,
    percentiles: Iterable[float] | None,
    get_value_by_path: Any,
    *,
    baseline_percentile: float | None = None,
    mode: str = "approximate",
    registry: MetricsRegistry | None = None,
    source_registry: SourceRegistry | None = None,
    indirect_config: Mapping[str, Any] | None = None,
) -> SensitivityCube:
    """
    Build a sensitivity cube for the scenario behind ``get_value_by_path``.

    Args:
        variables: Variables or variable ids; None discovers every
            percentile-bearing variable.
        target_metrics: Scalar metric ids; None uses metrics tagged
            ``sensitivity``.
        percentiles: Candidate percentiles; None uses the scenario's
            configured percentiles.
        get_value_by_path: Data accessor, scenario dict or callable.
        baseline_percentile: Base case percentile; defaults to the scenario's
            primary percentile.
        mode: ``approximate`` (scaling rules) or ``exact`` (pipeline re-run).
        registry: Metrics registry (defaults to the bundled one).
        source_registry: Source registry (defaults to the bundled one).
        indirect_config: Indirect variable template.

    Returns:
        SensitivityCube.
    """
    processor = _processor(registry, source_registry)
    accessor = as_accessor(get_value_by_path)
    settings = ProjectSettings.from_accessor(accessor)

    if indirect_config is None:
        indirect_config = INDIRECT_VARIABLES_TEMPLATE
    available = discover_variables(processor.source_registry, indirect_config)
    if variables is None:
        selected = available
    else:
        variables = list(variables)
        ids = [v for v in variables if isinstance(v, str)]
        chosen = {v.id: v for v in select_variables(available, ids)}
        selected = [chosen[v] if isinstance(v, str) else v for v in variables]

    if target_metrics is None:
        target_metrics = [
            metric.id
            for metric in processor.registry.by_usage("sensitivity")
            if not metric.is_time_series
        ]
    if percentiles is None:
        percentiles = settings.percentiles
    if baseline_percentile is None:
        baseline_percentile = settings.primary_percentile

    engine = SensitivityEngine(processor)
    return engine.build_cube(
        selected, target_metrics, baseline_percentile, percentiles, accessor, mode=mode
    )


def format_metric(metric_id: str, value: Any, registry: MetricsRegistry | None = None) -> str:
    """Display string for a metric value, e.g. ``format_metric("irr", 0.083) -> '8.3%'``."""
    if registry is None:
        registry = default_registries()[0]
    return registry.format(metric_id, value)


def format_impact(
    metric_id: str, delta: float | None, registry: MetricsRegistry | None = None
) -> str:
    """Display string for a change in a metric value."""
    if registry is None:
        registry = default_registries()[0]
    return registry.format_impact(metric_id, delta)
