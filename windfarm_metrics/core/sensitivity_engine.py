"""Sensitivity engine building metric impact cubes over percentile moves."""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, NamedTuple

import pandas as pd

from windfarm_metrics.core.errors import (
    MetricsError,
    MissingDataError,
    UnknownMetricError,
    UnknownVariableError,
    ValidationError,
)
from windfarm_metrics.core.metrics_processor import MetricsProcessor
from windfarm_metrics.interfaces.data_accessor import DataAccessorInterface
from windfarm_metrics.models.dict_data_accessor import as_accessor
from windfarm_metrics.models.project_settings import ProjectSettings
from windfarm_metrics.models.scenario import PercentileScenario
from windfarm_metrics.models.sensitivity_variables import (
    ImpactType,
    SensitivityVariable,
    impact_category,
)
from windfarm_metrics.models.source_extractor import (
    ExtractedSources,
    SourceRegistry,
    extract_all,
    select_percentile_series,
)
from windfarm_metrics.models.time_series import TimeSeries, magnitude, scale_series

logger = logging.getLogger(__name__)

IRR_DAMPING = 0.6
RECALCULATION_DAMPING = 0.3

RETURN_METRICS = {"irr", "equityIrr"}
CASHFLOW_METRICS = {"npv", "avgDscr", "minDscr", "llcr", "avgIcr", "minIcr"}
INVERSE_METRICS = {"lcoe", "payback"}

MODES = ("approximate", "exact")


def scale_metric(
    metric_id: str, base_value: float, ratio: float, category: str
) -> float | None:
    """
    Estimate a metric after a driver's magnitude changes by ``ratio``.

    Rules by metric:
        * IRR-type: ``base -/+ |base| * 0.6 * (ratio - 1)`` for costs/revenues.
        * NPV and coverage ratios: ``base - |base| * (ratio - 1)`` for costs,
          ``base + |base| * (ratio - 1)`` for revenues. For a positive base
          these are ``base * (2 - ratio)`` and ``base * ratio``; a cost increase
          lowers the value and a revenue increase raises it whatever the sign
          of the base.
        * LCOE and payback: ``base * ratio`` for costs, ``base / ratio``
          for revenues.
        * Anything else, and ``mixed`` drivers: ``base * ratio``.

    Args:
        metric_id: Target metric id.
        base_value: Metric value at baseline.
        ratio: Driver magnitude at the candidate percentile over baseline.
        category: ``cost``, ``revenue`` or ``mixed``.

    Returns:
        Estimated metric value, or None when the estimate is undefined.
    """
    is_cost = category == "cost"
    is_revenue = category == "revenue"

    if metric_id in RETURN_METRICS and (is_cost or is_revenue):
        change = abs(base_value) * (ratio - 1) * IRR_DAMPING
        return base_value - change if is_cost else base_value + change
    if metric_id in CASHFLOW_METRICS and (is_cost or is_revenue):
        change = abs(base_value) * (ratio - 1)
        return base_value - change if is_cost else base_value + change
    if metric_id in INVERSE_METRICS and (is_cost or is_revenue):
        if is_cost:
            return base_value * ratio
        if ratio == 0:
            return None
        return base_value / ratio
    return base_value * ratio


def recalculation_estimate(base_value: float, ratio: float) -> float:
    """Damped estimate for drivers that would need a schedule recalculation."""
    return base_value * (1 + (ratio - 1) * RECALCULATION_DAMPING)


@dataclass
class SensitivityCell:
    """
    Impact estimates for one (variable, metric) pair.

    Attributes:
        variable_id: Moved variable.
        metric_id: Target metric.
        base_value: Metric value at baseline (None if unavailable).
        impacts: Estimated metric value by candidate percentile.
        error: Reason the estimates are unavailable, if any.
    """

    variable_id: str
    metric_id: str
    base_value: float | None
    impacts: dict[float, float | None] = field(default_factory=dict)
    error: str | None = None

    def delta(self, percentile: float) -> float | None:
        value = self.impacts.get(float(percentile))
        if value is None or self.base_value is None:
            return None
        return value - self.base_value


class TornadoBar(NamedTuple):
    """Swing of one metric between a low and a high percentile of a variable."""

    variable_id: str
    low_value: float | None
    high_value: float | None
    low_delta: float | None
    high_delta: float | None
    swing: float


class SensitivityCube:
    """
    Impact estimates indexed by variable, target metric and percentile.

    Args:
        variables: Variables analysed, in analysis order.
        metrics: Target metric ids.
        baseline_percentile: Percentile every other driver stays at.
        percentiles: Candidate percentiles (baseline excluded).
        cells: Cells keyed by ``(variable_id, metric_id)``.
        mode: ``approximate`` or ``exact``.
        base_values: Baseline value per target metric.
    """

    def __init__(
        self,
        variables: Sequence[SensitivityVariable],
        metrics: Sequence[str],
        baseline_percentile: float,
        percentiles: Sequence[float],
        cells: Mapping[tuple[str, str], SensitivityCell],
        mode: str = "approximate",
        base_values: Mapping[str, float | None] | None = None,
    ) -> None:
        self.variables = {variable.id: variable for variable in variables}
        self.metrics = list(metrics)
        self.baseline_percentile = float(baseline_percentile)
        self.percentiles = [float(p) for p in percentiles]
        self.cells = dict(cells)
        self.mode = mode
        self.base_values = dict(base_values or {})

    def __len__(self) -> int:
        return len(self.cells)

    def cell(self, variable_id: str, metric_id: str) -> SensitivityCell:
        """
        Cell for a variable and target metric.

        Raises:
            UnknownVariableError: If the variable is not in the cube.
            UnknownMetricError: If the metric is not a cube target.
        """
        if variable_id not in self.variables:
            raise UnknownVariableError(f"Variable '{variable_id}' not in sensitivity cube")
        if metric_id not in self.metrics:
            raise UnknownMetricError(f"Metric '{metric_id}' not in sensitivity cube")
        return self.cells[(variable_id, metric_id)]

    def value(self, variable_id: str, metric_id: str, percentile: float) -> float | None:
        return self.cell(variable_id, metric_id).impacts.get(float(percentile))

    def delta(self, variable_id: str, metric_id: str, percentile: float) -> float | None:
        return self.cell(variable_id, metric_id).delta(percentile)

    def tornado(
        self,
        metric_id: str,
        low: float | None = None,
        high: float | None = None,
        limit: int | None = None,
    ) -> list[TornadoBar]:
        """
        Variables ranked by the swing they cause in a metric.

        Args:
            metric_id: Target metric.
            low: Low percentile (defaults to the lowest candidate).
            high: High percentile (defaults to the highest candidate).
            limit: Maximum number of bars.

        Returns:
            TornadoBar list sorted by descending swing; variables without
            estimates at either end are left out.
        """
        if metric_id not in self.metrics:
            raise UnknownMetricError(f"Metric '{metric_id}' not in sensitivity cube")
        if not self.percentiles:
            return []
        low = min(self.percentiles) if low is None else float(low)
        high = max(self.percentiles) if high is None else float(high)

        bars = []
        for variable_id in self.variables:
            cell = self.cells[(variable_id, metric_id)]
            low_delta = cell.delta(low)
            high_delta = cell.delta(high)
            if low_delta is None and high_delta is None:
                continue
            swing = abs((high_delta or 0.0) - (low_delta or 0.0))
            bars.append(
                TornadoBar(
                    variable_id,
                    cell.impacts.get(low),
                    cell.impacts.get(high),
                    low_delta,
                    high_delta,
                    swing,
                )
            )

        bars.sort(key=lambda bar: (-bar.swing, bar.variable_id))
        return bars[:limit] if limit is not None else bars

    def to_frame(self) -> pd.DataFrame:
        """
        Long-form table with one row per (variable, metric, percentile).

        Columns: variable, kind, metric, percentile, base_value, value, delta.
        """
        rows: list[dict[str, Any]] = []
        for (variable_id, metric_id), cell in self.cells.items():
            kind = self.variables[variable_id].kind.value
            for percentile in self.percentiles:
                rows.append(
                    {
                        "variable": variable_id,
                        "kind": kind,
                        "metric": metric_id,
                        "percentile": percentile,
                        "base_value": cell.base_value,
                        "value": cell.impacts.get(percentile),
                        "delta": cell.delta(percentile),
                    }
                )
        columns = ["variable", "kind", "metric", "percentile", "base_value", "value", "delta"]
        return pd.DataFrame(rows, columns=columns)


class SensitivityEngine:
    """
    Builds sensitivity cubes on top of a MetricsProcessor.

    ``approximate`` mode scales baseline metric values by the relative change
    of each driver; ``exact`` mode re-runs the metric pipeline with the
    driver moved.

    Args:
        processor: Processor holding the metric and source registries.
    """

    def __init__(self, processor: MetricsProcessor) -> None:
        self.processor = processor

    @property
    def source_registry(self) -> SourceRegistry:
        return self.processor.source_registry

    def build_cube(
        self,
        variables: Iterable[SensitivityVariable],
        target_metrics: Iterable[str],
        baseline_percentile: float,
        percentiles: Iterable[float],
        accessor: DataAccessorInterface | Mapping[str, Any] | Any,
        mode: str = "approximate",
    ) -> SensitivityCube:
        """
        Estimate each target metric with one variable moved at a time.

        Args:
            variables: Variables to move.
            target_metrics: Scalar metric ids.
            baseline_percentile: Percentile all drivers sit at in the base case.
            percentiles: Candidate percentiles; the baseline is skipped.
            accessor: Scenario data accessor.
            mode: ``approximate`` or ``exact``.

        Returns:
            SensitivityCube.

        Raises:
            ValidationError: On an unknown mode or a time-series target.
            UnknownMetricError: If a target is not registered.
        """
        if mode not in MODES:
            raise ValidationError(f"Unknown sensitivity mode '{mode}'")
        variables = list(variables)
        targets = list(dict.fromkeys(target_metrics))
        for metric_id in targets:
            if self.processor.registry.get(metric_id).is_time_series:
                raise ValidationError(f"Sensitivity target '{metric_id}' is a time series")

        accessor = as_accessor(accessor)
        settings = ProjectSettings.from_accessor(accessor)
        baseline = PercentileScenario.unified(baseline_percentile)
        candidates = [
            float(p) for p in dict.fromkeys(percentiles) if float(p) != baseline.percentile
        ]

        base_results = self.processor.compute_scenario(
            baseline, accessor, targets=targets, settings=settings
        )
        base_values = {
            metric_id: base_results[metric_id].value
            if base_results[metric_id].ok
            else None
            for metric_id in targets
        }

        cells: dict[tuple[str, str], SensitivityCell] = {}
        for variable in variables:
            if mode == "exact":
                estimates = self._exact(
                    variable, targets, baseline, candidates, accessor, settings
                )
            else:
                estimates = self._approximate(
                    variable, targets, base_values, baseline, candidates, accessor, settings
                )
            for metric_id in targets:
                cells[(variable.id, metric_id)] = self._cell(
                    variable,
                    metric_id,
                    base_values[metric_id],
                    estimates,
                    base_results[metric_id].error,
                )

        logger.debug(
            "Built %s sensitivity cube: %d variables x %d metrics x %d percentiles",
            mode,
            len(variables),
            len(targets),
            len(candidates),
        )
        return SensitivityCube(
            variables, targets, baseline.percentile, candidates, cells, mode, base_values
        )

    @staticmethod
    def _cell(
        variable: SensitivityVariable,
        metric_id: str,
        base_value: float | None,
        estimates: Mapping[str, Any],
        base_error: str | None,
    ) -> SensitivityCell:
        if base_value is None:
            return SensitivityCell(
                variable.id, metric_id, None, error=f"No baseline value: {base_error}"
            )
        if "error" in estimates:
            return SensitivityCell(
                variable.id, metric_id, base_value, error=estimates["error"]
            )
        return SensitivityCell(
            variable.id, metric_id, base_value, impacts=estimates["values"][metric_id]
        )

    def _approximate(
        self,
        variable: SensitivityVariable,
        targets: Sequence[str],
        base_values: Mapping[str, float | None],
        baseline: PercentileScenario,
        candidates: Sequence[float],
        accessor: DataAccessorInterface,
        settings: ProjectSettings,
    ) -> dict[str, Any]:
        try:
            ratios = self._ratios(variable, baseline, candidates, accessor, settings)
        except MetricsError as exc:
            logger.warning("Sensitivity variable '%s' unavailable: %s", variable.id, exc)
            return {"error": str(exc)}

        values: dict[str, dict[float, float | None]] = {}
        for metric_id in targets:
            base_value = base_values[metric_id]
            values[metric_id] = {
                percentile: None
                if base_value is None
                else self._estimate(variable, metric_id, base_value, ratios[percentile])
                for percentile in candidates
            }
        return {"values": values}

    def _estimate(
        self,
        variable: SensitivityVariable,
        metric_id: str,
        base_value: float,
        ratio: float | Mapping[str, float],
    ) -> float | None:
        if variable.is_direct:
            category = impact_category(self.source_registry, variable.id)
            return scale_metric(metric_id, base_value, ratio, category)

        estimate: float | None = base_value
        for affect in variable.affects:
            if estimate is None:
                break
            affect_ratio = ratio[affect.source_id]
            if affect.impact_type is ImpactType.RECALCULATION:
                estimate = recalculation_estimate(estimate, affect_ratio)
            else:
                category = impact_category(self.source_registry, affect.source_id)
                estimate = scale_metric(metric_id, estimate, affect_ratio, category)
        return estimate

    def _ratios(
        self,
        variable: SensitivityVariable,
        baseline: PercentileScenario,
        candidates: Sequence[float],
        accessor: DataAccessorInterface,
        settings: ProjectSettings,
    ) -> dict[float, Any]:
        """
        Driver change per candidate percentile.

        Direct variables map to a single magnitude ratio; indirect variables
        map to a ratio per affected source.
        """
        if variable.is_direct:
            base_series = self._direct_series(variable, baseline, accessor, settings)
            base_size = magnitude(base_series)
            ratios = {}
            for percentile in candidates:
                moved = baseline.with_source(variable.id, percentile)
                size = magnitude(self._direct_series(variable, moved, accessor, settings))
                ratios[percentile] = size / base_size if base_size else 1.0
            return ratios

        base_series = self._indirect_series(variable, baseline.percentile, accessor)
        base_size = magnitude(base_series)
        affected = self._affected_magnitudes(variable, baseline, accessor, settings)
        ratios = {}
        for percentile in candidates:
            series = self._indirect_series(variable, percentile, accessor)
            ratios[percentile] = {
                affect.source_id: self._indirect_ratio(
                    affect.impact_type,
                    magnitude(series),
                    base_size,
                    sum(point.value for point in series)
                    - sum(point.value for point in base_series),
                    affected.get(affect.source_id, 0.0),
                )
                for affect in variable.affects
            }
        return ratios

    @staticmethod
    def _indirect_ratio(
        impact_type: ImpactType,
        size: float,
        base_size: float,
        total_change: float,
        affected_size: float,
    ) -> float:
        if impact_type is ImpactType.ADDITIVE:
            if not affected_size:
                return 1.0
            return (affected_size + total_change) / affected_size
        return size / base_size if base_size else 1.0

    def _direct_series(
        self,
        variable: SensitivityVariable,
        scenario: PercentileScenario,
        accessor: DataAccessorInterface,
        settings: ProjectSettings,
    ) -> TimeSeries:
        extracted = extract_all(
            self.source_registry, scenario, accessor, settings, only=[variable.id]
        )
        return extracted.get(variable.id)

    def _indirect_series(
        self,
        variable: SensitivityVariable,
        percentile: float,
        accessor: DataAccessorInterface,
    ) -> TimeSeries:
        raw = accessor.get_value_by_path(list(variable.path or ()))
        if raw is None:
            raise MissingDataError(f"Variable '{variable.id}' has no percentile data")
        _, series = select_percentile_series(
            raw, variable.id, PercentileScenario.unified(percentile)
        )
        return series

    def _affected_magnitudes(
        self,
        variable: SensitivityVariable,
        baseline: PercentileScenario,
        accessor: DataAccessorInterface,
        settings: ProjectSettings,
    ) -> dict[str, float]:
        source_ids = [affect.source_id for affect in variable.affects]
        extracted = extract_all(
            self.source_registry, baseline, accessor, settings, only=source_ids
        )
        return {
            source_id: magnitude(extracted.get(source_id))
            for source_id in source_ids
            if source_id in extracted
        }

    def _exact(
        self,
        variable: SensitivityVariable,
        targets: Sequence[str],
        baseline: PercentileScenario,
        candidates: Sequence[float],
        accessor: DataAccessorInterface,
        settings: ProjectSettings,
    ) -> dict[str, Any]:
        values: dict[str, dict[float, float | None]] = {m: {} for m in targets}
        ratios: dict[float, Any] = {}
        baseline_sources = None
        if not variable.is_direct:
            try:
                ratios = self._ratios(variable, baseline, candidates, accessor, settings)
                baseline_sources = self.processor.extract_sources(
                    baseline, accessor, settings, self.processor.registry.order_for(targets)
                )
            except MetricsError as exc:
                logger.warning("Sensitivity variable '%s' unavailable: %s", variable.id, exc)
                return {"error": str(exc)}

        for percentile in candidates:
            if variable.is_direct:
                results = self.processor.compute_scenario(
                    baseline.with_source(variable.id, percentile),
                    accessor,
                    targets=targets,
                    settings=settings,
                )
            else:
                adjustments = self._adjustments(
                    variable, baseline_sources, ratios[percentile]
                )
                results = self.processor.compute_scenario(
                    baseline,
                    accessor,
                    targets=targets,
                    adjustments=adjustments,
                    settings=settings,
                )
            for metric_id in targets:
                result = results[metric_id]
                values[metric_id][percentile] = result.value if result.ok else None
        return {"values": values}

    @staticmethod
    def _adjustments(
        variable: SensitivityVariable,
        sources: ExtractedSources,
        ratios: Mapping[str, float],
    ) -> dict[str, TimeSeries]:
        adjustments: dict[str, TimeSeries] = {}
        for affect in variable.affects:
            if affect.source_id not in sources:
                continue
            series = adjustments.get(affect.source_id, sources.get(affect.source_id))
            ratio = ratios[affect.source_id]
            if affect.impact_type is ImpactType.RECALCULATION:
                ratio = 1 + (ratio - 1) * RECALCULATION_DAMPING
            adjustments[affect.source_id] = scale_series(series, ratio)
        return adjustments

