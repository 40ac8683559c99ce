"""Metric configuration types."""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from windfarm_metrics.core.aggregation import AggregationStrategy
    from windfarm_metrics.models.metric_result import MetricInput, MetricResult


class MetricCategory(str, Enum):
    """
    Tier of a metric.

    Foundational metrics read extracted sources; analytical metrics read only
    foundational results.
    """

    FOUNDATIONAL = "foundational"
    ANALYTICAL = "analytical"

    @property
    def priority_band(self) -> tuple[int, int | None]:
        """Inclusive priority range (upper bound None for unbounded)."""
        if self is MetricCategory.FOUNDATIONAL:
            return (1, 9)
        return (10, None)

    @property
    def order(self) -> int:
        return 0 if self is MetricCategory.FOUNDATIONAL else 1


@dataclass(frozen=True)
class Threshold:
    """
    Warning threshold on a metric value.

    Attributes:
        comparison: ``"below"`` or ``"above"``.
        value: Boundary value.
        severity: ``"warning"`` or ``"critical"``.
        message: Description shown with the warning.
    """

    comparison: str
    value: float
    severity: str = "warning"
    message: str = ""

    def is_breached(self, metric_value: float | None) -> bool:
        if metric_value is None:
            return False
        if self.comparison == "below":
            return metric_value < self.value
        return metric_value > self.value


@dataclass(frozen=True)
class MetricConfig:
    """
    Declarative description of one metric.

    Attributes:
        id: Metric identifier.
        category: Foundational or analytical tier.
        priority: Ordering hint within the tier's band.
        calculate: ``calculate(input, strategy) -> MetricResult``.
        depends_on: Ids of metrics whose results are inputs.
        aggregation: Strategy handed to ``calculate``.
        format: Formats a value for display.
        format_impact: Formats a change in value for display.
        thresholds: Warning thresholds.
        name: Display name.
        short_name: Compact display name.
        units: Value units, e.g. ``currency``, ``percentage``, ``ratio``.
        display_units: Units label for presentation.
        usage: Presentation tags, e.g. ``("financeability", "sensitivity")``.
        source_groups: Extracted source groups a foundational metric reads.
        source_ids: Extracted source ids a foundational metric reads.
        description: Long description.
    """

    id: str
    category: MetricCategory
    priority: int
    calculate: Callable[["MetricInput", "AggregationStrategy"], "MetricResult"]
    depends_on: tuple[str, ...] = ()
    aggregation: "AggregationStrategy | None" = None
    format: Callable[[Any], str] = str
    format_impact: Callable[[float | None], str] = str
    thresholds: tuple[Threshold, ...] = ()
    name: str = ""
    short_name: str = ""
    units: str = ""
    display_units: str = ""
    usage: tuple[str, ...] = ()
    source_groups: tuple[str, ...] = ()
    source_ids: tuple[str, ...] = ()
    description: str = ""

    @property
    def is_foundational(self) -> bool:
        return self.category is MetricCategory.FOUNDATIONAL

    @property
    def is_time_series(self) -> bool:
        return self.units == "timeSeries"

    def breached_thresholds(self, value: float | None) -> list[Threshold]:
        return [threshold for threshold in self.thresholds if threshold.is_breached(value)]
