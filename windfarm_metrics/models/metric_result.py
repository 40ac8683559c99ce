"""Metric result and metric input containers."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, NamedTuple

from windfarm_metrics.core.errors import (
    ErrorCode,
    MetricsError,
    MissingDataError,
    ValidationError,
)
from windfarm_metrics.models.time_series import DataPoint

if TYPE_CHECKING:
    from windfarm_metrics.models.project_settings import ProjectSettings
    from windfarm_metrics.models.source_extractor import ExtractedSources

MetricValue = float | list[DataPoint] | None


@dataclass(frozen=True)
class MetricResult:
    """
    Outcome of one metric calculation.

    A result carrying an ``error`` never carries a value.

    Attributes:
        value: Scalar, time series, or None.
        error: Error message, or None on success.
        metadata: Extra details; ``error_code`` is set on failures.
    """

    value: MetricValue = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.error is not None and self.value is not None:
            raise ValidationError("A failed MetricResult cannot carry a value")

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_code(self) -> ErrorCode | None:
        return self.metadata.get("error_code")

    @classmethod
    def success(cls, value: MetricValue, **metadata: Any) -> "MetricResult":
        return cls(value=value, metadata=metadata)

    @classmethod
    def failure(
        cls,
        message: str,
        code: ErrorCode = ErrorCode.CALCULATION_FAILED,
        **metadata: Any,
    ) -> "MetricResult":
        return cls(error=message, metadata={**metadata, "error_code": code})

    @classmethod
    def from_exception(cls, exc: Exception, **metadata: Any) -> "MetricResult":
        """
        Convert an exception into a failed result.

        Taxonomy errors keep their code; anything else is CALCULATION_FAILED.
        """
        code = exc.code if isinstance(exc, MetricsError) else ErrorCode.CALCULATION_FAILED
        return cls.failure(str(exc) or type(exc).__name__, code, **metadata)


class ScenarioResult(NamedTuple):
    """A metric result tagged with the scenario it was computed for."""

    scenario_key: str
    result: MetricResult


@dataclass(frozen=True)
class MetricInput:
    """
    Inputs assembled for one metric in one scenario.

    Attributes:
        metric_id: Metric being computed.
        scenario_key: Scenario identifier.
        dependencies: Results of the metric's declared dependencies.
        settings: Project settings for the scenario.
        sources: Extracted sources; None for analytical metrics.
        source_ids: Extracted source ids the metric reads.
        source_groups: Extracted source groups the metric reads.
    """

    metric_id: str
    scenario_key: str
    dependencies: Mapping[str, MetricResult]
    settings: "ProjectSettings"
    sources: "ExtractedSources | None" = None
    source_ids: tuple[str, ...] = ()
    source_groups: tuple[str, ...] = ()

    def series(self, metric_id: str) -> list[DataPoint]:
        """
        Time series value of a dependency.

        Raises:
            MissingDataError: If the dependency is absent, failed or not a series.
        """
        result = self.dependencies.get(metric_id)
        if result is None or not result.ok or not isinstance(result.value, list):
            raise MissingDataError(f"'{self.metric_id}' requires series '{metric_id}'")
        return result.value

    def scalar(self, metric_id: str) -> float:
        """Scalar value of a dependency (MissingDataError when unavailable)."""
        result = self.dependencies.get(metric_id)
        if result is None or not result.ok or not isinstance(result.value, (int, float)):
            raise MissingDataError(f"'{self.metric_id}' requires value '{metric_id}'")
        return float(result.value)
