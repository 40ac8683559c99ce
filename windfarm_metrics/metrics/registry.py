"""Metrics registry: validated catalogue of metric configurations."""

import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any

from windfarm_metrics.core.aggregation import AggregationStrategy
from windfarm_metrics.core.dependency_resolver import DependencyResolver
from windfarm_metrics.core.errors import (
    DependencyError,
    MetricsError,
    RegistryBuildResult,
    UnknownMetricError,
    ValidationError,
)
from windfarm_metrics.models.metric_config import (
    MetricCategory,
    MetricConfig,
    Threshold,
)

logger = logging.getLogger(__name__)


class MetricsRegistry:
    """
    Read-only catalogue of metrics with their resolved computation order.

    Construct through ``build_registry``, which validates the configuration.

    Args:
        metrics: Metric configurations in declaration order.
        resolver: Resolver built over the same metrics.
    """

    def __init__(
        self, metrics: Sequence[MetricConfig], resolver: DependencyResolver
    ) -> None:
        self._metrics = {metric.id: metric for metric in metrics}
        self.resolver = resolver

    def __contains__(self, metric_id: object) -> bool:
        return metric_id in self._metrics

    def __iter__(self) -> Iterator[MetricConfig]:
        return (self._metrics[metric_id] for metric_id in self.order)

    def __len__(self) -> int:
        return len(self._metrics)

    @property
    def order(self) -> list[str]:
        return list(self.resolver.order)

    def get(self, metric_id: str) -> MetricConfig:
        """
        Metric configuration by id.

        Raises:
            UnknownMetricError: If the id is not registered.
        """
        if metric_id not in self._metrics:
            raise UnknownMetricError(f"Unknown metric '{metric_id}'")
        return self._metrics[metric_id]

    def by_usage(self, usage: str) -> list[MetricConfig]:
        return [metric for metric in self if usage in metric.usage]

    def order_for(self, targets: Iterable[str]) -> list[str]:
        """
        Computation order for ``targets`` and their dependencies.

        Raises:
            UnknownMetricError: If a target is not registered.
        """
        targets = list(targets)
        for target in targets:
            self.get(target)
        return self.resolver.order_for(targets)

    def format(self, metric_id: str, value: Any) -> str:
        return self.get(metric_id).format(value)

    def format_impact(self, metric_id: str, delta: float | None) -> str:
        return self.get(metric_id).format_impact(delta)


def _as_tuple(value: Any) -> tuple:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(value)


def _threshold(raw: Any) -> Threshold:
    if isinstance(raw, Threshold):
        return raw
    return Threshold(
        comparison=raw["comparison"],
        value=float(raw["value"]),
        severity=raw.get("severity", "warning"),
        message=raw.get("message", ""),
    )


def metric_from_dict(raw: Mapping[str, Any]) -> MetricConfig:
    """
    Build a MetricConfig from a definition dict.

    Raises:
        ValidationError: If required keys are missing or values are invalid.
    """
    try:
        category = MetricCategory(raw["category"])
        aggregation = raw.get("aggregation")
        if isinstance(aggregation, Mapping):
            aggregation = AggregationStrategy(
                aggregation.get("method", "sum"), dict(aggregation.get("options", {}))
            )
        metric = MetricConfig(
            id=raw["id"],
            category=category,
            priority=int(raw["priority"]),
            calculate=raw["calculate"],
            depends_on=_as_tuple(raw.get("depends_on")),
            aggregation=aggregation or AggregationStrategy(),
            format=raw.get("format", str),
            format_impact=raw.get("format_impact", str),
            thresholds=tuple(_threshold(item) for item in raw.get("thresholds", ())),
            name=raw.get("name", raw["id"]),
            short_name=raw.get("short_name", raw.get("name", raw["id"])),
            units=raw.get("units", ""),
            display_units=raw.get("display_units", ""),
            usage=_as_tuple(raw.get("usage")),
            source_groups=_as_tuple(raw.get("source_groups")),
            source_ids=_as_tuple(raw.get("source_ids")),
            description=raw.get("description", ""),
        )
    except (KeyError, TypeError, ValueError) as exc:
        metric_id = raw.get("id")
        raise ValidationError(f"Invalid metric definition {metric_id!r}: {exc}") from exc
    return metric


def _validate(metric: MetricConfig) -> list[MetricsError]:
    errors: list[MetricsError] = []
    if not callable(metric.calculate):
        errors.append(ValidationError(f"{metric.id}: calculate is not callable"))
    if not callable(metric.format) or not callable(metric.format_impact):
        errors.append(ValidationError(f"{metric.id}: formatters must be callable"))
    low, high = metric.category.priority_band
    if metric.priority < low or (high is not None and metric.priority > high):
        errors.append(
            ValidationError(
                f"{metric.id}: priority {metric.priority} outside the "
                f"{metric.category.value} band"
            )
        )
    return errors


def build_registry(
    definitions: Iterable[MetricConfig | Mapping[str, Any]],
) -> RegistryBuildResult:
    """
    Validate metric definitions and resolve their order.

    Nothing is raised for configuration problems; they are collected in the
    returned result, whose ``unwrap`` raises the first one.

    Args:
        definitions: MetricConfig instances or definition dicts.

    Returns:
        RegistryBuildResult wrapping a MetricsRegistry.
    """
    errors: list[MetricsError] = []
    metrics: list[MetricConfig] = []

    for definition in definitions:
        try:
            metric = (
                definition
                if isinstance(definition, MetricConfig)
                else metric_from_dict(definition)
            )
        except ValidationError as exc:
            errors.append(exc)
            continue
        errors.extend(_validate(metric))
        metrics.append(metric)

    try:
        resolver = DependencyResolver(metrics)
    except DependencyError as exc:
        errors.append(exc)
        return RegistryBuildResult(None, errors)

    if errors:
        return RegistryBuildResult(None, errors)

    logger.debug("Built metrics registry with %d metrics", len(metrics))
    return RegistryBuildResult(MetricsRegistry(metrics, resolver), [])
