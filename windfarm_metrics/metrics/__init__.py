"""Metric calculations, formatting and the metrics registry."""

from windfarm_metrics.metrics.registry import MetricsRegistry, build_registry

__all__ = ["MetricsRegistry", "build_registry"]
