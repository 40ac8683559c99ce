"""Core computation components."""

from windfarm_metrics.core.aggregation import AggregationStrategy, aggregate
from windfarm_metrics.core.dcf_engine import DCFEngine
from windfarm_metrics.core.dependency_resolver import DependencyResolver
from windfarm_metrics.core.metrics_processor import MetricsProcessor
from windfarm_metrics.core.refresh_pipeline import RefreshStage, RefreshStateMachine
from windfarm_metrics.core.sensitivity_engine import SensitivityCube, SensitivityEngine

__all__ = [
    "AggregationStrategy",
    "aggregate",
    "DCFEngine",
    "DependencyResolver",
    "MetricsProcessor",
    "RefreshStage",
    "RefreshStateMachine",
    "SensitivityCube",
    "SensitivityEngine",
]
