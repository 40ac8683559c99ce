"""Data models for scenarios, sources, settings and metric results."""

from windfarm_metrics.models.dict_data_accessor import DictDataAccessor
from windfarm_metrics.models.financing_model import FinancingModel
from windfarm_metrics.models.metric_result import MetricInput, MetricResult
from windfarm_metrics.models.project_settings import FinancingSettings, ProjectSettings
from windfarm_metrics.models.scenario import PercentileScenario
from windfarm_metrics.models.time_series import DataPoint

__all__ = [
    "DictDataAccessor",
    "FinancingModel",
    "MetricInput",
    "MetricResult",
    "FinancingSettings",
    "ProjectSettings",
    "PercentileScenario",
    "DataPoint",
]
