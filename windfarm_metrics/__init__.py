"""
Wind-farm project finance metrics.

Computes project-finance metrics across percentile scenarios:
- Extracts cash-flow sources from scenario data into annual time series
- Resolves a registry of foundational and analytical metrics in dependency order
- Calculates NPV, IRR (project & equity), DSCR, ICR, LLCR, LCOE and payback
- Estimates metric sensitivity to percentile moves of each driver
"""

from windfarm_metrics.api import (
    build_sensitivity_cube,
    compute_all_metrics,
    format_impact,
    format_metric,
)
from windfarm_metrics.templates.metric_templates import METRIC_DEFINITIONS
from windfarm_metrics.templates.registry_templates import SOURCE_REGISTRY_TEMPLATE

__version__ = "1.0.0"
__all__ = [
    "compute_all_metrics",
    "build_sensitivity_cube",
    "format_metric",
    "format_impact",
    "METRIC_DEFINITIONS",
    "SOURCE_REGISTRY_TEMPLATE",
]
