"""Context handed to source transformers."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from windfarm_metrics.interfaces.data_accessor import DataAccessorInterface
from windfarm_metrics.models.project_settings import FinancingSettings


@dataclass(frozen=True)
class TransformContext:
    """
    Scenario facts a transformer may need beyond its raw data.

    Attributes:
        project_life: Number of operational years.
        num_turbines: Turbine count for per-turbine scaling.
        financing: Financing terms from project settings.
        references: Raw values of the source's named reference paths.
        accessor: Scenario accessor for anything else.
    """

    project_life: int
    num_turbines: int = 1
    financing: FinancingSettings = field(default_factory=FinancingSettings)
    references: Mapping[str, Any] = field(default_factory=dict)
    accessor: DataAccessorInterface | None = None
