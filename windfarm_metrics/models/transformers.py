"""Named transformer lookup for source extraction."""

from collections.abc import Callable, Mapping
from typing import Any

from windfarm_metrics.models import cost_model, financing_model
from windfarm_metrics.models.time_series import TimeSeries
from windfarm_metrics.models.transform_context import TransformContext

Transformer = Callable[[Any, TransformContext], TimeSeries]

TRANSFORMERS: dict[str, Transformer] = {
    "fixed_cost": cost_model.fixed_cost,
    "operational_unit": cost_model.operational_unit,
    "major_repairs": cost_model.major_repairs,
    "reserve_funds": cost_model.reserve_funds,
    "capex_drawdown": cost_model.capex_drawdown,
    "contract_fees": cost_model.contract_fees,
    "debt_drawdown": financing_model.debt_drawdown,
    "equity_drawdown": financing_model.equity_drawdown,
    "interest_during_construction": financing_model.interest_during_construction,
    "debt_interest": financing_model.debt_interest,
    "debt_principal": financing_model.debt_principal,
    "debt_balance": financing_model.debt_balance,
}


def get_transformer(
    name: str, transformers: Mapping[str, Transformer] | None = None
) -> Transformer:
    """
    Look up a transformer by name.

    Raises:
        KeyError: If the name is not registered.
    """
    table = TRANSFORMERS if transformers is None else transformers
    if name not in table:
        raise KeyError(f"Unknown transformer '{name}'. Available: {sorted(table)}")
    return table[name]
