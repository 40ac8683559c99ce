"""Project-level settings read from scenario data."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from windfarm_metrics.interfaces.data_accessor import DataAccessorInterface
from windfarm_metrics.templates.registry_templates import (
    ACCESSOR_PATHS,
    FINANCING_DEFAULTS,
    PROJECT_DEFAULTS,
)
from windfarm_metrics.utils.financial_utils import percent_to_decimal

logger = logging.getLogger(__name__)

AMORTIZATION_ALIASES = {
    "amortizing": "annuity",
    "annuity": "annuity",
    "equalPayments": "annuity",
    "equal_principal": "equal_principal",
    "equalPrincipal": "equal_principal",
    "bullet": "bullet",
}


def _number(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return float(default)
    return float(value)


@dataclass(frozen=True)
class FinancingSettings:
    """
    Financing terms with rates as decimals.

    Attributes:
        debt_ratio: Share of construction spend funded by debt.
        cost_of_equity: Equity discount rate (NPV default).
        cost_of_debt: Operational debt interest rate (LLCR discount rate).
        construction_debt_rate: Interest rate on construction drawdowns.
        loan_duration: Amortization term in years.
        grace_period: Interest-only years after COD.
        amortization: ``annuity``, ``equal_principal`` or ``bullet``.
        capitalize_idc: Whether interest during construction adds to principal.
    """

    debt_ratio: float = FINANCING_DEFAULTS["debtFinancingRatio"] / 100
    cost_of_equity: float = FINANCING_DEFAULTS["costOfEquity"] / 100
    cost_of_debt: float = FINANCING_DEFAULTS["costOfOperationalDebt"] / 100
    construction_debt_rate: float = FINANCING_DEFAULTS["costOfConstructionDebt"] / 100
    loan_duration: int = FINANCING_DEFAULTS["loanDuration"]
    grace_period: int = FINANCING_DEFAULTS["gracePeriod"]
    amortization: str = "annuity"
    capitalize_idc: bool = True

    @classmethod
    def from_dict(cls, financing: Mapping[str, Any] | None) -> "FinancingSettings":
        """
        Build settings from a raw financing block (percent values).

        Args:
            financing: Raw block, e.g. ``{"costOfEquity": 8, "loanDuration": 15}``.

        Returns:
            FinancingSettings with template defaults for missing keys.
        """
        financing = financing if isinstance(financing, Mapping) else {}
        defaults = FINANCING_DEFAULTS

        cost_of_debt = financing.get("costOfOperationalDebt", financing.get("costOfDebt"))
        amortization_raw = financing.get("amortizationType", defaults["amortizationType"])
        amortization = AMORTIZATION_ALIASES.get(amortization_raw)
        if amortization is None:
            logger.warning(
                "Unknown amortization type '%s', using annuity", amortization_raw
            )
            amortization = "annuity"

        return cls(
            debt_ratio=percent_to_decimal(
                financing.get("debtFinancingRatio"), defaults["debtFinancingRatio"]
            ),
            cost_of_equity=percent_to_decimal(
                financing.get("costOfEquity"), defaults["costOfEquity"]
            ),
            cost_of_debt=percent_to_decimal(
                cost_of_debt, defaults["costOfOperationalDebt"]
            ),
            construction_debt_rate=percent_to_decimal(
                financing.get("costOfConstructionDebt"),
                defaults["costOfConstructionDebt"],
            ),
            loan_duration=int(
                _number(financing.get("loanDuration"), defaults["loanDuration"])
            ),
            grace_period=int(
                _number(financing.get("gracePeriod"), defaults["gracePeriod"])
            ),
            amortization=amortization,
            capitalize_idc=financing.get("idcCapitalization", True) is not False,
        )


@dataclass(frozen=True)
class ProjectSettings:
    """
    Scenario-wide settings shared by transformers and metrics.

    Attributes:
        project_life: Number of operational years.
        num_turbines: Turbine count for per-turbine contracts.
        currency: Local currency code.
        percentiles: Available percentiles, ascending.
        primary_percentile: Default baseline percentile.
        financing: Financing terms.
    """

    project_life: int = PROJECT_DEFAULTS["projectLife"]
    num_turbines: int = PROJECT_DEFAULTS["numWTGs"]
    currency: str = PROJECT_DEFAULTS["currency"]
    percentiles: tuple[float, ...] = tuple(PROJECT_DEFAULTS["percentiles"])
    primary_percentile: float = PROJECT_DEFAULTS["primaryPercentile"]
    financing: FinancingSettings = field(default_factory=FinancingSettings)

    @classmethod
    def from_accessor(cls, accessor: DataAccessorInterface) -> "ProjectSettings":
        """
        Read settings from scenario data.

        Args:
            accessor: Scenario data accessor.

        Returns:
            ProjectSettings with template defaults for anything absent.
        """
        project_life = int(
            _number(
                accessor.get_value_by_path(ACCESSOR_PATHS["projectLife"]),
                PROJECT_DEFAULTS["projectLife"],
            )
        )
        num_turbines = int(
            _number(
                accessor.get_value_by_path(ACCESSOR_PATHS["numWTGs"]),
                PROJECT_DEFAULTS["numWTGs"],
            )
        )
        currency = accessor.get_value_by_path(
            ACCESSOR_PATHS["currency"], PROJECT_DEFAULTS["currency"]
        )
        primary = _number(
            accessor.get_value_by_path(ACCESSOR_PATHS["primaryPercentile"]),
            PROJECT_DEFAULTS["primaryPercentile"],
        )

        return cls(
            project_life=max(project_life, 1),
            num_turbines=max(num_turbines, 1),
            currency=str(currency),
            percentiles=cls._read_percentiles(
                accessor.get_value_by_path(ACCESSOR_PATHS["percentiles"], [])
            ),
            primary_percentile=primary,
            financing=FinancingSettings.from_dict(
                accessor.get_value_by_path(ACCESSOR_PATHS["financing"], {})
            ),
        )

    @staticmethod
    def _read_percentiles(raw: Any) -> tuple[float, ...]:
        """Accept ``[10, 50, 90]`` or ``[{"value": 10}, ...]``; fall back to defaults."""
        values: list[float] = []
        if isinstance(raw, (list, tuple)):
            for item in raw:
                value = item.get("value") if isinstance(item, Mapping) else item
                if isinstance(value, (int, float)) and not isinstance(value, bool):
                    values.append(float(value))
        if not values:
            return tuple(float(p) for p in PROJECT_DEFAULTS["percentiles"])
        return tuple(sorted(set(values)))
