"""Financing model for construction funding and debt service schedules."""

import logging
from typing import Any

import numpy as np

from windfarm_metrics.models.cost_model import capex_drawdown
from windfarm_metrics.models.project_settings import FinancingSettings
from windfarm_metrics.models.time_series import DataPoint, TimeSeries
from windfarm_metrics.models.transform_context import TransformContext
from windfarm_metrics.utils.financial_utils import calculate_annuity_payment

logger = logging.getLogger(__name__)


class FinancingModel:
    """
    Calculates operational debt service for a construction-funded loan.

    Supports annuity, equal-principal, and bullet repayment with an optional
    interest-only grace period after COD.
    """

    def calculate(
        self,
        principal: float,
        financing: FinancingSettings,
        project_life: int,
    ) -> dict[str, Any]:
        """
        Calculate the debt service schedule over operational years.

        Args:
            principal: Debt outstanding at COD (drawdowns plus capitalised IDC).
            financing: Financing terms.
            project_life: Number of operational years.

        Returns:
            Dictionary with ``years`` (1..n) and matching arrays
            ``opening_balance``, ``interest``, ``principal``, ``debt_service``,
            ``closing_balance``, plus ``annuity`` and ``initial_balance``.
        """
        n_years = max(int(project_life), 0)
        years = np.arange(1, n_years + 1)

        if principal <= 0 or n_years == 0:
            return self._no_debt_results(years)

        rate = financing.cost_of_debt
        grace = max(financing.grace_period, 0)
        term = max(financing.loan_duration, 1)

        opening = np.zeros(n_years)
        interest = np.zeros(n_years)
        repayment = np.zeros(n_years)
        closing = np.zeros(n_years)

        annuity = calculate_annuity_payment(principal, rate, term)
        straight_line = principal / term
        balance = principal

        for index, year in enumerate(years):
            if balance <= 0:
                break
            opening[index] = balance
            interest[index] = balance * rate
            amortizing_year = year - grace

            if amortizing_year >= 1:
                if financing.amortization == "bullet":
                    if amortizing_year == term:
                        repayment[index] = balance
                elif financing.amortization == "equal_principal":
                    repayment[index] = min(straight_line, balance)
                else:
                    repayment[index] = min(annuity - interest[index], balance)

            balance = balance - repayment[index]

            # Handle floating point precision
            if balance < 0.01:
                balance = 0.0
            closing[index] = balance

        if balance > 0:
            logger.warning(
                "Loan not fully repaid within project life: %.2f outstanding", balance
            )

        return {
            "years": years,
            "initial_balance": float(principal),
            "opening_balance": opening,
            "interest": interest,
            "principal": repayment,
            "debt_service": interest + repayment,
            "closing_balance": closing,
            "annuity": annuity if financing.amortization == "annuity" else 0.0,
        }

    @staticmethod
    def _no_debt_results(years: np.ndarray) -> dict[str, Any]:
        """
        Return zero-filled results for an all-equity project.

        Args:
            years: Operational years.

        Returns:
            Dictionary with zeros for all debt-related values.
        """
        zeros = np.zeros(len(years))
        return {
            "years": years,
            "initial_balance": 0.0,
            "opening_balance": zeros.copy(),
            "interest": zeros.copy(),
            "principal": zeros.copy(),
            "debt_service": zeros.copy(),
            "closing_balance": zeros.copy(),
            "annuity": 0.0,
        }


def _financing(context: TransformContext) -> FinancingSettings:
    if "financing" in context.references:
        return FinancingSettings.from_dict(context.references["financing"])
    return context.financing


def debt_drawdown(raw: Any, context: TransformContext) -> TimeSeries:
    """Construction spend funded by debt, per year."""
    ratio = _financing(context).debt_ratio
    return [DataPoint(p.year, p.value * ratio) for p in capex_drawdown(raw, context)]


def equity_drawdown(raw: Any, context: TransformContext) -> TimeSeries:
    """Construction spend funded by equity, per year."""
    ratio = 1.0 - _financing(context).debt_ratio
    return [DataPoint(p.year, p.value * ratio) for p in capex_drawdown(raw, context)]


def interest_during_construction(raw: Any, context: TransformContext) -> TimeSeries:
    """
    Interest accrued on construction debt, assuming even drawdown within a year.

    Returns an empty series when IDC is not capitalised.
    """
    financing = _financing(context)
    if not financing.capitalize_idc:
        return []

    idc: TimeSeries = []
    cumulative = 0.0
    for point in debt_drawdown(raw, context):
        average_balance = cumulative + point.value / 2
        cumulative += point.value
        interest = average_balance * financing.construction_debt_rate
        if interest > 0:
            idc.append(DataPoint(point.year, interest))
    return idc


def _schedule(raw: Any, context: TransformContext) -> dict[str, Any]:
    principal = sum(p.value for p in debt_drawdown(raw, context))
    principal += sum(p.value for p in interest_during_construction(raw, context))
    return FinancingModel().calculate(principal, _financing(context), context.project_life)


def _as_series(years: np.ndarray, values: np.ndarray) -> TimeSeries:
    return [
        DataPoint(int(year), float(value))
        for year, value in zip(years, values)
        if value != 0
    ]


def debt_interest(raw: Any, context: TransformContext) -> TimeSeries:
    """Operational interest payments."""
    schedule = _schedule(raw, context)
    return _as_series(schedule["years"], schedule["interest"])


def debt_principal(raw: Any, context: TransformContext) -> TimeSeries:
    """Operational principal repayments."""
    schedule = _schedule(raw, context)
    return _as_series(schedule["years"], schedule["principal"])


def debt_balance(raw: Any, context: TransformContext) -> TimeSeries:
    """
    Outstanding debt: the COD balance at year 0, then closing balances.

    Years after full repayment are omitted.
    """
    schedule = _schedule(raw, context)
    if schedule["initial_balance"] <= 0:
        return []
    balances = [DataPoint(0, schedule["initial_balance"])]
    balances.extend(_as_series(schedule["years"], schedule["closing_balance"]))
    return balances

