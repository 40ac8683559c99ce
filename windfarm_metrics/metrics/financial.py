"""Analytical return metrics: NPV, IRR, equity IRR, LCOE, LLCR, payback."""

import numpy as np

from windfarm_metrics.core.aggregation import AggregationStrategy, apply_filter
from windfarm_metrics.core.dcf_engine import DCFEngine
from windfarm_metrics.core.errors import (
    CalculationFailedError,
    ErrorCode,
    MissingDataError,
)
from windfarm_metrics.models.metric_result import MetricInput, MetricResult
from windfarm_metrics.models.time_series import (
    DataPoint,
    TimeSeries,
    series_arrays,
    series_to_map,
    sort_series,
)


def _discount_rate(
    strategy: AggregationStrategy, default: float
) -> tuple[float, str]:
    rate = strategy.options.get("discount_rate")
    if rate is None:
        return default, "financing"
    return float(rate), "override"


def npv(metric_input: MetricInput, strategy: AggregationStrategy) -> MetricResult:
    """
    Net present value of the project net cash flow.

    Discounts at the cost of equity unless the strategy sets ``discount_rate``.
    Negative values are returned as-is.
    """
    cash_flows = metric_input.series("netCashflow")
    rate, rate_source = _discount_rate(
        strategy, metric_input.settings.financing.cost_of_equity
    )
    value = strategy.apply(cash_flows, method="npv", discount_rate=rate)
    if value is None:
        raise MissingDataError("Net cash flow has no data points for NPV")
    return MetricResult.success(
        value, discount_rate=rate, rate_source=rate_source, periods=len(cash_flows)
    )


def irr(metric_input: MetricInput, strategy: AggregationStrategy) -> MetricResult:
    """Project IRR of the net cash flow, as a decimal."""
    cash_flows = apply_filter(
        metric_input.series("netCashflow"), strategy.options.get("filter", "all")
    )
    value = DCFEngine.calculate_irr(cash_flows)
    return MetricResult.success(value, periods=len(cash_flows))


def equity_cash_flows(
    net_cashflow: TimeSeries,
    debt_service: TimeSeries,
    equity_draws: TimeSeries,
) -> TimeSeries:
    """
    Cash flow to equity holders by year.

    Every year of the net cash flow is reduced by that year's debt service
    and equity draws. Years present only in debt service or draws are ignored.

    Args:
        net_cashflow: Project net cash flow.
        debt_service: Debt service payments.
        equity_draws: Equity contributions.

    Returns:
        Equity cash flow series over the years of ``net_cashflow``.
    """
    service = series_to_map(debt_service)
    draws = series_to_map(equity_draws)
    return [
        DataPoint(
            point.year,
            point.value - service.get(point.year, 0.0) - draws.get(point.year, 0.0),
        )
        for point in sort_series(net_cashflow)
    ]


def equity_irr(metric_input: MetricInput, strategy: AggregationStrategy) -> MetricResult:
    """IRR of the equity cash flow, as a decimal."""
    flows = equity_cash_flows(
        metric_input.series("netCashflow"),
        metric_input.series("debtService"),
        metric_input.series("equityDraws"),
    )
    value = DCFEngine.calculate_irr(flows)
    return MetricResult.success(value, periods=len(flows))


def lcoe(metric_input: MetricInput, strategy: AggregationStrategy) -> MetricResult:
    """
    Levelized cost of energy.

    LCOE = NPV(total costs) / NPV(energy production), both at one rate.
    """
    costs = metric_input.series("totalCosts")
    energy = metric_input.series("energyProduction")
    rate, rate_source = _discount_rate(
        strategy, metric_input.settings.financing.cost_of_equity
    )

    npv_costs = DCFEngine.calculate_npv(costs, rate)
    npv_energy = DCFEngine.calculate_npv(energy, rate)
    if npv_energy == 0:
        raise CalculationFailedError("LCOE undefined: discounted energy production is zero")

    value = npv_costs / npv_energy
    precision = strategy.options.get("precision", 2)
    if precision:
        value = round(value, int(precision))
    return MetricResult.success(
        value,
        discount_rate=rate,
        rate_source=rate_source,
        npv_costs=npv_costs,
        npv_energy=npv_energy,
    )


def llcr(metric_input: MetricInput, strategy: AggregationStrategy) -> MetricResult:
    """
    Loan life coverage ratio.

    NPV of operational net cash flow at the cost of debt divided by the
    first outstanding debt balance. Projects without debt get a
    not-applicable result.
    """
    balances = metric_input.dependencies.get("outstandingDebt")
    balance_series = balances.value if balances is not None and balances.ok else None
    if not balance_series or balance_series[0].value <= 0:
        return MetricResult.failure(
            "LLCR not applicable: project has no outstanding debt",
            ErrorCode.MISSING_DATA,
            not_applicable=True,
        )

    initial_balance = sorted(balance_series, key=lambda point: point.year)[0].value
    rate, rate_source = _discount_rate(
        strategy, metric_input.settings.financing.cost_of_debt
    )
    operational = apply_filter(metric_input.series("netCashflow"), "operational")
    discounted = DCFEngine.calculate_npv(operational, rate)

    value = discounted / initial_balance
    precision = strategy.options.get("precision", 2)
    if precision:
        value = round(value, int(precision))
    return MetricResult.success(
        value,
        discount_rate=rate,
        rate_source=rate_source,
        initial_balance=initial_balance,
        discounted_cash_flow=discounted,
    )


def payback_period(cash_flows: TimeSeries) -> float:
    """
    Year in which cumulative cash flow turns non-negative.

    Interpolates between the last negative-cumulative year and the crossing
    year: ``prev_year + |prev_cumulative| / value_at_crossing``.

    Raises:
        MissingDataError: If there are no cash flows.
        CalculationFailedError: If the cumulative never turns non-negative.
    """
    years, values = series_arrays(cash_flows)
    if years.size == 0:
        raise MissingDataError("No cash flows for payback period")

    cumulative = np.cumsum(values)
    recovered = np.where(cumulative >= 0)[0]
    if recovered.size == 0:
        raise CalculationFailedError("Investment is not paid back within project life")

    crossing = int(recovered[0])
    if crossing == 0:
        return float(years[0])

    prev_cumulative = cumulative[crossing - 1]
    return float(years[crossing - 1] + abs(prev_cumulative) / values[crossing])


def payback(metric_input: MetricInput, strategy: AggregationStrategy) -> MetricResult:
    """Simple payback period of the project net cash flow, in years."""
    value = payback_period(metric_input.series("netCashflow"))
    precision = strategy.options.get("precision", 2)
    if precision:
        value = round(value, int(precision))
    return MetricResult.success(value)
