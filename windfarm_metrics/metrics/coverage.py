"""Debt coverage metrics: DSCR and ICR."""

from windfarm_metrics.core.aggregation import AggregationStrategy
from windfarm_metrics.core.errors import ErrorCode
from windfarm_metrics.models.metric_result import MetricInput, MetricResult
from windfarm_metrics.models.time_series import DataPoint, TimeSeries, series_to_map


def coverage_series(cash_flows: TimeSeries, obligations: TimeSeries) -> TimeSeries:
    """
    Ratio of cash flow to an obligation for each year with a payment due.

    Years with zero or missing obligation are excluded rather than
    zero-filled, and ratios are floored at zero.

    Args:
        cash_flows: Cash flow available (net cash flow).
        obligations: Debt service or interest payments.

    Returns:
        Coverage ratio series.
    """
    available = series_to_map(cash_flows)
    due = series_to_map(obligations)
    return [
        DataPoint(year, max(0.0, available.get(year, 0.0) / due[year]))
        for year in sorted(due)
        if due[year] > 0
    ]


def _summarise(
    metric_input: MetricInput,
    strategy: AggregationStrategy,
    obligation_id: str,
    label: str,
) -> MetricResult:
    series = coverage_series(
        metric_input.series("netCashflow"), metric_input.series(obligation_id)
    )
    value = strategy.apply(series)
    if value is None:
        return MetricResult.failure(
            f"{label} not applicable: no operational {obligation_id} payments",
            ErrorCode.MISSING_DATA,
            not_applicable=True,
        )
    return MetricResult.success(
        value, periods=len(series), method=strategy.method
    )


def dscr_series(metric_input: MetricInput, strategy: AggregationStrategy) -> MetricResult:
    """DSCR per year with debt service due: ``max(0, net cash flow / debt service)``."""
    series = coverage_series(
        metric_input.series("netCashflow"), metric_input.series("debtService")
    )
    return MetricResult.success(series, periods=len(series))


def dscr_summary(metric_input: MetricInput, strategy: AggregationStrategy) -> MetricResult:
    """Average or minimum DSCR, per the strategy, over operational years."""
    return _summarise(metric_input, strategy, "debtService", "DSCR")


def icr_series(metric_input: MetricInput, strategy: AggregationStrategy) -> MetricResult:
    """ICR per year with interest due: ``max(0, net cash flow / interest)``."""
    series = coverage_series(
        metric_input.series("netCashflow"), metric_input.series("interestPayments")
    )
    return MetricResult.success(series, periods=len(series))


def icr_summary(metric_input: MetricInput, strategy: AggregationStrategy) -> MetricResult:
    """Average or minimum ICR, per the strategy, over operational years."""
    return _summarise(metric_input, strategy, "interestPayments", "ICR")
