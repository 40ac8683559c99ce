"""Foundational metrics: line-item totals built from extracted sources."""

import operator

from windfarm_metrics.core.aggregation import AggregationStrategy
from windfarm_metrics.core.errors import MissingDataError
from windfarm_metrics.models.metric_result import MetricInput, MetricResult
from windfarm_metrics.models.time_series import combine_series, sum_series


def sum_sources(metric_input: MetricInput, strategy: AggregationStrategy) -> MetricResult:
    """
    Year-by-year total of the sources a metric declares.

    Sources are selected by the metric's ``source_groups`` and ``source_ids``.
    Failed sources are skipped and listed in ``skipped_sources``; if every
    selected source failed the metric fails with missing data.

    Args:
        metric_input: Foundational input carrying extracted sources.
        strategy: Aggregation strategy; ``total`` in metadata uses it.

    Returns:
        MetricResult with a TimeSeries value.
    """
    sources = metric_input.sources
    if sources is None:
        raise MissingDataError(f"'{metric_input.metric_id}' requires extracted sources")

    selected = sources.by_group(*metric_input.source_groups)
    skipped = sources.failed_in_groups(*metric_input.source_groups)
    for source_id in metric_input.source_ids:
        if source_id in sources:
            selected[source_id] = sources.get(source_id)
        else:
            skipped.append(source_id)

    if not selected and skipped:
        raise MissingDataError(
            f"No data for '{metric_input.metric_id}': "
            f"sources unavailable ({', '.join(skipped)})"
        )

    series = sum_series(selected.values())
    return MetricResult.success(
        series,
        input_sources=list(selected),
        skipped_sources=skipped,
        periods=len(series),
        total=strategy.apply(series),
    )


def net_cashflow(metric_input: MetricInput, strategy: AggregationStrategy) -> MetricResult:
    """
    Revenue minus costs for every year present in either series.

    Construction years carry costs only and so come out negative.
    """
    revenue = metric_input.series("totalRevenue")
    costs = metric_input.series("totalCosts")
    series = combine_series(revenue, costs, operator.sub)
    return MetricResult.success(
        series,
        input_sources=["totalRevenue", "totalCosts"],
        periods=len(series),
        total=strategy.apply(series),
    )
