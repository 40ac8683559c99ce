"""Time-series aggregation strategies."""

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from windfarm_metrics.core.errors import ValidationError
from windfarm_metrics.models.time_series import DataPoint, sort_series
from windfarm_metrics.utils.financial_utils import calculate_discount_factors

logger = logging.getLogger(__name__)

DEFAULT_PRECISION = 2

FILTERS: dict[str, Callable[[int], bool]] = {
    "all": lambda year: True,
    "operational": lambda year: year > 0,
    "construction": lambda year: year <= 0,
    "early": lambda year: 0 < year <= 5,
    "late": lambda year: year > 15,
}

METHODS = ("sum", "mean", "weighted_mean", "min", "max", "npv", "first", "last")


def apply_filter(series: Iterable[DataPoint], name: str = "all") -> list[DataPoint]:
    """
    Keep the points of a series whose year matches a named filter.

    Unknown filter names pass the series through unchanged.

    Args:
        series: Input series, any order.
        name: One of ``FILTERS``.

    Returns:
        Filtered series sorted by year.
    """
    ordered = sort_series(series)
    predicate = FILTERS.get(name)
    if predicate is None:
        logger.warning("Unknown time series filter '%s', using all years", name)
        return ordered
    return [point for point in ordered if predicate(point.year)]


def _weighted(values: np.ndarray, weights: np.ndarray) -> float:
    weight_sum = float(np.sum(weights))
    if weight_sum == 0:
        return 0.0
    return float(np.sum(values * weights) / weight_sum)


def _matching_weights(
    weights: Sequence[float] | None, n_points: int
) -> np.ndarray | None:
    if weights is None or len(weights) != n_points:
        return None
    return np.asarray(weights, dtype=np.float64)


def aggregate(
    series: Iterable[DataPoint],
    method: str = "sum",
    options: dict[str, Any] | None = None,
) -> float | None:
    """
    Reduce a time series to a scalar.

    Args:
        series: Sequence of DataPoints, any order.
        method: One of ``sum``, ``mean``, ``weighted_mean``, ``min``, ``max``,
            ``npv``, ``first``, ``last``.
        options: Optional settings:
            - filter: Year filter name (default ``all``).
            - discount_rate: Rate for ``npv`` (default 0).
            - precision: Decimal places (default 2, 0 disables rounding).
            - weights: Per-point weights for ``mean``/``weighted_mean``.

    Returns:
        Aggregated value, or None when no points survive the filter.

    Raises:
        ValidationError: If ``method`` is not recognised.
    """
    if method not in METHODS:
        raise ValidationError(f"Unknown aggregation method '{method}'")

    options = options or {}
    points = apply_filter(series, options.get("filter", "all"))
    if not points:
        return None

    years = np.array([point.year for point in points], dtype=np.float64)
    values = np.array([point.value for point in points], dtype=np.float64)

    if method == "sum":
        result = float(np.sum(values))
    elif method in ("mean", "weighted_mean"):
        weights = _matching_weights(options.get("weights"), len(values))
        if weights is not None:
            result = _weighted(values, weights)
        else:
            if method == "weighted_mean":
                logger.warning(
                    "weighted_mean requested without %d matching weights, "
                    "using arithmetic mean",
                    len(values),
                )
            result = float(np.mean(values))
    elif method == "min":
        result = float(np.min(values))
    elif method == "max":
        result = float(np.max(values))
    elif method == "npv":
        rate = float(options.get("discount_rate", 0.0) or 0.0)
        # Negative years are compounded forward rather than discounted.
        result = float(np.sum(values * calculate_discount_factors(rate, years)))
    elif method == "first":
        result = float(values[0])
    else:
        result = float(values[-1])

    precision = options.get("precision", DEFAULT_PRECISION)
    if precision:
        result = round(result, int(precision))
    return result


@dataclass(frozen=True)
class AggregationStrategy:
    """
    Aggregation method plus options, handed to each metric calculation.

    Attributes:
        method: Aggregation method name.
        options: Default options; ``apply`` overrides merge on top.
    """

    method: str = "sum"
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.method not in METHODS:
            raise ValidationError(f"Unknown aggregation method '{self.method}'")

    def apply(self, series: Iterable[DataPoint], **overrides: Any) -> float | None:
        """Aggregate ``series`` with this strategy, optionally overriding options."""
        method = overrides.pop("method", self.method)
        return aggregate(series, method, {**self.options, **overrides})

    def with_options(self, **overrides: Any) -> "AggregationStrategy":
        """Return a copy with updated options."""
        return AggregationStrategy(self.method, {**self.options, **overrides})
