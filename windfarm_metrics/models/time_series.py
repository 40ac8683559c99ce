"""Year-indexed time series primitives."""

from collections.abc import Callable, Iterable, Mapping
from typing import Any, NamedTuple

import numpy as np

from windfarm_metrics.core.errors import InvalidDataError


class DataPoint(NamedTuple):
    """One (year, value) observation. Year <= 0 is pre-operational."""

    year: int
    value: float


TimeSeries = list[DataPoint]


def to_data_point(item: Any) -> DataPoint:
    """
    Coerce a raw record into a DataPoint.

    Accepts DataPoint, ``{"year": ..., "value": ...}`` mappings and
    ``(year, value)`` pairs.

    Raises:
        InvalidDataError: If the record has no usable year/value.
    """
    if isinstance(item, DataPoint):
        return item

    if isinstance(item, Mapping):
        year, value = item.get("year"), item.get("value")
    elif isinstance(item, (tuple, list)) and len(item) == 2:
        year, value = item
    else:
        raise InvalidDataError(f"Cannot interpret {item!r} as a data point")

    if isinstance(year, bool) or not isinstance(year, (int, float, np.integer)):
        raise InvalidDataError(f"Data point year must be numeric, got {year!r}")
    if isinstance(value, bool) or not isinstance(
        value, (int, float, np.integer, np.floating)
    ):
        raise InvalidDataError(f"Data point value must be numeric, got {value!r}")
    if float(year) != int(year):
        raise InvalidDataError(f"Data point year must be integral, got {year!r}")

    return DataPoint(int(year), float(value))


def to_series(raw: Iterable[Any]) -> TimeSeries:
    """
    Build a year-sorted TimeSeries from raw records.

    Args:
        raw: Iterable of records accepted by ``to_data_point``.

    Returns:
        TimeSeries sorted by year (stable for duplicate years).

    Raises:
        InvalidDataError: If ``raw`` is not iterable or a record is malformed.
    """
    if isinstance(raw, (str, bytes, Mapping)) or not isinstance(raw, Iterable):
        raise InvalidDataError(
            f"Time series must be a sequence of data points, got {type(raw).__name__}"
        )
    return sort_series(to_data_point(item) for item in raw)


def sort_series(series: Iterable[DataPoint]) -> TimeSeries:
    """Return the series sorted chronologically."""
    return sorted(series, key=lambda point: point.year)


def series_arrays(series: Iterable[DataPoint]) -> tuple[np.ndarray, np.ndarray]:
    """
    Split a series into sorted year and value arrays.

    Returns:
        Tuple of (years as int64, values as float64).
    """
    ordered = sort_series(series)
    years = np.array([point.year for point in ordered], dtype=np.int64)
    values = np.array([point.value for point in ordered], dtype=np.float64)
    return years, values


def series_to_map(series: Iterable[DataPoint]) -> dict[int, float]:
    """Index a series by year. Duplicate years are summed."""
    by_year: dict[int, float] = {}
    for point in series:
        by_year[point.year] = by_year.get(point.year, 0.0) + point.value
    return by_year


def constant_series(value: float, first_year: int, last_year: int) -> TimeSeries:
    """Repeat ``value`` for every year in ``[first_year, last_year]``."""
    return [DataPoint(year, float(value)) for year in range(first_year, last_year + 1)]


def sum_series(series_list: Iterable[Iterable[DataPoint]]) -> TimeSeries:
    """
    Add several series year by year over the union of their years.

    Returns:
        Sorted TimeSeries; years present in any input appear once.
    """
    totals: dict[int, float] = {}
    for series in series_list:
        for point in series:
            totals[point.year] = totals.get(point.year, 0.0) + point.value
    return [DataPoint(year, totals[year]) for year in sorted(totals)]


def combine_series(
    left: Iterable[DataPoint],
    right: Iterable[DataPoint],
    operation: Callable[[float, float], float],
    fill_value: float = 0.0,
    years: str = "union",
) -> TimeSeries:
    """
    Combine two series point-wise by year.

    Args:
        left: First series.
        right: Second series.
        operation: Binary function applied to (left_value, right_value).
        fill_value: Value substituted for a missing year on either side.
        years: ``"union"`` for all years, ``"left"`` to keep only the left
            series' years.

    Returns:
        Sorted combined TimeSeries.
    """
    left_map = series_to_map(left)
    right_map = series_to_map(right)

    if years == "left":
        all_years = sorted(left_map)
    elif years == "union":
        all_years = sorted(set(left_map) | set(right_map))
    else:
        raise ValueError(f"Unknown years mode '{years}'")

    return [
        DataPoint(
            year,
            operation(left_map.get(year, fill_value), right_map.get(year, fill_value)),
        )
        for year in all_years
    ]


def scale_series(series: Iterable[DataPoint], factor: float) -> TimeSeries:
    """Multiply every value by ``factor``."""
    return [DataPoint(point.year, point.value * factor) for point in sort_series(series)]


def magnitude(series: Iterable[DataPoint]) -> float:
    """Sum of absolute values, used as a series' aggregate size."""
    return float(sum(abs(point.value) for point in series))
