"""Cost transformers turning raw cost records into annual series."""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from windfarm_metrics.core.errors import InvalidDataError
from windfarm_metrics.models.time_series import (
    DataPoint,
    TimeSeries,
    constant_series,
    to_series,
)
from windfarm_metrics.models.transform_context import TransformContext

logger = logging.getLogger(__name__)

RESERVE_PROVISION_YEARS = 5


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _records(raw: Any, name: str) -> list[Any]:
    if isinstance(raw, (str, bytes, Mapping)) or not isinstance(raw, Iterable):
        raise InvalidDataError(f"{name} expects a list of records, got {type(raw).__name__}")
    return list(raw)


def _totals_to_series(totals: dict[int, float]) -> TimeSeries:
    return [DataPoint(year, totals[year]) for year in sorted(totals)]


def fixed_cost(raw: Any, context: TransformContext) -> TimeSeries:
    """
    Constant annual cost over operational years.

    Args:
        raw: Annual amount, or an explicit list of ``{year, value}`` points.
        context: Transform context (uses ``project_life``).

    Returns:
        Series over years 1..project_life.
    """
    if _is_number(raw):
        return constant_series(float(raw), 1, context.project_life)
    return to_series(raw)


def operational_unit(raw: Any, context: TransformContext) -> TimeSeries:
    """Series of ones over operational years; a base for multiplier-only sources."""
    return constant_series(1.0, 1, context.project_life)


def major_repairs(raw: Any, context: TransformContext) -> TimeSeries:
    """
    Probability-weighted major repair costs.

    Args:
        raw: Events ``{"year", "cost", "probability"?}``; probability is in
            percent and defaults to certainty.
        context: Transform context.

    Returns:
        Expected repair cost per year.
    """
    totals: dict[int, float] = {}
    for event in _records(raw, "major_repairs"):
        if not isinstance(event, Mapping):
            raise InvalidDataError(f"Repair event must be a mapping, got {event!r}")
        year, cost = event.get("year"), event.get("cost")
        if not _is_number(year) or not _is_number(cost):
            logger.warning("Skipping repair event without numeric year/cost: %r", event)
            continue
        probability = event.get("probability")
        expected = cost * probability / 100 if _is_number(probability) else cost
        totals[int(year)] = totals.get(int(year), 0.0) + float(expected)
    return _totals_to_series(totals)


def reserve_funds(raw: Any, context: TransformContext) -> TimeSeries:
    """
    Reserve fund provision spread evenly over the first operational years.

    Args:
        raw: Total reserve amount.
        context: Transform context.

    Returns:
        Equal provisions over ``min(5, project_life)`` years; empty for
        non-positive amounts.
    """
    if not _is_number(raw):
        raise InvalidDataError(f"reserve_funds expects a number, got {raw!r}")
    if raw <= 0:
        return []
    provision_years = min(RESERVE_PROVISION_YEARS, context.project_life)
    return constant_series(raw / provision_years, 1, provision_years)


def capex_drawdown(raw: Any, context: TransformContext) -> TimeSeries:
    """
    Construction spend from percentage drawdown schedules.

    Args:
        raw: Cost sources ``{"totalAmount", "drawdownSchedule": [{year, value}]}``
            where schedule values are percent of the total.
        context: Transform context.

    Returns:
        Summed spend per (usually non-positive) year.
    """
    totals: dict[int, float] = {}
    for source in _records(raw, "capex_drawdown"):
        if not isinstance(source, Mapping):
            raise InvalidDataError(f"Cost source must be a mapping, got {source!r}")
        total_amount = source.get("totalAmount") or 0
        if not _is_number(total_amount):
            raise InvalidDataError(f"Cost source amount must be numeric: {source!r}")
        for item in source.get("drawdownSchedule") or []:
            year = item.get("year") if isinstance(item, Mapping) else None
            percent = item.get("value") if isinstance(item, Mapping) else None
            if _is_number(year) and _is_number(percent):
                totals[int(year)] = totals.get(int(year), 0.0) + percent / 100 * total_amount
    return _totals_to_series(totals)


def contract_fees(raw: Any, context: TransformContext) -> TimeSeries:
    """
    Service contract fees within the project life.

    Contracts either give ``fixedFeeTimeSeries`` points or a ``fixedFee``
    charged in each of their ``years``. ``isPerTurbine`` fees are scaled by
    the turbine count.

    Returns:
        Total fee per operational year; years without fees are omitted.
    """
    totals: dict[int, float] = {}
    for contract in _records(raw, "contract_fees"):
        if not isinstance(contract, Mapping):
            raise InvalidDataError(f"Contract must be a mapping, got {contract!r}")
        scale = context.num_turbines if contract.get("isPerTurbine") else 1

        if isinstance(contract.get("fixedFeeTimeSeries"), list):
            fees = [(p.year, p.value) for p in to_series(contract["fixedFeeTimeSeries"])]
        else:
            fee = contract.get("fixedFee") or 0
            fees = [(year, fee) for year in contract.get("years") or [] if _is_number(year)]

        for year, fee in fees:
            if 1 <= year <= context.project_life and _is_number(fee):
                totals[int(year)] = totals.get(int(year), 0.0) + fee * scale

    return _totals_to_series({year: v for year, v in totals.items() if v != 0})
