"""Display formatting for metric values and sensitivity impacts."""

from typing import Any

NOT_AVAILABLE = "N/A"


def _sign(value: float) -> str:
    return "+" if value > 0 else ""


def _currency_sign(value: float) -> str:
    if value < 0:
        return "-"
    return _sign(value)


def format_currency(value: float | None, precision: int = 0) -> str:
    """
    Compact currency string.

    Example:
        >>> format_currency(-2_400_000)
        '-$2M'
        >>> format_currency(1_260_000_000)
        '$1.3B'
    """
    if value is None:
        return NOT_AVAILABLE
    sign = "-" if value < 0 else ""
    magnitude = abs(value)
    if magnitude >= 1e9:
        return f"{sign}${magnitude / 1e9:.1f}B"
    if magnitude >= 1e6:
        return f"{sign}${magnitude / 1e6:.{precision}f}M"
    if magnitude >= 1e3:
        return f"{sign}${magnitude / 1e3:.{precision}f}K"
    return f"{sign}${magnitude:.{precision}f}"


def format_currency_impact(delta: float | None, precision: int = 1) -> str:
    if delta is None:
        return NOT_AVAILABLE
    magnitude = abs(delta)
    if magnitude >= 1e6:
        return f"{_currency_sign(delta)}${magnitude / 1e6:.{precision}f}M"
    if magnitude >= 1e3:
        return f"{_currency_sign(delta)}${magnitude / 1e3:.{precision}f}K"
    return f"{_currency_sign(delta)}${magnitude:.0f}"


def format_percentage(value: float | None, precision: int = 1) -> str:
    """Decimal rate as a percentage, e.g. ``0.0825 -> '8.3%'``."""
    if value is None:
        return NOT_AVAILABLE
    return f"{value * 100:.{precision}f}%"


def format_percentage_points(delta: float | None, precision: int = 1) -> str:
    """Change in a decimal rate as percentage points, e.g. ``0.01 -> '+1.0pp'``."""
    if delta is None:
        return NOT_AVAILABLE
    points = delta * 100
    return f"{_sign(points)}{points:.{precision}f}pp"


def format_ratio(value: Any, precision: int = 2) -> str:
    """Coverage ratio, e.g. ``1.25x``; series report their length."""
    if value is None:
        return NOT_AVAILABLE
    if isinstance(value, list):
        return format_series(value)
    return f"{value:.{precision}f}x"


def format_ratio_impact(delta: float | None, precision: int = 2) -> str:
    if delta is None:
        return NOT_AVAILABLE
    return f"{_sign(delta)}{delta:.{precision}f}x"


def format_lcoe(value: float | None, precision: int = 1) -> str:
    if value is None:
        return NOT_AVAILABLE
    return f"${value:.{precision}f}/MWh"


def format_lcoe_impact(delta: float | None, precision: int = 1) -> str:
    if delta is None:
        return NOT_AVAILABLE
    return f"{_currency_sign(delta)}${abs(delta):.{precision}f}/MWh"


def format_years(value: float | None, precision: int = 1) -> str:
    if value is None:
        return NOT_AVAILABLE
    return f"{value:.{precision}f} years"


def format_years_impact(delta: float | None, precision: int = 1) -> str:
    if delta is None:
        return NOT_AVAILABLE
    return f"{_sign(delta)}{delta:.{precision}f} years"


def format_series(value: Any) -> str:
    if not value:
        return "No Data"
    return f"{len(value)} data points"


def format_series_impact(delta: float | None) -> str:
    return NOT_AVAILABLE
