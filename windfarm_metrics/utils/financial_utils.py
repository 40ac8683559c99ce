"""Financial utility functions for common calculations."""

from collections.abc import Sequence

import numpy as np


def calculate_annuity_payment(
    principal: float,
    interest_rate: float,
    term_years: int,
) -> float:
    """
    Calculate constant annuity payment for a loan.

    Uses the standard annuity formula:
    A = P × [r(1+r)^n] / [(1+r)^n - 1]

    Args:
        principal: Loan principal amount.
        interest_rate: Annual interest rate (e.g., 0.045 for 4.5%).
        term_years: Loan term in years.

    Returns:
        Annual annuity payment amount.

    Example:
        >>> calculate_annuity_payment(600000, 0.045, 15)
        55868.28  # approximately
    """
    if term_years <= 0:
        raise ValueError(f"Loan term must be positive, got {term_years}")
    if interest_rate == 0:
        return principal / term_years

    growth = (1 + interest_rate) ** term_years
    return principal * interest_rate * growth / (growth - 1)


def calculate_discount_factors(
    discount_rate: float,
    years: Sequence[int] | np.ndarray,
) -> np.ndarray:
    """
    Calculate discount factors for explicit project years.

    Year 0 has factor 1; construction years (negative) get factors above 1.

    Args:
        discount_rate: Discount rate as a decimal.
        years: Project years to discount.

    Returns:
        Array of ``(1 + r) ** -year`` factors.

    Example:
        >>> calculate_discount_factors(0.05, [0, 1, 2])
        array([1.        , 0.95238095, 0.90702948])
    """
    years_array = np.asarray(years, dtype=np.float64)
    return (1 + discount_rate) ** -years_array


def percent_to_decimal(value: float | None, default: float) -> float:
    """
    Convert a percentage setting (e.g. 8 for 8%) to a decimal.

    Args:
        value: Percentage value, or None.
        default: Percentage used when ``value`` is missing or not numeric.

    Returns:
        Decimal fraction.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        value = default
    return float(value) / 100.0
