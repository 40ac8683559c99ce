"""Utility functions for financial calculations."""

from windfarm_metrics.utils.financial_utils import (
    calculate_annuity_payment,
    calculate_discount_factors,
    percent_to_decimal,
)

__all__ = [
    "calculate_annuity_payment",
    "calculate_discount_factors",
    "percent_to_decimal",
]
