"""Discounted Cash Flow engine for NPV and IRR calculations."""

import logging
from collections.abc import Iterable

import numpy as np
from scipy import optimize

from windfarm_metrics.core.errors import CalculationFailedError, MissingDataError
from windfarm_metrics.models.time_series import DataPoint, series_arrays
from windfarm_metrics.utils.financial_utils import calculate_discount_factors

logger = logging.getLogger(__name__)

IRR_TOLERANCE = 1e-6


class DCFEngine:
    """
    Discounts year-indexed cash flows and solves for internal rates of return.

    Cash flows are discounted by ``(1 + r) ** -year`` so that year 0 is
    undiscounted and construction years (year < 0) are compounded forward.
    """

    @staticmethod
    def calculate_npv(cash_flows: Iterable[DataPoint], discount_rate: float) -> float:
        """
        Calculate Net Present Value of a year-indexed series.

        Args:
            cash_flows: Series of DataPoints.
            discount_rate: Discount rate as a decimal (e.g. 0.08).

        Returns:
            NPV as float.
        """
        years, values = series_arrays(cash_flows)
        if years.size == 0:
            return 0.0
        return float(np.sum(values * calculate_discount_factors(discount_rate, years)))

    @staticmethod
    def calculate_irr(
        cash_flows: Iterable[DataPoint],
        guess: float = 0.1,
        tolerance: float = IRR_TOLERANCE,
    ) -> float:
        """
        Calculate Internal Rate of Return using Newton-Raphson.

        Falls back to Brent's method on a bracket when Newton does not
        converge or lands on a spurious root.

        Args:
            cash_flows: Series with at least one sign change.
            guess: Starting rate for Newton.
            tolerance: Maximum absolute NPV at the returned rate.

        Returns:
            IRR as decimal (e.g., 0.08 for 8%).

        Raises:
            MissingDataError: If the series is empty.
            CalculationFailedError: If no root converges within tolerance.
        """
        years, values = series_arrays(cash_flows)
        if years.size == 0:
            raise MissingDataError("No cash flows to calculate IRR")
        if not (np.any(values > 0) and np.any(values < 0)):
            raise CalculationFailedError(
                "IRR undefined: cash flows have no sign change"
            )

        offsets = (years - years[0]).astype(np.float64)
        scale = float(np.max(np.abs(values)))
        normalised = values / scale

        def npv_func(rate: float) -> float:
            if rate <= -1:
                return float("inf")
            return float(np.sum(normalised * calculate_discount_factors(rate, offsets)))

        def converged(rate: float) -> bool:
            return np.isfinite(rate) and rate > -1 and abs(npv_func(rate)) <= tolerance

        try:
            irr = float(optimize.newton(npv_func, x0=guess, maxiter=100))
            if converged(irr):
                return irr
        except (RuntimeError, ValueError, OverflowError, ZeroDivisionError):
            logger.debug("Newton IRR did not converge, trying brentq")

        try:
            irr = float(optimize.brentq(npv_func, -0.99, 10.0, xtol=1e-12))
        except ValueError as exc:
            raise CalculationFailedError(f"IRR did not converge: {exc}") from exc

        if not converged(irr):
            raise CalculationFailedError("IRR did not converge within tolerance")
        return irr
