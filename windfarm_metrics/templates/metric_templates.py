"""Default metric definitions: foundational totals (1-9) and analytical metrics (10+)."""

from typing import Any

from windfarm_metrics.metrics import coverage, financial, formatting, foundational
from windfarm_metrics.metrics.registry import MetricsRegistry, build_registry

_SERIES = {
    "category": "foundational",
    "calculate": foundational.sum_sources,
    "aggregation": {"method": "sum", "options": {"filter": "all", "precision": 2}},
    "format": formatting.format_series,
    "format_impact": formatting.format_series_impact,
    "units": "timeSeries",
    "display_units": "USD",
    "usage": ["internal"],
}

_OPERATIONAL_MEAN = {"method": "mean", "options": {"filter": "operational", "precision": 2}}
_OPERATIONAL_MIN = {"method": "min", "options": {"filter": "operational", "precision": 2}}

_RATIO = {
    "category": "analytical",
    "format": formatting.format_ratio,
    "format_impact": formatting.format_ratio_impact,
    "units": "ratio",
    "display_units": "x",
}

FOUNDATIONAL_METRICS: list[dict[str, Any]] = [
    {
        **_SERIES,
        "id": "totalRevenue",
        "name": "Total Revenue",
        "short_name": "Revenue",
        "priority": 1,
        "source_groups": ["energy"],
        "description": "Revenue summed across revenue sources",
    },
    {
        **_SERIES,
        "id": "totalCosts",
        "name": "Total Costs",
        "short_name": "Costs",
        "priority": 1,
        "source_groups": ["construction", "operations"],
        "description": "Construction and operating costs",
    },
    {
        **_SERIES,
        "id": "totalCapex",
        "name": "Total Capex",
        "short_name": "Capex",
        "priority": 1,
        "source_groups": ["construction"],
        "description": "Construction capital expenditure",
    },
    {
        **_SERIES,
        "id": "energyProduction",
        "name": "Energy Production",
        "short_name": "Energy",
        "priority": 1,
        "source_ids": ["energyProduction"],
        "display_units": "MWh",
        "description": "Annual net energy production",
    },
    {
        **_SERIES,
        "id": "debtService",
        "name": "Debt Service",
        "short_name": "DebtSvc",
        "priority": 2,
        "source_groups": ["debt_service"],
        "description": "Interest plus principal repayments",
    },
    {
        **_SERIES,
        "id": "interestPayments",
        "name": "Interest Payments",
        "short_name": "Interest",
        "priority": 2,
        "source_ids": ["operationalInterest"],
        "description": "Interest portion of debt service",
    },
    {
        **_SERIES,
        "id": "outstandingDebt",
        "name": "Outstanding Debt",
        "short_name": "Debt",
        "priority": 2,
        "source_groups": ["debt_balance"],
        "aggregation": {"method": "first", "options": {"precision": 2}},
        "description": "Debt balance at COD and after each repayment",
    },
    {
        **_SERIES,
        "id": "equityDraws",
        "name": "Equity Draws",
        "short_name": "Equity",
        "priority": 2,
        "source_groups": ["equity"],
        "description": "Equity contributions to construction",
    },
    {
        **_SERIES,
        "id": "netCashflow",
        "name": "Net Cashflow",
        "short_name": "NetCF",
        "priority": 3,
        "calculate": foundational.net_cashflow,
        "depends_on": ["totalRevenue", "totalCosts"],
        "description": "Revenue minus costs per year",
    },
]

ANALYTICAL_METRICS: list[dict[str, Any]] = [
    {
        "id": "npv",
        "category": "analytical",
        "name": "Net Present Value",
        "short_name": "NPV",
        "priority": 11,
        "calculate": financial.npv,
        "depends_on": ["netCashflow"],
        "aggregation": {"method": "npv", "options": {"filter": "all", "precision": 2}},
        "format": formatting.format_currency,
        "format_impact": formatting.format_currency_impact,
        "thresholds": [
            {"comparison": "below", "value": 0, "message": "NPV is negative"}
        ],
        "units": "currency",
        "display_units": "USD",
        "usage": ["financeability", "sensitivity", "comparative"],
        "description": "Net cash flow discounted at the cost of equity",
    },
    {
        "id": "irr",
        "category": "analytical",
        "name": "Internal Rate of Return",
        "short_name": "IRR",
        "priority": 12,
        "calculate": financial.irr,
        "depends_on": ["netCashflow"],
        "aggregation": {"method": "sum", "options": {"filter": "all"}},
        "format": formatting.format_percentage,
        "format_impact": formatting.format_percentage_points,
        "thresholds": [
            {"comparison": "below", "value": 0.08, "message": "Project IRR below target"}
        ],
        "units": "percentage",
        "display_units": "%",
        "usage": ["financeability", "sensitivity", "comparative"],
        "description": "Internal rate of return on project investment",
    },
    {
        **_RATIO,
        "id": "dscr",
        "name": "Debt Service Coverage Ratio",
        "short_name": "DSCR",
        "priority": 13,
        "calculate": coverage.dscr_series,
        "depends_on": ["netCashflow", "debtService"],
        "units": "timeSeries",
        "usage": ["financeability"],
        "description": "Net cash flow over debt service, per year with debt service",
    },
    {
        "id": "lcoe",
        "category": "analytical",
        "name": "Levelized Cost of Energy",
        "short_name": "LCOE",
        "priority": 14,
        "calculate": financial.lcoe,
        "depends_on": ["totalCosts", "energyProduction"],
        "aggregation": {"method": "npv", "options": {"precision": 2}},
        "format": formatting.format_lcoe,
        "format_impact": formatting.format_lcoe_impact,
        "thresholds": [
            {"comparison": "above", "value": 80, "message": "LCOE above market benchmark"}
        ],
        "units": "currency_per_mwh",
        "display_units": "$/MWh",
        "usage": ["financeability", "sensitivity", "comparative"],
        "description": "Discounted costs over discounted energy production",
    },
    {
        "id": "equityIrr",
        "category": "analytical",
        "name": "Equity Internal Rate of Return",
        "short_name": "Equity IRR",
        "priority": 15,
        "calculate": financial.equity_irr,
        "depends_on": ["netCashflow", "debtService", "equityDraws"],
        "format": formatting.format_percentage,
        "format_impact": formatting.format_percentage_points,
        "thresholds": [
            {"comparison": "below", "value": 0.12, "message": "Equity IRR below target"}
        ],
        "units": "percentage",
        "display_units": "%",
        "usage": ["financeability", "sensitivity"],
        "description": "Return on equity after debt service",
    },
    {
        **_RATIO,
        "id": "llcr",
        "name": "Loan Life Coverage Ratio",
        "short_name": "LLCR",
        "priority": 16,
        "calculate": financial.llcr,
        "depends_on": ["netCashflow", "outstandingDebt"],
        "aggregation": {"method": "npv", "options": {"precision": 2}},
        "thresholds": [
            {"comparison": "below", "value": 1.15, "message": "LLCR below covenant level"}
        ],
        "usage": ["financeability", "sensitivity"],
        "description": "Discounted operational cash flow over initial debt",
    },
    {
        **_RATIO,
        "id": "icr",
        "name": "Interest Coverage Ratio",
        "short_name": "ICR",
        "priority": 17,
        "calculate": coverage.icr_series,
        "depends_on": ["netCashflow", "interestPayments"],
        "units": "timeSeries",
        "usage": ["financeability"],
        "description": "Net cash flow over interest, per year with interest due",
    },
    {
        "id": "payback",
        "category": "analytical",
        "name": "Payback Period",
        "short_name": "Payback",
        "priority": 18,
        "calculate": financial.payback,
        "depends_on": ["netCashflow"],
        "aggregation": {"method": "sum", "options": {"precision": 2}},
        "format": formatting.format_years,
        "format_impact": formatting.format_years_impact,
        "thresholds": [
            {"comparison": "above", "value": 10, "message": "Payback period too long"}
        ],
        "units": "years",
        "display_units": "years",
        "usage": ["comparative", "sensitivity"],
        "description": "Years until cumulative net cash flow turns non-negative",
    },
    {
        **_RATIO,
        "id": "avgDscr",
        "name": "Average DSCR",
        "short_name": "Avg DSCR",
        "priority": 19,
        "calculate": coverage.dscr_summary,
        "depends_on": ["netCashflow", "debtService"],
        "aggregation": _OPERATIONAL_MEAN,
        "usage": ["financeability", "sensitivity"],
        "description": "Mean DSCR over operational years",
    },
    {
        **_RATIO,
        "id": "minDscr",
        "name": "Minimum DSCR",
        "short_name": "Min DSCR",
        "priority": 20,
        "calculate": coverage.dscr_summary,
        "depends_on": ["netCashflow", "debtService"],
        "aggregation": _OPERATIONAL_MIN,
        "thresholds": [
            {"comparison": "below", "value": 1.2, "message": "DSCR below covenant level"}
        ],
        "usage": ["financeability", "sensitivity"],
        "description": "Lowest DSCR over operational years",
    },
    {
        **_RATIO,
        "id": "avgIcr",
        "name": "Average ICR",
        "short_name": "Avg ICR",
        "priority": 21,
        "calculate": coverage.icr_summary,
        "depends_on": ["netCashflow", "interestPayments"],
        "aggregation": _OPERATIONAL_MEAN,
        "usage": ["financeability"],
        "description": "Mean ICR over operational years",
    },
    {
        **_RATIO,
        "id": "minIcr",
        "name": "Minimum ICR",
        "short_name": "Min ICR",
        "priority": 22,
        "calculate": coverage.icr_summary,
        "depends_on": ["netCashflow", "interestPayments"],
        "aggregation": _OPERATIONAL_MIN,
        "thresholds": [
            {"comparison": "below", "value": 2.0, "message": "ICR below covenant level"}
        ],
        "usage": ["financeability"],
        "description": "Lowest ICR over operational years",
    },
]

METRIC_DEFINITIONS: list[dict[str, Any]] = FOUNDATIONAL_METRICS + ANALYTICAL_METRICS


def build_default_registry() -> MetricsRegistry:
    """
    Metrics registry over ``METRIC_DEFINITIONS``.

    Returns:
        MetricsRegistry.

    Raises:
        MetricsError: If the default definitions fail validation.
    """
    return build_registry(METRIC_DEFINITIONS).unwrap()
