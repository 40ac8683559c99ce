"""Default source registry, sensitivity variables and scenario paths."""

from typing import Any

DISTRIBUTION_ROOT = ["simulation", "inputSim", "distributionAnalysis"]
CONSTRUCTION_COSTS_PATH = ["settings", "modules", "cost", "constructionPhase", "costSources"]
FINANCING_PATH = ["settings", "modules", "financing"]

ACCESSOR_PATHS: dict[str, list[str]] = {
    "projectLife": ["settings", "general", "projectLife"],
    "numWTGs": ["settings", "project", "windFarm", "numWTGs"],
    "currency": ["settings", "project", "currency", "local"],
    "percentiles": ["settings", "simulation", "percentiles"],
    "primaryPercentile": ["settings", "simulation", "primaryPercentile"],
    "financing": FINANCING_PATH,
}

PROJECT_DEFAULTS: dict[str, Any] = {
    "projectLife": 20,
    "numWTGs": 1,
    "currency": "USD",
    "percentiles": [10, 25, 50, 75, 90],
    "primaryPercentile": 50,
}

# Percent values, as entered in scenario settings
FINANCING_DEFAULTS: dict[str, Any] = {
    "debtFinancingRatio": 70,
    "costOfEquity": 8,
    "costOfOperationalDebt": 5,
    "costOfConstructionDebt": 4,
    "loanDuration": 15,
    "gracePeriod": 1,
    "amortizationType": "amortizing",
}

_ESCALATED = [{"id": "escalationRate", "operation": "multiply", "base_year": 1}]
_FINANCED = {"financing": FINANCING_PATH}

SOURCE_REGISTRY_TEMPLATE: dict[str, list[dict[str, Any]]] = {
    "multipliers": [
        {
            "id": "escalationRate",
            "path": DISTRIBUTION_ROOT + ["escalationRate"],
            "group": "escalation",
            "has_percentiles": True,
            "description": "Cost escalation index applied to operating cost items",
        },
        {
            "id": "electricityPrice",
            "path": DISTRIBUTION_ROOT + ["electricityPrice"],
            "group": "pricing",
            "has_percentiles": True,
            "description": "Electricity price per MWh",
        },
        {
            "id": "energyProduction",
            "path": DISTRIBUTION_ROOT + ["energyProduction"],
            "group": "production",
            "has_percentiles": True,
            "description": "Annual net energy production in MWh",
        },
    ],
    "costs": [
        {
            "id": "capexDrawdown",
            "path": CONSTRUCTION_COSTS_PATH,
            "group": "construction",
            "transformer": "capex_drawdown",
            "description": "Construction CAPEX drawdown (negative years before COD)",
        },
        {
            "id": "debtDrawdown",
            "path": CONSTRUCTION_COSTS_PATH,
            "group": "funding",
            "transformer": "debt_drawdown",
            "references": _FINANCED,
            "description": "Construction spend funded by debt",
        },
        {
            "id": "equityDrawdown",
            "path": CONSTRUCTION_COSTS_PATH,
            "group": "equity",
            "transformer": "equity_drawdown",
            "references": _FINANCED,
            "description": "Construction spend funded by equity",
        },
        {
            "id": "interestDuringConstruction",
            "path": CONSTRUCTION_COSTS_PATH,
            "group": "financing",
            "transformer": "interest_during_construction",
            "references": _FINANCED,
            "description": "Capitalised interest during construction",
        },
        {
            "id": "operationalInterest",
            "path": CONSTRUCTION_COSTS_PATH,
            "group": "debt_service",
            "transformer": "debt_interest",
            "references": _FINANCED,
            "description": "Interest portion of operational debt service",
        },
        {
            "id": "operationalPrincipal",
            "path": CONSTRUCTION_COSTS_PATH,
            "group": "debt_service",
            "transformer": "debt_principal",
            "references": _FINANCED,
            "description": "Principal portion of operational debt service",
        },
        {
            "id": "outstandingDebt",
            "path": CONSTRUCTION_COSTS_PATH,
            "group": "debt_balance",
            "transformer": "debt_balance",
            "references": _FINANCED,
            "description": "Debt balance at COD and after each repayment",
        },
        {
            "id": "contractFees",
            "path": ["settings", "modules", "contracts", "oemContracts"],
            "group": "operations",
            "transformer": "contract_fees",
            "multipliers": _ESCALATED,
            "description": "OEM service contract fees",
        },
        {
            "id": "majorRepairs",
            "path": ["settings", "modules", "cost", "majorRepairEvents"],
            "group": "operations",
            "transformer": "major_repairs",
            "multipliers": _ESCALATED,
            "description": "Probability-weighted major repair costs",
        },
        {
            "id": "insurancePremium",
            "path": ["settings", "modules", "risk", "insurancePremium"],
            "group": "operations",
            "transformer": "fixed_cost",
            "multipliers": _ESCALATED,
            "description": "Annual insurance premium",
        },
        {
            "id": "reserveFunds",
            "path": ["settings", "modules", "risk", "reserveFunds"],
            "group": "operations",
            "transformer": "reserve_funds",
            "description": "Reserve fund provisions over the first operating years",
        },
    ],
    "revenues": [
        {
            "id": "energyRevenue",
            "group": "energy",
            "transformer": "operational_unit",
            "multipliers": [
                {"id": "energyProduction", "operation": "multiply", "base_year": 1},
                {"id": "electricityPrice", "operation": "multiply", "base_year": 1},
                {"id": "escalationRate", "operation": "multiply", "base_year": 1},
            ],
            "description": "Energy revenue (MWh x price x escalation)",
        },
    ],
}

INDIRECT_VARIABLES_TEMPLATE: dict[str, list[dict[str, Any]]] = {
    "technical": [
        {
            "id": "availability",
            "name": "WTG Availability",
            "path": DISTRIBUTION_ROOT + ["availability"],
            "has_percentiles": True,
            "display_units": "%",
            "affects": [{"source_id": "energyRevenue", "impact_type": "multiplicative"}],
        },
        {
            "id": "windVariability",
            "name": "Wind Speed",
            "path": DISTRIBUTION_ROOT + ["windVariability"],
            "has_percentiles": True,
            "display_units": "%",
            "affects": [{"source_id": "energyRevenue", "impact_type": "multiplicative"}],
        },
        {
            "id": "capacityFactor",
            "name": "Capacity Factor",
            "path": ["settings", "project", "windFarm", "capacityFactor"],
            "has_percentiles": False,
            "display_units": "%",
            "affects": [{"source_id": "energyRevenue", "impact_type": "multiplicative"}],
        },
    ],
    "financial": [
        {
            "id": "interestRate",
            "name": "Interest Rate",
            "path": DISTRIBUTION_ROOT + ["interestRate"],
            "has_percentiles": True,
            "display_units": "%",
            "affects": [
                {"source_id": "operationalInterest", "impact_type": "multiplicative"}
            ],
        },
        {
            "id": "debtTerm",
            "name": "Debt Term",
            "path": FINANCING_PATH + ["loanDuration"],
            "has_percentiles": False,
            "display_units": "years",
            "affects": [
                {"source_id": "operationalPrincipal", "impact_type": "recalculation"}
            ],
        },
    ],
    "operational": [
        {
            "id": "oemServiceFees",
            "name": "OEM Service Fees",
            "path": DISTRIBUTION_ROOT + ["oemServiceCosts"],
            "has_percentiles": True,
            "display_units": "$/MW/year",
            "affects": [{"source_id": "contractFees", "impact_type": "multiplicative"}],
        },
        {
            "id": "majorRepairFrequency",
            "name": "Major Repair Frequency",
            "path": DISTRIBUTION_ROOT + ["majorRepairEvents"],
            "has_percentiles": True,
            "display_units": "events/year",
            "affects": [{"source_id": "majorRepairs", "impact_type": "multiplicative"}],
        },
    ],
}
