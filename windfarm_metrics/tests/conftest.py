"""Shared fixtures: a small five-year wind farm scenario."""

import copy

import pytest

from windfarm_metrics.models.source_extractor import build_source_registry
from windfarm_metrics.templates.metric_templates import build_default_registry
from windfarm_metrics.templates.registry_templates import SOURCE_REGISTRY_TEMPLATE

PROJECT_LIFE = 5
OPERATIONAL_YEARS = range(1, PROJECT_LIFE + 1)


def percentile_results(values: dict[int, float], years=OPERATIONAL_YEARS) -> dict:
    """Percentile result set with a constant value per percentile."""
    return {
        "results": [
            {
                "percentile": {"value": percentile},
                "data": [{"year": year, "value": value} for year in years],
            }
            for percentile, value in values.items()
        ]
    }


SCENARIO = {
    "settings": {
        "general": {"projectLife": PROJECT_LIFE},
        "project": {
            "windFarm": {"numWTGs": 2},
            "currency": {"local": "EUR"},
        },
        "simulation": {
            "percentiles": [{"value": 10}, {"value": 50}, {"value": 90}],
            "primaryPercentile": 50,
        },
        "modules": {
            "financing": {
                "debtFinancingRatio": 60,
                "costOfEquity": 8,
                "costOfOperationalDebt": 5,
                "costOfConstructionDebt": 4,
                "loanDuration": 4,
                "gracePeriod": 0,
                "amortizationType": "amortizing",
                "idcCapitalization": False,
            },
            "cost": {
                "constructionPhase": {
                    "costSources": [
                        {
                            "id": "turbines",
                            "totalAmount": 1_000_000,
                            "drawdownSchedule": [
                                {"year": -1, "value": 40},
                                {"year": 0, "value": 60},
                            ],
                        }
                    ]
                },
                "majorRepairEvents": [{"year": 3, "cost": 50_000, "probability": 50}],
            },
            "contracts": {
                "oemContracts": [
                    {
                        "id": "oem",
                        "fixedFee": 10_000,
                        "years": [1, 2, 3, 4, 5],
                        "isPerTurbine": True,
                    }
                ]
            },
            "risk": {"insurancePremium": 5_000, "reserveFunds": 0},
        },
    },
    "simulation": {
        "inputSim": {
            "distributionAnalysis": {
                "escalationRate": percentile_results({10: 1.0, 50: 1.0, 90: 1.0}),
                "electricityPrice": percentile_results({10: 40.0, 50: 50.0, 90: 60.0}),
                "energyProduction": percentile_results(
                    {10: 9_000.0, 50: 10_000.0, 90: 11_000.0}
                ),
                "availability": percentile_results(
                    {10: 0.95, 50: 0.97, 90: 0.99}, years=[1]
                ),
                "oemServiceCosts": percentile_results(
                    {10: 9_000.0, 50: 10_000.0, 90: 12_000.0}, years=[1]
                ),
            }
        }
    },
}


@pytest.fixture
def scenario_data() -> dict:
    """Fresh copy of the five-year scenario document."""
    return copy.deepcopy(SCENARIO)


@pytest.fixture
def metrics_registry():
    """Registry of the default metric definitions."""
    return build_default_registry()


@pytest.fixture
def source_registry():
    """Registry of the default source template."""
    return build_source_registry(SOURCE_REGISTRY_TEMPLATE).unwrap()
