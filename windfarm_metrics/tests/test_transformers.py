"""Tests for cost and financing transformers."""

import numpy as np
import pytest

from windfarm_metrics.core.errors import InvalidDataError
from windfarm_metrics.models import cost_model, financing_model
from windfarm_metrics.models.financing_model import FinancingModel
from windfarm_metrics.models.project_settings import FinancingSettings
from windfarm_metrics.models.time_series import DataPoint, series_to_map
from windfarm_metrics.models.transform_context import TransformContext
from windfarm_metrics.models.transformers import get_transformer

COST_SOURCES = [
    {
        "id": "turbines",
        "totalAmount": 1_000_000,
        "drawdownSchedule": [{"year": -1, "value": 40}, {"year": 0, "value": 60}],
    }
]

FINANCING = {
    "debtFinancingRatio": 60,
    "costOfOperationalDebt": 5,
    "costOfConstructionDebt": 4,
    "loanDuration": 4,
    "gracePeriod": 0,
    "amortizationType": "amortizing",
    "idcCapitalization": False,
}


def context(**financing_overrides) -> TransformContext:
    return TransformContext(
        project_life=5,
        num_turbines=2,
        references={"financing": {**FINANCING, **financing_overrides}},
    )


class TestCostTransformers:
    """Tests for cost_model transformers."""

    def test_fixed_cost(self) -> None:
        """Test numeric amount repeats over operational years."""
        series = cost_model.fixed_cost(5_000, context())
        assert series == [DataPoint(year, 5_000.0) for year in range(1, 6)]

    def test_capex_drawdown(self) -> None:
        """Test percentage schedules convert to amounts."""
        series = cost_model.capex_drawdown(COST_SOURCES, context())
        assert series == [DataPoint(-1, 400_000.0), DataPoint(0, 600_000.0)]

    def test_capex_requires_list(self) -> None:
        """Test a mapping is rejected."""
        with pytest.raises(InvalidDataError):
            cost_model.capex_drawdown({"totalAmount": 1}, context())

    def test_contract_fees_outside_life_dropped(self) -> None:
        """Test fees beyond the project life are ignored."""
        contracts = [{"fixedFee": 100, "years": [1, 6, 7], "isPerTurbine": False}]
        assert cost_model.contract_fees(contracts, context()) == [DataPoint(1, 100.0)]

    def test_contract_fee_time_series(self) -> None:
        """Test explicit fee series scale per turbine."""
        contracts = [
            {"fixedFeeTimeSeries": [{"year": 2, "value": 50}], "isPerTurbine": True}
        ]
        assert cost_model.contract_fees(contracts, context()) == [DataPoint(2, 100.0)]

    def test_major_repairs_default_probability(self) -> None:
        """Test events without probability are certain."""
        events = [{"year": 2, "cost": 1_000}, {"year": 2, "cost": 500, "probability": 20}]
        assert cost_model.major_repairs(events, context()) == [DataPoint(2, 1_100.0)]

    def test_reserve_funds(self) -> None:
        """Test reserves spread over the first five years at most."""
        short_life = TransformContext(project_life=2)
        assert cost_model.reserve_funds(1_000, short_life) == [
            DataPoint(1, 500.0),
            DataPoint(2, 500.0),
        ]
        assert cost_model.reserve_funds(0, short_life) == []

    def test_lookup(self) -> None:
        """Test transformers resolve by name."""
        assert get_transformer("fixed_cost") is cost_model.fixed_cost
        with pytest.raises(KeyError, match="Unknown transformer"):
            get_transformer("missing")


class TestFinancingModel:
    """Tests for FinancingModel schedules."""

    def test_annuity_repays_principal(self) -> None:
        """Test annuity schedule repays the loan with constant debt service."""
        financing = FinancingSettings(cost_of_debt=0.05, loan_duration=4, grace_period=0)
        schedule = FinancingModel().calculate(600_000, financing, 5)

        np.testing.assert_allclose(schedule["debt_service"][:4], schedule["annuity"])
        assert schedule["annuity"] == pytest.approx(169_207.10, abs=0.01)
        assert schedule["principal"].sum() == pytest.approx(600_000)
        assert schedule["debt_service"][4] == 0.0

    def test_grace_period_is_interest_only(self) -> None:
        """Test grace years pay interest without principal."""
        financing = FinancingSettings(cost_of_debt=0.05, loan_duration=3, grace_period=1)
        schedule = FinancingModel().calculate(100_000, financing, 5)

        assert schedule["principal"][0] == 0.0
        assert schedule["interest"][0] == pytest.approx(5_000.0)
        assert schedule["principal"][1:4].sum() == pytest.approx(100_000)

    def test_equal_principal(self) -> None:
        """Test straight-line repayment."""
        financing = FinancingSettings(
            cost_of_debt=0.1, loan_duration=4, grace_period=0, amortization="equal_principal"
        )
        schedule = FinancingModel().calculate(400, financing, 4)
        np.testing.assert_allclose(schedule["principal"], [100, 100, 100, 100])
        np.testing.assert_allclose(schedule["interest"], [40, 30, 20, 10])

    def test_bullet(self) -> None:
        """Test bullet repays everything in the final term year."""
        financing = FinancingSettings(
            cost_of_debt=0.1, loan_duration=3, grace_period=0, amortization="bullet"
        )
        schedule = FinancingModel().calculate(1_000, financing, 5)
        np.testing.assert_allclose(schedule["principal"], [0, 0, 1_000, 0, 0])

    def test_no_debt(self) -> None:
        """Test zero principal gives an all-zero schedule."""
        schedule = FinancingModel().calculate(0, FinancingSettings(), 3)
        assert schedule["initial_balance"] == 0.0
        assert not schedule["debt_service"].any()


class TestFinancingTransformers:
    """Tests for financing transformers over construction cost sources."""

    def test_debt_and_equity_split(self) -> None:
        """Test drawdowns split by the debt ratio."""
        debt = financing_model.debt_drawdown(COST_SOURCES, context())
        equity = financing_model.equity_drawdown(COST_SOURCES, context())
        assert series_to_map(debt) == pytest.approx({-1: 240_000.0, 0: 360_000.0})
        assert series_to_map(equity) == pytest.approx({-1: 160_000.0, 0: 240_000.0})

    def test_idc_only_when_capitalised(self) -> None:
        """Test IDC is empty unless capitalisation is enabled."""
        assert financing_model.interest_during_construction(COST_SOURCES, context()) == []

        idc = financing_model.interest_during_construction(
            COST_SOURCES, context(idcCapitalization=True)
        )
        # Half-year convention on each year's drawdown
        assert series_to_map(idc) == pytest.approx(
            {-1: 120_000 * 0.04, 0: (240_000 + 180_000) * 0.04}
        )

    def test_debt_balance_starts_at_cod(self) -> None:
        """Test the balance series opens at year 0 with the full principal."""
        balance = financing_model.debt_balance(COST_SOURCES, context())
        assert balance[0] == DataPoint(0, 600_000.0)
        assert [p.year for p in balance] == [0, 1, 2, 3]

    def test_interest_and_principal(self) -> None:
        """Test first-year interest and total principal."""
        interest = financing_model.debt_interest(COST_SOURCES, context())
        principal = financing_model.debt_principal(COST_SOURCES, context())
        assert interest[0] == DataPoint(1, pytest.approx(30_000.0))
        assert sum(p.value for p in principal) == pytest.approx(600_000.0)
