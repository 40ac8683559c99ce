"""Tests for analytical metric calculators."""

import pytest

from windfarm_metrics.core.aggregation import AggregationStrategy
from windfarm_metrics.core.dcf_engine import DCFEngine
from windfarm_metrics.core.errors import CalculationFailedError, ErrorCode, MissingDataError
from windfarm_metrics.metrics import coverage, financial
from windfarm_metrics.models.metric_result import MetricInput, MetricResult
from windfarm_metrics.models.project_settings import ProjectSettings
from windfarm_metrics.models.time_series import DataPoint


def series(points: dict[int, float]) -> list[DataPoint]:
    return [DataPoint(year, value) for year, value in sorted(points.items())]


def metric_input(metric_id: str, **dependencies: dict[int, float]) -> MetricInput:
    return MetricInput(
        metric_id=metric_id,
        scenario_key="P50",
        dependencies={
            dep_id: MetricResult.success(series(points))
            for dep_id, points in dependencies.items()
        },
        settings=ProjectSettings(),
    )


class TestPayback:
    """Tests for payback period."""

    def test_interpolated_payback(self) -> None:
        """Test crossing between years 2 and 3 interpolates to 2.5."""
        flows = series({0: -100, 1: 40, 2: 40, 3: 40})
        assert financial.payback_period(flows) == pytest.approx(2.5)

    def test_never_recovered(self) -> None:
        """Test unrecovered investment fails."""
        with pytest.raises(CalculationFailedError, match="not paid back"):
            financial.payback_period(series({0: -100, 1: 10, 2: 10}))

    def test_metric_rounds(self) -> None:
        """Test the metric applies the strategy precision."""
        result = financial.payback(
            metric_input("payback", netCashflow={0: -100, 1: 30, 2: 30, 3: 90}),
            AggregationStrategy("sum", {"precision": 2}),
        )
        assert result.value == pytest.approx(2.44)


class TestNPVMetric:
    """Tests for the npv metric."""

    def test_uses_cost_of_equity(self) -> None:
        """Test default discount rate comes from financing settings."""
        result = financial.npv(
            metric_input("npv", netCashflow={0: -100, 1: 108}),
            AggregationStrategy("npv", {"precision": 2}),
        )
        assert result.value == pytest.approx(0.0)
        assert result.metadata["rate_source"] == "financing"

    def test_override_rate(self) -> None:
        """Test a strategy discount rate overrides financing."""
        result = financial.npv(
            metric_input("npv", netCashflow={0: -100, 1: 110}),
            AggregationStrategy("npv", {"discount_rate": 0.1}),
        )
        assert result.value == pytest.approx(0.0)
        assert result.metadata["rate_source"] == "override"

    def test_missing_dependency(self) -> None:
        """Test a missing net cash flow raises MissingDataError."""
        with pytest.raises(MissingDataError):
            financial.npv(metric_input("npv"), AggregationStrategy("npv"))


class TestLCOE:
    """Tests for the lcoe metric."""

    def test_discounted_ratio(self) -> None:
        """Test LCOE of flat costs over flat energy equals the unit cost."""
        result = financial.lcoe(
            metric_input(
                "lcoe",
                totalCosts={1: 5_000, 2: 5_000},
                energyProduction={1: 100, 2: 100},
            ),
            AggregationStrategy("npv"),
        )
        assert result.value == pytest.approx(50.0)

    def test_zero_energy(self) -> None:
        """Test zero production is a calculation failure, not a division error."""
        with pytest.raises(CalculationFailedError, match="LCOE undefined"):
            financial.lcoe(
                metric_input("lcoe", totalCosts={1: 100}, energyProduction={1: 0}),
                AggregationStrategy("npv"),
            )


class TestLLCR:
    """Tests for the llcr metric."""

    def test_coverage(self) -> None:
        """Test discounted operational cash flow over initial debt."""
        result = financial.llcr(
            metric_input(
                "llcr",
                netCashflow={0: -1_000, 1: 110, 2: 121},
                outstandingDebt={0: 100, 1: 50},
            ),
            AggregationStrategy("npv", {"discount_rate": 0.1, "precision": 2}),
        )
        assert result.value == pytest.approx(2.0)
        assert result.metadata["initial_balance"] == 100

    def test_no_debt_not_applicable(self) -> None:
        """Test an all-equity project has no LLCR."""
        result = financial.llcr(
            metric_input("llcr", netCashflow={1: 100}, outstandingDebt={}),
            AggregationStrategy("npv"),
        )
        assert not result.ok
        assert result.value is None
        assert result.error_code is ErrorCode.MISSING_DATA
        assert result.metadata["not_applicable"]


class TestEquityIRR:
    """Tests for equity cash flows and equity IRR."""

    def test_equity_cash_flows(self) -> None:
        """Test debt service and equity draws are deducted from every year."""
        flows = financial.equity_cash_flows(
            series({-1: -400, 0: -600, 1: 475}),
            series({1: 169}),
            series({-1: 160, 0: 240}),
        )
        assert flows == series({-1: -560, 0: -840, 1: 306})

    def test_construction_year_keeps_net_cashflow(self) -> None:
        """Test a construction year is net cash flow less the equity draw."""
        flows = financial.equity_cash_flows(
            series({0: -1_000, 1: 600}),
            series({1: 100}),
            series({0: 300}),
        )
        assert flows == series({0: -1_300, 1: 500})

    def test_years_follow_net_cashflow(self) -> None:
        """Test years present only in debt service or draws are ignored."""
        flows = financial.equity_cash_flows(
            series({1: 500, 2: 500}),
            series({1: 100, 2: 100, 3: 100}),
            series({-1: 50}),
        )
        assert [point.year for point in flows] == [1, 2]

    def test_equity_irr_root(self) -> None:
        """Test equity IRR zeroes the NPV of the equity cash flow."""
        inputs = metric_input(
            "equityIrr",
            netCashflow={0: -500, 1: 400, 2: 400, 3: 400},
            debtService={1: 100, 2: 100, 3: 100},
            equityDraws={0: 100},
        )
        project = financial.irr(inputs, AggregationStrategy())
        equity = financial.equity_irr(inputs, AggregationStrategy())

        flows = series({0: -600, 1: 300, 2: 300, 3: 300})
        assert DCFEngine.calculate_npv(flows, equity.value) == pytest.approx(0.0, abs=1e-2)
        assert equity.value < project.value
        assert equity.metadata["periods"] == 4

class TestCoverage:
    """Tests for DSCR and ICR."""

    def test_dscr_in_year(self) -> None:
        """Test 300,000 cash flow over 150,000 debt service is 2.0."""
        result = coverage.dscr_series(
            metric_input("dscr", netCashflow={5: 300_000}, debtService={5: 150_000}),
            AggregationStrategy(),
        )
        assert result.value == [DataPoint(5, 2.0)]

    def test_years_without_debt_service_excluded(self) -> None:
        """Test zero-obligation years are skipped and ratios floored at zero."""
        ratios = coverage.coverage_series(
            series({0: -500, 1: -10, 2: 200, 3: 50}),
            series({1: 100, 2: 100, 3: 0}),
        )
        assert ratios == [DataPoint(1, 0.0), DataPoint(2, 2.0)]

    def test_summary_bounds(self) -> None:
        """Test min <= mean <= max of the DSCR series."""
        inputs = metric_input(
            "avgDscr",
            netCashflow={1: 150, 2: 200, 3: 260},
            debtService={1: 100, 2: 100, 3: 100},
        )
        options = {"filter": "operational", "precision": 2}
        low = coverage.dscr_summary(inputs, AggregationStrategy("min", options)).value
        mean = coverage.dscr_summary(inputs, AggregationStrategy("mean", options)).value
        high = coverage.dscr_summary(inputs, AggregationStrategy("max", options)).value
        assert low <= mean <= high
        assert (low, mean, high) == pytest.approx((1.5, 2.03, 2.6))

    def test_summary_without_debt(self) -> None:
        """Test no debt service yields a not-applicable failure."""
        result = coverage.icr_summary(
            metric_input("minIcr", netCashflow={1: 100}, interestPayments={}),
            AggregationStrategy("min", {"filter": "operational"}),
        )
        assert result.error_code is ErrorCode.MISSING_DATA
        assert result.metadata["not_applicable"]
