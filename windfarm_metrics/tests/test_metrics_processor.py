"""Tests for MetricsProcessor over the five-year scenario."""

import pytest

from windfarm_metrics.core.errors import ErrorCode, InvalidDataError
from windfarm_metrics.core.metrics_processor import MetricsProcessor
from windfarm_metrics.metrics.registry import build_registry
from windfarm_metrics.models.metric_result import MetricResult
from windfarm_metrics.models.scenario import PercentileScenario
from windfarm_metrics.models.time_series import DataPoint, series_to_map

P50 = PercentileScenario.unified(50)
P90 = PercentileScenario.unified(90)

UNAFFECTED_BY_PRICE = ["totalCosts", "totalCapex", "energyProduction", "debtService"]


@pytest.fixture
def processor(metrics_registry, source_registry) -> MetricsProcessor:
    return MetricsProcessor(metrics_registry, source_registry)


def corrupt_price(scenario_data: dict, index: int = 1) -> dict:
    """Break the electricity price data of one percentile (index 1 is P50)."""
    distributions = scenario_data["simulation"]["inputSim"]["distributionAnalysis"]
    distributions["electricityPrice"]["results"][index]["data"] = [{"year": "one"}]
    return scenario_data


class TestComputeScenario:
    """Tests for single-scenario computation."""

    def test_foundational_totals(self, processor, scenario_data: dict) -> None:
        """Test revenue, costs and net cash flow series."""
        results = processor.compute_scenario(P50, scenario_data)

        revenue = series_to_map(results["totalRevenue"].value)
        costs = series_to_map(results["totalCosts"].value)
        net = series_to_map(results["netCashflow"].value)

        assert revenue == pytest.approx({year: 500_000.0 for year in range(1, 6)})
        assert costs == pytest.approx(
            {-1: 400_000.0, 0: 600_000.0, 1: 25_000.0, 2: 25_000.0,
             3: 50_000.0, 4: 25_000.0, 5: 25_000.0}
        )
        assert net == pytest.approx(
            {-1: -400_000.0, 0: -600_000.0, 1: 475_000.0, 2: 475_000.0,
             3: 450_000.0, 4: 475_000.0, 5: 475_000.0}
        )

    def test_debt_metrics(self, processor, scenario_data: dict) -> None:
        """Test debt service, interest and outstanding balance."""
        results = processor.compute_scenario(P50, scenario_data)

        service = series_to_map(results["debtService"].value)
        assert sorted(service) == [1, 2, 3, 4]
        assert service[1] == pytest.approx(169_207.10, abs=0.01)
        assert results["interestPayments"].value[0] == DataPoint(1, pytest.approx(30_000.0))
        assert results["outstandingDebt"].value[0] == DataPoint(0, pytest.approx(600_000.0))

    def test_analytical_metrics(self, processor, scenario_data: dict) -> None:
        """Test headline metrics succeed with plausible values."""
        results = processor.compute_scenario(P50, scenario_data)

        assert all(result.ok for result in results.values())
        assert results["payback"].value == pytest.approx(2.11)
        assert results["npv"].value > 0
        assert results["irr"].value > 0.08
        assert 0 < results["equityIrr"].value < results["irr"].value
        assert results["minDscr"].value <= results["avgDscr"].value
        assert results["minDscr"].value == pytest.approx(450_000 / 169_207.10, abs=0.01)
        assert len(results["dscr"].value) == 4

    def test_lcoe_uses_energy_production(self, processor, scenario_data: dict) -> None:
        """Test LCOE equals discounted costs over discounted MWh."""
        results = processor.compute_scenario(P50, scenario_data)
        lcoe = results["lcoe"]
        assert lcoe.value == pytest.approx(
            lcoe.metadata["npv_costs"] / lcoe.metadata["npv_energy"], abs=0.01
        )

    def test_targets_restrict_pass(self, processor, scenario_data: dict) -> None:
        """Test only targets and their dependencies are computed."""
        results = processor.compute_scenario(P50, scenario_data, targets=["irr"])
        assert list(results) == ["totalRevenue", "totalCosts", "netCashflow", "irr"]

    def test_adjustments_replace_sources(self, processor, scenario_data: dict) -> None:
        """Test replacement series flow into the totals."""
        adjusted = [DataPoint(year, 600_000.0) for year in range(1, 6)]
        results = processor.compute_scenario(
            P50, scenario_data, adjustments={"energyRevenue": adjusted}
        )
        assert series_to_map(results["totalRevenue"].value)[1] == pytest.approx(600_000.0)

    def test_deterministic(self, processor, scenario_data: dict) -> None:
        """Test identical inputs give identical results."""
        first = processor.compute_scenario(P50, scenario_data)
        second = processor.compute_scenario(P50, scenario_data)
        assert first == second


class TestComputeAll:
    """Tests for multi-scenario computation."""

    def test_every_metric_every_scenario(self, processor, scenario_data: dict) -> None:
        """Test output has a slot per metric and scenario in order."""
        output = processor.compute_all([P50, P90], scenario_data)

        assert list(output) == processor.registry.order
        for entries in output.values():
            assert [entry.scenario_key for entry in entries] == ["P50", "P90"]

    def test_p90_revenue(self, processor, scenario_data: dict) -> None:
        """Test P90 picks the P90 price and production."""
        output = processor.compute_all([P90], scenario_data)
        revenue = series_to_map(output["totalRevenue"][0].result.value)
        assert revenue[1] == pytest.approx(11_000 * 60.0)

    def test_callable_accessor(self, processor, scenario_data: dict) -> None:
        """Test a plain get_value_by_path function works as accessor."""

        def get_value_by_path(path, default=None):
            node = scenario_data
            for key in path:
                if not isinstance(node, dict) or key not in node:
                    return default
                node = node[key]
            return node

        output = processor.compute_all([P50], get_value_by_path, targets=["npv"])
        assert output["npv"][0].result.ok

    def test_fault_isolated_to_scenario(self, processor, scenario_data: dict) -> None:
        """Test a corrupt P50 price leaves P90 and price-independent metrics intact."""
        baseline = processor.compute_all([P50, P90], scenario_data)
        faulty = processor.compute_all([P50, P90], corrupt_price(scenario_data))

        for metric_id in processor.registry.order:
            assert faulty[metric_id][1] == baseline[metric_id][1]
        for metric_id in UNAFFECTED_BY_PRICE:
            assert faulty[metric_id][0] == baseline[metric_id][0]

        assert faulty["totalRevenue"][0] != baseline["totalRevenue"][0]
        assert len(faulty["npv"]) == 2


class TestFailureHandling:
    """Tests for per-metric failure isolation."""

    @staticmethod
    def build(definitions: list[dict], source_registry) -> MetricsProcessor:
        return MetricsProcessor(build_registry(definitions).unwrap(), source_registry)

    @staticmethod
    def ok(metric_input, strategy) -> MetricResult:
        return MetricResult.success(1.0)

    @staticmethod
    def broken(metric_input, strategy) -> MetricResult:
        raise InvalidDataError("bad input")

    @staticmethod
    def crashing(metric_input, strategy) -> MetricResult:
        return 1 / 0

    def test_failure_propagates_to_dependents(self, source_registry, scenario_data) -> None:
        """Test dependents of a failed metric fail with a dependency error."""
        processor = self.build(
            [
                {"id": "base", "category": "foundational", "priority": 1,
                 "calculate": self.broken},
                {"id": "sibling", "category": "foundational", "priority": 2,
                 "calculate": self.ok},
                {"id": "derived", "category": "analytical", "priority": 10,
                 "calculate": self.ok, "depends_on": ["base"]},
            ],
            source_registry,
        )
        results = processor.compute_scenario(P50, scenario_data)

        assert results["base"].error == "bad input"
        assert results["base"].error_code is ErrorCode.INVALID_DATA
        assert results["sibling"].value == 1.0
        assert results["derived"].value is None
        assert results["derived"].error_code is ErrorCode.DEPENDENCY_ERROR
        assert results["derived"].metadata["failed_dependencies"] == ["base"]

    def test_unexpected_exception(self, source_registry, scenario_data) -> None:
        """Test arbitrary exceptions become calculation failures."""
        processor = self.build(
            [{"id": "x", "category": "analytical", "priority": 10,
              "calculate": self.crashing}],
            source_registry,
        )
        result = processor.compute_scenario(P50, scenario_data)["x"]
        assert result.error_code is ErrorCode.CALCULATION_FAILED
        assert "division" in result.error

    def test_non_result_return(self, source_registry, scenario_data) -> None:
        """Test calculators must return MetricResult."""
        processor = self.build(
            [{"id": "x", "category": "analytical", "priority": 10,
              "calculate": lambda metric_input, strategy: 3.0}],
            source_registry,
        )
        result = processor.compute_scenario(P50, scenario_data)["x"]
        assert not result.ok
        assert "expected MetricResult" in result.error

    def test_threshold_warnings(self, source_registry, scenario_data) -> None:
        """Test breached thresholds are reported in metadata."""
        processor = self.build(
            [{"id": "x", "category": "analytical", "priority": 10,
              "calculate": self.ok,
              "thresholds": [{"comparison": "below", "value": 2, "severity": "critical",
                              "message": "too low"}]}],
            source_registry,
        )
        result = processor.compute_scenario(P50, scenario_data)["x"]
        assert result.ok
        assert result.metadata["warnings"] == [{"severity": "critical", "message": "too low"}]
