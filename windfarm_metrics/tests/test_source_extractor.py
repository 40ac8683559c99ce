"""Tests for source configuration and time series extraction."""

import pytest

from windfarm_metrics.core.errors import (
    DependencyError,
    InvalidDataError,
    MissingDataError,
    ValidationError,
)
from windfarm_metrics.models.dict_data_accessor import DictDataAccessor
from windfarm_metrics.models.scenario import PercentileScenario
from windfarm_metrics.models.source_extractor import (
    MultiplierOperation,
    SourceCategory,
    apply_multiplier,
    build_source_registry,
    extract_all,
    select_percentile_series,
)
from windfarm_metrics.models.time_series import DataPoint, series_to_map


class TestPercentileSelection:
    """Tests for select_percentile_series."""

    RAW = {
        "results": [
            {"percentile": {"value": 10}, "data": [{"year": 1, "value": 1.0}]},
            {"percentile": 50, "data": [{"year": 2, "value": 5.0}, {"year": 1, "value": 4.0}]},
        ]
    }

    def test_unified_selection_sorted(self) -> None:
        """Test the matching percentile is selected and sorted by year."""
        percentile, series = select_percentile_series(
            self.RAW, "price", PercentileScenario.unified(50)
        )
        assert percentile == 50.0
        assert series == [DataPoint(1, 4.0), DataPoint(2, 5.0)]

    def test_per_source_override(self) -> None:
        """Test per-source scenarios pick the source's own percentile."""
        scenario = PercentileScenario.per_source({"price": 10}, fallback=50)
        percentile, _ = select_percentile_series(self.RAW, "price", scenario)
        assert percentile == 10.0

    def test_per_source_fallback_to_first_available(self) -> None:
        """Test sources missing from the map use the first available percentile."""
        scenario = PercentileScenario.per_source({"other": 90})
        percentile, _ = select_percentile_series(self.RAW, "price", scenario)
        assert percentile == 10.0

    def test_missing_percentile(self) -> None:
        """Test a percentile absent from the results is missing data."""
        with pytest.raises(MissingDataError, match="P90"):
            select_percentile_series(self.RAW, "price", PercentileScenario.unified(90))

    def test_not_a_result_set(self) -> None:
        """Test non-percentile raw data is invalid."""
        with pytest.raises(InvalidDataError):
            select_percentile_series({"value": 3}, "price", PercentileScenario.unified(50))


class TestApplyMultiplier:
    """Tests for apply_multiplier."""

    def test_multiply_missing_year_is_neutral(self) -> None:
        """Test years absent from the multiplier are unchanged."""
        series = [DataPoint(1, 10.0), DataPoint(2, 10.0), DataPoint(3, 10.0)]
        result = apply_multiplier(series, [DataPoint(1, 2.0)], MultiplierOperation.MULTIPLY)
        assert result == [DataPoint(1, 20.0), DataPoint(2, 10.0), DataPoint(3, 10.0)]

    def test_compound_from_base_year(self) -> None:
        """Test compounding raises the factor to (year - base_year)."""
        series = [DataPoint(year, 100.0) for year in (1, 2, 3)]
        factors = [DataPoint(year, 1.1) for year in (1, 2, 3)]
        result = apply_multiplier(series, factors, MultiplierOperation.COMPOUND, 1)
        assert [p.value for p in result] == pytest.approx([100.0, 110.0, 121.0])

    def test_zero_compound_factor_before_base_year(self) -> None:
        """Test a zero factor cannot be compounded back before the base year."""
        series = [DataPoint(0, 100.0), DataPoint(1, 100.0)]
        factors = [DataPoint(0, 0.0), DataPoint(1, 0.0)]
        with pytest.raises(InvalidDataError, match="zero in year 0"):
            apply_multiplier(series, factors, MultiplierOperation.COMPOUND, 1)

    def test_zero_compound_factor_from_base_year(self) -> None:
        """Test a zero factor at or after the base year is valid."""
        result = apply_multiplier(
            [DataPoint(1, 100.0), DataPoint(2, 100.0)],
            [DataPoint(1, 0.0), DataPoint(2, 0.0)],
            MultiplierOperation.COMPOUND,
            1,
        )
        assert result == [DataPoint(1, 100.0), DataPoint(2, 0.0)]

    def test_output_keeps_series_years(self) -> None:
        """Test multiplier-only years are not added."""
        result = apply_multiplier(
            [DataPoint(1, 5.0)],
            [DataPoint(1, 2.0), DataPoint(2, 3.0)],
            MultiplierOperation.MULTIPLY,
        )
        assert result == [DataPoint(1, 10.0)]


class TestBuildSourceRegistry:
    """Tests for build_source_registry."""

    def test_default_template(self, source_registry) -> None:
        """Test multipliers are ordered before the sources that use them."""
        order = list(source_registry.order)
        assert order.index("escalationRate") < order.index("contractFees")
        assert order.index("electricityPrice") < order.index("energyRevenue")
        assert source_registry.get("energyRevenue").category is SourceCategory.REVENUE

    def test_percentile_sources(self, source_registry) -> None:
        """Test only percentile-indexed sources are listed."""
        ids = [source.id for source in source_registry.percentile_sources()]
        assert ids == ["escalationRate", "electricityPrice", "energyProduction"]

    def test_dependents_of_multiplier(self, source_registry) -> None:
        """Test escalation affects every escalated source."""
        ids = {source.id for source in source_registry.dependents_of("escalationRate")}
        assert ids == {"contractFees", "majorRepairs", "insurancePremium", "energyRevenue"}

    def test_duplicate_id(self) -> None:
        """Test duplicate ids fail the build."""
        result = build_source_registry(
            [{"id": "a", "category": "cost"}, {"id": "a", "category": "cost"}]
        )
        with pytest.raises(ValidationError, match="Duplicate source id"):
            result.unwrap()

    def test_unknown_transformer(self) -> None:
        """Test unknown transformer names fail the build."""
        result = build_source_registry(
            [{"id": "a", "category": "cost", "transformer": "nope"}]
        )
        assert not result.is_valid
        assert "Unknown transformer 'nope'" in str(result.errors[0])

    def test_unresolved_multiplier(self) -> None:
        """Test multipliers must reference a configured source."""
        result = build_source_registry(
            [{"id": "a", "category": "cost", "multipliers": [{"id": "ghost"}]}]
        )
        with pytest.raises(DependencyError):
            result.unwrap()

    def test_multiplier_cycle(self) -> None:
        """Test cyclic multiplier chains fail the build."""
        result = build_source_registry(
            [
                {"id": "a", "category": "multiplier", "multipliers": [{"id": "b"}]},
                {"id": "b", "category": "multiplier", "multipliers": [{"id": "a"}]},
            ]
        )
        assert result.registry is None
        assert isinstance(result.errors[0], DependencyError)

    def test_invalid_category(self) -> None:
        """Test unknown categories are validation errors."""
        result = build_source_registry([{"id": "a", "category": "tax"}])
        assert isinstance(result.errors[0], ValidationError)


class TestExtractAll:
    """Tests for extract_all against the five-year scenario."""

    def test_energy_revenue_p50(self, source_registry, scenario_data: dict) -> None:
        """Test revenue is production x price x escalation."""
        sources = extract_all(
            source_registry, PercentileScenario.unified(50), DictDataAccessor(scenario_data)
        )
        revenue = series_to_map(sources.get("energyRevenue"))
        assert revenue == pytest.approx({year: 500_000.0 for year in range(1, 6)})
        assert not sources.failed

    def test_per_source_scenario(self, source_registry, scenario_data: dict) -> None:
        """Test one source at P90 while the rest stay at the fallback."""
        scenario = PercentileScenario.per_source({"electricityPrice": 90}, fallback=50)
        sources = extract_all(source_registry, scenario, DictDataAccessor(scenario_data))
        revenue = series_to_map(sources.get("energyRevenue"))
        assert revenue[1] == pytest.approx(10_000 * 60.0)

    def test_operating_costs(self, source_registry, scenario_data: dict) -> None:
        """Test contract fees scale per turbine and repairs are probability weighted."""
        sources = extract_all(
            source_registry, PercentileScenario.unified(50), DictDataAccessor(scenario_data)
        )
        assert series_to_map(sources.get("contractFees"))[1] == pytest.approx(20_000.0)
        assert series_to_map(sources.get("majorRepairs")) == {3: pytest.approx(25_000.0)}
        assert sources.get("reserveFunds") == []

    def test_failed_source_is_isolated(self, source_registry, scenario_data: dict) -> None:
        """Test a malformed source is recorded and others still extract."""
        distributions = scenario_data["simulation"]["inputSim"]["distributionAnalysis"]
        distributions["electricityPrice"]["results"][1]["data"] = "corrupt"

        sources = extract_all(
            source_registry, PercentileScenario.unified(50), DictDataAccessor(scenario_data)
        )
        assert "electricityPrice" in sources.failed
        assert "capexDrawdown" in sources
        assert "energyProduction" in sources
        with pytest.raises(MissingDataError, match="unavailable"):
            sources.get("electricityPrice")

    def test_zero_compound_factor_recorded(self, scenario_data: dict) -> None:
        """Test a zero compound factor fails the source with a readable message."""
        scenario_data["settings"]["rates"] = [
            {"year": 0, "value": 0.0},
            {"year": 1, "value": 1.0},
        ]
        scenario_data["settings"]["fees"] = [
            {"year": 0, "value": 10.0},
            {"year": 1, "value": 10.0},
        ]
        registry = build_source_registry(
            [
                {"id": "rate", "category": "multiplier", "path": ["settings", "rates"]},
                {
                    "id": "fees",
                    "category": "cost",
                    "path": ["settings", "fees"],
                    "multipliers": [{"id": "rate", "operation": "compound", "base_year": 1}],
                },
            ]
        ).unwrap()
        sources = extract_all(
            registry, PercentileScenario.unified(50), DictDataAccessor(scenario_data)
        )
        assert "Compound factor is zero in year 0" in sources.failed["fees"]
        assert "ZeroDivisionError" not in sources.failed["fees"]

    def test_missing_path(self, source_registry, scenario_data: dict) -> None:
        """Test absent raw data is recorded as a failure."""
        del scenario_data["settings"]["modules"]["contracts"]
        sources = extract_all(
            source_registry, PercentileScenario.unified(50), DictDataAccessor(scenario_data)
        )
        assert "no data" in sources.failed["contractFees"]

    def test_only_subset_includes_multipliers(
        self, source_registry, scenario_data: dict
    ) -> None:
        """Test restricting extraction pulls in multiplier inputs."""
        sources = extract_all(
            source_registry,
            PercentileScenario.unified(50),
            DictDataAccessor(scenario_data),
            only=["energyRevenue"],
        )
        assert set(sources.as_dict()) == {
            "escalationRate",
            "electricityPrice",
            "energyProduction",
            "energyRevenue",
        }

    def test_custom_transformer_table(self, scenario_data: dict) -> None:
        """Test sources resolve transformers from the registry's own table."""
        registry = build_source_registry(
            [
                {
                    "id": "lease",
                    "category": "cost",
                    "path": ["settings", "general", "projectLife"],
                    "transformer": "doubled",
                }
            ],
            transformers={"doubled": lambda raw, context: [DataPoint(1, raw * 2.0)]},
        ).unwrap()
        sources = extract_all(
            registry, PercentileScenario.unified(50), DictDataAccessor(scenario_data)
        )
        assert sources.get("lease") == [DataPoint(1, 10.0)]

    def test_by_group(self, source_registry, scenario_data: dict) -> None:
        """Test group lookup in registry order."""
        sources = extract_all(
            source_registry, PercentileScenario.unified(50), DictDataAccessor(scenario_data)
        )
        assert list(sources.by_group("debt_service")) == [
            "operationalInterest",
            "operationalPrincipal",
        ]
