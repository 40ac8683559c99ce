"""Percentile scenario selection."""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from windfarm_metrics.core.errors import ValidationError

DEFAULT_PERCENTILE = 50
PER_SOURCE_KEY = "perSource"


def percentile_key(percentile: float) -> str:
    """Scenario key for a unified percentile, e.g. ``50 -> "P50"``."""
    if float(percentile).is_integer():
        return f"P{int(percentile)}"
    return f"P{percentile:g}"


@dataclass(frozen=True)
class PercentileScenario:
    """
    Assignment of percentiles to percentile-bearing sources.

    Use ``unified`` for one percentile across all sources, or ``per_source``
    for independent selections.

    Attributes:
        kind: ``"unified"`` or ``"perSource"``.
        percentile: Unified percentile (also the per-source fallback, if set).
        source_percentiles: Per-source overrides.
        key: Stable identifier for results.
    """

    kind: str
    percentile: float | None = None
    source_percentiles: Mapping[str, float] = field(default_factory=dict)
    key: str = ""

    def __post_init__(self) -> None:
        if self.kind not in ("unified", PER_SOURCE_KEY):
            raise ValidationError(f"Unknown scenario type '{self.kind}'")
        if self.kind == "unified" and self.percentile is None:
            raise ValidationError("Unified scenario requires a percentile")
        for value in [self.percentile, *self.source_percentiles.values()]:
            if value is not None and not 0 <= value <= 100:
                raise ValidationError(f"Percentile {value} outside [0, 100]")
        object.__setattr__(
            self, "source_percentiles", MappingProxyType(dict(self.source_percentiles))
        )
        if not self.key:
            key = (
                percentile_key(self.percentile)
                if self.kind == "unified"
                else PER_SOURCE_KEY
            )
            object.__setattr__(self, "key", key)

    @classmethod
    def unified(cls, percentile: float) -> "PercentileScenario":
        return cls("unified", percentile=percentile)

    @classmethod
    def per_source(
        cls,
        source_percentiles: Mapping[str, float],
        fallback: float | None = None,
        key: str = PER_SOURCE_KEY,
    ) -> "PercentileScenario":
        return cls(
            PER_SOURCE_KEY,
            percentile=fallback,
            source_percentiles=source_percentiles,
            key=key,
        )

    def percentile_for(
        self, source_id: str, available: Sequence[float] | None = None
    ) -> float:
        """
        Percentile selected for a source under this scenario.

        Per-source scenarios fall back to the scenario fallback percentile,
        then the first available percentile, then 50.
        """
        if self.kind == "unified":
            return float(self.percentile)
        if source_id in self.source_percentiles:
            return float(self.source_percentiles[source_id])
        if self.percentile is not None:
            return float(self.percentile)
        if available:
            return float(available[0])
        return float(DEFAULT_PERCENTILE)

    def with_source(self, source_id: str, percentile: float) -> "PercentileScenario":
        """
        Copy of this scenario with one source moved to ``percentile``.

        A unified scenario becomes per-source with its percentile as the
        fallback for every other source.
        """
        overrides = dict(self.source_percentiles)
        overrides[source_id] = percentile
        return PercentileScenario(
            PER_SOURCE_KEY,
            percentile=self.percentile,
            source_percentiles=overrides,
            key=f"{self.key}:{source_id}={percentile_key(percentile)}",
        )


def build_scenarios(
    percentile_scenarios: Iterable[Any] | None,
    per_source_percentiles: Mapping[str, float] | None = None,
    fallback: float | None = None,
) -> list[PercentileScenario]:
    """
    Build the scenario batch for one request.

    Args:
        percentile_scenarios: Unified percentiles (numbers) or ready-made
            PercentileScenario instances.
        per_source_percentiles: Optional per-source selection; appended as
            a ``perSource`` scenario when non-empty.
        fallback: Percentile for sources missing from the per-source map.

    Returns:
        Scenarios in request order with duplicate keys removed.
    """
    scenarios: list[PercentileScenario] = []
    seen: set[str] = set()

    for item in percentile_scenarios or []:
        if isinstance(item, PercentileScenario):
            scenario = item
        elif isinstance(item, Mapping):
            scenario = _scenario_from_mapping(item)
        elif isinstance(item, (int, float)) and not isinstance(item, bool):
            scenario = PercentileScenario.unified(item)
        else:
            raise ValidationError(f"Cannot interpret {item!r} as a percentile scenario")
        if scenario.key not in seen:
            seen.add(scenario.key)
            scenarios.append(scenario)

    if per_source_percentiles:
        scenario = PercentileScenario.per_source(per_source_percentiles, fallback)
        if scenario.key not in seen:
            scenarios.append(scenario)

    return scenarios


def _scenario_from_mapping(item: Mapping[str, Any]) -> PercentileScenario:
    kind = item.get("type", "unified")
    if kind == "unified":
        return PercentileScenario.unified(item.get("percentile", DEFAULT_PERCENTILE))
    return PercentileScenario.per_source(
        item.get("sourcePercentiles", item.get("source_percentiles", {})),
        item.get("percentile"),
        item.get("key", PER_SOURCE_KEY),
    )
