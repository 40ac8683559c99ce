"""Source configuration and extraction of canonical time series."""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from windfarm_metrics.core.dependency_resolver import topological_sort
from windfarm_metrics.core.errors import (
    DependencyError,
    InvalidDataError,
    MetricsError,
    MissingDataError,
    RegistryBuildResult,
    ValidationError,
)
from windfarm_metrics.interfaces.data_accessor import DataAccessorInterface
from windfarm_metrics.models.project_settings import ProjectSettings
from windfarm_metrics.models.scenario import PercentileScenario
from windfarm_metrics.models.time_series import (
    DataPoint,
    TimeSeries,
    constant_series,
    series_to_map,
    sort_series,
    to_series,
)
from windfarm_metrics.models.transform_context import TransformContext
from windfarm_metrics.models.transformers import (
    TRANSFORMERS,
    Transformer,
    get_transformer,
)

logger = logging.getLogger(__name__)

TEMPLATE_SECTIONS = {"multipliers": "multiplier", "costs": "cost", "revenues": "revenue"}


class SourceCategory(str, Enum):
    COST = "cost"
    REVENUE = "revenue"
    MULTIPLIER = "multiplier"


class MultiplierOperation(str, Enum):
    MULTIPLY = "multiply"
    COMPOUND = "compound"


@dataclass(frozen=True)
class MultiplierConfig:
    """Reference to another source applied point-wise to this one."""

    id: str
    operation: MultiplierOperation = MultiplierOperation.MULTIPLY
    base_year: int = 1


@dataclass(frozen=True)
class SourceConfig:
    """
    One configured cash-flow data source.

    Attributes:
        id: Source identifier.
        category: Cost, revenue or multiplier.
        path: Accessor path of the raw data (None for derived sources).
        has_percentiles: Raw data is a percentile-indexed result set.
        transformer: Name of the raw-record transformer.
        multipliers: Multipliers applied in declaration order.
        group: Line-item group, e.g. ``operations`` or ``debt_service``.
        references: Named extra accessor paths passed to the transformer.
        description: Human-readable description.
    """

    id: str
    category: SourceCategory
    path: tuple[str, ...] | None = None
    has_percentiles: bool = False
    transformer: str | None = None
    multipliers: tuple[MultiplierConfig, ...] = ()
    group: str = ""
    references: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    description: str = ""

    @classmethod
    def from_dict(
        cls, raw: Mapping[str, Any], category: str | None = None
    ) -> "SourceConfig":
        """
        Build a SourceConfig from a template entry.

        Raises:
            ValidationError: If required keys are missing or values are invalid.
        """
        try:
            source_id = raw["id"]
            source_category = SourceCategory(raw.get("category", category))
            multipliers = tuple(
                MultiplierConfig(
                    id=item["id"],
                    operation=MultiplierOperation(item.get("operation", "multiply")),
                    base_year=int(item.get("base_year", 1)),
                )
                for item in raw.get("multipliers", [])
            )
        except (KeyError, ValueError, TypeError) as exc:
            raise ValidationError(f"Invalid source config {raw!r}: {exc}") from exc

        path = raw.get("path")
        return cls(
            id=source_id,
            category=source_category,
            path=tuple(path) if path else None,
            has_percentiles=bool(raw.get("has_percentiles", False)),
            transformer=raw.get("transformer"),
            multipliers=multipliers,
            group=raw.get("group", ""),
            references=MappingProxyType(
                {name: tuple(ref) for name, ref in raw.get("references", {}).items()}
            ),
            description=raw.get("description", ""),
        )


class SourceRegistry:
    """
    Validated, read-only collection of sources in extraction order.

    Args:
        sources: Sources in extraction order.
        transformers: Transformer lookup table.
    """

    def __init__(
        self,
        sources: Sequence[SourceConfig],
        transformers: Mapping[str, Transformer],
    ) -> None:
        self._sources = {source.id: source for source in sources}
        self.order: tuple[str, ...] = tuple(source.id for source in sources)
        self.transformers = MappingProxyType(dict(transformers))

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._sources

    def __iter__(self):
        return (self._sources[source_id] for source_id in self.order)

    def __len__(self) -> int:
        return len(self._sources)

    def get(self, source_id: str) -> SourceConfig:
        if source_id not in self._sources:
            raise MissingDataError(f"Unknown source '{source_id}'")
        return self._sources[source_id]

    def percentile_sources(self) -> list[SourceConfig]:
        return [source for source in self if source.has_percentiles]

    def dependents_of(self, source_id: str) -> list[SourceConfig]:
        """Sources that apply ``source_id`` as a multiplier, directly or indirectly."""
        affected = {source_id}
        for source in self:
            if any(m.id in affected for m in source.multipliers):
                affected.add(source.id)
        return [source for source in self if source.id in affected - {source_id}]


def _template_entries(
    config: Mapping[str, Sequence[Mapping[str, Any]]] | Sequence[Any],
) -> list[tuple[Any, str | None]]:
    if isinstance(config, Mapping):
        entries = []
        for section, category in TEMPLATE_SECTIONS.items():
            entries.extend((item, category) for item in config.get(section, []))
        return entries
    return [(item, None) for item in config]


def build_source_registry(
    config: Mapping[str, Sequence[Mapping[str, Any]]] | Sequence[Any],
    transformers: Mapping[str, Transformer] | None = None,
) -> RegistryBuildResult:
    """
    Validate source configuration and order it for extraction.

    Args:
        config: Template dict with ``multipliers``/``costs``/``revenues``
            sections, or a flat list of SourceConfig or dict entries.
        transformers: Transformer table (defaults to the built-in library).

    Returns:
        RegistryBuildResult wrapping a SourceRegistry; duplicate ids,
        unknown transformers, unresolved multipliers and multiplier cycles are
        reported as errors.
    """
    transformers = TRANSFORMERS if transformers is None else transformers
    errors: list[MetricsError] = []
    sources: dict[str, SourceConfig] = {}

    for item, category in _template_entries(config):
        try:
            source = (
                item
                if isinstance(item, SourceConfig)
                else SourceConfig.from_dict(item, category)
            )
        except ValidationError as exc:
            errors.append(exc)
            continue
        if source.id in sources:
            errors.append(ValidationError(f"Duplicate source id '{source.id}'"))
            continue
        if source.transformer:
            try:
                get_transformer(source.transformer, transformers)
            except KeyError as exc:
                errors.append(ValidationError(f"Source '{source.id}': {exc.args[0]}"))
        sources[source.id] = source

    try:
        order = topological_sort(
            {sid: [m.id for m in source.multipliers] for sid, source in sources.items()}
        )
    except DependencyError as exc:
        errors.append(exc)
        return RegistryBuildResult(None, errors)

    if errors:
        return RegistryBuildResult(None, errors)
    registry = SourceRegistry([sources[sid] for sid in order], transformers)
    logger.debug("Built source registry with %d sources", len(registry))
    return RegistryBuildResult(registry, [])


def _percentile_value(item: Mapping[str, Any]) -> float | None:
    percentile = item.get("percentile")
    if isinstance(percentile, Mapping):
        percentile = percentile.get("value")
    if isinstance(percentile, (int, float)) and not isinstance(percentile, bool):
        return float(percentile)
    return None


def select_percentile_series(
    raw: Any, source_id: str, scenario: PercentileScenario
) -> tuple[float, TimeSeries]:
    """
    Pick the result series for the scenario's percentile.

    Args:
        raw: ``{"results": [...]}`` or a bare list of
            ``{"percentile": 50 | {"value": 50}, "data": [...]}`` entries.
        source_id: Source being extracted.
        scenario: Active scenario.

    Returns:
        Tuple of (selected percentile, series).

    Raises:
        InvalidDataError: If ``raw`` is not a percentile result set.
        MissingDataError: If the selected percentile is not present.
    """
    results = raw.get("results") if isinstance(raw, Mapping) else raw
    if not isinstance(results, list):
        raise InvalidDataError(f"Source '{source_id}' has no percentile results")

    by_percentile: dict[float, Any] = {}
    for item in results:
        if not isinstance(item, Mapping):
            raise InvalidDataError(f"Source '{source_id}' has a malformed result entry")
        value = _percentile_value(item)
        if value is not None and value not in by_percentile:
            by_percentile[value] = item.get("data")

    if not by_percentile:
        raise InvalidDataError(f"Source '{source_id}' has no percentile-tagged results")

    percentile = scenario.percentile_for(source_id, list(by_percentile))
    if percentile not in by_percentile:
        raise MissingDataError(
            f"Source '{source_id}' has no P{percentile:g} result "
            f"(available: {sorted(by_percentile)})"
        )
    data = by_percentile[percentile]
    if data is None:
        raise MissingDataError(f"Source '{source_id}' P{percentile:g} result has no data")
    return percentile, to_series(data)


def apply_multiplier(
    series: TimeSeries,
    multiplier: TimeSeries,
    operation: MultiplierOperation,
    base_year: int = 1,
) -> TimeSeries:
    """
    Combine a series with a multiplier series year by year.

    ``multiply`` scales by the multiplier value; ``compound`` scales by
    ``value ** (year - base_year)``. Years absent from the multiplier are
    left unchanged. Output keeps the years of ``series``.

    Raises:
        InvalidDataError: If a compound factor of zero would be applied to a
            year before ``base_year``.
    """
    factors = series_to_map(multiplier)
    combined = []
    for point in sort_series(series):
        factor = factors.get(point.year)
        if factor is None:
            combined.append(point)
        elif operation is MultiplierOperation.COMPOUND:
            exponent = point.year - base_year
            if factor == 0 and exponent < 0:
                raise InvalidDataError(
                    f"Compound factor is zero in year {point.year}, "
                    f"before base year {base_year}"
                )
            growth = factor ** exponent
            combined.append(DataPoint(point.year, point.value * growth))
        else:
            combined.append(DataPoint(point.year, point.value * factor))
    return combined


def _raw_series(
    source: SourceConfig,
    raw: Any,
    registry: SourceRegistry,
    context: TransformContext,
) -> TimeSeries:
    if source.transformer:
        transformer = get_transformer(source.transformer, registry.transformers)
        return sort_series(transformer(raw, context))
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return constant_series(float(raw), 1, context.project_life)
    return to_series(raw)


def extract(
    source: SourceConfig,
    scenario: PercentileScenario,
    accessor: DataAccessorInterface,
    extracted: Mapping[str, TimeSeries],
    registry: SourceRegistry,
    settings: ProjectSettings | None = None,
) -> TimeSeries:
    """
    Resolve one source into a canonical time series.

    Args:
        source: Source to extract.
        scenario: Active percentile scenario.
        accessor: Scenario data accessor.
        extracted: Series of sources extracted so far (multiplier lookup).
        registry: Source registry (transformer table).
        settings: Project settings; read from ``accessor`` when omitted.

    Returns:
        Year-sorted TimeSeries.

    Raises:
        MissingDataError: If the raw data is absent.
        InvalidDataError: If the raw data is malformed.
    """
    settings = settings or ProjectSettings.from_accessor(accessor)
    raw = accessor.get_value_by_path(list(source.path)) if source.path else None
    if source.path and raw is None:
        raise MissingDataError(
            f"Source '{source.id}' has no data at {'/'.join(source.path)}"
        )

    if source.has_percentiles:
        _, series = select_percentile_series(raw, source.id, scenario)
    else:
        context = TransformContext(
            project_life=settings.project_life,
            num_turbines=settings.num_turbines,
            financing=settings.financing,
            references={
                name: accessor.get_value_by_path(list(path))
                for name, path in source.references.items()
            },
            accessor=accessor,
        )
        if source.transformer is None and raw is None:
            raise MissingDataError(f"Source '{source.id}' has neither path nor transformer")
        series = _raw_series(source, raw, registry, context)

    for multiplier in source.multipliers:
        factors = extracted.get(multiplier.id)
        if factors is None:
            logger.warning(
                "Multiplier '%s' unavailable for source '%s', skipping",
                multiplier.id,
                source.id,
            )
            continue
        series = apply_multiplier(
            series, factors, multiplier.operation, multiplier.base_year
        )

    return series


class ExtractedSources:
    """
    Snapshot of every source extracted for one scenario.

    Args:
        registry: Source registry the series came from.
        series: Successfully extracted series by source id.
        failed: Failure message by source id.
    """

    def __init__(
        self,
        registry: SourceRegistry,
        series: Mapping[str, TimeSeries],
        failed: Mapping[str, str] | None = None,
    ) -> None:
        self.registry = registry
        self._series = dict(series)
        self.failed = dict(failed or {})

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._series

    def get(self, source_id: str) -> TimeSeries:
        """
        Series of one source.

        Raises:
            MissingDataError: If the source failed or is unknown.
        """
        if source_id in self._series:
            return self._series[source_id]
        if source_id in self.failed:
            raise MissingDataError(
                f"Source '{source_id}' unavailable: {self.failed[source_id]}"
            )
        raise MissingDataError(f"Unknown source '{source_id}'")

    def by_group(self, *groups: str) -> dict[str, TimeSeries]:
        """Extracted series whose source group is in ``groups``, in registry order."""
        return {
            source.id: self._series[source.id]
            for source in self.registry
            if source.group in groups and source.id in self._series
        }

    def failed_in_groups(self, *groups: str) -> list[str]:
        return [
            source.id
            for source in self.registry
            if source.group in groups and source.id in self.failed
        ]

    def replace(self, adjustments: Mapping[str, TimeSeries]) -> "ExtractedSources":
        """Copy with some series replaced; replaced sources count as extracted."""
        series = {**self._series, **adjustments}
        failed = {sid: msg for sid, msg in self.failed.items() if sid not in adjustments}
        return ExtractedSources(self.registry, series, failed)

    def as_dict(self) -> dict[str, TimeSeries]:
        return dict(self._series)


def extract_all(
    registry: SourceRegistry,
    scenario: PercentileScenario,
    accessor: DataAccessorInterface,
    settings: ProjectSettings | None = None,
    only: Iterable[str] | None = None,
) -> ExtractedSources:
    """
    Extract every source once, in multiplier-dependency order.

    A failing source is recorded in ``failed`` and never aborts the others.

    Args:
        registry: Source registry.
        scenario: Active scenario.
        accessor: Scenario data accessor.
        settings: Project settings; read from ``accessor`` when omitted.
        only: Optional subset of source ids (multiplier inputs are added).

    Returns:
        ExtractedSources snapshot.
    """
    settings = settings or ProjectSettings.from_accessor(accessor)
    wanted = None
    if only is not None:
        wanted = set(only)
        for source in reversed(list(registry)):
            if source.id in wanted:
                wanted.update(m.id for m in source.multipliers)

    series: dict[str, TimeSeries] = {}
    failed: dict[str, str] = {}
    for source in registry:
        if wanted is not None and source.id not in wanted:
            continue
        try:
            series[source.id] = extract(
                source, scenario, accessor, series, registry, settings
            )
        except MetricsError as exc:
            failed[source.id] = str(exc)
            logger.warning("Source '%s' failed in %s: %s", source.id, scenario.key, exc)
            continue
        except Exception as exc:
            failed[source.id] = f"{type(exc).__name__}: {exc}"
            logger.exception("Transformer error for source '%s'", source.id)
            continue
    return ExtractedSources(registry, series, failed)
