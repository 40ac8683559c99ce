"""Sensitivity variables: direct registry sources and indirect drivers."""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from windfarm_metrics.core.errors import UnknownVariableError, ValidationError
from windfarm_metrics.models.source_extractor import (
    SourceCategory,
    SourceConfig,
    SourceRegistry,
)

INDIRECT_SECTIONS = ("technical", "financial", "operational")


class VariableKind(str, Enum):
    DIRECT = "direct"
    INDIRECT = "indirect"


class ImpactType(str, Enum):
    MULTIPLICATIVE = "multiplicative"
    ADDITIVE = "additive"
    RECALCULATION = "recalculation"


@dataclass(frozen=True)
class Affect:
    """Link from an indirect variable to the source it moves."""

    source_id: str
    impact_type: ImpactType = ImpactType.MULTIPLICATIVE


@dataclass(frozen=True)
class SensitivityVariable:
    """
    A driver whose percentile can be moved in sensitivity analysis.

    Attributes:
        id: Variable identifier (the source id for direct variables).
        kind: Direct or indirect.
        name: Display name.
        category: Source category for direct variables, section name
            (``technical``, ``financial``, ``operational``) for indirect ones.
        path: Accessor path of the percentile result set.
        has_percentiles: Whether the variable has percentile results.
        affects: Sources moved by an indirect variable.
        display_units: Units label.
    """

    id: str
    kind: VariableKind
    name: str = ""
    category: str = ""
    path: tuple[str, ...] | None = None
    has_percentiles: bool = True
    affects: tuple[Affect, ...] = ()
    display_units: str = ""

    @property
    def is_direct(self) -> bool:
        return self.kind is VariableKind.DIRECT

    @classmethod
    def from_source(cls, source: SourceConfig) -> "SensitivityVariable":
        return cls(
            id=source.id,
            kind=VariableKind.DIRECT,
            name=source.description or source.id,
            category=source.category.value,
            path=source.path,
            has_percentiles=source.has_percentiles,
        )

    @classmethod
    def from_indirect(
        cls, raw: Mapping[str, Any], section: str = ""
    ) -> "SensitivityVariable":
        """
        Build an indirect variable from a template entry.

        Raises:
            ValidationError: If the entry is malformed or has no ``affects``.
        """
        try:
            affects = tuple(
                Affect(
                    source_id=item["source_id"],
                    impact_type=ImpactType(item.get("impact_type", "multiplicative")),
                )
                for item in raw.get("affects", [])
            )
            variable_id = raw["id"]
        except (KeyError, ValueError, TypeError) as exc:
            raise ValidationError(f"Invalid sensitivity variable {raw!r}: {exc}") from exc
        if not affects:
            raise ValidationError(f"Indirect variable '{variable_id}' affects no source")

        path = raw.get("path")
        return cls(
            id=variable_id,
            kind=VariableKind.INDIRECT,
            name=raw.get("name", variable_id),
            category=raw.get("category", section),
            path=tuple(path) if path else None,
            has_percentiles=bool(raw.get("has_percentiles", False)),
            affects=affects,
            display_units=raw.get("display_units", ""),
        )


def discover_variables(
    source_registry: SourceRegistry,
    indirect_config: Mapping[str, Sequence[Mapping[str, Any]]] | None = None,
) -> list[SensitivityVariable]:
    """
    Collect every percentile-bearing variable.

    Direct variables come from the source registry in extraction order;
    indirect variables follow, section by section. Indirect entries that
    point at unknown sources are rejected.

    Args:
        source_registry: Source registry.
        indirect_config: Indirect variable template, e.g.
            ``INDIRECT_VARIABLES_TEMPLATE``.

    Returns:
        List of SensitivityVariable.

    Raises:
        ValidationError: On malformed indirect entries or duplicate ids.
    """
    variables = [
        SensitivityVariable.from_source(source)
        for source in source_registry.percentile_sources()
    ]
    seen = {variable.id for variable in variables}

    for section in INDIRECT_SECTIONS:
        for raw in (indirect_config or {}).get(section, []):
            if not raw.get("has_percentiles", False):
                continue
            variable = SensitivityVariable.from_indirect(raw, section)
            unknown = [
                affect.source_id
                for affect in variable.affects
                if affect.source_id not in source_registry
            ]
            if unknown:
                raise ValidationError(
                    f"Variable '{variable.id}' affects unknown sources: {', '.join(unknown)}"
                )
            if variable.id in seen:
                raise ValidationError(f"Duplicate sensitivity variable '{variable.id}'")
            seen.add(variable.id)
            variables.append(variable)

    return variables


def select_variables(
    variables: Iterable[SensitivityVariable], ids: Iterable[str] | None = None
) -> list[SensitivityVariable]:
    """
    Variables with the given ids, in the order requested.

    Raises:
        UnknownVariableError: If an id is not among ``variables``.
    """
    by_id = {variable.id: variable for variable in variables}
    if ids is None:
        return list(by_id.values())
    selected = []
    for variable_id in ids:
        if variable_id not in by_id:
            raise UnknownVariableError(f"Unknown sensitivity variable '{variable_id}'")
        selected.append(by_id[variable_id])
    return selected


def impact_category(source_registry: SourceRegistry, source_id: str) -> str:
    """
    Cost/revenue side of a source for scaling rules.

    Multipliers take the category of the sources they feed: ``cost`` or
    ``revenue`` when all dependents agree, ``mixed`` otherwise.
    """
    if source_id not in source_registry:
        return SourceCategory.REVENUE.value
    source = source_registry.get(source_id)
    if source.category is not SourceCategory.MULTIPLIER:
        return source.category.value

    categories = {
        dependent.category
        for dependent in source_registry.dependents_of(source_id)
        if dependent.category is not SourceCategory.MULTIPLIER
    }
    if len(categories) == 1:
        return categories.pop().value
    return "mixed"
