"""Acronym dictionaries: load embedded JSON via importlib.resources, resolve equipment types, layered lookup."""

import json
import logging
import re
from functools import lru_cache
from importlib import resources
from typing import Any

from .types import AcronymEntry, AcronymHit, PointFunction

logger = logging.getLogger(__name__)

_DATA_PACKAGE = "pybacnet_points.data"
_GENERIC_RESOURCE = "generic_acronyms.json"
_EQUIPMENT_RESOURCE = "equipment_acronyms.json"

_CATEGORIES = frozenset(
    {
        "Air",
        "Alarm",
        "Component",
        "Control",
        "Energy",
        "Equipment",
        "Flow",
        "Humidity",
        "Measurement",
        "Mode",
        "Position",
        "Pressure",
        "Space",
        "State",
        "Status",
        "Temperature",
        "Unit",
        "Water",
    }
)

_SEPARATORS = re.compile(r"[\s_\-]+")

GENERIC_SOURCE = "generic_dictionary"
EQUIPMENT_SOURCE = "equipment_dictionary"


def _squash(text: str) -> str:
    """Upper-case and collapse separators to single spaces."""
    return _SEPARATORS.sub(" ", text.strip().upper()).strip()


def _load_resource(name: str) -> Any:
    try:
        with resources.files(_DATA_PACKAGE).joinpath(name).open("r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"Dictionary resource not found: {_DATA_PACKAGE}/{name}") from None


def _parse_entry(raw: dict[str, Any]) -> AcronymEntry:
    """Build AcronymEntry from a JSON entry (acronym, expansion, category, priority, point_function)."""
    acronym = str(raw["acronym"]).strip().upper()
    if not acronym:
        raise ValueError("Empty acronym in dictionary")
    category = raw["category"]
    if category not in _CATEGORIES:
        raise ValueError(f"Unknown category {category!r} for acronym {acronym!r}")
    function = raw.get("point_function")
    return AcronymEntry(
        acronym=acronym,
        expansion=str(raw["expansion"]).strip(),
        category=category,
        priority=int(raw["priority"]),
        point_function=PointFunction(function) if function else None,
    )


class EquipmentLookup:
    """Lookup strategy backed by one equipment-specific table."""

    name = EQUIPMENT_SOURCE

    def __init__(self, equipment_type: str, table: dict[str, str]) -> None:
        self.equipment_type = equipment_type
        self._table = table

    def lookup(self, token: str) -> AcronymHit | None:
        expansion = self._table.get(token.upper())
        if expansion is None:
            return None
        return AcronymHit(token=token, expansion=expansion, source=self.name)


class GenericLookup:
    """Lookup strategy backed by the generic table."""

    name = GENERIC_SOURCE

    def __init__(self, entries: dict[str, AcronymEntry]) -> None:
        self._entries = entries

    def lookup(self, token: str) -> AcronymHit | None:
        entry = self._entries.get(token.upper())
        if entry is None:
            return None
        return AcronymHit(
            token=token,
            expansion=entry.expansion,
            source=self.name,
            priority=entry.priority,
            category=entry.category,
            point_function=entry.point_function,
        )


class LookupChain:
    """
    Ordered lookup strategies tried in sequence; the first hit wins.
    A token no strategy resolves passes through unchanged.
    """

    def __init__(self, strategies: list[EquipmentLookup | GenericLookup], equipment_type: str | None = None) -> None:
        self._strategies = tuple(strategies)
        self._equipment_type = equipment_type

    def resolve(self, token: str) -> AcronymHit | None:
        for strategy in self._strategies:
            hit = strategy.lookup(token)
            if hit is not None:
                return hit
        return None

    @property
    def equipment_type(self) -> str | None:
        """Canonical equipment type whose table heads the chain, if any."""
        return self._equipment_type

    @property
    def layers(self) -> tuple[str, ...]:
        return tuple(s.name for s in self._strategies)


class AcronymStore:
    """
    Generic acronym table plus one table per equipment type. Loaded from packaged
    JSON, or from override lists (same shape as the JSON) for tests and custom sites.
    """

    def __init__(
        self,
        generic_override: list[dict[str, Any]] | None = None,
        equipment_override: list[dict[str, Any]] | None = None,
    ) -> None:
        self._generic: dict[str, AcronymEntry] = {}
        self._equipment: dict[str, dict[str, str]] = {}
        self._aliases: list[tuple[str, str]] = []

        if generic_override is not None:
            generic_entries = generic_override
        else:
            data = _load_resource(_GENERIC_RESOURCE)
            generic_entries = data["entries"] if isinstance(data, dict) else data
        for raw in generic_entries:
            entry = _parse_entry(raw)
            if entry.acronym in self._generic:
                raise ValueError(f"Duplicate acronym in generic dictionary: {entry.acronym}")
            self._generic[entry.acronym] = entry

        if equipment_override is not None:
            equipment_entries = equipment_override
        else:
            data = _load_resource(_EQUIPMENT_RESOURCE)
            equipment_entries = data["equipment_types"] if isinstance(data, dict) else data
        for raw in equipment_entries:
            self._add_equipment(raw)

        logger.debug(
            "AcronymStore loaded: %d generic entries, %d equipment tables",
            len(self._generic),
            len(self._equipment),
        )

    def _add_equipment(self, raw: dict[str, Any]) -> None:
        equipment_type = _squash(raw["type"]).replace(" ", "_")
        if equipment_type in self._equipment:
            raise ValueError(f"Duplicate equipment type in dictionary: {equipment_type}")
        table = {str(k).strip().upper(): str(v).strip() for k, v in raw.get("acronyms", {}).items()}
        self._equipment[equipment_type] = table
        for alias in raw.get("aliases", [equipment_type]):
            self._aliases.append((_squash(alias), equipment_type))

    def resolve_equipment_type(self, hint: str | None) -> str | None:
        """
        Map a free-form equipment hint ("AHU-1", "vav box 2-14", "Fan Coil 3") to a
        canonical equipment type: exact name first, then alias substrings. None if no table fits.
        """
        if not hint or not hint.strip():
            return None
        squashed = _squash(hint)
        exact = squashed.replace(" ", "_")
        if exact in self._equipment:
            return exact
        for alias, equipment_type in self._aliases:
            if alias in squashed:
                return equipment_type
        return None

    def equipment_table(self, equipment_type: str | None) -> dict[str, str]:
        """Token → expansion table for an equipment hint; empty if the hint resolves to nothing."""
        resolved = self.resolve_equipment_type(equipment_type)
        if resolved is None:
            return {}
        return dict(self._equipment[resolved])

    def lookup_generic(self, token: str) -> AcronymEntry | None:
        return self._generic.get(token.upper())

    def chain(self, equipment_hint: str | None = None) -> LookupChain:
        """Lookup chain for an equipment hint: equipment table (if resolved), then generic."""
        strategies: list[EquipmentLookup | GenericLookup] = []
        resolved = self.resolve_equipment_type(equipment_hint)
        if resolved is not None:
            strategies.append(EquipmentLookup(resolved, self._equipment[resolved]))
        strategies.append(GenericLookup(self._generic))
        return LookupChain(strategies, equipment_type=resolved)

    def __len__(self) -> int:
        return len(self._generic)

    @property
    def equipment_types(self) -> tuple[str, ...]:
        return tuple(self._equipment)


@lru_cache(maxsize=1)
def get_default_store() -> AcronymStore:
    """Load (once) and return the packaged AcronymStore."""
    return AcronymStore()
