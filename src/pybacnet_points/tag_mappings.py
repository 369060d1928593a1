"""Static Haystack tables: object-type markers, units, equipment types, locations and tag priority."""

import re
from collections.abc import Iterable

from .types import HaystackTag, ObjectType, PointFunction, TagCategory

ROLE_TAGS: dict[PointFunction, str] = {
    PointFunction.SENSOR: "sensor",
    PointFunction.COMMAND: "cmd",
    PointFunction.SETPOINT: "sp",
}

# Extra markers some vendors derive from the object type alone.
OBJECT_TYPE_MARKERS: dict[ObjectType, tuple[str, ...]] = {
    ObjectType.BINARY_INPUT: ("binary",),
    ObjectType.BINARY_OUTPUT: ("binary",),
    ObjectType.BINARY_VALUE: ("binary",),
    ObjectType.MULTISTATE_INPUT: ("multi",),
    ObjectType.MULTISTATE_OUTPUT: ("multi",),
    ObjectType.MULTISTATE_VALUE: ("multi",),
    ObjectType.SCHEDULE: ("schedule",),
    ObjectType.CALENDAR: ("schedule",),
    ObjectType.NOTIFICATION_CLASS: ("alarm",),
    ObjectType.TREND_LOG: ("his",),
}

# Squashed, lower-cased spelling -> canonical unit symbol.
UNIT_ALIASES: dict[str, str] = {
    "degf": "°F",
    "f": "°F",
    "degreesf": "°F",
    "degreesfahrenheit": "°F",
    "fahrenheit": "°F",
    "degc": "°C",
    "c": "°C",
    "degreesc": "°C",
    "degreescelsius": "°C",
    "celsius": "°C",
    "psi": "psi",
    "pa": "Pa",
    "kpa": "kPa",
    "inwc": "inH2O",
    "inh2o": "inH2O",
    "bar": "bar",
    "cfm": "cfm",
    "l/s": "L/s",
    "lps": "L/s",
    "gpm": "gpm",
    "%rh": "%RH",
    "rh": "%RH",
    "kw": "kW",
    "w": "W",
    "kwh": "kWh",
    "rpm": "rpm",
    "hz": "Hz",
    "%": "%",
    "percent": "%",
    "pct": "%",
    "ppm": "ppm",
    "v": "V",
    "volts": "V",
    "a": "A",
    "amps": "A",
    "tons": "tons",
}

# Canonical unit -> (tags, stage confidence).
UNIT_TAGS: dict[str, tuple[tuple[str, ...], float]] = {
    "°F": (("temp",), 0.25),
    "°C": (("temp",), 0.25),
    "psi": (("pressure",), 0.25),
    "Pa": (("pressure",), 0.25),
    "kPa": (("pressure",), 0.25),
    "inH2O": (("pressure",), 0.25),
    "bar": (("pressure",), 0.25),
    "cfm": (("flow", "air"), 0.25),
    "L/s": (("flow",), 0.2),
    "gpm": (("flow", "water"), 0.25),
    "%RH": (("humidity",), 0.25),
    "kW": (("power",), 0.25),
    "W": (("power",), 0.2),
    "kWh": (("energy",), 0.25),
    "rpm": (("speed",), 0.2),
    "Hz": (("freq",), 0.2),
    "%": (("level",), 0.15),
    "ppm": (("co2",), 0.2),
    "V": (("elec", "volt"), 0.2),
    "A": (("elec", "current"), 0.2),
    "tons": (("power",), 0.15),
}

# Canonical equipment type -> equipment tags.
EQUIPMENT_TYPE_TAGS: dict[str, tuple[str, ...]] = {
    "AHU": ("ahu",),
    "VAV": ("vav",),
    "RTU": ("rtu", "ahu"),
    "FCU": ("fcu",),
    "CHILLER": ("chiller",),
    "BOILER": ("boiler",),
    "PUMP": ("pump",),
    "EXHAUST_FAN": ("fan",),
}

# Abbreviation or phrase found in a point name -> equipment tag.
EQUIPMENT_NAME_PATTERNS: tuple[tuple[str, str], ...] = (
    ("air handling unit", "ahu"),
    ("ahu", "ahu"),
    ("variable air volume", "vav"),
    ("vav", "vav"),
    ("rooftop unit", "rtu"),
    ("rtu", "rtu"),
    ("fan coil unit", "fcu"),
    ("fcu", "fcu"),
    ("chiller", "chiller"),
    ("boiler", "boiler"),
    ("variable frequency drive", "vfd"),
    ("vfd", "vfd"),
    ("cooling tower", "coolingTower"),
    ("heat exchanger", "heatExchanger"),
    ("compressor", "compressor"),
    ("economizer", "economizer"),
)

# Location tag -> words that imply it (whole words of the name or raw tokens).
LOCATION_WORDS: dict[str, frozenset[str]] = {
    "zone": frozenset({"zone", "room", "space", "area", "zn", "rm"}),
    "discharge": frozenset({"discharge", "leaving", "da", "lvg"}),
    "supply": frozenset({"supply", "sup", "sa"}),
    "return": frozenset({"return", "ret", "rtn", "ra"}),
    "outside": frozenset({"outside", "outdoor", "oa", "osa"}),
    "mixed": frozenset({"mixed", "ma"}),
    "exhaust": frozenset({"exhaust", "exh", "ea"}),
    "entering": frozenset({"entering", "ent"}),
}

SUBSTANCE_TAGS = frozenset({"air", "water", "steam", "elec"})

_TAG_CATEGORY: dict[str, TagCategory] = {"point": TagCategory.ENTITY, "error": TagCategory.METADATA}
_TAG_CATEGORY.update({t: TagCategory.ROLE for t in ROLE_TAGS.values()})
_TAG_CATEGORY.update({t: TagCategory.SUBSTANCE for t in SUBSTANCE_TAGS})
_TAG_CATEGORY.update(
    {
        t: TagCategory.QUANTITY
        for tags, _ in UNIT_TAGS.values()
        for t in tags
        if t not in SUBSTANCE_TAGS
    }
)
_TAG_CATEGORY.update({t: TagCategory.EQUIPMENT for tags in EQUIPMENT_TYPE_TAGS.values() for t in tags})
_TAG_CATEGORY.update({t: TagCategory.EQUIPMENT for _, t in EQUIPMENT_NAME_PATTERNS})
_TAG_CATEGORY.update({t: TagCategory.EQUIPMENT for t in ("damper", "valve", "coil")})
_TAG_CATEGORY.update({t: TagCategory.LOCATION for t in LOCATION_WORDS})

_CATEGORY_ORDER: dict[TagCategory, int] = {c: i for i, c in enumerate(TagCategory)}

_UNIT_SQUASH = re.compile(r"[\s.]+")


def canonical_unit(units: str | None) -> str | None:
    """Canonical symbol for an engineering unit ("degF", "deg F", "°F" -> "°F"); None if unknown."""
    if not units or not units.strip():
        return None
    key = _UNIT_SQUASH.sub("", units.strip().lower()).replace("°", "deg")
    return UNIT_ALIASES.get(key)


def unit_tags(units: str | None) -> tuple[tuple[str, ...], float]:
    """Tags implied by a unit and their stage confidence; ((), 0.0) if the unit is unknown."""
    canonical = canonical_unit(units)
    if canonical is None:
        return (), 0.0
    return UNIT_TAGS.get(canonical, ((), 0.0))


def tag_category(name: str) -> TagCategory:
    return _TAG_CATEGORY.get(name, TagCategory.CUSTOM)


def sort_tags(tags: Iterable[HaystackTag]) -> list[HaystackTag]:
    """Stable sort by category priority: entity, role, quantity, substance, equipment, location, custom."""
    return sorted(tags, key=lambda t: _CATEGORY_ORDER[t.category])
