"""Context inference: bias tagging from substring triggers in a normalized point name."""

from dataclasses import dataclass

from .types import ContextInference

QUANTITY = "quantity"
SUBSTANCE = "substance"
EQUIPMENT = "equipment"
LOCATION = "location"


@dataclass(frozen=True)
class Trigger:
    """A named substring trigger contributing one tag and a fixed confidence increment."""

    name: str
    substrings: tuple[str, ...]
    tag: str
    kind: str
    increment: float


# Checked in order and independently; a name may fire several triggers.
TRIGGERS: tuple[Trigger, ...] = (
    Trigger("temperature", ("temperature", "temp"), "temp", QUANTITY, 0.2),
    Trigger("pressure", ("pressure", "static"), "pressure", QUANTITY, 0.2),
    Trigger("flow", ("flow", "cfm", "gpm"), "flow", QUANTITY, 0.2),
    Trigger("humidity", ("humidity",), "humidity", QUANTITY, 0.15),
    Trigger("co2", ("co2", "carbon dioxide"), "co2", QUANTITY, 0.15),
    Trigger("power", ("power",), "power", QUANTITY, 0.15),
    Trigger("energy", ("energy",), "energy", QUANTITY, 0.15),
    Trigger("speed", ("speed",), "speed", QUANTITY, 0.15),
    Trigger("position", ("position", "percent", "opening"), "level", QUANTITY, 0.1),
    Trigger("air", ("air",), "air", SUBSTANCE, 0.1),
    Trigger("water", ("water",), "water", SUBSTANCE, 0.1),
    Trigger("steam", ("steam",), "steam", SUBSTANCE, 0.1),
    Trigger("supply", ("supply",), "supply", LOCATION, 0.15),
    Trigger("discharge", ("discharge", "leaving"), "discharge", LOCATION, 0.15),
    Trigger("return", ("return",), "return", LOCATION, 0.15),
    Trigger("outside", ("outside", "outdoor"), "outside", LOCATION, 0.15),
    Trigger("mixed", ("mixed",), "mixed", LOCATION, 0.15),
    Trigger("exhaust", ("exhaust",), "exhaust", LOCATION, 0.15),
    Trigger("zone", ("zone", "room", "space"), "zone", LOCATION, 0.1),
    Trigger("fan", ("fan",), "fan", EQUIPMENT, 0.15),
    Trigger("damper", ("damper",), "damper", EQUIPMENT, 0.15),
    Trigger("valve", ("valve",), "valve", EQUIPMENT, 0.15),
    Trigger("pump", ("pump",), "pump", EQUIPMENT, 0.15),
    Trigger("coil", ("coil",), "coil", EQUIPMENT, 0.1),
)


def infer_context(normalized_name: str) -> ContextInference:
    """
    Scan the lower-cased name for every trigger. Confidence is the sum of the fired
    increments, capped at 1.0; with nothing fired it is 0.0 and patterns are empty.
    The first fired trigger of each kind supplies the quantity/equipment/location hint.
    """
    text = normalized_name.lower()
    fired = [t for t in TRIGGERS if any(s in text for s in t.substrings)]

    def first(kind: str) -> str | None:
        return next((t.tag for t in fired if t.kind == kind), None)

    return ContextInference(
        quantity=first(QUANTITY),
        equipment_hint=first(EQUIPMENT),
        location_hint=first(LOCATION),
        patterns=tuple(t.name for t in fired),
        tags=tuple(dict.fromkeys(t.tag for t in fired)),
        confidence=round(min(sum(t.increment for t in fired), 1.0), 4),
    )
