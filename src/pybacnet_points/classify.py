"""Function classifier: point role from BACnet object type and writability, never from the name."""

import re

from .types import DataType, ObjectType, PointFunction

_INPUTS = frozenset({ObjectType.ANALOG_INPUT, ObjectType.BINARY_INPUT, ObjectType.MULTISTATE_INPUT})
_OUTPUTS = frozenset({ObjectType.ANALOG_OUTPUT, ObjectType.BINARY_OUTPUT, ObjectType.MULTISTATE_OUTPUT})
_ANALOG = frozenset({ObjectType.ANALOG_INPUT, ObjectType.ANALOG_OUTPUT, ObjectType.ANALOG_VALUE})
_BINARY = frozenset({ObjectType.BINARY_INPUT, ObjectType.BINARY_OUTPUT, ObjectType.BINARY_VALUE})
_MULTISTATE = frozenset(
    {ObjectType.MULTISTATE_INPUT, ObjectType.MULTISTATE_OUTPUT, ObjectType.MULTISTATE_VALUE}
)

_SUFFIXES: dict[PointFunction, str] = {
    PointFunction.SENSOR: "Sensor",
    PointFunction.COMMAND: "Command",
    PointFunction.SETPOINT: "Setpoint",
    PointFunction.STATUS: "Status",
}

# Long names as they appear in vendor exports, keyed after squashing case and separators.
_OBJECT_TYPE_ALIASES: dict[str, ObjectType] = {
    "analoginput": ObjectType.ANALOG_INPUT,
    "analogoutput": ObjectType.ANALOG_OUTPUT,
    "analogvalue": ObjectType.ANALOG_VALUE,
    "binaryinput": ObjectType.BINARY_INPUT,
    "binaryoutput": ObjectType.BINARY_OUTPUT,
    "binaryvalue": ObjectType.BINARY_VALUE,
    "multistateinput": ObjectType.MULTISTATE_INPUT,
    "multistateoutput": ObjectType.MULTISTATE_OUTPUT,
    "multistatevalue": ObjectType.MULTISTATE_VALUE,
    "mi": ObjectType.MULTISTATE_INPUT,
    "mo": ObjectType.MULTISTATE_OUTPUT,
    "mv": ObjectType.MULTISTATE_VALUE,
    "schedule": ObjectType.SCHEDULE,
    "calendar": ObjectType.CALENDAR,
    "notificationclass": ObjectType.NOTIFICATION_CLASS,
    "trendlog": ObjectType.TREND_LOG,
    "device": ObjectType.DEVICE,
}

_SEPARATORS = re.compile(r"[\s_\-]+")


def parse_object_type(value: str) -> ObjectType:
    """
    Parse a BACnet object type from a short code (AI, MSV) or a long name
    (analog-input, analogInput, "Analog Input"). Raises ValueError if unrecognized.
    """
    s = value.strip()
    try:
        return ObjectType(s.upper())
    except ValueError:
        pass
    key = _SEPARATORS.sub("", s).lower()
    if key in _OBJECT_TYPE_ALIASES:
        return _OBJECT_TYPE_ALIASES[key]
    raise ValueError(f"Unknown BACnet object type: {value!r}")


def classify(object_type: ObjectType, is_writable: bool) -> PointFunction:
    """
    Return the point function for an object type and writability flag.

    Inputs are sensors and outputs are commands. Writable values are setpoints
    (analog) or commands (binary, multistate); read-only values are parameters.
    Other object types are unknown.
    """
    if object_type in _INPUTS:
        return PointFunction.SENSOR
    if object_type in _OUTPUTS:
        return PointFunction.COMMAND
    if object_type == ObjectType.ANALOG_VALUE:
        return PointFunction.SETPOINT if is_writable else PointFunction.PARAMETER
    if object_type in (ObjectType.BINARY_VALUE, ObjectType.MULTISTATE_VALUE):
        return PointFunction.COMMAND if is_writable else PointFunction.PARAMETER
    return PointFunction.UNKNOWN


def function_suffix(function: PointFunction) -> str | None:
    """Description suffix for a point function, or None when no suffix applies."""
    return _SUFFIXES.get(function)


def data_type_for(object_type: ObjectType) -> DataType:
    if object_type in _ANALOG:
        return DataType.NUMBER
    if object_type in _BINARY:
        return DataType.BOOLEAN
    if object_type in _MULTISTATE:
        return DataType.ENUMERATED
    return DataType.STRING


def is_binary(object_type: ObjectType) -> bool:
    return object_type in _BINARY
