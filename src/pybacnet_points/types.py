"""Core data model: BACnet object types, point roles, normalized points, tag sets, signatures and matches."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

# Words reserved for the function suffix of a description; never part of a display name.
FUNCTION_WORDS = ("Sensor", "Command", "Setpoint", "Status")


class ObjectType(str, Enum):
    """BACnet object types seen on building-automation controllers."""

    ANALOG_INPUT = "AI"
    ANALOG_OUTPUT = "AO"
    ANALOG_VALUE = "AV"
    BINARY_INPUT = "BI"
    BINARY_OUTPUT = "BO"
    BINARY_VALUE = "BV"
    MULTISTATE_INPUT = "MSI"
    MULTISTATE_OUTPUT = "MSO"
    MULTISTATE_VALUE = "MSV"
    SCHEDULE = "SCH"
    CALENDAR = "CAL"
    NOTIFICATION_CLASS = "NC"
    TREND_LOG = "TL"
    LOOP = "LOOP"
    DEVICE = "DEV"


class PointFunction(str, Enum):
    """Functional role of a point."""

    SENSOR = "sensor"
    COMMAND = "command"
    SETPOINT = "setpoint"
    STATUS = "status"
    PARAMETER = "parameter"
    UNKNOWN = "unknown"


class PointCategory(str, Enum):
    SENSOR = "sensor"
    COMMAND = "command"
    SETPOINT = "setpoint"
    STATUS = "status"
    ALARM = "alarm"
    UNKNOWN = "unknown"


class DataType(str, Enum):
    NUMBER = "number"
    BOOLEAN = "boolean"
    ENUMERATED = "enumerated"
    STRING = "string"


class ConfidenceLevel(str, Enum):
    """Coarse banding of a confidence score."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    UNKNOWN = "unknown"

    @classmethod
    def from_score(cls, score: float) -> "ConfidenceLevel":
        if score >= 0.8:
            return cls.HIGH
        if score >= 0.5:
            return cls.MEDIUM
        if score >= 0.2:
            return cls.LOW
        return cls.UNKNOWN


class TagCategory(str, Enum):
    """Haystack tag categories, declared in output priority order."""

    ENTITY = "entity"
    ROLE = "role"
    QUANTITY = "quantity"
    SUBSTANCE = "substance"
    EQUIPMENT = "equipment"
    LOCATION = "location"
    CUSTOM = "custom"
    METADATA = "metadata"


class TagSource(str, Enum):
    INFERRED = "inferred"
    EXPLICIT = "explicit"


def _check_unit_interval(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be in [0, 1], got {value}")


@dataclass(frozen=True)
class RawPoint:
    """A control point as read from a controller: identifier, object type, writability, units."""

    name: str
    object_type: ObjectType
    is_writable: bool = False
    units: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class NormalizedPoint:
    """
    Human-readable form of a RawPoint.

    normalized_name never carries a function word; expanded_description carries at
    most one, as its suffix.
    """

    original_name: str
    normalized_name: str
    expanded_description: str
    point_function: PointFunction
    category: PointCategory
    data_type: DataType
    object_type: ObjectType
    is_writable: bool
    units: str | None
    confidence_score: float
    applied_rules: tuple[str, ...] = ()
    equipment_type: str | None = None
    review_threshold: float = 0.7

    def __post_init__(self) -> None:
        _check_unit_interval("confidence_score", self.confidence_score)
        words = {w.lower() for w in self.normalized_name.split()}
        clash = [w for w in FUNCTION_WORDS if w.lower() in words]
        if clash:
            raise ValueError(f"normalized_name must not contain function words {clash}: {self.normalized_name!r}")

    @property
    def confidence_level(self) -> ConfidenceLevel:
        return ConfidenceLevel.from_score(self.confidence_score)

    @property
    def requires_review(self) -> bool:
        return self.confidence_score < self.review_threshold


@dataclass(frozen=True)
class ContextInference:
    """Result of scanning a normalized name for quantity, equipment and location triggers."""

    quantity: str | None = None
    equipment_hint: str | None = None
    location_hint: str | None = None
    patterns: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    confidence: float = 0.0


@dataclass(frozen=True)
class HaystackTag:
    """One tag entry: marker (value None) or name/value pair."""

    name: str
    category: TagCategory
    confidence: float
    source: TagSource = TagSource.INFERRED
    value: Any = None
    applied_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_marker(self) -> bool:
        return self.value is None


@dataclass(frozen=True)
class HaystackTagSet:
    """Ordered, de-duplicated tags for one point with an overall confidence and warnings."""

    point_id: str
    dis: str
    tags: tuple[HaystackTag, ...]
    confidence: float
    warnings: tuple[str, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _check_unit_interval("confidence", self.confidence)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(t.name for t in self.tags)

    def has(self, name: str) -> bool:
        return name in self.names


@dataclass(frozen=True)
class ConsistencyResult:
    valid: bool
    warnings: tuple[str, ...] = ()
    conflicts: tuple[str, ...] = ()


@dataclass(frozen=True)
class SignatureUsage:
    """Accumulated statistics for one template signature."""

    match_count: int = 0
    successful_matches: int = 0
    avg_confidence: float = 0.0


@dataclass(frozen=True)
class PointSignature:
    """
    Pattern-matchable form of a point.

    On the template side signature_id names the slot and is_required marks it
    mandatory; on the observed side signature_id is the point's original name.
    """

    signature_id: str
    pattern: str
    normalized_pattern: str
    keywords: tuple[str, ...]
    point_function: PointFunction | None = None
    object_type: ObjectType | None = None
    units: str | None = None
    quantity: str | None = None
    is_required: bool = False
    match_count: int = 0
    successful_matches: int = 0
    avg_confidence: float = 0.0

    @property
    def specificity(self) -> int:
        """Number of literal segments in the pattern."""
        return len([s for s in self.pattern.split("*") if s])


@dataclass(frozen=True)
class TemplateMatch:
    """Best pairing of one template signature with an observed point (point is None when unmatched)."""

    signature: PointSignature
    point: NormalizedPoint | None
    exact_match: bool
    partial_match: bool
    confidence: float
    accepted: bool

    def __post_init__(self) -> None:
        _check_unit_interval("confidence", self.confidence)
        if self.exact_match and self.partial_match:
            raise ValueError("exact_match and partial_match are mutually exclusive")


@dataclass(frozen=True)
class MatchReport:
    """Outcome of matching a template against one equipment instance's points."""

    matches: tuple[TemplateMatch, ...]
    aggregate_confidence: float
    required_match_rate: float
    total_match_rate: float
    unmatched_signatures: tuple[PointSignature, ...] = ()
    unmatched_points: tuple[NormalizedPoint, ...] = ()
    assignments: tuple[tuple[str, str], ...] = ()
    recommendations: tuple[str, ...] = ()
    reasoning: str = ""


@dataclass(frozen=True)
class AcronymEntry:
    """One generic dictionary row: abbreviation, expansion, category and priority (1-10)."""

    acronym: str
    expansion: str
    category: str
    priority: int
    point_function: PointFunction | None = None

    def __post_init__(self) -> None:
        if not 1 <= self.priority <= 10:
            raise ValueError(f"priority must be 1-10, got {self.priority} for {self.acronym!r}")


@dataclass(frozen=True)
class AcronymHit:
    """A token resolved by one layer of the lookup chain."""

    token: str
    expansion: str
    source: str
    priority: int = 10
    category: str | None = None
    point_function: PointFunction | None = None


@dataclass(frozen=True)
class TokenResolution:
    """How one identifier token was resolved: which layer answered and with what expansion."""

    token: str
    source: str
    expansion: str | None = None
    priority: int = 0
    category: str | None = None
    point_function: PointFunction | None = None

    @property
    def expanded(self) -> bool:
        return self.expansion is not None
