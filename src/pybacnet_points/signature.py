"""Point signatures: keyword extraction, wildcard patterns, template pattern parsing and matching."""

import re
from dataclasses import dataclass

from .dictionaries import get_default_store
from .errors import InvalidSignaturePattern
from .tag_mappings import SUBSTANCE_TAGS, canonical_unit, unit_tags
from .types import NormalizedPoint, ObjectType, PointFunction, PointSignature

MAX_PATTERN_KEYWORDS = 5
UNKNOWN_PATTERN = "*UNKNOWN*"

STOP_WORDS = frozenset({"the", "and", "or", "at", "in", "on", "to", "for", "of", "with", "by", "a", "an"})

# Spellings folded onto one keyword so templates and observed names compare.
KEYWORD_ALIASES: dict[str, str] = {
    "temperature": "temp",
    "temp": "temp",
    "tmp": "temp",
    "pressure": "press",
    "press": "press",
    "pres": "press",
    "position": "pos",
    "pos": "pos",
    "damper": "damper",
    "dmpr": "damper",
    "dmp": "damper",
    "valve": "valve",
    "vlv": "valve",
    "room": "room",
    "zone": "room",
    "space": "room",
    "rm": "room",
    "zn": "room",
    "supply": "supply",
    "sup": "supply",
    "return": "return",
    "ret": "return",
    "rtn": "return",
    "exhaust": "exhaust",
    "exh": "exhaust",
    "flow": "flow",
    "airflow": "flow",
    "cfm": "flow",
    "gpm": "flow",
    "speed": "speed",
    "spd": "speed",
    "humidity": "humidity",
    "hum": "humidity",
    "setpoint": "setpoint",
    "sp": "setpoint",
    "stpt": "setpoint",
    "spt": "setpoint",
    "command": "command",
    "cmd": "command",
    "status": "status",
    "sts": "status",
    "stat": "status",
    "sensor": "sensor",
    "sens": "sensor",
}

# Role words in a template pattern are satisfied by the observed point's function, not its name.
ROLE_KEYWORDS: dict[str, frozenset[PointFunction]] = {
    "setpoint": frozenset({PointFunction.SETPOINT}),
    "command": frozenset({PointFunction.COMMAND}),
    "sensor": frozenset({PointFunction.SENSOR}),
    "status": frozenset({PointFunction.STATUS, PointFunction.SENSOR}),
}

_ROLE_FUNCTION: dict[str, PointFunction] = {
    "setpoint": PointFunction.SETPOINT,
    "command": PointFunction.COMMAND,
    "sensor": PointFunction.SENSOR,
    "status": PointFunction.SENSOR,
}

_QUANTITY_BY_KEYWORD: dict[str, str] = {
    "temp": "temp",
    "press": "pressure",
    "flow": "flow",
    "humidity": "humidity",
    "speed": "speed",
    "pos": "level",
}

_WORD_SPLIT = re.compile(r"[^a-z0-9]+")
_PATTERN_CHARS = re.compile(r"^[A-Za-z0-9*_\-\s]+$")


@dataclass(frozen=True)
class ParsedPattern:
    """Canonical words of a template pattern, split into name keywords and role keywords."""

    words: tuple[str, ...]
    name_keywords: tuple[str, ...]
    role_keywords: tuple[str, ...]


def _canonical(word: str) -> str | None:
    if word in KEYWORD_ALIASES:
        return KEYWORD_ALIASES[word]
    if word in STOP_WORDS or word.isdigit() or len(word) < 3:
        return None
    return word


def extract_keywords(name: str) -> list[str]:
    """
    Significant keywords of a name, in order and without repeats. Numbers, connector
    words and unrecognized one- or two-letter fragments are dropped; known spellings
    are folded (Temperature -> temp, Zone -> room).
    """
    out: list[str] = []
    for word in _WORD_SPLIT.split(name.lower()):
        if not word:
            continue
        keyword = _canonical(word)
        if keyword is not None and keyword not in out:
            out.append(keyword)
    return out


def build_pattern(keywords: list[str] | tuple[str, ...]) -> str:
    """Join up to MAX_PATTERN_KEYWORDS keywords as *A*B*; *UNKNOWN* when there are none."""
    if not keywords:
        return UNKNOWN_PATTERN
    return "*" + "*".join(k.upper() for k in keywords[:MAX_PATTERN_KEYWORDS]) + "*"


def _pattern_key(keywords: list[str] | tuple[str, ...]) -> str:
    return "_".join(keywords) if keywords else "unknown"


def _template_keywords(word: str, pattern: str) -> list[str]:
    keyword = _canonical(word)
    if keyword is not None:
        return [keyword]
    if word in STOP_WORDS or word.isdigit():
        return []
    # Short abbreviations expand like observed names do: OA -> outside, air.
    entry = get_default_store().lookup_generic(word)
    expanded = extract_keywords(entry.expansion) if entry is not None else []
    if not expanded:
        raise InvalidSignaturePattern(
            pattern, f"Unrecognized abbreviation {word.upper()!r} in signature pattern: {pattern!r}"
        )
    return expanded


def parse_pattern(pattern: str) -> ParsedPattern:
    """
    Validate and canonicalize an authored template pattern such as "*Room*Temperature*".
    Short abbreviations are expanded through the generic acronym dictionary. Raises
    InvalidSignaturePattern if the pattern is empty, has unsupported characters, names
    an abbreviation the dictionary does not know, or has no literal segment.
    """
    if pattern is None or not pattern.strip():
        raise InvalidSignaturePattern(str(pattern), "Signature pattern cannot be empty")
    if not _PATTERN_CHARS.match(pattern):
        raise InvalidSignaturePattern(pattern, f"Unsupported characters in signature pattern: {pattern!r}")

    words: list[str] = []
    for segment in pattern.split("*"):
        for word in _WORD_SPLIT.split(segment.lower()):
            if not word:
                continue
            for keyword in _template_keywords(word, pattern):
                if keyword not in words:
                    words.append(keyword)
    if not words:
        raise InvalidSignaturePattern(pattern, f"Signature pattern has no literal segment: {pattern!r}")

    return ParsedPattern(
        words=tuple(words),
        name_keywords=tuple(w for w in words if w not in ROLE_KEYWORDS),
        role_keywords=tuple(w for w in words if w in ROLE_KEYWORDS),
    )


def normalize_pattern(pattern: str) -> str:
    """Normalized key of an authored pattern: "*Room*Temperature*" -> "room_temp"."""
    return _pattern_key(parse_pattern(pattern).words)


def _quantity(units: str | None, keywords: list[str] | tuple[str, ...]) -> str | None:
    tags, _ = unit_tags(units)
    for name in tags:
        if name not in SUBSTANCE_TAGS:
            return name
    for keyword in keywords:
        if keyword in _QUANTITY_BY_KEYWORD:
            return _QUANTITY_BY_KEYWORD[keyword]
    return None


def to_signature(point: NormalizedPoint, is_required: bool = False) -> PointSignature:
    """Signature of a normalized point; the point's original name is the signature id."""
    if point is None:
        raise ValueError("Cannot build a signature for None")
    keywords = extract_keywords(point.normalized_name)
    return PointSignature(
        signature_id=point.original_name,
        pattern=build_pattern(keywords),
        normalized_pattern=_pattern_key(keywords),
        keywords=tuple(keywords),
        point_function=point.point_function,
        object_type=point.object_type,
        units=canonical_unit(point.units) or point.units,
        quantity=_quantity(point.units, keywords),
        is_required=is_required,
    )


def template_signature(
    pattern: str,
    *,
    signature_id: str | None = None,
    point_function: PointFunction | None = None,
    object_type: ObjectType | None = None,
    units: str | None = None,
    is_required: bool = False,
) -> PointSignature:
    """
    Author a template-side signature from a wildcard pattern. The function defaults
    to the one named by a role word in the pattern (*SETPOINT* -> setpoint).
    """
    parsed = parse_pattern(pattern)
    if point_function is None and parsed.role_keywords:
        point_function = _ROLE_FUNCTION[parsed.role_keywords[0]]
    key = _pattern_key(parsed.words)
    return PointSignature(
        signature_id=signature_id or key,
        pattern=build_pattern(parsed.words),
        normalized_pattern=key,
        keywords=parsed.name_keywords,
        point_function=point_function,
        object_type=object_type,
        units=canonical_unit(units) or units,
        quantity=_quantity(units, parsed.name_keywords),
        is_required=is_required,
    )


def _in_order(needles: tuple[str, ...], haystack: tuple[str, ...]) -> bool:
    remaining = iter(haystack)
    return all(any(n == h for h in remaining) for n in needles)


def pattern_matches(template: PointSignature, observed: PointSignature) -> bool:
    """
    True when every name segment of the template pattern appears, in order, among
    the observed keywords and every role segment agrees with the observed function.
    """
    parsed = parse_pattern(template.pattern)
    if not _in_order(parsed.name_keywords, observed.keywords):
        return False
    return all(observed.point_function in ROLE_KEYWORDS[r] for r in parsed.role_keywords)


def keyword_overlap(a: tuple[str, ...] | list[str], b: tuple[str, ...] | list[str]) -> float:
    """Common keywords over the size of the longer keyword set; 0.0 if either is empty."""
    sa, sb = set(a), set(b)
    if not sa or not sb:
        return 0.0
    return len(sa & sb) / max(len(sa), len(sb))
