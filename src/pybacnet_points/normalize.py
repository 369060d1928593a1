"""Tokenize raw point identifiers and normalize them into display names and descriptions."""

import logging
import re
from dataclasses import dataclass

from .classify import classify, data_type_for, function_suffix, is_binary
from .dictionaries import EQUIPMENT_SOURCE, AcronymStore, LookupChain, get_default_store
from .errors import EmptyIdentifierError
from .types import (
    FUNCTION_WORDS,
    NormalizedPoint,
    ObjectType,
    PointCategory,
    PointFunction,
    RawPoint,
    TokenResolution,
)

logger = logging.getLogger(__name__)

PASSTHROUGH = "passthrough"
NUMERIC = "numeric"
OPAQUE = "opaque_token"

# Anything that is not an ASCII letter or digit separates chunks.
_DELIMITERS = re.compile(r"[^A-Za-z0-9]+")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z])(?=[A-Z])")
_DIGIT_BOUNDARY = re.compile(r"(?<=[A-Za-z])(?=[0-9])|(?<=[0-9])(?=[A-Za-z])")
_SPLIT_LEVELS = (_CAMEL_BOUNDARY, _DIGIT_BOUNDARY)

_FUNCTION_WORD_SET = frozenset(w.lower() for w in FUNCTION_WORDS)
_FUNCTION_WORD_PATTERN = re.compile(
    r"(?<![A-Za-z])(?:" + "|".join(FUNCTION_WORDS) + r")(?![A-Za-z])",
    re.IGNORECASE,
)
_WHITESPACE = re.compile(r"\s+")

_CATEGORY_BY_FUNCTION: dict[PointFunction, PointCategory] = {
    PointFunction.SENSOR: PointCategory.SENSOR,
    PointFunction.COMMAND: PointCategory.COMMAND,
    PointFunction.SETPOINT: PointCategory.SETPOINT,
    PointFunction.STATUS: PointCategory.STATUS,
}


@dataclass(frozen=True)
class NormalizerConfig:
    """Confidence weights and limits for PointNormalizer."""

    base_confidence: float = 0.4
    equipment_bonus: float = 0.2
    generic_bonus: float = 0.15  # scaled by entry priority / 10
    unexpanded_penalty: float = 0.2
    units_bonus: float = 0.05
    context_bonus: float = 0.05
    max_token_length: int = 24
    review_threshold: float = 0.7

    def __post_init__(self) -> None:
        if self.max_token_length < 1:
            raise ValueError(f"max_token_length must be >= 1, got {self.max_token_length}")


def _split(pattern: re.Pattern[str], text: str) -> list[str]:
    return [p for p in pattern.split(text) if p]


def _clean(text: str | None) -> str:
    """Collapse runs of whitespace and trim."""
    if not text:
        return ""
    return _WHITESPACE.sub(" ", text).strip()


def split_chunks(identifier: str) -> list[str]:
    """Split on non-alphanumeric delimiters only (spaces, underscores, dashes, dots, ...)."""
    return _split(_DELIMITERS, identifier)


def tokenize(identifier: str) -> list[str]:
    """
    Split a raw identifier into ordered tokens on non-alphanumeric delimiters,
    camelCase humps and letter/digit transitions.

    >>> tokenize("ROOM TEMP_4")
    ['ROOM', 'TEMP', '4']
    >>> tokenize("ZnTemp2")
    ['Zn', 'Temp', '2']
    """
    tokens: list[str] = []
    for chunk in split_chunks(identifier):
        for part in _split(_CAMEL_BOUNDARY, chunk):
            tokens.extend(_split(_DIGIT_BOUNDARY, part))
    return tokens


def strip_function_words(text: str) -> str:
    """Remove Sensor/Command/Setpoint/Status (any case, whole words) and tidy whitespace."""
    return _clean(_FUNCTION_WORD_PATTERN.sub(" ", text))


def _collapse_repeats(words: list[str]) -> list[str]:
    out: list[str] = []
    for w in words:
        if out and out[-1].lower() == w.lower():
            continue
        out.append(w)
    return out


def _object_type_label(object_type: ObjectType) -> str:
    return object_type.name.replace("_", " ").title()


class PointNormalizer:
    """
    Expands abbreviation-heavy point identifiers using an AcronymStore.

    Each delimiter-separated chunk is looked up whole first, then by camelCase
    parts, then by letter/digit pieces, so entries such as CO2 or SAT1 survive.
    Lookups go equipment table first, generic table second; misses pass through.
    """

    def __init__(self, store: AcronymStore | None = None, config: NormalizerConfig | None = None) -> None:
        self._store = store if store is not None else get_default_store()
        self._config = config or NormalizerConfig()

    @property
    def config(self) -> NormalizerConfig:
        return self._config

    def resolve_tokens(self, identifier: str, equipment_type: str | None = None) -> list[TokenResolution]:
        """Resolve every token of an identifier against the chain for an equipment type."""
        return self._resolve_all(identifier, self._store.chain(equipment_type))

    def _resolve_all(self, identifier: str, chain: LookupChain) -> list[TokenResolution]:
        resolved: list[TokenResolution] = []
        for chunk in split_chunks(identifier):
            resolved.extend(self._resolve(chunk, chain, _SPLIT_LEVELS))
        return resolved

    def _resolve(
        self,
        text: str,
        chain: LookupChain,
        levels: tuple[re.Pattern[str], ...],
    ) -> list[TokenResolution]:
        if text.isdigit():
            return [TokenResolution(token=text, source=NUMERIC)]
        if len(text) > self._config.max_token_length:
            logger.debug("Token %r longer than %d chars; treated as opaque", text, self._config.max_token_length)
            return [TokenResolution(token=text, source=OPAQUE)]

        hit = chain.resolve(text)
        if hit is not None:
            return [
                TokenResolution(
                    token=text,
                    source=hit.source,
                    expansion=hit.expansion,
                    priority=hit.priority,
                    category=hit.category,
                    point_function=hit.point_function,
                )
            ]

        for i, level in enumerate(levels):
            parts = _split(level, text)
            if len(parts) > 1:
                out: list[TokenResolution] = []
                for part in parts:
                    out.extend(self._resolve(part, chain, levels[i + 1 :]))
                return out

        logger.info("Dictionary lookup miss: %r (equipment type %s)", text, chain.equipment_type or "none")
        return [TokenResolution(token=text, source=PASSTHROUGH)]

    def normalize(self, raw: RawPoint, equipment_type: str | None = None) -> NormalizedPoint:
        """
        Normalize a raw point.

        Raises EmptyIdentifierError for empty or whitespace-only identifiers; any
        other input yields a best-effort result whose confidence reflects how much
        of the identifier the dictionaries understood.
        """
        if raw.name is None or not raw.name.strip():
            raise EmptyIdentifierError(raw.name)

        chain = self._store.chain(equipment_type)
        resolutions = self._resolve_all(raw.name, chain)
        rules: list[str] = ["tokenize"]

        words: list[str] = []
        for r in resolutions:
            words.extend((r.expansion or r.token).split())
            if r.source == EQUIPMENT_SOURCE:
                rules.append(f"{EQUIPMENT_SOURCE}:{chain.equipment_type}")
            else:
                rules.append(r.source)

        kept = [w for w in words if w.lower() not in _FUNCTION_WORD_SET]
        if len(kept) < len(words):
            rules.append("function_word_filter")
        if not kept:
            kept = [r.token for r in resolutions if r.token.lower() not in _FUNCTION_WORD_SET]
        if not kept:
            kept = [_object_type_label(raw.object_type)]
            rules.append("object_type_name")
        collapsed = _collapse_repeats(kept)
        if len(collapsed) < len(kept):
            rules.append("collapse_repeats")
        normalized_name = " ".join(collapsed)

        function = classify(raw.object_type, raw.is_writable)
        description = self._describe(raw, normalized_name, function, rules)

        return NormalizedPoint(
            original_name=raw.name,
            normalized_name=normalized_name,
            expanded_description=description,
            point_function=function,
            category=self._categorize(raw.object_type, function, resolutions),
            data_type=data_type_for(raw.object_type),
            object_type=raw.object_type,
            is_writable=raw.is_writable,
            units=raw.units,
            confidence_score=self._score(raw, resolutions, chain),
            applied_rules=tuple(dict.fromkeys(rules)),
            equipment_type=chain.equipment_type or (_clean(equipment_type) or None),
            review_threshold=self._config.review_threshold,
        )

    def _describe(self, raw: RawPoint, normalized_name: str, function: PointFunction, rules: list[str]) -> str:
        source = _clean(raw.description)
        # Ties go to the expanded name.
        if len(source) > len(normalized_name):
            base = source
            rules.append("description_from_source")
        else:
            base = normalized_name
            rules.append("description_from_name")
        base = strip_function_words(base) or normalized_name

        suffix = function_suffix(function)
        if suffix is None:
            return base
        rules.append(f"function_suffix:{suffix}")
        return f"{base} {suffix}"

    @staticmethod
    def _categorize(
        object_type: ObjectType,
        function: PointFunction,
        resolutions: list[TokenResolution],
    ) -> PointCategory:
        if function in (PointFunction.SENSOR, PointFunction.PARAMETER) and (
            is_binary(object_type) or object_type == ObjectType.MULTISTATE_INPUT
        ):
            if any(r.category == "Alarm" for r in resolutions):
                return PointCategory.ALARM
            if any(r.point_function == PointFunction.STATUS for r in resolutions):
                return PointCategory.STATUS
        return _CATEGORY_BY_FUNCTION.get(function, PointCategory.UNKNOWN)

    def _score(self, raw: RawPoint, resolutions: list[TokenResolution], chain: LookupChain) -> float:
        cfg = self._config
        expanded = [r for r in resolutions if r.expanded]
        unexpanded = [r for r in resolutions if r.source in (PASSTHROUGH, OPAQUE)]

        score = cfg.base_confidence
        for r in expanded:
            if r.source == EQUIPMENT_SOURCE:
                score += cfg.equipment_bonus
            else:
                score += cfg.generic_bonus * r.priority / 10
        if len(unexpanded) > len(expanded):
            score -= cfg.unexpanded_penalty
        if raw.units and raw.units.strip():
            score += cfg.units_bonus
        if chain.equipment_type is not None:
            score += cfg.context_bonus
        return round(min(max(score, 0.0), 1.0), 4)


def normalize(raw: RawPoint, equipment_type: str | None = None) -> NormalizedPoint:
    """Normalize one raw point with the packaged dictionaries and default weights."""
    return PointNormalizer().normalize(raw, equipment_type)
