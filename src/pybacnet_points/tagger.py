"""Haystack tag generation for normalized points, with a consistency check over the result."""

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from .context import infer_context
from .errors import TagGenerationFailure
from .normalize import tokenize
from .tag_mappings import (
    EQUIPMENT_NAME_PATTERNS,
    EQUIPMENT_TYPE_TAGS,
    LOCATION_WORDS,
    OBJECT_TYPE_MARKERS,
    ROLE_TAGS,
    SUBSTANCE_TAGS,
    sort_tags,
    tag_category,
    unit_tags,
)
from .types import (
    ConsistencyResult,
    ContextInference,
    HaystackTag,
    HaystackTagSet,
    NormalizedPoint,
    TagCategory,
    TagSource,
)

logger = logging.getLogger(__name__)

ROLE_CONFLICT_WARNING = "Point should have only one role (sensor, cmd, or sp)"
SUBSTANCE_CONFLICT_WARNING = "Point should have only one substance (air, water, steam, or elec)"
FAILURE_WARNING = "Failed to generate complete tag set"

_ROLE_NAMES = frozenset(ROLE_TAGS.values())
_QUANTITIES_NEEDING_SUBSTANCE = (("temp", "Temperature"), ("flow", "Flow"))


@dataclass(frozen=True)
class TaggingConfig:
    """Stage weights and switches for HaystackTagger."""

    enable_semantic_inference: bool = True
    include_object_type_markers: bool = True
    strict_validation: bool = True
    inconsistency_factor: float = 0.8
    semantic_weight: float = 0.2
    base_confidence: float = 0.1
    role_confidence: float = 0.3
    parameter_confidence: float = 0.1
    fallback_quantity_confidence: float = 0.15
    equipment_type_confidence: float = 0.15
    equipment_name_confidence: float = 0.1
    location_confidence: float = 0.1
    failure_confidence: float = 0.1


def validate_consistency(tag_names: Iterable[str]) -> ConsistencyResult:
    """
    Check a tag-name collection for conflicting or incomplete combinations.

    More than one role tag is a conflict (valid=False). More than one substance,
    or temp/flow without any substance, only produces warnings.
    """
    names = list(dict.fromkeys(tag_names))
    roles = [n for n in names if n in _ROLE_NAMES]
    substances = [n for n in names if n in SUBSTANCE_TAGS]
    warnings: list[str] = []
    conflicts: list[str] = []

    if len(roles) > 1:
        conflicts.append(f"multiple roles: {', '.join(roles)}")
        warnings.append(ROLE_CONFLICT_WARNING)
    if len(substances) > 1:
        warnings.append(SUBSTANCE_CONFLICT_WARNING)
    if not substances:
        for quantity, label in _QUANTITIES_NEEDING_SUBSTANCE:
            if quantity in names:
                warnings.append(f"{label} points should specify a substance (air or water)")

    return ConsistencyResult(valid=not conflicts, warnings=tuple(warnings), conflicts=tuple(conflicts))


class _TagCollector:
    """Ordered tag accumulator; a repeated name keeps its first entry."""

    def __init__(self, applied_at: datetime) -> None:
        self._applied_at = applied_at
        self._tags: dict[str, HaystackTag] = {}

    def add(self, name: str, confidence: float, source: TagSource = TagSource.INFERRED, value: Any = None) -> None:
        if name in self._tags:
            return
        self._tags[name] = HaystackTag(
            name=name,
            category=tag_category(name),
            confidence=round(min(max(confidence, 0.0), 1.0), 4),
            source=source,
            value=value,
            applied_at=self._applied_at,
        )

    def first(self, category: TagCategory) -> str | None:
        return next((t.name for t in self._tags.values() if t.category == category), None)

    @property
    def tags(self) -> list[HaystackTag]:
        return list(self._tags.values())


def _has_phrase(text: str, phrase: str) -> bool:
    return re.search(rf"\b{re.escape(phrase)}\b", text) is not None


class HaystackTagger:
    """
    Composes role, quantity, equipment and location tags for a NormalizedPoint.

    Stages run in a fixed order and only ever add tags and confidence. The result
    is sorted by tag category and checked with validate_consistency. Tagging never
    raises: an internal failure yields the minimal {point, error} set.
    """

    def __init__(self, config: TaggingConfig | None = None) -> None:
        self._config = config or TaggingConfig()

    @property
    def config(self) -> TaggingConfig:
        return self._config

    def generate_tags(self, point: NormalizedPoint, explicit_tags: Iterable[str] = ()) -> HaystackTagSet:
        """Tag one point; explicit_tags are caller-asserted markers merged with source=explicit."""
        try:
            return self._generate(point, tuple(explicit_tags))
        except Exception as e:
            failure = e if isinstance(e, TagGenerationFailure) else TagGenerationFailure(_point_name(point), cause=e)
            logger.warning("%s; returning minimal tag set", failure)
            return self._minimal(point, failure)

    def _generate(self, point: NormalizedPoint, explicit_tags: tuple[str, ...]) -> HaystackTagSet:
        cfg = self._config
        collector = _TagCollector(datetime.now(timezone.utc))
        collector.add("point", 1.0, TagSource.EXPLICIT)

        context = self._run_stage(point, "context", lambda: infer_context(point.normalized_name))
        stages: tuple[tuple[str, Callable[[], float]], ...] = (
            ("role", lambda: self._role_stage(point, collector)),
            ("quantity", lambda: self._quantity_stage(point, context, collector)),
            ("equipment", lambda: self._equipment_stage(point, collector)),
            ("location", lambda: self._location_stage(point, collector)),
            ("semantic", lambda: self._semantic_stage(context, collector)),
            ("explicit", lambda: self._explicit_stage(explicit_tags, collector)),
        )
        confidence = cfg.base_confidence
        for name, stage in stages:
            confidence += self._run_stage(point, name, stage)
        confidence = min(confidence, 1.0)

        ordered = sort_tags(collector.tags)
        result = validate_consistency(t.name for t in ordered)
        if result.warnings and cfg.strict_validation:
            confidence *= cfg.inconsistency_factor

        return HaystackTagSet(
            point_id=point.original_name,
            dis=point.normalized_name,
            tags=tuple(ordered),
            confidence=round(confidence, 4),
            warnings=result.warnings,
            metadata={
                "role": collector.first(TagCategory.ROLE),
                "quantity": collector.first(TagCategory.QUANTITY),
                "equipment": collector.first(TagCategory.EQUIPMENT),
                "location": collector.first(TagCategory.LOCATION),
                "patterns": list(context.patterns),
                "valid": result.valid,
                "conflicts": list(result.conflicts),
            },
        )

    @staticmethod
    def _run_stage(point: NormalizedPoint, name: str, stage: Callable[[], Any]) -> Any:
        try:
            return stage()
        except Exception as e:
            raise TagGenerationFailure(_point_name(point), stage=name, cause=e) from e

    def _role_stage(self, point: NormalizedPoint, collector: _TagCollector) -> float:
        cfg = self._config
        role = ROLE_TAGS.get(point.point_function)
        if role is not None:
            collector.add(role, cfg.role_confidence, TagSource.EXPLICIT)
        if cfg.include_object_type_markers:
            for marker in OBJECT_TYPE_MARKERS.get(point.object_type, ()):
                collector.add(marker, cfg.role_confidence, TagSource.EXPLICIT)
        return cfg.role_confidence if role is not None else cfg.parameter_confidence

    def _quantity_stage(self, point: NormalizedPoint, context: ContextInference, collector: _TagCollector) -> float:
        tags, confidence = unit_tags(point.units)
        if tags:
            for name in tags:
                collector.add(name, confidence, TagSource.EXPLICIT)
            return confidence
        if context.quantity is not None:
            collector.add(context.quantity, self._config.fallback_quantity_confidence)
            return self._config.fallback_quantity_confidence
        return 0.0

    def _equipment_stage(self, point: NormalizedPoint, collector: _TagCollector) -> float:
        cfg = self._config
        contribution = 0.0
        type_tags = EQUIPMENT_TYPE_TAGS.get((point.equipment_type or "").upper(), ())
        for name in type_tags:
            collector.add(name, cfg.equipment_type_confidence, TagSource.EXPLICIT)
        if type_tags:
            contribution += cfg.equipment_type_confidence

        text = point.normalized_name.lower()
        raw_tokens = {t.lower() for t in tokenize(point.original_name)}
        matched = [tag for phrase, tag in EQUIPMENT_NAME_PATTERNS if _has_phrase(text, phrase) or phrase in raw_tokens]
        for name in matched:
            collector.add(name, cfg.equipment_name_confidence)
        if matched:
            contribution += cfg.equipment_name_confidence
        return contribution

    def _location_stage(self, point: NormalizedPoint, collector: _TagCollector) -> float:
        words = set(point.normalized_name.lower().split()) | {t.lower() for t in tokenize(point.original_name)}
        matched = [tag for tag, triggers in LOCATION_WORDS.items() if words & triggers]
        for name in matched:
            collector.add(name, self._config.location_confidence)
        return self._config.location_confidence if matched else 0.0

    def _semantic_stage(self, context: ContextInference, collector: _TagCollector) -> float:
        if not self._config.enable_semantic_inference:
            return 0.0
        for name in context.tags:
            collector.add(name, context.confidence)
        return context.confidence * self._config.semantic_weight

    @staticmethod
    def _explicit_stage(explicit_tags: tuple[str, ...], collector: _TagCollector) -> float:
        for name in explicit_tags:
            if name and name.strip():
                collector.add(name.strip(), 1.0, TagSource.EXPLICIT)
        return 0.0

    def _minimal(self, point: Any, failure: TagGenerationFailure) -> HaystackTagSet:
        confidence = self._config.failure_confidence
        collector = _TagCollector(datetime.now(timezone.utc))
        collector.add("point", confidence, TagSource.EXPLICIT)
        collector.add("error", confidence, TagSource.INFERRED, value=str(failure))
        return HaystackTagSet(
            point_id=_point_name(point),
            dis=str(getattr(point, "normalized_name", "") or _point_name(point)),
            tags=tuple(collector.tags),
            confidence=confidence,
            warnings=(f"{FAILURE_WARNING}: {failure}",),
            metadata={"error": str(failure)},
        )


def _point_name(point: Any) -> str:
    return str(getattr(point, "original_name", None) or "<unknown>")


def tag(point: NormalizedPoint, explicit_tags: Iterable[str] = ()) -> HaystackTagSet:
    """Tag one point with the default configuration."""
    return HaystackTagger().generate_tags(point, explicit_tags)
