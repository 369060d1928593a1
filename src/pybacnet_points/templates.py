"""Template library: per-equipment-type template signatures loaded from packaged or user JSON."""

import json
import logging
from importlib import resources
from pathlib import Path
from typing import Any

from .classify import parse_object_type
from .dictionaries import AcronymStore, get_default_store
from .errors import InvalidSignaturePattern, UnknownTemplateError
from .signature import template_signature
from .types import PointFunction, PointSignature

logger = logging.getLogger(__name__)

_DATA_PACKAGE = "pybacnet_points.data"
_TEMPLATES_RESOURCE = "templates.json"


def _type_key(equipment_type: str) -> str:
    return "_".join(equipment_type.strip().upper().replace("-", " ").split())


def _parse_signature(raw: dict[str, Any], equipment_type: str) -> PointSignature:
    """Build a template PointSignature from a JSON entry (id, pattern, point_function, object_type, units, required)."""
    pattern = raw.get("pattern")
    if not isinstance(pattern, str):
        raise InvalidSignaturePattern(str(pattern), f"Missing pattern in {equipment_type} template entry: {raw!r}")
    function = raw.get("point_function")
    object_type = raw.get("object_type")
    try:
        return template_signature(
            pattern,
            signature_id=raw.get("id"),
            point_function=PointFunction(function) if function else None,
            object_type=parse_object_type(object_type) if object_type else None,
            units=raw.get("units"),
            is_required=bool(raw.get("required", False)),
        )
    except InvalidSignaturePattern as e:
        raise InvalidSignaturePattern(pattern, f"{equipment_type}: {e}") from e


class TemplateLibrary:
    """
    Template signatures keyed by canonical equipment type. Loaded from the packaged
    templates.json, or from override entries of the same shape.
    """

    def __init__(
        self,
        templates_override: list[dict[str, Any]] | None = None,
        store: AcronymStore | None = None,
    ) -> None:
        self._store = store
        self._templates: dict[str, tuple[PointSignature, ...]] = {}
        self._names: dict[str, str] = {}

        if templates_override is not None:
            entries = templates_override
        else:
            with resources.files(_DATA_PACKAGE).joinpath(_TEMPLATES_RESOURCE).open("r", encoding="utf-8") as f:
                data = json.load(f)
            entries = data["templates"] if isinstance(data, dict) else data

        for entry in entries:
            self._add(entry)
        logger.debug("TemplateLibrary loaded: %d equipment types", len(self._templates))

    def _add(self, entry: dict[str, Any]) -> None:
        equipment_type = _type_key(entry["equipment_type"])
        if equipment_type in self._templates:
            raise ValueError(f"Duplicate template for equipment type: {equipment_type}")
        signatures: list[PointSignature] = []
        seen: set[str] = set()
        for raw in entry.get("signatures", []):
            signature = _parse_signature(raw, equipment_type)
            if signature.signature_id in seen:
                raise ValueError(f"Duplicate signature id in {equipment_type} template: {signature.signature_id}")
            seen.add(signature.signature_id)
            signatures.append(signature)
        self._templates[equipment_type] = tuple(signatures)
        self._names[equipment_type] = entry.get("name", equipment_type)

    def _resolve(self, equipment_type: str) -> str:
        key = _type_key(equipment_type)
        if key in self._templates:
            return key
        store = self._store if self._store is not None else get_default_store()
        resolved = store.resolve_equipment_type(equipment_type)
        if resolved is not None and resolved in self._templates:
            return resolved
        raise UnknownTemplateError(equipment_type)

    def signatures(self, equipment_type: str) -> tuple[PointSignature, ...]:
        """Template signatures for an equipment type or hint; raises UnknownTemplateError."""
        return self._templates[self._resolve(equipment_type)]

    def name(self, equipment_type: str) -> str:
        return self._names[self._resolve(equipment_type)]

    def __len__(self) -> int:
        return len(self._templates)

    @property
    def equipment_types(self) -> tuple[str, ...]:
        return tuple(self._templates)


def load_templates(path: Path) -> TemplateLibrary:
    """Load a TemplateLibrary from a JSON file shaped like the packaged templates.json."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    entries = data["templates"] if isinstance(data, dict) else data
    return TemplateLibrary(templates_override=entries)


def get_default_templates() -> TemplateLibrary:
    """Load and return the packaged TemplateLibrary."""
    return TemplateLibrary()
