#!/usr/bin/env python3
"""Command-line interface for pybacnet-points using Typer."""

import csv
import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Optional

import typer
from typing_extensions import Annotated

from . import __version__  # type: ignore
from .batch import BatchResult, normalize_batch, process_batch, run_batch
from .classify import parse_object_type
from .dictionaries import get_default_store
from .errors import EmptyIdentifierError, InvalidSignaturePattern, UnknownTemplateError
from .matching import DEFAULT_THRESHOLD, match_template
from .normalize import PointNormalizer
from .signature import to_signature
from .tagger import HaystackTagger, TaggingConfig
from .templates import get_default_templates, load_templates
from .types import HaystackTagSet, MatchReport, NormalizedPoint, RawPoint

app = typer.Typer(
    name="pybacnet",
    help="Normalize BACnet point names, infer Haystack tags and match equipment templates.",
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Shared options and helpers
# ============================================================================

ObjectTypeOption = Annotated[
    str,
    typer.Option("--object-type", "-o", help="BACnet object type (AI, AO, AV, BI, BO, BV, MSI, ...)"),
]
WritableOption = Annotated[
    bool,
    typer.Option("--writable", "-w", help="Point is writable (matters for value objects)"),
]
UnitsOption = Annotated[
    Optional[str],
    typer.Option("--units", "-u", help="Engineering units (e.g. degF, %, cfm)"),
]
DescriptionOption = Annotated[
    Optional[str],
    typer.Option("--description", "-d", help="Free-text point description"),
]
EquipmentTypeOption = Annotated[
    Optional[str],
    typer.Option(
        "--equipment-type",
        "-e",
        help="Equipment type or hint (AHU, VAV-2-14, Fan Coil 3)",
        envvar="PYBACNET_EQUIPMENT_TYPE",
    ),
]
ThresholdOption = Annotated[
    float,
    typer.Option("--threshold", help="Confidence a match needs to be accepted", envvar="PYBACNET_THRESHOLD"),
]
WorkersOption = Annotated[
    int,
    typer.Option("--workers", help="Worker threads for batch processing (1 = sequential)", envvar="PYBACNET_WORKERS"),
]
PointsArgument = Annotated[
    Path,
    typer.Argument(
        help="CSV with header: name,object_type,writable,units,description",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output as JSON"),
]


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbose flag."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if not verbose else "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def parse_bool(value: str) -> bool:
    """Parse boolean value from string."""
    v = value.lower().strip()
    if v in ("true", "1", "on", "yes", "y", "w", "rw"):
        return True
    if v in ("false", "0", "off", "no", "n", "r", "ro", ""):
        return False
    raise ValueError(f"Invalid boolean value: {value!r}")


def build_raw_point(
    name: str,
    object_type: str,
    writable: bool = False,
    units: str | None = None,
    description: str | None = None,
) -> RawPoint:
    """Build a RawPoint from CLI/CSV strings; raises ValueError for an unknown object type."""
    return RawPoint(
        name=name,
        object_type=parse_object_type(object_type),
        is_writable=writable,
        units=units or None,
        description=description or None,
    )


@dataclass(frozen=True)
class PointRow:
    """One data row of a points CSV, still as text."""

    line_no: int
    name: str
    object_type: str
    writable: str = ""
    units: str = ""
    description: str = ""

    def to_raw_point(self) -> RawPoint:
        try:
            return build_raw_point(
                name=self.name,
                object_type=self.object_type,
                writable=parse_bool(self.writable),
                units=self.units,
                description=self.description,
            )
        except ValueError as e:
            raise ValueError(f"Row {self.line_no}: {e}") from None


def read_point_rows(csv_path: Path) -> list[PointRow]:
    """
    Read a points CSV with a header row. Columns name and object_type are required;
    writable, units and description are optional. Raises ValueError for missing columns.
    """
    rows: list[PointRow] = []
    with open(csv_path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        fields = {h.strip().lower() for h in (reader.fieldnames or [])}
        missing = {"name", "object_type"} - fields
        if missing:
            raise ValueError(f"CSV is missing required columns: {', '.join(sorted(missing))}")
        for line_no, row in enumerate(reader, start=2):
            row = {k.strip().lower(): (v or "").strip() for k, v in row.items() if k is not None}
            rows.append(
                PointRow(
                    line_no=line_no,
                    name=row.get("name", ""),
                    object_type=row.get("object_type", ""),
                    writable=row.get("writable", ""),
                    units=row.get("units", ""),
                    description=row.get("description", ""),
                )
            )
    return rows


def load_points(csv_path: Path) -> list[BatchResult]:
    """
    Parse every row of a points CSV into a RawPoint. A row with a bad object type or
    writable flag becomes a failed BatchResult; the other rows are still returned.
    Rows with an empty name are kept so the pipeline can report them.
    """
    return run_batch(PointRow.to_raw_point, read_point_rows(csv_path))


def _merge(loaded: list[BatchResult], processed: list[BatchResult]) -> list[BatchResult]:
    """Put pipeline results back in CSV order next to the rows that failed to parse."""
    remaining = iter(processed)
    return [next(remaining) if r.ok else r for r in loaded]


def point_to_dict(point: NormalizedPoint) -> dict[str, Any]:
    data = asdict(point)
    data["confidence_level"] = point.confidence_level.value
    data["requires_review"] = point.requires_review
    return data


def tagset_to_dict(tag_set: HaystackTagSet) -> dict[str, Any]:
    data = asdict(tag_set)
    data["names"] = list(tag_set.names)
    return data


def report_to_dict(report: MatchReport) -> dict[str, Any]:
    return {
        "aggregate_confidence": report.aggregate_confidence,
        "required_match_rate": report.required_match_rate,
        "total_match_rate": report.total_match_rate,
        "reasoning": report.reasoning,
        "matches": [
            {
                "signature_id": m.signature.signature_id,
                "pattern": m.signature.pattern,
                "required": m.signature.is_required,
                "point": m.point.original_name if m.point else None,
                "exact_match": m.exact_match,
                "partial_match": m.partial_match,
                "confidence": m.confidence,
                "accepted": m.accepted,
            }
            for m in report.matches
        ],
        "unmatched_signatures": [s.signature_id for s in report.unmatched_signatures],
        "unmatched_points": [p.original_name for p in report.unmatched_points],
        "assignments": dict(report.assignments),
        "recommendations": list(report.recommendations),
    }


def _dumps(data: Any) -> str:
    return json.dumps(data, indent=2, default=str, ensure_ascii=False)


def _unexpected(e: Exception, verbose: bool) -> typer.Exit:
    typer.echo(f"Error: Unexpected error: {e}", err=True)
    if verbose:
        import traceback
        traceback.print_exc()
    return typer.Exit(4)


# ============================================================================
# Commands
# ============================================================================


@app.command()
def normalize(
    name: Annotated[str, typer.Argument(help="Raw point identifier (e.g. 'ROOM TEMP_4', SA_TS)")],
    object_type: ObjectTypeOption = "AI",
    writable: WritableOption = False,
    units: UnitsOption = None,
    description: DescriptionOption = None,
    equipment_type: EquipmentTypeOption = None,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Normalize one point identifier into a display name and description.
    """
    setup_logging(verbose)

    try:
        raw = build_raw_point(name, object_type, writable, units, description)
        point = PointNormalizer().normalize(raw, equipment_type)
    except EmptyIdentifierError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)
    except ValueError as e:
        typer.echo(f"Error: Invalid input: {e}", err=True)
        raise typer.Exit(2)
    except Exception as e:
        raise _unexpected(e, verbose)

    if json_output:
        typer.echo(_dumps(point_to_dict(point)))
        return
    typer.echo(f"Original name:   {point.original_name}")
    typer.echo(f"Normalized name: {point.normalized_name}")
    typer.echo(f"Description:     {point.expanded_description}")
    typer.echo(f"Function:        {point.point_function.value}")
    typer.echo(f"Category:        {point.category.value}")
    typer.echo(f"Data type:       {point.data_type.value}")
    typer.echo(f"Units:           {point.units or '-'}")
    typer.echo(f"Equipment type:  {point.equipment_type or '-'}")
    typer.echo(f"Confidence:      {point.confidence_score:.2f} ({point.confidence_level.value})")
    typer.echo(f"Review needed:   {'yes' if point.requires_review else 'no'}")
    typer.echo(f"Rules:           {', '.join(point.applied_rules)}")


@app.command()
def tags(
    name: Annotated[str, typer.Argument(help="Raw point identifier")],
    object_type: ObjectTypeOption = "AI",
    writable: WritableOption = False,
    units: UnitsOption = None,
    description: DescriptionOption = None,
    equipment_type: EquipmentTypeOption = None,
    no_semantic: Annotated[bool, typer.Option("--no-semantic", help="Skip semantic name inference")] = False,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Normalize one point and infer its Haystack tags.
    """
    setup_logging(verbose)

    try:
        raw = build_raw_point(name, object_type, writable, units, description)
        point = PointNormalizer().normalize(raw, equipment_type)
        tag_set = HaystackTagger(TaggingConfig(enable_semantic_inference=not no_semantic)).generate_tags(point)
    except EmptyIdentifierError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)
    except ValueError as e:
        typer.echo(f"Error: Invalid input: {e}", err=True)
        raise typer.Exit(2)
    except Exception as e:
        raise _unexpected(e, verbose)

    if json_output:
        typer.echo(_dumps(tagset_to_dict(tag_set)))
        return
    typer.echo(f"Point:      {tag_set.dis} ({tag_set.point_id})")
    typer.echo(f"Tags:       {' '.join(tag_set.names)}")
    typer.echo(f"Confidence: {tag_set.confidence:.2f}")
    for warning in tag_set.warnings:
        typer.echo(f"Warning:    {warning}")


@app.command()
def signature(
    name: Annotated[str, typer.Argument(help="Raw point identifier")],
    object_type: ObjectTypeOption = "AI",
    writable: WritableOption = False,
    units: UnitsOption = None,
    description: DescriptionOption = None,
    equipment_type: EquipmentTypeOption = None,
    required: Annotated[bool, typer.Option("--required", help="Mark as a required template point")] = False,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Show the matchable signature of one point.
    """
    setup_logging(verbose)

    try:
        raw = build_raw_point(name, object_type, writable, units, description)
        sig = to_signature(PointNormalizer().normalize(raw, equipment_type), is_required=required)
    except EmptyIdentifierError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)
    except ValueError as e:
        typer.echo(f"Error: Invalid input: {e}", err=True)
        raise typer.Exit(2)
    except Exception as e:
        raise _unexpected(e, verbose)

    if json_output:
        typer.echo(_dumps(asdict(sig)))
        return
    typer.echo(f"Pattern:     {sig.pattern}")
    typer.echo(f"Key:         {sig.normalized_pattern}")
    typer.echo(f"Keywords:    {', '.join(sig.keywords) or '-'}")
    typer.echo(f"Function:    {sig.point_function.value if sig.point_function else '-'}")
    typer.echo(f"Quantity:    {sig.quantity or '-'}")
    typer.echo(f"Units:       {sig.units or '-'}")
    typer.echo(f"Required:    {'yes' if sig.is_required else 'no'}")


@app.command()
def explain(
    name: Annotated[str, typer.Argument(help="Raw point identifier")],
    equipment_type: EquipmentTypeOption = None,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Show how each token of an identifier was resolved (equipment table, generic table or pass-through).
    """
    setup_logging(verbose)

    try:
        store = get_default_store()
        resolved_type = store.resolve_equipment_type(equipment_type)
        resolutions = PointNormalizer(store).resolve_tokens(name, equipment_type)
    except Exception as e:
        raise _unexpected(e, verbose)

    info = {
        "identifier": name,
        "equipment_type": resolved_type,
        "tokens": [
            {"token": r.token, "expansion": r.expansion, "source": r.source, "priority": r.priority}
            for r in resolutions
        ],
    }
    if json_output:
        typer.echo(_dumps(info))
        return
    typer.echo(f"Identifier:      {name}")
    typer.echo(f"Equipment table: {resolved_type or '-'}")
    for r in resolutions:
        typer.echo(f"  {r.token:<12} -> {r.expansion or r.token:<32} [{r.source}]")


@app.command()
def match(
    points_csv: PointsArgument,
    equipment_type: EquipmentTypeOption = None,
    templates: Annotated[
        Optional[Path],
        typer.Option("--templates", help="Template JSON file (default: packaged templates)", exists=True, dir_okay=False),
    ] = None,
    threshold: ThresholdOption = DEFAULT_THRESHOLD,
    workers: WorkersOption = 1,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Match one equipment instance's points (CSV) against its equipment template.
    """
    setup_logging(verbose)

    if not equipment_type:
        typer.echo("Error: --equipment-type is required for this command", err=True)
        raise typer.Exit(2)

    try:
        library = load_templates(templates) if templates else get_default_templates()
        template_name = library.name(equipment_type)
        signatures = library.signatures(equipment_type)
        loaded = load_points(points_csv)
        raw_points = [r.result for r in loaded if r.ok]
        results = _merge(loaded, normalize_batch(raw_points, equipment_type, max_workers=workers))
        observed = [r.result for r in results if r.ok]
        report = match_template(signatures, observed, threshold)
    except (InvalidSignaturePattern, UnknownTemplateError) as e:
        typer.echo(f"Error: Template configuration: {e}", err=True)
        raise typer.Exit(3)
    except (ValueError, OSError) as e:
        typer.echo(f"Error: Invalid input: {e}", err=True)
        raise typer.Exit(2)
    except Exception as e:
        raise _unexpected(e, verbose)

    for r in results:
        if not r.ok:
            typer.echo(f"Skipped {r.identifier!r}: {r.error_type}: {r.error}", err=True)

    if json_output:
        data = report_to_dict(report)
        data["template"] = template_name
        data["skipped"] = [{"name": r.identifier, "error": r.error} for r in results if not r.ok]
        typer.echo(_dumps(data))
        return
    typer.echo(f"Template:        {template_name}")
    typer.echo(f"Aggregate:       {report.aggregate_confidence:.2f}")
    typer.echo(f"Required rate:   {report.required_match_rate:.2f}")
    typer.echo(f"Total rate:      {report.total_match_rate:.2f}")
    typer.echo(report.reasoning)
    for m in report.matches:
        tier = "exact" if m.exact_match else "partial" if m.partial_match else "none"
        if not m.accepted and m.point is not None:
            tier += "?"
        target = f"{m.point.original_name} ({m.confidence:.2f})" if m.point else "-"
        flag = "*" if m.signature.is_required else " "
        typer.echo(f"  {flag}[{tier:<8}] {m.signature.signature_id:<22} {m.signature.pattern:<26} -> {target}")
    if report.unmatched_points:
        typer.echo(f"Unmatched points: {', '.join(p.original_name for p in report.unmatched_points)}")
    if report.recommendations:
        typer.echo("Recommendations:")
        for rec in report.recommendations:
            typer.echo(f"  - {rec}")


@app.command()
def batch(
    points_csv: PointsArgument,
    equipment_type: EquipmentTypeOption = None,
    workers: WorkersOption = 1,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Normalize, tag and sign every point in a CSV. Failed rows are reported individually.
    """
    setup_logging(verbose)

    try:
        loaded = load_points(points_csv)
        raw_points = [r.result for r in loaded if r.ok]
        results = _merge(loaded, process_batch(raw_points, equipment_type, max_workers=workers))
    except (ValueError, OSError) as e:
        typer.echo(f"Error: Invalid input: {e}", err=True)
        raise typer.Exit(2)
    except Exception as e:
        raise _unexpected(e, verbose)

    if json_output:
        out = []
        for r in results:
            if r.ok:
                out.append(
                    {
                        "name": r.identifier,
                        "ok": True,
                        "normalized": point_to_dict(r.result.normalized),
                        "tags": list(r.result.tags.names),
                        "tag_confidence": r.result.tags.confidence,
                        "warnings": list(r.result.tags.warnings),
                        "pattern": r.result.signature.pattern,
                    }
                )
            else:
                out.append({"name": r.identifier, "ok": False, "error": r.error, "error_type": r.error_type})
        typer.echo(_dumps(out))
        return

    for r in results:
        if r.ok:
            record = r.result
            typer.echo(
                f"{r.identifier:<20} {record.normalized.normalized_name:<36} "
                f"{record.normalized.confidence_score:.2f}  {record.signature.pattern:<24} {' '.join(record.tags.names)}"
            )
        else:
            typer.echo(f"FAILED {r.identifier!r}: {r.error_type}: {r.error}", err=True)
    failed = sum(1 for r in results if not r.ok)
    typer.echo(f"Processed {len(results)} points: {len(results) - failed} ok, {failed} failed")


@app.command()
def info(
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Show package version, dictionary sizes and available templates.
    """
    setup_logging(verbose)

    try:
        store = get_default_store()
        library = get_default_templates()
    except Exception as e:
        raise _unexpected(e, verbose)

    info_data = {
        "version": __version__,
        "generic_acronyms": len(store),
        "equipment_dictionaries": list(store.equipment_types),
        "templates": list(library.equipment_types),
    }
    if json_output:
        typer.echo(_dumps(info_data))
        return
    typer.echo(f"pybacnet-points version: {info_data['version']}")
    typer.echo(f"Generic acronyms:        {info_data['generic_acronyms']}")
    typer.echo(f"Equipment dictionaries:  {', '.join(info_data['equipment_dictionaries'])}")
    typer.echo(f"Templates:               {', '.join(info_data['templates'])}")


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"pybacnet-points {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version and exit"),
    ] = None,
) -> None:
    """pybacnet - BACnet point normalization, Haystack tagging and template matching."""
    pass


if __name__ == "__main__":
    app()
