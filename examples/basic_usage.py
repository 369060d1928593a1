#!/usr/bin/env python3
"""Example: normalize a few VAV box points, tag them and match them against the VAV template."""

import sys

from pybacnet_points import (
    RawPoint,
    get_default_templates,
    match_template,
    normalize,
    tag,
)
from pybacnet_points.errors import EmptyIdentifierError, UnknownTemplateError
from pybacnet_points.types import ObjectType


def main() -> None:
    equipment_type = "VAV-2-14"  # any hint the dictionaries recognize
    raw_points = [
        RawPoint("ROOM TEMP_4", ObjectType.ANALOG_INPUT, units="degF"),
        RawPoint("DAMPER POS_5", ObjectType.ANALOG_OUTPUT, units="%"),
        RawPoint("ZN-T-SP", ObjectType.ANALOG_VALUE, is_writable=True, units="degF"),
        RawPoint("RH_VLV", ObjectType.ANALOG_OUTPUT, units="%"),
    ]

    try:
        points = [normalize(p, equipment_type) for p in raw_points]
        for point in points:
            print(f"{point.original_name:<14} -> {point.expanded_description} ({point.confidence_score:.2f})")

            # Haystack tags
            tags = tag(point)
            print(f"{'':<14}    tags: {' '.join(tags.names)}")
            for warning in tags.warnings:
                print(f"{'':<14}    warning: {warning}")

        # Template matching
        report = match_template(get_default_templates().signatures(equipment_type), points)
        print(f"aggregate confidence: {report.aggregate_confidence:.2f}")
        print(report.reasoning)
        for rec in report.recommendations:
            print(f"  - {rec}")
    except EmptyIdentifierError as e:
        print(f"Empty identifier: {e}", file=sys.stderr)
        sys.exit(1)
    except UnknownTemplateError as e:
        print(f"No template: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
