"""Tests for CLI module - input parsing and command behavior."""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from pybacnet_points.cli import app, build_raw_point, load_points, parse_bool, read_point_rows
from pybacnet_points.types import ObjectType

runner = CliRunner()

VAV_CSV = """name,object_type,writable,units,description
ROOM TEMP_4,AI,false,degF,
DAMPER POS_5,AO,false,%,
ZN-T-SP,AV,true,degF,Zone temperature setpoint
"""


def _write(tmp_path: Path, content: str, name: str = "points.csv") -> Path:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


# ============================================================================
# Input Parsing Tests
# ============================================================================


class TestParseBool:
    """Test boolean value parsing."""

    def test_true_variants(self) -> None:
        """Test all valid true variants."""
        for value in ["true", "TRUE", "1", "on", "yes", "y", "rw"]:
            assert parse_bool(value) is True

    def test_false_variants(self) -> None:
        """Test all valid false variants, including an empty cell."""
        for value in ["false", "FALSE", "0", "off", "no", "n", "ro", ""]:
            assert parse_bool(value) is False

    def test_whitespace_handling(self) -> None:
        """Test whitespace is stripped."""
        assert parse_bool("  true  ") is True
        assert parse_bool("  0 ") is False

    def test_invalid_values(self) -> None:
        """Test invalid values raise ValueError."""
        for value in ["maybe", "2", "truthy"]:
            with pytest.raises(ValueError, match="Invalid boolean value"):
                parse_bool(value)


class TestLoadPoints:
    """Test CSV point loading."""

    def test_load(self, tmp_path: Path) -> None:
        """Test a well-formed CSV."""
        results = load_points(_write(tmp_path, VAV_CSV))
        assert all(r.ok for r in results)
        points = [r.result for r in results]
        assert [p.name for p in points] == ["ROOM TEMP_4", "DAMPER POS_5", "ZN-T-SP"]
        assert points[0].object_type == ObjectType.ANALOG_INPUT
        assert points[0].description is None
        assert points[2].is_writable is True
        assert points[2].description == "Zone temperature setpoint"

    def test_optional_columns(self, tmp_path: Path) -> None:
        """Test a CSV with only the required columns."""
        (result,) = load_points(_write(tmp_path, "Name,Object_Type\nSAT,analog-input\n"))
        assert result.result.object_type == ObjectType.ANALOG_INPUT
        assert result.result.units is None
        assert result.result.is_writable is False

    def test_missing_column(self, tmp_path: Path) -> None:
        """Test a CSV without object_type."""
        with pytest.raises(ValueError, match="missing required columns: object_type"):
            load_points(_write(tmp_path, "name,units\nSAT,degF\n"))

    def test_bad_rows_are_isolated(self, tmp_path: Path) -> None:
        """Test a bad row is reported with its row number while the others still load."""
        csv_text = "name,object_type,writable\nSAT,AI,\nRAT,XX,\nMAT,AI,maybe\nOAT,AI,\n"
        results = load_points(_write(tmp_path, csv_text))
        assert [r.identifier for r in results] == ["SAT", "RAT", "MAT", "OAT"]
        assert [r.ok for r in results] == [True, False, False, True]
        assert results[1].error_type == "ValueError"
        assert results[1].error.startswith("Row 3: Unknown BACnet object type")
        assert results[2].error.startswith("Row 4: Invalid boolean value")
        assert results[3].result.name == "OAT"

    def test_read_point_rows(self, tmp_path: Path) -> None:
        """Test rows keep their CSV line numbers and raw text."""
        rows = read_point_rows(_write(tmp_path, VAV_CSV))
        assert [r.line_no for r in rows] == [2, 3, 4]
        assert rows[2].writable == "true"
        assert rows[0].description == ""


def test_build_raw_point() -> None:
    point = build_raw_point("SAT", "ai", True, "", "")
    assert point.object_type == ObjectType.ANALOG_INPUT
    assert point.is_writable
    assert point.units is None
    assert point.description is None


# ============================================================================
# Command Tests
# ============================================================================


def test_normalize_command() -> None:
    """Test normalize command."""
    result = runner.invoke(app, ["normalize", "ROOM TEMP_4", "-o", "AI", "-u", "degF", "-e", "VAV"])

    assert result.exit_code == 0
    assert "Normalized name: Room Temperature 4" in result.stdout
    assert "Description:     Room Temperature 4 Sensor" in result.stdout
    assert "Function:        sensor" in result.stdout


def test_normalize_command_json() -> None:
    """Test normalize command with JSON output."""
    result = runner.invoke(app, ["normalize", "ZN-T-SP", "-o", "AV", "--writable", "-e", "VAV", "--json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["normalized_name"] == "Zone Temperature"
    assert data["expanded_description"] == "Zone Temperature Setpoint"
    assert data["point_function"] == "setpoint"
    assert data["object_type"] == "AV"
    assert data["confidence_level"] in ("high", "medium", "low", "unknown")
    assert isinstance(data["requires_review"], bool)


def test_normalize_empty_identifier() -> None:
    """Test normalize command with an empty identifier."""
    result = runner.invoke(app, ["normalize", "  "])
    assert result.exit_code == 2
    assert "cannot be empty" in result.output


def test_normalize_bad_object_type() -> None:
    """Test normalize command with an unknown object type."""
    result = runner.invoke(app, ["normalize", "SAT", "-o", "XYZ"])
    assert result.exit_code == 2
    assert "Unknown BACnet object type" in result.output


def test_equipment_type_from_env() -> None:
    """Test equipment type picked up from PYBACNET_EQUIPMENT_TYPE."""
    result = runner.invoke(app, ["normalize", "RH", "-o", "AO", "--json"], env={"PYBACNET_EQUIPMENT_TYPE": "VAV"})
    assert result.exit_code == 0
    assert json.loads(result.stdout)["normalized_name"] == "Reheat"


@patch("pybacnet_points.cli.PointNormalizer")
def test_normalize_unexpected_error(mock_normalizer_class: MagicMock) -> None:
    """Test unexpected failures exit with code 4."""
    mock_normalizer_class.return_value.normalize.side_effect = RuntimeError("boom")
    result = runner.invoke(app, ["normalize", "SAT"])
    assert result.exit_code == 4
    assert "Unexpected error: boom" in result.output


def test_tags_command() -> None:
    """Test tags command."""
    result = runner.invoke(app, ["tags", "ROOM TEMP_4", "-u", "degF", "-e", "VAV"])

    assert result.exit_code == 0
    assert "Tags:       point sensor temp vav zone" in result.stdout
    assert "Temperature points should specify a substance" in result.stdout


def test_tags_command_json() -> None:
    """Test tags command with JSON output."""
    result = runner.invoke(app, ["tags", "SAT", "-u", "degF", "-e", "AHU", "--json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["point_id"] == "SAT"
    assert data["names"] == ["point", "sensor", "temp", "air", "ahu", "supply"]
    assert data["tags"][0]["name"] == "point"
    assert data["warnings"] == []


def test_signature_command() -> None:
    """Test signature command."""
    result = runner.invoke(app, ["signature", "ROOM TEMP_4", "-u", "degF", "--required"])

    assert result.exit_code == 0
    assert "Pattern:     *ROOM*TEMP*" in result.stdout
    assert "Key:         room_temp" in result.stdout
    assert "Required:    yes" in result.stdout


def test_explain_command_json() -> None:
    """Test explain command with JSON output."""
    result = runner.invoke(app, ["explain", "DAMPER POS_5", "-e", "VAV-2", "--json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["equipment_type"] == "VAV"
    assert [t["token"] for t in data["tokens"]] == ["DAMPER", "POS", "5"]
    assert data["tokens"][0]["source"] == "equipment_dictionary"
    assert data["tokens"][2]["source"] == "numeric"


def test_match_command(tmp_path: Path) -> None:
    """Test match command against the packaged VAV template."""
    result = runner.invoke(app, ["match", str(_write(tmp_path, VAV_CSV)), "-e", "VAV"])

    assert result.exit_code == 0
    assert "Template:        VAV Box" in result.stdout
    assert "Aggregate:       1.00" in result.stdout
    assert "zone_temp" in result.stdout
    assert "3 optional points not found" in result.stdout


def test_match_command_json(tmp_path: Path) -> None:
    """Test match command with JSON output."""
    result = runner.invoke(app, ["match", str(_write(tmp_path, VAV_CSV)), "-e", "VAV", "--json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["template"] == "VAV Box"
    assert data["required_match_rate"] == 1.0
    assert data["assignments"]["ROOM TEMP_4"] == "zone_temp"
    assert data["skipped"] == []


def test_match_requires_equipment_type(tmp_path: Path) -> None:
    """Test match command without an equipment type."""
    result = runner.invoke(app, ["match", str(_write(tmp_path, VAV_CSV))], env={"PYBACNET_EQUIPMENT_TYPE": ""})
    assert result.exit_code == 2
    assert "--equipment-type is required" in result.output


def test_match_unknown_template(tmp_path: Path) -> None:
    """Test match command with an equipment type that has no template."""
    result = runner.invoke(app, ["match", str(_write(tmp_path, VAV_CSV)), "-e", "Spaceship"])
    assert result.exit_code == 3
    assert "No template for equipment type" in result.output


def test_match_bad_template_file(tmp_path: Path) -> None:
    """Test match command with a malformed template pattern."""
    templates = _write(
        tmp_path,
        json.dumps({"templates": [{"equipment_type": "VAV", "signatures": [{"id": "x", "pattern": "*T?*"}]}]}),
        "templates.json",
    )
    result = runner.invoke(
        app, ["match", str(_write(tmp_path, VAV_CSV)), "-e", "VAV", "--templates", str(templates)]
    )
    assert result.exit_code == 3
    assert "Template configuration" in result.output


def test_match_bad_csv(tmp_path: Path) -> None:
    """Test match command with a CSV missing required columns."""
    result = runner.invoke(app, ["match", str(_write(tmp_path, "name\nSAT\n")), "-e", "VAV"])
    assert result.exit_code == 2
    assert "missing required columns" in result.output


def test_batch_command(tmp_path: Path) -> None:
    """Test batch command reports failed rows and keeps going."""
    csv_text = VAV_CSV + ",AI,false,,\n"
    result = runner.invoke(app, ["batch", str(_write(tmp_path, csv_text)), "-e", "VAV", "--workers", "2"])

    assert result.exit_code == 0
    assert "Room Temperature 4" in result.output
    assert "FAILED ''" in result.output
    assert "Processed 4 points: 3 ok, 1 failed" in result.output


def test_batch_command_bad_row(tmp_path: Path) -> None:
    """Test one unparseable row does not stop the rows around it."""
    csv_text = "name,object_type\nROOM TEMP_4,AI\nBAD,XYZ\nDAMPER POS_5,AO\n"
    result = runner.invoke(app, ["batch", str(_write(tmp_path, csv_text)), "-e", "VAV"])

    assert result.exit_code == 0
    assert "Room Temperature 4" in result.output
    assert "Damper Position 5" in result.output
    assert "FAILED 'BAD': ValueError: Row 3: Unknown BACnet object type" in result.output
    assert "Processed 3 points: 2 ok, 1 failed" in result.output


def test_batch_command_bad_row_json(tmp_path: Path) -> None:
    """Test a bad row appears in place in JSON output."""
    csv_text = "name,object_type\nROOM TEMP_4,AI\nBAD,XYZ\nDAMPER POS_5,AO\n"
    result = runner.invoke(app, ["batch", str(_write(tmp_path, csv_text)), "-e", "VAV", "--json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert [row["name"] for row in data] == ["ROOM TEMP_4", "BAD", "DAMPER POS_5"]
    assert [row["ok"] for row in data] == [True, False, True]
    assert data[1]["error_type"] == "ValueError"


def test_match_command_skips_bad_row(tmp_path: Path) -> None:
    """Test match command reports an unparseable row and matches the rest."""
    csv_text = VAV_CSV + "BAD,XYZ,false,,\n"
    result = runner.invoke(app, ["match", str(_write(tmp_path, csv_text)), "-e", "VAV", "--json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["required_match_rate"] == 1.0
    assert data["skipped"][0]["name"] == "BAD"
    assert data["skipped"][0]["error"].startswith("Row 5: Unknown BACnet object type")


def test_batch_command_json(tmp_path: Path) -> None:
    """Test batch command with JSON output."""
    result = runner.invoke(app, ["batch", str(_write(tmp_path, VAV_CSV)), "-e", "VAV", "--json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert [row["ok"] for row in data] == [True, True, True]
    assert data[1]["pattern"] == "*DAMPER*POS*"
    assert "cmd" in data[1]["tags"]


def test_info_command() -> None:
    """Test info command."""
    result = runner.invoke(app, ["info"])

    assert result.exit_code == 0
    assert "version:" in result.stdout.lower()
    assert "VAV" in result.stdout


def test_info_command_json() -> None:
    """Test info command with JSON output."""
    result = runner.invoke(app, ["info", "--json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["generic_acronyms"] > 150
    assert "EXHAUST_FAN" in data["equipment_dictionaries"]
    assert "GENERIC" in data["templates"]


def test_command_help() -> None:
    """Test that help text is available for all commands."""
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("normalize", "tags", "signature", "explain", "match", "batch", "info"):
        assert command in result.stdout


def test_version_flag() -> None:
    """Test --version flag."""
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "pybacnet-points" in result.stdout
