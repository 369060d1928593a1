"""Tests for point identifier tokenization and normalization."""

import pytest

from pybacnet_points import PointNormalizer, RawPoint, normalize, tokenize
from pybacnet_points.errors import EmptyIdentifierError
from pybacnet_points.normalize import NormalizerConfig, strip_function_words
from pybacnet_points.types import ConfidenceLevel, ObjectType, PointCategory, PointFunction


@pytest.mark.parametrize(
    ("identifier", "expected"),
    [
        ("ROOM TEMP_4", ["ROOM", "TEMP", "4"]),
        ("ZnTemp2", ["Zn", "Temp", "2"]),
        ("SA_TS", ["SA", "TS"]),
        ("ZN-T-SP", ["ZN", "T", "SP"]),
        ("AHU1.SAT", ["AHU", "1", "SAT"]),
        ("  spaced   out  ", ["spaced", "out"]),
        ("", []),
    ],
)
def test_tokenize(identifier: str, expected: list[str]) -> None:
    assert tokenize(identifier) == expected


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Supply Air Temperature Sensor", "Supply Air Temperature"),
        ("fan status", "fan"),
        ("Zone Temperature SETPOINT 2", "Zone Temperature 2"),
        ("Sensorless Fan", "Sensorless Fan"),
    ],
)
def test_strip_function_words(text: str, expected: str) -> None:
    assert strip_function_words(text) == expected


class TestNormalizeScenarios:
    """End-to-end normalization of typical controller identifiers."""

    def test_room_temp_with_equipment_context(self) -> None:
        point = normalize(RawPoint("ROOM TEMP_4", ObjectType.ANALOG_INPUT, units="°F"), "VAV")
        assert point.original_name == "ROOM TEMP_4"
        assert point.normalized_name == "Room Temperature 4"
        assert point.expanded_description == "Room Temperature 4 Sensor"
        assert point.point_function == PointFunction.SENSOR
        assert point.category == PointCategory.SENSOR
        assert point.equipment_type == "VAV"
        assert point.confidence_score == pytest.approx(0.74)
        assert point.confidence_level == ConfidenceLevel.MEDIUM
        assert not point.requires_review

    def test_damper_position_uses_equipment_table(self) -> None:
        point = normalize(RawPoint("DAMPER POS_5", ObjectType.ANALOG_OUTPUT, units="%"), "VAV")
        assert point.normalized_name == "Damper Position 5"
        assert point.expanded_description == "Damper Position 5 Command"
        assert point.point_function == PointFunction.COMMAND
        assert "equipment_dictionary:VAV" in point.applied_rules
        assert point.confidence_score == pytest.approx(0.9)
        assert point.confidence_level == ConfidenceLevel.HIGH

    def test_function_word_not_duplicated(self) -> None:
        point = normalize(RawPoint("SA_TS", ObjectType.ANALOG_INPUT))
        assert point.normalized_name == "Supply Air Temperature"
        assert point.expanded_description == "Supply Air Temperature Sensor"
        assert point.expanded_description.count("Sensor") == 1
        assert "function_word_filter" in point.applied_rules

    def test_setpoint_word_moves_to_suffix(self) -> None:
        point = normalize(RawPoint("ZN-T-SP", ObjectType.ANALOG_VALUE, is_writable=True, units="degF"), "VAV")
        assert point.normalized_name == "Zone Temperature"
        assert point.expanded_description == "Zone Temperature Setpoint"
        assert point.point_function == PointFunction.SETPOINT

    def test_camel_and_digit_split(self) -> None:
        point = normalize(RawPoint("ZnTemp2", ObjectType.ANALOG_INPUT))
        assert point.normalized_name == "Zone Temperature 2"

    def test_whole_chunk_lookup_before_split(self) -> None:
        point = normalize(RawPoint("CO2", ObjectType.ANALOG_INPUT))
        assert point.normalized_name == "Carbon Dioxide"

    def test_digit_suffix_split(self) -> None:
        point = normalize(RawPoint("SAT1", ObjectType.ANALOG_INPUT))
        assert point.normalized_name == "Supply Air Temperature 1"

    def test_equipment_table_beats_generic(self) -> None:
        vav = normalize(RawPoint("RH", ObjectType.ANALOG_OUTPUT), "VAV-2-14")
        generic = normalize(RawPoint("RH", ObjectType.ANALOG_INPUT))
        assert vav.normalized_name == "Reheat"
        assert vav.equipment_type == "VAV"
        assert generic.normalized_name == "Relative Humidity"
        assert generic.equipment_type is None

    def test_unresolved_hint_is_kept(self) -> None:
        point = normalize(RawPoint("SAT", ObjectType.ANALOG_INPUT), "  Spaceship  Deck ")
        assert point.equipment_type == "Spaceship Deck"

    def test_unknown_tokens_pass_through(self) -> None:
        point = normalize(RawPoint("FOO_BAR", ObjectType.ANALOG_INPUT))
        assert point.normalized_name == "FOO BAR"
        assert "passthrough" in point.applied_rules
        assert point.requires_review

    def test_only_function_words_falls_back_to_object_type(self) -> None:
        point = normalize(RawPoint("STATUS", ObjectType.BINARY_INPUT))
        assert point.normalized_name == "Binary Input"
        assert point.expanded_description == "Binary Input Sensor"
        assert point.category == PointCategory.STATUS
        assert "object_type_name" in point.applied_rules

    def test_alarm_category(self) -> None:
        point = normalize(RawPoint("FAN_ALM", ObjectType.BINARY_INPUT))
        assert point.normalized_name == "Fan Alarm"
        assert point.category == PointCategory.ALARM

    def test_adjacent_repeats_collapse(self) -> None:
        point = normalize(RawPoint("TEMP_TEMP", ObjectType.ANALOG_INPUT))
        assert point.normalized_name == "Temperature"
        assert "collapse_repeats" in point.applied_rules

    def test_longer_source_description_wins(self) -> None:
        raw = RawPoint(
            "ZT",
            ObjectType.ANALOG_INPUT,
            description="Zone air temperature sensor in room 101",
        )
        point = normalize(raw)
        assert point.expanded_description == "Zone air temperature in room 101 Sensor"
        assert "description_from_source" in point.applied_rules

    def test_parameter_has_no_suffix(self) -> None:
        point = normalize(RawPoint("OCC", ObjectType.BINARY_VALUE))
        assert point.point_function == PointFunction.PARAMETER
        assert point.expanded_description == "Occupancy"

    def test_opaque_token(self) -> None:
        name = "X" * 40
        point = normalize(RawPoint(name, ObjectType.ANALOG_INPUT))
        assert point.normalized_name == name
        assert "opaque_token" in point.applied_rules
        assert point.confidence_score == pytest.approx(0.2)


class TestNormalizeContract:
    """Invariants that hold for every normalized point."""

    @pytest.mark.parametrize("name", ["", "   ", "\t\n"])
    def test_empty_identifier_raises(self, name: str) -> None:
        with pytest.raises(EmptyIdentifierError) as exc_info:
            normalize(RawPoint(name, ObjectType.ANALOG_INPUT))
        assert exc_info.value.identifier == name

    @pytest.mark.parametrize(
        "name",
        ["ROOM TEMP_4", "SA_TS", "ZN-T-SP", "SF_STS", "CHW_VLV_CMD", "Sensor Command Setpoint Status", "x"],
    )
    def test_name_never_contains_function_words(self, name: str) -> None:
        point = normalize(RawPoint(name, ObjectType.BINARY_OUTPUT))
        words = {w.lower() for w in point.normalized_name.split()}
        assert not words & {"sensor", "command", "setpoint", "status"}
        assert 0.0 <= point.confidence_score <= 1.0

    def test_deterministic(self) -> None:
        raw = RawPoint("AHU1_SF_SPD", ObjectType.ANALOG_OUTPUT, units="%")
        assert normalize(raw, "AHU") == normalize(raw, "AHU")

    def test_custom_config_threshold(self) -> None:
        normalizer = PointNormalizer(config=NormalizerConfig(review_threshold=0.95))
        point = normalizer.normalize(RawPoint("DAMPER POS_5", ObjectType.ANALOG_OUTPUT, units="%"), "VAV")
        assert point.requires_review

    def test_invalid_config_raises(self) -> None:
        with pytest.raises(ValueError, match="max_token_length"):
            NormalizerConfig(max_token_length=0)


def test_resolve_tokens_reports_sources() -> None:
    resolutions = PointNormalizer().resolve_tokens("ZN-T-SP_4", "VAV")
    assert [(r.token, r.source) for r in resolutions] == [
        ("ZN", "generic_dictionary"),
        ("T", "generic_dictionary"),
        ("SP", "generic_dictionary"),
        ("4", "numeric"),
    ]
    assert resolutions[2].point_function == PointFunction.SETPOINT


def test_lookup_miss_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level("INFO", logger="pybacnet_points.normalize"):
        normalize(RawPoint("QWERTY", ObjectType.ANALOG_INPUT))
    assert "Dictionary lookup miss" in caplog.text


@pytest.mark.parametrize(
    ("base", "extended"),
    [
        ("XYZ", "XYZ TEMP"),
        ("ROOM", "ROOM TEMP"),
        ("ROOM 4", "ROOM TEMP 4"),
        ("DAMPER", "DAMPER POS"),
        ("FOO BAR", "FOO BAR SAT"),
    ],
)
def test_expanded_token_never_lowers_confidence(base: str, extended: str) -> None:
    for equipment_type in (None, "VAV"):
        before = normalize(RawPoint(base, ObjectType.ANALOG_INPUT), equipment_type)
        after = normalize(RawPoint(extended, ObjectType.ANALOG_INPUT), equipment_type)
        assert after.confidence_score >= before.confidence_score
