"""Tests for substring-triggered context inference."""

import pytest

from pybacnet_points import infer_context


def test_supply_air_temperature() -> None:
    ctx = infer_context("Supply Air Temperature")
    assert ctx.quantity == "temp"
    assert ctx.location_hint == "supply"
    assert ctx.equipment_hint is None
    assert ctx.patterns == ("temperature", "air", "supply")
    assert ctx.tags == ("temp", "air", "supply")
    assert ctx.confidence == pytest.approx(0.45)


def test_no_triggers() -> None:
    ctx = infer_context("Spare 12")
    assert ctx.quantity is None
    assert ctx.patterns == ()
    assert ctx.tags == ()
    assert ctx.confidence == 0.0


def test_case_insensitive() -> None:
    assert infer_context("ROOM TEMP").tags == infer_context("room temp").tags == ("temp", "zone")


def test_first_trigger_of_kind_wins() -> None:
    ctx = infer_context("Return Fan Damper Position")
    assert ctx.equipment_hint == "fan"
    assert ctx.location_hint == "return"
    assert ctx.quantity == "level"
    assert ctx.tags == ("level", "return", "fan", "damper")


def test_confidence_capped() -> None:
    ctx = infer_context(
        "Supply Return Outside Mixed Exhaust Discharge Zone Temperature Pressure Flow Humidity Fan Valve"
    )
    assert ctx.confidence == 1.0


def test_compressor_is_not_pressure() -> None:
    assert infer_context("Compressor 1").quantity is None


def test_static_implies_pressure() -> None:
    ctx = infer_context("Duct Static Pressure")
    assert ctx.quantity == "pressure"
    assert ctx.tags == ("pressure",)
