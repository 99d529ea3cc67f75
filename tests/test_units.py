"""Tests for length conversion helpers."""

import pytest

from polerecon.units import (
    LengthConverter,
    Unit,
    feet_to_metres,
    format_ft_in,
    ft_in,
    measurement_to_feet,
    metres_to_feet,
    parse_unit,
    round_half_up,
    to_feet,
    to_whole_inches,
)


@pytest.mark.parametrize("feet", [0.0, 2.5, 16.5, 29.999, 30.0, 41.123456, 120.75])
def test_feet_metres_round_trip(feet):
    assert metres_to_feet(feet_to_metres(feet)) == pytest.approx(feet, abs=1e-6)
    assert feet_to_metres(metres_to_feet(feet)) == pytest.approx(feet, abs=1e-6)


def test_parse_unit_accepts_spida_labels():
    assert parse_unit("METRE") is Unit.METRE
    assert parse_unit("feet") is Unit.FOOT
    assert parse_unit(" Inch ") is Unit.INCH
    assert parse_unit(None, Unit.FOOT) is Unit.FOOT
    assert parse_unit("furlong") is Unit.METRE


def test_to_feet():
    assert to_feet(120, Unit.INCH) == 10.0
    assert to_feet(30, "FOOT") == 30.0
    assert to_feet(0.3048, Unit.METRE) == pytest.approx(1.0)


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.49) == 2
    assert round_half_up(-0.5) == 0


def test_whole_inches_and_ft_in():
    assert to_whole_inches(10.0) == 120
    assert to_whole_inches(10.0833) == 121
    assert ft_in(30.5) == (30, 6)
    # 11.99" carries into the next foot
    assert ft_in(30.999) == (31, 0)


def test_format_ft_in():
    assert format_ft_in(30.5) == "30' 6\""
    assert format_ft_in(None) == "N/A"
    assert format_ft_in(-1.5) == "-1' 6\""


class TestMeasurementToFeet:
    def test_dict_with_unit(self):
        assert measurement_to_feet({"unit": "FOOT", "value": 22}) == 22.0
        assert measurement_to_feet({"unit": "METRE", "value": 3.048}) == pytest.approx(10.0)

    def test_bare_number_uses_default_unit(self):
        assert measurement_to_feet(12, Unit.INCH) == 1.0
        assert measurement_to_feet("3.048") == pytest.approx(10.0)

    @pytest.mark.parametrize("raw", [None, True, {"unit": "FOOT"}, {"value": "abc"}, "n/a", [1, 2]])
    def test_invalid_values_return_none(self, raw):
        assert measurement_to_feet(raw) is None


def test_length_converter_caches_by_value_and_unit():
    convert = LengthConverter()
    assert convert({"unit": "FOOT", "value": 10}) == 10.0
    assert convert({"unit": "FOOT", "value": 10}) == 10.0
    assert convert({"unit": "INCH", "value": 10}) == pytest.approx(10 / 12)
    assert len(convert) == 2
    assert convert.hits == 1


def test_length_converter_handles_unhashable_values():
    convert = LengthConverter()
    assert convert({"unit": "FOOT", "value": [1]}) is None
    assert convert(None) is None
    assert len(convert) == 0
