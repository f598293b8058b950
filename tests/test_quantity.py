from fractions import Fraction

import pytest

from kuberhealthy.quantity import milli_value, parse_quantity


def test_whole_unit_is_a_thousand_milli():
    assert milli_value("1") == 1000


def test_milli_suffix_keeps_the_number():
    assert milli_value("250m") == 250


@pytest.mark.parametrize("suffix, factor", [("Ki", 1024), ("k", 1000)])
def test_suffix_scales_plain_number(suffix, factor):
    assert parse_quantity("3" + suffix) == parse_quantity("3") * factor


def test_binary_suffixes_grow_by_1024():
    steps = ["Ki", "Mi", "Gi", "Ti", "Pi", "Ei"]
    values = [parse_quantity("1" + s) for s in steps]
    for smaller, larger in zip(values, values[1:]):
        assert larger == smaller * 1024


def test_decimal_suffixes_grow_by_1000():
    steps = ["n", "u", "m", "", "k", "M", "G", "T", "P", "E"]
    values = [parse_quantity("1" + s) for s in steps]
    for smaller, larger in zip(values, values[1:]):
        assert larger == smaller * 1000


def test_exponent_matches_decimal_suffix():
    assert parse_quantity("1e3") == parse_quantity("1k")
    assert parse_quantity("5E-3") == parse_quantity("5m")


def test_decimal_fraction_is_exact():
    assert parse_quantity("0.5") == Fraction(1, 2)
    assert parse_quantity(".5") == parse_quantity("0.5")


def test_sign_is_applied():
    assert parse_quantity("-2Mi") == -parse_quantity("2Mi")
    assert parse_quantity("+2Mi") == parse_quantity("2Mi")


def test_milli_value_rounds_up():
    assert milli_value("1n") == 1
    assert milli_value("-1n") == -1


def test_milli_value_of_zero():
    assert milli_value("0") == 0


@pytest.mark.parametrize("text", ["", "abc", "1Qi", "1e", "m", "1 Gi", "--1"])
def test_malformed_quantities_raise(text):
    with pytest.raises(ValueError):
        parse_quantity(text)