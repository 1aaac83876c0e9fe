"""
Tests for balanced ternary codes and the curated sigil catalog.
"""

import pytest

from sigil_engine.core.catalog import (
    CATALOG,
    balanced_ternary_to_decimal,
    decimal_to_balanced_ternary,
    filter_by_category,
    get_entry_by_decimal,
    get_entry_by_ternary,
    search_catalog,
    validate_ternary_code
)
from sigil_engine.core.schema import BreathPhase, Category


@pytest.mark.parametrize("code,value", [
    ("00000", 0),
    ("0000T", -1),
    ("00001", 1),
    ("001TT", 5),
    ("TTTTT", -121),
    ("11111", 121),
    ("TT0T1", -110),
])
def test_ternary_decimal_conversion(code, value):
    assert balanced_ternary_to_decimal(code) == value
    assert decimal_to_balanced_ternary(value) == code


def test_ternary_codes_are_case_insensitive():
    assert balanced_ternary_to_decimal("tt0t1") == -110


@pytest.mark.parametrize("code", ["", "   ", "0000", "000000", "00200", "ABCDE"])
def test_invalid_ternary_codes(code):
    is_valid, error = validate_ternary_code(code)
    assert not is_valid
    assert error

    with pytest.raises(ValueError):
        balanced_ternary_to_decimal(code)


@pytest.mark.parametrize("value", [-122, 122, 1000])
def test_decimal_out_of_range(value):
    with pytest.raises(ValueError):
        decimal_to_balanced_ternary(value)
    assert get_entry_by_decimal(value) is None


def test_catalog_codes_are_unique_and_valid():
    codes = [entry.ternary_code for entry in CATALOG]
    assert len(codes) == len(set(codes))
    assert all(validate_ternary_code(code)[0] for code in codes)


def test_lookup_by_ternary_and_decimal():
    entry = get_entry_by_ternary("00000")

    assert entry.name == "Still Point"
    assert entry.category == Category.THALAMIC
    assert entry.breath_phase == BreathPhase.PAUSE
    assert entry.decimal_value == 0
    assert get_entry_by_decimal(0) is entry


def test_lookup_misses():
    assert get_entry_by_ternary("0000T") is None
    assert get_entry_by_ternary("bogus") is None
    assert get_entry_by_decimal(-1) is None


def test_search_catalog():
    names = [entry.name for entry in search_catalog("SPIRAL")]
    assert names == ["Spiral Gate"]

    oxytocin = {entry.name for entry in search_catalog("oxytocin")}
    assert oxytocin == {"Tide Heart", "Mirror Lake"}

    assert search_catalog("") == []
    assert search_catalog("nothing matches this") == []


def test_filter_by_category():
    cortical = filter_by_category(Category.CORTICAL)

    assert len(cortical) == 4
    assert all(entry.category == Category.CORTICAL for entry in cortical)
    assert len(filter_by_category("limbic")) == 3
    assert len(filter_by_category(None)) == len(CATALOG)


def test_entry_text_feeds_encoder():
    entry = get_entry_by_ternary("TTTTT")
    text = entry.as_text()

    assert entry.name in text
    assert entry.phrase in text


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
