import pytest

from complaint_desk.utils.normalization import (
    normalize_local_number,
    normalize_text,
    parse_bool,
    to_international_number,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("9545445133", "9545445133"),
        ("+91 95454 45133", "9545445133"),
        ("919545445133", "9545445133"),
        ("(954) 544-5133", "9545445133"),
        ("0019545445133", "9545445133"),
        ("12345", "12345"),
        ("", ""),
        (None, ""),
        ("no digits", ""),
    ],
)
def test_normalize_local_number(raw, expected):
    assert normalize_local_number(raw) == expected


def test_to_international_number_prefixes_country_code():
    assert to_international_number("+91 95454 45133") == "919545445133"
    assert to_international_number("12345") == ""


@pytest.mark.parametrize(
    "value, expected",
    [
        (True, True),
        ("true", True),
        (" YES ", True),
        ("1", True),
        (1, True),
        ("false", False),
        ("no", False),
        ("0", False),
        (0, False),
    ],
)
def test_parse_bool_accepts_form_values(value, expected):
    assert parse_bool(value) is expected


def test_parse_bool_falls_back_to_default():
    assert parse_bool("maybe", default=True) is True
    assert parse_bool(None) is False
    assert parse_bool(7, default=True) is True


def test_normalize_text_collapses_whitespace():
    assert normalize_text("  Viman   Nagar \n") == "Viman Nagar"
    assert normalize_text(None) == ""
