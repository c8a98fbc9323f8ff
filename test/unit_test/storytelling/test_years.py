import pytest

from heritage_whisper.storytelling.years import (
    age_range_label,
    decade_display_name,
    decade_label,
    decade_of,
    lived_decades,
    normalize_year,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (1955, 1955),
        ("1955", 1955),
        ("19550", 1955),
        (19550, 1955),
        ("195500", 1955),
        ("2020", 2020),
        ("1955-06-01", 1955),
        (1899, None),
        (2101, None),
        ("abc", None),
        ("", None),
        (0, None),
        (None, None),
    ],
)
def test_normalize_year(value, expected):
    assert normalize_year(value) == expected


def test_decade_helpers():
    assert decade_of(1957) == 1950
    assert decade_label(1950) == "1950s"
    assert decade_display_name(1950) == "THE 1950s"
    assert age_range_label(1960, 1955) == "Ages 5-14"
    assert age_range_label(1950, 1955) == "Ages 0-9"
    assert lived_decades(1948, 1972) == [1940, 1950, 1960, 1970]
