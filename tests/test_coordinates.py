import pytest

from georesolve.parse.coordinates import parse_coordinate
from georesolve.storage.models import Coordinate


@pytest.mark.parametrize(
    "text, expected",
    [
        ("52.52, 13.405", Coordinate(52.52, 13.405)),
        ("52.52,13.405", Coordinate(52.52, 13.405)),
        ("  52.52  ,  13.405  ", Coordinate(52.52, 13.405)),
        ("-33.8688, 151.2093", Coordinate(-33.8688, 151.2093)),
        ("+90,-180", Coordinate(90.0, -180.0)),
        ("0,0", Coordinate(0.0, 0.0)),
    ],
)
def test_parses_literal_pairs(text, expected):
    assert parse_coordinate(text) == expected


@pytest.mark.parametrize(
    "text",
    [None, "", "   ", "invalid", "100, 200", "90.1, 0", "0, 180.5", "52.52", "52.52,13.4,1", "Berlin, Germany", "1e3,2", "52.,13"],
)
def test_rejects_non_coordinates(text):
    assert parse_coordinate(text) is None


def test_coordinate_enforces_bounds():
    with pytest.raises(ValueError):
        Coordinate(91.0, 0.0)
    with pytest.raises(ValueError):
        Coordinate(0.0, float("nan"))
