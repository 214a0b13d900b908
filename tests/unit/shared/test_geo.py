import math

import pytest

from shared.domain.geo import (
    Coordinate,
    distance_between,
    estimate_eta_minutes,
    format_distance_miles,
    haversine_distance_miles,
    miles_to_meters,
)

pytestmark = pytest.mark.unit


class TestHaversine:
    def test_same_point_is_zero(self):
        point = Coordinate(39.19, -96.58)
        assert haversine_distance_miles(point, point) == 0

    def test_one_degree_of_latitude(self):
        miles = haversine_distance_miles(Coordinate(0, 0), Coordinate(1, 0))
        assert miles == pytest.approx(69.09, abs=0.05)

    def test_is_symmetric(self):
        a = Coordinate(39.1905, -96.5815)
        b = Coordinate(39.2010, -96.5885)
        assert haversine_distance_miles(a, b) == pytest.approx(
            haversine_distance_miles(b, a)
        )

    def test_campus_hop(self):
        library = Coordinate(39.1905, -96.5815)
        dorm = Coordinate(39.2010, -96.5885)
        assert haversine_distance_miles(library, dorm) == pytest.approx(0.82, abs=0.02)


class TestDistanceBetween:
    def test_unknown_endpoint_is_none(self):
        assert distance_between(None, Coordinate(1, 1)) is None
        assert distance_between(Coordinate(1, 1), None) is None

    def test_maybe_requires_both_components(self):
        assert Coordinate.maybe(None, 1.0) is None
        assert Coordinate.maybe(1.0, None) is None
        assert Coordinate.maybe("1.5", 2) == Coordinate(1.5, 2.0)


class TestFormatDistance:
    @pytest.mark.parametrize(
        "miles,label",
        [
            (None, "N/A"),
            (math.nan, "N/A"),
            (0.0, "<0.1 mi"),
            (0.09, "<0.1 mi"),
            (0.1, "0.1 mi"),
            (2.44, "2.4 mi"),
            (9.96, "10.0 mi"),
            (10, "10 mi"),
            (12.6, "13 mi"),
        ],
    )
    def test_labels(self, miles, label):
        assert format_distance_miles(miles) == label


class TestEta:
    def test_unknown_or_zero_distance_is_zero(self):
        assert estimate_eta_minutes(None) == 0
        assert estimate_eta_minutes(math.nan) == 0
        assert estimate_eta_minutes(0) == 0
        assert estimate_eta_minutes(-1) == 0

    def test_short_trip_is_at_least_one_minute(self):
        assert estimate_eta_minutes(0.01) == 1

    def test_rounds_up(self):
        # 3 miles at 6 mph is exactly 30 minutes; a hair more rounds up.
        assert estimate_eta_minutes(3, mph=6) == 30
        assert estimate_eta_minutes(3.01, mph=6) == 31

    def test_custom_speed(self):
        assert estimate_eta_minutes(3, mph=3) == 60


def test_miles_to_meters():
    assert miles_to_meters(1) == pytest.approx(1609.344)
    assert miles_to_meters(0.01) == pytest.approx(16.09344)
