import math

import pytest

from apostles.core.errors import DegenerateZone, InvalidScale
from apostles.core.geometry import (
    Boundary,
    BoundaryKind,
    Corner,
    default_midpoint,
    distance_to_boundary,
    parse_range,
    special_zone_bounds,
)
from apostles.core.models import Midpoint, ScaleRange
from apostles.core.schema import Axis


def test_parse_range_accepts_whitelisted_scales():
    sat = parse_range("1-5", Axis.SATISFACTION)
    assert (sat.min, sat.max) == (1, 5)
    assert sat.span == 4
    assert sat.identifier == "1-5"

    loy = parse_range("0-10", Axis.LOYALTY)
    assert (loy.min, loy.max) == (0, 10)


def test_parse_range_tolerates_whitespace():
    assert parse_range(" 1 - 7 ", Axis.SATISFACTION).identifier == "1-7"


def test_parse_range_rejects_scale_not_accepted_for_axis():
    # 0-10 is a loyalty (recommendation) scale only
    with pytest.raises(InvalidScale, match="not accepted for satisfaction"):
        parse_range("0-10", Axis.SATISFACTION)

    with pytest.raises(InvalidScale, match="not accepted"):
        parse_range("1-3", Axis.LOYALTY)


def test_parse_range_rejects_malformed_identifier():
    with pytest.raises(InvalidScale, match="Malformed"):
        parse_range("five", Axis.LOYALTY)

    with pytest.raises(InvalidScale):
        parse_range(5, Axis.LOYALTY)


def test_default_midpoint():
    assert default_midpoint(ScaleRange(min=1, max=5), ScaleRange(min=1, max=5)) == Midpoint(sat=3, loy=3)
    assert default_midpoint(ScaleRange(min=1, max=7), ScaleRange(min=0, max=10)) == Midpoint(sat=4, loy=5)
    assert default_midpoint(ScaleRange(min=1, max=3), ScaleRange(min=1, max=10)) == Midpoint(sat=2, loy=5)


def test_special_zone_bounds_covers_outermost_positions():
    scale = ScaleRange(min=1, max=5)

    assert special_zone_bounds(scale, 1, Corner.HIGH) == (5.0, 5.0)
    assert special_zone_bounds(scale, 2, Corner.HIGH) == (4.0, 5.0)
    assert special_zone_bounds(scale, 1, Corner.LOW) == (1.0, 1.0)
    assert special_zone_bounds(scale, 2, Corner.LOW) == (1.0, 2.0)


def test_special_zone_bounds_size_zero_is_no_zone():
    assert special_zone_bounds(ScaleRange(min=1, max=5), 0, Corner.HIGH) is None


def test_special_zone_bounds_rejects_degenerate_and_negative_sizes():
    with pytest.raises(DegenerateZone):
        special_zone_bounds(ScaleRange(min=1, max=5), 5, Corner.HIGH)

    with pytest.raises(ValueError, match="negative"):
        special_zone_bounds(ScaleRange(min=1, max=5), -1, Corner.LOW)


def test_line_distance():
    line = Boundary.satisfaction_line(3.0, side=1)
    assert distance_to_boundary(4, 5, line) == pytest.approx(1.0)
    assert distance_to_boundary(3, 5, line) == pytest.approx(0.0)
    # Across the line
    assert distance_to_boundary(2, 5, line) == pytest.approx(-1.0)

    below = Boundary.loyalty_line(3.0, side=-1)
    assert distance_to_boundary(5, 1, below) == pytest.approx(2.0)


def test_corner_distance_is_chebyshev():
    corner = Boundary.corner(Midpoint(sat=3, loy=3), sat_side=1, loy_side=1)

    assert corner.kind == BoundaryKind.CORNER
    assert distance_to_boundary(3, 3, corner) == pytest.approx(0.0)
    assert distance_to_boundary(4, 3, corner) == pytest.approx(1.0)
    assert distance_to_boundary(5, 4, corner) == pytest.approx(2.0)
    assert distance_to_boundary(2, 5, corner) < 0


def test_zone_distance_counts_units_to_enter():
    apostles = Boundary.zone(5.0, 5.0, sat_side=-1, loy_side=-1)

    assert distance_to_boundary(4, 4, apostles) == pytest.approx(1.0)
    assert distance_to_boundary(4, 5, apostles) == pytest.approx(1.0)
    assert distance_to_boundary(3, 3, apostles) == pytest.approx(2.0)
    # Already inside
    assert distance_to_boundary(5, 5, apostles) < 0

    terrorists = Boundary.zone(1.0, 1.0, sat_side=1, loy_side=1)
    assert distance_to_boundary(2, 2, terrorists) == pytest.approx(1.0)
    assert distance_to_boundary(2, 1, terrorists) == pytest.approx(1.0)


def test_boundary_without_axes_is_rejected():
    with pytest.raises(ValueError):
        distance_to_boundary(3, 3, Boundary(BoundaryKind.LINE))


def test_nan_coordinates_do_not_raise():
    line = Boundary.satisfaction_line(3.0, side=1)
    assert math.isnan(distance_to_boundary(float("nan"), 3, line))
