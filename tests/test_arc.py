"""Tests for elliptical arcs and ellipse fitting."""

import math

import pytest

from diagramcore.errors import UnsolvableError
from diagramcore.geometry.arc import (
    DEGREE,
    EllipticalArc,
    arc_through,
    ellipse_distance,
    ellipse_through,
)
from diagramcore.geometry.base import BoundedCurve


def unit_circle(start=0.0, extent=360.0):
    return EllipticalArc.from_center((0, 0), 1, 1, start, extent)


class TestEllipticalArcShape:
    """Tests for arc geometry."""

    def test_location(self):
        """Test that t is the angle in degrees, counterclockwise from +x."""
        c = unit_circle()

        assert c.location(0) == pytest.approx((1.0, 0.0))
        assert c.location(90) == pytest.approx((0.0, 1.0))
        assert c.location(180) == pytest.approx((-1.0, 0.0))

    def test_derivative_per_degree(self):
        """Test that the derivative is taken with respect to degrees."""
        c = EllipticalArc.from_center((0, 0), 2, 1)

        assert c.derivative(0) == pytest.approx((0.0, DEGREE))
        assert c.derivative(90) == pytest.approx((-2 * DEGREE, 0.0))

    def test_derivative_curve(self):
        """Test that the derivative curve traces the derivative over the same domain."""
        c = EllipticalArc.from_center((3, -1), 2, 0.5, 30, 120)
        d = c.derivative_curve()

        assert d.min_t == pytest.approx(c.min_t)
        assert d.max_t == pytest.approx(c.max_t)
        for t in (30, 75, 150):
            assert d.location(t) == pytest.approx(c.derivative(t))

    def test_bounds_quarter(self):
        """Test bounds of a quarter arc."""
        assert unit_circle(0, 90).bounds() == pytest.approx([0.0, 0.0, 1.0, 1.0])

    def test_bounds_full(self):
        """Test bounds of a whole ellipse."""
        e = EllipticalArc.from_center((1, 1), 2, 3)

        assert e.bounds() == pytest.approx([-1.0, -2.0, 3.0, 4.0])

    def test_linear_bounds_full(self):
        """Test linear bounds of a whole circle off the origin."""
        c = EllipticalArc.from_center((2, 3), 1, 1)

        assert c.linear_bounds(1.0, 0.0) == pytest.approx((1.0, 3.0))

    def test_linear_bounds_quarter(self):
        """Test that the peak counts only when it lies inside the arc."""
        lo, hi = unit_circle(0, 90).linear_bounds(1.0, 1.0)

        assert lo == pytest.approx(1.0)
        assert hi == pytest.approx(math.sqrt(2))

    def test_negative_extent(self):
        """Test that clockwise extents are rejected."""
        with pytest.raises(ValueError):
            EllipticalArc(0, 0, 1, 1, 0, -90)

    def test_full_circle_area(self):
        """Test that a counterclockwise circle has negated area."""
        assert unit_circle().area() == pytest.approx(-math.pi)

    def test_area_matches_numeric(self):
        """Test the closed-form area of a partial ellipse arc."""
        e = EllipticalArc.from_center((1, 2), 3, 0.5, 20, 200)

        assert e.area() == pytest.approx(BoundedCurve.area(e), abs=1e-9)

    def test_circle_length(self):
        """Test that circle length is exact."""
        est = EllipticalArc.from_center((5, 5), 2, 2, 0, 90).length()

        assert est.value == pytest.approx(math.pi)
        assert est.is_exact()

    def test_ellipse_length_bracket(self):
        """Test that ellipse length is bracketed by the two circles."""
        e = EllipticalArc.from_center((0, 0), 2, 1)
        est = e.length()

        assert est.lower_bound == pytest.approx(2 * math.pi)
        assert est.upper_bound == pytest.approx(4 * math.pi)
        assert est.contains(BoundedCurve.length(e).value)

    def test_transformed(self):
        """Test scale and translate transforms."""
        c = unit_circle().transformed([[2, 0, 1], [0, 3, 0]])

        assert c.center == pytest.approx((1.0, 0.0))
        assert (c.rx, c.ry) == pytest.approx((2.0, 3.0))

    def test_rotation_rejected(self):
        """Test that rotations cannot keep the ellipse axis aligned."""
        with pytest.raises(UnsolvableError):
            unit_circle().transformed([[0, -1, 0], [1, 0, 0]])


class TestEllipticalArcDistance:
    """Tests for nearest points on arcs."""

    def test_circle_is_exact(self):
        """Test the exact distance to a circle."""
        cd = EllipticalArc.from_center((0, 0), 2, 2).distance((3, 4))

        assert cd.distance == pytest.approx(3.0)
        assert cd.point == pytest.approx((1.2, 1.6))
        assert cd.min_distance == pytest.approx(cd.distance)

    def test_arc_endpoint(self):
        """Test a point whose nearest circle point is outside the arc."""
        cd = unit_circle(0, 90).distance((-1, -1))

        assert cd.distance == pytest.approx(math.sqrt(5))
        assert cd.t in (0.0, 90.0)

    def test_ellipse_bracket(self):
        """Test that general ellipses bracket the true distance."""
        e = EllipticalArc.from_center((0, 0), 2, 1)
        p = (0.5, 3.0)
        brute = min(math.dist(p, e.location(i * 0.01)) for i in range(36001))

        cd = e.distance(p)
        assert cd.min_distance <= brute + 1e-9
        assert cd.distance >= brute - 1e-7

    def test_ellipse_nearest(self):
        """Test refinement on a general ellipse."""
        e = EllipticalArc.from_center((0, 0), 2, 1)
        p = (0.5, 3.0)
        brute = min(math.dist(p, e.location(i * 0.01)) for i in range(36001))

        cd = e.nearest(p, 1e-9, 10000)
        assert cd.distance == pytest.approx(brute, abs=1e-6)

    def test_flat_ellipse(self):
        """Test a zero-height ellipse, which traces a segment twice."""
        e = EllipticalArc(0, 0, 2, 0)
        cd = ellipse_distance((0.5, 1.0), e)

        assert cd.point == pytest.approx((0.5, 0.0))
        assert cd.distance == pytest.approx(1.0)
        assert cd.min_distance == cd.distance

    def test_point_ellipse(self):
        """Test a zero-size ellipse."""
        cd = EllipticalArc(1, 1, 0, 0).distance((4, 5))

        assert cd.distance == pytest.approx(5.0)


class TestEllipticalArcIntersections:
    """Tests for crossings with segments and lines."""

    def test_horizontal_segment(self):
        """Test a diameter crossing the unit circle."""
        assert unit_circle().seg_intersections(((-2, 0), (2, 0))) == pytest.approx([0.0, 180.0])

    def test_vertical_segment(self):
        """Test a steep segment, solved with the axes swapped."""
        ts = unit_circle().seg_intersections(((0.5, -2), (0.5, 2)))

        assert ts == pytest.approx([60.0, 300.0])

    def test_off_center(self):
        """Test a circle away from the origin."""
        c = EllipticalArc.from_center((2, 3), 1, 1)
        ts = c.line_intersections(((0, 3), (1, 3)))

        assert sorted(c.location(t)[0] for t in ts) == pytest.approx([1.0, 3.0])

    def test_arc_domain(self):
        """Test that crossings outside the arc are dropped."""
        assert unit_circle(0, 90).seg_intersections(((-2, 0.5), (2, 0.5))) == pytest.approx([30.0])

    def test_segment_extent(self):
        """Test that a segment ending inside the circle crosses once."""
        assert unit_circle().seg_intersections(((0, 0), (2, 0))) == pytest.approx([0.0])


class TestEllipseFitting:
    """Tests for ellipses and arcs through points."""

    def test_one_point(self):
        """Test that one point gives a zero-size ellipse."""
        e = ellipse_through([(3, 4)])

        assert e.center == (3.0, 4.0)
        assert e.rx == 0.0

    def test_two_points(self):
        """Test the circle with a given diameter."""
        e = ellipse_through([(0, 0), (4, 0)])

        assert e.center == pytest.approx((2.0, 0.0))
        assert e.rx == pytest.approx(2.0)
        assert e.ry == pytest.approx(2.0)

    def test_three_points(self):
        """Test the circle through three points."""
        e = ellipse_through([(2, 1), (1, 2), (0, 1)])

        assert e.center == pytest.approx((1.0, 1.0))
        assert e.rx == pytest.approx(1.0)

    def test_four_points(self):
        """Test the axis-aligned ellipse through four points."""
        e = ellipse_through([(2, 0), (-2, 0), (0, 1), (0, -1)])

        assert e.center == pytest.approx((0.0, 0.0), abs=1e-12)
        assert e.rx == pytest.approx(2.0)
        assert e.ry == pytest.approx(1.0)

    def test_collinear(self):
        """Test that collinear points have no circle."""
        with pytest.raises(UnsolvableError):
            ellipse_through([(0, 0), (1, 1), (2, 2)])

    def test_too_many_points(self):
        """Test that five points are rejected."""
        with pytest.raises(ValueError):
            ellipse_through([(0, 0), (1, 0), (0, 1), (1, 1), (2, 2)])

    def test_arc_through_counterclockwise(self):
        """Test an arc through points running counterclockwise."""
        arc = arc_through([(1, 0), (0, 1), (-1, 0)])

        assert arc.min_t == pytest.approx(0.0, abs=1e-9)
        assert arc.max_t == pytest.approx(180.0)

    def test_arc_through_clockwise(self):
        """Test that clockwise points give the same arc, starting at the last point."""
        arc = arc_through([(-1, 0), (0, 1), (1, 0)])

        assert arc.start == pytest.approx((1.0, 0.0), abs=1e-9)
        assert arc.end == pytest.approx((-1.0, 0.0), abs=1e-9)
        assert arc.extent == pytest.approx(180.0)

    def test_arc_through_long_way(self):
        """Test that the middle point picks the long way round."""
        arc = arc_through([(1, 0), (0, -1), (0, 1)])

        assert arc.extent == pytest.approx(270.0)
        assert arc.start == pytest.approx((0.0, 1.0), abs=1e-9)
        assert arc.end == pytest.approx((1.0, 0.0), abs=1e-9)

    def test_arc_through_closed(self):
        """Test that closed arcs cover the whole ellipse."""
        arc = arc_through([(1, 0), (0, 1), (-1, 0)], closed=True)

        assert arc.is_closed()
        assert arc.start == pytest.approx((1.0, 0.0), abs=1e-9)
