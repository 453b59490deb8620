"""Tests for composite paths."""

import math

import pytest

from diagramcore.geometry.arc import EllipticalArc
from diagramcore.geometry.bezier import CubicBezier, QuadBezier
from diagramcore.geometry.path import PathCurve
from diagramcore.geometry.primitives import SegmentCurve


@pytest.fixture
def tent():
    """Polyline (0,0) -> (2,2) -> (4,0)."""
    return PathCurve.from_points([(0, 0), (2, 2), (4, 0)])


class TestPathConstruction:
    """Tests for building paths."""

    def test_from_points(self, tent):
        """Test that each pair of points becomes a segment."""
        assert len(tent.segments) == 2
        assert (tent.min_t, tent.max_t) == (0.0, 2.0)
        assert tent.location(1.5) == pytest.approx((3.0, 1.0))

    def test_closed_polyline(self):
        """Test that closing adds a segment back to the start."""
        square = PathCurve.from_points([(0, 0), (1, 0), (1, 1), (0, 1)], closed=True)

        assert len(square.segments) == 4
        assert square.end == pytest.approx((0.0, 0.0))

    def test_segments_keep_their_kind(self):
        """Test that mixed segment kinds are kept."""
        path = PathCurve([SegmentCurve((0, 0), (1, 0)), QuadBezier((1, 0), (2, 1), (3, 0))])

        assert path.location(1.5) == pytest.approx((2.0, 0.5))

    def test_empty_rejected(self):
        """Test that a path needs a segment."""
        with pytest.raises(ValueError):
            PathCurve([])

    def test_non_unit_domain_rejected(self):
        """Test that segments must span a unit domain."""
        with pytest.raises(ValueError):
            PathCurve([EllipticalArc.from_center((0, 0), 1, 1, 0, 90)])

    def test_unit_arc_accepted(self):
        """Test that any curve kind with a unit domain can be a segment."""
        arc = EllipticalArc.from_center((0, 0), 1, 1, 44.5, 1)
        path = PathCurve([SegmentCurve((0, 0), arc.start), arc])

        assert path.location(2.0) == pytest.approx(arc.end)

    def test_domain_checked(self, tent):
        """Test that the domain must lie inside the segments."""
        with pytest.raises(ValueError):
            PathCurve(tent.segments, 0.0, 3.0)


class TestSvgPath:
    """Tests for parsing SVG path data."""

    def test_commands(self):
        """Test lines, quadratics, cubics and closing."""
        path = PathCurve.from_svg_path("M 0 0 L 2 0 Q 3 1 2 2 C 1 3 0 3 0 2 Z")

        kinds = [type(s.curve) for s in path.segments]
        assert kinds == [SegmentCurve, QuadBezier, CubicBezier, SegmentCurve]
        assert path.end == pytest.approx((0.0, 0.0))

    def test_implicit_lineto(self):
        """Test that extra pairs after M are lines."""
        path = PathCurve.from_svg_path("M0,0 1,1 2,0")

        assert len(path.segments) == 2
        assert path.location(2.0) == pytest.approx((2.0, 0.0))

    def test_repeated_command(self):
        """Test that a command letter may cover several segments."""
        path = PathCurve.from_svg_path("M0 0 L1 0 2 0 3 0")

        assert len(path.segments) == 3

    def test_closed_at_start_adds_nothing(self):
        """Test that Z at the start point adds no segment."""
        path = PathCurve.from_svg_path("M0 0 L1 0 L0 0 Z")

        assert len(path.segments) == 2

    @pytest.mark.parametrize("d", [
        "L 1 1",
        "M 0 0 A 1 1 0 0 1 2 2",
        "M 0 0 L 1 1 M 2 2 L 3 3",
        "M 0 0 L 1",
        "M 0 0",
        "M 0 0 L 1 1 Z L 2 2",
    ])
    def test_rejected(self, d):
        """Test unsupported or malformed path data."""
        with pytest.raises(ValueError):
            PathCurve.from_svg_path(d)


class TestSegmentLookup:
    """Tests for mapping t to a segment."""

    def test_joints_belong_left(self, tent):
        """Test that integer t values map to the segment on their left."""
        assert tent.segment_no(0.0) == 0
        assert tent.segment_no(0.5) == 0
        assert tent.segment_no(1.0) == 0
        assert tent.segment_no(1.5) == 1
        assert tent.segment_no(2.0) == 1

    def test_location_at_joint(self, tent):
        """Test that both neighbours agree at a joint."""
        assert tent.location(1.0) == pytest.approx((2.0, 2.0))


class TestPathGeometry:
    """Tests for the curve interface on paths."""

    def test_bounds(self, tent):
        """Test the union of segment bounds."""
        assert tent.bounds() == pytest.approx([0.0, 0.0, 4.0, 2.0])

    def test_linear_bounds(self, tent):
        """Test bounds along a direction."""
        assert tent.linear_bounds(0.0, 1.0) == pytest.approx((0.0, 2.0))

    def test_distance(self, tent):
        """Test that the nearest segment wins."""
        cd = tent.distance((3, 3))

        assert cd.distance == pytest.approx(math.sqrt(2))
        assert cd.point == pytest.approx((2.0, 2.0))

    def test_distance_second_segment(self, tent):
        """Test t on the second segment."""
        cd = tent.distance((4, 2))

        assert cd.t == pytest.approx(1.5)

    def test_seg_intersections(self, tent):
        """Test one crossing per segment."""
        assert tent.seg_intersections(((-1, 1), (5, 1))) == pytest.approx([0.5, 1.5])

    def test_joint_crossing_reported_once(self, tent):
        """Test that a crossing at a joint is not duplicated."""
        assert tent.seg_intersections(((2, -1), (2, 5))) == pytest.approx([1.0])

    def test_line_intersections(self, tent):
        """Test crossings with a line beyond its defining points."""
        assert tent.line_intersections(((0, 1), (1, 1))) == pytest.approx([0.5, 1.5])

    def test_subset(self, tent):
        """Test a subset spanning a joint."""
        piece = tent.subset(0.5, 1.5)

        assert piece.start == pytest.approx((1.0, 1.0))
        assert piece.end == pytest.approx((3.0, 1.0))
        assert piece.bounds() == pytest.approx([1.0, 1.0, 3.0, 2.0])

    def test_subset_within_segment(self, tent):
        """Test that a subset inside one segment is a single piece."""
        piece = tent.subset(1.25, 1.75)

        assert not isinstance(piece, PathCurve)
        assert (piece.min_t, piece.max_t) == (1.25, 1.75)
        assert piece.location(1.5) == pytest.approx((3.0, 1.0))

    def test_subset_from_joint(self, tent):
        """Test that a subset starting at a joint skips the left segment."""
        piece = tent.subset(1.0, 1.5)

        assert piece.start == pytest.approx((2.0, 2.0))
        assert list(tent.pieces(1.0, 1.5))[0].min_t == 1.0

    def test_subdivide_into_segments(self, tent):
        """Test that short paths split into their segments."""
        pieces = tent.subdivide()

        assert [(p.min_t, p.max_t) for p in pieces] == [(0.0, 1.0), (1.0, 2.0)]

    def test_subdivide_long_path(self):
        """Test that long paths are bisected at a joint."""
        path = PathCurve.from_points([(i, i % 2) for i in range(21)])
        halves = path.subdivide()

        assert [(h.min_t, h.max_t) for h in halves] == [(0.0, 10.0), (10.0, 20.0)]

    def test_derivative_curve(self, tent):
        """Test the derivative path."""
        d = tent.derivative_curve()

        assert d.location(0.5) == pytest.approx((2.0, 2.0))
        assert d.location(1.5) == pytest.approx((2.0, -2.0))

    def test_length(self, tent):
        """Test that lengths add up."""
        assert tent.length().value == pytest.approx(4 * math.sqrt(2))

    def test_area(self, tent):
        """Test the integral of y dx."""
        assert tent.area() == pytest.approx(4.0)

    def test_closed_area(self):
        """Test that a counterclockwise square has negated area."""
        square = PathCurve.from_points([(0, 0), (1, 0), (1, 1), (0, 1)], closed=True)

        assert square.area() == pytest.approx(-1.0)

    def test_transformed(self, tent):
        """Test that transforms apply to every segment."""
        moved = tent.transformed([[1, 0, 1], [0, -1, 0]])

        assert moved.location(1.0) == pytest.approx((3.0, -2.0))

    def test_nearest(self):
        """Test refinement on a path with a curved segment."""
        path = PathCurve([SegmentCurve((0, 0), (1, 0)), CubicBezier((1, 0), (2, 2), (3, -2), (4, 0))])
        p = (2.0, 1.5)
        brute = min(math.dist(p, path.location(i / 10000)) for i in range(20001))

        cd = path.nearest(p, 1e-9, 10000)
        assert cd.distance == pytest.approx(brute, abs=1e-6)
