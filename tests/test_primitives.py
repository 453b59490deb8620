"""Tests for point and segment curves."""

import math

import pytest

from diagramcore.geometry.primitives import PointCurve, SegmentCurve


class TestPointCurve:
    """Tests for the single-point curve."""

    def test_domain(self):
        """Test the one-value domain."""
        c = PointCurve((1, 2), t=3.0)

        assert c.min_t == c.max_t == 3.0
        assert c.location(3.0) == (1.0, 2.0)
        assert c.bounds() == [1.0, 2.0, 1.0, 2.0]

    def test_distance_is_exact(self):
        """Test distance to the point."""
        cd = PointCurve((0, 0)).distance((3, 4))

        assert cd.distance == 5.0
        assert cd.min_distance == 5.0

    def test_intersections(self):
        """Test that the point is reported only when it lies on the segment."""
        c = PointCurve((1, 1), t=2.0)

        assert c.seg_intersections(((0, 0), (2, 2))) == [2.0]
        assert c.seg_intersections(((0, 0), (2, 0))) == []
        assert c.line_intersections(((5, 5), (6, 6))) == [2.0]

    def test_subdivide_returns_self(self):
        """Test that a zero-width curve cannot be split."""
        c = PointCurve((1, 1))

        assert c.subdivide() == [c]
        assert c.length().value == 0.0


class TestSegmentCurve:
    """Tests for straight segments."""

    def test_location_and_derivative(self):
        """Test the linear parameterization."""
        s = SegmentCurve((0, 0), (2, 4))

        assert s.location(0.5) == (1.0, 2.0)
        assert s.derivative(0.1) == (2.0, 4.0)
        assert s.derivative_curve().location(0.7) == (2.0, 4.0)

    def test_subset_keeps_parameterization(self):
        """Test that a subset traces the same points at the same t."""
        s = SegmentCurve((0, 0), (2, 0)).subset(0.25, 0.75)

        assert s.start == (0.5, 0.0)
        assert s.end == (1.5, 0.0)
        assert s.location(0.5) == (1.0, 0.0)

    def test_distance_maps_into_domain(self):
        """Test that the nearest t is in the curve's own domain."""
        s = SegmentCurve((0, 0), (2, 0), 0.25, 0.75)

        assert s.distance((0, 1)).t == pytest.approx(0.25)
        assert s.distance((1.2, 1)).t == pytest.approx(0.6)
        assert s.distance((1.2, 1)).distance == pytest.approx(1.0)

    def test_intersections(self):
        """Test crossings with segments and lines."""
        s = SegmentCurve((0, 0), (2, 2))

        assert s.seg_intersections(((0, 2), (2, 0))) == pytest.approx([0.5])
        assert s.seg_intersections(((0, 2), (0.5, 1.5))) == []
        assert s.line_intersections(((0, 2), (0.5, 1.5))) == pytest.approx([0.5])
        assert s.line_intersections(((0, 1), (1, 2))) == []

    def test_line_must_cross_segment(self):
        """Test that a line crossing past the segment's ends is ignored."""
        s = SegmentCurve((0, 0), (1, 0))

        assert s.line_intersections(((3, -1), (3, 1))) == []

    def test_exact_length_and_area(self):
        """Test closed-form length and area."""
        s = SegmentCurve((0, 0), (2, 2))

        assert s.length().value == pytest.approx(2 * math.sqrt(2))
        assert s.length().is_exact()
        assert s.area() == pytest.approx(2.0)

    def test_transformed(self):
        """Test scaling a segment."""
        s = SegmentCurve((1, 1), (2, 3)).transformed([[2, 0, 0], [0, 2, 0]])

        assert s.end == (4.0, 6.0)

    def test_inverted_domain(self):
        """Test that t0 > t1 is rejected."""
        with pytest.raises(ValueError):
            SegmentCurve((0, 0), (1, 1), 1.0, 0.0)
