"""
Degenerate and straight curves: a single point and a line segment.
"""

from diagramcore.geometry.base import BoundedCurve
from diagramcore.geometry.geom import (
    bbox_of_points,
    distance,
    line_intersection_t,
    point_line_distance,
    point_segment_distance,
    segment_intersection_t,
    sub,
    transform_point,
)
from diagramcore.models import CurveDistanceRange, NumericEstimate


class PointCurve(BoundedCurve):
    """A curve that stays at one point over the one-value domain [t, t]."""

    def __init__(self, point, t=0.0):
        self.point = (float(point[0]), float(point[1]))
        self.t = float(t)

    @property
    def min_t(self):
        return self.t

    @property
    def max_t(self):
        return self.t

    def location(self, t):
        return self.point

    def derivative(self, t):
        return (0.0, 0.0)

    def derivative_curve(self):
        return PointCurve((0.0, 0.0), self.t)

    def bounds(self):
        x, y = self.point
        return [x, y, x, y]

    def linear_bounds(self, xc, yc):
        v = xc * self.point[0] + yc * self.point[1]
        return (v, v)

    def distance(self, p):
        return CurveDistanceRange.from_distance(self.distance_at(p, self.t))

    def seg_intersections(self, segment):
        if point_segment_distance(self.point, segment[0], segment[1]).distance == 0:
            return [self.t]
        return []

    def line_intersections(self, line):
        if point_line_distance(self.point, line[0], line[1]) == 0:
            return [self.t]
        return []

    def subset(self, t0, t1):
        return self

    def transformed(self, xform):
        return PointCurve(transform_point(xform, self.point), self.t)

    def length(self, precision=None):
        return NumericEstimate.exact(0.0)

    def area(self):
        return 0.0


class SegmentCurve(BoundedCurve):
    """
    The line p0 + t * (p1 - p0) restricted to [t0, t1].

    p0 and p1 are the locations at t = 0 and t = 1 even when the domain is
    a subset of [0, 1].
    """

    def __init__(self, p0, p1, t0=0.0, t1=1.0):
        if t0 > t1:
            raise ValueError(f"Segment domain is inverted: [{t0}, {t1}]")
        self.p0 = (float(p0[0]), float(p0[1]))
        self.p1 = (float(p1[0]), float(p1[1]))
        self.t0 = float(t0)
        self.t1 = float(t1)

    @property
    def min_t(self):
        return self.t0

    @property
    def max_t(self):
        return self.t1

    def location(self, t):
        return (self.p0[0] + t * (self.p1[0] - self.p0[0]),
                self.p0[1] + t * (self.p1[1] - self.p0[1]))

    def derivative(self, t):
        return sub(self.p1, self.p0)

    def derivative_curve(self):
        d = sub(self.p1, self.p0)
        return SegmentCurve(d, d, self.t0, self.t1)

    def bounds(self):
        return bbox_of_points([self.start, self.end])

    def linear_bounds(self, xc, yc):
        v0 = xc * self.start[0] + yc * self.start[1]
        v1 = xc * self.end[0] + yc * self.end[1]
        return (min(v0, v1), max(v0, v1))

    def distance(self, p):
        res = point_segment_distance(p, self.start, self.end)
        t = self.t0 + res.t * (self.t1 - self.t0)
        return CurveDistanceRange(t=t, point=res.point, distance=res.distance,
                                  min_distance=res.distance)

    def _domain_t(self, s):
        return self.t0 + s * (self.t1 - self.t0)

    def seg_intersections(self, segment):
        s = segment_intersection_t(self.start, self.end, segment[0], segment[1])
        return [] if s is None else [self._domain_t(s)]

    def line_intersections(self, line):
        s = line_intersection_t(self.start, self.end, line[0], line[1])
        if s is None or s < 0 or s > 1:
            return []
        return [self._domain_t(s)]

    def subset(self, t0, t1):
        return SegmentCurve(self.p0, self.p1, t0, t1)

    def transformed(self, xform):
        return SegmentCurve(transform_point(xform, self.p0), transform_point(xform, self.p1),
                            self.t0, self.t1)

    def length(self, precision=None):
        return NumericEstimate.exact(distance(self.start, self.end))

    def area(self):
        (x0, y0), (x1, y1) = self.start, self.end
        return (y0 + y1) / 2 * (x1 - x0)

    def __repr__(self):
        return f"SegmentCurve({self.p0}, {self.p1}, t=[{self.t0:g}, {self.t1:g}])"
