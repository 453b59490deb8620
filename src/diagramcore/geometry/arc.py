"""
Axis-aligned ellipses and elliptical arcs.

An EllipticalArc is described like a bounding-box arc: the box corner
(x, y), its width and height, and a start angle and counterclockwise
extent in degrees. t is the angle itself, with 0 degrees pointing east
(+x) and 90 degrees pointing toward +y:

    location(t) = (x + w/2 (1 + cos t), y + h/2 (1 + sin t))

Ellipses are fitted to 1-4 points through the conic
x^2 + A y^2 + B x + C y + D = 0, which has no xy term and so is always
axis aligned.
"""

import math

import numpy as np

from diagramcore.errors import UnsolvableError
from diagramcore.geometry.base import BoundedCurve
from diagramcore.geometry.geom import (
    as_affine,
    bbox_distance,
    bbox_of_points,
    degrees_in_range,
    distance,
    normalize_degrees,
    point_segment_distance,
    transform_point,
)
from diagramcore.geometry.offset import OffsetCurve
from diagramcore.models import CurveDistanceRange, NumericEstimate
from diagramcore.numerics.polynomial import solve

DEGREE = math.pi / 180


class EllipticalArc(BoundedCurve):
    """An arc of an axis-aligned ellipse, parameterized by angle in degrees."""

    def __init__(self, x, y, width, height, start=0.0, extent=360.0):
        if extent < 0:
            raise ValueError(f"Arc extent must be nonnegative, got {extent}")
        self.x = float(x)
        self.y = float(y)
        self.width = float(width)
        self.height = float(height)
        self.start_angle = float(start)
        self.extent = float(extent)

    @classmethod
    def from_center(cls, center, rx, ry, start=0.0, extent=360.0):
        return cls(center[0] - rx, center[1] - ry, 2 * rx, 2 * ry, start, extent)

    @property
    def center(self):
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def rx(self):
        return self.width / 2

    @property
    def ry(self):
        return self.height / 2

    @property
    def min_t(self):
        return self.start_angle

    @property
    def max_t(self):
        return self.start_angle + self.extent

    def is_closed(self):
        return self.extent >= 360

    def _with_domain(self, t0, t1):
        return EllipticalArc(self.x, self.y, self.width, self.height, t0, t1 - t0)

    def location(self, t):
        a = t * DEGREE
        return (self.x + self.width / 2 * (1 + math.cos(a)),
                self.y + self.height / 2 * (1 + math.sin(a)))

    def derivative(self, t):
        a = t * DEGREE
        return (-self.width / 2 * DEGREE * math.sin(a),
                self.height / 2 * DEGREE * math.cos(a))

    def derivative_curve(self):
        """
        The derivative traces another ellipse, a quarter turn ahead.

        The returned curve is that ellipse shifted back by 90 degrees so
        its domain matches this arc's.
        """

        w = self.width * DEGREE
        h = self.height * DEGREE
        rotated = EllipticalArc(-w / 2, -h / 2, w, h, self.start_angle + 90, self.extent)
        return OffsetCurve(rotated, -90)

    def angle_of(self, p):
        """Angle in degrees of the ray from the center through p, with the axes rescaled to a circle."""
        cx, cy = self.center
        return math.degrees(math.atan2((p[1] - cy) / self.ry, (p[0] - cx) / self.rx))

    def bounds(self):
        points = [self.start, self.end]
        for angle in (0, 90, 180, 270):
            if degrees_in_range(angle, self.min_t, self.max_t):
                points.append(self.location(angle))
        return bbox_of_points(points)

    def linear_bounds(self, xc, yc):
        # f(t) = k + a cos t + b sin t
        cx, cy = self.center
        k = xc * cx + yc * cy
        a = xc * self.rx
        b = yc * self.ry
        amplitude = math.hypot(a, b)
        peak = math.degrees(math.atan2(b, a))

        def f(t):
            x, y = self.location(t)
            return xc * x + yc * y

        ends = (f(self.min_t), f(self.max_t))
        hi = k + amplitude if degrees_in_range(peak, self.min_t, self.max_t) else max(ends)
        lo = k - amplitude if degrees_in_range(peak + 180, self.min_t, self.max_t) else min(ends)
        return (lo, hi)

    def distance(self, p):
        """
        Nearest point on the arc, exact for circles and degenerate ellipses.

        For general ellipses the point is the one at the angle of p after
        rescaling the ellipse to a circle, and the lower bound comes from
        the rescaling and the bounding box.
        """
        full = ellipse_distance(p, self)
        nearest = self.distance_at(p, self.min_t).min_with(self.distance_at(p, self.max_t))
        for t in self._equivalent_angles(full.t):
            if degrees_in_range(t, self.min_t, self.max_t):
                t = normalize_degrees(t, self.min_t)
                nearest = nearest.min_with(self.distance_at(p, t))
                break
        lower = max(full.min_distance, bbox_distance(p, self.bounds()))
        return CurveDistanceRange.from_distance(nearest, lower)

    def _equivalent_angles(self, t):
        # A flat ellipse passes each point twice.
        if self.height == 0 and self.width != 0:
            return [t, -t]
        if self.width == 0 and self.height != 0:
            return [t, 180 - t]
        return [t]

    def _conic(self):
        """Coefficients [c, cx, cy, cxx, cyy] of c + cx x + cy y + cxx x^2 + cyy y^2 = 0."""
        cx, cy = self.center
        rxx = 1 / (self.rx * self.rx)
        ryy = 1 / (self.ry * self.ry)
        return [cx * cx * rxx + cy * cy * ryy - 1, -2 * cx * rxx, -2 * cy * ryy, rxx, ryy]

    def _intersections(self, segment, is_line):
        if self.width == 0 or self.height == 0:
            return []
        (x1, y1), (x2, y2) = segment
        sdx = x2 - x1
        sdy = y2 - y1
        if sdx == 0 and sdy == 0:
            return []

        c, cx, cy, cxx, cyy = self._conic()
        swap = abs(sdx) < abs(sdy)
        if swap:
            x1, y1, x2, y2 = y1, x1, y2, x2
            sdx, sdy = sdy, sdx
            cx, cy, cxx, cyy = cy, cx, cyy, cxx

        m = sdy / sdx
        b = y1 - m * x1
        min_x = min(x1, x2)
        max_x = max(x1, x2)

        # Substitute y = m x + b into the conic.
        poly = [c + cy * b + cyy * b * b,
                cx + cy * m + 2 * m * b * cyy,
                cxx + cyy * m * m]

        res = []
        for x in solve(poly):
            if not is_line and (x < min_x or x > max_x):
                continue
            y = m * x + b
            t = self.angle_of((y, x) if swap else (x, y))
            if not degrees_in_range(t, self.min_t, self.max_t):
                continue
            res.append(normalize_degrees(t, self.min_t))
        return sorted(res)

    def seg_intersections(self, segment):
        return self._intersections(segment, False)

    def line_intersections(self, line):
        return self._intersections(line, True)

    def subset(self, t0, t1):
        return self._with_domain(t0, t1)

    def transformed(self, xform):
        """
        Image under a scale-and-translate transform.

        Raises:
            UnsolvableError: if the transform shears or rotates, since the
                image would no longer be axis aligned.
        """
        m = as_affine(xform)
        if m[0, 1] != 0 or m[1, 0] != 0:
            raise UnsolvableError("Elliptical arcs support only scale and translation transforms")
        x, y = transform_point(m, (self.x, self.y))
        return EllipticalArc(x, y, self.width * m[0, 0], self.height * m[1, 1],
                             self.start_angle, self.extent)

    def area(self):
        t0 = self.min_t * DEGREE
        t1 = self.max_t * DEGREE
        rx = self.rx
        ry = self.ry
        cy = self.center[1]

        # Antiderivative of y(t) x'(t) = -rx cy sin t - rx ry sin^2 t
        def e(t):
            return rx * (cy * math.cos(t) - ry * (t - math.sin(t) * math.cos(t)) / 2)

        return e(t1) - e(t0)

    def length(self, precision=None):
        """
        Arc length bracketed by the same arc on circles of each radius.
        """
        len1 = abs(self.width) * self.extent * math.pi / 360
        len2 = abs(self.height) * self.extent * math.pi / 360
        return NumericEstimate(value=(len1 + len2) / 2, lower_bound=min(len1, len2),
                               upper_bound=max(len1, len2))

    def __repr__(self):
        return (f"EllipticalArc(center=({self.center[0]:g}, {self.center[1]:g}), "
                f"r=({self.rx:g}, {self.ry:g}), t=[{self.min_t:g}, {self.max_t:g}])")


def ellipse_distance(p, ellipse):
    """
    Distance from p to the full ellipse containing an arc.

    Exact for circles and flat ellipses. Otherwise space is rescaled so the
    ellipse becomes the unit circle; the point at p's angle in that space
    is returned, and since distances shrink by at most the larger radius
    and at least the smaller one, the unit-circle distance times the
    smaller radius is a lower bound.

    Returns:
        CurveDistanceRange whose t is an angle in degrees, not necessarily
        inside the arc's domain.
    """
    cx, cy = ellipse.center
    rx = ellipse.rx
    ry = ellipse.ry

    if rx == 0 and ry == 0:
        return CurveDistanceRange.from_distance(ellipse.distance_at(p, 0.0))

    if rx == 0 or ry == 0:
        # A flat ellipse is a segment traced out and back.
        horizontal = ry == 0
        lo = (ellipse.x, ellipse.y)
        hi = (ellipse.x + ellipse.width, ellipse.y) if horizontal else (ellipse.x, ellipse.y + ellipse.height)
        s = point_segment_distance(p, lo, hi).t
        angle = math.degrees(math.acos(max(-1.0, min(1.0, 2 * s - 1))))
        t = angle if horizontal else 90 - angle
        return CurveDistanceRange.from_distance(ellipse.distance_at(p, t))

    q = ((p[0] - cx) / rx, (p[1] - cy) / ry)
    t = 0.0 if q == (0.0, 0.0) else math.degrees(math.atan2(q[1], q[0]))
    cd = ellipse.distance_at(p, t)
    if abs(rx) == abs(ry):
        return CurveDistanceRange.from_distance(cd)
    unit_distance = abs(1 - math.hypot(q[0], q[1]))
    return CurveDistanceRange.from_distance(cd, unit_distance * min(abs(rx), abs(ry)))


# -- fitting -------------------------------------------------------------


def _ellipse_from_conic(a, b, c, d):
    """EllipticalArc for x^2 + a y^2 + b x + c y + d = 0."""
    if not all(np.isfinite([a, b, c, d])) or a <= 0:
        raise UnsolvableError(f"Conic x^2 + {a}y^2 + {b}x + {c}y + {d} = 0 is not an ellipse")
    cx = -b / 2
    cy = -c / (2 * a)
    rx_sq = cx * cx + a * cy * cy - d
    if rx_sq < 0:
        raise UnsolvableError("No real ellipse passes through the given points")
    rx = math.sqrt(rx_sq)
    ry = math.sqrt(rx_sq / a)
    return EllipticalArc.from_center((cx, cy), rx, ry)


def circle_through_diameter(p1, p2):
    center = ((p1[0] + p2[0]) / 2, (p1[1] + p2[1]) / 2)
    r = distance(p1, p2) / 2
    return EllipticalArc.from_center(center, r, r)


def ellipse_through(points):
    """
    Full axis-aligned ellipse through 1-4 points.

    One point gives a zero-size ellipse, two a circle with that diameter,
    three the circle through them and four the axis-aligned ellipse through
    them.

    Raises:
        UnsolvableError: if the points are degenerate (collinear, repeated)
            or lie on no ellipse of that kind.
    """
    points = [(float(p[0]), float(p[1])) for p in points]
    n = len(points)
    if n == 1:
        return EllipticalArc(points[0][0], points[0][1], 0.0, 0.0)
    if n == 2:
        return circle_through_diameter(points[0], points[1])
    if n == 3:
        # x^2 + y^2 + b x + c y + d = 0
        m = np.array([[x, y, 1.0] for x, y in points])
        rhs = np.array([-(x * x + y * y) for x, y in points])
        b, c, d = _solve_system(m, rhs)
        return _ellipse_from_conic(1.0, b, c, d)
    if n == 4:
        m = np.array([[y * y, x, y, 1.0] for x, y in points])
        rhs = np.array([-x * x for x, _ in points])
        a, b, c, d = _solve_system(m, rhs)
        return _ellipse_from_conic(a, b, c, d)
    raise ValueError(f"ellipse_through takes 1-4 points, got {n}")


def _solve_system(m, rhs):
    try:
        res = np.linalg.solve(m, rhs)
    except np.linalg.LinAlgError as e:
        raise UnsolvableError(f"Points do not determine a unique ellipse: {e}") from e
    if not np.all(np.isfinite(res)):
        raise UnsolvableError("Points do not determine a unique ellipse")
    return [float(v) for v in res]


def arc_through(points, closed=False):
    """
    Arc of the ellipse through 1-4 points.

    The arc runs from the first point to the last, on the side that passes
    the second point. t always increases counterclockwise, so when the
    points run clockwise the arc starts at the last point instead. A
    closed arc is the whole ellipse starting at the first point.
    """
    ellipse = ellipse_through(points)
    if len(points) == 1 or ellipse.width == 0 or ellipse.height == 0:
        return ellipse

    a0 = ellipse.angle_of(points[0])
    if closed:
        return ellipse._with_domain(a0, a0 + 360)

    a2 = ellipse.angle_of(points[-1])
    sweep = normalize_degrees(a2 - a0, 0)
    if len(points) == 2:
        return ellipse._with_domain(a0, a0 + (sweep or 360))

    a1 = ellipse.angle_of(points[1])
    if sweep == 0:
        return ellipse._with_domain(a0, a0 + 360)
    if degrees_in_range(a1, a0, a0 + sweep):
        return ellipse._with_domain(a0, a0 + sweep)
    return ellipse._with_domain(a2, a2 + 360 - sweep)
