"""
Bezier curves of degree 1-3.

Control points are converted to x(t) and y(t) polynomials once; location,
derivative, bounds and line intersections all work on the polynomials.
Quadratic curves have a closed-form nearest point. Cubic curves guess the
nearest point from an interpolating quadratic and bracket it with the
engine's lower bound.
"""

import math

from diagramcore.geometry import distance as engine
from diagramcore.geometry.base import BoundedCurve
from diagramcore.geometry.geom import invert_affine, length, normalize, transform_point
from diagramcore.geometry.primitives import SegmentCurve
from diagramcore.models import CurveDistanceRange
from diagramcore.numerics.polynomial import (
    derivative,
    evaluate,
    evaluate_derivative,
    evaluate_integral_range,
    get_bounds,
    solve,
    times,
)


def bezier_to_poly(bezs):
    """
    Convert 1-D Bezier control values to polynomial coefficients.

    Args:
        bezs: 0-4 control values

    Returns:
        Coefficients, lowest order first, of the same length.
    """
    n = len(bezs)
    if n == 0:
        return []
    if n == 1:
        return [bezs[0]]
    if n == 2:
        b0, b1 = bezs
        return [b0, b1 - b0]
    if n == 3:
        b0, b1, b2 = bezs
        return [b0, 2 * (b1 - b0), b2 + b0 - 2 * b1]
    if n == 4:
        b0, b1, b2, b3 = bezs
        return [b0, 3 * (b1 - b0), 3 * (b2 - 2 * b1 + b0), b3 - b0 + 3 * (b1 - b2)]
    raise ValueError(f"bezier_to_poly accepts 0-4 control values, got {n}")


def poly_to_bezier(poly):
    """Inverse of bezier_to_poly."""
    n = len(poly)
    if n == 0:
        return []
    if n == 1:
        return [poly[0]]
    if n == 2:
        k, kt = poly
        return [k, k + kt]
    if n == 3:
        k, kt, kt2 = poly
        return [k, k + kt / 2, k + kt + kt2]
    if n == 4:
        k, kt, kt2, kt3 = poly
        return [k, k + kt / 3, k + (2.0 / 3) * kt + kt2 / 3, k + kt + kt2 + kt3]
    raise ValueError(f"poly_to_bezier accepts 0-4 coefficients, got {n}")


def _bezier(points, t0, t1):
    n = len(points)
    if n == 4:
        return CubicBezier(*points, t0=t0, t1=t1)
    if n == 3:
        return QuadBezier(*points, t0=t0, t1=t1)
    if n == 2:
        return SegmentCurve(points[0], points[1], t0, t1)
    if n == 1:
        return SegmentCurve(points[0], points[0], t0, t1)
    raise ValueError(f"Bezier curves need 1-4 control points, got {n}")


def create_bezier(*points):
    """
    Create the Bezier curve over [0, 1] for 1-4 control points.

    4 points give a CubicBezier, 3 a QuadBezier, 2 a SegmentCurve and 1 a
    degenerate SegmentCurve.
    """
    return _bezier(points, 0.0, 1.0)


class BezierCurve(BoundedCurve):
    """Shared polynomial machinery for quadratic and cubic Bezier curves."""

    def __init__(self, points, t0=0.0, t1=1.0):
        if t0 > t1:
            raise ValueError(f"Bezier domain is inverted: [{t0}, {t1}]")
        self.points = tuple((float(p[0]), float(p[1])) for p in points)
        self.x_poly = bezier_to_poly([p[0] for p in self.points])
        self.y_poly = bezier_to_poly([p[1] for p in self.points])
        self.t0 = float(t0)
        self.t1 = float(t1)

    @property
    def min_t(self):
        return self.t0

    @property
    def max_t(self):
        return self.t1

    @property
    def degree(self):
        return len(self.points) - 1

    def location(self, t):
        return (evaluate(t, self.x_poly), evaluate(t, self.y_poly))

    def derivative(self, t):
        return (evaluate_derivative(t, self.x_poly), evaluate_derivative(t, self.y_poly))

    def derivative_curve(self):
        xs = poly_to_bezier(derivative(self.x_poly))
        ys = poly_to_bezier(derivative(self.y_poly))
        return _bezier(list(zip(xs, ys)), self.t0, self.t1)

    def bounds(self):
        x_lo, x_hi = get_bounds(self.x_poly, self.t0, self.t1)
        y_lo, y_hi = get_bounds(self.y_poly, self.t0, self.t1)
        return [x_lo, y_lo, x_hi, y_hi]

    def linear_bounds(self, xc, yc):
        poly = [xc * x + yc * y for x, y in zip(self.x_poly, self.y_poly)]
        lo, hi = get_bounds(poly, self.t0, self.t1)
        return (lo, hi)

    def _intersections(self, segment, is_line):
        (x1, y1), (x2, y2) = segment
        sdx = x2 - x1
        sdy = y2 - y1
        if sdx == 0 and sdy == 0:
            return []

        xcs = self.x_poly
        ycs = self.y_poly
        # Swap axes so the segment's slope is at most 1 in magnitude.
        if abs(sdx) < abs(sdy):
            x1, y1, x2, y2 = y1, x1, y2, x2
            sdx, sdy = sdy, sdx
            xcs, ycs = ycs, xcs

        m = sdy / sdx
        b = y1 - m * x1
        min_x = min(x1, x2)
        max_x = max(x1, x2)

        # y(t) = m x(t) + b
        poly = [m * xc - yc for xc, yc in zip(xcs, ycs)]
        poly[0] += b

        res = []
        for t in solve(poly):
            if t < self.t0 or t > self.t1:
                continue
            if not is_line:
                x = evaluate(t, xcs)
                if x < min_x or x > max_x:
                    continue
            res.append(t)
        return res

    def seg_intersections(self, segment):
        return self._intersections(segment, False)

    def line_intersections(self, line):
        return self._intersections(line, True)

    def subset(self, t0, t1):
        return _bezier(self.points, t0, t1)

    def transformed(self, xform):
        return _bezier([transform_point(xform, p) for p in self.points], self.t0, self.t1)

    def area(self):
        return evaluate_integral_range(self.t0, self.t1, times(self.y_poly, derivative(self.x_poly)))

    def __repr__(self):
        points = ", ".join(f"({x:g}, {y:g})" for x, y in self.points)
        return f"{type(self).__name__}[{points}; t=[{self.t0:g}, {self.t1:g}]]"


class QuadBezier(BezierCurve):
    """
    Quadratic Bezier curve.

    p0 and p2 are the locations at t = 0 and t = 1 even when the domain
    [t0, t1] is narrower; p1 is the middle control point.
    """

    def __init__(self, p0, p1, p2, t0=0.0, t1=1.0):
        super().__init__([p0, p1, p2], t0, t1)

    @classmethod
    def interpolated(cls, p0, p_mid, p_end):
        """Quadratic through p0 (t=0), p_mid (t=1/2) and p_end (t=1)."""
        # p_mid = p0/4 + p1/2 + p_end/4
        p1 = (2 * p_mid[0] - 0.5 * (p0[0] + p_end[0]),
              2 * p_mid[1] - 0.5 * (p0[1] + p_end[1]))
        return cls(p0, p1, p_end)

    def distance(self, p):
        """Exact nearest point over [t0, t1]."""
        return CurveDistanceRange.from_distance(self._nearest(p))

    def _nearest(self, p):
        t0 = self.t0
        t1 = self.t1
        # Coordinates relative to p: a t^2 + b t + c
        cx, bx, ax = self.x_poly
        cy, by, ay = self.y_poly
        cx -= p[0]
        cy -= p[1]

        if ax == 0 and ay == 0:
            return SegmentCurve(self.points[0], self.points[2], t0, t1).distance(p)

        axis_sq = ax * ax + ay * ay
        # The velocity at the cusp is perpendicular to the axis <ax, ay>.
        t_cusp = -(ax * bx + ay * by) / 2 / axis_sq
        x_cusp = ax * t_cusp * t_cusp + bx * t_cusp + cx
        y_cusp = ay * t_cusp * t_cusp + by * t_cusp + cy
        x_sweep = 2 * ax * t_cusp + bx
        y_sweep = 2 * ay * t_cusp + by

        nearest = self.distance_at(p, t0).min_with(self.distance_at(p, t1))

        if x_sweep == 0 and y_sweep == 0:
            # Collinear control points: the curve runs out along the axis
            # from the cusp and back again.
            d = -x_cusp * ax - y_cusp * ay
            if d <= 0:
                candidates = [t_cusp]
            else:
                delta_t = math.sqrt(d / axis_sq)
                candidates = [t_cusp - delta_t, t_cusp + delta_t]
            for t in candidates:
                if t0 <= t <= t1:
                    nearest = nearest.min_with(self.distance_at(p, t))
            return nearest

        # Change basis so the axis points up and the sweep points right.
        # The two basis vectors are forced to be exactly perpendicular.
        cross = ax * y_sweep - ay * x_sweep
        sign = 1 if cross >= 0 else -1
        axis_b = normalize((ax + y_sweep * sign, ay - x_sweep * sign))
        sweep_b = (-axis_b[1], axis_b[0])
        if cross < 0:
            sweep_b = (-sweep_b[0], -sweep_b[1])

        to_parabola = invert_affine([[sweep_b[0], axis_b[0], x_cusp],
                                     [sweep_b[1], axis_b[1], y_cusp]])
        q = transform_point(to_parabola, (0.0, 0.0))

        sweep_len = length((x_sweep, y_sweep))
        k = length((ax, ay)) / (sweep_len * sweep_len)
        for x in parabola_nearests(q, k):
            t = t_cusp + x / sweep_len
            if t0 <= t <= t1:
                nearest = nearest.min_with(self.distance_at(p, t))
        return nearest


def parabola_nearests(p, k):
    """
    Local minima of the distance from p to the parabola y = k x^2.

    Returns:
        The 1-3 x values where d/dx of the squared distance vanishes.
    """
    px, py = p
    # Half the derivative of (x - px)^2 + (k x^2 - py)^2
    cubic = [-px, 1 - 2 * k * py, 0.0, 2 * k * k]
    return solve(cubic)


class CubicBezier(BezierCurve):
    """Cubic Bezier curve; p0 and p3 are the locations at t = 0 and t = 1."""

    def __init__(self, p0, p1, p2, p3, t0=0.0, t1=1.0):
        super().__init__([p0, p1, p2, p3], t0, t1)

    def distance(self, p):
        t0 = self.t0
        t1 = self.t1
        mid = (t0 + t1) / 2
        approx = QuadBezier.interpolated(self.location(t0), self.location(mid), self.location(t1))
        guess = t0 + approx.distance(p).t * (t1 - t0)
        return CurveDistanceRange.from_distance(
            self.distance_at(p, guess), engine.distance_lower_bound(self, p))
