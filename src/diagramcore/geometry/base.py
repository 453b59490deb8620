"""
Common interface for parameterized plane curves.

A curve maps t in [min_t, max_t] to a point. Every curve kind in the
package implements this interface: PointCurve, SegmentCurve, QuadBezier,
CubicBezier, EllipticalArc, PathCurve and the OffsetCurve wrapper. The set
is closed; the distance and intersection engine relies on nothing beyond
the methods declared here.

Curves are immutable. subset(), subdivide() and transformed() return new
objects, and wrappers may share the curves they wrap freely.
"""

import math
from abc import ABC, abstractmethod

from diagramcore.geometry import distance as engine
from diagramcore.geometry.geom import distance
from diagramcore.models import CurveDistance, Precision
from diagramcore.numerics.adaptive import AdaptiveRombergIntegral
from diagramcore.numerics.romberg import integral


class BoundedCurve(ABC):
    """A plane curve parameterized over a closed interval of t."""

    @property
    @abstractmethod
    def min_t(self):
        pass

    @property
    @abstractmethod
    def max_t(self):
        pass

    @abstractmethod
    def location(self, t):
        """Point at parameter t."""
        pass

    @abstractmethod
    def derivative(self, t):
        """Velocity vector d(location)/dt at t."""
        pass

    @abstractmethod
    def derivative_curve(self):
        """Curve over the same domain whose location is this curve's derivative."""
        pass

    @abstractmethod
    def bounds(self):
        """
        Axis-aligned bounding box [min_x, min_y, max_x, max_y] over the domain.

        Bounds that cannot be computed exactly err on the wide side.
        """
        pass

    @abstractmethod
    def linear_bounds(self, xc, yc):
        """Return (min, max) of xc * x(t) + yc * y(t) over the domain."""
        pass

    @abstractmethod
    def distance(self, p):
        """
        Fast distance estimate from p.

        Returns a CurveDistanceRange whose min_distance is a lower bound on
        the true minimum; the two are equal when the answer is exact.
        """
        pass

    @abstractmethod
    def seg_intersections(self, segment):
        """t values where the segment (p1, p2) crosses this curve."""
        pass

    @abstractmethod
    def line_intersections(self, line):
        """t values where the infinite line through (p1, p2) crosses this curve."""
        pass

    @abstractmethod
    def subset(self, t0, t1):
        """The same curve restricted to [t0, t1] inside the current domain."""
        pass

    @abstractmethod
    def transformed(self, xform):
        """The image of this curve under a 2x3 affine transform."""
        pass

    @property
    def start(self):
        return self.location(self.min_t)

    @property
    def end(self):
        return self.location(self.max_t)

    def distance_at(self, p, t):
        point = self.location(t)
        return CurveDistance(t=t, point=point, distance=distance(p, point))

    def nearest(self, p, max_error, max_steps):
        """
        Distance from p to within max_error, unless max_steps bisection
        steps are not enough; then the best estimate found so far.
        """
        return engine.nearest_point([self], p, max_error, max_steps)

    def this_or_subset(self, t0, t1):
        if t0 <= self.min_t and t1 >= self.max_t:
            return self
        return self.subset(t0, t1)

    def subdivide(self):
        """Split into pieces that overlap only at their endpoints."""
        if self.min_t == self.max_t:
            return [self]
        mid = (self.min_t + self.max_t) / 2
        return [self.subset(self.min_t, mid), self.subset(mid, self.max_t)]

    def length(self, precision=None):
        """Arc length as a NumericEstimate, integrating the speed |c'(t)|."""
        def speed(t):
            dx, dy = self.derivative(t)
            return math.hypot(dx, dy)

        return AdaptiveRombergIntegral(speed, self.min_t, self.max_t).integral(precision)

    def area(self):
        """
        Integral of y dx along the curve.

        For a closed curve traversed counterclockwise this is the negated
        enclosed area.
        """
        def integrand(t):
            return self.location(t)[1] * self.derivative(t)[0]

        return integral(integrand, self.min_t, self.max_t, Precision()).value

    def __repr__(self):
        return f"{type(self).__name__}[{self.min_t:g}, {self.max_t:g}]"
