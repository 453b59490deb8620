"""
Parameter-shifted curves and nearest-of-many queries.
"""

from diagramcore.geometry import distance as engine
from diagramcore.geometry.base import BoundedCurve
from diagramcore.models import DistanceIndex
from diagramcore.tracer import trace


class OffsetCurve(BoundedCurve):
    """
    The curve c with its parameter shifted: location(t) = c.location(t - offset).

    Curves are immutable, so the wrapped curve may be shared with other
    wrappers. Wrapping an OffsetCurve folds the two offsets together.
    """

    def __init__(self, curve, offset):
        if isinstance(curve, OffsetCurve):
            offset += curve.offset
            curve = curve.curve
        self.curve = curve
        self.offset = float(offset)

    @property
    def min_t(self):
        return self.curve.min_t + self.offset

    @property
    def max_t(self):
        return self.curve.max_t + self.offset

    def location(self, t):
        return self.curve.location(t - self.offset)

    def derivative(self, t):
        return self.curve.derivative(t - self.offset)

    def derivative_curve(self):
        return OffsetCurve(self.curve.derivative_curve(), self.offset)

    def bounds(self):
        return self.curve.bounds()

    def linear_bounds(self, xc, yc):
        return self.curve.linear_bounds(xc, yc)

    def distance(self, p):
        res = self.curve.distance(p)
        return res.with_t(res.t + self.offset)

    def seg_intersections(self, segment):
        return [t + self.offset for t in self.curve.seg_intersections(segment)]

    def line_intersections(self, line):
        return [t + self.offset for t in self.curve.line_intersections(line)]

    def subset(self, t0, t1):
        return OffsetCurve(self.curve.subset(t0 - self.offset, t1 - self.offset), self.offset)

    def subdivide(self):
        return [OffsetCurve(c, self.offset) for c in self.curve.subdivide()]

    def transformed(self, xform):
        return OffsetCurve(self.curve.transformed(xform), self.offset)

    def length(self, precision=None):
        return self.curve.length(precision)

    def area(self):
        return self.curve.area()

    def __repr__(self):
        return f"OffsetCurve({self.curve!r}, {self.offset:g})"


def separate(curves):
    """
    Shift each curve so the domains are disjoint and increasing.

    Curve i starts one unit after curve i-1 ends, so a t value identifies
    the curve it came from.
    """
    res = []
    offset = 0.0
    for c in curves:
        shifted = OffsetCurve(c, offset - c.min_t)
        offset = shifted.max_t + 1
        res.append(shifted)
    return res


def index_of(offset_curves, cd):
    """
    Undo separate() for a result.

    Returns:
        (index, cd) where cd's t is back in the original curve's domain.

    Raises:
        ValueError: if cd.t lies outside every domain.
    """
    for i, c in enumerate(offset_curves):
        if cd.t <= c.max_t:
            if cd.t < c.min_t:
                raise ValueError(f"t={cd.t} lies between curve domains")
            return i, cd.with_t(cd.t - c.offset)
    raise ValueError(f"t={cd.t} lies above every curve domain")


@trace(label="nearest_curve")
def nearest_curve(curves, p, max_error, max_steps):
    """
    Find which of several curves passes nearest to p.

    Only curves that are still candidates get refined, which is much
    cheaper than measuring each curve to full precision.

    Returns:
        DistanceIndex, or None when curves is empty.
    """
    shifted = separate(curves)
    cd = engine.nearest_point(shifted, p, max_error, max_steps)
    if cd is None:
        return None
    index, cd = index_of(shifted, cd)
    return DistanceIndex(distance=cd, index=index)
