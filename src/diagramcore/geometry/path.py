"""
Composite path of curve segments.

Segment i covers t in [i, i + 1], so t = 2.5 is halfway along the third
segment and integer t values are the joints. A t value on a joint belongs
to the segment on its left, except t = 0 which belongs to segment 0.
"""

import copy
import math
import re

from diagramcore.geometry.base import BoundedCurve
from diagramcore.geometry.bezier import create_bezier
from diagramcore.geometry.geom import PATH_BISECT_SEGMENTS, bbox_union
from diagramcore.geometry.offset import OffsetCurve
from diagramcore.geometry.primitives import SegmentCurve
from diagramcore.models import CurveDistanceRange, NumericEstimate

_SVG_TOKEN = re.compile(r"[A-Za-z]|[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")

# Number of coordinates each supported command takes.
_SVG_ARITY = {"M": 2, "L": 2, "Q": 4, "C": 6, "Z": 0}


class PathCurve(BoundedCurve):
    """
    Segments joined end to end, each a curve over t in [0, 1].

    Args:
        segments: curves with unit-width domains
        t0, t1: domain of the path, by default [0, len(segments)]
    """

    def __init__(self, segments, t0=None, t1=None):
        segments = list(segments)
        if not segments:
            raise ValueError("A path needs at least one segment")
        for seg in segments:
            if seg.max_t - seg.min_t != 1:
                raise ValueError(f"Path segments must span a unit domain, got {seg!r}")
        self.segments = tuple(OffsetCurve(seg, i - seg.min_t) for i, seg in enumerate(segments))
        self.t0 = 0.0 if t0 is None else float(t0)
        self.t1 = float(len(segments)) if t1 is None else float(t1)
        if not 0 <= self.t0 <= self.t1 <= len(segments):
            raise ValueError(f"Path domain [{self.t0}, {self.t1}] is outside [0, {len(segments)}]")

    @classmethod
    def from_points(cls, points, closed=False):
        """Polyline through points; closed adds a segment back to the first point."""
        points = [(float(p[0]), float(p[1])) for p in points]
        if len(points) < 2:
            raise ValueError("A polyline needs at least two points")
        if closed:
            points.append(points[0])
        return cls(SegmentCurve(p0, p1) for p0, p1 in zip(points, points[1:]))

    @classmethod
    def from_svg_path(cls, d):
        """
        Parse a single SVG subpath using absolute M, L, Q, C and Z commands.

        Extra coordinate pairs after M are treated as L, as in SVG.

        Raises:
            ValueError: for other commands, a second subpath or bad
                coordinates.
        """
        tokens = _SVG_TOKEN.findall(d)
        if not tokens or tokens[0] != "M":
            raise ValueError(f"SVG path must start with M: {d!r}")

        segments = []
        start = None
        current = None
        closed = False
        i = 0
        cmd = None
        while i < len(tokens):
            tok = tokens[i]
            if tok.isalpha():
                if tok not in _SVG_ARITY:
                    raise ValueError(f"Unsupported SVG path command {tok!r}")
                if closed:
                    raise ValueError("Only a single subpath is supported")
                if tok == "M" and start is not None:
                    raise ValueError("Only a single subpath is supported")
                cmd = tok
                i += 1
                if cmd == "Z":
                    if current != start:
                        segments.append(create_bezier(current, start))
                    current = start
                    closed = True
                continue
            if cmd is None or cmd == "Z":
                raise ValueError(f"Unexpected number {tok!r} in SVG path")

            n = _SVG_ARITY[cmd]
            args = tokens[i:i + n]
            if len(args) < n or any(a.isalpha() for a in args):
                raise ValueError(f"SVG command {cmd} needs {n} numbers")
            i += n
            coords = [float(a) for a in args]
            pts = [(coords[k], coords[k + 1]) for k in range(0, n, 2)]
            if cmd == "M":
                start = current = pts[0]
                cmd = "L"
                continue
            segments.append(create_bezier(current, *pts))
            current = pts[-1]

        if not segments:
            raise ValueError(f"SVG path {d!r} has no segments")
        return cls(segments)

    # -- segment lookup --------------------------------------------------

    @property
    def min_t(self):
        return self.t0

    @property
    def max_t(self):
        return self.t1

    def segment_no(self, t):
        """Index of the segment holding t; joints belong to the left segment."""
        i = 0 if t == 0 else math.ceil(t) - 1
        return min(max(i, 0), len(self.segments) - 1)

    def segment(self, t):
        return self.segments[self.segment_no(t)]

    def _span(self, t0, t1):
        """First and last segment indices covering [t0, t1], skipping a bare joint at t0."""
        last = self.segment_no(t1)
        first = min(max(math.floor(t0), 0), last) if t0 < t1 else last
        return first, last

    def pieces(self, t0=None, t1=None):
        """Yield the segments covering [t0, t1], each clipped to that range."""
        t0 = self.t0 if t0 is None else t0
        t1 = self.t1 if t1 is None else t1
        first, last = self._span(t0, t1)
        for i in range(first, last + 1):
            seg = self.segments[i]
            yield seg.this_or_subset(max(t0, seg.min_t), min(t1, seg.max_t))

    def _with_domain(self, t0, t1):
        res = copy.copy(self)
        res.t0 = float(t0)
        res.t1 = float(t1)
        return res

    # -- curve interface -------------------------------------------------

    def location(self, t):
        return self.segment(t).location(t)

    def derivative(self, t):
        return self.segment(t).derivative(t)

    def derivative_curve(self):
        return PathCurve([seg.curve.derivative_curve() for seg in self.segments], self.t0, self.t1)

    def bounds(self):
        res = None
        for piece in self.pieces():
            res = bbox_union(res, piece.bounds())
        return res

    def linear_bounds(self, xc, yc):
        lo = math.inf
        hi = -math.inf
        for piece in self.pieces():
            piece_lo, piece_hi = piece.linear_bounds(xc, yc)
            lo = min(lo, piece_lo)
            hi = max(hi, piece_hi)
        return (lo, hi)

    def distance(self, p):
        res = None
        for piece in self.pieces():
            res = CurveDistanceRange.nearest(res, piece.distance(p))
        return res

    def _collect(self, ts_of):
        # A crossing at a joint is reported by both neighbouring segments.
        res = []
        for piece in self.pieces():
            for t in ts_of(piece):
                if not res or res[-1] < t:
                    res.append(t)
        return res

    def seg_intersections(self, segment):
        return self._collect(lambda piece: piece.seg_intersections(segment))

    def line_intersections(self, line):
        return self._collect(lambda piece: piece.line_intersections(line))

    def subset(self, t0, t1):
        first, last = self._span(t0, t1)
        if first == last:
            return self.segments[first].this_or_subset(t0, t1)
        return self._with_domain(t0, t1)

    def subdivide(self):
        first, last = self._span(self.t0, self.t1)
        if first == last:
            return self.segments[first].this_or_subset(self.t0, self.t1).subdivide()
        if last - first + 1 > PATH_BISECT_SEGMENTS:
            mid = float(round((self.t0 + self.t1) / 2))
            return [self.subset(self.t0, mid), self.subset(mid, self.t1)]
        return list(self.pieces())

    def transformed(self, xform):
        return PathCurve([seg.curve.transformed(xform) for seg in self.segments], self.t0, self.t1)

    def length(self, precision=None):
        res = NumericEstimate.exact(0.0)
        for piece in self.pieces():
            res.add(piece.length(precision))
        return res

    def area(self):
        return sum(piece.area() for piece in self.pieces())

    def __repr__(self):
        return f"PathCurve({len(self.segments)} segments, t=[{self.t0:g}, {self.t1:g}])"
