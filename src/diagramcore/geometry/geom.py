"""
Plane geometry helpers shared by the curve classes.

Points are (x, y) tuples, segments and lines are (p1, p2) tuples, and
bounding boxes are [min_x, min_y, max_x, max_y]. Affine transforms are
2x3 numpy arrays [[a, b, tx], [c, d, ty]].
"""

import math

import numpy as np

from diagramcore.errors import UnsolvableError
from diagramcore.models import CurveDistance

# Curves whose bounding boxes shrink by at least this factor in one
# intersection step are re-intersected directly instead of bisected.
INTERSECTION_SHRINK_FACTOR = 1.3

# Paths spanning more segments than this are bisected at a segment joint
# instead of being split into their individual segments.
PATH_BISECT_SEGMENTS = 8

# Relative size of a cross product below which two directions count as
# parallel when intersecting lines.
PARALLEL_TOLERANCE = 1e-12

# Determinant magnitude below which an affine transform is singular.
SINGULAR_DETERMINANT = 1e-300


def sub(p1, p2):
    return (p1[0] - p2[0], p1[1] - p2[1])


def add(p1, p2):
    return (p1[0] + p2[0], p1[1] + p2[1])


def scale(p, k):
    return (p[0] * k, p[1] * k)


def dot(v1, v2):
    return v1[0] * v2[0] + v1[1] * v2[1]


def cross(v1, v2):
    """Cross product v1 x v2; positive when v2 is counterclockwise of v1."""
    return v1[0] * v2[1] - v1[1] * v2[0]


def length(v):
    return math.hypot(v[0], v[1])


def distance(p1, p2):
    return math.hypot(p1[0] - p2[0], p1[1] - p2[1])


def normalize(v):
    """Scale v to unit length. The zero vector is returned unchanged."""
    n = length(v)
    if n == 0:
        return (v[0], v[1])
    return (v[0] / n, v[1] / n)


def cross_product(p1, p2, p3):
    """
    Cross product p1p2 x p1p3.

    Positive when p3 lies to the left of the directed line p1 -> p2.
    """
    return (p2[0] - p1[0]) * (p3[1] - p1[1]) - (p2[1] - p1[1]) * (p3[0] - p1[0])


def create_ray(p, v):
    """Segment from p to p + v."""
    return ((p[0], p[1]), (p[0] + v[0], p[1] + v[1]))


def reverse(segment):
    return (segment[1], segment[0])


# -- bounding boxes ------------------------------------------------------

def bbox_of_points(points):
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return [min(xs), min(ys), max(xs), max(ys)]


def bbox_union(a, b):
    if a is None:
        return list(b)
    if b is None:
        return list(a)
    return [min(a[0], b[0]), min(a[1], b[1]), max(a[2], b[2]), max(a[3], b[3])]


def bbox_intersection(a, b):
    """Intersection of two boxes, or None if they are disjoint."""
    res = [max(a[0], b[0]), max(a[1], b[1]), min(a[2], b[2]), min(a[3], b[3])]
    if res[2] < res[0] or res[3] < res[1]:
        return None
    return res


def bbox_distance(p, bbox):
    """Distance from p to the nearest point of the closed box (0 inside)."""
    dx = max(bbox[0] - p[0], 0.0, p[0] - bbox[2])
    dy = max(bbox[1] - p[1], 0.0, p[1] - bbox[3])
    return math.hypot(dx, dy)


# -- points, segments and lines ------------------------------------------

def point_segment_distance(p, l1, l2):
    """
    Nearest point to p on the segment l1-l2.

    Returns:
        CurveDistance whose t in [0, 1] locates the point along l1 -> l2.
    """
    dx = l2[0] - l1[0]
    dy = l2[1] - l1[1]
    d = dx * (p[0] - l1[0]) + dy * (p[1] - l1[1])
    length_sq = dx * dx + dy * dy

    if d < 0 or length_sq == 0:
        t = 0.0
        point = (l1[0], l1[1])
    elif d >= length_sq:
        t = 1.0
        point = (l2[0], l2[1])
    else:
        t = d / length_sq
        point = (l1[0] + dx * t, l1[1] + dy * t)
    return CurveDistance(t=t, point=point, distance=distance(p, point))


def point_line_distance(p, l1, l2):
    """Distance from p to the infinite line through l1 and l2."""
    d = sub(l2, l1)
    n = length(d)
    if n == 0:
        return distance(p, l1)
    return abs(cross(d, sub(p, l1))) / n


def line_intersection_t(p0, p1, q0, q1):
    """
    Parameter t at which the line p0 + t*(p1 - p0) meets the line q0-q1.

    Returns None for parallel or degenerate lines.
    """
    d1 = sub(p1, p0)
    d2 = sub(q1, q0)
    denom = cross(d1, d2)
    if abs(denom) <= PARALLEL_TOLERANCE * length(d1) * length(d2) or denom == 0:
        return None
    return cross(sub(q0, p0), d2) / denom


def segment_intersection_t(p0, p1, q0, q1):
    """
    Like line_intersection_t, but the crossing must also lie on the
    segment q0-q1 and on p0-p1 (t in [0, 1]).
    """
    d1 = sub(p1, p0)
    d2 = sub(q1, q0)
    denom = cross(d1, d2)
    if abs(denom) <= PARALLEL_TOLERANCE * length(d1) * length(d2) or denom == 0:
        return None
    w = sub(q0, p0)
    t = cross(w, d2) / denom
    u = cross(w, d1) / denom
    if t < 0 or t > 1 or u < 0 or u > 1:
        return None
    return t


# -- angles --------------------------------------------------------------

def normalize_degrees(a, base):
    """Shift a by a multiple of 360 into [base, base + 360)."""
    return a - 360 * math.floor((a - base) / 360)


def degrees_in_range(a, a1, a2):
    """
    Return True if sweeping counterclockwise from a1 to a2 passes a.

    A sweep of 360 degrees or more contains every angle.
    """
    if a2 - a1 >= 360:
        return True
    d1 = normalize_degrees(a - a1, 0)
    d2 = normalize_degrees(a2 - a1, 0)
    return d2 >= d1


# -- affine transforms ---------------------------------------------------

def as_affine(xform):
    m = np.asarray(xform, dtype=float)
    if m.shape != (2, 3):
        raise ValueError(f"Affine transforms must be 2x3, got shape {m.shape}")
    return m


def transform_point(xform, p):
    m = as_affine(xform)
    return (
        float(m[0, 0] * p[0] + m[0, 1] * p[1] + m[0, 2]),
        float(m[1, 0] * p[0] + m[1, 1] * p[1] + m[1, 2]),
    )


def invert_affine(xform):
    """
    Return the inverse of an affine transform.

    Raises:
        UnsolvableError: if the transform is singular.
    """
    m = as_affine(xform)
    det = m[0, 0] * m[1, 1] - m[0, 1] * m[1, 0]
    if abs(det) < SINGULAR_DETERMINANT or not np.isfinite(det):
        raise UnsolvableError(f"Affine transform {m.tolist()} is not invertible")
    linear_inv = np.array([[m[1, 1], -m[0, 1]], [-m[1, 0], m[0, 0]]]) / det
    translation = -linear_inv @ m[:, 2]
    return np.hstack([linear_inv, translation.reshape(2, 1)])
