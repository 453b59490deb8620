"""
Piecewise distance and intersection engine.

Both searches work the same way: measure every candidate piece cheaply,
prove which pieces cannot matter using lower bounds, bisect the rest and
repeat until nothing is left to refine or the step budget runs out.

Only the BoundedCurve interface is used, so any curve kind works.
"""

import math

from diagramcore.errors import FailedToConvergeError
from diagramcore.geometry.geom import (
    INTERSECTION_SHRINK_FACTOR,
    bbox_distance,
    bbox_intersection,
    create_ray,
    cross_product,
    distance,
    normalize,
    point_segment_distance,
    reverse,
)
from diagramcore.models import CurveDistanceRange
from diagramcore.tracer import get_tracer, trace


def constrain_to_domain(curve, t):
    """Clamp t to [curve.min_t, curve.max_t]."""
    return min(max(t, curve.min_t), curve.max_t)


def distance_lower_bound0(curve, p):
    """Lower bound on the distance from p to curve: the distance to its bounding box."""
    return bbox_distance(p, curve.bounds())


def cone_lower_bound(p, f0, delta_t, dfdt_bounds):
    """
    Lower bound on the distance from p to f(t) for t in [-delta_t, delta_t].

    Given f(0) = f0 and f'(t) inside the box dfdt_bounds over that range,
    every f(t) equals f0 + v * t for some v in the box. The reachable set
    is the union of the scaled box b = delta_t * dfdt_bounds, its mirror -b
    and the segments joining each corner of b to its mirror.
    """
    if delta_t == 0:
        return distance(p, f0)

    px = p[0] - f0[0]
    py = p[1] - f0[1]
    bx0, by0, bx1, by1 = (v * delta_t for v in dfdt_bounds)
    corners = [(bx0, by0), (bx1, by0), (bx0, by1), (bx1, by1)]
    segments = [(v, (-v[0], -v[1])) for v in corners]

    # The point is inside the set if something in it lies both above and
    # below the point.
    above = ((bx0 <= px <= bx1 and py <= by1)
             or (-bx1 <= px <= -bx0 and py <= -by0))
    below = ((bx0 <= px <= bx1 and py >= by0)
             or (-bx1 <= px <= -bx0 and py >= -by1))

    for (x1, y1), (x2, y2) in segments:
        if not (px == x1 or px == x2 or (px > x1) == (px < x2)):
            continue
        if x1 == x2:
            if py == y1 or py == y2 or (py > y1) == (py < y2):
                return 0.0
            continue
        # Every segment passes through the origin.
        y = px * (y2 - y1) / (x2 - x1)
        if y == py:
            return 0.0
        if y > py:
            above = True
        else:
            below = True

    if above and below:
        return 0.0

    pn = (px, py)
    res = min(bbox_distance(pn, [bx0, by0, bx1, by1]),
              bbox_distance(pn, [-bx1, -by1, -bx0, -by0]))
    for l1, l2 in segments:
        res = min(res, point_segment_distance(pn, l1, l2).distance)
    return res


def distance_lower_bound1(curve, p):
    """Lower bound on the distance from p to curve using bounds on its first derivative."""
    center_t = (curve.min_t + curve.max_t) / 2
    f0 = curve.location(center_t)
    delta_t = center_t - curve.min_t
    return cone_lower_bound(p, f0, delta_t, curve.derivative_curve().bounds())


def distance_lower_bound(curve, p):
    return max(distance_lower_bound0(curve, p), distance_lower_bound1(curve, p))


@trace(label="nearest_point")
def nearest_point(curves, p, max_error, max_steps):
    """
    Nearest point to p on any of the curves.

    Each round measures every piece, drops the pieces whose lower bound
    is within max_error of the best distance so far, and bisects the rest.
    Every piece measured counts as one step.

    Returns:
        CurveDistanceRange bracketing the true minimum, or None if curves is
        empty. If the budget runs out first the bracket may be wider than
        max_error.
    """
    pieces = list(curves)
    if not pieces:
        return None

    best = None
    steps_left = max_steps
    while True:
        if best is not None:
            # Reset to an exact bound; it loosens again below if needed.
            best = best.model_copy(update={"min_distance": best.distance})

        get_tracer().count("pieces", len(pieces))
        measured = [c.distance(p) for c in pieces]
        for cd in measured:
            best = CurveDistanceRange.nearest(best, cd)

        cutoff = best.distance - max_error
        next_pieces = []
        for c, cd in zip(pieces, measured):
            if cd.min_distance >= cutoff:
                continue
            next_pieces.extend(c.subdivide())

        steps_left -= len(pieces)
        if not next_pieces:
            return best
        if steps_left < 0:
            get_tracer().event("Nearest point search stopped early", level="WARN",
                               distance=best.distance, min_distance=best.min_distance)
            return best
        pieces = next_pieces


def intersect_with_half_plane(curve, divider, lefts, rights):
    """
    Split curve at the line divider.

    Contiguous pieces on the closed left side of divider (reached by
    turning left when walking from divider[0] to divider[1]) are appended
    to lefts, the rest to rights. Either list may be None to discard that
    side.
    """
    p1, p2 = divider
    t0 = curve.min_t
    t1 = curve.max_t
    ts = [t for t in curve.line_intersections(divider) if t0 < t < t1]
    ts.append(t1)

    old_on_left = False
    start_t = t0
    old_t = t0
    for t in ts:
        mid_t = (old_t + t) / 2
        on_left = cross_product(p1, p2, curve.location(mid_t)) >= 0
        if old_t != t0 and on_left != old_on_left:
            side = lefts if old_on_left else rights
            if side is not None:
                side.append(curve.subset(start_t, old_t))
            start_t = old_t
        old_t = t
        old_on_left = on_left

    side = lefts if old_on_left else rights
    if side is None:
        return
    side.append(curve if start_t == t0 else curve.subset(start_t, t1))


def _intersect_all_with_half_plane(curves, divider, lefts, rights):
    for c in curves:
        intersect_with_half_plane(c, divider, lefts, rights)


@trace(label="intersections")
def intersections(a, b, max_error, max_steps):
    """
    Points where curves a and b cross, each within max_error of both.

    Raises:
        FailedToConvergeError: if max_steps is not enough to find every
            intersection to that tolerance.
    """
    res = []
    steps = count_intersection_steps(res, a, b, max_error, max_steps)
    if steps > max_steps:
        get_tracer().event("Intersection search did not converge", level="WARN",
                           steps=steps, max_steps=max_steps)
        raise FailedToConvergeError(
            f"Could not compute intersections to within {max_error} in {max_steps} steps "
            f"for {a!r} and {b!r}"
        )
    return res


def _flat_segment(lb, wb, lx, ly, max_error):
    """
    Segment within max_error / 2 of a curve with length bounds lb and width
    bounds wb, or None if the curve is not that flat in either direction.
    """
    if wb[1] - wb[0] <= max_error:
        w = (wb[0] + wb[1]) / 2
        ends = ((lb[0], w), (lb[1], w))
    elif lb[1] - lb[0] <= max_error:
        length = (lb[0] + lb[1]) / 2
        ends = ((length, wb[0]), (length, wb[1]))
    else:
        return None
    return tuple((lx * el - ly * ew, ly * el + lx * ew) for el, ew in ends)


def count_intersection_steps(out, a, b, max_error, max_steps):
    """
    Like intersections(), but append the points to out and return the
    number of steps used. Past max_steps nothing is guaranteed.

    Works in a frame rotated so the "length" axis runs from a's start to
    its end, where bounding boxes of curve pieces are usually tighter.
    """
    step_cnt = 1
    if bbox_intersection(a.bounds(), b.bounds()) is None:
        return step_cnt

    a_start = a.start
    a_end = a.end
    lx = a_end[0] - a_start[0]
    ly = a_end[1] - a_start[1]
    if math.hypot(lx, ly) <= max_error:
        # Closed or nearly closed: the chord direction is rounding noise.
        lx = 1.0
        ly = 0.0
    lx, ly = normalize((lx, ly))
    wx = -ly
    wy = lx

    alb = a.linear_bounds(lx, ly)
    awb = a.linear_bounds(wx, wy)
    a_line = _flat_segment(alb, awb, lx, ly, max_error)
    if a_line is not None:
        for t in b.seg_intersections(a_line):
            out.append(b.location(t))
        return step_cnt

    blb = b.linear_bounds(lx, ly)
    bwb = b.linear_bounds(wx, wy)
    b_line = _flat_segment(blb, bwb, lx, ly, max_error)
    if b_line is not None:
        # Clipping a to a zero-width band would lose the crossings.
        for t in a.seg_intersections(b_line):
            out.append(a.location(t))
        return step_cnt

    w_min = max(awb[0], bwb[0])
    w_max = min(awb[1], bwb[1])
    width = w_max - w_min
    if width < 0:
        return step_cnt

    l_min = max(alb[0], blb[0])
    l_max = min(alb[1], blb[1])
    length = l_max - l_min
    if length < 0:
        return step_cnt

    lp = (lx, ly)
    wp = (wx, wy)
    cl = l_min + length / 2
    width_axis = create_ray((cl * lx, cl * ly), wp)

    lbounds = (alb, blb)
    wbounds = (awb, bwb)
    wholes = [None, None]
    for i in (1, 0):
        you = 1 - i
        ci = a if i == 0 else b

        # Clip ci to the other curve's rotated bounding box.
        w = wbounds[you][0]
        pieces = []
        intersect_with_half_plane(ci, create_ray((w * wx, w * wy), lp), pieces, None)

        clipped = []
        w = wbounds[you][1]
        _intersect_all_with_half_plane(pieces, reverse(create_ray((w * wx, w * wy), lp)),
                                       clipped, None)
        pieces = clipped

        clipped = []
        length_bound = lbounds[you][0]
        _intersect_all_with_half_plane(
            pieces, reverse(create_ray((length_bound * lx, length_bound * ly), wp)), clipped, None)
        pieces = clipped

        clipped = []
        length_bound = lbounds[you][1]
        _intersect_all_with_half_plane(
            pieces, create_ray((length_bound * lx, length_bound * ly), wp), clipped, None)
        pieces = clipped

        if not pieces:
            return step_cnt
        wholes[i] = pieces

    size = width + length
    if size <= max_error:
        # Both curves reach the overlap box, so its center is close enough.
        cw = w_min + width / 2
        out.append((cl * lx - cw * ly, cl * ly + cw * lx))
        return step_cnt

    old_a_size = (alb[1] - alb[0]) + (awb[1] - awb[0])
    old_b_size = (blb[1] - blb[0]) + (bwb[1] - bwb[0])
    if size * INTERSECTION_SHRINK_FACTOR <= old_a_size or size * INTERSECTION_SHRINK_FACTOR <= old_b_size:
        for pa in wholes[0]:
            for pb in wholes[1]:
                if step_cnt > max_steps:
                    return step_cnt
                # Swap roles so each curve gets to define the frame.
                step_cnt += count_intersection_steps(out, pb, pa, max_error, max_steps - step_cnt)
        return step_cnt

    # Clipping is not shrinking things fast enough: bisect across the
    # length axis and handle each half separately.
    halves = [[[], []], [[], []]]
    for i in (0, 1):
        _intersect_all_with_half_plane(wholes[i], width_axis, halves[0][i], halves[1][i])

    for half in halves:
        for pa in half[0]:
            for pb in half[1]:
                if step_cnt > max_steps:
                    return step_cnt
                step_cnt += count_intersection_steps(out, pb, pa, max_error, max_steps - step_cnt)
    return step_cnt
