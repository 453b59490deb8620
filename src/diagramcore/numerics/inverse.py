"""
Inverse integration: solve for x such that the integral of f from lo to x
equals a target area y.

The adaptive tree is descended using the children's area estimates until a
leaf is reached, then a closed-form solve over a 5-sample window of that
leaf finishes the job: a quadratic is fitted through three samples, its
antiderivative gives a cubic in x, and the cubic's root nearest the window
center is the answer.

Two error sources are tracked separately. The areas of the subtrees skipped
on the way down (everything left of the leaf) are uncertain, and so is the
quadratic fit inside the leaf. Skipped subtrees are refined first when they
dominate the budget; only then is the leaf itself split.

Integrands must be nonnegative. Every cached sample is checked on entry
and each leaf window is checked again before it is solved.
"""

import numpy as np

from diagramcore.models import NumericEstimate, Precision, Status
from diagramcore.numerics.polynomial import evaluate, integral, solve
from diagramcore.numerics.romberg import integral_samples
from diagramcore.tracer import get_tracer, trace

# A target this many estimate widths above the total is treated as unreachable.
IMPOSSIBLE_WIDTH_FACTOR = 100


def fit_quad_to(y0, y1, y2):
    """
    Quadratic through (0, y0), (1, y1), (2, y2).

    Returns:
        Coefficients [c, b, a] of a*x^2 + b*x + c.
    """
    c = y0
    a = (y0 + y2 - 2 * y1) / 2
    b = y1 - y0 - a
    return [c, b, a]


def simpson(y0, y1, y2):
    """Simpson's rule over (0, y0), (1, y1), (2, y2) with unit spacing."""
    return (y0 + y2 + 4 * y1) / 3


def integral_y5(ys, start, x_lo, y, x_step):
    """
    Solve for x over the five samples ys[start:start+5] spaced x_step apart.

    The quadratic through samples 0, 2 and 4 is compared with samples 1 and
    3 to estimate the fit error.

    Returns:
        NumericEstimate whose value is x and whose bounds bracket the area
        from x_lo to x around y. An answer right of the window means the
        window's total area is below y.
    """
    a, b, c, d, e = (float(v) for v in ys[start:start + 5])
    if x_step == 0:
        return NumericEstimate.exact(x_lo)

    crude = fit_quad_to(a, c, e)
    y_error = (abs(evaluate(0.5, crude) - b) + abs(evaluate(1.5, crude) - d)) / 2

    left_area = simpson(a, b, c) * x_step
    if y > left_area:
        x_start = x_lo + 2 * x_step
        fine = fit_quad_to(c, d, e)
    else:
        left_area = 0.0
        x_start = x_lo
        fine = fit_quad_to(a, b, c)

    # cubic(u) = leftover area, with u measured in steps from x_start
    cubic = integral(fine) or [0.0]
    cubic[0] -= (y - left_area) / x_step
    roots = solve(cubic)
    if not roots:
        return NumericEstimate.bad(0.0)

    u = min(roots, key=lambda r: abs(r - 1))
    x = x_start + u * x_step
    area_error = abs(y_error * (x - x_lo))
    return NumericEstimate(value=x, lower_bound=y - area_error, upper_bound=y + area_error)


def integral_y_samples(ys, lo, hi, y, start=0, end=None):
    """
    Solve for x over evenly spaced samples ys[start:end] spanning [lo, hi].

    Halves the window, keeping whichever half holds the target according to
    the left half's Romberg area, until five samples remain.

    Returns:
        NumericEstimate with value x and area bounds around y.
    """
    end = len(ys) if end is None else end
    skipped = NumericEstimate.exact(0.0)
    while end - start > 5:
        mid = (lo + hi) / 2
        mid_i = (start + end) // 2
        left = integral_samples(ys, lo, mid, start, mid_i + 1)
        if y > skipped.value + left.value:
            skipped.add(left)
            lo = mid
            start = mid_i
        else:
            hi = mid
            end = mid_i + 1

    res = integral_y5(ys, start, lo, y - skipped.value, (hi - lo) / 4)
    res.lower_bound += skipped.lower_bound
    res.upper_bound += skipped.upper_bound
    return res


def _check_nonnegative(ys, lo, hi):
    if np.any(np.asarray(ys) < 0):
        raise ValueError(
            f"Inverse integration requires a nonnegative integrand; "
            f"found a negative sample in [{lo}, {hi}]"
        )


def _refine_best_left_sibling(leaf):
    """
    Refine the most efficient subtree whose area was skipped to reach leaf.

    Returns:
        Number of new samples, or None if no skipped subtree can be refined.
    """
    best = None
    best_efficiency = 0.0
    node = leaf
    while node.parent is not None:
        if node.is_right():
            sibling = node.parent.left
            eff = sibling.efficiency()
            if eff > best_efficiency:
                best = sibling
                best_efficiency = eff
        node = node.parent
    if best is None:
        return None
    return best.refine()


def _leaf_solution(leaf, y, skipped, sample_cnt):
    """
    Solve inside leaf for the area y - skipped.value.

    Returns:
        (estimate, area, density): estimate has value x and x-space bounds;
        area brackets the integral from the tree's lo to x.
    """
    _check_nonnegative(leaf.ys, leaf.lo, leaf.hi)
    local = integral_y_samples(leaf.ys, leaf.lo, leaf.hi, y - skipped.value)
    area = NumericEstimate(
        value=y,
        lower_bound=local.lower_bound + skipped.lower_bound,
        upper_bound=local.upper_bound + skipped.upper_bound,
    )

    x = local.value
    xs = np.linspace(leaf.lo, leaf.hi, len(leaf.ys))
    density = float(np.interp(x, xs, leaf.ys))
    if density > 0 and np.isfinite(area.width()):
        x_lo = x + (y - area.upper_bound) / density
        x_hi = x + (y - area.lower_bound) / density
    else:
        x_lo = leaf.lo
        x_hi = leaf.hi
    estimate = NumericEstimate(
        value=x,
        lower_bound=min(x_lo, x),
        upper_bound=max(x_hi, x),
        sample_cnt=sample_cnt,
    )
    return estimate, area, density


def _failure(root, value, sample_cnt, status):
    return NumericEstimate(
        value=value,
        lower_bound=root.lo,
        upper_bound=root.hi,
        sample_cnt=sample_cnt,
        status=status,
    )


def _solve(tree, y, p, extrapolate):
    """
    Core of integral_y.

    Returns:
        (estimate, density) where density is the integrand near the answer,
        or 0 when unknown.
    """
    if y < 0:
        raise ValueError(f"Target area must be nonnegative, got {y}")

    max_error = p.max_error(y)
    p_area = p.copy(absolute_error=max_error, relative_error=0.0)
    max_nonleaf_width = max_error
    sample_cnt = 0

    r = tree.root()
    if r.sample_cnt == 0:
        sample_cnt += r.refine()
    for leaf in r.leaves():
        if leaf.ys is not None:
            _check_nonnegative(leaf.ys, leaf.lo, leaf.hi)
    if p.close_enough(y, 0):
        return NumericEstimate.exact(r.lo, sample_cnt), 0.0

    tracer = get_tracer()
    while True:
        r = tree.root()
        total = r.estimate
        if y > total.upper_bound:
            if extrapolate:
                if total.value <= 0:
                    raise ValueError("Cannot extrapolate an integral whose total is not positive")
                if sample_cnt >= p.max_sample_cnt:
                    tracer.event("Inverse integration budget spent extrapolating", level="WARN",
                                 y=y, hi=r.hi)
                    return NumericEstimate.bad(r.hi, sample_cnt), 0.0
                sample_cnt += r.expand_right()
                continue
            if sample_cnt >= p.max_sample_cnt or (
                    sample_cnt >= p.min_sample_cnt
                    and y >= total.value + IMPOSSIBLE_WIDTH_FACTOR * total.width()):
                res = total.copy()
                res.sample_cnt = sample_cnt
                res.status = Status.IMPOSSIBLE
                tracer.event("Target area exceeds the integral", level="WARN",
                             y=y, total=total)
                return res, 0.0
            added = r.refine()
            if added == 0 and r.best_leaf.exhausted:
                return _failure(r, r.hi, sample_cnt, Status.TOO_SMALL_STEP_SIZE), 0.0
            sample_cnt += added

        node = r
        skipped = NumericEstimate.exact(0.0)
        while True:
            if not node.is_leaf():
                left = node.left.estimate
                if left.value >= y - skipped.value:
                    node = node.left
                else:
                    skipped.add(left)
                    node = node.right
                continue

            if node.ys is None:
                sample_cnt += node.expand()
                continue

            if skipped.width() > max_nonleaf_width:
                if sample_cnt >= p.max_sample_cnt:
                    return _failure(r, (node.lo + node.hi) / 2, sample_cnt,
                                    Status.TOO_MANY_STEPS), 0.0
                added = _refine_best_left_sibling(node)
                if added is None:
                    tracer.event("Skipped subtrees cannot be refined further", level="WARN",
                                 y=y, width=skipped.width())
                    return _failure(r, (node.lo + node.hi) / 2, sample_cnt,
                                    Status.TOO_SMALL_STEP_SIZE), 0.0
                sample_cnt += added
                break

            estimate, area, density = _leaf_solution(node, y, skipped, sample_cnt)
            if p_area.estimate_within(area, y):
                return estimate, density
            if sample_cnt >= p.max_sample_cnt:
                estimate.status = Status.TOO_MANY_STEPS
                tracer.event("Inverse integration budget exhausted", level="WARN",
                             estimate=estimate)
                return estimate, density
            added = node.expand(force_split=True)
            if node.exhausted:
                estimate.status = Status.TOO_SMALL_STEP_SIZE
                tracer.event("Inverse integration step size underflow", level="WARN",
                             estimate=estimate)
                return estimate, density
            sample_cnt += added


@trace(label="integral_y")
def integral_y(tree, y, precision=None, extrapolate=False):
    """
    Find x such that the integral of tree's function from lo to x is y.

    Args:
        tree: AdaptiveRombergIntegral (any node; its root is used)
        y: target area, must be nonnegative
        precision: Precision applied to the area y
        extrapolate: grow the domain rightward when y exceeds the total

    Returns:
        NumericEstimate of x. Its bounds are x-space bounds derived from the
        area uncertainty. Status IMPOSSIBLE means y exceeds the integral over
        the whole domain.
    """
    estimate, _ = _solve(tree, y, precision or Precision(), extrapolate)
    return estimate


@trace(label="quantile")
def quantile(tree, q, precision=None):
    """
    Find x such that the integral from lo to x is fraction q of the total.

    The total is computed to a quarter of the tolerance, then the rest of
    the budget goes to integral_y. The total's own uncertainty widens the
    returned bounds.
    """
    p = precision or Precision()
    if not 0 <= q <= 1:
        raise ValueError(f"Quantile must lie in [0, 1], got {q}")
    r = tree.root()
    if q == 0:
        return NumericEstimate.exact(r.lo)

    rel = max(p.relative_error, p.absolute_error / q)
    total = r.integral(p.copy(relative_error=rel / 4))
    if not total.is_ok():
        return _failure(r, (r.lo + r.hi) / 2, total.sample_cnt, total.status)
    if total.value < 0:
        raise ValueError("Quantiles require a nonnegative integrand")
    if total.value == 0:
        return NumericEstimate.exact(r.lo, total.sample_cnt)

    remaining = rel - total.relative_error()
    if remaining <= 0:
        remaining = rel / 2
    budget = max(p.max_sample_cnt - total.sample_cnt, p.min_sample_cnt, 1)
    p2 = p.copy(max_sample_cnt=budget, absolute_error=0.0, relative_error=remaining)

    estimate, density = _solve(r, q * total.value, p2, False)
    if density > 0:
        spread = q * total.width() / 2 / density
        estimate.lower_bound -= spread
        estimate.upper_bound += spread
    estimate.sample_cnt += total.sample_cnt
    return estimate
