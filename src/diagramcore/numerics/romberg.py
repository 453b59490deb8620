"""
Romberg integration.

Repeatedly doubles the number of trapezoid samples and applies Richardson
extrapolation to the sequence of trapezoid estimates. After s splits the
estimate is exact for polynomials of degree 2s+1, so smooth integrands
converge much faster than with Simpson's rule.

The bounds placed on each result are the change between the last two
extrapolation levels. That is the usual heuristic error estimate, not a
proven bound: an integrand that hides a spike between samples can fool it.
"""

import numpy as np

from diagramcore.models import NumericEstimate, Precision, Status
from diagramcore.tracer import get_tracer, trace


def is_valid_sample_count(n):
    """Return True if n has the form 2^k + 1 with k >= 1."""
    m = n - 1
    return m >= 2 and (m & (m - 1)) == 0


def sample_count_to_split(sample_cnt, round_up=False):
    """
    Number of step doublings that sample_cnt samples allow.

    Sample counts that are not 2^k + 1 round down unless round_up is set.
    """
    if sample_cnt <= 2:
        return 0
    split = 1
    while True:
        sc = (1 << split) + 1
        if sc == sample_cnt:
            return split
        if sc > sample_cnt:
            return split if round_up else split - 1
        split += 1


def split_to_sample_count(split):
    return (1 << split) + 1


def _extrapolate(estimates, trapezoid):
    """
    Push a new trapezoid estimate onto the Romberg table in place.

    estimates[k] holds the k-th order extrapolation; the new row replaces
    the old one level by level.
    """
    estimates.insert(0, trapezoid)
    pow4 = 4
    for level in range(1, len(estimates)):
        estimates[level] = estimates[level - 1] + (estimates[level - 1] - estimates[level]) / (pow4 - 1)
        pow4 *= 4


@trace(label="romberg_integral")
def integral(f, lo, hi, precision=None):
    """
    Integrate f over [lo, hi] to the requested precision.

    Args:
        f: callable taking and returning a float
        lo: lower limit, must not exceed hi
        hi: upper limit
        precision: Precision; defaults to Precision()

    Returns:
        NumericEstimate. Its status is TOO_MANY_STEPS if max_sample_cnt was
        reached first, or TOO_SMALL_STEP_SIZE if the step size underflowed.
    """
    if lo > hi:
        raise ValueError(f"Integration bounds are inverted: lo={lo} > hi={hi}")
    p = precision or Precision()

    step = hi - lo
    if step == 0:
        return NumericEstimate.exact(0.0)

    ylo = f(lo)
    yhi = f(hi)
    # Running trapezoid sum: endpoints weigh half as much as interior samples.
    total = (ylo + yhi) / 2

    res = NumericEstimate(
        value=total * step,
        lower_bound=min(ylo, yhi) * step,
        upper_bound=max(ylo, yhi) * step,
        sample_cnt=2,
    )

    min_split = sample_count_to_split(p.min_sample_cnt, round_up=True)
    max_split = max(sample_count_to_split(p.max_sample_cnt), min_split)

    estimates = [res.value]
    new_cnt = 1
    for split in range(1, max_split + 1):
        half = step / 2
        if lo + half / new_cnt == lo or hi - half / new_cnt == hi:
            res.status = Status.TOO_SMALL_STEP_SIZE
            get_tracer().event("Romberg step size underflow", level="WARN", lo=lo, hi=hi)
            return res

        for i in range(new_cnt):
            total += f(lo + half + i * step)
        res.sample_cnt += new_cnt
        step = half
        new_cnt *= 2

        _extrapolate(estimates, total * step)

        estimate = estimates[split]
        old_estimate = res.value
        error = abs(estimate - old_estimate)
        res.value = estimate
        res.lower_bound = estimate - error
        res.upper_bound = estimate + error
        if split >= min_split and p.close_enough(estimate, old_estimate):
            return res

    res.status = Status.TOO_MANY_STEPS
    get_tracer().event("Romberg sample budget exhausted", level="WARN",
                       samples=res.sample_cnt, value=res.value)
    return res


def integral_samples(ys, lo, hi, start=0, end=None):
    """
    Romberg-integrate evenly spaced samples ys[start:end] spanning [lo, hi].

    The slice length must be 2^k + 1. Every extrapolation level is used;
    the bounds come from the last two levels.
    """
    end = len(ys) if end is None else end
    window = np.asarray(ys[start:end], dtype=float)
    n = len(window)
    if not is_valid_sample_count(n):
        raise ValueError(f"Sample count must be 2^k + 1 with k >= 1, got {n}")
    if lo > hi:
        raise ValueError(f"Integration bounds are inverted: lo={lo} > hi={hi}")

    length = hi - lo
    splits = sample_count_to_split(n)

    ylo = window[0]
    yhi = window[-1]
    value = (ylo + yhi) / 2 * length
    lower = min(ylo, yhi) * length
    upper = max(ylo, yhi) * length

    estimates = [value]
    endpoint_half = (ylo + yhi) / 2
    for level in range(1, splits + 1):
        stride = (n - 1) >> level
        pts = window[::stride]
        trapezoid = (pts[1:-1].sum() + endpoint_half) * length / (len(pts) - 1)
        _extrapolate(estimates, trapezoid)
        old = value
        value = estimates[level]
        error = abs(value - old)
        lower = value - error
        upper = value + error

    return NumericEstimate(
        value=float(value),
        lower_bound=float(lower),
        upper_bound=float(upper),
        sample_cnt=n,
    )
