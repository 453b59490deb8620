"""
Polynomial utilities.

Polynomials are plain sequences of coefficients, lowest order first, so
[c, b, a] means c + b*x + a*x^2.
"""

import math

import numpy as np

# Relative gap below which a cubic's discriminant is treated as zero,
# reporting the double root instead of dropping it.
DOUBLE_ROOT_TOLERANCE = 1e-12

# Newton iterations applied to every closed-form cubic root.
NEWTON_POLISH_STEPS = 2


def evaluate(x, poly):
    """Evaluate poly at x using Horner's rule."""
    result = 0.0
    for c in reversed(poly):
        result = result * x + c
    return result


def evaluate_derivative(x, poly):
    """Equivalent to evaluate(x, derivative(poly))."""
    result = 0.0
    for i in range(len(poly) - 1, 0, -1):
        result = result * x + poly[i] * i
    return result


def evaluate_integral(x, poly):
    """Equivalent to evaluate(x, integral(poly))."""
    result = 0.0
    for i in range(len(poly) - 1, -1, -1):
        result = (result + poly[i] / (i + 1)) * x
    return result


def evaluate_integral_range(x1, x2, poly):
    """Definite integral of poly over [x1, x2]."""
    return evaluate_integral(x2, poly) - evaluate_integral(x1, poly)


def derivative(poly):
    if len(poly) <= 1:
        return []
    return [poly[i] * i for i in range(1, len(poly))]


def integral(poly):
    """Antiderivative of poly with a zero constant term."""
    d = degree(poly)
    if d < 0:
        return []
    return [0.0] + [poly[i] / (i + 1) for i in range(d + 1)]


def times(poly1, poly2):
    """Product of two polynomials."""
    d1 = degree(poly1)
    d2 = degree(poly2)
    if d1 < 0 or d2 < 0:
        return []
    res = [0.0] * (d1 + d2 + 1)
    for i in range(d1 + 1):
        for j in range(d2 + 1):
            res[i + j] += poly1[i] * poly2[j]
    return trim(res)


def degree(poly):
    """Actual degree ignoring zero leading terms; -1 for the zero polynomial."""
    for d in range(len(poly) - 1, -1, -1):
        if poly[d] != 0:
            return d
    return -1


def trim(poly):
    """Drop zero high-order coefficients."""
    return list(poly[:degree(poly) + 1])


def taylor(x, poly):
    """Return [p(x), p'(x), p''(x), ...] up to the polynomial's length."""
    res = []
    for _ in range(len(poly)):
        res.append(evaluate(x, poly))
        poly = derivative(poly)
    return res


def to_string(poly, var="t"):
    """Human-readable form, highest order first."""
    terms = []
    for i in range(len(poly) - 1, -1, -1):
        c = poly[i]
        if c == 0:
            continue
        sign = "-" if c < 0 else "+"
        c = abs(c) if terms else c
        term = f"{c}"
        if i > 1:
            term += f" {var}^{i}"
        elif i == 1:
            term += f" {var}"
        terms.append(f" {sign} {term}" if terms else term)
    return "".join(terms) if terms else "0"


def solve_linear(a, b):
    """
    Solve a*x + b = 0.

    Returns a list of roots, or None if every x is a root.
    """
    if a == 0:
        return None if b == 0 else []
    return [-b / a]


def solve_quadratic(a, b, c):
    """
    Solve a*x^2 + b*x + c = 0 without catastrophic cancellation.

    The root whose formula would subtract nearly equal numbers is
    computed from the product of the roots instead.

    Returns the sorted real roots, or None if every x is a root.
    """
    if a == 0:
        return solve_linear(b, c)

    disc = b * b - 4 * a * c
    if disc < 0:
        return []
    if disc == 0:
        return [-b / (2 * a)]

    q = -(b + math.copysign(math.sqrt(disc), b)) / 2
    x1 = q / a
    x2 = c / q if q != 0 else -x1
    return sorted([x1, x2])


def solve_cubic(a, b, c, d):
    """
    Solve a*x^3 + b*x^2 + c*x + d = 0.

    Uses the trigonometric method when there are three real roots and
    Cardano's formula otherwise, then polishes each root with Newton
    steps. Returns the sorted real roots, or None if every x is a root.
    """
    if a == 0:
        return solve_quadratic(b, c, d)

    poly = [d, c, b, a]
    A = b / a
    B = c / a
    C = d / a
    Q = (A * A - 3 * B) / 9
    R = (2 * A ** 3 - 9 * A * B + 27 * C) / 54
    R2 = R * R
    Q3 = Q ** 3
    shift = A / 3

    if R2 < Q3:
        ratio = max(-1.0, min(1.0, R / math.sqrt(Q3)))
        theta = math.acos(ratio)
        m = -2 * math.sqrt(Q)
        roots = [
            m * math.cos(theta / 3) - shift,
            m * math.cos((theta + 2 * math.pi) / 3) - shift,
            m * math.cos((theta - 2 * math.pi) / 3) - shift,
        ]
    else:
        S = -math.copysign(float(np.cbrt(abs(R) + math.sqrt(R2 - Q3))), R)
        T = Q / S if S != 0 else 0.0
        roots = [S + T - shift]
        if S != 0 and R2 - Q3 <= DOUBLE_ROOT_TOLERANCE * max(R2, abs(Q3)):
            roots.append(-S - shift)

    return sorted(_polish(r, poly) for r in roots)


def _polish(x, poly):
    """Refine a root with a few Newton steps, keeping only improvements."""
    fx = evaluate(x, poly)
    for _ in range(NEWTON_POLISH_STEPS):
        slope = evaluate_derivative(x, poly)
        if slope == 0 or fx == 0:
            break
        x2 = x - fx / slope
        f2 = evaluate(x2, poly)
        if abs(f2) >= abs(fx):
            break
        x, fx = x2, f2
    return x


def solve(poly):
    """
    Return the real zeros of poly in increasing order.

    Constant polynomials (including the zero polynomial) yield []. Callers
    that must tell "no roots" from "every t is a root" check degree()
    first.
    """
    d = degree(poly)
    if d <= 0:
        return []
    if d == 1:
        return [-poly[0] / poly[1]]
    if d == 2:
        return solve_quadratic(poly[2], poly[1], poly[0])
    if d == 3:
        return solve_cubic(poly[3], poly[2], poly[1], poly[0])
    raise ValueError(f"Cannot solve polynomial {list(poly)} because its degree exceeds 3")


def get_bounds(poly, t0, t1):
    """Return [min, max] of poly over t in [t0, t1]."""
    v0 = evaluate(t0, poly)
    v1 = evaluate(t1, poly)
    lo = min(v0, v1)
    hi = max(v0, v1)
    for zero in solve(derivative(poly)):
        if t0 <= zero <= t1:
            v = evaluate(zero, poly)
            lo = min(lo, v)
            hi = max(hi, v)
    return [lo, hi]
