"""
Self-checks for the diagram core.

Each check runs one numeric routine against a known answer and reports a
CheckResult, so a broken build shows up from the command line without a
test runner.
"""

import math

from diagramcore.geometry.arc import EllipticalArc
from diagramcore.geometry.bezier import QuadBezier
from diagramcore.geometry.distance import intersections
from diagramcore.geometry.offset import nearest_curve
from diagramcore.geometry.path import PathCurve
from diagramcore.geometry.primitives import SegmentCurve
from diagramcore.models import CheckReport, CheckResult, Severity
from diagramcore.numerics.adaptive import AdaptiveRombergIntegral
from diagramcore.numerics.inverse import quantile
from diagramcore.numerics.polynomial import solve_quadratic
from diagramcore.numerics.romberg import integral
from diagramcore.tracer import get_tracer, trace


def gaussian(x):
    """Standard normal density."""
    return math.exp(-x * x / 2) / math.sqrt(2 * math.pi)


# Integrands available to the command line. All are nonnegative on x >= 0.
FUNCTIONS = {
    "gaussian": gaussian,
    "linear": lambda x: x,
    "square": lambda x: x * x,
    "exp": math.exp,
    "sin2": lambda x: math.sin(x) ** 2,
}

GAUSSIAN_0_TO_4 = 0.49996832875817

# Upper quartile of the standard normal: the Gaussian integral over [0, x] is 0.25.
GAUSSIAN_QUARTILE = 0.6744897501960817

# Query point, expected t on the parabola (0,5) (1,3) (2,5).
QUAD_NEAREST_CASES = [
    ((1.0, 0.0), 0.5),
    ((-0.5, 3.25), 0.25),
    ((-3.5, 1.5), 0.172035),
    ((13.0, 1.5), 1.0),
    ((0.9, 4.1), 0.4396933),
    ((0.999, 5.49), 0.0023800),
    ((1.001, 5.49), 0.9976199),
]


@trace(label="run_selftest")
def run_checks(config):
    """
    Run every self-check.

    Returns CheckReport with all check results.
    """
    tracer = get_tracer()

    checks = []
    checks.append(check_gaussian_flat(config))
    checks.append(check_gaussian_adaptive(config))
    checks.append(check_inverse_round_trip(config))
    checks.append(check_quad_bezier_nearest())
    checks.append(check_stable_quadratic())
    checks.append(check_bezier_intersections(config))
    checks.append(check_nearest_curve(config))
    checks.append(check_path_line_intersections())

    report = CheckReport(checks=checks)

    tracer.event(f"Self-test complete: {report.error_count} errors, "
                 f"{report.warning_count} warnings")

    return report


def check_gaussian_flat(config):
    """Romberg integral of the Gaussian over [0, 4]."""
    est = integral(gaussian, 0.0, 4.0, config.make_precision())
    err = abs(est.value - GAUSSIAN_0_TO_4)
    passed = est.is_ok() and err < 1e-9

    return CheckResult(
        rule_id="gaussian_flat",
        severity=Severity.ERROR,
        passed=passed,
        message=f"Romberg Gaussian integral over [0, 4] is {est.value:.14f}",
        evidence={"value": est.value, "error": err, "samples": est.sample_cnt,
                  "status": est.status.value},
    )


def check_gaussian_adaptive(config):
    """Adaptive integral of the Gaussian over [0, 10], which is 1/2 to double precision."""
    tree = AdaptiveRombergIntegral(gaussian, 0.0, 10.0, config.adaptive.max_leaf_size)
    est = tree.integral(config.make_precision())
    err = abs(est.value - 0.5)
    passed = est.is_ok() and err < 1e-10

    return CheckResult(
        rule_id="gaussian_adaptive",
        severity=Severity.ERROR,
        passed=passed,
        message=f"Adaptive Gaussian integral over [0, 10] is {est.value:.14f}",
        evidence={"value": est.value, "error": err, "samples": est.sample_cnt,
                  "status": est.status.value},
    )


def check_inverse_round_trip(config):
    """Median of the Gaussian over [0, 10], then integrate back up to it."""
    precision = config.make_precision().copy(relative_error=1e-8)
    tree = AdaptiveRombergIntegral(gaussian, 0.0, 10.0, config.adaptive.max_leaf_size)
    est = quantile(tree, 0.5, precision)
    area = integral(gaussian, 0.0, est.value, precision).value
    passed = est.is_ok() and abs(est.value - GAUSSIAN_QUARTILE) < 1e-6 and abs(area - 0.25) < 1e-7

    return CheckResult(
        rule_id="inverse_round_trip",
        severity=Severity.ERROR,
        passed=passed,
        message=f"Gaussian median over [0, 10] is {est.value:.10f} (area {area:.10f})",
        evidence={"x": est.value, "expected_x": GAUSSIAN_QUARTILE, "area": area,
                  "status": est.status.value},
    )


def check_quad_bezier_nearest():
    """Closed-form nearest points on a parabola."""
    curve = QuadBezier((0, 5), (1, 3), (2, 5))
    misses = []
    for p, expected in QUAD_NEAREST_CASES:
        cd = curve.distance(p)
        if abs(cd.t - expected) > 1e-6 or cd.min_distance != cd.distance:
            misses.append({"point": p, "t": cd.t, "expected": expected})

    if misses:
        return CheckResult(
            rule_id="quad_bezier_nearest",
            severity=Severity.ERROR,
            passed=False,
            message=f"{len(misses)} of {len(QUAD_NEAREST_CASES)} nearest points are wrong",
            evidence={"misses": misses},
        )

    return CheckResult(
        rule_id="quad_bezier_nearest",
        severity=Severity.ERROR,
        passed=True,
        message=f"All {len(QUAD_NEAREST_CASES)} quadratic Bezier nearest points match",
        evidence={"cases": len(QUAD_NEAREST_CASES)},
    )


def check_stable_quadratic():
    """Both roots of x^2 - 1e8 x + 1 keep full relative precision."""
    roots = solve_quadratic(1.0, -1e8, 1.0)
    small = roots[0] if roots else math.nan
    large = roots[-1] if roots else math.nan
    passed = (len(roots) == 2
              and abs(small - 1e-8) / 1e-8 < 1e-12
              and abs(large - 1e8) / 1e8 < 1e-12)

    return CheckResult(
        rule_id="stable_quadratic",
        severity=Severity.ERROR,
        passed=passed,
        message=f"Roots of x^2 - 1e8 x + 1 are {small!r} and {large!r}",
        evidence={"roots": roots},
    )


def check_bezier_intersections(config):
    """Two parabolas crossing at x = 0.5 +/- sqrt(2)/4, y = 0.5."""
    a = QuadBezier((0, 1), (0.5, -1), (1, 1))
    b = QuadBezier((0, 0), (0.5, 2), (1, 0))
    expected = [(0.5 - math.sqrt(2) / 4, 0.5), (0.5 + math.sqrt(2) / 4, 0.5)]
    max_error = config.intersection.max_error
    tol = 10 * max_error

    points = intersections(a, b, max_error, config.intersection.max_steps)
    stray = [p for p in points if min(math.dist(p, e) for e in expected) > tol]
    missing = [e for e in expected if not any(math.dist(p, e) <= tol for p in points)]
    passed = not stray and not missing

    return CheckResult(
        rule_id="bezier_intersections",
        severity=Severity.ERROR,
        passed=passed,
        message=f"Found {len(points)} intersection points, {len(missing)} expected points missing",
        evidence={"points": points, "stray": stray, "missing": missing},
    )


def check_path_line_intersections():
    """A horizontal segment crosses a two-segment polyline once per segment."""
    path = PathCurve.from_points([(0, 0), (2, 2), (4, 0)])
    ts = path.seg_intersections(((-1, 1), (5, 1)))
    passed = len(ts) == 2 and all(abs(t - e) < 1e-12 for t, e in zip(ts, (0.5, 1.5)))

    return CheckResult(
        rule_id="path_line_intersections",
        severity=Severity.ERROR,
        passed=passed,
        message=f"Path crossings at t = {ts}",
        evidence={"ts": ts, "expected": [0.5, 1.5]},
    )


def check_nearest_curve(config):
    """The bottom of a parabola is nearer to (5, 3.5) than a segment below or a circle above."""
    curves = [
        SegmentCurve((0, 0), (10, 0)),
        QuadBezier((0, 5), (5, 3), (10, 5)),
        EllipticalArc.from_center((5, 8), 1, 1),
    ]
    max_error = config.distance.max_error

    res = nearest_curve(curves, (5.0, 3.5), max_error, config.distance.max_steps)
    cd = res.distance
    passed = (res.index == 1
              and cd.min_distance - max_error <= 0.5 <= cd.distance + max_error
              and cd.distance - cd.min_distance <= max_error)

    return CheckResult(
        rule_id="nearest_curve",
        severity=Severity.ERROR,
        passed=passed,
        message=f"Nearest curve is #{res.index} at distance {cd.distance:.10f}",
        evidence={"index": res.index, "distance": cd.distance,
                  "min_distance": cd.min_distance, "max_error": max_error},
    )
