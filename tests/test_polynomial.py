"""Tests for polynomial utilities and root finding."""

import pytest

from diagramcore.numerics.polynomial import (
    degree,
    derivative,
    evaluate,
    evaluate_derivative,
    evaluate_integral_range,
    get_bounds,
    integral,
    solve,
    solve_cubic,
    solve_linear,
    solve_quadratic,
    taylor,
    times,
    to_string,
    trim,
)


class TestPolynomialArithmetic:
    """Tests for evaluation, calculus and products."""

    def test_evaluate(self):
        """Test Horner evaluation with lowest order first."""
        # 1 + 2x + 3x^2
        assert evaluate(2.0, [1, 2, 3]) == 17.0
        assert evaluate(5.0, []) == 0.0

    def test_derivative(self):
        """Test derivative coefficients and their evaluation."""
        poly = [1, 2, 3, 4]

        assert derivative(poly) == [2, 6, 12]
        assert evaluate_derivative(2.0, poly) == evaluate(2.0, derivative(poly))
        assert derivative([5]) == []

    def test_integral(self):
        """Test antiderivative and definite integral."""
        assert integral([3, 2]) == [0.0, 3.0, 1.0]
        assert evaluate_integral_range(0.0, 1.0, [0, 0, 3]) == pytest.approx(1.0)
        assert integral([0, 0]) == []

    def test_times(self):
        """Test polynomial multiplication."""
        # (1 + x)(1 - x) = 1 - x^2
        assert times([1, 1], [1, -1]) == [1, 0, -1]
        assert times([0], [1, 2]) == []

    def test_degree_and_trim(self):
        """Test that zero leading terms are ignored."""
        assert degree([1, 2, 0, 0]) == 1
        assert degree([0, 0]) == -1
        assert trim([1, 2, 0, 0]) == [1, 2]

    def test_taylor(self):
        """Test value and successive derivatives at a point."""
        assert taylor(1.0, [0, 0, 1]) == [1.0, 2.0, 2.0]

    def test_to_string(self):
        """Test human-readable rendering."""
        assert to_string([1, -2, 3]) == "3 t^2 - 2 t + 1"
        assert to_string([]) == "0"


class TestRootFinding:
    """Tests for closed-form polynomial solvers."""

    def test_linear(self):
        """Test linear roots and the all-roots case."""
        assert solve_linear(2.0, -4.0) == [2.0]
        assert solve_linear(0.0, 1.0) == []
        assert solve_linear(0.0, 0.0) is None

    def test_quadratic_two_roots(self):
        """Test a quadratic with two real roots."""
        assert solve_quadratic(1.0, -3.0, 2.0) == pytest.approx([1.0, 2.0])

    def test_quadratic_no_roots(self):
        """Test a quadratic with no real roots."""
        assert solve_quadratic(1.0, 0.0, 1.0) == []

    def test_quadratic_double_root(self):
        """Test a quadratic with a repeated root."""
        assert solve_quadratic(1.0, -2.0, 1.0) == [1.0]

    def test_quadratic_is_stable(self):
        """Test that the small root of x^2 - 1e8 x + 1 keeps full precision."""
        small, large = solve_quadratic(1.0, -1e8, 1.0)

        assert small == pytest.approx(1e-8, rel=1e-12)
        assert large == pytest.approx(1e8, rel=1e-12)

    def test_cubic_three_roots(self):
        """Test (x - 1)(x - 2)(x - 3)."""
        assert solve_cubic(1.0, -6.0, 11.0, -6.0) == pytest.approx([1.0, 2.0, 3.0], abs=1e-12)

    def test_cubic_one_root(self):
        """Test x^3 + x + 2, whose only real root is -1."""
        assert solve_cubic(1.0, 0.0, 1.0, 2.0) == pytest.approx([-1.0], abs=1e-12)

    def test_cubic_double_root(self):
        """Test (x - 1)^2 (x + 2), which keeps the double root."""
        roots = solve_cubic(1.0, 0.0, -3.0, 2.0)

        assert roots[0] == pytest.approx(-2.0, abs=1e-9)
        assert roots[-1] == pytest.approx(1.0, abs=1e-6)

    def test_cubic_falls_back_to_quadratic(self):
        """Test that a zero leading coefficient solves the quadratic."""
        assert solve_cubic(0.0, 1.0, -3.0, 2.0) == pytest.approx([1.0, 2.0])

    def test_solve_dispatches_by_degree(self):
        """Test solve() on lowest-first coefficients."""
        assert solve([-6.0, 11.0, -6.0, 1.0]) == pytest.approx([1.0, 2.0, 3.0], abs=1e-12)
        assert solve([2.0, -3.0, 1.0, 0.0]) == pytest.approx([1.0, 2.0])
        assert solve([4.0, 2.0]) == [-2.0]

    def test_solve_constants_have_no_roots(self):
        """Test that constant and zero polynomials give no roots."""
        assert solve([3.0]) == []
        assert solve([0.0, 0.0]) == []

    def test_solve_rejects_high_degree(self):
        """Test that quartics are rejected."""
        with pytest.raises(ValueError):
            solve([1, 0, 0, 0, 1])

    def test_roots_are_sorted(self):
        """Test that roots come back in increasing order."""
        roots = solve([0.0, -1.0, 0.0, 1.0])

        assert roots == sorted(roots)
        assert roots == pytest.approx([-1.0, 0.0, 1.0], abs=1e-12)


class TestGetBounds:
    """Tests for polynomial range bounds."""

    def test_interior_extremum(self):
        """Test that a vertex inside the interval is included."""
        assert get_bounds([0, 0, 1], -1.0, 2.0) == pytest.approx([0.0, 4.0])

    def test_monotone(self):
        """Test a monotone polynomial uses the endpoints."""
        assert get_bounds([1, 2], 0.0, 3.0) == pytest.approx([1.0, 7.0])

    def test_cubic(self):
        """Test x^3 - 3x over [-2, 2]: extrema at x = -1 and 1 equal the endpoint values."""
        assert get_bounds([0, -3, 0, 1], -2.0, 2.0) == pytest.approx([-2.0, 2.0])
