"""Pytest fixtures for diagram core tests."""

import math
import tempfile

import pytest


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture(autouse=True)
def quiet_tracer():
    """Leave the global tracer disabled after every test."""
    from diagramcore.tracer import configure_tracer

    yield
    configure_tracer(enabled=False)


@pytest.fixture
def gaussian():
    """Standard normal density."""
    def f(x):
        return math.exp(-x * x / 2) / math.sqrt(2 * math.pi)
    return f


@pytest.fixture
def parabola():
    """Quadratic Bezier tracing y = (x - 1)^2 + 4 for x in [0, 2]."""
    from diagramcore.geometry.bezier import QuadBezier

    return QuadBezier((0, 5), (1, 3), (2, 5))


@pytest.fixture
def crossing_parabolas():
    """Two quadratic Beziers that cross twice at y = 0.5."""
    from diagramcore.geometry.bezier import QuadBezier

    a = QuadBezier((0, 1), (0.5, -1), (1, 1))
    b = QuadBezier((0, 0), (0.5, 2), (1, 0))
    return a, b
