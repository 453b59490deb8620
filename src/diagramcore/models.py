"""
Pydantic data models for the diagram core.

Numeric results always travel with their error bounds: an estimate carries
lower and upper bounds, the work spent, and a status that says whether the
bounds can be trusted.
"""

import math
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Status(str, Enum):
    """Outcome of a numeric computation."""
    OK = "ok"
    TOO_MANY_STEPS = "too_many_steps"
    TOO_SMALL_STEP_SIZE = "too_small_step_size"
    IMPOSSIBLE = "impossible"


class Severity(str, Enum):
    """Severity levels for self-checks."""
    ERROR = "error"
    WARN = "warn"
    INFO = "info"


class NumericEstimate(BaseModel):
    """
    A value together with bounds on the true value.

    When status is OK the true value lies in [lower_bound, upper_bound].
    Estimates are mutable; store a copy() rather than a shared reference.
    """
    value: float = 0.0
    lower_bound: float = 0.0
    upper_bound: float = 0.0
    sample_cnt: int = 0
    status: Status = Status.OK

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def exact(cls, value, sample_cnt=0):
        """Create a zero-width estimate."""
        return cls(value=value, lower_bound=value, upper_bound=value, sample_cnt=sample_cnt)

    @classmethod
    def bad(cls, value=0.0, sample_cnt=0, status=Status.TOO_MANY_STEPS):
        """Create an estimate with infinite bounds."""
        return cls(
            value=value,
            lower_bound=-math.inf,
            upper_bound=math.inf,
            sample_cnt=sample_cnt,
            status=status,
        )

    def width(self):
        """Width of the uncertainty interval."""
        return self.upper_bound - self.lower_bound

    def is_exact(self):
        return self.lower_bound == self.upper_bound

    def is_ok(self):
        return self.status == Status.OK

    def contains(self, v):
        return self.lower_bound <= v <= self.upper_bound

    def relative_error(self):
        """
        Bound on the relative error of the value.

        Returns 0 for exact estimates and 1 when the bounds straddle zero.
        """
        if self.is_exact():
            return 0.0
        if (self.lower_bound < 0) != (self.upper_bound < 0) or self.lower_bound == 0:
            return 1.0
        return abs(self.width() / (self.upper_bound + self.lower_bound))

    def add(self, other):
        """Add other's value, bounds and samples into this estimate. Returns self."""
        self.value += other.value
        self.add_bounds(other)
        return self

    def add_bounds(self, other):
        """
        Like add(), but leave value unchanged.

        Used when value and bounds live in different spaces (an x
        coordinate bounded by areas).
        """
        self.lower_bound += other.lower_bound
        self.upper_bound += other.upper_bound
        if self.status == Status.OK or other.status == Status.TOO_SMALL_STEP_SIZE:
            self.status = other.status
        self.sample_cnt += other.sample_cnt
        return self

    def times(self, factor):
        """Scale value and bounds by factor. Returns self."""
        self.value *= factor
        lo = self.lower_bound * factor
        hi = self.upper_bound * factor
        self.lower_bound = min(lo, hi)
        self.upper_bound = max(lo, hi)
        return self

    def copy(self):
        return self.model_copy()


class Precision(BaseModel):
    """
    Error tolerances and work limits for a numeric request.

    Callers copy and adjust a Precision to split an error budget across
    nested sub-computations.
    """
    relative_error: float = Field(default=1e-10, ge=0.0)
    absolute_error: float = Field(default=1e-20, ge=0.0)
    min_sample_cnt: int = Field(default=5, ge=0)
    max_sample_cnt: int = Field(default=65537, ge=1)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _check_sample_range(self):
        if self.min_sample_cnt > self.max_sample_cnt:
            raise ValueError(
                f"min_sample_cnt ({self.min_sample_cnt}) exceeds "
                f"max_sample_cnt ({self.max_sample_cnt})"
            )
        return self

    def max_error(self, v):
        """Largest error allowed for a result near v."""
        return max(self.absolute_error, abs(v * self.relative_error))

    def close_enough(self, v1, v2):
        """Return True if v2 is within tolerance of v1."""
        return self.max_error(v1) >= abs(v1 - v2)

    def close_enough_estimate(self, est):
        """Return True if est's bounds are narrow enough around its midpoint."""
        mid = (est.lower_bound + est.upper_bound) / 2
        return self.close_enough(est.lower_bound, mid)

    def estimate_within(self, est, v):
        """Return True if all of [est.lower_bound, est.upper_bound] lies within tolerance of v."""
        err = self.max_error(v)
        return est.lower_bound >= v - err and est.upper_bound <= v + err

    def copy(self, **changes):
        """Return a copy with the given fields replaced and validated."""
        data = self.model_dump()
        data.update(changes)
        return Precision(**data)


class CurveDistance(BaseModel):
    """Distance from a query point to the curve point at parameter t."""
    t: float
    point: Tuple[float, float]
    distance: float

    model_config = ConfigDict(extra="forbid")

    def min_with(self, other):
        """Return whichever of self and other is nearer."""
        if other is None or self.distance <= other.distance:
            return self
        return other


class CurveDistanceRange(CurveDistance):
    """
    A CurveDistance plus a lower bound on the distance over an interval.

    min_distance <= true minimum <= distance.
    """
    min_distance: float

    @classmethod
    def from_distance(cls, cd, min_distance=None):
        """Wrap a CurveDistance; an exact result has min_distance == distance."""
        return cls(
            t=cd.t,
            point=cd.point,
            distance=cd.distance,
            min_distance=cd.distance if min_distance is None else min(min_distance, cd.distance),
        )

    @staticmethod
    def nearest(a, b):
        """
        Combine two ranges over disjoint pieces of a curve.

        The nearer point wins and the lower bound is the smaller of the two.
        """
        if a is None:
            return b
        if b is None:
            return a
        best = a if a.distance <= b.distance else b
        return best.model_copy(update={"min_distance": min(a.min_distance, b.min_distance)})

    def with_t(self, t):
        return self.model_copy(update={"t": t})


class DistanceIndex(BaseModel):
    """Nearest-of-many result: the distance and the index of the nearest curve."""
    distance: CurveDistanceRange
    index: int

    model_config = ConfigDict(extra="forbid")


class CheckResult(BaseModel):
    """Result of a single self-check."""
    rule_id: str
    severity: Severity
    passed: bool
    message: str
    evidence: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")


class CheckReport(BaseModel):
    """Collection of self-check results."""
    checks: List[CheckResult] = Field(default_factory=list)
    config_path: Optional[str] = None

    model_config = ConfigDict(extra="forbid")

    @property
    def has_errors(self):
        """Check if any errors exist."""
        return any(c.severity == Severity.ERROR and not c.passed for c in self.checks)

    @property
    def error_count(self):
        """Count of failed error-level checks."""
        return sum(1 for c in self.checks if c.severity == Severity.ERROR and not c.passed)

    @property
    def warning_count(self):
        """Count of failed warning-level checks."""
        return sum(1 for c in self.checks if c.severity == Severity.WARN and not c.passed)
