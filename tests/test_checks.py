"""Tests for the self-checks and their report."""

import json
import os

from diagramcore.config import CoreConfig
from diagramcore.models import CheckReport, CheckResult, Severity
from diagramcore.validate.checks import (
    FUNCTIONS,
    check_nearest_curve,
    check_quad_bezier_nearest,
    check_stable_quadratic,
    run_checks,
)
from diagramcore.validate.report import format_check_result, generate_report, summarize_report


class TestChecks:
    """Tests for the individual checks."""

    def test_all_pass(self):
        """Test that every check passes with the default configuration."""
        report = run_checks(CoreConfig())

        failed = [c.rule_id for c in report.checks if not c.passed]
        assert failed == []
        assert not report.has_errors
        assert len(report.checks) == 8

    def test_quad_nearest(self):
        """Test the closed-form nearest point check alone."""
        assert check_quad_bezier_nearest().passed

    def test_stable_quadratic(self):
        """Test the quadratic root check alone."""
        check = check_stable_quadratic()

        assert check.passed
        assert len(check.evidence["roots"]) == 2

    def test_nearest_curve_uses_distance_budget(self):
        """Test that the nearest-curve check runs with the distance section's tolerance."""
        config = CoreConfig()
        config.distance.max_error = 1e-3
        config.distance.max_steps = 50

        check = check_nearest_curve(config)

        assert check.passed
        assert check.evidence["index"] == 1
        assert check.evidence["max_error"] == 1e-3
        assert check.evidence["distance"] - check.evidence["min_distance"] <= 1e-3

    def test_functions_nonnegative(self):
        """Test that built-in integrands are nonnegative on [0, 3]."""
        for name, f in FUNCTIONS.items():
            assert all(f(x / 10) >= 0 for x in range(31)), name


class TestReport:
    """Tests for report output."""

    def _report(self):
        return CheckReport(checks=[
            CheckResult(rule_id="good", severity=Severity.ERROR, passed=True, message="fine"),
            CheckResult(rule_id="bad", severity=Severity.ERROR, passed=False, message="broken",
                        evidence={"value": 1.5}),
        ])

    def test_summary(self):
        """Test that failures are listed under ISSUES."""
        text = summarize_report(self._report())

        assert "Total checks: 2" in text
        assert "Failed: 1" in text
        assert "[ERROR] bad: broken" in text
        assert "[PASS] good: fine" in text

    def test_generate(self, temp_dir):
        """Test that JSON and text files are written."""
        out_dir = os.path.join(temp_dir, "out")
        report_path, summary_path = generate_report(self._report(), out_dir)

        assert os.path.exists(report_path)
        assert os.path.exists(summary_path)
        with open(report_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        assert data["checks"][1]["rule_id"] == "bad"
        assert data["checks"][1]["severity"] == "error"

    def test_format(self):
        """Test the one-line check format."""
        check = self._report().checks[1]

        assert format_check_result(check) == "[FAIL][ERROR] bad: broken"
