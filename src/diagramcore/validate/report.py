"""
Self-test report generation.

Writes the check results as JSON and as a plain-text summary.
"""

import json
import os

from diagramcore.tracer import get_tracer, trace


def ensure_dir(path):
    """Create directory if it does not exist."""
    if path:
        os.makedirs(path, exist_ok=True)


def save_json(data, path, indent=2):
    """
    Save a dictionary or Pydantic model to JSON.
    """
    tracer = get_tracer()

    ensure_dir(os.path.dirname(path))

    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json")

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, default=str)

    tracer.event(f"Saved JSON: {path}")


def summarize_report(report):
    """Render the report as human-readable text."""
    lines = ["Diagram Core Self-Test Report", "=" * 40, ""]

    passed = [c for c in report.checks if c.passed]
    failed = [c for c in report.checks if not c.passed]

    lines.append(f"Total checks: {len(report.checks)}")
    lines.append(f"Passed: {len(passed)}")
    lines.append(f"Failed: {len(failed)}")
    lines.append("")

    if failed:
        lines.append("ISSUES:")
        lines.append("-" * 40)
        for check in failed:
            severity_mark = "[ERROR]" if check.severity.value == "error" else "[WARN]"
            lines.append(f"{severity_mark} {check.rule_id}: {check.message}")
        lines.append("")

    lines.append("ALL CHECKS:")
    lines.append("-" * 40)
    for check in report.checks:
        status = "PASS" if check.passed else "FAIL"
        lines.append(f"[{status}] {check.rule_id}: {check.message}")

    return "\n".join(lines)


@trace(label="generate_report")
def generate_report(report, out_dir):
    """
    Generate self-test report files.

    Creates:
    - selftest_report.json: Full check results
    - selftest_summary.txt: Human-readable summary

    Returns:
        (report_path, summary_path)
    """
    tracer = get_tracer()

    report_path = os.path.join(out_dir, "selftest_report.json")
    save_json(report, report_path)

    summary_path = os.path.join(out_dir, "selftest_summary.txt")
    ensure_dir(out_dir)
    with open(summary_path, "w", encoding="utf-8") as f:
        f.write(summarize_report(report))

    tracer.event(f"Report saved: {len(report.checks)} checks, {report.error_count} errors")

    return report_path, summary_path


def format_check_result(check):
    """Format a single check result for display."""
    status = "PASS" if check.passed else "FAIL"
    severity = check.severity.value.upper()
    return f"[{status}][{severity}] {check.rule_id}: {check.message}"
