"""
Command-line interface for the diagram core.

Provides commands for running the self-test and for integrating and
inverting the built-in integrands.
"""

import argparse
import sys

from diagramcore.config import load_config, save_default_config
from diagramcore.tracer import configure_tracer, get_tracer


def _add_common_args(parser):
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to YAML configuration file",
    )
    parser.add_argument(
        "--trace",
        action="store_true",
        help="Enable runtime tracing",
    )
    parser.add_argument(
        "--trace-level",
        default=None,
        choices=["ERROR", "WARN", "INFO", "DEBUG"],
        help="Trace log level",
    )
    parser.add_argument(
        "--trace-file",
        default=None,
        help="Path to write trace logs",
    )
    parser.add_argument(
        "--trace-json",
        action="store_true",
        help="Enable JSON trace output",
    )


def _add_range_args(parser):
    from diagramcore.validate.checks import FUNCTIONS

    parser.add_argument(
        "--function", "-f",
        required=True,
        choices=sorted(FUNCTIONS),
        help="Integrand to use",
    )
    parser.add_argument("--lo", type=float, required=True, help="Lower integration bound")
    parser.add_argument("--hi", type=float, required=True, help="Upper integration bound")


def main(argv=None):
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Diagram Core: adaptive integration and curve geometry",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Self-test command
    selftest_parser = subparsers.add_parser("selftest", help="Run the numeric self-checks")
    selftest_parser.add_argument(
        "--out", "-o",
        default=None,
        help="Directory for the JSON report and text summary",
    )
    _add_common_args(selftest_parser)

    # Integrate command
    integrate_parser = subparsers.add_parser("integrate", help="Integrate a built-in function")
    _add_range_args(integrate_parser)
    _add_common_args(integrate_parser)

    # Quantile command
    quantile_parser = subparsers.add_parser(
        "quantile", help="Find where a built-in function's integral reaches a fraction")
    _add_range_args(quantile_parser)
    quantile_parser.add_argument(
        "-q",
        type=float,
        required=True,
        help="Fraction of the total integral, in [0, 1]",
    )
    _add_common_args(quantile_parser)

    # Init config command
    init_parser = subparsers.add_parser("init-config", help="Create default config file")
    init_parser.add_argument(
        "--out", "-o",
        default="diagramcore_config.yaml",
        help="Output path for config file",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "selftest":
        return handle_selftest(args)
    elif args.command == "integrate":
        return handle_integrate(args)
    elif args.command == "quantile":
        return handle_quantile(args)
    elif args.command == "init-config":
        return handle_init_config(args)

    return 0


def _setup(args):
    """Load the configuration and configure tracing; flags override the file."""
    config = load_config(args.config)
    configure_tracer(
        enabled=args.trace or config.tracing.enabled,
        level=args.trace_level or config.tracing.level,
        file_path=args.trace_file or config.tracing.file_path,
        json_output=args.trace_json or config.tracing.json_output,
    )
    return config


def _print_estimate(est):
    print(f"  Value: {est.value:.15g}")
    print(f"  Bounds: [{est.lower_bound:.15g}, {est.upper_bound:.15g}]")
    print(f"  Samples: {est.sample_cnt}")
    print(f"  Status: {est.status.value}")


def handle_selftest(args):
    """Handle the selftest command."""
    config = _setup(args)
    tracer = get_tracer()

    try:
        from diagramcore.validate.checks import run_checks
        from diagramcore.validate.report import format_check_result, generate_report

        with tracer.span("cli_selftest", module="cli"):
            report = run_checks(config)
            report.config_path = args.config
            if args.out:
                report_path, summary_path = generate_report(report, args.out)

        for check in report.checks:
            print(format_check_result(check))
        print(f"\n  Errors: {report.error_count}")
        print(f"  Warnings: {report.warning_count}")
        if args.out:
            print(f"\nOutputs saved to: {args.out}/")
            print(f"  - {report_path}")
            print(f"  - {summary_path}")

        if report.has_errors:
            print("\n[!] Self-test failed")
            return 1

        return 0

    except Exception as e:
        tracer.event(f"Self-test failed: {str(e)}", level="ERROR")
        print(f"\nError: {str(e)}", file=sys.stderr)
        return 1


def handle_integrate(args):
    """Handle the integrate command."""
    config = _setup(args)
    tracer = get_tracer()

    try:
        from diagramcore.numerics.adaptive import AdaptiveRombergIntegral
        from diagramcore.validate.checks import FUNCTIONS

        with tracer.span("cli_integrate", module="cli", function=args.function):
            tree = AdaptiveRombergIntegral(FUNCTIONS[args.function], args.lo, args.hi,
                                           config.adaptive.max_leaf_size)
            est = tree.integral(config.make_precision())

        print(f"\nIntegral of {args.function} over [{args.lo:g}, {args.hi:g}]:")
        _print_estimate(est)

        return 0 if est.is_ok() else 1

    except Exception as e:
        tracer.event(f"Integration failed: {str(e)}", level="ERROR")
        print(f"\nError: {str(e)}", file=sys.stderr)
        return 1


def handle_quantile(args):
    """Handle the quantile command."""
    config = _setup(args)
    tracer = get_tracer()

    try:
        from diagramcore.numerics.adaptive import AdaptiveRombergIntegral
        from diagramcore.numerics.inverse import quantile
        from diagramcore.validate.checks import FUNCTIONS

        with tracer.span("cli_quantile", module="cli", function=args.function):
            tree = AdaptiveRombergIntegral(FUNCTIONS[args.function], args.lo, args.hi,
                                           config.adaptive.max_leaf_size)
            est = quantile(tree, args.q, config.make_precision())

        print(f"\nQuantile {args.q:g} of {args.function} over [{args.lo:g}, {args.hi:g}]:")
        _print_estimate(est)

        return 0 if est.is_ok() else 1

    except Exception as e:
        tracer.event(f"Quantile failed: {str(e)}", level="ERROR")
        print(f"\nError: {str(e)}", file=sys.stderr)
        return 1


def handle_init_config(args):
    """Handle the init-config command."""
    save_default_config(args.out)
    print(f"Default configuration saved to: {args.out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
