"""CLI entry point for temporalflow.

Provides command-line interface for:
- Running flows from YAML config
- Validating configuration files
- Tracing a built-in demo flow step by step
- Displaying version information

Usage:
    temporalflow run -c flows.yaml
    temporalflow run -c flows.yaml --flow greeter --dry-run
    temporalflow validate -c flows.yaml
    temporalflow debug --ticks 4 --dt 0.5
    temporalflow version
"""

import argparse
import logging
import sys
from typing import List, Optional


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="temporalflow",
        description="Temporal, priority-ordered execution flows",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version and exit",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        default="warning",
        help="Logging level (default: warning)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run command
    run_parser = subparsers.add_parser(
        "run",
        help="Run flows from configuration",
    )
    run_parser.add_argument(
        "-c", "--config",
        required=True,
        help="Path to YAML configuration file",
    )
    run_parser.add_argument(
        "--flow",
        help="Specific flow to run (default: all)",
    )
    run_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Build flows and show them without executing",
    )

    # validate command
    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate a configuration file",
    )
    validate_parser.add_argument(
        "-c", "--config",
        required=True,
        help="Path to YAML configuration file",
    )

    # version command
    subparsers.add_parser(
        "version",
        help="Show version information",
    )

    # debug command
    debug_parser = subparsers.add_parser(
        "debug",
        help="Run a demo flow and print its state after every step",
    )
    debug_parser.add_argument(
        "-n", "--ticks",
        type=int,
        default=3,
        help="Number of ticks to run (default: 3)",
    )
    debug_parser.add_argument(
        "--dt",
        type=float,
        default=1.0,
        help="Time per tick (default: 1.0)",
    )
    debug_parser.add_argument(
        "-p", "--period",
        type=float,
        default=1.0,
        help="Period of the demo's periodic sub-flow (default: 1.0)",
    )
    debug_parser.add_argument(
        "-d", "--debug",
        action="store_true",
        help="Enable debug output (show every executed action)",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Handle --version flag at top level
    if args.version:
        from temporalflow.cli.commands.version import cmd_version
        return cmd_version()

    if args.command is None:
        parser.print_help()
        return 0

    # Dispatch to command handlers
    if args.command == "run":
        from temporalflow.cli.commands.run import cmd_run
        return cmd_run(
            config_path=args.config,
            flow_name=args.flow,
            dry_run=args.dry_run,
        )

    elif args.command == "validate":
        from temporalflow.cli.commands.validate import cmd_validate
        return cmd_validate(config_path=args.config)

    elif args.command == "version":
        from temporalflow.cli.commands.version import cmd_version
        return cmd_version()

    elif args.command == "debug":
        from temporalflow.cli.commands.debug import cmd_debug
        return cmd_debug(
            ticks=args.ticks,
            dt=args.dt,
            period=args.period,
            debug=args.debug,
        )

    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
