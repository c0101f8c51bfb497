"""Run command for temporalflow CLI."""

import sys
from pathlib import Path
from typing import Dict, Optional

from temporalflow.config import ConfigLoadError, FlowSchema, load_yaml_config
from temporalflow.errors import TemporalFlowError


def cmd_run(
    config_path: str,
    flow_name: Optional[str] = None,
    dry_run: bool = False,
) -> int:
    """Run flows from configuration.

    Args:
        config_path: Path to the YAML configuration file.
        flow_name: Specific flow to run (None for all).
        dry_run: If True, build and show flows without executing.

    Returns:
        Exit code (0 for success, 1 for errors).
    """
    path = Path(config_path)

    if not path.exists():
        print(f"Error: Configuration file not found: {path}", file=sys.stderr)
        return 1

    try:
        config = load_yaml_config(path)
    except ConfigLoadError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    if flow_name:
        if flow_name not in config.flows:
            print(
                f"Error: Flow '{flow_name}' not found. "
                f"Available: {list(config.flows.keys())}",
                file=sys.stderr,
            )
            return 1
        flows_to_run = {flow_name: config.flows[flow_name]}
    else:
        flows_to_run = config.flows

    if dry_run:
        return _dry_run(flows_to_run)
    return _execute(config, flow_name)


def _dry_run(flows: Dict[str, FlowSchema]) -> int:
    """Build every flow and print it without ticking."""
    from temporalflow.runner import build_flow

    print("Dry run - showing built flows:")
    print("=" * 50)

    for name, schema in flows.items():
        print(f"\nFlow: {name}")
        print("-" * 40)
        flow = build_flow(schema)
        print(flow.to_debug_string())
        print(
            f"Run: {schema.run.ticks} ticks of {schema.run.dt:g}"
            f" (offset {schema.run.time_offset:g})"
        )

    print("\n" + "=" * 50)
    print("Dry run complete. No flows were executed.")
    return 0


def _execute(config, flow_name: Optional[str]) -> int:
    from temporalflow.runner import run_config

    try:
        results = run_config(config, flow_name)
    except TemporalFlowError as e:
        print(f"Error running flow: {e}", file=sys.stderr)
        return 1

    for name, result in results.items():
        print(f"Flow: {name}")
        print(f"  Ticks: {result.ticks}, elapsed: {result.flow.time_elapsed:g}")
        print(f"  Outputs: {len(result.outputs)}")
        for output in result.outputs:
            print(f"    - {output}")
    return 0
