"""Validate command for temporalflow CLI."""

import sys
from pathlib import Path

from temporalflow.config import load_yaml_config, ConfigLoadError
from temporalflow.expr import build_expression


def cmd_validate(config_path: str) -> int:
    """Validate a configuration file.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Exit code (0 for success, 1 for validation errors).
    """
    path = Path(config_path)

    if not path.exists():
        print(f"Error: Configuration file not found: {path}", file=sys.stderr)
        return 1

    print(f"Validating: {path}")

    try:
        config = load_yaml_config(path)
    except ConfigLoadError as e:
        print(f"Validation failed: {e}", file=sys.stderr)
        return 1

    print(f"  Version: {config.version}")
    print(f"  Flows: {len(config.flows)}")

    for flow_name, flow in config.flows.items():
        print(f"\n  Flow '{flow_name}':")
        print(f"    Pending: {build_expression(flow.pending)}")
        print(f"    Pushes: {len(flow.pushes)}")
        for entry in flow.schedule:
            print(f"      @{entry.at:g} ^{entry.every:g}: {build_expression(entry.push)}")
        print(f"    Run: {flow.run.ticks} x {flow.run.dt:g}")

    print(f"\n  Observability: {config.observability.level}")
    for sink in config.observability.sinks:
        sink_info = sink.type
        if sink.path:
            sink_info += f" -> {sink.path}"
        print(f"    - {sink_info}")

    print("\nConfiguration is valid.")
    return 0
