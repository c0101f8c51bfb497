"""Configuration system for temporalflow.

Provides YAML-based declarative flow definitions with:
- Pydantic schema validation
- Environment variable substitution (${VAR} and ${VAR:-default})
- Expressions written as plain YAML data

Example YAML config:
    version: "1.0"
    flows:
      greeter:
        pending:
          action: echo
          priority: 5
          argument: {missing: future, filter: [text]}
        pushes:
          - "hello"
        schedule:
          - at: 2
            push: {action: echo, argument: "later"}
          - every: 1
            push: {action: echo, argument: "tick"}
        run:
          ticks: 4
          dt: 1.0
    observability:
      level: normal
      sinks:
        - type: file
          path: "${LOG_DIR:-./logs}/trace.jsonl"

Example usage:
    >>> from temporalflow.config import load_yaml_config
    >>> config = load_yaml_config("flows.yaml")
    >>> for name, flow in config.flows.items():
    ...     print(f"Flow: {name}")
"""

from temporalflow.config.schema import (
    ConfigSchema,
    FlowSchema,
    ScheduleEntrySchema,
    RunSchema,
    ObservabilitySchema,
    SinkSchema,
)
from temporalflow.config.loader import (
    load_yaml_config,
    load_yaml_string,
    substitute_env_vars,
    ConfigLoadError,
)

__all__ = [
    # Schema models
    "ConfigSchema",
    "FlowSchema",
    "ScheduleEntrySchema",
    "RunSchema",
    "ObservabilitySchema",
    "SinkSchema",
    # Loader
    "load_yaml_config",
    "load_yaml_string",
    "substitute_env_vars",
    "ConfigLoadError",
]
