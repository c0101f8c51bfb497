"""Pydantic validation models for temporalflow configuration.

Defines the schema for YAML flow definitions with validation rules and
sensible defaults. Expressions (pending trees, pushed content) are plain
YAML data; they are checked by building them with
:func:`temporalflow.expr.builder.build_expression`.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from temporalflow.expr.builder import build_expression


def _check_expression(value: Any) -> Any:
    # ExpressionBuildError is a ValueError, reported by pydantic as usual
    build_expression(value)
    return value


class SinkSchema(BaseModel):
    """Configuration for an observability sink.

    Attributes:
        type: Sink type (file, console, memory, null).
        path: File path for file sinks.
        options: Additional sink-specific options.
    """

    type: Literal["file", "console", "memory", "null"] = "file"
    path: Optional[str] = None
    options: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def validate_file_sink_has_path(self) -> "SinkSchema":
        """Validate that file sinks have a path."""
        if self.type == "file" and not self.path:
            raise ValueError("File sink requires 'path' to be set")
        return self


class ObservabilitySchema(BaseModel):
    """Configuration for observability/tracing.

    Attributes:
        level: Trace level (off, minimal, normal, verbose).
        sinks: List of sink configurations.
    """

    level: Literal["off", "minimal", "normal", "verbose"] = "off"
    sinks: List[SinkSchema] = Field(default_factory=list)


class ScheduleEntrySchema(BaseModel):
    """Content pushed at a moment and/or period of a flow.

    Attributes:
        at: Moment the content becomes active (0 = now).
        every: Period the content re-runs at (0 = once).
        push: Expression to push.
    """

    at: float = Field(default=0.0, ge=0)
    every: float = Field(default=0.0, ge=0)
    push: Any

    @field_validator("push")
    @classmethod
    def validate_push(cls, v: Any) -> Any:
        return _check_expression(v)


class RunSchema(BaseModel):
    """How a flow is ticked when run from a config file.

    Attributes:
        ticks: Number of update calls.
        dt: Time advanced per tick.
        time_offset: Elapsed time the flow starts at.
        context: Context expression the flow executes in.
    """

    ticks: int = Field(default=1, ge=1)
    dt: float = Field(default=1.0, gt=0)
    time_offset: float = Field(default=0.0, ge=0)
    context: Any = None

    @field_validator("context")
    @classmethod
    def validate_context(cls, v: Any) -> Any:
        return _check_expression(v)


class FlowSchema(BaseModel):
    """Configuration for a single flow.

    Attributes:
        pending: Initial pending tree.
        pushes: Expressions pushed, in order, before the first tick.
        schedule: Content pushed into scheduled/periodic sub-flows.
        run: Tick settings.
    """

    pending: Any = None
    pushes: List[Any] = Field(default_factory=list)
    schedule: List[ScheduleEntrySchema] = Field(default_factory=list)
    run: RunSchema = Field(default_factory=RunSchema)

    @field_validator("pending")
    @classmethod
    def validate_pending(cls, v: Any) -> Any:
        return _check_expression(v)

    @field_validator("pushes")
    @classmethod
    def validate_pushes(cls, v: List[Any]) -> List[Any]:
        for item in v:
            _check_expression(item)
        return v

    @model_validator(mode="after")
    def validate_not_empty(self) -> "FlowSchema":
        """A flow needs something to run."""
        if self.pending is None and not self.pushes and not self.schedule:
            raise ValueError("Flow needs at least one of 'pending', 'pushes' or 'schedule'")
        return self


class ConfigSchema(BaseModel):
    """Root configuration schema.

    Attributes:
        version: Configuration file version (currently "1.0").
        flows: Mapping of flow names to their configurations.
        observability: Tracing settings shared by all flows.
    """

    version: str = "1.0"
    flows: Dict[str, FlowSchema] = Field(min_length=1)
    observability: ObservabilitySchema = Field(default_factory=ObservabilitySchema)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        """Validate configuration version."""
        supported = {"1.0"}
        if v not in supported:
            raise ValueError(
                f"Unsupported config version: {v}. Supported: {supported}"
            )
        return v
