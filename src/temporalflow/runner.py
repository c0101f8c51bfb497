"""Config-driven flow runner.

This module turns validated configuration into running flows. It handles:
- Building a TemporalFlow from a FlowSchema (pending tree, pushes, schedule)
- Configuring the ObservabilityHub from an ObservabilitySchema
- Ticking flows and collecting everything the executor produced

Example:
    >>> from temporalflow.config import load_yaml_config
    >>> config = load_yaml_config("flows.yaml")
    >>> results = run_config(config)
    >>> for name, result in results.items():
    ...     print(name, [str(o) for o in result.outputs])
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from temporalflow.config.schema import ConfigSchema, FlowSchema, ObservabilitySchema
from temporalflow.expr.builder import build_expression
from temporalflow.expr.nodes import Node
from temporalflow.flow.executor import Executor, SimpleExecutor
from temporalflow.flow.temporal import TemporalFlow
from temporalflow.observability import (
    ConsoleSink,
    FileSink,
    MemorySink,
    NullSink,
    ObservabilityHub,
    Sink,
    TraceLevel,
)
from temporalflow.observability.records import SessionEndRecord, SessionStartRecord

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Result from running a flow."""
    flow: TemporalFlow
    outputs: List[Node] = field(default_factory=list)
    ticks: int = 0
    duration_sec: float = 0.0


class OutputCollector:
    """Executor wrapper that records every non-empty output.

    Flows hand the same executor down to their scheduled and periodic
    children, so wrapping the root's executor sees every execution.
    """

    def __init__(self, inner: Executor, on_output: Optional[Callable[[Node], None]] = None):
        self.inner = inner
        self._on_output = on_output
        self.outputs: List[Node] = []

    def execute(self, context: Node, expression: Node):
        context, output = self.inner.execute(context, expression)
        if not output.is_empty():
            self.outputs.append(output)
            if self._on_output is not None:
                self._on_output(output)
        return context, output


def build_flow(schema: FlowSchema, executor: Optional[Executor] = None) -> TemporalFlow:
    """Construct a flow from its configuration.

    The pending tree is built first, then every push is applied in
    order, then every schedule entry is pushed at its moment/period.

    Args:
        schema: Validated flow configuration.
        executor: Executor for the flow and all its children.

    Returns:
        The constructed flow (not yet ticked).
    """
    flow = TemporalFlow(executor=executor, pending=build_expression(schema.pending))

    for item in schema.pushes:
        content = build_expression(item)
        if not flow.push(content):
            logger.warning("Push of %s was not accepted", content)

    for entry in schema.schedule:
        content = build_expression(entry.push)
        if not flow.push_at(content, moment=entry.at, period=entry.every):
            logger.warning("Push of %s at @%g^%g was not accepted", content, entry.at, entry.every)

    return flow


def configure_observability(schema: ObservabilitySchema) -> List[Sink]:
    """Configure the global hub from configuration.

    Returns:
        The sinks that were added (already registered with the hub).
    """
    sinks: List[Sink] = []
    for sink_config in schema.sinks:
        if sink_config.type == "file" and sink_config.path:
            sinks.append(FileSink(sink_config.path, **sink_config.options))
        elif sink_config.type == "console":
            sinks.append(ConsoleSink(**sink_config.options))
        elif sink_config.type == "memory":
            sinks.append(MemorySink(**sink_config.options))
        elif sink_config.type == "null":
            sinks.append(NullSink())

    hub = ObservabilityHub.get_instance()
    hub.configure(level=TraceLevel.from_name(schema.level), sinks=sinks)
    return sinks


def run_flow(
    flow: TemporalFlow,
    context: Any = None,
    *,
    ticks: int = 1,
    dt: float = 1.0,
    time_offset: float = 0.0,
    flow_name: str = "",
) -> RunResult:
    """Tick a flow a number of times.

    The first tick goes through ``execute`` with ``time_offset``; with a
    non-zero offset the pending tree is treated as already started and
    is not executed. Later ticks are plain ``update`` calls.

    Args:
        flow: Flow to run.
        context: Context expression (raw data is built).
        ticks: Number of ticks.
        dt: Time per tick.
        time_offset: Elapsed time before the first tick.
        flow_name: Name used in trace records.

    Returns:
        RunResult with every output the executor produced.

    Raises:
        FlowUpdateError: If an execution fails.
    """
    context_node = build_expression(context)
    collector = OutputCollector(flow.executor)
    _rebind_executor(flow, collector)

    hub = ObservabilityHub.get_instance()
    session_id = uuid.uuid4().hex[:12]
    hub.reset_counts()
    if hub.enabled:
        hub.emit(SessionStartRecord(
            session_id=session_id,
            flow_name=flow_name,
            ticks=ticks,
            dt=dt,
            config={"time_offset": time_offset},
            trace_level=hub.level.name.lower(),
        ))

    start_time = time.perf_counter()
    try:
        flow.execute(context_node, time_offset, dt)
        for _ in range(ticks - 1):
            flow.update(context_node, dt)
    finally:
        _rebind_executor(flow, collector.inner)

    duration = time.perf_counter() - start_time
    if hub.enabled:
        hub.emit(SessionEndRecord(
            session_id=session_id,
            duration_sec=duration,
            total_ticks=ticks,
            time_elapsed=flow.time_elapsed,
            outputs=[output.to_debug_string() for output in collector.outputs],
            record_counts=hub.counts,
        ))
        hub.flush()

    return RunResult(flow=flow, outputs=collector.outputs, ticks=ticks, duration_sec=duration)


def _rebind_executor(flow: TemporalFlow, executor: Executor) -> None:
    flow.executor = executor
    for child in list(flow.scheduled.values()) + list(flow.periodic.values()):
        _rebind_executor(child, executor)


def run_config(
    config: ConfigSchema,
    flow_name: Optional[str] = None,
    executor: Optional[Executor] = None,
) -> Dict[str, RunResult]:
    """Build and run flows from a configuration.

    Observability is configured from the config for the duration of the
    run and shut down afterwards.

    Args:
        config: Validated configuration.
        flow_name: Run only this flow (default: all, in file order).
        executor: Shared executor (default: a new SimpleExecutor).

    Raises:
        KeyError: If flow_name is not defined in the config.
    """
    if flow_name is not None:
        if flow_name not in config.flows:
            raise KeyError(flow_name)
        selected = {flow_name: config.flows[flow_name]}
    else:
        selected = dict(config.flows)

    if executor is None:
        executor = SimpleExecutor()

    configure_observability(config.observability)
    hub = ObservabilityHub.get_instance()
    results: Dict[str, RunResult] = {}
    try:
        for name, schema in selected.items():
            logger.info("Running flow '%s'", name)
            flow = build_flow(schema, executor)
            results[name] = run_flow(
                flow,
                schema.run.context,
                ticks=schema.run.ticks,
                dt=schema.run.dt,
                time_offset=schema.run.time_offset,
                flow_name=name,
            )
    finally:
        hub.shutdown()
    return results


__all__ = [
    "RunResult",
    "OutputCollector",
    "build_flow",
    "configure_observability",
    "run_flow",
    "run_config",
]
