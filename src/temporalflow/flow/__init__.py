"""Temporal flow engine.

Key Components:
- TemporalFlow: pending tree plus scheduled and periodic sub-flows
- PlaceholderRef / Fork: live handles to open positions and branch points
- find_future_points / find_past_points: placeholder discovery
- inner_push / filter_and_insert / insert: the push/fill engine
- prepare_for_execution: strips placeholders before execution
- SimpleExecutor: reference executor with a verb registry

Example:
    >>> from temporalflow.expr import action, any_of, future
    >>> from temporalflow.flow import TemporalFlow
    >>>
    >>> flow = TemporalFlow(pending=action("echo", priority=5, argument=future()))
    >>> flow.push(any_of("left", "right"))   # ambiguous: branches
    True
    >>> print(flow.pending)
    echo!5(arg: (??['left'] or ??['right']))
"""

from temporalflow.flow.point import Fork, PlaceholderRef
from temporalflow.flow.discovery import PAST_PRIORITY, find_future_points, find_past_points
from temporalflow.flow.push import inner_push, would_accept, filter_and_insert, insert
from temporalflow.flow.prepare import prepare_for_execution
from temporalflow.flow.executor import (
    Executor,
    SimpleExecutor,
    ExecutionEvent,
    ExecutionHook,
    VerbHandler,
)
from temporalflow.flow.temporal import TemporalFlow, CONTINUATION_PRIORITY, CONTINUATION_VERB

__all__ = [
    # Points
    "Fork",
    "PlaceholderRef",
    # Discovery
    "PAST_PRIORITY",
    "find_future_points",
    "find_past_points",
    # Push engine
    "inner_push",
    "would_accept",
    "filter_and_insert",
    "insert",
    # Execution
    "prepare_for_execution",
    "Executor",
    "SimpleExecutor",
    "ExecutionEvent",
    "ExecutionHook",
    "VerbHandler",
    # Scheduler
    "TemporalFlow",
    "CONTINUATION_PRIORITY",
    "CONTINUATION_VERB",
]
