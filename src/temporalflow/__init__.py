"""temporalflow - temporal, priority-ordered, partially-resolved execution flows.

A flow holds a pending expression tree that may still contain
placeholders. Data pushed into the flow fills those placeholders by
priority (branching into alternatives when more than one fill is
possible), and ticking the flow executes the tree and re-triggers
scheduled and periodic sub-flows.

Quick Start:
    >>> import temporalflow as tf
    >>>
    >>> flow = tf.TemporalFlow(pending=tf.action("add", priority=5, source=1, argument=tf.future(int)))
    >>> flow.push(2)
    True
    >>> flow.update(tf.Group(), 0)
    >>> flow.last_output
    Leaf(value=3)

For advanced usage, see:
- temporalflow.expr: node types and declarative builder
- temporalflow.flow: discovery, push engine, executor
- temporalflow.config: YAML flow definitions
- temporalflow.observability: tracing hub and sinks
"""

__version__ = "0.1.0"

# =============================================================================
# Expressions
# =============================================================================
from temporalflow.expr import (
    NO_PRIORITY,
    MIN_PRIORITY,
    DEFAULT_PRIORITY,
    Ordering,
    Polarity,
    Node,
    Leaf,
    Group,
    Action,
    Placeholder,
    Slot,
    leaf,
    all_of,
    any_of,
    action,
    future,
    past,
    either,
    build_expression,
)

# =============================================================================
# Flow
# =============================================================================
from temporalflow.flow import (
    TemporalFlow,
    SimpleExecutor,
    Executor,
    PlaceholderRef,
    Fork,
    CONTINUATION_PRIORITY,
)

# Config-driven runner (from runner.py)
from temporalflow.runner import build_flow, run_flow, RunResult

from temporalflow.errors import (
    TemporalFlowError,
    MalformedFilterError,
    ForkMisuseError,
    ExpressionBuildError,
    ExecutionError,
    UnknownVerbError,
    FlowUpdateError,
)

__all__ = [
    "__version__",
    # Expressions
    "NO_PRIORITY",
    "MIN_PRIORITY",
    "DEFAULT_PRIORITY",
    "Ordering",
    "Polarity",
    "Node",
    "Leaf",
    "Group",
    "Action",
    "Placeholder",
    "Slot",
    "leaf",
    "all_of",
    "any_of",
    "action",
    "future",
    "past",
    "either",
    "build_expression",
    # Flow
    "TemporalFlow",
    "SimpleExecutor",
    "Executor",
    "PlaceholderRef",
    "Fork",
    "CONTINUATION_PRIORITY",
    # Runner
    "build_flow",
    "run_flow",
    "RunResult",
    # Errors
    "TemporalFlowError",
    "MalformedFilterError",
    "ForkMisuseError",
    "ExpressionBuildError",
    "ExecutionError",
    "UnknownVerbError",
    "FlowUpdateError",
]
