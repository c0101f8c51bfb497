"""TemporalFlow: pending tree plus time-keyed sub-flows.

A flow keeps three things:

- ``pending``: an expression tree that may still contain placeholders.
  ``push`` fills those placeholders (or appends to the tree when nothing
  more specific accepts the content).
- ``scheduled``: child flows keyed by the moment (time since this flow's
  epoch) at which they start running.
- ``periodic``: child flows keyed by the period at which they re-run.

``update(context, dt)`` drives everything. On the first tick after a
reset the pending tree is prepared and handed to the executor, and then
replaced by a trivial continuation that carries the resulting context, so
later pushes link against it. Time then advances; periodic children fire
once per whole period elapsed (drift-free), scheduled children whose
moment has passed are updated with the same ``dt``.

Example:
    >>> from temporalflow.expr import action, future
    >>> flow = TemporalFlow(pending=action("echo", priority=5, argument=future(int)))
    >>> flow.push(42)
    True
    >>> flow.update(Group(), 0)
    >>> flow.last_output
    Leaf(value=42)
"""

import logging
import time
from typing import Any, Dict, List, Optional, Tuple

from temporalflow.errors import ExecutionError, FlowUpdateError
from temporalflow.expr.builder import as_node
from temporalflow.expr.nodes import (
    NO_PRIORITY,
    Action,
    Group,
    Node,
    Ordering,
    Placeholder,
    Polarity,
    Slot,
)
from temporalflow.flow.discovery import find_future_points
from temporalflow.flow.executor import Executor, SimpleExecutor
from temporalflow.flow.point import PlaceholderRef
from temporalflow.flow.prepare import prepare_for_execution
from temporalflow.flow.push import inner_push
from temporalflow.observability import ObservabilityHub
from temporalflow.observability.records import (
    ExecuteRecord,
    PeriodicFireRecord,
    PushRecord,
)

logger = logging.getLogger(__name__)

# Priority of the continuation left behind after execution. Pushes that
# follow an update bind to it before anything of lower priority.
CONTINUATION_PRIORITY = 8.0
CONTINUATION_VERB = "do"


class TemporalFlow:
    """A temporal, priority-ordered execution flow.

    Args:
        executor: Runs prepared pending trees. Defaults to the parent's
            executor, or a new SimpleExecutor.
        pending: Initial pending tree (raw values are wrapped).
        parent: Flow this one is created under; only its executor is used.

    Attributes:
        pending: The pending tree.
        time_elapsed: Time since this flow's epoch (last reset).
        duration: Latest moment any scheduled child starts at.
        scheduled: Child flows by start moment.
        periodic: Child flows by period.
        last_output: Output of the most recent execution.
    """

    def __init__(
        self,
        executor: Optional[Executor] = None,
        pending: Any = None,
        parent: Optional["TemporalFlow"] = None,
    ) -> None:
        if executor is None:
            executor = parent.executor if parent is not None else SimpleExecutor()
        self.executor = executor
        self.pending: Node = as_node(pending)
        self.time_elapsed: float = 0.0
        self.duration: float = 0.0
        self.scheduled: Dict[float, "TemporalFlow"] = {}
        self.periodic: Dict[float, "TemporalFlow"] = {}
        self.last_output: Node = Group()

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------

    def find_future_points(self) -> List[PlaceholderRef]:
        """Open points of the pending tree, ending with the catch-all.

        The catch-all covers the whole pending tree at NO_PRIORITY, so a
        push always has at least one candidate.
        """
        root = Slot(self, "pending")
        futures, _ = find_future_points(root, NO_PRIORITY, NO_PRIORITY)
        futures.append(PlaceholderRef(NO_PRIORITY, root))
        return futures

    def push(self, content: Any) -> bool:
        """Insert content into the pending tree.

        Content is cloned first; the caller's tree is never modified.

        Args:
            content: Node or raw value to push.

        Returns:
            True if anything was placed (always True for empty content).
            False means nothing accepted the content, and nothing changed.
        """
        return self._push(as_node(content))

    def push_at(self, content: Any, moment: float = 0.0, period: float = 0.0) -> bool:
        """Push content into a scheduled and/or periodic child flow.

        A non-zero moment selects (or creates) the child scheduled at that
        moment; a non-zero period then selects (or creates) a periodic
        child under it. With both zero this is a plain ``push``.

        Raises:
            ValueError: If moment or period is negative.
        """
        if moment < 0:
            raise ValueError(f"Cannot push at negative time: {moment}")
        if period < 0:
            raise ValueError(f"Cannot push at negative period: {period}")

        flow = self
        if moment:
            flow = flow.schedule_at(moment)
        if period:
            flow = flow.schedule_every(period)
        return flow._push(as_node(content), moment, period)

    def _push(self, content: Node, moment: float = 0.0, period: float = 0.0) -> bool:
        if content.is_empty():
            return True

        content = content.clone()
        futures = self.find_future_points()
        logger.debug("Pushing %s into %d points", content, len(futures))
        accepted = inner_push(futures, content)
        if not accepted:
            logger.debug("Nothing accepted %s", content)

        hub = ObservabilityHub.get_instance()
        if hub.enabled:
            hub.emit(PushRecord(
                content=content.to_debug_string(),
                accepted=accepted,
                futures=len(futures),
                moment=moment,
                period=period,
                pending=self.pending.to_debug_string() if hub.verbose else "",
            ))
        return accepted

    # ------------------------------------------------------------------
    # Schedules
    # ------------------------------------------------------------------

    def schedule_at(self, moment: float) -> "TemporalFlow":
        """Child flow that starts at the given moment (created if missing)."""
        if moment < 0:
            raise ValueError(f"Moment must be >= 0, got {moment}")
        flow = self.scheduled.get(moment)
        if flow is None:
            flow = TemporalFlow(parent=self)
            self.scheduled[moment] = flow
            self.duration = max(self.duration, moment)
            logger.debug("Created scheduled flow @%g", moment)
        return flow

    def schedule_every(self, period: float) -> "TemporalFlow":
        """Child flow that re-runs every period (created if missing)."""
        if period <= 0:
            raise ValueError(f"Period must be > 0, got {period}")
        flow = self.periodic.get(period)
        if flow is None:
            flow = TemporalFlow(parent=self)
            self.periodic[period] = flow
            logger.debug("Created periodic flow ^%g", period)
        return flow

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def update(self, context: Node, dt: float) -> None:
        """Advance the flow.

        Args:
            context: Context the pending tree executes in.
            dt: Time to advance by.

        Raises:
            ValueError: If dt is negative.
            FlowUpdateError: If the executor fails. The flow is left as
                it was before execution.
        """
        if dt < 0:
            raise ValueError(f"dt must be >= 0, got {dt}")

        if self.time_elapsed == 0:
            self._run_pending(context)

        if dt == 0:
            return

        self.time_elapsed += dt

        for period, flow in self.periodic.items():
            self._advance_periodic(context, period, flow, dt)

        for moment in sorted(self.scheduled):
            if moment > self.time_elapsed:
                break
            self.scheduled[moment].update(context, dt)

    def execute(self, context: Node, time_offset: float = 0.0, time_period: float = 0.0) -> None:
        """Set the elapsed time, then update by ``time_period``."""
        self.time_elapsed = time_offset
        self.update(context, time_period)

    def _run_pending(self, context: Node) -> None:
        prepared = prepare_for_execution(self.pending)
        logger.debug("Executing %s", prepared)

        start_time = time.perf_counter()
        try:
            new_context, output = self.executor.execute(context, prepared)
        except ExecutionError as e:
            raise FlowUpdateError(self.to_debug_string(), e) from e
        elapsed_ms = (time.perf_counter() - start_time) * 1000

        context_changed = new_context != context
        if context_changed:
            source: Node = Group(Ordering.OR, [new_context.clone(), context.clone()])
        else:
            source = new_context.clone()

        self.last_output = output
        self.pending = Action(
            verb=CONTINUATION_VERB,
            priority=CONTINUATION_PRIORITY,
            source=source,
            argument=Placeholder(Polarity.FUTURE),
        )
        logger.debug("Flow after execution: %s", self.pending)

        hub = ObservabilityHub.get_instance()
        if hub.enabled:
            hub.emit(ExecuteRecord(
                expression=prepared.to_debug_string(),
                context=context.to_debug_string(),
                output=output.to_debug_string(),
                context_changed=context_changed,
                processing_ms=elapsed_ms,
            ))

    def _advance_periodic(self, context: Node, period: float, flow: "TemporalFlow", dt: float) -> None:
        elapsed = flow.time_elapsed + dt
        if elapsed < period:
            flow.time_elapsed = elapsed
            return

        hub = ObservabilityHub.get_instance()
        fire_index = 0
        while elapsed >= period:
            elapsed -= period
            fire_index += 1
            # Only the final fire carries the remainder forward
            remainder = elapsed if elapsed < period else 0.0
            if hub.enabled:
                hub.emit(PeriodicFireRecord(period=period, remainder=remainder, fire_index=fire_index))
            flow.reset()
            flow.update(context, remainder)

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def merge(self, other: "TemporalFlow") -> None:
        """Absorb another flow.

        Its pending tree is pushed into this one; each of its scheduled
        children is merged into the matching child here (created if
        missing).
        """
        self.push(other.pending)
        for moment in sorted(other.scheduled):
            self.schedule_at(moment).merge(other.scheduled[moment])

    def reset(self) -> None:
        """Rewind to the epoch. The pending tree is kept."""
        self.time_elapsed = 0.0

    def clone(self) -> "TemporalFlow":
        """Deep copy of the flow; the executor is shared."""
        flow = TemporalFlow(executor=self.executor, pending=self.pending.clone())
        flow.time_elapsed = self.time_elapsed
        flow.duration = self.duration
        flow.scheduled = {moment: child.clone() for moment, child in self.scheduled.items()}
        flow.periodic = {period: child.clone() for period, child in self.periodic.items()}
        flow.last_output = self.last_output.clone()
        return flow

    def is_valid(self) -> bool:
        """True if there is anything to run."""
        return not self.pending.is_empty() or bool(self.scheduled) or bool(self.periodic)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TemporalFlow):
            return NotImplemented
        return (
            self.pending == other.pending
            and self.scheduled == other.scheduled
            and self.periodic == other.periodic
        )

    __hash__ = None  # type: ignore[assignment]

    # ------------------------------------------------------------------
    # Debugging
    # ------------------------------------------------------------------

    def to_debug_string(self) -> str:
        lines = [
            f"TemporalFlow(elapsed={self.time_elapsed:g}, duration={self.duration:g})",
            f"  pending: {self.pending.to_debug_string()}",
        ]
        for label, children in self._labelled_children():
            lines.append(f"  {label}:")
            lines.extend("    " + line for line in children.to_debug_string().splitlines())
        return "\n".join(lines)

    def _labelled_children(self) -> List[Tuple[str, "TemporalFlow"]]:
        labelled = [(f"^{period:g}", flow) for period, flow in sorted(self.periodic.items())]
        labelled += [(f"@{moment:g}", flow) for moment, flow in sorted(self.scheduled.items())]
        return labelled

    def dump(self) -> None:
        """Log the debug rendering of the flow."""
        for line in self.to_debug_string().splitlines():
            logger.debug("%s", line)

    def __repr__(self) -> str:
        return (
            f"TemporalFlow(pending={self.pending.to_debug_string()!r}, "
            f"scheduled={sorted(self.scheduled)}, periodic={sorted(self.periodic)})"
        )


__all__ = ["TemporalFlow", "CONTINUATION_PRIORITY", "CONTINUATION_VERB"]
