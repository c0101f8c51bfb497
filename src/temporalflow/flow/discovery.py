"""Placeholder discovery.

Two walks over a tree collect the positions that are still open:

- ``find_future_points``: positions that content pushed *later* may fill.
  Each is paired with the priority of the innermost enclosing action.
  AND groups are walked right-to-left so the most recently required
  input is found first. OR groups become forks. A drop in priority
  across the end of an AND scope is itself treated as an open position
  (a priority fence).
- ``find_past_points``: positions that must be filled from content that
  already exists, used when integrating new content with what a target
  already holds.
"""

from typing import List, Tuple

from temporalflow.expr.nodes import (
    MIN_PRIORITY,
    NO_PRIORITY,
    Action,
    Group,
    Node,
    Placeholder,
    Polarity,
    Slot,
)
from temporalflow.flow.point import Fork, PlaceholderRef

PAST_PRIORITY = 0.0


def _child_slots(node: Node) -> List[Slot]:
    """Slots of a scope's sub-scopes, in natural order."""
    if isinstance(node, Group):
        return [Slot(node, index) for index in range(len(node.children))]
    if isinstance(node, Placeholder) and node.content is not None:
        return [Slot(node, "content")]
    return []


def find_future_points(
    slot: Slot,
    priority: float = NO_PRIORITY,
    priority_feedback: float = MIN_PRIORITY,
) -> Tuple[List[PlaceholderRef], float]:
    """Collect open future-facing positions inside a scope.

    Args:
        slot: Position of the scope to analyze.
        priority: Priority under which the scope falls.
        priority_feedback: Highest priority seen so far by the caller.

    Returns:
        (points, updated priority feedback). Points are ordered in the
        sequence a push should try them.
    """
    node = slot.get()
    local_feedback = MIN_PRIORITY
    result: List[PlaceholderRef] = []

    if node.is_empty():
        if _is_future_facing(node):
            result.append(PlaceholderRef(priority, slot))
        return result, priority

    if isinstance(node, Group) and node.is_or_group():
        # Branch point: every branch is discovered on its own and all of
        # them hang under a single fork. A branch with nothing open is
        # registered whole, so a push can still choose it.
        fork = Fork(root=node, identity=node, identity_is_dedicated=False)
        for index in range(len(node.children)):
            branch_slot = Slot(node, index)
            branch, local_feedback = find_future_points(branch_slot, priority, local_feedback)
            if not branch:
                branch = [PlaceholderRef(priority, branch_slot)]
            fork.branches.append(branch)
        result.append(PlaceholderRef(priority, slot, fork=fork))

    elif _child_slots(node):
        for child_slot in reversed(_child_slots(node)):
            points, local_feedback = find_future_points(child_slot, priority, local_feedback)
            result.extend(points)

        if (
            priority != NO_PRIORITY
            and priority > local_feedback
            and local_feedback != MIN_PRIORITY
        ):
            # The end of an AND scope is an open position if priority
            # dropped on the boundary
            result.append(PlaceholderRef(priority, slot))
            priority_feedback = priority

    elif isinstance(node, Action):
        local_feedback = max(node.priority, local_feedback)
        for name in ("output", "argument", "source"):
            points, _ = find_future_points(Slot(node, name), node.priority, priority)
            result.extend(points)

    if local_feedback > priority_feedback:
        priority_feedback = local_feedback

    if _is_future_facing(node):
        result.append(PlaceholderRef(priority, slot))
    return result, priority_feedback


def find_past_points(slot: Slot) -> List[PlaceholderRef]:
    """Collect open past-facing positions inside a scope.

    Args:
        slot: Position of the scope to analyze.

    Returns:
        Refs to every placeholder whose polarity is not FUTURE, inner
        positions first. Actions are searched output, argument, source.
    """
    node = slot.get()
    result: List[PlaceholderRef] = []

    if isinstance(node, Action):
        for name in ("output", "argument", "source"):
            result.extend(find_past_points(Slot(node, name)))
    else:
        for child_slot in _child_slots(node):
            result.extend(find_past_points(child_slot))

    if isinstance(node, Placeholder) and node.polarity is not Polarity.FUTURE:
        result.append(PlaceholderRef(PAST_PRIORITY, slot))
    return result


def _is_future_facing(node: Node) -> bool:
    return isinstance(node, Placeholder) and node.polarity is not Polarity.PAST


__all__ = ["PAST_PRIORITY", "find_future_points", "find_past_points"]
