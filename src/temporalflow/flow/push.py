"""Push/fill engine.

Decides where pushed content goes, when branching is required, and
performs the fill. Every function takes two orthogonal flags that are
threaded through every level of recursion:

- ``attempt``: pure predicate mode; nothing is mutated, the return value
  tells whether the real operation would place anything.
- ``clone``: copy content instead of moving it out of its container.
  Used once branching was decided, so that writes into one branch never
  corrupt content that other branches still need.

Example:
    >>> from temporalflow.expr import Slot, future, leaf
    >>> from temporalflow.flow.discovery import find_future_points
    >>> holder = Slot.holding(future(int))
    >>> points, _ = find_future_points(holder)
    >>> inner_push(points, leaf(3))
    True
    >>> holder.get().to_debug_string()
    'int??[3]'
"""

import logging
from typing import List, Optional, Set

from temporalflow.expr.nodes import Action, Group, Node, Ordering, Placeholder, Slot
from temporalflow.flow.discovery import find_past_points
from temporalflow.flow.point import PlaceholderRef
from temporalflow.observability import ObservabilityHub
from temporalflow.observability.records import BranchRecord

logger = logging.getLogger(__name__)


def inner_push(
    futures: List[PlaceholderRef],
    content: Node,
    attempt: bool = False,
    clone: bool = False,
) -> bool:
    """Push content into the first future points that accept it.

    Args:
        futures: Candidate points, in the order they should be tried.
        content: Content to place.
        attempt: Only check whether the push would succeed.
        clone: Copy content instead of moving it.

    Returns:
        True if at least one element of content was placed.
    """
    if content.is_empty():
        return False

    if isinstance(content, Group):
        live = content.live_children()
        if content.ordering is Ordering.OR and len(live) > 1:
            return _push_alternatives(futures, live, attempt, clone)

        done = False
        for child in live:
            if inner_push(futures, child, attempt, clone):
                done = True
        return done

    done = False
    for future in futures:
        if _outranks(content, future):
            continue

        if future.is_fork:
            # Multicast to every parallel future
            for branch in future.fork.branches:
                if inner_push(branch, content, attempt, clone=True):
                    done = True
        else:
            done = filter_and_insert(future, content, attempt, clone)

        if done:
            break
    return done


def _push_alternatives(
    futures: List[PlaceholderRef],
    alternatives: List[Node],
    attempt: bool,
    clone: bool,
) -> bool:
    """Push OR content, branching only when more than one option fits."""
    anticipated = [
        alternative
        for alternative in alternatives
        if inner_push(futures, alternative, attempt=True, clone=True)
    ]
    if not anticipated:
        return False
    if attempt:
        return True

    if len(anticipated) == 1:
        # A single viable option needs no branching
        inner_push(futures, anticipated[0], clone=clone)
        return True

    target = _common_target(futures, anticipated)
    if target is None:
        logger.debug("No single point accepts all %d alternatives", len(anticipated))
        return False

    was_fork = target.is_fork
    for alternative in anticipated:
        branch = target.add_branch()
        inner_push(branch, alternative, clone=True)

    if not was_fork:
        _drop_detached(futures, target)

    hub = ObservabilityHub.get_instance()
    if hub.enabled:
        hub.emit(BranchRecord(
            priority=target.priority,
            branch_count=len(target.fork.branches),
            added=len(anticipated),
        ))
    return True


def _common_target(futures: List[PlaceholderRef], alternatives: List[Node]) -> Optional[PlaceholderRef]:
    """First point that would accept every alternative."""
    for future in futures:
        if any(_outranks(alternative, future) for alternative in alternatives):
            continue
        if all(would_accept(future, alternative) for alternative in alternatives):
            return future
    return None


def _drop_detached(futures: List[PlaceholderRef], target: PlaceholderRef) -> None:
    """Remove refs that now point into the moved-aside fork identity."""
    inside: Set[int] = set()

    def mark(node: Node) -> bool:
        inside.add(id(node))
        return True

    target.fork.identity.visit(mark)
    futures[:] = [
        future for future in futures
        if future is target or id(future.slot.owner) not in inside
    ]


def _outranks(element: Node, future: PlaceholderRef) -> bool:
    """An action cannot be demoted into a point below its priority."""
    return isinstance(element, Action) and future.priority < element.priority


def would_accept(future: PlaceholderRef, content: Node) -> bool:
    """Dry-run a fill; forks are probed through their identity."""
    if future.is_fork:
        probe = PlaceholderRef(future.priority, Slot.holding(future.fork.identity))
        return filter_and_insert(probe, content, attempt=True, clone=True)
    return filter_and_insert(future, content, attempt=True, clone=True)


def filter_and_insert(
    point: PlaceholderRef,
    content: Node,
    attempt: bool = False,
    clone: bool = False,
) -> bool:
    """Filter content through a point and add whatever it accepts.

    AND groups are inserted element by element; elements taken by the
    point are removed from the group unless cloning. OR groups are
    integrated as a whole, each alternative against the same context.

    Returns:
        True if anything was (or, in attempt mode, would be) inserted.
    """
    if isinstance(content, Group):
        live = content.live_children()
        if content.ordering is Ordering.OR and len(live) > 1:
            inserted = Group()
            if not insert(point, content, inserted, attempt, clone):
                return False
            if not attempt:
                point.add_content(inserted)
                if not clone:
                    content.children.clear()
            return True

        success = False
        consumed: Set[int] = set()
        for child in live:
            if filter_and_insert(point, child, attempt, clone):
                success = True
                consumed.add(id(child))
        if consumed and not attempt and not clone:
            content.children[:] = [c for c in content.children if id(c) not in consumed]
        return success

    inserted = Group()
    if insert(point, content, inserted, attempt, clone):
        if not attempt:
            point.add_content(inserted)
        return True
    return False


def insert(
    context: PlaceholderRef,
    content: Node,
    output: Group,
    attempt: bool = False,
    clone: bool = False,
) -> bool:
    """Integrate content with a point's existing content.

    Past placeholders inside the content are filled from what the
    context point already holds; this is where that content may be
    consumed. The integrated result is appended to ``output``.

    Args:
        context: Point whose content serves as the past.
        content: Content to integrate.
        output: Receives integrated content (unless attempting).
        attempt: Only check whether integration would succeed.
        clone: Copy content instead of moving it. The context is
            consumed either way.

    Returns:
        True on success.
    """
    if isinstance(content, Group):
        live = content.live_children()
        if content.ordering is Ordering.AND or len(live) <= 1:
            for child in live:
                if not insert(context, child, output, attempt, clone):
                    return False
            return True

        # Alternatives work on copies of the content, and the context is
        # collapsed once all were processed
        local_output = Group(Ordering.OR)
        success = False
        for child in live:
            if insert(context, child, local_output, attempt, clone=True):
                success = True
        if success and not attempt and local_output.children:
            context.collapse()
            if len(local_output.children) == 1:
                output.children.append(local_output.children[0])
            else:
                output.children.append(local_output)
        return success

    if context.filter and (isinstance(content, Action) or not context.accepts(content)):
        return False

    if attempt:
        local = content
    else:
        local = content.clone() if clone else content

    holder = Slot.holding(local)
    pasts = find_past_points(holder)
    if pasts:
        past_content = _past_context(context, attempt)
        if past_content is None or past_content.is_empty():
            # Nothing to integrate with, unless relevant content exists
            return context.has_relevant_content()

        for past in pasts:
            # The context is consumed even when the content is copied
            if filter_and_insert(past, past_content, attempt, clone=False):
                continue
            if context.has_relevant_content():
                continue
            if not attempt:
                logger.debug(
                    "Can't past-integrate %s with %s (requires %s)",
                    local, past_content, past.filter,
                )
            return False

    if not attempt:
        output.children.append(holder.get())
    return True


def _past_context(context: PlaceholderRef, attempt: bool) -> Optional[Group]:
    """Group holding the content a point offers as the past.

    Non-group targets are wrapped so consumed elements can be removed;
    the wrap is only written back into the tree for real pushes.
    """
    node = context.node
    if isinstance(node, Placeholder):
        return node.content
    if isinstance(node, Group):
        return node
    wrapped = Group(Ordering.AND, [node])
    if not attempt:
        context.slot.set(wrapped)
    return wrapped


__all__ = [
    "inner_push",
    "would_accept",
    "filter_and_insert",
    "insert",
]
