"""Execution preparation.

Before a pending tree is handed to an executor, every placeholder is
replaced by whatever content it gathered. Placeholders that gathered
nothing disappear (become empty groups). When a placeholder has a single
type tag and its content does not match it yet, a best-effort conversion
is attempted; if the conversion is not possible the content is kept as-is.
"""

import logging
from typing import List, Optional

from temporalflow.expr.nodes import Action, Group, Leaf, Node, Ordering, Placeholder

logger = logging.getLogger(__name__)


def prepare_for_execution(node: Node) -> Node:
    """Return an executable copy of a tree.

    Args:
        node: Pending tree, possibly holding placeholders.

    Returns:
        A new tree without any placeholders. The input is not modified.
    """
    if isinstance(node, Placeholder):
        return _finalize(node)
    if isinstance(node, Group):
        return Group(node.ordering, [prepare_for_execution(child) for child in node.children])
    if isinstance(node, Action):
        return Action(
            verb=node.verb,
            priority=node.priority,
            source=prepare_for_execution(node.source),
            argument=prepare_for_execution(node.argument),
            output=prepare_for_execution(node.output),
        )
    return node.clone()


def _finalize(placeholder: Placeholder) -> Node:
    if not placeholder.has_content():
        return Group()

    content = prepare_for_execution(placeholder.content)
    if len(placeholder.filter) != 1:
        return _unwrap(content)

    tag = placeholder.filter[0]
    converted = _convert(content, tag)
    if converted is None:
        logger.debug("Content %s left as-is for %s", content, tag.__name__)
        return _unwrap(content)
    return converted


def _convert(content: Group, tag: type) -> Optional[Node]:
    """Convert content into a single leaf of the given type, if possible."""
    leaves: List[Leaf] = list(content.iter_leaves())
    if not leaves or len(leaves) != _count_nodes(content) - 1:
        # Only plain collections of leaves can be converted
        return None
    if any(isinstance(item.value, type) for item in leaves):
        return None

    if len(leaves) == 1 and isinstance(leaves[0].value, tag):
        return leaves[0]

    if issubclass(tag, str):
        return Leaf(tag("".join(str(item.value) for item in leaves)))

    if len(leaves) != 1:
        return None
    try:
        return Leaf(tag(leaves[0].value))
    except (TypeError, ValueError):
        return None


def _count_nodes(node: Node) -> int:
    count = 0

    def tally(_: Node) -> bool:
        nonlocal count
        count += 1
        return True

    node.visit(tally)
    return count


def _unwrap(content: Group) -> Node:
    if content.ordering is Ordering.AND and len(content.children) == 1:
        return content.children[0]
    return content


__all__ = ["prepare_for_execution"]
