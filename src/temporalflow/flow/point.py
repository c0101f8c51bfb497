"""Placeholder references and forks.

A PlaceholderRef is a live handle to an open position in a pending tree,
paired with the priority of the innermost enclosing action. Most refs
point at a Placeholder node; some point at arbitrary nodes (the whole
pending tree as a catch-all, a whole OR branch, a priority fence), in
which case the target has no filter and content is appended to the node
itself.

A ref that has been turned into a branch point carries a Fork: the
original content (identity) is kept aside and every branch receives its
own clone of it.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from temporalflow.errors import ForkMisuseError
from temporalflow.expr.nodes import (
    NO_PRIORITY,
    Group,
    Leaf,
    Node,
    Ordering,
    Placeholder,
    Polarity,
    Slot,
)

logger = logging.getLogger(__name__)


@dataclass
class Fork:
    """A set of alternative continuations sharing one identity.

    Attributes:
        root: OR group that receives one identity clone per branch.
        identity: Snapshot of the content that existed before forking.
        identity_is_dedicated: False while identity may alias tree content;
            the first branch clones it and flips this to True.
        branches: One list of placeholder refs per branch.
    """

    root: Group
    identity: Node
    identity_is_dedicated: bool = False
    branches: List[List["PlaceholderRef"]] = field(default_factory=list)


class PlaceholderRef:
    """Live reference to an open position in a tree.

    Attributes:
        priority: Priority of the innermost enclosing action.
        slot: Where the referenced node lives.
        fork: Set once the position became a branch point.
    """

    def __init__(self, priority: float, slot: Slot, fork: Optional[Fork] = None):
        self.priority = priority
        self.slot = slot
        self.fork = fork

    @property
    def is_fork(self) -> bool:
        return self.fork is not None

    @property
    def node(self) -> Node:
        return self.slot.get()

    def _require_plain(self) -> None:
        if self.fork is not None:
            raise ForkMisuseError("Point is a fork and must be handled explicitly")

    @property
    def filter(self) -> Tuple[type, ...]:
        """Type tags the referenced slot accepts (empty accepts anything)."""
        self._require_plain()
        node = self.node
        if isinstance(node, Placeholder):
            return node.filter
        return ()

    @property
    def content(self) -> Optional[Node]:
        """Content already present at the referenced position.

        For placeholder nodes this is the accumulated content; for any
        other node it is the node itself.
        """
        self._require_plain()
        node = self.node
        if isinstance(node, Placeholder):
            return node.content
        return node

    def accepts(self, candidate: Node) -> bool:
        """Check a candidate against the filter using is-a matching."""
        tags = self.filter
        if not tags:
            return True
        return isinstance(candidate, Leaf) and isinstance(candidate.value, tags)

    def has_relevant_content(self) -> bool:
        """True if existing content already satisfies a non-empty filter."""
        content = self.content
        if content is None or content.is_empty() or not self.filter:
            return False
        return any(self.accepts(leaf) for leaf in content.iter_leaves())

    def add_content(self, new_content: Node) -> None:
        """Deep-clone content into the referenced position.

        AND groups are spliced in element by element; anything else is
        added as a single element.
        """
        self._require_plain()
        if isinstance(new_content, Group) and new_content.ordering is Ordering.AND:
            items = new_content.children
        else:
            items = [new_content]
        clones = [item.clone() for item in items if not item.is_empty()]
        if not clones:
            return

        node = self.node
        logger.debug("Point changed (priority %s): was %s", _priority_label(self.priority), node)
        if isinstance(node, Placeholder):
            if node.content is None:
                node.content = Group()
            node.content.children.extend(clones)
        else:
            self.slot.append(clones)
        logger.debug("Point changed (priority %s): now %s", _priority_label(self.priority), self.node)

    def collapse(self) -> None:
        """Drop content according to polarity.

        FUTURE and EITHER placeholders lose their content but stay open
        with their filter; PAST placeholders (one-shot lookups) and
        non-placeholder targets become empty.
        """
        self._require_plain()
        node = self.node
        if isinstance(node, Placeholder) and node.polarity is not Polarity.PAST:
            node.content = None
        else:
            self.slot.set(Group())

    def promote_to_fork(self) -> Fork:
        """Turn this position into a branch point.

        The current node is moved aside as the fork identity and the slot
        is replaced by an empty OR group that will collect the branches.
        """
        if self.fork is not None:
            return self.fork
        root = Group(Ordering.OR)
        identity = self.node
        self.slot.set(root)
        self.fork = Fork(root=root, identity=identity, identity_is_dedicated=True)
        return self.fork

    def add_branch(self) -> List["PlaceholderRef"]:
        """Add one alternative continuation.

        Returns:
            The new branch: a single ref to a fresh clone of the identity.
        """
        fork = self.promote_to_fork()
        if not fork.identity_is_dedicated:
            fork.identity = fork.identity.clone()
            fork.identity_is_dedicated = True

        fork.root.children.append(fork.identity.clone())
        branch = [PlaceholderRef(self.priority, Slot(fork.root, len(fork.root.children) - 1))]
        fork.branches.append(branch)
        logger.debug("Branch %d added at priority %s", len(fork.branches), _priority_label(self.priority))
        return branch

    def to_debug_string(self) -> str:
        if self.fork is not None:
            lines = [f"FORK (priority {_priority_label(self.priority)}):"]
            for index, branch in enumerate(self.fork.branches):
                lines.append(f"  branch {index}:")
                for ref in branch:
                    lines.extend("    " + line for line in ref.to_debug_string().splitlines())
            return "\n".join(lines)
        return f"POINT (priority {_priority_label(self.priority)}): {self.node.to_debug_string()}"

    def __repr__(self) -> str:
        kind = "fork" if self.fork is not None else "point"
        return f"PlaceholderRef({kind}, priority={self.priority}, {self.slot!r})"


def _priority_label(priority: float) -> str:
    return "none" if priority == NO_PRIORITY else f"{priority:g}"


__all__ = ["Fork", "PlaceholderRef"]
