"""Expression tree nodes.

The pending state of a flow is a tree built from four node kinds:

- Leaf: terminal data (literals, type tags)
- Group: AND/OR container of child nodes
- Action: prioritized invocable unit with source/argument/output slots
- Placeholder: a slot that is still missing content

Nodes are plain mutable values. Each node is owned by exactly one
parent; positions inside the tree are addressed with :class:`Slot`
handles rather than references to the node itself, so a slot can be
re-pointed (e.g. when a placeholder is promoted to a fork) without the
holder of the handle noticing.

Example:
    >>> from temporalflow.expr.nodes import Action, Group, Leaf, Placeholder, Polarity
    >>> tree = Action("print", priority=5, argument=Placeholder(Polarity.FUTURE))
    >>> tree.to_debug_string()
    'print!5(arg: ??)'
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterator, List, Optional, Tuple, Union

from temporalflow.errors import MalformedFilterError

# Priority of anything not enclosed in an action. Numerically the
# largest value, so no action is ever refused by a catch-all point.
NO_PRIORITY = float("inf")
# Neutral element when tracking the highest priority seen so far.
MIN_PRIORITY = float("-inf")
DEFAULT_PRIORITY = 0.0


class Ordering(Enum):
    """How the children of a group relate to each other."""

    AND = "and"
    OR = "or"


class Polarity(Enum):
    """Direction a placeholder is filled from.

    PAST placeholders are one-shot lookups into content that already
    exists; FUTURE placeholders accept content pushed later and may be
    refilled; EITHER accepts both.
    """

    PAST = "past"
    FUTURE = "future"
    EITHER = "either"


# Visitor returns True to continue, False to stop the walk.
Visitor = Callable[["Node"], bool]


class Node(ABC):
    """Base class for all expression tree nodes."""

    @abstractmethod
    def clone(self) -> "Node":
        """Deep-copy the structure of this node."""
        ...

    @abstractmethod
    def to_debug_string(self) -> str:
        """Render a compact, human-readable form of the subtree."""
        ...

    def children_nodes(self) -> List["Node"]:
        """Direct sub-nodes, in visiting order."""
        return []

    def is_empty(self) -> bool:
        return False

    def is_or_group(self) -> bool:
        """True if this node is a branch point (OR with 2+ children)."""
        return False

    def visit(self, visitor: Visitor) -> bool:
        """Depth-first, pre-order walk with early exit.

        Args:
            visitor: Called with each node; returning False stops the walk.

        Returns:
            False if the walk was stopped early, True otherwise.
        """
        if not visitor(self):
            return False
        for child in self.children_nodes():
            if not child.visit(visitor):
                return False
        return True

    def iter_leaves(self) -> Iterator["Leaf"]:
        """Yield every leaf in the subtree, depth-first."""
        found: List[Leaf] = []

        def collect(node: "Node") -> bool:
            if isinstance(node, Leaf):
                found.append(node)
            return True

        self.visit(collect)
        return iter(found)

    def __str__(self) -> str:
        return self.to_debug_string()


@dataclass(eq=False)
class Leaf(Node):
    """Terminal data.

    Attributes:
        value: Any Python value. A class used as a value acts as a type tag.
    """

    value: Any

    def clone(self) -> "Leaf":
        return Leaf(self.value)

    def to_debug_string(self) -> str:
        if isinstance(self.value, type):
            return self.value.__name__
        return repr(self.value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Leaf):
            return NotImplemented
        return type(self.value) is type(other.value) and self.value == other.value

    __hash__ = None  # type: ignore[assignment]


@dataclass
class Group(Node):
    """AND/OR container.

    Attributes:
        ordering: AND means every child, in sequence; OR means exactly one.
        children: Ordered child nodes.
    """

    ordering: Ordering = Ordering.AND
    children: List[Node] = field(default_factory=list)

    @classmethod
    def of(cls, *children: Node, ordering: Ordering = Ordering.AND) -> "Group":
        return cls(ordering=ordering, children=list(children))

    def clone(self) -> "Group":
        return Group(self.ordering, [child.clone() for child in self.children])

    def children_nodes(self) -> List[Node]:
        return self.children

    def is_empty(self) -> bool:
        return not self.children

    def is_or_group(self) -> bool:
        return self.ordering is Ordering.OR and len(self.children) > 1

    def live_children(self) -> List[Node]:
        """Children that carry anything at all."""
        return [child for child in self.children if not child.is_empty()]

    def to_debug_string(self) -> str:
        separator = " or " if self.ordering is Ordering.OR else ", "
        return "(" + separator.join(c.to_debug_string() for c in self.children) + ")"


@dataclass
class Action(Node):
    """An invocable unit.

    Attributes:
        verb: Name the executor dispatches on.
        priority: Higher binds first; NO_PRIORITY is the catch-all.
        source: What the action is applied to.
        argument: What the action is applied with.
        output: Where results go.
    """

    verb: str
    priority: float = DEFAULT_PRIORITY
    source: Node = field(default_factory=Group)
    argument: Node = field(default_factory=Group)
    output: Node = field(default_factory=Group)

    def clone(self) -> "Action":
        return Action(
            verb=self.verb,
            priority=self.priority,
            source=self.source.clone(),
            argument=self.argument.clone(),
            output=self.output.clone(),
        )

    def children_nodes(self) -> List[Node]:
        return [self.source, self.argument, self.output]

    def to_debug_string(self) -> str:
        parts = []
        for label, node in (("src", self.source), ("arg", self.argument), ("out", self.output)):
            if isinstance(node, Placeholder) or not node.is_empty():
                parts.append(f"{label}: {node.to_debug_string()}")
        priority = "" if self.priority == DEFAULT_PRIORITY else f"!{_format_priority(self.priority)}"
        return f"{self.verb}{priority}({'; '.join(parts)})"


_POLARITY_MARKS = {
    Polarity.PAST: "?",
    Polarity.FUTURE: "??",
    Polarity.EITHER: "???",
}


@dataclass
class Placeholder(Node):
    """A slot awaiting content.

    The filter and the accumulated content are the only two parts a
    placeholder carries.

    Attributes:
        polarity: Direction the slot is filled from.
        filter: Type tags accepted; empty accepts anything.
        content: Accumulated content (an AND group), None until filled.

    Raises:
        MalformedFilterError: If filter is not made of classes.
    """

    polarity: Polarity = Polarity.EITHER
    filter: Tuple[type, ...] = ()
    content: Optional[Group] = None

    def __post_init__(self) -> None:
        if isinstance(self.filter, type):
            self.filter = (self.filter,)
        try:
            tags = tuple(self.filter)
        except TypeError as e:
            raise MalformedFilterError(f"Filter must be a sequence of types: {self.filter!r}") from e
        for tag in tags:
            if not isinstance(tag, type):
                raise MalformedFilterError(f"Filter entry is not a type tag: {tag!r}")
        self.filter = tags

    def clone(self) -> "Placeholder":
        return Placeholder(
            polarity=self.polarity,
            filter=self.filter,
            content=self.content.clone() if self.content is not None else None,
        )

    def children_nodes(self) -> List[Node]:
        return [self.content] if self.content is not None else []

    def has_content(self) -> bool:
        return self.content is not None and not self.content.is_empty()

    def is_empty(self) -> bool:
        return not self.filter and not self.has_content()

    def to_debug_string(self) -> str:
        tags = ",".join(tag.__name__ for tag in self.filter)
        text = f"{tags}{_POLARITY_MARKS[self.polarity]}"
        if self.has_content():
            text += f"[{', '.join(c.to_debug_string() for c in self.content.children)}]"
        return text


def _format_priority(priority: float) -> str:
    if priority == NO_PRIORITY:
        return "none"
    return f"{priority:g}"


class _Holder:
    """Owner for a node that has no parent in any tree."""

    __slots__ = ("node",)

    def __init__(self, node: Node):
        self.node = node


SlotKey = Union[int, str]


class Slot:
    """Addressable position of a node inside its owner.

    A slot is either a child index into a Group, or an attribute name on
    any other owner (an Action's ``source``/``argument``/``output``, a
    Placeholder's ``content``, a flow's ``pending``).

    Example:
        >>> action = Action("say")
        >>> slot = Slot(action, "argument")
        >>> slot.set(Leaf("hi"))
        >>> action.argument
        Leaf(value='hi')
    """

    __slots__ = ("owner", "key")

    def __init__(self, owner: Any, key: SlotKey):
        self.owner = owner
        self.key = key

    @classmethod
    def holding(cls, node: Node) -> "Slot":
        """Create a slot for a node that lives outside any tree."""
        return cls(_Holder(node), "node")

    def get(self) -> Node:
        if isinstance(self.key, int):
            return self.owner.children[self.key]
        return getattr(self.owner, self.key)

    def set(self, node: Node) -> None:
        if isinstance(self.key, int):
            self.owner.children[self.key] = node
        else:
            setattr(self.owner, self.key, node)

    def append(self, nodes: List[Node]) -> None:
        """Append nodes after whatever the slot currently holds.

        AND groups are extended in place; an empty node is replaced; any
        other node is wrapped together with the new nodes in an AND group.
        """
        if not nodes:
            return
        current = self.get()
        if isinstance(current, Group) and current.ordering is Ordering.AND:
            current.children.extend(nodes)
        elif current.is_empty() and not isinstance(current, Placeholder):
            self.set(Group(Ordering.AND, list(nodes)))
        else:
            self.set(Group(Ordering.AND, [current, *nodes]))

    def __repr__(self) -> str:
        return f"Slot({type(self.owner).__name__}, {self.key!r})"


__all__ = [
    "NO_PRIORITY",
    "MIN_PRIORITY",
    "DEFAULT_PRIORITY",
    "Ordering",
    "Polarity",
    "Visitor",
    "Node",
    "Leaf",
    "Group",
    "Action",
    "Placeholder",
    "Slot",
]
