"""Expression trees for temporalflow.

Key Components:
- Leaf, Group, Action, Placeholder: the node kinds
- Slot: addressable position of a node inside its owner
- build_expression: declarative data -> tree
- action/future/past/either/any_of/all_of: construction helpers
"""

from temporalflow.expr.nodes import (
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
)
from temporalflow.expr.builder import (
    TYPE_NAMES,
    as_node,
    leaf,
    all_of,
    any_of,
    action,
    future,
    past,
    either,
    resolve_type,
    build_expression,
)

__all__ = [
    # Nodes
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
    # Builder
    "TYPE_NAMES",
    "as_node",
    "leaf",
    "all_of",
    "any_of",
    "action",
    "future",
    "past",
    "either",
    "resolve_type",
    "build_expression",
]
