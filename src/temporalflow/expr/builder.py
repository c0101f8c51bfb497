"""Construction helpers for expression trees.

Two ways to build trees:

- Helper functions (``action``, ``future``, ``past``, ``any_of``, ...)
  for code.
- ``build_expression`` for declarative data, e.g. loaded from YAML.

Declarative forms:
    42, "text", 1.5           -> Leaf
    [a, b, c]                 -> AND group
    {and: [a, b]}             -> AND group
    {or: [a, b]}              -> OR group
    {action: verb, priority: 5, source: .., argument: .., output: ..}
    {missing: future, filter: [int, str], content: ..}
    {type: int}               -> type-tag leaf
    {value: {...}}            -> literal leaf (escape hatch)

Example:
    >>> tree = build_expression({
    ...     "action": "print",
    ...     "priority": 5,
    ...     "argument": {"missing": "future", "filter": ["text"]},
    ... })
    >>> tree.to_debug_string()
    'print!5(arg: str??)'
"""

import numbers
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from temporalflow.errors import ExpressionBuildError
from temporalflow.expr.nodes import (
    DEFAULT_PRIORITY,
    NO_PRIORITY,
    Action,
    Group,
    Leaf,
    Node,
    Ordering,
    Placeholder,
    Polarity,
)

# Type names usable in declarative filters and type tags.
TYPE_NAMES: Dict[str, type] = {
    "int": int,
    "float": float,
    "number": numbers.Number,
    "bool": bool,
    "str": str,
    "text": str,
    "bytes": bytes,
    "any": object,
}

_ACTION_KEYS = {"action", "priority", "source", "argument", "output"}
_MISSING_KEYS = {"missing", "filter", "content"}


def as_node(value: Any) -> Node:
    """Wrap a raw Python value as a node.

    Nodes pass through unchanged, None becomes an empty group, lists and
    tuples become AND groups, anything else becomes a Leaf.
    """
    if isinstance(value, Node):
        return value
    if value is None:
        return Group()
    if isinstance(value, (list, tuple)):
        return Group(Ordering.AND, [as_node(v) for v in value])
    return Leaf(value)


def leaf(value: Any) -> Leaf:
    return Leaf(value)


def all_of(*items: Any) -> Group:
    """AND group of the given items."""
    return Group(Ordering.AND, [as_node(item) for item in items])


def any_of(*items: Any) -> Group:
    """OR group of the given items."""
    return Group(Ordering.OR, [as_node(item) for item in items])


def action(
    verb: str,
    priority: float = DEFAULT_PRIORITY,
    source: Any = None,
    argument: Any = None,
    output: Any = None,
) -> Action:
    """Create an Action, wrapping raw slot values with ``as_node``."""
    return Action(
        verb=verb,
        priority=priority,
        source=as_node(source),
        argument=as_node(argument),
        output=as_node(output),
    )


def future(*tags: type, content: Any = None) -> Placeholder:
    """Placeholder filled by content pushed later."""
    return _placeholder(Polarity.FUTURE, tags, content)


def past(*tags: type, content: Any = None) -> Placeholder:
    """Placeholder filled from content that already exists."""
    return _placeholder(Polarity.PAST, tags, content)


def either(*tags: type, content: Any = None) -> Placeholder:
    """Placeholder filled from both directions."""
    return _placeholder(Polarity.EITHER, tags, content)


def _placeholder(polarity: Polarity, tags: Tuple[type, ...], content: Any) -> Placeholder:
    node = Placeholder(polarity=polarity, filter=tags)
    if content is not None:
        node.content = all_of(*content) if isinstance(content, (list, tuple)) else all_of(content)
    return node


def resolve_type(name: str) -> type:
    """Resolve a declarative type name to a type tag.

    Raises:
        ExpressionBuildError: If the name is unknown.
    """
    try:
        return TYPE_NAMES[name]
    except KeyError:
        raise ExpressionBuildError(
            f"Unknown type name '{name}'. Known: {sorted(TYPE_NAMES)}"
        ) from None


def build_expression(data: Any) -> Node:
    """Build an expression tree from declarative data.

    Args:
        data: Scalars, lists and single-form mappings (see module docs).

    Returns:
        The root node of the built tree.

    Raises:
        ExpressionBuildError: If the data does not describe a valid tree.
    """
    if isinstance(data, Node):
        return data
    if data is None:
        return Group()
    if isinstance(data, (list, tuple)):
        return Group(Ordering.AND, [build_expression(item) for item in data])
    if isinstance(data, Mapping):
        return _build_mapping(data)
    return Leaf(data)


def _build_mapping(data: Mapping) -> Node:
    keys = set(data)

    if keys == {"and"} or keys == {"or"}:
        (key,) = keys
        items = data[key]
        if not isinstance(items, (list, tuple)):
            raise ExpressionBuildError(f"'{key}' expects a list, got {type(items).__name__}")
        ordering = Ordering.AND if key == "and" else Ordering.OR
        return Group(ordering, [build_expression(item) for item in items])

    if "action" in keys:
        unknown = keys - _ACTION_KEYS
        if unknown:
            raise ExpressionBuildError(f"Unknown action keys: {sorted(unknown)}")
        verb = data["action"]
        if not isinstance(verb, str) or not verb:
            raise ExpressionBuildError(f"Action verb must be a non-empty string, got {verb!r}")
        return Action(
            verb=verb,
            priority=_parse_priority(data.get("priority", DEFAULT_PRIORITY)),
            source=build_expression(data.get("source")),
            argument=build_expression(data.get("argument")),
            output=build_expression(data.get("output")),
        )

    if "missing" in keys:
        unknown = keys - _MISSING_KEYS
        if unknown:
            raise ExpressionBuildError(f"Unknown placeholder keys: {sorted(unknown)}")
        try:
            polarity = Polarity(data["missing"])
        except ValueError:
            raise ExpressionBuildError(
                f"Unknown polarity {data['missing']!r}; use past, future or either"
            ) from None
        node = Placeholder(polarity=polarity, filter=_parse_filter(data.get("filter")))
        if data.get("content") is not None:
            content = build_expression(data["content"])
            node.content = content if _is_and(content) else Group(Ordering.AND, [content])
        return node

    if keys == {"type"}:
        return Leaf(resolve_type(data["type"]))

    if keys == {"value"}:
        return Leaf(data["value"])

    raise ExpressionBuildError(f"Unrecognized expression mapping with keys {sorted(keys)}")


def _is_and(node: Node) -> bool:
    return isinstance(node, Group) and node.ordering is Ordering.AND


def _parse_priority(value: Any) -> float:
    if isinstance(value, str) and value.lower() == "none":
        return NO_PRIORITY
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ExpressionBuildError(f"Priority must be a number or 'none', got {value!r}")
    return float(value)


def _parse_filter(value: Optional[Any]) -> Tuple[type, ...]:
    if value is None:
        return ()
    names: Iterable[Any] = [value] if isinstance(value, str) else value
    return tuple(resolve_type(name) for name in names)


__all__ = [
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
