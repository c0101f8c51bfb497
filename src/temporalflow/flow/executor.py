"""Executor boundary and a reference executor.

A flow hands its prepared pending tree to an executor exactly once per
fresh tick:

    execute(context, expression) -> (continuation context, output)

Failure is reported by raising :class:`ExecutionError`; the flow treats it
as fatal for the update.

SimpleExecutor is a small tree-walking executor with a verb registry:

    Leaf      -> itself
    AND group -> children in sequence, context threaded through
    OR group  -> first child that executes without error
    Action    -> handler registered for the verb

Example:
    >>> from temporalflow.expr import action
    >>> executor = SimpleExecutor()
    >>> executor.register("shout", lambda ctx, act: (ctx, Leaf("HEY")))
    >>> context, output = executor.execute(Group(), action("shout"))
    >>> output
    Leaf(value='HEY')

Debug hooks:
    >>> executor = SimpleExecutor(debug_hook=lambda event: print(event))
"""

import logging
import numbers
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol, Tuple

from temporalflow.errors import ExecutionError, UnknownVerbError
from temporalflow.expr.nodes import Action, Group, Leaf, Node, Ordering, Placeholder

logger = logging.getLogger(__name__)

Outcome = Tuple[Node, Node]
VerbHandler = Callable[[Node, Action], Outcome]


class Executor(Protocol):
    """Anything that can run a prepared expression against a context."""

    def execute(self, context: Node, expression: Node) -> Outcome:
        ...


@dataclass
class ExecutionEvent:
    """Emitted by SimpleExecutor after each action ran.

    Attributes:
        verb: Verb of the action.
        priority: Priority of the action.
        context: Context the action ran in.
        output: What the action produced.
    """

    verb: str
    priority: float
    context: Node
    output: Node

    def __str__(self) -> str:
        return f"[ACTION] {self.verb} in {self.context} -> {self.output}"


ExecutionHook = Callable[[ExecutionEvent], None]


class SimpleExecutor:
    """Synchronous tree-walking executor.

    Handlers receive ``(context, action)`` and return ``(context, output)``.
    Exceptions raised by a handler are wrapped in :class:`ExecutionError`.

    Built-in verbs:
        do:   run the argument with the source as context
        echo: output the argument as-is
        add:  sum every number in source and argument
    """

    def __init__(
        self,
        handlers: Optional[Dict[str, VerbHandler]] = None,
        debug_hook: Optional[ExecutionHook] = None,
    ) -> None:
        self._handlers: Dict[str, VerbHandler] = {
            "do": self._do,
            "echo": _echo,
            "add": self._add,
        }
        if handlers:
            self._handlers.update(handlers)
        self._debug_hook = debug_hook

    @property
    def verbs(self) -> List[str]:
        return sorted(self._handlers)

    def register(self, verb: str, handler: VerbHandler) -> None:
        """Register (or replace) the handler for a verb."""
        if not verb:
            raise ValueError("Verb must be a non-empty string")
        self._handlers[verb] = handler

    def execute(self, context: Node, expression: Node) -> Outcome:
        """Run an expression.

        Args:
            context: Context the expression runs in.
            expression: Prepared expression (no placeholders).

        Returns:
            (continuation context, output)

        Raises:
            ExecutionError: If any part of the expression fails.
        """
        return self.evaluate(context, expression)

    def evaluate(self, context: Node, node: Node) -> Outcome:
        match node:
            case Leaf():
                return context, node.clone()
            case Group(ordering=Ordering.OR) if len(node.live_children()) > 1:
                return self._evaluate_alternatives(context, node.live_children())
            case Group():
                return self._evaluate_sequence(context, node.live_children())
            case Action():
                return self._evaluate_action(context, node)
            case Placeholder():
                raise ExecutionError(f"Unprepared placeholder {node} reached the executor")
            case _:
                raise ExecutionError(f"Cannot execute {type(node).__name__}")

    def _evaluate_sequence(self, context: Node, children: List[Node]) -> Outcome:
        outputs: List[Node] = []
        for child in children:
            context, output = self.evaluate(context, child)
            if not output.is_empty():
                outputs.append(output)
        if len(outputs) == 1:
            return context, outputs[0]
        return context, Group(Ordering.AND, outputs)

    def _evaluate_alternatives(self, context: Node, children: List[Node]) -> Outcome:
        failures: List[str] = []
        for child in children:
            try:
                return self.evaluate(context, child)
            except ExecutionError as e:
                logger.debug("Alternative %s failed: %s", child, e)
                failures.append(str(e))
        raise ExecutionError(f"No alternative could execute: {'; '.join(failures)}")

    def _evaluate_action(self, context: Node, action: Action) -> Outcome:
        handler = self._handlers.get(action.verb)
        if handler is None:
            raise UnknownVerbError(action.verb)

        try:
            new_context, output = handler(context, action)
        except ExecutionError:
            raise
        except Exception as e:
            raise ExecutionError(f"Verb '{action.verb}' failed: {e}") from e

        logger.debug("Executed %s -> %s", action.verb, output)
        if self._debug_hook is not None:
            self._debug_hook(ExecutionEvent(
                verb=action.verb,
                priority=action.priority,
                context=context,
                output=output,
            ))
        return new_context, output

    # ------------------------------------------------------------------
    # Built-in verbs
    # ------------------------------------------------------------------

    def _do(self, context: Node, action: Action) -> Outcome:
        source = action.source
        if not source.is_empty():
            if source.is_or_group():
                # Continuation contexts carry [new or old]; newest wins
                source = source.children[0]
            context = source
        return self.evaluate(context, action.argument)

    def _add(self, context: Node, action: Action) -> Outcome:
        total = 0
        for part in (action.source, action.argument):
            _, evaluated = self.evaluate(context, part)
            for item in evaluated.iter_leaves():
                if isinstance(item.value, bool) or not isinstance(item.value, numbers.Number):
                    raise ExecutionError(f"'add' expects numbers, got {item}")
                total += item.value
        return context, Leaf(total)


def _echo(context: Node, action: Action) -> Outcome:
    return context, action.argument.clone()


__all__ = [
    "Executor",
    "SimpleExecutor",
    "ExecutionEvent",
    "ExecutionHook",
    "VerbHandler",
]
