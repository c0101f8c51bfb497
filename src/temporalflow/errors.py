"""Exception taxonomy for temporalflow.

All errors raised by the engine derive from :class:`TemporalFlowError`.
A rejected push is not an error: ``TemporalFlow.push`` returns ``False``.
"""


class TemporalFlowError(Exception):
    """Base class for temporalflow errors."""

    pass


class MalformedFilterError(TemporalFlowError, TypeError):
    """A placeholder filter is not a sequence of type tags."""

    pass


class ForkMisuseError(TemporalFlowError):
    """A placeholder-only operation was called on a fork root.

    Forks must be handled explicitly by the caller (multicast or
    branching); they have no filter or content of their own.
    """

    pass


class ExpressionBuildError(TemporalFlowError, ValueError):
    """Declarative expression data could not be turned into a tree."""

    pass


class ExecutionError(TemporalFlowError):
    """The executor could not run a prepared expression."""

    pass


class UnknownVerbError(ExecutionError):
    """An action names a verb with no registered handler.

    Attributes:
        verb: The verb that could not be resolved.
    """

    def __init__(self, verb: str):
        self.verb = verb
        super().__init__(f"No handler registered for verb '{verb}'")


class FlowUpdateError(ExecutionError):
    """Executing a flow's pending tree failed during ``update()``.

    The failure is fatal for the update: the flow cannot know which
    side effects of the partial execution took place.

    Attributes:
        flow_dump: Debug rendering of the flow at the time of failure.
        original_error: The executor's exception.
    """

    def __init__(self, flow_dump: str, original_error: Exception):
        self.flow_dump = flow_dump
        self.original_error = original_error
        super().__init__(f"Update failed: {original_error}\n{flow_dump}")
