"""Error taxonomy for the reactgraph engine."""

from __future__ import annotations

from typing import Any


class ReactGraphError(Exception):
    """Base class for every error raised by reactgraph."""


class GraphDefinitionError(ReactGraphError):
    """Raised by ``GraphBuilder.compile`` when the graph is invalid.

    Fatal: a process must not start serving with a graph that fails to compile.
    """

    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        super().__init__(f"Invalid graph: {'; '.join(self.problems)}")


class RoutingError(ReactGraphError):
    """A conditional edge returned an outcome outside its declared candidates."""

    def __init__(self, source: str, outcome: Any, candidates: list[Any]):
        self.source = source
        self.outcome = outcome
        self.candidates = candidates
        super().__init__(
            f"Router for node '{source}' returned {outcome!r}, "
            f"expected one of {candidates!r}"
        )


class StepLimitExceededError(ReactGraphError):
    """The engine executed its configured maximum number of steps."""

    def __init__(self, thread_id: str, step_limit: int):
        self.thread_id = thread_id
        self.step_limit = step_limit
        super().__init__(
            f"Thread '{thread_id}' exceeded the step limit of {step_limit} "
            "without reaching the end of the graph"
        )


class PendingExecutionError(ReactGraphError):
    """New input was submitted while the thread still has a pending step."""

    def __init__(self, thread_id: str, next_node: str):
        self.thread_id = thread_id
        self.next_node = next_node
        super().__init__(
            f"Thread '{thread_id}' has a pending step at node '{next_node}'; "
            "resume it before submitting new input"
        )


class StateConflictError(ReactGraphError):
    """A submitted state does not extend the thread's current message log."""

    def __init__(self, current_length: int, divergence: int):
        self.current_length = current_length
        self.divergence = divergence
        super().__init__(
            f"State diverges from the current log at message {divergence} "
            f"(current log has {current_length} messages); states may only "
            "append to the log"
        )


class ModelInvocationError(ReactGraphError):
    """The model capability failed or returned an unusable reply."""


class ToolExecutionError(ReactGraphError):
    """A tool handler failed while running."""

    def __init__(self, tool_name: str, message: str):
        self.tool_name = tool_name
        super().__init__(message)


class InvalidToolArgumentsError(ReactGraphError):
    """Tool call arguments did not validate against the tool schema."""

    def __init__(self, tool_name: str, message: str):
        self.tool_name = tool_name
        super().__init__(message)


class NotFoundError(ReactGraphError):
    """A named resource does not exist."""


class ToolNotFoundError(NotFoundError, InvalidToolArgumentsError):
    """The requested tool is not registered.

    Also an ``InvalidToolArgumentsError`` so the Tool Node absorbs it into the
    message log like any other bad call.
    """

    def __init__(self, tool_name: str):
        InvalidToolArgumentsError.__init__(
            self, tool_name, f"Tool '{tool_name}' is not registered"
        )


class CheckpointNotFoundError(NotFoundError):
    """No checkpoint exists for the thread id. Callers treat this as "start fresh"."""

    def __init__(self, thread_id: str):
        self.thread_id = thread_id
        super().__init__(f"No checkpoint for thread '{thread_id}'")


class CancelledError(ReactGraphError):
    """The caller cancelled an in-flight step.

    The last saved checkpoint remains the valid resumption point.
    """

    def __init__(self, thread_id: str, node: str, message: str | None = None):
        self.thread_id = thread_id
        self.node = node
        super().__init__(
            message or f"Step '{node}' of thread '{thread_id}' was cancelled"
        )


class NodeTimeoutError(CancelledError):
    """A node invocation exceeded its timeout."""

    def __init__(self, thread_id: str, node: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            thread_id,
            node,
            f"Step '{node}' of thread '{thread_id}' timed out after {timeout}s",
        )
