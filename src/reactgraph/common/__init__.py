"""Common types, schemas and errors for reactgraph."""

from reactgraph.common.errors import (
    CancelledError,
    CheckpointNotFoundError,
    GraphDefinitionError,
    InvalidToolArgumentsError,
    ModelInvocationError,
    NodeTimeoutError,
    NotFoundError,
    PendingExecutionError,
    ReactGraphError,
    RoutingError,
    StateConflictError,
    StepLimitExceededError,
    ToolExecutionError,
    ToolNotFoundError,
)
from reactgraph.common.schemas import Message, Role, ToolCall

__all__ = [
    # Schemas
    "Message",
    "Role",
    "ToolCall",
    # Errors
    "ReactGraphError",
    "GraphDefinitionError",
    "RoutingError",
    "StepLimitExceededError",
    "PendingExecutionError",
    "StateConflictError",
    "ModelInvocationError",
    "ToolExecutionError",
    "InvalidToolArgumentsError",
    "NotFoundError",
    "ToolNotFoundError",
    "CheckpointNotFoundError",
    "CancelledError",
    "NodeTimeoutError",
]
