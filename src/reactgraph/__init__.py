"""Graph-structured reason/act execution engine with checkpointing."""

from reactgraph.common import Message, Role, ToolCall
from reactgraph.core import (
    END,
    Done,
    ExecutionEngine,
    GraphBuilder,
    State,
    StateUpdate,
    StepEvent,
    ToolRegistry,
    build_agent_graph,
)

__version__ = "0.1.0"

__all__ = [
    "END",
    "Done",
    "ExecutionEngine",
    "GraphBuilder",
    "Message",
    "Role",
    "State",
    "StateUpdate",
    "StepEvent",
    "ToolCall",
    "ToolRegistry",
    "build_agent_graph",
]
