"""Core graph engine components for reactgraph."""

from reactgraph.core.agent import MODEL_NODE, TOOL_NODE, build_agent_graph
from reactgraph.core.engine import Done, ExecutionEngine, StepEvent
from reactgraph.core.graph import END, Graph, GraphBuilder
from reactgraph.core.nodes import ModelNode, ToolNode
from reactgraph.core.retry import RetryPolicy
from reactgraph.core.routing import Route, route_from_model
from reactgraph.core.state import State, StateUpdate
from reactgraph.core.tools import Tool, ToolRegistry

__all__ = [
    "END",
    "Graph",
    "GraphBuilder",
    "State",
    "StateUpdate",
    "Route",
    "route_from_model",
    "ModelNode",
    "ToolNode",
    "Tool",
    "ToolRegistry",
    "RetryPolicy",
    "ExecutionEngine",
    "StepEvent",
    "Done",
    "MODEL_NODE",
    "TOOL_NODE",
    "build_agent_graph",
]
