"""Reason/act agent graph construction."""

from __future__ import annotations

import logging

from reactgraph.core.graph import END, Graph, GraphBuilder
from reactgraph.core.nodes import ModelCallable, ModelNode, ToolNode
from reactgraph.core.routing import Route, route_from_model
from reactgraph.core.tools import ToolRegistry

log = logging.getLogger(__name__)

MODEL_NODE = "agent"
TOOL_NODE = "tools"


def build_agent_graph(
    model: ModelCallable,
    registry: ToolRegistry,
    *,
    max_tool_concurrency: int | None = None,
) -> Graph:
    """Build the agent graph: model node <-> tool node until a final answer.

    Args:
        model: Model capability, ``(state) -> Message``
        registry: Tools the tool node may execute
        max_tool_concurrency: Optional bound on concurrently running tool calls

    Returns:
        Compiled graph with entry ``agent``
    """
    graph = GraphBuilder()

    graph.add_node(MODEL_NODE, ModelNode(model))
    graph.add_node(TOOL_NODE, ToolNode(registry, max_concurrency=max_tool_concurrency))

    graph.set_entry_point(MODEL_NODE)

    graph.add_conditional_edges(
        MODEL_NODE,
        route_from_model,
        {Route.TOOLS: TOOL_NODE, Route.END: END},
    )
    graph.add_edge(TOOL_NODE, MODEL_NODE)

    log.info(f"Agent graph built with {len(registry)} tools: {registry.names()}")
    return graph.compile()
