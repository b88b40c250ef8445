"""Runtime assembly: model, graph, checkpointer and engine with one lifecycle."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from reactgraph.adapters.chat_model import create_chat_model
from reactgraph.adapters.checkpointer import create_checkpointer
from reactgraph.config import Settings, get_settings
from reactgraph.core.agent import MODEL_NODE, build_agent_graph
from reactgraph.core.engine import ExecutionEngine
from reactgraph.core.nodes import ModelCallable
from reactgraph.core.tools import ToolRegistry
from reactgraph.logging_config import configure_logging

log = logging.getLogger(__name__)


@asynccontextmanager
async def create_agent_runtime(
    registry: ToolRegistry,
    model: ModelCallable | None = None,
    *,
    settings: Settings | None = None,
    system_prompt: str | None = None,
) -> AsyncGenerator[ExecutionEngine, None]:
    """Create a ready-to-run agent engine.

    The graph is compiled once and shared; the checkpointer is opened here
    and closed when the context exits.

    Args:
        registry: Tools available to the agent
        model: Model capability; defaults to an OpenAI chat model bound to
            the registry's tools
        settings: Settings, defaults to ``get_settings()``
        system_prompt: System prompt for the default chat model

    Yields:
        Configured ExecutionEngine
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    if model is None:
        model = create_chat_model(settings, registry.tools(), system_prompt)

    graph = build_agent_graph(
        model, registry, max_tool_concurrency=settings.max_tool_concurrency
    )

    async with create_checkpointer(
        settings.checkpoint_backend, settings.sessions_db_path
    ) as checkpointer:
        engine = ExecutionEngine.from_settings(
            graph, checkpointer, settings, retry_nodes=[MODEL_NODE]
        )
        log.info(
            f"Agent runtime ready (backend={settings.checkpoint_backend}, "
            f"step_limit={settings.step_limit})"
        )
        yield engine

    log.info("Agent runtime shut down")
