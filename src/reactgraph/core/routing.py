"""Routing outcomes for the agent graph."""

from __future__ import annotations

import logging
from enum import Enum

from reactgraph.common.schemas import Role
from reactgraph.core.state import State

log = logging.getLogger(__name__)


class Route(str, Enum):
    """Closed set of routing outcomes for conditional edges."""

    TOOLS = "tools"
    END = "end"


def route_from_model(state: State) -> Route:
    """Route from the model node based on the last message.

    Tool calls on the latest assistant message go to the tool node; anything
    else ends the execution. Only reads the state.
    """
    last_message = state.last_message

    if last_message is None or last_message.role != Role.ASSISTANT:
        log.debug("route_from_model: last message is not an assistant reply, ending")
        return Route.END

    if not last_message.tool_calls:
        log.debug("route_from_model: no tool calls, ending")
        return Route.END

    names = [call.name for call in last_message.tool_calls]
    log.debug(f"route_from_model: tool calls {names} -> routing to tools")
    return Route.TOOLS
