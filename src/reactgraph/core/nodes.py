"""Model and tool nodes for the reason/act loop."""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Union

from pydantic import BaseModel

from reactgraph.common.errors import (
    InvalidToolArgumentsError,
    ModelInvocationError,
    ToolExecutionError,
)
from reactgraph.common.schemas import Message, Role, ToolCall
from reactgraph.core.state import State
from reactgraph.core.tools import ToolRegistry

log = logging.getLogger(__name__)

ModelCallable = Callable[[State], Union[Message, Awaitable[Message]]]


def serialize_tool_result(result: Any) -> str:
    """Render a tool result as message content."""
    if isinstance(result, str):
        return result
    if isinstance(result, BaseModel):
        return result.model_dump_json()
    return json.dumps(result, default=str, ensure_ascii=False)


class ModelNode:
    """Invokes the model capability with the full message history.

    The reply must be an assistant message. Failures surface as
    ``ModelInvocationError``; nothing is retried here.
    """

    def __init__(self, model: ModelCallable):
        self.model = model

    async def invoke(self, state: State) -> Message:
        log.info(f"Invoking model with {len(state.messages)} messages")

        try:
            response = self.model(state)
            if inspect.isawaitable(response):
                response = await response
        except ModelInvocationError:
            raise
        except Exception as e:
            log.error(f"Model invocation failed: {e}")
            raise ModelInvocationError(f"Model invocation failed: {e}") from e

        if not isinstance(response, Message) or response.role != Role.ASSISTANT:
            raise ModelInvocationError(
                f"Model must return an assistant Message, got {response!r}"
            )

        if response.tool_calls:
            log.info(
                f"Model requested tools: {[call.name for call in response.tool_calls]}"
            )
        else:
            log.info(f"Model answered: {response.content[:100]!r}")
        return response


class ToolNode:
    """Executes every tool call on the latest assistant message.

    Calls in one batch run concurrently; result messages keep the order of the
    originating ``tool_calls``. A failing call becomes an error tool message
    and never aborts the rest of the batch.
    """

    def __init__(self, registry: ToolRegistry, *, max_concurrency: int | None = None):
        self.registry = registry
        self.max_concurrency = max_concurrency

    async def invoke(self, state: State) -> list[Message]:
        message = state.last_assistant_message()
        if message is None or not message.tool_calls:
            log.warning("Tool node invoked without pending tool calls")
            return []

        semaphore = None
        if self.max_concurrency:
            semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _bounded(call: ToolCall) -> Message:
            if semaphore is None:
                return await self._run_call(call)
            async with semaphore:
                return await self._run_call(call)

        log.info(f"Executing {len(message.tool_calls)} tool call(s)")
        results = await asyncio.gather(*(_bounded(call) for call in message.tool_calls))
        return list(results)

    async def _run_call(self, call: ToolCall) -> Message:
        try:
            tool = self.registry.resolve(call.name)
            arguments = tool.validate(call.arguments)
            result = await tool.execute(arguments)
        except InvalidToolArgumentsError as e:
            log.warning(f"Rejected tool call {call.name} ({call.id}): {e}")
            return Message.tool_result(call, f"Error: {e}", status="error")
        except ToolExecutionError as e:
            log.error(f"Tool call {call.name} ({call.id}) failed: {e}")
            return Message.tool_result(call, f"Error: {e}", status="error")

        log.debug(f"Tool call {call.name} ({call.id}) completed")
        return Message.tool_result(call, serialize_tool_result(result))
