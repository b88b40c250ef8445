"""Model capability backed by a LangChain chat model."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)
from langchain_openai import ChatOpenAI

from reactgraph.common.errors import ModelInvocationError
from reactgraph.common.schemas import Message, Role, ToolCall, generate_tool_call_id
from reactgraph.config import Settings, get_settings
from reactgraph.core.state import State
from reactgraph.core.tools import Tool

log = logging.getLogger(__name__)


def to_langchain_message(message: Message) -> BaseMessage:
    """Convert a log message to its LangChain counterpart."""
    if message.role == Role.USER:
        return HumanMessage(content=message.content)
    if message.role == Role.SYSTEM:
        return SystemMessage(content=message.content)
    if message.role == Role.TOOL:
        return ToolMessage(
            content=message.content,
            tool_call_id=message.tool_call_id or "",
            name=message.name,
            status=message.status,
        )
    return AIMessage(
        content=message.content,
        tool_calls=[
            {
                "name": call.name,
                "args": dict(call.arguments),
                "id": call.id,
                "type": "tool_call",
            }
            for call in message.tool_calls
        ],
    )


def _text_content(content: Any) -> str:
    """Flatten LangChain content (string or content blocks) to text."""
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(str(block.get("text", "")))
    return "".join(parts)


def from_langchain_message(response: BaseMessage) -> Message:
    """Convert a chat model reply into an assistant log message."""
    if not isinstance(response, AIMessage):
        raise ModelInvocationError(
            f"Chat model returned {type(response).__name__}, expected AIMessage"
        )

    tool_calls = [
        ToolCall(
            id=call.get("id") or generate_tool_call_id(),
            name=call["name"],
            arguments=call.get("args") or {},
        )
        for call in response.tool_calls
    ]
    for invalid in getattr(response, "invalid_tool_calls", None) or []:
        log.warning(f"Dropping unparseable tool call from model: {invalid}")

    return Message.assistant(content=_text_content(response.content), tool_calls=tool_calls)


class LangChainChatModel:
    """Adapts a LangChain chat model to the ``(state) -> Message`` capability.

    Tools are bound once at construction in the OpenAI function format.
    """

    def __init__(
        self,
        llm: BaseChatModel,
        tools: Sequence[Tool] = (),
        system_prompt: str | None = None,
    ):
        self.llm = llm
        self.system_prompt = system_prompt
        self.tool_names = [t.name for t in tools]
        if tools:
            self._runnable: Any = llm.bind_tools([t.to_openai_tool() for t in tools])
        else:
            self._runnable = llm

    async def __call__(self, state: State) -> Message:
        messages = [to_langchain_message(m) for m in state.messages]
        if self.system_prompt:
            messages = [SystemMessage(content=self.system_prompt)] + messages

        log.debug(
            f"Calling chat model with {len(messages)} messages and "
            f"{len(self.tool_names)} tools"
        )

        try:
            response = await self._runnable.ainvoke(messages)
        except Exception as e:
            log.error(f"Chat model call failed: {e}")
            raise ModelInvocationError(f"Chat model call failed: {e}") from e

        return from_langchain_message(response)


def create_chat_model(
    settings: Settings | None = None,
    tools: Sequence[Tool] = (),
    system_prompt: str | None = None,
) -> LangChainChatModel:
    """Create the default model capability on an OpenAI-compatible API."""
    settings = settings or get_settings()

    api_key = None
    if settings.openai_api_key:
        api_key = settings.openai_api_key.get_secret_value()

    llm = ChatOpenAI(
        model=settings.openai_model,
        temperature=settings.openai_temperature,
        api_key=api_key,
        base_url=settings.openai_base_url,
    )
    log.info(f"Created chat model {settings.openai_model} with {len(tools)} tools")
    return LangChainChatModel(llm, tools=tools, system_prompt=system_prompt)
