"""Tests for the LangChain chat model adapter."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_openai import ChatOpenAI

from reactgraph.adapters.chat_model import (
    LangChainChatModel,
    create_chat_model,
    from_langchain_message,
    to_langchain_message,
)
from reactgraph.common.errors import ModelInvocationError
from reactgraph.common.schemas import Message, Role
from reactgraph.config import Settings
from reactgraph.core.state import State

from conftest import WEATHER


def _mock_llm(response):
    """LLM mock whose tool-bound runnable returns ``response``."""
    runnable = MagicMock()
    runnable.ainvoke = AsyncMock(return_value=response)
    llm = MagicMock()
    llm.bind_tools.return_value = runnable
    llm.ainvoke = AsyncMock(return_value=response)
    return llm, runnable


class TestMessageConversion:
    """Tests for converting between log messages and LangChain messages."""

    def test_user_and_system(self):
        assert isinstance(to_langchain_message(Message.user("hi")), HumanMessage)
        assert isinstance(to_langchain_message(Message.system("be brief")), SystemMessage)

    def test_assistant_tool_calls(self, search_call):
        converted = to_langchain_message(Message.assistant(tool_calls=[search_call]))

        assert isinstance(converted, AIMessage)
        assert converted.tool_calls[0]["id"] == "call_1"
        assert converted.tool_calls[0]["name"] == "search"
        assert converted.tool_calls[0]["args"] == {"query": "sf weather"}

    def test_tool_result(self, search_call):
        converted = to_langchain_message(
            Message.tool_result(search_call, "Error: boom", status="error")
        )

        assert isinstance(converted, ToolMessage)
        assert converted.tool_call_id == "call_1"
        assert converted.status == "error"

    def test_reply_with_tool_calls(self):
        reply = AIMessage(
            content="",
            tool_calls=[{"name": "search", "args": {"query": "sf"}, "id": "call_9"}],
        )

        message = from_langchain_message(reply)

        assert message.role == Role.ASSISTANT
        assert message.tool_calls[0].id == "call_9"
        assert message.tool_calls[0].arguments == {"query": "sf"}

    def test_missing_call_id_generated(self):
        reply = AIMessage(
            content="", tool_calls=[{"name": "search", "args": {}, "id": None}]
        )

        message = from_langchain_message(reply)

        assert message.tool_calls[0].id.startswith("call_")

    def test_content_blocks_flattened(self):
        reply = AIMessage(
            content=[{"type": "text", "text": "It's "}, {"type": "text", "text": "foggy."}]
        )
        assert from_langchain_message(reply).content == "It's foggy."

    def test_non_ai_reply_rejected(self):
        with pytest.raises(ModelInvocationError):
            from_langchain_message(HumanMessage(content="hi"))


class TestLangChainChatModel:
    """Tests for invoking a chat model as the model capability."""

    @pytest.mark.asyncio
    async def test_binds_tools_and_returns_message(self, registry):
        llm, runnable = _mock_llm(AIMessage(content=WEATHER))
        model = LangChainChatModel(llm, tools=registry.tools())

        reply = await model(State(messages=(Message.user("weather?"),)))

        assert reply == Message.assistant(WEATHER)
        bound = llm.bind_tools.call_args.args[0]
        assert bound[0]["function"]["name"] == "search"
        assert model.tool_names == ["search"]

    @pytest.mark.asyncio
    async def test_system_prompt_prepended(self, registry):
        llm, runnable = _mock_llm(AIMessage(content="ok"))
        model = LangChainChatModel(llm, tools=registry.tools(), system_prompt="Be brief.")

        await model(State(messages=(Message.user("weather?"),)))

        sent = runnable.ainvoke.call_args.args[0]
        assert isinstance(sent[0], SystemMessage)
        assert sent[0].content == "Be brief."
        assert isinstance(sent[1], HumanMessage)

    @pytest.mark.asyncio
    async def test_without_tools_uses_llm_directly(self):
        llm, _ = _mock_llm(AIMessage(content="ok"))
        model = LangChainChatModel(llm)

        await model(State(messages=(Message.user("hi"),)))

        llm.bind_tools.assert_not_called()
        llm.ainvoke.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_provider_error_wrapped(self):
        llm, _ = _mock_llm(None)
        llm.ainvoke = AsyncMock(side_effect=TimeoutError("upstream timeout"))
        model = LangChainChatModel(llm)

        with pytest.raises(ModelInvocationError) as exc_info:
            await model(State(messages=(Message.user("hi"),)))

        assert isinstance(exc_info.value.__cause__, TimeoutError)


class TestCreateChatModel:
    """Tests for building the default chat model from settings."""

    def test_creates_openai_model(self, registry):
        settings = Settings(openai_api_key="sk-test", openai_model="gpt-4o-mini")

        model = create_chat_model(settings, registry.tools(), "Be brief.")

        assert isinstance(model, LangChainChatModel)
        assert isinstance(model.llm, ChatOpenAI)
        assert model.llm.model_name == "gpt-4o-mini"
        assert model.system_prompt == "Be brief."
        assert model.tool_names == ["search"]
